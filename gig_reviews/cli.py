# gig_reviews/cli.py
import asyncio
import logging
from typing import Optional

import typer

from gig_reviews.config import Settings
from gig_reviews.models import ExtractionFailure
from gig_reviews.orchestrator import ReviewService
from gig_reviews.output import write_table

app = typer.Typer()


@app.command()
def extract(
    url: str = typer.Option(..., help="Gig page URL"),
    output: Optional[str] = typer.Option(None, help="CSV path (default outputs/<gig>-reviews.csv)"),
    headless: bool = typer.Option(True, help="Run browser headless (use --no-headless to solve challenges by hand)"),
    debug: bool = typer.Option(False, help="Dump page HTML and screenshot into outputs/"),
    verbose: bool = typer.Option(False, help="Debug logging and print the first review"),
):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)
    settings = Settings.from_env(headless=headless, debug=debug)
    service = ReviewService(settings=settings)

    typer.echo(f"Extracting reviews from {url} ...")
    outcome = asyncio.run(service.extract_reviews(url, "cli"))
    if isinstance(outcome, ExtractionFailure):
        typer.echo(f"Error during extraction: {outcome.message}")
        raise typer.Exit(code=2)

    outpath = write_table(outcome.records, url, output)
    if verbose and outcome.records:
        logging.info(f"First review: {outcome.records[0].model_dump()}")
    typer.echo(f"Wrote {len(outcome.records)} reviews to {outpath}")


if __name__ == "__main__":
    app()
