# gig_reviews/config.py
import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class Settings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # admission gate
    rate_limit_window_ms: int = Field(60000, gt=0)
    rate_limit_max_requests: int = Field(5, gt=0)
    rate_limit_sweep_interval_s: float = Field(30.0, gt=0)

    # render session
    headless: bool = True
    navigation_timeout_ms: int = Field(30000, gt=0)
    first_paint_delay_ms: int = Field(5000, ge=0)
    post_challenge_delay_ms: int = Field(3000, ge=0)
    challenge_timeout_ms: int = Field(120000, gt=0)
    reveal_max_clicks: int = Field(50, gt=0)
    reveal_settle_ms: int = Field(3000, ge=0)
    final_settle_ms: int = Field(3000, ge=0)
    proxy: Optional[str] = None
    debug: bool = False

    # static fetch
    static_timeout_s: float = Field(15.0, gt=0)
    user_agent: str = DEFAULT_USER_AGENT

    allowed_domain: str = "fiverr.com"

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        values = {}
        for name in cls.model_fields:
            raw = os.getenv(f"GIG_REVIEWS_{name.upper()}")
            if raw is not None:
                values[name] = raw
        if "proxy" not in values:
            proxy = os.getenv("PLAYWRIGHT_PROXY") or os.getenv("HTTP_PROXY") or os.getenv("HTTPS_PROXY")
            if proxy:
                values["proxy"] = proxy
        values.update(overrides)
        return cls(**values)
