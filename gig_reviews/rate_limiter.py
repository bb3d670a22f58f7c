"""
Fixed-window admission gate for extraction requests.

Each client gets ``max_requests`` admissions per ``window_ms``. The call that
opens a window counts as its first request; once the window's reset time has
passed the next call opens a fresh window instead of decrementing the old one.

Usage:
    limiter = RateLimiter(window_ms=60000, max_requests=5)
    if limiter.is_rate_limited(client_ip):
        retry_in = limiter.time_remaining(client_ip)
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

log = logging.getLogger("ratelimiter")


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass
class QuotaEntry:
    count: int
    reset_at: float


class RateLimiter:
    def __init__(
        self,
        window_ms: int = 60000,
        max_requests: int = 5,
        clock: Optional[Callable[[], float]] = None,
    ):
        for name, value in (("window_ms", window_ms), ("max_requests", max_requests)):
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        self.window_ms = window_ms
        self.max_requests = max_requests
        self._clock = clock or _monotonic_ms
        self._entries: Dict[str, QuotaEntry] = {}
        # one lock for the whole map; check-and-increment must not interleave
        self._lock = threading.Lock()
        self._sweeper: Optional[threading.Thread] = None
        self._stop = threading.Event()

    def is_rate_limited(self, client_id: str) -> bool:
        with self._lock:
            now = self._clock()
            entry = self._entries.get(client_id)
            if entry is None or entry.reset_at <= now:
                self._entries[client_id] = QuotaEntry(count=1, reset_at=now + self.window_ms)
                return False
            if entry.count >= self.max_requests:
                log.info("Rate limit hit for %s (%s/%s)", client_id, entry.count, self.max_requests)
                return True
            entry.count += 1
            return False

    def remaining(self, client_id: str) -> int:
        with self._lock:
            entry = self._entries.get(client_id)
            if entry is None or entry.reset_at <= self._clock():
                return self.max_requests
            return max(0, self.max_requests - entry.count)

    def time_remaining(self, client_id: str) -> int:
        """Milliseconds until the client's window resets, 0 if no live window."""
        with self._lock:
            entry = self._entries.get(client_id)
            now = self._clock()
            if entry is None or entry.reset_at <= now:
                return 0
            return int(entry.reset_at - now)

    def reset(self, client_id: str) -> None:
        with self._lock:
            self._entries.pop(client_id, None)

    def cleanup(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [cid for cid, e in self._entries.items() if e.reset_at <= now]
            for cid in expired:
                del self._entries[cid]
        if expired:
            log.debug("Swept %s expired quota entries", len(expired))
        return len(expired)

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._entries)

    # --- background sweep ---
    def start_sweeper(self, interval_s: float = 30.0) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()

        def _run():
            while not self._stop.wait(interval_s):
                self.cleanup()

        self._sweeper = threading.Thread(target=_run, name="ratelimiter-sweeper", daemon=True)
        self._sweeper.start()

    def stop_sweeper(self) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=1.0)
        self._sweeper = None
