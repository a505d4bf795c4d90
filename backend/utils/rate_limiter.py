import time
from typing import Dict
from fastapi import HTTPException, status

# In-memory store (process-level)
_RATE_LIMIT_STORE: Dict[str, list] = {}


def _prune(window_start: float) -> None:
    stale = [
        key for key, timestamps in _RATE_LIMIT_STORE.items()
        if not timestamps or timestamps[-1] <= window_start
    ]
    for key in stale:
        del _RATE_LIMIT_STORE[key]


def rate_limit(
    key: str,
    max_requests: int,
    window_seconds: int,
):
    """
    Sliding window limiter for login attempts.
    key = "login:<email>"
    Keys with no attempt inside the window are dropped.
    """

    now = time.time()
    window_start = now - window_seconds

    _prune(window_start)
    timestamps = [t for t in _RATE_LIMIT_STORE.get(key, []) if t > window_start]

    if len(timestamps) >= max_requests:
        _RATE_LIMIT_STORE[key] = timestamps
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts. Please try again later.",
        )

    timestamps.append(now)
    _RATE_LIMIT_STORE[key] = timestamps


def reset_rate_limit(key: str) -> None:
    _RATE_LIMIT_STORE.pop(key, None)
