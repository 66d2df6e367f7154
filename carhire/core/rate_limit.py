from collections import deque
from time import monotonic

from fastapi import Request

"""
IN-PROCESS SLIDING WINDOW LIMITER

Hits are kept per key, oldest first. Keys whose newest hit has left its
window are swept out at most once per _SWEEP_EVERY seconds.
"""

_SWEEP_EVERY = 60.0

_HITS: dict[str, deque] = {}
_WINDOWS: dict[str, float] = {}
_last_sweep = 0.0


def _sweep(now: float) -> None:
    global _last_sweep
    if now - _last_sweep < _SWEEP_EVERY:
        return
    _last_sweep = now

    idle = [k for k, hits in _HITS.items() if not hits or now - hits[-1] >= _WINDOWS.get(k, 0)]
    for key in idle:
        _HITS.pop(key, None)
        _WINDOWS.pop(key, None)


#True if the request is allowed, recording it against the key
def rate_limit(key: str, max_requests: int, window_seconds: float, now: float | None = None) -> bool:
    now = monotonic() if now is None else now
    _sweep(now)

    hits = _HITS.setdefault(key, deque())
    _WINDOWS[key] = window_seconds
    while hits and now - hits[0] >= window_seconds:
        hits.popleft()

    if len(hits) >= max_requests:
        return False

    hits.append(now)
    return True


def make_key(request: Request, endpoint: str) -> str:
    ip = request.client.host if request.client else "unknown"
    return f"{endpoint}:{ip}"


def reset():
    global _last_sweep
    _HITS.clear()
    _WINDOWS.clear()
    _last_sweep = 0.0
