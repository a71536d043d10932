"""In-memory per-IP rate limiting for the anonymous share-link surface."""
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Deque, Dict, Tuple
import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger("app.rate_limit")

RATE_LIMIT_WINDOW = timedelta(minutes=1)
# full sweep of idle identifiers every N counted requests
SWEEP_EVERY = 1000


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding one-minute window per client IP.

    Only paths under ``path_prefixes`` are counted; authoring endpoints sit
    behind authentication and are left alone. State resets on restart.
    ``X-Forwarded-For`` is read only when ``trust_forwarded_for`` is set,
    i.e. when a proxy we control overwrites it.
    """

    def __init__(
        self,
        app,
        calls_per_minute: int = 30,
        path_prefixes: Tuple[str, ...] = ("/assessment/",),
        trust_forwarded_for: bool = False,
    ):
        super().__init__(app)
        self.calls_per_minute = calls_per_minute
        self.path_prefixes = path_prefixes
        self.trust_forwarded_for = trust_forwarded_for
        self._hits: Dict[str, Deque[datetime]] = {}
        self._counted = 0

    def _client_ip(self, request: Request) -> str:
        if self.trust_forwarded_for:
            forwarded = request.headers.get("X-Forwarded-For")
            if forwarded:
                return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    @staticmethod
    def _prune(hits: Deque[datetime], now: datetime):
        while hits and now - hits[0] >= RATE_LIMIT_WINDOW:
            hits.popleft()

    def _sweep(self, now: datetime):
        for identifier in list(self._hits):
            hits = self._hits[identifier]
            self._prune(hits, now)
            if not hits:
                del self._hits[identifier]

    def _allow(self, identifier: str) -> bool:
        now = datetime.now(timezone.utc)
        self._counted += 1
        if self._counted % SWEEP_EVERY == 0:
            self._sweep(now)
        hits = self._hits.get(identifier)
        if hits is not None:
            self._prune(hits, now)
            if len(hits) >= self.calls_per_minute:
                return False
        else:
            hits = self._hits[identifier] = deque()
        hits.append(now)
        return True

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.path_prefixes):
            return await call_next(request)
        ip = self._client_ip(request)
        if not self._allow(ip):
            correlation_id = getattr(request.state, "correlation_id", "unknown")
            logger.warning(f"[{correlation_id}] Rate limit exceeded for {ip} on {request.url.path}")
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests, please try again later", "correlation_id": correlation_id},
                headers={"Retry-After": str(int(RATE_LIMIT_WINDOW.total_seconds()))},
            )
        return await call_next(request)
