# storefront/security.py
import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Tuple

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings

logger = logging.getLogger(__name__)

SLOW_REQUEST_MS = 700
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}


class RateLimiter:
    """Sliding-window request counter keyed by (bucket, client ip)."""

    def __init__(self) -> None:
        self._hits: Dict[Tuple[str, str], Deque[float]] = defaultdict(deque)
        self._last_sweep = time.monotonic()

    def allow(self, bucket: str, client: str, limit: int, window_sec: float) -> bool:
        now = time.monotonic()
        if now - self._last_sweep > window_sec:
            self.prune(window_sec)
        dq = self._hits[(bucket, client)]
        while dq and (now - dq[0]) > window_sec:
            dq.popleft()
        if len(dq) >= limit:
            return False
        dq.append(now)
        return True

    def prune(self, window_sec: float) -> None:
        now = time.monotonic()
        self._last_sweep = now
        for key in list(self._hits):
            dq = self._hits[key]
            while dq and (now - dq[0]) > window_sec:
                dq.popleft()
            if not dq:
                del self._hits[key]

    def reset(self) -> None:
        self._hits.clear()
        self._last_sweep = time.monotonic()


limiter = RateLimiter()


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def install(app: FastAPI) -> None:
    # registration order: the last middleware added runs first
    @app.middleware("http")
    async def _rate_limit(request: Request, call_next):
        if settings.hardened and request.method != "OPTIONS":
            ip = client_ip(request)
            window = settings.rate_limit_window_sec
            if request.url.path == "/admin/login" and request.method == "POST":
                if not limiter.allow("login", ip, settings.login_rate_limit, window):
                    logger.warning("Login rate limit hit for %s", ip)
                    return JSONResponse({"error": "Too many login attempts, try again later"}, status_code=429)
            if not limiter.allow("all", ip, settings.rate_limit_requests, window):
                logger.warning("Rate limit hit for %s on %s", ip, request.url.path)
                return JSONResponse({"error": "Too many requests"}, status_code=429)
        return await call_next(request)

    @app.middleware("http")
    async def _security_headers(request: Request, call_next):
        resp = await call_next(request)
        for k, v in SECURITY_HEADERS.items():
            resp.headers.setdefault(k, v)
        return resp

    @app.middleware("http")
    async def _access_log(request: Request, call_next):
        t0 = time.perf_counter()
        resp = await call_next(request)
        dt_ms = int((time.perf_counter() - t0) * 1000)
        log_fn = logger.warning if dt_ms >= SLOW_REQUEST_MS else logger.info
        log_fn("%s %s -> %s %dms - IP: %s", request.method, request.url.path, resp.status_code, dt_ms, client_ip(request))
        return resp

    origins = settings.allowed_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if origins == ["*"] else origins,
        allow_credentials=origins != ["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
