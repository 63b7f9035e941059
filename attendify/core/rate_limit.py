# attendify/core/rate_limit.py
from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Tuple

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from attendify.core.config import settings


class FixedWindowRateLimiter:
    """Janela fixa por chave (IP). Instância única criada na fábrica da app."""

    def __init__(self, limit: int | None = None, window_seconds: int | None = None,
                 clock: Callable[[], float] = time.monotonic):
        self.limit = limit or settings.RATE_LIMIT_REQUESTS
        self.window = window_seconds or settings.RATE_LIMIT_WINDOW_SECONDS
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._last_purge = clock()

    def allow(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            self._purge(now)
            start, count = self._windows.get(key, (now, 0))
            if now - start >= self.window:
                start, count = now, 0
            if count >= self.limit:
                self._windows[key] = (start, count)
                return False
            self._windows[key] = (start, count + 1)
            return True

    def _purge(self, now: float) -> None:
        # limpeza preguiçosa das janelas expiradas
        if now - self._last_purge < self.window:
            return
        stale = [k for k, (start, _) in self._windows.items() if now - start >= self.window]
        for k in stale:
            del self._windows[k]
        self._last_purge = now


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: FixedWindowRateLimiter):
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"
        if not self.limiter.allow(client_ip):
            return JSONResponse(
                status_code=429,
                content={"code": "RATE_LIMITED", "message": "Too many requests.", "details": None},
            )
        return await call_next(request)
