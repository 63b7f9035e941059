import time
import logging
from typing import Optional

from fastapi import FastAPI
from starlette.exceptions import HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from starlette.requests import Request

from attendify.api.v1.router import api_router
from attendify.core.errors import AppError
from attendify.core.logging import setup_logging
from attendify.core.rate_limit import FixedWindowRateLimiter, RateLimitMiddleware
from attendify.core.security import SecurityHeadersMiddleware
from attendify.core.tasks import BackgroundDispatcher
from attendify.db.bootstrap import run_migrations_and_seed
from attendify.services.notifications import NotificationService
from attendify.services.qr import QRRotationManager
from attendify.services.sweeper import EventSweeper

logger = logging.getLogger("attendify")


def create_app(
    session_factory: Optional[sessionmaker] = None,
    *,
    dispatcher: Optional[BackgroundDispatcher] = None,
    qr_encoder=None,
    notifier: Optional[NotificationService] = None,
    rate_limiter: Optional[FixedWindowRateLimiter] = None,
    run_background: bool = True,
) -> FastAPI:
    if session_factory is None:
        from attendify.db.session import SessionLocal
        session_factory = SessionLocal

    api = FastAPI(
        title="Attendify - Campus Attendance API",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        swagger_ui_parameters={"displayRequestDuration": True, "persistAuthorization": True},
    )

    rotation = QRRotationManager(session_factory, encoder=qr_encoder)
    api.state.session_factory = session_factory
    api.state.dispatcher = dispatcher or BackgroundDispatcher()
    api.state.rotation = rotation
    api.state.notifier = notifier or NotificationService(session_factory)
    api.state.rate_limiter = rate_limiter or FixedWindowRateLimiter()
    api.state.sweeper = EventSweeper(session_factory, rotation)

    api.add_middleware(RateLimitMiddleware, limiter=api.state.rate_limiter)
    api.add_middleware(SecurityHeadersMiddleware)
    api.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # ajuste para domínios específicos em produção
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @api.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info("%s %s -> %s (%.1fms)", request.method, request.url.path, response.status_code, elapsed_ms)
        return response

    # métricas /metrics (Prometheus)
    Instrumentator().instrument(api).expose(api, include_in_schema=False, should_gzip=True)

    api.include_router(api_router, prefix="/api/v1")

    @api.get("/healthz", tags=["health"])
    def healthz():
        return {"status": "ok"}

    @api.on_event("startup")
    def startup():
        run_migrations_and_seed(session_factory, encoder=qr_encoder)
        if run_background:
            api.state.sweeper.start()

    @api.on_event("shutdown")
    def shutdown():
        api.state.sweeper.stop()
        api.state.dispatcher.shutdown(wait=False)

    @api.exception_handler(AppError)
    def handle_app_error(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @api.exception_handler(HTTPException)
    def handle_http_error(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"code": "HTTP_ERROR", "message": str(exc.detail), "details": None},
            headers=getattr(exc, "headers", None),
        )

    @api.exception_handler(IntegrityError)
    def handle_integrity_error(request: Request, exc: IntegrityError):
        return JSONResponse(
            status_code=409,
            content={"code": "UNIQUE_VIOLATION", "message": "Duplicate record.", "details": str(getattr(exc, "orig", exc))},
        )

    @api.exception_handler(Exception)
    def handle_unexpected(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"code": "INTERNAL_ERROR", "message": "Internal error.", "details": None},
        )

    return api


def build_default_app() -> FastAPI:
    setup_logging()
    return create_app()
