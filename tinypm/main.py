import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tinypm.api.api import api_router
from tinypm.api.endpoints import profile
from tinypm.config import Settings, settings as default_settings
from tinypm.core.container import AppContainer
from tinypm.core.errors import DomainErrorCode, DomainVerificationError
from tinypm.logging_config import setup_logging
from tinypm.middleware.custom_domain import CustomDomainMiddleware
from tinypm.middleware.metrics import PrometheusMiddleware, metrics_endpoint, set_app_info
from tinypm.middleware.request_logging import RequestLoggingMiddleware

VERSION = "1.0.0"

logger = logging.getLogger("tinypm.app")


def _install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainVerificationError)
    async def domain_error_handler(request: Request, exc: DomainVerificationError):
        headers = None
        if exc.code == DomainErrorCode.COOLDOWN and exc.remaining_seconds is not None:
            headers = {"Retry-After": str(exc.remaining_seconds)}
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=headers)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request body", "details": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(settings: Optional[Settings] = None, container: Optional[AppContainer] = None) -> FastAPI:
    settings = settings or (container.settings if container else default_settings)
    setup_logging(settings)
    container = container or AppContainer.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("%s starting (env=%s, root domain=%s)", settings.APP_NAME, settings.APP_ENV, settings.root_domain)
        yield
        container.shutdown()

    app = FastAPI(title=settings.APP_NAME, version=VERSION, lifespan=lifespan)
    app.state.container = container

    cors_origins = ["http://localhost:3000", "http://localhost:8000", f"https://{settings.root_domain}"]
    if settings.BACKEND_CORS_ORIGINS:
        cors_origins.extend(o.strip() for o in settings.BACKEND_CORS_ORIGINS.split(",") if o.strip())

    # Added innermost first: the proxy sees requests after logging and metrics.
    app.add_middleware(CustomDomainMiddleware, lookup=container.lookup_owner_username, settings=settings)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    _install_exception_handlers(app)

    @app.get("/health")
    def health_check():
        if container.database.ping():
            return {"status": "healthy", "env": settings.APP_ENV, "dbPool": container.database.get_pool_status()}
        return JSONResponse(status_code=503, content={"status": "unhealthy", "env": settings.APP_ENV})

    app.add_route("/metrics", metrics_endpoint)
    set_app_info(version=VERSION, env=settings.APP_ENV)

    app.include_router(api_router, prefix=settings.API_PREFIX)
    # Catch-all profile routes go last.
    app.include_router(profile.router, tags=["profile"])
    return app


app = create_app()
