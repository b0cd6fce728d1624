import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .core.config import settings
from .core.exceptions import GatewayError
from .core.rate_limit import limiter
from .db.database import create_engine_and_sessionmaker, init_db
from .api.api_v1.api import api_router
from .services.storage_service import ObjectStorage

logger = logging.getLogger(__name__)


def cors_headers(origin: Optional[str] = None) -> dict:
    """CORS headers for a response to a request from ``origin``.

    With an explicit allow-list the request's origin is echoed back when it is
    listed; unlisted origins get no Allow-Origin header at all.
    """
    headers = {
        "Access-Control-Allow-Methods": ", ".join(settings.CORS_ALLOW_METHODS),
        "Access-Control-Allow-Headers": ", ".join(settings.CORS_ALLOW_HEADERS),
    }
    origins = settings.CORS_ORIGINS
    if not origins or "*" in origins:
        headers["Access-Control-Allow-Origin"] = "*"
    else:
        headers["Vary"] = "Origin"
        if origin in origins:
            headers["Access-Control-Allow-Origin"] = origin
    return headers


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the database and storage clients once per process."""
    engine, session_factory = create_engine_and_sessionmaker(settings.DATABASE_URL, settings.DEBUG)
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.order_storage = ObjectStorage(settings.storage_config("order"))
    app.state.product_storage = ObjectStorage(settings.storage_config("product"))
    app.state.stock_file_storage = ObjectStorage(settings.storage_config("stock_file"))
    app.state.stock_image_storage = ObjectStorage(settings.storage_config("stock_image"))

    if settings.ENVIRONMENT == "development":
        await init_db(engine)
    logger.info(f"{settings.APP_NAME} {settings.VERSION} started ({settings.ENVIRONMENT})")
    try:
        yield
    finally:
        await engine.dispose()


def create_app() -> FastAPI:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
        description="Order attachment, product image and payment API for the embroidery portal",
        openapi_url="/api/v1/openapi.json",
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        lifespan=lifespan,
    )

    # Add rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )

    # Preflight requests are answered before routing, so before authentication
    @app.middleware("http")
    async def cors_preflight(request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=cors_headers(request.headers.get("origin")))
        response = await call_next(request)
        for name, value in cors_headers(request.headers.get("origin")).items():
            response.headers.setdefault(name, value)
        return response

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return JSONResponse(status_code=400, content={"error": message})

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"},
            headers=cors_headers(request.headers.get("origin")),
        )

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "version": settings.VERSION}

    app.include_router(api_router, prefix="/api/v1")
    return app


app = create_app()
