import traceback
from contextlib import asynccontextmanager
from typing import Dict, Type

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.router import api_router
from app.core.config import settings
from app.core.exceptions import (
    AIError,
    ConfigurationError,
    IncompleteResponse,
    QuotaExceeded,
    RateLimited,
    UpstreamError,
    UserNotFound,
)
from app.core.logging import logger
from app.core.rate_limit import RATE_LIMIT_MESSAGE, limiter
from app.schemas import ErrorResponse
from app.services.completion_gateway import CompletionGateway

AI_ERROR_STATUS: Dict[Type[AIError], int] = {
    QuotaExceeded: 429,
    RateLimited: 429,
    ConfigurationError: 500,
    UpstreamError: 500,
    IncompleteResponse: 500,
    UserNotFound: 404,
}

HTTP_ERROR_CODES: Dict[int, str] = {
    400: "BAD_REQUEST",
    401: "INVALID_TOKEN",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    429: "TOO_MANY_REQUESTS",
}

SECURITY_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "Cross-Origin-Opener-Policy": "same-origin",
}


@asynccontextmanager
async def lifespan(application: FastAPI):
    """Create tables on startup; release the completion client and DB pool on shutdown."""
    # Import models so they register with Base.metadata
    import app.models  # noqa: F401
    from app.core.database import engine, Base

    async with engine.begin() as conn:
        try:
            await conn.run_sync(Base.metadata.create_all)
        except Exception as e:
            # Ignore "already exists" errors (e.g. types on restart)
            if "already exists" in str(e):
                logger.warning(f"Some DB objects already exist (safe to ignore): {e}")
            else:
                raise

    logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION}")
    logger.info("Documentation: http://127.0.0.1:8000/docs")
    logger.info("Database connected & tables created")
    if not settings.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY is not set - AI endpoints will fail with CONFIG_ERROR")
    if settings.DEBUG:
        logger.warning("DEBUG mode is ON - detailed errors will be logged to console")

    yield

    await application.state.completion_gateway.aclose()
    await engine.dispose()


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description=settings.DESCRIPTION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    # Set up CORS middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response

    # Include API router
    application.include_router(api_router, prefix=settings.API_V1_STR)

    # One completion gateway per process, shared by all requests
    application.state.completion_gateway = CompletionGateway.from_settings()
    application.state.limiter = limiter

    # Register exception handlers
    register_exception_handlers(application)

    return application


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    """Failure envelope: the error code takes the place of the payload."""
    body = ErrorResponse(error=code, message=message)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def register_exception_handlers(app: FastAPI) -> None:
    """Register custom exception handlers."""

    @app.exception_handler(AIError)
    async def ai_error_handler(request: Request, exc: AIError) -> JSONResponse:
        status_code = AI_ERROR_STATUS.get(type(exc), 500)
        if status_code >= 500:
            logger.error(f"AI request failed ({exc.code}): {exc.message}")
        return error_response(status_code, exc.code, exc.message)

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        client = request.client.host if request.client else "unknown"
        logger.warning(f"Rate limit exceeded for {client} on {request.url.path} ({exc.detail})")
        return error_response(429, HTTP_ERROR_CODES[429], RATE_LIMIT_MESSAGE)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = getattr(exc, "code", None) or HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
        response = error_response(exc.status_code, code, str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg", "Invalid request"))
        return error_response(422, "VALIDATION_ERROR", message)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler - logs details to console."""

        # Always log to console
        logger.error(f"Exception: {exc.__class__.__name__}: {exc}")

        if settings.DEBUG:
            # Log detailed info to console in debug mode
            logger.error(
                f"Request: {request.method} {request.url}\n"
                f"   Path Params: {request.path_params}\n"
                f"   Query Params: {dict(request.query_params)}\n"
                f"   Client: {request.client.host if request.client else 'unknown'}\n"
                f"   Traceback:\n{traceback.format_exc()}"
            )

        # Clean response to client
        return error_response(
            500,
            "INTERNAL_ERROR",
            str(exc) if settings.DEBUG else "An unexpected error occurred",
        )


app = create_application()


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - health check."""
    return {
        "message": f"Welcome to {settings.PROJECT_NAME} API",
        "version": settings.VERSION,
        "docs": "/docs",
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
