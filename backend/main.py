"""
Main FastAPI application entry point
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jtbd.api.routes import auth, collections, health, metrics, profiles
from jtbd.core.config import get_settings
from jtbd.core.errors import JtbdError, ValidationError
from jtbd.core.logging_config import LoggingConfig
from jtbd.core.middleware import LoggingContextMiddleware
from jtbd.core.middleware_metrics import MetricsMiddleware
from jtbd.schemas import describe_validation_errors

# Configure logging first
LoggingConfig.configure()

logger = LoggingConfig.get_logger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for FastAPI app"""
    settings = get_settings()
    logger.info(
        f"Starting {settings.app_name} in {settings.app_env} mode...",
        extra={"access_policy": settings.access_policy.value},
    )
    yield
    logger.info(f"Shutting down {settings.app_name}...")


async def jtbd_error_handler(request: Request, exc: JtbdError):
    """Render domain errors; raw diagnostics stay in the log"""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        f"{type(exc).__name__}: {exc.message}",
        extra={
            "error_code": exc.code,
            "status_code": exc.status_code,
            "detail": exc.detail,
        },
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Schema failures use the same error shape as every other validation error"""
    error = ValidationError(describe_validation_errors(exc.errors()), detail=str(exc.errors())[:1000])
    return await jtbd_error_handler(request, error)


async def global_exception_handler(request: Request, exc: Exception):
    """Log unhandled errors; the client only gets a generic message"""
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={
            "error": str(exc),
            "error_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        }
    )
    return JSONResponse(status_code=500, content=JtbdError().to_dict())


def create_app() -> FastAPI:
    """Build the application with middleware, error handlers and routers"""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        description="Jobs To Be Done research backend",
        version=VERSION,
        lifespan=lifespan,
    )

    # Add logging context middleware (before CORS to capture all requests)
    app.add_middleware(LoggingContextMiddleware)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(JtbdError, jtbd_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(health.router)
    app.include_router(metrics.router)
    app.include_router(auth.router)
    app.include_router(profiles.router)
    for router in collections.routers:
        app.include_router(router)

    @app.get("/api")
    async def root():
        """Root API endpoint"""
        return {
            "name": settings.app_name,
            "version": VERSION,
            "status": "running",
            "environment": settings.app_env,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.app_env == "development",
    )
