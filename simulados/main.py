"""
Main FastAPI application entry point.
"""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from simulados.core.config import settings
from simulados.core.errors import ServiceError, error_body
from simulados.api.answers import router as answers_router
from simulados.api.catalog import router as catalog_router
from simulados.api.profile import router as profile_router
from simulados.api.questions import router as questions_router
from simulados.api.simulados import router as simulados_router
from simulados.api.stats import router as stats_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    """
    # Startup
    logger.info(f"Starting {settings.APP_NAME} ({settings.ENVIRONMENT}, storage={settings.STORAGE_BACKEND})...")

    if settings.STORAGE_BACKEND == "firestore":
        from simulados.core.firebase import get_firebase_app
        get_firebase_app()
        logger.info("Firebase initialized")
    elif settings.DATABASE_AUTO_CREATE:
        from simulados.core.database import init_db
        await init_db()
        logger.info("Database initialized")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.APP_NAME}...")
    if settings.STORAGE_BACKEND == "sql":
        from simulados.core.database import close_db
        await close_db()
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    docs_url="/docs" if not settings.is_production() else None,
    redoc_url="/redoc" if not settings.is_production() else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers
def error_response(status_code: int, error_type: str, message, headers=None, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(status_code, error_type, message, **extra),
                        headers=headers)


@app.exception_handler(ServiceError)
async def service_exception_handler(request: Request, exc: ServiceError):
    """Handle domain errors raised by services and storage adapters."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, "http_error", exc.detail, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # ctx may hold the raw exception object, which is not JSON serializable
    details = [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]
    return error_response(422, "validation_error", "Validation error",
                          details=details)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} raised {exc!r}", exc_info=True)
    message = "An internal error occurred" if settings.is_production() else str(exc)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", message)


# Routers
app.include_router(simulados_router, prefix=f"{settings.API_PREFIX}/simulados", tags=["simulados"])
app.include_router(answers_router, prefix=f"{settings.API_PREFIX}/answers", tags=["answers"])
app.include_router(stats_router, prefix=f"{settings.API_PREFIX}/stats", tags=["stats"])
app.include_router(questions_router, prefix=f"{settings.API_PREFIX}/questions", tags=["questions"])
app.include_router(profile_router, prefix=f"{settings.API_PREFIX}/user", tags=["profile"])
app.include_router(catalog_router, prefix=f"{settings.API_PREFIX}/catalog", tags=["catalog"])


@app.get("/health", tags=["Health"])
async def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "simulados.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_level=settings.LOG_LEVEL.lower(),
    )
