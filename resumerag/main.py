from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from resumerag import config
from resumerag.routers import ask, jobs, meta, resumes

# Import logging and middleware
from resumerag.utils.logging_config import configure_for_environment, get_logger
from resumerag.middleware.error_handlers import (
    ExceptionHandlerMiddleware,
    RequestLoggingMiddleware,
    PerformanceMiddleware,
    request_validation_handler,
)

# Configure logging first
configure_for_environment()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager"""
    logger.info("ResumeRAG API starting up...")

    if config.RECORD_STORE == "mongo":
        logger.info("Initializing database indexes...")
        try:
            from resumerag.services.db import init_indexes
            await init_indexes()
            logger.info("Database indexes initialized successfully")
        except Exception as e:
            logger.warning(f"Database index initialization had issues: {e}")
            logger.info("Application will continue - some operations may be slower without indexes")

    logger.info("ResumeRAG API startup completed")

    yield

    logger.info("ResumeRAG API shutting down...")


def create_app() -> FastAPI:
    app = FastAPI(title="ResumeRAG API", version=config.API_VERSION, lifespan=lifespan)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Add middleware in order (LIFO - Last In, First Out)
    # Exception handler should be the outermost middleware
    app.add_middleware(PerformanceMiddleware, slow_request_threshold=2.0)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(ExceptionHandlerMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset", "X-Request-ID"],
    )

    @app.get("/")
    @app.head("/")
    async def root():
        """Root endpoint - handles both GET and HEAD requests"""
        return {"message": "Welcome to the ResumeRAG API", "version": config.API_VERSION, "status": "ok"}

    app.include_router(meta.router, prefix="/api", tags=["meta"])
    app.include_router(resumes.router, prefix="/api/resumes", tags=["resumes"])
    app.include_router(ask.router, prefix="/api/ask", tags=["search"])
    app.include_router(jobs.router, prefix="/api/jobs", tags=["jobs"])
    return app


app = create_app()

logger.info("ResumeRAG API initialized successfully")
