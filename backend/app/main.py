"""
Main FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select

from app.core.config import settings
from app.core.exceptions import AppError
from app.core.logging import get_logger, setup_logging
from app.core.rate_limit import RateLimiter
from app.db.session import AsyncSessionLocal, check_db_health, close_db, init_db
from app.models.content import AnalysisStatus, Video
from app.services.media_analysis import MediaUnderstandingClient
from app.services.processors.embedder import EmbeddingService
from app.services.rag.generator import CompletionClient
from app.workers.analysis_queue import MediaAnalysisQueue

# Setup logging
setup_logging()
logger = get_logger(__name__)

VERSION = "0.1.0"


async def _resume_pending_analysis(queue: MediaAnalysisQueue) -> int:
    """Re-queue videos left pending or mid-analysis by a previous process."""
    async with AsyncSessionLocal() as session:
        result = await session.execute(
            select(Video.id).where(
                Video.analysis_status.in_(
                    [AnalysisStatus.PENDING.value, AnalysisStatus.PROCESSING.value]
                )
            )
        )
        video_ids = list(result.scalars().all())

    for video_id in video_ids:
        queue.enqueue(video_id)
    return len(video_ids)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan events.
    Handles startup and shutdown tasks.
    """
    # Startup
    logger.info(
        "starting_application",
        app_name=settings.APP_NAME,
        environment=settings.APP_ENV,
        version=VERSION,
    )

    # Initialize database connection pool
    await init_db()

    app.state.rate_limiter = RateLimiter(
        max_requests=settings.RATE_LIMIT_PER_MINUTE,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    )

    # Without the model chat answers without context and videos stay pending
    embedder = EmbeddingService()
    try:
        await embedder.initialize()
        app.state.embedder = embedder
    except Exception as e:
        logger.error("embedding_model_load_failed", error=str(e), model=embedder.model_name)
        app.state.embedder = None

    if settings.ANTHROPIC_API_KEY:
        app.state.completion_client = CompletionClient()
    else:
        logger.warning("completion_client_disabled", reason="ANTHROPIC_API_KEY not set")
        app.state.completion_client = None

    media_client = MediaUnderstandingClient()
    if app.state.embedder is not None:
        analysis_queue = MediaAnalysisQueue(AsyncSessionLocal, media_client, embedder)
        app.state.analysis_queue = analysis_queue
        await analysis_queue.start()

        resumed = await _resume_pending_analysis(analysis_queue)
        if resumed:
            logger.info("video_analysis_resumed", count=resumed)
    else:
        logger.warning("video_analysis_disabled", reason="embedding model not loaded")
        app.state.analysis_queue = None

    yield

    # Shutdown
    logger.info("shutting_down_application")

    if app.state.analysis_queue is not None:
        await app.state.analysis_queue.stop()
    await media_client.close()
    if app.state.completion_client is not None:
        await app.state.completion_client.close()
    await embedder.shutdown()

    # Close database connections
    await close_db()


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="IVF clinic patient assistant - Backend API",
    version=VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)


# Health check endpoint
@app.get("/health", tags=["health"])
async def health_check() -> JSONResponse:
    """
    Health check endpoint for monitoring.
    Includes database connectivity and model readiness.
    """
    db_healthy = await check_db_health()
    embedder = getattr(app.state, "embedder", None)

    return JSONResponse(
        status_code=200 if db_healthy else 503,
        content={
            "status": "healthy" if db_healthy else "unhealthy",
            "app_name": settings.APP_NAME,
            "environment": settings.APP_ENV,
            "version": VERSION,
            "database": "connected" if db_healthy else "disconnected",
            "embedding_model": "loaded" if embedder is not None and embedder.is_initialized else "unavailable",
        },
    )


@app.get("/", tags=["root"])
async def root() -> JSONResponse:
    """
    Root endpoint.
    """
    return JSONResponse(
        content={
            "message": f"Welcome to {settings.APP_NAME} API",
            "version": VERSION,
            "docs": "/docs" if settings.DEBUG else "Documentation disabled in production",
        }
    )


# Include API routers
from app.api import api_router  # noqa: E402

app.include_router(api_router, prefix=settings.API_V1_PREFIX)


# ================================
# Exception handlers
# ================================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "request_failed",
        code=exc.code,
        error=exc.message,
        path=request.url.path,
        method=request.method,
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))

    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": first.get("msg", "Invalid request"),
                "field": field or None,
            }
        },
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled errors.
    """
    logger.error(
        "unhandled_exception",
        error=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred. Please try again later.",
            }
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
