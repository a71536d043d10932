from fastapi import FastAPI, Request
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

# Import core components
from app.core.logging_config import setup_logging
from app.core.settings import settings
from app.middleware.logging import LoggingMiddleware
from app.middleware.rate_limit import RateLimitMiddleware

# Import configuration
from app.config import init_firebase

# Import route modules
from app.routes import health, questions, assessments, assessment_questions, assignments, submissions, public
from app.exceptions import (
    UnauthorizedException, ForbiddenException, NotFoundException,
    ValidationException, ConflictException, PersistenceFailure,
)

# Set up logging first
logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("=" * 50)
    logger.info("Assessment Authoring API starting up")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"CORS origins: {settings.cors_origins}")
    logger.info(f"Public share links: {settings.app_url}/assessment/<token>")
    logger.info(f"Rate limiting: {'enabled' if settings.rate_limit_enabled else 'disabled'}")
    logger.info(f"SQL Debug: {'enabled' if settings.sql_debug else 'disabled'}")
    logger.info("=" * 50)
    yield
    logger.info("Assessment Authoring API shutting down gracefully")


app = FastAPI(
    title="Assessment Authoring API",
    description="Therapist-authored assessments, reusable question library and public submissions",
    version="1.0.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

# Add middleware in correct order (last added = first executed)
if settings.rate_limit_enabled:
    app.add_middleware(
        RateLimitMiddleware,
        calls_per_minute=settings.public_rate_limit_per_minute,
        trust_forwarded_for=settings.trust_proxy_headers,
    )

app.add_middleware(LoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_origins != ["*"],
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Correlation-ID"],
)

# Initialize Firebase (skip in test environment)
if not settings.is_test:
    init_firebase()

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(questions.router)
app.include_router(assessments.router)
app.include_router(assessment_questions.router)
app.include_router(assignments.router)
app.include_router(assignments.client_router)
app.include_router(submissions.router)
app.include_router(public.router)


def _correlation_id(request: Request) -> str:
    return getattr(request.state, 'correlation_id', 'unknown')


# Exception handlers
@app.exception_handler(UnauthorizedException)
async def unauthorized_exception_handler(request: Request, exc: UnauthorizedException):
    correlation_id = _correlation_id(request)
    logger.warning(f"[{correlation_id}] Unauthorized access attempt on {request.url.path}")
    return JSONResponse(
        status_code=401,
        content={"detail": exc.detail, "correlation_id": correlation_id},
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.exception_handler(ForbiddenException)
async def forbidden_exception_handler(request: Request, exc: ForbiddenException):
    correlation_id = _correlation_id(request)
    logger.warning(f"[{correlation_id}] Forbidden access attempt on {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=403,
        content={"detail": exc.detail, "correlation_id": correlation_id}
    )


@app.exception_handler(ValidationException)
async def validation_exception_handler(request: Request, exc: ValidationException):
    correlation_id = _correlation_id(request)
    logger.warning(f"[{correlation_id}] Validation error on {request.url.path}: {exc.detail}")
    content = {"detail": exc.detail, "correlation_id": correlation_id}
    if exc.errors:
        content["errors"] = exc.errors
    return JSONResponse(status_code=400, content=content)


@app.exception_handler(NotFoundException)
async def not_found_exception_handler(request: Request, exc: NotFoundException):
    correlation_id = _correlation_id(request)
    logger.warning(f"[{correlation_id}] Not found error on {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "correlation_id": correlation_id}
    )


@app.exception_handler(ConflictException)
async def conflict_exception_handler(request: Request, exc: ConflictException):
    correlation_id = _correlation_id(request)
    logger.warning(f"[{correlation_id}] Conflict on {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=409,
        content={"detail": exc.detail, "correlation_id": correlation_id}
    )


@app.exception_handler(PersistenceFailure)
async def persistence_failure_handler(request: Request, exc: PersistenceFailure):
    correlation_id = _correlation_id(request)
    logger.error(f"[{correlation_id}] Persistence failure on {request.url.path}: {exc.detail}")
    content = {"detail": "Failed to save changes", "correlation_id": correlation_id}
    if settings.is_development:
        content["error"] = exc.detail
    return JSONResponse(status_code=500, content=content)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    correlation_id = _correlation_id(request)
    logger.error(f"[{correlation_id}] Unhandled exception on {request.url.path}: {str(exc)}", exc_info=True)

    if settings.is_development:
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "error": str(exc),
                "correlation_id": correlation_id,
                "type": type(exc).__name__
            }
        )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "correlation_id": correlation_id
        }
    )


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "message": "Assessment Authoring API",
        "version": "1.0.0",
        "environment": settings.environment,
        "docs_url": "/docs" if settings.is_development else None,
        "health_check": "/health",
        "status": "running"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level="info" if settings.is_development else "warning"
    )
