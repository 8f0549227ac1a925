"""
FastAPI Main Application
Entry point with all routers, middleware and error mapping
"""
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from application.services.deadline_sweeper import DeadlineSweeper, DeadlineSweeperWorker
from core.config import settings
from core.exceptions import (
    AuthorizationException,
    CascadeDeletionException,
    DomainException,
    DuplicateResourceException,
    RepositoryException,
    ResourceNotFoundException,
    ValidationException,
)
from core.logging_config import logger
from infrastructure.persistence.repositories import DocumentProjectRepository
from presentation.api.v1.container import shutdown_container, startup_container
from presentation.api.v1.endpoints import (
    admin_router,
    applications_router,
    projects_router,
    streams_router,
    users_router,
)

API_VERSION = "1.0.0"

# Initialize rate limiter
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    enabled=settings.RATE_LIMIT_ENABLED,
)

# Create FastAPI app
app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Project listings, applications, wishlists and live updates",
    version=API_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add rate limiting middleware
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, lambda request, exc: JSONResponse(
    status_code=429,
    content={"detail": "Rate limit exceeded. Please try again later."}
))
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(ValidationException)
async def validation_exception_handler(request: Request, exc: ValidationException):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.message, "field": exc.field},
    )


@app.exception_handler(ResourceNotFoundException)
async def not_found_exception_handler(request: Request, exc: ResourceNotFoundException):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(DuplicateResourceException)
async def duplicate_exception_handler(request: Request, exc: DuplicateResourceException):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


@app.exception_handler(AuthorizationException)
async def authorization_exception_handler(request: Request, exc: AuthorizationException):
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": str(exc)})


@app.exception_handler(RepositoryException)
async def repository_exception_handler(request: Request, exc: RepositoryException):
    logger.error(f"{request.method} {request.url.path} failed in the store: {exc}")
    detail = "Storage is temporarily unavailable. Please retry."
    if isinstance(exc, CascadeDeletionException):
        detail = "Project deletion did not finish. Please retry the deletion."
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": detail})


@app.exception_handler(DomainException)
async def domain_exception_handler(request: Request, exc: DomainException):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


# Include API routers
app.include_router(projects_router, prefix="/api/v1", tags=["projects"])
app.include_router(applications_router, prefix="/api/v1", tags=["applications"])
app.include_router(users_router, prefix="/api/v1", tags=["users"])
app.include_router(streams_router, prefix="/api/v1", tags=["streams"])
app.include_router(admin_router, prefix="/api/v1", tags=["admin"])

_sweeper_worker: DeadlineSweeperWorker | None = None


# Health check
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "version": API_VERSION, "store": settings.DOCUMENT_STORE_BACKEND}


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize the store and start the deadline sweeper"""
    global _sweeper_worker
    logger.info(f"Starting {settings.APP_NAME} API v{API_VERSION} (store: {settings.DOCUMENT_STORE_BACKEND})")

    store = await startup_container()

    if settings.SWEEPER_ENABLED:
        sweeper = DeadlineSweeper(DocumentProjectRepository(store))
        _sweeper_worker = DeadlineSweeperWorker(sweeper, interval_seconds=settings.SWEEPER_INTERVAL_MINUTES * 60)
        _sweeper_worker.start()
        logger.info(f"✅ Deadline sweeper started (every {settings.SWEEPER_INTERVAL_MINUTES} min)")
    else:
        logger.warning("Deadline sweeper disabled; expired projects stay open until swept")


# Shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    global _sweeper_worker
    logger.info(f"Shutting down {settings.APP_NAME} API")

    if _sweeper_worker is not None:
        await _sweeper_worker.stop()
        _sweeper_worker = None

    await shutdown_container()
