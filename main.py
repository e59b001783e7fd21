from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pathlib import Path
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from timeclock.core.config import settings
from timeclock.core.database import Database
from timeclock.core.setup_state import AdminSetupState
from timeclock.api.errors import register_exception_handlers
from timeclock.api.routes import auth, employee_portal, employees, timesheets, dashboard, categories, users, devices, uploads, setup, cleanup, debug
from timeclock.services.cleanup_service import CleanupService
from timeclock.services.image_storage import image_storage
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Staff time tracking: PIN clock-in, geofenced locations and dashboard management"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Shared process state
app.state.database = Database(settings.DATABASE_URL)
app.state.setup_state = AdminSetupState()
cleanup_service = CleanupService(image_storage)

# Include routers
app.include_router(auth.router, prefix="/api")
app.include_router(employee_portal.router, prefix="/api")
app.include_router(employees.router, prefix="/api")
app.include_router(timesheets.router, prefix="/api")
app.include_router(dashboard.router, prefix="/api")
app.include_router(categories.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(devices.router, prefix="/api")
app.include_router(uploads.router, prefix="/api")
app.include_router(setup.router, prefix="/api")
app.include_router(cleanup.router, prefix="/api")
app.include_router(debug.router, prefix="/api")

# Mount static files for uploads (only if not using S3)
if not settings.USE_S3:
    upload_dir = Path(settings.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=str(upload_dir)), name="uploads")


# Startup and shutdown events
@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    logger.info("Starting up...")
    app.state.database.connect()
    logger.info("Database ready")

    if settings.CLEANUP_SCHEDULER_ENABLED:
        cleanup_service.start_scheduler()

    logger.info("Application started")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    logger.info("Shutting down...")
    if cleanup_service.running:
        cleanup_service.stop_scheduler()
    app.state.database.dispose()
    logger.info("Application stopped")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": f"{settings.APP_NAME} API",
        "version": settings.APP_VERSION,
        "docs": "/docs"
    }


@app.get("/health")
def health_check():
    """Health check endpoint."""
    try:
        with app.state.database.session() as db:
            db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Health check failed: %s", e)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database unavailable")

    return {
        "status": "healthy",
        "database": "connected",
        "version": settings.APP_VERSION
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
