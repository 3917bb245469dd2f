from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from drivecore.api.v1 import activity as activity_api, file, folder
from drivecore.api.v1.ws import rooms_ws
from drivecore.core.config import settings
from drivecore.core.database import engine, Base, SessionLocal
from drivecore.core.exceptions import DriveError
from drivecore.services.change_notifier import ChangeNotifier
from drivecore.services.purge_scheduler import PurgeScheduler
from drivecore.utils.blob_store import create_blob_store
import logging
import time
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

# Importing the models registers their tables on Base.metadata
from drivecore.models import access_control, activity, file_version  # noqa: F401


# Configure logging
logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Drivecore Structure API", version="1.0.0")

# Include routers
app.include_router(folder.router, prefix="/api/v1/folders", tags=["folders"])
app.include_router(file.router, prefix="/api/v1/files", tags=["files"])
app.include_router(activity_api.router, prefix="/api/v1/activity", tags=["activity"])
app.include_router(rooms_ws.router, prefix="/api/v1", tags=["change notifications"])

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.frontend_url or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.notifier = ChangeNotifier()
app.state.blob_store = create_blob_store()
app.state.purge_scheduler = None


@app.exception_handler(DriveError)
async def drive_error_handler(request: Request, exc: DriveError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.reason, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "reason": exc.reason},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "reason": "internal_error"},
    )


@app.on_event("startup")
async def startup_event():
    # Wait for database to be ready and create tables
    max_retries = 30
    retry_count = 0

    while retry_count < max_retries:
        try:
            # Try to create tables
            Base.metadata.create_all(bind=engine)
            logger.info("Database tables created successfully")
            break
        except Exception as e:
            retry_count += 1
            logger.warning("Database connection attempt %d failed: %s", retry_count, e)
            if retry_count >= max_retries:
                logger.error("Max retries reached. Could not connect to database.")
                raise e
            time.sleep(2)

    if settings.purge_enabled:
        scheduler = PurgeScheduler(
            SessionLocal,
            app.state.blob_store,
            interval_seconds=settings.purge_interval_seconds,
            retention_days=settings.trash_retention_days,
        )
        scheduler.start()
        app.state.purge_scheduler = scheduler


@app.on_event("shutdown")
async def shutdown_event():
    scheduler = app.state.purge_scheduler
    if scheduler is not None:
        await scheduler.stop()
        app.state.purge_scheduler = None


@app.get("/")
def read_root():
    return {"message": "Drivecore Structure API", "version": "1.0.0"}


@app.get("/health")
def health_check():
    try:
        # Check database connection
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        raise HTTPException(status_code=503, detail=f"Database unhealthy: {str(e)}")
