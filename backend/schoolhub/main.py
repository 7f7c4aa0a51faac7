import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.orm import Session

from . import __version__
from .auth import auth_router
from .config import get_settings
from .database import get_db, init_database
from .errors import register_error_handlers
from .routers import (
    assignments_router,
    attendance_router,
    courses_router,
    enrollment_requests_router,
    grades_router,
    notifications_router,
    realtime_router,
    users_router,
)
from .uploads import URL_PREFIX

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler replacing deprecated startup/shutdown events."""
    logger.info("Starting up SchoolHub API...")
    # Tests bind their own engine
    if os.getenv("PYTEST_CURRENT_TEST") is not None:
        logger.info("Skipping database initialisation during tests")
    else:
        url = init_database()
        logger.info(f"Database ready ({url.split('@')[-1]})")
    yield
    logger.info("Shutting down SchoolHub API...")


app = FastAPI(
    title="SchoolHub API",
    description="School management backend: courses, assignments, attendance, grades and notifications",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.client_urls,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app, expose_internals=not settings.is_production)

# Uploaded files
Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
app.mount(URL_PREFIX, StaticFiles(directory=settings.upload_dir), name="uploads")

# Routers
for router in (
    auth_router,
    users_router,
    courses_router,
    assignments_router,
    attendance_router,
    grades_router,
    enrollment_requests_router,
    notifications_router,
):
    app.include_router(router, prefix="/api")
app.include_router(realtime_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "SchoolHub API", "version": __version__}


@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """Health check endpoint with database connectivity test."""
    try:
        db.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected", "version": __version__}
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": "disconnected",
            "error": str(e),
            "version": __version__,
        }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
