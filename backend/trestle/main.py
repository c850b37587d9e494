"""
Trestle - construction task scheduling engine with critical path analysis.
"""

from fastapi import FastAPI
from contextlib import asynccontextmanager

from trestle.config import get_settings
from trestle.database import init_db
from trestle.routes import dependencies, projects, schedule, tasks
from trestle.exceptions import register_exception_handlers
from trestle.logging_config import setup_logging, get_logger

# Initialize logging
setup_logging()
logger = get_logger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    logger.info(f"Starting {settings.app_name} API...")
    await init_db()
    logger.info("Database initialized")
    yield
    logger.info(f"Shutting down {settings.app_name} API...")


app = FastAPI(
    title=settings.app_name,
    description="Task scheduling engine with dependency validation, CPM and progress roll-up",
    version="0.1.0",
    lifespan=lifespan,
)

# Register custom exception handlers
register_exception_handlers(app)

# Include routers
app.include_router(projects.router, prefix="/projects", tags=["Projects"])
app.include_router(tasks.router, prefix="/projects", tags=["Tasks"])
app.include_router(dependencies.router, prefix="/projects", tags=["Dependencies"])
app.include_router(schedule.router, prefix="/projects", tags=["Schedule"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
