"""
TodoGraph - todo list with dependency graphs and critical path analysis.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from todograph import __version__
from todograph.database import init_db
from todograph.exceptions import register_exception_handlers
from todograph.logging_config import get_logger, setup_logging
from todograph.routes import tasks

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    logger.info("Starting TodoGraph API...")
    await init_db()
    logger.info("Database initialized")
    yield
    logger.info("Shutting down TodoGraph API...")


app = FastAPI(
    title="TodoGraph",
    description="Todo list with task dependencies, critical path and earliest-start dates",
    version=__version__,
    lifespan=lifespan,
)

register_exception_handlers(app)

app.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
