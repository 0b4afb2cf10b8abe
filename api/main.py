"""Main FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import analytics_routes, auth_routes, contribution_routes, goal_routes, invitation_routes
from api.errors import register_exception_handlers
from config.settings import settings
from models.database import close_mongo_connection, init_mongo, ping_database
from services.analytics import RetentionCleanupTask
from utils.logger import setup_logger

logger = setup_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown events."""
    # Startup
    logger.info("Starting application...")
    await init_mongo()  # Connect to MongoDB and create indexes
    retention_task = RetentionCleanupTask()
    retention_task.start()
    app.state.retention_task = retention_task
    logger.info("Application started successfully")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    await retention_task.stop()
    await close_mongo_connection()
    logger.info("Application shut down")


def create_app(use_lifespan: bool = True) -> FastAPI:
    """Build the application; tests pass ``use_lifespan=False`` and wire the database themselves."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Shared savings goals with contribution planning",
        lifespan=lifespan if use_lifespan else None,
    )

    # Remove duplicates while preserving order
    origins = list(dict.fromkeys([settings.app_url] + settings.cors_origins))
    logger.info(f"CORS configured with origins: {origins}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=600,
    )

    register_exception_handlers(app)

    app.include_router(auth_routes.router)
    app.include_router(goal_routes.router)
    app.include_router(invitation_routes.router)
    app.include_router(contribution_routes.router)
    app.include_router(analytics_routes.router)

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        database_ok = await ping_database()
        return {
            "status": "ok" if database_ok else "degraded",
            "database": "connected" if database_ok else "unavailable",
            "service": settings.app_name,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
