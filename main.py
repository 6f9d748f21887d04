"""
Media Pipeline - Main FastAPI Application
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from api.exceptions import register_exception_handlers
from api.routers import library, preview, system
from config import Settings, get_settings
from core.compositor import Compositor
from core.constants import SystemConstants
from core.identity import TokenIdentityResolver
from core.image.loader import ImageLoader
from core.media_repository import MediaRepository
from core.storage import LocalObjectStorage
from services.controller_registry import ControllerRegistry

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings):
    logging.basicConfig(
        level=getattr(logging, settings.system.log_level),
        format=SystemConstants.LOG_FORMAT,
    )
    # Suppress watchfiles debug messages
    logging.getLogger("watchfiles").setLevel(logging.WARNING)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use; the cached environment settings by default

    Returns:
        Configured FastAPI app
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle"""
        logger.info("Starting Media Pipeline server...")
        logger.info(f"Environment: {settings.environment}")
        logger.info(f"Debug mode: {settings.system.debug}")

        storage = LocalObjectStorage(
            root_path=settings.storage.root_path,
            public_base_url=settings.storage.public_base_url,
            bucket=settings.storage.bucket,
        )
        repository = MediaRepository(settings.database.url)
        loader = ImageLoader(
            storage,
            timeout_seconds=settings.storage.fetch_timeout_seconds,
            max_bytes=settings.storage.fetch_max_mb * 1024 * 1024,
        )
        registry = ControllerRegistry(
            storage=storage,
            repository=repository,
            loader=loader,
            compositor=Compositor(jpeg_quality=settings.editor.jpeg_quality),
            max_upload_bytes=settings.storage.max_upload_mb * 1024 * 1024,
        )

        logger.info("All services initialized successfully")

        # Store services in app state for access by routers
        app.state.storage = storage
        app.state.repository = repository
        app.state.identity_resolver = TokenIdentityResolver(settings.auth.tokens)
        app.state.registry = registry
        app.state.config = settings.to_dict()
        app.state.debug = settings.system.debug

        yield

        logger.info("Shutting down Media Pipeline server...")
        try:
            await registry.shutdown()
            repository.dispose()
        except Exception as e:
            logger.error(f"Error during cleanup: {e}")

        logger.info("Server shutdown complete")

    app = FastAPI(
        title="Media Pipeline",
        description="Media library with a crop, resize and filter image editor",
        version="1.0.0",
        lifespan=lifespan,
    )

    if settings.api.cors_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.api.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_exception_handlers(app)

    app.include_router(library.router, prefix="/api/library", tags=["Library"])
    app.include_router(preview.router, prefix="/api/preview", tags=["Preview"])
    app.include_router(system.router, prefix="/api/system", tags=["System"])

    # Public bucket URLs resolve here; the directory is created by storage at startup
    app.mount(
        "/storage",
        StaticFiles(directory=settings.storage.root_path, check_dir=False),
        name="storage",
    )

    @app.get("/")
    async def root():
        return {
            "name": "Media Pipeline",
            "status": "running",
            "version": "1.0.0",
            "endpoints": {
                "library": "/api/library",
                "preview": "/api/preview",
                "system": "/api/system",
                "storage": "/storage",
                "docs": "/docs",
            },
        }

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "services": {
                name: getattr(app.state, name, None) is not None
                for name in ("storage", "repository", "identity_resolver", "registry")
            },
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        logger.error(f"Global exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500, content={"detail": f"Internal server error: {str(exc)}"}
        )

    return app


configure_logging(get_settings())
app = create_app()


if __name__ == "__main__":
    settings = get_settings()
    reload_excludes = (
        ["*.log", "*.pyc", "__pycache__", ".git", ".venv", "venv", "data"]
        if settings.system.debug
        else None
    )

    server_config = uvicorn.Config(
        "main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.system.debug,
        reload_excludes=reload_excludes,
        log_level="info",
        loop="asyncio",
    )
    server = uvicorn.Server(server_config)

    try:
        server.run()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    finally:
        logger.info("Server exiting...")
