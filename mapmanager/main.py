"""MAPMANAGER — map and waypoint service for a mapping robot.

Main FastAPI application.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from mapmanager import __version__
from mapmanager.config import Settings, settings as default_settings
from mapmanager.errors import MapManagerError, error_details
from mapmanager.routers import mapping_router, maps_router, waypoints_router
from mapmanager.service import MapManagerService


def _payload_kind(path: str) -> str:
    if path.startswith("/api/maps"):
        return "map"
    if path.startswith("/api/waypoints"):
        return "waypoint"
    return "request"


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------

async def _map_manager_error(request: Request, exc: MapManagerError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


async def _request_validation_error(request: Request, exc: RequestValidationError):
    body = {
        "error": f"Invalid {_payload_kind(request.url.path)} data",
        "details": error_details(exc.errors()),
    }
    return JSONResponse(body, status_code=400)


async def _http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code)


async def _unhandled_error(request: Request, exc: Exception):
    logger.exception(f"{request.method} {request.url.path} raised {type(exc).__name__}")
    return JSONResponse({"error": "Internal server error"}, status_code=500)


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(
    settings: Optional[Settings] = None,
    manager: Optional[MapManagerService] = None,
) -> FastAPI:
    """Create the API app.

    Args:
        settings: Overrides the environment-derived settings
        manager: Pre-built service (tests); built from settings when omitted

    Returns:
        Configured FastAPI app
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("=" * 60)
        logger.info(f"  {settings.app_name} v{__version__} - INITIALIZING")
        logger.info("=" * 60)

        if app.state.map_manager is None:
            app.state.map_manager = MapManagerService.from_settings(settings)

        status = app.state.map_manager.status()
        logger.info(f"Mode {status.state.value}, current map: {status.current_map_id or 'none'}")
        logger.info(f"  {settings.app_name} ONLINE")

        yield

        logger.info(f"{settings.app_name} shutting down...")
        app.state.map_manager.shutdown()

    app = FastAPI(
        title=settings.app_name,
        description="Map and waypoint management with mapping-mode control",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.map_manager = manager
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(MapManagerError, _map_manager_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(Exception, _unhandled_error)

    app.include_router(maps_router)
    app.include_router(waypoints_router)
    app.include_router(mapping_router)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {
            "status": "operational",
            "version": __version__,
            "system": settings.app_name,
        }

    @app.get("/api/status")
    async def status(request: Request):
        """System status endpoint."""
        manager = request.app.state.map_manager
        return {
            "name": settings.app_name,
            "version": __version__,
            "storage": settings.storage_backend,
            "mapping": manager.status().to_dict() if manager else None,
        }

    return app


app = create_app()
