"""API routers for the map manager."""

from mapmanager.routers.mapping import router as mapping_router
from mapmanager.routers.maps import router as maps_router
from mapmanager.routers.waypoints import router as waypoints_router

__all__ = ["maps_router", "waypoints_router", "mapping_router"]
