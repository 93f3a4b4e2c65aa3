"""Request-scoped access to the service object built at startup."""

from fastapi import Request

from mapmanager.errors import MapManagerError
from mapmanager.service import MapManagerService


def get_map_manager(request: Request) -> MapManagerService:
    """Dependency returning the app's MapManagerService."""
    manager = getattr(request.app.state, "map_manager", None)
    if manager is None:
        raise MapManagerError("Map manager is not running")
    return manager
