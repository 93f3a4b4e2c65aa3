"""Map management API endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response
from pydantic import ConfigDict

from mapmanager.errors import NotFoundError
from mapmanager.routers.dependencies import get_map_manager
from mapmanager.schemas import CamelModel, MapCreate, MapUpdate
from mapmanager.service import MapManagerService
from mapmanager.store import Map

router = APIRouter(prefix="/api/maps", tags=["maps"])


class MapResponse(CamelModel):
    """Map response model."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    label: str
    file_name: str
    created_at: datetime
    updated_at: datetime
    is_archived: bool
    is_active: bool


def _map_to_response(m: Map) -> MapResponse:
    return MapResponse.model_validate(m)


@router.get("", response_model=list[MapResponse])
def list_maps(
    include_archived: bool = Query(False, alias="includeArchived"),
    manager: MapManagerService = Depends(get_map_manager),
):
    """List maps; archived maps only when includeArchived=true."""
    return [_map_to_response(m) for m in manager.list_maps(include_archived=include_archived)]


@router.get("/{map_id}", response_model=MapResponse)
def get_map(map_id: str, manager: MapManagerService = Depends(get_map_manager)):
    """Get a specific map."""
    return _map_to_response(manager.get_map(map_id))


@router.post("", response_model=MapResponse, status_code=201)
def create_map(request: MapCreate, manager: MapManagerService = Depends(get_map_manager)):
    """Create a new map."""
    return _map_to_response(manager.create_map(request))


@router.patch("/{map_id}", response_model=MapResponse)
def update_map(map_id: str, request: MapUpdate, manager: MapManagerService = Depends(get_map_manager)):
    """Update a map (rename, archive, activate)."""
    return _map_to_response(manager.update_map(map_id, request))


@router.delete("/{map_id}", status_code=204)
def delete_map(map_id: str, manager: MapManagerService = Depends(get_map_manager)):
    """Delete a map and its waypoints."""
    if not manager.delete_map(map_id):
        raise NotFoundError("Map not found")
    return Response(status_code=204)
