"""Waypoint management API endpoints."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import ConfigDict

from mapmanager.errors import NotFoundError
from mapmanager.routers.dependencies import get_map_manager
from mapmanager.schemas import (
    CamelModel,
    DragWaypointRequest,
    PlaceWaypointRequest,
    ViewportState,
    WaypointCreate,
    WaypointUpdate,
)
from mapmanager.service import MapManagerService
from mapmanager.store import Waypoint
from mapmanager.viewport import Viewport

router = APIRouter(prefix="/api/waypoints", tags=["waypoints"])


class WaypointResponse(CamelModel):
    """Waypoint response model."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    map_id: str
    x: float
    y: float
    frame_id: str
    tags: list[str]
    created_at: datetime


# ==================
# CRUD
# ==================

@router.get("", response_model=list[WaypointResponse])
def list_waypoints(
    map_id: Optional[str] = Query(None, alias="mapId"),
    manager: MapManagerService = Depends(get_map_manager),
):
    """List all waypoints, optionally filtered by map."""
    return [_waypoint_to_response(wp) for wp in manager.list_waypoints(map_id)]


@router.get("/{waypoint_id}", response_model=WaypointResponse)
def get_waypoint(waypoint_id: str, manager: MapManagerService = Depends(get_map_manager)):
    """Get a specific waypoint."""
    return _waypoint_to_response(manager.get_waypoint(waypoint_id))


@router.post("", response_model=WaypointResponse, status_code=201)
def create_waypoint(request: WaypointCreate, manager: MapManagerService = Depends(get_map_manager)):
    """Create a waypoint on an existing map."""
    return _waypoint_to_response(manager.create_waypoint(request))


@router.patch("/{waypoint_id}", response_model=WaypointResponse)
def update_waypoint(
    waypoint_id: str,
    request: WaypointUpdate,
    manager: MapManagerService = Depends(get_map_manager),
):
    """Update a waypoint."""
    return _waypoint_to_response(manager.update_waypoint(waypoint_id, request))


@router.delete("/{waypoint_id}", status_code=204)
def delete_waypoint(waypoint_id: str, manager: MapManagerService = Depends(get_map_manager)):
    """Delete a waypoint."""
    if not manager.delete_waypoint(waypoint_id):
        raise NotFoundError("Waypoint not found")
    return Response(status_code=204)


# ==================
# Map surface interaction
# ==================

@router.post("/place", response_model=WaypointResponse, status_code=201)
def place_waypoint(request: PlaceWaypointRequest, manager: MapManagerService = Depends(get_map_manager)):
    """Create a waypoint from a click in viewport pixels.

    Defaults to the currently loaded map when mapId is omitted.
    """
    wp = manager.place_waypoint(
        name=request.name,
        viewport_x=request.viewport_x,
        viewport_y=request.viewport_y,
        viewport=_viewport(request.viewport),
        map_id=request.map_id,
        frame_id=request.frame_id,
        tags=request.tags,
    )
    return _waypoint_to_response(wp)


@router.post("/{waypoint_id}/drag", response_model=WaypointResponse)
def drag_waypoint(
    waypoint_id: str,
    request: DragWaypointRequest,
    manager: MapManagerService = Depends(get_map_manager),
):
    """Move a waypoint to where a drag ended on the map surface."""
    wp = manager.drag_waypoint(
        waypoint_id,
        viewport_x=request.viewport_x,
        viewport_y=request.viewport_y,
        viewport=_viewport(request.viewport),
    )
    return _waypoint_to_response(wp)


# ==================
# Helpers
# ==================

def _viewport(state: ViewportState) -> Viewport:
    return Viewport(
        zoom=state.zoom,
        pan_x=state.pan_x,
        pan_y=state.pan_y,
        origin_x=state.origin_x,
        origin_y=state.origin_y,
    )


def _waypoint_to_response(wp: Waypoint) -> WaypointResponse:
    return WaypointResponse.model_validate(wp)
