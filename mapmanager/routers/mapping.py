"""Mapping mode endpoints — start, stop, save, load, status."""

from typing import Optional

from fastapi import APIRouter, Depends

from mapmanager.routers.dependencies import get_map_manager
from mapmanager.routers.maps import MapResponse
from mapmanager.schemas import CamelModel, LoadMapRequest, SaveMappingRequest
from mapmanager.service import MapManagerService

router = APIRouter(prefix="/api/mapping", tags=["mapping"])


class MappingResult(CamelModel):
    success: bool
    message: str


class MapResult(MappingResult):
    map: MapResponse


class StatusResponse(CamelModel):
    """Operational status."""
    state: str
    current_map_id: Optional[str]
    is_transitioning: bool


@router.get("/status", response_model=StatusResponse)
def get_status(manager: MapManagerService = Depends(get_map_manager)):
    """Current mode, loaded map and whether a mode change is in flight."""
    status = manager.status()
    return StatusResponse(
        state=status.state.value,
        current_map_id=status.current_map_id,
        is_transitioning=status.is_transitioning,
    )


@router.post("/start", response_model=MappingResult)
def start_mapping(manager: MapManagerService = Depends(get_map_manager)):
    """Switch to MAPPING; completes after the transition delay."""
    manager.start_mapping()
    return MappingResult(success=True, message="Mapping started")


@router.post("/stop", response_model=MappingResult)
def stop_mapping(manager: MapManagerService = Depends(get_map_manager)):
    """Return to ACTIVE without saving the scan."""
    manager.stop_mapping()
    return MappingResult(success=True, message="Mapping stopped")


@router.post("/save", response_model=MapResult)
def save_mapping(
    request: Optional[SaveMappingRequest] = None,
    manager: MapManagerService = Depends(get_map_manager),
):
    """Save the scan as a new map; it is loaded once the transition completes."""
    new_map = manager.save_mapping(request.map_name if request else None)
    return MapResult(
        success=True,
        message="Map saved successfully",
        map=MapResponse.model_validate(new_map),
    )


@router.post("/load", response_model=MapResult)
def load_map(request: LoadMapRequest, manager: MapManagerService = Depends(get_map_manager)):
    """Load an existing map for browsing/editing."""
    m = manager.load_map(request.map_id)
    return MapResult(
        success=True,
        message=f"Loaded map: {m.label}",
        map=MapResponse.model_validate(m),
    )
