"""Request payload shapes (camelCase on the wire)."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def unique_tags(tags: list[str]) -> list[str]:
    """Drop repeated tags, keeping first-seen order."""
    return list(dict.fromkeys(tags))


class CamelModel(BaseModel):
    """Accepts both camelCase and snake_case keys; unknown keys are ignored.

    Floats must be finite: NaN and Infinity parse from JSON but are not
    coordinates.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        allow_inf_nan=False,
    )


# ==================
# Maps
# ==================

class MapCreate(CamelModel):
    """Fields required to create a map."""
    name: str = Field(min_length=1)
    label: str = Field(min_length=1)
    file_name: str = Field(min_length=1)
    is_archived: bool = False
    is_active: bool = False


class MapUpdate(CamelModel):
    """Partial map update; id and createdAt are never accepted."""
    name: Optional[str] = Field(None, min_length=1)
    label: Optional[str] = Field(None, min_length=1)
    file_name: Optional[str] = Field(None, min_length=1)
    is_archived: Optional[bool] = None
    is_active: Optional[bool] = None


# ==================
# Waypoints
# ==================

class WaypointCreate(CamelModel):
    """Fields required to create a waypoint."""
    name: str = Field(min_length=1)
    map_id: str = Field(min_length=1)
    x: float
    y: float
    frame_id: str = ""
    tags: list[str] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, tags: list[str]) -> list[str]:
        return unique_tags(tags)


class WaypointUpdate(CamelModel):
    """Partial waypoint update."""
    name: Optional[str] = Field(None, min_length=1)
    map_id: Optional[str] = Field(None, min_length=1)
    x: Optional[float] = None
    y: Optional[float] = None
    frame_id: Optional[str] = None
    tags: Optional[list[str]] = None

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, tags: Optional[list[str]]) -> Optional[list[str]]:
        return unique_tags(tags) if tags is not None else None


# ==================
# Viewport interaction
# ==================

class ViewportState(CamelModel):
    """Zoom/pan of the rendering surface when the pointer event fired."""
    zoom: float = Field(1.0, gt=0)
    pan_x: float = 0.0
    pan_y: float = 0.0
    origin_x: float = 0.0
    origin_y: float = 0.0


class PlaceWaypointRequest(CamelModel):
    """Create a waypoint from a pointer position in viewport pixels."""
    name: str = Field(min_length=1)
    viewport_x: float
    viewport_y: float
    viewport: ViewportState = Field(default_factory=ViewportState)
    map_id: Optional[str] = None
    frame_id: str = ""
    tags: list[str] = Field(default_factory=list)


class DragWaypointRequest(CamelModel):
    """Move a waypoint to the pointer position where a drag ended."""
    viewport_x: float
    viewport_y: float
    viewport: ViewportState = Field(default_factory=ViewportState)


# ==================
# Mapping mode
# ==================

class SaveMappingRequest(CamelModel):
    map_name: Optional[str] = None


class LoadMapRequest(CamelModel):
    map_id: str = Field(min_length=1)
