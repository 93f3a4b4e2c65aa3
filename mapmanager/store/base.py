"""Entity store contract and payload coercion shared by every backend."""

import threading
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from mapmanager.errors import ValidationError, error_details
from mapmanager.schemas import MapCreate, MapUpdate, WaypointCreate, WaypointUpdate
from mapmanager.store.models import Map, Waypoint

SchemaT = TypeVar("SchemaT", bound=BaseModel)

Fields = Union[Mapping[str, Any], BaseModel]


def parse_create(schema: Type[SchemaT], fields: Fields, what: str) -> SchemaT:
    """Validate a create payload, raising ValidationError with field details."""
    if isinstance(fields, schema):
        return fields
    if isinstance(fields, BaseModel):
        fields = fields.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(fields)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid {what} data", details=error_details(e.errors()))


def parse_update(schema: Type[BaseModel], fields: Fields, what: str) -> dict:
    """Validate a partial update and return only the supplied, non-null fields."""
    if not isinstance(fields, schema):
        if isinstance(fields, BaseModel):
            fields = fields.model_dump(exclude_unset=True)
        try:
            fields = schema.model_validate(fields)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid {what} data", details=error_details(e.errors()))
    updates = fields.model_dump(exclude_unset=True)
    return {k: v for k, v in updates.items() if v is not None}


class EntityStore(ABC):
    """Maps and waypoints with referential integrity.

    Every public operation runs under ``lock``, a re-entrant lock that other
    components (the mapping state machine) also take so their updates are
    serialized with store mutations. Returned records are copies; mutating
    them has no effect on the store.
    """

    def __init__(self):
        self.lock = threading.RLock()

    # ==================
    # Maps
    # ==================

    @abstractmethod
    def list_maps(self, include_archived: bool = False) -> list[Map]:
        """All maps ordered by creation time; archived maps only on request."""

    @abstractmethod
    def get_map(self, map_id: str) -> Map:
        """Return a map or raise NotFoundError."""

    @abstractmethod
    def create_map(self, fields: Fields) -> Map:
        """Create a map from name, label and fileName."""

    @abstractmethod
    def update_map(self, map_id: str, fields: Fields) -> Map:
        """Merge supplied fields and refresh updatedAt."""

    @abstractmethod
    def delete_map(self, map_id: str) -> bool:
        """Delete a map and all of its waypoints in one step."""

    @abstractmethod
    def set_active_map(self, map_id: str) -> Map:
        """Mark one map active and every other map inactive."""

    @abstractmethod
    def get_active_map(self) -> Optional[Map]:
        """The active map, if any."""

    # ==================
    # Waypoints
    # ==================

    @abstractmethod
    def list_waypoints(self, map_id: Optional[str] = None) -> list[Waypoint]:
        """All waypoints, optionally only those on one map."""

    @abstractmethod
    def get_waypoint(self, waypoint_id: str) -> Waypoint:
        """Return a waypoint or raise NotFoundError."""

    @abstractmethod
    def create_waypoint(self, fields: Fields) -> Waypoint:
        """Create a waypoint; its mapId must resolve."""

    @abstractmethod
    def update_waypoint(self, waypoint_id: str, fields: Fields) -> Waypoint:
        """Merge supplied fields; a new mapId must resolve."""

    @abstractmethod
    def delete_waypoint(self, waypoint_id: str) -> bool:
        """Delete a waypoint."""

    def close(self) -> None:
        """Release backend resources."""

    # Coercion helpers used by the backends

    @staticmethod
    def _map_create(fields: Fields) -> MapCreate:
        return parse_create(MapCreate, fields, "map")

    @staticmethod
    def _map_updates(fields: Fields) -> dict:
        return parse_update(MapUpdate, fields, "map")

    @staticmethod
    def _waypoint_create(fields: Fields) -> WaypointCreate:
        return parse_create(WaypointCreate, fields, "waypoint")

    @staticmethod
    def _waypoint_updates(fields: Fields) -> dict:
        return parse_update(WaypointUpdate, fields, "waypoint")
