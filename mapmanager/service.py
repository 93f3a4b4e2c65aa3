"""MapManagerService — the request façade over store, state machine and viewport."""

from typing import Optional

from loguru import logger

from mapmanager.config import Settings
from mapmanager.errors import ValidationError
from mapmanager.mapping import MappingStateMachine, OperationalStatus
from mapmanager.schemas import MapCreate
from mapmanager.store import EntityStore, Map, Waypoint, create_store, seed_demo_data
from mapmanager.store.base import Fields, parse_create
from mapmanager.viewport import Viewport


class MapManagerService:
    """Orchestrates operator intents.

    Edits (waypoint create/update/delete, map update/delete) are checked
    against the state machine and applied while holding the store lock, so
    a mode change cannot start between the check and the mutation.
    """

    def __init__(self, store: EntityStore, machine: MappingStateMachine):
        self.store = store
        self.machine = machine

    @classmethod
    def from_settings(cls, settings: Settings) -> "MapManagerService":
        """Build the store backend, seed it if configured, and start at ACTIVE."""
        store = create_store(settings)
        if settings.seed_demo_data:
            seed_demo_data(store)

        machine = MappingStateMachine(
            store,
            transition_delay=settings.transition_delay,
            save_delay=settings.save_delay,
            default_map_id=settings.default_map_id,
        )
        logger.info(f"Map manager ready ({settings.storage_backend} store)")
        return cls(store, machine)

    def shutdown(self):
        self.machine.shutdown()
        self.store.close()

    # ==================
    # Maps
    # ==================

    def list_maps(self, include_archived: bool = False) -> list[Map]:
        return self.store.list_maps(include_archived=include_archived)

    def get_map(self, map_id: str) -> Map:
        return self.store.get_map(map_id)

    def create_map(self, fields: Fields) -> Map:
        data = parse_create(MapCreate, fields, "map")
        with self.store.lock:
            if data.is_active:
                # Activating a map is a load, which needs ACTIVE mode
                self.machine.require_editable("create an active map")
            return self.store.create_map(data)

    def update_map(self, map_id: str, fields: Fields) -> Map:
        with self.store.lock:
            self.machine.require_editable("update map")
            return self.store.update_map(map_id, fields)

    def delete_map(self, map_id: str) -> bool:
        with self.store.lock:
            self.machine.require_editable("delete map")
            return self.store.delete_map(map_id)

    # ==================
    # Waypoints
    # ==================

    def list_waypoints(self, map_id: Optional[str] = None) -> list[Waypoint]:
        return self.store.list_waypoints(map_id)

    def get_waypoint(self, waypoint_id: str) -> Waypoint:
        return self.store.get_waypoint(waypoint_id)

    def create_waypoint(self, fields: Fields) -> Waypoint:
        with self.store.lock:
            self.machine.require_editable("create waypoint")
            return self.store.create_waypoint(fields)

    def update_waypoint(self, waypoint_id: str, fields: Fields) -> Waypoint:
        with self.store.lock:
            self.machine.require_editable("update waypoint")
            return self.store.update_waypoint(waypoint_id, fields)

    def delete_waypoint(self, waypoint_id: str) -> bool:
        with self.store.lock:
            self.machine.require_editable("delete waypoint")
            return self.store.delete_waypoint(waypoint_id)

    def place_waypoint(
        self,
        name: str,
        viewport_x: float,
        viewport_y: float,
        viewport: Viewport,
        map_id: Optional[str] = None,
        frame_id: str = "",
        tags: Optional[list[str]] = None,
    ) -> Waypoint:
        """Create a waypoint where the operator clicked on the map surface.

        Args:
            name: Waypoint label
            viewport_x: Pointer x in viewport pixels
            viewport_y: Pointer y in viewport pixels
            viewport: Zoom/pan state when the click happened
            map_id: Target map; defaults to the current map
            frame_id: Optional reference frame tag
            tags: Optional labels

        Returns:
            Created Waypoint in map-space coordinates
        """
        x, y = viewport.to_map_space(viewport_x, viewport_y)
        with self.store.lock:
            if map_id is None:
                map_id = self.machine.status().current_map_id
                if map_id is None:
                    raise ValidationError("No map is loaded; mapId is required")
            return self.create_waypoint({
                "name": name,
                "map_id": map_id,
                "x": x,
                "y": y,
                "frame_id": frame_id,
                "tags": tags or [],
            })

    def drag_waypoint(
        self,
        waypoint_id: str,
        viewport_x: float,
        viewport_y: float,
        viewport: Viewport,
    ) -> Waypoint:
        """Move a waypoint to where a drag ended, through the edit gate."""
        x, y = viewport.to_map_space(viewport_x, viewport_y)
        return self.update_waypoint(waypoint_id, {"x": x, "y": y})

    # ==================
    # Mapping mode
    # ==================

    def status(self) -> OperationalStatus:
        return self.machine.status()

    def start_mapping(self):
        self.machine.start_mapping()

    def stop_mapping(self):
        self.machine.stop_mapping()

    def save_mapping(self, map_name: Optional[str]) -> Map:
        return self.machine.save_mapping(map_name)

    def load_map(self, map_id: str) -> Map:
        return self.machine.load_map(map_id)
