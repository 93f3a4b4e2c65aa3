"""In-memory entity store."""

import uuid
from typing import Optional

from loguru import logger

from mapmanager.errors import IntegrityError, NotFoundError
from mapmanager.store.base import EntityStore, Fields
from mapmanager.store.models import Map, Waypoint, utcnow


class MemoryEntityStore(EntityStore):
    """Dict-backed store; state lives only as long as the process."""

    def __init__(self, maps: Optional[list[Map]] = None, waypoints: Optional[list[Waypoint]] = None):
        super().__init__()
        self._maps: dict[str, Map] = {}
        self._waypoints: dict[str, Waypoint] = {}

        for m in maps or []:
            self._maps[m.id] = m.copy()
        for wp in waypoints or []:
            if wp.map_id not in self._maps:
                raise IntegrityError(f"Waypoint {wp.id} references unknown map {wp.map_id}")
            self._waypoints[wp.id] = wp.copy()
        self._enforce_single_active()

    def _ordered_maps(self) -> list[Map]:
        # sorted() is stable, so equal timestamps keep insertion order
        return sorted(self._maps.values(), key=lambda m: m.created_at)

    def _require_map(self, map_id: str) -> Map:
        m = self._maps.get(map_id)
        if m is None:
            raise NotFoundError("Map not found")
        return m

    def _require_waypoint(self, waypoint_id: str) -> Waypoint:
        wp = self._waypoints.get(waypoint_id)
        if wp is None:
            raise NotFoundError("Waypoint not found")
        return wp

    def _deactivate_others(self, map_id: str):
        now = utcnow()
        for other in self._maps.values():
            if other.id != map_id and other.is_active:
                other.is_active = False
                other.updated_at = now

    def _enforce_single_active(self):
        active = [m for m in self._ordered_maps() if m.is_active]
        for extra in active[1:]:
            extra.is_active = False

    # ==================
    # Maps
    # ==================

    def list_maps(self, include_archived: bool = False) -> list[Map]:
        with self.lock:
            return [
                m.copy() for m in self._ordered_maps()
                if include_archived or not m.is_archived
            ]

    def get_map(self, map_id: str) -> Map:
        with self.lock:
            return self._require_map(map_id).copy()

    def create_map(self, fields: Fields) -> Map:
        data = self._map_create(fields)
        now = utcnow()
        m = Map(
            id=str(uuid.uuid4()),
            name=data.name,
            label=data.label,
            file_name=data.file_name,
            created_at=now,
            updated_at=now,
            is_archived=data.is_archived,
            is_active=data.is_active,
        )
        with self.lock:
            self._maps[m.id] = m
            if m.is_active:
                self._deactivate_others(m.id)
            logger.info(f"Created map '{m.label}' ({m.id})")
            return m.copy()

    def update_map(self, map_id: str, fields: Fields) -> Map:
        updates = self._map_updates(fields)
        with self.lock:
            m = self._require_map(map_id)
            for key, value in updates.items():
                setattr(m, key, value)
            m.updated_at = utcnow()
            if updates.get("is_active"):
                self._deactivate_others(m.id)
            logger.info(f"Updated map {map_id}: {sorted(updates)}")
            return m.copy()

    def delete_map(self, map_id: str) -> bool:
        with self.lock:
            m = self._maps.pop(map_id, None)
            if m is None:
                return False

            orphans = [wp_id for wp_id, wp in self._waypoints.items() if wp.map_id == map_id]
            for wp_id in orphans:
                del self._waypoints[wp_id]

            if m.is_active:
                successor = next(
                    (other for other in self._ordered_maps() if not other.is_archived),
                    None,
                )
                if successor is not None:
                    successor.is_active = True
                    successor.updated_at = utcnow()
                    logger.info(f"Active map deleted, promoted '{successor.label}' ({successor.id})")

            logger.info(f"Deleted map {map_id} and {len(orphans)} waypoints")
            return True

    def set_active_map(self, map_id: str) -> Map:
        with self.lock:
            m = self._require_map(map_id)
            self._deactivate_others(map_id)
            if not m.is_active:
                m.is_active = True
                m.updated_at = utcnow()
            return m.copy()

    def get_active_map(self) -> Optional[Map]:
        with self.lock:
            for m in self._ordered_maps():
                if m.is_active:
                    return m.copy()
            return None

    # ==================
    # Waypoints
    # ==================

    def list_waypoints(self, map_id: Optional[str] = None) -> list[Waypoint]:
        with self.lock:
            return [
                wp.copy() for wp in self._waypoints.values()
                if map_id is None or wp.map_id == map_id
            ]

    def get_waypoint(self, waypoint_id: str) -> Waypoint:
        with self.lock:
            return self._require_waypoint(waypoint_id).copy()

    def create_waypoint(self, fields: Fields) -> Waypoint:
        data = self._waypoint_create(fields)
        with self.lock:
            if data.map_id not in self._maps:
                logger.warning(f"Rejected waypoint '{data.name}': unknown map {data.map_id}")
                raise IntegrityError(f"Map {data.map_id} does not exist")

            wp = Waypoint(
                id=str(uuid.uuid4()),
                name=data.name,
                map_id=data.map_id,
                x=data.x,
                y=data.y,
                frame_id=data.frame_id,
                tags=list(data.tags),
            )
            self._waypoints[wp.id] = wp
            logger.info(f"Created waypoint '{wp.name}' on map {wp.map_id} at ({wp.x:.1f}, {wp.y:.1f})")
            return wp.copy()

    def update_waypoint(self, waypoint_id: str, fields: Fields) -> Waypoint:
        updates = self._waypoint_updates(fields)
        with self.lock:
            wp = self._require_waypoint(waypoint_id)
            if "map_id" in updates and updates["map_id"] not in self._maps:
                logger.warning(f"Rejected move of waypoint {waypoint_id}: unknown map {updates['map_id']}")
                raise IntegrityError(f"Map {updates['map_id']} does not exist")

            for key, value in updates.items():
                setattr(wp, key, value)
            logger.info(f"Updated waypoint {waypoint_id}: {sorted(updates)}")
            return wp.copy()

    def delete_waypoint(self, waypoint_id: str) -> bool:
        with self.lock:
            if waypoint_id in self._waypoints:
                del self._waypoints[waypoint_id]
                logger.info(f"Deleted waypoint {waypoint_id}")
                return True
            return False
