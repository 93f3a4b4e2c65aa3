"""SQLAlchemy-backed entity store."""

import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from loguru import logger
from sqlalchemy import delete, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mapmanager.database import create_db_engine, create_session_factory, init_db
from mapmanager.errors import IntegrityError, MapManagerError, NotFoundError
from mapmanager.models import MapRecord, WaypointRecord
from mapmanager.store.base import EntityStore, Fields
from mapmanager.store.models import Map, Waypoint, utcnow


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone=True columns
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _to_map(row: MapRecord) -> Map:
    return Map(
        id=row.id,
        name=row.name,
        label=row.label,
        file_name=row.file_name,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
        is_archived=row.is_archived,
        is_active=row.is_active,
    )


def _to_waypoint(row: WaypointRecord) -> Waypoint:
    return Waypoint(
        id=row.id,
        name=row.name,
        map_id=row.map_id,
        x=row.x,
        y=row.y,
        frame_id=row.frame_id,
        tags=list(row.tags or []),
        created_at=_aware(row.created_at),
    )


class SqlEntityStore(EntityStore):
    """Durable store on the ``maps`` / ``waypoints`` tables.

    Each operation is one transaction, so a cascade delete either removes the
    map together with its waypoints or leaves both in place.
    """

    def __init__(self, database_url: Optional[str] = None, engine: Optional[Engine] = None, echo: bool = False):
        super().__init__()
        if engine is None:
            if not database_url:
                raise ValueError("database_url or engine is required")
            engine = create_db_engine(database_url, echo=echo)
        self._engine = engine
        init_db(self._engine)
        self._session_factory = create_session_factory(self._engine)
        logger.info(f"SQL store ready ({self._engine.url.render_as_string(hide_password=True)})")

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        with self.lock:
            session = self._session_factory()
            try:
                yield session
                session.commit()
            except MapManagerError:
                session.rollback()
                raise
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Database error: {e}")
                raise MapManagerError("Storage backend failure") from e
            finally:
                session.close()

    @staticmethod
    def _require_map(session: Session, map_id: str) -> MapRecord:
        row = session.get(MapRecord, map_id)
        if row is None:
            raise NotFoundError("Map not found")
        return row

    @staticmethod
    def _require_waypoint(session: Session, waypoint_id: str) -> WaypointRecord:
        row = session.get(WaypointRecord, waypoint_id)
        if row is None:
            raise NotFoundError("Waypoint not found")
        return row

    @staticmethod
    def _deactivate_others(session: Session, map_id: str):
        session.execute(
            update(MapRecord)
            .where(MapRecord.id != map_id, MapRecord.is_active.is_(True))
            .values(is_active=False, updated_at=utcnow())
        )

    def close(self) -> None:
        self._engine.dispose()

    # ==================
    # Maps
    # ==================

    def list_maps(self, include_archived: bool = False) -> list[Map]:
        with self._transaction() as session:
            query = select(MapRecord).order_by(MapRecord.created_at, MapRecord.id)
            if not include_archived:
                query = query.where(MapRecord.is_archived.is_(False))
            return [_to_map(row) for row in session.scalars(query)]

    def get_map(self, map_id: str) -> Map:
        with self._transaction() as session:
            return _to_map(self._require_map(session, map_id))

    def create_map(self, fields: Fields) -> Map:
        data = self._map_create(fields)
        now = utcnow()
        with self._transaction() as session:
            row = MapRecord(
                id=str(uuid.uuid4()),
                name=data.name,
                label=data.label,
                file_name=data.file_name,
                created_at=now,
                updated_at=now,
                is_archived=data.is_archived,
                is_active=data.is_active,
            )
            if row.is_active:
                self._deactivate_others(session, row.id)
            session.add(row)
            session.flush()
            logger.info(f"Created map '{row.label}' ({row.id})")
            return _to_map(row)

    def update_map(self, map_id: str, fields: Fields) -> Map:
        updates = self._map_updates(fields)
        with self._transaction() as session:
            row = self._require_map(session, map_id)
            if updates.get("is_active"):
                self._deactivate_others(session, map_id)
            for key, value in updates.items():
                setattr(row, key, value)
            row.updated_at = utcnow()
            session.flush()
            logger.info(f"Updated map {map_id}: {sorted(updates)}")
            return _to_map(row)

    def delete_map(self, map_id: str) -> bool:
        with self._transaction() as session:
            row = session.get(MapRecord, map_id)
            if row is None:
                return False
            was_active = row.is_active

            result = session.execute(delete(WaypointRecord).where(WaypointRecord.map_id == map_id))
            session.delete(row)
            session.flush()

            if was_active:
                successor = session.scalars(
                    select(MapRecord)
                    .where(MapRecord.is_archived.is_(False))
                    .order_by(MapRecord.created_at, MapRecord.id)
                    .limit(1)
                ).first()
                if successor is not None:
                    successor.is_active = True
                    successor.updated_at = utcnow()
                    logger.info(f"Active map deleted, promoted '{successor.label}' ({successor.id})")

            logger.info(f"Deleted map {map_id} and {result.rowcount} waypoints")
            return True

    def set_active_map(self, map_id: str) -> Map:
        with self._transaction() as session:
            row = self._require_map(session, map_id)
            self._deactivate_others(session, map_id)
            if not row.is_active:
                row.is_active = True
                row.updated_at = utcnow()
            session.flush()
            return _to_map(row)

    def get_active_map(self) -> Optional[Map]:
        with self._transaction() as session:
            row = session.scalars(
                select(MapRecord)
                .where(MapRecord.is_active.is_(True))
                .order_by(MapRecord.created_at, MapRecord.id)
                .limit(1)
            ).first()
            return _to_map(row) if row is not None else None

    # ==================
    # Waypoints
    # ==================

    def list_waypoints(self, map_id: Optional[str] = None) -> list[Waypoint]:
        with self._transaction() as session:
            query = select(WaypointRecord).order_by(WaypointRecord.created_at, WaypointRecord.id)
            if map_id is not None:
                query = query.where(WaypointRecord.map_id == map_id)
            return [_to_waypoint(row) for row in session.scalars(query)]

    def get_waypoint(self, waypoint_id: str) -> Waypoint:
        with self._transaction() as session:
            return _to_waypoint(self._require_waypoint(session, waypoint_id))

    def create_waypoint(self, fields: Fields) -> Waypoint:
        data = self._waypoint_create(fields)
        with self._transaction() as session:
            if session.get(MapRecord, data.map_id) is None:
                logger.warning(f"Rejected waypoint '{data.name}': unknown map {data.map_id}")
                raise IntegrityError(f"Map {data.map_id} does not exist")

            row = WaypointRecord(
                id=str(uuid.uuid4()),
                name=data.name,
                map_id=data.map_id,
                x=data.x,
                y=data.y,
                frame_id=data.frame_id,
                tags=list(data.tags),
                created_at=utcnow(),
            )
            session.add(row)
            session.flush()
            logger.info(f"Created waypoint '{row.name}' on map {row.map_id} at ({row.x:.1f}, {row.y:.1f})")
            return _to_waypoint(row)

    def update_waypoint(self, waypoint_id: str, fields: Fields) -> Waypoint:
        updates = self._waypoint_updates(fields)
        with self._transaction() as session:
            row = self._require_waypoint(session, waypoint_id)
            if "map_id" in updates and session.get(MapRecord, updates["map_id"]) is None:
                logger.warning(f"Rejected move of waypoint {waypoint_id}: unknown map {updates['map_id']}")
                raise IntegrityError(f"Map {updates['map_id']} does not exist")

            for key, value in updates.items():
                setattr(row, key, value)
            session.flush()
            logger.info(f"Updated waypoint {waypoint_id}: {sorted(updates)}")
            return _to_waypoint(row)

    def delete_waypoint(self, waypoint_id: str) -> bool:
        with self._transaction() as session:
            row = session.get(WaypointRecord, waypoint_id)
            if row is None:
                return False
            session.delete(row)
            logger.info(f"Deleted waypoint {waypoint_id}")
            return True
