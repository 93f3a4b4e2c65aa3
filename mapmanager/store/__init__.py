"""Entity store for maps and waypoints."""

from mapmanager.config import Settings
from mapmanager.store.base import EntityStore
from mapmanager.store.memory import MemoryEntityStore
from mapmanager.store.models import Map, Waypoint, slugify
from mapmanager.store.seed import seed_demo_data
from mapmanager.store.sql import SqlEntityStore


def create_store(settings: Settings) -> EntityStore:
    """Build the backend selected by ``settings.storage_backend``."""
    backend = settings.storage_backend.lower()
    if backend == "memory":
        return MemoryEntityStore()
    if backend == "sql":
        return SqlEntityStore(settings.database_url, echo=settings.debug)
    raise ValueError(f"Unknown storage_backend '{settings.storage_backend}'. Must be one of: memory, sql")


__all__ = [
    "EntityStore",
    "MemoryEntityStore",
    "SqlEntityStore",
    "Map",
    "Waypoint",
    "slugify",
    "seed_demo_data",
    "create_store",
]
