"""Map and Waypoint records held by the entity store."""

import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

_WHITESPACE = re.compile(r"\s+")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def slugify(label: str) -> str:
    """Machine-safe map name: lowercase, whitespace runs become underscores."""
    return _WHITESPACE.sub("_", label.strip().lower())


@dataclass
class Map:
    """A stored spatial scan with a display label and an artifact file."""

    id: str
    name: str           # slug, derived from the label at creation
    label: str
    file_name: str      # scan artifact (image / point cloud)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    is_archived: bool = False
    is_active: bool = False

    def copy(self) -> "Map":
        return replace(self)


@dataclass
class Waypoint:
    """A named point in map space belonging to exactly one map."""

    id: str
    name: str
    map_id: str
    x: float
    y: float
    frame_id: str = ""  # named reference frame in multi-frame installations
    tags: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)

    def copy(self) -> "Waypoint":
        return replace(self, tags=list(self.tags))
