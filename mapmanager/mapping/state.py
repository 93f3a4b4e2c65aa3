"""Operating modes and the process-wide status snapshot."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class MappingState(str, Enum):
    """Operating modes of the robot backend."""
    ACTIVE = "ACTIVE"       # browsing/editing an existing map
    MAPPING = "MAPPING"     # recording a new map


@dataclass(frozen=True)
class OperationalStatus:
    """Point-in-time view of the state machine."""

    state: MappingState
    current_map_id: Optional[str]
    is_transitioning: bool

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "currentMapId": self.current_map_id,
            "isTransitioning": self.is_transitioning,
        }
