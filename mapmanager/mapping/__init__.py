"""Operating mode state machine."""

from mapmanager.mapping.machine import MappingStateMachine
from mapmanager.mapping.state import MappingState, OperationalStatus

__all__ = ["MappingState", "MappingStateMachine", "OperationalStatus"]
