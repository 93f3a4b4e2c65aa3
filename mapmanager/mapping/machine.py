"""MappingStateMachine — ACTIVE/MAPPING mode switching with timed transitions.

Architecture
------------
Every mode change runs in two phases:

  phase 1 (caller's thread): validate, set ``is_transitioning``, return
  phase 2 (timer thread):    after a fixed delay, apply the target mode

  ACTIVE --start_mapping--> [transitioning] --> MAPPING
  MAPPING --stop_mapping--> [transitioning] --> ACTIVE
  MAPPING --save_mapping--> [transitioning] --> ACTIVE (new map loaded)

While a transition is pending every other transition, map load and edit is
rejected with ``TransitionInProgress``; nothing is queued.

Phase 2 runs on a ``threading.Timer`` that carries a generation token.  It
only applies if its token still matches the pending transition, so a
transition settled early by ``shutdown()`` cannot be applied twice.  All
status updates happen under the entity store's lock, the same lock that
serializes store mutations.

The current map is not stored here: it is whichever map the store has
flagged active, so deleting or re-activating maps can never leave it stale.
"""

import threading
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from mapmanager.errors import (
    InvalidStateError,
    NotFoundError,
    TransitionInProgress,
    ValidationError,
)
from mapmanager.mapping.state import MappingState, OperationalStatus
from mapmanager.store.base import EntityStore
from mapmanager.store.models import Map, slugify

# Modeled latency of a start/stop (seconds)
DEFAULT_TRANSITION_DELAY = 0.3

# Saving writes the scan, so it takes longer
DEFAULT_SAVE_DELAY = 1.0


@dataclass
class _PendingTransition:
    token: int
    target: MappingState
    load_map_id: Optional[str] = None


class MappingStateMachine:
    """Tracks the operating mode and gates operator edits."""

    def __init__(
        self,
        store: EntityStore,
        transition_delay: float = DEFAULT_TRANSITION_DELAY,
        save_delay: float = DEFAULT_SAVE_DELAY,
        default_map_id: Optional[str] = None,
    ):
        self._store = store
        self._lock = store.lock
        self.transition_delay = transition_delay
        self.save_delay = save_delay

        self._state = MappingState.ACTIVE
        self._pending: Optional[_PendingTransition] = None
        self._generation = 0
        self._timer: Optional[threading.Timer] = None

        self._load_default_map(default_map_id)

    def _load_default_map(self, default_map_id: Optional[str]):
        with self._lock:
            if default_map_id:
                try:
                    m = self._store.set_active_map(default_map_id)
                    logger.info(f"Loaded default map '{m.label}'")
                    return
                except NotFoundError:
                    logger.warning(f"Default map {default_map_id} not found")

            if self._store.get_active_map() is not None:
                return
            maps = self._store.list_maps()
            if maps:
                m = self._store.set_active_map(maps[0].id)
                logger.info(f"Loaded first available map '{m.label}'")

    # -- Status -----------------------------------------------------------------

    @property
    def state(self) -> MappingState:
        return self._state

    @property
    def is_transitioning(self) -> bool:
        return self._pending is not None

    def status(self) -> OperationalStatus:
        with self._lock:
            active = self._store.get_active_map()
            return OperationalStatus(
                state=self._state,
                current_map_id=active.id if active else None,
                is_transitioning=self.is_transitioning,
            )

    # -- Guards -----------------------------------------------------------------

    def _require(self, state: MappingState, action: str):
        if self._pending is not None:
            logger.warning(f"Rejected {action}: transition in progress")
            raise TransitionInProgress(f"Cannot {action} while a mode change is in progress")
        if self._state != state:
            logger.warning(f"Rejected {action}: mode is {self._state.value}")
            raise InvalidStateError(f"Cannot {action} while {self._state.value}")

    def require_editable(self, action: str = "edit"):
        """Raise unless operator edits are currently allowed (ACTIVE, settled)."""
        with self._lock:
            self._require(MappingState.ACTIVE, action)

    # -- Transitions ------------------------------------------------------------

    def start_mapping(self):
        """Begin switching ACTIVE -> MAPPING."""
        with self._lock:
            self._require(MappingState.ACTIVE, "start mapping")
            self._schedule(MappingState.MAPPING, self.transition_delay)
        logger.info("Mapping start requested")

    def stop_mapping(self):
        """Begin switching MAPPING -> ACTIVE without keeping the scan."""
        with self._lock:
            self._require(MappingState.MAPPING, "stop mapping")
            self._schedule(MappingState.ACTIVE, self.transition_delay)
        logger.info("Mapping stop requested")

    def save_mapping(self, map_name: Optional[str]) -> Map:
        """Store the recorded scan as a new map and return to ACTIVE.

        The map record is created immediately; once the transition completes
        it becomes the active map.

        Args:
            map_name: Human-readable label, slugified into name and fileName

        Returns:
            The created Map (not yet active)
        """
        label = (map_name or "").strip()
        if not label:
            raise ValidationError("Map name is required")
        slug = slugify(label)

        with self._lock:
            self._require(MappingState.MAPPING, "save mapping")
            new_map = self._store.create_map({
                "name": slug,
                "label": label,
                "file_name": f"{slug}.png",
            })
            self._schedule(MappingState.ACTIVE, self.save_delay, load_map_id=new_map.id)

        logger.info(f"Saving mapping session as '{label}'")
        return new_map

    def load_map(self, map_id: str) -> Map:
        """Make ``map_id`` the active, current map."""
        with self._lock:
            self._require(MappingState.ACTIVE, "load map")
            m = self._store.set_active_map(map_id)
        logger.info(f"Loaded map '{m.label}' ({m.id})")
        return m

    # -- Scheduling -------------------------------------------------------------

    def _schedule(self, target: MappingState, delay: float, load_map_id: Optional[str] = None):
        self._generation += 1
        self._pending = _PendingTransition(self._generation, target, load_map_id)

        timer = threading.Timer(delay, self._complete, args=(self._generation,))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _complete(self, token: int):
        with self._lock:
            pending = self._pending
            if pending is None or pending.token != token:
                return
            self._apply(pending)

    def _apply(self, pending: _PendingTransition):
        self._pending = None
        self._state = pending.target
        if pending.load_map_id is not None:
            try:
                self._store.set_active_map(pending.load_map_id)
            except NotFoundError:
                logger.warning(f"Saved map {pending.load_map_id} vanished before it could be loaded")
        logger.info(f"Mode is now {self._state.value}")

    def wait_for_transition(self, timeout: Optional[float] = None) -> bool:
        """Block until the pending transition (if any) has been applied.

        Returns:
            True if no transition is pending afterwards
        """
        timer = self._timer
        if timer is not None and timer is not threading.current_thread():
            timer.join(timeout)
        return not self.is_transitioning

    def shutdown(self):
        """Cancel the pending timer and settle on its target mode."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            if self._pending is not None:
                logger.info(f"Settling pending transition to {self._pending.target.value}")
                self._apply(self._pending)
