"""Shared fixtures: store backends, state machine with short delays, service."""

from __future__ import annotations

import pytest

from mapmanager.mapping import MappingStateMachine
from mapmanager.service import MapManagerService
from mapmanager.store import MemoryEntityStore, SqlEntityStore

# Transition delay used in tests (seconds)
FAST = 0.1


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Every store contract test runs against both backends."""
    if request.param == "memory":
        s = MemoryEntityStore()
    else:
        s = SqlEntityStore("sqlite://")
    yield s
    s.close()


@pytest.fixture
def depot(store):
    return store.create_map({"name": "depot", "label": "Depot", "fileName": "depot.png"})


@pytest.fixture
def warehouse(store):
    return store.create_map({"name": "warehouse", "label": "Warehouse", "fileName": "warehouse.png"})


@pytest.fixture
def machine(store, depot, warehouse):
    """State machine over a store holding two maps; depot is loaded first."""
    m = MappingStateMachine(store, transition_delay=FAST, save_delay=FAST)
    yield m
    m.shutdown()


@pytest.fixture
def service(store, machine):
    return MapManagerService(store, machine)
