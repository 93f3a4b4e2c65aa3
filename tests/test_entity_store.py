"""Entity store contract — runs against the memory and SQL backends."""

from __future__ import annotations

import threading
import time

import pytest

from mapmanager.errors import IntegrityError, NotFoundError, ValidationError
from mapmanager.schemas import MapCreate, WaypointUpdate


pytestmark = pytest.mark.unit


def _active(store):
    return [m for m in store.list_maps(include_archived=True) if m.is_active]


# ---------------------------------------------------------------------------
# Maps
# ---------------------------------------------------------------------------


class TestMapCrud:

    def test_create_assigns_identity_and_timestamps(self, store):
        m = store.create_map({"name": "depot", "label": "Depot", "fileName": "depot.png"})
        assert m.id
        assert m.name == "depot"
        assert m.label == "Depot"
        assert m.file_name == "depot.png"
        assert m.created_at == m.updated_at
        assert m.is_active is False
        assert m.is_archived is False

    def test_create_accepts_schema_instance(self, store):
        m = store.create_map(MapCreate(name="a", label="A", file_name="a.png"))
        assert store.get_map(m.id).label == "A"

    def test_ids_are_unique(self, store):
        ids = {
            store.create_map({"name": f"m{i}", "label": f"M{i}", "file_name": "x.png"}).id
            for i in range(20)
        }
        assert len(ids) == 20

    @pytest.mark.parametrize("missing", ["name", "label", "file_name"])
    def test_create_rejects_missing_required_field(self, store, missing):
        fields = {"name": "depot", "label": "Depot", "file_name": "depot.png"}
        del fields[missing]
        with pytest.raises(ValidationError) as exc:
            store.create_map(fields)
        assert exc.value.details
        assert store.list_maps(include_archived=True) == []

    def test_get_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            store.get_map("nope")

    def test_list_is_stable(self, store, depot, warehouse):
        first = [m.id for m in store.list_maps()]
        second = [m.id for m in store.list_maps()]
        assert first == second
        assert set(first) == {depot.id, warehouse.id}

    def test_returned_records_are_copies(self, store, depot):
        depot.label = "Mutated"
        assert store.get_map(depot.id).label == "Depot"

    def test_update_merges_only_supplied_fields(self, store, depot):
        updated = store.update_map(depot.id, {"label": "Main Depot"})
        assert updated.label == "Main Depot"
        assert updated.name == "depot"
        assert updated.file_name == "depot.png"
        assert updated.updated_at >= depot.updated_at

    def test_update_refreshes_updated_at_even_without_changes(self, store, depot):
        updated = store.update_map(depot.id, {})
        assert updated.updated_at >= depot.updated_at
        assert updated.created_at == store.get_map(depot.id).created_at

    def test_update_ignores_id_and_created_at(self, store, depot):
        updated = store.update_map(depot.id, {"id": "other", "createdAt": "2000-01-01T00:00:00Z"})
        assert updated.id == depot.id
        assert updated.created_at == store.get_map(depot.id).created_at

    def test_update_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            store.update_map("nope", {"label": "x"})

    def test_update_rejects_empty_label(self, store, depot):
        with pytest.raises(ValidationError):
            store.update_map(depot.id, {"label": ""})

    def test_delete_returns_whether_record_existed(self, store, depot):
        assert store.delete_map(depot.id) is True
        assert store.delete_map(depot.id) is False
        with pytest.raises(NotFoundError):
            store.get_map(depot.id)


class TestArchivedMaps:

    def test_archived_excluded_by_default(self, store, depot, warehouse):
        store.update_map(warehouse.id, {"isArchived": True})
        assert [m.id for m in store.list_maps()] == [depot.id]

    def test_include_archived(self, store, depot, warehouse):
        store.update_map(warehouse.id, {"isArchived": True})
        ids = {m.id for m in store.list_maps(include_archived=True)}
        assert ids == {depot.id, warehouse.id}

    def test_archived_map_still_resolvable(self, store, warehouse):
        store.update_map(warehouse.id, {"is_archived": True})
        assert store.get_map(warehouse.id).is_archived is True


class TestActiveMap:

    def test_no_active_map_initially(self, store, depot):
        assert store.get_active_map() is None

    def test_set_active_map(self, store, depot, warehouse):
        m = store.set_active_map(depot.id)
        assert m.is_active is True
        assert store.get_active_map().id == depot.id

    def test_set_active_deactivates_siblings(self, store, depot, warehouse):
        store.set_active_map(depot.id)
        store.set_active_map(warehouse.id)
        assert [m.id for m in _active(store)] == [warehouse.id]

    def test_at_most_one_active_after_any_sequence(self, store, depot, warehouse):
        third = store.create_map({"name": "c", "label": "C", "file_name": "c.png"})
        for map_id in [depot.id, third.id, warehouse.id, warehouse.id, depot.id, third.id]:
            store.set_active_map(map_id)
            assert len(_active(store)) == 1
        assert store.get_active_map().id == third.id

    def test_set_active_missing_raises(self, store, depot):
        store.set_active_map(depot.id)
        with pytest.raises(NotFoundError):
            store.set_active_map("nope")
        assert store.get_active_map().id == depot.id

    def test_create_active_map_deactivates_others(self, store, depot):
        store.set_active_map(depot.id)
        new = store.create_map({"name": "n", "label": "N", "file_name": "n.png", "isActive": True})
        assert [m.id for m in _active(store)] == [new.id]

    def test_update_is_active_deactivates_others(self, store, depot, warehouse):
        store.set_active_map(depot.id)
        store.update_map(warehouse.id, {"isActive": True})
        assert [m.id for m in _active(store)] == [warehouse.id]

    def test_deleting_active_map_promotes_remaining_map(self, store, depot, warehouse):
        store.set_active_map(depot.id)
        store.delete_map(depot.id)
        assert store.get_active_map().id == warehouse.id

    def test_deleting_active_map_skips_archived(self, store, depot, warehouse):
        third = store.create_map({"name": "c", "label": "C", "file_name": "c.png"})
        store.update_map(warehouse.id, {"isArchived": True})
        store.set_active_map(depot.id)
        store.delete_map(depot.id)
        assert store.get_active_map().id == third.id

    def test_deleting_last_map_leaves_none_active(self, store, depot):
        store.set_active_map(depot.id)
        store.delete_map(depot.id)
        assert store.get_active_map() is None

    def test_deleting_inactive_map_keeps_active(self, store, depot, warehouse):
        store.set_active_map(depot.id)
        store.delete_map(warehouse.id)
        assert store.get_active_map().id == depot.id


# ---------------------------------------------------------------------------
# Waypoints
# ---------------------------------------------------------------------------


class TestWaypointCrud:

    def test_create_and_get(self, store, depot):
        wp = store.create_waypoint({"name": "Dock", "mapId": depot.id, "x": 10, "y": 20})
        fetched = store.get_waypoint(wp.id)
        assert fetched.map_id == depot.id
        assert fetched.x == 10.0
        assert fetched.y == 20.0
        assert fetched.frame_id == ""
        assert fetched.tags == []

    def test_tags_keep_order_and_drop_duplicates(self, store, depot):
        wp = store.create_waypoint({
            "name": "Dock", "map_id": depot.id, "x": 0, "y": 0,
            "tags": ["loading", "dock", "loading"],
        })
        assert store.get_waypoint(wp.id).tags == ["loading", "dock"]

    def test_create_on_unknown_map_persists_nothing(self, store, depot):
        with pytest.raises(IntegrityError):
            store.create_waypoint({"name": "Ghost", "mapId": "nonexistent", "x": 1, "y": 2})
        assert store.list_waypoints() == []

    def test_create_rejects_bad_shape(self, store, depot):
        with pytest.raises(ValidationError):
            store.create_waypoint({"name": "Dock", "mapId": depot.id, "x": "left"})

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_create_rejects_non_finite_coordinates(self, store, depot, value):
        with pytest.raises(ValidationError):
            store.create_waypoint({"name": "Dock", "mapId": depot.id, "x": value, "y": 1})
        with pytest.raises(ValidationError):
            store.create_waypoint({"name": "Dock", "mapId": depot.id, "x": 1, "y": value})
        assert store.list_waypoints() == []

    def test_update_rejects_non_finite_coordinates(self, store, depot):
        wp = store.create_waypoint({"name": "Dock", "mapId": depot.id, "x": 1, "y": 2})
        with pytest.raises(ValidationError):
            store.update_waypoint(wp.id, {"x": float("nan")})
        assert (store.get_waypoint(wp.id).x, store.get_waypoint(wp.id).y) == (1, 2)

    def test_list_filtered_by_map(self, store, depot, warehouse):
        a = store.create_waypoint({"name": "A", "map_id": depot.id, "x": 0, "y": 0})
        store.create_waypoint({"name": "B", "map_id": warehouse.id, "x": 0, "y": 0})
        assert [wp.id for wp in store.list_waypoints(depot.id)] == [a.id]
        assert len(store.list_waypoints()) == 2

    def test_update_merges(self, store, depot):
        wp = store.create_waypoint({"name": "Dock", "map_id": depot.id, "x": 1, "y": 2, "tags": ["t"]})
        updated = store.update_waypoint(wp.id, WaypointUpdate(x=5.5))
        assert updated.x == 5.5
        assert updated.y == 2.0
        assert updated.name == "Dock"
        assert updated.tags == ["t"]

    def test_update_can_move_to_existing_map(self, store, depot, warehouse):
        wp = store.create_waypoint({"name": "Dock", "map_id": depot.id, "x": 1, "y": 2})
        assert store.update_waypoint(wp.id, {"mapId": warehouse.id}).map_id == warehouse.id

    def test_update_rejects_unknown_map(self, store, depot):
        wp = store.create_waypoint({"name": "Dock", "map_id": depot.id, "x": 1, "y": 2})
        with pytest.raises(IntegrityError):
            store.update_waypoint(wp.id, {"mapId": "nonexistent", "x": 99})
        unchanged = store.get_waypoint(wp.id)
        assert unchanged.map_id == depot.id
        assert unchanged.x == 1.0

    def test_update_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            store.update_waypoint("nope", {"x": 1})

    def test_delete(self, store, depot):
        wp = store.create_waypoint({"name": "Dock", "map_id": depot.id, "x": 1, "y": 2})
        assert store.delete_waypoint(wp.id) is True
        assert store.delete_waypoint(wp.id) is False
        with pytest.raises(NotFoundError):
            store.get_waypoint(wp.id)


class TestReferentialIntegrity:

    def test_every_waypoint_resolves_its_map(self, store, depot, warehouse):
        for i, m in enumerate([depot, warehouse, depot]):
            store.create_waypoint({"name": f"W{i}", "map_id": m.id, "x": i, "y": i})
        for wp in store.list_waypoints():
            assert store.get_map(wp.map_id).id == wp.map_id

    def test_delete_map_cascades_waypoints(self, store, depot, warehouse):
        doomed = [
            store.create_waypoint({"name": f"D{i}", "map_id": depot.id, "x": i, "y": i})
            for i in range(3)
        ]
        keep = store.create_waypoint({"name": "K", "map_id": warehouse.id, "x": 0, "y": 0})

        assert store.delete_map(depot.id) is True

        assert [wp.id for wp in store.list_waypoints()] == [keep.id]
        for wp in doomed:
            with pytest.raises(NotFoundError):
                store.get_waypoint(wp.id)

    def test_cascade_delete_is_never_observed_half_done(self, store):
        maps = [
            store.create_map({"name": f"m{i}", "label": f"M{i}", "file_name": f"m{i}.png"})
            for i in range(15)
        ]
        for m in maps:
            for j in range(20):
                store.create_waypoint({"name": f"W{j}", "map_id": m.id, "x": j, "y": j})

        done = threading.Event()
        orphans = []

        def delete_all():
            try:
                for m in maps:
                    store.delete_map(m.id)
            finally:
                done.set()

        deleter = threading.Thread(target=delete_all)
        deleter.start()
        while not done.is_set():
            # One consistent snapshot: both reads under the store lock
            with store.lock:
                waypoints = store.list_waypoints()
                map_ids = {m.id for m in store.list_maps(include_archived=True)}
            orphans.extend(wp.id for wp in waypoints if wp.map_id not in map_ids)
            time.sleep(0.001)
        deleter.join(timeout=10.0)

        assert not deleter.is_alive()
        assert orphans == []
        assert store.list_waypoints() == []
        assert store.list_maps(include_archived=True) == []

    def test_depot_scenario(self, store):
        a = store.create_map({"name": "depot", "label": "Depot", "file_name": "depot.png"})
        assert a.is_active is False
        assert store.set_active_map(a.id).is_active is True

        wp = store.create_waypoint({"name": "Dock", "mapId": a.id, "x": 10, "y": 20})
        assert store.get_waypoint(wp.id).map_id == a.id

        assert store.delete_map(a.id) is True
        with pytest.raises(NotFoundError):
            store.get_waypoint(wp.id)
