"""Demo content for an empty store."""

from loguru import logger

from mapmanager.store.base import EntityStore

DEMO_MAPS = [
    {
        "name": "husky_depot",
        "label": "Husky Depot Map",
        "file_name": "husky_depot_1755842153683.png",
        "is_active": True,
        "waypoints": [
            {"name": "Entry Point", "x": 120, "y": 340, "tags": ["entry", "navigation"]},
            {"name": "Loading Dock", "x": 580, "y": 190, "tags": ["loading", "dock"]},
            {"name": "Staging Area", "x": 410, "y": 280, "tags": ["staging", "operations"]},
        ],
    },
    {
        "name": "warehouse_layout",
        "label": "Warehouse Layout",
        "file_name": "warehouse_layout.png",
        "waypoints": [],
    },
    {
        "name": "office_floor_plan",
        "label": "Office Floor Plan",
        "file_name": "office_floor_plan.png",
        "waypoints": [],
    },
]


def seed_demo_data(store: EntityStore) -> bool:
    """Populate ``store`` with the demo maps if it holds no maps at all.

    Returns:
        True if anything was created
    """
    with store.lock:
        if store.list_maps(include_archived=True):
            return False

        for spec in DEMO_MAPS:
            fields = {k: v for k, v in spec.items() if k != "waypoints"}
            m = store.create_map(fields)
            for wp in spec["waypoints"]:
                store.create_waypoint({**wp, "map_id": m.id})

    logger.info(f"Seeded {len(DEMO_MAPS)} demo maps")
    return True
