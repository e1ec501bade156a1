import os
import sys

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from trip_pricing.config.settings import Settings
from trip_pricing.engine import Catalog, CatalogItem, Category, TripDraft

CLOUDS_METADATA = {
    "rooms": [
        {
            "id": "deluxe",
            "name": "Deluxe Banda",
            "pricing": {
                "high": {"double": {"perRoom": 2582}, "single": {"perRoom": 1700}},
                "low": {"double": {"perRoom": 1900}, "single": 1200},
            },
        },
        {
            "id": "villa",
            "name": "Family Villa",
            "pricing": {"high": {"villa": {"perVilla": 5200}}},
        },
    ],
    "seasons": {
        "high": {
            "name": "High Season",
            "periods": [
                {"start": "12-15", "end": "12-31"},
                {"start": "01-01", "end": "02-28"},
                {"start": "06-01", "end": "09-30"},
            ],
        },
        "low": {
            "name": "Low Season",
            "periods": [
                {"start": "03-01", "end": "05-31"},
                {"start": "10-01", "end": "12-14"},
            ],
        },
    },
}


def make_items():
    """A small Uganda catalog covering every category and cost model."""
    return [
        CatalogItem("bwindi-entry", "Bwindi Park Entry", Category.PARK_FEES, 40, "per_person", park_id="BWINDI"),
        CatalogItem("bwindi-community", "Community Levy", Category.PARK_FEES, 10, "per_person", park_id="BWINDI"),
        CatalogItem("murchison-entry", "Murchison Park Entry", Category.PARK_FEES, 45, "per_person",
                    park_id="MURCHISON"),
        CatalogItem("heli-landing", "Helicopter Landing Fee", Category.PARK_FEES, 0, "fixed"),
        CatalogItem("fw-landing", "Fixed Wing Landing Fee", Category.PARK_FEES, 50, "fixed"),
        CatalogItem("heli-charter", "Helicopter Charter Entebbe - Bwindi", Category.AVIATION, 1200, "fixed",
                    capacity=13, split_across_travelers=True),
        CatalogItem("fw-flight", "Fixed Wing Scheduled Flight", Category.AVIATION, 350, "per_person",
                    capacity=12),
        CatalogItem("road-transfer", "Road Transfer Land Cruiser", Category.VEHICLE, 150, "per_day_fixed",
                    capacity=6),
        CatalogItem("gorilla-trek", "Gorilla Trekking", Category.ACTIVITIES, 800, "per_person", park_id="BWINDI"),
        CatalogItem("game-drive", "Game Drive", Category.ACTIVITIES, 60, "per_person"),
        CatalogItem("boat-cruise", "Kazinga Channel Boat Cruise", Category.ACTIVITIES, 35, "per_person",
                    park_id="QUEEN_ELIZABETH"),
        CatalogItem("old-walk", "Retired Nature Walk", Category.ACTIVITIES, 20, "per_person", active=False),
        CatalogItem("lodge-basic", "Basic Budget Lodge", Category.LODGING, 150, "per_night_per_person"),
        CatalogItem("lodge-safari", "Safari Lodge", Category.LODGING, 450, "per_night_per_person"),
        CatalogItem("lodge-clouds", "Clouds Mountain Gorilla Lodge", Category.LODGING, 1800,
                    "hierarchical_lodging", metadata=CLOUDS_METADATA),
        CatalogItem("sundowner", "Sundowner Drinks", Category.EXTRAS, 25, "per_person"),
        CatalogItem("mystery", "Mystery Item", Category.EXTRAS, 99, "per_galaxy"),
        CatalogItem("airstrip-transfer", "Airstrip Transfer", Category.LOGISTICS, 40, "fixed"),
    ]


@pytest.fixture
def catalog():
    return Catalog(make_items())


@pytest.fixture
def draft():
    """Four travelers, three days, nothing selected yet."""
    return TripDraft.create(travelers=4, days=3)


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the environment and the real project tree."""
    return Settings(
        project_root=tmp_path,
        catalog_path=tmp_path / 'catalog.json',
        build_report=tmp_path / 'outputs' / 'build_report.json',
    )
