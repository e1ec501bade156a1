from trip_pricing.engine import Catalog, CatalogItem, Category, CostModel


def ids(items):
    return [item.id for item in items]


def test_find_by_id_missing_reference_is_none(catalog):
    assert catalog.find_by_id("deleted-id") is None
    assert catalog.find_by_id(None) is None
    assert catalog.find_by_id("") is None


def test_inactive_items_resolve_by_id_but_not_as_active(catalog):
    assert catalog.find_by_id("old-walk") is not None
    assert catalog.find_active("old-walk") is None
    assert catalog.find_active("game-drive").name == "Game Drive"


def test_find_by_category_and_park_is_exact_scope(catalog):
    assert ids(catalog.find_by_category_and_park(Category.PARK_FEES, "BWINDI")) == [
        "bwindi-entry", "bwindi-community",
    ]
    assert ids(catalog.find_by_category_and_park("Park Fees", None)) == ["heli-landing", "fw-landing"]


def test_applicable_to_park_merges_global_and_park_items(catalog):
    """Global items plus park-specific ones; other parks and inactive items excluded."""
    assert ids(catalog.applicable_to_park(Category.ACTIVITIES, "BWINDI")) == ["gorilla-trek", "game-drive"]
    assert ids(catalog.applicable_to_park(Category.ACTIVITIES, "QUEEN_ELIZABETH")) == [
        "game-drive", "boat-cruise",
    ]


def test_applicable_without_park_returns_only_global(catalog):
    assert ids(catalog.applicable_to_park(Category.ACTIVITIES, None)) == ["game-drive"]


def test_category_parse_accepts_spelling_variants():
    for raw in ("Park Fees", "ParkFees", "park_fees", "PARK FEES"):
        assert Category.parse(raw) == Category.PARK_FEES
    assert Category.parse("Spaceships") is None


def test_duplicate_ids_keep_first_and_warn():
    first = CatalogItem("dup", "First", Category.EXTRAS, 10, "fixed")
    second = CatalogItem("dup", "Second", Category.EXTRAS, 20, "fixed")
    catalog = Catalog([first, second])

    assert len(catalog) == 1
    assert catalog.find_by_id("dup").name == "First"
    assert len(catalog.warnings) == 1
    assert "dup" in catalog.warnings[0]


def test_applies_to_follows_park_scope(catalog):
    assert catalog.find_by_id("gorilla-trek").applies_to == "Park"
    assert catalog.find_by_id("game-drive").applies_to == "Global"


def test_cost_model_tags_are_parsed(catalog):
    assert catalog.find_by_id("lodge-clouds").cost_model == CostModel.HIERARCHICAL_LODGING
    # Unknown tags are kept verbatim for display
    mystery = catalog.find_by_id("mystery")
    assert mystery.model is None
    assert mystery.cost_model_name == "per_galaxy"


def test_catalog_iteration_and_membership(catalog):
    assert "game-drive" in catalog
    assert "deleted-id" not in catalog
    assert len(list(catalog)) == len(catalog) == 18
