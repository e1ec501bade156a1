"""
Catalog Builder - loads catalog exports into an immutable Catalog snapshot.

Accepts CSV or JSON exports from the catalog admin with either camelCase
(basePrice, costModel, parkId) or snake_case column names, and:
- Normalizes columns, booleans and nested lodging metadata
- Generates [PARK]_[CATEGORY]_[SHORTNAME] SKUs for rows without one
- Resolves SKU/id collisions with numeric suffixes (_2, _3, ...)
- Produces a build report with metrics and warnings
"""
import hashlib
import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from ..config.settings import get_settings, Settings
from ..engine.catalog import Catalog
from ..engine.exceptions import CatalogLoadError
from ..engine.models import CatalogItem, Category

logger = logging.getLogger(__name__)

CATEGORY_CODES = {
    Category.ACTIVITIES: 'ACT',
    Category.AVIATION: 'AVN',
    Category.LODGING: 'LODGE',
    Category.PARK_FEES: 'FEE',
    Category.PERMITS: 'PERMIT',
    Category.EXTRAS: 'EXT',
    Category.LOGISTICS: 'LOG',
    Category.VEHICLE: 'VEH',
}

PARK_SHORT_CODES = {
    'QUEEN_ELIZABETH': 'QE',
    'LAKE_MBURO': 'MBURO',
    'LAKE_BUNYONYI': 'BUNYONYI',
    'MT_ELGON': 'ELGON',
}

# Phrases dropped from item names when building the SKU short name
SKU_NOISE = ('(FNR)', 'FULL BOARD', 'WITH UWA GUIDE', '(FOREIGN REGISTERED)', 'FOREIGN REGISTERED')

SHORT_NAME_MAX = 20

COLUMN_ALIASES = {
    'basePrice': 'base_price',
    'price': 'base_price',
    'costModel': 'cost_model',
    'parkId': 'park_id',
    'splitAcrossTravelers': 'split_across_travelers',
}

TRUE_VALUES = {'true', '1', 'yes', 'y'}


def get_file_hash(path: Path) -> str:
    """Get SHA256 hash of a file."""
    if not path.exists():
        return ""
    with open(path, 'rb') as f:
        return hashlib.sha256(f.read()).hexdigest()[:12]


def short_name(item_name: str) -> str:
    """Uppercase, noise-free, underscore-joined name capped at 20 characters."""
    name = str(item_name).upper().strip()
    for phrase in SKU_NOISE:
        name = name.replace(phrase, '')
    name = name.replace('A&K SANCTUARY', 'AK')

    name = re.sub(r'(\d+)\s*MIN(UTE)?S?\b', r'\1MIN', name)
    name = re.sub(r'(\d+)\s*HOURS?\b', r'\1HR', name)
    name = re.sub(r'(\d+)\s*ROUNDS?\b', r'\1RND', name)

    name = name.replace('–', '-').replace('/', '_').replace('&', '')
    name = re.sub(r'\s+', '_', name)
    name = re.sub(r'_+', '_', name).strip('_')
    return name[:SHORT_NAME_MAX].rstrip('_')


def generate_sku(item_name: str, category: Union[Category, str], park_id: Optional[str]) -> str:
    """Build a SKU in the form [PARK]_[CATEGORY]_[SHORTNAME]."""
    if not park_id or str(park_id).upper() == 'GLOBAL':
        park = 'GLOBAL'
    else:
        park = PARK_SHORT_CODES.get(park_id, str(park_id).upper())
    cat = Category.parse(category)
    code = CATEGORY_CODES.get(cat, 'MISC')
    return f"{park}_{code}_{short_name(item_name)}"


def ensure_unique_sku(proposed: str, existing: set) -> str:
    """Append _2, _3, ... until the SKU is not in existing."""
    unique = proposed
    counter = 2
    while unique in existing:
        unique = f"{proposed}_{counter}"
        counter += 1
    return unique


def _read_frame(path: Path) -> pd.DataFrame:
    """Read a CSV or JSON catalog export into a DataFrame."""
    if path.suffix.lower() == '.json':
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        records = data.get('items', []) if isinstance(data, dict) else data
        return pd.DataFrame.from_records(records)
    return pd.read_csv(path, dtype=str)


def _is_missing(value) -> bool:
    if value is None:
        return True
    if isinstance(value, (dict, list)):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _text(value, default: str = "") -> str:
    return default if _is_missing(value) else str(value).strip()


def _to_bool(value, default: bool) -> bool:
    if _is_missing(value):
        return default
    if isinstance(value, str):
        return value.strip().lower() in TRUE_VALUES
    return bool(value)


def _to_metadata(value) -> Optional[dict]:
    if _is_missing(value) or value == "":
        return None
    if isinstance(value, dict):
        return value
    return json.loads(value)


def normalize_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Map camelCase/alias columns onto snake_case names."""
    df = df.rename(columns={k: v for k, v in COLUMN_ALIASES.items() if k in df.columns})
    for column in ('id', 'sku', 'park_id', 'capacity', 'active', 'split_across_travelers', 'notes', 'metadata'):
        if column not in df.columns:
            df[column] = None
    return df


def frame_to_items(df: pd.DataFrame, report: dict) -> list[CatalogItem]:
    """
    Convert normalized rows into CatalogItems.

    Rows without a name, with an unknown category, or with a missing or
    negative price are skipped and reported. Rows without an id use their
    (generated) SKU as id.
    """
    items = []
    used_ids: set = set()
    used_skus: set = set()
    skipped = 0
    generated = 0

    for position, row in enumerate(df.to_dict('records'), start=1):
        name = _text(row.get('name'))
        category = Category.parse(_text(row.get('category')) or None)
        if not name or category is None:
            report["warnings"].append(f"Row {position}: missing name or unknown category, skipped")
            skipped += 1
            continue

        price = row.get('base_price')
        try:
            price = float(price)
        except (TypeError, ValueError):
            price = float('nan')
        if pd.isna(price) or price < 0:
            report["warnings"].append(f"Row {position} ({name}): invalid base price, skipped")
            skipped += 1
            continue

        park_id = _text(row.get('park_id')) or None
        if park_id and park_id.upper() == 'GLOBAL':
            park_id = None

        sku = _text(row.get('sku'))
        if not sku:
            sku = generate_sku(name, category, park_id)
            generated += 1
        if sku in used_skus:
            unique = ensure_unique_sku(sku, used_skus)
            report["warnings"].append(f"Row {position} ({name}): SKU {sku} already used, renamed to {unique}")
            sku = unique
        used_skus.add(sku)

        item_id = _text(row.get('id')) or sku
        if item_id in used_ids:
            report["warnings"].append(f"Row {position} ({name}): duplicate id {item_id}, row skipped")
            skipped += 1
            continue
        used_ids.add(item_id)

        try:
            metadata = _to_metadata(row.get('metadata'))
        except ValueError as e:
            report["warnings"].append(f"Row {position} ({name}): unreadable metadata ignored. {e}")
            metadata = None

        capacity = row.get('capacity')
        items.append(CatalogItem(
            id=item_id,
            name=name,
            category=category,
            base_price=price,
            cost_model=_text(row.get('cost_model')),
            park_id=park_id,
            capacity=None if _is_missing(capacity) else int(float(capacity)),
            active=_to_bool(row.get('active'), True),
            split_across_travelers=_to_bool(row.get('split_across_travelers'), False),
            notes=_text(row.get('notes')),
            sku=sku,
            metadata=metadata,
        ))

    report["metrics"]["rows_skipped"] = skipped
    report["metrics"]["skus_generated"] = generated
    return items


def load_catalog(path: Union[str, Path], report: Optional[dict] = None) -> Catalog:
    """
    Load a catalog snapshot from a CSV or JSON export.

    Raises:
        CatalogLoadError: The file is missing or cannot be parsed
    """
    path = Path(path)
    report = report if report is not None else _new_report()
    if not path.exists():
        raise CatalogLoadError(f"Catalog file {path} not found")

    try:
        df = _read_frame(path)
    except (OSError, ValueError) as e:
        raise CatalogLoadError(f"Failed to read catalog {path}. {e}") from e

    report["input_files"]["catalog"] = {"path": str(path), "hash": get_file_hash(path)}
    report["metrics"]["row_count"] = len(df)

    if 'name' not in df.columns or 'category' not in df.columns:
        raise CatalogLoadError(f"Catalog {path} needs at least 'name' and 'category' columns")

    items = frame_to_items(normalize_frame(df), report)
    catalog = Catalog(items)
    report["warnings"].extend(catalog.warnings)
    report["metrics"]["item_count"] = len(catalog)
    report["metrics"]["inactive_count"] = sum(1 for item in catalog if not item.active)

    for warning in report["warnings"]:
        logger.warning(warning)
    return catalog


def _new_report() -> dict:
    return {
        "timestamp": datetime.now().isoformat(),
        "status": "pending",
        "input_files": {},
        "metrics": {},
        "warnings": [],
        "errors": [],
    }


def build_catalog_snapshot(
    source: Union[str, Path],
    settings: Optional[Settings] = None,
    verbose: bool = True,
) -> dict:
    """
    Build the normalized JSON catalog snapshot from an export.

    Args:
        source: CSV or JSON catalog export
        settings: Optional settings override
        verbose: Print progress messages

    Returns:
        Build report dictionary
    """
    settings = settings or get_settings()
    report = _new_report()

    try:
        catalog = load_catalog(source, report)
    except CatalogLoadError as e:
        report["errors"].append(str(e))
        report["status"] = "failed"
        if verbose:
            print(f"ERROR: {e}")
        return report

    if verbose:
        metrics = report["metrics"]
        print(f"Loaded {metrics['item_count']} items ({metrics['rows_skipped']} rows skipped, "
              f"{metrics['skus_generated']} SKUs generated)")

    # Save catalog snapshot
    output_path = settings.catalog_path
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump({"items": [item.to_dict() for item in catalog]}, f, indent=2)
    report["output_file"] = str(output_path)
    report["status"] = "success"

    if verbose:
        print(f"\nPROCESS COMPLETE: {output_path} generated with {len(catalog)} items.")

    # Save build report
    report_path = settings.build_report
    report_path.parent.mkdir(parents=True, exist_ok=True)
    with open(report_path, 'w') as f:
        json.dump(report, f, indent=2)

    if verbose:
        print(f"Build report saved to: {report_path}")

    return report
