"""
Centralized settings and path configuration for the trip pricing engine.
"""
import logging
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    # Walk up from this file to find the project root
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 3 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number, got '{raw}'")


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path

    # Catalog snapshot (CSV or JSON)
    catalog_path: Path

    # Output files
    build_report: Path

    # Flat tax applied on the grand total
    tax_rate: float = 0.0

    # Final client price adjustments, in percent
    contingency_pct: float = 0.0
    agent_commission_pct: float = 0.0
    profit_pct: float = 0.0

    log_level: str = "INFO"

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure and TRIP_PRICING_* overrides."""
        root = project_root or get_project_root()

        catalog = os.environ.get('TRIP_PRICING_CATALOG')
        catalog_path = Path(catalog) if catalog else root / 'data' / 'catalog.json'

        return cls(
            project_root=root,
            catalog_path=catalog_path,
            build_report=root / 'data' / 'outputs' / 'build_report.json',
            tax_rate=_env_float('TRIP_PRICING_TAX_RATE', 0.0),
            contingency_pct=_env_float('TRIP_PRICING_CONTINGENCY_PCT', 0.0),
            agent_commission_pct=_env_float('TRIP_PRICING_AGENT_COMMISSION_PCT', 0.0),
            profit_pct=_env_float('TRIP_PRICING_PROFIT_PCT', 0.0),
            log_level=os.environ.get('TRIP_PRICING_LOG_LEVEL', 'INFO').upper(),
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reset_settings():
    """Drop the cached settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None


def configure_logging(level: Optional[str] = None):
    """Configure root logging for scripts and the API server."""
    level = (level or get_settings().log_level).upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
