from pathlib import Path

import pytest

from trip_pricing.config.settings import Settings, get_settings, reset_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        'TRIP_PRICING_CATALOG',
        'TRIP_PRICING_TAX_RATE',
        'TRIP_PRICING_CONTINGENCY_PCT',
        'TRIP_PRICING_AGENT_COMMISSION_PCT',
        'TRIP_PRICING_PROFIT_PCT',
        'TRIP_PRICING_LOG_LEVEL',
    ):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


def test_defaults(tmp_path):
    settings = Settings.load(tmp_path)
    assert settings.catalog_path == tmp_path / 'data' / 'catalog.json'
    assert settings.build_report == tmp_path / 'data' / 'outputs' / 'build_report.json'
    assert settings.tax_rate == 0.0
    assert settings.log_level == 'INFO'


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv('TRIP_PRICING_CATALOG', str(tmp_path / 'export.csv'))
    monkeypatch.setenv('TRIP_PRICING_TAX_RATE', '0.18')
    monkeypatch.setenv('TRIP_PRICING_PROFIT_PCT', '12.5')
    monkeypatch.setenv('TRIP_PRICING_LOG_LEVEL', 'debug')

    settings = Settings.load(tmp_path)

    assert settings.catalog_path == Path(tmp_path / 'export.csv')
    assert settings.tax_rate == 0.18
    assert settings.profit_pct == 12.5
    assert settings.log_level == 'DEBUG'


def test_blank_number_uses_default(tmp_path, monkeypatch):
    monkeypatch.setenv('TRIP_PRICING_TAX_RATE', '  ')
    assert Settings.load(tmp_path).tax_rate == 0.0


def test_bad_number_is_rejected(tmp_path, monkeypatch):
    monkeypatch.setenv('TRIP_PRICING_CONTINGENCY_PCT', 'ten')
    with pytest.raises(ValueError, match='TRIP_PRICING_CONTINGENCY_PCT'):
        Settings.load(tmp_path)


def test_get_settings_is_cached_until_reset(monkeypatch):
    first = get_settings()
    assert get_settings() is first

    monkeypatch.setenv('TRIP_PRICING_TAX_RATE', '0.05')
    reset_settings()
    assert get_settings().tax_rate == 0.05


def test_project_root_holds_pyproject():
    assert (get_settings().project_root / 'pyproject.toml').exists()
