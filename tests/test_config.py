import os
import sys

import pytest

# Ensure project root is on sys.path so tests can import local modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from reserve_config import DEFAULT_COLUMNS, ColumnKind, config_from_mapping, load_config
from reserve_errors import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ("RESERVE_CONFIG", "RESERVE_DATA_PATH", "RESERVE_MIN_WEEKS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def test_defaults_without_file():
    config = load_config()
    assert config.data_path == "data.json"
    assert config.min_weeks_per_prescription == 4
    assert config.count_hidden_in_pill_counts is False
    assert config.columns_for("anything") == DEFAULT_COLUMNS


def test_load_toml(tmp_path):
    path = tmp_path / "reserve.toml"
    path.write_text(
        'data_path = "/var/lib/reserve/drugs.json"\n'
        "min_weeks_per_prescription = 6\n"
        "count_hidden_in_pill_counts = true\n"
        "[column_profiles]\n"
        'wall = ["trade-name", "remaining", "dosage"]\n',
        encoding="utf-8",
    )
    config = load_config(str(path))
    assert config.data_path == "/var/lib/reserve/drugs.json"
    assert config.min_weeks_per_prescription == 6
    assert config.count_hidden_in_pill_counts is True
    assert config.columns_for("wall") == [ColumnKind.TRADE_NAME, ColumnKind.REMAINING, ColumnKind.DOSAGE]
    assert config.columns_for(None) == DEFAULT_COLUMNS


def test_default_file_and_env_overrides(tmp_path, monkeypatch):
    (tmp_path / "config.toml").write_text("min_weeks_per_prescription = 2\n", encoding="utf-8")
    assert load_config().min_weeks_per_prescription == 2

    monkeypatch.setenv("RESERVE_MIN_WEEKS", "5")
    monkeypatch.setenv("RESERVE_DATA_PATH", "other.json")
    config = load_config()
    assert config.min_weeks_per_prescription == 5
    assert config.data_path == "other.json"


def test_env_selects_file(tmp_path, monkeypatch):
    path = tmp_path / "elsewhere.toml"
    path.write_text('data_path = "x.json"\n', encoding="utf-8")
    monkeypatch.setenv("RESERVE_CONFIG", str(path))
    assert load_config().data_path == "x.json"


@pytest.mark.parametrize("data", [
    {"column_profiles": {"bad": ["trade-name", "price"]}},
    {"column_profiles": {"bad": "trade-name"}},
    {"column_profiles": ["trade-name"]},
    {"min_weeks_per_prescription": "many"},
    {"min_weeks_per_prescription": -1},
    {"count_hidden_in_pill_counts": "yes"},
])
def test_invalid_values(data):
    with pytest.raises(ConfigError):
        config_from_mapping(data)


def test_missing_or_broken_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "absent.toml"))
    broken = tmp_path / "broken.toml"
    broken.write_text("min_weeks_per_prescription = \n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(str(broken))


def test_column_kind_tags():
    assert ColumnKind.from_tag("obverse-photo") is ColumnKind.OBVERSE_PHOTO
    with pytest.raises(ConfigError):
        ColumnKind.from_tag("price")
