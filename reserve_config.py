"""Configuration for the reserve engine and its front-end.

Settings come from a TOML file (``RESERVE_CONFIG`` or ``config.toml``), with a
few environment variables taking precedence, e.g.::

    data_path = "data.json"
    min_weeks_per_prescription = 4
    count_hidden_in_pill_counts = false

    [column_profiles]
    compact = ["trade-name", "remaining", "dosage"]
"""
import logging
import os
import tomllib
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from reserve_errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.toml"
DEFAULT_MIN_WEEKS = 4


class ColumnKind(Enum):
    OBVERSE_PHOTO = "obverse-photo"
    REVERSE_PHOTO = "reverse-photo"
    TRADE_NAME = "trade-name"
    COMPONENTS = "components"
    DESCRIPTION = "description"
    REMAINING = "remaining"
    PRESCRIPTION = "prescription"
    DOSAGE = "dosage"
    REPLENISH = "replenish"

    @classmethod
    def from_tag(cls, tag: str) -> "ColumnKind":
        try:
            return cls(tag)
        except ValueError:
            raise ConfigError(f"unknown column tag {tag!r}") from None


DEFAULT_COLUMNS: List[ColumnKind] = list(ColumnKind)


@dataclass
class ReserveConfig:
    data_path: str = "data.json"
    min_weeks_per_prescription: int = DEFAULT_MIN_WEEKS
    # Whether hidden drugs still add to the daily pill totals.
    count_hidden_in_pill_counts: bool = False
    column_profiles: Dict[str, List[ColumnKind]] = field(default_factory=dict)

    def columns_for(self, profile: Optional[str]) -> List[ColumnKind]:
        """Columns of the named profile, or every column when the name is unknown."""
        if profile and profile in self.column_profiles:
            return list(self.column_profiles[profile])
        return list(DEFAULT_COLUMNS)


def _parse_int(name: str, value) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


def config_from_mapping(data: dict) -> ReserveConfig:
    """Validate a parsed TOML document into a ReserveConfig."""
    profiles = {}
    raw_profiles = data.get("column_profiles", {})
    if not isinstance(raw_profiles, dict):
        raise ConfigError("column_profiles must be a table")
    for name, tags in raw_profiles.items():
        if not isinstance(tags, list):
            raise ConfigError(f"column profile {name!r} must be a list of tags")
        profiles[name] = [ColumnKind.from_tag(t) for t in tags]

    hidden = data.get("count_hidden_in_pill_counts", False)
    if not isinstance(hidden, bool):
        raise ConfigError("count_hidden_in_pill_counts must be true or false")

    config = ReserveConfig(
        data_path=str(data.get("data_path", "data.json")),
        min_weeks_per_prescription=_parse_int(
            "min_weeks_per_prescription", data.get("min_weeks_per_prescription", DEFAULT_MIN_WEEKS)
        ),
        count_hidden_in_pill_counts=hidden,
        column_profiles=profiles,
    )
    if config.min_weeks_per_prescription < 0:
        raise ConfigError("min_weeks_per_prescription must not be negative")
    return config


def load_config(path: Optional[str] = None) -> ReserveConfig:
    """Load the TOML configuration and apply environment overrides.

    Lookup order for the file: ``path``, ``$RESERVE_CONFIG``, ``config.toml``
    when present; with none of these the defaults are used.
    """
    path = path or os.environ.get("RESERVE_CONFIG")
    if not path and os.path.exists(DEFAULT_CONFIG_PATH):
        path = DEFAULT_CONFIG_PATH

    data: dict = {}
    if path:
        try:
            with open(path, "rb") as fh:
                data = tomllib.load(fh)
        except OSError as e:
            raise ConfigError(f"failed to open config file {path}: {e}") from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"failed to parse config file {path}: {e}") from e
        logger.debug("read configuration from %s", path)

    env_data_path = os.environ.get("RESERVE_DATA_PATH")
    if env_data_path:
        data["data_path"] = env_data_path
    env_min_weeks = os.environ.get("RESERVE_MIN_WEEKS")
    if env_min_weeks:
        data["min_weeks_per_prescription"] = env_min_weeks

    return config_from_mapping(data)
