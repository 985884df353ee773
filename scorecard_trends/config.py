"""
Configuration management for the Scorecard search-interest analysis.

Handles paths, constants, and loading of YAML configuration files.
"""

from dataclasses import dataclass, fields, replace
from datetime import date
from pathlib import Path
from typing import Any, Optional

import yaml

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = PROJECT_ROOT / "data"
RAW_DATA_DIR = DATA_DIR / "raw"
TRENDS_RAW_DIR = RAW_DATA_DIR / "google_trends"

# Config directory
CONFIG_DIR = PROJECT_ROOT / "config"

# Output directory
OUTPUTS_DIR = PROJECT_ROOT / "outputs"

# Raw input files
TRENDS_FILE_PREFIX = "trends_up_to_"
SCORECARD_CSV = RAW_DATA_DIR / "Most+Recent+Cohorts+(Scorecard+Elements).csv"
ID_NAME_LINK_CSV = RAW_DATA_DIR / "id_name_link.csv"

# Scorecard release (treatment boundary)
EVENT_DATE = date(2015, 8, 31)

# Median earnings of graduates ten years after entry
EARNINGS_COLUMN = "md_earn_wne_p10-REPORTED-EARNINGS"
HIGH_EARNINGS_THRESHOLD = 75000.0

# PREDDEG == 3: predominantly bachelor's-degree granting
BACHELORS_DEGREE_CODE = 3

# Weeks start on Sunday
WEEK_START_DAY = "SUN"

# Decimal places kept on the standardized index
STANDARDIZED_DECIMALS = 3


class SettingsError(ValueError):
    """A setting is unknown or its value cannot be parsed."""


@dataclass(frozen=True)
class AnalysisSettings:
    """Inputs and parameters for one analysis run."""

    trends_dir: Path = TRENDS_RAW_DIR
    trends_prefix: str = TRENDS_FILE_PREFIX
    scorecard_path: Path = SCORECARD_CSV
    id_link_path: Path = ID_NAME_LINK_CSV
    event_date: date = EVENT_DATE
    earnings_column: str = EARNINGS_COLUMN
    earnings_threshold: float = HIGH_EARNINGS_THRESHOLD
    degree_code: int = BACHELORS_DEGREE_CODE

    def with_overrides(self, **overrides: Any) -> "AnalysisSettings":
        """Return a copy with non-None overrides applied and coerced."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise SettingsError(f"Unknown analysis settings: {sorted(unknown)}")

        values = {k: v for k, v in overrides.items() if v is not None}
        for key in ("trends_dir", "scorecard_path", "id_link_path"):
            if key in values:
                values[key] = Path(values[key])
        try:
            if "event_date" in values and not isinstance(values["event_date"], date):
                values["event_date"] = date.fromisoformat(str(values["event_date"]))
            if "earnings_threshold" in values:
                values["earnings_threshold"] = float(values["earnings_threshold"])
            if "degree_code" in values:
                values["degree_code"] = int(values["degree_code"])
        except (TypeError, ValueError) as e:
            raise SettingsError(f"Bad setting value: {e}") from e

        return replace(self, **values)


def load_yaml_config(config_name: str, config_dir: Optional[Path] = None) -> dict[str, Any]:
    """
    Load a YAML configuration file from the config directory.

    Args:
        config_name: Name of the config file (with or without .yaml extension)
        config_dir: Directory to look in. Defaults to CONFIG_DIR.

    Returns:
        Dictionary containing the configuration
    """
    if not config_name.endswith(".yaml"):
        config_name = f"{config_name}.yaml"

    config_path = (config_dir or CONFIG_DIR) / config_name

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_settings(config_path: Optional[Path] = None, **overrides: Any) -> AnalysisSettings:
    """
    Build analysis settings from defaults, an optional YAML file and overrides.

    Relative paths in the YAML file are resolved against PROJECT_ROOT.
    Explicit keyword overrides win over the file.
    """
    settings = AnalysisSettings()

    if config_path is not None:
        config_path = Path(config_path)
        raw = load_yaml_config(config_path.name, config_dir=config_path.parent)
        for key in ("trends_dir", "scorecard_path", "id_link_path"):
            if key in raw and not Path(raw[key]).is_absolute():
                raw[key] = PROJECT_ROOT / raw[key]
        settings = settings.with_overrides(**raw)

    return settings.with_overrides(**overrides)

