"""
Loading of the raw Google Trends, Scorecard and crosswalk files.

Uses DuckDB to read the delimited files and hands back pandas tables that
conform to the record types in schemas.py.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import duckdb
import pandas as pd

from .config import AnalysisSettings
from .schemas import (
    NAME_LINK,
    NAME_LINK_SOURCE_COLUMNS,
    OUTCOME_RECORD,
    OUTCOME_SOURCE_COLUMNS,
    SEARCH_RECORD,
    SEARCH_SOURCE_COLUMNS,
    normalize_column_names,
)

logger = logging.getLogger(__name__)


class DataLoadError(ValueError):
    """An input file exists but cannot be read as the expected table."""


@dataclass
class SourceTables:
    """The three raw inputs, already mapped to canonical record types."""

    search: pd.DataFrame
    outcomes: pd.DataFrame
    name_link: pd.DataFrame
    paths: list[Path]


def _sql_path(path: Path) -> str:
    return str(path).replace(chr(92), "/").replace("'", "''")


def read_delimited(paths: Iterable[Path]) -> pd.DataFrame:
    """
    Read one or more delimited files into a single all-text DataFrame.

    Files are unioned by column name. The DuckDB connection is closed
    whether or not the read succeeds.

    Raises:
        FileNotFoundError: If any path does not exist
        DataLoadError: If DuckDB cannot parse a file
    """
    paths = [Path(p) for p in paths]
    for path in paths:
        if not path.is_file():
            raise FileNotFoundError(f"Input file not found: {path}")

    file_list = ", ".join(f"'{_sql_path(p)}'" for p in paths)
    query = f"""
        SELECT *
        FROM read_csv_auto([{file_list}],
                           header=true,
                           all_varchar=true,
                           union_by_name=true)
    """

    con = duckdb.connect()
    try:
        df = con.execute(query).df()
    except duckdb.Error as e:
        names = ", ".join(p.name for p in paths)
        raise DataLoadError(f"Could not parse {names} as delimited data: {e}") from e
    finally:
        con.close()

    return normalize_column_names(df)


def _require_columns(df: pd.DataFrame, required: Iterable[str], source: str) -> None:
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise DataLoadError(f"{source} is missing required columns: {missing}")


def find_trends_files(directory: Path, prefix: str) -> list[Path]:
    """
    Locate the Google Trends keyword files in a directory.

    Returns:
        Matching paths sorted by name

    Raises:
        FileNotFoundError: If the directory or any matching file is missing
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"Trends directory not found: {directory}")

    matches = sorted(directory.glob(f"{prefix}*.csv"))
    if not matches:
        raise FileNotFoundError(
            f"No Google Trends files found in {directory}. "
            f"Expected file matching pattern: {prefix}*.csv"
        )
    return matches


def load_search_records(paths: Iterable[Path]) -> pd.DataFrame:
    """Load and stack the Trends files as SearchRecord rows."""
    paths = list(paths)
    raw = read_delimited(paths)
    _require_columns(raw, SEARCH_SOURCE_COLUMNS, "Google Trends files")

    search = SEARCH_RECORD.conform(raw.rename(columns=SEARCH_SOURCE_COLUMNS))
    logger.info(f"Loaded {len(search):,} search rows from {len(paths)} trends files")
    return search


def load_outcomes(path: Path, earnings_column: str) -> pd.DataFrame:
    """
    Load the Scorecard table as OutcomeRecord rows.

    The earnings column is matched case-insensitively. Suppression
    sentinels such as "PrivacySuppressed" and "NULL" become missing.
    """
    raw = read_delimited([path])
    earnings_key = earnings_column.strip().lower()
    _require_columns(raw, [*OUTCOME_SOURCE_COLUMNS, earnings_key], Path(path).name)

    columns = {**OUTCOME_SOURCE_COLUMNS, earnings_key: "reported_earnings"}
    outcomes = OUTCOME_RECORD.conform(raw.rename(columns=columns))

    n_missing = int(outcomes["reported_earnings"].isna().sum())
    logger.info(
        f"Loaded {len(outcomes):,} Scorecard rows "
        f"({n_missing:,} without reported earnings)"
    )
    return outcomes


def load_name_link(path: Path) -> pd.DataFrame:
    """Load the school name to UNITID/OPEID crosswalk as NameLink rows."""
    raw = read_delimited([path])
    _require_columns(raw, NAME_LINK_SOURCE_COLUMNS, Path(path).name)

    name_link = NAME_LINK.conform(raw.rename(columns=NAME_LINK_SOURCE_COLUMNS))
    logger.info(f"Loaded {len(name_link):,} crosswalk rows")
    return name_link


def load_sources(settings: AnalysisSettings) -> SourceTables:
    """Load all three inputs declared in the settings."""
    trends_files = find_trends_files(settings.trends_dir, settings.trends_prefix)

    return SourceTables(
        search=load_search_records(trends_files),
        outcomes=load_outcomes(settings.scorecard_path, settings.earnings_column),
        name_link=load_name_link(settings.id_link_path),
        paths=[*trends_files, Path(settings.scorecard_path), Path(settings.id_link_path)],
    )
