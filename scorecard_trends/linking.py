"""
Linking Google Trends rows to Scorecard institutions.

The crosswalk links a school name to its UNITID/OPEID pair. Names that
map to more than one pair are ambiguous and are excluded before any join.
Joins are declared as JoinSpec values so the key columns, join kind and
handling of overlapping columns are explicit at every call site.
"""

import logging
from dataclasses import dataclass
from typing import Literal, Optional

import pandas as pd

from .config import BACHELORS_DEGREE_CODE
from .schemas import JOINED_RECORD, NAME_LINK, OUTCOME_RECORD

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JoinSpec:
    """
    Declared equi-join.

    Attributes:
        keys: Columns that must be equal on both sides
        how: Join kind ("inner" or "left")
        prefer: Side whose copy of an overlapping non-key column is kept
        validate: Optional pandas merge cardinality check
    """

    keys: tuple[str, ...]
    how: Literal["inner", "left"] = "inner"
    prefer: Literal["left", "right"] = "left"
    validate: Optional[str] = None


# (a) crosswalk x trends
NAME_JOIN = JoinSpec(keys=("institution_name",), how="inner")

# (c) linked trends x bachelor's outcomes; both ids must agree
COMPOSITE_ID_JOIN = JoinSpec(keys=("unit_id", "operator_id"), how="inner")


@dataclass
class LinkedTables:
    """Intermediate tables produced while linking."""

    name_link: pd.DataFrame
    bachelors: pd.DataFrame
    joined: pd.DataFrame


def apply_join(left: pd.DataFrame, right: pd.DataFrame, spec: JoinSpec) -> pd.DataFrame:
    """
    Join two tables according to a JoinSpec.

    Overlapping non-key columns are resolved by spec.prefer: only the
    preferred side's column survives, so no suffixed duplicates appear.
    Rows with a missing key never match anything.
    """
    keys = list(spec.keys)
    for side, df in (("left", left), ("right", right)):
        missing = [k for k in keys if k not in df.columns]
        if missing:
            raise KeyError(f"Join keys {missing} not in {side} table")

    overlap = [c for c in left.columns if c in right.columns and c not in keys]
    if spec.prefer == "left":
        right = right.drop(columns=overlap)
    else:
        left = left.drop(columns=overlap)

    right = right.dropna(subset=keys)
    if spec.how == "inner":
        left = left.dropna(subset=keys)

    return left.merge(right, on=keys, how=spec.how, validate=spec.validate)


def deduplicate_name_link(name_link: pd.DataFrame) -> pd.DataFrame:
    """
    Keep only crosswalk names that occur exactly once.

    A name listed against several UNITID/OPEID pairs cannot be used as a
    join key, so every row for that name is discarded.
    """
    group_size = name_link.groupby("institution_name")["institution_name"].transform("size")
    unique = name_link[group_size == 1]

    n_dropped = name_link["institution_name"].nunique() - len(unique)
    if n_dropped:
        logger.info(f"Dropped {n_dropped:,} ambiguous school names from crosswalk")

    return NAME_LINK.conform(unique)


def filter_bachelors(
    outcomes: pd.DataFrame,
    degree_code: int = BACHELORS_DEGREE_CODE,
) -> pd.DataFrame:
    """Keep Scorecard rows for predominantly bachelor's-granting institutions."""
    keep = outcomes["predominant_degree_code"].eq(degree_code).fillna(False).astype(bool)
    bachelors = OUTCOME_RECORD.conform(outcomes[keep])
    logger.info(f"Kept {len(bachelors):,} of {len(outcomes):,} Scorecard rows with PREDDEG={degree_code}")
    return bachelors


def link_search_records(name_link: pd.DataFrame, search: pd.DataFrame) -> pd.DataFrame:
    """Attach UNITID/OPEID to every Trends row whose school name is in the crosswalk."""
    return apply_join(name_link, search, NAME_JOIN)


def attach_outcomes(linked: pd.DataFrame, bachelors: pd.DataFrame) -> pd.DataFrame:
    """Attach earnings where both UNITID and OPEID match a bachelor's institution."""
    return apply_join(linked, bachelors, COMPOSITE_ID_JOIN)


def build_joined_table(
    name_link: pd.DataFrame,
    search: pd.DataFrame,
    outcomes: pd.DataFrame,
    degree_code: int = BACHELORS_DEGREE_CODE,
) -> LinkedTables:
    """
    Run deduplication and the three sequential joins.

    An empty result is a valid outcome: the returned JoinedRecord table
    then has zero rows but the full column set.
    """
    unique_links = deduplicate_name_link(name_link)
    bachelors = filter_bachelors(outcomes, degree_code)

    linked = link_search_records(unique_links, search)
    joined = attach_outcomes(linked, bachelors)

    if joined.empty:
        logger.warning("No Trends rows matched a bachelor's institution on UNITID and OPEID")
        joined = JOINED_RECORD.empty()
    else:
        joined = JOINED_RECORD.conform(joined)
        logger.info(
            f"Joined {len(joined):,} Trends rows for "
            f"{joined['operator_id'].nunique():,} institutions"
        )

    return LinkedTables(name_link=unique_links, bachelors=bachelors, joined=joined)
