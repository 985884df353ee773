"""
Weekly aggregation of Trends rows and reattachment of institution attributes.

Trends files carry one row per keyword per period. Aggregation collapses
them to one total per institution-week, which discards the name, UNITID
and earnings columns; reconstruct_attributes() joins those back on OPEID.
"""

import logging

import pandas as pd

from .config import WEEK_START_DAY
from .linking import JoinSpec, apply_join
from .schemas import RECONSTRUCTED_RECORD, WEEKLY_AGGREGATE

logger = logging.getLogger(__name__)

WEEKDAY_INDEX = {"MON": 0, "TUE": 1, "WED": 2, "THU": 3, "FRI": 4, "SAT": 5, "SUN": 6}

# Leading ISO date of labels such as "2015-08-30 - 2015-09-05"
PERIOD_START_PATTERN = r"^\s*(\d{4}-\d{2}-\d{2})"

# Crosswalk x outcomes; the crosswalk's UNITID is the one kept
ATTRIBUTE_JOIN = JoinSpec(keys=("operator_id",), how="left", prefer="left")

# Weekly totals x one attribute row per OPEID
WEEKLY_ATTRIBUTE_JOIN = JoinSpec(
    keys=("operator_id",),
    how="left",
    prefer="left",
    validate="many_to_one",
)


def floor_to_week(dates: pd.Series, week_start: str = WEEK_START_DAY) -> pd.Series:
    """Round dates down to the first day of their week."""
    start = WEEKDAY_INDEX[week_start.upper()]
    offset = (dates.dt.dayofweek - start) % 7
    return (dates - pd.to_timedelta(offset, unit="D")).dt.normalize()


def parse_week_start(period_labels: pd.Series, week_start: str = WEEK_START_DAY) -> pd.Series:
    """
    Derive the week start date from each period label.

    Labels whose leading substring is not a valid calendar date give NaT.
    """
    leading = period_labels.astype("string").str.extract(PERIOD_START_PATTERN, expand=False)
    dates = pd.to_datetime(leading, format="%Y-%m-%d", errors="coerce")
    return floor_to_week(dates, week_start)


def aggregate_weekly(joined: pd.DataFrame, week_start: str = WEEK_START_DAY) -> pd.DataFrame:
    """
    Sum the search index of every keyword row per (week, OPEID).

    Missing index values count as zero. Rows with an unparseable period
    label are excluded.
    """
    if joined.empty:
        return WEEKLY_AGGREGATE.empty()

    weeks = parse_week_start(joined["period_label"], week_start)
    bad = weeks.isna()
    if bad.any():
        logger.warning(f"Skipped {int(bad.sum()):,} rows with unparseable period labels")

    rows = joined.loc[~bad, ["operator_id", "search_index"]].assign(
        week_start_date=weeks[~bad]
    )
    if rows.empty:
        return WEEKLY_AGGREGATE.empty()

    weekly = (
        rows.groupby(["week_start_date", "operator_id"], as_index=False)["search_index"]
        .sum(min_count=0)
        .rename(columns={"search_index": "total_index"})
        .sort_values(["operator_id", "week_start_date"], kind="mergesort")
    )

    logger.info(
        f"Aggregated {len(rows):,} keyword rows into {len(weekly):,} institution-weeks"
    )
    return WEEKLY_AGGREGATE.conform(weekly)


def build_attribute_table(name_link: pd.DataFrame, bachelors: pd.DataFrame) -> pd.DataFrame:
    """One row of name, UNITID, degree code and earnings per OPEID."""
    attributes = apply_join(name_link, bachelors, ATTRIBUTE_JOIN)
    return (
        attributes.dropna(subset=["operator_id"])
        .sort_values(["operator_id", "institution_name", "unit_id"], kind="mergesort")
        .drop_duplicates(subset="operator_id", keep="first")
        .reset_index(drop=True)
    )


def reconstruct_attributes(
    weekly: pd.DataFrame,
    name_link: pd.DataFrame,
    bachelors: pd.DataFrame,
) -> pd.DataFrame:
    """
    Join the attributes dropped by aggregation back onto the weekly totals.

    Weekly rows with no matching OPEID keep null attributes.
    """
    attributes = build_attribute_table(name_link, bachelors)
    rebuilt = apply_join(weekly, attributes, WEEKLY_ATTRIBUTE_JOIN)

    n_unmatched = int(rebuilt["institution_name"].isna().sum())
    if n_unmatched:
        logger.info(f"{n_unmatched:,} institution-weeks have no crosswalk attributes")

    return RECONSTRUCTED_RECORD.conform(rebuilt)


def flag_earnings_class(df: pd.DataFrame, threshold: float) -> pd.DataFrame:
    """
    Add earnings_class_flag: 1 at or above the threshold, 0 below.

    Missing earnings leave the flag missing rather than defaulting a class.
    """
    earnings = df["reported_earnings"]
    flag = (earnings >= threshold).astype("Int64").mask(earnings.isna())
    return df.assign(earnings_class_flag=flag)
