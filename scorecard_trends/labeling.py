"""
Treatment and group labels, and assembly of the regression-ready table.
"""

import logging
from datetime import date

import pandas as pd

from .config import EVENT_DATE, HIGH_EARNINGS_THRESHOLD
from .schemas import FINAL_RECORD
from .standardize import standardize_within
from .weekly import flag_earnings_class, reconstruct_attributes

logger = logging.getLogger(__name__)


def label_treatment(df: pd.DataFrame, event_date: date = EVENT_DATE) -> pd.DataFrame:
    """
    Add the after_event and high_earnings indicators.

    after_event: the week starts on or after the event date.
    high_earnings: the earnings class flag is positive (missing stays missing).
    """
    return df.assign(
        after_event=df["week_start_date"] >= pd.Timestamp(event_date),
        high_earnings=df["earnings_class_flag"].gt(0),
    )


def build_final_table(
    weekly: pd.DataFrame,
    name_link: pd.DataFrame,
    bachelors: pd.DataFrame,
    event_date: date = EVENT_DATE,
    earnings_threshold: float = HIGH_EARNINGS_THRESHOLD,
) -> pd.DataFrame:
    """
    Turn weekly totals into FinalRecord rows ready for estimation.

    Reattaches attributes, flags the earnings class, standardizes within
    institution, labels treatment, then drops every row with a missing
    value in any FinalRecord column.
    """
    rebuilt = reconstruct_attributes(weekly, name_link, bachelors)
    flagged = flag_earnings_class(rebuilt, earnings_threshold)
    standardized = standardize_within(flagged)
    labeled = label_treatment(standardized, event_date)

    columns = FINAL_RECORD.column_names
    complete = labeled.dropna(subset=columns)
    n_dropped = len(labeled) - len(complete)
    if n_dropped:
        logger.info(f"Dropped {n_dropped:,} incomplete institution-weeks")

    if complete.empty:
        logger.warning("No complete institution-weeks remain for estimation")
        return FINAL_RECORD.empty()

    complete = complete.sort_values(["institution_name", "week_start_date"], kind="mergesort")
    final = FINAL_RECORD.conform(complete)
    logger.info(
        f"Final table: {len(final):,} institution-weeks for "
        f"{final['institution_name'].nunique():,} institutions"
    )
    return final
