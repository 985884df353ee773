"""
Within-institution standardization of weekly search interest.
"""

import logging

import numpy as np
import pandas as pd

from .config import STANDARDIZED_DECIMALS

logger = logging.getLogger(__name__)


def standardize_within(
    df: pd.DataFrame,
    group: str = "institution_name",
    value: str = "total_index",
    output: str = "standardized_index",
    decimals: int = STANDARDIZED_DECIMALS,
) -> pd.DataFrame:
    """
    Z-score a column within each group.

    Uses the sample mean and sample standard deviation (ddof=1) of the
    group's non-missing values. Groups with fewer than two observations or
    zero spread have no defined z-score; their rows get NaN and are left for
    the final completeness filter to remove.

    Args:
        df: Table with group and value columns
        group: Column identifying the series to standardize within
        value: Column to standardize
        output: Name of the new column
        decimals: Rounding applied to the z-score

    Returns:
        Copy of df with the output column added
    """
    grouped = df.groupby(group)[value]
    mean = grouped.transform("mean")
    sd = grouped.transform("std")
    count = grouped.transform("count")

    undefined = (count < 2) | sd.isna() | (sd.abs() < 1e-12)
    z = ((df[value] - mean) / sd).where(~undefined, np.nan).round(decimals)

    n_groups = df.loc[undefined & df[group].notna(), group].nunique()
    if n_groups:
        logger.warning(
            f"{n_groups:,} institutions have fewer than two weeks or constant "
            f"search interest; their standardized index is left missing"
        )

    return df.assign(**{output: z.astype("float64")})
