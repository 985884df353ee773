"""
Difference-in-differences estimation on the final institution-week table.

standardized_index ~ after_event + high_earnings + after_event:high_earnings

The interaction coefficient is the treatment effect: the change in
search interest after the Scorecard release for high-earnings colleges
relative to the change for the rest.
"""

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf

logger = logging.getLogger(__name__)

FORMULA = "standardized_index ~ after_event * high_earnings"

# statsmodels term name -> reported name
TERM_LABELS = {
    "Intercept": "intercept",
    "after_event": "after_event",
    "high_earnings": "high_earnings",
    "after_event:high_earnings": "after_event:high_earnings",
}

INTERACTION_TERM = "after_event:high_earnings"


class EstimationError(ValueError):
    """The final table cannot identify the interaction model."""


@dataclass
class RegressionResult:
    """Coefficient table and fit statistics for the interaction model."""

    coefficients: pd.DataFrame
    n_obs: int
    r_squared: float
    formula: str = FORMULA

    @property
    def treatment_effect(self) -> float:
        return float(self.coefficients.loc[INTERACTION_TERM, "estimate"])


def significance_stars(p_value: float) -> str:
    """Conventional significance codes for a p-value."""
    if p_value is None or np.isnan(p_value):
        return ""
    if p_value < 0.001:
        return "***"
    if p_value < 0.01:
        return "**"
    if p_value < 0.05:
        return "*"
    if p_value < 0.1:
        return "."
    return ""


def _design_frame(final: pd.DataFrame) -> pd.DataFrame:
    return pd.DataFrame({
        "standardized_index": final["standardized_index"].astype(float),
        "after_event": final["after_event"].astype(int),
        "high_earnings": final["high_earnings"].astype(int),
    })


def fit_interaction_model(final: pd.DataFrame) -> RegressionResult:
    """
    Fit the OLS interaction model.

    Raises:
        EstimationError: If any of the four before/after x low/high cells
            is empty, since the interaction is then not identified
    """
    data = _design_frame(final)

    cell_counts = data.groupby(["after_event", "high_earnings"]).size()
    expected = pd.MultiIndex.from_product([[0, 1], [0, 1]], names=["after_event", "high_earnings"])
    cell_counts = cell_counts.reindex(expected, fill_value=0)
    if (cell_counts == 0).any():
        empty_cells = [f"after_event={a}, high_earnings={h}" for (a, h), n in cell_counts.items() if n == 0]
        raise EstimationError(
            f"Cannot estimate interaction model with {len(data):,} rows; "
            f"empty cells: {empty_cells}"
        )

    model = smf.ols(FORMULA, data=data).fit()

    coefficients = pd.DataFrame({
        "estimate": model.params,
        "std_error": model.bse,
        "t_value": model.tvalues,
        "p_value": model.pvalues,
    }).rename(index=TERM_LABELS)
    coefficients = coefficients.loc[list(TERM_LABELS.values())]
    coefficients["stars"] = coefficients["p_value"].map(significance_stars)
    coefficients.index.name = "term"

    result = RegressionResult(
        coefficients=coefficients,
        n_obs=int(model.nobs),
        r_squared=float(model.rsquared),
    )
    logger.info(
        f"OLS on {result.n_obs:,} rows: interaction = {result.treatment_effect:.4f} "
        f"(p = {coefficients.loc[INTERACTION_TERM, 'p_value']:.4g})"
    )
    return result


def cell_means(final: pd.DataFrame) -> pd.DataFrame:
    """Mean standardized index by after_event (rows) and high_earnings (columns)."""
    levels = [False, True]
    if final.empty:
        return pd.DataFrame(
            np.nan,
            index=pd.Index(levels, name="after_event"),
            columns=pd.Index(levels, name="high_earnings"),
        )

    table = final.pivot_table(
        index="after_event",
        columns="high_earnings",
        values="standardized_index",
        aggfunc="mean",
    )
    return table.reindex(index=levels, columns=levels)


def double_difference(cells: pd.DataFrame) -> float:
    """(high after - high before) - (low after - low before) from a 2x2 cell table."""
    high_change = cells.loc[True, True] - cells.loc[False, True]
    low_change = cells.loc[True, False] - cells.loc[False, False]
    return float(high_change - low_change)
