"""
Static report: cell-means table, coefficient table and trend chart.
"""

from datetime import date
from pathlib import Path
from typing import Optional

import pandas as pd

from .estimation import FORMULA, RegressionResult, double_difference

REPORT_NAME = "report.md"
CELL_MEANS_CSV = "cell_means.csv"
COEFFICIENTS_CSV = "coefficients.csv"


def format_cell_table(cells: pd.DataFrame) -> list[str]:
    """Markdown rows for the 2x2 table of mean standardized index."""
    lines = [
        "| Period | Low earnings | High earnings |",
        "|---|---:|---:|",
    ]
    for after, label in ((False, "Before release"), (True, "After release")):
        low = cells.loc[after, False]
        high = cells.loc[after, True]
        lines.append(f"| {label} | {low:.4f} | {high:.4f} |")
    return lines


def format_coefficient_table(result: RegressionResult) -> list[str]:
    """Markdown rows for the regression coefficients with significance codes."""
    lines = [
        "| Term | Estimate | Std. error | t | p | |",
        "|---|---:|---:|---:|---:|---|",
    ]
    for term, row in result.coefficients.iterrows():
        lines.append(
            f"| {term} | {row['estimate']:.4f} | {row['std_error']:.4f} | "
            f"{row['t_value']:.3f} | {row['p_value']:.4g} | {row['stars']} |"
        )
    return lines


def render_report(
    result: Optional[RegressionResult],
    cells: pd.DataFrame,
    event_date: date,
    earnings_threshold: float,
    n_institutions: int,
    n_rows: int,
    plot_path: Optional[Path] = None,
) -> str:
    """
    Render the Markdown report text.

    With no regression result the cross-tab is still shown and the
    coefficient section says why nothing was estimated.
    """
    lines = [
        "# College Scorecard Release and Search Interest",
        "",
        f"- Event date: {event_date.isoformat()}",
        f"- High-earnings threshold: ${earnings_threshold:,.0f}",
        f"- Institutions: {n_institutions:,}",
        f"- Institution-weeks: {n_rows:,}",
        "",
        "## Mean standardized search index",
        "",
        *format_cell_table(cells),
        "",
        f"Double difference of cell means: {double_difference(cells):.4f}",
        "",
        "## OLS estimates",
        "",
        f"`{FORMULA}`",
        "",
    ]

    if result is None:
        lines.append(
            "Coefficients could not be estimated: at least one "
            "before/after x low/high earnings cell has no rows."
        )
    else:
        lines += [
            *format_coefficient_table(result),
            "",
            f"R-squared: {result.r_squared:.4f}",
            "",
            "Signif. codes: 0 '***' 0.001 '**' 0.01 '*' 0.05 '.' 0.1 ' ' 1",
        ]

    if plot_path is not None:
        lines += [
            "",
            "## Weekly standardized index by group",
            "",
            f"![Search interest by earnings group]({Path(plot_path).name})",
        ]

    return "\n".join(lines) + "\n"


def write_report(
    result: Optional[RegressionResult],
    cells: pd.DataFrame,
    output_dir: Path,
    event_date: date,
    earnings_threshold: float,
    n_institutions: int,
    n_rows: int,
    plot_path: Optional[Path] = None,
) -> dict[str, Path]:
    """
    Write the tables and the Markdown report.

    The coefficient table is skipped when result is None.

    Returns:
        Mapping of artifact name to written path
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    cells_path = output_dir / CELL_MEANS_CSV
    cells.to_csv(cells_path)

    paths = {"cell_means": cells_path}
    if result is not None:
        paths["coefficients"] = output_dir / COEFFICIENTS_CSV
        result.coefficients.to_csv(paths["coefficients"])

    report_path = output_dir / REPORT_NAME
    text = render_report(
        result,
        cells,
        event_date=event_date,
        earnings_threshold=earnings_threshold,
        n_institutions=n_institutions,
        n_rows=n_rows,
        plot_path=plot_path,
    )
    report_path.write_text(text, encoding="utf-8")

    paths["report"] = report_path
    return paths
