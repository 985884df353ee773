"""
End-to-end analysis pipeline.

Runs load -> link -> aggregate -> rebuild -> standardize -> label ->
estimate -> report, and writes a manifest recording the inputs,
outputs and parameters of the run for reproducibility.
"""

import hashlib
import json
import logging
import subprocess
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from .config import OUTPUTS_DIR, PROJECT_ROOT, AnalysisSettings
from .estimation import EstimationError, RegressionResult, cell_means, fit_interaction_model
from .labeling import build_final_table
from .linking import build_joined_table
from .loading import load_sources
from .plotting import plot_group_trends
from .report import write_report
from .weekly import aggregate_weekly

logger = logging.getLogger(__name__)

PLOT_NAME = "search_interest_by_group.png"
FINAL_TABLE_NAME = "final_table.parquet"


@dataclass
class AnalysisOutputs:
    """
    Everything a run produces.

    result is None when the final table cannot identify the interaction
    model (for example when no Trends rows linked to an institution).
    """

    final: pd.DataFrame
    result: Optional[RegressionResult]
    cells: pd.DataFrame
    row_counts: dict[str, int]
    paths: dict[str, Path] = field(default_factory=dict)
    estimation_error: Optional[str] = None

    @property
    def estimated(self) -> bool:
        return self.result is not None


def get_git_info() -> dict:
    """Commit hash and working-tree state of the checkout, if any."""
    def _git(*args: str) -> str:
        return subprocess.check_output(
            ["git", *args],
            cwd=PROJECT_ROOT,
            stderr=subprocess.DEVNULL,
        ).decode().strip()

    try:
        return {
            "commit": _git("rev-parse", "HEAD"),
            "dirty": bool(_git("status", "--porcelain")),
        }
    except (OSError, subprocess.CalledProcessError):
        return {"commit": None, "dirty": None}


def compute_file_hash(path: Path, chunk_size: int = 1 << 16) -> Optional[str]:
    """SHA256 of a file's bytes, or None if it is not a regular file."""
    path = Path(path)
    if not path.is_file():
        return None

    digest = hashlib.sha256()
    with open(path, "rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            digest.update(chunk)
    return digest.hexdigest()


def _file_entries(paths: dict[str, Path]) -> dict[str, dict]:
    return {
        name: {"path": str(path), "sha256": compute_file_hash(path)}
        for name, path in sorted(paths.items())
    }


def generate_output_manifest(
    report_path: Path,
    inputs: list[Path],
    outputs: dict[str, Path],
    parameters: dict,
    row_counts: dict[str, int],
    estimation: dict,
    settings_source: Optional[Path] = None,
) -> Path:
    """
    Write ``<report>.manifest.json`` describing one run.

    Args:
        report_path: Path to the Markdown report
        inputs: Raw input files read by the run
        outputs: Artifacts written by the run, keyed by name
        parameters: Analysis settings used
        row_counts: Row counts per pipeline stage
        estimation: Fit status and, when fitted, the treatment effect
        settings_source: YAML file the settings came from, if any

    Returns:
        Path to the manifest file
    """
    manifest = {
        "report": str(report_path),
        "created_at": datetime.now().isoformat(),
        "code_version": get_git_info(),
        "settings_source": str(settings_source) if settings_source else "defaults",
        "parameters": parameters,
        "inputs": [
            {"path": str(p), "sha256": compute_file_hash(p)}
            for p in inputs
        ],
        "outputs": _file_entries(outputs),
        "row_counts": row_counts,
        "estimation": estimation,
    }

    manifest_path = report_path.parent / f"{report_path.name}.manifest.json"
    with open(manifest_path, "w") as f:
        json.dump(manifest, f, indent=2, default=str)

    return manifest_path


def _estimation_summary(result: Optional[RegressionResult], error: Optional[str]) -> dict:
    if result is None:
        return {"status": "not_identified", "reason": error}
    return {
        "status": "fitted",
        "n_obs": result.n_obs,
        "treatment_effect": result.treatment_effect,
        "r_squared": result.r_squared,
    }


def run_analysis(
    settings: AnalysisSettings,
    output_dir: Optional[Path] = None,
    make_plot: bool = True,
    settings_source: Optional[Path] = None,
) -> AnalysisOutputs:
    """
    Run the full analysis.

    An empty or unbalanced final table is not fatal: the cross-tab, final
    table, report and manifest are still written, and the returned
    outputs carry ``result=None`` with the reason in ``estimation_error``.

    Args:
        settings: Input paths and analysis parameters
        output_dir: Directory for the report, tables and chart
        make_plot: Whether to render the trend chart
        settings_source: YAML file the settings were read from, recorded
            in the manifest

    Returns:
        AnalysisOutputs with the final table, regression result and paths

    Raises:
        FileNotFoundError: If an input file is missing
        DataLoadError: If an input file cannot be parsed
    """
    output_dir = Path(output_dir or OUTPUTS_DIR)

    sources = load_sources(settings)
    linked = build_joined_table(
        sources.name_link,
        sources.search,
        sources.outcomes,
        degree_code=settings.degree_code,
    )
    weekly = aggregate_weekly(linked.joined)
    final = build_final_table(
        weekly,
        linked.name_link,
        linked.bachelors,
        event_date=settings.event_date,
        earnings_threshold=settings.earnings_threshold,
    )

    row_counts = {
        "search": len(sources.search),
        "outcomes": len(sources.outcomes),
        "name_link": len(sources.name_link),
        "name_link_unique": len(linked.name_link),
        "bachelors": len(linked.bachelors),
        "joined": len(linked.joined),
        "weekly": len(weekly),
        "final": len(final),
    }

    cells = cell_means(final)
    result = None
    estimation_error = None
    try:
        result = fit_interaction_model(final)
    except EstimationError as e:
        estimation_error = str(e)
        logger.warning(f"Interaction model not estimated: {e}")

    plot_path = None
    if make_plot:
        plot_path = plot_group_trends(
            final,
            event_date=settings.event_date,
            output_path=output_dir / PLOT_NAME,
        )

    paths = write_report(
        result,
        cells,
        output_dir,
        event_date=settings.event_date,
        earnings_threshold=settings.earnings_threshold,
        n_institutions=final["institution_name"].nunique(),
        n_rows=len(final),
        plot_path=plot_path,
    )
    if plot_path is not None:
        paths["plot"] = plot_path

    final_path = output_dir / FINAL_TABLE_NAME
    final.to_parquet(final_path, index=False)
    paths["final_table"] = final_path

    paths["manifest"] = generate_output_manifest(
        paths["report"],
        inputs=sources.paths,
        outputs=paths,
        parameters=asdict(settings),
        row_counts=row_counts,
        estimation=_estimation_summary(result, estimation_error),
        settings_source=settings_source,
    )
    logger.info(f"Report written to {paths['report']}")

    return AnalysisOutputs(
        final=final,
        result=result,
        cells=cells,
        row_counts=row_counts,
        paths=paths,
        estimation_error=estimation_error,
    )
