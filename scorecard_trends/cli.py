"""
Command-line entry point.

Usage:
    scorecard-trends [OPTIONS]

Examples:
    scorecard-trends --config config/analysis.yaml
    scorecard-trends --trends-dir data/raw/google_trends --no-plot
"""

import logging
import sys
from pathlib import Path

import click

from .config import OUTPUTS_DIR, SettingsError, load_settings
from .loading import DataLoadError
from .pipeline import run_analysis


@click.command()
@click.option("--trends-dir", type=click.Path(path_type=Path), help="Directory of Google Trends files")
@click.option("--scorecard", type=click.Path(path_type=Path), help="Scorecard elements CSV")
@click.option("--id-link", type=click.Path(path_type=Path), help="School name to UNITID/OPEID crosswalk CSV")
@click.option("--config", "config_path", type=click.Path(exists=True, path_type=Path), help="YAML settings file")
@click.option(
    "--output-dir",
    type=click.Path(path_type=Path),
    default=OUTPUTS_DIR,
    show_default=True,
    help="Directory for report, tables and chart",
)
@click.option("--event-date", help="Release date as YYYY-MM-DD")
@click.option("--earnings-threshold", type=float, help="Minimum reported earnings for the high group")
@click.option("--no-plot", is_flag=True, help="Skip the trend chart")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def main(
    trends_dir: Path,
    scorecard: Path,
    id_link: Path,
    config_path: Path,
    output_dir: Path,
    event_date: str,
    earnings_threshold: float,
    no_plot: bool,
    verbose: bool,
):
    """Estimate the effect of the Scorecard release on college search interest."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    print("=" * 60)
    print("College Scorecard Release - Search Interest Analysis")
    print("=" * 60)

    try:
        settings = load_settings(
            config_path,
            trends_dir=trends_dir,
            scorecard_path=scorecard,
            id_link_path=id_link,
            event_date=event_date,
            earnings_threshold=earnings_threshold,
        )
    except SettingsError as e:
        print(f"ERROR: Invalid settings: {e}")
        sys.exit(1)

    try:
        outputs = run_analysis(
            settings,
            output_dir=output_dir,
            make_plot=not no_plot,
            settings_source=config_path,
        )
    except (FileNotFoundError, DataLoadError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    if outputs.estimated:
        coefficients = outputs.result.coefficients
        print(f"\nOLS on {outputs.result.n_obs:,} institution-weeks")
        print(coefficients[["estimate", "std_error", "p_value", "stars"]].to_string(float_format="{:.4f}".format))
    else:
        print(f"\nWARNING: Coefficients not estimated: {outputs.estimation_error}")

    print("\n" + "=" * 60)
    print(f"Report: {outputs.paths['report']}")
    print("=" * 60)


if __name__ == "__main__":
    main()
