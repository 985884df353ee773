"""Shared fixtures: small synthetic Trends, Scorecard and crosswalk files."""

from __future__ import annotations

from datetime import date, timedelta
from pathlib import Path

import pandas as pd
import pytest

from scorecard_trends.config import AnalysisSettings

EARNINGS_HEADER = "md_earn_wne_p10-REPORTED-EARNINGS"

# Eight Sunday-start weeks; the first five fall before 2015-08-31
WEEK_STARTS = [date(2015, 8, 2) + timedelta(weeks=i) for i in range(8)]

CROSSWALK = [
    ("Alpha University", 100001, 1000100),
    ("Beta College", 100002, 1000200),
    ("Gamma Institute", 100003, 1000300),
    ("Delta State", 100004, 1000400),
    ("Dup College", 100005, 1000500),
    ("Dup College", 100006, 1000600),
    ("Epsilon Tech", 100007, 1000700),
]

SCORECARD = [
    # UNITID, OPEID, PREDDEG, earnings
    (100001, "01000100", "3", "80000"),
    (100002, "01000200", "3", "40000"),
    (100003, "01000300", "3", "90000"),
    (100004, "01000400", "3", "PrivacySuppressed"),
    (100005, "01000500", "3", "50000"),
    (100006, "01000600", "3", "55000"),
    (100007, "01000700", "2", "60000"),
]

# Weekly base search interest per school; high earners jump after the release
SCHOOL_LEVELS = {
    "Alpha University": [40, 42, 41, 43, 40, 60, 62, 61],
    "Gamma Institute": [30, 33, 31, 32, 30, 45, 47, 44],
    "Beta College": [50, 52, 49, 51, 50, 51, 49, 52],
    "Delta State": [20, 21, 22, 20, 21, 22, 20, 21],
    "Dup College": [10, 11, 12, 10, 11, 12, 10, 11],
    "Epsilon Tech": [70, 71, 72, 70, 71, 72, 70, 71],
    "Unlinked University": [5, 6, 7, 5, 6, 7, 5, 6],
}


def period_label(start: date) -> str:
    return f"{start.isoformat()} - {(start + timedelta(days=6)).isoformat()}"


def build_trends_rows() -> list[dict]:
    rows = []
    for school, levels in SCHOOL_LEVELS.items():
        for week, level in zip(WEEK_STARTS, levels):
            for keynum, keyword in enumerate([school, f"{school} admissions"], start=1):
                rows.append({
                    "schid": 1,
                    "schname": school,
                    "keynum": keynum,
                    "keyword": keyword,
                    "monthorweek": period_label(week),
                    "index": level if keynum == 1 else level / 2,
                })
    return rows


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Write a complete set of raw inputs and return their directory."""
    raw = tmp_path / "raw"
    trends_dir = raw / "google_trends"
    trends_dir.mkdir(parents=True)

    trends = pd.DataFrame(build_trends_rows())
    half = len(trends) // 2
    trends.iloc[:half].to_csv(trends_dir / "trends_up_to_inter_1.csv", index=False)
    trends.iloc[half:].to_csv(trends_dir / "trends_up_to_inter_2.csv", index=False)
    # Not a Trends file; must be ignored
    pd.DataFrame({"x": [1]}).to_csv(trends_dir / "notes.csv", index=False)

    pd.DataFrame(CROSSWALK, columns=["schname", "unitid", "opeid"]).to_csv(
        raw / "id_name_link.csv", index=False
    )

    scorecard = pd.DataFrame(SCORECARD, columns=["UNITID", "OPEID", "PREDDEG", EARNINGS_HEADER])
    scorecard.insert(2, "INSTNM", [name for name, _, _ in CROSSWALK])
    scorecard.to_csv(raw / "scorecard.csv", index=False)

    return raw


@pytest.fixture
def settings(data_dir: Path) -> AnalysisSettings:
    return AnalysisSettings(
        trends_dir=data_dir / "google_trends",
        scorecard_path=data_dir / "scorecard.csv",
        id_link_path=data_dir / "id_name_link.csv",
    )


@pytest.fixture
def name_link() -> pd.DataFrame:
    return pd.DataFrame(
        CROSSWALK, columns=["institution_name", "unit_id", "operator_id"]
    ).astype({"unit_id": "Int64", "operator_id": "Int64"})


@pytest.fixture
def outcomes() -> pd.DataFrame:
    df = pd.DataFrame({
        "unit_id": [r[0] for r in SCORECARD],
        "operator_id": [int(r[1]) for r in SCORECARD],
        "predominant_degree_code": [int(r[2]) for r in SCORECARD],
        "reported_earnings": pd.to_numeric([r[3] for r in SCORECARD], errors="coerce"),
    })
    return df.astype({
        "unit_id": "Int64",
        "operator_id": "Int64",
        "predominant_degree_code": "Int64",
    })


@pytest.fixture
def search() -> pd.DataFrame:
    rows = build_trends_rows()
    return pd.DataFrame({
        "institution_name": [r["schname"] for r in rows],
        "keyword": [r["keyword"] for r in rows],
        "period_label": [r["monthorweek"] for r in rows],
        "search_index": [float(r["index"]) for r in rows],
    })
