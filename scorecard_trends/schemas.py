"""
Record types for each pipeline stage.

Every stage hands the next one a DataFrame conforming to one of the
schemas below. Column names are canonical: raw source headers are mapped
onto them once, at load time.
"""

from dataclasses import dataclass

import pandas as pd


class SchemaError(ValueError):
    """A table does not carry the columns its record type declares."""


@dataclass(frozen=True)
class TableSchema:
    """An ordered set of columns with their pandas dtypes."""

    name: str
    columns: tuple[tuple[str, str], ...]

    @property
    def column_names(self) -> list[str]:
        return [col for col, _ in self.columns]

    @property
    def dtypes(self) -> dict[str, str]:
        return dict(self.columns)

    def empty(self) -> pd.DataFrame:
        """An empty table with the declared columns and dtypes."""
        return pd.DataFrame({
            col: pd.Series(dtype=dtype) for col, dtype in self.columns
        })

    def conform(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Select, order and cast the declared columns.

        Extra columns are dropped. A missing declared column raises
        SchemaError.
        """
        missing = [c for c in self.column_names if c not in df.columns]
        if missing:
            raise SchemaError(f"{self.name} is missing columns: {missing}")

        out = df[self.column_names].copy()
        for col, dtype in self.columns:
            if str(out[col].dtype) != dtype:
                out[col] = _cast(out[col], dtype)
        return out.reset_index(drop=True)

    def extend(self, name: str, *columns: tuple[str, str]) -> "TableSchema":
        """A new schema with extra columns appended (existing names kept once)."""
        seen = set(self.column_names)
        extra = tuple(c for c in columns if c[0] not in seen)
        return TableSchema(name=name, columns=self.columns + extra)


def _cast(series: pd.Series, dtype: str) -> pd.Series:
    if dtype == "Int64":
        return pd.to_numeric(series, errors="coerce").round().astype("Int64")
    if dtype == "float64":
        return pd.to_numeric(series, errors="coerce").astype("float64")
    if dtype == "datetime64[ns]":
        return pd.to_datetime(series, errors="coerce")
    if dtype == "boolean":
        return series.astype("boolean")
    if dtype == "object":
        return series.astype("object")
    return series.astype(dtype)


def normalize_column_names(df: pd.DataFrame) -> pd.DataFrame:
    """Case-fold and strip column headers so later key matching is exact."""
    return df.rename(columns=lambda c: str(c).strip().lower())


NAME_LINK = TableSchema(
    name="NameLink",
    columns=(
        ("institution_name", "object"),
        ("unit_id", "Int64"),
        ("operator_id", "Int64"),
    ),
)

SEARCH_RECORD = TableSchema(
    name="SearchRecord",
    columns=(
        ("institution_name", "object"),
        ("keyword", "object"),
        ("period_label", "object"),
        ("search_index", "float64"),
    ),
)

OUTCOME_RECORD = TableSchema(
    name="OutcomeRecord",
    columns=(
        ("unit_id", "Int64"),
        ("operator_id", "Int64"),
        ("predominant_degree_code", "Int64"),
        ("reported_earnings", "float64"),
    ),
)

JOINED_RECORD = NAME_LINK.extend(
    "JoinedRecord",
    *SEARCH_RECORD.columns,
    *OUTCOME_RECORD.columns,
)

WEEKLY_AGGREGATE = TableSchema(
    name="WeeklyAggregate",
    columns=(
        ("operator_id", "Int64"),
        ("week_start_date", "datetime64[ns]"),
        ("total_index", "float64"),
    ),
)

RECONSTRUCTED_RECORD = WEEKLY_AGGREGATE.extend(
    "ReconstructedRecord",
    ("institution_name", "object"),
    ("unit_id", "Int64"),
    ("predominant_degree_code", "Int64"),
    ("reported_earnings", "float64"),
)

FINAL_RECORD = RECONSTRUCTED_RECORD.extend(
    "FinalRecord",
    ("earnings_class_flag", "Int64"),
    ("standardized_index", "float64"),
    ("after_event", "bool"),
    ("high_earnings", "bool"),
)

# Raw source headers (after case-folding) mapped to canonical names
SEARCH_SOURCE_COLUMNS = {
    "schname": "institution_name",
    "keyword": "keyword",
    "monthorweek": "period_label",
    "index": "search_index",
}

NAME_LINK_SOURCE_COLUMNS = {
    "schname": "institution_name",
    "unitid": "unit_id",
    "opeid": "operator_id",
}

OUTCOME_SOURCE_COLUMNS = {
    "unitid": "unit_id",
    "opeid": "operator_id",
    "preddeg": "predominant_degree_code",
}
