"""Tests for scorecard_trends.linking."""

from __future__ import annotations

import pandas as pd
import pytest

from scorecard_trends.linking import (
    JoinSpec,
    apply_join,
    attach_outcomes,
    build_joined_table,
    deduplicate_name_link,
    filter_bachelors,
    link_search_records,
)
from scorecard_trends.schemas import JOINED_RECORD


class TestDeduplicateNameLink:
    def test_names_unique_after_dedup(self, name_link):
        unique = deduplicate_name_link(name_link)
        assert unique["institution_name"].is_unique

    def test_ambiguous_name_dropped_entirely(self, name_link):
        unique = deduplicate_name_link(name_link)
        assert "Dup College" not in set(unique["institution_name"])
        assert len(unique) == len(name_link) - 2

    def test_exact_duplicate_rows_also_dropped(self):
        df = pd.DataFrame({
            "institution_name": ["Acme College", "Acme College", "Solo U"],
            "unit_id": [1, 1, 2],
            "operator_id": [10, 10, 20],
        })
        unique = deduplicate_name_link(df)
        assert unique["institution_name"].tolist() == ["Solo U"]


class TestApplyJoin:
    def test_prefer_left_keeps_single_column(self):
        left = pd.DataFrame({"k": [1, 2], "unit_id": [10, 20]})
        right = pd.DataFrame({"k": [1, 2], "unit_id": [99, 98], "v": ["a", "b"]})
        out = apply_join(left, right, JoinSpec(keys=("k",), how="left", prefer="left"))
        assert list(out.columns) == ["k", "unit_id", "v"]
        assert out["unit_id"].tolist() == [10, 20]

    def test_prefer_right(self):
        left = pd.DataFrame({"k": [1], "unit_id": [10]})
        right = pd.DataFrame({"k": [1], "unit_id": [99]})
        out = apply_join(left, right, JoinSpec(keys=("k",), prefer="right"))
        assert out["unit_id"].tolist() == [99]

    def test_missing_keys_never_match(self):
        left = pd.DataFrame({"k": pd.array([1, None], dtype="Int64"), "a": ["x", "y"]})
        right = pd.DataFrame({"k": pd.array([1, None], dtype="Int64"), "b": ["p", "q"]})

        inner = apply_join(left, right, JoinSpec(keys=("k",), how="inner"))
        assert inner["a"].tolist() == ["x"]

        left_join = apply_join(left, right, JoinSpec(keys=("k",), how="left"))
        assert len(left_join) == 2
        assert pd.isna(left_join.loc[left_join["a"] == "y", "b"]).all()

    def test_unknown_key_raises(self):
        with pytest.raises(KeyError):
            apply_join(pd.DataFrame({"a": [1]}), pd.DataFrame({"b": [1]}), JoinSpec(keys=("a",)))


class TestJoins:
    def test_filter_bachelors_excludes_other_degrees(self, outcomes):
        bachelors = filter_bachelors(outcomes, 3)
        assert (bachelors["predominant_degree_code"] == 3).all()
        assert 100007 not in set(bachelors["unit_id"])

    def test_filter_bachelors_tolerates_missing_code(self, outcomes):
        outcomes.loc[0, "predominant_degree_code"] = pd.NA
        bachelors = filter_bachelors(outcomes, 3)
        assert 100001 not in set(bachelors["unit_id"])

    def test_name_join_is_inner(self, name_link, search):
        linked = link_search_records(deduplicate_name_link(name_link), search)
        assert "Unlinked University" not in set(linked["institution_name"])
        assert linked["unit_id"].notna().all()

    def test_composite_key_requires_both_ids(self, name_link, outcomes):
        # OPEID 1000100 reused by an unrelated UNITID
        reused = pd.DataFrame({
            "unit_id": pd.array([199999], dtype="Int64"),
            "operator_id": pd.array([1000100], dtype="Int64"),
            "predominant_degree_code": pd.array([3], dtype="Int64"),
            "reported_earnings": [12345.0],
        })
        bachelors = filter_bachelors(pd.concat([outcomes, reused], ignore_index=True))
        linked = pd.DataFrame({
            "institution_name": ["Alpha University"],
            "unit_id": pd.array([100001], dtype="Int64"),
            "operator_id": pd.array([1000100], dtype="Int64"),
            "keyword": ["alpha"],
            "period_label": ["2015-08-02 - 2015-08-08"],
            "search_index": [10.0],
        })
        joined = attach_outcomes(linked, bachelors)
        assert len(joined) == 1
        assert joined["reported_earnings"].iloc[0] == 80000.0

    def test_joined_pairs_exist_in_both_sources(self, name_link, search, outcomes):
        linked = build_joined_table(name_link, search, outcomes)
        joined_pairs = set(zip(linked.joined["unit_id"], linked.joined["operator_id"]))
        link_pairs = set(zip(name_link["unit_id"], name_link["operator_id"]))
        outcome_pairs = set(zip(outcomes["unit_id"], outcomes["operator_id"]))
        assert joined_pairs
        assert joined_pairs <= link_pairs & outcome_pairs

    def test_build_joined_table(self, name_link, search, outcomes):
        linked = build_joined_table(name_link, search, outcomes)
        assert list(linked.joined.columns) == JOINED_RECORD.column_names
        assert set(linked.joined["institution_name"]) == {
            "Alpha University",
            "Beta College",
            "Gamma Institute",
            "Delta State",
        }
        assert 2 not in set(linked.joined["predominant_degree_code"])

    def test_no_matches_gives_empty_table(self, name_link, outcomes):
        search = pd.DataFrame({
            "institution_name": ["Nowhere College"],
            "keyword": ["nowhere"],
            "period_label": ["2015-08-02 - 2015-08-08"],
            "search_index": [1.0],
        })
        linked = build_joined_table(name_link, search, outcomes)
        assert linked.joined.empty
        assert list(linked.joined.columns) == JOINED_RECORD.column_names
