"""Tests for LocalDataProvider: input conversion, rankings, selection, aggregation and dumps."""

from __future__ import annotations

import math

import pandas as pd
import polars as pl
import pytest

from niceranking.model.composite_column import descendants
from niceranking.model.group import Group
from niceranking.model.interfaces import ColumnDesc
from niceranking.provider.local_data_provider import LocalDataProvider, convert_input_to_rows


def test_convert_from_pandas() -> None:
    df = pd.DataFrame({"id": [1, 2], "name": ["Alice", "Bob"], "city": ["A", "B"]})
    rows = convert_input_to_rows(df)
    assert rows == df.to_dict(orient="records")


def test_convert_from_polars() -> None:
    df = pl.DataFrame({"id": [1, 2], "name": ["Alice", "Bob"]})
    rows = convert_input_to_rows(df)
    assert rows == df.to_dicts()


def test_convert_copies_list_rows() -> None:
    """List input is copied row by row so the caller's dicts stay untouched."""
    original = [{"a": 1}]
    rows = convert_input_to_rows(original)
    rows[0]["a"] = 2
    assert original == [{"a": 1}]


def test_convert_rejects_unsupported_input() -> None:
    with pytest.raises(TypeError):
        convert_input_to_rows([1, 2, 3])
    with pytest.raises(TypeError):
        convert_input_to_rows("not a table")


def test_provider_accepts_dataframes(people_rows, people_descs) -> None:
    """A pandas frame sorts the same as the equivalent list of dicts."""
    provider = LocalDataProvider(pd.DataFrame(people_rows), people_descs)
    ranking = provider.push_ranking()
    age = provider.push(ranking, provider.columns[1])
    age.sort_by_me(asc=True)
    assert ranking.get_order() == [1, 0, 2]


def test_push_ranking_assigns_ids_and_fires(provider, recorder) -> None:
    """Rankings get sequential ids; addRanking carries the index."""
    provider.on("addRanking", recorder)
    first = provider.push_ranking()
    second = provider.push_ranking()
    assert (first.id, second.id) == ("rank0", "rank1")
    assert recorder.events[1].args == (second, 1)
    assert provider.get_last_ranking() is second

    provider.push_ranking("rank5")
    assert provider.push_ranking().id == "rank6"


def test_remove_ranking_detaches(provider, recorder) -> None:
    """A removed ranking is no longer sorted by the provider."""
    ranking = provider.push_ranking()
    col = provider.push(ranking, provider.columns[1])
    provider.on(["removeRanking.t", "orderChanged.t"], recorder)

    assert provider.remove_ranking(ranking)
    assert recorder.types == ["removeRanking"]
    col.sort_by_me()
    assert recorder.types == ["removeRanking"]
    assert not provider.remove_ranking(ranking)


def test_dirty_order_triggers_resort(provider, ranking, recorder) -> None:
    """Any criteria change re-sorts the ranking and fires orderChanged."""
    provider.on("orderChanged", recorder)
    ranking.at(1).sort_by_me(asc=True)
    assert recorder.events[-1].args == (ranking, [1, 0, 2])


def test_view_and_get_row(provider, ranking) -> None:
    """Rows can be read back in ranking order."""
    ranking.at(0).sort_by_me(asc=False)
    names = [r["name"] for r in provider.view(ranking.get_order())]
    assert names == ["Carol", "bob", "Alice"]
    assert provider.get_row(1).v["name"] == "bob"


def test_set_data_resorts_and_trims_selection(provider, ranking, recorder) -> None:
    """New data re-sorts all rankings and drops out-of-range selections."""
    ranking.at(1).sort_by_me(asc=True)
    provider.set_selection([0, 2])
    provider.on("dataLoaded", recorder)

    provider.set_data([{"name": "Zed", "age": 50}, {"name": "Amy", "age": 10}])

    assert recorder.events[0].args == (3, 2)
    assert provider.get_selection() == [0]
    assert ranking.get_order() == [1, 0]


def test_create_registers_desc_and_unique_ids(provider) -> None:
    """Columns created from new descriptions get fresh ids and become known."""
    extra = ColumnDesc(type="string", column="team", label="Team name")
    a = provider.create(extra)
    b = provider.create(extra)
    assert a.id != b.id
    assert extra in provider.columns
    assert provider.push_desc(extra) == provider.columns.index(extra)


def test_insert_places_column(provider) -> None:
    ranking = provider.push_ranking()
    provider.push(ranking, provider.columns[0])
    col = provider.insert(ranking, 0, provider.columns[1])
    assert ranking.at(0) is col


def test_clone_assigns_fresh_ids(provider) -> None:
    """A clone of a stack copies its children with new ids."""
    stack_desc = ColumnDesc(
        type="stack",
        label="Score",
        children=(ColumnDesc(type="number", column="age", domain=(0, 100)),),
    )
    stack = provider.create(stack_desc)
    stack.set_label("Mine")
    copy = provider.clone(stack)

    assert copy.label == "Mine"
    original_ids = {c.id for c in descendants(stack)}
    copy_ids = {c.id for c in descendants(copy)}
    assert len(copy_ids) == 2
    assert not original_ids & copy_ids


# ----------------------------------------------------------------------
# Selection
# ----------------------------------------------------------------------


def test_selection_fires_only_on_change(provider, recorder) -> None:
    """selectionChanged carries old and new ids and is skipped for no-ops."""
    provider.on("selectionChanged", recorder)
    provider.set_selection([2, 0, 2, 9])
    assert provider.get_selection() == [2, 0]
    assert recorder.events[0].args == ([], [2, 0])

    provider.set_selection([0, 2])
    assert len(recorder.events) == 1


def test_select_deselect_toggle(provider) -> None:
    provider.select(1)
    assert provider.is_selected(1)
    assert provider.toggle_selection(1) is False
    assert not provider.is_selected(1)
    assert provider.toggle_selection(0) is True
    provider.deselect(0)
    assert provider.get_selection() == []


def test_select_all_of_uses_visible_rows(provider, ranking) -> None:
    """Selecting a ranking selects only the rows that pass its filters."""
    ranking.at(0).set_filter("a")
    provider.select_all_of(ranking)
    assert sorted(provider.get_selection()) == [0, 2]
    provider.clear_selection()
    assert provider.get_selection() == []


# ----------------------------------------------------------------------
# Aggregation
# ----------------------------------------------------------------------


def test_aggregation_per_group(provider, ranking, recorder) -> None:
    """Collapsing is tracked per ranking and group and fires aggregate."""
    ranking.at(2).group_by_me()
    group_a = ranking.get_groups()[0].group
    provider.on("aggregate", recorder)

    provider.set_aggregated(ranking, group_a, True)
    provider.set_aggregated(ranking, group_a, True)
    assert provider.is_aggregated(ranking, group_a)
    assert len(recorder.events) == 1
    assert recorder.events[0].args == (ranking, group_a, True)

    provider.aggregate_all_of(ranking, False)
    assert not provider.is_aggregated(ranking, group_a)
    assert recorder.events[-1].args == (ranking, None, False)


def test_aggregate_all_of(provider, ranking) -> None:
    ranking.at(2).group_by_me()
    provider.aggregate_all_of(ranking, True)
    assert all(provider.is_aggregated(ranking, g.group) for g in ranking.get_groups())


# ----------------------------------------------------------------------
# Statistics
# ----------------------------------------------------------------------


def test_stats_of_number_column(provider, ranking) -> None:
    """Stats ignore missing values and follow the ranking's filters."""
    age = ranking.at(1)
    stats = provider.stats(age, ranking)
    assert stats["count"] == 2
    assert stats["missing"] == 1
    assert stats["min"] == 20
    assert stats["max"] == 30
    assert stats["mean"] == 25

    ranking.at(2).set_filter(["B"])
    assert provider.stats(age, ranking)["count"] == 1
    assert provider.stats(age)["count"] == 2


def test_stats_of_non_numeric_column(provider, ranking) -> None:
    assert provider.stats(ranking.at(0)) is None


def test_stats_without_values(people_descs) -> None:
    provider = LocalDataProvider([{"age": None}], people_descs)
    ranking = provider.push_ranking()
    age = provider.push(ranking, provider.columns[1])
    stats = provider.stats(age, ranking)
    assert stats["count"] == 0
    assert math.isnan(stats["mean"])


# ----------------------------------------------------------------------
# Dump / restore
# ----------------------------------------------------------------------


def test_dump_restore_round_trip(provider, ranking, people_rows, people_descs) -> None:
    """A second provider over the same data restores rankings, selection and aggregation."""
    name, age, team, _ = ranking.children
    team.group_by_me()
    age.sort_by_me(asc=True)
    name.set_label("Who")
    provider.set_selection([1])
    provider.set_aggregated(ranking, ranking.get_groups()[1].group, True)

    dump = provider.dump()

    other = LocalDataProvider(people_rows, people_descs)
    other.restore(dump)

    restored = other.get_rankings()[0]
    assert restored.id == ranking.id
    assert [c.label for c in restored.children] == [c.label for c in ranking.children]
    assert restored.get_order() == ranking.get_order()
    assert other.get_selection() == [1]
    assert other.is_aggregated(restored, ranking.get_groups()[1].group)
    # new columns never reuse restored ids
    assert other.next_id() not in {c.id for c in restored.flat_columns}


def test_restore_ignores_malformed_entries(provider) -> None:
    provider.restore({"rankings": ["nope", {"columns": []}], "selection": "x", "aggregations": [[1]]})
    assert len(provider.get_rankings()) == 1
    assert provider.get_selection() == []


def test_restore_skips_bad_aggregation_keys(provider) -> None:
    """A non-list group key is dropped and the rest of the dump still applies."""
    provider.restore(
        {
            "rankings": [{"id": "rank0", "columns": []}],
            "aggregations": [["rank0", 5], ["rank0", "A"], [["rank0"], ["A"]], ["rank0", ["A"]]],
            "selection": [2],
        }
    )
    ranking = provider.get_rankings()[0]
    assert provider.get_selection() == [2]
    assert provider.is_aggregated(ranking, Group("A"))
    assert provider.dump()["aggregations"] == [["rank0", ["A"]]]


def test_restore_tolerates_non_list_sections(provider) -> None:
    provider.restore({"rankings": 3, "aggregations": 5, "selection": [0]})
    assert provider.get_rankings() == []
    assert provider.get_selection() == [0]
