"""Tests for the pure columnDefs/rowData builders (no NiceGUI client needed)."""

from __future__ import annotations

from niceranking.model.composite_column import NestedColumn
from niceranking.model.group import Group, GroupData
from niceranking.model.interfaces import ColumnDesc
from niceranking.ranking_grid.config import RankingGridConfig
from niceranking.ranking_grid.grid_options import (
    AGGREGATED_FIELD,
    COUNT_FIELD,
    GROUP_FIELD,
    RANK_FIELD,
    ROW_ID_FIELD,
    ROW_INDEX_FIELD,
    SELECTED_FIELD,
    build_column_defs,
    build_row_data,
    group_row_id,
    header_label,
    header_tooltip,
    parse_group_row_id,
)


def test_column_defs_follow_layout(ranking) -> None:
    """One def per visible column, keyed by fqid, with the column width."""
    ranking.at(3).hide()
    defs = build_column_defs(ranking, ranking.get_groups())
    assert [d["colId"] for d in defs] == [c.fqid for c in ranking.children[:3]]
    assert [d["headerName"] for d in defs] == ["Name", "Age", "Team"]
    assert all(d["sortable"] is False for d in defs)
    assert defs[1]["type"] == "rightAligned"
    assert "type" not in defs[0]
    assert defs[1]["width"] == 100
    assert defs[2]["headerClass"] == "lu-header lu-categorical"


def test_header_label_shows_sort_state(ranking) -> None:
    """Sorted columns carry an arrow and a 1-based priority."""
    name, age, _, _ = ranking.children
    age.sort_by_me(asc=True)
    name.sort_by_me()
    assert header_label(name) == "Name ▼1"
    assert header_label(age) == "Age ▲2"
    assert header_label(ranking.at(2)) == "Team"


def test_header_tooltip_with_stats(ranking) -> None:
    """Stats are appended to the tooltip using the configured precision."""
    age = ranking.at(1)
    stats = {"count": 2, "missing": 1, "min": 20.0, "max": 30.0, "mean": 25.0, "median": 25.0}
    assert header_tooltip(age, None) == "Age"
    assert header_tooltip(age, stats, 1) == "Age\nmin 20.0 / median 25.0 / max 30.0 (n=2, missing=1)"
    assert header_tooltip(age, {"count": 0}) == "Age"


def test_column_defs_use_stats_callback(provider, ranking) -> None:
    defs = build_column_defs(ranking, ranking.get_groups(), stats_of=lambda c: provider.stats(c, ranking))
    assert "min 20.00" in defs[1]["headerTooltip"]
    assert defs[0]["headerTooltip"] == "Name"


def test_group_column_only_when_grouped(ranking) -> None:
    """A pinned group column leads the defs while the ranking is grouped."""
    assert build_column_defs(ranking, ranking.get_groups())[0]["colId"] != GROUP_FIELD

    ranking.at(2).group_by_me()
    defs = build_column_defs(ranking, ranking.get_groups())
    assert defs[0]["colId"] == GROUP_FIELD
    assert defs[0]["headerTooltip"] == "2 groups"
    assert defs[0]["pinned"] == "left"

    cfg = RankingGridConfig(show_group_column=False)
    assert build_column_defs(ranking, ranking.get_groups(), cfg)[0]["colId"] != GROUP_FIELD


def test_frozen_and_colored_columns(provider) -> None:
    ranking = provider.push_ranking()
    col = provider.push(ranking, ColumnDesc(type="string", column="name", frozen=True, color="red"))
    (d,) = build_column_defs(ranking, ranking.get_groups())
    assert d["pinned"] == "left"
    assert d["headerStyle"] == {"borderBottom": "3px solid red"}
    assert d["colId"] == col.fqid


def test_flatten_levels_expand_composites(provider) -> None:
    """Composite children become their own grid columns when flattening."""
    ranking = provider.push_ranking()
    nested = ranking.push(NestedColumn(provider.next_id(), ColumnDesc(type="nested", label="N")))
    nested.push(provider.create(provider.columns[0]))
    nested.push(provider.create(provider.columns[1]))

    shallow = build_column_defs(ranking, ranking.get_groups())
    assert [d["headerName"] for d in shallow] == ["N"]

    deep = build_column_defs(ranking, ranking.get_groups(), RankingGridConfig(flatten_levels=-1))
    assert [d["headerName"] for d in deep] == ["N", "Name", "Age"]


def test_row_data_in_rank_order(provider, ranking) -> None:
    """Rows carry labels by fqid plus rank and selection bookkeeping."""
    ranking.at(1).sort_by_me(asc=True)
    provider.set_selection([0])
    rows = build_row_data(ranking, ranking.get_groups(), provider)

    assert [r[ROW_INDEX_FIELD] for r in rows] == [1, 0, 2]
    assert [r[RANK_FIELD] for r in rows] == [1, 2, 3]
    assert [r[ROW_ID_FIELD] for r in rows] == ["1", "0", "2"]
    assert [r[SELECTED_FIELD] for r in rows] == [False, True, False]
    age_id = ranking.at(1).fqid
    assert [r[age_id] for r in rows] == ["20.00", "30.00", ""]
    assert rows[0][ranking.at(0).fqid] == "bob"


def test_row_data_collapses_aggregated_groups(provider, ranking) -> None:
    """An aggregated group is one summary row; ranks continue after it."""
    ranking.at(2).group_by_me()
    group_a, group_b = ranking.get_groups()
    provider.set_aggregated(ranking, group_a.group, True)

    rows = build_row_data(ranking, ranking.get_groups(), provider)

    assert len(rows) == 2
    summary, row_b = rows
    assert summary[AGGREGATED_FIELD] is True
    assert summary[COUNT_FIELD] == 2
    assert summary[ROW_ID_FIELD] == group_row_id(group_a) == 'group:["A"]'
    assert summary[ranking.at(0).fqid] == "A (2)"
    assert row_b[GROUP_FIELD] == "B"
    assert row_b[RANK_FIELD] == 3


def test_group_row_id_keeps_slashes_and_nesting() -> None:
    """Group names with separators survive the row id round trip."""
    outer = Group("N/A")
    inner = Group("N/A ∩ x/y", parent=outer)
    assert parse_group_row_id(group_row_id(GroupData(outer))) == ("N/A",)
    assert parse_group_row_id(group_row_id(GroupData(inner))) == ("N/A", "N/A ∩ x/y")


def test_parse_group_row_id_rejects_other_ids() -> None:
    assert parse_group_row_id("3") is None
    assert parse_group_row_id("group:N/A") is None
    assert parse_group_row_id("group:[1]") is None
    assert parse_group_row_id('group:{"a": 1}') is None
