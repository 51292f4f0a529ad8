# src/niceranking/ranking_grid/grid_options.py
"""Pure builders turning a ranking into AG Grid ``columnDefs`` and ``rowData``.

Nothing here touches NiceGUI, so the output can be tested without a client.
Grid columns are keyed by the model column's ``fqid``; row dictionaries carry
a few bookkeeping fields prefixed with ``__``.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Optional, Sequence

from niceranking.model.column import Column
from niceranking.model.composite_column import StackColumn
from niceranking.model.group import GroupData
from niceranking.model.interfaces import FlatColumn
from niceranking.model.ranking import Ranking
from niceranking.model.value_columns import NumberColumn
from niceranking.provider.local_data_provider import LocalDataProvider
from niceranking.ranking_grid.config import RankingGridConfig

ROW_ID_FIELD = "__row_id__"
ROW_INDEX_FIELD = "__row_index__"
RANK_FIELD = "__rank__"
GROUP_FIELD = "__group__"
SELECTED_FIELD = "__selected__"
AGGREGATED_FIELD = "__aggregated__"
COUNT_FIELD = "__count__"

GROUP_ROW_PREFIX = "group:"

SORT_ARROWS = {"asc": "▲", "desc": "▼"}


def flat_columns(ranking: Ranking, config: RankingGridConfig) -> list[FlatColumn]:
    """Visible columns of ``ranking`` in display order."""
    flat: list[FlatColumn] = []
    ranking.flatten(flat, 0, config.flatten_levels, config.padding)
    return [fc for fc in flat if fc.col.is_visible()]


def header_label(col: Column) -> str:
    """Column label with a sort arrow and priority, e.g. ``Age ▲1``."""
    state = col.is_sorted_by_me()
    if state.asc is None:
        return col.label
    priority = int(state.priority or 0) + 1
    return f"{col.label} {SORT_ARROWS[state.asc]}{priority}"


def group_row_id(data: GroupData) -> str:
    """Row id of a group summary row: the prefix plus the group key as a JSON list."""
    return GROUP_ROW_PREFIX + json.dumps(list(data.group.key))


def parse_group_row_id(row_id: str) -> Optional[tuple[str, ...]]:
    """Group key encoded by :func:`group_row_id`, or None for any other id."""
    if not row_id.startswith(GROUP_ROW_PREFIX):
        return None
    try:
        key = json.loads(row_id[len(GROUP_ROW_PREFIX):])
    except ValueError:
        return None
    if not isinstance(key, list) or not all(isinstance(k, str) for k in key):
        return None
    return tuple(key)


def header_tooltip(col: Column, stats: Optional[dict[str, Any]], precision: int = 2) -> str:
    """Description or label, followed by a one-line summary when stats are known."""
    text = col.description or col.label
    if not stats or not stats.get("count"):
        return text
    return (
        f"{text}\n"
        f"min {stats['min']:.{precision}f} / median {stats['median']:.{precision}f} / "
        f"max {stats['max']:.{precision}f} (n={stats['count']}, missing={stats['missing']})"
    )


def build_column_defs(
    ranking: Ranking,
    groups: Sequence[GroupData],
    config: Optional[RankingGridConfig] = None,
    stats_of: Optional[Callable[[Column], Optional[dict[str, Any]]]] = None,
) -> list[dict[str, Any]]:
    """Derive AG Grid ``columnDefs`` from the ranking's flattened layout.

    Args:
        ranking: The ranking to render.
        groups: Its current ordered groups.
        config: Grid options; defaults to ``RankingGridConfig()``.
        stats_of: Optional callback returning summary statistics of a
            column, shown in its header tooltip.

    Returns:
        Column definition dictionaries; a leading group column is added when
        the ranking is grouped.
    """
    config = config or RankingGridConfig()
    defs: list[dict[str, Any]] = []

    if config.show_group_column and ranking.get_group_criteria():
        defs.append(
            {
                "colId": GROUP_FIELD,
                "field": GROUP_FIELD,
                "headerName": config.group_column_header,
                "headerTooltip": f"{len(groups)} groups",
                "width": config.group_column_width,
                "sortable": False,
                "resizable": False,
                "suppressMovable": True,
                "pinned": "left",
            }
        )

    for fc in flat_columns(ranking, config):
        col = fc.col
        col_def: dict[str, Any] = {
            "colId": col.fqid,
            "field": col.fqid,
            "headerName": header_label(col),
            "headerTooltip": header_tooltip(
                col, stats_of(col) if stats_of is not None else None, config.label_precision
            ),
            "width": fc.width,
            "sortable": False,
            "resizable": True,
            "suppressMovable": True,
            "headerClass": f"lu-header lu-{col.desc.type}",
            "cellClass": f"lu-cell lu-{col.desc.type}",
        }
        if isinstance(col, (NumberColumn, StackColumn)):
            col_def["type"] = "rightAligned"
        if col.frozen:
            col_def["pinned"] = "left"
        if col.color:
            col_def["headerStyle"] = {"borderBottom": f"3px solid {col.color}"}
        defs.append(col_def)

    return defs


def build_row_data(
    ranking: Ranking,
    groups: Sequence[GroupData],
    provider: LocalDataProvider,
    config: Optional[RankingGridConfig] = None,
) -> list[dict[str, Any]]:
    """Produce one row dictionary per visible row, keyed by column ``fqid``.

    Aggregated groups are collapsed into a single summary row carrying the
    group name and its row count.
    """
    config = config or RankingGridConfig()
    cols = [fc.col for fc in flat_columns(ranking, config)]
    rows: list[dict[str, Any]] = []
    rank = 0

    for data in groups:
        if provider.is_aggregated(ranking, data.group):
            summary: dict[str, Any] = {
                ROW_ID_FIELD: group_row_id(data),
                ROW_INDEX_FIELD: None,
                RANK_FIELD: None,
                GROUP_FIELD: data.name,
                SELECTED_FIELD: False,
                AGGREGATED_FIELD: True,
                COUNT_FIELD: len(data),
            }
            for col in cols:
                summary[col.fqid] = ""
            if cols:
                summary[cols[0].fqid] = f"{data.name} ({len(data)})"
            rows.append(summary)
            rank += len(data)
            continue

        for row in data.rows:
            rank += 1
            entry: dict[str, Any] = {
                ROW_ID_FIELD: str(row.i),
                ROW_INDEX_FIELD: row.i,
                RANK_FIELD: rank,
                GROUP_FIELD: data.name,
                SELECTED_FIELD: provider.is_selected(row.i),
                AGGREGATED_FIELD: False,
            }
            for col in cols:
                entry[col.fqid] = col.get_label(row)
            rows.append(entry)

    return rows
