"""In-memory data provider: rows, rankings, ordering, selection and aggregation.

The provider is the ``provider`` handle of the render context. It owns the
rows and the known column descriptions, creates rankings and columns, and
answers each ranking's ``dirtyOrder`` by recomputing the ordered groups.

Example:
    >>> provider = LocalDataProvider(
    ...     [{"name": "a", "age": 30}, {"name": "b", "age": 20}],
    ...     [ColumnDesc(type="string", column="name"), ColumnDesc(type="number", column="age", domain=(0, 100))],
    ... )
    >>> ranking = provider.push_ranking()
    >>> age = provider.push(ranking, provider.columns[1])
    >>> age.sort_by_me(asc=True)
    True
    >>> ranking.get_order()
    [1, 0]
"""

from __future__ import annotations

import itertools
import math
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd
import polars as pl

from niceranking.model.column import Column, fix_css
from niceranking.model.composite_column import descendants
from niceranking.model.config import DEFAULT_CONFIG, ModelConfig
from niceranking.model.dump import DescRegistry
from niceranking.model.events import EventDispatcher, EventType, ModelEvent
from niceranking.model.group import Group, GroupData
from niceranking.model.interfaces import ColumnDesc, DataRow
from niceranking.model.ranking import Ranking
from niceranking.model.sorting import order_rows
from niceranking.model.value_columns import NumberColumn
from niceranking.utils.logging import get_logger

logger = get_logger(__name__)

RowDict = dict[str, Any]
RowsLike = List[RowDict]
DataLike = Union[RowsLike, pd.DataFrame, pl.DataFrame]

RANKING_ID_PREFIX = "rank"


def convert_input_to_rows(data: DataLike) -> RowsLike:
    """Convert input data into the canonical ``list[dict]`` representation.

    Args:
        data: Input data as list of dicts, pandas DataFrame, or
            Polars DataFrame.

    Returns:
        A list of plain dictionaries, one per row.
    """
    # list-of-dicts (or similar sequence of mappings)
    if isinstance(data, list):
        if all(isinstance(row, Mapping) for row in data):
            return [dict(row) for row in data]
        raise TypeError("List input must contain mapping/dict-like rows.")

    if isinstance(data, pd.DataFrame):
        return data.to_dict(orient="records")

    if isinstance(data, pl.DataFrame):
        return data.to_dicts()

    raise TypeError(
        "Unsupported data type for LocalDataProvider. "
        "Expected list[dict], pandas.DataFrame, or polars.DataFrame."
    )


class LocalDataProvider(EventDispatcher):
    """Holds the rows and rankings of one ranking view.

    Args:
        data: Rows as list of dicts, pandas DataFrame or Polars DataFrame.
        columns: Column descriptions available to this provider.
        config: Shared model defaults; ``missing_last`` controls sorting.

    Events:
        addRanking / removeRanking: ``(ranking, index)``.
        selectionChanged: ``(old_ids, new_ids)``.
        aggregate: ``(ranking, group_or_None, aggregate)``.
        orderChanged: ``(ranking, order)`` after a ranking was re-sorted.
        dataLoaded: ``(old_count, new_count)`` after ``set_data``.
    """

    EVENTS = (
        EventType.ADD_RANKING,
        EventType.REMOVE_RANKING,
        EventType.SELECTION_CHANGED,
        EventType.AGGREGATE,
        EventType.ORDER_CHANGED,
        EventType.DATA_LOADED,
    )

    def __init__(
        self,
        data: DataLike,
        columns: Sequence[ColumnDesc] = (),
        config: Optional[ModelConfig] = None,
    ) -> None:
        super().__init__()
        self.config: ModelConfig = config or DEFAULT_CONFIG
        self.registry = DescRegistry(columns, self.config)
        self._raw: RowsLike = convert_input_to_rows(data)
        self._rows: list[DataRow] = [DataRow(v=v, i=i) for i, v in enumerate(self._raw)]
        self._rankings: list[Ranking] = []
        self._ranking_ids = itertools.count(0)
        self._selection: list[int] = []
        # (ranking id, group key) pairs shown collapsed
        self._aggregated: set[tuple[str, tuple[str, ...]]] = set()
        logger.debug(f"LocalDataProvider: {len(self._rows)} rows, {len(self.registry.descs)} column descriptions")

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------

    @property
    def columns(self) -> list[ColumnDesc]:
        return list(self.registry.descs)

    @property
    def data(self) -> RowsLike:
        return self._raw

    @property
    def rows(self) -> list[DataRow]:
        return list(self._rows)

    def get_row(self, index: int) -> DataRow:
        return self._rows[index]

    def view(self, indices: Iterable[int]) -> RowsLike:
        """Raw rows for the given row indices, in that order."""
        return [self._raw[i] for i in indices]

    def set_data(self, data: DataLike) -> None:
        """Replace all rows and re-sort every ranking."""
        old_count = len(self._rows)
        self._raw = convert_input_to_rows(data)
        self._rows = [DataRow(v=v, i=i) for i, v in enumerate(self._raw)]
        self._selection = [i for i in self._selection if i < len(self._rows)]
        logger.info(f"Loaded {len(self._rows)} rows (was {old_count})")
        self.fire(EventType.DATA_LOADED, old_count, len(self._rows))
        for ranking in self._rankings:
            self.sort(ranking)

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    def next_id(self) -> str:
        return self.registry.next_id()

    def push_desc(self, desc: ColumnDesc) -> int:
        """Make ``desc`` known to this provider; returns its reference index."""
        return self.registry.add_desc(desc)

    def create(self, desc: ColumnDesc) -> Column:
        self.registry.add_desc(desc)
        return self.registry.create(desc)

    def clone(self, col: Column) -> Optional[Column]:
        """Copy ``col`` (children included) with fresh ids."""
        copy = self.registry.factory(col.dump(self.registry.to_desc_ref))
        if copy is None:
            return None
        for c in descendants(copy):
            c.assign_new_id(self.next_id)
        return copy

    def push(self, ranking: Ranking, desc: ColumnDesc) -> Optional[Column]:
        return ranking.push(self.create(desc))

    def insert(self, ranking: Ranking, index: int, desc: ColumnDesc) -> Optional[Column]:
        return ranking.insert(self.create(desc), index)

    # ------------------------------------------------------------------
    # Rankings
    # ------------------------------------------------------------------

    def get_rankings(self) -> list[Ranking]:
        return list(self._rankings)

    def get_last_ranking(self) -> Optional[Ranking]:
        return self._rankings[-1] if self._rankings else None

    def push_ranking(self, id: Optional[str] = None) -> Ranking:
        if id is None:
            id = f"{RANKING_ID_PREFIX}{next(self._ranking_ids)}"
        else:
            self._reserve_ranking_id(id)
        ranking = Ranking(id, self.config)
        self._rankings.append(ranking)
        ranking.on(f"{EventType.DIRTY_ORDER.value}.provider", self._on_dirty_order)
        logger.debug(f"Added ranking {ranking.id!r}")
        self.fire(EventType.ADD_RANKING, ranking, len(self._rankings) - 1)
        self.sort(ranking)
        return ranking

    def _reserve_ranking_id(self, id: str) -> None:
        suffix = id[len(RANKING_ID_PREFIX):] if id.startswith(RANKING_ID_PREFIX) else ""
        if suffix.isdigit():
            current = next(self._ranking_ids)
            self._ranking_ids = itertools.count(max(current, int(suffix) + 1))

    def remove_ranking(self, ranking: Ranking) -> bool:
        try:
            index = next(i for i, r in enumerate(self._rankings) if r is ranking)
        except StopIteration:
            return False
        ranking.on(f"{EventType.DIRTY_ORDER.value}.provider", None)
        self._rankings.pop(index)
        self._aggregated = {key for key in self._aggregated if key[0] != ranking.id}
        logger.debug(f"Removed ranking {ranking.id!r}")
        self.fire(EventType.REMOVE_RANKING, ranking, index)
        return True

    def clear_rankings(self) -> None:
        for ranking in list(self._rankings):
            self.remove_ranking(ranking)

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def _on_dirty_order(self, event: ModelEvent) -> None:
        self.sort(event.source)

    def sort(self, ranking: Ranking) -> list[GroupData]:
        """Recompute and publish the ordered groups of ``ranking``."""
        groups = order_rows(ranking, self._rows, self.config.missing_last)
        ranking.set_groups(groups)
        order = ranking.get_order()
        logger.debug(f"ranking {ranking.id!r}: {len(groups)} groups, {len(order)} rows")
        self.fire(EventType.ORDER_CHANGED, ranking, order)
        return groups

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def get_selection(self) -> list[int]:
        return list(self._selection)

    def is_selected(self, index: int) -> bool:
        return index in self._selection

    def set_selection(self, ids: Sequence[int]) -> None:
        new = [i for i in dict.fromkeys(int(i) for i in ids) if 0 <= i < len(self._rows)]
        if set(new) == set(self._selection):
            return
        old = self._selection
        self._selection = new
        self.fire(EventType.SELECTION_CHANGED, list(old), list(new))

    def select(self, index: int) -> None:
        if index not in self._selection:
            self.set_selection(self._selection + [index])

    def deselect(self, index: int) -> None:
        if index in self._selection:
            self.set_selection([i for i in self._selection if i != index])

    def toggle_selection(self, index: int) -> bool:
        """Flip the selection of one row; returns whether it is now selected."""
        if index in self._selection:
            self.deselect(index)
            return False
        self.select(index)
        return True

    def select_all_of(self, ranking: Ranking) -> None:
        self.set_selection(ranking.get_order())

    def clear_selection(self) -> None:
        self.set_selection([])

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def is_aggregated(self, ranking: Ranking, group: Group) -> bool:
        return (ranking.id, group.key) in self._aggregated

    def set_aggregated(self, ranking: Ranking, group: Group, aggregate: bool) -> None:
        key = (ranking.id, group.key)
        if (key in self._aggregated) == aggregate:
            return
        if aggregate:
            self._aggregated.add(key)
        else:
            self._aggregated.discard(key)
        self.fire(EventType.AGGREGATE, ranking, group, aggregate)

    def aggregate_all_of(self, ranking: Ranking, aggregate: bool) -> None:
        for data in ranking.get_groups():
            key = (ranking.id, data.group.key)
            if aggregate:
                self._aggregated.add(key)
            else:
                self._aggregated.discard(key)
        self.fire(EventType.AGGREGATE, ranking, None, aggregate)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def stats(self, col: Column, ranking: Optional[Ranking] = None) -> Optional[dict[str, Any]]:
        """Summary statistics of a numeric column over the ranking's visible rows."""
        if not isinstance(col, NumberColumn):
            return None
        rows = self._rows if ranking is None else [self._rows[i] for i in ranking.get_order()]
        values = np.array([col.get_raw_number(r) for r in rows], dtype=float)
        present = values[~np.isnan(values)]
        if present.size == 0:
            return {"count": 0, "missing": int(values.size), "min": math.nan, "max": math.nan,
                    "mean": math.nan, "median": math.nan}
        return {
            "count": int(present.size),
            "missing": int(values.size - present.size),
            "min": float(np.min(present)),
            "max": float(np.max(present)),
            "mean": float(np.mean(present)),
            "median": float(np.median(present)),
        }

    # ------------------------------------------------------------------
    # Dump / restore
    # ------------------------------------------------------------------

    def dump(self) -> dict[str, Any]:
        return {
            "rankings": [r.dump(self.registry.to_desc_ref) for r in self._rankings],
            "selection": list(self._selection),
            "aggregations": [[rid, list(key)] for rid, key in sorted(self._aggregated)],
        }

    def restore(self, dump: Mapping[str, Any]) -> None:
        """Replace all rankings, the selection and aggregations with the dumped ones."""
        self.clear_rankings()
        rankings = dump.get("rankings")
        for ranking_dump in rankings if isinstance(rankings, list) else []:
            if not isinstance(ranking_dump, Mapping):
                continue
            rid = ranking_dump.get("id")
            ranking = self.push_ranking(fix_css(rid) if isinstance(rid, str) and rid else None)
            ranking.restore(ranking_dump, self.registry.factory)
            self.sort(ranking)
        known = {r.id for r in self._rankings}
        aggregations = dump.get("aggregations")
        self._aggregated = {
            (entry[0], tuple(str(n) for n in entry[1]))
            for entry in (aggregations if isinstance(aggregations, list) else [])
            if isinstance(entry, (list, tuple))
            and len(entry) == 2
            and isinstance(entry[0], str)
            and entry[0] in known
            and isinstance(entry[1], (list, tuple))
        }
        selection = dump.get("selection")
        if isinstance(selection, list):
            self.set_selection([i for i in selection if isinstance(i, int) and not isinstance(i, bool)])
