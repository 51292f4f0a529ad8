"""Ranking: the root of a column tree plus its criteria stacks.

A ranking owns an ordered list of top-level columns and three criteria stacks:

- sort criteria: order rows within a group
- group criteria: nested bucketing of rows, outermost first
- group-sort criteria: order the groups themselves

Every column referenced by a stack is reachable from the ranking; removing a
column purges it, and everything nested inside it, from all three stacks.

The ranking re-fires its columns' ``dirty``/``dirtyHeader``/``dirtyValues``
events, so a renderer subscribes once here. Changes that invalidate the row
order fire ``dirtyOrder``; the data provider answers with ``set_groups``,
which fires ``orderChanged``.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence

from niceranking.model.column import Column, fix_css
from niceranking.model.composite_column import CompositeColumn, descendants
from niceranking.model.config import DEFAULT_CONFIG, ModelConfig
from niceranking.model.events import EventDispatcher, EventType, ModelEvent
from niceranking.model.group import GroupData
from niceranking.model.interfaces import ColumnFactory, DataRow, DescRef, FlatColumn, SortCriteria
from niceranking.utils.logging import get_logger

logger = get_logger(__name__)

FORWARDED_COLUMN_EVENTS = (
    EventType.DIRTY,
    EventType.DIRTY_HEADER,
    EventType.DIRTY_VALUES,
)

# column events that invalidate the row order
_ORDER_EVENTS = (
    EventType.FILTER_CHANGED,
)

# events of criteria columns that invalidate the row order
_CRITERIA_EVENTS = (
    EventType.MAPPING_CHANGED,
    EventType.WEIGHTS_CHANGED,
    EventType.SORT_METHOD_CHANGED,
    EventType.GROUPING_CHANGED,
    EventType.ADD_COLUMN,
    EventType.MOVE_COLUMN,
    EventType.REMOVE_COLUMN,
)

# only dirtyValues forwarded from a composite's children reorders
_CRITERIA_VALUE_EVENTS = (EventType.DIRTY_VALUES,)


class Ranking(EventDispatcher):
    """Ordered columns plus sort, group and group-sort criteria.

    Args:
        id: Ranking id; sanitized to a CSS-safe fragment.
        config: Shared model defaults (criteria stack limits).
    """

    EVENTS = (
        EventType.WIDTH_CHANGED,
        EventType.FILTER_CHANGED,
        EventType.LABEL_CHANGED,
        EventType.ADD_COLUMN,
        EventType.MOVE_COLUMN,
        EventType.REMOVE_COLUMN,
        EventType.DIRTY,
        EventType.DIRTY_HEADER,
        EventType.DIRTY_VALUES,
        EventType.SORT_CRITERIA_CHANGED,
        EventType.GROUP_CRITERIA_CHANGED,
        EventType.GROUP_SORT_CRITERIA_CHANGED,
        EventType.DIRTY_ORDER,
        EventType.ORDER_CHANGED,
        EventType.GROUPS_CHANGED,
    )

    def __init__(self, id: str, config: Optional[ModelConfig] = None) -> None:
        super().__init__()
        self.config: ModelConfig = config or DEFAULT_CONFIG
        self._id: str = fix_css(id)
        self.label: str = f"Rank{self._id}"
        self._columns: list[Column] = []
        self._sort_criteria: list[SortCriteria] = []
        self._group_criteria: list[Column] = []
        self._group_sort_criteria: list[SortCriteria] = []
        self._groups: list[GroupData] = []

    def __repr__(self) -> str:
        return f"Ranking(id={self._id!r}, columns={len(self._columns)})"

    # ------------------------------------------------------------------
    # Identity (root of the parent chain)
    # ------------------------------------------------------------------

    @property
    def id(self) -> str:
        return self._id

    @property
    def fqid(self) -> str:
        return self._id

    @property
    def fqpath(self) -> str:
        return ""

    def find_my_ranker(self) -> "Ranking":
        return self

    # ------------------------------------------------------------------
    # Column access
    # ------------------------------------------------------------------

    @property
    def children(self) -> list[Column]:
        return list(self._columns)

    @property
    def length(self) -> int:
        return len(self._columns)

    def index_of(self, col: Column) -> int:
        for i, c in enumerate(self._columns):
            if c is col:
                return i
        return -1

    def at(self, index: int) -> Column:
        return self._columns[index]

    @property
    def flat_columns(self) -> list[Column]:
        """Every column of the tree, depth first."""
        result: list[Column] = []
        for col in self._columns:
            result.extend(descendants(col))
        return result

    def find(self, id: str) -> Optional[Column]:
        for col in self.flat_columns:
            if col.id == id:
                return col
        return None

    def flatten(self, results: list[FlatColumn], offset: float = 0, levels_to_go: int = 0, padding: float = 0) -> float:
        """Lay out the visible columns left to right; returns the total width."""
        acc = offset
        for col in self._columns:
            if col.is_hidden():
                continue
            w = col.flatten(results, acc, levels_to_go, padding)
            acc += w + padding
        return acc - offset

    # ------------------------------------------------------------------
    # Structural mutation
    # ------------------------------------------------------------------

    def insert(self, col: Column, index: Optional[int] = None) -> Optional[Column]:
        if col.parent is not None or self.index_of(col) >= 0:
            logger.debug(f"rejecting insert of {col.id!r}: already owned by {col.parent!r}")
            return None
        if index is None or index > len(self._columns):
            index = len(self._columns)
        index = max(0, index)
        self._columns.insert(index, col)
        col.parent = self
        self.forward(col, *FORWARDED_COLUMN_EVENTS)
        for event_type in _ORDER_EVENTS:
            col.on(f"{event_type.value}.order", self._dirty_order_handler)
        logger.debug(f"ranking {self.id!r}: inserted {col.id!r} at {index}")
        self.fire(
            [EventType.ADD_COLUMN, EventType.DIRTY_HEADER, EventType.DIRTY_VALUES, EventType.DIRTY],
            col,
            index,
        )
        return col

    def push(self, col: Column) -> Optional[Column]:
        return self.insert(col)

    def insert_after(self, col: Column, reference: Column) -> Optional[Column]:
        i = self.index_of(reference)
        if i < 0:
            return None
        return self.insert(col, i + 1)

    def move(self, col: Column, index: Optional[int] = None) -> Optional[Column]:
        if col.parent is not self:
            return None
        old = self.index_of(col)
        if index is None:
            index = len(self._columns)
        index = max(0, min(index, len(self._columns)))
        if index == old:
            return col
        self._columns.pop(old)
        if old < index:
            index -= 1
        self._columns.insert(index, col)
        self.fire(
            [EventType.MOVE_COLUMN, EventType.DIRTY_HEADER, EventType.DIRTY_VALUES, EventType.DIRTY],
            col,
            index,
            old,
        )
        return col

    def move_after(self, col: Column, reference: Column) -> Optional[Column]:
        i = self.index_of(reference)
        if i < 0:
            return None
        return self.move(col, i + 1)

    def remove(self, col: Column) -> bool:
        i = self.index_of(col)
        if i < 0:
            return False
        if col.frozen:
            logger.debug(f"refusing to remove frozen column {col.id!r}")
            return False
        self._remove_at(i, col)
        return True

    def clear(self) -> None:
        """Remove every column, frozen ones included."""
        for i in range(len(self._columns) - 1, -1, -1):
            self._remove_at(i, self._columns[i])

    def _remove_at(self, index: int, col: Column) -> None:
        self.purge_criteria(descendants(col))
        self.unforward(col, *FORWARDED_COLUMN_EVENTS)
        for event_type in _ORDER_EVENTS:
            col.on(f"{event_type.value}.order", None)
        self._columns.pop(index)
        col.parent = None
        logger.debug(f"ranking {self.id!r}: removed {col.id!r} from {index}")
        self.fire(
            [EventType.REMOVE_COLUMN, EventType.DIRTY_HEADER, EventType.DIRTY_VALUES, EventType.DIRTY],
            col,
            index,
        )

    def purge_criteria(self, cols: Iterable[Column]) -> None:
        """Drop ``cols`` from all three criteria stacks, firing what changed."""
        doomed = list(cols)

        def keep(c: Column) -> bool:
            return not any(c is d for d in doomed)

        sort_criteria = [s for s in self._sort_criteria if keep(s.col)]
        if len(sort_criteria) != len(self._sort_criteria):
            self._set_sort_criteria_impl(sort_criteria)
        group_criteria = [c for c in self._group_criteria if keep(c)]
        if len(group_criteria) != len(self._group_criteria):
            self._set_group_criteria_impl(group_criteria)
        group_sort_criteria = [s for s in self._group_sort_criteria if keep(s.col)]
        if len(group_sort_criteria) != len(self._group_sort_criteria):
            self._set_group_sort_criteria_impl(group_sort_criteria)

    def _owns(self, col: Optional[Column]) -> bool:
        return col is not None and col.find_my_ranker() is self

    # ------------------------------------------------------------------
    # Sort criteria
    # ------------------------------------------------------------------

    def get_sort_criteria(self) -> list[SortCriteria]:
        return list(self._sort_criteria)

    def get_primary_sort_criteria(self) -> Optional[SortCriteria]:
        return self._sort_criteria[0] if self._sort_criteria else None

    def sort_by(self, col: Optional[Column], asc: bool = False) -> bool:
        """Make ``col`` the primary sort key; ``None`` clears sorting."""
        result = self._criteria_prepend(self._sort_criteria, col, asc, self.config.max_sort_criteria)
        if result is None:
            return col is None or self._owns(col)
        self._set_sort_criteria_impl(result)
        return True

    def toggle_sorting(self, col: Column) -> bool:
        if not self._owns(col):
            return False
        primary = self.get_primary_sort_criteria()
        if primary is not None and primary.col is col:
            return self.sort_by(col, not primary.asc)
        return self.sort_by(col, True)

    def set_sort_criteria(self, criteria: Sequence[SortCriteria]) -> bool:
        criteria = [c for c in criteria if self._owns(c.col)]
        if criteria == self._sort_criteria:
            return True
        self._set_sort_criteria_impl(criteria)
        return True

    def _set_sort_criteria_impl(self, criteria: list[SortCriteria]) -> None:
        old = list(self._sort_criteria)
        self._rewire_criteria_listeners(old, criteria, "sort")
        self._sort_criteria = list(criteria)
        logger.debug(f"ranking {self.id!r}: sort criteria {self._describe(self._sort_criteria)}")
        self.fire(
            [
                EventType.SORT_CRITERIA_CHANGED,
                EventType.DIRTY_ORDER,
                EventType.DIRTY_HEADER,
                EventType.DIRTY_VALUES,
                EventType.DIRTY,
            ],
            old,
            self.get_sort_criteria(),
        )

    # ------------------------------------------------------------------
    # Group criteria
    # ------------------------------------------------------------------

    def get_group_criteria(self) -> list[Column]:
        return list(self._group_criteria)

    def toggle_grouping(self, col: Column) -> bool:
        """Add ``col`` to the group criteria, or remove it if present."""
        if not self._owns(col):
            return False
        criteria = [c for c in self._group_criteria if c is not col]
        if len(criteria) == len(self._group_criteria):
            criteria.append(col)
        self._set_group_criteria_impl(criteria)
        return True

    def group_by(self, col: Optional[Column]) -> bool:
        """Group exclusively by ``col``; ``None`` removes all grouping."""
        if col is None:
            return self.set_group_criteria([])
        if not self._owns(col):
            return False
        return self.set_group_criteria([col])

    def set_group_criteria(self, cols: Sequence[Column]) -> bool:
        criteria: list[Column] = []
        for c in cols:
            if self._owns(c) and not any(c is x for x in criteria):
                criteria.append(c)
        if len(criteria) == len(self._group_criteria) and all(a is b for a, b in zip(criteria, self._group_criteria)):
            return True
        self._set_group_criteria_impl(criteria)
        return True

    def _set_group_criteria_impl(self, criteria: list[Column]) -> None:
        old = list(self._group_criteria)
        self._rewire_criteria_listeners(
            [SortCriteria(c) for c in old], [SortCriteria(c) for c in criteria], "group"
        )
        self._group_criteria = list(criteria)
        logger.debug(f"ranking {self.id!r}: group criteria {[c.id for c in criteria]}")
        self.fire(
            [
                EventType.GROUP_CRITERIA_CHANGED,
                EventType.DIRTY_ORDER,
                EventType.DIRTY_HEADER,
                EventType.DIRTY_VALUES,
                EventType.DIRTY,
            ],
            old,
            self.get_group_criteria(),
        )

    # ------------------------------------------------------------------
    # Group sort criteria
    # ------------------------------------------------------------------

    def get_group_sort_criteria(self) -> list[SortCriteria]:
        return list(self._group_sort_criteria)

    def group_sort_by(self, col: Optional[Column], asc: bool = False) -> bool:
        result = self._criteria_prepend(self._group_sort_criteria, col, asc, self.config.max_group_sort_criteria)
        if result is None:
            return col is None or self._owns(col)
        self._set_group_sort_criteria_impl(result)
        return True

    def toggle_group_sorting(self, col: Column) -> bool:
        if not self._owns(col):
            return False
        primary = self._group_sort_criteria[0] if self._group_sort_criteria else None
        if primary is not None and primary.col is col:
            return self.group_sort_by(col, not primary.asc)
        return self.group_sort_by(col, True)

    def set_group_sort_criteria(self, criteria: Sequence[SortCriteria]) -> bool:
        criteria = [c for c in criteria if self._owns(c.col)]
        if criteria == self._group_sort_criteria:
            return True
        self._set_group_sort_criteria_impl(criteria)
        return True

    def _set_group_sort_criteria_impl(self, criteria: list[SortCriteria]) -> None:
        old = list(self._group_sort_criteria)
        self._rewire_criteria_listeners(old, criteria, "groupSort")
        self._group_sort_criteria = list(criteria)
        logger.debug(f"ranking {self.id!r}: group sort criteria {self._describe(self._group_sort_criteria)}")
        self.fire(
            [
                EventType.GROUP_SORT_CRITERIA_CHANGED,
                EventType.DIRTY_ORDER,
                EventType.DIRTY_HEADER,
                EventType.DIRTY_VALUES,
                EventType.DIRTY,
            ],
            old,
            self.get_group_sort_criteria(),
        )

    # ------------------------------------------------------------------
    # Criteria helpers
    # ------------------------------------------------------------------

    def _criteria_prepend(
        self, stack: list[SortCriteria], col: Optional[Column], asc: bool, limit: int
    ) -> Optional[list[SortCriteria]]:
        """New stack with ``col`` as primary key, or None when nothing changes."""
        if col is None:
            return [] if stack else None
        if not self._owns(col):
            logger.debug(f"ranking {self.id!r}: {col.id!r} is not one of my columns")
            return None
        primary = stack[0] if stack else None
        if primary is not None and primary.col is col and primary.asc == asc:
            return None
        result = [s for s in stack if s.col is not col]
        result.insert(0, SortCriteria(col=col, asc=asc))
        return result[: max(1, limit)]

    def _rewire_criteria_listeners(self, old: list[SortCriteria], new: list[SortCriteria], namespace: str) -> None:
        for s in old:
            for event_type in _CRITERIA_EVENTS + _CRITERIA_VALUE_EVENTS:
                if event_type in s.col.EVENTS:
                    s.col.on(f"{event_type.value}.{namespace}", None)
        for s in new:
            for event_type in _CRITERIA_EVENTS:
                if event_type in s.col.EVENTS:
                    s.col.on(f"{event_type.value}.{namespace}", self._dirty_order_handler)
            for event_type in _CRITERIA_VALUE_EVENTS:
                s.col.on(f"{event_type.value}.{namespace}", self._child_values_handler)

    @staticmethod
    def _describe(criteria: list[SortCriteria]) -> list[str]:
        return [f"{s.col.id}:{'asc' if s.asc else 'desc'}" for s in criteria]

    # ------------------------------------------------------------------
    # Order
    # ------------------------------------------------------------------

    def _dirty_order_handler(self, event: ModelEvent) -> None:
        self.dirty_order()

    def _child_values_handler(self, event: ModelEvent) -> None:
        if event.forwarded:
            self.dirty_order()

    def dirty_order(self) -> None:
        """Signal that the cached row order is stale."""
        self.fire([EventType.DIRTY_ORDER, EventType.DIRTY_VALUES, EventType.DIRTY])

    def set_groups(self, groups: Sequence[GroupData]) -> None:
        """Store the provider's ordered groups and notify renderers."""
        old = self._groups
        self._groups = list(groups)
        self.fire([EventType.ORDER_CHANGED, EventType.GROUPS_CHANGED], old, self.get_groups())

    def get_groups(self) -> list[GroupData]:
        return list(self._groups)

    def get_order(self) -> list[int]:
        return [i for g in self._groups for i in g.order]

    # ------------------------------------------------------------------
    # Filter
    # ------------------------------------------------------------------

    def is_filtered(self) -> bool:
        return any(c.is_filtered() for c in self._columns)

    def filter(self, row: Optional[DataRow]) -> bool:
        return row is not None and all(c.filter(row) for c in self._columns)

    # ------------------------------------------------------------------
    # Dump / restore
    # ------------------------------------------------------------------

    def dump(self, to_desc_ref: DescRef) -> dict[str, Any]:
        return {
            "id": self.id,
            "columns": [c.dump(to_desc_ref) for c in self._columns],
            "sortCriteria": [{"colId": s.col.id, "asc": s.asc} for s in self._sort_criteria],
            "groupCriteria": [{"colId": c.id} for c in self._group_criteria],
            "groupSortCriteria": [{"colId": s.col.id, "asc": s.asc} for s in self._group_sort_criteria],
        }

    def restore(self, dump: Mapping[str, Any], factory: ColumnFactory) -> None:
        """Replace columns and criteria with the dumped ones."""
        self.clear()
        for col_dump in dump.get("columns") or []:
            if not isinstance(col_dump, Mapping):
                continue
            col = factory(col_dump)
            if col is None:
                logger.warning(f"Skipping unresolvable column {col_dump.get('id')!r} in ranking {self.id!r}")
                continue
            self.push(col)
        index = {c.id: c for c in self.flat_columns}

        def resolve(entries: Any, key: str) -> list[tuple[Column, bool]]:
            resolved: list[tuple[Column, bool]] = []
            if not isinstance(entries, list):
                return resolved
            for entry in entries:
                if not isinstance(entry, Mapping):
                    continue
                col = index.get(str(entry.get("colId")))
                if col is None:
                    logger.warning(f"Dropping {key} entry for unknown column {entry.get('colId')!r}")
                    continue
                resolved.append((col, bool(entry.get("asc", False))))
            return resolved

        self.set_sort_criteria([SortCriteria(c, asc) for c, asc in resolve(dump.get("sortCriteria"), "sortCriteria")])
        self.set_group_criteria([c for c, _ in resolve(dump.get("groupCriteria"), "groupCriteria")])
        self.set_group_sort_criteria(
            [SortCriteria(c, asc) for c, asc in resolve(dump.get("groupSortCriteria"), "groupSortCriteria")]
        )
