"""Columns that own child columns.

:class:`CompositeColumn` is a :class:`ColumnParent`: it carries the structural
operations (insert/move/remove) and forwards its children's dirty events so
that a renderer listening at the ranking root sees nested changes too.
"""

from __future__ import annotations

import math
from typing import Any, Mapping, Optional, Sequence

import numpy as np

from niceranking.model.column import Column
from niceranking.model.events import EventType, ModelEvent
from niceranking.model.group import MISSING_GROUP, Group, GroupData, join_groups
from niceranking.model.interfaces import ColumnFactory, DataRow, DescRef, FlatColumn
from niceranking.model.value_columns import SortMethod, aggregate_values, number_compare
from niceranking.utils.logging import get_logger

logger = get_logger(__name__)

FORWARDED_CHILD_EVENTS = (
    EventType.DIRTY,
    EventType.DIRTY_HEADER,
    EventType.DIRTY_VALUES,
    EventType.FILTER_CHANGED,
)


def descendants(col: Column) -> list[Column]:
    """``col`` followed by every column nested inside it, depth first."""
    result = [col]
    if isinstance(col, CompositeColumn):
        for child in col.children:
            result.extend(descendants(child))
    return result


def is_ancestor(candidate: Column, node: Any) -> bool:
    """True if ``candidate`` is ``node`` or one of its parents."""
    while node is not None:
        if node is candidate:
            return True
        node = getattr(node, "parent", None)
    return False


class CompositeColumn(Column):
    """A column made of other columns."""

    def __init__(self, id, desc, config=None) -> None:
        super().__init__(id, desc, config)
        self._children: list[Column] = []

    # ------------------------------------------------------------------
    # ColumnParent
    # ------------------------------------------------------------------

    @property
    def children(self) -> list[Column]:
        return list(self._children)

    @property
    def length(self) -> int:
        return len(self._children)

    def index_of(self, col: Column) -> int:
        for i, c in enumerate(self._children):
            if c is col:
                return i
        return -1

    def at(self, index: int) -> Column:
        return self._children[index]

    def insert(self, col: Column, index: Optional[int] = None) -> Optional[Column]:
        if col.parent is not None or self.index_of(col) >= 0:
            logger.debug(f"rejecting insert of {col.id!r}: already owned by {col.parent!r}")
            return None
        if is_ancestor(col, self):
            logger.debug(f"rejecting insert of {col.id!r} into its own subtree")
            return None
        if index is None or index > len(self._children):
            index = len(self._children)
        index = max(0, index)
        self._children.insert(index, col)
        col.parent = self
        self.forward(col, *FORWARDED_CHILD_EVENTS)
        self._child_inserted(col)
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
            index = len(self._children)
        index = max(0, min(index, len(self._children)))
        if index == old:
            return col
        self._children.pop(old)
        if old < index:
            index -= 1
        self._children.insert(index, col)
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
        ranker = self.find_my_ranker()
        if ranker is not None:
            ranker.purge_criteria(descendants(col))
        self._detach(i, col)
        self.fire(
            [EventType.REMOVE_COLUMN, EventType.DIRTY_HEADER, EventType.DIRTY_VALUES, EventType.DIRTY],
            col,
            i,
        )
        return True

    def _detach(self, index: int, col: Column) -> None:
        self.unforward(col, *FORWARDED_CHILD_EVENTS)
        self._children.pop(index)
        col.parent = None
        self._child_removed(col)

    def _child_inserted(self, col: Column) -> None:
        pass

    def _child_removed(self, col: Column) -> None:
        pass

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def flatten(self, results: list[FlatColumn], offset: float, levels_to_go: int = 0, padding: float = 0) -> float:
        w = self.get_width()
        results.append(FlatColumn(col=self, offset=offset, width=w))
        if levels_to_go == 0:
            return w
        acc = offset
        for child in self._children:
            if child.is_hidden():
                continue
            cw = child.flatten(results, acc, levels_to_go - 1, padding)
            acc += cw + padding
        return w

    # ------------------------------------------------------------------
    # Value contract
    # ------------------------------------------------------------------

    def get_value(self, row: DataRow) -> list[Any]:
        return [c.get_value(row) for c in self._children]

    def get_label(self, row: DataRow) -> str:
        return "; ".join(c.get_label(row) for c in self._children)

    def is_missing(self, row: DataRow) -> bool:
        return all(c.is_missing(row) for c in self._children)

    def is_filtered(self) -> bool:
        return any(c.is_filtered() for c in self._children)

    def filter(self, row: Optional[DataRow]) -> bool:
        return row is not None and all(c.filter(row) for c in self._children)

    # ------------------------------------------------------------------
    # Dump / restore
    # ------------------------------------------------------------------

    def dump(self, to_desc_ref: DescRef) -> dict[str, Any]:
        r = super().dump(to_desc_ref)
        r["children"] = [c.dump(to_desc_ref) for c in self._children]
        return r

    def restore(self, dump: Mapping[str, Any], factory: Optional[ColumnFactory]) -> None:
        super().restore(dump, factory)
        children = dump.get("children")
        if not isinstance(children, list) or factory is None:
            return
        for i in range(len(self._children) - 1, -1, -1):
            self._detach(i, self._children[i])
        for child_dump in children:
            if not isinstance(child_dump, Mapping):
                continue
            child = factory(child_dump)
            if child is None:
                logger.warning(f"Skipping unresolvable child of {self.id!r}: {child_dump.get('id')!r}")
                continue
            self.insert(child)
        # restore the stored width after the children changed it
        width = dump.get("width")
        if isinstance(width, (int, float)) and not isinstance(width, bool) and width >= 0:
            self.set_width_impl(width)


class StackColumn(CompositeColumn):
    """Weighted sum of its children's normalized values.

    A child's weight is its share of the stack width, and the stack width is
    the sum of its children's widths.
    """

    EVENTS = CompositeColumn.EVENTS + (EventType.WEIGHTS_CHANGED,)

    def __init__(self, id, desc, config=None) -> None:
        super().__init__(id, desc, config)
        self._sort_method = SortMethod.MEDIAN
        self._adjusting = False

    def get_weights(self) -> list[float]:
        total = sum(c.get_width() for c in self._children)
        if total <= 0:
            n = len(self._children)
            return [1.0 / n] * n if n else []
        return [c.get_width() / total for c in self._children]

    def set_weights(self, weights: Sequence[float]) -> None:
        if len(weights) != len(self._children):
            raise ValueError(f"expected {len(self._children)} weights, got {len(weights)}")
        total_weight = float(sum(weights))
        if total_weight <= 0:
            return
        old = self.get_weights()
        width = self.get_width()
        self._adjusting = True
        try:
            for child, w in zip(self._children, weights):
                child.set_width_impl(width * w / total_weight)
        finally:
            self._adjusting = False
        self.fire(
            [EventType.WEIGHTS_CHANGED, EventType.DIRTY_HEADER, EventType.DIRTY_VALUES, EventType.DIRTY],
            old,
            self.get_weights(),
        )

    def set_width(self, value: float) -> None:
        current = self.get_width()
        if self._children and abs(current - value) >= self.config.width_epsilon:
            self._adjusting = True
            try:
                if current > 0:
                    factor = value / current
                    for child in self._children:
                        child.set_width_impl(child.get_width() * factor)
                else:
                    for child in self._children:
                        child.set_width_impl(value / len(self._children))
            finally:
                self._adjusting = False
        super().set_width(value)

    def _sync_width(self) -> None:
        self.set_width_impl(sum(c.get_width() for c in self._children))

    def _child_inserted(self, col: Column) -> None:
        col.on(f"{EventType.WIDTH_CHANGED.value}.stack", self._child_width_changed)
        self._sync_width()

    def _child_removed(self, col: Column) -> None:
        col.on(f"{EventType.WIDTH_CHANGED.value}.stack", None)
        self._sync_width()

    def _child_width_changed(self, event: ModelEvent) -> None:
        if self._adjusting:
            return
        old_total = self.get_width()
        total = sum(c.get_width() for c in self._children)
        self.set_width_impl(total)
        old_weights = []
        for c in self._children:
            w = event.old_value if c is event.source else c.get_width()
            old_weights.append(w / old_total if old_total > 0 else 0.0)
        self.fire(
            [EventType.WEIGHTS_CHANGED, EventType.DIRTY_HEADER, EventType.DIRTY_VALUES, EventType.DIRTY],
            old_weights,
            self.get_weights(),
        )

    def get_value(self, row: DataRow) -> float:
        total = 0.0
        seen = False
        for child, weight in zip(self._children, self.get_weights()):
            value = child.get_value(row)
            try:
                value = float(value)
            except (TypeError, ValueError):
                continue
            if math.isnan(value):
                continue
            total += weight * value
            seen = True
        return total if seen else math.nan

    def get_label(self, row: DataRow) -> str:
        value = self.get_value(row)
        return "" if math.isnan(value) else f"{value:.2f}"

    def is_missing(self, row: DataRow) -> bool:
        return math.isnan(self.get_value(row))

    def compare(self, a: DataRow, b: DataRow) -> int:
        return number_compare(self.get_value(a), self.get_value(b))

    def group(self, row: DataRow) -> Group:
        value = self.get_value(row)
        if math.isnan(value):
            return MISSING_GROUP
        return Group(name="< 0.5" if value < 0.5 else ">= 0.5", color=self.color)

    def group_compare(self, a: GroupData, b: GroupData) -> int:
        va = aggregate_values(np.array([self.get_value(r) for r in a.rows], dtype=float), self._sort_method)
        vb = aggregate_values(np.array([self.get_value(r) for r in b.rows], dtype=float), self._sort_method)
        return number_compare(va, vb)


class NestedColumn(CompositeColumn):
    """Orders rows by its children in turn, like a lexicographic key."""

    def compare(self, a: DataRow, b: DataRow) -> int:
        for child in self._children:
            r = child.compare(a, b)
            if r != 0:
                return r
        return 0

    def group(self, row: DataRow) -> Group:
        return join_groups([c.group(row) for c in self._children])
