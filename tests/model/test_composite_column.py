"""Tests for composite columns: structure, forwarding, stack weights and nesting."""

from __future__ import annotations

import math

import pytest

from niceranking.model.column import Column
from niceranking.model.composite_column import CompositeColumn, NestedColumn, StackColumn, descendants
from niceranking.model.interfaces import ColumnDesc, DataRow, FlatColumn
from niceranking.model.ranking import Ranking
from niceranking.model.value_columns import NumberColumn, StringColumn


def _num(id: str, key: str, width: float = 100) -> NumberColumn:
    return NumberColumn(id, ColumnDesc(type="number", column=key, domain=(0, 10), width=width))


@pytest.fixture
def stack() -> StackColumn:
    s = StackColumn("s", ColumnDesc(type="stack", label="Score"))
    s.push(_num("x", "x", 100))
    s.push(_num("y", "y", 300))
    return s


def test_insert_rejects_owned_duplicate_and_cycles() -> None:
    """A column can only have one parent and never contain itself."""
    outer = NestedColumn("o", ColumnDesc(type="nested"))
    inner = NestedColumn("i", ColumnDesc(type="nested"))
    leaf = Column("l", ColumnDesc(type="default"))

    assert outer.push(inner) is inner
    assert inner.push(leaf) is leaf
    assert outer.push(leaf) is None
    assert inner.push(outer) is None
    assert outer.push(outer) is None
    assert descendants(outer) == [outer, inner, leaf]


def test_structural_events_and_fqpath(recorder) -> None:
    """insert/move/remove fire their event plus the dirty tiers and keep paths live."""
    comp = NestedColumn("c", ColumnDesc(type="nested"))
    a = Column("a", ColumnDesc(type="default"))
    b = Column("b", ColumnDesc(type="default"))
    comp.on(["addColumn.t", "moveColumn.t", "removeColumn.t", "dirtyHeader.t", "dirtyValues.t", "dirty.t"], recorder)

    comp.push(a)
    comp.insert(b, 0)
    assert recorder.types[:4] == ["addColumn", "dirtyHeader", "dirtyValues", "dirty"]
    assert recorder.events[4].args == (b, 0)
    assert [c.id for c in comp.children] == ["b", "a"]
    assert a.fqpath == "@1" and a.fqid == "c_a"

    recorder.clear()
    comp.move(b, 2)
    assert [c.id for c in comp.children] == ["a", "b"]
    assert recorder.events[0].args == (b, 1, 0)

    recorder.clear()
    assert comp.remove(a)
    assert recorder.types == ["removeColumn", "dirtyHeader", "dirtyValues", "dirty"]
    assert a.parent is None
    assert not comp.remove(a)


def test_remove_refuses_frozen_child() -> None:
    """Frozen children stay put."""
    comp = NestedColumn("c", ColumnDesc(type="nested"))
    frozen = Column("f", ColumnDesc(type="default", frozen=True))
    comp.push(frozen)
    assert not comp.remove(frozen)
    assert comp.length == 1


def test_child_dirty_events_are_forwarded(recorder) -> None:
    """A child's dirty events reach the composite with the child as origin."""
    comp = NestedColumn("c", ColumnDesc(type="nested"))
    child = _num("n", "n")
    comp.push(child)
    comp.on("dirtyValues.t", recorder)

    child.set_mapping((0, 5))

    assert len(recorder.events) == 1
    assert recorder.events[0].origin is child
    assert recorder.events[0].source is comp


def test_flatten_recurses_into_visible_children() -> None:
    """With levels_to_go != 0 children are laid out at accumulated offsets."""
    comp = NestedColumn("c", ColumnDesc(type="nested", width=200))
    a, b, c = _num("a", "a", 50), _num("b", "b", 60), _num("c", "c", 70)
    for col in (a, b, c):
        comp.push(col)
    b.hide()

    out: list[FlatColumn] = []
    assert comp.flatten(out, 10, 0) == 200
    assert out == [FlatColumn(comp, 10, 200)]

    out = []
    comp.flatten(out, 10, Column.FLAT_ALL_COLUMNS, padding=5)
    assert [(f.col.id, f.offset) for f in out] == [("c", 10), ("a", 10), ("c", 65)]


def test_stack_width_is_sum_of_children(stack: StackColumn) -> None:
    """The stack width follows its children; weights are width shares."""
    assert stack.get_width() == 400
    assert stack.get_weights() == pytest.approx([0.25, 0.75])


def test_stack_set_width_scales_children(stack: StackColumn) -> None:
    """Resizing the stack keeps the weights."""
    stack.set_width(800)
    assert [c.get_width() for c in stack.children] == pytest.approx([200, 600])
    assert stack.get_weights() == pytest.approx([0.25, 0.75])


def test_stack_set_weights(stack: StackColumn, recorder) -> None:
    """set_weights redistributes the width and fires weightsChanged."""
    stack.on("weightsChanged", recorder)
    stack.set_weights([1, 1])
    assert stack.get_weights() == pytest.approx([0.5, 0.5])
    assert stack.get_width() == pytest.approx(400)
    assert recorder.events[0].old_value == pytest.approx([0.25, 0.75])
    with pytest.raises(ValueError):
        stack.set_weights([1])


def test_stack_child_width_change_refires_weights(stack: StackColumn, recorder) -> None:
    """Resizing a child updates the stack width and reports old and new weights."""
    stack.on("weightsChanged", recorder)
    stack.children[0].set_width(300)
    assert stack.get_width() == 600
    assert recorder.events[0].old_value == pytest.approx([0.25, 0.75])
    assert recorder.events[0].new_value == pytest.approx([0.5, 0.5])


def test_stack_value_compare_and_group(stack: StackColumn) -> None:
    """The stack value is the weighted sum of normalized child values."""
    high = DataRow(v={"x": 10, "y": 10}, i=0)
    mixed = DataRow(v={"x": 0, "y": 4}, i=1)
    empty = DataRow(v={}, i=2)
    assert stack.get_value(high) == pytest.approx(1.0)
    assert stack.get_value(mixed) == pytest.approx(0.3)
    assert math.isnan(stack.get_value(empty))
    assert stack.is_missing(empty)
    assert stack.compare(high, mixed) > 0
    assert stack.get_label(mixed) == "0.30"
    assert stack.group(mixed).name == "< 0.5"


def test_stack_remove_child_resyncs_width(stack: StackColumn) -> None:
    """Removing a child shrinks the stack and drops its width listener."""
    x = stack.children[0]
    stack.remove(x)
    assert stack.get_width() == 300
    assert stack.get_weights() == [1.0]
    x.set_width(10)
    assert stack.get_width() == 300


def test_nested_compare_and_labels() -> None:
    """Nested columns compare child by child and join labels and groups."""
    nested = NestedColumn("n", ColumnDesc(type="nested"))
    nested.push(StringColumn("t", ColumnDesc(type="string", column="team")))
    nested.push(_num("a", "age"))
    r1 = DataRow(v={"team": "A", "age": 5}, i=0)
    r2 = DataRow(v={"team": "A", "age": 7}, i=1)
    r3 = DataRow(v={"team": "B", "age": 1}, i=2)

    assert nested.compare(r1, r2) < 0
    assert nested.compare(r3, r2) > 0
    assert nested.get_label(r1) == "A; 5.00"
    group = nested.group(r1)
    assert group.name == "A ∩ >= 5"
    assert group.parent.name == "A"


def test_composite_filter_and_missing() -> None:
    """All children must pass; missing only when every child is missing."""
    comp = NestedColumn("c", ColumnDesc(type="nested"))
    s = StringColumn("s", ColumnDesc(type="string", column="s"))
    comp.push(s)
    comp.push(_num("n", "n"))
    row = DataRow(v={"s": "hello", "n": None}, i=0)
    assert not comp.is_missing(row)
    assert comp.is_missing(DataRow(v={}, i=1))

    s.set_filter("xyz")
    assert comp.is_filtered()
    assert not comp.filter(row)


def test_removing_nested_criteria_column_purges_ranking() -> None:
    """Removing a child that is a sort key drops it from the ranking's criteria."""
    r = Ranking("r")
    comp = NestedColumn("c", ColumnDesc(type="nested"))
    child = _num("n", "n")
    comp.push(child)
    r.push(comp)
    child.sort_by_me()
    assert r.get_sort_criteria()[0].col is child

    comp.remove(child)
    assert r.get_sort_criteria() == []


def test_composite_is_column_parent() -> None:
    """Composite columns expose the parent protocol used by their children."""
    comp = StackColumn("s", ColumnDesc(type="stack"))
    a = _num("a", "a")
    b = _num("b", "b")
    comp.push(a)
    assert comp.insert_after(b, a) is b
    assert comp.index_of(b) == 1
    assert comp.at(0) is a
    assert comp.move_after(a, b) is a
    assert [c.id for c in comp.children] == ["b", "a"]
    assert isinstance(comp, CompositeColumn)
