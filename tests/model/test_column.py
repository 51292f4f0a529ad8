"""Tests for the Column base: identity, width, metadata, renderers and delegation."""

from __future__ import annotations

import pytest

from niceranking.model.column import Column, compare_text, fix_css
from niceranking.model.config import ModelConfig
from niceranking.model.events import EventType
from niceranking.model.group import DEFAULT_GROUP
from niceranking.model.interfaces import ColumnDesc, ColumnMetaData, DataRow, FlatColumn, SortState
from niceranking.model.ranking import Ranking

DIRTY_TIERS = ["dirtyHeader", "dirtyValues", "dirty"]


def _col(id: str = "a", **desc_kwargs) -> Column:
    desc_kwargs.setdefault("type", "default")
    return Column(id, ColumnDesc(**desc_kwargs))


def test_fix_css_replaces_unsafe_characters() -> None:
    """Whitespace and CSS punctuation become underscores."""
    assert fix_css("my col.1#x") == "my_col_1_x"
    assert fix_css("a[b]{c}") == "a_b__c_"
    assert fix_css("plain-id_1") == "plain-id_1"


def test_id_is_sanitized_at_construction_and_reassignment() -> None:
    """Ids are CSS safe whether given at construction or by a generator."""
    col = _col("a b")
    assert col.id == "a_b"
    col.assign_new_id(lambda: "x.y")
    assert col.id == "x_y"


def test_defaults_come_from_desc_and_config() -> None:
    """Width, label, color and renderers fall back as documented."""
    col = _col("c1", type="string")
    assert col.get_width() == 100
    assert col.label == "c1"
    assert col.description == ""
    assert col.color == Column.DEFAULT_COLOR
    assert col.get_renderer() == "string"
    assert col.get_group_renderer() == "string"
    assert col.get_summary_renderer() == "string"

    col = Column("c2", ColumnDesc(type="string", width=50, label="L", color="red", renderer="text"))
    assert col.get_width() == 50
    assert col.label == "L"
    assert col.color == "red"
    assert col.get_renderer() == "text"

    col = Column("c3", ColumnDesc(type="string"), ModelConfig(default_width=42))
    assert col.get_width() == 42


def test_set_width_ignores_jitter_and_fires_tiers(recorder) -> None:
    """Changes below the epsilon are dropped; real changes fire width + dirty tiers."""
    col = _col()
    col.on([t.value + ".t" for t in Column.EVENTS], recorder)

    col.set_width(100.3)
    assert recorder.events == []
    assert col.get_width() == 100

    col.set_width(150)
    assert recorder.types == ["widthChanged"] + DIRTY_TIERS
    assert all((e.old_value, e.new_value) == (100, 150) for e in recorder.events)


def test_set_width_impl_is_silent(recorder) -> None:
    """``set_width_impl`` changes the width without any event."""
    col = _col()
    col.on("dirty", recorder)
    col.set_width_impl(10)
    assert col.get_width() == 10
    assert recorder.events == []


def test_hide_and_frozen() -> None:
    """Hiding sets width 0; frozen columns refuse to hide."""
    col = _col()
    assert col.hide()
    assert col.is_hidden() and not col.is_visible()

    frozen = _col("f", frozen=True)
    assert not frozen.hide()
    assert frozen.is_visible()


def test_set_default_width_only_applies_while_default() -> None:
    """``set_default_width`` never overrides a user-chosen width."""
    col = _col()
    col.set_default_width(60)
    assert col.get_width() == 60
    col.set_default_width(80)
    assert col.get_width() == 60


def test_set_metadata_events_depend_on_color(recorder) -> None:
    """A label change skips dirtyValues; a color change includes it; equal metadata is a no-op."""
    col = _col(label="Old")
    col.on([t.value + ".t" for t in Column.EVENTS], recorder)

    col.set_metadata(ColumnMetaData(label="Old", description="", color=col.color))
    assert recorder.events == []

    col.set_label("New")
    assert recorder.types == ["labelChanged", "metaDataChanged", "dirtyHeader", "dirty"]
    assert recorder.events[0].old_value.label == "Old"
    assert recorder.events[0].new_value.label == "New"

    recorder.clear()
    col.set_metadata(ColumnMetaData(label="New", description="", color="blue"))
    assert recorder.types == ["labelChanged", "metaDataChanged"] + DIRTY_TIERS


def test_get_metadata_returns_copy() -> None:
    """Mutating the returned metadata cannot change the column."""
    col = _col(label="L")
    meta = col.get_metadata()
    assert meta == ColumnMetaData(label="L", description="", color=Column.DEFAULT_COLOR)
    assert meta is not col.get_metadata()


@pytest.mark.parametrize(
    "setter,event,tiers",
    [
        ("set_renderer", "rendererTypeChanged", ["dirtyValues", "dirty"]),
        ("set_group_renderer", "groupRendererChanged", ["dirtyValues", "dirty"]),
        ("set_summary_renderer", "summaryRendererChanged", ["dirtyHeader", "dirty"]),
    ],
)
def test_renderer_setters_fire_their_tiers(recorder, setter: str, event: str, tiers: list[str]) -> None:
    """Each renderer kind fires its own change event and dirty tiers."""
    col = _col(type="string")
    col.on([t.value + ".t" for t in Column.EVENTS], recorder)
    getattr(col, setter)("bar")
    assert recorder.types == [event] + tiers
    assert (recorder.events[0].old_value, recorder.events[0].new_value) == ("string", "bar")


def test_set_default_renderer_only_applies_while_default() -> None:
    """Defaults never override an explicit renderer choice."""
    col = _col(type="string")
    col.set_default_renderer("bar")
    assert col.get_renderer() == "bar"
    col.set_default_renderer("heatmap")
    assert col.get_renderer() == "bar"


def test_value_contract_defaults() -> None:
    """The base column has an empty value and collapses to the default group."""
    col = _col()
    row = DataRow(v={"x": 1}, i=0)
    assert col.get_value(row) == ""
    assert col.get_label(row) == ""
    assert col.is_missing(row)
    assert col.compare(row, row) == 0
    assert col.group(row) is DEFAULT_GROUP
    assert not col.is_filtered()
    assert col.filter(row)
    assert not col.filter(None)


def test_compare_text_is_case_insensitive() -> None:
    """Group names compare without regard to case."""
    assert compare_text("abc", "ABC") == 0
    assert compare_text("a", "B") == -1
    assert compare_text("b", "A") == 1


def test_detached_delegation_returns_false() -> None:
    """Ranking operations on a detached column fail soft without mutating anything."""
    col = _col()
    assert col.find_my_ranker() is None
    assert col.sort_by_me() is False
    assert col.toggle_my_sorting() is False
    assert col.group_by_me() is False
    assert col.group_sort_by_me() is False
    assert col.toggle_my_group_sorting() is False
    assert col.remove_me() is False
    assert col.insert_after_me(_col("b")) is False
    assert col.is_grouped_by() == -1
    assert col.is_sorted_by_me() == SortState()
    assert col.is_group_sorted_by_me() == SortState(None, None)
    assert col.fqid == "a"
    assert col.fqpath == ""


def test_fqid_and_fqpath_follow_structure() -> None:
    """Identity paths are recomputed from the live parent chain."""
    r = Ranking("r1")
    a, b = _col("a"), _col("b")
    r.push(a)
    r.push(b)
    assert (a.fqid, a.fqpath) == ("r1_a", "@0")
    assert (b.fqid, b.fqpath) == ("r1_b", "@1")

    r.move(b, 0)
    assert b.fqpath == "@0"
    assert a.fqpath == "@1"

    r.remove(b)
    assert b.fqid == "b" and b.fqpath == ""
    assert a.fqpath == "@0"


def test_flatten_appends_own_entry() -> None:
    """A leaf contributes one layout entry at the given offset."""
    col = _col()
    col.set_width(40)
    out: list[FlatColumn] = []
    assert col.flatten(out, 15) == 40
    assert out == [FlatColumn(col=col, offset=15, width=40)]


def test_sort_state_reports_direction_and_priority() -> None:
    """``is_sorted_by_me`` exposes the criterion's direction and stack index."""
    r = Ranking("r")
    a, b = _col("a"), _col("b")
    r.push(a)
    r.push(b)
    a.sort_by_me(asc=True)
    b.sort_by_me()

    assert b.is_sorted_by_me() == SortState(asc="desc", priority="0")
    assert a.is_sorted_by_me() == SortState(asc="asc", priority="1")


def test_dump_contains_only_changed_fields() -> None:
    """Fields equal to their defaults stay out of the dump."""
    col = _col("a", type="string", label="A")
    d = col.dump(lambda desc: "ref")
    assert d == {"id": "a", "desc": "ref", "width": 100.0}

    col.set_label("B")
    col.set_renderer("bar")
    col.set_metadata(ColumnMetaData(label="B", description="", color="red"))
    d = col.dump(lambda desc: "ref")
    assert d["label"] == "B"
    assert d["renderer"] == "bar"
    assert d["color"] == "red"
    assert "groupRenderer" not in d


def test_restore_is_tolerant() -> None:
    """Absent or ill-typed fields keep their current value; width 0 restores as hidden."""
    col = _col("a", type="string", label="A")
    col.restore({"width": "wide", "label": None, "rendererType": "bar"}, None)
    assert col.get_width() == 100
    assert col.label == "A"
    assert col.get_renderer() == "bar"

    col.restore({"width": 0}, None)
    assert col.is_hidden()


def test_events_declared_for_base_column() -> None:
    """Every value-change channel a column fires is declared."""
    for event_type in (EventType.WIDTH_CHANGED, EventType.LABEL_CHANGED, EventType.METADATA_CHANGED):
        assert event_type in Column.EVENTS
