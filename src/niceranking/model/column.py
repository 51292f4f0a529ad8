"""Column base class: identity, layout, metadata and the value contract.

A column is the addressable unit of a ranking. Leaf columns read a value out
of a row; composite columns (see ``composite_column.py``) own child columns.
Every mutator fires its change event followed by the dirty tiers a renderer
needs:

- ``dirtyHeader``: header chrome must redraw
- ``dirtyValues``: cell bodies must redraw
- ``dirty``: something changed (coarsest)

Operations that need the owning ranking (sorting, grouping) walk the parent
chain and fail soft, returning ``False``, when the column is detached.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional

from niceranking.model.config import DEFAULT_CONFIG, ModelConfig
from niceranking.model.events import EventDispatcher, EventType
from niceranking.model.group import DEFAULT_GROUP, Group, GroupData
from niceranking.model.interfaces import (
    ColumnDesc,
    ColumnFactory,
    ColumnMetaData,
    ColumnParent,
    DataRow,
    DescRef,
    FlatColumn,
    SortCriteria,
    SortState,
)
from niceranking.model.missing import is_missing_value
from niceranking.utils.logging import get_logger

if TYPE_CHECKING:
    from niceranking.model.ranking import Ranking

logger = get_logger(__name__)

_CSS_UNSAFE = re.compile(r"[\s!#$%&'()*+,./:;<=>?@\[\\\]^`{|}~]")


def fix_css(value: str) -> str:
    """Replace characters that are not allowed in a CSS identifier with ``_``."""
    return _CSS_UNSAFE.sub("_", str(value))


def similar(a: float, b: float, delta: float = 0.5) -> bool:
    return abs(a - b) < delta


def compare_text(a: str, b: str) -> int:
    """Case-insensitive three-way comparison."""
    a = a.lower()
    b = b.lower()
    return (a > b) - (a < b)


class Column(EventDispatcher):
    """A column of a ranking.

    Args:
        id: Column id; sanitized to a CSS-safe fragment.
        desc: The immutable description this column was created from.
        config: Shared model defaults.
    """

    DEFAULT_COLOR = DEFAULT_CONFIG.default_color
    # magic levels_to_go value for flattening every level
    FLAT_ALL_COLUMNS = -1

    EVENTS = (
        EventType.WIDTH_CHANGED,
        EventType.FILTER_CHANGED,
        EventType.LABEL_CHANGED,
        EventType.METADATA_CHANGED,
        EventType.ADD_COLUMN,
        EventType.MOVE_COLUMN,
        EventType.REMOVE_COLUMN,
        EventType.DIRTY,
        EventType.DIRTY_HEADER,
        EventType.DIRTY_VALUES,
        EventType.RENDERER_TYPE_CHANGED,
        EventType.GROUP_RENDERER_TYPE_CHANGED,
        EventType.SUMMARY_RENDERER_TYPE_CHANGED,
        EventType.SORT_METHOD_CHANGED,
        EventType.GROUPING_CHANGED,
        EventType.DATA_LOADED,
    )

    def __init__(self, id: str, desc: ColumnDesc, config: Optional[ModelConfig] = None) -> None:
        super().__init__()
        self.config: ModelConfig = config or DEFAULT_CONFIG
        self.desc: ColumnDesc = desc
        self._uid: str = fix_css(id)

        # non-owning back reference, set by the parent on insert
        self.parent: Optional[ColumnParent] = None

        self._renderer: str = desc.renderer or desc.type
        self._group_renderer: str = desc.group_renderer or desc.type
        self._summary_renderer: str = desc.summary_renderer or desc.type
        self._width: float = (
            float(desc.width) if desc.width is not None and desc.width >= 0 else float(self.config.default_width)
        )
        self._metadata = ColumnMetaData(
            label=desc.label or self._uid,
            description=desc.description or "",
            color=desc.color or self.config.default_color,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self._uid!r}, type={self.desc.type!r})"

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def id(self) -> str:
        return self._uid

    def assign_new_id(self, id_generator: Callable[[], str]) -> None:
        self._uid = fix_css(id_generator())

    @property
    def frozen(self) -> bool:
        return bool(self.desc.frozen)

    @property
    def fqid(self) -> str:
        """Fully qualified id: the parent's fqid joined with this id."""
        if self.parent is None:
            return self.id
        return f"{self.parent.fqid}_{self.id}"

    @property
    def fqpath(self) -> str:
        """Position path such as ``@0@2``; empty when detached."""
        if self.parent is None:
            return ""
        return f"{self.parent.fqpath}@{self.parent.index_of(self)}"

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    @property
    def label(self) -> str:
        return self._metadata.label

    @property
    def description(self) -> str:
        return self._metadata.description

    @property
    def color(self) -> Optional[str]:
        return self._metadata.color

    def get_metadata(self) -> ColumnMetaData:
        return ColumnMetaData(label=self.label, description=self.description, color=self.color)

    def set_metadata(self, value: ColumnMetaData) -> None:
        if value.label == self.label and value.color == self.color and value.description == self.description:
            return
        if value.color == self.color:
            events = [
                EventType.LABEL_CHANGED,
                EventType.METADATA_CHANGED,
                EventType.DIRTY_HEADER,
                EventType.DIRTY,
            ]
        else:
            events = [
                EventType.LABEL_CHANGED,
                EventType.METADATA_CHANGED,
                EventType.DIRTY_HEADER,
                EventType.DIRTY_VALUES,
                EventType.DIRTY,
            ]
        old = self.get_metadata()
        self._metadata = ColumnMetaData(label=value.label, description=value.description, color=value.color)
        self.fire(events, old, self.get_metadata())

    def set_label(self, label: str) -> None:
        self.set_metadata(ColumnMetaData(label=label, description=self.description, color=self.color))

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def get_width(self) -> float:
        return self._width

    @property
    def width(self) -> float:
        return self._width

    def set_width(self, value: float) -> None:
        if similar(self._width, value, self.config.width_epsilon):
            return
        old = self._width
        self._width = float(value)
        self.fire(
            [EventType.WIDTH_CHANGED, EventType.DIRTY_HEADER, EventType.DIRTY_VALUES, EventType.DIRTY],
            old,
            self._width,
        )

    def set_width_impl(self, value: float) -> None:
        """Set the width without firing events."""
        self._width = float(value)

    def set_default_width(self, width: float) -> None:
        if self._width != self.config.default_width:
            return
        self.set_width_impl(width)

    def is_hidden(self) -> bool:
        return self._width <= 0

    def is_visible(self) -> bool:
        return not self.is_hidden()

    def hide(self) -> bool:
        if self.frozen:
            logger.debug(f"refusing to hide frozen column {self.id!r}")
            return False
        self.set_width(0)
        return True

    def flatten(self, results: list[FlatColumn], offset: float, levels_to_go: int = 0, padding: float = 0) -> float:
        """Append this column's layout entry and return the consumed width."""
        w = self.get_width()
        results.append(FlatColumn(col=self, offset=offset, width=w))
        return w

    # ------------------------------------------------------------------
    # Ranking delegation
    # ------------------------------------------------------------------

    def find_my_ranker(self) -> Optional["Ranking"]:
        if self.parent is not None:
            return self.parent.find_my_ranker()
        return None

    def sort_by_me(self, asc: bool = False) -> bool:
        r = self.find_my_ranker()
        if r is None:
            return False
        return r.sort_by(self, asc)

    def toggle_my_sorting(self) -> bool:
        r = self.find_my_ranker()
        if r is None:
            return False
        return r.toggle_sorting(self)

    def group_by_me(self) -> bool:
        r = self.find_my_ranker()
        if r is None:
            return False
        return r.toggle_grouping(self)

    def is_grouped_by(self) -> int:
        r = self.find_my_ranker()
        if r is None:
            return -1
        criteria = r.get_group_criteria()
        return criteria.index(self) if self in criteria else -1

    def group_sort_by_me(self, asc: bool = False) -> bool:
        r = self.find_my_ranker()
        if r is None:
            return False
        return r.group_sort_by(self, asc)

    def toggle_my_group_sorting(self) -> bool:
        r = self.find_my_ranker()
        if r is None:
            return False
        return r.toggle_group_sorting(self)

    def _sort_state(self, selector: Callable[["Ranking"], list[SortCriteria]]) -> SortState:
        r = self.find_my_ranker()
        if r is None:
            return SortState()
        for index, criteria in enumerate(selector(r)):
            if criteria.col is self:
                return SortState(asc="asc" if criteria.asc else "desc", priority=str(index))
        return SortState()

    def is_sorted_by_me(self) -> SortState:
        return self._sort_state(lambda r: r.get_sort_criteria())

    def is_group_sorted_by_me(self) -> SortState:
        return self._sort_state(lambda r: r.get_group_sort_criteria())

    def remove_me(self) -> bool:
        if self.parent is None:
            return False
        return self.parent.remove(self)

    def insert_after_me(self, col: "Column") -> bool:
        if self.parent is None:
            return False
        return self.parent.insert_after(col, self) is not None

    # ------------------------------------------------------------------
    # Value contract
    # ------------------------------------------------------------------

    def get_value(self, row: DataRow) -> Any:
        return ""  # no value

    def get_label(self, row: DataRow) -> str:
        return str(self.get_value(row))

    def is_missing(self, row: DataRow) -> bool:
        return is_missing_value(self.get_value(row))

    def compare(self, a: DataRow, b: DataRow) -> int:
        return 0  # can't compare

    def group(self, row: DataRow) -> Group:
        return DEFAULT_GROUP

    def group_compare(self, a: GroupData, b: GroupData) -> int:
        return compare_text(a.name, b.name)

    def is_filtered(self) -> bool:
        return False

    def filter(self, row: Optional[DataRow]) -> bool:
        return row is not None

    # ------------------------------------------------------------------
    # Renderer kinds
    # ------------------------------------------------------------------

    def get_renderer(self) -> str:
        return self._renderer

    def get_group_renderer(self) -> str:
        return self._group_renderer

    def get_summary_renderer(self) -> str:
        return self._summary_renderer

    def set_renderer(self, renderer: str) -> None:
        if renderer == self._renderer:
            return
        old = self._renderer
        self._renderer = renderer
        self.fire([EventType.RENDERER_TYPE_CHANGED, EventType.DIRTY_VALUES, EventType.DIRTY], old, renderer)

    def set_default_renderer(self, renderer: str) -> None:
        if self._renderer != self.desc.type:
            return
        self.set_renderer(renderer)

    def set_group_renderer(self, renderer: str) -> None:
        if renderer == self._group_renderer:
            return
        old = self._group_renderer
        self._group_renderer = renderer
        self.fire([EventType.GROUP_RENDERER_TYPE_CHANGED, EventType.DIRTY_VALUES, EventType.DIRTY], old, renderer)

    def set_default_group_renderer(self, renderer: str) -> None:
        if self._group_renderer != self.desc.type:
            return
        self.set_group_renderer(renderer)

    def set_summary_renderer(self, renderer: str) -> None:
        if renderer == self._summary_renderer:
            return
        old = self._summary_renderer
        self._summary_renderer = renderer
        self.fire([EventType.SUMMARY_RENDERER_TYPE_CHANGED, EventType.DIRTY_HEADER, EventType.DIRTY], old, renderer)

    def set_default_summary_renderer(self, renderer: str) -> None:
        if self._summary_renderer != self.desc.type:
            return
        self.set_summary_renderer(renderer)

    # ------------------------------------------------------------------
    # Dump / restore
    # ------------------------------------------------------------------

    def dump(self, to_desc_ref: DescRef) -> dict[str, Any]:
        """Serialize the id, width and every field that differs from its default."""
        r: dict[str, Any] = {
            "id": self.id,
            "desc": to_desc_ref(self.desc),
            "width": self._width,
        }
        if self.label != (self.desc.label or self.id):
            r["label"] = self.label
        if self.color and self.color != (self.desc.color or self.config.default_color):
            r["color"] = self.color
        if self._renderer != self.desc.type:
            r["renderer"] = self._renderer
        if self._group_renderer != self.desc.type:
            r["groupRenderer"] = self._group_renderer
        if self._summary_renderer != self.desc.type:
            r["summaryRenderer"] = self._summary_renderer
        return r

    def restore(self, dump: Mapping[str, Any], factory: Optional[ColumnFactory]) -> None:
        """Apply a dump; absent or unusable fields keep their current value."""
        width = dump.get("width")
        if isinstance(width, (int, float)) and not isinstance(width, bool) and width >= 0:
            self._width = float(width)
        self._metadata = ColumnMetaData(
            label=dump.get("label") or self.label,
            description=self.description,
            color=dump.get("color") or self.color,
        )
        renderer = dump.get("renderer") or dump.get("rendererType")
        if renderer:
            self._renderer = str(renderer)
        if dump.get("groupRenderer"):
            self._group_renderer = str(dump["groupRenderer"])
        if dump.get("summaryRenderer"):
            self._summary_renderer = str(dump["summaryRenderer"])
