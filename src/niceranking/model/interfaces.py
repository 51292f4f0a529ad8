"""Value types and protocols shared by columns, rankings and renderers."""

from __future__ import annotations

import numbers
from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any, Callable, Mapping, NamedTuple, Optional, Protocol, Sequence, Union, runtime_checkable

if TYPE_CHECKING:
    from niceranking.model.column import Column
    from niceranking.model.group import Group
    from niceranking.model.ranking import Ranking

Accessor = Union[str, Callable[[Any], Any]]


@dataclass(frozen=True)
class ColumnDesc:
    """Immutable description of a column, supplied from outside the model.

    Attributes:
        type: Column kind tag (e.g. ``"string"``, ``"number"``). Also the
            default renderer name.
        label: Header label. Defaults to the column id.
        description: Longer text for tooltips.
        color: Column color. Defaults to ``Column.DEFAULT_COLOR``.
        width: Initial width; ignored when ``None`` or negative.
        renderer: Fixed renderer name, else ``type``.
        group_renderer: Fixed group renderer name, else ``type``.
        summary_renderer: Fixed summary renderer name, else ``type``.
        frozen: Column cannot be removed or hidden.
        column: Row key, attribute name or callable used by value columns.
        domain: ``(min, max)`` input domain for number columns.
        categories: Category names or ``{"name", "label", "color"}`` mappings.
        missing_value: Value substituted for missing raw values.
        children: Child descriptions for composite columns.
    """

    type: str
    label: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    width: Optional[float] = None
    renderer: Optional[str] = None
    group_renderer: Optional[str] = None
    summary_renderer: Optional[str] = None
    frozen: bool = False
    column: Optional[Accessor] = None
    domain: Optional[tuple[float, float]] = None
    categories: tuple[Any, ...] = ()
    missing_value: Any = None
    children: tuple["ColumnDesc", ...] = ()

    def __post_init__(self) -> None:
        if not self.type:
            raise ValueError("ColumnDesc requires a non-empty 'type'")
        object.__setattr__(self, "categories", tuple(self.categories or ()))
        object.__setattr__(self, "children", tuple(self.children or ()))
        if self.width is not None:
            if isinstance(self.width, bool) or not isinstance(self.width, numbers.Real):
                raise ValueError(f"ColumnDesc width must be a number, got {self.width!r}")
            object.__setattr__(self, "width", float(self.width))
        if self.domain is not None:
            try:
                lo, hi = self.domain
                domain = (float(lo), float(hi))
            except (TypeError, ValueError) as e:
                raise ValueError(f"ColumnDesc domain must be two numbers, got {self.domain!r}") from e
            object.__setattr__(self, "domain", domain)

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> "ColumnDesc":
        """Instantiate from a configuration mapping; unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in cfg.items() if k in known}
        if "children" in kwargs:
            kwargs["children"] = tuple(
                c if isinstance(c, ColumnDesc) else cls.from_config(c) for c in kwargs["children"]
            )
        if "type" not in kwargs:
            raise ValueError("Column configuration requires a 'type' field.")
        return cls(**kwargs)


@dataclass(frozen=True)
class DataRow:
    """A raw row ``v`` together with its index ``i`` in the provider's data."""

    v: Any
    i: int


@dataclass(frozen=True)
class FlatColumn:
    """One entry of a flattened column layout."""

    col: "Column"
    offset: float
    width: float


@dataclass(frozen=True)
class ColumnMetaData:
    label: str
    description: str = ""
    color: Optional[str] = None


@dataclass(frozen=True)
class SortCriteria:
    """One entry of a criteria stack; index 0 of a stack is the primary key."""

    col: "Column"
    asc: bool = False


class SortState(NamedTuple):
    """Answer of ``Column.is_sorted_by_me()``; both ``None`` when not sorted."""

    asc: Optional[str] = None
    priority: Optional[str] = None


@runtime_checkable
class ColumnParent(Protocol):
    """Whatever owns a column: a composite column or a ranking."""

    @property
    def fqid(self) -> str:
        ...

    @property
    def fqpath(self) -> str:
        ...

    def remove(self, col: "Column") -> bool:
        ...

    def insert(self, col: "Column", index: Optional[int] = None) -> Optional["Column"]:
        ...

    def insert_after(self, col: "Column", reference: "Column") -> Optional["Column"]:
        ...

    def move(self, col: "Column", index: Optional[int] = None) -> Optional["Column"]:
        ...

    def move_after(self, col: "Column", reference: "Column") -> Optional["Column"]:
        ...

    def find_my_ranker(self) -> Optional["Ranking"]:
        ...

    def index_of(self, col: "Column") -> int:
        ...

    def at(self, index: int) -> "Column":
        ...


@runtime_checkable
class DataProviderHandle(Protocol):
    """The part of a data provider a renderer may call."""

    def select_all_of(self, ranking: "Ranking") -> None:
        ...

    def set_selection(self, ids: Sequence[int]) -> None:
        ...

    def aggregate_all_of(self, ranking: "Ranking", aggregate: bool) -> None:
        ...


@runtime_checkable
class RenderContext(Protocol):
    """Context handed to renderers; implemented outside the model."""

    @property
    def provider(self) -> DataProviderHandle:
        ...

    def col_width(self, col: "Column") -> float:
        ...

    def row_height(self, index: int) -> float:
        ...

    def group_height(self, group: "Group") -> float:
        ...

    def stats_of(self, col: "Column") -> Optional[dict[str, Any]]:
        ...


DescRef = Callable[[ColumnDesc], Any]
ColumnFactory = Callable[[Mapping[str, Any]], Optional["Column"]]

__all__ = [
    "Accessor",
    "ColumnDesc",
    "ColumnFactory",
    "ColumnMetaData",
    "ColumnParent",
    "DataProviderHandle",
    "DataRow",
    "DescRef",
    "FlatColumn",
    "RenderContext",
    "SortCriteria",
    "SortState",
]
