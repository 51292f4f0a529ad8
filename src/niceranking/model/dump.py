"""Column type registry and the description resolver used by dump/restore.

A dump never embeds a :class:`ColumnDesc`; it stores a reference produced by
``to_desc_ref`` and resolves it back through :meth:`DescRegistry.from_desc_ref`.
The registry's :meth:`DescRegistry.factory` is the ``factory(dump)`` callback
that ``Column.restore`` and ``Ranking.restore`` use to rebuild children.

Example:
    >>> registry = DescRegistry([ColumnDesc(type="string", label="Name")])
    >>> col = registry.create(registry.descs[0])
    >>> registry.factory(col.dump(registry.to_desc_ref)).label
    'Name'
"""

from __future__ import annotations

import itertools
import re
from typing import Any, Callable, Mapping, Optional, Sequence

from niceranking.model.column import Column, fix_css
from niceranking.model.composite_column import CompositeColumn, NestedColumn, StackColumn
from niceranking.model.config import DEFAULT_CONFIG, ModelConfig
from niceranking.model.interfaces import ColumnDesc
from niceranking.model.ranking import Ranking
from niceranking.model.value_columns import BooleanColumn, CategoricalColumn, NumberColumn, StringColumn
from niceranking.utils.logging import get_logger

logger = get_logger(__name__)

COLUMN_TYPES: dict[str, type[Column]] = {
    "default": Column,
    "string": StringColumn,
    "number": NumberColumn,
    "categorical": CategoricalColumn,
    "boolean": BooleanColumn,
    "stack": StackColumn,
    "nested": NestedColumn,
}


def register_column_type(type_name: str, cls: type[Column]) -> None:
    """Make ``ColumnDesc(type=type_name)`` create instances of ``cls``."""
    if not (isinstance(cls, type) and issubclass(cls, Column)):
        raise TypeError(f"{cls!r} is not a Column subclass")
    COLUMN_TYPES[type_name] = cls


def column_class_for(type_name: str) -> type[Column]:
    try:
        return COLUMN_TYPES[type_name]
    except KeyError:
        raise ValueError(
            f"Unknown column type {type_name!r}. Known types: {sorted(COLUMN_TYPES)}"
        ) from None


class DescRegistry:
    """The known column descriptions plus an id generator.

    Args:
        descs: Descriptions available to this model; a dump refers to them
            by index.
        config: Shared model defaults (id prefix, widths).
    """

    def __init__(self, descs: Sequence[ColumnDesc] = (), config: Optional[ModelConfig] = None) -> None:
        self.config: ModelConfig = config or DEFAULT_CONFIG
        self.descs: list[ColumnDesc] = list(descs)
        self._ids = itertools.count(0)
        self._id_pattern = re.compile(rf"^{re.escape(self.config.id_prefix)}(\d+)$")

    # ------------------------------------------------------------------
    # Ids
    # ------------------------------------------------------------------

    def next_id(self) -> str:
        return fix_css(f"{self.config.id_prefix}{next(self._ids)}")

    def reserve_id(self, id: str) -> None:
        """Advance the generator past a restored id so new ids never collide."""
        m = self._id_pattern.match(id)
        if m is None:
            return
        used = int(m.group(1))
        current = next(self._ids)
        self._ids = itertools.count(max(current, used + 1))

    # ------------------------------------------------------------------
    # Description references
    # ------------------------------------------------------------------

    def add_desc(self, desc: ColumnDesc) -> int:
        for i, d in enumerate(self.descs):
            if d is desc or d == desc:
                return i
        self.descs.append(desc)
        return len(self.descs) - 1

    def to_desc_ref(self, desc: ColumnDesc) -> Any:
        """Reference to ``desc``: its index, or a plain mapping for child templates."""
        for i, d in enumerate(self.descs):
            if d is desc or d == desc:
                return i
        return {k: v for k, v in _desc_to_dict(desc).items() if v is not None and v is not False and v != []}

    def from_desc_ref(self, ref: Any) -> Optional[ColumnDesc]:
        if isinstance(ref, bool):
            return None
        if isinstance(ref, int):
            return self.descs[ref] if 0 <= ref < len(self.descs) else None
        if isinstance(ref, Mapping):
            try:
                return ColumnDesc.from_config(ref)
            except (TypeError, ValueError):
                logger.warning(f"Ignoring malformed column description {ref!r}")
                return None
        if isinstance(ref, str):
            for d in self.descs:
                if d.label == ref or d.column == ref:
                    return d
        return None

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create(self, desc: ColumnDesc, id: Optional[str] = None, with_children: bool = True) -> Column:
        """Instantiate the column class registered for ``desc.type``.

        Composite descriptions get one child per ``desc.children`` template
        unless ``with_children`` is False.
        """
        cls = column_class_for(desc.type)
        col = cls(id or self.next_id(), desc, self.config)
        if with_children and isinstance(col, CompositeColumn):
            for child_desc in desc.children:
                col.push(self.create(child_desc))
        return col

    def factory(self, dump: Mapping[str, Any]) -> Optional[Column]:
        """Rebuild a column from its dump; None when its description is unknown."""
        desc = self.from_desc_ref(dump.get("desc"))
        if desc is None:
            logger.warning(f"Cannot resolve description {dump.get('desc')!r} of column {dump.get('id')!r}")
            return None
        id = dump.get("id")
        if isinstance(id, str) and id:
            self.reserve_id(id)
        else:
            id = None
        try:
            col = self.create(desc, id, with_children="children" not in dump)
        except ValueError:
            logger.warning(f"Skipping column {dump.get('id')!r} of unknown type {desc.type!r}")
            return None
        col.restore(dump, self.factory)
        return col


def _desc_to_dict(desc: ColumnDesc) -> dict[str, Any]:
    r: dict[str, Any] = {
        "type": desc.type,
        "label": desc.label,
        "description": desc.description,
        "color": desc.color,
        "width": desc.width,
        "renderer": desc.renderer,
        "group_renderer": desc.group_renderer,
        "summary_renderer": desc.summary_renderer,
        "frozen": desc.frozen,
        "domain": list(desc.domain) if desc.domain is not None else None,
        "categories": list(desc.categories),
        "missing_value": desc.missing_value,
        "children": [_desc_to_dict(c) for c in desc.children],
    }
    # callable accessors cannot be serialized
    if isinstance(desc.column, str):
        r["column"] = desc.column
    return r


def dump_ranking(ranking: Ranking, to_desc_ref: Callable[[ColumnDesc], Any]) -> dict[str, Any]:
    return ranking.dump(to_desc_ref)


def restore_ranking(dump: Mapping[str, Any], registry: DescRegistry) -> Ranking:
    """Create a ranking from a dump made by :func:`dump_ranking`."""
    ranking = Ranking(str(dump.get("id") or "rank"), registry.config)
    ranking.restore(dump, registry.factory)
    return ranking
