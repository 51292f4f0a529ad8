"""Leaf column kinds that read a value out of each row.

Each kind overrides the value contract of :class:`Column` (``get_value``,
``compare``, ``group``, ``filter``) and adds its own filter shape, which it
dumps and restores next to the base fields.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Pattern, Union

import numpy as np

from niceranking.model.column import Column, compare_text
from niceranking.model.config import ModelConfig
from niceranking.model.events import EventType
from niceranking.model.group import MISSING_GROUP, Group, GroupData
from niceranking.model.interfaces import ColumnDesc, ColumnFactory, DataRow, DescRef
from niceranking.model.missing import is_missing_value
from niceranking.utils.logging import get_logger

logger = get_logger(__name__)

REGEX_PREFIX = "REGEX:"


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


class ValueColumn(Column):
    """Column backed by a row key, attribute or accessor callable (``desc.column``)."""

    def __init__(self, id: str, desc: ColumnDesc, config: Optional[ModelConfig] = None) -> None:
        super().__init__(id, desc, config)
        self._accessor = desc.column if desc.column is not None else (desc.label or self.id)

    def get_raw(self, row: DataRow) -> Any:
        accessor = self._accessor
        v = row.v
        if callable(accessor):
            value = accessor(v)
        elif isinstance(v, Mapping):
            value = v.get(accessor)
        else:
            value = getattr(v, accessor, None)
        if self.desc.missing_value is not None and is_missing_value(value):
            return self.desc.missing_value
        return value

    def get_value(self, row: DataRow) -> Any:
        return self.get_raw(row)

    def _set_filter_impl(self, old: Any, new: Any) -> None:
        self.fire([EventType.FILTER_CHANGED, EventType.DIRTY_VALUES, EventType.DIRTY], old, new)


class StringColumn(ValueColumn):
    """Text column with a substring or regex filter."""

    def __init__(self, id: str, desc: ColumnDesc, config: Optional[ModelConfig] = None) -> None:
        super().__init__(id, desc, config)
        self._filter: Optional[Union[str, Pattern[str]]] = None
        self._filter_missing: bool = False

    def get_value(self, row: DataRow) -> str:
        value = self.get_raw(row)
        if is_missing_value(value):
            return ""
        return str(value)

    def compare(self, a: DataRow, b: DataRow) -> int:
        return compare_text(self.get_value(a), self.get_value(b))

    def group(self, row: DataRow) -> Group:
        if self.is_missing(row):
            return MISSING_GROUP
        return Group(name=self.get_value(row), color=self.color)

    def get_filter(self) -> Optional[Union[str, Pattern[str]]]:
        return self._filter

    @property
    def filter_missing(self) -> bool:
        return self._filter_missing

    def set_filter(self, value: Optional[Union[str, Pattern[str]]], filter_missing: bool = False) -> None:
        if value == "":
            value = None
        if value == self._filter and filter_missing == self._filter_missing:
            return
        old = (self._filter, self._filter_missing)
        self._filter = value
        self._filter_missing = filter_missing
        self._set_filter_impl(old, (value, filter_missing))

    def is_filtered(self) -> bool:
        return self._filter is not None or self._filter_missing

    def filter(self, row: Optional[DataRow]) -> bool:
        if row is None:
            return False
        if not self.is_filtered():
            return True
        if self.is_missing(row):
            return not self._filter_missing
        if self._filter is None:
            return True
        text = self.get_value(row)
        if isinstance(self._filter, str):
            return self._filter.lower() in text.lower()
        return self._filter.search(text) is not None

    def dump(self, to_desc_ref: DescRef) -> dict[str, Any]:
        r = super().dump(to_desc_ref)
        if self._filter is not None:
            if isinstance(self._filter, str):
                r["filter"] = self._filter
            else:
                r["filter"] = REGEX_PREFIX + self._filter.pattern
        if self._filter_missing:
            r["filterMissing"] = True
        return r

    def restore(self, dump: Mapping[str, Any], factory: Optional[ColumnFactory]) -> None:
        super().restore(dump, factory)
        raw = dump.get("filter")
        if isinstance(raw, str) and raw:
            if raw.startswith(REGEX_PREFIX):
                try:
                    self._filter = re.compile(raw[len(REGEX_PREFIX):])
                except re.error:
                    logger.warning(f"Ignoring invalid regex filter {raw!r} for column {self.id!r}")
            else:
                self._filter = raw
        if "filterMissing" in dump:
            self._filter_missing = bool(dump["filterMissing"])


class SortMethod(str, Enum):
    """Aggregate used to compare groups of numbers."""

    MIN = "min"
    MAX = "max"
    MEDIAN = "median"
    MEAN = "mean"
    Q1 = "q1"
    Q3 = "q3"


def aggregate_values(values: np.ndarray, method: SortMethod) -> float:
    """NaN-aware aggregate; NaN for an empty or all-NaN input."""
    values = values[~np.isnan(values)]
    if values.size == 0:
        return math.nan
    if method == SortMethod.MIN:
        return float(np.min(values))
    if method == SortMethod.MAX:
        return float(np.max(values))
    if method == SortMethod.MEAN:
        return float(np.mean(values))
    if method == SortMethod.Q1:
        return float(np.percentile(values, 25))
    if method == SortMethod.Q3:
        return float(np.percentile(values, 75))
    return float(np.median(values))


def number_compare(a: float, b: float) -> int:
    """Three-way compare where NaN sorts before every number."""
    a_missing = math.isnan(a)
    b_missing = math.isnan(b)
    if a_missing:
        return 0 if b_missing else -1
    if b_missing:
        return 1
    return _sign(a - b)


@dataclass(frozen=True)
class NumberFilter:
    """Keep rows whose raw value lies in ``[min, max]``."""

    min: float = -math.inf
    max: float = math.inf
    filter_missing: bool = False

    @property
    def active(self) -> bool:
        return self.min > -math.inf or self.max < math.inf or self.filter_missing


class NumberColumn(ValueColumn):
    """Numeric column with a linear mapping of raw values onto ``[0, 1]``."""

    EVENTS = ValueColumn.EVENTS + (EventType.MAPPING_CHANGED,)

    DEFAULT_GROUP_THRESHOLD = 0.5

    def __init__(self, id: str, desc: ColumnDesc, config: Optional[ModelConfig] = None) -> None:
        super().__init__(id, desc, config)
        self._original_domain: tuple[float, float] = desc.domain or (0.0, 1.0)
        self._domain: tuple[float, float] = self._original_domain
        self._filter = NumberFilter()
        self._sort_method = SortMethod.MEDIAN
        self._group_threshold: float = self.DEFAULT_GROUP_THRESHOLD

    def get_raw_number(self, row: DataRow) -> float:
        value = self.get_raw(row)
        if is_missing_value(value) or isinstance(value, bool):
            return math.nan
        try:
            return float(value)
        except (TypeError, ValueError):
            return math.nan

    def get_value(self, row: DataRow) -> float:
        return self.normalize(self.get_raw_number(row))

    def normalize(self, raw: float) -> float:
        if math.isnan(raw):
            return math.nan
        lo, hi = self._domain
        if hi == lo:
            return 0.0
        return min(1.0, max(0.0, (raw - lo) / (hi - lo)))

    def get_label(self, row: DataRow) -> str:
        raw = self.get_raw_number(row)
        if math.isnan(raw):
            return ""
        return f"{raw:.2f}"

    def is_missing(self, row: DataRow) -> bool:
        return math.isnan(self.get_raw_number(row))

    def compare(self, a: DataRow, b: DataRow) -> int:
        # the raw value breaks ties between values clamped to the same end of the mapping
        return number_compare(self.get_value(a), self.get_value(b)) or number_compare(
            self.get_raw_number(a), self.get_raw_number(b)
        )

    # mapping -----------------------------------------------------------

    def get_mapping(self) -> tuple[float, float]:
        return self._domain

    def get_original_mapping(self) -> tuple[float, float]:
        return self._original_domain

    def set_mapping(self, domain: tuple[float, float]) -> None:
        domain = (float(domain[0]), float(domain[1]))
        if domain == self._domain:
            return
        old = self._domain
        self._domain = domain
        self.fire([EventType.MAPPING_CHANGED, EventType.DIRTY_VALUES, EventType.DIRTY], old, domain)

    # filter ------------------------------------------------------------

    def get_filter(self) -> NumberFilter:
        return self._filter

    def set_filter(self, value: Optional[NumberFilter]) -> None:
        value = value or NumberFilter()
        if value == self._filter:
            return
        old = self._filter
        self._filter = value
        self._set_filter_impl(old, value)

    def is_filtered(self) -> bool:
        return self._filter.active

    def filter(self, row: Optional[DataRow]) -> bool:
        if row is None:
            return False
        if not self.is_filtered():
            return True
        raw = self.get_raw_number(row)
        if math.isnan(raw):
            return not self._filter.filter_missing
        return self._filter.min <= raw <= self._filter.max

    def reset(self) -> None:
        """Reapply the original mapping and drop the filter."""
        self.set_mapping(self._original_domain)
        self.set_filter(NumberFilter())

    # grouping ----------------------------------------------------------

    def get_sort_method(self) -> SortMethod:
        return self._sort_method

    def set_sort_method(self, method: Union[str, SortMethod]) -> None:
        method = SortMethod(method)
        if method == self._sort_method:
            return
        old = self._sort_method
        self._sort_method = method
        self.fire([EventType.SORT_METHOD_CHANGED, EventType.DIRTY_VALUES, EventType.DIRTY], old.value, method.value)

    def get_group_threshold(self) -> float:
        return self._group_threshold

    def set_group_threshold(self, threshold: float) -> None:
        threshold = float(threshold)
        if threshold == self._group_threshold:
            return
        old = self._group_threshold
        self._group_threshold = threshold
        self.fire([EventType.GROUPING_CHANGED, EventType.DIRTY_VALUES, EventType.DIRTY], old, threshold)

    def _threshold_label(self) -> str:
        lo, hi = self._domain
        return f"{lo + self._group_threshold * (hi - lo):g}"

    def group(self, row: DataRow) -> Group:
        value = self.get_value(row)
        if math.isnan(value):
            return MISSING_GROUP
        if value < self._group_threshold:
            return Group(name=f"< {self._threshold_label()}", color=self.color)
        return Group(name=f">= {self._threshold_label()}", color=self.color)

    def group_compare(self, a: GroupData, b: GroupData) -> int:
        va = aggregate_values(np.array([self.get_value(r) for r in a.rows], dtype=float), self._sort_method)
        vb = aggregate_values(np.array([self.get_value(r) for r in b.rows], dtype=float), self._sort_method)
        return number_compare(va, vb)

    # dump --------------------------------------------------------------

    def dump(self, to_desc_ref: DescRef) -> dict[str, Any]:
        r = super().dump(to_desc_ref)
        if self._domain != self._original_domain:
            r["domain"] = list(self._domain)
        if self._filter.active:
            r["filter"] = {
                "min": None if math.isinf(self._filter.min) else self._filter.min,
                "max": None if math.isinf(self._filter.max) else self._filter.max,
                "filterMissing": self._filter.filter_missing,
            }
        if self._sort_method != SortMethod.MEDIAN:
            r["sortMethod"] = self._sort_method.value
        if self._group_threshold != self.DEFAULT_GROUP_THRESHOLD:
            r["groupThreshold"] = self._group_threshold
        return r

    def restore(self, dump: Mapping[str, Any], factory: Optional[ColumnFactory]) -> None:
        super().restore(dump, factory)
        domain = dump.get("domain")
        if isinstance(domain, (list, tuple)) and len(domain) == 2:
            try:
                self._domain = (float(domain[0]), float(domain[1]))
            except (TypeError, ValueError):
                logger.warning(f"Ignoring invalid domain {domain!r} for column {self.id!r}")
        raw = dump.get("filter")
        if isinstance(raw, Mapping):
            lo = raw.get("min")
            hi = raw.get("max")
            try:
                self._filter = NumberFilter(
                    min=-math.inf if lo is None else float(lo),
                    max=math.inf if hi is None else float(hi),
                    filter_missing=bool(raw.get("filterMissing", False)),
                )
            except (TypeError, ValueError):
                logger.warning(f"Ignoring invalid filter {dict(raw)!r} for column {self.id!r}")
        method = dump.get("sortMethod")
        if method:
            try:
                self._sort_method = SortMethod(method)
            except ValueError:
                logger.warning(f"Ignoring unknown sort method {method!r} for column {self.id!r}")
        threshold = dump.get("groupThreshold")
        if isinstance(threshold, (int, float)) and not isinstance(threshold, bool):
            self._group_threshold = float(threshold)


@dataclass(frozen=True)
class Category:
    name: str
    label: str
    color: Optional[str] = None
    value: int = 0


def parse_categories(raw: tuple[Any, ...]) -> list[Category]:
    result: list[Category] = []
    for i, c in enumerate(raw):
        if isinstance(c, Mapping):
            name = str(c.get("name", c.get("label", i)))
            result.append(Category(name=name, label=str(c.get("label") or name), color=c.get("color"), value=i))
        else:
            result.append(Category(name=str(c), label=str(c), value=i))
    return result


class CategoricalColumn(ValueColumn):
    """Column whose values come from a fixed, ordered list of categories."""

    def __init__(self, id: str, desc: ColumnDesc, config: Optional[ModelConfig] = None) -> None:
        super().__init__(id, desc, config)
        self.categories: list[Category] = parse_categories(desc.categories)
        self._lookup: dict[str, Category] = {c.name: c for c in self.categories}
        self._filter: Optional[frozenset[str]] = None
        self._filter_missing: bool = False

    def get_category(self, row: DataRow) -> Optional[Category]:
        value = self.get_raw(row)
        if is_missing_value(value):
            return None
        return self._lookup.get(str(value))

    def get_value(self, row: DataRow) -> Optional[str]:
        cat = self.get_category(row)
        return cat.name if cat is not None else None

    def get_label(self, row: DataRow) -> str:
        cat = self.get_category(row)
        return cat.label if cat is not None else ""

    def compare(self, a: DataRow, b: DataRow) -> int:
        ca = self.get_category(a)
        cb = self.get_category(b)
        va = ca.value if ca is not None else -1
        vb = cb.value if cb is not None else -1
        return _sign(va - vb)

    def group(self, row: DataRow) -> Group:
        cat = self.get_category(row)
        if cat is None:
            return MISSING_GROUP
        return Group(name=cat.label, color=cat.color)

    def group_compare(self, a: GroupData, b: GroupData) -> int:
        order = {c.label: c.value for c in self.categories}
        if a.name in order and b.name in order:
            return _sign(order[a.name] - order[b.name])
        return super().group_compare(a, b)

    def get_filter(self) -> Optional[frozenset[str]]:
        return self._filter

    def set_filter(self, allowed: Optional[Any], filter_missing: bool = False) -> None:
        value = frozenset(str(v) for v in allowed) if allowed is not None else None
        if value == self._filter and filter_missing == self._filter_missing:
            return
        old = (self._filter, self._filter_missing)
        self._filter = value
        self._filter_missing = filter_missing
        self._set_filter_impl(old, (value, filter_missing))

    def is_filtered(self) -> bool:
        return self._filter is not None or self._filter_missing

    def filter(self, row: Optional[DataRow]) -> bool:
        if row is None:
            return False
        if not self.is_filtered():
            return True
        value = self.get_value(row)
        if value is None:
            return not self._filter_missing
        return self._filter is None or value in self._filter

    def dump(self, to_desc_ref: DescRef) -> dict[str, Any]:
        r = super().dump(to_desc_ref)
        if self._filter is not None:
            r["filter"] = sorted(self._filter)
        if self._filter_missing:
            r["filterMissing"] = True
        return r

    def restore(self, dump: Mapping[str, Any], factory: Optional[ColumnFactory]) -> None:
        super().restore(dump, factory)
        raw = dump.get("filter")
        if isinstance(raw, (list, tuple)):
            self._filter = frozenset(str(v) for v in raw)
        if "filterMissing" in dump:
            self._filter_missing = bool(dump["filterMissing"])


_TRUE_STRINGS = {"true", "yes", "1", "y", "t"}
_FALSE_STRINGS = {"false", "no", "0", "n", "f"}


class BooleanColumn(ValueColumn):
    """True/False column; missing and unparsable values are ``None``."""

    def __init__(self, id: str, desc: ColumnDesc, config: Optional[ModelConfig] = None) -> None:
        super().__init__(id, desc, config)
        self._filter: Optional[bool] = None

    def get_value(self, row: DataRow) -> Optional[bool]:
        value = self.get_raw(row)
        if is_missing_value(value):
            return None
        if isinstance(value, str):
            text = value.strip().lower()
            if text in _TRUE_STRINGS:
                return True
            if text in _FALSE_STRINGS:
                return False
            return None
        return bool(value)

    def get_label(self, row: DataRow) -> str:
        value = self.get_value(row)
        return "" if value is None else str(value)

    def compare(self, a: DataRow, b: DataRow) -> int:
        va = self.get_value(a)
        vb = self.get_value(b)
        return _sign(int(bool(va)) - int(bool(vb)))

    def group(self, row: DataRow) -> Group:
        value = self.get_value(row)
        if value is None:
            return MISSING_GROUP
        return Group(name=str(value), color=self.color)

    def get_filter(self) -> Optional[bool]:
        return self._filter

    def set_filter(self, value: Optional[bool]) -> None:
        if value == self._filter:
            return
        old = self._filter
        self._filter = value
        self._set_filter_impl(old, value)

    def is_filtered(self) -> bool:
        return self._filter is not None

    def filter(self, row: Optional[DataRow]) -> bool:
        if row is None:
            return False
        if self._filter is None:
            return True
        return self.get_value(row) is self._filter

    def dump(self, to_desc_ref: DescRef) -> dict[str, Any]:
        r = super().dump(to_desc_ref)
        if self._filter is not None:
            r["filter"] = self._filter
        return r

    def restore(self, dump: Mapping[str, Any], factory: Optional[ColumnFactory]) -> None:
        super().restore(dump, factory)
        raw = dump.get("filter")
        if isinstance(raw, bool):
            self._filter = raw
