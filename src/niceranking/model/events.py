"""Typed, synchronous publish/subscribe used by every model object.

Columns, rankings and the data provider all derive from :class:`EventDispatcher`.
Subscriptions are keyed by ``"<type>"`` or ``"<type>.<namespace>"``; a second
registration under the same full name replaces the first one, and ``None``
removes it. ``off(namespace)`` drops every subscription of that namespace.

Delivery is synchronous and in registration order. Handlers may re-enter the
model; delivery iterates over a snapshot so a handler that (un)subscribes does
not disturb the current round.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Union

from niceranking.utils.logging import get_logger

logger = get_logger(__name__)


class EventType(str, Enum):
    """Named event channels."""

    WIDTH_CHANGED = "widthChanged"
    FILTER_CHANGED = "filterChanged"
    LABEL_CHANGED = "labelChanged"
    METADATA_CHANGED = "metaDataChanged"
    ADD_COLUMN = "addColumn"
    MOVE_COLUMN = "moveColumn"
    REMOVE_COLUMN = "removeColumn"
    DIRTY = "dirty"
    DIRTY_HEADER = "dirtyHeader"
    DIRTY_VALUES = "dirtyValues"
    RENDERER_TYPE_CHANGED = "rendererTypeChanged"
    GROUP_RENDERER_TYPE_CHANGED = "groupRendererChanged"
    SUMMARY_RENDERER_TYPE_CHANGED = "summaryRendererChanged"
    SORT_METHOD_CHANGED = "sortMethodChanged"
    GROUPING_CHANGED = "groupingChanged"
    DATA_LOADED = "dataLoaded"
    MAPPING_CHANGED = "mappingChanged"
    WEIGHTS_CHANGED = "weightsChanged"
    # ranking
    SORT_CRITERIA_CHANGED = "sortCriteriaChanged"
    GROUP_CRITERIA_CHANGED = "groupCriteriaChanged"
    GROUP_SORT_CRITERIA_CHANGED = "groupSortCriteriaChanged"
    DIRTY_ORDER = "dirtyOrder"
    ORDER_CHANGED = "orderChanged"
    GROUPS_CHANGED = "groupsChanged"
    # provider
    SELECTION_CHANGED = "selectionChanged"
    AGGREGATE = "aggregate"
    ADD_RANKING = "addRanking"
    REMOVE_RANKING = "removeRanking"

    @classmethod
    def from_value(cls, value: Union[str, "EventType"]) -> "EventType":
        """Create an :class:`EventType` from a raw channel name."""
        if isinstance(value, EventType):
            return value
        try:
            return cls(value)
        except ValueError as exc:
            raise ValueError(f"Unknown event type {value!r}") from exc


@dataclass(frozen=True)
class ModelEvent:
    """Payload delivered to every handler.

    Attributes:
        type: The channel this event was fired on.
        source: The dispatcher delivering the event (a parent when forwarded).
        origin: The dispatcher where the change started.
        args: Positional payload. Value changes carry ``(old, new)``;
            structural events carry ``(column, index[, old_index])``.
    """

    type: EventType
    source: Any
    origin: Any
    args: tuple[Any, ...] = ()

    @property
    def old_value(self) -> Any:
        return self.args[0] if len(self.args) > 0 else None

    @property
    def new_value(self) -> Any:
        return self.args[1] if len(self.args) > 1 else None

    @property
    def forwarded(self) -> bool:
        return self.source is not self.origin


EventHandler = Callable[[ModelEvent], None]
EventName = Union[str, EventType]


def _split_name(name: EventName) -> tuple[EventType, str]:
    if isinstance(name, EventType):
        return name, ""
    type_name, _, namespace = str(name).partition(".")
    return EventType.from_value(type_name), namespace


class EventDispatcher:
    """Base class providing the named-channel event protocol.

    Subclasses extend ``EVENTS`` with the channels they fire.
    """

    EVENTS: tuple[EventType, ...] = ()

    def __init__(self) -> None:
        self._listeners: dict[EventType, dict[str, EventHandler]] = {}

    def on(self, names: Union[EventName, Iterable[EventName]], handler: Optional[EventHandler]) -> "EventDispatcher":
        """Subscribe ``handler`` to one or more names; ``None`` unsubscribes."""
        if isinstance(names, (str, EventType)):
            names = [names]
        for name in names:
            event_type, namespace = _split_name(name)
            self._check_type(event_type)
            bucket = self._listeners.setdefault(event_type, {})
            if handler is None:
                bucket.pop(namespace, None)
            else:
                bucket[namespace] = handler
        return self

    def off(self, namespace: str) -> None:
        """Remove every subscription registered under ``.<namespace>``."""
        namespace = namespace.lstrip(".")
        for bucket in self._listeners.values():
            bucket.pop(namespace, None)

    def has_listeners(self, event_type: EventName) -> bool:
        event_type, _ = _split_name(event_type)
        return bool(self._listeners.get(event_type))

    def listener_names(self, event_type: EventName) -> list[str]:
        event_type, _ = _split_name(event_type)
        return [ns for ns in self._listeners.get(event_type, {})]

    def fire(self, types: Union[EventName, Iterable[EventName]], *args: Any) -> None:
        """Fire each of ``types`` in order with the same payload."""
        self._fire_from(self, types, args)

    def forward(self, source: "EventDispatcher", *types: EventType, namespace: str = "forward") -> None:
        """Re-fire ``types`` of ``source`` from this dispatcher, keeping the origin."""
        for event_type in types:
            source.on(f"{event_type.value}.{namespace}", self._refire)

    def unforward(self, source: "EventDispatcher", *types: EventType, namespace: str = "forward") -> None:
        for event_type in types:
            source.on(f"{event_type.value}.{namespace}", None)

    def _refire(self, event: ModelEvent) -> None:
        self._fire_from(event.origin, [event.type], event.args)

    def _fire_from(self, origin: Any, types: Union[EventName, Iterable[EventName]], args: tuple[Any, ...]) -> None:
        if isinstance(types, (str, EventType)):
            types = [types]
        for name in types:
            event_type, _ = _split_name(name)
            self._check_type(event_type)
            bucket = self._listeners.get(event_type)
            if not bucket:
                continue
            event = ModelEvent(type=event_type, source=self, origin=origin, args=tuple(args))
            for handler in list(bucket.values()):
                try:
                    handler(event)
                except Exception:
                    logger.exception("Error in %s handler of %r", event_type.value, self)

    def _check_type(self, event_type: EventType) -> None:
        if event_type not in self.EVENTS:
            raise ValueError(f"{type(self).__name__} does not support event {event_type.value!r}")
