"""Headless column/ranking model."""

from .column import Column, fix_css
from .composite_column import CompositeColumn, NestedColumn, StackColumn
from .config import DEFAULT_CONFIG, ModelConfig
from .dump import COLUMN_TYPES, DescRegistry, dump_ranking, register_column_type, restore_ranking
from .events import EventDispatcher, EventType, ModelEvent
from .group import DEFAULT_GROUP, MISSING_GROUP, Group, GroupData
from .interfaces import (
    ColumnDesc,
    ColumnMetaData,
    DataProviderHandle,
    DataRow,
    FlatColumn,
    RenderContext,
    SortCriteria,
    SortState,
)
from .ranking import Ranking
from .sorting import order_rows
from .value_columns import (
    BooleanColumn,
    CategoricalColumn,
    NumberColumn,
    NumberFilter,
    SortMethod,
    StringColumn,
    ValueColumn,
)

__all__ = [
    "BooleanColumn",
    "COLUMN_TYPES",
    "CategoricalColumn",
    "Column",
    "ColumnDesc",
    "ColumnMetaData",
    "CompositeColumn",
    "DEFAULT_CONFIG",
    "DEFAULT_GROUP",
    "DataProviderHandle",
    "DataRow",
    "DescRegistry",
    "EventDispatcher",
    "EventType",
    "FlatColumn",
    "Group",
    "GroupData",
    "MISSING_GROUP",
    "ModelConfig",
    "ModelEvent",
    "NestedColumn",
    "NumberColumn",
    "NumberFilter",
    "Ranking",
    "RenderContext",
    "SortCriteria",
    "SortMethod",
    "SortState",
    "StackColumn",
    "StringColumn",
    "ValueColumn",
    "dump_ranking",
    "fix_css",
    "order_rows",
    "register_column_type",
    "restore_ranking",
]
