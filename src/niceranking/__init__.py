"""
niceranking: Column/ranking model for interactive tabular rankings, with a NiceGUI renderer.

This package provides:
- model: typed columns (string, number, categorical, boolean, stack, nested),
  rankings with sort/group/group-sort criteria, dirty-event propagation,
  and dump/restore
- LocalDataProvider: rows from list[dict], pandas or Polars, ordering,
  selection and aggregation
- RankingGrid: AG Grid renderer reading the model's public contract
- Logging utilities for library and application use

For logging configuration in standalone scripts/demos:
    ```python
    from niceranking.utils.logging import configure_logging
    configure_logging(level="DEBUG")
    ```

When used as a library (imported by other applications), logging is
automatically handled by the parent application's configuration.
"""

import logging

from niceranking.utils.logging import configure_logging, get_logger

from niceranking.model import (
    BooleanColumn,
    CategoricalColumn,
    Column,
    ColumnDesc,
    ModelConfig,
    NestedColumn,
    NumberColumn,
    Ranking,
    StackColumn,
    StringColumn,
)
from niceranking.provider import LocalDataProvider

# Ensure niceranking logger has NullHandler so logs don't propagate to root
# when no application has configured logging.
_logger = logging.getLogger("niceranking")
if not _logger.handlers:
    _logger.addHandler(logging.NullHandler())

__all__ = [
    "BooleanColumn",
    "CategoricalColumn",
    "Column",
    "ColumnDesc",
    "LocalDataProvider",
    "ModelConfig",
    "NestedColumn",
    "NumberColumn",
    "Ranking",
    "StackColumn",
    "StringColumn",
    "configure_logging",
    "get_logger",
]

__version__ = "0.1.0"
