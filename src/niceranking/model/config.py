"""Model-wide defaults.

A single :class:`ModelConfig` is shared by a provider and the rankings it
creates. ``ModelConfig.from_env()`` lets scripts override the sort policy
without code changes.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from niceranking.utils.logging import get_logger

logger = get_logger(__name__)

MAX_SORT_CRITERIA_ENV = "NICERANKING_MAX_SORT_CRITERIA"
MISSING_LAST_ENV = "NICERANKING_MISSING_LAST"


@dataclass
class ModelConfig:
    """Defaults for columns and rankings.

    Attributes:
        default_width: Width of a column whose description has none.
        default_color: Column color when the description has none.
        max_sort_criteria: Size limit of the sort-criteria stack; the
            lowest-priority entry is dropped when a new primary key is added.
        max_group_sort_criteria: Same limit for the group-sort stack.
        missing_last: Rows with a missing value sort after all others,
            regardless of the sort direction.
        id_prefix: Prefix of generated column ids.
        width_epsilon: Width changes smaller than this are ignored.
    """

    default_width: float = 100
    default_color: str = "#C1C1C1"
    max_sort_criteria: int = 2
    max_group_sort_criteria: int = 2
    missing_last: bool = True
    id_prefix: str = "col"
    width_epsilon: float = 0.5

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ModelConfig":
        env = os.environ if environ is None else environ
        cfg = cls()
        raw = env.get(MAX_SORT_CRITERIA_ENV)
        if raw is not None:
            try:
                cfg = replace(cfg, max_sort_criteria=max(1, int(raw)))
            except ValueError:
                logger.warning(f"Ignoring invalid {MAX_SORT_CRITERIA_ENV}={raw!r}")
        raw = env.get(MISSING_LAST_ENV)
        if raw is not None:
            cfg = replace(cfg, missing_last=raw.strip().lower() not in {"0", "false", "no", "off"})
        return cfg


DEFAULT_CONFIG = ModelConfig()
