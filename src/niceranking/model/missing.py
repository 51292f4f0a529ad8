"""Shared predicate for "this row has no value"."""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd


def is_missing_value(value: Any) -> bool:
    """True for None, NaN, pandas NA/NaT, blank strings and empty sequences."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, frozenset, np.ndarray)):
        return len(value) == 0
    if isinstance(value, (float, np.floating)):
        return bool(np.isnan(value))
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def missing_last_compare(a_missing: bool, b_missing: bool) -> int:
    """Order missing values after present ones; 0 when both or neither are missing."""
    if a_missing == b_missing:
        return 0
    return 1 if a_missing else -1
