# src/niceranking/ranking_grid/config.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class RankingGridConfig:
    """Declarative configuration for the AG Grid that renders a ranking.

    Attributes:
        theme_class: AG Grid theme CSS class (e.g. 'ag-theme-alpine').
        zebra_rows: Whether to use alternating row background colors.
        hover_highlight: Whether to highlight rows on mouse hover.
        tight_layout: Whether to reduce padding and font size slightly.
        row_height: Pixel height of each data row.
        header_height: Pixel height of the header row.
        group_height: Pixel height of an aggregated group's summary row.
        show_group_column: If True and the ranking is grouped, prepend a
            column showing each row's group name.
        group_column_header: Header label for the group column.
        group_column_width: Pixel width for the group column.
        flatten_levels: How many levels of composite columns to expand into
            their own grid columns; ``-1`` expands all levels.
        padding: Horizontal gap between flattened columns.
        label_precision: Decimals used for number labels in stats tooltips.
        extra_grid_options: Arbitrary additional options merged into the
            AG Grid options dictionary.
    """

    theme_class: str = "ag-theme-alpine"

    zebra_rows: bool = True
    hover_highlight: bool = False
    tight_layout: bool = True

    row_height: int = 28
    header_height: int = 30
    group_height: int = 40

    show_group_column: bool = True
    group_column_header: str = "Group"
    group_column_width: int = 120

    flatten_levels: int = 0
    padding: float = 0

    label_precision: int = 2

    extra_grid_options: dict[str, Any] = field(default_factory=dict)
