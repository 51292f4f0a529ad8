"""RankingGrid - NiceGUI AG Grid renderer for a ranking."""

from .config import RankingGridConfig
from .grid_options import build_column_defs, build_row_data
from .ranking_grid import RankingGrid
from .ranking_layout_config import RankingLayoutConfig, RankingLayoutConfigData

__all__ = [
    "RankingGrid",
    "RankingGridConfig",
    "RankingLayoutConfig",
    "RankingLayoutConfigData",
    "build_column_defs",
    "build_row_data",
]
