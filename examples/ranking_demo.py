"""
Ranking demo: a LocalDataProvider over a pandas DataFrame rendered with RankingGrid.

Demonstrates:
- number, categorical and boolean columns plus a weighted stack column
- header click sorting and row selection
- grouping by a categorical column and collapsing groups
- saving and restoring the layout with RankingLayoutConfig

Run:
    uv run python examples/ranking_demo.py
"""

import numpy as np
import pandas as pd
from nicegui import ui

from niceranking import configure_logging
from niceranking.model.interfaces import ColumnDesc
from niceranking.provider import LocalDataProvider
from niceranking.ranking_grid import RankingGrid, RankingGridConfig, RankingLayoutConfig

configure_logging("INFO")


def create_sample_frame(n: int = 40) -> pd.DataFrame:
    rng = np.random.default_rng(0)
    score = rng.uniform(0, 100, n)
    score[rng.integers(0, n, 3)] = np.nan
    return pd.DataFrame(
        {
            "name": [f"Cell {i}" for i in range(n)],
            "score": score,
            "speed": rng.normal(5, 1.5, n),
            "region": rng.choice(["cortex", "hippocampus", "striatum"], n),
            "analyzed": rng.random(n) > 0.3,
        }
    )


DESCS = [
    ColumnDesc(type="string", label="Name", column="name", frozen=True),
    ColumnDesc(type="number", label="Score", column="score", domain=(0, 100)),
    ColumnDesc(type="number", label="Speed", column="speed", domain=(0, 10), description="um/s"),
    ColumnDesc(
        type="categorical",
        label="Region",
        column="region",
        categories=("cortex", "hippocampus", "striatum"),
    ),
    ColumnDesc(type="boolean", label="Analyzed", column="analyzed"),
]


@ui.page("/")
def index():
    ui.label("niceranking demo").classes("text-3xl font-bold mb-4")

    provider = LocalDataProvider(create_sample_frame(), DESCS)
    ranking = provider.push_ranking()
    for desc in provider.columns:
        provider.push(ranking, desc)

    combined = provider.push(
        ranking,
        ColumnDesc(
            type="stack",
            label="Combined",
            children=(DESCS[1], DESCS[2]),
        ),
    )
    combined.set_weights([0.7, 0.3])
    combined.sort_by_me(asc=False)

    layouts = RankingLayoutConfig.load()
    grid_container = ui.column().classes("w-full h-[600px]")
    grids: list[RankingGrid] = []

    def _build_grid() -> None:
        # restore replaces the ranking objects, so the grid is rebuilt
        for old in grids:
            old.destroy()
        grids.clear()
        grid_container.clear()
        with grid_container:
            grids.append(RankingGrid(provider, provider.get_last_ranking(), RankingGridConfig(zebra_rows=True)))

    def _current():
        return provider.get_last_ranking()

    def _save_layout() -> None:
        layouts.store("demo", provider)
        layouts.save()
        ui.notify("layout saved")

    def _restore_layout() -> None:
        if layouts.apply("demo", provider):
            _build_grid()

    with ui.row().classes("gap-2 mb-2"):
        ui.button("Group by region", on_click=lambda: _current().toggle_grouping(_current().at(3)))
        ui.button("Collapse all", on_click=lambda: provider.aggregate_all_of(_current(), True))
        ui.button("Expand all", on_click=lambda: provider.aggregate_all_of(_current(), False))
        ui.button("Save layout", on_click=_save_layout)
        ui.button("Restore layout", on_click=_restore_layout)

    status = ui.label()

    def _on_selection(event) -> None:
        status.set_text(f"selected rows: {provider.get_selection()}")

    provider.on("selectionChanged.demo", _on_selection)

    grid_container.move(target_index=-1)
    _build_grid()


if __name__ in {"__main__", "__mp_main__"}:
    ui.run(port=8080, reload=False)
