# src/niceranking/ranking_grid/ranking_grid.py
"""NiceGUI AG Grid that renders one ranking of a LocalDataProvider.

The grid only reads the model's public contract. It subscribes once at the
ranking root (namespace ``grid``) and translates user gestures back into
model calls:

- header click: ``column.toggle_my_sorting()``
- column resize: ``column.set_width(width)``
- row click: provider selection (ctrl/cmd toggles, plain click replaces);
  clicking a collapsed group's summary row expands it again
"""

from __future__ import annotations

from typing import Any, Optional

from nicegui import events, ui

from niceranking.model.column import Column
from niceranking.model.events import EventType, ModelEvent
from niceranking.model.group import Group
from niceranking.model.ranking import Ranking
from niceranking.provider.local_data_provider import LocalDataProvider
from niceranking.ranking_grid.config import RankingGridConfig
from niceranking.ranking_grid.grid_options import (
    AGGREGATED_FIELD,
    GROUP_ROW_PREFIX,
    ROW_ID_FIELD,
    build_column_defs,
    build_row_data,
    parse_group_row_id,
)
from niceranking.ranking_grid.js_hooks import (
    js_get_row_height,
    js_get_row_id,
    js_on_column_header_clicked,
    js_on_column_resized,
    js_on_row_clicked,
)
from niceranking.utils.logging import get_logger

logger = get_logger(__name__)

GRID_NAMESPACE = "grid"


class RankingGrid:
    """Render a ranking in a NiceGUI ``ui.aggrid``.

    Implements the render context handed to renderers: ``provider``,
    ``col_width``, ``row_height``, ``group_height`` and ``stats_of``.

    Args:
        provider: Owner of the rows and the selection.
        ranking: The ranking to render; must belong to ``provider``.
        grid_config: Grid options. If ``None``, a default
            RankingGridConfig is used.
        parent: Optional container to build the grid in.
    """

    def __init__(
        self,
        provider: LocalDataProvider,
        ranking: Ranking,
        grid_config: RankingGridConfig | None = None,
        parent: ui.element | None = None,
    ) -> None:
        self._provider = provider
        self._ranking = ranking
        self._grid_config: RankingGridConfig = grid_config or RankingGridConfig()

        # Instance-unique emitted event names (avoid collisions across multiple grids)
        self._evt_header: str = f"ranking_grid_header_{id(self)}"
        self._evt_resize: str = f"ranking_grid_resize_{id(self)}"
        self._evt_row: str = f"ranking_grid_row_{id(self)}"

        container_classes = f"w-full h-full flex-1 min-h-0 min-w-0 {self._grid_config.theme_class}"
        if self._grid_config.zebra_rows:
            container_classes += " aggrid-zebra"
        if self._grid_config.hover_highlight:
            container_classes += " aggrid-hover"
        else:
            container_classes += " aggrid-no-hover"
        if self._grid_config.tight_layout:
            container_classes += " aggrid-tight"

        self._container: ui.element = parent or ui.column()
        self._container.classes(container_classes)

        groups = ranking.get_groups()
        self._column_defs: list[dict[str, Any]] = build_column_defs(
            ranking, groups, self._grid_config, self.stats_of
        )
        self._row_data: list[dict[str, Any]] = build_row_data(ranking, groups, provider, self._grid_config)

        with self._container:
            self._grid = (
                ui.aggrid(self._build_grid_options())
                .classes(f"w-full h-full {self._grid_config.theme_class}")
                .style("height: 100%;")
            )

        ui.on(self._evt_header, self._on_header_emitted)
        ui.on(self._evt_resize, self._on_resize_emitted)
        ui.on(self._evt_row, self._on_row_emitted)

        ranking.on(f"{EventType.DIRTY_HEADER.value}.{GRID_NAMESPACE}", self._on_dirty_header)
        ranking.on(f"{EventType.DIRTY_VALUES.value}.{GRID_NAMESPACE}", self._on_dirty_values)
        # header tooltips and the group column depend on the current groups
        ranking.on(f"{EventType.ORDER_CHANGED.value}.{GRID_NAMESPACE}", self._on_order_changed)
        provider.on(
            [
                f"{EventType.SELECTION_CHANGED.value}.{GRID_NAMESPACE}",
                f"{EventType.AGGREGATE.value}.{GRID_NAMESPACE}",
            ],
            self._on_dirty_values,
        )

        logger.info(
            f"RankingGrid initialized: ranking={ranking.id!r} rows={len(self._row_data)} "
            f"cols={len(self._column_defs)}"
        )

    # ------------------------------------------------------------------
    # Public accessors
    # ------------------------------------------------------------------

    @property
    def grid(self) -> ui.aggrid:
        """Underlying NiceGUI `ui.aggrid` element (escape hatch)."""
        return self._grid

    @property
    def ranking(self) -> Ranking:
        return self._ranking

    @property
    def column_defs(self) -> list[dict[str, Any]]:
        return [dict(d) for d in self._column_defs]

    @property
    def row_data(self) -> list[dict[str, Any]]:
        return [dict(r) for r in self._row_data]

    # ------------------------------------------------------------------
    # Render context
    # ------------------------------------------------------------------

    @property
    def provider(self) -> LocalDataProvider:
        return self._provider

    def col_width(self, col: Column) -> float:
        return col.get_width()

    def row_height(self, index: int) -> float:
        return self._grid_config.row_height

    def group_height(self, group: Group) -> float:
        return self._grid_config.group_height

    def stats_of(self, col: Column) -> Optional[dict[str, Any]]:
        return self._provider.stats(col, self._ranking)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def refresh_columns(self) -> None:
        self._column_defs = build_column_defs(
            self._ranking, self._ranking.get_groups(), self._grid_config, self.stats_of
        )
        self._grid.options["columnDefs"] = self._column_defs
        self._grid.update()

    def refresh_rows(self) -> None:
        self._row_data = build_row_data(
            self._ranking, self._ranking.get_groups(), self._provider, self._grid_config
        )
        self._grid.options["rowData"] = self._row_data
        self._grid.update()

    def destroy(self) -> None:
        """Unsubscribe from the model; the NiceGUI element is left to its parent."""
        self._ranking.off(GRID_NAMESPACE)
        self._provider.off(GRID_NAMESPACE)
        logger.debug(f"RankingGrid for {self._ranking.id!r} destroyed")

    def _on_dirty_header(self, event: ModelEvent) -> None:
        self.refresh_columns()

    def _on_dirty_values(self, event: ModelEvent) -> None:
        self.refresh_rows()

    def _on_order_changed(self, event: ModelEvent) -> None:
        self.refresh_columns()
        self.refresh_rows()

    # ------------------------------------------------------------------
    # Internal: AG Grid option building
    # ------------------------------------------------------------------

    def _build_grid_options(self) -> dict[str, Any]:
        opts: dict[str, Any] = {
            "columnDefs": self._column_defs,
            "rowData": self._row_data,
            "defaultColDef": {"sortable": False, "filter": False, "resizable": True},
            "rowHeight": self._grid_config.row_height,
            "headerHeight": self._grid_config.header_height,
            "rowSelection": {"mode": "multiRow", "checkboxes": False, "enableClickSelection": False},
            ":getRowId": js_get_row_id(ROW_ID_FIELD),
            ":getRowHeight": js_get_row_height(
                AGGREGATED_FIELD, self._grid_config.row_height, self._grid_config.group_height
            ),
            "rowClassRules": {"lu-selected": "data && data.__selected__"},
            ":onRowClicked": js_on_row_clicked(emit_event=self._evt_row, row_id_field=ROW_ID_FIELD),
            ":onColumnResized": js_on_column_resized(emit_event=self._evt_resize),
            ":onColumnHeaderClicked": js_on_column_header_clicked(emit_event=self._evt_header),
        }

        if not self._grid_config.hover_highlight:
            opts["suppressRowHoverHighlight"] = True

        # user extra options last (allows overriding if they really want)
        opts.update(self._grid_config.extra_grid_options)
        return opts

    # ------------------------------------------------------------------
    # Internal: emitted event handlers
    # ------------------------------------------------------------------

    def _find_column(self, col_id: Any) -> Optional[Column]:
        if not col_id:
            return None
        for col in self._ranking.flat_columns:
            if col.fqid == col_id:
                return col
        return None

    def _on_header_emitted(self, e: events.GenericEventArguments) -> None:
        args: dict[str, Any] = e.args or {}
        col = self._find_column(args.get("colId"))
        if col is None:
            return
        logger.debug(f"header clicked: {col.id!r}")
        col.toggle_my_sorting()

    def _on_resize_emitted(self, e: events.GenericEventArguments) -> None:
        args: dict[str, Any] = e.args or {}
        col = self._find_column(args.get("colId"))
        width = args.get("width")
        if col is None or width is None:
            return
        try:
            col.set_width(float(width))
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid column width {width!r} for {col.id!r}")

    def _on_row_emitted(self, e: events.GenericEventArguments) -> None:
        args: dict[str, Any] = e.args or {}
        row_id = args.get("rowId")
        if row_id is None:
            return
        row_id = str(row_id)

        if row_id.startswith(GROUP_ROW_PREFIX):
            key = parse_group_row_id(row_id)
            for data in self._ranking.get_groups():
                if data.group.key == key:
                    self._provider.set_aggregated(self._ranking, data.group, False)
                    return
            return

        try:
            index = int(row_id)
        except ValueError:
            return

        if args.get("ctrlKey"):
            self._provider.toggle_selection(index)
        else:
            self._provider.set_selection([index])
