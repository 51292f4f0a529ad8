# src/niceranking/ranking_grid/js_hooks.py
from __future__ import annotations

import json


def js_get_row_id(row_id_field: str) -> str:
    """Return an AG Grid `getRowId(params)` callback reading ``row_id_field``."""
    field_js = json.dumps(row_id_field)
    return f"""
(params) => {{
  try {{
    const d = params?.data;
    if (!d) return null;
    const v = d[{field_js}];
    return (v === null || v === undefined) ? null : String(v);
  }} catch (e) {{
    return null;
  }}
}}
""".strip()


def js_on_row_clicked(*, emit_event: str, row_id_field: str) -> str:
    """Return an AG Grid `onRowClicked(params)` hook that emits a JSON-safe click event."""
    return f"""
(params) => {{
  try {{
    const rowIndex = params?.rowIndex ?? null;
    const data = params?.data ?? null;
    const rowId = data ? data['{row_id_field}'] : null;
    const ev = params?.event ?? null;

    emitEvent('{emit_event}', {{
      rowIndex: rowIndex,
      rowId: (rowId === null || rowId === undefined) ? null : rowId,
      ctrlKey: !!(ev && (ev.ctrlKey || ev.metaKey)),
      shiftKey: !!(ev && ev.shiftKey),
    }});
  }} catch (err) {{
    console.warn('[ranking] onRowClicked failed', err);
  }}
}}
""".strip()


def js_on_column_resized(*, emit_event: str) -> str:
    """Return an AG Grid `onColumnResized(params)` hook that emits the final width.

    Only user drags are reported, once the drag has finished.
    """
    return f"""
(params) => {{
  try {{
    if (!params?.finished) return;
    if (params?.source !== 'uiColumnResized' && params?.source !== 'uiColumnDragged') return;
    const col = params?.column ?? null;
    if (!col) return;

    emitEvent('{emit_event}', {{
      colId: col.getColId ? col.getColId() : null,
      width: col.getActualWidth ? col.getActualWidth() : null,
    }});
  }} catch (err) {{
    console.warn('[ranking] onColumnResized failed', err);
  }}
}}
""".strip()


def js_on_column_header_clicked(*, emit_event: str) -> str:
    """Return an AG Grid `onColumnHeaderClicked(params)` hook that emits the clicked column id."""
    return f"""
(params) => {{
  try {{
    const col = params?.column ?? null;
    if (!col || !col.getColId) return;

    emitEvent('{emit_event}', {{
      colId: col.getColId(),
    }});
  }} catch (err) {{
    console.warn('[ranking] onColumnHeaderClicked failed', err);
  }}
}}
""".strip()


def js_get_row_height(aggregated_field: str, row_height: int, group_height: int) -> str:
    """Return an AG Grid `getRowHeight(params)` callback giving summary rows their own height."""
    field_js = json.dumps(aggregated_field)
    return f"""
(params) => {{
  const d = params?.data;
  return (d && d[{field_js}]) ? {int(group_height)} : {int(row_height)};
}}
""".strip()
