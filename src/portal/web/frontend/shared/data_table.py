# portal/web/frontend/shared/data_table.py
"""
Tabla genérica de las consolas de administración.

Uso:
    columns = [
        {"key": "codigo_unico", "label": "Código"},
        {"key": "activo", "label": "Estado", "render": lambda row: EstadoBadge(row["activo"])},
    ]
    return DataTable(data=items, columns=columns, loading=loading, actions=acciones)
"""

import inspect
from typing import Any, Callable, Dict, List, Optional

from reactpy import component, event, html

from .async_content import AsyncContent


@component
def DataTable(
    data: List[Dict[str, Any]],
    columns: List[Dict[str, Any]],
    loading: bool = False,
    error: Optional[str] = None,
    actions: Optional[List[Dict[str, Any]]] = None,
    empty_message: str = "No hay datos disponibles",
    sort_by: Optional[str] = None,
    sort_dir: Optional[str] = None,
    on_sort: Optional[Callable] = None,
):
    """
    Args:
        data: filas a mostrar
        columns: definiciones con "key", "label" y opcionalmente "render" y "sortable"
        actions: botones por fila, cada uno con "label", "on_click" y opcionalmente
                 "class_name" y "label_for" (texto según la fila)
        sort_by / sort_dir / on_sort: ordenamiento controlado por el componente padre
    """
    return AsyncContent(
        loading=loading,
        error=error,
        data=data,
        empty_message=empty_message,
        children=_render_table(data, columns, actions, sort_by, sort_dir, on_sort),
    )


def _render_table(data, columns, actions, sort_by, sort_dir, on_sort):
    def render_header(column: Dict[str, Any]):
        column_key = column.get("key", "")
        if not column.get("sortable", True) or not on_sort:
            return html.th({"scope": "col"}, column.get("label", ""))

        indicador = ""
        if sort_by == column_key:
            indicador = " ▲" if sort_dir == "asc" else " ▼"
        return html.th(
            {"scope": "col"},
            html.a(
                {"href": "#", "on_click": event(lambda e, key=column_key: on_sort(key), prevent_default=True)},
                column.get("label", ""),
                indicador,
            ),
        )

    def render_cell(row: Dict[str, Any], column: Dict[str, Any]):
        if callable(column.get("render")):
            return html.td(column["render"](row))
        value = row.get(column.get("key", ""))
        return html.td("" if value is None else str(value))

    def render_row(row: Dict[str, Any], index: int):
        cells = [render_cell(row, col) for col in columns]
        if actions:
            cells.append(html.td(_render_actions(row, actions)))
        return html.tr({"key": str(row.get("id") or index)}, cells)

    headers = [render_header(col) for col in columns]
    if actions:
        headers.append(html.th({"scope": "col"}, "Acciones"))

    return html.div(
        {"class_name": "table-container"},
        html.table(
            {"class_name": "striped"},
            html.thead(html.tr(headers)),
            html.tbody([render_row(row, idx) for idx, row in enumerate(data or [])]),
        ),
    )


def _row_handler(handler: Callable, row: Dict[str, Any]):
    async def _on_click(_event):
        resultado = handler(row)
        if inspect.isawaitable(resultado):
            await resultado

    return _on_click


def _render_actions(row: Dict[str, Any], actions: List[Dict[str, Any]]):
    botones = []
    for action in actions:
        on_click = action.get("on_click")
        if not on_click:
            continue
        label = action["label_for"](row) if callable(action.get("label_for")) else action.get("label", "")
        botones.append(
            html.button(
                {
                    "class_name": f"outline {action.get('class_name', 'secondary')}",
                    "on_click": event(_row_handler(on_click, row), prevent_default=True),
                    "type": "button",
                },
                label,
            )
        )
    return html.div({"class_name": "row-actions"}, *botones)
