# portal/web/frontend/shared/async_content.py
"""
Estados de carga, error y vacío para los componentes que cargan datos.

Uso:
    from portal.web.frontend.shared.async_content import AsyncContent

    return AsyncContent(
        loading=state["loading"],
        error=state["error"],
        data=state["items"],
        empty_message="No se encontraron trámites",
        children=TramitesTable(...),
    )
"""

from typing import List, Optional

from reactpy import component, html

from .common_components import LoadingSpinner


@component
def AsyncContent(
    loading: bool,
    error: Optional[str] = None,
    data: Optional[List] = None,
    loading_component=None,
    error_component=None,
    empty_component=None,
    empty_message: str = "No hay datos disponibles",
    children=None,
):
    """
    Prioridad: error, luego carga, luego vacío (data == []), luego children.
    """
    if error:
        return error_component or ErrorAlert(message=error)

    if loading:
        return loading_component or LoadingSpinner(size="large")

    if data is not None and len(data) == 0:
        return empty_component or EmptyState(message=empty_message)

    return children


@component
def ErrorAlert(message: str):
    if not message:
        return None

    return html.article(
        {"aria-invalid": "true", "role": "alert", "class_name": "alert-error"},
        html.strong("Error: "),
        str(message),
    )


@component
def EmptyState(message: str = "No hay datos disponibles"):
    return html.article(
        {"class_name": "empty-state"},
        html.p({"class_name": "empty-state-icon"}, "🔍"),
        html.p(message),
    )
