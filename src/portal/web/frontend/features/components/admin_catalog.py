# portal/web/frontend/features/components/admin_catalog.py
"""
Componentes de las consolas de administración de los catálogos.
"""

from typing import Any, Callable, Dict, List, Optional

from reactpy import component, html, use_state

from ...shared.common_components import Pagination
from ...shared.data_table import DataTable
from ...shared.styles import (
    BADGE_ACTIVO,
    BADGE_GRATUITO,
    BADGE_INACTIVO,
    BADGE_PAGO,
    BUTTON_PRIMARY,
    DASHBOARD_CONTROLS,
    FILTER_BAR,
    SEARCH_INPUT,
)
from .cascading_selects import CascadingSelects

MAX_TEXTO_CELDA = 80


def estado_badge(row: Dict[str, Any]):
    if row.get("activo"):
        return html.span({"class_name": BADGE_ACTIVO}, "Activo")
    return html.span({"class_name": BADGE_INACTIVO}, "Inactivo")


def pago_badge(row: Dict[str, Any]):
    if row.get("tiene_pago"):
        return html.span({"class_name": BADGE_PAGO}, "Con pago")
    return html.span({"class_name": BADGE_GRATUITO}, "Gratuito")


def truncate(texto: Optional[str], maximo: int = MAX_TEXTO_CELDA) -> str:
    texto = texto or ""
    return texto if len(texto) <= maximo else texto[: maximo - 1].rstrip() + "…"


COLUMNAS: Dict[str, List[Dict[str, Any]]] = {
    "dependencias": [
        {"key": "codigo", "label": "Código"},
        {"key": "sigla", "label": "Sigla"},
        {"key": "nombre", "label": "Nombre"},
        {"key": "subdependencias_count", "label": "Subdependencias"},
        {"key": "activo", "label": "Estado", "render": estado_badge},
    ],
    "subdependencias": [
        {"key": "codigo", "label": "Código"},
        {"key": "nombre", "label": "Nombre"},
        {"key": "dependencia_nombre", "label": "Dependencia"},
        {"key": "tramites_count", "label": "Trámites"},
        {"key": "opas_count", "label": "OPAs"},
        {"key": "activo", "label": "Estado", "render": estado_badge},
    ],
    "tramites": [
        {"key": "codigo_unico", "label": "Código"},
        {"key": "nombre", "label": "Nombre", "render": lambda r: truncate(r.get("nombre"))},
        {"key": "subdependencia_nombre", "label": "Subdependencia"},
        {"key": "tiempo_respuesta", "label": "Tiempo"},
        {"key": "tiene_pago", "label": "Pago", "render": pago_badge},
        {"key": "activo", "label": "Estado", "render": estado_badge},
    ],
    "opas": [
        {"key": "codigo_opa", "label": "Código"},
        {"key": "nombre", "label": "Nombre", "render": lambda r: truncate(r.get("nombre"))},
        {"key": "subdependencia_nombre", "label": "Subdependencia"},
        {"key": "tiempo_respuesta", "label": "Tiempo"},
        {"key": "tiene_pago", "label": "Pago", "render": pago_badge},
        {"key": "activo", "label": "Estado", "render": estado_badge},
    ],
    "faqs": [
        {"key": "pregunta", "label": "Pregunta", "render": lambda r: truncate(r.get("pregunta"))},
        {"key": "dependencia_nombre", "label": "Dependencia"},
        {"key": "tema_nombre", "label": "Tema", "render": lambda r: r.get("tema_nombre") or r.get("tema") or ""},
        {"key": "orden", "label": "Orden"},
        {"key": "activo", "label": "Estado", "render": estado_badge},
    ],
    "temas": [
        {"key": "nombre", "label": "Nombre"},
        {"key": "subdependencia_nombre", "label": "Subdependencia"},
        {"key": "orden", "label": "Orden"},
        {"key": "faqs_count", "label": "FAQs"},
        {"key": "activo", "label": "Estado", "render": estado_badge},
    ],
}

# Niveles de CascadingSelects que filtra cada catálogo
FILTROS_UBICACION = {
    "dependencias": None,
    "subdependencias": {"with_subdependencia": False, "with_temas": False},
    "tramites": {"with_subdependencia": True, "with_temas": False},
    "opas": {"with_subdependencia": True, "with_temas": False},
    "faqs": {"with_subdependencia": True, "with_temas": True},
    "temas": {"with_subdependencia": True, "with_temas": False},
}

# Parámetros de ubicación que acepta el listado de cada catálogo en la API
FILTROS_API = {
    "dependencias": [],
    "subdependencias": ["dependencia_id"],
    "tramites": ["dependencia_id", "subdependencia_id"],
    "opas": ["dependencia_id", "subdependencia_id"],
    "faqs": ["dependencia_id", "subdependencia_id", "tema_id"],
    "temas": ["subdependencia_id"],
}

BOTON_NUEVO = {
    "dependencias": "Nueva dependencia",
    "subdependencias": "Nueva subdependencia",
    "tramites": "Nuevo trámite",
    "opas": "Nueva OPA",
    "faqs": "Nueva pregunta",
    "temas": "Nuevo tema",
}

TITULOS = {
    "dependencias": "Gestión de Dependencias",
    "subdependencias": "Gestión de Subdependencias",
    "tramites": "Gestión de Trámites",
    "opas": "Gestión de OPAs",
    "faqs": "Gestión de Preguntas Frecuentes",
    "temas": "Gestión de Temas",
}


def ubicacion_filters(recurso: str, selects: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """Selección de los selects en cascada traducida a filtros del listado."""
    return {clave: selects.get(clave) or None for clave in FILTROS_API.get(recurso, [])}


@component
def AdminControls(
    recurso: str,
    search_term: Optional[str],
    on_search_change: Optional[Callable],
    is_searching: bool,
    active_filter: str,
    on_active_change: Callable,
    on_create: Callable,
    selects: Optional[Dict[str, Any]] = None,
):
    """Título, buscador, filtro de estado, filtros de ubicación y botón "Nuevo"."""
    is_expanded, set_is_expanded = use_state(False)
    ubicacion = FILTROS_UBICACION.get(recurso)

    return html.div(
        {"class_name": DASHBOARD_CONTROLS},
        html.div(
            {"class_name": "controls-header"},
            html.h2(TITULOS.get(recurso, recurso.capitalize())),
            html.button(
                {
                    "class_name": "mobile-controls-toggle outline secondary",
                    "on_click": lambda e: set_is_expanded(not is_expanded),
                    "type": "button",
                },
                "Controles",
            ),
        ),
        html.div(
            {"class_name": "collapsible-panel" + (" is-expanded" if is_expanded else "")},
            html.div(
                {"class_name": f"grid {FILTER_BAR}"},
                html.input(
                    {
                        "type": "search",
                        "name": f"search-{recurso}",
                        "placeholder": "Buscar...",
                        "value": search_term or "",
                        "on_change": lambda e: on_search_change(e["target"]["value"]),
                        "aria-busy": str(is_searching).lower(),
                        "class_name": SEARCH_INPUT,
                    }
                )
                if on_search_change
                else None,
                html.select(
                    {
                        "name": "filter-activo",
                        "value": active_filter,
                        "on_change": lambda e: on_active_change(e["target"]["value"]),
                    },
                    html.option({"value": "all"}, "Estado: Todos"),
                    html.option({"value": "true"}, "Solo activos"),
                    html.option({"value": "false"}, "Solo inactivos"),
                ),
                html.button(
                    {"on_click": lambda e: on_create(), "type": "button", "class_name": BUTTON_PRIMARY},
                    BOTON_NUEVO.get(recurso, "Nuevo"),
                ),
            ),
            CascadingSelects(selects=selects, as_filters=True, **ubicacion) if ubicacion and selects else None,
        ),
    )


@component
def AdminCatalogTable(
    recurso: str,
    catalog_state: Dict[str, Any],
    rows: List[Dict[str, Any]],
    sort_by: Optional[str],
    sort_dir: str,
    on_sort: Callable,
    on_edit: Callable,
    on_toggle: Callable,
    on_delete: Callable,
):
    acciones = [
        {"label": "Editar", "on_click": on_edit, "class_name": "secondary"},
        {
            "label_for": lambda r: "Desactivar" if r.get("activo") else "Activar",
            "on_click": on_toggle,
            "class_name": "contrast",
        },
        {"label": "Eliminar", "on_click": on_delete, "class_name": "danger"},
    ]

    return html._(
        DataTable(
            data=rows,
            columns=COLUMNAS[recurso],
            loading=catalog_state["loading"] and not rows,
            error=catalog_state["error"],
            actions=acciones,
            empty_message=f"No se encontraron registros de {recurso}.",
            sort_by=sort_by,
            sort_dir=sort_dir,
            on_sort=on_sort,
        ),
        Pagination(
            current_page=catalog_state["current_page"],
            total_pages=catalog_state["total_pages"],
            total_items=catalog_state["total_count"],
            items_per_page=catalog_state["page_size"],
            on_page_change=catalog_state["set_current_page"],
        )
        if catalog_state["paginado"]
        else None,
    )
