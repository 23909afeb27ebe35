# portal/web/frontend/features/components/search_page.py
"""
Componentes de la búsqueda pública unificada.
"""

from typing import Any, Callable, Dict, List

from reactpy import component, html

from ...shared.async_content import AsyncContent
from ...shared.common_components import HighlightedText, Pagination
from ...shared.styles import (
    BADGE_GRATUITO,
    BADGE_PAGO,
    BADGE_TIPO,
    BUTTON_OUTLINE_SECONDARY,
    CARDS_CONTAINER,
    DASHBOARD_CONTROLS,
    FILTER_BAR,
    RESULT_CARD,
    SEARCH_INPUT,
    TAG_SECONDARY,
    TIPO_LABELS,
)
from .cascading_selects import CascadingSelects

MAX_TAGS = 4


@component
def SearchControls(search_state: Dict[str, Any], selects: Dict[str, Any], on_ubicacion_change: Callable):
    """Caja de búsqueda con sugerencias y barra de filtros."""
    filters = search_state["filters"]
    suggestions = search_state["suggestions"]

    return html.div(
        {"class_name": DASHBOARD_CONTROLS},
        html.div(
            {"class_name": "controls-header"},
            html.h2("¿Qué trámite o servicio necesitas?"),
        ),
        html.input(
            {
                "type": "search",
                "name": "search-portal",
                "list": "search-suggestions",
                "placeholder": "Buscar trámites, OPAs o preguntas frecuentes...",
                "value": search_state["query"],
                "on_change": lambda e: search_state["set_query"](e["target"]["value"]),
                "aria-busy": str(search_state["is_typing"]).lower(),
                "aria-label": "Buscar",
                "class_name": SEARCH_INPUT,
                "autocomplete": "off",
            }
        ),
        html.datalist(
            {"id": "search-suggestions"},
            *[html.option({"value": s, "key": s}) for s in suggestions],
        ),
        html.div(
            {"class_name": f"grid {FILTER_BAR}"},
            html.select(
                {
                    "name": "filter-tipo",
                    "value": filters.get("tipo") or "",
                    "on_change": lambda e: search_state["set_filter"]("tipo", e["target"]["value"]),
                    "aria-label": "Tipo de resultado",
                },
                html.option({"value": ""}, "Tipo: Todos"),
                html.option({"value": "tramite"}, "Trámites"),
                html.option({"value": "opa"}, "OPAs"),
                html.option({"value": "faq"}, "Preguntas frecuentes"),
            ),
            html.select(
                {
                    "name": "filter-pago",
                    "value": filters.get("tipo_pago") or "",
                    "on_change": lambda e: search_state["set_filter"]("tipo_pago", e["target"]["value"]),
                    "aria-label": "Costo",
                },
                html.option({"value": ""}, "Costo: Todos"),
                html.option({"value": "gratuito"}, "Gratuitos"),
                html.option({"value": "con_pago"}, "Con pago"),
            ),
            html.button(
                {
                    "type": "button",
                    "class_name": BUTTON_OUTLINE_SECONDARY,
                    "on_click": search_state["clear_filters"],
                },
                "Limpiar filtros",
            ),
        ),
        CascadingSelects(selects=selects, as_filters=True, on_change=on_ubicacion_change),
    )


def _pago_badge(resultado: Dict[str, Any]):
    if resultado.get("tiene_pago") is None:
        return None
    if resultado["tiene_pago"]:
        return html.span({"class_name": BADGE_PAGO}, "Con pago")
    return html.span({"class_name": BADGE_GRATUITO}, "Gratuito")


@component
def ResultCard(resultado: Dict[str, Any], query: str):
    tipo = resultado.get("tipo", "")
    tags: List[str] = resultado.get("tags") or []

    return html.article(
        {"class_name": f"{RESULT_CARD} result-{tipo}"},
        html.header(
            html.div(
                {"class_name": "result-badges"},
                html.span({"class_name": BADGE_TIPO.get(tipo, TAG_SECONDARY)}, TIPO_LABELS.get(tipo, tipo)),
                html.code(resultado["codigo"]) if resultado.get("codigo") else None,
                _pago_badge(resultado),
            ),
            html.h4(HighlightedText(text=resultado.get("titulo"), query=query)),
        ),
        html.p(HighlightedText(text=resultado.get("descripcion"), query=query)),
        html.footer(
            html.small(
                {"class_name": "result-meta"},
                html.span(resultado.get("dependencia") or ""),
                html.span(f" · {resultado['subdependencia']}") if resultado.get("subdependencia") else None,
                html.span(f" · Tiempo: {resultado['tiempo_estimado']}") if resultado.get("tiempo_estimado") else None,
            ),
            html.div(
                {"class_name": "result-tags"},
                *[html.span({"class_name": TAG_SECONDARY, "key": t}, t) for t in tags[:MAX_TAGS]],
            ),
            html.a(
                {"href": resultado["formulario"], "target": "_blank", "rel": "noopener"},
                "Ver formulario",
            )
            if resultado.get("formulario")
            else None,
        ),
    )


@component
def SearchResults(search_state: Dict[str, Any]):
    pagination = search_state["pagination"]
    results = search_state["results"]
    total = pagination.get("total", 0)
    query = search_state["debounced_query"]

    return AsyncContent(
        loading=search_state["loading"] and not results,
        error=search_state["error"],
        data=results,
        empty_message="No encontramos resultados. Prueba con otras palabras o quita algunos filtros.",
        children=html._(
            html.p({"class_name": "search-summary"}, f"{total} resultado{'s' if total != 1 else ''}"),
            html.div(
                {"class_name": CARDS_CONTAINER},
                *[ResultCard(resultado=r, query=query, key=f"{r['tipo']}-{r['id']}") for r in results],
            ),
            Pagination(
                current_page=pagination.get("page", 1),
                total_pages=pagination.get("totalPages", 0),
                total_items=total,
                items_per_page=pagination.get("limit", 10),
                on_page_change=search_state["set_page"],
            ),
        ),
    )
