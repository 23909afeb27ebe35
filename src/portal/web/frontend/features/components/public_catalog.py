# portal/web/frontend/features/components/public_catalog.py
"""
Listados públicos de trámites, OPAs y preguntas frecuentes, y el navegador
de la jerarquía de preguntas frecuentes.

Los listados se cargan completos (solo registros activos) y se filtran en el
navegador con utils.filtering.
"""

from typing import Any, Callable, Dict, List, Optional

from reactpy import component, event, html

from ...shared.async_content import AsyncContent
from ...shared.common_components import HighlightedText, Pagination
from ...shared.styles import (
    BADGE_GRATUITO,
    BADGE_PAGO,
    BREADCRUMB,
    CARDS_CONTAINER,
    DASHBOARD_CONTROLS,
    FILTER_BAR,
    RESULT_CARD,
    SEARCH_INPUT,
    TAG_SECONDARY,
)
from .cascading_selects import CascadingSelects

PUBLIC_PAGE_SIZE = 12

CODIGO_POR_TIPO = {"tramite": "codigo_unico", "opa": "codigo_opa"}


def paginate(items: List[Dict[str, Any]], page: int, page_size: int = PUBLIC_PAGE_SIZE) -> List[Dict[str, Any]]:
    inicio = (page - 1) * page_size
    return items[inicio : inicio + page_size]


@component
def CatalogFilterBar(
    title: str,
    search_term: str,
    on_search_change: Callable,
    is_searching: bool,
    selects: Dict[str, Any],
    pago_filter: Optional[str] = None,
    on_pago_change: Optional[Callable] = None,
    with_temas: bool = False,
):
    """Título, buscador y filtros de ubicación (y costo, si aplica)."""
    return html.div(
        {"class_name": DASHBOARD_CONTROLS},
        html.div({"class_name": "controls-header"}, html.h2(title)),
        html.div(
            {"class_name": f"grid {FILTER_BAR}"},
            html.input(
                {
                    "type": "search",
                    "name": "search-catalog",
                    "placeholder": "Filtrar por nombre, código o descripción...",
                    "value": search_term,
                    "on_change": lambda e: on_search_change(e["target"]["value"]),
                    "aria-busy": str(is_searching).lower(),
                    "class_name": SEARCH_INPUT,
                }
            ),
            html.select(
                {
                    "name": "filter-pago",
                    "value": pago_filter or "all",
                    "on_change": lambda e: on_pago_change(e["target"]["value"]),
                },
                html.option({"value": "all"}, "Costo: Todos"),
                html.option({"value": "false"}, "Gratuitos"),
                html.option({"value": "true"}, "Con pago"),
            )
            if on_pago_change
            else None,
        ),
        CascadingSelects(selects=selects, as_filters=True, with_temas=with_temas),
    )


@component
def ProcedimientoCard(item: Dict[str, Any], tipo: str, search_term: str):
    """Tarjeta de un trámite u OPA con sus requisitos desplegables."""
    requisitos = item.get("requisitos") or []
    codigo = item.get(CODIGO_POR_TIPO.get(tipo, "codigo_unico"))

    return html.article(
        {"class_name": f"{RESULT_CARD} result-{tipo}"},
        html.header(
            html.div(
                {"class_name": "result-badges"},
                html.code(codigo) if codigo else None,
                html.span({"class_name": BADGE_PAGO}, "Con pago")
                if item.get("tiene_pago")
                else html.span({"class_name": BADGE_GRATUITO}, "Gratuito"),
                html.span({"class_name": TAG_SECONDARY}, "SUIT") if item.get("visualizacion_suit") else None,
                html.span({"class_name": TAG_SECONDARY}, "GOV.CO") if item.get("visualizacion_gov") else None,
            ),
            html.h4(HighlightedText(text=item.get("nombre"), query=search_term)),
        ),
        html.p(HighlightedText(text=item.get("descripcion") or "", query=search_term)) if item.get("descripcion") else None,
        html.details(
            html.summary(f"Requisitos ({len(requisitos)})"),
            html.ul(*[html.li({"key": f"req-{i}"}, r) for i, r in enumerate(requisitos)]),
        )
        if requisitos
        else None,
        html.footer(
            html.small(
                {"class_name": "result-meta"},
                item.get("dependencia_nombre") or "",
                f" · {item['subdependencia_nombre']}" if item.get("subdependencia_nombre") else "",
                f" · Tiempo: {item['tiempo_respuesta']}" if item.get("tiempo_respuesta") else "",
            ),
            html.a({"href": item["formulario"], "target": "_blank", "rel": "noopener"}, "Ver formulario")
            if item.get("formulario")
            else None,
        ),
    )


@component
def ProcedimientosList(
    items: List[Dict[str, Any]],
    tipo: str,
    search_term: str,
    loading: bool,
    error: Optional[str],
    current_page: int,
    on_page_change: Callable,
):
    pagina = paginate(items, current_page)
    total_pages = (len(items) + PUBLIC_PAGE_SIZE - 1) // PUBLIC_PAGE_SIZE

    return AsyncContent(
        loading=loading and not items,
        error=error,
        data=items,
        empty_message="No hay resultados con los filtros seleccionados.",
        children=html._(
            html.div(
                {"class_name": CARDS_CONTAINER},
                *[ProcedimientoCard(item=i, tipo=tipo, search_term=search_term, key=i["id"]) for i in pagina],
            ),
            Pagination(
                current_page=current_page,
                total_pages=total_pages,
                total_items=len(items),
                items_per_page=PUBLIC_PAGE_SIZE,
                on_page_change=on_page_change,
            ),
        ),
    )


@component
def FaqItem(faq: Dict[str, Any], search_term: str = ""):
    palabras = faq.get("palabras_clave") or []
    return html.details(
        {"class_name": "faq-item"},
        html.summary(HighlightedText(text=faq.get("pregunta"), query=search_term)),
        html.p(HighlightedText(text=faq.get("respuesta"), query=search_term)),
        html.div(
            {"class_name": "result-tags"},
            *[html.span({"class_name": TAG_SECONDARY, "key": p}, p) for p in palabras],
        )
        if palabras
        else None,
    )


@component
def FaqList(
    faqs: List[Dict[str, Any]],
    search_term: str,
    loading: bool,
    error: Optional[str],
    current_page: int,
    on_page_change: Callable,
):
    pagina = paginate(faqs, current_page)
    total_pages = (len(faqs) + PUBLIC_PAGE_SIZE - 1) // PUBLIC_PAGE_SIZE

    return AsyncContent(
        loading=loading and not faqs,
        error=error,
        data=faqs,
        empty_message="No hay preguntas frecuentes con los filtros seleccionados.",
        children=html._(
            html.div(
                {"class_name": "faq-list"},
                *[FaqItem(faq=f, search_term=search_term, key=f["id"]) for f in pagina],
            ),
            Pagination(
                current_page=current_page,
                total_pages=total_pages,
                total_items=len(faqs),
                items_per_page=PUBLIC_PAGE_SIZE,
                on_page_change=on_page_change,
            ),
        ),
    )


def breadcrumb_items(hierarchy_state: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Migas de pan del nivel actual: [{"label", "level"}], la última sin enlace."""
    items = [{"label": "Todas las dependencias", "level": 0}]
    for nivel, clave in enumerate(("dependencia", "subdependencia", "tema"), start=1):
        nodo = hierarchy_state.get(clave)
        if not nodo:
            break
        items.append({"label": nodo["nombre"], "level": nivel})
    return items


@component
def FaqBreadcrumb(hierarchy_state: Dict[str, Any]):
    items = breadcrumb_items(hierarchy_state)
    go_to_level = hierarchy_state["go_to_level"]

    def item(i: int, miga: Dict[str, Any]):
        if i == len(items) - 1:
            return html.li({"key": str(miga["level"])}, html.span({"aria-current": "page"}, miga["label"]))
        return html.li(
            {"key": str(miga["level"])},
            html.a(
                {"href": "#", "on_click": event(lambda e, lvl=miga["level"]: go_to_level(lvl), prevent_default=True)},
                miga["label"],
            ),
        )

    return html.nav(
        {"class_name": BREADCRUMB, "aria-label": "breadcrumb"},
        html.ul(*[item(i, m) for i, m in enumerate(items)]),
    )


@component
def HierarchyNodeCard(node: Dict[str, Any], on_select: Callable, subtitle: Optional[str] = None):
    return html.article(
        {"class_name": "hierarchy-card"},
        html.a(
            {"href": "#", "on_click": event(lambda e: on_select(node["id"]), prevent_default=True)},
            html.h5(node["nombre"]),
        ),
        html.small(subtitle or f"{node['count']} pregunta{'s' if node['count'] != 1 else ''}"),
    )


@component
def FaqHierarchyBrowser(hierarchy_state: Dict[str, Any]):
    """Navega dependencia -> subdependencia -> tema -> preguntas."""
    hierarchy = hierarchy_state["hierarchy"]
    dependencia = hierarchy_state["dependencia"]
    subdependencia = hierarchy_state["subdependencia"]
    tema = hierarchy_state["tema"]

    if tema:
        contenido = html._(
            html.p(tema.get("descripcion") or ""),
            html.div({"class_name": "faq-list"}, *[FaqItem(faq=f, key=f["id"]) for f in tema["faqs"]]),
        )
    elif subdependencia:
        contenido = html.div(
            {"class_name": CARDS_CONTAINER},
            *[
                HierarchyNodeCard(node=t, on_select=hierarchy_state["select_tema"], key=t["id"])
                for t in subdependencia["temas"]
            ],
        )
    elif dependencia:
        contenido = html.div(
            {"class_name": CARDS_CONTAINER},
            *[
                HierarchyNodeCard(node=s, on_select=hierarchy_state["select_subdependencia"], key=s["id"])
                for s in dependencia["subdependencias"]
            ],
        )
    else:
        contenido = html.div(
            {"class_name": CARDS_CONTAINER},
            *[
                HierarchyNodeCard(node=d, on_select=hierarchy_state["select_dependencia"], key=d["id"])
                for d in hierarchy["dependencias"]
            ],
        )

    return html._(
        html.div(
            {"class_name": "controls-header"},
            html.h2("Preguntas frecuentes por tema"),
            html.small(f"{hierarchy.get('total_faqs', 0)} preguntas publicadas"),
        ),
        FaqBreadcrumb(hierarchy_state=hierarchy_state),
        AsyncContent(
            loading=hierarchy_state["loading"],
            error=hierarchy_state["error"],
            data=hierarchy["dependencias"],
            empty_message="Aún no hay preguntas frecuentes publicadas.",
            children=contenido,
        ),
    )
