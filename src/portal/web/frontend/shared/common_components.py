# portal/web/frontend/shared/common_components.py
import logging
import re
from typing import Callable, List, Optional, Union

from reactpy import component, html, use_state
from reactpy_router import link

from portal.common.text_utils import highlight_matches

logger = logging.getLogger(__name__)

_MARCA = re.compile(r"<mark>(.*?)</mark>", re.DOTALL)


def compute_page_numbers(current_page: int, total_pages: int, max_visible_pages: int = 5) -> List[Union[int, str]]:
    """Números de página visibles, con "..." donde se omiten páginas."""
    if total_pages <= max_visible_pages:
        return list(range(1, total_pages + 1))

    half_visible = max_visible_pages // 2
    start_page = max(1, current_page - half_visible)
    end_page = min(total_pages, start_page + max_visible_pages - 1)
    if end_page == total_pages:
        start_page = max(1, total_pages - max_visible_pages + 1)

    page_numbers: List[Union[int, str]] = []
    if start_page > 1:
        page_numbers.append(1)
        if start_page > 2:
            page_numbers.append("...")
    page_numbers.extend(range(start_page, end_page + 1))
    if end_page < total_pages:
        if end_page < total_pages - 1:
            page_numbers.append("...")
        page_numbers.append(total_pages)
    return page_numbers


def highlight_segments(text: Optional[str], query: Optional[str]) -> List[Union[str, tuple]]:
    """
    Divide el texto en fragmentos planos y coincidencias ("mark", fragmento),
    respetando tildes y mayúsculas del original.
    """
    marcado = highlight_matches(text or "", query)
    partes: List[Union[str, tuple]] = []
    cursor = 0
    for m in _MARCA.finditer(marcado):
        if m.start() > cursor:
            partes.append(marcado[cursor : m.start()])
        partes.append(("mark", m.group(1)))
        cursor = m.end()
    if cursor < len(marcado):
        partes.append(marcado[cursor:])
    return partes


@component
def HighlightedText(text: Optional[str], query: Optional[str]):
    return html.span(
        *[html.mark(p[1]) if isinstance(p, tuple) else p for p in highlight_segments(text, query)],
    )


@component
def Pagination(
    current_page: int,
    total_pages: int,
    total_items: int,
    items_per_page: int,
    on_page_change: Callable,
    max_visible_pages: int = 5,
):
    """Paginación con resumen ("Mostrando 1-10 de 42") y controles."""
    if total_items == 0 or total_pages <= 1:
        return None

    page_numbers = compute_page_numbers(current_page, total_pages, max_visible_pages)
    start_item = ((current_page - 1) * items_per_page) + 1
    end_item = min(current_page * items_per_page, total_items)

    def handle_page_click(page_number):
        if isinstance(page_number, int) and 1 <= page_number <= total_pages and page_number != current_page:
            on_page_change(page_number)

    def page_item(page):
        if not isinstance(page, int):
            return html.li(html.span({"class_name": "pagination-ellipsis"}, "…"))
        return html.li(
            html.a(
                {
                    "href": "#",
                    "on_click": lambda e, p=page: handle_page_click(p),
                    "aria-current": "page" if page == current_page else None,
                    "aria-label": f"Ir a página {page}",
                    "class_name": "primary" if page == current_page else "secondary outline",
                },
                str(page),
            )
        )

    return html.nav(
        {"class_name": "pagination-container", "aria-label": "Paginación"},
        html.span({"class_name": "pagination-summary"}, f"Mostrando {start_item}-{end_item} de {total_items} resultados"),
        html.ul(
            {"class_name": "pagination-controls"},
            html.li(
                html.a(
                    {
                        "href": "#",
                        "on_click": lambda e: handle_page_click(current_page - 1),
                        "aria-disabled": str(current_page == 1).lower(),
                        "aria-label": "Página anterior",
                    },
                    "‹",
                )
            ),
            *[page_item(page) for page in page_numbers],
            html.li(
                html.a(
                    {
                        "href": "#",
                        "on_click": lambda e: handle_page_click(current_page + 1),
                        "aria-disabled": str(current_page == total_pages).lower(),
                        "aria-label": "Página siguiente",
                    },
                    "›",
                )
            ),
        ),
    )


@component
def LoadingSpinner(size: str = "medium"):
    """Spinner de Pico.css (aria-busy)."""
    style = {}
    if size == "small":
        style = {"width": "1.5rem", "height": "1.5rem"}
    elif size == "large":
        style = {"width": "3rem", "height": "3rem"}
    return html.span({"aria-busy": "true", "style": style})


@component
def ConfirmationModal(is_open: bool, title: str, message: str, on_confirm: Callable, on_cancel: Callable):
    """Modal genérico de confirmación."""
    # Los hooks se llaman siempre, aunque el modal esté cerrado
    is_processing, set_is_processing = use_state(False)

    if not is_open:
        return None

    async def handle_confirm(_event):
        if is_processing:
            return
        set_is_processing(True)
        try:
            await on_confirm()
        finally:
            set_is_processing(False)

    return html.dialog(
        {"open": True},
        html.article(
            html.header(
                html.button({"aria-label": "Cerrar", "rel": "prev", "on_click": lambda e: on_cancel()}),
                html.h3(title),
            ),
            html.p(message),
            html.footer(
                html.div(
                    {"class_name": "grid"},
                    html.button(
                        {"class_name": "secondary", "on_click": lambda e: on_cancel(), "disabled": is_processing},
                        "Cancelar",
                    ),
                    html.button(
                        {
                            "class_name": "danger",
                            "on_click": handle_confirm,
                            "disabled": is_processing,
                            "aria-busy": str(is_processing).lower(),
                        },
                        "Procesando..." if is_processing else "Confirmar",
                    ),
                ),
            ),
        ),
    )


@component
def ThemeSwitcher(is_dark: bool, on_toggle: Callable):
    """Interruptor de tema claro / oscuro."""

    def handle_change(event):
        on_toggle(bool(event["target"]["checked"]))

    return html.label(
        {"htmlFor": "theme-switcher", "class_name": "theme-switcher"},
        html.span({"class_name": "material-symbols-outlined"}, "light_mode"),
        html.input(
            {
                "type": "checkbox",
                "id": "theme-switcher",
                "role": "switch",
                "checked": is_dark,
                "on_change": handle_change,
                "aria-label": "Cambiar tema",
            }
        ),
        html.span({"class_name": "material-symbols-outlined"}, "dark_mode"),
    )


ADMIN_LINKS = [
    ("/admin/dependencias", "Dependencias"),
    ("/admin/subdependencias", "Subdependencias"),
    ("/admin/tramites", "Trámites"),
    ("/admin/opas", "OPAs"),
    ("/admin/faqs", "FAQs"),
    ("/admin/temas", "Temas"),
]


@component
def HeaderNav(theme_is_dark: bool, on_theme_toggle):
    """Encabezado con la navegación pública y el menú de administración."""
    return html._(
        html.header(
            {"class_name": "sticky-header"},
            html.div(
                {"class_name": "container"},
                html.nav(
                    html.ul(
                        html.li(html.strong("Alcaldía de Chía")),
                        html.li(link({"to": "/", "data-route": "/"}, "Buscar")),
                        html.li(link({"to": "/tramites", "data-route": "/tramites"}, "Trámites")),
                        html.li(link({"to": "/opas", "data-route": "/opas"}, "OPAs")),
                        html.li(link({"to": "/faqs", "data-route": "/faqs"}, "Preguntas frecuentes")),
                    ),
                    html.ul(
                        html.li(
                            html.details(
                                {"class_name": "dropdown"},
                                html.summary("Administración"),
                                html.ul(
                                    {"dir": "rtl"},
                                    *[
                                        html.li(link({"to": ruta, "data-route": ruta}, texto))
                                        for ruta, texto in ADMIN_LINKS
                                    ],
                                ),
                            )
                        ),
                        html.li(ThemeSwitcher(is_dark=theme_is_dark, on_toggle=on_theme_toggle)),
                    ),
                ),
            ),
        ),
        # Marca el enlace activo también al navegar con atrás/adelante
        html.script(
            """
            (function() {
                function updateActiveLinks() {
                    setTimeout(() => {
                        const path = window.location.pathname;
                        document.querySelectorAll('nav a[data-route]').forEach(link => {
                            const route = link.getAttribute('data-route');
                            if (path === route || (route !== '/' && path.startsWith(route))) {
                                link.classList.add('active');
                                link.setAttribute('aria-current', 'page');
                            } else {
                                link.classList.remove('active');
                                link.removeAttribute('aria-current');
                            }
                        });
                    }, 50);
                }
                updateActiveLinks();
                document.addEventListener('click', function(e) {
                    if (e.target.closest('nav a')) {
                        updateActiveLinks();
                    }
                });
                window.addEventListener('popstate', updateActiveLinks);
            })();
            """
        ),
    )


@component
def PageWithLayout(theme_is_dark: bool, on_theme_toggle, children):
    """Encabezado y contenedor principal de cada página."""
    return html._(
        HeaderNav(theme_is_dark=theme_is_dark, on_theme_toggle=on_theme_toggle),
        html.main({"class_name": "container"}, children),
        html.footer(
            {"class_name": "container site-footer"},
            html.small("Alcaldía Municipal de Chía · Portal de atención ciudadana"),
        ),
    )
