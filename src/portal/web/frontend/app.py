# portal/web/frontend/app.py
import uuid

from reactpy import component, html, use_effect, use_memo, use_state
from reactpy_router import browser_router, route

from portal.common.text_utils import search_matches

from .api.api_client import get_api_client

# Componentes de páginas
from .features.chat.chat_widget import ChatWidget
from .features.components.admin_catalog import AdminCatalogTable, AdminControls, FILTROS_UBICACION, ubicacion_filters
from .features.components.admin_session import (
    EXPORTABLES,
    AdminLogin,
    AdminSessionBar,
    CatalogTransferPanel,
    open_admin_session,
)
from .features.components.public_catalog import CatalogFilterBar, FaqHierarchyBrowser, FaqList, ProcedimientosList
from .features.components.search_page import SearchControls, SearchResults

# Modales
from .features.modals.catalog_modals import CatalogFormModal

# Hooks
from .hooks.use_cascading_selects_hook import use_cascading_selects
from .hooks.use_catalog_hook import use_catalog
from .hooks.use_debounced_value_hook import use_debounced_value
from .hooks.use_faq_hierarchy_hook import use_faq_hierarchy
from .hooks.use_search_hook import use_search

# Componentes compartidos
from .shared.common_components import ConfirmationModal, PageWithLayout
from .shared.notifications import NotificationContext, ToastContainer, use_notification_state, use_notify

# Contexto de la aplicación
from .state.app_context import AppContext, use_app_context
from .utils.filtering import filter_faqs, filter_opas, filter_tramites, parse_tri_state, sort_data

# Los listados públicos se cargan completos y se filtran en el navegador
PUBLIC_LIST_SIZE = 500

FILTRO_PUBLICO = {"tramites": filter_tramites, "opas": filter_opas}


# --- Componentes de Página (Lógica de cada ruta) ---
@component
def SearchPage(theme_is_dark: bool, on_theme_toggle):
    """Búsqueda unificada de trámites, OPAs y preguntas frecuentes."""
    search_state = use_search()
    selects = use_cascading_selects()

    def handle_ubicacion_change(nivel: str, valor):
        if nivel == "dependencia":
            dependencia = next((d for d in selects["dependencias"] if d["id"] == valor), None)
            search_state["set_filter"]("dependencia", dependencia["nombre"] if dependencia else None)
            search_state["set_filter"]("subdependencia_id", None)
        elif nivel == "subdependencia":
            search_state["set_filter"]("subdependencia_id", valor)

    def handle_clear_filters(event=None):
        selects["reset"]()
        search_state["clear_filters"]()

    return PageWithLayout(
        theme_is_dark=theme_is_dark,
        on_theme_toggle=on_theme_toggle,
        children=html._(
            SearchControls(
                search_state={**search_state, "clear_filters": handle_clear_filters},
                selects=selects,
                on_ubicacion_change=handle_ubicacion_change,
            ),
            SearchResults(search_state=search_state),
        ),
    )


@component
def ProcedimientosPage(recurso: str, theme_is_dark: bool, on_theme_toggle):
    """Listado público de trámites u OPAs activos."""
    catalog = use_catalog(recurso, initial_filters={"activo": True}, page_size=PUBLIC_LIST_SIZE)
    selects = use_cascading_selects()
    search_input, set_search_input = use_state("")
    debounced_search = use_debounced_value(search_input, 300)
    pago_filter, set_pago_filter = use_state("all")
    page, set_page = use_state(1)

    @use_effect(dependencies=[debounced_search, pago_filter, selects["dependencia_id"], selects["subdependencia_id"]])
    def reset_page():
        set_page(1)

    filtrados = FILTRO_PUBLICO[recurso](
        catalog["items"],
        search_term=debounced_search,
        dependencia_id=selects["dependencia_id"],
        subdependencia_id=selects["subdependencia_id"],
        tiene_pago=parse_tri_state(pago_filter),
    )
    tipo = "tramite" if recurso == "tramites" else "opa"

    return PageWithLayout(
        theme_is_dark=theme_is_dark,
        on_theme_toggle=on_theme_toggle,
        children=html._(
            CatalogFilterBar(
                title="Trámites" if recurso == "tramites" else "Otros procedimientos administrativos (OPA)",
                search_term=search_input,
                on_search_change=set_search_input,
                is_searching=debounced_search != search_input,
                selects=selects,
                pago_filter=pago_filter,
                on_pago_change=set_pago_filter,
            ),
            ProcedimientosList(
                items=sort_data(filtrados, "nombre"),
                tipo=tipo,
                search_term=debounced_search,
                loading=catalog["loading"],
                error=catalog["error"],
                current_page=page,
                on_page_change=set_page,
            ),
        ),
    )


@component
def FaqsPage(theme_is_dark: bool, on_theme_toggle):
    """Listado público de preguntas frecuentes."""
    catalog = use_catalog("faqs", initial_filters={"activo": True}, page_size=PUBLIC_LIST_SIZE)
    selects = use_cascading_selects(with_temas=True)
    search_input, set_search_input = use_state("")
    debounced_search = use_debounced_value(search_input, 300)
    page, set_page = use_state(1)

    @use_effect(dependencies=[debounced_search, selects["dependencia_id"], selects["subdependencia_id"], selects["tema_id"]])
    def reset_page():
        set_page(1)

    tema = next((t for t in selects["temas"] if t["id"] == selects["tema_id"]), None)
    filtradas = filter_faqs(
        catalog["items"],
        search_term=debounced_search,
        dependencia_id=selects["dependencia_id"],
        subdependencia_id=selects["subdependencia_id"],
        tema=tema["nombre"] if tema else None,
    )

    return PageWithLayout(
        theme_is_dark=theme_is_dark,
        on_theme_toggle=on_theme_toggle,
        children=html._(
            CatalogFilterBar(
                title="Preguntas frecuentes",
                search_term=search_input,
                on_search_change=set_search_input,
                is_searching=debounced_search != search_input,
                selects=selects,
                with_temas=True,
            ),
            html.p(html.a({"href": "/faqs/temas"}, "Explorar por dependencia y tema →")),
            FaqList(
                faqs=sort_data(filtradas, "orden"),
                search_term=debounced_search,
                loading=catalog["loading"],
                error=catalog["error"],
                current_page=page,
                on_page_change=set_page,
            ),
        ),
    )


@component
def FaqHierarchyPage(theme_is_dark: bool, on_theme_toggle):
    hierarchy_state = use_faq_hierarchy()
    return PageWithLayout(
        theme_is_dark=theme_is_dark,
        on_theme_toggle=on_theme_toggle,
        children=FaqHierarchyBrowser(hierarchy_state=hierarchy_state),
    )


@component
def AdminCatalogPage(recurso: str, theme_is_dark: bool, on_theme_toggle):
    """Pide el token de administración antes de mostrar la consola del catálogo."""
    app_context = use_app_context()
    session = app_context.get("admin_session")

    if session:
        return AdminCatalogConsole(
            recurso=recurso,
            theme_is_dark=theme_is_dark,
            on_theme_toggle=on_theme_toggle,
            key=f"{recurso}-{session['rol']}",
        )

    async def handle_login(token: str):
        app_context["set_admin_session"](await open_admin_session(app_context["api_client"], token))

    return PageWithLayout(
        theme_is_dark=theme_is_dark,
        on_theme_toggle=on_theme_toggle,
        children=AdminLogin(on_login=handle_login),
    )


@component
def AdminCatalogConsole(recurso: str, theme_is_dark: bool, on_theme_toggle):
    """Consola de administración de un catálogo: filtros, tabla, formulario y borrado."""
    app_context = use_app_context()
    api_client = app_context["admin_api_client"]
    notify = use_notify()
    catalog = use_catalog(recurso, api_client=api_client)
    ubicacion = FILTROS_UBICACION.get(recurso) or {}
    selects = use_cascading_selects(api_client=api_client, with_temas=ubicacion.get("with_temas", False))

    # La API de temas no busca por texto: se filtra en el navegador
    busca_en_api = recurso != "temas"
    search_input, set_search_input = use_state("")
    debounced_search = use_debounced_value(search_input, 300)
    sort_by, set_sort_by = use_state(None)
    sort_dir, set_sort_dir = use_state("asc")
    modal_item, set_modal_item = use_state(None)
    item_to_delete, set_item_to_delete = use_state(None)

    @use_effect(dependencies=[debounced_search])
    def sync_search_with_filters():
        if not busca_en_api or (debounced_search or None) == catalog["filters"].get("q"):
            return
        catalog["set_filters"](lambda prev: {**prev, "q": debounced_search or None})

    @use_effect(dependencies=[selects["dependencia_id"], selects["subdependencia_id"], selects["tema_id"]])
    def sync_ubicacion_with_filters():
        nuevos = ubicacion_filters(recurso, selects)
        if all(catalog["filters"].get(k) == v for k, v in nuevos.items()):
            return
        catalog["set_filters"](lambda prev: {**prev, **nuevos})

    def handle_active_change(value: str):
        catalog["set_filters"](lambda prev: {**prev, "activo": parse_tri_state(value)})

    def handle_sort(key: str):
        if sort_by == key:
            set_sort_dir("desc" if sort_dir == "asc" else "asc")
        else:
            set_sort_by(key)
            set_sort_dir("asc")

    def handle_modal_close(event=None):
        set_modal_item(None)

    async def handle_confirm_delete():
        if item_to_delete:
            await catalog["delete_item"](item_to_delete)
        set_item_to_delete(None)

    rows = catalog["items"]
    if not busca_en_api and debounced_search:
        rows = [r for r in rows if search_matches(debounced_search, r.get("nombre") or "")]
    if sort_by:
        rows = sort_data(rows, sort_by, sort_dir)

    activo = catalog["filters"].get("activo")
    nombre_borrado = ""
    if item_to_delete:
        nombre_borrado = item_to_delete.get("nombre") or item_to_delete.get("pregunta") or ""
    modal_key = str(modal_item.get("id") or "nuevo") if modal_item is not None else "cerrado"

    return PageWithLayout(
        theme_is_dark=theme_is_dark,
        on_theme_toggle=on_theme_toggle,
        children=html._(
            AdminSessionBar(
                session=app_context["admin_session"],
                on_logout=lambda: app_context["set_admin_session"](None),
            ),
            AdminControls(
                recurso=recurso,
                search_term=search_input,
                on_search_change=set_search_input,
                is_searching=debounced_search != search_input,
                active_filter="all" if activo is None else str(activo).lower(),
                on_active_change=handle_active_change,
                on_create=lambda: set_modal_item({}),
                selects=selects,
            ),
            CatalogTransferPanel(recurso=recurso, api_client=api_client, on_imported=catalog["refresh"], notify=notify)
            if recurso in EXPORTABLES
            else None,
            AdminCatalogTable(
                recurso=recurso,
                catalog_state=catalog,
                rows=rows,
                sort_by=sort_by,
                sort_dir=sort_dir,
                on_sort=handle_sort,
                on_edit=set_modal_item,
                on_toggle=catalog["toggle_active"],
                on_delete=set_item_to_delete,
            ),
            CatalogFormModal(
                recurso=recurso,
                singular=catalog["singular"],
                item=modal_item,
                on_close=handle_modal_close,
                on_save=catalog["save_item"],
                key=f"{recurso}-{modal_key}",
            )
            if modal_item is not None
            else None,
            ConfirmationModal(
                is_open=bool(item_to_delete),
                title="Confirmar eliminación",
                message=f"¿Seguro que desea eliminar '{nombre_borrado}'? Esta acción no se puede deshacer.",
                on_confirm=handle_confirm_delete,
                on_cancel=lambda: set_item_to_delete(None),
            ),
        ),
    )


@component
def NotFoundPage(theme_is_dark: bool, on_theme_toggle):
    return PageWithLayout(
        theme_is_dark=theme_is_dark,
        on_theme_toggle=on_theme_toggle,
        children=html.article(
            html.header(html.h1("Página no encontrada")),
            html.p("La página que buscas no existe."),
            html.a({"href": "/"}, "Volver a la búsqueda"),
        ),
    )


ADMIN_RECURSOS = ["dependencias", "subdependencias", "tramites", "opas", "faqs", "temas"]


# --- Estructura Principal de la App ---
@component
def App():
    """
    Componente raíz: provee el AppContext (cliente de la API, sesión de
    administración y token del asistente), las notificaciones y el enrutador. El asistente virtual queda
    fuera del enrutador para conservar la conversación al navegar.
    """
    notification_state = use_notification_state()
    is_dark, set_is_dark = use_state(False)
    chat_session_token, set_chat_session_token = use_state(None)
    admin_session, set_admin_session = use_state(None)
    script_to_run, set_script_to_run = use_state(html._())

    @use_effect(dependencies=[is_dark])
    def apply_theme():
        theme = "dark" if is_dark else "light"
        key = f"theme-script-{uuid.uuid4()}"
        js_code = f"document.documentElement.setAttribute('data-theme', '{theme}')"
        set_script_to_run(html.script({"key": key}, js_code))

    api_client = get_api_client()
    admin_token = admin_session["token"] if admin_session else None
    admin_api_client = use_memo(lambda: api_client.with_token(admin_token) if admin_token else None, [admin_token])

    app_context_value = {
        "api_client": api_client,
        "admin_session": admin_session,
        "set_admin_session": set_admin_session,
        "admin_api_client": admin_api_client,
        "chat_session_token": chat_session_token,
        "set_chat_session_token": set_chat_session_token,
    }
    tema = {"theme_is_dark": is_dark, "on_theme_toggle": set_is_dark}

    return AppContext(
        NotificationContext(
            html._(
                script_to_run,
                browser_router(
                    route("/", SearchPage(**tema)),
                    route("/buscar", SearchPage(**tema)),
                    route("/tramites", ProcedimientosPage(recurso="tramites", **tema)),
                    route("/opas", ProcedimientosPage(recurso="opas", **tema)),
                    route("/faqs", FaqsPage(**tema)),
                    route("/faqs/temas", FaqHierarchyPage(**tema)),
                    *[
                        route(f"/admin/{recurso}", AdminCatalogPage(recurso=recurso, **tema))
                        for recurso in ADMIN_RECURSOS
                    ],
                    route("*", NotFoundPage(**tema)),
                ),
                ToastContainer(),
                ChatWidget(),
            ),
            value=notification_state,
        ),
        value=app_context_value,
    )


# --- Elementos del <head> ---
head = html.head(
    html.title("Portal Ciudadano · Alcaldía de Chía"),
    html.meta({"charset": "utf-8"}),
    html.meta({"name": "viewport", "content": "width=device-width, initial-scale=1"}),
    html.link({"rel": "stylesheet", "href": "https://cdn.jsdelivr.net/npm/@picocss/pico@2/css/pico.min.css"}),
    html.link({"rel": "stylesheet", "href": "https://cdn.jsdelivr.net/npm/@picocss/pico@2.1.1/css/pico.colors.min.css"}),
    html.link({"rel": "stylesheet", "href": "https://fonts.googleapis.com/css2?family=Material+Symbols+Outlined"}),
    html.link({"rel": "stylesheet", "href": "/static/custom.css"}),
)
