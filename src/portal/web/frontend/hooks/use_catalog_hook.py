# portal/web/frontend/hooks/use_catalog_hook.py
"""
Hook genérico de listado y CRUD para los catálogos del portal
(dependencias, subdependencias, trámites, OPAs, temas y preguntas frecuentes).
"""

import asyncio
from typing import Any, Dict, Optional

from reactpy import use_callback, use_context, use_effect, use_memo, use_state

from ..api.api_client import APIClient, get_api_client
from ..shared.notifications import NotificationContext
from ..state.app_context import use_app_context
from ..utils import build_search_params
from .use_safe_state import use_is_mounted

PAGE_SIZE = 20

# Métodos del APIClient y textos de cada catálogo
CATALOGOS: Dict[str, Dict[str, Any]] = {
    "dependencias": {
        "listar": "get_dependencias",
        "crear": "create_dependencia",
        "actualizar": "update_dependencia",
        "eliminar": "delete_dependencia",
        "singular": "Dependencia",
        "paginado": True,
    },
    "subdependencias": {
        "listar": "get_subdependencias",
        "crear": "create_subdependencia",
        "actualizar": "update_subdependencia",
        "eliminar": "delete_subdependencia",
        "singular": "Subdependencia",
        "paginado": True,
    },
    "tramites": {
        "listar": "get_tramites",
        "crear": "create_tramite",
        "actualizar": "update_tramite",
        "eliminar": "delete_tramite",
        "singular": "Trámite",
        "paginado": True,
    },
    "opas": {
        "listar": "get_opas",
        "crear": "create_opa",
        "actualizar": "update_opa",
        "eliminar": "delete_opa",
        "singular": "OPA",
        "paginado": True,
    },
    "faqs": {
        "listar": "get_faqs",
        "crear": "create_faq",
        "actualizar": "update_faq",
        "eliminar": "delete_faq",
        "singular": "Pregunta frecuente",
        "paginado": True,
    },
    "temas": {
        "listar": "get_temas",
        "crear": "create_tema",
        "actualizar": "update_tema",
        "eliminar": "delete_tema",
        "singular": "Tema",
        "paginado": False,
    },
}


def use_catalog(
    recurso: str,
    api_client: Optional[APIClient] = None,
    initial_filters: Optional[Dict[str, Any]] = None,
    page_size: int = PAGE_SIZE,
) -> Dict[str, Any]:
    """
    Estado de una página de catálogo.

    Args:
        recurso: clave de CATALOGOS ("tramites", "opas", ...)
        api_client: cliente inyectado (tests); por defecto el del AppContext
        initial_filters: filtros que se envían a la API (q, activo, dependencia_id...)

    Returns:
        Dict con items, loading, error, filters/set_filters, current_page/set_current_page,
        total_count, total_pages, refresh, save_item, toggle_active y delete_item.
    """
    if recurso not in CATALOGOS:
        raise ValueError(f"Catálogo desconocido: {recurso}")
    config = CATALOGOS[recurso]

    app_context = use_app_context()
    notification_ctx = use_context(NotificationContext)
    show_notification = notification_ctx["show_notification"]
    api_client = api_client or app_context.get("api_client") or get_api_client()

    items, set_items = use_state([])
    loading, set_loading = use_state(True)
    error, set_error = use_state(None)
    filters, set_filters = use_state(initial_filters or {})
    current_page, set_current_page = use_state(1)
    total_count, set_total_count = use_state(0)

    is_mounted = use_is_mounted()

    @use_callback
    async def load_items():
        if not is_mounted.current:
            return
        set_loading(True)
        set_error(None)
        try:
            listar = getattr(api_client, config["listar"])
            if config["paginado"]:
                params = build_search_params({**filters, "page": current_page, "limit": page_size})
                data = await listar(params)
                nuevos = data.get("data", [])
                total = data.get("pagination", {}).get("total", len(nuevos))
            else:
                nuevos = await listar(build_search_params(filters))
                total = len(nuevos)
            if is_mounted.current:
                set_items(nuevos)
                set_total_count(total)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if is_mounted.current:
                set_error(str(e))
                show_notification(f"Error al cargar {recurso}: {e}", "error")
        finally:
            if is_mounted.current and not asyncio.current_task().cancelled():
                set_loading(False)

    @use_effect(dependencies=[filters, current_page])
    def data_lifecycle():
        task = asyncio.create_task(load_items())
        return lambda: task.cancel()

    def handle_set_filters(new_filters):
        set_current_page(1)
        set_filters(new_filters)

    async def save_item(item_id: Optional[str], data: Dict[str, Any]) -> bool:
        """Crea (item_id None) o actualiza. Devuelve True si se guardó."""
        try:
            if item_id:
                await getattr(api_client, config["actualizar"])(item_id, data)
                show_notification(f"{config['singular']} actualizado correctamente.", "success")
            else:
                await getattr(api_client, config["crear"])(data)
                show_notification(f"{config['singular']} creado correctamente.", "success")
            await load_items()
            return True
        except Exception as e:
            show_notification(f"No se pudo guardar: {getattr(e, 'message', e)}", "error")
            return False

    async def toggle_active(item: Dict[str, Any]):
        try:
            await getattr(api_client, config["actualizar"])(item["id"], {"activo": not item.get("activo")})
            await load_items()
        except Exception as e:
            show_notification(f"No se pudo cambiar el estado: {getattr(e, 'message', e)}", "error")

    async def delete_item(item: Dict[str, Any]) -> bool:
        try:
            await getattr(api_client, config["eliminar"])(item["id"])
            show_notification(f"{config['singular']} eliminado.", "success")
            await load_items()
            return True
        except Exception as e:
            show_notification(f"No se pudo eliminar: {getattr(e, 'message', e)}", "error")
            return False

    total_pages = use_memo(lambda: max(1, (total_count + page_size - 1) // page_size), [total_count, page_size])

    return {
        "items": items,
        "loading": loading,
        "error": error,
        "filters": filters,
        "set_filters": handle_set_filters,
        "current_page": current_page,
        "set_current_page": set_current_page,
        "total_count": total_count,
        "total_pages": total_pages,
        "page_size": page_size,
        "refresh": load_items,
        "save_item": save_item,
        "toggle_active": toggle_active,
        "delete_item": delete_item,
        "singular": config["singular"],
        "paginado": config["paginado"],
    }
