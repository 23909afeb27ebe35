# portal/web/frontend/hooks/use_search_hook.py
"""
Hook de la búsqueda pública unificada (trámites, OPAs y preguntas frecuentes).
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from reactpy import use_callback, use_effect, use_state

from ..api.api_client import APIClient, get_api_client
from ..state.app_context import use_app_context
from ..utils import build_search_params
from .use_debounced_value_hook import use_debounced_value
from .use_safe_state import use_is_mounted

logger = logging.getLogger(__name__)

PAGE_SIZE = 10
DEBOUNCE_MS = 300
MIN_CARACTERES_SUGERENCIAS = 2
INITIAL_FILTERS = {"tipo": None, "dependencia": None, "subdependencia_id": None, "tipo_pago": None}
EMPTY_PAGINATION = {"page": 1, "limit": PAGE_SIZE, "total": 0, "totalPages": 0}


def use_search(api_client: Optional[APIClient] = None, initial_query: str = "") -> Dict[str, Any]:
    """
    Estado de la página de búsqueda.

    Returns:
        Dict con las keys:
            - query / set_query: texto que escribe el ciudadano
            - debounced_query: el texto tras 300 ms sin cambios
            - filters / set_filter: tipo, dependencia, subdependencia_id y tipo_pago
            - results, pagination, loading, error
            - suggestions: sugerencias de nombres (desde 2 caracteres)
            - set_page, clear_filters, refresh
    """
    app_context = use_app_context()
    api_client = api_client or app_context.get("api_client") or get_api_client()

    query, set_query = use_state(initial_query)
    debounced_query = use_debounced_value(query, DEBOUNCE_MS)
    filters, set_filters = use_state(INITIAL_FILTERS)
    page, set_page = use_state(1)
    results, set_results = use_state([])
    pagination, set_pagination = use_state(EMPTY_PAGINATION)
    suggestions, set_suggestions = use_state([])
    loading, set_loading = use_state(False)
    error, set_error = use_state(None)

    is_mounted = use_is_mounted()

    @use_callback
    async def load_results():
        set_loading(True)
        set_error(None)
        try:
            params = build_search_params({"query": debounced_query, **filters, "page": page, "limit": PAGE_SIZE})
            data = await api_client.search(params)
            if is_mounted.current:
                set_results(data.get("data", []))
                set_pagination(data.get("pagination", EMPTY_PAGINATION))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if is_mounted.current:
                set_error(str(e))
                set_results([])
                set_pagination(EMPTY_PAGINATION)
        finally:
            if is_mounted.current and not asyncio.current_task().cancelled():
                set_loading(False)

    @use_effect(dependencies=[debounced_query, filters, page])
    def search_lifecycle():
        task = asyncio.create_task(load_results())
        return lambda: task.cancel()

    @use_effect(dependencies=[debounced_query])
    def load_suggestions():
        texto = (debounced_query or "").strip()
        if len(texto) < MIN_CARACTERES_SUGERENCIAS:
            set_suggestions([])
            return None

        async def fetch():
            try:
                items = await api_client.get_search_suggestions(texto)
                if is_mounted.current:
                    set_suggestions(items)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.debug(f"No se pudieron cargar sugerencias: {e}")

        task = asyncio.create_task(fetch())
        return lambda: task.cancel()

    def handle_set_query(value: str):
        set_page(1)
        set_query(value)

    def set_filter(name: str, value: Any):
        set_page(1)
        set_filters(lambda prev: {**prev, name: value or None})

    def clear_filters(event=None):
        set_page(1)
        set_filters(INITIAL_FILTERS)

    return {
        "query": query,
        "set_query": handle_set_query,
        "debounced_query": debounced_query,
        "is_typing": query != debounced_query,
        "filters": filters,
        "set_filter": set_filter,
        "clear_filters": clear_filters,
        "results": results,
        "pagination": pagination,
        "suggestions": suggestions,
        "loading": loading,
        "error": error,
        "page": page,
        "set_page": set_page,
        "refresh": load_results,
    }
