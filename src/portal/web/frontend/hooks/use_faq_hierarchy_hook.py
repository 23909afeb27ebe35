# portal/web/frontend/hooks/use_faq_hierarchy_hook.py
import asyncio
from typing import Any, Dict, List, Optional

from reactpy import use_callback, use_effect, use_state

from ..api.api_client import APIClient, get_api_client
from ..state.app_context import use_app_context
from .use_safe_state import use_is_mounted


def find_node(nodes: List[Dict[str, Any]], node_id: Optional[str]) -> Optional[Dict[str, Any]]:
    if not node_id:
        return None
    return next((n for n in nodes if n["id"] == node_id), None)


def use_faq_hierarchy(api_client: Optional[APIClient] = None) -> Dict[str, Any]:
    """
    Navegación por niveles de la jerarquía de preguntas frecuentes
    (dependencia -> subdependencia -> tema -> preguntas).
    """
    app_context = use_app_context()
    api_client = api_client or app_context.get("api_client") or get_api_client()

    hierarchy, set_hierarchy = use_state({"dependencias": [], "total_faqs": 0})
    loading, set_loading = use_state(True)
    error, set_error = use_state(None)
    dependencia_id, set_dependencia_id = use_state(None)
    subdependencia_id, set_subdependencia_id = use_state(None)
    tema_id, set_tema_id = use_state(None)

    is_mounted = use_is_mounted()

    @use_callback
    async def load_hierarchy():
        set_loading(True)
        set_error(None)
        try:
            data = await api_client.get_faq_hierarchy()
            if is_mounted.current:
                set_hierarchy(data or {"dependencias": [], "total_faqs": 0})
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if is_mounted.current:
                set_error(str(e))
        finally:
            if is_mounted.current and not asyncio.current_task().cancelled():
                set_loading(False)

    @use_effect(dependencies=[])
    def initial_load():
        task = asyncio.create_task(load_hierarchy())
        return lambda: task.cancel()

    dependencia = find_node(hierarchy["dependencias"], dependencia_id)
    subdependencia = find_node(dependencia["subdependencias"], subdependencia_id) if dependencia else None
    tema = find_node(subdependencia["temas"], tema_id) if subdependencia else None

    def select_dependencia(node_id: Optional[str]):
        set_dependencia_id(node_id)
        set_subdependencia_id(None)
        set_tema_id(None)

    def select_subdependencia(node_id: Optional[str]):
        set_subdependencia_id(node_id)
        set_tema_id(None)

    def go_to_level(level: int):
        """0 = raíz, 1 = dependencia, 2 = subdependencia."""
        if level <= 0:
            select_dependencia(None)
        elif level == 1:
            select_subdependencia(None)
        elif level == 2:
            set_tema_id(None)

    return {
        "hierarchy": hierarchy,
        "loading": loading,
        "error": error,
        "dependencia": dependencia,
        "subdependencia": subdependencia,
        "tema": tema,
        "select_dependencia": select_dependencia,
        "select_subdependencia": select_subdependencia,
        "select_tema": set_tema_id,
        "go_to_level": go_to_level,
        "refresh": load_hierarchy,
    }
