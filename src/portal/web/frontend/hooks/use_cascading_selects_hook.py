# portal/web/frontend/hooks/use_cascading_selects_hook.py
"""
Selects dependientes dependencia -> subdependencia (-> tema).

Un solo hook para todos los formularios y barras de filtros del portal.
Cada carga lleva un número de secuencia: si la selección cambió mientras la
petición estaba en vuelo, la respuesta se descarta.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from reactpy import use_effect, use_ref, use_state

from ..api.api_client import APIClient, get_api_client
from ..state.app_context import use_app_context
from .use_safe_state import use_is_mounted

logger = logging.getLogger(__name__)

NIVELES = ("dependencia", "subdependencia", "tema")


def next_selection(selection: Dict[str, Optional[str]], level: str, value: Optional[str]) -> Dict[str, Optional[str]]:
    """
    Selección resultante de elegir `value` en `level`. Los niveles inferiores
    se vacían; si el valor no cambia se devuelve la misma selección.
    """
    value = value or None
    if selection.get(f"{level}_id") == value:
        return selection
    nueva = dict(selection)
    nueva[f"{level}_id"] = value
    for inferior in NIVELES[NIVELES.index(level) + 1 :]:
        nueva[f"{inferior}_id"] = None
    return nueva


async def load_level(
    fetch: Callable[[str], Awaitable[List[Dict[str, Any]]]],
    parent_id: str,
    seq: int,
    seq_ref: Any,
    is_mounted: Any,
    set_items: Callable,
    set_loading: Callable,
    on_error: Optional[Callable[[Exception], None]] = None,
):
    """
    Carga las opciones de un nivel. Solo aplica el resultado si el componente
    sigue montado y `seq` es todavía la última carga pedida (`seq_ref.current`).
    """

    def vigente() -> bool:
        return is_mounted.current and seq == seq_ref.current

    set_loading(True)
    try:
        items = await fetch(parent_id)
        if vigente():
            set_items(items)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.warning(f"Error cargando opciones de {parent_id}: {e}")
        if vigente():
            set_items([])
            if on_error:
                on_error(e)
    finally:
        if vigente():
            set_loading(False)


def use_cascading_selects(
    api_client: Optional[APIClient] = None,
    initial_dependencia_id: Optional[str] = None,
    initial_subdependencia_id: Optional[str] = None,
    initial_tema_id: Optional[str] = None,
    with_temas: bool = False,
) -> Dict[str, Any]:
    """
    Returns:
        Dict con las keys:
            - dependencias, subdependencias, temas: opciones de cada nivel
            - dependencia_id, subdependencia_id, tema_id: selección actual
            - set_dependencia, set_subdependencia, set_tema
            - loading_dependencias, loading_subdependencias, loading_temas
            - error
            - reset
    """
    app_context = use_app_context()
    api_client = api_client or app_context.get("api_client") or get_api_client()

    dependencias, set_dependencias = use_state([])
    subdependencias, set_subdependencias = use_state([])
    temas, set_temas = use_state([])
    dependencia_id, set_dependencia_id = use_state(initial_dependencia_id)
    subdependencia_id, set_subdependencia_id = use_state(initial_subdependencia_id)
    tema_id, set_tema_id = use_state(initial_tema_id)
    loading_dependencias, set_loading_dependencias = use_state(True)
    loading_subdependencias, set_loading_subdependencias = use_state(False)
    loading_temas, set_loading_temas = use_state(False)
    error, set_error = use_state(None)

    is_mounted = use_is_mounted()
    sub_seq = use_ref(0)
    tema_seq = use_ref(0)

    # Primer nivel: una sola carga al montar
    @use_effect(dependencies=[])
    def load_dependencias():
        async def fetch():
            try:
                items = await api_client.get_dependencias_activas()
                if is_mounted.current:
                    set_dependencias(items)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(f"Error cargando dependencias: {e}")
                if is_mounted.current:
                    set_error(f"No se pudieron cargar las dependencias: {e}")
            finally:
                if is_mounted.current:
                    set_loading_dependencias(False)

        task = asyncio.create_task(fetch())
        return lambda: task.cancel()

    @use_effect(dependencies=[dependencia_id])
    def load_subdependencias():
        sub_seq.current += 1
        if not dependencia_id:
            set_subdependencias([])
            set_loading_subdependencias(False)
            return None

        task = asyncio.create_task(
            load_level(
                api_client.get_subdependencias_de,
                dependencia_id,
                sub_seq.current,
                sub_seq,
                is_mounted,
                set_subdependencias,
                set_loading_subdependencias,
                on_error=lambda e: set_error(f"No se pudieron cargar las subdependencias: {e}"),
            )
        )
        return lambda: task.cancel()

    @use_effect(dependencies=[subdependencia_id, with_temas])
    def load_temas():
        tema_seq.current += 1
        if not with_temas or not subdependencia_id:
            set_temas([])
            set_loading_temas(False)
            return None

        task = asyncio.create_task(
            load_level(
                api_client.get_temas_de,
                subdependencia_id,
                tema_seq.current,
                tema_seq,
                is_mounted,
                set_temas,
                set_loading_temas,
            )
        )
        return lambda: task.cancel()

    def _seleccion_actual() -> Dict[str, Optional[str]]:
        return {"dependencia_id": dependencia_id, "subdependencia_id": subdependencia_id, "tema_id": tema_id}

    def _aplicar(seleccion: Dict[str, Optional[str]]):
        set_dependencia_id(seleccion["dependencia_id"])
        set_subdependencia_id(seleccion["subdependencia_id"])
        set_tema_id(seleccion["tema_id"])

    def set_dependencia(value: Optional[str]):
        actual = _seleccion_actual()
        nueva = next_selection(actual, "dependencia", value)
        if nueva is actual:
            return
        set_error(None)
        _aplicar(nueva)
        set_subdependencias([])
        set_temas([])

    def set_subdependencia(value: Optional[str]):
        actual = _seleccion_actual()
        nueva = next_selection(actual, "subdependencia", value)
        if nueva is actual:
            return
        _aplicar(nueva)
        set_temas([])

    def set_tema(value: Optional[str]):
        set_tema_id(value or None)

    def reset(event=None):
        set_dependencia_id(None)
        set_subdependencia_id(None)
        set_tema_id(None)

    return {
        "dependencias": dependencias,
        "subdependencias": subdependencias,
        "temas": temas,
        "dependencia_id": dependencia_id,
        "subdependencia_id": subdependencia_id,
        "tema_id": tema_id,
        "set_dependencia": set_dependencia,
        "set_subdependencia": set_subdependencia,
        "set_tema": set_tema,
        "loading_dependencias": loading_dependencias,
        "loading_subdependencias": loading_subdependencias,
        "loading_temas": loading_temas,
        "error": error,
        "reset": reset,
    }
