# tests/frontend/test_cascading_selects.py
"""
Tests para la lógica de los selects dependientes dependencia -> subdependencia -> tema.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from portal.web.frontend.hooks.use_cascading_selects_hook import load_level, next_selection

SELECCION = {"dependencia_id": "d1", "subdependencia_id": "s1", "tema_id": "t1"}


class TestNextSelection:
    def test_cambiar_dependencia_vacia_los_niveles_inferiores(self):
        assert next_selection(SELECCION, "dependencia", "d2") == {
            "dependencia_id": "d2",
            "subdependencia_id": None,
            "tema_id": None,
        }

    def test_cambiar_subdependencia_vacia_el_tema(self):
        nueva = next_selection(SELECCION, "subdependencia", "s2")

        assert nueva == {"dependencia_id": "d1", "subdependencia_id": "s2", "tema_id": None}
        assert SELECCION["subdependencia_id"] == "s1"

    def test_misma_seleccion_no_cambia_nada(self):
        assert next_selection(SELECCION, "dependencia", "d1") is SELECCION

    def test_cadena_vacia_es_sin_seleccion(self):
        assert next_selection(SELECCION, "tema", "")["tema_id"] is None


@pytest.mark.asyncio
class TestLoadLevel:
    async def test_respuesta_vieja_no_pisa_la_seleccion_nueva(self):
        loop = asyncio.get_running_loop()
        pendientes = {"d1": loop.create_future(), "d2": loop.create_future()}

        async def fetch(dependencia_id):
            return await pendientes[dependencia_id]

        seq_ref = SimpleNamespace(current=1)
        montado = SimpleNamespace(current=True)
        set_items, set_loading = MagicMock(), MagicMock()

        primera = asyncio.create_task(load_level(fetch, "d1", 1, seq_ref, montado, set_items, set_loading))
        await asyncio.sleep(0)
        # El usuario elige otra dependencia antes de que llegue la primera respuesta
        seq_ref.current = 2
        segunda = asyncio.create_task(load_level(fetch, "d2", 2, seq_ref, montado, set_items, set_loading))
        await asyncio.sleep(0)

        pendientes["d2"].set_result([{"id": "s-nueva"}])
        await segunda
        pendientes["d1"].set_result([{"id": "s-vieja"}])
        await primera

        set_items.assert_called_once_with([{"id": "s-nueva"}])
        assert set_loading.call_args_list[-1].args == (False,)

    async def test_no_actualiza_si_el_componente_se_desmonto(self):
        async def fetch(dependencia_id):
            return [{"id": "s1"}]

        set_items, set_loading = MagicMock(), MagicMock()

        await load_level(
            fetch, "d1", 1, SimpleNamespace(current=1), SimpleNamespace(current=False), set_items, set_loading
        )

        set_items.assert_not_called()

    async def test_error_vacia_opciones_y_avisa(self, mock_api_client):
        mock_api_client.get_subdependencias_de.side_effect = RuntimeError("timeout")
        set_items, set_loading, on_error = MagicMock(), MagicMock(), MagicMock()
        seq_ref = SimpleNamespace(current=1)

        await load_level(
            mock_api_client.get_subdependencias_de,
            "d1",
            1,
            seq_ref,
            SimpleNamespace(current=True),
            set_items,
            set_loading,
            on_error=on_error,
        )

        set_items.assert_called_once_with([])
        assert str(on_error.call_args.args[0]) == "timeout"
        set_loading.assert_called_with(False)

    async def test_cancelacion_se_propaga(self):
        async def fetch(dependencia_id):
            await asyncio.sleep(10)

        set_items = MagicMock()
        tarea = asyncio.create_task(
            load_level(
                fetch, "d1", 1, SimpleNamespace(current=1), SimpleNamespace(current=True), set_items, MagicMock()
            )
        )
        await asyncio.sleep(0)
        tarea.cancel()

        with pytest.raises(asyncio.CancelledError):
            await tarea
        set_items.assert_not_called()
