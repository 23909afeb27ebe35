# tests/frontend/test_api_client.py
"""
Tests del cliente HTTP del frontend contra un transporte simulado de httpx.
"""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from portal.web.frontend.api import api_client as api_module
from portal.web.frontend.api.api_client import APIClient, get_api_client
from portal.web.frontend.utils.exceptions import APIException, ValidationException

BASE_URL = "http://portal.test"


def _cliente(handler) -> APIClient:
    client = APIClient(base_url=BASE_URL)
    client._client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return client


@pytest.mark.asyncio
class TestRequest:
    async def test_get_con_parametros(self):
        peticiones = []

        def handler(request: httpx.Request):
            peticiones.append(request)
            return httpx.Response(200, json={"data": [], "pagination": {"total": 0}})

        client = _cliente(handler)
        respuesta = await client.get_tramites({"q": "predial", "page": 2})

        assert respuesta["pagination"]["total"] == 0
        assert peticiones[0].url.path == "/api/tramites"
        assert peticiones[0].url.params["q"] == "predial"
        assert peticiones[0].url.params["page"] == "2"

    async def test_error_con_detalle(self):
        client = _cliente(lambda request: httpx.Response(404, json={"detail": "No se encontró el trámite"}))

        with pytest.raises(APIException) as exc_info:
            await client.get_tramite("t1")

        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "No se encontró el trámite"

    async def test_error_sin_json(self):
        client = _cliente(lambda request: httpx.Response(502, text="Bad Gateway"))

        with pytest.raises(APIException, match="Bad Gateway"):
            await client.get_metrics()

    async def test_delete_sin_contenido(self):
        client = _cliente(lambda request: httpx.Response(204))
        assert await client.delete_faq("f1") is None

    async def test_reintenta_errores_de_conexion(self):
        intentos = []

        def handler(request: httpx.Request):
            intentos.append(request)
            raise httpx.ConnectError("conexión rechazada", request=request)

        client = _cliente(handler)
        with patch.object(api_module.asyncio, "sleep", new=AsyncMock()) as sleep:
            with pytest.raises(APIException, match="Error de conexión"):
                await client.get_health()

        assert len(intentos) == 3
        assert [c.args[0] for c in sleep.await_args_list] == [1, 2]


@pytest.mark.asyncio
class TestOperaciones:
    async def test_create_valida_antes_de_enviar(self):
        handler_llamado = []
        client = _cliente(lambda request: handler_llamado.append(request) or httpx.Response(201, json={}))

        with pytest.raises(ValidationException) as exc_info:
            await client.create_tramite({"codigo_unico": "T-1", "nombre": ""})

        assert "El campo 'Nombre' es requerido." in exc_info.value.errors
        assert handler_llamado == []

    async def test_update_opa_parcial_no_se_valida_localmente(self):
        client = _cliente(lambda request: httpx.Response(200, json={"id": "o1", "activo": False}))
        assert (await client.update_opa("o1", {"activo": False}))["activo"] is False

    async def test_send_chat_message(self):
        cuerpos = []

        def handler(request: httpx.Request):
            cuerpos.append(json.loads(request.content))
            return httpx.Response(200, json={"success": True, "data": {"response": "Hola", "sessionToken": "tok"}})

        client = _cliente(handler)
        data = await client.send_chat_message("hola", session_token="tok")

        assert data == {"response": "Hola", "sessionToken": "tok"}
        assert cuerpos == [{"message": "hola", "channel": "web", "sessionToken": "tok"}]

    async def test_chat_no_reintenta(self):
        intentos = []

        def handler(request: httpx.Request):
            intentos.append(request)
            raise httpx.ReadTimeout("timeout", request=request)

        client = _cliente(handler)
        with pytest.raises(APIException):
            await client.send_chat_message("hola")

        assert len(intentos) == 1

    async def test_sugerencias(self):
        def handler(request: httpx.Request):
            assert request.url.params["query"] == "pred"
            return httpx.Response(200, json={"suggestions": ["Impuesto predial unificado"]})

        client = _cliente(handler)
        assert await client.get_search_suggestions("pred") == ["Impuesto predial unificado"]

    async def test_close(self):
        client = _cliente(lambda request: httpx.Response(200, json={}))
        await client.close()
        assert client._client is None


def test_get_api_client_es_compartido(monkeypatch):
    monkeypatch.setattr(api_module, "_api_client_instance", None)

    primero = get_api_client()

    assert primero is get_api_client()
    assert primero.base_url == "http://127.0.0.1:8000"
