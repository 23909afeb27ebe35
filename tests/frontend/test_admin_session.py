# tests/frontend/test_admin_session.py
"""
Tests del acceso al panel de administración y de la exportación desde el frontend.
"""

import json
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import unquote

import httpx
import pytest

from portal.web.frontend.api.api_client import APIClient
from portal.web.frontend.features.components.admin_session import (
    export_data_url,
    export_filename,
    login_error_message,
    open_admin_session,
)
from portal.web.frontend.utils.exceptions import APIException

BASE_URL = "http://portal.test"


def _cliente(handler) -> APIClient:
    client = APIClient(base_url=BASE_URL)
    client._client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return client


@pytest.mark.asyncio
class TestClienteConToken:
    async def test_envia_el_token_solo_en_la_copia(self):
        peticiones = []

        def handler(request: httpx.Request):
            peticiones.append(request)
            return httpx.Response(200, json={"rol": "admin"})

        publico = _cliente(handler)
        admin = publico.with_token("secreto")

        await admin.get_admin_session()
        await publico.get_health()

        assert peticiones[0].headers["X-Authorization"] == "secreto"
        assert "X-Authorization" not in peticiones[1].headers
        assert publico.auth_token is None
        assert admin._client is publico._client

    async def test_exportar_devuelve_el_texto(self):
        peticiones = []

        def handler(request: httpx.Request):
            peticiones.append(request)
            return httpx.Response(200, text="id,nombre\n1,Predial\n", headers={"Content-Type": "text/csv"})

        contenido = await _cliente(handler).with_token("t").export_catalog("tramites", "csv")

        assert contenido == "id,nombre\n1,Predial\n"
        assert peticiones[0].url.path == "/api/tramites/exportar"
        assert peticiones[0].url.params["formato"] == "csv"

    async def test_exportar_json_no_se_decodifica(self):
        client = _cliente(lambda request: httpx.Response(200, json=[{"id": "1"}]))

        contenido = await client.export_catalog("faqs", "json")

        assert json.loads(contenido) == [{"id": "1"}]

    async def test_importar_envia_contenido_y_estrategia(self):
        peticiones = []

        def handler(request: httpx.Request):
            peticiones.append(request)
            return httpx.Response(200, json={"success": True, "created": 1})

        await _cliente(handler).with_token("t").import_catalog("opas", "codigo_opa\nO-1", "csv", "skip")

        assert peticiones[0].method == "POST"
        assert json.loads(peticiones[0].content) == {
            "contenido": "codigo_opa\nO-1",
            "formato": "csv",
            "estrategia": "skip",
        }

    async def test_token_rechazado(self):
        client = _cliente(lambda request: httpx.Response(401, json={"detail": "X-Authorization header inválido."}))

        with pytest.raises(APIException) as exc_info:
            await client.with_token("malo").get_admin_session()

        assert exc_info.value.status_code == 401


@pytest.mark.asyncio
class TestAbrirSesion:
    async def test_valida_el_token_recortado(self):
        autenticado = MagicMock()
        autenticado.get_admin_session = AsyncMock(return_value={"rol": "funcionario"})
        api_client = MagicMock()
        api_client.with_token.return_value = autenticado

        sesion = await open_admin_session(api_client, "  secreto  ")

        assert sesion == {"token": "secreto", "rol": "funcionario"}
        api_client.with_token.assert_called_once_with("secreto")

    async def test_token_vacio(self):
        api_client = MagicMock()

        with pytest.raises(ValueError, match="Ingrese el token"):
            await open_admin_session(api_client, "   ")

        api_client.with_token.assert_not_called()


class TestExportHelpers:
    def test_mensaje_de_token_invalido(self):
        assert login_error_message(APIException("no", status_code=403)) == (
            "Token inválido o sin permisos de administración."
        )
        assert "conexión" in login_error_message(APIException("Error de conexión"))

    def test_nombre_del_archivo(self):
        assert export_filename("faqs", "json", datetime(2024, 3, 1, 9, 5, 7)) == "faqs_20240301_090507.json"

    def test_data_url_escapa_el_contenido(self):
        url = export_data_url("id,nombre\n1,Cédula & recibo", "csv")

        prefijo, datos = url.split(",", 1)
        assert prefijo == "data:text/csv;charset=utf-8"
        assert "\n" not in datos and "&" not in datos
        assert unquote(datos) == "id,nombre\n1,Cédula & recibo"
