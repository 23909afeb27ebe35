"""Tests para los endpoints HTTP del portal."""

from unittest.mock import AsyncMock, MagicMock, patch

import pyodbc
import pytest
from fastapi.testclient import TestClient

from portal.web.backend.rate_limiter import RateLimiter
from portal.web.main import create_app

DEP_ID = "6f1c1f8e-1d2b-4a3c-9e4f-0a1b2c3d4e5f"
TRAMITE_ID = "1a2b3c4d-0000-4000-8000-000000000001"
SUB_ID = "2b3c4d5e-0000-4000-8000-000000000002"

ADMIN = {"X-Authorization": "admin-token-test"}
FUNCIONARIO = {"X-Authorization": "funcionario-token-test"}


@pytest.fixture
def llm_client():
    client = MagicMock()
    client.close = AsyncMock()
    return client


@pytest.fixture
def app(mock_db_connector, llm_client):
    return create_app(mock_db_connector, llm_client=llm_client)


@pytest.fixture
def anon_client(app):
    """Cliente sin token de administración."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def client(app):
    """Cliente de prueba de FastAPI, con el ciclo de vida de la aplicación."""
    with TestClient(app) as test_client:
        test_client.headers.update(ADMIN)
        yield test_client


class TestCatalogEndpoints:
    def test_list_dependencias(self, client: TestClient, mock_db_connector, dependencia_row):
        mock_db_connector.ejecutar_consulta.side_effect = [[{"total_count": 1}], [dependencia_row]]

        response = client.get("/api/dependencias")

        assert response.status_code == 200
        data = response.json()
        assert data["data"][0]["nombre"] == "Secretaría de Hacienda"
        assert data["pagination"] == {"page": 1, "limit": 50, "total": 1, "totalPages": 1}

    def test_dependencias_activas_no_se_confunde_con_un_id(self, client: TestClient, mock_db_connector):
        mock_db_connector.ejecutar_consulta.return_value = [
            {"id": DEP_ID, "codigo": "010", "sigla": "SH", "nombre": "Secretaría de Hacienda"}
        ]

        response = client.get("/api/dependencias/activas")

        assert response.status_code == 200
        assert response.json()[0]["sigla"] == "SH"

    def test_get_dependencia_not_found(self, client: TestClient, mock_db_connector):
        mock_db_connector.ejecutar_consulta.return_value = []

        response = client.get(f"/api/dependencias/{DEP_ID}")

        assert response.status_code == 404
        assert "No se encontró" in response.json()["detail"]

    def test_get_dependencia_id_invalido(self, client: TestClient):
        response = client.get("/api/dependencias/no-es-un-uuid")
        assert response.status_code == 422

    def test_create_dependencia(self, client: TestClient, mock_db_connector, dependencia_row):
        mock_db_connector.ejecutar_consulta.return_value = [dependencia_row]

        response = client.post("/api/dependencias", json={"codigo": " 010 ", "nombre": "Secretaría de Hacienda"})

        assert response.status_code == 201
        assert response.json()["data"]["codigo"] == "010"
        params = mock_db_connector.ejecutar_consulta.call_args[0][1]
        assert "010" in params

    def test_create_dependencia_duplicada(self, client: TestClient, mock_db_connector):
        mock_db_connector.ejecutar_consulta.side_effect = pyodbc.Error(
            "23000", "Violation of UNIQUE KEY constraint 'UQ_Dependencias_codigo'"
        )

        response = client.post("/api/dependencias", json={"codigo": "010", "nombre": "Hacienda"})

        assert response.status_code == 409
        assert "ya existe" in response.json()["detail"]

    def test_delete_dependencia_con_subdependencias(self, client: TestClient, mock_db_connector):
        mock_db_connector.ejecutar_consulta.return_value = [{"total": 2}]

        response = client.delete(f"/api/dependencias/{DEP_ID}")

        assert response.status_code == 409
        assert "2 subdependencias" in response.json()["detail"]

    def test_delete_dependencia(self, client: TestClient, mock_db_connector):
        mock_db_connector.ejecutar_consulta.side_effect = [[{"total": 0}], 1]

        response = client.delete(f"/api/dependencias/{DEP_ID}")

        assert response.status_code == 204

    def test_create_tramite_descripcion_corta(self, client: TestClient):
        response = client.post(
            "/api/tramites",
            json={"codigo_unico": "T-1", "nombre": "Predial", "descripcion": "Muy corta", "subdependencia_id": SUB_ID},
        )
        assert response.status_code == 422

    def test_create_opa_activa_sin_requisitos(self, client: TestClient):
        response = client.post(
            "/api/opas",
            json={"codigo_opa": "OPA-1", "nombre": "Certificado", "subdependencia_id": SUB_ID, "activo": True},
        )
        assert response.status_code == 422

    def test_update_tramite_sin_campos(self, client: TestClient):
        response = client.put(f"/api/tramites/{TRAMITE_ID}", json={})

        assert response.status_code == 400
        assert "No se enviaron campos" in response.json()["detail"]

    def test_update_tramite_not_found(self, client: TestClient, mock_db_connector):
        mock_db_connector.ejecutar_consulta.return_value = []

        response = client.put(f"/api/tramites/{TRAMITE_ID}", json={"activo": False})

        assert response.status_code == 404

    def test_list_temas(self, client: TestClient, mock_db_connector):
        mock_db_connector.ejecutar_consulta.return_value = [
            {"id": "t1", "nombre": "Impuestos", "subdependencia_id": SUB_ID, "orden": 1, "activo": True}
        ]

        response = client.get("/api/temas", params={"subdependencia_id": SUB_ID})

        assert response.status_code == 200
        assert response.json()[0]["nombre"] == "Impuestos"

    def test_faq_hierarchy(self, client: TestClient, mock_db_connector, faq_row):
        mock_db_connector.ejecutar_consulta.return_value = [faq_row]

        response = client.get("/api/faqs/jerarquia")

        assert response.status_code == 200
        data = response.json()
        assert data["total_faqs"] == 1
        tema = data["dependencias"][0]["subdependencias"][0]["temas"][0]
        assert tema["nombre"] == "Impuestos"
        assert tema["faqs"][0]["palabras_clave"] == ["predial", "pago"]


class TestSearchEndpoints:
    def test_search_tipo_invalido(self, client: TestClient):
        response = client.get("/api/search", params={"tipo": "otro"})
        assert response.status_code == 422

    def test_search_sin_resultados(self, client: TestClient, mock_db_connector):
        mock_db_connector.ejecutar_consulta.return_value = []

        response = client.get("/api/search", params={"query": "predial"})

        assert response.status_code == 200
        data = response.json()
        assert data["data"] == []
        assert data["pagination"]["total"] == 0

    def test_suggestions_consulta_corta(self, client: TestClient):
        response = client.get("/api/search/suggestions", params={"query": "a"})

        assert response.status_code == 200
        assert response.json() == {"suggestions": []}


class TestSystemEndpoints:
    def test_health(self, client: TestClient):
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0-test"
        assert data["features"]["ai_chatbot"] is True

    def test_metrics(self, client: TestClient, mock_db_connector):
        mock_db_connector.ejecutar_consulta.return_value = [{"total": 3}]

        response = client.get("/api/metrics")

        assert response.status_code == 200
        data = response.json()
        assert data["tramites"] == 3
        assert data["usuarios"] == 0
        assert "lastUpdated" in data

    def test_shutdown_cierra_recursos(self, app, mock_db_connector, llm_client):
        with TestClient(app):
            pass

        llm_client.close.assert_awaited_once()
        mock_db_connector.cerrar_conexiones_pool.assert_called_once()


class TestChatEndpoints:
    def test_chat_mensaje_vacio(self, client: TestClient):
        response = client.post("/api/chat", json={"message": "   "})

        assert response.status_code == 400
        assert "vacío" in response.json()["detail"]

    def test_chat_mensaje_no_texto(self, client: TestClient):
        response = client.post("/api/chat", json={"message": 42})
        assert response.status_code == 400

    def test_chat_rate_limit(self, app, client: TestClient):
        app.state.rate_limiter = RateLimiter(max_requests=1, window_seconds=60)
        respuesta = {
            "response": "Hola",
            "confidence": 0.9,
            "sources": [],
            "sessionToken": "tok",
            "escalateToHuman": False,
            "messageId": None,
        }

        with patch("portal.web.backend.chat_service.procesar_mensaje", new=AsyncMock(return_value=respuesta)):
            primera = client.post("/api/chat", json={"message": "hola", "sessionToken": "tok"})
            segunda = client.post("/api/chat", json={"message": "hola", "sessionToken": "tok"})

        assert primera.status_code == 200
        assert primera.json() == {"success": True, "data": respuesta}
        assert segunda.status_code == 429
        assert int(segunda.headers["Retry-After"]) > 0

    def test_chat_history_requiere_token(self, client: TestClient):
        response = client.get("/api/chat")
        assert response.status_code == 400

    def test_chat_history_sesion_vencida(self, client: TestClient, mock_db_connector):
        mock_db_connector.ejecutar_consulta.return_value = []

        response = client.get("/api/chat", params={"sessionToken": "vencido"})

        assert response.status_code == 404

    def test_feedback_tipo_invalido(self, client: TestClient):
        response = client.post("/api/chat/feedback", json={"messageId": TRAMITE_ID, "feedbackType": "meh"})
        assert response.status_code == 400

    def test_feedback_stats_requiere_sesion(self, client: TestClient):
        response = client.get("/api/chat/feedback")
        assert response.status_code == 400

    def test_knowledge_sync_en_curso(self, app, client: TestClient):
        app.state.sync_status["conocimiento"] = "running"

        response = client.post("/api/chat/knowledge/sync")

        assert response.status_code == 409

    def test_knowledge_sync(self, app, client: TestClient):
        resumen = {"tramite": 1, "opa": 0, "faq": 0, "dependencia": 0, "total": 1}
        with patch("portal.web.backend.knowledge.sincronizar_conocimiento", return_value=resumen):
            response = client.post("/api/chat/knowledge/sync")

        assert response.status_code == 202
        assert app.state.sync_status == {"conocimiento": "idle", "ultimo_resultado": resumen}


class TestAdminAccess:
    def test_escritura_sin_token(self, anon_client: TestClient, mock_db_connector):
        response = anon_client.post("/api/dependencias", json={"codigo": "010", "nombre": "Hacienda"})

        assert response.status_code == 401
        mock_db_connector.ejecutar_consulta.assert_not_called()

    def test_token_incorrecto(self, anon_client: TestClient):
        response = anon_client.delete(f"/api/tramites/{TRAMITE_ID}", headers={"X-Authorization": "otro"})
        assert response.status_code == 401

    def test_lectura_publica_sin_token(self, anon_client: TestClient, mock_db_connector):
        mock_db_connector.ejecutar_consulta.side_effect = [[{"total_count": 0}], []]

        response = anon_client.get("/api/tramites")

        assert response.status_code == 200

    def test_funcionario_gestiona_catalogos(self, anon_client: TestClient, mock_db_connector, dependencia_row):
        mock_db_connector.ejecutar_consulta.return_value = [dependencia_row]

        response = anon_client.post(
            "/api/dependencias", json={"codigo": "010", "nombre": "Secretaría de Hacienda"}, headers=FUNCIONARIO
        )

        assert response.status_code == 201

    def test_funcionario_no_purga_cache(self, anon_client: TestClient):
        response = anon_client.delete("/api/cache", headers=FUNCIONARIO)

        assert response.status_code == 403
        assert response.json()["detail"] == "No tiene permisos para esta operación."

    def test_funcionario_no_sincroniza_conocimiento(self, anon_client: TestClient):
        with patch("portal.web.backend.knowledge.sincronizar_conocimiento") as sincronizar:
            response = anon_client.post("/api/chat/knowledge/sync", headers=FUNCIONARIO)

        assert response.status_code == 403
        sincronizar.assert_not_called()

    def test_admin_purga_cache(self, client: TestClient):
        response = client.delete("/api/cache")
        assert response.status_code == 200

    def test_sesion_devuelve_el_rol(self, anon_client: TestClient):
        assert anon_client.get("/api/auth/sesion", headers=FUNCIONARIO).json() == {"rol": "funcionario"}
        assert anon_client.get("/api/auth/sesion", headers=ADMIN).json() == {"rol": "admin"}
        assert anon_client.get("/api/auth/sesion").status_code == 401

    def test_sin_tokens_configurados(self, client: TestClient):
        sin_tokens = {"admin_token": None, "funcionario_token": None}
        with patch("portal.common.config_manager.ConfigManager.get_auth_config", return_value=sin_tokens):
            response = client.delete(f"/api/tramites/{TRAMITE_ID}")

        assert response.status_code == 500


class TestExportImportEndpoints:
    def test_exportar_tramites_csv(self, client: TestClient, mock_db_connector, tramite_row):
        mock_db_connector.ejecutar_consulta.side_effect = [[{"total_count": 1}], [tramite_row]]

        response = client.get("/api/tramites/exportar", params={"formato": "csv"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert 'filename="tramites_' in response.headers["content-disposition"]
        encabezado, fila = response.text.strip().splitlines()
        assert encabezado.startswith("id,codigo_unico,nombre")
        assert "Cédula|Recibo anterior" in fila
        assert ",true," in fila

    def test_exportar_faqs_json(self, client: TestClient, mock_db_connector, faq_row):
        mock_db_connector.ejecutar_consulta.side_effect = [[{"total_count": 1}], [faq_row]]

        response = client.get("/api/faqs/exportar", params={"formato": "json"})

        assert response.status_code == 200
        assert response.json()[0]["palabras_clave"] == ["predial", "pago"]

    def test_exportar_requiere_token(self, anon_client: TestClient):
        assert anon_client.get("/api/opas/exportar").status_code == 401

    def test_exportar_formato_no_soportado(self, client: TestClient):
        assert client.get("/api/tramites/exportar", params={"formato": "xlsx"}).status_code == 422

    def test_importar_csv_crea_tramite(self, client: TestClient, mock_db_connector, tramite_row):
        # Búsqueda por código sin resultados y luego el INSERT
        mock_db_connector.ejecutar_consulta.side_effect = [[], [tramite_row]]
        contenido = (
            "codigo_unico,nombre,subdependencia_id,requisitos,tiene_pago\n"
            f"T-001,Predial,{SUB_ID},Cédula|Recibo,si\n"
        )

        response = client.post("/api/tramites/importar", json={"contenido": contenido, "formato": "csv"})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Importación completada: 1 creados, 0 actualizados, 0 omitidos",
            "created": 1,
            "updated": 0,
            "skipped": 0,
            "errors": [],
        }
        insert = mock_db_connector.ejecutar_consulta.call_args_list[1]
        assert "INSERT INTO dbo.Tramites" in insert.args[0]
        assert '["Cédula", "Recibo"]' in insert.args[1]

    def test_importar_json_invalido(self, client: TestClient):
        response = client.post("/api/faqs/importar", json={"contenido": "{no es json", "formato": "json"})

        assert response.status_code == 400
        assert "JSON inválido" in response.json()["detail"]

    def test_importar_catalogo_no_exportable(self, client: TestClient):
        response = client.post("/api/dependencias/importar", json={"contenido": "codigo\n010"})
        assert response.status_code == 422
