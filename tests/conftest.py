from unittest.mock import MagicMock, patch

import pytest

# Esta importación es necesaria para que la fixture de configuración funcione.
from portal.common.config_loader import ConfigLoader
from portal.web.backend import cache as cache_module


@pytest.fixture(scope="session", autouse=True)
def setup_and_mock_config(pytestconfig):
    """
    Se ejecuta una sola vez por sesión para asegurar que la configuración
    esté 'mockeada' antes de que cualquier prueba se ejecute.
    Esto previene que los tests lean el .env del desarrollador.
    """
    ConfigLoader.initialize_service("web")

    mock_settings = {
        "SQL_PORTAL_HOST": "test-server",
        "SQL_PORTAL_DB_NAME": "test-db",
        "SQL_PORTAL_UID": "test-user",
        "SQL_PORTAL_PWD": "test-password",
        "LLM_API_KEY": "test-key",
        "APP_VERSION": "1.0.0-test",
        "APP_ENVIRONMENT": "test",
        "PORTAL_ADMIN_TOKEN": "admin-token-test",
        "PORTAL_FUNCIONARIO_TOKEN": "funcionario-token-test",
    }

    def mock_get(key, default=None, warning_msg=None):
        return mock_settings.get(key, default)

    patch("portal.common.config_manager.ConfigManager._get_env_with_warning", side_effect=mock_get).start()


@pytest.fixture(autouse=True)
def limpiar_cache():
    """Cada test parte de un caché vacío (búsquedas y métricas)."""
    cache_module._cache._cache.clear()
    yield
    cache_module._cache._cache.clear()


@pytest.fixture
def mock_db_connector():
    """
    Crea un mock autocontenido del DatabaseConnector para inyectar en los tests.
    """
    connector = MagicMock()
    connector.ejecutar_consulta = MagicMock(return_value=[])
    connector.cerrar_conexiones_pool = MagicMock()
    return connector


@pytest.fixture
def dependencia_row():
    return {
        "id": "6f1c1f8e-1d2b-4a3c-9e4f-0a1b2c3d4e5f",
        "codigo": "010",
        "sigla": "SH",
        "nombre": "Secretaría de Hacienda",
        "descripcion": None,
        "activo": True,
        "subdependencias_count": 2,
        "tramites_count": 5,
        "opas_count": 1,
    }


@pytest.fixture
def tramite_row():
    return {
        "id": "1a2b3c4d-0000-4000-8000-000000000001",
        "codigo_unico": "T-001",
        "nombre": "Impuesto predial unificado",
        "descripcion": None,
        "formulario": "https://chia.gov.co/predial",
        "tiempo_respuesta": "1 día hábil",
        "tiene_pago": True,
        "requisitos": '["Cédula", "Recibo anterior"]',
        "visualizacion_suit": True,
        "visualizacion_gov": False,
        "subdependencia_id": "2b3c4d5e-0000-4000-8000-000000000002",
        "activo": True,
        "created_at": "2024-03-01T10:00:00",
        "subdependencia_nombre": "Dirección de Rentas",
        "dependencia_id": "6f1c1f8e-1d2b-4a3c-9e4f-0a1b2c3d4e5f",
        "dependencia_nombre": "Secretaría de Hacienda",
    }


@pytest.fixture
def faq_row():
    return {
        "id": "3c4d5e6f-0000-4000-8000-000000000003",
        "pregunta": "¿Dónde pago el impuesto predial?",
        "respuesta": "En los bancos autorizados o en línea por PSE.",
        "palabras_clave": '["predial", "pago"]',
        "tema": None,
        "tema_id": "4d5e6f70-0000-4000-8000-000000000004",
        "tema_nombre": "Impuestos",
        "dependencia_id": "6f1c1f8e-1d2b-4a3c-9e4f-0a1b2c3d4e5f",
        "dependencia_nombre": "Secretaría de Hacienda",
        "subdependencia_id": "2b3c4d5e-0000-4000-8000-000000000002",
        "subdependencia_nombre": "Dirección de Rentas",
        "orden": 1,
        "activo": True,
        "created_at": "2024-02-01T10:00:00",
    }
