# tests/frontend/conftest.py
"""
Fixtures compartidas para tests del frontend.

El APIClient se inyecta como mock para probar hooks y helpers sin levantar
la API.
"""

from typing import Any, Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest

from portal.web.frontend.api.api_client import APIClient

DEP_HACIENDA = "6f1c1f8e-1d2b-4a3c-9e4f-0a1b2c3d4e5f"
DEP_GOBIERNO = "8192a3b4-0000-4000-8000-000000000008"
SUB_RENTAS = "2b3c4d5e-0000-4000-8000-000000000002"
SUB_ATENCION = "70819203-0000-4000-8000-000000000007"


@pytest.fixture
def mock_api_client() -> APIClient:
    mock = MagicMock(spec=APIClient)

    mock.get_dependencias_activas = AsyncMock(
        return_value=[
            {"id": DEP_GOBIERNO, "codigo": "020", "sigla": "SG", "nombre": "Secretaría de Gobierno"},
            {"id": DEP_HACIENDA, "codigo": "010", "sigla": "SH", "nombre": "Secretaría de Hacienda"},
        ]
    )
    mock.get_subdependencias_de = AsyncMock(
        return_value=[{"id": SUB_RENTAS, "codigo": "011", "nombre": "Dirección de Rentas"}]
    )
    mock.get_temas_de = AsyncMock(return_value=[])
    mock.get_tramites = AsyncMock(
        return_value={"data": [], "pagination": {"page": 1, "limit": 20, "total": 0, "totalPages": 0}}
    )
    mock.search = AsyncMock(
        return_value={
            "success": True,
            "data": [],
            "pagination": {"page": 1, "limit": 10, "total": 0, "totalPages": 0},
        }
    )
    mock.send_chat_message = AsyncMock(
        return_value={
            "response": "Puede pagarlo en la Secretaría de Hacienda.",
            "confidence": 0.8,
            "sources": ["Trámite: Impuesto predial unificado"],
            "sessionToken": "tok-1",
            "escalateToHuman": False,
            "messageId": "9a8b7c6d-0000-4000-8000-00000000000a",
        }
    )
    mock.send_chat_feedback = AsyncMock(return_value={"feedbackId": "fb-1"})

    return mock


@pytest.fixture
def mock_app_context(mock_api_client: APIClient) -> Dict[str, Any]:
    return {
        "api_client": mock_api_client,
        "chat_session_token": None,
        "set_chat_session_token": MagicMock(),
    }


@pytest.fixture
def sample_tramites() -> List[Dict[str, Any]]:
    return [
        {
            "id": "t1",
            "codigo_unico": "T-001",
            "nombre": "Impuesto predial unificado",
            "descripcion": None,
            "tiene_pago": True,
            "activo": True,
            "dependencia_id": DEP_HACIENDA,
            "dependencia_nombre": "Secretaría de Hacienda",
            "subdependencia_id": SUB_RENTAS,
            "subdependencia_nombre": "Dirección de Rentas",
        },
        {
            "id": "t2",
            "codigo_unico": "T-002",
            "nombre": "Certificado de estratificación",
            "descripcion": "Certificación del estrato socioeconómico de un predio.",
            "tiene_pago": False,
            "activo": True,
            "dependencia_id": DEP_GOBIERNO,
            "dependencia_nombre": "Secretaría de Gobierno",
            "subdependencia_id": SUB_ATENCION,
            "subdependencia_nombre": "Oficina de Atención al Ciudadano",
        },
        {
            "id": "t3",
            "codigo_unico": "T-003",
            "nombre": "Licencia de construcción",
            "descripcion": None,
            "tiene_pago": 1,
            "activo": 0,
            "dependencia_id": DEP_HACIENDA,
            "dependencia_nombre": "Secretaría de Hacienda",
            "subdependencia_id": SUB_RENTAS,
            "subdependencia_nombre": "Dirección de Rentas",
        },
    ]


@pytest.fixture
def sample_faqs() -> List[Dict[str, Any]]:
    return [
        {
            "id": "f1",
            "pregunta": "¿Dónde pago el impuesto predial?",
            "respuesta": "En los bancos autorizados.",
            "palabras_clave": ["predial", "pago"],
            "tema": None,
            "tema_nombre": "Impuestos",
            "activo": True,
            "dependencia_id": DEP_HACIENDA,
            "subdependencia_id": SUB_RENTAS,
        },
        {
            "id": "f2",
            "pregunta": "¿Cuál es el horario de atención?",
            "respuesta": "De lunes a viernes de 8:00 a 17:00.",
            "palabras_clave": ["horario"],
            "tema": "Atención",
            "tema_nombre": None,
            "activo": True,
            "dependencia_id": DEP_GOBIERNO,
            "subdependencia_id": None,
        },
    ]
