"""Tests para la búsqueda unificada de trámites, OPAs y FAQs."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from portal.web.backend import database as db_service
from portal.web.backend import search as search_service
from portal.web.backend.database import normalizar_fila


@pytest.fixture
def opa_row():
    return {
        "id": "5e6f7081-0000-4000-8000-000000000005",
        "codigo_opa": "OPA-010",
        "nombre": "Certificado de residencia",
        "descripcion": None,
        "formulario": None,
        "tiempo_respuesta": "5 días hábiles",
        "tiene_pago": False,
        "requisitos": ["Cédula"],
        "subdependencia_id": "70819203-0000-4000-8000-000000000007",
        "subdependencia_nombre": "Oficina de Atención al Ciudadano",
        "dependencia_id": "8192a3b4-0000-4000-8000-000000000008",
        "dependencia_nombre": "Secretaría de Gobierno",
        "activo": True,
        "created_at": "2024-01-01T00:00:00",
    }


@pytest.fixture
def catalogos(tramite_row, opa_row, faq_row):
    """Fuentes de la búsqueda con un registro cada una."""
    with (
        patch.object(db_service, "get_tramites", return_value={"data": [normalizar_fila(tramite_row)]}) as tramites,
        patch.object(db_service, "get_opas", return_value={"data": [opa_row]}) as opas,
        patch.object(db_service, "get_faqs", return_value={"data": [normalizar_fila(faq_row)]}) as faqs,
    ):
        yield SimpleNamespace(tramites=tramites, opas=opas, faqs=faqs)


class TestNormalizacion:
    def test_tramite(self, tramite_row):
        resultado = search_service.normalizar_tramite(normalizar_fila(tramite_row))

        assert resultado["tipo"] == "tramite"
        assert resultado["codigo"] == "T-001"
        # Sin descripción se muestra el formulario
        assert resultado["descripcion"] == "https://chia.gov.co/predial"
        assert resultado["tags"] == ["tramite", "pago", "dirección de rentas"]
        assert resultado["original_data"]["requisitos"] == ["Cédula", "Recibo anterior"]
        assert resultado["original_data"]["visualizacion_suit"] is True

    def test_opa_descripcion_generada(self, opa_row):
        resultado = search_service.normalizar_opa(opa_row)

        assert resultado["descripcion"] == (
            "Servicio administrativo para certificado de residencia. "
            "Disponible en Oficina de Atención al Ciudadano."
        )
        assert "autorizacion" in resultado["tags"]
        assert resultado["tiene_pago"] is False

    def test_faq(self, faq_row):
        resultado = search_service.normalizar_faq(normalizar_fila(faq_row))

        assert resultado["codigo"] == "FAQ-3c4d5e6f"
        assert resultado["categoria"] == "Impuestos"
        assert resultado["tiene_pago"] is None
        assert resultado["titulo"] == "¿Dónde pago el impuesto predial?"

    def test_dependencia_por_defecto(self, opa_row):
        opa_row["dependencia_nombre"] = None
        assert search_service.normalizar_opa(opa_row)["dependencia"] == "Sin dependencia"


class TestOrden:
    def _resultados(self):
        return [
            {"nombre": "Otro trámite", "codigo": "PRED-1", "created_at": "2024-05-01T00:00:00"},
            {"nombre": "Predial", "codigo": "X-1", "created_at": "2023-01-01T00:00:00"},
            {"nombre": "Nada", "codigo": "Y-1", "created_at": "2024-06-01T00:00:00"},
        ]

    def test_sin_consulta_mas_recientes_primero(self):
        ordenados = search_service.ordenar_resultados(self._resultados(), None)
        assert [r["nombre"] for r in ordenados] == ["Nada", "Otro trámite", "Predial"]

    def test_con_consulta_nombre_luego_codigo(self):
        ordenados = search_service.ordenar_resultados(self._resultados(), "pred")
        assert [r["nombre"] for r in ordenados] == ["Predial", "Otro trámite", "Nada"]


@pytest.mark.asyncio
class TestBuscarUnificado:
    async def test_busca_en_las_tres_fuentes(self, catalogos):
        respuesta = await search_service.buscar_unificado(MagicMock(), query="predial")

        assert respuesta["success"] is True
        assert [r["tipo"] for r in respuesta["data"]] == ["tramite", "faq"]
        assert respuesta["pagination"] == {"page": 1, "limit": 10, "total": 2, "totalPages": 1}
        assert catalogos.tramites.call_args.kwargs["activo"] is True

    async def test_ignora_tildes(self, catalogos):
        respuesta = await search_service.buscar_unificado(MagicMock(), query="atencion")
        assert [r["codigo"] for r in respuesta["data"]] == ["OPA-010"]

    async def test_tipo_invalido(self, catalogos):
        with pytest.raises(ValueError, match="Tipo de búsqueda inválido"):
            await search_service.buscar_unificado(MagicMock(), tipo="noticia")

    async def test_tipo_pago_solo_filtra_tramites(self, catalogos):
        respuesta = await search_service.buscar_unificado(MagicMock(), tipo_pago="gratuito")

        assert catalogos.tramites.call_args.kwargs["tiene_pago"] is False
        assert "tiene_pago" not in catalogos.opas.call_args.kwargs
        catalogos.faqs.assert_called_once()
        assert {r["tipo"] for r in respuesta["data"]} >= {"opa", "faq"}

    async def test_tipo_pago_con_tipo_opa_no_filtra(self, catalogos):
        respuesta = await search_service.buscar_unificado(MagicMock(), tipo="opa", tipo_pago="con_pago")

        catalogos.tramites.assert_not_called()
        catalogos.faqs.assert_not_called()
        assert "tiene_pago" not in catalogos.opas.call_args.kwargs
        assert [r["tipo"] for r in respuesta["data"]] == ["opa"]

    async def test_subdependencia_no_excluye_faqs(self, catalogos):
        respuesta = await search_service.buscar_unificado(MagicMock(), subdependencia_id="sub-1")

        assert catalogos.tramites.call_args.kwargs["subdependencia_id"] == "sub-1"
        assert catalogos.opas.call_args.kwargs["subdependencia_id"] == "sub-1"
        assert "subdependencia_id" not in catalogos.faqs.call_args.kwargs
        assert "faq" in {r["tipo"] for r in respuesta["data"]}

    async def test_filtro_dependencia_por_nombre(self, catalogos):
        respuesta = await search_service.buscar_unificado(MagicMock(), dependencia="hacienda")
        assert {r["tipo"] for r in respuesta["data"]} == {"tramite", "faq"}

    async def test_incluir_inactivos(self, catalogos):
        await search_service.buscar_unificado(MagicMock(), incluir_inactivos=True)
        assert catalogos.tramites.call_args.kwargs["activo"] is None

    async def test_paginacion(self, catalogos):
        respuesta = await search_service.buscar_unificado(MagicMock(), page=2, limit=2)

        assert respuesta["pagination"] == {"page": 2, "limit": 2, "total": 3, "totalPages": 2}
        assert len(respuesta["data"]) == 1

    async def test_una_fuente_caida_no_tumba_la_busqueda(self, catalogos):
        catalogos.opas.side_effect = RuntimeError("timeout")

        respuesta = await search_service.buscar_unificado(MagicMock())

        assert respuesta["pagination"]["total"] == 2

    async def test_resultado_cacheado(self, catalogos):
        db = MagicMock()
        await search_service.buscar_unificado(db, query="predial")
        await search_service.buscar_unificado(db, query="predial")

        assert catalogos.tramites.call_count == 1


@pytest.mark.asyncio
class TestBusquedasAuxiliares:
    async def test_procedimientos_sin_faqs(self, catalogos):
        respuesta = await search_service.buscar_tramites_y_opas(MagicMock())

        catalogos.faqs.assert_not_called()
        assert {r["tipo"] for r in respuesta["data"]} == {"tramite", "opa"}

    async def test_procedimientos_con_tipo_pago_conserva_opas(self, catalogos):
        respuesta = await search_service.buscar_tramites_y_opas(MagicMock(), tipo_pago="con_pago")

        assert catalogos.tramites.call_args.kwargs["tiene_pago"] is True
        assert "opa" in {r["tipo"] for r in respuesta["data"]}

    async def test_procedimientos_nunca_lanza(self):
        with patch.object(search_service, "_buscar", new=AsyncMock(side_effect=RuntimeError("caída"))):
            respuesta = await search_service.buscar_tramites_y_opas(MagicMock(), page=1, limit=10)

        assert respuesta["success"] is False
        assert respuesta["error"] == "caída"
        assert respuesta["pagination"]["total"] == 0

    async def test_sugerencias(self, catalogos):
        sugerencias = await search_service.obtener_sugerencias(MagicMock(), "predial")
        assert sugerencias == ["Impuesto predial unificado", "¿Dónde pago el impuesto predial?"]

    async def test_sugerencias_consulta_corta(self, catalogos):
        assert await search_service.obtener_sugerencias(MagicMock(), "p") == []
        catalogos.tramites.assert_not_called()

    async def test_estadisticas(self):
        db = MagicMock()
        db.ejecutar_consulta.return_value = [{"total": 4}]

        stats = await search_service.obtener_estadisticas_busqueda(db)

        assert stats == {"totalTramites": 4, "totalOpas": 4, "totalFaqs": 4, "totalActive": 4}
