"""Tests para la base de conocimiento del asistente virtual."""

import json
from unittest.mock import MagicMock, patch

import pytest

from portal.web.backend import database as db_service
from portal.web.backend import knowledge
from portal.web.backend.database import normalizar_fila


class TestDocumentos:
    def test_documento_tramite(self, tramite_row):
        documento = knowledge.documento_tramite(normalizar_fila(tramite_row))

        assert documento["content_type"] == "tramite"
        assert documento["title"] == "Trámite: Impuesto predial unificado"
        assert "Requisitos: Cédula, Recibo anterior" in documento["content"]
        assert "Pago: Con pago" in documento["content"]
        # Los campos vacíos no generan línea
        assert "Descripción" not in documento["content"]
        assert documento["metadata"]["tiene_pago"] is True

    def test_documento_faq_usa_tema_del_catalogo(self, faq_row):
        documento = knowledge.documento_faq(normalizar_fila(faq_row))

        assert documento["title"] == "FAQ: ¿Dónde pago el impuesto predial?"
        assert "Tema: Impuestos" in documento["content"]
        assert "Palabras clave: predial, pago" in documento["content"]

    def test_documento_dependencia(self, dependencia_row):
        documento = knowledge.documento_dependencia(dependencia_row)

        assert documento["title"] == "Dependencia: Secretaría de Hacienda"
        assert "Trámites disponibles: 5" in documento["content"]


class TestPuntaje:
    def test_titulo_suma_extra(self):
        puntaje = knowledge.puntuar_documento(["predial", "pago"], "Trámite: Impuesto predial", "Pago: Con pago")
        assert puntaje == pytest.approx(0.9)

    def test_sin_terminos(self):
        assert knowledge.puntuar_documento([], "Título", "Contenido") == 0.0

    def test_ignora_tildes(self):
        assert knowledge.puntuar_documento(["catastral"], "Certificado", "Información CATASTRAL") == pytest.approx(0.8)


class TestBuscarConocimiento:
    def _filas(self):
        return [
            {
                "id": "k2",
                "content_type": "faq",
                "content_id": "f1",
                "title": "FAQ: Pagos",
                "content": "Puede pagar el impuesto en bancos.",
                "metadata": json.dumps({"tema": "Impuestos"}),
            },
            {
                "id": "k1",
                "content_type": "tramite",
                "content_id": "t1",
                "title": "Trámite: Impuesto predial unificado",
                "content": "Código: T-001",
                "metadata": None,
            },
            {
                "id": "k3",
                "content_type": "general",
                "content_id": None,
                "title": "Horario",
                "content": "Lunes a viernes",
                "metadata": None,
            },
        ]

    def test_ordena_por_similitud_y_aplica_umbral(self):
        db = MagicMock()
        db.ejecutar_consulta.return_value = self._filas()

        resultados = knowledge.buscar_conocimiento(db, "impuesto predial", umbral=0.3, limite=5)

        assert [r["id"] for r in resultados] == ["k1", "k2"]
        assert resultados[0]["similarity"] == 1.0
        assert resultados[1]["metadata"] == {"tema": "Impuestos"}
        assert resultados[0]["metadata"] == {}

    def test_limite(self):
        db = MagicMock()
        db.ejecutar_consulta.return_value = self._filas()

        resultados = knowledge.buscar_conocimiento(db, "impuesto predial", umbral=0.3, limite=1)

        assert [r["id"] for r in resultados] == ["k1"]

    def test_parametros_like_por_termino(self):
        db = MagicMock()
        db.ejecutar_consulta.return_value = []

        knowledge.buscar_conocimiento(db, "licencia construcción")

        params = db.ejecutar_consulta.call_args[0][1]
        assert params == ("%licencia%", "%licencia%", "%construccion%", "%construccion%")

    def test_solo_stop_words_no_consulta(self):
        db = MagicMock()

        assert knowledge.buscar_conocimiento(db, "¿cómo puedo?") == []
        db.ejecutar_consulta.assert_not_called()


class TestSincronizacion:
    def test_reconstruye_desde_los_catalogos(self, tramite_row, faq_row, dependencia_row):
        db = MagicMock()
        cursor = db.obtener_cursor.return_value.__enter__.return_value

        with (
            patch.object(db_service, "get_tramites", return_value={"data": [normalizar_fila(tramite_row)]}) as tramites,
            patch.object(db_service, "get_opas", return_value={"data": []}),
            patch.object(db_service, "get_faqs", return_value={"data": [normalizar_fila(faq_row)]}),
            patch.object(db_service, "get_dependencias", return_value={"data": [dependencia_row]}),
        ):
            resumen = knowledge.sincronizar_conocimiento(db)

        assert resumen == {"tramite": 1, "opa": 0, "faq": 1, "dependencia": 1, "total": 3}
        assert tramites.call_args.kwargs["activo"] is True
        assert "DELETE FROM dbo.ChatbotKnowledge" in cursor.execute.call_args[0][0]
        filas = cursor.executemany.call_args[0][1]
        assert [f[0] for f in filas] == ["tramite", "faq", "dependencia"]
        assert json.loads(filas[0][4])["codigo"] == "T-001"

    def test_estado(self):
        db = MagicMock()
        db.ejecutar_consulta.return_value = [
            {"content_type": "tramite", "total": 10, "ultima_carga": "2024-03-01"},
            {"content_type": "faq", "total": 4, "ultima_carga": "2024-03-02"},
        ]

        estado = knowledge.estado_conocimiento(db)

        assert estado == {"documentos": {"tramite": 10, "faq": 4}, "total": 14, "ultimaCarga": "2024-03-02"}
