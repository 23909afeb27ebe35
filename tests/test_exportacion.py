# tests/test_exportacion.py
"""
Tests para la exportación e importación de trámites, OPAs y preguntas frecuentes.
"""

import json
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

from portal.web.backend import database as db_service
from portal.web.backend import exportacion
from portal.web.backend.schemas import FaqUpdate, TramiteCreate, TramiteUpdate

SUB_ID = "2b3c4d5e-0000-4000-8000-000000000002"
DEP_ID = "6f1c1f8e-1d2b-4a3c-9e4f-0a1b2c3d4e5f"

TRAMITE = {
    "codigo_unico": "T-001",
    "nombre": "Impuesto predial unificado",
    "subdependencia_id": SUB_ID,
    "requisitos": ["Cédula"],
    "tiene_pago": True,
}


@pytest.fixture
def repositorio():
    """Funciones del repositorio que usa la importación, reemplazadas por mocks."""
    with patch.multiple(
        "portal.web.backend.database",
        buscar_id_por_columna=MagicMock(return_value=None),
        create_tramite=MagicMock(return_value={}),
        update_tramite=MagicMock(return_value={}),
        create_faq=MagicMock(return_value={}),
        update_faq=MagicMock(return_value={}),
    ):
        yield db_service


class TestSerializacion:
    def test_csv_une_listas_y_booleanos(self):
        registro = {
            "id": "t1",
            "codigo_unico": "T-001",
            "nombre": "Predial, vigencia actual",
            "requisitos": ["Cédula", "Recibo anterior"],
            "tiene_pago": True,
            "visualizacion_gov": False,
            "descripcion": None,
        }

        csv_texto = exportacion.serializar_registros("tramites", [registro], "csv")

        encabezado, fila = csv_texto.strip().splitlines()
        assert encabezado.split(",") == exportacion.CATALOGOS["tramites"]["columnas"]
        assert '"Predial, vigencia actual"' in fila
        assert "Cédula|Recibo anterior" in fila
        assert ",true," in fila and ",false," in fila

    def test_json_conserva_listas_y_fechas(self):
        registro = {"pregunta": "¿Dónde pago?", "palabras_clave": ["pago"], "created_at": datetime(2024, 3, 1, 10)}

        datos = json.loads(exportacion.serializar_registros("faqs", [registro], "json"))

        assert datos[0]["palabras_clave"] == ["pago"]
        assert datos[0]["created_at"] == "2024-03-01T10:00:00"
        assert datos[0]["respuesta"] is None

    def test_formato_no_soportado(self):
        with pytest.raises(ValueError, match="Formato no soportado"):
            exportacion.serializar_registros("tramites", [], "xlsx")

    def test_catalogo_no_exportable(self):
        with pytest.raises(ValueError, match="no admite exportación"):
            exportacion.serializar_registros("dependencias", [], "csv")

    def test_obtener_registros_recorre_las_paginas(self):
        paginas = [
            {"data": [{"id": "1"}], "pagination": {"totalPages": 2}},
            {"data": [{"id": "2"}], "pagination": {"totalPages": 2}},
        ]
        with patch("portal.web.backend.database.get_opas", side_effect=paginas) as get_opas:
            registros = exportacion.obtener_registros(MagicMock(), "opas")

        assert [r["id"] for r in registros] == ["1", "2"]
        assert [c.kwargs["page"] for c in get_opas.call_args_list] == [1, 2]


class TestParseo:
    def test_csv_convierte_listas_booleanos_y_vacios(self):
        contenido = (
            "\ufeffcodigo_unico,nombre,requisitos,tiene_pago,activo,descripcion\n"
            "T-001, Predial ,Cédula| Recibo ||,sí,false,\n"
        )

        (registro,) = exportacion.parsear_registros("tramites", "csv", contenido)

        assert registro == {
            "codigo_unico": "T-001",
            "nombre": "Predial",
            "requisitos": ["Cédula", "Recibo"],
            "tiene_pago": True,
            "activo": False,
            "descripcion": None,
        }

    def test_csv_sin_columna_clave(self):
        with pytest.raises(ValueError, match="codigo_opa"):
            exportacion.parsear_registros("opas", "csv", "nombre\nCertificado")

    def test_contenido_vacio(self):
        with pytest.raises(ValueError, match="vacío"):
            exportacion.parsear_registros("faqs", "json", "   ")

    def test_json_debe_ser_lista(self):
        with pytest.raises(ValueError, match="lista de registros"):
            exportacion.parsear_registros("faqs", "json", '{"pregunta": "x"}')


class TestImportacion:
    def test_crea_los_nuevos(self, repositorio):
        resultado = exportacion.importar_catalogo(MagicMock(), "tramites", [TRAMITE])

        assert resultado["created"] == 1
        assert resultado["success"] is True
        datos = repositorio.create_tramite.call_args.args[1]
        assert isinstance(datos, TramiteCreate)
        assert datos.requisitos == ["Cédula"]
        assert repositorio.buscar_id_por_columna.call_args.args[1:] == ("Tramites", "codigo_unico", "T-001")

    def test_update_actualiza_los_existentes(self, repositorio):
        repositorio.buscar_id_por_columna.return_value = "id-existente"

        resultado = exportacion.importar_catalogo(MagicMock(), "tramites", [{**TRAMITE, "id": "otro"}], "update")

        assert resultado["updated"] == 1
        registro_id, datos = repositorio.update_tramite.call_args.args[1:]
        assert registro_id == "id-existente"
        assert isinstance(datos, TramiteUpdate)
        assert "id" not in datos.model_dump(exclude_unset=True)
        repositorio.create_tramite.assert_not_called()

    def test_skip_omite_los_existentes(self, repositorio):
        repositorio.buscar_id_por_columna.return_value = "id-existente"

        resultado = exportacion.importar_catalogo(MagicMock(), "tramites", [TRAMITE], "skip")

        assert resultado["skipped"] == 1
        assert resultado["message"] == "Importación completada: 0 creados, 0 actualizados, 1 omitidos"
        repositorio.update_tramite.assert_not_called()

    def test_create_no_busca_existentes(self, repositorio):
        exportacion.importar_catalogo(MagicMock(), "tramites", [TRAMITE], "create")

        repositorio.buscar_id_por_columna.assert_not_called()
        repositorio.create_tramite.assert_called_once()

    def test_registro_invalido_no_detiene_la_importacion(self, repositorio):
        sin_nombre = {k: v for k, v in TRAMITE.items() if k != "nombre"}

        resultado = exportacion.importar_catalogo(MagicMock(), "tramites", [sin_nombre, TRAMITE])

        assert resultado["success"] is False
        assert resultado["created"] == 1
        assert resultado["message"].endswith(". 1 errores encontrados.")
        assert resultado["errors"][0].startswith("T-001: nombre")

    def test_conflicto_de_la_bd_se_reporta(self, repositorio):
        repositorio.create_tramite.side_effect = ValueError("Conflicto: ya existe un trámite con el código T-001.")

        resultado = exportacion.importar_catalogo(MagicMock(), "tramites", [TRAMITE], "create")

        assert resultado["errors"] == ["T-001: Conflicto: ya existe un trámite con el código T-001."]

    def test_faq_se_busca_primero_por_id(self, repositorio):
        repositorio.buscar_id_por_columna.return_value = "faq-1"
        faq = {"id": "faq-1", "pregunta": "¿Dónde pago?", "respuesta": "En línea.", "dependencia_id": DEP_ID}

        resultado = exportacion.importar_catalogo(MagicMock(), "faqs", [faq])

        assert resultado["updated"] == 1
        assert repositorio.buscar_id_por_columna.call_args.args[1:] == ("Faqs", "id", "faq-1")
        assert isinstance(repositorio.update_faq.call_args.args[2], FaqUpdate)

    def test_estrategia_desconocida(self):
        with pytest.raises(ValueError, match="Estrategia no soportada"):
            exportacion.importar_catalogo(MagicMock(), "tramites", [], "merge")
