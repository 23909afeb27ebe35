# tests/frontend/test_catalog_forms.py
"""
Tests para la conversión entre registros de la API y los formularios del admin.
"""

from portal.web.frontend.features.components.admin_catalog import truncate, ubicacion_filters
from portal.web.frontend.features.components.public_catalog import breadcrumb_items
from portal.web.frontend.features.modals.catalog_modals import build_payload, to_form_data

SUB_ID = "2b3c4d5e-0000-4000-8000-000000000002"
DEP_ID = "6f1c1f8e-1d2b-4a3c-9e4f-0a1b2c3d4e5f"


class TestToFormData:
    def test_nuevo_registro(self):
        form = to_form_data("tramites", None)

        assert form["activo"] is True
        assert form["tiene_pago"] is False
        assert form["requisitos"] == ""
        assert form["nombre"] == ""

    def test_edicion_de_opa(self):
        opa = {"codigo_opa": "OPA-010", "requisitos": ["Cédula", "Foto"], "activo": False, "descripcion": None}

        form = to_form_data("opas", opa)

        assert form["requisitos"] == "Cédula\nFoto"
        assert form["activo"] is False
        assert form["descripcion"] == ""

    def test_faq_palabras_clave_y_orden(self):
        form = to_form_data("faqs", {"palabras_clave": ["predial", "pago"], "orden": None})

        assert form["palabras_clave"] == "predial, pago"
        assert form["orden"] == "0"


class TestBuildPayload:
    def test_tramite(self):
        form = {
            "codigo_unico": " T-001 ",
            "nombre": "Impuesto predial",
            "descripcion": "   ",
            "requisitos": "Cédula\n\n Recibo anterior ",
            "tiene_pago": True,
            "activo": True,
        }

        payload = build_payload("tramites", form, {"dependencia_id": DEP_ID, "subdependencia_id": SUB_ID})

        assert payload["codigo_unico"] == "T-001"
        assert payload["descripcion"] is None
        assert payload["requisitos"] == ["Cédula", "Recibo anterior"]
        assert payload["visualizacion_suit"] is False
        assert payload["subdependencia_id"] == SUB_ID
        assert "dependencia_id" not in payload

    def test_requeridos_vacios_viajan_como_texto(self):
        payload = build_payload("dependencias", {"codigo": "", "nombre": " "})

        assert payload["codigo"] == ""
        assert payload["nombre"] == ""
        assert payload["sigla"] is None

    def test_orden_invalido_se_conserva_para_validar(self):
        payload = build_payload("temas", {"nombre": "Impuestos", "orden": "dos"}, {"subdependencia_id": SUB_ID})
        assert payload["orden"] == "dos"

    def test_faq_ubicacion_completa(self):
        form = {
            "pregunta": "¿Dónde pago?",
            "respuesta": "En bancos.",
            "palabras_clave": "pago, , predial",
            "orden": "3",
        }

        payload = build_payload("faqs", form, {"dependencia_id": DEP_ID, "subdependencia_id": "", "tema_id": None})

        assert payload["palabras_clave"] == ["pago", "predial"]
        assert payload["orden"] == 3
        assert payload["dependencia_id"] == DEP_ID
        assert payload["subdependencia_id"] is None
        assert payload["tema_id"] is None


class TestAdminHelpers:
    def test_ubicacion_filters(self):
        selects = {"dependencia_id": DEP_ID, "subdependencia_id": "", "tema_id": "t1"}

        assert ubicacion_filters("tramites", selects) == {"dependencia_id": DEP_ID, "subdependencia_id": None}
        assert ubicacion_filters("temas", selects) == {"subdependencia_id": None}
        assert ubicacion_filters("dependencias", selects) == {}

    def test_truncate(self):
        assert truncate("corto", 10) == "corto"
        assert truncate("un texto bastante largo", 10) == "un texto…"
        assert truncate(None) == ""


class TestBreadcrumb:
    def test_nivel_raiz(self):
        assert breadcrumb_items({}) == [{"label": "Todas las dependencias", "level": 0}]

    def test_hasta_subdependencia(self):
        estado = {
            "dependencia": {"id": "d1", "nombre": "Secretaría de Hacienda"},
            "subdependencia": {"id": "s1", "nombre": "Dirección de Rentas"},
            "tema": None,
        }

        assert [i["label"] for i in breadcrumb_items(estado)] == [
            "Todas las dependencias",
            "Secretaría de Hacienda",
            "Dirección de Rentas",
        ]
