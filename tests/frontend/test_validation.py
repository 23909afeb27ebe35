# tests/frontend/test_validation.py
"""
Tests para las validaciones de los formularios del admin.

Son funciones puras: reciben el payload que se enviaría a la API y devuelven
un ValidationResult.
"""

from portal.web.frontend.utils.validation import (
    validate_chat_message,
    validate_dependencia_data,
    validate_faq_data,
    validate_opa_data,
    validate_subdependencia_data,
    validate_tema_data,
    validate_tramite_data,
)

SUB_ID = "2b3c4d5e-0000-4000-8000-000000000002"
DEP_ID = "6f1c1f8e-1d2b-4a3c-9e4f-0a1b2c3d4e5f"


class TestDependencias:
    def test_datos_validos(self):
        result = validate_dependencia_data({"codigo": "010", "nombre": "Secretaría de Hacienda"})

        assert result.is_valid is True
        assert result.errors == []

    def test_nombre_con_solo_espacios(self):
        result = validate_dependencia_data({"codigo": "010", "nombre": "   "})

        assert result.is_valid is False
        assert result.errors == ["El campo 'Nombre' es requerido."]

    def test_longitudes_maximas(self):
        result = validate_dependencia_data({"codigo": "x" * 21, "nombre": "Hacienda", "sigla": "s" * 21})

        assert "El campo 'Código' no puede superar 20 caracteres." in result.errors
        assert "El campo 'Sigla' no puede superar 20 caracteres." in result.errors

    def test_actualizacion_parcial(self):
        assert validate_dependencia_data({"activo": False}, is_update=True).is_valid

    def test_actualizacion_no_permite_vaciar(self):
        result = validate_dependencia_data({"nombre": ""}, is_update=True)
        assert result.errors == ["El campo 'Nombre' es requerido."]

    def test_subdependencia_requiere_dependencia(self):
        result = validate_subdependencia_data({"codigo": "011", "nombre": "Rentas"})
        assert result.errors == ["Debe seleccionar una dependencia."]


class TestTramites:
    def _tramite(self, **overrides):
        return {"codigo_unico": "T-001", "nombre": "Impuesto predial", "subdependencia_id": SUB_ID, **overrides}

    def test_datos_validos(self):
        assert validate_tramite_data(self._tramite()).is_valid

    def test_descripcion_corta(self):
        result = validate_tramite_data(self._tramite(descripcion="Muy corta"))
        assert result.errors == ["La descripción debe tener al menos 50 caracteres."]

    def test_descripcion_vacia_es_valida(self):
        assert validate_tramite_data(self._tramite(descripcion="   ")).is_valid

    def test_sin_subdependencia(self):
        result = validate_tramite_data(self._tramite(subdependencia_id=None))
        assert result.errors == ["Debe seleccionar una subdependencia."]


class TestOpas:
    def _opa(self, **overrides):
        datos = {
            "codigo_opa": "OPA-010",
            "nombre": "Certificado de residencia",
            "subdependencia_id": SUB_ID,
            "tiempo_respuesta": "5 días hábiles",
            "requisitos": ["Cédula"],
        }
        return {**datos, **overrides}

    def test_datos_validos(self):
        assert validate_opa_data(self._opa()).is_valid

    def test_activa_sin_requisitos(self):
        result = validate_opa_data(self._opa(requisitos=["  "]))
        assert result.errors == ["Una OPA activa debe tener requisitos y tiempo de respuesta."]

    def test_inactiva_sin_requisitos(self):
        assert validate_opa_data(self._opa(activo=False, requisitos=[], tiempo_respuesta="")).is_valid


class TestTemasYFaqs:
    def test_orden_no_entero(self):
        result = validate_tema_data({"nombre": "Impuestos", "subdependencia_id": SUB_ID, "orden": "dos"})
        assert result.errors == ["El campo 'Orden' debe ser un número entero."]

    def test_faq_valida(self):
        data = {"pregunta": "¿Dónde pago?", "respuesta": "En bancos.", "dependencia_id": DEP_ID}
        assert validate_faq_data(data).is_valid

    def test_faq_tema_sin_subdependencia(self):
        data = {"pregunta": "¿Dónde pago?", "respuesta": "En bancos.", "dependencia_id": DEP_ID, "tema_id": "t1"}
        result = validate_faq_data(data)
        assert result.errors == ["Para asignar un tema debe seleccionar la subdependencia."]

    def test_faq_campos_requeridos(self):
        result = validate_faq_data({})
        assert result.errors == [
            "El campo 'Pregunta' es requerido.",
            "El campo 'Respuesta' es requerido.",
            "Debe seleccionar una dependencia.",
        ]


class TestChatMessage:
    def test_mensaje_valido(self):
        assert validate_chat_message("  hola  ").is_valid

    def test_mensaje_vacio(self):
        assert validate_chat_message(None).errors == ["El mensaje no puede estar vacío."]

    def test_mensaje_largo(self):
        result = validate_chat_message("x" * 11, max_longitud=10)
        assert result.errors == ["El mensaje es demasiado largo (máximo 10 caracteres)."]
