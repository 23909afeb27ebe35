# portal/web/frontend/utils/validation.py
"""
Validación de los formularios del panel de administración.

Replica las reglas de los esquemas del backend para avisar al funcionario
antes de enviar el formulario.
"""

from typing import Any, Dict, List, NamedTuple, Optional

MIN_LONGITUD_DESCRIPCION_TRAMITE = 50


class ValidationResult(NamedTuple):
    is_valid: bool
    errors: List[str]


def _texto(data: Dict[str, Any], campo: str) -> str:
    valor = data.get(campo)
    return valor.strip() if isinstance(valor, str) else ""


def _lista_limpia(valores: Any) -> List[str]:
    if not isinstance(valores, list):
        return []
    return [v.strip() for v in valores if isinstance(v, str) and v.strip()]


def _requerido(data: Dict[str, Any], campo: str, etiqueta: str, errors: List[str], is_update: bool):
    if is_update and campo not in data:
        return
    if not _texto(data, campo):
        errors.append(f"El campo '{etiqueta}' es requerido.")


def _max_longitud(data: Dict[str, Any], campo: str, etiqueta: str, maximo: int, errors: List[str]):
    if len(_texto(data, campo)) > maximo:
        errors.append(f"El campo '{etiqueta}' no puede superar {maximo} caracteres.")


def _referencia(data: Dict[str, Any], campo: str, etiqueta: str, errors: List[str], is_update: bool):
    if is_update and campo not in data:
        return
    if not data.get(campo):
        errors.append(f"Debe seleccionar una {etiqueta}.")


def _resultado(errors: List[str]) -> ValidationResult:
    return ValidationResult(is_valid=not errors, errors=errors)


def validate_dependencia_data(data: Dict[str, Any], is_update: bool = False) -> ValidationResult:
    errors: List[str] = []
    _requerido(data, "codigo", "Código", errors, is_update)
    _requerido(data, "nombre", "Nombre", errors, is_update)
    _max_longitud(data, "codigo", "Código", 20, errors)
    _max_longitud(data, "sigla", "Sigla", 20, errors)
    _max_longitud(data, "nombre", "Nombre", 255, errors)
    return _resultado(errors)


def validate_subdependencia_data(data: Dict[str, Any], is_update: bool = False) -> ValidationResult:
    errors = list(validate_dependencia_data(data, is_update).errors)
    _referencia(data, "dependencia_id", "dependencia", errors, is_update)
    return _resultado(errors)


def validate_tramite_data(data: Dict[str, Any], is_update: bool = False) -> ValidationResult:
    errors: List[str] = []
    _requerido(data, "codigo_unico", "Código único", errors, is_update)
    _requerido(data, "nombre", "Nombre", errors, is_update)
    _max_longitud(data, "codigo_unico", "Código único", 50, errors)
    _max_longitud(data, "nombre", "Nombre", 500, errors)
    _max_longitud(data, "tiempo_respuesta", "Tiempo de respuesta", 255, errors)
    descripcion = _texto(data, "descripcion")
    if descripcion and len(descripcion) < MIN_LONGITUD_DESCRIPCION_TRAMITE:
        errors.append(f"La descripción debe tener al menos {MIN_LONGITUD_DESCRIPCION_TRAMITE} caracteres.")
    _referencia(data, "subdependencia_id", "subdependencia", errors, is_update)
    return _resultado(errors)


def validate_opa_data(data: Dict[str, Any], is_update: bool = False) -> ValidationResult:
    errors: List[str] = []
    _requerido(data, "codigo_opa", "Código OPA", errors, is_update)
    _requerido(data, "nombre", "Nombre", errors, is_update)
    _max_longitud(data, "codigo_opa", "Código OPA", 50, errors)
    _max_longitud(data, "nombre", "Nombre", 500, errors)
    _max_longitud(data, "tiempo_respuesta", "Tiempo de respuesta", 255, errors)
    _referencia(data, "subdependencia_id", "subdependencia", errors, is_update)
    if data.get("activo", True) and (not _lista_limpia(data.get("requisitos")) or not _texto(data, "tiempo_respuesta")):
        errors.append("Una OPA activa debe tener requisitos y tiempo de respuesta.")
    return _resultado(errors)


def validate_tema_data(data: Dict[str, Any], is_update: bool = False) -> ValidationResult:
    errors: List[str] = []
    _requerido(data, "nombre", "Nombre", errors, is_update)
    _max_longitud(data, "nombre", "Nombre", 255, errors)
    _referencia(data, "subdependencia_id", "subdependencia", errors, is_update)
    orden = data.get("orden", 0)
    if orden is not None and not isinstance(orden, int):
        errors.append("El campo 'Orden' debe ser un número entero.")
    return _resultado(errors)


def validate_faq_data(data: Dict[str, Any], is_update: bool = False) -> ValidationResult:
    errors: List[str] = []
    _requerido(data, "pregunta", "Pregunta", errors, is_update)
    _requerido(data, "respuesta", "Respuesta", errors, is_update)
    _referencia(data, "dependencia_id", "dependencia", errors, is_update)
    _max_longitud(data, "tema", "Tema", 255, errors)
    if data.get("tema_id") and not data.get("subdependencia_id"):
        errors.append("Para asignar un tema debe seleccionar la subdependencia.")
    return _resultado(errors)


def validate_chat_message(message: Optional[str], max_longitud: int = 1000) -> ValidationResult:
    texto = (message or "").strip()
    if not texto:
        return ValidationResult(is_valid=False, errors=["El mensaje no puede estar vacío."])
    if len(texto) > max_longitud:
        return ValidationResult(
            is_valid=False, errors=[f"El mensaje es demasiado largo (máximo {max_longitud} caracteres)."]
        )
    return ValidationResult(is_valid=True, errors=[])
