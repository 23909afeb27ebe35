# portal/web/frontend/utils/__init__.py
"""Utilidades compartidas para el frontend."""

from typing import Any, Dict

from .exceptions import APIException, ValidationException
from .filtering import filter_faqs, filter_opas, filter_tramites, normalize_boolean, parse_tri_state, sort_data
from .input_helpers import create_trimmed_handler, split_commas, split_lines, trim_text_input
from .validation import (
    ValidationResult,
    validate_chat_message,
    validate_dependencia_data,
    validate_faq_data,
    validate_opa_data,
    validate_subdependencia_data,
    validate_tema_data,
    validate_tramite_data,
)


def build_search_params(filters: Dict[str, Any]) -> Dict[str, Any]:
    """
    Parámetros de consulta para la API a partir de los filtros de la UI.
    Descarta los valores vacíos (None, "", "all") y recorta los textos.
    """
    params: Dict[str, Any] = {}
    for clave, valor in filters.items():
        if isinstance(valor, str):
            valor = valor.strip()
            if valor in ("", "all"):
                continue
        if valor is None:
            continue
        params[clave] = valor
    return params


__all__ = [
    # Excepciones
    "APIException",
    "ValidationException",
    # Filtrado (funciones puras)
    "filter_tramites",
    "filter_opas",
    "filter_faqs",
    "sort_data",
    "normalize_boolean",
    "parse_tri_state",
    "build_search_params",
    # Input helpers
    "trim_text_input",
    "create_trimmed_handler",
    "split_lines",
    "split_commas",
    # Validación
    "ValidationResult",
    "validate_dependencia_data",
    "validate_subdependencia_data",
    "validate_tramite_data",
    "validate_opa_data",
    "validate_tema_data",
    "validate_faq_data",
    "validate_chat_message",
]
