# portal/web/frontend/utils/input_helpers.py
"""
Utilidades para los inputs de texto de los formularios.
"""

from typing import Any, Callable, List, Optional


def trim_text_input(value: Any) -> str:
    """
    Elimina los espacios al inicio y al final de un valor de input.

    Args:
        value: El valor del input (str, None o cualquier otro tipo)

    Returns:
        str: El valor recortado, o cadena vacía si es None
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value).strip()


def create_trimmed_handler(original_handler: Callable, field_name: Optional[str] = None) -> Callable:
    """
    Envuelve un handler para que reciba el valor ya recortado.
    Acepta tanto eventos de ReactPy como valores directos.
    """

    def trimmed_handler(event_or_value: Any) -> Any:
        if isinstance(event_or_value, dict) and "target" in event_or_value:
            event_or_value["target"]["value"] = trim_text_input(event_or_value["target"]["value"])
            return original_handler(event_or_value)
        return original_handler(trim_text_input(event_or_value))

    return trimmed_handler


def split_lines(value: Any) -> List[str]:
    """Convierte un textarea (un elemento por línea) en una lista sin líneas vacías."""
    if isinstance(value, list):
        return [trim_text_input(v) for v in value if trim_text_input(v)]
    return [linea.strip() for linea in str(value or "").splitlines() if linea.strip()]


def split_commas(value: Any) -> List[str]:
    """Convierte 'a, b, c' en ['a', 'b', 'c'] (palabras clave de las FAQ)."""
    if isinstance(value, list):
        return [trim_text_input(v) for v in value if trim_text_input(v)]
    return [parte.strip() for parte in str(value or "").split(",") if parte.strip()]
