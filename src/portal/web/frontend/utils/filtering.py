# portal/web/frontend/utils/filtering.py
"""
Funciones puras de filtrado y ordenamiento sobre listas ya cargadas de la API.

No modifican los datos de entrada ni hacen I/O, así que se prueban sin
levantar componentes.
"""

from typing import Any, Callable, Dict, List, Optional

from portal.common.text_utils import search_matches


def _coincide_alguno(item: Dict[str, Any], campos: List[str], termino: str) -> bool:
    return any(search_matches(termino, str(item.get(campo) or "")) for campo in campos)


def _por_estado(items: List[Dict[str, Any]], campo: str, valor: Optional[bool]) -> List[Dict[str, Any]]:
    if valor is None:
        return items
    return [i for i in items if normalize_boolean(i.get(campo)) == valor]


def _por_id(items: List[Dict[str, Any]], campo: str, valor: Optional[str]) -> List[Dict[str, Any]]:
    if not valor:
        return items
    return [i for i in items if str(i.get(campo) or "") == str(valor)]


def filter_tramites(
    tramites: List[Dict[str, Any]],
    search_term: Optional[str] = None,
    dependencia_id: Optional[str] = None,
    subdependencia_id: Optional[str] = None,
    tiene_pago: Optional[bool] = None,
    activo: Optional[bool] = None,
) -> List[Dict[str, Any]]:
    """
    Filtra trámites por texto (nombre, código, descripción, dependencia), ubicación, pago y estado.

    Args:
        tramites: Lista de trámites tal como los devuelve /api/tramites
        search_term: Texto libre; se ignoran tildes y mayúsculas
        dependencia_id: Id de la dependencia (None = todas)
        subdependencia_id: Id de la subdependencia (None = todas)
        tiene_pago: True solo con pago, False solo gratuitos, None = todos
        activo: True solo activos, False solo inactivos, None = todos

    Returns:
        Nueva lista con los trámites que cumplen todos los filtros
    """
    filtrados = _por_id(tramites, "dependencia_id", dependencia_id)
    filtrados = _por_id(filtrados, "subdependencia_id", subdependencia_id)
    filtrados = _por_estado(filtrados, "tiene_pago", tiene_pago)
    filtrados = _por_estado(filtrados, "activo", activo)
    if search_term and search_term.strip():
        campos = ["nombre", "codigo_unico", "descripcion", "dependencia_nombre", "subdependencia_nombre"]
        filtrados = [t for t in filtrados if _coincide_alguno(t, campos, search_term)]
    return filtrados


def filter_opas(
    opas: List[Dict[str, Any]],
    search_term: Optional[str] = None,
    dependencia_id: Optional[str] = None,
    subdependencia_id: Optional[str] = None,
    tiene_pago: Optional[bool] = None,
    activo: Optional[bool] = None,
) -> List[Dict[str, Any]]:
    """Igual que filter_tramites, buscando en el código OPA."""
    filtrados = _por_id(opas, "dependencia_id", dependencia_id)
    filtrados = _por_id(filtrados, "subdependencia_id", subdependencia_id)
    filtrados = _por_estado(filtrados, "tiene_pago", tiene_pago)
    filtrados = _por_estado(filtrados, "activo", activo)
    if search_term and search_term.strip():
        campos = ["nombre", "codigo_opa", "descripcion", "dependencia_nombre", "subdependencia_nombre"]
        filtrados = [o for o in filtrados if _coincide_alguno(o, campos, search_term)]
    return filtrados


def filter_faqs(
    faqs: List[Dict[str, Any]],
    search_term: Optional[str] = None,
    dependencia_id: Optional[str] = None,
    subdependencia_id: Optional[str] = None,
    tema: Optional[str] = None,
    activo: Optional[bool] = None,
) -> List[Dict[str, Any]]:
    """
    Filtra preguntas frecuentes. El texto se busca en pregunta, respuesta,
    tema y palabras clave.
    """
    filtrados = _por_id(faqs, "dependencia_id", dependencia_id)
    filtrados = _por_id(filtrados, "subdependencia_id", subdependencia_id)
    filtrados = _por_estado(filtrados, "activo", activo)
    if tema:
        filtrados = [f for f in filtrados if search_matches(tema, f.get("tema_nombre") or f.get("tema") or "")]
    if search_term and search_term.strip():

        def coincide(faq: Dict[str, Any]) -> bool:
            if _coincide_alguno(faq, ["pregunta", "respuesta", "tema", "tema_nombre"], search_term):
                return True
            return any(search_matches(search_term, p) for p in faq.get("palabras_clave") or [])

        filtrados = [f for f in filtrados if coincide(f)]
    return filtrados


def sort_data(
    data: List[Dict[str, Any]],
    sort_by: str,
    sort_dir: str = "asc",
    key_mapping: Optional[Dict[str, Callable[[Dict[str, Any]], Any]]] = None,
) -> List[Dict[str, Any]]:
    """
    Ordena una lista de diccionarios por una clave.

    Args:
        data: Lista a ordenar
        sort_by: Clave por la que ordenar
        sort_dir: "asc" o "desc"
        key_mapping: Funciones de transformación por clave,
                     p. ej. {"nombre": lambda x: x.get("nombre", "").lower()}

    Returns:
        Nueva lista ordenada. Los valores None quedan al final.
    """
    if not data:
        return []

    reverse = sort_dir.lower() == "desc"

    def get_sort_value(item: Dict[str, Any]):
        if key_mapping and sort_by in key_mapping:
            value = key_mapping[sort_by](item)
        else:
            value = item.get(sort_by)
        if isinstance(value, str):
            value = value.lower()
        # (es_nulo, valor): los nulos siempre al final sin importar la dirección
        return (value is None) != reverse, value if value is not None else ""

    return sorted(data, key=get_sort_value, reverse=reverse)


def normalize_boolean(value: Any) -> bool:
    """
    Normaliza a booleano valores como None, 0, 1, "0", "1", "true", "false" o "sí".
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        value_lower = value.lower().strip()
        if value_lower in ("true", "1", "yes", "si", "sí"):
            return True
        if value_lower in ("false", "0", "no", ""):
            return False
        return bool(value)
    return bool(value)


def parse_tri_state(value: Optional[str]) -> Optional[bool]:
    """Convierte el valor de un <select> "all" / "true" / "false" en None / True / False."""
    if value in (None, "", "all"):
        return None
    return normalize_boolean(value)
