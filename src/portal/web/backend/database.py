# src/portal/web/backend/database.py
"""
Repositorio de los catálogos del portal: dependencias, subdependencias,
trámites, OPAs, temas y preguntas frecuentes.

Todas las funciones reciben el DatabaseConnector inyectado por FastAPI. Las
reglas de negocio fallan con ValueError y el router las traduce a HTTP:
"no se encontró" -> 404, "no se puede"/"conflicto" -> 409, resto -> 400.
"""

import json
import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

import pyodbc
from pydantic import BaseModel

from portal.common.database import DatabaseConnector
from portal.common.text_utils import normalize_for_search

from .schemas import (
    DependenciaCreate,
    DependenciaUpdate,
    FaqCreate,
    FaqUpdate,
    OpaCreate,
    OpaUpdate,
    SubdependenciaCreate,
    SubdependenciaUpdate,
    TemaCreate,
    TemaUpdate,
    TramiteCreate,
    TramiteUpdate,
)

logger = logging.getLogger(__name__)

# Comparación sin distinguir mayúsculas ni tildes
CI_AI = "COLLATE Latin1_General_CI_AI"

COLUMNAS_JSON = {"requisitos", "palabras_clave", "metadata"}

TEMA_SIN_CATEGORIA = "Sin categoría"


# ------------------------------------------------------------------
# Utilidades
# ------------------------------------------------------------------


def _valor_sql(valor: Any) -> Any:
    if isinstance(valor, UUID):
        return str(valor)
    if isinstance(valor, (list, dict)):
        return json.dumps(valor, ensure_ascii=False)
    return valor


def decodificar_json(valor: Any, defecto: Any) -> Any:
    if valor is None or valor == "":
        return defecto
    if isinstance(valor, (list, dict)):
        return valor
    try:
        return json.loads(valor)
    except (TypeError, ValueError):
        logger.warning(f"Valor JSON inválido en la BD, se usa el valor por defecto: {valor!r}")
        return defecto


def normalizar_fila(fila: Dict[str, Any]) -> Dict[str, Any]:
    """Convierte ids a str y decodifica las columnas JSON."""
    resultado = {}
    for clave, valor in fila.items():
        if clave in COLUMNAS_JSON:
            resultado[clave] = decodificar_json(valor, {} if clave == "metadata" else [])
        elif isinstance(valor, UUID):
            resultado[clave] = str(valor)
        else:
            resultado[clave] = valor
    return resultado


def construir_paginacion(total: int, page: int, limit: int) -> Dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }


def _consulta_paginada(
    db: DatabaseConnector,
    columnas: str,
    from_clause: str,
    conditions: List[str],
    params: List[Any],
    order_by: str,
    page: int,
    limit: int,
) -> Dict[str, Any]:
    where_clause = " WHERE " + " AND ".join(conditions) if conditions else ""

    count_query = f"SELECT COUNT(*) AS total_count {from_clause} {where_clause}"
    total_result = db.ejecutar_consulta(count_query, tuple(params), es_select=True)
    total = total_result[0]["total_count"] if total_result else 0

    offset = (page - 1) * limit
    main_query = f"""
        SELECT {columnas}
        {from_clause}
        {where_clause}
        ORDER BY {order_by}
        OFFSET ? ROWS FETCH NEXT ? ROWS ONLY
    """
    filas = db.ejecutar_consulta(main_query, tuple(params + [offset, limit]), es_select=True) or []
    return {"data": [normalizar_fila(f) for f in filas], "pagination": construir_paginacion(total, page, limit)}


def _filtro_texto(columnas: Iterable[str], q: str, conditions: List[str], params: List[Any]):
    partes = [f"{col} {CI_AI} LIKE ?" for col in columnas]
    conditions.append("(" + " OR ".join(partes) + ")")
    params.extend([f"%{q.strip()}%"] * len(partes))


def _primera_fila(db: DatabaseConnector, query: str, params: tuple) -> Optional[Dict[str, Any]]:
    filas = db.ejecutar_consulta(query, params, es_select=True)
    return normalizar_fila(filas[0]) if filas else None


def _contar(db: DatabaseConnector, query: str, params: tuple = ()) -> int:
    filas = db.ejecutar_consulta(query, params, es_select=True)
    return filas[0]["total"] if filas else 0


def _traducir_error_integridad(e: pyodbc.Error, entidad: str, detalle: str = "") -> Exception:
    mensaje = str(e)
    if "UNIQUE KEY" in mensaje or "duplicate key" in mensaje or "PRIMARY KEY" in mensaje:
        return ValueError(f"Conflicto: ya existe {entidad} con {detalle or 'esos datos'}.")
    if "FOREIGN KEY" in mensaje:
        return ValueError(f"Referencia inválida al guardar {entidad}: el registro relacionado no existe.")
    if "REFERENCE constraint" in mensaje:
        return ValueError(f"No se puede eliminar {entidad} porque tiene registros asociados.")
    return e


def _insertar(db: DatabaseConnector, tabla: str, datos: Dict[str, Any], entidad: str, detalle: str) -> Dict:
    columnas = list(datos)
    query = f"""
        INSERT INTO dbo.{tabla} ({", ".join(columnas)})
        OUTPUT INSERTED.*
        VALUES ({", ".join("?" for _ in columnas)});
    """
    try:
        filas = db.ejecutar_consulta(query, tuple(_valor_sql(datos[c]) for c in columnas), es_select=True)
    except pyodbc.Error as e:
        raise _traducir_error_integridad(e, entidad, detalle) from e
    if not filas:
        raise RuntimeError(f"La inserción en {tabla} no devolvió el registro creado.")
    logger.info(f"Registro creado en {tabla}: {filas[0].get('id')}")
    return normalizar_fila(filas[0])


def _actualizar(
    db: DatabaseConnector, tabla: str, registro_id: Any, cambios: Dict[str, Any], entidad: str, detalle: str = ""
) -> Dict:
    if not cambios:
        raise ValueError("No se enviaron campos para actualizar.")
    set_clause = ", ".join(f"{col} = ?" for col in cambios)
    query = f"""
        UPDATE dbo.{tabla}
        SET {set_clause}, updated_at = SYSUTCDATETIME()
        OUTPUT INSERTED.*
        WHERE id = ?;
    """
    params = tuple(_valor_sql(v) for v in cambios.values()) + (_valor_sql(registro_id),)
    try:
        filas = db.ejecutar_consulta(query, params, es_select=True)
    except pyodbc.Error as e:
        raise _traducir_error_integridad(e, entidad, detalle) from e
    if not filas:
        raise ValueError(f"No se encontró {entidad} con id {registro_id}.")
    return normalizar_fila(filas[0])


def _eliminar(db: DatabaseConnector, tabla: str, registro_id: Any, entidad: str):
    try:
        afectadas = db.ejecutar_consulta(f"DELETE FROM dbo.{tabla} WHERE id = ?", (_valor_sql(registro_id),), es_select=False)
    except pyodbc.Error as e:
        raise _traducir_error_integridad(e, entidad) from e
    if not afectadas:
        raise ValueError(f"No se encontró {entidad} con id {registro_id}.")
    logger.info(f"Registro {registro_id} eliminado de {tabla}.")


def _cambios(data: BaseModel) -> Dict[str, Any]:
    return data.model_dump(exclude_unset=True)


def _requerir(fila: Optional[Dict], entidad: str, registro_id: Any) -> Dict:
    if fila is None:
        raise ValueError(f"No se encontró {entidad} con id {registro_id}.")
    return fila


# ------------------------------------------------------------------
# Dependencias
# ------------------------------------------------------------------

_COLUMNAS_DEPENDENCIA = """
    d.id, d.codigo, d.sigla, d.nombre, d.descripcion, d.activo, d.created_at, d.updated_at,
    (SELECT COUNT(*) FROM dbo.Subdependencias s WHERE s.dependencia_id = d.id) AS subdependencias_count,
    (SELECT COUNT(*) FROM dbo.Tramites t JOIN dbo.Subdependencias s ON t.subdependencia_id = s.id
        WHERE s.dependencia_id = d.id) AS tramites_count,
    (SELECT COUNT(*) FROM dbo.Opas o JOIN dbo.Subdependencias s ON o.subdependencia_id = s.id
        WHERE s.dependencia_id = d.id) AS opas_count
"""


def get_dependencias(
    db: DatabaseConnector, q: Optional[str] = None, activo: Optional[bool] = None, page: int = 1, limit: int = 50
) -> Dict:
    conditions: List[str] = []
    params: List[Any] = []
    if q:
        _filtro_texto(("d.nombre", "d.codigo", "d.sigla"), q, conditions, params)
    if activo is not None:
        conditions.append("d.activo = ?")
        params.append(activo)
    return _consulta_paginada(
        db, _COLUMNAS_DEPENDENCIA, "FROM dbo.Dependencias d", conditions, params, "d.nombre ASC", page, limit
    )


def get_dependencias_activas(db: DatabaseConnector) -> List[Dict]:
    query = "SELECT id, codigo, sigla, nombre FROM dbo.Dependencias WHERE activo = 1 ORDER BY nombre ASC"
    return [normalizar_fila(f) for f in db.ejecutar_consulta(query, es_select=True) or []]


def get_dependencia(db: DatabaseConnector, dependencia_id: Any) -> Dict:
    fila = _primera_fila(
        db, f"SELECT {_COLUMNAS_DEPENDENCIA} FROM dbo.Dependencias d WHERE d.id = ?", (_valor_sql(dependencia_id),)
    )
    return _requerir(fila, "la dependencia", dependencia_id)


def create_dependencia(db: DatabaseConnector, data: DependenciaCreate) -> Dict:
    return _insertar(db, "Dependencias", data.model_dump(), "una dependencia", f"el código {data.codigo}")


def update_dependencia(db: DatabaseConnector, dependencia_id: Any, data: DependenciaUpdate) -> Dict:
    return _actualizar(db, "Dependencias", dependencia_id, _cambios(data), "la dependencia", f"el código {data.codigo}")


def delete_dependencia(db: DatabaseConnector, dependencia_id: Any):
    hijas = _contar(
        db, "SELECT COUNT(*) AS total FROM dbo.Subdependencias WHERE dependencia_id = ?", (_valor_sql(dependencia_id),)
    )
    if hijas:
        raise ValueError(f"No se puede eliminar la dependencia: tiene {hijas} subdependencias asociadas.")
    _eliminar(db, "Dependencias", dependencia_id, "la dependencia")


# ------------------------------------------------------------------
# Subdependencias
# ------------------------------------------------------------------

_COLUMNAS_SUBDEPENDENCIA = """
    s.id, s.codigo, s.sigla, s.nombre, s.descripcion, s.dependencia_id, s.activo, s.created_at, s.updated_at,
    d.nombre AS dependencia_nombre,
    (SELECT COUNT(*) FROM dbo.Tramites t WHERE t.subdependencia_id = s.id) AS tramites_count,
    (SELECT COUNT(*) FROM dbo.Opas o WHERE o.subdependencia_id = s.id) AS opas_count
"""
_FROM_SUBDEPENDENCIA = "FROM dbo.Subdependencias s JOIN dbo.Dependencias d ON s.dependencia_id = d.id"


def get_subdependencias(
    db: DatabaseConnector,
    dependencia_id: Any = None,
    q: Optional[str] = None,
    activo: Optional[bool] = None,
    page: int = 1,
    limit: int = 50,
) -> Dict:
    conditions: List[str] = []
    params: List[Any] = []
    if dependencia_id:
        conditions.append("s.dependencia_id = ?")
        params.append(_valor_sql(dependencia_id))
    if q:
        _filtro_texto(("s.nombre", "s.codigo", "s.sigla"), q, conditions, params)
    if activo is not None:
        conditions.append("s.activo = ?")
        params.append(activo)
    return _consulta_paginada(
        db, _COLUMNAS_SUBDEPENDENCIA, _FROM_SUBDEPENDENCIA, conditions, params, "d.nombre ASC, s.nombre ASC", page, limit
    )


def get_subdependencias_por_dependencia(
    db: DatabaseConnector, dependencia_id: Any, solo_activas: bool = True
) -> List[Dict]:
    """Opciones del select en cascada: subdependencias de una dependencia, por nombre."""
    query = "SELECT id, codigo, sigla, nombre, dependencia_id FROM dbo.Subdependencias WHERE dependencia_id = ?"
    if solo_activas:
        query += " AND activo = 1"
    query += " ORDER BY nombre ASC"
    return [normalizar_fila(f) for f in db.ejecutar_consulta(query, (_valor_sql(dependencia_id),), es_select=True) or []]


def get_subdependencia(db: DatabaseConnector, subdependencia_id: Any) -> Dict:
    fila = _primera_fila(
        db, f"SELECT {_COLUMNAS_SUBDEPENDENCIA} {_FROM_SUBDEPENDENCIA} WHERE s.id = ?", (_valor_sql(subdependencia_id),)
    )
    return _requerir(fila, "la subdependencia", subdependencia_id)


def _validar_dependencia_existe(db: DatabaseConnector, dependencia_id: Any):
    if not _contar(db, "SELECT COUNT(*) AS total FROM dbo.Dependencias WHERE id = ?", (_valor_sql(dependencia_id),)):
        raise ValueError(f"La dependencia {dependencia_id} no existe.")


def create_subdependencia(db: DatabaseConnector, data: SubdependenciaCreate) -> Dict:
    _validar_dependencia_existe(db, data.dependencia_id)
    return _insertar(db, "Subdependencias", data.model_dump(), "una subdependencia", f"el código {data.codigo}")


def update_subdependencia(db: DatabaseConnector, subdependencia_id: Any, data: SubdependenciaUpdate) -> Dict:
    cambios = _cambios(data)
    if cambios.get("dependencia_id"):
        _validar_dependencia_existe(db, cambios["dependencia_id"])
    return _actualizar(db, "Subdependencias", subdependencia_id, cambios, "la subdependencia", f"el código {data.codigo}")


def delete_subdependencia(db: DatabaseConnector, subdependencia_id: Any):
    sub_id = _valor_sql(subdependencia_id)
    asociados = _contar(
        db,
        """
        SELECT (SELECT COUNT(*) FROM dbo.Tramites WHERE subdependencia_id = ?)
             + (SELECT COUNT(*) FROM dbo.Opas WHERE subdependencia_id = ?)
             + (SELECT COUNT(*) FROM dbo.Faqs WHERE subdependencia_id = ?) AS total
        """,
        (sub_id, sub_id, sub_id),
    )
    if asociados:
        raise ValueError(f"No se puede eliminar la subdependencia: tiene {asociados} trámites, OPAs o FAQs asociados.")
    _eliminar(db, "Subdependencias", subdependencia_id, "la subdependencia")


# ------------------------------------------------------------------
# Trámites y OPAs
# ------------------------------------------------------------------

_JOIN_UBICACION = """
    JOIN dbo.Subdependencias s ON {alias}.subdependencia_id = s.id
    JOIN dbo.Dependencias d ON s.dependencia_id = d.id
"""

_COLUMNAS_TRAMITE = """
    t.id, t.codigo_unico, t.nombre, t.descripcion, t.formulario, t.tiempo_respuesta, t.tiene_pago,
    t.requisitos, t.visualizacion_suit, t.visualizacion_gov, t.subdependencia_id, t.activo,
    t.created_at, t.updated_at,
    s.nombre AS subdependencia_nombre, d.id AS dependencia_id, d.nombre AS dependencia_nombre
"""
_FROM_TRAMITE = "FROM dbo.Tramites t" + _JOIN_UBICACION.format(alias="t")

_COLUMNAS_OPA = """
    o.id, o.codigo_opa, o.nombre, o.descripcion, o.formulario, o.tiempo_respuesta, o.tiene_pago,
    o.requisitos, o.subdependencia_id, o.activo, o.created_at, o.updated_at,
    s.nombre AS subdependencia_nombre, d.id AS dependencia_id, d.nombre AS dependencia_nombre
"""
_FROM_OPA = "FROM dbo.Opas o" + _JOIN_UBICACION.format(alias="o")


def _filtros_procedimiento(
    alias: str,
    columnas_texto: Iterable[str],
    q: Optional[str],
    subdependencia_id: Any,
    dependencia_id: Any,
    tiene_pago: Optional[bool],
    activo: Optional[bool],
):
    conditions: List[str] = []
    params: List[Any] = []
    if q:
        _filtro_texto(columnas_texto, q, conditions, params)
    if subdependencia_id:
        conditions.append(f"{alias}.subdependencia_id = ?")
        params.append(_valor_sql(subdependencia_id))
    if dependencia_id:
        conditions.append("s.dependencia_id = ?")
        params.append(_valor_sql(dependencia_id))
    if tiene_pago is not None:
        conditions.append(f"{alias}.tiene_pago = ?")
        params.append(tiene_pago)
    if activo is not None:
        conditions.append(f"{alias}.activo = ?")
        params.append(activo)
    return conditions, params


def get_tramites(
    db: DatabaseConnector,
    q: Optional[str] = None,
    subdependencia_id: Any = None,
    dependencia_id: Any = None,
    tiene_pago: Optional[bool] = None,
    activo: Optional[bool] = None,
    page: int = 1,
    limit: int = 20,
) -> Dict:
    conditions, params = _filtros_procedimiento(
        "t", ("t.nombre", "t.formulario", "t.codigo_unico"), q, subdependencia_id, dependencia_id, tiene_pago, activo
    )
    return _consulta_paginada(db, _COLUMNAS_TRAMITE, _FROM_TRAMITE, conditions, params, "t.nombre ASC", page, limit)


def get_tramite(db: DatabaseConnector, tramite_id: Any) -> Dict:
    fila = _primera_fila(db, f"SELECT {_COLUMNAS_TRAMITE} {_FROM_TRAMITE} WHERE t.id = ?", (_valor_sql(tramite_id),))
    return _requerir(fila, "el trámite", tramite_id)


def create_tramite(db: DatabaseConnector, data: TramiteCreate) -> Dict:
    return _insertar(db, "Tramites", data.model_dump(), "un trámite", f"el código {data.codigo_unico}")


def update_tramite(db: DatabaseConnector, tramite_id: Any, data: TramiteUpdate) -> Dict:
    return _actualizar(db, "Tramites", tramite_id, _cambios(data), "el trámite", f"el código {data.codigo_unico}")


def delete_tramite(db: DatabaseConnector, tramite_id: Any):
    _eliminar(db, "Tramites", tramite_id, "el trámite")


def get_opas(
    db: DatabaseConnector,
    q: Optional[str] = None,
    subdependencia_id: Any = None,
    dependencia_id: Any = None,
    tiene_pago: Optional[bool] = None,
    activo: Optional[bool] = None,
    page: int = 1,
    limit: int = 20,
) -> Dict:
    conditions, params = _filtros_procedimiento(
        "o", ("o.nombre", "o.descripcion", "o.codigo_opa"), q, subdependencia_id, dependencia_id, tiene_pago, activo
    )
    return _consulta_paginada(db, _COLUMNAS_OPA, _FROM_OPA, conditions, params, "o.nombre ASC", page, limit)


def get_opa(db: DatabaseConnector, opa_id: Any) -> Dict:
    fila = _primera_fila(db, f"SELECT {_COLUMNAS_OPA} {_FROM_OPA} WHERE o.id = ?", (_valor_sql(opa_id),))
    return _requerir(fila, "la OPA", opa_id)


def create_opa(db: DatabaseConnector, data: OpaCreate) -> Dict:
    return _insertar(db, "Opas", data.model_dump(), "una OPA", f"el código {data.codigo_opa}")


def update_opa(db: DatabaseConnector, opa_id: Any, data: OpaUpdate) -> Dict:
    cambios = _cambios(data)
    actual = get_opa(db, opa_id)
    resultante = {**actual, **cambios}
    if resultante.get("activo") and (not resultante.get("requisitos") or not resultante.get("tiempo_respuesta")):
        raise ValueError("Una OPA activa debe tener requisitos y tiempo de respuesta.")
    return _actualizar(db, "Opas", opa_id, cambios, "la OPA", f"el código {data.codigo_opa}")


def delete_opa(db: DatabaseConnector, opa_id: Any):
    _eliminar(db, "Opas", opa_id, "la OPA")


# ------------------------------------------------------------------
# Temas
# ------------------------------------------------------------------

_COLUMNAS_TEMA = """
    te.id, te.nombre, te.descripcion, te.subdependencia_id, te.orden, te.activo, te.created_at, te.updated_at,
    s.nombre AS subdependencia_nombre, s.dependencia_id,
    (SELECT COUNT(*) FROM dbo.Faqs f WHERE f.tema_id = te.id) AS faqs_count
"""
_FROM_TEMA = "FROM dbo.Temas te JOIN dbo.Subdependencias s ON te.subdependencia_id = s.id"


def get_temas(db: DatabaseConnector, subdependencia_id: Any = None, activo: Optional[bool] = None) -> List[Dict]:
    conditions: List[str] = []
    params: List[Any] = []
    if subdependencia_id:
        conditions.append("te.subdependencia_id = ?")
        params.append(_valor_sql(subdependencia_id))
    if activo is not None:
        conditions.append("te.activo = ?")
        params.append(activo)
    where_clause = " WHERE " + " AND ".join(conditions) if conditions else ""
    query = f"SELECT {_COLUMNAS_TEMA} {_FROM_TEMA} {where_clause} ORDER BY te.orden ASC, te.nombre ASC"
    return [normalizar_fila(f) for f in db.ejecutar_consulta(query, tuple(params), es_select=True) or []]


def get_temas_por_subdependencia(db: DatabaseConnector, subdependencia_id: Any) -> List[Dict]:
    return get_temas(db, subdependencia_id=subdependencia_id, activo=True)


def get_tema(db: DatabaseConnector, tema_id: Any) -> Dict:
    fila = _primera_fila(db, f"SELECT {_COLUMNAS_TEMA} {_FROM_TEMA} WHERE te.id = ?", (_valor_sql(tema_id),))
    return _requerir(fila, "el tema", tema_id)


def create_tema(db: DatabaseConnector, data: TemaCreate) -> Dict:
    return _insertar(db, "Temas", data.model_dump(), "un tema", f"el nombre {data.nombre}")


def update_tema(db: DatabaseConnector, tema_id: Any, data: TemaUpdate) -> Dict:
    return _actualizar(db, "Temas", tema_id, _cambios(data), "el tema", f"el nombre {data.nombre}")


def delete_tema(db: DatabaseConnector, tema_id: Any):
    faqs = _contar(db, "SELECT COUNT(*) AS total FROM dbo.Faqs WHERE tema_id = ?", (_valor_sql(tema_id),))
    if faqs:
        raise ValueError(f"No se puede eliminar el tema: tiene {faqs} preguntas frecuentes asociadas.")
    _eliminar(db, "Temas", tema_id, "el tema")


# ------------------------------------------------------------------
# FAQs
# ------------------------------------------------------------------

_COLUMNAS_FAQ = """
    f.id, f.pregunta, f.respuesta, f.palabras_clave, f.tema, f.tema_id, f.dependencia_id, f.subdependencia_id,
    f.orden, f.activo, f.created_at, f.updated_at,
    d.nombre AS dependencia_nombre, s.nombre AS subdependencia_nombre, te.nombre AS tema_nombre
"""
_FROM_FAQ = """
    FROM dbo.Faqs f
    LEFT JOIN dbo.Dependencias d ON f.dependencia_id = d.id
    LEFT JOIN dbo.Subdependencias s ON f.subdependencia_id = s.id
    LEFT JOIN dbo.Temas te ON f.tema_id = te.id
"""


def get_faqs(
    db: DatabaseConnector,
    q: Optional[str] = None,
    dependencia_id: Any = None,
    subdependencia_id: Any = None,
    tema_id: Any = None,
    activo: Optional[bool] = None,
    page: int = 1,
    limit: int = 20,
) -> Dict:
    conditions: List[str] = []
    params: List[Any] = []
    if q:
        _filtro_texto(("f.pregunta", "f.respuesta"), q, conditions, params)
    for columna, valor in (
        ("f.dependencia_id", dependencia_id),
        ("f.subdependencia_id", subdependencia_id),
        ("f.tema_id", tema_id),
    ):
        if valor:
            conditions.append(f"{columna} = ?")
            params.append(_valor_sql(valor))
    if activo is not None:
        conditions.append("f.activo = ?")
        params.append(activo)
    return _consulta_paginada(db, _COLUMNAS_FAQ, _FROM_FAQ, conditions, params, "f.created_at DESC", page, limit)


def get_faq(db: DatabaseConnector, faq_id: Any) -> Dict:
    fila = _primera_fila(db, f"SELECT {_COLUMNAS_FAQ} {_FROM_FAQ} WHERE f.id = ?", (_valor_sql(faq_id),))
    return _requerir(fila, "la pregunta frecuente", faq_id)


def _validar_ubicacion_faq(db: DatabaseConnector, dependencia_id: Any, subdependencia_id: Any):
    if not subdependencia_id:
        _validar_dependencia_existe(db, dependencia_id)
        return
    fila = _primera_fila(
        db, "SELECT dependencia_id FROM dbo.Subdependencias WHERE id = ?", (_valor_sql(subdependencia_id),)
    )
    if fila is None:
        raise ValueError(f"La subdependencia {subdependencia_id} no existe.")
    if str(fila["dependencia_id"]).lower() != str(dependencia_id).lower():
        raise ValueError("La subdependencia seleccionada no pertenece a la dependencia indicada.")


def create_faq(db: DatabaseConnector, data: FaqCreate) -> Dict:
    _validar_ubicacion_faq(db, data.dependencia_id, data.subdependencia_id)
    return _insertar(db, "Faqs", data.model_dump(), "una pregunta frecuente", "esa pregunta")


def update_faq(db: DatabaseConnector, faq_id: Any, data: FaqUpdate) -> Dict:
    cambios = _cambios(data)
    if "dependencia_id" in cambios or "subdependencia_id" in cambios:
        actual = get_faq(db, faq_id)
        resultante = {**actual, **cambios}
        _validar_ubicacion_faq(db, resultante.get("dependencia_id"), resultante.get("subdependencia_id"))
    return _actualizar(db, "Faqs", faq_id, cambios, "la pregunta frecuente")


def delete_faq(db: DatabaseConnector, faq_id: Any):
    _eliminar(db, "Faqs", faq_id, "la pregunta frecuente")


def _slug(texto: str) -> str:
    return re.sub(r"\s+", "-", normalize_for_search(texto)) or "general"


def get_faq_hierarchy(db: DatabaseConnector) -> Dict:
    """
    Agrupa las FAQs activas en dependencia -> subdependencia -> tema.

    Las FAQs sin dependencia o sin subdependencia no aparecen en la jerarquía.
    Cada nivel se ordena por nombre y lleva el conteo de FAQs que contiene.
    """
    query = f"SELECT {_COLUMNAS_FAQ} {_FROM_FAQ} WHERE f.activo = 1"
    filas = [normalizar_fila(f) for f in db.ejecutar_consulta(query, es_select=True) or []]

    dependencias: Dict[str, Dict] = {}
    total = 0
    for faq in filas:
        dep_id, sub_id = faq.get("dependencia_id"), faq.get("subdependencia_id")
        if not dep_id or not sub_id or not faq.get("dependencia_nombre") or not faq.get("subdependencia_nombre"):
            continue

        dep = dependencias.setdefault(
            dep_id, {"id": dep_id, "nombre": faq["dependencia_nombre"], "count": 0, "subdependencias": {}}
        )
        sub = dep["subdependencias"].setdefault(
            sub_id, {"id": sub_id, "nombre": faq["subdependencia_nombre"], "count": 0, "temas": {}}
        )
        nombre_tema = faq.get("tema_nombre") or faq.get("tema") or TEMA_SIN_CATEGORIA
        tema_key = f"tema-{sub_id}-{_slug(nombre_tema)}"
        tema = sub["temas"].setdefault(
            tema_key,
            {
                "id": tema_key,
                "tema_id": faq.get("tema_id"),
                "nombre": nombre_tema,
                "descripcion": f"Preguntas sobre {nombre_tema}",
                "count": 0,
                "faqs": [],
            },
        )
        tema["faqs"].append(
            {
                "id": faq["id"],
                "pregunta": faq["pregunta"],
                "respuesta": faq["respuesta"],
                "palabras_clave": faq.get("palabras_clave", []),
                "orden": faq.get("orden") or 0,
            }
        )
        tema["count"] += 1
        sub["count"] += 1
        dep["count"] += 1
        total += 1

    def ordenar(nodos: Iterable[Dict]) -> List[Dict]:
        return sorted(nodos, key=lambda n: normalize_for_search(n["nombre"]))

    resultado = []
    for dep in ordenar(dependencias.values()):
        subs = []
        for sub in ordenar(dep["subdependencias"].values()):
            temas = ordenar(sub["temas"].values())
            for tema in temas:
                tema["faqs"].sort(key=lambda f: (f["orden"], normalize_for_search(f["pregunta"])))
            subs.append({**sub, "temas": temas})
        resultado.append({**dep, "subdependencias": subs})

    return {"dependencias": resultado, "total_faqs": total}


# ------------------------------------------------------------------
# Métricas
# ------------------------------------------------------------------

_CONTEOS_METRICAS: Dict[str, str] = {
    "dependencias": "SELECT COUNT(*) AS total FROM dbo.Dependencias",
    "subdependencias": "SELECT COUNT(*) AS total FROM dbo.Subdependencias",
    "tramites": "SELECT COUNT(*) AS total FROM dbo.Tramites",
    "opas": "SELECT COUNT(*) AS total FROM dbo.Opas",
    "faqs": "SELECT COUNT(*) AS total FROM dbo.Faqs",
    "tramitesActivos": "SELECT COUNT(*) AS total FROM dbo.Tramites WHERE activo = 1",
    "opasActivas": "SELECT COUNT(*) AS total FROM dbo.Opas WHERE activo = 1",
    "faqsActivas": "SELECT COUNT(*) AS total FROM dbo.Faqs WHERE activo = 1",
}


def contar_tolerante(db: DatabaseConnector, nombre: str, query: str) -> int:
    """Un conteo que falla se registra y cuenta como 0."""
    try:
        return _contar(db, query)
    except Exception as e:
        logger.error(f"No se pudo contar '{nombre}': {e}")
        return 0


def get_system_metrics(db: DatabaseConnector) -> Dict:
    metricas: Dict[str, Any] = {nombre: contar_tolerante(db, nombre, query) for nombre, query in _CONTEOS_METRICAS.items()}
    # La gestión de usuarios vive fuera del portal.
    metricas["usuarios"] = 0
    metricas["lastUpdated"] = datetime.now(timezone.utc).isoformat()
    return metricas


def buscar_id_por_columna(db: DatabaseConnector, tabla: str, columna: str, valor: Any) -> Optional[str]:
    """Id del primer registro de `tabla` cuyo `columna` coincide con `valor` (clave natural)."""
    fila = _primera_fila(db, f"SELECT TOP 1 id FROM dbo.{tabla} WHERE {columna} = ?", (_valor_sql(valor),))
    return fila["id"] if fila else None
