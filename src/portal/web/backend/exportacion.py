# src/portal/web/backend/exportacion.py
"""
Exportación e importación de los catálogos (trámites, OPAs y preguntas
frecuentes) en CSV o JSON.

En CSV las listas (requisitos, palabras clave) viajan unidas por "|" y los
booleanos como "true"/"false". La importación valida cada registro con los
mismos esquemas que los formularios del admin y busca el registro existente
por su clave natural: código único, código OPA o id/pregunta de la FAQ.
"""

import csv
import io
import json
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

import pyodbc
from pydantic import BaseModel

from portal.common.database import DatabaseConnector

from . import database as db_service
from .schemas import FaqCreate, FaqUpdate, OpaCreate, OpaUpdate, TramiteCreate, TramiteUpdate

logger = logging.getLogger(__name__)

FORMATOS = ("csv", "json")
ESTRATEGIAS = ("update", "skip", "create")
SEPARADOR_LISTAS = "|"
TAMANO_PAGINA = 500

_VERDADEROS = {"true", "1", "si", "sí", "yes"}

CATALOGOS: Dict[str, Dict[str, Any]] = {
    "tramites": {
        "tabla": "Tramites",
        "listar": "get_tramites",
        "crear": "create_tramite",
        "actualizar": "update_tramite",
        "esquema": TramiteCreate,
        "esquema_update": TramiteUpdate,
        "clave": "codigo_unico",
        "columnas": [
            "id", "codigo_unico", "nombre", "descripcion", "formulario", "tiempo_respuesta", "tiene_pago",
            "requisitos", "visualizacion_suit", "visualizacion_gov", "dependencia_id", "dependencia_nombre",
            "subdependencia_id", "subdependencia_nombre", "activo", "created_at", "updated_at",
        ],
        "listas": ("requisitos",),
        "booleanos": ("tiene_pago", "visualizacion_suit", "visualizacion_gov", "activo"),
    },
    "opas": {
        "tabla": "Opas",
        "listar": "get_opas",
        "crear": "create_opa",
        "actualizar": "update_opa",
        "esquema": OpaCreate,
        "esquema_update": OpaUpdate,
        "clave": "codigo_opa",
        "columnas": [
            "id", "codigo_opa", "nombre", "descripcion", "formulario", "tiempo_respuesta", "tiene_pago",
            "requisitos", "dependencia_id", "dependencia_nombre", "subdependencia_id", "subdependencia_nombre",
            "activo", "created_at", "updated_at",
        ],
        "listas": ("requisitos",),
        "booleanos": ("tiene_pago", "activo"),
    },
    "faqs": {
        "tabla": "Faqs",
        "listar": "get_faqs",
        "crear": "create_faq",
        "actualizar": "update_faq",
        "esquema": FaqCreate,
        "esquema_update": FaqUpdate,
        "clave": "pregunta",
        "columnas": [
            "id", "pregunta", "respuesta", "dependencia_id", "dependencia_nombre", "subdependencia_id",
            "subdependencia_nombre", "tema", "tema_id", "palabras_clave", "orden", "activo", "created_at",
            "updated_at",
        ],
        "listas": ("palabras_clave",),
        "booleanos": ("activo",),
    },
}


def _catalogo(recurso: str) -> Dict[str, Any]:
    try:
        return CATALOGOS[recurso]
    except KeyError:
        raise ValueError(f"El catálogo '{recurso}' no admite exportación.") from None


def _validar_formato(formato: str):
    if formato not in FORMATOS:
        raise ValueError(f"Formato no soportado: {formato}. Use csv o json.")


# ------------------------------------------------------------------
# Exportación
# ------------------------------------------------------------------


def obtener_registros(db: DatabaseConnector, recurso: str) -> List[Dict[str, Any]]:
    """Todos los registros del catálogo, activos e inactivos, recorriendo las páginas."""
    listar = getattr(db_service, _catalogo(recurso)["listar"])
    registros: List[Dict[str, Any]] = []
    page = 1
    while True:
        resultado = listar(db, page=page, limit=TAMANO_PAGINA)
        registros.extend(resultado["data"])
        if page >= resultado["pagination"]["totalPages"]:
            return registros
        page += 1


def _valor_exportable(valor: Any) -> Any:
    if isinstance(valor, (datetime, date)):
        return valor.isoformat()
    if isinstance(valor, UUID):
        return str(valor)
    return valor


def _celda_csv(valor: Any) -> str:
    if valor is None:
        return ""
    if isinstance(valor, bool):
        return "true" if valor else "false"
    if isinstance(valor, list):
        return SEPARADOR_LISTAS.join(str(v) for v in valor)
    return str(_valor_exportable(valor))


def serializar_registros(recurso: str, registros: List[Dict[str, Any]], formato: str) -> str:
    _validar_formato(formato)
    columnas = _catalogo(recurso)["columnas"]

    if formato == "json":
        filas = [{c: _valor_exportable(r.get(c)) for c in columnas} for r in registros]
        return json.dumps(filas, ensure_ascii=False, indent=2, default=str)

    salida = io.StringIO()
    writer = csv.DictWriter(salida, fieldnames=columnas, extrasaction="ignore")
    writer.writeheader()
    for registro in registros:
        writer.writerow({c: _celda_csv(registro.get(c)) for c in columnas})
    return salida.getvalue()


def exportar_catalogo(db: DatabaseConnector, recurso: str, formato: str = "csv") -> str:
    _validar_formato(formato)
    registros = obtener_registros(db, recurso)
    logger.info(f"Exportando {len(registros)} registros de {recurso} en {formato}.")
    return serializar_registros(recurso, registros, formato)


# ------------------------------------------------------------------
# Importación
# ------------------------------------------------------------------


def _convertir_celda(columna: str, valor: Optional[str], catalogo: Dict[str, Any]) -> Any:
    if valor is None:
        return None
    valor = valor.strip()
    if columna in catalogo["listas"]:
        return [v.strip() for v in valor.split(SEPARADOR_LISTAS) if v.strip()]
    if not valor:
        return None
    if columna in catalogo["booleanos"]:
        return valor.lower() in _VERDADEROS
    return valor


def parsear_registros(recurso: str, formato: str, contenido: str) -> List[Dict[str, Any]]:
    """Convierte el archivo subido en una lista de registros. Falla con ValueError si no es legible."""
    _validar_formato(formato)
    catalogo = _catalogo(recurso)
    contenido = (contenido or "").lstrip("\ufeff").strip()
    if not contenido:
        raise ValueError("El archivo está vacío.")

    if formato == "json":
        try:
            datos = json.loads(contenido)
        except json.JSONDecodeError as e:
            raise ValueError(f"JSON inválido: {e.msg} (línea {e.lineno}).") from e
        if not isinstance(datos, list) or not all(isinstance(d, dict) for d in datos):
            raise ValueError("El contenido JSON debe ser una lista de registros.")
        return datos

    reader = csv.DictReader(io.StringIO(contenido))
    if not reader.fieldnames or catalogo["clave"] not in reader.fieldnames:
        raise ValueError(f"El CSV debe incluir la columna '{catalogo['clave']}'.")
    return [{c: _convertir_celda(c, v, catalogo) for c, v in fila.items() if c} for fila in reader]


def _datos_para(esquema: type, registro: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in registro.items() if k in esquema.model_fields and v is not None}


def _buscar_existente(db: DatabaseConnector, recurso: str, registro: Dict[str, Any]) -> Optional[str]:
    catalogo = CATALOGOS[recurso]
    if recurso == "faqs" and registro.get("id"):
        existente = db_service.buscar_id_por_columna(db, catalogo["tabla"], "id", registro["id"])
        if existente:
            return existente
    clave = registro.get(catalogo["clave"])
    if not clave:
        return None
    return db_service.buscar_id_por_columna(db, catalogo["tabla"], catalogo["clave"], str(clave).strip())


def _primer_error(e: Exception) -> str:
    errores = getattr(e, "errors", None)
    if callable(errores):
        detalle = errores()
        if detalle:
            campo = ".".join(str(p) for p in detalle[0].get("loc", ()))
            mensaje = detalle[0].get("msg", str(e))
            return f"{campo}: {mensaje}" if campo else mensaje
    return str(e)


def importar_catalogo(
    db: DatabaseConnector, recurso: str, registros: List[Dict[str, Any]], estrategia: str = "update"
) -> Dict[str, Any]:
    """
    Crea o actualiza los registros del catálogo.

    Estrategias cuando el registro ya existe:
        - update: se actualiza con los valores del archivo.
        - skip: se deja como está.
        - create: no se busca el existente; se intenta crear siempre.

    Un registro inválido no detiene la importación: se anota en `errors`
    y `success` queda en False.
    """
    if estrategia not in ESTRATEGIAS:
        raise ValueError(f"Estrategia no soportada: {estrategia}.")
    catalogo = _catalogo(recurso)
    crear = getattr(db_service, catalogo["crear"])
    actualizar = getattr(db_service, catalogo["actualizar"])

    creados = actualizados = omitidos = 0
    errores: List[str] = []

    for numero, registro in enumerate(registros, start=1):
        etiqueta = registro.get(catalogo["clave"]) or f"registro {numero}"
        try:
            existente = _buscar_existente(db, recurso, registro) if estrategia != "create" else None
            if existente and estrategia == "skip":
                omitidos += 1
                continue
            if existente:
                datos: BaseModel = catalogo["esquema_update"](**_datos_para(catalogo["esquema_update"], registro))
                actualizar(db, existente, datos)
                actualizados += 1
            else:
                crear(db, catalogo["esquema"](**_datos_para(catalogo["esquema"], registro)))
                creados += 1
        except (ValueError, pyodbc.Error) as e:
            logger.warning(f"Importación de {recurso}: {etiqueta} rechazado: {e}")
            errores.append(f"{etiqueta}: {_primer_error(e)}")

    mensaje = f"Importación completada: {creados} creados, {actualizados} actualizados, {omitidos} omitidos"
    if errores:
        mensaje += f". {len(errores)} errores encontrados."
    logger.info(f"{recurso}: {mensaje}")
    return {
        "success": not errores,
        "message": mensaje,
        "created": creados,
        "updated": actualizados,
        "skipped": omitidos,
        "errors": errores,
    }
