# src/portal/web/backend/search.py
"""
Búsqueda unificada sobre trámites, OPAs y preguntas frecuentes.

Cada fuente se consulta en paralelo (hilos del threadpool) y se normaliza a un
SearchResult común. El filtrado por texto y el orden por relevancia se hacen
en Python para ignorar tildes y mayúsculas de forma uniforme; la paginación se
aplica después de ordenar.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from portal.common.config_manager import ConfigManager
from portal.common.database import DatabaseConnector
from portal.common.text_utils import search_matches

from . import database as db_service
from .cache import cached
from .schemas import SearchResult

logger = logging.getLogger(__name__)

_search_config = ConfigManager.get_search_config()
CACHE_TTL = _search_config["cache_ttl_seg"]
LIMITE_FUENTE = _search_config["limite_fuente"]

TIPOS = ("tramite", "opa", "faq")
TIPOS_PAGO = ("gratuito", "con_pago")


# ------------------------------------------------------------------
# Normalización
# ------------------------------------------------------------------


def _tags(*valores: Optional[str]) -> List[str]:
    return [v for v in valores if v]


def _lower(valor: Optional[str]) -> str:
    return (valor or "").lower()


def normalizar_tramite(tramite: Dict[str, Any]) -> SearchResult:
    subdependencia = tramite.get("subdependencia_nombre")
    return {
        "id": tramite["id"],
        "tipo": "tramite",
        "titulo": tramite["nombre"],
        "nombre": tramite["nombre"],
        "descripcion": tramite.get("descripcion") or tramite.get("formulario") or "Trámite municipal",
        "codigo": tramite.get("codigo_unico"),
        "dependencia": tramite.get("dependencia_nombre") or "Sin dependencia",
        "subdependencia": subdependencia,
        "categoria": None,
        "tiempo_estimado": tramite.get("tiempo_respuesta"),
        "tiene_pago": bool(tramite.get("tiene_pago")),
        "formulario": tramite.get("formulario"),
        "estado": "activo" if tramite.get("activo") else "inactivo",
        "tags": _tags("tramite", "pago" if tramite.get("tiene_pago") else "gratuito", _lower(subdependencia)),
        "vistas": 0,
        "created_at": tramite.get("created_at"),
        "original_data": {
            "requisitos": tramite.get("requisitos") or [],
            "visualizacion_suit": bool(tramite.get("visualizacion_suit")),
            "visualizacion_gov": bool(tramite.get("visualizacion_gov")),
            "subdependencia_id": tramite.get("subdependencia_id"),
            "dependencia_id": tramite.get("dependencia_id"),
        },
    }


def normalizar_opa(opa: Dict[str, Any]) -> SearchResult:
    subdependencia = opa.get("subdependencia_nombre")
    dependencia = opa.get("dependencia_nombre") or "Sin dependencia"
    descripcion = opa.get("descripcion") or (
        f"Servicio administrativo para {_lower(opa['nombre'])}. Disponible en {subdependencia or dependencia}."
    )
    return {
        "id": opa["id"],
        "tipo": "opa",
        "titulo": opa["nombre"],
        "nombre": opa["nombre"],
        "descripcion": descripcion,
        "codigo": opa.get("codigo_opa"),
        "dependencia": dependencia,
        "subdependencia": subdependencia,
        "categoria": None,
        "tiempo_estimado": opa.get("tiempo_respuesta"),
        "tiene_pago": bool(opa.get("tiene_pago")),
        "formulario": opa.get("formulario"),
        "estado": "activo" if opa.get("activo") else "inactivo",
        "tags": _tags("opa", "pago" if opa.get("tiene_pago") else "gratuito", "autorizacion", _lower(subdependencia)),
        "vistas": 0,
        "created_at": opa.get("created_at"),
        "original_data": {
            "requisitos": opa.get("requisitos") or [],
            "subdependencia_id": opa.get("subdependencia_id"),
            "dependencia_id": opa.get("dependencia_id"),
        },
    }


def normalizar_faq(faq: Dict[str, Any]) -> SearchResult:
    tema = faq.get("tema_nombre") or faq.get("tema")
    dependencia = faq.get("dependencia_nombre") or "Sin dependencia"
    return {
        "id": faq["id"],
        "tipo": "faq",
        "titulo": faq["pregunta"],
        "nombre": faq["pregunta"],
        "descripcion": faq["respuesta"],
        "codigo": f"FAQ-{str(faq['id'])[:8]}",
        "dependencia": dependencia,
        "subdependencia": faq.get("subdependencia_nombre"),
        "categoria": tema,
        "tiempo_estimado": None,
        "tiene_pago": None,
        "formulario": None,
        "estado": "activo" if faq.get("activo") else "inactivo",
        "tags": _tags("faq", "pregunta", "ayuda", _lower(tema), _lower(faq.get("dependencia_nombre"))),
        "vistas": 0,
        "created_at": faq.get("created_at"),
        "original_data": {
            "palabras_clave": faq.get("palabras_clave") or [],
            "tema_id": faq.get("tema_id"),
            "dependencia_id": faq.get("dependencia_id"),
            "subdependencia_id": faq.get("subdependencia_id"),
        },
    }


# ------------------------------------------------------------------
# Consulta de fuentes
# ------------------------------------------------------------------


async def _fuente_segura(nombre: str, func: Callable[..., Dict], *args, **kwargs) -> List[Dict]:
    """Una fuente que falla no tumba la búsqueda: se registra y aporta cero resultados."""
    try:
        resultado = await asyncio.to_thread(func, *args, **kwargs)
        return resultado.get("data", [])
    except Exception as e:
        logger.error(f"Error consultando la fuente '{nombre}' para la búsqueda unificada: {e}", exc_info=True)
        return []


async def _obtener_resultados(
    db: DatabaseConnector,
    fuentes: Sequence[str],
    subdependencia_id: Optional[str],
    tipo_pago: Optional[str],
    incluir_inactivos: bool,
) -> List[SearchResult]:
    activo = None if incluir_inactivos else True
    tiene_pago = {"gratuito": False, "con_pago": True}.get(tipo_pago) if tipo_pago else None

    tareas = {}
    if "tramite" in fuentes:
        tareas["tramite"] = _fuente_segura(
            "tramites", db_service.get_tramites, db,
            subdependencia_id=subdependencia_id, tiene_pago=tiene_pago, activo=activo, page=1, limit=LIMITE_FUENTE,
        )  # fmt: skip
    if "opa" in fuentes:
        tareas["opa"] = _fuente_segura(
            "opas", db_service.get_opas, db,
            subdependencia_id=subdependencia_id, activo=activo, page=1, limit=LIMITE_FUENTE,
        )  # fmt: skip
    if "faq" in fuentes:
        tareas["faq"] = _fuente_segura("faqs", db_service.get_faqs, db, activo=activo, page=1, limit=LIMITE_FUENTE)

    filas_por_fuente = dict(zip(tareas, await asyncio.gather(*tareas.values())))
    normalizadores = {"tramite": normalizar_tramite, "opa": normalizar_opa, "faq": normalizar_faq}

    resultados: List[SearchResult] = []
    for fuente, filas in filas_por_fuente.items():
        resultados.extend(normalizadores[fuente](fila) for fila in filas)
    return resultados


# ------------------------------------------------------------------
# Relevancia y orden
# ------------------------------------------------------------------


def _marca_tiempo(valor: Any) -> float:
    if isinstance(valor, datetime):
        return valor.timestamp()
    if isinstance(valor, str):
        try:
            return datetime.fromisoformat(valor.replace("Z", "+00:00")).timestamp()
        except ValueError:
            return 0.0
    return 0.0


def coincide_con_consulta(resultado: SearchResult, query: str) -> bool:
    campos = (resultado["nombre"], resultado["descripcion"], resultado.get("codigo"), " ".join(resultado["tags"]))
    return any(search_matches(query, campo) for campo in campos)


def ordenar_resultados(resultados: List[SearchResult], query: Optional[str]) -> List[SearchResult]:
    """
    Sin consulta: más recientes primero. Con consulta: primero los que coinciden
    en el nombre, luego en el código y después el resto, cada grupo por fecha.
    """
    por_fecha = sorted(resultados, key=lambda r: _marca_tiempo(r.get("created_at")), reverse=True)
    if not query:
        return por_fecha

    def rango(resultado: SearchResult) -> int:
        if search_matches(query, resultado["nombre"]):
            return 0
        if search_matches(query, resultado.get("codigo")):
            return 1
        return 2

    return sorted(por_fecha, key=rango)


def _filtrar(
    resultados: List[SearchResult], query: Optional[str], dependencia: Optional[str]
) -> List[SearchResult]:
    if query:
        resultados = [r for r in resultados if coincide_con_consulta(r, query)]
    if dependencia:
        resultados = [r for r in resultados if search_matches(dependencia, r["dependencia"])]
    return resultados


def _paginar(resultados: List[SearchResult], page: int, limit: int) -> Dict[str, Any]:
    inicio = (page - 1) * limit
    return {
        "data": resultados[inicio : inicio + limit],
        "pagination": db_service.construir_paginacion(len(resultados), page, limit),
        "success": True,
    }


async def _buscar(
    db: DatabaseConnector,
    fuentes: Sequence[str],
    query: Optional[str],
    dependencia: Optional[str],
    subdependencia_id: Optional[str],
    tipo_pago: Optional[str],
    page: int,
    limit: int,
    incluir_inactivos: bool,
) -> Dict[str, Any]:
    query = (query or "").strip() or None
    resultados = await _obtener_resultados(db, fuentes, subdependencia_id, tipo_pago, incluir_inactivos)
    resultados = ordenar_resultados(_filtrar(resultados, query, dependencia), query)
    return _paginar(resultados, page, limit)


# ------------------------------------------------------------------
# Operaciones públicas
# ------------------------------------------------------------------


@cached(ttl=CACHE_TTL)
async def buscar_unificado(
    db: DatabaseConnector,
    query: Optional[str] = None,
    tipo: Optional[str] = None,
    dependencia: Optional[str] = None,
    subdependencia_id: Optional[str] = None,
    tipo_pago: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    incluir_inactivos: bool = False,
) -> Dict[str, Any]:
    """
    Busca en trámites, OPAs y FAQs con filtros combinables.

    - tipo restringe las fuentes consultadas.
    - subdependencia_id filtra trámites y OPAs; tipo_pago solo filtra trámites.
      Las demás fuentes se consultan igual, sin esos filtros.
    - dependencia se compara por nombre, sin tildes, sobre todas las fuentes.
    """
    if tipo and tipo not in TIPOS:
        raise ValueError(f"Tipo de búsqueda inválido: {tipo}. Valores permitidos: {', '.join(TIPOS)}.")
    if tipo_pago and tipo_pago not in TIPOS_PAGO:
        raise ValueError(f"Tipo de pago inválido: {tipo_pago}. Valores permitidos: {', '.join(TIPOS_PAGO)}.")

    fuentes = (tipo,) if tipo else TIPOS

    try:
        return await _buscar(
            db, fuentes, query, dependencia, subdependencia_id, tipo_pago, page, limit, incluir_inactivos
        )
    except Exception as e:
        logger.error(f"Error en la búsqueda unificada: {e}", exc_info=True)
        raise RuntimeError(f"Falló la búsqueda unificada: {e}") from e


async def buscar_tramites_y_opas(
    db: DatabaseConnector,
    query: Optional[str] = None,
    dependencia: Optional[str] = None,
    subdependencia_id: Optional[str] = None,
    tipo_pago: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Dict[str, Any]:
    """Variante sin FAQs para el buscador de trámites; nunca lanza excepción."""
    try:
        return await _buscar(
            db, ("tramite", "opa"), query, dependencia, subdependencia_id, tipo_pago, page, limit, False
        )
    except Exception as e:
        logger.error(f"Error buscando trámites y OPAs: {e}", exc_info=True)
        return {
            "data": [],
            "pagination": db_service.construir_paginacion(0, page, limit),
            "success": False,
            "error": str(e),
        }


async def obtener_sugerencias(db: DatabaseConnector, query: Optional[str], limit: int = 5) -> List[str]:
    """Nombres y etiquetas que contienen la consulta, sin repetir."""
    if not query or len(query.strip()) < 2:
        return []
    try:
        respuesta = await buscar_unificado(db, query=query.strip(), page=1, limit=20)
    except Exception as e:
        logger.warning(f"No se pudieron obtener sugerencias para '{query}': {e}")
        return []

    sugerencias: List[str] = []
    for resultado in respuesta["data"]:
        candidatos = [resultado["nombre"]] + [t for t in resultado["tags"] if len(t) > 2]
        for candidato in candidatos:
            if search_matches(query, candidato) and candidato not in sugerencias:
                sugerencias.append(candidato)
    return sugerencias[:limit]


@cached(ttl=CACHE_TTL)
def obtener_estadisticas_busqueda(db: DatabaseConnector) -> Dict[str, int]:
    conteos = {
        "totalTramites": "SELECT COUNT(*) AS total FROM dbo.Tramites",
        "totalOpas": "SELECT COUNT(*) AS total FROM dbo.Opas",
        "totalFaqs": "SELECT COUNT(*) AS total FROM dbo.Faqs",
        "totalActive": """
            SELECT (SELECT COUNT(*) FROM dbo.Tramites WHERE activo = 1)
                 + (SELECT COUNT(*) FROM dbo.Opas WHERE activo = 1)
                 + (SELECT COUNT(*) FROM dbo.Faqs WHERE activo = 1) AS total
        """,
    }
    return {nombre: db_service.contar_tolerante(db, nombre, query) for nombre, query in conteos.items()}
