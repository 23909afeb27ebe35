# src/portal/web/backend/knowledge.py
"""
Base de conocimiento del asistente virtual (tabla ChatbotKnowledge).

La base se reconstruye a partir de los catálogos activos y se consulta con una
búsqueda por palabras clave: cada documento puntúa según la fracción de
términos de la pregunta que contiene, con un extra cuando aparecen en el título.
"""

import json
import logging
from typing import Any, Dict, List, Tuple

from portal.common.database import DatabaseConnector
from portal.common.text_utils import extract_keywords, normalize_for_search

from . import database as db_service

logger = logging.getLogger(__name__)

LIMITE_CATALOGO = 10000
MAX_CANDIDATOS = 200
PESO_CONTENIDO = 0.8
PESO_TITULO = 0.2


# ------------------------------------------------------------------
# Construcción de documentos
# ------------------------------------------------------------------


def _lineas(*pares: Tuple[str, Any]) -> str:
    lineas = []
    for etiqueta, valor in pares:
        if isinstance(valor, list):
            valor = ", ".join(str(v) for v in valor if v)
        if valor:
            lineas.append(f"{etiqueta}: {valor}")
    return "\n".join(lineas)


def documento_tramite(tramite: Dict[str, Any]) -> Dict[str, Any]:
    contenido = _lineas(
        ("Código", tramite.get("codigo_unico")),
        ("Nombre", tramite.get("nombre")),
        ("Descripción", tramite.get("descripcion")),
        ("Dependencia", tramite.get("dependencia_nombre")),
        ("Subdependencia", tramite.get("subdependencia_nombre")),
        ("Formulario", tramite.get("formulario")),
        ("Tiempo de respuesta", tramite.get("tiempo_respuesta")),
        ("Pago", "Con pago" if tramite.get("tiene_pago") else "Gratuito"),
        ("Requisitos", tramite.get("requisitos") or []),
    )
    return {
        "content_type": "tramite",
        "content_id": tramite["id"],
        "title": f"Trámite: {tramite['nombre']}",
        "content": contenido,
        "metadata": {
            "codigo": tramite.get("codigo_unico"),
            "dependencia": tramite.get("dependencia_nombre"),
            "subdependencia": tramite.get("subdependencia_nombre"),
            "tiene_pago": bool(tramite.get("tiene_pago")),
        },
    }


def documento_opa(opa: Dict[str, Any]) -> Dict[str, Any]:
    contenido = _lineas(
        ("Código", opa.get("codigo_opa")),
        ("Nombre", opa.get("nombre")),
        ("Descripción", opa.get("descripcion")),
        ("Dependencia", opa.get("dependencia_nombre")),
        ("Subdependencia", opa.get("subdependencia_nombre")),
        ("Tiempo de respuesta", opa.get("tiempo_respuesta")),
        ("Requisitos", opa.get("requisitos") or []),
    )
    return {
        "content_type": "opa",
        "content_id": opa["id"],
        "title": f"OPA: {opa['nombre']}",
        "content": contenido,
        "metadata": {
            "codigo": opa.get("codigo_opa"),
            "dependencia": opa.get("dependencia_nombre"),
            "subdependencia": opa.get("subdependencia_nombre"),
        },
    }


def documento_faq(faq: Dict[str, Any]) -> Dict[str, Any]:
    tema = faq.get("tema_nombre") or faq.get("tema")
    contenido = _lineas(
        ("Pregunta", faq.get("pregunta")),
        ("Respuesta", faq.get("respuesta")),
        ("Dependencia", faq.get("dependencia_nombre")),
        ("Subdependencia", faq.get("subdependencia_nombre")),
        ("Tema", tema),
        ("Palabras clave", faq.get("palabras_clave") or []),
    )
    return {
        "content_type": "faq",
        "content_id": faq["id"],
        "title": f"FAQ: {faq['pregunta']}",
        "content": contenido,
        "metadata": {"dependencia": faq.get("dependencia_nombre"), "tema": tema},
    }


def documento_dependencia(dependencia: Dict[str, Any]) -> Dict[str, Any]:
    contenido = _lineas(
        ("Código", dependencia.get("codigo")),
        ("Sigla", dependencia.get("sigla")),
        ("Nombre", dependencia.get("nombre")),
        ("Descripción", dependencia.get("descripcion")),
        ("Trámites disponibles", dependencia.get("tramites_count")),
        ("OPAs disponibles", dependencia.get("opas_count")),
    )
    return {
        "content_type": "dependencia",
        "content_id": dependencia["id"],
        "title": f"Dependencia: {dependencia['nombre']}",
        "content": contenido,
        "metadata": {"codigo": dependencia.get("codigo")},
    }


# ------------------------------------------------------------------
# Sincronización
# ------------------------------------------------------------------


def construir_documentos(db: DatabaseConnector) -> List[Dict[str, Any]]:
    fuentes = (
        (db_service.get_tramites, documento_tramite),
        (db_service.get_opas, documento_opa),
        (db_service.get_faqs, documento_faq),
        (db_service.get_dependencias, documento_dependencia),
    )
    documentos = []
    for obtener, construir in fuentes:
        filas = obtener(db, activo=True, page=1, limit=LIMITE_CATALOGO)["data"]
        documentos.extend(construir(fila) for fila in filas)
    return documentos


def sincronizar_conocimiento(db: DatabaseConnector) -> Dict[str, int]:
    """
    Reconstruye la base de conocimiento desde los catálogos activos.
    El contenido 'general' cargado a mano no se toca.
    """
    logger.info("Iniciando la sincronización de la base de conocimiento del asistente...")
    documentos = construir_documentos(db)

    filas = [
        (d["content_type"], d["content_id"], d["title"], d["content"], json.dumps(d["metadata"], ensure_ascii=False))
        for d in documentos
    ]
    with db.obtener_cursor() as cursor:
        cursor.execute("DELETE FROM dbo.ChatbotKnowledge WHERE content_type IN ('tramite', 'opa', 'faq', 'dependencia')")
        if filas:
            cursor.fast_executemany = True
            cursor.executemany(
                """
                INSERT INTO dbo.ChatbotKnowledge (content_type, content_id, title, content, metadata)
                VALUES (?, ?, ?, ?, ?)
                """,
                filas,
            )

    resumen: Dict[str, int] = {"tramite": 0, "opa": 0, "faq": 0, "dependencia": 0}
    for d in documentos:
        resumen[d["content_type"]] += 1
    resumen["total"] = len(documentos)
    logger.info(f"Base de conocimiento sincronizada: {resumen}")
    return resumen


# ------------------------------------------------------------------
# Búsqueda
# ------------------------------------------------------------------


def puntuar_documento(terminos: List[str], titulo: str, contenido: str) -> float:
    if not terminos:
        return 0.0
    titulo_norm = normalize_for_search(titulo)
    texto_norm = f"{titulo_norm} {normalize_for_search(contenido)}"
    en_texto = sum(1 for t in terminos if t in texto_norm)
    en_titulo = sum(1 for t in terminos if t in titulo_norm)
    puntaje = PESO_CONTENIDO * en_texto / len(terminos) + PESO_TITULO * en_titulo / len(terminos)
    return round(min(puntaje, 1.0), 4)


def buscar_conocimiento(
    db: DatabaseConnector, consulta: str, umbral: float = 0.3, limite: int = 5
) -> List[Dict[str, Any]]:
    """
    Devuelve los documentos más relevantes para la consulta con su 'similarity'.
    """
    terminos = extract_keywords(consulta)
    if not terminos:
        return []

    condiciones = " OR ".join(
        f"(title {db_service.CI_AI} LIKE ? OR content {db_service.CI_AI} LIKE ?)" for _ in terminos
    )
    params: List[str] = []
    for termino in terminos:
        params.extend([f"%{termino}%", f"%{termino}%"])
    query = f"""
        SELECT TOP ({MAX_CANDIDATOS}) id, content_type, content_id, title, content, metadata
        FROM dbo.ChatbotKnowledge
        WHERE {condiciones}
    """
    candidatos = db.ejecutar_consulta(query, tuple(params), es_select=True) or []

    resultados = []
    for fila in candidatos:
        similitud = puntuar_documento(terminos, fila["title"], fila["content"])
        if similitud >= umbral:
            documento = {
                "id": str(fila["id"]),
                "content_type": fila["content_type"],
                "content_id": str(fila["content_id"]) if fila.get("content_id") else None,
                "title": fila["title"],
                "content": fila["content"],
                "metadata": json.loads(fila["metadata"]) if fila.get("metadata") else {},
                "similarity": similitud,
            }
            resultados.append(documento)

    resultados.sort(key=lambda d: d["similarity"], reverse=True)
    logger.debug(f"Búsqueda de conocimiento '{consulta}': {len(resultados)} documentos sobre el umbral {umbral}")
    return resultados[:limite]


def estado_conocimiento(db: DatabaseConnector) -> Dict[str, Any]:
    """Cantidad de documentos por tipo y fecha de la última carga."""
    filas = db.ejecutar_consulta(
        """
        SELECT content_type, COUNT(*) AS total, MAX(created_at) AS ultima_carga
        FROM dbo.ChatbotKnowledge
        GROUP BY content_type
        """,
        es_select=True,
    ) or []
    documentos = {fila["content_type"]: fila["total"] for fila in filas}
    cargas = [fila["ultima_carga"] for fila in filas if fila.get("ultima_carga")]
    return {
        "documentos": documentos,
        "total": sum(documentos.values()),
        "ultimaCarga": max(cargas) if cargas else None,
    }
