# src/portal/web/backend/chat_service.py
"""
Lógica del asistente virtual: sesiones, historial, generación de respuestas
y calificaciones de los ciudadanos.

Las consultas a la BD son síncronas (pyodbc); las corrutinas de este módulo las
ejecutan con asyncio.to_thread para no bloquear el event loop.
"""

import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from portal.common.database import DatabaseConnector
from portal.common.llm_client import LLMClient, RespuestaLLM

from . import knowledge
from .database import decodificar_json, normalizar_fila
from .schemas import ChatRequest, ChatResponseData, FeedbackRequest

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """Eres el asistente virtual oficial de la Alcaldía de Chía, Colombia.

Tu función es ayudar a los ciudadanos con información sobre:
- Trámites y servicios municipales
- Horarios de atención
- Requisitos para procedimientos
- Información de contacto
- Preguntas frecuentes

INSTRUCCIONES IMPORTANTES:
1. Responde SOLO con información oficial y verificada
2. Si no tienes información específica, indica que el ciudadano debe contactar directamente a la dependencia
3. Sé cordial, profesional y claro
4. Usa el contexto proporcionado para dar respuestas precisas
5. Si la confianza en tu respuesta es baja (<70%), recomienda contactar a un funcionario

CONTEXTO DISPONIBLE:
{contexto}

Responde en español colombiano, de manera clara y útil."""

RESPUESTA_VACIA = "Lo siento, no pude generar una respuesta."
RESPUESTA_ERROR = (
    "Lo siento, ocurrió un error al procesar tu consulta. Por favor, intenta nuevamente "
    "o contacta directamente a la Alcaldía."
)
FRASES_INCERTIDUMBRE = ("no estoy seguro", "no tengo información", "no sé", "posiblemente")

TIPOS_FEEDBACK = ("helpful", "not_helpful", "report_issue")


# ------------------------------------------------------------------
# Validación
# ------------------------------------------------------------------


def validar_tipo_mensaje(message: Any) -> str:
    if not isinstance(message, str):
        raise ValueError("El mensaje es obligatorio y debe ser texto.")
    return message


def validar_contenido_mensaje(message: str, max_longitud: int = 1000) -> str:
    limpio = message.strip()
    if not limpio:
        raise ValueError("El mensaje no puede estar vacío.")
    if len(limpio) > max_longitud:
        raise ValueError(f"El mensaje es demasiado largo (máximo {max_longitud} caracteres).")
    return limpio


# ------------------------------------------------------------------
# Respuesta del modelo
# ------------------------------------------------------------------


def construir_mensajes(mensaje: str, contexto: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    texto_contexto = "\n\n".join(f"{c['title']}:\n{c['content']}" for c in contexto)
    return [
        {"role": "system", "content": SYSTEM_PROMPT.format(contexto=texto_contexto)},
        {"role": "user", "content": mensaje},
    ]


def calcular_confianza(contenido: str, contexto: List[Dict[str, Any]]) -> float:
    confianza = 0.8
    if not contexto:
        confianza -= 0.2
    if len(contenido) < 50:
        confianza -= 0.1
    texto = contenido.lower()
    if any(frase in texto for frase in FRASES_INCERTIDUMBRE):
        confianza -= 0.2
    return round(max(0.1, min(1.0, confianza)), 2)


async def generar_respuesta(
    llm_client: LLMClient, mensaje: str, contexto: List[Dict[str, Any]]
) -> Dict[str, Any]:
    """Devuelve content, confidence, sources y tokens. Un fallo del proveedor da la disculpa con confianza 0.1."""
    fuentes = [c["title"] for c in contexto]
    try:
        respuesta: RespuestaLLM = await llm_client.completar(construir_mensajes(mensaje, contexto), contexto)
    except Exception as e:
        logger.error(f"Error generando la respuesta del asistente: {e}", exc_info=True)
        return {"content": RESPUESTA_ERROR, "confidence": 0.1, "sources": [], "tokens": 0}

    contenido = respuesta.contenido or RESPUESTA_VACIA
    confianza = respuesta.confianza if respuesta.confianza is not None else calcular_confianza(contenido, contexto)
    return {"content": contenido, "confidence": confianza, "sources": fuentes, "tokens": respuesta.tokens}


# ------------------------------------------------------------------
# Sesiones y mensajes
# ------------------------------------------------------------------


def obtener_o_crear_sesion(
    db: DatabaseConnector,
    session_token: Optional[str],
    channel: str = "web",
    user_id: Optional[str] = None,
    phone_number: Optional[str] = None,
    horas_vigencia: int = 24,
) -> Dict[str, Any]:
    """
    Reutiliza la sesión si sigue vigente. Una sesión vencida se desactiva y se
    reemplaza por una nueva con otro token.
    """
    if session_token:
        filas = db.ejecutar_consulta(
            """
            SELECT id, session_token, channel, is_active, created_at, expires_at,
                   CAST(CASE WHEN is_active = 1 AND expires_at > SYSUTCDATETIME() THEN 1 ELSE 0 END AS BIT) AS vigente
            FROM dbo.ChatSessions WHERE session_token = ?
            """,
            (session_token,),
            es_select=True,
        )
        if filas:
            sesion = normalizar_fila(filas[0])
            if sesion["vigente"]:
                db.ejecutar_consulta(
                    "UPDATE dbo.ChatSessions SET updated_at = SYSUTCDATETIME() WHERE id = ?",
                    (sesion["id"],),
                    es_select=False,
                )
                return sesion
            logger.info(f"Sesión de chat {sesion['id']} vencida. Se crea una nueva.")
            db.ejecutar_consulta(
                "UPDATE dbo.ChatSessions SET is_active = 0, updated_at = SYSUTCDATETIME() WHERE id = ?",
                (sesion["id"],),
                es_select=False,
            )
            session_token = None

    nuevo_token = session_token or str(uuid.uuid4())
    filas = db.ejecutar_consulta(
        """
        INSERT INTO dbo.ChatSessions (session_token, user_id, channel, phone_number, is_active, expires_at)
        OUTPUT INSERTED.id, INSERTED.session_token, INSERTED.channel, INSERTED.is_active,
               INSERTED.created_at, INSERTED.expires_at
        VALUES (?, ?, ?, ?, 1, DATEADD(HOUR, ?, SYSUTCDATETIME()))
        """,
        (nuevo_token, user_id, channel, phone_number, horas_vigencia),
        es_select=True,
    )
    if not filas:
        raise RuntimeError("No se pudo crear la sesión de chat.")
    sesion = normalizar_fila(filas[0])
    sesion["vigente"] = True
    logger.info(f"Sesión de chat creada: {sesion['id']} (canal {channel})")
    return sesion


def guardar_mensaje(
    db: DatabaseConnector,
    session_id: str,
    role: str,
    content: str,
    metadata: Optional[Dict[str, Any]] = None,
    confidence_score: Optional[float] = None,
    escalated_to_human: bool = False,
) -> Optional[str]:
    filas = db.ejecutar_consulta(
        """
        INSERT INTO dbo.ChatMessages (session_id, role, content, metadata, confidence_score, escalated_to_human)
        OUTPUT INSERTED.id
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            session_id,
            role,
            content,
            json.dumps(metadata or {}, ensure_ascii=False, default=str),
            confidence_score,
            escalated_to_human,
        ),
        es_select=True,
    )
    return str(filas[0]["id"]) if filas else None


async def procesar_mensaje(
    db: DatabaseConnector,
    llm_client: LLMClient,
    request: ChatRequest,
    mensaje: str,
    chat_config: Dict[str, Any],
) -> ChatResponseData:
    """
    Atiende un mensaje ya validado: sesión, registro, contexto, respuesta y registro de la respuesta.
    """
    sesion = await asyncio.to_thread(
        obtener_o_crear_sesion,
        db,
        request.session_token,
        request.channel,
        request.user_id,
        request.phone_number,
        chat_config["sesion_horas"],
    )

    try:
        await asyncio.to_thread(
            guardar_mensaje,
            db,
            sesion["id"],
            "user",
            mensaje,
            {"channel": request.channel, "timestamp": datetime.now(timezone.utc).isoformat()},
        )
    except Exception as e:
        # Perder el registro del mensaje no debe impedir responder al ciudadano.
        logger.error(f"No se pudo guardar el mensaje del usuario en la sesión {sesion['id']}: {e}")

    try:
        contexto = await asyncio.to_thread(
            knowledge.buscar_conocimiento,
            db,
            mensaje,
            chat_config["umbral_similitud"],
            chat_config["limite_contexto"],
        )
    except Exception as e:
        logger.error(f"Error en la búsqueda de conocimiento: {e}", exc_info=True)
        contexto = []

    respuesta = await generar_respuesta(llm_client, mensaje, contexto)
    escalar = respuesta["confidence"] < chat_config["umbral_escalamiento"]

    message_id = None
    try:
        message_id = await asyncio.to_thread(
            guardar_mensaje,
            db,
            sesion["id"],
            "assistant",
            respuesta["content"],
            {"sources": respuesta["sources"], "tokens": respuesta["tokens"], "channel": request.channel},
            respuesta["confidence"],
            escalar,
        )
    except Exception as e:
        logger.error(f"No se pudo guardar la respuesta del asistente en la sesión {sesion['id']}: {e}")

    if escalar:
        logger.info(f"Sesión {sesion['id']}: confianza {respuesta['confidence']} bajo el umbral, se sugiere escalar.")

    return {
        "response": respuesta["content"],
        "confidence": respuesta["confidence"],
        "sources": respuesta["sources"],
        "sessionToken": sesion["session_token"],
        "escalateToHuman": escalar,
        "messageId": message_id,
    }


def obtener_historial(db: DatabaseConnector, session_token: str, limite: int = 20) -> Dict[str, Any]:
    filas = db.ejecutar_consulta(
        """
        SELECT id, channel, is_active, created_at, expires_at
        FROM dbo.ChatSessions
        WHERE session_token = ? AND is_active = 1 AND expires_at > SYSUTCDATETIME()
        """,
        (session_token,),
        es_select=True,
    )
    if not filas:
        raise ValueError("No se encontró la sesión o ya expiró.")
    sesion = normalizar_fila(filas[0])

    mensajes = db.ejecutar_consulta(
        """
        SELECT id, role, content, metadata, confidence_score, escalated_to_human, created_at FROM (
            SELECT TOP (?) id, role, content, metadata, confidence_score, escalated_to_human, created_at
            FROM dbo.ChatMessages WHERE session_id = ? ORDER BY created_at DESC
        ) ultimos
        ORDER BY created_at ASC
        """,
        (limite, sesion["id"]),
        es_select=True,
    ) or []

    return {
        "session": {
            "id": sesion["id"],
            "channel": sesion["channel"],
            "isActive": bool(sesion["is_active"]),
            "createdAt": sesion["created_at"],
            "expiresAt": sesion["expires_at"],
        },
        "messages": [
            {
                "id": str(m["id"]),
                "role": m["role"],
                "content": m["content"],
                "metadata": decodificar_json(m.get("metadata"), {}),
                "confidence_score": float(m["confidence_score"]) if m.get("confidence_score") is not None else None,
                "escalated_to_human": bool(m.get("escalated_to_human")),
                "created_at": m["created_at"],
            }
            for m in mensajes
        ],
    }


# ------------------------------------------------------------------
# Calificaciones
# ------------------------------------------------------------------


def validar_feedback(request: FeedbackRequest, max_comentario: int = 500) -> Optional[str]:
    """Valida la calificación y devuelve el comentario recortado (o None)."""
    if not request.message_id or not isinstance(request.message_id, str):
        raise ValueError("El id del mensaje es obligatorio y debe ser texto.")
    if request.feedback_type not in TIPOS_FEEDBACK:
        raise ValueError(f"Tipo de calificación inválido. Valores permitidos: {', '.join(TIPOS_FEEDBACK)}.")
    if request.comment is not None and not isinstance(request.comment, str):
        raise ValueError("El comentario debe ser texto.")
    comentario = (request.comment or "").strip()
    if len(comentario) > max_comentario:
        raise ValueError(f"El comentario no puede superar {max_comentario} caracteres.")
    return comentario or None


def registrar_feedback(db: DatabaseConnector, request: FeedbackRequest, max_comentario: int = 500) -> Dict[str, str]:
    comentario = validar_feedback(request, max_comentario)

    try:
        uuid.UUID(request.message_id)
    except ValueError:
        raise ValueError(f"No se encontró el mensaje {request.message_id}.")

    filas = db.ejecutar_consulta(
        "SELECT id, session_id, role FROM dbo.ChatMessages WHERE id = ?", (request.message_id,), es_select=True
    )
    if not filas:
        raise ValueError(f"No se encontró el mensaje {request.message_id}.")
    mensaje = normalizar_fila(filas[0])
    if mensaje["role"] != "assistant":
        raise ValueError("Solo se pueden calificar las respuestas del asistente.")

    existentes = db.ejecutar_consulta(
        "SELECT id FROM dbo.ChatFeedback WHERE message_id = ?", (request.message_id,), es_select=True
    )
    if existentes:
        raise ValueError("Conflicto: este mensaje ya fue calificado.")

    nuevas = db.ejecutar_consulta(
        """
        INSERT INTO dbo.ChatFeedback (message_id, session_id, feedback_type, comment)
        OUTPUT INSERTED.id
        VALUES (?, ?, ?, ?)
        """,
        (request.message_id, mensaje["session_id"], request.feedback_type, comentario),
        es_select=True,
    )
    if not nuevas:
        raise RuntimeError("No se pudo guardar la calificación.")
    logger.info(f"Calificación '{request.feedback_type}' registrada para el mensaje {request.message_id}")
    return {"feedbackId": str(nuevas[0]["id"])}


def obtener_estadisticas_feedback(db: DatabaseConnector, session_id: str) -> Dict[str, int]:
    filas = db.ejecutar_consulta(
        "SELECT feedback_type, COUNT(*) AS total FROM dbo.ChatFeedback WHERE session_id = ? GROUP BY feedback_type",
        (session_id,),
        es_select=True,
    ) or []
    stats = {tipo: 0 for tipo in TIPOS_FEEDBACK}
    for fila in filas:
        if fila["feedback_type"] in stats:
            stats[fila["feedback_type"]] = fila["total"]
    stats["total"] = sum(stats[t] for t in TIPOS_FEEDBACK)
    return stats
