# portal/web/frontend/hooks/use_chat_hook.py
"""
Hook del asistente virtual: mensajes, envío, reintentos e historial.
"""

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from reactpy import use_ref, use_state

from ..api.api_client import APIClient, get_api_client
from ..state.app_context import use_app_context
from ..utils.validation import validate_chat_message
from .use_safe_state import use_is_mounted

logger = logging.getLogger(__name__)

MAX_MESSAGES = 50
MAX_RETRY_ATTEMPTS = 3
TYPING_DELAY_SECONDS = 1.0


def new_message(role: str, content: str, **extra: Any) -> Dict[str, Any]:
    return {
        "id": f"msg_{uuid.uuid4().hex[:12]}",
        "role": role,
        "content": content,
        "timestamp": datetime.now().isoformat(timespec="seconds"),
        **extra,
    }


def append_message(messages: List[Dict[str, Any]], message: Dict[str, Any], max_messages: int = MAX_MESSAGES):
    """Agrega el mensaje y descarta los más antiguos por encima del máximo."""
    actualizados = [*messages, message]
    if len(actualizados) > max_messages:
        actualizados = actualizados[len(actualizados) - max_messages :]
    return actualizados


def assistant_message_from_response(data: Dict[str, Any]) -> Dict[str, Any]:
    return new_message(
        "assistant",
        data.get("response", ""),
        confidence=data.get("confidence"),
        sources=data.get("sources") or [],
        escalated=bool(data.get("escalateToHuman")),
        db_id=data.get("messageId"),
    )


def error_message(texto: str) -> Dict[str, Any]:
    return new_message("system", f"Error: {texto}. Puedes intentar enviar tu mensaje de nuevo.")


def messages_from_history(history: Dict[str, Any]) -> List[Dict[str, Any]]:
    mensajes = []
    for m in history.get("messages", []):
        metadata = m.get("metadata") or {}
        mensajes.append(
            {
                "id": f"msg_{m['id']}",
                "role": m["role"],
                "content": m["content"],
                "timestamp": m.get("created_at"),
                "confidence": m.get("confidence_score"),
                "sources": metadata.get("sources") or [],
                "escalated": bool(m.get("escalated_to_human")),
                "db_id": m["id"] if m["role"] == "assistant" else None,
            }
        )
    return mensajes[-MAX_MESSAGES:]


def use_chat(api_client: Optional[APIClient] = None) -> Dict[str, Any]:
    """
    Returns:
        Dict con las keys:
            - messages, loading, is_typing, error, session_token, retry_count
            - send_message(text), retry_last_message(), reconnect(), clear_chat()
            - submit_feedback(message_id, feedback_type, comment)
            - rated: ids de mensajes ya calificados
    """
    app_context = use_app_context()
    api_client = api_client or app_context.get("api_client") or get_api_client()

    # El token vive en el AppContext para sobrevivir a la navegación
    session_token = app_context.get("chat_session_token")
    set_session_token = app_context.get("set_chat_session_token") or (lambda _token: None)

    messages, set_messages = use_state([])
    loading, set_loading = use_state(False)
    is_typing, set_is_typing = use_state(False)
    error, set_error = use_state(None)
    rated, set_rated = use_state({})
    retry_count = use_ref(0)
    last_message = use_ref("")

    is_mounted = use_is_mounted()

    def add(message: Dict[str, Any]):
        set_messages(lambda prev: append_message(prev, message))

    async def send_message(text: str):
        validacion = validate_chat_message(text)
        if not validacion.is_valid:
            set_error(validacion.errors[0])
            return

        texto = text.strip()
        last_message.current = texto
        add(new_message("user", texto))
        set_loading(True)
        set_error(None)
        try:
            data = await api_client.send_chat_message(texto, session_token)
            if not is_mounted.current:
                return
            if data.get("sessionToken") and data["sessionToken"] != session_token:
                set_session_token(data["sessionToken"])
            set_loading(False)
            set_is_typing(True)
            await asyncio.sleep(TYPING_DELAY_SECONDS)
            add(assistant_message_from_response(data))
            retry_count.current = 0
        except asyncio.CancelledError:
            raise
        except Exception as e:
            mensaje = getattr(e, "message", None) or str(e)
            logger.warning(f"Error enviando mensaje al asistente: {mensaje}")
            if is_mounted.current:
                set_error(mensaje)
                add(error_message(mensaje))
        finally:
            if is_mounted.current:
                set_loading(False)
                set_is_typing(False)

    async def retry_last_message(event=None):
        if not last_message.current or retry_count.current >= MAX_RETRY_ATTEMPTS:
            return
        retry_count.current += 1
        await send_message(last_message.current)

    async def reconnect(event=None):
        set_error(None)
        if not session_token:
            return
        try:
            history = await api_client.get_chat_history(session_token)
            if is_mounted.current:
                set_messages(messages_from_history(history))
        except Exception as e:
            logger.warning(f"No se pudo recuperar el historial del chat: {e}")
            if getattr(e, "status_code", None) == 404:
                set_session_token(None)

    def clear_chat(event=None):
        set_messages([])
        set_error(None)
        retry_count.current = 0

    async def submit_feedback(message_id: str, feedback_type: str, comment: Optional[str] = None) -> bool:
        try:
            await api_client.send_chat_feedback(message_id, feedback_type, comment)
            set_rated(lambda prev: {**prev, message_id: feedback_type})
            return True
        except Exception as e:
            logger.warning(f"No se pudo registrar la calificación de {message_id}: {e}")
            if getattr(e, "status_code", None) == 409:
                set_rated(lambda prev: {**prev, message_id: feedback_type})
            return False

    return {
        "messages": messages,
        "loading": loading,
        "is_typing": is_typing,
        "error": error,
        "session_token": session_token,
        "retry_count": retry_count.current,
        "can_retry": bool(last_message.current) and retry_count.current < MAX_RETRY_ATTEMPTS,
        "rated": rated,
        "send_message": send_message,
        "retry_last_message": retry_last_message,
        "reconnect": reconnect,
        "clear_chat": clear_chat,
        "submit_feedback": submit_feedback,
    }
