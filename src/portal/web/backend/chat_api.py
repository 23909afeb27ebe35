# src/portal/web/backend/chat_api.py
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status

from portal.common.config_manager import ConfigManager
from portal.common.database import DatabaseConnector
from portal.common.llm_client import LLMClient

from . import chat_service, knowledge
from .dependencies import get_db, get_llm_client, get_rate_limiter
from .errors import handle_endpoint_errors
from .rate_limiter import RateLimiter, obtener_identificador_cliente
from .schemas import ChatRequest, FeedbackRequest
from .security import requerir_admin

logger = logging.getLogger(__name__)

router = APIRouter()


# ------------------------------------------------------------------
# Conversación
# ------------------------------------------------------------------
@router.post("/api/chat", tags=["Asistente virtual"])
async def chat(
    data: ChatRequest,
    request: Request,
    db: DatabaseConnector = Depends(get_db),
    llm_client: LLMClient = Depends(get_llm_client),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Recibe un mensaje del ciudadano y devuelve la respuesta del asistente."""
    chat_config = ConfigManager.get_chat_config()
    try:
        chat_service.validar_tipo_mensaje(data.message)

        identificador = obtener_identificador_cliente(
            request.headers,
            client_host=request.client.host if request.client else None,
            user_id=data.user_id,
            session_token=data.session_token,
            phone_number=data.phone_number,
        )
        if not rate_limiter.permitir(identificador):
            reintentar = rate_limiter.segundos_para_reintentar(identificador)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Demasiadas solicitudes. Intenta nuevamente más tarde.",
                headers={"Retry-After": str(reintentar)},
            )

        mensaje = chat_service.validar_contenido_mensaje(data.message, chat_config["max_longitud_mensaje"])
        respuesta = await chat_service.procesar_mensaje(db, llm_client, data, mensaje, chat_config)
        return {"success": True, "data": respuesta}
    except Exception as e:
        handle_endpoint_errors("chat", e, "Chat")


@router.get("/api/chat", tags=["Asistente virtual"])
async def chat_history(sessionToken: Optional[str] = None, db: DatabaseConnector = Depends(get_db)):
    """Historial reciente de una sesión vigente."""
    if not sessionToken:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="El token de sesión es obligatorio.")
    limite = ConfigManager.get_chat_config()["limite_historial"]
    try:
        return await asyncio.to_thread(chat_service.obtener_historial, db, sessionToken, limite)
    except Exception as e:
        handle_endpoint_errors("chat_history", e, "Sesión")


# ------------------------------------------------------------------
# Calificaciones
# ------------------------------------------------------------------
@router.post("/api/chat/feedback", tags=["Asistente virtual"])
def submit_feedback(data: FeedbackRequest, db: DatabaseConnector = Depends(get_db)):
    max_comentario = ConfigManager.get_chat_config()["max_longitud_comentario"]
    try:
        resultado = chat_service.registrar_feedback(db, data, max_comentario)
        return {"success": True, "data": resultado}
    except Exception as e:
        handle_endpoint_errors("submit_feedback", e, "Mensaje", data.message_id)


@router.get("/api/chat/feedback", tags=["Asistente virtual"])
def feedback_stats(sessionId: Optional[str] = None, db: DatabaseConnector = Depends(get_db)):
    if not sessionId:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="El id de sesión es obligatorio.")
    try:
        return {"success": True, "data": chat_service.obtener_estadisticas_feedback(db, sessionId)}
    except Exception as e:
        handle_endpoint_errors("feedback_stats", e, "Sesión", sessionId)


# ------------------------------------------------------------------
# Base de conocimiento
# ------------------------------------------------------------------
async def run_knowledge_sync_task(db: DatabaseConnector, app_state):
    """Ejecuta la reconstrucción de la base de conocimiento y mantiene el estado."""
    lock = app_state.sync_lock
    try:
        async with lock:
            app_state.sync_status["conocimiento"] = "running"
        resumen = await asyncio.to_thread(knowledge.sincronizar_conocimiento, db)
        app_state.sync_status["ultimo_resultado"] = resumen
    except Exception as e:
        logger.error(f"Fallo en la tarea de fondo 'sincronizar_conocimiento': {e}", exc_info=True)
        app_state.sync_status["ultimo_resultado"] = {"error": str(e)}
    finally:
        async with lock:
            app_state.sync_status["conocimiento"] = "idle"


@router.post(
    "/api/chat/knowledge/sync",
    tags=["Asistente virtual"],
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(requerir_admin)],
)
async def trigger_knowledge_sync(
    request: Request,
    background_tasks: BackgroundTasks,
    db: DatabaseConnector = Depends(get_db),
):
    """Inicia en segundo plano la reconstrucción de la base de conocimiento."""
    app_state = request.app.state
    async with app_state.sync_lock:
        if app_state.sync_status["conocimiento"] == "running":
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Ya hay una sincronización de la base de conocimiento en curso.",
            )
        # El estado queda en "running" antes de encolar la tarea.
        app_state.sync_status["conocimiento"] = "running"
        background_tasks.add_task(run_knowledge_sync_task, db, app_state)

    return {"message": "Sincronización de la base de conocimiento iniciada."}


@router.get("/api/chat/knowledge/status", tags=["Asistente virtual"])
def knowledge_status(request: Request, db: DatabaseConnector = Depends(get_db)):
    estado = dict(request.app.state.sync_status)
    try:
        estado["base"] = knowledge.estado_conocimiento(db)
    except Exception as e:
        logger.warning(f"No se pudo leer el estado de la base de conocimiento: {e}")
        estado["base"] = None
    return estado
