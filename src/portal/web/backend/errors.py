# src/portal/web/backend/errors.py
import logging
from typing import Any, Optional

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


def handle_endpoint_errors(func_name: str, e: Exception, resource: str, resource_id: Optional[Any] = None):
    """
    Traduce las excepciones del servicio a HTTPException. Nunca retorna.

    - HTTPException: se relanza tal cual.
    - "no se encontró" / "not found" -> 404
    - "no se puede" / "conflicto" -> 409
    - ValueError -> 400
    - Cualquier otra -> 500 (con traza en el log)
    """
    if isinstance(e, HTTPException):
        raise e

    error_msg = str(e)
    lowered = error_msg.lower()

    if any(txt in lowered for txt in ("no encontró", "no se encontró", "not found", "does not exist")):
        logger.warning("%s: %s %s no encontrado -> 404", func_name, resource, resource_id or "")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error_msg or f"{resource} no encontrado.")

    if any(txt in lowered for txt in ("no se puede", "cannot be", "conflicto")):
        logger.warning("%s: conflicto de negocio -> 409: %s", func_name, error_msg)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=error_msg)

    if isinstance(e, ValueError):
        logger.warning("%s: ValueError -> 400: %s", func_name, error_msg)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error_msg)

    logger.error("%s: error inesperado -> 500: %s", func_name, error_msg, exc_info=e)
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error interno del servidor.")
