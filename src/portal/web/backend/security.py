# src/portal/web/backend/security.py
"""
Acceso a la administración de los catálogos.

Cada rol tiene su token en la configuración y el cliente lo envía en el
header `X-Authorization`. Los funcionarios gestionan los catálogos; las
tareas de mantenimiento (caché, base de conocimiento) son solo del admin.
"""

import hmac
import logging
from typing import Callable, Optional

from fastapi import Header, HTTPException, status

from portal.common.config_manager import ConfigManager

logger = logging.getLogger(__name__)

ROL_ADMIN = "admin"
ROL_FUNCIONARIO = "funcionario"


def resolver_rol(token: Optional[str]) -> Optional[str]:
    """Rol asociado al token, o None si no corresponde a ninguno."""
    config = ConfigManager.get_auth_config()
    tokens = {ROL_ADMIN: config.get("admin_token"), ROL_FUNCIONARIO: config.get("funcionario_token")}

    if not any(tokens.values()):
        logger.critical("No hay tokens de administración configurados (PORTAL_ADMIN_TOKEN).")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error de configuración interna del servidor."
        )
    if not token:
        return None

    for rol, esperado in tokens.items():
        if esperado and hmac.compare_digest(esperado.encode("utf-8"), token.encode("utf-8")):
            return rol
    return None


def requerir_roles(*roles: str) -> Callable:
    """Dependencia de FastAPI que exige un token válido de alguno de los roles."""

    async def verificar_token(x_authorization: Optional[str] = Header(None)) -> str:
        rol = resolver_rol(x_authorization)
        if rol is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="X-Authorization header inválido.")
        if rol not in roles:
            logger.warning(f"Acceso denegado: el rol '{rol}' no puede realizar esta operación.")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No tiene permisos para esta operación.")
        return rol

    return verificar_token


requerir_gestor = requerir_roles(ROL_ADMIN, ROL_FUNCIONARIO)
requerir_admin = requerir_roles(ROL_ADMIN)
