# src/portal/web/backend/dependencies.py
from typing import Optional

from fastapi import HTTPException, Request

from portal.common.database import DatabaseConnector
from portal.common.llm_client import LLMClient

from .rate_limiter import RateLimiter


# --- Proveedor de BD ---
class DBDependencyProvider:
    """
    Contenedor de la dependencia de base de datos. run_web.py crea el conector
    y create_app lo registra aquí para que los endpoints lo reciban con `Depends`.
    """

    def __init__(self):
        self._db_connector: Optional[DatabaseConnector] = None

    def set_db_connector(self, db_connector: DatabaseConnector):
        self._db_connector = db_connector

    def has_db_connector(self) -> bool:
        return self._db_connector is not None

    def get_db_connector(self) -> DatabaseConnector:
        """Función que FastAPI usa con `Depends`."""
        if self._db_connector is None:
            raise HTTPException(status_code=503, detail="Conexión BD no disponible.")
        return self._db_connector


db_dependency_provider = DBDependencyProvider()
get_db = db_dependency_provider.get_db_connector


# --- Proveedor del cliente LLM ---
class LLMClientDependencyProvider:
    def __init__(self):
        self._llm_client: Optional[LLMClient] = None

    def set_llm_client(self, llm_client: Optional[LLMClient]):
        self._llm_client = llm_client

    def has_llm_client(self) -> bool:
        return self._llm_client is not None

    def get_llm_client(self) -> LLMClient:
        if self._llm_client is None:
            raise HTTPException(status_code=503, detail="Asistente virtual no disponible.")
        return self._llm_client


llm_client_provider = LLMClientDependencyProvider()
get_llm_client = llm_client_provider.get_llm_client


def get_rate_limiter(request: Request) -> RateLimiter:
    """El limitador vive en app.state para que cada instancia de la app tenga el suyo."""
    return request.app.state.rate_limiter
