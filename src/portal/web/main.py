# portal/web/main.py
import asyncio
import platform

if platform.system() == "Windows":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from reactpy.backend.fastapi import Options, configure
from starlette.staticfiles import StaticFiles

from portal.common.config_manager import ConfigManager
from portal.common.database import DatabaseConnector
from portal.common.llm_client import LLMClient

from .backend.api import router as api_router
from .backend.chat_api import router as chat_router
from .backend.dependencies import db_dependency_provider, llm_client_provider
from .backend.rate_limiter import RateLimiter
from .frontend.app import App, head

logger = logging.getLogger(__name__)


# --- Ciclo de vida ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Iniciando aplicación y recursos...")

    if not llm_client_provider.has_llm_client():
        logger.warning("No se inyectó el cliente LLM: el asistente virtual responderá 503.")

    yield

    logger.info("Iniciando cierre ordenado de recursos...")
    if llm_client_provider.has_llm_client():
        await llm_client_provider.get_llm_client().close()
        logger.info("Cliente LLM cerrado.")

    try:
        logger.info("Cerrando pool de conexiones de base de datos...")
        db_dependency_provider.get_db_connector().cerrar_conexiones_pool()
        logger.info("Pool de conexiones de BD cerrado.")
    except Exception as e:
        logger.error(f"Error al cerrar el pool de conexiones: {e}", exc_info=True)


def create_app(db_connector: DatabaseConnector, llm_client: Optional[LLMClient] = None) -> FastAPI:
    """Crea y configura la aplicación FastAPI con la API y el frontend ReactPy."""
    web_config = ConfigManager.get_interfaz_web_config()
    chat_config = ConfigManager.get_chat_config()

    app = FastAPI(title="Portal de Atención Ciudadana - Chía", version=web_config["version"], lifespan=lifespan)

    db_dependency_provider.set_db_connector(db_connector)
    llm_client_provider.set_llm_client(llm_client)

    # Estado compartido de la instancia (un solo worker)
    app.state.sync_status = {"conocimiento": "idle", "ultimo_resultado": None}
    app.state.sync_lock = asyncio.Lock()
    app.state.rate_limiter = RateLimiter(
        max_requests=chat_config["rate_limit_max"], window_seconds=chat_config["rate_limit_ventana_seg"]
    )
    app.state.started_at = time.monotonic()

    app.include_router(api_router)
    app.include_router(chat_router)

    static_files_path = Path(__file__).parent / "static"
    if static_files_path.exists():
        app.mount("/static", StaticFiles(directory=static_files_path), name="static")

    configure(app, App, options=Options(head=head))

    return app
