# portal/web/run_web.py
"""
Punto de entrada único del servicio Web (servidor Uvicorn).
"""

from __future__ import annotations

import asyncio
import logging
import platform
import signal
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import uvicorn

# --- src al path para ejecución directa ---
if __name__ == "__main__":
    src_path = str(Path(__file__).resolve().parent.parent.parent)
    if src_path not in sys.path:
        sys.path.insert(0, src_path)

from portal.common.config_loader import ConfigLoader
from portal.common.config_manager import ConfigManager
from portal.common.database import DatabaseConnector
from portal.common.llm_client import LLMClient
from portal.common.logging_setup import setup_logging
from portal.web.main import create_app

# --- Globales del servicio ---
_service_name = "web"
_shutdown_initiated = False
_server_instance: Optional[uvicorn.Server] = None

_db_connector: Optional[DatabaseConnector] = None


# ---------- Cierre ordenado ----------


def _graceful_shutdown(signum: int, frame: Any) -> None:
    """Manejador de señales para un cierre ordenado."""
    global _shutdown_initiated
    if _shutdown_initiated:
        logging.warning("Señal de cierre duplicada recibida. Ya se está deteniendo.")
        return
    _shutdown_initiated = True
    logging.info(f"Señal de parada recibida (Señal: {signum}). Iniciando cierre ordenado...")

    if _server_instance:
        _server_instance.should_exit = True
    else:
        sys.exit(0)


def _setup_signals() -> None:
    if sys.platform == "win32":
        logging.info("Plataforma Windows detectada. Registrando SIGINT y SIGBREAK.")
        signal.signal(signal.SIGINT, _graceful_shutdown)
        try:
            signal.signal(signal.SIGBREAK, _graceful_shutdown)
        except AttributeError:
            logging.warning("signal.SIGBREAK no está disponible.")
    else:
        logging.info("Plataforma No-Windows detectada. Registrando SIGINT y SIGTERM.")
        signal.signal(signal.SIGINT, _graceful_shutdown)
        signal.signal(signal.SIGTERM, _graceful_shutdown)


# ---------- Lógica del servicio ----------


def _setup_dependencies() -> Dict[str, Any]:
    """Crea el conector de BD y el cliente del proveedor de lenguaje."""
    global _db_connector

    logging.info("Creando dependencia DatabaseConnector...")
    cfg_sql = ConfigManager.get_sql_server_config("SQL_PORTAL")
    _db_connector = DatabaseConnector(
        servidor=cfg_sql["servidor"],
        base_datos=cfg_sql["base_datos"],
        usuario=cfg_sql["usuario"],
        contrasena=cfg_sql["contrasena"],
        db_config_prefix="SQL_PORTAL",
    )

    logging.info("Creando dependencia LLMClient...")
    llm_config = ConfigManager.get_llm_config()
    llm_client = LLMClient(
        base_url=llm_config["base_url"],
        api_key=llm_config["api_key"],
        model=llm_config["model"],
        max_tokens=llm_config["max_tokens"],
        temperature=llm_config["temperature"],
        timeout=llm_config["timeout_seg"],
    )
    return {"db_connector": _db_connector, "llm_client": llm_client}


def _run_service(deps: Dict[str, Any]) -> None:
    """Inicializa y ejecuta el servidor Uvicorn."""
    global _server_instance

    db_conn = deps.get("db_connector")
    if not db_conn:
        logging.critical("No se pudo inicializar DatabaseConnector. Abortando.")
        sys.exit(1)

    app = create_app(db_connector=db_conn, llm_client=deps.get("llm_client"))

    web_config = ConfigManager.get_interfaz_web_config()
    host = web_config.get("host", "0.0.0.0")
    port = web_config.get("port", 8000)
    reload = web_config.get("debug", False)

    logging.info(f"Configuración del servidor: http://{host}:{port} (Reload: {reload})")

    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        reload=reload,
        workers=1,  # ReactPy y el limitador de peticiones guardan estado en memoria
        loop="asyncio",
    )
    _server_instance = uvicorn.Server(config)

    logging.info("Servidor Uvicorn iniciado correctamente.")
    _server_instance.run()


def _cleanup_resources() -> None:
    global _db_connector

    logging.info("Iniciando limpieza de recursos...")

    if _db_connector:
        try:
            _db_connector.cerrar_conexiones_pool()
            logging.info("db_connector cerrado.")
        except Exception as e:
            logging.error(f"Error cerrando db_connector: {e}")

    logging.info(f"Servicio {_service_name.upper()} ha concluido y liberado recursos.")


# ---------- Punto de entrada principal ----------


def main(service_name: str) -> None:
    """Punto de entrada síncrono llamado por __main__.py."""
    global _service_name

    if platform.system() == "Windows":
        try:
            asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
            logging.info("Política de EventLoop de Windows cambiada a WindowsSelectorEventLoopPolicy.")
        except Exception as e:
            logging.warning(f"No se pudo establecer la política de EventLoop: {e}")

    _service_name = service_name

    # El logging se inicia antes que nada
    setup_logging(service_name="web")
    logging.info(f"Iniciando el servicio: {_service_name.upper()}...")
    ConfigManager.check_and_display_config(_service_name)

    _setup_signals()

    try:
        deps = _setup_dependencies()
        _run_service(deps)
    except (KeyboardInterrupt, SystemExit):
        logging.info("Servicio detenido por el usuario o el sistema.")
    except Exception as e:
        logging.critical(f"Error crítico no controlado en main: {e}", exc_info=True)
        sys.exit(1)
    finally:
        _cleanup_resources()


if __name__ == "__main__":
    ConfigLoader.initialize_service("web")
    main("web")
