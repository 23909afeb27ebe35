# src/portal/common/config_manager.py
import logging
import os
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def get_ip_local():
    """Obtiene la dirección IP local de la máquina."""
    import socket

    try:
        return socket.gethostbyname(socket.gethostname())
    except socket.gaierror:
        return "127.0.0.1"


class ConfigManager:
    """
    Gestor de configuración centralizado del portal.

    Todos los métodos públicos son @classmethod; cada bloque de configuración
    se lee de variables de entorno con valores por defecto razonables.
    """

    @classmethod
    def _get_env_with_warning(cls, key: str, default: Any = None, warning_msg: str = None) -> Any:
        """
        Obtiene una variable de entorno. Una cadena vacía cuenta como no definida.
        """
        value = os.getenv(key, default)
        if value is None or (isinstance(value, str) and not value.strip()):
            if warning_msg:
                logger.warning(f"ADVERTENCIA ConfigManager: {warning_msg}")
            return default
        return value

    @classmethod
    def _get_bool(cls, key: str, default: str = "False") -> bool:
        return str(cls._get_env_with_warning(key, default)).lower() == "true"

    # --- CONFIGURACIONES GENERALES ---

    @classmethod
    def get_log_config(cls) -> Dict[str, Any]:
        """Obtiene la configuración de logging de forma unificada."""
        return {
            "directory": cls._get_env_with_warning("LOG_DIRECTORY", "logs"),
            "level_str": cls._get_env_with_warning("LOG_LEVEL", "INFO"),
            "format": cls._get_env_with_warning(
                "LOG_FORMAT", "%(asctime)s - PID:%(process)d - %(name)s - %(levelname)s - %(funcName)s - %(message)s"
            ),
            "datefmt": cls._get_env_with_warning("LOG_DATEFMT", "%Y-%m-%d %H:%M:%S"),
            "backupCount": int(cls._get_env_with_warning("LOG_BACKUP_COUNT", 7)),
            "app_log_filename_web": cls._get_env_with_warning("APP_LOG_FILENAME_WEB", "portal_web.log"),
            "when": "midnight",
            "interval": 1,
            "encoding": "utf-8",
        }

    @classmethod
    def get_sql_server_config(cls, prefix: str) -> Dict[str, Any]:
        """Obtiene la configuración de una conexión a SQL Server usando un prefijo (ej: 'SQL_PORTAL')."""
        return {
            "servidor": cls._get_env_with_warning(f"{prefix}_HOST"),
            "base_datos": cls._get_env_with_warning(f"{prefix}_DB_NAME"),
            "usuario": cls._get_env_with_warning(f"{prefix}_UID"),
            "contrasena": cls._get_env_with_warning(f"{prefix}_PWD"),
            "driver": cls._get_env_with_warning(f"{prefix}_DRIVER", "{ODBC Driver 17 for SQL Server}"),
            "timeout": int(cls._get_env_with_warning(f"{prefix}_TIMEOUT_CONEXION_INICIAL", 30)),
            "max_retries": int(cls._get_env_with_warning(f"{prefix}_MAX_REINTENTOS_QUERY", 3)),
            "initial_delay": float(cls._get_env_with_warning(f"{prefix}_DELAY_REINTENTO_QUERY_BASE_SEG", 2)),
            "retryable_sqlstates": cls._get_env_with_warning(
                f"{prefix}_CODIGOS_SQLSTATE_REINTENTABLES", "40001,HYT00,HYT01,08S01"
            ).split(","),
        }

    # --- CONFIGURACIONES DEL SERVICIO WEB ---

    @classmethod
    def get_interfaz_web_config(cls) -> Dict[str, Any]:
        """Obtiene la configuración del servidor web y del cliente del frontend."""
        host = cls._get_env_with_warning("INTERFAZ_WEB_HOST", "0.0.0.0")
        port = int(cls._get_env_with_warning("INTERFAZ_WEB_PORT", 8000))
        api_host = "127.0.0.1" if host == "0.0.0.0" else host
        return {
            "host": host,
            "port": port,
            "debug": cls._get_bool("INTERFAZ_WEB_DEBUG"),
            "api_base_url": cls._get_env_with_warning("PORTAL_API_BASE_URL", f"http://{api_host}:{port}"),
            "api_timeout_seg": int(cls._get_env_with_warning("PORTAL_API_TIMEOUT_SEG", 30)),
            "environment": cls._get_env_with_warning("APP_ENVIRONMENT", "development"),
            "version": cls._get_env_with_warning("APP_VERSION", "1.0.0"),
        }

    @classmethod
    def get_search_config(cls) -> Dict[str, Any]:
        """Parámetros de la búsqueda unificada."""
        return {
            "limite_fuente": int(cls._get_env_with_warning("BUSQUEDA_LIMITE_FUENTE", 1000)),
            "cache_ttl_seg": int(cls._get_env_with_warning("BUSQUEDA_CACHE_TTL_SEG", 60)),
            "limite_defecto": int(cls._get_env_with_warning("BUSQUEDA_LIMITE_DEFECTO", 10)),
        }

    @classmethod
    def get_chat_config(cls) -> Dict[str, Any]:
        """Parámetros del asistente virtual."""
        return {
            "rate_limit_max": int(cls._get_env_with_warning("CHAT_RATE_LIMIT_MAX", 50)),
            "rate_limit_ventana_seg": int(cls._get_env_with_warning("CHAT_RATE_LIMIT_VENTANA_SEG", 900)),
            "sesion_horas": int(cls._get_env_with_warning("CHAT_SESION_HORAS", 24)),
            "max_longitud_mensaje": int(cls._get_env_with_warning("CHAT_MAX_LONGITUD_MENSAJE", 1000)),
            "max_longitud_comentario": int(cls._get_env_with_warning("CHAT_MAX_LONGITUD_COMENTARIO", 500)),
            "umbral_similitud": float(cls._get_env_with_warning("CHAT_UMBRAL_SIMILITUD", 0.3)),
            "limite_contexto": int(cls._get_env_with_warning("CHAT_LIMITE_CONTEXTO", 5)),
            "umbral_escalamiento": float(cls._get_env_with_warning("CHAT_UMBRAL_ESCALAMIENTO", 0.7)),
            "limite_historial": int(cls._get_env_with_warning("CHAT_LIMITE_HISTORIAL", 20)),
        }

    @classmethod
    def get_llm_config(cls) -> Dict[str, Any]:
        """Configuración del proveedor de lenguaje (API compatible con OpenAI)."""
        return {
            "base_url": cls._get_env_with_warning("LLM_BASE_URL", "https://api.openai.com/v1"),
            "api_key": cls._get_env_with_warning(
                "LLM_API_KEY", warning_msg="LLM_API_KEY no definida. El asistente responderá en modo simulado."
            ),
            "model": cls._get_env_with_warning("LLM_MODEL", "gpt-4o-mini"),
            "max_tokens": int(cls._get_env_with_warning("LLM_MAX_TOKENS", 500)),
            "temperature": float(cls._get_env_with_warning("LLM_TEMPERATURE", 0.7)),
            "timeout_seg": int(cls._get_env_with_warning("LLM_TIMEOUT_SEG", 30)),
        }

    @classmethod
    def get_auth_config(cls) -> Dict[str, Any]:
        """Tokens de acceso a la administración, uno por rol."""
        return {
            "admin_token": cls._get_env_with_warning(
                "PORTAL_ADMIN_TOKEN", warning_msg="PORTAL_ADMIN_TOKEN no definido. La administración quedará bloqueada."
            ),
            "funcionario_token": cls._get_env_with_warning("PORTAL_FUNCIONARIO_TOKEN"),
        }

    # --- UTILIDADES ---

    @classmethod
    def check_and_display_config(cls, service_name: Optional[str] = None):
        """Muestra la configuración cargada y valida la presencia de variables críticas."""
        logger.info("=" * 60)
        logger.info(" VERIFICACIÓN DE CONFIGURACIÓN ".center(60, "="))
        logger.info(f"Servicio: {service_name or 'No especificado'}")
        logger.info(f"IP Local: {get_ip_local()}")

        configs_a_verificar = {
            "SQL PORTAL": (["SQL_PORTAL_HOST", "SQL_PORTAL_DB_NAME", "SQL_PORTAL_UID", "SQL_PORTAL_PWD"], True),
            "LLM": (["LLM_API_KEY"], False),
            "ADMINISTRACIÓN": (["PORTAL_ADMIN_TOKEN"], False),
        }
        for config_name, (keys, is_critical) in configs_a_verificar.items():
            faltantes = [key for key in keys if not os.getenv(key)]
            if faltantes:
                estado = "FALTAN VARIABLES CRÍTICAS" if is_critical else "OK (con opcionales faltantes)"
                logger.warning(f"[ {config_name} ] Estado: {estado}. Faltantes: {', '.join(faltantes)}")

        config_method_map = {
            "web": cls.get_interfaz_web_config,
            "chat": cls.get_chat_config,
            "llm": cls.get_llm_config,
            "auth": cls.get_auth_config,
        }
        secciones = [service_name] if service_name in config_method_map else list(config_method_map)
        for seccion in secciones:
            logger.info(f"Configuración de '{seccion}':")
            try:
                for key, value in config_method_map[seccion]().items():
                    if any(sensitive in key.lower() for sensitive in ["pass", "pwd", "secret", "token", "key"]):
                        display_value = ("*" * 8) if value else "No configurado"
                    else:
                        display_value = value
                    logger.info(f"  - {key}: {display_value}")
            except Exception as e:
                logger.warning(f"  Error al obtener la configuración de '{seccion}': {e}")

        logger.info("=" * 60)
