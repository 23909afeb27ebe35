# src/portal/common/database.py
import logging
import threading
import time
from contextlib import contextmanager
from typing import Any

import pyodbc

from .config_manager import ConfigManager

logger = logging.getLogger(__name__)


class DatabaseConnector:
    """
    Conector a SQL Server con un pool de conexiones simple y seguro entre hilos.

    Las rutas síncronas de FastAPI se ejecutan en un threadpool, por lo que cada
    consulta toma una conexión del pool y la devuelve al terminar.
    """

    def __init__(
        self, servidor: str, base_datos: str, usuario: str, contrasena: str, db_config_prefix: str = "SQL_PORTAL"
    ):
        self.db_config_prefix = db_config_prefix
        sql_config = ConfigManager.get_sql_server_config(db_config_prefix)
        self.max_retries = sql_config["max_retries"]
        self.initial_delay = sql_config["initial_delay"]
        self.retryable_sqlstates = set(sql_config["retryable_sqlstates"])

        self.connection_string = (
            f"DRIVER={sql_config['driver']};"
            f"SERVER={servidor};"
            f"DATABASE={base_datos};"
            f"UID={usuario};"
            f"PWD={contrasena};"
            "TrustServerCertificate=yes;"
            f"Timeout={sql_config['timeout']};"
        )
        self._pool = []
        self._pool_lock = threading.Lock()

    def _obtener_conexion_del_pool(self):
        with self._pool_lock:
            if not self._pool:
                logger.info(f"Pool de conexiones vacío. Creando nueva conexión para {self.db_config_prefix}...")
                return self.conectar_base_datos()

            conn = self._pool.pop()
            try:
                cursor = conn.cursor()
                cursor.execute("SELECT 1")
                cursor.close()
                return conn
            except pyodbc.Error as e:
                logger.warning(
                    f"Conexión obsoleta detectada en el pool ({self.db_config_prefix}). Se reemplaza. Error: {e}"
                )
                try:
                    conn.close()
                except pyodbc.Error:
                    pass
                return self.conectar_base_datos()

    def _devolver_conexion_al_pool(self, conn):
        with self._pool_lock:
            self._pool.append(conn)

    @contextmanager
    def obtener_cursor(self):
        """Entrega un cursor dentro de una transacción: commit al salir, rollback ante error."""
        conn = self._obtener_conexion_del_pool()
        cursor = None
        try:
            cursor = conn.cursor()
            yield cursor
            conn.commit()
        except pyodbc.Error as ex:
            sqlstate = ex.args[0]
            logger.error(f"Error de base de datos (SQLSTATE: {sqlstate}): {ex}")
            if conn:
                try:
                    conn.rollback()
                except pyodbc.Error as rb_ex:
                    logger.error(f"Error durante el rollback: {rb_ex}")
            raise
        finally:
            if cursor:
                cursor.close()
            if conn:
                self._devolver_conexion_al_pool(conn)

    def conectar_base_datos(self) -> pyodbc.Connection:
        try:
            return pyodbc.connect(self.connection_string)
        except pyodbc.Error as ex:
            logger.critical(f"No se pudo conectar a la base de datos {self.db_config_prefix}. Error: {ex}")
            raise

    def cerrar_conexiones_pool(self):
        with self._pool_lock:
            for conn in self._pool:
                try:
                    conn.close()
                except pyodbc.Error as e:
                    logger.error(f"Error al cerrar una conexión del pool: {e}")
            self._pool = []
            logger.info(f"Todas las conexiones del pool {self.db_config_prefix} han sido cerradas.")

    def ejecutar_consulta(self, query: str, params: tuple = None, es_select: bool = True) -> Any:
        """
        Ejecuta una consulta con reintentos para los SQLSTATE transitorios.

        Devuelve una lista de diccionarios para SELECT (o sentencias con OUTPUT)
        y el número de filas afectadas en otro caso.
        """
        retries = self.max_retries
        delay = self.initial_delay

        while retries > 0:
            try:
                with self.obtener_cursor() as cursor:
                    cursor.execute(query, params or ())
                    if es_select:
                        columns = [column[0] for column in cursor.description]
                        return [dict(zip(columns, row)) for row in cursor.fetchall()]
                    return cursor.rowcount
            except pyodbc.Error as e:
                sqlstate = e.args[0]
                if sqlstate in self.retryable_sqlstates and retries > 1:
                    logger.warning(
                        f"Error reintentable (SQLSTATE: {sqlstate}). Reintentando en {delay}s... ({self.max_retries - retries + 1}/{self.max_retries})"
                    )
                    time.sleep(delay)
                    retries -= 1
                    delay *= 2
                else:
                    raise
        return None
