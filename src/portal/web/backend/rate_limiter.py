# src/portal/web/backend/rate_limiter.py
import logging
import threading
import time
from collections import deque
from typing import Deque, Dict, Mapping, Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Límite de peticiones por identificador con ventana deslizante en memoria.

    El servicio corre con un único worker, así que el estado en memoria es
    compartido por todas las peticiones.
    """

    def __init__(self, max_requests: int = 50, window_seconds: int = 900):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._hits: Dict[str, Deque[float]] = {}
        self._ultima_limpieza: Optional[float] = None
        self._lock = threading.Lock()

    def _vigentes(self, marcas: Deque[float], ahora: float) -> Deque[float]:
        while marcas and ahora - marcas[0] >= self.window_seconds:
            marcas.popleft()
        return marcas

    def _purgar(self, identificador: str, ahora: float) -> Deque[float]:
        marcas = self._vigentes(self._hits.get(identificador, deque()), ahora)
        if not marcas:
            self._hits.pop(identificador, None)
        return marcas

    def _limpiar_inactivos(self, ahora: float):
        """Una vez por ventana, elimina los identificadores sin peticiones vigentes."""
        if self._ultima_limpieza is not None and ahora - self._ultima_limpieza < self.window_seconds:
            return
        self._ultima_limpieza = ahora
        for identificador in list(self._hits):
            self._purgar(identificador, ahora)
        logger.debug(f"Limpieza del límite de peticiones: {len(self._hits)} identificadores activos")

    def permitir(self, identificador: str, ahora: Optional[float] = None) -> bool:
        """Registra la petición si cabe en la ventana. Devuelve False si se excede el límite."""
        ahora = time.monotonic() if ahora is None else ahora
        with self._lock:
            self._limpiar_inactivos(ahora)
            marcas = self._purgar(identificador, ahora)
            if len(marcas) >= self.max_requests:
                logger.warning(f"Límite de peticiones excedido para {identificador}")
                return False
            marcas.append(ahora)
            self._hits[identificador] = marcas
            return True

    def segundos_para_reintentar(self, identificador: str, ahora: Optional[float] = None) -> int:
        ahora = time.monotonic() if ahora is None else ahora
        with self._lock:
            marcas = self._purgar(identificador, ahora)
            if len(marcas) < self.max_requests:
                return 0
            return max(1, int(self.window_seconds - (ahora - marcas[0])) + 1)

    def restantes(self, identificador: str) -> int:
        with self._lock:
            marcas = self._purgar(identificador, time.monotonic())
            return max(0, self.max_requests - len(marcas))

    def reset(self):
        with self._lock:
            self._hits.clear()


def obtener_identificador_cliente(
    headers: Mapping[str, str],
    client_host: Optional[str] = None,
    user_id: Optional[str] = None,
    session_token: Optional[str] = None,
    phone_number: Optional[str] = None,
) -> str:
    """Usuario > sesión > teléfono > IP (primer salto de x-forwarded-for, luego x-real-ip)."""
    if user_id:
        return f"user:{user_id}"
    if session_token:
        return f"session:{session_token}"
    if phone_number:
        return f"phone:{phone_number}"

    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = headers.get("x-real-ip") or client_host or "unknown"
    return f"ip:{ip}"
