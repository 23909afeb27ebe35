# src/portal/web/backend/cache.py

"""
Caché en memoria para las lecturas públicas (búsqueda, estadísticas y métricas).
Cualquier modificación de los catálogos limpia el caché completo.
"""

import asyncio
import functools
import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class CacheEntry:
    """Entrada de caché con timestamp y TTL."""

    def __init__(self, value: Any, ttl: int):
        self.value = value
        self.timestamp = time.time()
        self.ttl = ttl

    def is_expired(self) -> bool:
        return (time.time() - self.timestamp) > self.ttl


class SimpleCache:
    """Caché simple en memoria con soporte para TTL y un máximo de entradas."""

    def __init__(self, max_entries: int = 1000):
        self._cache: Dict[str, CacheEntry] = {}
        self._max_entries = max_entries
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[Any]:
        """Obtiene un valor si existe y no ha expirado."""
        async with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None

            if entry.is_expired():
                del self._cache[key]
                logger.debug(f"Caché expirado para la clave: {key}")
                return None

            logger.debug(f"Acierto de caché para la clave: {key}")
            return entry.value

    async def set(self, key: str, value: Any, ttl: int):
        async with self._lock:
            self._cache.pop(key, None)
            self._cache[key] = CacheEntry(value, ttl)
            logger.debug(f"Caché guardado para la clave: {key} (TTL: {ttl}s)")
            if len(self._cache) > self._max_entries:
                self._evict()

    def _evict(self):
        """Elimina las entradas expiradas y, si aún sobra, las más antiguas."""
        for key in [k for k, entry in self._cache.items() if entry.is_expired()]:
            del self._cache[key]
        sobrantes = len(self._cache) - self._max_entries
        if sobrantes > 0:
            # Los dict conservan el orden de inserción
            for key in list(self._cache)[:sobrantes]:
                del self._cache[key]
        logger.debug(f"Caché depurado: {len(self._cache)} entradas")

    async def invalidate(self, key: str):
        async with self._lock:
            if self._cache.pop(key, None) is not None:
                logger.debug(f"Caché invalidado para la clave: {key}")

    async def clear(self):
        async with self._lock:
            self._cache.clear()
            logger.info("Caché limpiado")

    def get_stats(self) -> Dict[str, Any]:
        return {
            "total_entries": len(self._cache),
            "entries": [
                {
                    "key": key,
                    "age_seconds": time.time() - entry.timestamp,
                    "ttl": entry.ttl,
                    "expired": entry.is_expired(),
                }
                for key, entry in self._cache.items()
            ],
        }


_cache = SimpleCache()


def cached(ttl: int = 300):
    """
    Decorador para cachear resultados con TTL.

    La función decorada siempre queda asíncrona: las funciones síncronas (consultas
    a la BD) se ejecutan en un hilo con asyncio.to_thread.

    Uso:
        @cached(ttl=60)
        async def buscar(db, query=None):
            ...
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            cache_key = _generate_cache_key(func.__name__, args, kwargs)

            cached_value = await _cache.get(cache_key)
            if cached_value is not None:
                return cached_value

            if asyncio.iscoroutinefunction(func):
                result = await func(*args, **kwargs)
            else:
                result = await asyncio.to_thread(func, *args, **kwargs)

            await _cache.set(cache_key, result, ttl)
            return result

        return wrapper

    return decorator


def _generate_cache_key(func_name: str, args: Tuple, kwargs: Dict) -> str:
    """
    Genera la clave del caché a partir del nombre de la función y de sus argumentos.

    Solo se consideran argumentos primitivos; los objetos complejos (como el
    DatabaseConnector) se ignoran.
    """
    primitivos = (str, int, float, bool, type(None))
    serializable_args = [str(arg) for arg in args if isinstance(arg, primitivos)]
    serializable_kwargs = {k: str(v) for k, v in kwargs.items() if isinstance(v, primitivos)}

    parts = [func_name]
    if serializable_args:
        parts.append("_".join(serializable_args))
    if serializable_kwargs:
        parts.append("_".join(f"{k}={v}" for k, v in sorted(serializable_kwargs.items())))
    return ":".join(parts)


async def invalidate_cache(key: str):
    await _cache.invalidate(key)


async def clear_cache():
    await _cache.clear()


def get_cache_stats() -> Dict[str, Any]:
    return _cache.get_stats()
