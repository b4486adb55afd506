"""
Caché de lectura para la búsqueda de evacuados por nombre.

Guarda la tabla completa de registros (ya unida con residente, barangay,
jefe de familia y centro) durante un TTL. Cualquier escritura confirmada
la invalida para que la siguiente búsqueda relea de la base de datos.
"""
from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional

from evacuation_api.config import settings

logger = logging.getLogger(__name__)

SearchRows = List[Any]


class SearchCache(ABC):
    """Interfaz mínima para poder sustituir la caché (p. ej. por Redis)."""

    @abstractmethod
    def get(self) -> Optional[SearchRows]:
        ...

    @abstractmethod
    def set(self, rows: SearchRows) -> None:
        ...

    @abstractmethod
    def invalidate(self) -> None:
        ...


class TTLSearchCache(SearchCache):
    """Caché en memoria del proceso con caducidad por tiempo."""

    def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._rows: Optional[SearchRows] = None
        self._stored_at = 0.0
        self._lock = threading.Lock()

    def get(self) -> Optional[SearchRows]:
        with self._lock:
            if self._rows is None:
                logger.debug("search cache miss (empty)")
                return None
            if self._clock() - self._stored_at >= self.ttl_seconds:
                logger.debug("search cache miss (stale)")
                self._rows = None
                return None
            logger.debug("search cache hit", extra={"rows": len(self._rows)})
            return self._rows

    def set(self, rows: SearchRows) -> None:
        with self._lock:
            self._rows = list(rows)
            self._stored_at = self._clock()

    def invalidate(self) -> None:
        with self._lock:
            if self._rows is not None:
                logger.debug("search cache invalidated")
            self._rows = None


# Instancia única del proceso
search_cache = TTLSearchCache(ttl_seconds=settings.search_cache_ttl_seconds)


def get_search_cache() -> SearchCache:
    """Dependencia FastAPI; se sobrescribe en tests."""
    return search_cache
