# -*- coding: utf-8 -*-
"""
Guardia de deduplicación: como máximo una sincronización en curso por entidad

El marcador vive en un almacén clave-valor con TTL compartido por todos los
procesos que sincronizan. Si el proceso muere sin liberar el marcador, la
siguiente sincronización se permite al expirar el TTL.
"""

import threading
import time
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Callable, Dict, Iterator

import diskcache

_logger = logging.getLogger(__name__)


class DedupStore(ABC):
    """Almacén con semántica atómica add-if-absent y expiración"""

    @abstractmethod
    def add(self, key: str, ttl: float) -> bool:
        """
        Guarda `key` si no existe un valor vigente

        Returns:
            True si se guardó, False si ya existía y no ha expirado
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Elimina `key` si existe"""


class InMemoryDedupStore(DedupStore):
    """Almacén para un único proceso (tests, despliegues de una instancia)"""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._expires: Dict[str, float] = {}
        self._lock = threading.Lock()

    def add(self, key: str, ttl: float) -> bool:
        with self._lock:
            now = self._clock()
            expires_at = self._expires.get(key)
            if expires_at is not None and expires_at > now:
                return False
            self._expires[key] = now + ttl
            return True

    def delete(self, key: str) -> None:
        with self._lock:
            self._expires.pop(key, None)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            expires_at = self._expires.get(key)
            return expires_at is not None and expires_at > self._clock()


class DiskCacheDedupStore(DedupStore):
    """
    Almacén compartido entre procesos sobre un directorio de diskcache

    Cache.add es atómico entre procesos y trata las claves expiradas como
    ausentes, así que un marcador abandonado deja de bloquear al vencer el TTL.
    """

    def __init__(self, directory: str, timeout: float = 60.0):
        self.directory = directory
        self._cache = diskcache.Cache(directory=directory, timeout=timeout)

    def add(self, key: str, ttl: float) -> bool:
        return self._cache.add(key, True, expire=ttl)

    def delete(self, key: str) -> None:
        self._cache.delete(key)

    def __contains__(self, key: str) -> bool:
        return key in self._cache

    def close(self):
        self._cache.close()


class DedupGuard:
    """
    Adquiere y libera marcadores de sincronización en curso

    Uso:
        with guard.hold(entity.sync_key, ttl=300) as acquired:
            if not acquired:
                return skipped
            ...
    """

    def __init__(self, store: DedupStore, prefix: str = 'catalog_sync'):
        self.store = store
        self.prefix = prefix

    def _marker(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def try_acquire(self, key: str, ttl: float) -> bool:
        acquired = self.store.add(self._marker(key), ttl)
        if not acquired:
            _logger.info(f"Skipping duplicate sync for {key}")
        return acquired

    def release(self, key: str) -> None:
        self.store.delete(self._marker(key))

    @contextmanager
    def hold(self, key: str, ttl: float) -> Iterator[bool]:
        """
        Context manager que libera el marcador en cualquier salida

        Sólo libera si fue este bloque quien lo adquirió.
        """
        acquired = self.try_acquire(key, ttl)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(key)
