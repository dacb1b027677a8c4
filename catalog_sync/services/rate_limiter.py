# -*- coding: utf-8 -*-
"""
Rate Limiter - Control de tasa de peticiones al catálogo remoto
Algoritmo Token Bucket
"""

import time
import threading
import logging
from typing import Callable

_logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Token Bucket compartido por todos los hilos de un cliente remoto

    - Capacidad máxima = rate
    - Se generan 'rate' tokens cada 'per_seconds'
    - Cada intento remoto consume 1 token; si no hay, se espera

    Ejemplo:
        limiter = RateLimiter(rate=10)
        limiter.wait_if_needed()
        client.create(payload)
    """

    def __init__(
        self,
        rate: int = 10,
        per_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if rate < 1:
            raise ValueError("rate must be >= 1")
        self.rate = rate
        self.per_seconds = per_seconds
        self.max_tokens = float(rate)
        self.tokens = float(rate)

        self._clock = clock
        self._sleep = sleep
        self.last_refill = clock()
        self.lock = threading.Lock()

        _logger.info(f"RateLimiter initialized: {rate} requests per {per_seconds} seconds")

    def _refill_tokens(self):
        now = self._clock()
        elapsed = now - self.last_refill
        self.tokens = min(self.max_tokens, self.tokens + elapsed * (self.rate / self.per_seconds))
        self.last_refill = now

    def _wait_time(self) -> float:
        if self.tokens >= 1.0:
            return 0.0
        return (1.0 - self.tokens) * (self.per_seconds / self.rate)

    def wait_if_needed(self) -> float:
        """
        Consume un token, esperando si el bucket está vacío

        Returns:
            Segundos esperados
        """
        with self.lock:
            self._refill_tokens()
            wait_time = self._wait_time()

            if wait_time > 0:
                _logger.debug(f"Rate limit reached, waiting {wait_time:.3f}s")
                self._sleep(wait_time)
                self._refill_tokens()
                # El reloj puede no avanzar (tests o resolución baja)
                self.tokens = max(self.tokens, 1.0)

            self.tokens -= 1.0
            return wait_time

    def try_acquire(self) -> bool:
        """Intenta consumir un token sin esperar"""
        with self.lock:
            self._refill_tokens()
            if self.tokens >= 1.0:
                self.tokens -= 1.0
                return True
            return False

    def reset(self):
        with self.lock:
            self.tokens = self.max_tokens
            self.last_refill = self._clock()
