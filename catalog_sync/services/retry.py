# -*- coding: utf-8 -*-
"""
Política de reintentos con backoff exponencial
Clasifica los errores remotos en reintentables y no reintentables
"""

import time
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .exceptions import NonRetryableRemoteError, ValidationError

_logger = logging.getLogger(__name__)

# Firmas de errores de autenticación / petición inválida
NON_RETRYABLE_SIGNATURES = (
    'invalid_grant',
    'unauthorized_client',
    'invalid_client',
    'invalid_request',
    'access_denied',
)


@dataclass
class RetryContext:
    """Estado de una llamada remota mientras dura; no se persiste"""
    operation: str
    max_attempts: int
    base_delay: float
    attempt: int = 0
    last_exception: Optional[BaseException] = None


class RetryPolicy:
    """
    Ejecuta operaciones remotas con reintentos

    Características:
    - Hasta max_attempts intentos
    - Errores no reintentables se relanzan inmediatamente, tal cual
    - Backoff exponencial: base_delay * 2^(intento-1)
    - Tras el último intento se relanza el error más reciente
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: Optional[float] = 60.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            max_attempts: Número máximo de intentos (>= 1)
            base_delay: Espera base en segundos
            max_delay: Tope de espera entre intentos (None: sin tope)
            sleep: Función de espera (inyectable en tests)
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._sleep = sleep

    def _calculate_backoff(self, attempt: int) -> float:
        """
        Calcula tiempo de espera tras el intento fallido número `attempt`

        Args:
            attempt: Número de intento actual (1-based)

        Returns:
            Segundos a esperar antes del siguiente intento
        """
        delay = self.base_delay * 2 ** (attempt - 1)
        if self.max_delay is None:
            return delay
        return min(delay, self.max_delay)

    def is_retryable(self, error: BaseException) -> bool:
        """
        Determina si un error merece otro intento

        Args:
            error: Excepción lanzada por la operación

        Returns:
            False para errores de validación, no reintentables o cuyo mensaje
            contiene una firma conocida de autenticación; True en otro caso
        """
        if isinstance(error, (NonRetryableRemoteError, ValidationError)):
            return False

        message = str(error).lower()
        return not any(signature in message for signature in NON_RETRYABLE_SIGNATURES)

    def execute(self, operation: Callable[[], Any], operation_name: str = 'remote call') -> Any:
        """
        Ejecuta `operation` aplicando la política

        Args:
            operation: Callable sin argumentos que realiza la llamada remota
            operation_name: Nombre para los logs

        Returns:
            El valor devuelto por la operación

        Raises:
            Exception: El error no reintentable, o el último error tras
                agotar los intentos
        """
        context = RetryContext(
            operation=operation_name,
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
        )

        while context.attempt < context.max_attempts:
            context.attempt += 1
            _logger.debug(f"[Attempt {context.attempt}/{context.max_attempts}] {operation_name}")

            try:
                return operation()
            except Exception as e:
                context.last_exception = e

                if not self.is_retryable(e):
                    _logger.error(f"{operation_name} failed with non-retryable error: {e}")
                    raise

                if context.attempt >= context.max_attempts:
                    break

                backoff = self._calculate_backoff(context.attempt)
                _logger.warning(
                    f"{operation_name} failed: {e}, retrying in {backoff}s... "
                    f"(attempt {context.attempt}/{context.max_attempts})"
                )
                self._sleep(backoff)

        _logger.error(
            f"{operation_name} failed after {context.max_attempts} attempts: {context.last_exception}"
        )
        raise context.last_exception
