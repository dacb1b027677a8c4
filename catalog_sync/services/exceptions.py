# -*- coding: utf-8 -*-
"""
Jerarquía de excepciones de la sincronización de catálogo
"""

from typing import Any, Dict, Optional


class SyncError(Exception):
    """Excepción base para todos los errores de sincronización"""
    pass


class ValidationError(SyncError):
    """
    El payload no cumple con los campos requeridos o su formato

    Nunca se reintenta: se lanza antes de cualquier llamada remota.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class RemoteError(SyncError):
    """Error devuelto (o provocado) por el servicio de catálogo remoto"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data


class RetryableRemoteError(RemoteError):
    """Fallo transitorio (red, timeout, 5xx, 429): se reintenta con backoff"""
    pass


class NonRetryableRemoteError(RemoteError):
    """Autenticación, autorización o petición mal formada: aborta inmediatamente"""
    pass


class NotYetSyncedError(SyncError):
    """Se pidió forzar la actualización de una entidad sin remote_id conocido"""
    pass


class DuplicateInFlightError(SyncError):
    """
    Ya existe una sincronización en curso para la misma entidad

    Nunca se lanza hacia el llamador: se reporta como resultado 'skipped'.
    """
    pass
