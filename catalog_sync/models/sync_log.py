# -*- coding: utf-8 -*-
"""
Entradas del log de sincronización
Proporciona trazabilidad de cada llamada al catálogo remoto
"""

import copy
import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class SyncAction(str, enum.Enum):
    CREATE = 'create'
    UPDATE = 'update'
    DELETE = 'delete'
    GET = 'get'


class SyncLogOutcome(str, enum.Enum):
    SUCCESS = 'success'
    FAILED = 'failed'


@dataclass(frozen=True)
class SyncLogEntry:
    """
    Evento de sincronización, inmutable una vez escrito

    Attributes:
        action: Operación remota realizada
        outcome: Resultado de la operación
        error_message: Mensaje del error (si aplica)
        request_data: Payload enviado
        response_data: Respuesta del servicio remoto
        latency_ms: Duración de la llamada en milisegundos
        remote_id: ID remoto implicado en la operación
        created_at: Momento de la escritura
    """
    action: SyncAction
    outcome: SyncLogOutcome
    error_message: Optional[str] = None
    request_data: Optional[Dict[str, Any]] = None
    response_data: Optional[Dict[str, Any]] = None
    latency_ms: int = 0
    remote_id: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def success(cls, action, request_data=None, response_data=None, latency_ms=0, remote_id=None):
        """Atajo para registrar operación exitosa"""
        return cls(
            action=SyncAction(action),
            outcome=SyncLogOutcome.SUCCESS,
            request_data=copy.deepcopy(request_data),
            response_data=copy.deepcopy(response_data),
            latency_ms=latency_ms,
            remote_id=remote_id,
        )

    @classmethod
    def failure(cls, action, error, request_data=None, latency_ms=0, remote_id=None):
        """Atajo para registrar error"""
        response_data = getattr(error, 'response_data', None)
        return cls(
            action=SyncAction(action),
            outcome=SyncLogOutcome.FAILED,
            error_message=str(error),
            request_data=copy.deepcopy(request_data),
            response_data=copy.deepcopy(response_data),
            latency_ms=latency_ms,
            remote_id=remote_id,
        )

    def is_successful(self) -> bool:
        return self.outcome == SyncLogOutcome.SUCCESS

    def is_failed(self) -> bool:
        return self.outcome == SyncLogOutcome.FAILED

    def formatted_latency(self) -> str:
        if not self.latency_ms:
            return 'N/A'
        if self.latency_ms < 1000:
            return f"{self.latency_ms}ms"
        return f"{round(self.latency_ms / 1000, 2)}s"

    def error_summary(self) -> str:
        if not self.error_message:
            return 'No error'
        if len(self.error_message) > 100:
            return self.error_message[:100] + '...'
        return self.error_message
