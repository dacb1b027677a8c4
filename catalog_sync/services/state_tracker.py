# -*- coding: utf-8 -*-
"""
Seguimiento del estado de sincronización por entidad

SyncStateTracker es el contrato que el orquestador consume; la capa de
persistencia del llamador lo implementa sobre su propio almacenamiento.
InMemorySyncStateTracker sirve como implementación de referencia.
"""

import copy
import itertools
import threading
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from ..models.sync_log import SyncLogEntry, SyncLogOutcome
from ..models.sync_record import SyncRecord, SyncStatus

_logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SyncStateTracker(ABC):
    """Interfaz estrecha para leer y mutar SyncRecord y su log"""

    @abstractmethod
    def get_record(self, entity_type: str, local_id: str) -> Optional[SyncRecord]:
        """Devuelve el registro o None si la entidad nunca se sincronizó"""

    @abstractmethod
    def create_record(
        self, entity_type: str, local_id: str, defaults: Optional[Dict[str, Any]] = None
    ) -> SyncRecord:
        """Crea el registro (o devuelve el existente) con los valores por defecto"""

    @abstractmethod
    def mark_synced(self, record: SyncRecord, remote_id: str, payload: Dict[str, Any]) -> None:
        """status=synced, remote_id, last_sync_at=ahora, payload, limpia errores"""

    @abstractmethod
    def mark_failed(self, record: SyncRecord, error: str) -> None:
        """status=failed, last_error, last_error_at=ahora"""

    @abstractmethod
    def clear(self, record: SyncRecord) -> None:
        """Tras un borrado remoto: sin remote_id ni last_sync_at, status=pending"""

    @abstractmethod
    def set_enabled(self, record: SyncRecord, enabled: bool) -> None:
        """Activa o desactiva la sincronización de la entidad"""

    @abstractmethod
    def append_log(self, record: SyncRecord, entry: SyncLogEntry) -> None:
        """Añade una entrada al log (sólo anexar)"""

    @abstractmethod
    def get_logs(self, record: SyncRecord) -> List[SyncLogEntry]:
        """Entradas del registro en orden de creación"""

    def get_or_create_record(self, entity_type: str, local_id: str) -> SyncRecord:
        record = self.get_record(entity_type, local_id)
        if record is None:
            record = self.create_record(
                entity_type, local_id, {'sync_enabled': True, 'status': SyncStatus.PENDING}
            )
        return record

    def last_successful_log(self, record: SyncRecord) -> Optional[SyncLogEntry]:
        return next(
            (e for e in reversed(self.get_logs(record)) if e.outcome == SyncLogOutcome.SUCCESS),
            None,
        )

    def last_failed_log(self, record: SyncRecord) -> Optional[SyncLogEntry]:
        return next(
            (e for e in reversed(self.get_logs(record)) if e.outcome == SyncLogOutcome.FAILED),
            None,
        )


class InMemorySyncStateTracker(SyncStateTracker):
    """Tracker en memoria, seguro entre hilos"""

    def __init__(self):
        self._records: Dict[Tuple[str, str], SyncRecord] = {}
        self._logs: Dict[Tuple[str, str], List[SyncLogEntry]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    def get_record(self, entity_type, local_id):
        with self._lock:
            return self._records.get((entity_type, str(local_id)))

    def create_record(self, entity_type, local_id, defaults=None):
        key = (entity_type, str(local_id))
        with self._lock:
            if key in self._records:
                return self._records[key]
            record = SyncRecord(
                entity_type=entity_type, local_id=str(local_id), id=next(self._ids), **(defaults or {})
            )
            self._records[key] = record
            self._logs[key] = []
            _logger.debug(f"Sync record created for {entity_type}:{local_id}")
            return record

    def mark_synced(self, record, remote_id, payload):
        if not remote_id:
            raise ValueError("A synced record requires a remote_id")
        with self._lock:
            record.status = SyncStatus.SYNCED
            record.remote_id = remote_id
            record.last_sync_at = _now()
            record.last_synced_payload = copy.deepcopy(payload)
            record.last_error = None
            record.last_error_at = None

    def mark_failed(self, record, error):
        with self._lock:
            record.status = SyncStatus.FAILED
            record.last_error = error or 'Unknown error'
            record.last_error_at = _now()

    def clear(self, record):
        with self._lock:
            record.remote_id = None
            record.last_sync_at = None
            record.status = SyncStatus.PENDING

    def set_enabled(self, record, enabled):
        with self._lock:
            record.sync_enabled = enabled
            record.status = SyncStatus.PENDING if enabled else SyncStatus.DISABLED

    def append_log(self, record, entry):
        with self._lock:
            self._logs.setdefault(record.key, []).append(entry)

    def get_logs(self, record):
        with self._lock:
            return list(self._logs.get(record.key, []))

    def all_records(self) -> List[SyncRecord]:
        with self._lock:
            return list(self._records.values())
