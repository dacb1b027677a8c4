# -*- coding: utf-8 -*-
"""
Estado de sincronización por entidad (identidad remota y salud)
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


class SyncStatus(str, enum.Enum):
    PENDING = 'pending'
    SYNCED = 'synced'
    FAILED = 'failed'
    DISABLED = 'disabled'


@dataclass
class SyncRecord:
    """
    Registro de sincronización de una entidad, clave (entity_type, local_id)

    Invariantes:
        - status == synced implica remote_id y last_sync_at no nulos
        - status == failed implica last_error no nulo
    """
    entity_type: str
    local_id: str
    remote_id: Optional[str] = None
    status: SyncStatus = SyncStatus.PENDING
    sync_enabled: bool = True
    last_sync_at: Optional[datetime] = None
    last_synced_payload: Optional[Dict[str, Any]] = None
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None
    id: Optional[int] = field(default=None, compare=False)

    @property
    def key(self):
        return (self.entity_type, self.local_id)

    def is_synced(self) -> bool:
        return self.status == SyncStatus.SYNCED and bool(self.remote_id)

    def is_sync_enabled(self) -> bool:
        return self.sync_enabled and self.status != SyncStatus.DISABLED

    def as_status_dict(self) -> Dict[str, Any]:
        return {
            'is_synced': self.is_synced(),
            'remote_id': self.remote_id,
            'last_sync': self.last_sync_at.isoformat() if self.last_sync_at else None,
            'sync_enabled': self.is_sync_enabled(),
            'sync_status': self.status.value,
            'last_error': self.last_error,
        }
