# -*- coding: utf-8 -*-
"""
Servicio de Sincronización de Catálogo
Orquesta la sincronización de una entidad con el catálogo remoto
"""

import enum
import time
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

from ..config import SyncConfig
from ..models.entity import SyncableEntity
from ..models.sync_log import SyncAction, SyncLogEntry
from ..models.sync_record import SyncRecord
from . import payload as payload_rules
from .api_client import APIClient
from .dedup import DedupGuard, DedupStore, InMemoryDedupStore
from .exceptions import NotYetSyncedError, RemoteError
from .rate_limiter import RateLimiter
from .remote_client import RemoteCatalogClient, RemoteClient, RemoteResult
from .retry import RetryPolicy
from .state_tracker import SyncStateTracker

_logger = logging.getLogger(__name__)

DEFAULT_DEDUP_TTL = 300


class OutcomeStatus(str, enum.Enum):
    CREATED = 'created'
    UPDATED = 'updated'
    SKIPPED = 'skipped'
    FAILED = 'failed'


@dataclass
class SyncOutcome:
    """Resultado de sincronizar una entidad"""
    status: OutcomeStatus
    entity_key: str
    remote_id: Optional[str] = None
    reason: Optional[str] = None
    error: Optional[BaseException] = None

    @property
    def is_success(self) -> bool:
        """Hubo create o update remoto"""
        return self.status in (OutcomeStatus.CREATED, OutcomeStatus.UPDATED)

    @classmethod
    def skipped(cls, entity_key, reason):
        return cls(status=OutcomeStatus.SKIPPED, entity_key=entity_key, reason=reason)

    @classmethod
    def failed(cls, entity_key, error, remote_id=None):
        return cls(
            status=OutcomeStatus.FAILED,
            entity_key=entity_key,
            remote_id=remote_id,
            reason=str(error),
            error=error,
        )


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class SyncOrchestrator:
    """
    Sincroniza entidades individuales con el catálogo remoto

    Responsabilidades:
    - Garantizar como máximo una sincronización en curso por entidad
    - Completar, sanear y validar el payload
    - Decidir create o update según el remote_id conocido
    - Mantener el SyncRecord y su log
    - Relanzar o suprimir errores según la configuración
    """

    def __init__(
        self,
        remote_client: RemoteClient,
        tracker: SyncStateTracker,
        dedup_guard: Optional[DedupGuard] = None,
        dedup_ttl: float = DEFAULT_DEDUP_TTL,
        suppress_exceptions: bool = False,
    ):
        """
        Args:
            remote_client: Cliente del catálogo (con reintentos)
            tracker: Persistencia del estado de sincronización
            dedup_guard: Guardia de deduplicación; None la desactiva
            dedup_ttl: TTL del marcador en segundos
            suppress_exceptions: Devolver resultados 'failed' en lugar de lanzar
        """
        self.remote_client = remote_client
        self.tracker = tracker
        self.dedup_guard = dedup_guard
        self.dedup_ttl = dedup_ttl
        self.suppress_exceptions = suppress_exceptions

    @classmethod
    def from_config(
        cls,
        config: SyncConfig,
        tracker: SyncStateTracker,
        dedup_store: Optional[DedupStore] = None,
    ) -> 'SyncOrchestrator':
        """
        Construye el orquestador con el cliente HTTP configurado

        Args:
            config: Configuración de la sincronización
            tracker: Persistencia del estado
            dedup_store: Almacén compartido para la deduplicación; por
                defecto uno en memoria (válido sólo para un proceso)

        Returns:
            SyncOrchestrator listo para usar
        """
        api_client = APIClient(
            base_url=config.api_base_url,
            timeout=config.api_timeout,
            token=config.api_token or None,
        )
        remote_client = RemoteCatalogClient(
            api_client,
            retry_policy=RetryPolicy(
                max_attempts=config.retry_attempts,
                base_delay=config.retry_delay,
            ),
            rate_limiter=RateLimiter(rate=config.rate_limit),
        )

        dedup_guard = None
        if config.dedup_enabled:
            dedup_guard = DedupGuard(dedup_store or InMemoryDedupStore())

        return cls(
            remote_client,
            tracker,
            dedup_guard=dedup_guard,
            dedup_ttl=config.dedup_ttl,
            suppress_exceptions=config.suppress_exceptions,
        )

    # ========== Operaciones públicas ==========
    def sync(self, entity: SyncableEntity, suppress_exceptions: Optional[bool] = None) -> SyncOutcome:
        """
        Crea o actualiza la entidad en el catálogo remoto

        Args:
            entity: Entidad a sincronizar
            suppress_exceptions: Sobrescribe el modo configurado

        Returns:
            SyncOutcome: created / updated, skipped (desactivada o duplicada)
            o failed (sólo en modo supresión)

        Raises:
            ValidationError: Payload inválido
            RemoteError: Fallo remoto tras aplicar la política de reintentos
        """
        key = entity.sync_key

        if not entity.is_sync_enabled():
            _logger.info(f"Sync disabled for {key}, skipping")
            return SyncOutcome.skipped(key, 'sync disabled')

        record = self.tracker.get_record(entity.entity_type, str(entity.local_id))
        if record is not None and not record.is_sync_enabled():
            _logger.info(f"Sync disabled for {key} (record), skipping")
            return SyncOutcome.skipped(key, 'sync disabled')

        with self._hold(key) as acquired:
            if not acquired:
                return SyncOutcome.skipped(key, 'duplicate in flight')
            return self._push(entity, self._suppress(suppress_exceptions))

    def force_update(self, entity: SyncableEntity, suppress_exceptions: Optional[bool] = None) -> SyncOutcome:
        """
        Fuerza el update de una entidad ya sincronizada

        Ignora los controles de sincronización pero respeta la deduplicación.

        Raises:
            NotYetSyncedError: La entidad no tiene remote_id (sin llamada remota)
        """
        key = entity.sync_key
        record = self.tracker.get_record(entity.entity_type, str(entity.local_id))
        if record is None or not record.remote_id:
            raise NotYetSyncedError(f"{key} is not yet synced with the remote catalog")

        with self._hold(key) as acquired:
            if not acquired:
                return SyncOutcome.skipped(key, 'duplicate in flight')
            return self._push(entity, self._suppress(suppress_exceptions), require_remote_id=True)

    def delete(self, entity: SyncableEntity, suppress_exceptions: Optional[bool] = None) -> bool:
        """
        Elimina la entidad del catálogo remoto

        Returns:
            True si se eliminó; False si no había remote_id, si otra
            sincronización está en curso o si falló en modo supresión
        """
        key = entity.sync_key
        record = self.tracker.get_record(entity.entity_type, str(entity.local_id))
        if record is None or not record.remote_id:
            _logger.warning(f"No remote id found for {key}, nothing to delete")
            return False

        with self._hold(key) as acquired:
            if not acquired:
                return False

            remote_id = record.remote_id
            start = time.monotonic()
            try:
                self.remote_client.delete(remote_id)
            except Exception as e:
                self._record_failure(record, SyncAction.DELETE, e, None, start, remote_id)
                _logger.error(f"Failed to delete {key} ({remote_id}) from remote catalog: {e}")
                if self._suppress(suppress_exceptions):
                    return False
                raise

            self.tracker.clear(record)
            self.tracker.append_log(
                record,
                SyncLogEntry.success(SyncAction.DELETE, latency_ms=_elapsed_ms(start), remote_id=remote_id),
            )
            _logger.info(f"{key} deleted from remote catalog ({remote_id})")
            return True

    def get_remote(self, entity: SyncableEntity, suppress_exceptions: Optional[bool] = None) -> Optional[RemoteResult]:
        """
        Recupera el producto remoto de la entidad

        Returns:
            RemoteResult, o None si la entidad no tiene remote_id
        """
        record = self.tracker.get_record(entity.entity_type, str(entity.local_id))
        if record is None or not record.remote_id:
            return None

        start = time.monotonic()
        try:
            result = self.remote_client.get(record.remote_id)
        except Exception as e:
            self.tracker.append_log(
                record,
                SyncLogEntry.failure(
                    SyncAction.GET, e, latency_ms=_elapsed_ms(start), remote_id=record.remote_id
                ),
            )
            _logger.error(f"Failed to get {entity.sync_key} from remote catalog: {e}")
            if self._suppress(suppress_exceptions):
                return None
            raise

        self.tracker.append_log(
            record,
            SyncLogEntry.success(
                SyncAction.GET,
                response_data=result.data,
                latency_ms=_elapsed_ms(start),
                remote_id=record.remote_id,
            ),
        )
        return result

    def validate(self, data: Dict[str, Any]) -> bool:
        """Valida un payload; lanza ValidationError si no es válido"""
        return payload_rules.validate(data)

    def prepare_payload(self, entity: SyncableEntity) -> Dict[str, Any]:
        """Construye, completa, sanea y valida el payload de la entidad"""
        return payload_rules.prepare(entity.build_payload())

    # ========== Control de sincronización ==========
    def enable_sync(self, entity: SyncableEntity) -> None:
        record = self.tracker.get_or_create_record(entity.entity_type, str(entity.local_id))
        self.tracker.set_enabled(record, True)

    def disable_sync(self, entity: SyncableEntity) -> None:
        record = self.tracker.get_or_create_record(entity.entity_type, str(entity.local_id))
        self.tracker.set_enabled(record, False)

    def sync_status(self, entity: SyncableEntity) -> Dict[str, Any]:
        """Resumen del estado de sincronización de la entidad"""
        record = self.tracker.get_record(entity.entity_type, str(entity.local_id))
        if record is None:
            return {
                'is_synced': False,
                'remote_id': None,
                'last_sync': None,
                'sync_enabled': entity.is_sync_enabled(),
                'sync_status': 'pending',
                'last_error': None,
            }
        status = record.as_status_dict()
        status['sync_enabled'] = status['sync_enabled'] and entity.is_sync_enabled()
        return status

    # ========== Métodos Auxiliares ==========
    def _suppress(self, override: Optional[bool]) -> bool:
        return self.suppress_exceptions if override is None else override

    @contextmanager
    def _hold(self, key: str) -> Iterator[bool]:
        if self.dedup_guard is None:
            yield True
            return
        with self.dedup_guard.hold(key, self.dedup_ttl) as acquired:
            yield acquired

    def _record_failure(self, record, action, error, request_data, start, remote_id=None):
        self.tracker.mark_failed(record, str(error))
        self.tracker.append_log(
            record,
            SyncLogEntry.failure(
                action,
                error,
                request_data=request_data,
                latency_ms=_elapsed_ms(start),
                remote_id=remote_id,
            ),
        )

    def _push(self, entity: SyncableEntity, suppress: bool, require_remote_id: bool = False) -> SyncOutcome:
        """
        Envía la entidad al catálogo y actualiza su SyncRecord

        Se ejecuta siempre con el marcador de deduplicación adquirido.
        """
        key = entity.sync_key
        record: SyncRecord = self.tracker.get_or_create_record(entity.entity_type, str(entity.local_id))

        existing_id = record.remote_id
        if require_remote_id and not existing_id:
            raise NotYetSyncedError(f"{key} is not yet synced with the remote catalog")

        action = SyncAction.UPDATE if existing_id else SyncAction.CREATE
        data = None
        start = time.monotonic()

        try:
            data = self.prepare_payload(entity)
            if existing_id:
                result = self.remote_client.update(existing_id, data)
                remote_id = existing_id
            else:
                result = self.remote_client.create(data)
                remote_id = result.remote_id
                if not remote_id:
                    raise RemoteError("Remote catalog did not return an id for the created entity",
                                      response_data=result.data)
        except Exception as e:
            self._record_failure(record, action, e, data, start, existing_id)
            _logger.error(f"Failed to sync {key} ({action.value}): {e}")
            if suppress:
                return SyncOutcome.failed(key, e, remote_id=existing_id)
            raise

        self.tracker.mark_synced(record, remote_id, data)
        self.tracker.append_log(
            record,
            SyncLogEntry.success(
                action,
                request_data=data,
                response_data=result.data,
                latency_ms=_elapsed_ms(start),
                remote_id=remote_id,
            ),
        )

        _logger.info(f"{key} {action.value}d in remote catalog (remote_id={remote_id})")

        status = OutcomeStatus.UPDATED if existing_id else OutcomeStatus.CREATED
        return SyncOutcome(status=status, entity_key=key, remote_id=remote_id)
