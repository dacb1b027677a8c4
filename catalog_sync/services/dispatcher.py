# -*- coding: utf-8 -*-
"""
Despacho asíncrono de sincronizaciones ante eventos de las entidades

Los eventos de creación, modificación y borrado encolan trabajos en un pool
de hilos; la garantía es que el trabajo se intentará, no que sea inmediato.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from ..models.entity import SyncableEntity
from .sync_service import SyncOrchestrator

_logger = logging.getLogger(__name__)


class SyncDispatcher:
    """
    Encola sync/delete según auto_sync_enabled y las SyncOptions del tipo

    Uso:
        dispatcher = SyncDispatcher(orchestrator)
        dispatcher.on_created(product)   # Future o None
        dispatcher.shutdown()
    """

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        auto_sync_enabled: bool = True,
        max_workers: int = 4,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.orchestrator = orchestrator
        self.auto_sync_enabled = auto_sync_enabled
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix='catalog-sync'
        )

    @classmethod
    def from_config(cls, config, orchestrator: SyncOrchestrator) -> 'SyncDispatcher':
        return cls(
            orchestrator,
            auto_sync_enabled=config.auto_sync_enabled,
            max_workers=config.max_workers,
        )

    def on_created(self, entity: SyncableEntity) -> Optional[Future]:
        if not self._accepts(entity) or not entity.sync_options.sync_on_create:
            return None
        return self._submit('sync', entity, self.orchestrator.sync)

    def on_updated(self, entity: SyncableEntity) -> Optional[Future]:
        if not self._accepts(entity) or not entity.sync_options.sync_on_update:
            return None
        return self._submit('sync', entity, self.orchestrator.sync)

    def on_deleted(self, entity: SyncableEntity) -> Optional[Future]:
        if not self._accepts(entity) or not entity.sync_options.delete_on_remove:
            return None
        return self._submit('delete', entity, self.orchestrator.delete)

    def shutdown(self, wait: bool = True):
        self._executor.shutdown(wait=wait)

    def _accepts(self, entity: SyncableEntity) -> bool:
        return self.auto_sync_enabled and entity.is_sync_enabled()

    def _submit(self, job_name: str, entity: SyncableEntity, job: Callable) -> Future:
        key = entity.sync_key

        def run():
            try:
                return job(entity)
            except Exception:
                _logger.error(f"Queued {job_name} of {key} failed", exc_info=True)
                raise

        _logger.debug(f"Queued {job_name} of {key}")
        return self._executor.submit(run)
