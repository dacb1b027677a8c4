# -*- coding: utf-8 -*-
"""
Procesamiento por lotes
Sincroniza colecciones de entidades sin que un fallo aborte el lote
"""

import itertools
import time
import uuid
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from ..models.entity import SyncableEntity
from .sync_service import OutcomeStatus, SyncOrchestrator

_logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50
DEFAULT_BATCH_DELAY = 0.1


@dataclass
class BatchError:
    entity_key: str
    error: str
    exception: Optional[BaseException] = field(default=None, repr=False, compare=False)


@dataclass
class BatchReport:
    """
    Resumen de una ejecución de sync_all

    success_count sólo cuenta creates/updates reales; errors conserva el
    orden de procesamiento, sin deduplicar.
    """
    batch_id: str
    total: int = 0
    success_count: int = 0
    skipped_count: int = 0
    errors: List[BatchError] = field(default_factory=list)
    execution_time: float = 0.0

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def as_dict(self):
        return {
            'batch_id': self.batch_id,
            'total': self.total,
            'successes': self.success_count,
            'skipped': self.skipped_count,
            'errors': [{'entity_key': e.entity_key, 'error': e.error} for e in self.errors],
            'execution_time': self.execution_time,
        }


def _chunks(entities: Iterable[SyncableEntity], size: int):
    iterator = iter(entities)
    while True:
        chunk = list(itertools.islice(iterator, size))
        if not chunk:
            return
        yield chunk


class BatchProcessor:
    """
    Ejecuta el orquestador sobre colecciones de entidades

    - Particiona en lotes consecutivos de batch_size
    - Dentro de un lote sincroniza una entidad cada vez
    - Captura cada error en el reporte y continúa
    - Espera batch_delay entre lotes (no antes del primero)
    """

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.orchestrator = orchestrator
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self._sleep = sleep

    @classmethod
    def from_config(cls, config, orchestrator: SyncOrchestrator) -> 'BatchProcessor':
        return cls(orchestrator, batch_size=config.batch_size, batch_delay=config.batch_delay)

    def sync_all(
        self,
        entities: Iterable[SyncableEntity],
        batch_size: Optional[int] = None,
    ) -> BatchReport:
        """
        Sincroniza todas las entidades

        Args:
            entities: Colección (o iterador) de entidades
            batch_size: Sobrescribe el tamaño de lote configurado

        Returns:
            BatchReport: Éxitos, omitidas, errores por entidad y total
        """
        size = self.batch_size if batch_size is None else batch_size
        if size < 1:
            raise ValueError("batch_size must be >= 1")

        report = BatchReport(batch_id=str(uuid.uuid4()))
        start_time = time.time()

        _logger.info("=" * 80)
        _logger.info(f"STARTING BULK SYNC (batch_size={size}, batch_id={report.batch_id})")
        _logger.info("=" * 80)

        try:
            for batch_index, chunk in enumerate(_chunks(entities, size)):
                if batch_index > 0 and self.batch_delay > 0:
                    self._sleep(self.batch_delay)

                _logger.info(f"Processing batch {batch_index} ({len(chunk)} entities)")

                for entity in chunk:
                    report.total += 1
                    self._sync_one(entity, report)
        finally:
            report.execution_time = round(time.time() - start_time, 2)

            _logger.info("=" * 80)
            _logger.info("BULK SYNC COMPLETED")
            _logger.info(f"Total:    {report.total}")
            _logger.info(f"Success:  {report.success_count}")
            _logger.info(f"Skipped:  {report.skipped_count}")
            _logger.info(f"Errors:   {report.error_count}")
            _logger.info(f"Time:     {report.execution_time:.2f}s")
            _logger.info("=" * 80)

        if report.errors:
            _logger.warning(
                f"Bulk sync completed with errors: "
                f"{[(e.entity_key, e.error) for e in report.errors]}"
            )

        return report

    def _sync_one(self, entity: SyncableEntity, report: BatchReport):
        key = getattr(entity, 'sync_key', repr(entity))
        try:
            outcome = self.orchestrator.sync(entity, suppress_exceptions=False)
        except Exception as e:
            _logger.error(f"Error processing {key}: {e}")
            report.errors.append(BatchError(entity_key=key, error=str(e), exception=e))
            return

        if outcome.is_success:
            report.success_count += 1
        elif outcome.status == OutcomeStatus.FAILED:
            report.errors.append(
                BatchError(entity_key=key, error=outcome.reason or 'sync failed', exception=outcome.error)
            )
        else:
            report.skipped_count += 1
