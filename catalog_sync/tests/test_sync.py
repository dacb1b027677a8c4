# -*- coding: utf-8 -*-
"""
Tests del orquestador de sincronización
Verifican create/update, deduplicación, errores, supresión y borrado
"""

import threading

import pytest
from unittest.mock import Mock

from catalog_sync.config import SyncConfig
from catalog_sync.models.sync_log import SyncAction, SyncLogOutcome
from catalog_sync.models.sync_record import SyncStatus
from catalog_sync.services.api_client import APIClient
from catalog_sync.services.dedup import DedupGuard, InMemoryDedupStore
from catalog_sync.services.exceptions import (
    NonRetryableRemoteError,
    NotYetSyncedError,
    RemoteError,
    RetryableRemoteError,
    ValidationError,
)
from catalog_sync.services.remote_client import RemoteCatalogClient, RemoteResult
from catalog_sync.services.retry import RetryPolicy
from catalog_sync.services.state_tracker import InMemorySyncStateTracker
from catalog_sync.services.sync_service import OutcomeStatus, SyncOrchestrator
from catalog_sync.tests.helpers import FakeRemoteClient, Product, valid_payload


class TestSyncOrchestrator:
    """Test suite para SyncOrchestrator"""

    def setup_method(self):
        self.remote = FakeRemoteClient()
        self.tracker = InMemorySyncStateTracker()
        self.store = InMemoryDedupStore()
        self.orchestrator = SyncOrchestrator(
            self.remote,
            self.tracker,
            dedup_guard=DedupGuard(self.store),
            dedup_ttl=300,
        )

    def record_for(self, product):
        return self.tracker.get_record(product.entity_type, str(product.local_id))

    # ========== create / update ==========
    def test_first_sync_creates(self):
        """Test: Sin remote_id se llama a create y el registro queda synced"""
        product = Product(1)

        outcome = self.orchestrator.sync(product)

        assert outcome.status == OutcomeStatus.CREATED
        assert outcome.remote_id == 'online:en:US:SKU1'
        assert self.remote.methods_called() == ['create']

        record = self.record_for(product)
        assert record.status == SyncStatus.SYNCED
        assert record.remote_id == 'online:en:US:SKU1'
        assert record.last_sync_at is not None
        assert record.last_synced_payload['price'] == {'value': '9.90', 'currency': 'USD'}

        logs = self.tracker.get_logs(record)
        assert [(e.action, e.outcome) for e in logs] == [(SyncAction.CREATE, SyncLogOutcome.SUCCESS)]

    def test_second_sync_updates_and_keeps_remote_id(self):
        product = Product(1)
        self.orchestrator.sync(product)

        product.fields['title'] = 'Widget v2'
        outcome = self.orchestrator.sync(product)

        assert outcome.status == OutcomeStatus.UPDATED
        assert self.remote.calls[-1][0] == 'update'
        assert self.remote.calls[-1][1] == 'online:en:US:SKU1'
        assert self.record_for(product).remote_id == 'online:en:US:SKU1'
        assert self.record_for(product).last_synced_payload['title'] == 'Widget v2'

    def test_payload_is_sanitized_before_sending(self):
        product = Product(7, title=' <b>Widget</b> ', offerId=7)
        del product.fields['availability']

        self.orchestrator.sync(product)

        sent = self.remote.calls[0][1]
        assert sent['title'] == 'Widget'
        assert sent['offerId'] == '7'
        assert sent['availability'] == 'in stock'
        assert sent['condition'] == 'new'

    # ========== controles de sincronización ==========
    def test_disabled_entity_is_skipped(self):
        """Test: Entidad desactivada -> skipped sin llamada ni registro"""
        product = Product(1)
        product.sync_enabled = False

        outcome = self.orchestrator.sync(product)

        assert outcome.status == OutcomeStatus.SKIPPED
        assert self.remote.calls == []
        assert self.record_for(product) is None

    def test_disabled_record_is_skipped(self):
        product = Product(1)
        self.orchestrator.disable_sync(product)

        outcome = self.orchestrator.sync(product)

        assert outcome.status == OutcomeStatus.SKIPPED
        assert self.remote.calls == []
        assert self.record_for(product).status == SyncStatus.DISABLED

        self.orchestrator.enable_sync(product)
        assert self.orchestrator.sync(product).status == OutcomeStatus.CREATED

    # ========== deduplicación ==========
    def test_duplicate_in_flight_is_skipped(self):
        """Test: Segunda sincronización mientras la primera está en curso -> skipped"""
        product = Product(1)
        started = threading.Event()
        finish = threading.Event()
        original_create = self.remote.create

        def slow_create(payload):
            started.set()
            finish.wait(5)
            return original_create(payload)

        self.remote.create = slow_create
        results = []
        worker = threading.Thread(target=lambda: results.append(self.orchestrator.sync(product)))
        worker.start()
        assert started.wait(5)

        second = self.orchestrator.sync(product)

        finish.set()
        worker.join(5)

        assert second.status == OutcomeStatus.SKIPPED
        assert second.reason == 'duplicate in flight'
        assert results[0].status == OutcomeStatus.CREATED
        assert len(self.remote.calls) == 1

    def test_marker_held_by_other_process_skips(self):
        """Test: Marcador vigente (p.ej. de otro proceso) -> skipped"""
        product = Product(1)
        self.orchestrator.dedup_guard.try_acquire(product.sync_key, 300)

        first = self.orchestrator.sync(product)
        second = self.orchestrator.sync(product)

        assert first.status == OutcomeStatus.SKIPPED
        assert second.status == OutcomeStatus.SKIPPED
        assert self.remote.calls == []

    def test_guard_released_after_success_and_failure(self):
        product = Product(1)
        self.orchestrator.sync(product)
        assert f"catalog_sync:{product.sync_key}" not in self.store

        self.remote.errors['update'] = [NonRetryableRemoteError('400 invalid_request')]
        with pytest.raises(NonRetryableRemoteError):
            self.orchestrator.sync(product)
        assert f"catalog_sync:{product.sync_key}" not in self.store

    def test_guard_released_after_validation_error(self):
        product = Product(1, availability='sold out')

        with pytest.raises(ValidationError):
            self.orchestrator.sync(product)

        assert f"catalog_sync:{product.sync_key}" not in self.store

    def test_without_dedup_guard(self):
        orchestrator = SyncOrchestrator(self.remote, self.tracker)

        assert orchestrator.sync(Product(1)).status == OutcomeStatus.CREATED
        assert orchestrator.sync(Product(1)).status == OutcomeStatus.UPDATED

    # ========== errores ==========
    def test_validation_error_recorded_and_raised(self):
        """Test: Error de validación sin llamada remota, registrado como failed"""
        product = Product(1)
        del product.fields['title']

        with pytest.raises(ValidationError) as exc_info:
            self.orchestrator.sync(product)

        assert exc_info.value.field == 'title'
        assert self.remote.calls == []
        record = self.record_for(product)
        assert record.status == SyncStatus.FAILED
        assert 'title' in record.last_error
        assert self.tracker.last_failed_log(record).action == SyncAction.CREATE

    def test_remote_failure_recorded_and_raised(self):
        product = Product(1)
        self.remote.errors['create'] = [NonRetryableRemoteError('401 invalid_client')]

        with pytest.raises(NonRetryableRemoteError):
            self.orchestrator.sync(product)

        record = self.record_for(product)
        assert record.status == SyncStatus.FAILED
        assert record.last_error == '401 invalid_client'
        assert record.last_error_at is not None
        assert record.remote_id is None
        entry = self.tracker.last_failed_log(record)
        assert entry.request_data['offerId'] == 'SKU1'

    def test_suppress_mode_returns_failed_outcome(self):
        """Test: En modo supresión el error se devuelve como resultado"""
        self.orchestrator.suppress_exceptions = True
        product = Product(1)
        self.remote.errors['create'] = [RetryableRemoteError('503')]

        outcome = self.orchestrator.sync(product)

        assert outcome.status == OutcomeStatus.FAILED
        assert isinstance(outcome.error, RetryableRemoteError)
        assert self.record_for(product).status == SyncStatus.FAILED

    def test_suppress_override_per_call(self):
        product = Product(1, price={'value': '-5', 'currency': 'USD'})

        outcome = self.orchestrator.sync(product, suppress_exceptions=True)

        assert outcome.status == OutcomeStatus.FAILED
        assert isinstance(outcome.error, ValidationError)

    def test_large_price_is_sent(self):
        """Test: Un precio enorme pero válido se envía al catálogo"""
        product = Product(1, price={'value': 10 ** 27, 'currency': 'USD'})

        outcome = self.orchestrator.sync(product, suppress_exceptions=True)

        assert outcome.status == OutcomeStatus.CREATED
        assert self.remote.methods_called() == ['create']

    def test_create_without_remote_id_is_recorded(self):
        """Test: Una respuesta de create sin id marca el registro como failed"""
        product = Product(1)
        self.remote.create = Mock(return_value=RemoteResult(None, {}))

        outcome = self.orchestrator.sync(product, suppress_exceptions=True)

        record = self.record_for(product)
        assert outcome.status == OutcomeStatus.FAILED
        assert isinstance(outcome.error, RemoteError)
        assert record.status == SyncStatus.FAILED
        assert record.remote_id is None
        assert self.tracker.last_failed_log(record).action == SyncAction.CREATE

    def test_failed_then_retry_success(self):
        """Test: failed -> synced al reintentar con éxito"""
        product = Product(1)
        self.remote.errors['create'] = [RetryableRemoteError('503')]
        with pytest.raises(RetryableRemoteError):
            self.orchestrator.sync(product)

        outcome = self.orchestrator.sync(product)

        record = self.record_for(product)
        assert outcome.status == OutcomeStatus.CREATED
        assert record.status == SyncStatus.SYNCED
        assert record.last_error is None

    def test_payload_builder_failure_is_recorded(self):
        product = Product(1)
        product.build_payload = Mock(side_effect=KeyError('price'))

        with pytest.raises(KeyError):
            self.orchestrator.sync(product)

        assert self.record_for(product).status == SyncStatus.FAILED

    # ========== force_update ==========
    def test_force_update_requires_remote_id(self):
        """Test: force_update sin remote_id -> NotYetSyncedError sin llamada remota"""
        product = Product(1)

        with pytest.raises(NotYetSyncedError):
            self.orchestrator.force_update(product)

        self.orchestrator.suppress_exceptions = True
        with pytest.raises(NotYetSyncedError):
            self.orchestrator.force_update(product)

        assert self.remote.calls == []

    def test_force_update_ignores_disabled_flag(self):
        product = Product(1)
        self.orchestrator.sync(product)
        product.sync_enabled = False

        outcome = self.orchestrator.force_update(product)

        assert outcome.status == OutcomeStatus.UPDATED
        assert self.remote.methods_called() == ['create', 'update']

    # ========== delete ==========
    def test_delete_without_remote_id(self):
        """Test: delete sin remote_id -> False sin error"""
        assert self.orchestrator.delete(Product(1)) is False
        assert self.remote.calls == []

    def test_delete_clears_record(self):
        """Test: synced -> pending tras borrar"""
        product = Product(1)
        self.orchestrator.sync(product)

        assert self.orchestrator.delete(product) is True

        record = self.record_for(product)
        assert self.remote.calls[-1] == ('delete', 'online:en:US:SKU1')
        assert record.remote_id is None
        assert record.last_sync_at is None
        assert record.status == SyncStatus.PENDING
        assert self.tracker.get_logs(record)[-1].action == SyncAction.DELETE

        # Tras borrar, la siguiente sincronización vuelve a crear
        assert self.orchestrator.sync(product).status == OutcomeStatus.CREATED

    def test_delete_failure(self):
        product = Product(1)
        self.orchestrator.sync(product)
        self.remote.errors['delete'] = [NonRetryableRemoteError('403 access_denied')]

        with pytest.raises(NonRetryableRemoteError):
            self.orchestrator.delete(product)

        record = self.record_for(product)
        assert record.status == SyncStatus.FAILED
        assert record.remote_id == 'online:en:US:SKU1'

        self.remote.errors['delete'] = [NonRetryableRemoteError('403 access_denied')]
        assert self.orchestrator.delete(product, suppress_exceptions=True) is False

    def test_delete_while_sync_in_flight(self):
        product = Product(1)
        self.orchestrator.sync(product)
        self.orchestrator.dedup_guard.try_acquire(product.sync_key, 300)

        assert self.orchestrator.delete(product) is False
        assert self.remote.methods_called() == ['create']

    # ========== get / estado ==========
    def test_get_remote(self):
        product = Product(1)
        assert self.orchestrator.get_remote(product) is None

        self.orchestrator.sync(product)
        result = self.orchestrator.get_remote(product)

        assert result.remote_id == 'online:en:US:SKU1'
        assert result.data['title'] == 'Widget'
        assert self.tracker.get_logs(self.record_for(product))[-1].action == SyncAction.GET

    def test_sync_status(self):
        product = Product(1)
        assert self.orchestrator.sync_status(product)['sync_status'] == 'pending'

        self.orchestrator.sync(product)
        status = self.orchestrator.sync_status(product)

        assert status['is_synced'] is True
        assert status['remote_id'] == 'online:en:US:SKU1'
        assert status['sync_status'] == 'synced'
        assert status['last_error'] is None

    def test_validate_scenario(self):
        """Test: El payload del escenario es válido tras sanear"""
        prepared = self.orchestrator.prepare_payload(Product(1))

        assert prepared['price']['value'] == '9.90'
        assert self.orchestrator.validate(prepared) is True
        with pytest.raises(ValidationError):
            self.orchestrator.validate(valid_payload(link=None))


class TestSyncWithRetries:
    """Integración orquestador + RemoteCatalogClient + RetryPolicy"""

    def setup_method(self):
        self.api = Mock(spec=APIClient)
        self.sleeps = []
        remote = RemoteCatalogClient(
            self.api,
            retry_policy=RetryPolicy(max_attempts=3, base_delay=1.0, sleep=self.sleeps.append),
        )
        self.tracker = InMemorySyncStateTracker()
        self.orchestrator = SyncOrchestrator(remote, self.tracker, dedup_guard=DedupGuard(InMemoryDedupStore()))

    def test_two_transient_failures_then_success(self):
        """Test: 2 fallos reintentables y éxito -> 3 intentos con esperas 1s, 2s"""
        self.api.post.side_effect = [
            RetryableRemoteError('503', status_code=503),
            RetryableRemoteError('503', status_code=503),
            {'id': 'online:en:US:SKU1'},
        ]

        outcome = self.orchestrator.sync(Product(1))

        assert outcome.status == OutcomeStatus.CREATED
        assert self.api.post.call_count == 3
        assert self.sleeps == [1.0, 2.0]
        assert self.sleeps[1] / self.sleeps[0] == 2

    def test_non_retryable_single_attempt(self):
        """Test: Error no reintentable -> exactamente 1 intento"""
        self.api.post.side_effect = NonRetryableRemoteError('401 invalid_client', status_code=401)

        with pytest.raises(NonRetryableRemoteError):
            self.orchestrator.sync(Product(1))

        assert self.api.post.call_count == 1
        assert self.sleeps == []

    def test_exhausted_retries_raise_last_error(self):
        errors = [RetryableRemoteError(f'503 #{i}') for i in range(3)]
        self.api.post.side_effect = errors

        with pytest.raises(RetryableRemoteError) as exc_info:
            self.orchestrator.sync(Product(1))

        assert exc_info.value is errors[-1]
        record = self.tracker.get_record('product', '1')
        assert record.last_error == '503 #2'


class TestFromConfig:

    def test_wiring(self):
        config = SyncConfig(
            api_base_url='http://catalog:9000',
            api_token='t0k3n',
            retry_attempts=5,
            retry_delay=0.5,
            dedup_ttl=60,
            suppress_exceptions=True,
        )

        orchestrator = SyncOrchestrator.from_config(config, InMemorySyncStateTracker())

        remote = orchestrator.remote_client
        assert remote.api_client.base_url == 'http://catalog:9000'
        assert remote.api_client.session.headers['Authorization'] == 'Bearer t0k3n'
        assert remote.retry_policy.max_attempts == 5
        assert remote.retry_policy.base_delay == 0.5
        assert remote.rate_limiter.rate == 10
        assert orchestrator.dedup_ttl == 60
        assert orchestrator.suppress_exceptions is True
        assert isinstance(orchestrator.dedup_guard.store, InMemoryDedupStore)

    def test_dedup_disabled(self):
        config = SyncConfig(dedup_enabled=False)

        orchestrator = SyncOrchestrator.from_config(config, InMemorySyncStateTracker())

        assert orchestrator.dedup_guard is None
