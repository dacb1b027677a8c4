# -*- coding: utf-8 -*-
"""
Entidades y cliente remoto falsos compartidos por los tests
"""

from catalog_sync.models.entity import SyncableEntity, SyncOptions
from catalog_sync.services.remote_client import RemoteClient, RemoteResult


def valid_payload(**overrides):
    payload = {
        'offerId': 'SKU1',
        'title': 'Widget',
        'description': 'A widget',
        'link': 'https://x/1',
        'imageLink': 'https://x/1.jpg',
        'price': {'value': '9.9', 'currency': 'USD'},
        'availability': 'in stock',
    }
    payload.update(overrides)
    return payload


class Product(SyncableEntity):
    """Producto de ejemplo"""
    entity_type = 'product'

    def __init__(self, pk, **fields):
        self.local_id = pk
        self.fields = valid_payload(offerId=f'SKU{pk}')
        self.fields.update(fields)
        self.build_calls = 0

    def build_payload(self):
        self.build_calls += 1
        return dict(self.fields)


class ManualProduct(Product):
    """Tipo que sólo se sincroniza manualmente"""
    entity_type = 'manual_product'
    sync_options = SyncOptions(sync_on_create=False, sync_on_update=False, delete_on_remove=False)


class FakeRemoteClient(RemoteClient):
    """
    Catálogo remoto en memoria

    errors: {'create': [exc, ...]} se lanzan en orden, una por llamada.
    """

    def __init__(self):
        self.calls = []
        self.errors = {}
        self.products = {}

    def _maybe_fail(self, method):
        queue = self.errors.get(method)
        if queue:
            raise queue.pop(0)

    def create(self, payload):
        self.calls.append(('create', payload))
        self._maybe_fail('create')
        remote_id = f"online:en:US:{payload['offerId']}"
        self.products[remote_id] = payload
        return RemoteResult(remote_id, {'id': remote_id})

    def update(self, remote_id, payload):
        self.calls.append(('update', remote_id, payload))
        self._maybe_fail('update')
        self.products[remote_id] = payload
        return RemoteResult(remote_id, {'id': remote_id})

    def delete(self, remote_id):
        self.calls.append(('delete', remote_id))
        self._maybe_fail('delete')
        self.products.pop(remote_id, None)

    def get(self, remote_id):
        self.calls.append(('get', remote_id))
        self._maybe_fail('get')
        return RemoteResult(remote_id, {'id': remote_id, **self.products.get(remote_id, {})})

    def methods_called(self):
        return [call[0] for call in self.calls]
