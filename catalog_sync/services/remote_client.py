# -*- coding: utf-8 -*-
"""
Cliente del catálogo remoto: create / update / delete / get con reintentos
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import quote

from .api_client import APIClient
from .exceptions import RemoteError
from .rate_limiter import RateLimiter
from .retry import RetryPolicy

_logger = logging.getLogger(__name__)


@dataclass
class RemoteResult:
    """Respuesta del catálogo remoto para un producto"""
    remote_id: Optional[str]
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_response(cls, response: Optional[Dict[str, Any]], fallback_id: Optional[str] = None):
        data = response or {}
        remote_id = data.get('id', fallback_id)
        return cls(remote_id=str(remote_id) if remote_id is not None else None, data=data)


class RemoteClient(ABC):
    """
    Contrato consumido por el orquestador

    Cada operación aplica la política de reintentos de la implementación.
    """

    @abstractmethod
    def create(self, payload: Dict[str, Any]) -> RemoteResult:
        """Inserta el producto y devuelve su identidad remota"""

    @abstractmethod
    def update(self, remote_id: str, payload: Dict[str, Any]) -> RemoteResult:
        """Actualiza un producto existente"""

    @abstractmethod
    def delete(self, remote_id: str) -> None:
        """Elimina un producto del catálogo"""

    @abstractmethod
    def get(self, remote_id: str) -> RemoteResult:
        """Recupera un producto del catálogo"""


class RemoteCatalogClient(RemoteClient):
    """
    Implementación HTTP del RemoteClient

    Cada intento consume un token del rate limiter; RetryPolicy decide
    si se repite.
    """

    def __init__(
        self,
        api_client: APIClient,
        retry_policy: Optional[RetryPolicy] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self.api_client = api_client
        self.retry_policy = retry_policy or RetryPolicy()
        self.rate_limiter = rate_limiter

    def _call(self, operation_name: str, method: str, *args):
        def attempt():
            if self.rate_limiter is not None:
                self.rate_limiter.wait_if_needed()
            return getattr(self.api_client, method)(*args)

        return self.retry_policy.execute(attempt, operation_name)

    @staticmethod
    def _product_path(remote_id: str) -> str:
        return f"/products/{quote(str(remote_id), safe='')}"

    def create(self, payload: Dict[str, Any]) -> RemoteResult:
        response = self._call('create product', 'post', '/products', payload)
        result = RemoteResult.from_response(response)
        if not result.remote_id:
            raise RemoteError("Remote catalog did not return a product id", response_data=response)
        return result

    def update(self, remote_id: str, payload: Dict[str, Any]) -> RemoteResult:
        response = self._call('update product', 'put', self._product_path(remote_id), payload)
        return RemoteResult.from_response(response, fallback_id=remote_id)

    def delete(self, remote_id: str) -> None:
        self._call('delete product', 'delete', self._product_path(remote_id))

    def get(self, remote_id: str) -> RemoteResult:
        response = self._call('get product', 'get', self._product_path(remote_id))
        return RemoteResult.from_response(response, fallback_id=remote_id)

    def health_check(self) -> bool:
        """
        Verifica que la API esté disponible (un único intento)

        Returns:
            True si la API responde 'healthy'
        """
        try:
            response = self.api_client.get('/health')
        except RemoteError:
            return False
        return response is not None and response.get('status') == 'healthy'

    def close(self):
        self.api_client.close()
