# -*- coding: utf-8 -*-
"""
Cliente HTTP para comunicación con el catálogo remoto
Realiza un único intento por petición y clasifica los errores;
los reintentos los aplica RetryPolicy desde RemoteCatalogClient
"""

import requests
import logging
from typing import Optional, Dict, Any

from .exceptions import NonRetryableRemoteError, RetryableRemoteError

_logger = logging.getLogger(__name__)

# Estados HTTP transitorios aparte de 5xx
RETRYABLE_STATUS_CODES = (408, 429)


class APIClient:
    """
    Transporte HTTP hacia la API del catálogo

    - Sesión requests reutilizable con cabeceras por defecto
    - Timeout configurable
    - 2xx -> JSON (o None), 408/429/5xx y fallos de red -> RetryableRemoteError,
      resto de 4xx -> NonRetryableRemoteError
    """

    def __init__(self, base_url: str, timeout: float = 30, token: Optional[str] = None):
        """
        Args:
            base_url: URL base de la API (ej: http://localhost:8000)
            timeout: Timeout en segundos para cada petición
            token: Token bearer de autenticación
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()

        self.session.headers.update({
            'Content-Type': 'application/json',
            'User-Agent': 'CatalogSync/1.0',
        })
        if token:
            self.session.headers['Authorization'] = f'Bearer {token}'

        _logger.info(f"APIClient initialized: {base_url} (timeout={timeout}s)")

    def _error_payload(self, response: requests.Response) -> Optional[Dict[str, Any]]:
        try:
            data = response.json()
        except ValueError:
            return None
        return data if isinstance(data, dict) else {'detail': data}

    def _make_request(self, method: str, endpoint: str, **kwargs) -> Optional[Dict[str, Any]]:
        """
        Realiza una petición HTTP (un solo intento)

        Args:
            method: Método HTTP (GET, POST, PUT, DELETE)
            endpoint: Endpoint de la API (ej: /products)
            **kwargs: Argumentos adicionales para requests (params, json, etc.)

        Returns:
            Diccionario con la respuesta JSON o None si no hay cuerpo

        Raises:
            RetryableRemoteError: Error transitorio
            NonRetryableRemoteError: Error del cliente (4xx)
        """
        url = f"{self.base_url}{endpoint}"
        _logger.debug(f"{method} {url}")

        try:
            response = self.session.request(method=method, url=url, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            raise RetryableRemoteError(f"Request timeout: {method} {url}") from e
        except requests.exceptions.ConnectionError as e:
            raise RetryableRemoteError(f"Connection error: {method} {url}: {e}") from e
        except requests.exceptions.RequestException as e:
            raise RetryableRemoteError(f"Request exception: {e}") from e

        _logger.debug(
            f"Response: {response.status_code} (time: {response.elapsed.total_seconds():.2f}s)"
        )

        if 200 <= response.status_code < 300:
            if response.status_code == 204:
                return None
            try:
                return response.json()
            except ValueError:
                _logger.warning(f"Invalid JSON response from {url}")
                return None

        message = f"{method} {endpoint} failed: {response.status_code} - {response.text}"
        error_data = self._error_payload(response)

        if response.status_code >= 500 or response.status_code in RETRYABLE_STATUS_CODES:
            raise RetryableRemoteError(message, response.status_code, error_data)

        raise NonRetryableRemoteError(message, response.status_code, error_data)

    def get(self, endpoint: str, params: Optional[Dict] = None) -> Optional[Dict[str, Any]]:
        return self._make_request('GET', endpoint, params=params)

    def post(self, endpoint: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._make_request('POST', endpoint, json=data)

    def put(self, endpoint: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._make_request('PUT', endpoint, json=data)

    def delete(self, endpoint: str) -> Optional[Dict[str, Any]]:
        return self._make_request('DELETE', endpoint)

    def close(self):
        """Cierra la sesión HTTP"""
        self.session.close()
        _logger.info("APIClient session closed")
