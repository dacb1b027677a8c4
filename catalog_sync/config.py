# -*- coding: utf-8 -*-
"""
Configuración de la sincronización

Se lee desde variables de entorno con prefijo CATALOG_SYNC_ (o un fichero
.env), p.ej. CATALOG_SYNC_RETRY_ATTEMPTS=5.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SyncConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix='CATALOG_SYNC_',
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
    )

    # API remota
    api_base_url: str = 'http://localhost:8000'
    api_token: str = ''
    api_timeout: float = Field(30, gt=0)

    # Reintentos (segundos)
    retry_attempts: int = Field(3, ge=1)
    retry_delay: float = Field(1.0, ge=0)

    # Peticiones por segundo hacia el catálogo remoto
    rate_limit: int = Field(10, ge=1)

    # Deduplicación
    dedup_enabled: bool = True
    dedup_ttl: int = Field(300, ge=1)

    # Lotes
    batch_size: int = Field(50, ge=1)
    batch_delay: float = Field(0.1, ge=0)

    suppress_exceptions: bool = False
    auto_sync_enabled: bool = True
    max_workers: int = Field(4, ge=1)


_config: Optional[SyncConfig] = None


def get_config() -> SyncConfig:
    global _config
    if _config is None:
        _config = SyncConfig()
    return _config
