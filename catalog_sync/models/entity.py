# -*- coding: utf-8 -*-
"""
Contrato de las entidades locales que se sincronizan con el catálogo remoto
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class SyncOptions:
    """
    Capacidades de sincronización declaradas por cada tipo de entidad

    Se resuelven al definir la clase; el dispatcher y el orquestador sólo
    las leen.

    Attributes:
        enabled: El tipo de entidad participa en la sincronización
        sync_on_create: Encolar sincronización al crear la entidad
        sync_on_update: Encolar sincronización al modificar la entidad
        delete_on_remove: Borrar del catálogo remoto al eliminar la entidad
    """
    enabled: bool = True
    sync_on_create: bool = True
    sync_on_update: bool = True
    delete_on_remove: bool = True


class SyncableEntity(ABC):
    """
    Entidad del dominio del llamador que se refleja en el catálogo remoto

    Las subclases definen entity_type, local_id y build_payload(). El
    atributo sync_enabled es el control de sincronización por instancia.

    Ejemplo:
        class Product(SyncableEntity):
            entity_type = 'product'
            sync_options = SyncOptions(delete_on_remove=False)

            def __init__(self, pk, name, price):
                self.local_id = pk
                ...

            def build_payload(self):
                return {'offerId': self.local_id, 'title': self.name, ...}
    """

    entity_type: str = 'entity'
    sync_options: SyncOptions = SyncOptions()
    sync_enabled: bool = True

    local_id: Any = None

    @abstractmethod
    def build_payload(self) -> Dict[str, Any]:
        """
        Construye el payload remoto a partir de los campos de negocio

        Returns:
            dict: Al menos offerId, title, description, link, imageLink,
            price {value, currency} y availability
        """

    @property
    def sync_key(self) -> str:
        """Clave única de la entidad: tipo + id local"""
        return f"{self.entity_type}:{self.local_id}"

    def is_sync_enabled(self) -> bool:
        """La entidad y su tipo permiten sincronizar"""
        return bool(self.sync_enabled) and self.sync_options.enabled
