# -*- coding: utf-8 -*-
from . import models
from . import services

from .config import SyncConfig, get_config
from .models import SyncableEntity, SyncOptions, SyncRecord, SyncStatus, SyncLogEntry
from .services import (
    BatchProcessor,
    BatchReport,
    SyncDispatcher,
    SyncOrchestrator,
    SyncOutcome,
    InMemorySyncStateTracker,
    ValidationError,
    NotYetSyncedError,
)

__version__ = '1.0.0'
