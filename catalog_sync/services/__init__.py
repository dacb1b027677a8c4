# -*- coding: utf-8 -*-
from .exceptions import (
    DuplicateInFlightError,
    NonRetryableRemoteError,
    NotYetSyncedError,
    RemoteError,
    RetryableRemoteError,
    SyncError,
    ValidationError,
)
from .retry import RetryContext, RetryPolicy
from .rate_limiter import RateLimiter
from .api_client import APIClient
from .remote_client import RemoteCatalogClient, RemoteClient, RemoteResult
from .dedup import DedupGuard, DedupStore, InMemoryDedupStore, DiskCacheDedupStore
from .state_tracker import InMemorySyncStateTracker, SyncStateTracker
from .sync_service import OutcomeStatus, SyncOrchestrator, SyncOutcome
from .batch import BatchError, BatchProcessor, BatchReport
from .dispatcher import SyncDispatcher
