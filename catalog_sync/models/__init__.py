# -*- coding: utf-8 -*-
from .entity import SyncableEntity, SyncOptions
from .sync_record import SyncRecord, SyncStatus
from .sync_log import SyncAction, SyncLogEntry, SyncLogOutcome
