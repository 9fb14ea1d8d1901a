"""Service layer modules."""

from .backfill import (
    SyncReport,
    SyncState,
    Synchronizer,
    init_synchronizer,
    run_backfill,
    run_sync_cycle,
)
from .calendar import BusinessCalendar, easter_sunday, target_holidays
from .query import QueryEngine
from .scheduler import ensure_sync_state, init_scheduler, record_sync_report
from .series_store import PersistenceResult, SeriesStore, StoreError
