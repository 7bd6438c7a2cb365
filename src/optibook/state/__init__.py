"""Record store layer.

The store is the single choke point through which every optimistic
mutation, rollback, retry and auto-rollback passes.
"""

from optibook.state.records import OptimisticRecord, RecordStatus
from optibook.state.store import RecordStore
from optibook.state.timers import RollbackTimers

__all__ = [
    "OptimisticRecord",
    "RecordStatus",
    "RecordStore",
    "RollbackTimers",
]
