"""Infrastructure layer exports."""

from .records import InMemoryRecordStore, RecordStore, TransactionFilters

__all__ = [
    "InMemoryRecordStore",
    "RecordStore",
    "TransactionFilters",
]
