"""Storage module - Entry Store interface and implementations."""

from .base import EntryStore
from .database import Database, get_db, init_database
from .memory import MemoryEntryStore
from .models import CertificateDB, CheckpointDB, JournalEntryDB
from .sql import SQLEntryStore

__all__ = [
    "EntryStore",
    "Database",
    "get_db",
    "init_database",
    "MemoryEntryStore",
    "SQLEntryStore",
    "JournalEntryDB",
    "CheckpointDB",
    "CertificateDB",
]
