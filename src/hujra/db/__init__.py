"""Database module for local persistence.

Provides:
- RecordStore: async SQLite store for the students and visits collections
- Backup export/import (full dataset, atomic replace)
"""

from hujra.db.backup import (
    InvalidBackupFormatError,
    export_backup,
    import_backup,
)
from hujra.db.database import RecordStore, StorageUnavailableError

__all__ = [
    "RecordStore",
    "StorageUnavailableError",
    "InvalidBackupFormatError",
    "export_backup",
    "import_backup",
]
