"""Backup export/import for the whole dataset.

Backup document (JSON):
    {"students": [...], "visits": [...], "version": "2.0"}

Import is a destructive full replace, never a merge. Validation runs before
anything is written, so a rejected document leaves the store untouched.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog

from hujra.core.models import STUDENTS, VISITS, Student, VisitEvent
from hujra.db.database import RecordStore
from hujra.utils.text_utils import today_iso

logger = structlog.get_logger(__name__)

BACKUP_VERSION = "2.0"
BACKUP_FILENAME_TEMPLATE = "hujra_backup_{date}.json"


class InvalidBackupFormatError(Exception):
    """Raised when a backup document fails structural validation."""

    pass


async def export_backup(store: RecordStore) -> dict[str, Any]:
    """Snapshot the store as a backup document.

    The result holds plain JSON values only, so later store mutations can
    never change it.

    Returns:
        Backup document ready for json.dump
    """
    students = await store.get_all(STUDENTS)
    visits = await store.get_all(VISITS)

    logger.info("backup.exported", students=len(students), visits=len(visits))
    return {
        "students": [s.to_dict() for s in students],
        "visits": [v.to_dict() for v in visits],
        "version": BACKUP_VERSION,
    }


async def import_backup(store: RecordStore, doc: Any) -> tuple[int, int]:
    """Replace the whole store with the contents of a backup document.

    The caller is responsible for confirming with the user first.

    Args:
        store: Store to overwrite
        doc: Parsed backup document

    Returns:
        (students, visits) counts written

    Raises:
        InvalidBackupFormatError: If the document is malformed (store untouched)
    """
    students, visits = parse_backup(doc)
    await store.replace_all(students, visits)

    logger.info("backup.imported", students=len(students), visits=len(visits))
    return len(students), len(visits)


def parse_backup(doc: Any) -> tuple[list[Student], list[VisitEvent]]:
    """Validate a backup document and decode its records.

    Raises:
        InvalidBackupFormatError: On any structural problem
    """
    if not isinstance(doc, dict):
        raise InvalidBackupFormatError("Backup must be a JSON object")

    for key in (STUDENTS, VISITS):
        if key not in doc:
            raise InvalidBackupFormatError(f"Backup is missing the '{key}' field")
        if not isinstance(doc[key], list):
            raise InvalidBackupFormatError(f"Backup field '{key}' must be a list")

    version = doc.get("version")
    if version is not None and not _is_supported_version(version):
        raise InvalidBackupFormatError(f"Unsupported backup version: {version!r}")

    _check_items(doc[STUDENTS], STUDENTS, required=("id",))
    _check_items(doc[VISITS], VISITS, required=("id", "studentId"))

    try:
        students = [Student.from_dict(item) for item in doc[STUDENTS]]
        visits = [VisitEvent.from_dict(item) for item in doc[VISITS]]
    except (TypeError, ValueError, AttributeError) as e:
        raise InvalidBackupFormatError(f"Malformed record in backup: {e}") from e

    return students, visits


def backup_filename(date: str | None = None) -> str:
    """File name for a backup taken on the given date (default: today)."""
    return BACKUP_FILENAME_TEMPLATE.format(date=date or today_iso())


def write_backup_file(doc: dict[str, Any], directory: Path) -> Path:
    """Write a backup document to directory/hujra_backup_<date>.json.

    Returns:
        Path to the written file
    """
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / backup_filename()

    with open(path, "w", encoding="utf-8") as f:
        json.dump(doc, f, indent=2, ensure_ascii=False)

    logger.info("backup.written", path=str(path))
    return path


def read_backup_file(path: Path) -> Any:
    """Load a backup file from disk.

    Raises:
        InvalidBackupFormatError: If the file is unreadable or not JSON
    """
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidBackupFormatError(f"Backup file is not valid JSON: {e}") from e
    except OSError as e:
        raise InvalidBackupFormatError(f"Cannot read backup file {path}: {e}") from e


def _is_supported_version(version: Any) -> bool:
    major = str(version).split(".", 1)[0]
    return major == BACKUP_VERSION.split(".", 1)[0]


def _check_items(items: list[Any], key: str, required: tuple[str, ...]) -> None:
    seen: set[str] = set()
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise InvalidBackupFormatError(f"{key}[{index}] must be an object")
        for field_name in required:
            value = item.get(field_name)
            if not isinstance(value, str) or not value:
                raise InvalidBackupFormatError(
                    f"{key}[{index}] has no valid '{field_name}'"
                )
        if item["id"] in seen:
            raise InvalidBackupFormatError(f"{key} has duplicate id {item['id']!r}")
        seen.add(item["id"])
