"""One-shot migration from the legacy preference store into the record file."""

import json
from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from harborbook.contacts.models import count_contacts, parse_categories
from harborbook.storage.legacy_prefs import LegacyPreferences
from harborbook.storage.record_store import RecordStore
from harborbook.utils.logging import get_logger

logger = get_logger(__name__)

LEGACY_CATEGORIES_KEY = "OperationalContactCategories"

STATUS_SKIPPED = "skipped_primary_exists"
STATUS_NOTHING = "nothing_to_migrate"
STATUS_MIGRATED = "migrated"
STATUS_INVALID = "invalid_legacy"
STATUS_SAVE_FAILED = "save_failed"
STATUS_UNAVAILABLE = "legacy_unavailable"


@dataclass
class MigrationResult:
    status: str
    categories: int = 0
    contacts: int = 0
    detail: Optional[str] = None

    @property
    def migrated(self) -> bool:
        return self.status == STATUS_MIGRATED


def migrate_legacy_store(
    store: RecordStore,
    prefs: LegacyPreferences,
    key: str = LEGACY_CATEGORIES_KEY,
) -> MigrationResult:
    """
    Move a legacy serialized collection into the record file.

    Safe to call on every startup: once the primary file exists this is a
    no-op. The legacy entry is deleted only after the collection has been
    saved; an unparseable legacy value is left in place for inspection.

    Args:
        store: Destination record store
        prefs: Legacy key/value store
        key: Preference key holding the serialized collection

    Returns:
        MigrationResult describing what happened
    """
    if store.primary_exists():
        return MigrationResult(status=STATUS_SKIPPED)

    try:
        raw = prefs.get(key)
    except SQLAlchemyError as exc:
        logger.error("Legacy preference store %s unreadable: %s", prefs.sqlite_path, exc)
        return MigrationResult(status=STATUS_UNAVAILABLE, detail=str(exc))

    if raw is None:
        return MigrationResult(status=STATUS_NOTHING)

    try:
        categories = parse_categories(json.loads(raw.decode("utf-8")))
    except (UnicodeDecodeError, ValueError, ValidationError) as exc:
        logger.warning("Legacy contacts under %r could not be parsed: %s", key, exc)
        return MigrationResult(status=STATUS_INVALID, detail=str(exc))

    if not categories:
        logger.warning("Legacy contacts under %r hold no categories; leaving them in place", key)
        return MigrationResult(status=STATUS_INVALID, detail="empty collection")

    save_result = store.save(categories)
    if not save_result.ok:
        return MigrationResult(status=STATUS_SAVE_FAILED, detail=save_result.error)

    try:
        prefs.delete(key)
    except SQLAlchemyError as exc:
        # Data is already in the record file; the next run skips on primary_exists.
        logger.warning("Migrated legacy contacts but could not delete %r: %s", key, exc)

    total_contacts = count_contacts(categories)
    logger.info("Migrated %d categories (%d contacts) from legacy store", len(categories), total_contacts)
    return MigrationResult(status=STATUS_MIGRATED, categories=len(categories), contacts=total_contacts)
