"""File-backed persistence for the contact collection.

The primary record file is always replaced atomically (temp file + rename).
Before each save the current primary is copied to a single rotating backup,
so the backup lags the primary by exactly one generation. Loading falls back
from primary to backup to the seed collection and never raises.
"""

from __future__ import annotations

import json
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from harborbook.config.loader import StorageSettings
from harborbook.contacts.models import Category, default_categories, dump_categories, parse_categories
from harborbook.utils.id_generator import short_token
from harborbook.utils.logging import get_logger
from harborbook.utils.time import filename_stamp, utc_now_z

logger = get_logger(__name__)

FILE_FORMAT_VERSION = 1
MANUAL_BACKUP_PREFIX = "contacts_backup_"

LOAD_SOURCE_PRIMARY = "primary"
LOAD_SOURCE_BACKUP = "backup"
LOAD_SOURCE_DEFAULTS = "defaults"


@dataclass
class SaveResult:
    """Outcome of a save; failures are reported here instead of raised."""

    ok: bool
    path: Path
    backed_up: bool = False
    verified: bool = False
    error: Optional[str] = None


@dataclass
class FileStats:
    primary_path: Path
    primary_exists: bool
    primary_bytes: int
    backup_path: Path
    backup_exists: bool
    backup_bytes: int


def _file_size(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError:
        return 0


class RecordStore:
    """Primary/backup JSON file pair holding the whole category collection."""

    def __init__(
        self,
        primary_path: Path | str,
        backup_path: Path | str,
        manual_backup_dir: Path | str | None = None,
    ):
        self.primary_path = Path(primary_path)
        self.backup_path = Path(backup_path)
        self.manual_backup_dir = Path(manual_backup_dir) if manual_backup_dir else self.primary_path.parent / "backups"
        self.last_load_source: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: StorageSettings) -> "RecordStore":
        return cls(settings.primary_path, settings.backup_path, settings.manual_backup_dir)

    # ------------------------------------------------------------------ load

    def load(self) -> List[Category]:
        """
        Load the collection, recovering through primary → backup → defaults.

        A usable backup is written straight back to the primary location. When
        both files are unusable the seed collection is synthesized and saved.
        """
        categories = self._read(self.primary_path)
        if categories is not None:
            self.last_load_source = LOAD_SOURCE_PRIMARY
            return categories

        categories = self._read(self.backup_path)
        if categories is not None:
            logger.warning("Recovered %d categories from backup %s", len(categories), self.backup_path)
            self.last_load_source = LOAD_SOURCE_BACKUP
            try:
                self._write_atomic(self.primary_path, self._serialize(categories))
            except OSError as exc:
                logger.error("Failed to restore primary %s from backup: %s", self.primary_path, exc)
            return categories

        logger.warning("No usable contacts file at %s or %s; creating defaults", self.primary_path, self.backup_path)
        self.last_load_source = LOAD_SOURCE_DEFAULTS
        categories = default_categories()
        self.save(categories)
        return categories

    def _read(self, path: Path) -> Optional[List[Category]]:
        """Return the categories stored at path, or None if the file is unusable."""
        if not path.exists():
            return None
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            categories = parse_categories(payload)
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning("Unreadable contacts file %s: %s", path, exc)
            return None
        if not categories:
            logger.warning("Contacts file %s holds no categories", path)
            return None
        return categories

    # ------------------------------------------------------------------ save

    def save(self, categories: List[Category]) -> SaveResult:
        """
        Rotate the current primary into the backup slot, then atomically write.

        The written file is re-read and compared against what was intended;
        a mismatch is logged and reported but not rolled back.
        """
        result = SaveResult(ok=False, path=self.primary_path)
        text = self._serialize(categories)
        try:
            if self.primary_path.exists():
                self._copy_atomic(self.primary_path, self.backup_path)
                result.backed_up = True
            self._write_atomic(self.primary_path, text)
        except OSError as exc:
            logger.error("Failed to save contacts to %s: %s", self.primary_path, exc)
            result.error = str(exc)
            return result

        result.ok = True
        result.verified = self._verify(categories)
        if not result.verified:
            logger.error("Verification of %s failed after save", self.primary_path)
        return result

    def _serialize(self, categories: List[Category]) -> str:
        document = {
            "version": FILE_FORMAT_VERSION,
            "saved_at": utc_now_z(),
            "categories": dump_categories(categories),
        }
        return json.dumps(document, indent=2, ensure_ascii=False) + "\n"

    def _verify(self, categories: List[Category]) -> bool:
        stored = self._read(self.primary_path)
        if stored is None:
            return False
        return dump_categories(stored) == dump_categories(categories)

    @staticmethod
    def _write_atomic(path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, path)
        except Exception:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    @staticmethod
    def _copy_atomic(source: Path, target: Path) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent))
        os.close(fd)
        try:
            shutil.copyfile(source, tmp_name)
            os.replace(tmp_name, target)
        except Exception:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    # --------------------------------------------------------------- backups

    def manual_backup(self) -> Optional[Path]:
        """Copy the primary file to a uniquely named timestamped backup. Returns None on failure."""
        if not self.primary_path.exists():
            logger.warning("No contacts file at %s to back up", self.primary_path)
            return None
        target = self.manual_backup_dir / f"{MANUAL_BACKUP_PREFIX}{filename_stamp()}_{short_token()}.json"
        try:
            self.manual_backup_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(self.primary_path, target)
        except OSError as exc:
            logger.error("Manual backup to %s failed: %s", target, exc)
            return None
        logger.info("Created manual backup %s", target)
        return target

    def list_manual_backups(self) -> List[Path]:
        if not self.manual_backup_dir.exists():
            return []
        return sorted(self.manual_backup_dir.glob(f"{MANUAL_BACKUP_PREFIX}*.json"))

    def restore_manual_backup(self, path: Path | str) -> Optional[List[Category]]:
        """
        Make a manual backup the current collection.

        The restore goes through save(), so the replaced primary rotates into
        the backup slot and can still be recovered.
        """
        categories = self._read(Path(path))
        if categories is None:
            logger.error("Manual backup %s is not a usable contacts file", path)
            return None
        if not self.save(categories).ok:
            return None
        return categories

    # ----------------------------------------------------------- diagnostics

    def file_stats(self) -> FileStats:
        return FileStats(
            primary_path=self.primary_path,
            primary_exists=self.primary_path.exists(),
            primary_bytes=_file_size(self.primary_path),
            backup_path=self.backup_path,
            backup_exists=self.backup_path.exists(),
            backup_bytes=_file_size(self.backup_path),
        )

    def primary_exists(self) -> bool:
        return self.primary_path.exists()


__all__ = [
    "FileStats",
    "RecordStore",
    "SaveResult",
    "LOAD_SOURCE_BACKUP",
    "LOAD_SOURCE_DEFAULTS",
    "LOAD_SOURCE_PRIMARY",
]
