"""Mutation API for the category collection.

ContactBook owns the in-memory collection. Every successful mutation is
followed by one synchronous save; rejected mutations leave the collection
untouched and report a Disposition instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, List, NamedTuple, Optional, Set, Tuple

from harborbook.config.loader import StorageSettings
from harborbook.storage.legacy_prefs import LegacyPreferences
from harborbook.storage.migrate import MigrationResult, migrate_legacy_store
from harborbook.storage.record_store import RecordStore, SaveResult
from harborbook.utils.id_generator import new_contact_id
from harborbook.utils.logging import get_logger
from harborbook.utils.time import display_stamp, utc_now

from .models import Category, Contact
from .queries import SearchHit, frequently_used, search

logger = get_logger(__name__)


class Disposition(str, Enum):
    OK = "ok"
    NOOP = "noop"
    BLOCKED_SYSTEM = "blocked_system"
    BLOCKED_NONEMPTY = "blocked_nonempty"
    INVALID_INDEX = "invalid_index"
    INVALID_NAME = "invalid_name"
    INVALID_CONTACT = "invalid_contact"
    NOT_FOUND = "not_found"


@dataclass
class MutationResult:
    disposition: Disposition
    message: Optional[str] = None
    save: Optional[SaveResult] = None

    @property
    def ok(self) -> bool:
        return self.disposition is Disposition.OK

    @property
    def saved(self) -> bool:
        return self.save is not None and self.save.ok


class ContactPosition(NamedTuple):
    category: int
    row: int


SYSTEM_DELETE_MESSAGE = "The Emergency category cannot be deleted as it's required for the SMS feature"
SYSTEM_RENAME_MESSAGE = "The Emergency category cannot be renamed as it's required for the SMS feature"
SYSTEM_MOVE_MESSAGE = "The Emergency category cannot be moved"
INCOMPLETE_CONTACT_MESSAGE = "Contact name and phone are required"


def nonempty_delete_message(count: int) -> str:
    noun = "contact" if count == 1 else "contacts"
    return f"This category contains {count} {noun}. Delete anyway?"


class ContactBook:
    """Owns the category collection and persists it after every mutation."""

    def __init__(self, store: RecordStore, categories: Optional[List[Category]] = None):
        self.store = store
        self.migration: Optional[MigrationResult] = None
        if categories is not None:
            self._categories: List[Category] = [category.model_copy(deep=True) for category in categories]
        else:
            self._categories = store.load()

    @classmethod
    def open(cls, settings: StorageSettings, prefs: Optional[LegacyPreferences] = None) -> "ContactBook":
        """Build the store, run the legacy migration once, then load."""
        store = RecordStore.from_settings(settings)
        prefs = prefs or LegacyPreferences(settings.legacy_prefs_path)
        try:
            migration = migrate_legacy_store(store, prefs)
        finally:
            prefs.close()
        book = cls(store)
        book.migration = migration
        return book

    # ------------------------------------------------------------- read side

    @property
    def categories(self) -> List[Category]:
        """Deep copy of the collection; edits to it never reach the store."""
        return [category.model_copy(deep=True) for category in self._categories]

    def __len__(self) -> int:
        return len(self._categories)

    def category_names(self) -> List[str]:
        return [category.name for category in self._categories]

    def find_contact(self, contact_id: str) -> Optional[Tuple[int, int, Contact]]:
        for category_index, category in enumerate(self._categories):
            for row, contact in enumerate(category.contacts):
                if contact.id == contact_id:
                    return category_index, row, contact.model_copy(deep=True)
        return None

    def search(self, query: str) -> List[SearchHit]:
        return [SearchHit(hit.contact.model_copy(deep=True), hit.category) for hit in search(self._categories, query)]

    def frequently_used(self, limit: int = 5) -> List[Contact]:
        return [contact.model_copy(deep=True) for contact in frequently_used(self._categories, limit)]

    def reload(self) -> List[Category]:
        self._categories = self.store.load()
        return self.categories

    # -------------------------------------------------------------- helpers

    def _commit(self, message: Optional[str] = None) -> MutationResult:
        save = self.store.save(self._categories)
        if not save.ok:
            logger.warning("Change kept in memory but not saved: %s", save.error)
        return MutationResult(Disposition.OK, message=message, save=save)

    def _reject(self, disposition: Disposition, message: str) -> MutationResult:
        logger.warning("Rejected change (%s): %s", disposition.value, message)
        return MutationResult(disposition, message=message)

    def _valid_category(self, index: int) -> bool:
        return 0 <= index < len(self._categories)

    def _valid_row(self, category_index: int, row: int) -> bool:
        return self._valid_category(category_index) and 0 <= row < len(self._categories[category_index].contacts)

    def _contact_ids(self) -> Set[str]:
        return {contact.id for category in self._categories for contact in category.contacts}

    def _admit(self, contacts: Iterable[Contact], fresh_ids: bool = False) -> Optional[List[Contact]]:
        """
        Copy incoming contacts for storage, or None if any lacks a name or phone.

        Ids already in the collection (or repeated within the batch) are
        replaced; fresh_ids replaces every id.
        """
        incoming = list(contacts)
        if not all(contact.is_complete() for contact in incoming):
            return None
        taken = self._contact_ids()
        admitted: List[Contact] = []
        for contact in incoming:
            if fresh_ids or contact.id in taken:
                copy = contact.model_copy(update={"id": new_contact_id()}, deep=True)
            else:
                copy = contact.model_copy(deep=True)
            taken.add(copy.id)
            admitted.append(copy)
        return admitted

    # ------------------------------------------------------------ categories

    def add_category(self, name: str, contacts: Optional[Iterable[Contact]] = None) -> MutationResult:
        name = (name or "").strip()
        if not name:
            return self._reject(Disposition.INVALID_NAME, "Category name must not be empty")
        admitted = self._admit(contacts or [])
        if admitted is None:
            return self._reject(Disposition.INVALID_CONTACT, INCOMPLETE_CONTACT_MESSAGE)
        self._categories.append(Category(name=name, contacts=admitted, is_system=False))
        return self._commit()

    def can_delete_category(self, index: int) -> MutationResult:
        if not self._valid_category(index):
            return MutationResult(Disposition.INVALID_INDEX, message=f"No category at index {index}")
        category = self._categories[index]
        if category.is_system:
            return MutationResult(Disposition.BLOCKED_SYSTEM, message=SYSTEM_DELETE_MESSAGE)
        if category.contacts:
            return MutationResult(Disposition.BLOCKED_NONEMPTY, message=nonempty_delete_message(len(category.contacts)))
        return MutationResult(Disposition.OK)

    def can_rename_category(self, index: int) -> MutationResult:
        if not self._valid_category(index):
            return MutationResult(Disposition.INVALID_INDEX, message=f"No category at index {index}")
        if self._categories[index].is_system:
            return MutationResult(Disposition.BLOCKED_SYSTEM, message=SYSTEM_RENAME_MESSAGE)
        return MutationResult(Disposition.OK)

    def delete_category(self, index: int) -> MutationResult:
        """Delete an empty, non-system category; non-empty ones need force_delete_category."""
        check = self.can_delete_category(index)
        if not check.ok:
            if check.disposition is not Disposition.BLOCKED_NONEMPTY:
                logger.warning("Rejected category delete (%s): %s", check.disposition.value, check.message)
            return check
        del self._categories[index]
        return self._commit()

    def force_delete_category(self, index: int) -> MutationResult:
        if not self._valid_category(index):
            return self._reject(Disposition.INVALID_INDEX, f"No category at index {index}")
        if self._categories[index].is_system:
            return self._reject(Disposition.BLOCKED_SYSTEM, SYSTEM_DELETE_MESSAGE)
        del self._categories[index]
        return self._commit()

    def rename_category(self, index: int, name: str) -> MutationResult:
        check = self.can_rename_category(index)
        if not check.ok:
            return self._reject(check.disposition, check.message or "")
        name = (name or "").strip()
        if not name:
            return self._reject(Disposition.INVALID_NAME, "Category name must not be empty")
        if self._categories[index].name == name:
            return MutationResult(Disposition.NOOP)
        self._categories[index].name = name
        return self._commit()

    def move_category(self, source: int, destination: int) -> MutationResult:
        """Reorder categories; the system category neither moves nor is displaced."""
        if not (self._valid_category(source) and self._valid_category(destination)):
            return self._reject(Disposition.INVALID_INDEX, f"Cannot move category {source} to {destination}")
        if self._categories[source].is_system or self._categories[destination].is_system:
            return self._reject(Disposition.BLOCKED_SYSTEM, SYSTEM_MOVE_MESSAGE)
        if source == destination:
            return MutationResult(Disposition.NOOP)
        category = self._categories.pop(source)
        self._categories.insert(destination, category)
        return self._commit()

    # -------------------------------------------------------------- contacts

    def add_contact(self, category_index: int, contact: Contact) -> MutationResult:
        if not self._valid_category(category_index):
            return self._reject(Disposition.INVALID_INDEX, f"No category at index {category_index}")
        admitted = self._admit([contact])
        if admitted is None:
            return self._reject(Disposition.INVALID_CONTACT, INCOMPLETE_CONTACT_MESSAGE)
        self._categories[category_index].contacts.extend(admitted)
        return self._commit()

    def update_contact(self, category_index: int, row: int, contact: Contact) -> MutationResult:
        """Replace the contact at (category_index, row); the stored contact keeps its id."""
        if not self._valid_row(category_index, row):
            return self._reject(Disposition.INVALID_INDEX, f"No contact at ({category_index}, {row})")
        if not contact.is_complete():
            return self._reject(Disposition.INVALID_CONTACT, INCOMPLETE_CONTACT_MESSAGE)
        contacts = self._categories[category_index].contacts
        contacts[row] = contact.model_copy(update={"id": contacts[row].id}, deep=True)
        return self._commit()

    def delete_contact(self, category_index: int, row: int) -> MutationResult:
        if not self._valid_row(category_index, row):
            return self._reject(Disposition.INVALID_INDEX, f"No contact at ({category_index}, {row})")
        del self._categories[category_index].contacts[row]
        return self._commit()

    def move_contact(self, source: Tuple[int, int], destination: Tuple[int, int]) -> MutationResult:
        """
        Move a contact between (category, row) positions.

        The destination row is expressed in pre-removal coordinates and may
        equal the destination list length to append. Out-of-range coordinates
        leave the collection unchanged.
        """
        src_category, src_row = source
        dst_category, dst_row = destination
        if not self._valid_row(src_category, src_row) or not self._valid_category(dst_category):
            return self._reject(Disposition.INVALID_INDEX, f"Cannot move contact {tuple(source)} to {tuple(destination)}")
        if not 0 <= dst_row <= len(self._categories[dst_category].contacts):
            return self._reject(Disposition.INVALID_INDEX, f"Cannot move contact {tuple(source)} to {tuple(destination)}")
        if src_category == dst_category:
            if dst_row > src_row:
                dst_row -= 1
            if dst_row == src_row:
                return MutationResult(Disposition.NOOP)

        contact = self._categories[src_category].contacts.pop(src_row)
        target = self._categories[dst_category].contacts
        target.insert(min(dst_row, len(target)), contact)
        return self._commit()

    def add_contacts_to_category(self, name: str, contacts: Iterable[Contact]) -> MutationResult:
        """
        Append to the category with this exact name, creating it when absent.

        Every added contact gets a fresh id. The whole batch is rejected if
        any contact lacks a name or phone.
        """
        name = (name or "").strip() or f"Imported ({display_stamp()})"
        incoming = self._admit(contacts, fresh_ids=True)
        if incoming is None:
            return self._reject(Disposition.INVALID_CONTACT, INCOMPLETE_CONTACT_MESSAGE)
        for category in self._categories:
            if category.name == name:
                category.contacts.extend(incoming)
                return self._commit()
        self._categories.append(Category(name=name, contacts=incoming, is_system=False))
        return self._commit()

    def import_categories(self, categories: Iterable[Category], label: Optional[str] = None) -> MutationResult:
        """
        Append externally parsed categories under an "Imported – ..." name.

        Imported categories are never system categories, and every imported
        category and contact gets a fresh identity. Nothing is imported if any
        contact lacks a name or phone.
        """
        incoming = list(categories)
        if not incoming:
            return MutationResult(Disposition.NOOP)
        if not all(contact.is_complete() for original in incoming for contact in original.contacts):
            return self._reject(Disposition.INVALID_CONTACT, INCOMPLETE_CONTACT_MESSAGE)
        stamp = label or display_stamp()
        for original in incoming:
            contacts = self._admit(original.contacts, fresh_ids=True) or []
            self._categories.append(
                Category(name=f"Imported – {original.name} ({stamp})", contacts=contacts, is_system=False)
            )
        added = len(incoming)
        return self._commit(message=f"Imported {added} {'category' if added == 1 else 'categories'}")

    def touch_contact(self, contact_id: str) -> MutationResult:
        """Stamp last_used on the first contact with this id, in scan order."""
        for category in self._categories:
            for contact in category.contacts:
                if contact.id == contact_id:
                    contact.last_used = utc_now()
                    return self._commit()
        return MutationResult(Disposition.NOT_FOUND, message=f"No contact with id {contact_id}")

    def set_favorite(self, contact_id: str, favorite: bool = True) -> MutationResult:
        for category in self._categories:
            for contact in category.contacts:
                if contact.id == contact_id:
                    if contact.is_favorite == favorite:
                        return MutationResult(Disposition.NOOP)
                    contact.is_favorite = favorite
                    return self._commit()
        return MutationResult(Disposition.NOT_FOUND, message=f"No contact with id {contact_id}")

    # --------------------------------------------------------------- backups

    def restore_backup(self, path: Path | str) -> MutationResult:
        restored = self.store.restore_manual_backup(path)
        if restored is None:
            return MutationResult(Disposition.NOT_FOUND, message=f"Backup {path} could not be restored")
        self._categories = restored
        return MutationResult(Disposition.OK, message=f"Restored {len(restored)} categories")


__all__ = [
    "ContactBook",
    "ContactPosition",
    "Disposition",
    "MutationResult",
    "nonempty_delete_message",
]
