"""Tests for the legacy preference store and the one-shot migration."""

import json

import pytest

from harborbook.contacts.manager import ContactBook
from harborbook.contacts.models import Category, Contact, dump_categories
from harborbook.storage.legacy_prefs import LegacyPreferences
from harborbook.storage.migrate import (
    LEGACY_CATEGORIES_KEY,
    STATUS_INVALID,
    STATUS_MIGRATED,
    STATUS_NOTHING,
    STATUS_SAVE_FAILED,
    STATUS_SKIPPED,
    migrate_legacy_store,
)
from harborbook.storage.record_store import SaveResult


def _legacy_payload() -> bytes:
    """Collection as the legacy store serialized it (camelCase keys, reference-date seconds)."""
    categories = [
        {
            "id": "11111111-2222-3333-4444-555555555555",
            "name": "Emergency",
            "isSystemCategory": True,
            "contacts": [
                {
                    "id": "AAAAAAAA-BBBB-CCCC-DDDD-EEEEEEEEEEEE",
                    "name": "Sector Control",
                    "phone": "555-0001",
                    "vhfChannel": "16",
                    "lastUsed": 757382400.0,
                    "isFavorite": False,
                }
            ],
        },
        {"id": "66666666-7777-8888-9999-000000000000", "name": "Tug Services", "isSystemCategory": False, "contacts": []},
    ]
    return json.dumps(categories).encode("utf-8")


@pytest.fixture
def prefs(settings):
    store = LegacyPreferences(settings.legacy_prefs_path)
    yield store
    store.close()


def test_prefs_get_on_missing_database_does_not_create_it(prefs):
    assert prefs.get(LEGACY_CATEGORIES_KEY) is None
    assert prefs.delete(LEGACY_CATEGORIES_KEY) is False
    assert not prefs.sqlite_path.exists()


def test_prefs_set_get_delete(prefs):
    prefs.set("greeting", "hello")
    assert prefs.get("greeting") == b"hello"
    prefs.set("greeting", b"replaced")
    assert prefs.get("greeting") == b"replaced"
    assert prefs.delete("greeting") is True
    assert prefs.get("greeting") is None


def test_migration_moves_legacy_data_and_deletes_entry(store, prefs):
    prefs.set(LEGACY_CATEGORIES_KEY, _legacy_payload())

    result = migrate_legacy_store(store, prefs)

    assert result.status == STATUS_MIGRATED
    assert result.categories == 2
    assert result.contacts == 1
    assert prefs.get(LEGACY_CATEGORIES_KEY) is None
    loaded = store.load()
    assert [c.name for c in loaded] == ["Emergency", "Tug Services"]
    assert loaded[0].is_system is True
    assert loaded[0].contacts[0].id == "AAAAAAAA-BBBB-CCCC-DDDD-EEEEEEEEEEEE"
    assert loaded[0].contacts[0].vhf_channel == "16"


def test_migration_is_noop_when_primary_exists(store, prefs, sample_categories):
    store.save(sample_categories)
    prefs.set(LEGACY_CATEGORIES_KEY, _legacy_payload())
    before = store.primary_path.read_bytes()

    result = migrate_legacy_store(store, prefs)

    assert result.status == STATUS_SKIPPED
    assert store.primary_path.read_bytes() == before
    assert prefs.get(LEGACY_CATEGORIES_KEY) is not None


def test_migration_is_idempotent(store, prefs):
    prefs.set(LEGACY_CATEGORIES_KEY, _legacy_payload())
    assert migrate_legacy_store(store, prefs).status == STATUS_MIGRATED
    assert migrate_legacy_store(store, prefs).status == STATUS_SKIPPED


def test_migration_with_empty_legacy_store_does_nothing(store, prefs):
    result = migrate_legacy_store(store, prefs)
    assert result.status == STATUS_NOTHING
    assert not store.primary_path.exists()


def test_unparseable_legacy_value_is_left_in_place(store, prefs):
    prefs.set(LEGACY_CATEGORIES_KEY, b"\x00not json")

    result = migrate_legacy_store(store, prefs)

    assert result.status == STATUS_INVALID
    assert prefs.get(LEGACY_CATEGORIES_KEY) == b"\x00not json"
    assert not store.primary_path.exists()


def test_failed_save_keeps_legacy_entry(store, prefs, monkeypatch):
    prefs.set(LEGACY_CATEGORIES_KEY, _legacy_payload())
    monkeypatch.setattr(
        store,
        "save",
        lambda categories: SaveResult(ok=False, path=store.primary_path, error="disk full"),
    )

    result = migrate_legacy_store(store, prefs)

    assert result.status == STATUS_SAVE_FAILED
    assert result.detail == "disk full"
    assert prefs.get(LEGACY_CATEGORIES_KEY) is not None


def test_contact_book_open_runs_migration_once(settings):
    legacy = LegacyPreferences(settings.legacy_prefs_path)
    categories = [Category(name="Emergency", is_system=True, contacts=[Contact(name="Pilot Station", phone="555-0200")])]
    legacy.set(LEGACY_CATEGORIES_KEY, json.dumps(dump_categories(categories)))
    legacy.close()

    book = ContactBook.open(settings)
    assert book.migration.status == STATUS_MIGRATED
    assert book.categories[0].contacts[0].name == "Pilot Station"

    reopened = ContactBook.open(settings)
    assert reopened.migration.status == STATUS_SKIPPED
    assert dump_categories(reopened.categories) == dump_categories(book.categories)


def test_contact_book_open_without_legacy_data_seeds_defaults(settings):
    book = ContactBook.open(settings)
    assert book.migration.status == STATUS_NOTHING
    assert sum(1 for c in book.categories if c.is_system) == 1
    assert book.store.last_load_source == "defaults"
