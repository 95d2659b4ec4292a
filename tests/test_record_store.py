"""Tests for the record file persistence engine."""

import json
from pathlib import Path

from harborbook.contacts.models import Category, Contact, dump_categories
from harborbook.storage.record_store import (
    LOAD_SOURCE_BACKUP,
    LOAD_SOURCE_DEFAULTS,
    LOAD_SOURCE_PRIMARY,
    RecordStore,
)


def _names(categories):
    return [c.name for c in categories]


def _read_file(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))["categories"]


def test_round_trip_preserves_every_field(store, sample_categories):
    sample_categories[1].contacts[0].notes = "Boards at the sea buoy"
    sample_categories[1].contacts[0].port = "Pier 9"
    sample_categories[1].contacts[0].is_favorite = True
    sample_categories[1].contacts[1].last_used = None

    result = store.save(sample_categories)
    assert result.ok is True
    assert result.verified is True

    loaded = RecordStore(store.primary_path, store.backup_path).load()
    assert dump_categories(loaded) == dump_categories(sample_categories)


def test_primary_file_is_pretty_printed_envelope(store, sample_categories):
    store.save(sample_categories)
    text = store.primary_path.read_text(encoding="utf-8")
    assert text.startswith("{\n  ")
    document = json.loads(text)
    assert document["version"] == 1
    assert document["saved_at"].endswith("Z")
    assert len(document["categories"]) == 3


def test_backup_lags_primary_by_one_generation(store, sample_categories):
    first = sample_categories
    second = [c.model_copy(deep=True) for c in sample_categories] + [Category(name="Agents")]

    store.save(first)
    assert not store.backup_path.exists()

    result = store.save(second)
    assert result.backed_up is True
    assert _read_file(store.backup_path) == dump_categories(first)
    assert _read_file(store.primary_path) == dump_categories(second)


def test_load_falls_back_to_backup_and_heals_primary(store, sample_categories):
    store.save(sample_categories)
    store.save(sample_categories + [Category(name="Agents")])
    store.primary_path.write_text("{ truncated", encoding="utf-8")

    loaded = store.load()

    assert store.last_load_source == LOAD_SOURCE_BACKUP
    assert _names(loaded) == ["Emergency", "Ops", "Tugs"]
    assert _read_file(store.primary_path) == dump_categories(loaded)
    # the good backup must not be overwritten by the corrupt primary
    assert _read_file(store.backup_path) == dump_categories(loaded)


def test_load_falls_back_when_primary_missing(store, sample_categories):
    store.save(sample_categories)
    store.save(sample_categories)
    store.primary_path.unlink()

    loaded = store.load()

    assert store.last_load_source == LOAD_SOURCE_BACKUP
    assert store.primary_path.exists()
    assert dump_categories(loaded) == dump_categories(sample_categories)


def test_empty_primary_collection_is_treated_as_invalid(store, sample_categories):
    store.save(sample_categories)
    store.save(sample_categories)
    store.primary_path.write_text(json.dumps({"version": 1, "categories": []}), encoding="utf-8")

    loaded = store.load()

    assert store.last_load_source == LOAD_SOURCE_BACKUP
    assert len(loaded) == 3


def test_defaults_synthesized_when_both_files_absent(store):
    loaded = store.load()

    assert store.last_load_source == LOAD_SOURCE_DEFAULTS
    assert loaded
    assert sum(1 for c in loaded if c.is_system) == 1
    assert store.primary_path.exists()


def test_defaults_synthesized_when_both_files_corrupt(store):
    store.primary_path.parent.mkdir(parents=True, exist_ok=True)
    store.primary_path.write_text("garbage", encoding="utf-8")
    store.backup_path.write_text("[1, 2", encoding="utf-8")

    loaded = store.load()

    assert store.last_load_source == LOAD_SOURCE_DEFAULTS
    assert loaded[0].name == "Emergency"


def test_load_primary_source_recorded(store, sample_categories):
    store.save(sample_categories)
    store.load()
    assert store.last_load_source == LOAD_SOURCE_PRIMARY


def test_save_failure_is_reported_not_raised(tmp_path, sample_categories):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("file in the way", encoding="utf-8")
    store = RecordStore(blocker / "contacts.json", blocker / "contacts_backup.json")

    result = store.save(sample_categories)

    assert result.ok is False
    assert result.error


def test_save_leaves_no_temp_files(store, sample_categories):
    store.save(sample_categories)
    store.save(sample_categories)
    leftovers = [p.name for p in store.primary_path.parent.iterdir() if p.name.endswith(".tmp")]
    assert leftovers == []


def test_verification_failure_is_reported(store, sample_categories, monkeypatch):
    monkeypatch.setattr(store, "_read", lambda path: None)
    result = store.save(sample_categories)
    assert result.ok is True
    assert result.verified is False


def test_manual_backup_creates_unique_files(store, sample_categories):
    store.save(sample_categories)

    first = store.manual_backup()
    second = store.manual_backup()

    assert first is not None and second is not None
    assert first != second
    assert first.read_bytes() == store.primary_path.read_bytes()
    assert store.list_manual_backups() == sorted([first, second])


def test_manual_backup_without_primary_returns_none(store):
    assert store.manual_backup() is None
    assert store.list_manual_backups() == []


def test_restore_manual_backup_rotates_current_primary(store, sample_categories):
    store.save(sample_categories)
    snapshot = store.manual_backup()
    store.save([Category(name="Emergency", is_system=True)])

    restored = store.restore_manual_backup(snapshot)

    assert restored is not None
    assert _names(restored) == ["Emergency", "Ops", "Tugs"]
    assert _names(store.load()) == ["Emergency", "Ops", "Tugs"]
    assert [c["name"] for c in _read_file(store.backup_path)] == ["Emergency"]


def test_restore_manual_backup_rejects_bad_file(store, tmp_path):
    bogus = tmp_path / "bogus.json"
    bogus.write_text("nope", encoding="utf-8")
    assert store.restore_manual_backup(bogus) is None
    assert store.restore_manual_backup(tmp_path / "missing.json") is None


def test_file_stats_report_existence_and_size(store, sample_categories):
    stats = store.file_stats()
    assert stats.primary_exists is False
    assert stats.primary_bytes == 0
    assert stats.backup_exists is False

    store.save(sample_categories)
    store.save(sample_categories)
    stats = store.file_stats()
    assert stats.primary_exists is True
    assert stats.primary_bytes == store.primary_path.stat().st_size
    assert stats.backup_exists is True
    assert stats.backup_bytes > 0


def test_legacy_bare_list_file_is_loaded(store):
    store.primary_path.parent.mkdir(parents=True, exist_ok=True)
    legacy = [Category(name="Emergency", is_system=True, contacts=[Contact(name="A", phone="1")])]
    store.primary_path.write_text(json.dumps(dump_categories(legacy)), encoding="utf-8")

    loaded = store.load()

    assert store.last_load_source == LOAD_SOURCE_PRIMARY
    assert loaded[0].contacts[0].name == "A"
