"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from harborbook.config.loader import StorageSettings, load_storage_settings
from harborbook.contacts.manager import ContactBook
from harborbook.contacts.models import Category, Contact
from harborbook.storage.record_store import RecordStore


@pytest.fixture
def settings(tmp_path: Path, monkeypatch) -> StorageSettings:
    """Storage settings rooted in a temporary data directory."""
    monkeypatch.delenv("HARBORBOOK_DATA_DIR", raising=False)
    return load_storage_settings({"storage": {"data_dir": str(tmp_path / "data")}})


@pytest.fixture
def store(settings: StorageSettings) -> RecordStore:
    return RecordStore.from_settings(settings)


@pytest.fixture
def book(store: RecordStore) -> ContactBook:
    """ContactBook over a fresh store (seed categories)."""
    return ContactBook(store)


def make_contact(name: str, phone: str = "555-0100", **fields) -> Contact:
    return Contact.create(name, phone, **fields)


@pytest.fixture
def sample_categories():
    """Small collection: system category plus two populated groups."""
    return [
        Category(name="Emergency", is_system=True, contacts=[make_contact("USCG Sector", "555-0001")]),
        Category(
            name="Ops",
            contacts=[
                make_contact("Harbor Pilot", "555-0110", role="Pilot", organization="Bar Pilots"),
                make_contact("Dock Master", "555-0111", organization="Pier 9"),
                make_contact("Line Handler", "555-0112"),
            ],
        ),
        Category(
            name="Tugs",
            contacts=[
                make_contact("Tug Alpha", "555-0120", vhf_channel="13"),
                make_contact("Tug Bravo", "555-0121", call_sign="WDB1234"),
            ],
        ),
    ]
