import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml

DEFAULT_CONFIG_PATH = Path("harborbook.config.yaml")
DATA_DIR_ENV = "HARBORBOOK_DATA_DIR"

BASE_STORAGE_DEFAULTS: Dict[str, Any] = {
    "data_dir": "data",
    "primary_file": "contacts.json",
    "backup_file": "contacts_backup.json",
    "manual_backup_dir": "backups",
    "legacy_prefs_path": "legacy_prefs.sqlite",
}

BASE_CONTACTS_DEFAULTS: Dict[str, Any] = {
    "frequently_used_limit": 5,
}


@dataclass(frozen=True)
class StorageSettings:
    """Resolved on-disk locations for the contact store."""

    data_dir: Path
    primary_path: Path
    backup_path: Path
    manual_backup_dir: Path
    legacy_prefs_path: Path
    frequently_used_limit: int = 5


def load_config(path: Path | None = None) -> Dict[str, Any]:
    cfg_path = path or DEFAULT_CONFIG_PATH
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}
    if not isinstance(config, dict):
        raise ValueError("Config must be a dictionary")
    return config


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = config.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Config '{name}' must be a dictionary if provided")
    return section


def _resolve(data_dir: Path, value: Any) -> Path:
    candidate = Path(str(value)).expanduser()
    if candidate.is_absolute():
        return candidate
    return data_dir / candidate


def load_storage_settings(config: Dict[str, Any] | None = None) -> StorageSettings:
    """
    Merge storage/contacts config sections with built-in defaults.

    Relative file locations resolve against data_dir. The HARBORBOOK_DATA_DIR
    environment variable overrides data_dir from the config file.

    Args:
        config: Parsed config dict (None or {} means all defaults)

    Returns:
        StorageSettings with absolute-or-data_dir-relative paths

    Raises:
        ValueError: If a section or the frequently_used_limit has the wrong type
    """
    config = config or {}
    if not isinstance(config, dict):
        raise ValueError("Config must be a dictionary")

    storage = {**BASE_STORAGE_DEFAULTS, **_section(config, "storage")}
    contacts = {**BASE_CONTACTS_DEFAULTS, **_section(config, "contacts")}

    data_dir = Path(os.getenv(DATA_DIR_ENV) or str(storage["data_dir"])).expanduser()

    limit = contacts.get("frequently_used_limit")
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise ValueError("Config 'contacts.frequently_used_limit' must be an integer")

    return StorageSettings(
        data_dir=data_dir,
        primary_path=_resolve(data_dir, storage["primary_file"]),
        backup_path=_resolve(data_dir, storage["backup_file"]),
        manual_backup_dir=_resolve(data_dir, storage["manual_backup_dir"]),
        legacy_prefs_path=_resolve(data_dir, storage["legacy_prefs_path"]),
        frequently_used_limit=max(limit, 0),
    )


def load_settings(path: Path | None = None) -> StorageSettings:
    """Load settings from a config file, falling back to defaults when it is absent."""
    try:
        config = load_config(path)
    except FileNotFoundError:
        if path is not None:
            raise
        config = {}
    return load_storage_settings(config)
