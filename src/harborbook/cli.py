"""CLI entrypoint for the Harborbook contact store."""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

import yaml

from harborbook.config.loader import (
    BASE_CONTACTS_DEFAULTS,
    BASE_STORAGE_DEFAULTS,
    DEFAULT_CONFIG_PATH,
    StorageSettings,
    load_settings,
)
from harborbook.contacts.manager import ContactBook, ContactPosition, Disposition, MutationResult
from harborbook.contacts.models import Contact
from harborbook.storage.legacy_prefs import LegacyPreferences
from harborbook.storage.migrate import migrate_legacy_store
from harborbook.storage.record_store import RecordStore
from harborbook.utils.logging import configure_logging, get_logger
from harborbook.utils.time import to_utc_z

logger = get_logger(__name__)


def _settings(args: argparse.Namespace) -> StorageSettings:
    config_path = Path(args.config) if getattr(args, "config", None) else None
    return load_settings(config_path)


def _open_book(args: argparse.Namespace) -> ContactBook:
    book = ContactBook.open(_settings(args))
    if book.migration and book.migration.migrated:
        print(f"Migrated {book.migration.categories} categories from legacy preferences")
    if book.store.last_load_source == "backup":
        print(f"[harborbook] Contacts restored from backup {book.store.backup_path}", file=sys.stderr)
    return book


def _report(result: MutationResult, success_message: str) -> None:
    """Print the outcome; rejected changes exit with status 1."""
    if result.disposition is Disposition.OK:
        print(result.message or success_message)
        if result.save is not None and not result.save.ok:
            print(f"[harborbook] Warning: change not saved ({result.save.error})", file=sys.stderr)
        return
    if result.disposition is Disposition.NOOP:
        print("Nothing to change.")
        return
    print(f"Error: {result.message or result.disposition.value}", file=sys.stderr)
    sys.exit(1)


def _format_contact(contact: Contact) -> str:
    parts = [contact.name, contact.phone]
    if contact.role:
        parts.append(contact.role)
    if contact.organization:
        parts.append(contact.organization)
    if contact.vhf_channel:
        parts.append(f"VHF {contact.vhf_channel}")
    line = " | ".join(parts)
    if contact.is_favorite:
        line = f"* {line}"
    return f"{line}  [{contact.id}]"


def cmd_init(args: argparse.Namespace) -> None:
    """Write a default config file and create the contacts file."""
    config_path = Path(args.config) if args.config else DEFAULT_CONFIG_PATH
    if config_path.exists() and not args.force:
        print(f"Skipped {config_path} (already exists, use --force to overwrite)")
    else:
        document = {"storage": dict(BASE_STORAGE_DEFAULTS), "contacts": dict(BASE_CONTACTS_DEFAULTS)}
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(yaml.safe_dump(document, sort_keys=False), encoding="utf-8")
        print(f"Created {config_path}")
    args.config = str(config_path)
    book = _open_book(args)
    print(f"Contacts file: {book.store.primary_path} ({len(book)} categories)")


def cmd_categories_list(args: argparse.Namespace) -> None:
    book = _open_book(args)
    for index, category in enumerate(book.categories):
        flag = " [system]" if category.is_system else ""
        print(f"{index:>3}  {category.name}{flag} ({len(category.contacts)})")
        if args.contacts:
            for row, contact in enumerate(category.contacts):
                print(f"       {row:>3}  {_format_contact(contact)}")


def cmd_categories_add(args: argparse.Namespace) -> None:
    book = _open_book(args)
    _report(book.add_category(args.name), f"Added category '{args.name}'")


def cmd_categories_delete(args: argparse.Namespace) -> None:
    book = _open_book(args)
    if args.force:
        result = book.force_delete_category(args.index)
    else:
        result = book.delete_category(args.index)
        if result.disposition is Disposition.BLOCKED_NONEMPTY:
            print(f"{result.message} Re-run with --force to confirm.", file=sys.stderr)
            sys.exit(1)
    _report(result, f"Deleted category {args.index}")


def cmd_categories_rename(args: argparse.Namespace) -> None:
    book = _open_book(args)
    _report(book.rename_category(args.index, args.name), f"Renamed category {args.index} to '{args.name}'")


def cmd_categories_move(args: argparse.Namespace) -> None:
    book = _open_book(args)
    _report(book.move_category(args.source, args.destination), f"Moved category {args.source} to {args.destination}")


def cmd_contacts_add(args: argparse.Namespace) -> None:
    book = _open_book(args)
    try:
        contact = Contact.create(
            args.name,
            args.phone,
            role=args.role,
            organization=args.organization,
            email=args.email,
            vhf_channel=args.vhf,
            call_sign=args.call_sign,
            port=args.port,
            notes=args.notes,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    _report(book.add_contact(args.category, contact), f"Added contact '{contact.name}' ({contact.id})")


def cmd_contacts_delete(args: argparse.Namespace) -> None:
    book = _open_book(args)
    _report(book.delete_contact(args.category, args.row), f"Deleted contact {args.row} from category {args.category}")


def cmd_contacts_move(args: argparse.Namespace) -> None:
    book = _open_book(args)
    source = ContactPosition(args.source_category, args.source_row)
    destination = ContactPosition(args.dest_category, args.dest_row)
    _report(book.move_contact(source, destination), f"Moved contact {source} to {destination}")


def cmd_contacts_search(args: argparse.Namespace) -> None:
    book = _open_book(args)
    hits = book.search(args.query)
    if args.json:
        payload = [
            {"category": hit.category, "contact": hit.contact.model_dump(mode="json", exclude_none=True)}
            for hit in hits
        ]
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return
    if not hits:
        print("No matching contacts.")
        return
    for hit in hits:
        print(f"{hit.category}: {_format_contact(hit.contact)}")


def cmd_contacts_frequent(args: argparse.Namespace) -> None:
    book = _open_book(args)
    limit = args.limit if args.limit is not None else _settings(args).frequently_used_limit
    for contact in book.frequently_used(limit):
        last_used = to_utc_z(contact.last_used) if contact.last_used else "never"
        print(f"{last_used:<28} {_format_contact(contact)}")


def cmd_contacts_touch(args: argparse.Namespace) -> None:
    book = _open_book(args)
    _report(book.touch_contact(args.contact_id), f"Marked {args.contact_id} as used")


def cmd_backup_create(args: argparse.Namespace) -> None:
    book = _open_book(args)
    path = book.store.manual_backup()
    if path is None:
        print("Error: backup failed", file=sys.stderr)
        sys.exit(1)
    print(f"Created backup {path}")


def cmd_backup_list(args: argparse.Namespace) -> None:
    store = RecordStore.from_settings(_settings(args))
    backups = store.list_manual_backups()
    if not backups:
        print("No manual backups.")
        return
    for path in backups:
        print(f"{path}  ({path.stat().st_size} bytes)")


def cmd_backup_restore(args: argparse.Namespace) -> None:
    book = _open_book(args)
    _report(book.restore_backup(Path(args.path)), f"Restored {args.path}")


def cmd_stats(args: argparse.Namespace) -> None:
    store = RecordStore.from_settings(_settings(args))
    stats = store.file_stats()
    print(f"Primary: {stats.primary_path} exists={stats.primary_exists} bytes={stats.primary_bytes}")
    print(f"Backup:  {stats.backup_path} exists={stats.backup_exists} bytes={stats.backup_bytes}")


def cmd_migrate(args: argparse.Namespace) -> None:
    settings = _settings(args)
    prefs = LegacyPreferences(settings.legacy_prefs_path)
    try:
        result = migrate_legacy_store(RecordStore.from_settings(settings), prefs)
    finally:
        prefs.close()
    print(f"Migration: {result.status} (categories={result.categories}, contacts={result.contacts})")
    if result.detail:
        print(f"  Detail: {result.detail}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="harborbook",
        description="Local durable store for operational contacts",
    )
    parser.add_argument("--config", help=f"Path to YAML config (default: {DEFAULT_CONFIG_PATH} if present)")
    parser.add_argument("--log-level", default=None, help="Log level (default: HARBORBOOK_LOG_LEVEL or WARNING)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    init_parser = subparsers.add_parser("init", help="Write a default config and create the contacts file")
    init_parser.add_argument("--force", action="store_true", help="Overwrite an existing config file")
    init_parser.set_defaults(func=cmd_init)

    # categories
    categories_parser = subparsers.add_parser("categories", help="Category commands")
    categories_sub = categories_parser.add_subparsers(dest="categories_command", required=True)

    cat_list = categories_sub.add_parser("list", help="List categories")
    cat_list.add_argument("--contacts", action="store_true", help="Also list contacts in each category")
    cat_list.set_defaults(func=cmd_categories_list)

    cat_add = categories_sub.add_parser("add", help="Add a category")
    cat_add.add_argument("name")
    cat_add.set_defaults(func=cmd_categories_add)

    cat_delete = categories_sub.add_parser("delete", help="Delete a category")
    cat_delete.add_argument("index", type=int)
    cat_delete.add_argument("--force", action="store_true", help="Delete even if the category has contacts")
    cat_delete.set_defaults(func=cmd_categories_delete)

    cat_rename = categories_sub.add_parser("rename", help="Rename a category")
    cat_rename.add_argument("index", type=int)
    cat_rename.add_argument("name")
    cat_rename.set_defaults(func=cmd_categories_rename)

    cat_move = categories_sub.add_parser("move", help="Move a category to a new position")
    cat_move.add_argument("source", type=int)
    cat_move.add_argument("destination", type=int)
    cat_move.set_defaults(func=cmd_categories_move)

    # contacts
    contacts_parser = subparsers.add_parser("contacts", help="Contact commands")
    contacts_sub = contacts_parser.add_subparsers(dest="contacts_command", required=True)

    contact_add = contacts_sub.add_parser("add", help="Add a contact to a category")
    contact_add.add_argument("category", type=int, help="Category index")
    contact_add.add_argument("--name", required=True)
    contact_add.add_argument("--phone", required=True)
    contact_add.add_argument("--role")
    contact_add.add_argument("--organization")
    contact_add.add_argument("--email")
    contact_add.add_argument("--vhf", help="VHF channel")
    contact_add.add_argument("--call-sign", dest="call_sign")
    contact_add.add_argument("--port", help="Location tag")
    contact_add.add_argument("--notes")
    contact_add.set_defaults(func=cmd_contacts_add)

    contact_delete = contacts_sub.add_parser("delete", help="Delete a contact")
    contact_delete.add_argument("category", type=int)
    contact_delete.add_argument("row", type=int)
    contact_delete.set_defaults(func=cmd_contacts_delete)

    contact_move = contacts_sub.add_parser("move", help="Move a contact")
    contact_move.add_argument("source_category", type=int)
    contact_move.add_argument("source_row", type=int)
    contact_move.add_argument("dest_category", type=int)
    contact_move.add_argument("dest_row", type=int)
    contact_move.set_defaults(func=cmd_contacts_move)

    contact_search = contacts_sub.add_parser("search", help="Search contacts")
    contact_search.add_argument("query")
    contact_search.add_argument("--json", action="store_true", help="Print matches as JSON")
    contact_search.set_defaults(func=cmd_contacts_search)

    contact_frequent = contacts_sub.add_parser("frequent", help="Most recently used contacts")
    contact_frequent.add_argument("--limit", type=int, default=None)
    contact_frequent.set_defaults(func=cmd_contacts_frequent)

    contact_touch = contacts_sub.add_parser("touch", help="Mark a contact as just used")
    contact_touch.add_argument("contact_id")
    contact_touch.set_defaults(func=cmd_contacts_touch)

    # backups
    backup_parser = subparsers.add_parser("backup", help="Manual backup commands")
    backup_sub = backup_parser.add_subparsers(dest="backup_command", required=True)
    backup_sub.add_parser("create", help="Create a timestamped backup").set_defaults(func=cmd_backup_create)
    backup_sub.add_parser("list", help="List manual backups").set_defaults(func=cmd_backup_list)
    backup_restore = backup_sub.add_parser("restore", help="Restore a manual backup")
    backup_restore.add_argument("path")
    backup_restore.set_defaults(func=cmd_backup_restore)

    stats_parser = subparsers.add_parser("stats", help="Show contacts file diagnostics")
    stats_parser.set_defaults(func=cmd_stats)

    migrate_parser = subparsers.add_parser("migrate", help="Migrate contacts from the legacy preference store")
    migrate_parser.set_defaults(func=cmd_migrate)

    return parser


def main(argv: Optional[list] = None) -> None:
    """Main CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if not args.command:
        parser.print_help()
        return

    try:
        args.func(args)
    except Exception as e:
        logger.error(f"Error running command '{args.command}': {e}", exc_info=True)
        raise


if __name__ == "__main__":
    main()
