#!/usr/bin/env python3
"""Validate Harborbook contacts files against the published JSON schema."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Iterable

from jsonschema import Draft202012Validator, FormatChecker, ValidationError

DEFAULT_SCHEMA_PATH = Path(__file__).resolve().parents[1] / "docs" / "specs" / "contacts-file.schema.json"


def _load_json(path: Path, label: str) -> dict:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise RuntimeError(f"Unable to read {label} {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise RuntimeError(f"{label} {path} is not valid JSON: {exc}") from exc


def _format_error_path(error: ValidationError) -> str:
    if not error.absolute_path:
        return "$"
    parts: Iterable[str] = ("$", *map(str, error.absolute_path))
    return ".".join(parts)


def _validate_invariants(document: dict) -> list[str]:
    issues: list[str] = []
    categories = document.get("categories") or []
    system_count = sum(1 for category in categories if category.get("is_system"))
    if system_count > 1:
        issues.append(f"expected at most one system category, found {system_count}")
    seen: set[str] = set()
    for category in categories:
        for contact in category.get("contacts") or []:
            contact_id = contact.get("id")
            if contact_id in seen:
                issues.append(f"duplicate contact id {contact_id}")
            seen.add(contact_id)
    return issues


def validate_files(paths: list[Path], schema_path: Path, fail_fast: bool) -> int:
    existing = [path for path in paths if path.exists()]
    if not existing:
        print("[harborbook] No contacts files found to validate", file=sys.stderr)
        return 2

    schema = _load_json(schema_path, "schema file")
    validator = Draft202012Validator(schema, format_checker=FormatChecker())

    failures = 0
    processed = 0
    for path in existing:
        processed += 1
        try:
            document = _load_json(path, "contacts file")
        except RuntimeError as exc:
            failures += 1
            print(f"[FAIL] {path}", file=sys.stderr)
            print(f"  - {exc}", file=sys.stderr)
            if fail_fast:
                break
            continue

        errors = [
            f"{_format_error_path(error)}: {error.message}"
            for error in sorted(validator.iter_errors(document), key=lambda e: [str(part) for part in e.absolute_path])
        ]
        if not errors:
            errors.extend(_validate_invariants(document))

        if errors:
            failures += 1
            print(f"[FAIL] {path}", file=sys.stderr)
            for item in errors:
                print(f"  - {item}", file=sys.stderr)
            if fail_fast:
                break

    print(f"Validated {processed - failures}/{len(existing)} contacts files")
    return 0 if failures == 0 else 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Validate contacts files against the JSON schema.")
    parser.add_argument(
        "paths",
        nargs="*",
        type=Path,
        default=[Path("data/contacts.json"), Path("data/contacts_backup.json")],
        help="Contacts files to validate (default: data/contacts.json data/contacts_backup.json)",
    )
    parser.add_argument(
        "--schema",
        type=Path,
        default=DEFAULT_SCHEMA_PATH,
        help="Path to contacts-file JSON schema",
    )
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Stop after the first validation failure",
    )

    args = parser.parse_args(argv)
    try:
        return validate_files(list(args.paths), args.schema, args.fail_fast)
    except RuntimeError as exc:
        print(f"[harborbook] {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
