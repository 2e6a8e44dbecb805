"""CSV contact source."""
from __future__ import annotations

import csv
import re
from pathlib import Path
from typing import List, Optional, Tuple

from .contact import Contact


CONTACT_HEADERS = ["firstname", "lastname", "birthdate"]

_FULL_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_YEARLESS_DATE = re.compile(r"^--(\d{2})-(\d{2})$")


class ContactsError(RuntimeError):
    """Raised when the contacts file is missing or invalid."""


def parse_birthdate(value: str) -> Tuple[Optional[int], int, int]:
    """Parse ``YYYY-MM-DD`` or ``--MM-DD`` into ``(year, month, day)``."""

    text = value.strip()
    match = _FULL_DATE.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return year, month, day
    match = _YEARLESS_DATE.match(text)
    if match:
        month, day = (int(part) for part in match.groups())
        return None, month, day
    raise ValueError(f"unrecognised birthdate {value!r} (expected YYYY-MM-DD or --MM-DD)")


def load_contacts(path: Path) -> List[Contact]:
    """Load contacts from a CSV file, preserving file order."""

    contacts: List[Contact] = []
    try:
        with path.open("r", newline="", encoding="utf-8") as fh:
            reader = csv.DictReader(fh)
            missing = [name for name in CONTACT_HEADERS if name not in (reader.fieldnames or [])]
            if missing:
                raise ContactsError(f"{path}: missing column(s) {', '.join(missing)}")
            for row in reader:
                if not any((value or "").strip() for value in row.values()):
                    continue
                try:
                    year, month, day = parse_birthdate(row.get("birthdate") or "")
                    contacts.append(
                        Contact(
                            firstname=(row.get("firstname") or "").strip(),
                            lastname=(row.get("lastname") or "").strip(),
                            birth_month=month,
                            birth_day=day,
                            birth_year=year,
                        )
                    )
                except ValueError as exc:
                    raise ContactsError(f"{path}:{reader.line_num}: {exc}") from exc
    except FileNotFoundError as exc:
        raise ContactsError(f"Contacts file not found: {path}") from exc
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        raise ContactsError(f"{path}: {exc}") from exc
    return contacts
