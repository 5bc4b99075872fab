from __future__ import annotations

import logging
import re
from collections.abc import Hashable, Iterable
from typing import TypeVar

from .model import ContactRecord, ParsedContact
from .properties import drain_other_entries

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Hashable)

NOTES_KEY = "notes"
VCARD_NOTES_KEY = "vcard-notes"
URL_KEY = "www"
BIRTHDAY_KEY = "anniversary"


def _union(*groups: Iterable[T]) -> list[T]:
    """Ordered union; equal elements are kept once, first occurrence wins."""
    seen: set[T] = set()
    out: list[T] = []
    for group in groups:
        for item in group:
            if item not in seen:
                seen.add(item)
                out.append(item)
    return out


def _notes_key(record: ContactRecord, text: str) -> str:
    # A different NOTE already stored under "notes" is kept; the card's text
    # goes next to it instead.
    if NOTES_KEY in record.note_keys() and (NOTES_KEY, text) not in record.notes:
        return VCARD_NOTES_KEY
    return NOTES_KEY


def merge_notes(
    record: ContactRecord,
    parsed: ParsedContact,
    skip: re.Pattern[str] | None = None,
) -> list[tuple[str, str]]:
    added: list[tuple[str, str]] = []
    if parsed.url:
        added.append((URL_KEY, parsed.url))
    if parsed.notes_text:
        text = ";\n".join(parsed.notes_text)
        added.append((_notes_key(record, text), text))
    if parsed.birthday:
        added.append((BIRTHDAY_KEY, f"{parsed.birthday} birthday"))
    added.extend(drain_other_entries(parsed.residual, skip))
    return _union(record.notes, added)


def merge_into(
    record: ContactRecord,
    parsed: ParsedContact,
    skip: re.Pattern[str] | None = None,
) -> ContactRecord:
    """Fold a parsed card into *record* in place and return it."""
    if parsed.name:
        record.firstname, record.lastname = parsed.name

    record.aka = _union(record.aka, parsed.nicknames, parsed.other_names, parsed.formatted_names)

    if parsed.organization:
        if record.company and record.company != parsed.organization:
            logger.info("%s: company %r replaced by %r",
                        record.fullname or record.id, record.company, parsed.organization)
        record.company = parsed.organization

    record.net = _union(record.net, parsed.emails)
    record.phones = _union(record.phones, parsed.phones)
    record.addresses = _union(record.addresses, parsed.addresses)
    record.notes = merge_notes(record, parsed, skip)
    return record
