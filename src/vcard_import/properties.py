"""Property-level parsing of a single vCard body.

A card body is the text between BEGIN:VCARD and END:VCARD, already unfolded.
Every function here is pure: claiming a property returns the parsed entries
together with the *residual* body, i.e. the same text with the claimed lines
removed. Feeding the residual into the next call guarantees that a line is
claimed at most once, and whatever is left at the end is exactly the set of
properties nobody asked for (see `drain_other_entries`).

Escaping is preserved through splitting. `split_structured("a\\;b", ";")`
returns the single segment ``a\\;b`` so callers can still tell an escaped
separator from a real one; `unescape` is applied to final values only.
"""
from __future__ import annotations

import logging
import re

from .model import PropertyEntry

logger = logging.getLogger(__name__)

# Types whose value is defined by RFC 2426 as a list of components; always
# returned as a list even when no separator occurs.
STRUCTURED_TYPES = frozenset({"N", "ADR"})

_GROUP = r"(?:(?P<group>[A-Za-z0-9-]+)\.)?"
_PARAM = re.compile(r';(?P<key>[^;=:]+)(?:=(?P<value>"[^"]*"|[^;]*))?')
_PARAMS = r'(?:;(?:"[^"]*"|[^:])*)'   # quoted values may hold ":"
_OTHER_LINE = re.compile(
    rf"^(?:[A-Za-z0-9-]+\.)?(?P<type>[^:;\s][^:;]*?{_PARAMS}?):(?P<value>.*)$"
)
_ESCAPED_SEPARATOR = re.compile(r"\\([,;])")


# ── Structured values ──────────────────────────────────────────────────────────

def split_structured(text: str, separator: str, force_list: bool = False) -> str | list[str]:
    """Split *text* on every *separator* not preceded by a backslash.

    Escaped separators stay in the segment verbatim. A single segment is
    returned as a bare string unless *force_list* is set.
    """
    parts = re.split(r"(?<!\\)" + re.escape(separator), text)
    if len(parts) == 1 and not force_list:
        return parts[0]
    return parts


def unescape(text: str) -> str:
    r"""Drop the backslash from ``\,`` and ``\;``."""
    return _ESCAPED_SEPARATOR.sub(r"\1", text)


def as_text(value: str | list[str]) -> str:
    """Re-join a value that was split on unescaped semicolons."""
    if isinstance(value, list):
        return ";".join(value)
    return value


# ── Parameters ─────────────────────────────────────────────────────────────────

def parse_params(raw: str) -> dict[str, list[str]]:
    """Parse ``;KEY=VALUE;KEY=V1,V2`` into lower-cased key → ordered values.

    A bare parameter (vCard 2.1 ``TEL;CELL:``) is read as a TYPE value.
    """
    params: dict[str, list[str]] = {}
    for m in _PARAM.finditer(raw):
        key = m.group("key").strip().lower()
        value = m.group("value")
        if value is None:
            key, values = "type", [key]
        else:
            value = value.strip()
            if len(value) >= 2 and value[0] == value[-1] == '"':
                value = value[1:-1]
            values = [v.strip().lower() for v in value.split(",")]
        bucket = params.setdefault(key, [])
        for v in values:
            if v and v not in bucket:
                bucket.append(v)
    return params


# ── Extraction ─────────────────────────────────────────────────────────────────

def _line_pattern(type_name: str) -> re.Pattern[str]:
    return re.compile(
        rf"^{_GROUP}(?P<name>{re.escape(type_name)})(?P<params>{_PARAMS})?:(?P<value>.*)$",
        re.IGNORECASE,
    )


def extract(
    body: str,
    type_name: str,
    first_only: bool = False,
) -> tuple[list[PropertyEntry], str]:
    """Claim every line of *type_name* from *body*.

    Returns the parsed entries in textual order and the residual body. With
    *first_only*, later occurrences are left in the residual.
    """
    pattern = _line_pattern(type_name)
    name = type_name.upper()
    force_list = name in STRUCTURED_TYPES
    entries: list[PropertyEntry] = []
    kept: list[str] = []
    for line in body.split("\n"):
        m = None if (first_only and entries) else pattern.match(line)
        if m is None:
            kept.append(line)
            continue
        entries.append(PropertyEntry(
            name=name,
            value=split_structured(m.group("value"), ";", force_list),
            group=m.group("group"),
            params=parse_params(m.group("params") or ""),
        ))
    if entries:
        logger.debug("claimed %d %s line(s)", len(entries), name)
    return entries, "\n".join(kept)


# ── Everything else ────────────────────────────────────────────────────────────

def next_other_entry(body: str) -> tuple[tuple[str, str] | None, str]:
    """Claim the first remaining ``TYPE:VALUE`` line.

    The key is the lower-cased text before the colon, parameters included;
    the value is returned raw. Returns ``(None, body)`` when nothing is left.
    """
    lines = body.split("\n")
    for i, line in enumerate(lines):
        m = _OTHER_LINE.match(line)
        if m:
            del lines[i]
            return (m.group("type").lower(), m.group("value")), "\n".join(lines)
    return None, body


def drain_other_entries(body: str, skip: re.Pattern[str] | None = None) -> list[tuple[str, str]]:
    """Claim every remaining property, dropping keys that match *skip*."""
    out: list[tuple[str, str]] = []
    while True:
        entry, body = next_other_entry(body)
        if entry is None:
            return out
        if skip is not None and skip.search(entry[0]):
            logger.debug("skipping %s", entry[0])
            continue
        out.append(entry)
