from __future__ import annotations

import logging
import re
import sys
from collections.abc import Iterator
from pathlib import Path

logger = logging.getLogger(__name__)

VCARD_SUFFIXES = (".vcf", ".vcard")

# ── Text normalisation ─────────────────────────────────────────────────────────
#
# Exports in the wild mix line endings (Outlook CRLF, old Mac CR, Unix LF) and
# fold long lines per RFC 2425 §5.8.1: a line break followed by exactly one
# space or tab continues the previous line.
#
#   "NOTE:first part\r\n  second"  →  "NOTE:first part second"

_LINE_BREAK = re.compile(r"\r\n|\r")
_FOLD = re.compile(r"\n[ \t]")


def normalize_text(text: str) -> str:
    """Return *text* with LF line endings and folded lines joined."""
    return _FOLD.sub("", _LINE_BREAK.sub("\n", text))


# ── Card envelopes ─────────────────────────────────────────────────────────────
#
# Delimiters may carry a group prefix (item1.BEGIN:VCARD). A BEGIN with no
# matching END before the next BEGIN is never matched, so it yields nothing.

_GROUP = r"(?:[A-Za-z0-9-]+\.)?"
_CARD = re.compile(
    rf"^{_GROUP}BEGIN:VCARD[ \t]*\n"
    rf"((?:(?!^{_GROUP}BEGIN:VCARD).)*?)"
    rf"^{_GROUP}END:VCARD[ \t]*$",
    re.IGNORECASE | re.MULTILINE | re.DOTALL,
)


def iter_card_bodies(text: str) -> Iterator[str]:
    """Yield the body of every complete BEGIN:VCARD … END:VCARD block.

    *text* must already be normalised. Each call starts a fresh scan.
    """
    for m in _CARD.finditer(text):
        yield m.group(1).rstrip("\n")


# ── Acquisition ────────────────────────────────────────────────────────────────

def read_vcard_text(path: Path | str) -> str:
    """Read a vCard file (or "-" for standard input) as text."""
    if str(path) == "-":
        return sys.stdin.read()
    p = Path(path)
    raw = p.read_text(encoding="utf-8-sig", errors="replace")
    logger.debug("%s: read %d characters", p.name, len(raw))
    return raw


def collect_import_sources(import_dir: Path) -> list[Path]:
    """Return all vCard files found directly inside import_dir, sorted by name."""
    if not import_dir.is_dir():
        return []
    return sorted(p for p in import_dir.iterdir() if p.suffix.lower() in VCARD_SUFFIXES)
