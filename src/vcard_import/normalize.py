from __future__ import annotations

import logging

from .labels import LabelTranslator
from .model import Address, ParsedContact, Phone, PropertyEntry
from .properties import as_text, extract, split_structured, unescape

logger = logging.getLogger(__name__)

SUPPORTED_VERSION = "3.0"


def _components(value: str | list[str], size: int) -> list[str]:
    parts = list(value) if isinstance(value, list) else [value]
    return (parts + [""] * size)[:size]


def _flatten(component: str) -> str:
    """Space-join a comma list such as ``Hon.,Dr.``."""
    parts = split_structured(component, ",", force_list=True)
    return " ".join(p.strip() for p in parts if p.strip())


# ── Name ───────────────────────────────────────────────────────────────────────

def divide_name(text: str) -> tuple[str, str]:
    """Split a free-form name into (given, family).

    "Last, First" is honoured; otherwise the last word is the family name and
    a single word is taken as the given name.
    """
    text = " ".join(text.split())
    parts = split_structured(text, ",", force_list=True)
    if len(parts) > 1:
        family, given = parts[0], ",".join(parts[1:])
        return unescape(given.strip()), unescape(family.strip())
    given, _, family = text.rpartition(" ")
    if not given:
        return unescape(family), ""
    return unescape(given), unescape(family)


def search_name(value: str | list[str]) -> tuple[str, str]:
    """(given, family) without prefixes, additional names or suffixes."""
    if not isinstance(value, list) or len(value) == 1:
        return divide_name(as_text(value))
    family, given = (_flatten(c) for c in _components(value, 2))
    return unescape(given), unescape(family)


def convert_name(value: str | list[str]) -> tuple[str, str]:
    if not isinstance(value, list) or len(value) == 1:
        return divide_name(as_text(value))
    family, given, additional, prefixes, suffixes = (_flatten(c) for c in _components(value, 5))
    first = " ".join(p for p in (prefixes, given, additional) if p)
    last = " ".join(p for p in (family, suffixes) if p)
    return unescape(first), unescape(last)


# ── Organisation ───────────────────────────────────────────────────────────────

def convert_org(value: str | list[str]) -> str:
    """Company first, organisational units on following lines."""
    if isinstance(value, list):
        return "\n".join(unescape(p.strip()) for p in value if p.strip())
    return unescape(value.strip())


# ── Address / phone ────────────────────────────────────────────────────────────

def convert_address(entry: PropertyEntry, translator: LabelTranslator) -> Address:
    parts = [unescape(p.strip()) for p in _components(entry.value, 7)]
    return Address(
        label=translator.translate_types(entry.param("type")),
        lines=tuple(p for p in parts[0:3] if p),
        city=parts[3],
        state=parts[4],
        zip=parts[5],
        country=parts[6],
    )


def convert_phone(entry: PropertyEntry, translator: LabelTranslator) -> Phone:
    return Phone(
        label=translator.translate_types(entry.param("type")),
        number=unescape(as_text(entry.value).strip()),
    )


# ── Card ───────────────────────────────────────────────────────────────────────

def _texts(entries: list[PropertyEntry]) -> list[str]:
    out = []
    for e in entries:
        text = unescape(as_text(e.value).strip())
        if text:
            out.append(text)
    return out


def _note_text(entry: PropertyEntry) -> str:
    text = as_text(entry.value).replace("\\n", "\n").replace("\\N", "\n")
    return unescape(text).strip()


def parse_card(body: str, translator: LabelTranslator) -> ParsedContact:
    """Convert one card body into a ParsedContact.

    Every known type is claimed from the body; what is left over ends up in
    ``ParsedContact.residual`` for the notes channel.
    """
    version, body = extract(body, "VERSION")
    version_text = as_text(version[0].value).strip() if version else None
    if version_text != SUPPORTED_VERSION:
        logger.warning(
            "vCard version %s is not %s; importing on a best-effort basis",
            version_text or "(missing)", SUPPORTED_VERSION,
        )

    names, body = extract(body, "N")
    formatted, body = extract(body, "FN")
    nicks, body = extract(body, "NICKNAME")
    orgs, body = extract(body, "ORG", first_only=True)
    emails, body = extract(body, "EMAIL")
    tels, body = extract(body, "TEL")
    adrs, body = extract(body, "ADR")
    urls, body = extract(body, "URL", first_only=True)
    notes, body = extract(body, "NOTE")
    bdays, body = extract(body, "BDAY", first_only=True)

    name = convert_name(names[0].value) if names else None
    if name is not None and not any(name):
        name = None  # "N:;;;;"
    bare = search_name(names[0].value) if name else None
    other_names = []
    for entry in names[1:]:
        text = " ".join(p for p in convert_name(entry.value) if p)
        if text:
            other_names.append(text)

    nicknames = [
        unescape(n.strip())
        for e in nicks
        for n in split_structured(as_text(e.value), ",", force_list=True)
        if n.strip()
    ]

    organization = convert_org(orgs[0].value) if orgs else ""
    url = _texts(urls)
    bday = _texts(bdays)
    return ParsedContact(
        name=name,
        search_name=bare if bare and any(bare) else name,
        other_names=tuple(other_names),
        formatted_names=tuple(_texts(formatted)),
        nicknames=tuple(nicknames),
        organization=organization or None,
        emails=tuple(_texts(emails)),
        phones=tuple(p for p in (convert_phone(e, translator) for e in tels) if p.number),
        addresses=tuple(convert_address(e, translator) for e in adrs),
        url=url[0] if url else None,
        notes_text=tuple(t for t in (_note_text(e) for e in notes) if t),
        birthday=bday[0] if bday else None,
        version=version_text,
        residual=body,
    )
