from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class PropertyEntry:
    name: str                                   # upper-cased, group prefix stripped
    value: str | list[str]
    group: str | None = None
    params: dict[str, list[str]] = field(default_factory=dict)

    def param(self, key: str) -> list[str]:
        return self.params.get(key.lower(), [])


@dataclass(frozen=True)
class Phone:
    label: str
    number: str


@dataclass(frozen=True)
class Address:
    label: str
    lines: tuple[str, ...] = ()
    city: str = ""
    state: str = ""
    zip: str = ""
    country: str = ""


@dataclass(frozen=True)
class ParsedContact:
    name: tuple[str, str] | None = None         # (given, family)
    search_name: tuple[str, str] | None = None  # bare N given and family, for matching
    other_names: tuple[str, ...] = ()
    formatted_names: tuple[str, ...] = ()
    nicknames: tuple[str, ...] = ()
    organization: str | None = None
    emails: tuple[str, ...] = ()
    phones: tuple[Phone, ...] = ()
    addresses: tuple[Address, ...] = ()
    url: str | None = None
    notes_text: tuple[str, ...] = ()
    birthday: str | None = None
    version: str | None = None
    residual: str = ""                          # unclaimed lines, drained into notes

    @property
    def display_name(self) -> str:
        if self.name:
            return " ".join(p for p in self.name if p)
        if self.formatted_names:
            return self.formatted_names[0]
        return self.organization or "Unnamed"


@dataclass
class ContactRecord:
    id: str
    firstname: str = ""
    lastname: str = ""
    aka: list[str] = field(default_factory=list)
    company: str | None = None
    addresses: list[Address] = field(default_factory=list)
    phones: list[Phone] = field(default_factory=list)
    net: list[str] = field(default_factory=list)
    notes: list[tuple[str, str]] = field(default_factory=list)  # ordered (key, value)

    @property
    def fullname(self) -> str:
        return " ".join(p for p in (self.firstname, self.lastname) if p)

    def note_keys(self) -> set[str]:
        return {k for k, _ in self.notes}

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "firstname": self.firstname,
            "lastname": self.lastname,
            "aka": list(self.aka),
            "company": self.company,
            "addresses": [
                {
                    "label": a.label, "lines": list(a.lines), "city": a.city,
                    "state": a.state, "zip": a.zip, "country": a.country,
                }
                for a in self.addresses
            ],
            "phones": [{"label": p.label, "number": p.number} for p in self.phones],
            "net": list(self.net),
            "notes": [[k, v] for k, v in self.notes],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContactRecord:
        return cls(
            id=str(data["id"]),
            firstname=data.get("firstname") or "",
            lastname=data.get("lastname") or "",
            aka=list(data.get("aka") or []),
            company=data.get("company"),
            addresses=[
                Address(
                    label=a.get("label", ""),
                    lines=tuple(a.get("lines") or ()),
                    city=a.get("city", ""),
                    state=a.get("state", ""),
                    zip=a.get("zip", ""),
                    country=a.get("country", ""),
                )
                for a in data.get("addresses") or []
            ],
            phones=[Phone(label=p.get("label", ""), number=p.get("number", ""))
                    for p in data.get("phones") or []],
            net=list(data.get("net") or []),
            notes=[(str(k), str(v)) for k, v in data.get("notes") or []],
        )
