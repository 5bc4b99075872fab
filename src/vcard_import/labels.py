from __future__ import annotations

import re
from collections.abc import Iterable

from .errors import ConfigError

# Ordered (pattern, label) pairs; first re.search hit wins, case-insensitive.
# Exactly one pattern must match the empty string: it labels TEL/ADR lines
# that carry no TYPE parameter.
DEFAULT_TRANSLATION_TABLE: list[tuple[str, str]] = [
    ("CELL|CAR", "Mobile"),
    ("WORK", "Office"),
    ("^$", "Office"),
]

# RFC 2426 preference marker; it is not a category.
_IGNORED_TYPES = {"pref"}


class LabelTranslator:
    def __init__(self, table: Iterable[tuple[str, str]] | None = None):
        rows = list(DEFAULT_TRANSLATION_TABLE if table is None else table)
        compiled: list[tuple[re.Pattern[str], str]] = []
        for pattern, label in rows:
            try:
                compiled.append((re.compile(pattern, re.IGNORECASE), label))
            except re.error as exc:
                raise ConfigError(f"Invalid label pattern {pattern!r}: {exc}") from exc
        defaults = [label for rx, label in compiled if rx.search("")]
        if len(defaults) != 1:
            raise ConfigError(
                "Translation table needs exactly one pattern matching the empty "
                f"label, found {len(defaults)}"
            )
        self.table = compiled

    def translate(self, raw_label: str) -> str:
        for rx, label in self.table:
            if rx.search(raw_label):
                return label
        return raw_label.title()

    def translate_types(self, types: Iterable[str]) -> str:
        """Translate a TYPE parameter value list, e.g. ``["cell", "voice"]``."""
        return self.translate(",".join(t for t in types if t not in _IGNORED_TYPES))
