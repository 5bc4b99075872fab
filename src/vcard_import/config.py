from __future__ import annotations

import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigError
from .labels import DEFAULT_TRANSLATION_TABLE, LabelTranslator


@dataclass
class Paths:
    root: Path
    import_dir: Path
    var_dir: Path
    local_dir: Path
    conf_file: Path


@dataclass
class ImportSettings:
    skip_pattern: str = ""
    translation_table: list[tuple[str, str]] = field(
        default_factory=lambda: list(DEFAULT_TRANSLATION_TABLE)
    )
    database: str = "var/contacts.json"

    def skip_regex(self) -> re.Pattern[str] | None:
        """Compiled skip pattern, or None when nothing is skipped."""
        if not self.skip_pattern:
            return None
        try:
            return re.compile(self.skip_pattern, re.IGNORECASE)
        except re.error as exc:
            raise ConfigError(f"Invalid skip pattern {self.skip_pattern!r}: {exc}") from exc

    def translator(self) -> LabelTranslator:
        return LabelTranslator(self.translation_table)


DEFAULT_CONF = """# vcard-import local config (TOML)

# Properties whose type matches this regex are not copied into notes.
# Example: "^X-" drops every vendor extension.
skip_pattern = ""

database = "var/contacts.json"

# TEL/ADR TYPE → label. First match wins; exactly one pattern must match "".
[[labels]]
pattern = "CELL|CAR"
label = "Mobile"

[[labels]]
pattern = "WORK"
label = "Office"

[[labels]]
pattern = "^$"
label = "Office"
"""


def load_settings(conf: Path) -> ImportSettings:
    """Read settings from a TOML file; a missing file gives the defaults."""
    settings = ImportSettings()
    if not conf.exists():
        return settings
    try:
        data = tomllib.loads(conf.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Cannot read {conf}: {exc}") from exc

    settings.skip_pattern = str(data.get("skip_pattern", settings.skip_pattern))
    settings.database = str(data.get("database", settings.database))
    labels = data.get("labels")
    if labels is not None:
        try:
            settings.translation_table = [(str(row["pattern"]), str(row["label"])) for row in labels]
        except (KeyError, TypeError) as exc:
            raise ConfigError(f"{conf}: each [[labels]] entry needs 'pattern' and 'label'") from exc

    # fail early on bad regexes or a table without a default label
    settings.skip_regex()
    settings.translator()
    return settings


def ensure_workspace(base: Path | None = None) -> tuple[Paths, ImportSettings]:
    root = Path(base or os.getcwd())
    import_dir = root / "cards-import"
    var = root / "var"
    local = root / "local"
    conf = local / "vcard-import.conf"

    for d in (import_dir, var, local):
        d.mkdir(parents=True, exist_ok=True)

    if not conf.exists():
        conf.write_text(DEFAULT_CONF, encoding="utf-8")

    return (
        Paths(root=root, import_dir=import_dir, var_dir=var, local_dir=local, conf_file=conf),
        load_settings(conf),
    )
