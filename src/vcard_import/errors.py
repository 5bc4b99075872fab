from __future__ import annotations


class VcardImportError(Exception):
    """Base class for errors raised by vcard-import."""


class ConfigError(VcardImportError):
    """Configuration file or translation table is invalid."""


class ContactDatabaseError(VcardImportError):
    """The contact database could not be read, queried or written."""
