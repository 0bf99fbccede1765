"""
Exception hierarchy for modgate.

Lookup failures are normally reported as ``None`` or a deny decision; the
exceptions here are raised where a caller has to stop:

- NotFoundError / CategoryNotFoundError: unknown command, filter or category path
- InvalidScopeError: a usage scope that is not "global", "dm" or a guild id
- InvalidPathError: a malformed document field path
- NotLoadedError: synchronous read of a document field before it was loaded
- PersistenceError: the backing store failed to read or write
- DuplicateDefinitionError: registering a name that is already taken
"""

from __future__ import annotations


class ModgateError(Exception):
    """Base class for every error raised by modgate."""


class NotFoundError(ModgateError):
    """A command, filter or category does not exist."""


class CategoryNotFoundError(NotFoundError):
    """A segment of a category path could not be resolved."""

    def __init__(self, path: str, segment: str):
        super().__init__(f"Couldn't find category '{segment}' in path '{path}'")
        self.path = path
        self.segment = segment


class InvalidScopeError(ModgateError):
    """Usage scope is not a guild id, 'dm' or 'global'."""

    def __init__(self, scope: object):
        super().__init__(f"Scope should be guild id, 'dm' or 'global' but is '{scope}'")
        self.scope = scope


class InvalidPathError(ModgateError):
    """A document field path segment is empty or malformed."""


class NotLoadedError(ModgateError):
    """A document field was read before being loaded from the store."""

    def __init__(self, field_name: str, key: str):
        super().__init__(f"Field '{field_name}' of document '{key}' is not loaded")
        self.field_name = field_name
        self.key = key


class PersistenceError(ModgateError):
    """The backing store failed; the in-memory mirror was left untouched."""


class DuplicateDefinitionError(ModgateError):
    """A command or filter name (or alias) is already registered."""
