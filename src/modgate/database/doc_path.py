"""
Typed field paths and update operations for stored documents.

Documents are JSON objects whose top-level keys are the ``DocField`` values.
A ``FieldPath`` addresses a nested entry below one of those fields, e.g.::

    FieldPath(DocField.COMMAND_LAST_USED, "global", "ping")
    # dotted form: "command_last_used.global.ping"

Segments are validated when the path is built, so a malformed key can never
reach the store. ``apply_ops`` is shared by the store and the in-memory
mirror so both interpret operations identically.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Sequence, Tuple, Union

from modgate.errors import InvalidPathError


class DocField(str, Enum):
    """Top-level fields known to the document store."""

    COMMAND_LAST_USED = "command_last_used"
    USAGE_LIMITS = "usage_limits"
    COMMANDS = "commands"
    FILTERS = "filters"
    STAFF = "staff"
    LOG_CHANNEL = "log_channel"

    def __str__(self) -> str:
        return self.value


def _validate_segment(segment: object) -> str:
    if not isinstance(segment, str):
        segment = str(segment)
    if not segment or "." in segment or segment.startswith("$"):
        raise InvalidPathError(f"Invalid path segment: {segment!r}")
    return segment


class FieldPath:
    """Validated path from a ``DocField`` down into nested mappings."""

    __slots__ = ("root", "keys")

    def __init__(self, root: DocField, *keys: object) -> None:
        if not isinstance(root, DocField):
            raise InvalidPathError(f"Unknown document field: {root!r}")
        self.root = root
        self.keys: Tuple[str, ...] = tuple(_validate_segment(k) for k in keys)

    def child(self, key: object) -> "FieldPath":
        return FieldPath(self.root, *self.keys, key)

    @property
    def dotted(self) -> str:
        return ".".join((self.root.value, *self.keys))

    def __repr__(self) -> str:
        return f"FieldPath({self.dotted!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FieldPath):
            return NotImplemented
        return self.root is other.root and self.keys == other.keys

    def __hash__(self) -> int:
        return hash((self.root, self.keys))


@dataclass(frozen=True, slots=True)
class SetField:
    """Set the value at ``path``, creating intermediate mappings."""

    path: FieldPath
    value: Any


@dataclass(frozen=True, slots=True)
class UnsetField:
    """Remove the subtree at ``path``; missing paths are ignored."""

    path: FieldPath


UpdateOp = Union[SetField, UnsetField]


def touched_fields(ops: Iterable[UpdateOp]) -> Tuple[DocField, ...]:
    """Return the distinct top-level fields an operation list writes to, in order."""
    seen: Dict[DocField, None] = {}
    for op in ops:
        seen.setdefault(op.path.root, None)
    return tuple(seen)


def apply_ops(document: Dict[str, Any], ops: Sequence[UpdateOp]) -> Dict[str, Any]:
    """
    Apply update operations to ``document`` in place and return it.

    Setting below a non-mapping value replaces that value with a mapping.
    Unsetting a top-level field removes the field entirely.
    """
    for op in ops:
        parts = (op.path.root.value, *op.path.keys)
        parent = document
        if isinstance(op, SetField):
            for part in parts[:-1]:
                nested = parent.get(part)
                if not isinstance(nested, dict):
                    nested = {}
                    parent[part] = nested
                parent = nested
            parent[parts[-1]] = op.value
        else:
            for part in parts[:-1]:
                nested = parent.get(part)
                if not isinstance(nested, dict):
                    break
                parent = nested
            else:
                parent.pop(parts[-1], None)
    return document
