"""
Lazy, partially loaded view over a stored document.

A ``DocWrapper`` holds one presence slot per known field. A slot is either
``NOT_LOADED`` or ``Loaded(value)``:

- ``get(field)`` reads a loaded slot and raises ``NotLoadedError`` otherwise.
- ``aget(field)`` / ``load(*fields)`` fetch missing fields first. Concurrent
  loads of the same field share a single in-flight fetch.
- ``update(ops)`` is write-through: the store is written first and the
  mirror only changes once the write succeeded. Subscribers are notified
  after the mirror changed.

Subclasses declare their ``collection``, the ``fields`` they own and a
default factory per field for documents that do not exist yet.
"""

from __future__ import annotations

import asyncio
import copy
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, ClassVar, Dict, FrozenSet, Generic, Iterable, List, Mapping, Sequence, Tuple, TypeVar, Union

from modgate.database.doc_path import DocField, UpdateOp, apply_ops, touched_fields
from modgate.database.document_store import DocumentStore
from modgate.errors import InvalidPathError, NotLoadedError
from modgate.util.logger import get_logger

logger = get_logger("doc_wrapper")

T = TypeVar("T")


class _NotLoaded:
    """Marker for a field that has not been fetched yet."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "NOT_LOADED"

    def __bool__(self) -> bool:
        return False


NOT_LOADED = _NotLoaded()


@dataclass(frozen=True, slots=True)
class Loaded(Generic[T]):
    """A fetched field value."""

    value: T


FieldSlot = Union[Loaded[Any], _NotLoaded]
Subscriber = Callable[["DocWrapper", Sequence[UpdateOp]], None]


class DocWrapper:
    """Base class for lazily loaded, write-through document wrappers."""

    collection: ClassVar[str]
    fields: ClassVar[Tuple[DocField, ...]] = ()
    defaults: ClassVar[Mapping[DocField, Callable[[], Any]]] = {}

    def __init__(self, store: DocumentStore, key: str):
        self.store = store
        self.key = key
        self._slots: Dict[DocField, FieldSlot] = {f: NOT_LOADED for f in self.fields}
        self._inflight: Dict[DocField, asyncio.Future] = {}
        self._update_lock = asyncio.Lock()
        self._subscribers: List[Subscriber] = []

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.key!r})"

    # ------------------------------------------------------------------
    # Presence
    # ------------------------------------------------------------------

    @property
    def loaded_fields(self) -> FrozenSet[DocField]:
        return frozenset(f for f, slot in self._slots.items() if isinstance(slot, Loaded))

    def is_loaded(self, field: DocField) -> bool:
        return isinstance(self._slot(field), Loaded)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self, *fields: DocField) -> None:
        """
        Make sure ``fields`` (all fields if none given) are loaded.

        Fields already loaded cost nothing; fields another coroutine is
        already fetching are awaited rather than fetched again.

        Raises:
            PersistenceError: If the store fails; the slots stay unloaded.
        """
        waiting = set()
        to_fetch: List[DocField] = []
        for f in self._check_fields(fields or self.fields):
            if isinstance(self._slots[f], Loaded):
                continue
            pending = self._inflight.get(f)
            if pending is not None and not pending.done():
                waiting.add(pending)
            else:
                to_fetch.append(f)

        if to_fetch:
            fetch = asyncio.ensure_future(self._fetch(tuple(to_fetch)))
            for f in to_fetch:
                self._inflight[f] = fetch
            fetch.add_done_callback(partial(self._clear_inflight, tuple(to_fetch)))
            waiting.add(fetch)

        if waiting:
            await asyncio.gather(*waiting)

    async def _fetch(self, fields: Tuple[DocField, ...]) -> None:
        data = await self.store.fetch(self.collection, self.key, fields)
        if data is None:
            data = {}
        for f in fields:
            self._slots[f] = Loaded(data[f.value] if f.value in data else self._default(f))
        logger.debug("[DOC WRAPPER] Loaded %s for %s/%s", [f.value for f in fields], self.collection, self.key)

    def _clear_inflight(self, fields: Tuple[DocField, ...], fetch: asyncio.Future) -> None:
        for f in fields:
            if self._inflight.get(f) is fetch:
                del self._inflight[f]

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get(self, field: DocField) -> Any:
        """
        Return a loaded field value.

        The returned value is the mirror itself (shallow reference); callers
        must not mutate it, use ``update`` instead.

        Raises:
            NotLoadedError: If the field has not been loaded.
        """
        slot = self._slot(field)
        if not isinstance(slot, Loaded):
            raise NotLoadedError(field.value, self.key)
        return slot.value

    async def aget(self, field: DocField) -> Any:
        """Load ``field`` if needed and return its value."""
        await self.load(field)
        return self.get(field)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    async def update(self, ops: Iterable[UpdateOp]) -> None:
        """
        Write ``ops`` to the store, then apply them to the mirror.

        Fields touched by ``ops`` are loaded first so the mirror can follow
        the write. Updates on one wrapper are serialised in issue order.

        Raises:
            PersistenceError: If the store write fails. The mirror is unchanged.
        """
        ops = list(ops)
        if not ops:
            return
        roots = self._check_fields(touched_fields(ops))

        async with self._update_lock:
            await self.load(*roots)
            try:
                await self.store.apply_update(self.collection, self.key, ops)
            except Exception:
                logger.warning("[DOC WRAPPER] Store rejected update of %s/%s, mirror unchanged", self.collection, self.key)
                raise

            document = {f.value: copy.deepcopy(self.get(f)) for f in roots}
            apply_ops(document, copy.deepcopy(ops))
            for f in roots:
                self._slots[f] = Loaded(document[f.value] if f.value in document else self._default(f))

        self._notify(ops)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> None:
        """Call ``callback(wrapper, ops)`` after every successful update."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass

    def _notify(self, ops: Sequence[UpdateOp]) -> None:
        for callback in list(self._subscribers):
            try:
                callback(self, ops)
            except Exception:
                logger.exception("[DOC WRAPPER] Subscriber %r failed for %s/%s", callback, self.collection, self.key)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _slot(self, field: DocField) -> FieldSlot:
        try:
            return self._slots[field]
        except KeyError:
            raise InvalidPathError(f"{type(self).__name__} has no field {field!r}") from None

    def _check_fields(self, fields: Iterable[DocField]) -> Tuple[DocField, ...]:
        checked = tuple(fields)
        for f in checked:
            self._slot(f)
        return checked

    def _default(self, field: DocField) -> Any:
        factory = self.defaults.get(field)
        return factory() if factory is not None else None
