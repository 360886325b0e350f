"""Time-bounded in-memory cache of store objects.

Objects are indexed by surrogate key and by unique name.  An entry older
than ``max_age`` seconds is evicted when it is next retrieved.  Callers
that must also consult the store (e.g. a last-modified check) pass a
``check`` callback; a ``False`` result evicts the entry.

Usage::

    cache: DbObjectCache[DbComputation] = DbObjectCache(max_age=3600)
    cache.put(comp)
    comp = cache.get_by_unique_name("daily-average")
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Generic, Iterator, Optional, Protocol, TypeVar


class CachableDbObject(Protocol):
    """Anything with a surrogate key and a unique name."""

    @property
    def key(self) -> int: ...

    @property
    def unique_name(self) -> str: ...


T = TypeVar("T", bound=CachableDbObject)


@dataclass
class _Entry(Generic[T]):
    obj: T
    loaded_at: float


class DbObjectCache(Generic[T]):
    """Keyed cache with age-based eviction.

    Args:
        max_age: Seconds an entry stays valid; ``None`` disables age eviction.
        name_is_case_sensitive: Compare unique names exactly when True.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        max_age: Optional[float] = 3600.0,
        name_is_case_sensitive: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_age = max_age
        self._case_sensitive = name_is_case_sensitive
        self._clock = clock
        self._by_key: dict[int, _Entry[T]] = {}
        self._by_name: dict[str, _Entry[T]] = {}

    def _name(self, name: str) -> str:
        return name if self._case_sensitive else name.upper()

    def _expired(self, entry: _Entry[T]) -> bool:
        return self.max_age is not None and self._clock() - entry.loaded_at > self.max_age

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def put(self, obj: T) -> None:
        """Place *obj* in the cache, replacing any entry with the same key."""
        self.remove(obj.key)
        entry = _Entry(obj, self._clock())
        self._by_key[obj.key] = entry
        self._by_name[self._name(obj.unique_name)] = entry

    def remove(self, key: int) -> Optional[T]:
        """Remove the object with *key*; return it, or None if absent."""
        entry = self._by_key.pop(key, None)
        if entry is None:
            return None
        name = self._name(entry.obj.unique_name)
        if self._by_name.get(name) is entry:
            del self._by_name[name]
        return entry.obj

    def clear(self) -> None:
        self._by_key.clear()
        self._by_name.clear()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def get_by_key(
        self, key: int, check: Optional[Callable[[T], bool]] = None
    ) -> Optional[T]:
        entry = self._by_key.get(key)
        return self._validate(entry, check)

    def get_by_unique_name(
        self, name: str, check: Optional[Callable[[T], bool]] = None
    ) -> Optional[T]:
        entry = self._by_name.get(self._name(name))
        return self._validate(entry, check)

    def _validate(
        self, entry: Optional[_Entry[T]], check: Optional[Callable[[T], bool]]
    ) -> Optional[T]:
        if entry is None:
            return None
        if self._expired(entry) or (check is not None and not check(entry.obj)):
            self.remove(entry.obj.key)
            return None
        return entry.obj

    def search(self, predicate: Callable[[T], bool]) -> Optional[T]:
        """Return the first cached object satisfying *predicate*."""
        for entry in self._by_key.values():
            if predicate(entry.obj):
                return entry.obj
        return None

    def size(self) -> int:
        return len(self._by_key)

    def __len__(self) -> int:
        return len(self._by_key)

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def __iter__(self) -> Iterator[T]:
        return iter([entry.obj for entry in self._by_key.values()])
