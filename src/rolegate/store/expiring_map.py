"""
Dictionary whose entries lapse at a per-entry expiry time.

Expired entries are removed lazily whenever they are read and in bulk by
``sweep()``, which the owning store runs on a timer. Reads therefore never
observe a stale entry, and the sweep bounds memory for keys nobody reads
again.
"""

from __future__ import annotations

from typing import Callable, Dict, Generic, Iterator, List, Optional, Tuple, TypeVar

from rolegate.util.duration import now_ms

K = TypeVar("K")
V = TypeVar("V")


class ExpiringMap(Generic[K, V]):
    """
    Mapping with lazy expiry on read plus an explicit sweep.

    Args:
        expiry_of: Returns the epoch-millisecond expiry of a value, or ``None``
            for values that never expire.
        clock: Returns the current epoch milliseconds.

    An entry is expired once ``clock() > expiry``.
    """

    def __init__(
        self,
        expiry_of: Callable[[V], Optional[int]],
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._entries: Dict[K, V] = {}
        self._expiry_of = expiry_of
        self._clock = clock

    def _is_expired(self, value: V, now: int) -> bool:
        expiry = self._expiry_of(value)
        return expiry is not None and now > expiry

    def get(self, key: K) -> Optional[V]:
        """Return the live value for ``key``, deleting it first if it has expired."""
        value = self._entries.get(key)
        if value is None:
            return None
        if self._is_expired(value, self._clock()):
            del self._entries[key]
            return None
        return value

    def set(self, key: K, value: V) -> None:
        self._entries[key] = value

    def pop(self, key: K) -> Optional[V]:
        return self._entries.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not None  # type: ignore[arg-type]

    def __len__(self) -> int:
        """Number of stored entries, including expired ones not yet swept."""
        return len(self._entries)

    def items(self) -> List[Tuple[K, V]]:
        """Live entries; expired ones found on the way are deleted."""
        now = self._clock()
        live: List[Tuple[K, V]] = []
        for key, value in list(self._entries.items()):
            if self._is_expired(value, now):
                del self._entries[key]
            else:
                live.append((key, value))
        return live

    def raw_items(self) -> Iterator[Tuple[K, V]]:
        """All stored entries without expiry filtering, for statistics."""
        return iter(list(self._entries.items()))

    def remove_where(self, predicate: Callable[[K, V], bool]) -> int:
        """Delete every stored entry matching ``predicate``; return how many were removed."""
        doomed = [key for key, value in self._entries.items() if predicate(key, value)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def sweep(self) -> List[Tuple[K, V]]:
        """Delete all expired entries and return them."""
        now = self._clock()
        expired = [(key, value) for key, value in self._entries.items() if self._is_expired(value, now)]
        for key, _ in expired:
            del self._entries[key]
        return expired

    def clear(self) -> None:
        self._entries.clear()
