"""
Populations
===========

Capped entity collections with oldest-first eviction, and the bounded
collision memory carried by wavefronts.
"""

from __future__ import annotations

import logging
from collections import OrderedDict, deque
from typing import Deque, FrozenSet, Generic, Hashable, Iterable, Iterator, List, Optional, Set, TypeVar

logger = logging.getLogger("palette_master.population")

T = TypeVar("T")


class BoundedPopulation(Generic[T]):
    """
    Insertion-ordered collection of entities keyed by ``uid``.

    Never holds more than ``capacity`` entities. Adding to a full
    population evicts the oldest entity whose ``is_pinned`` attribute is false;
    when every entity is pinned the new entity is rejected instead.
    """

    def __init__(self, capacity: int, name: str = "population"):
        self._capacity = max(1, int(capacity))
        self._name = name
        self._items: "OrderedDict[int, T]" = OrderedDict()
        self._evicted_total = 0

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items.values()))

    def __contains__(self, uid: int) -> bool:
        return uid in self._items

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def evicted_total(self) -> int:
        """Number of entities evicted since creation."""
        return self._evicted_total

    @property
    def is_full(self) -> bool:
        return len(self._items) >= self._capacity

    def get(self, uid: int) -> Optional[T]:
        return self._items.get(uid)

    def values(self) -> List[T]:
        """Entities oldest first."""
        return list(self._items.values())

    def oldest_unpinned(self) -> Optional[T]:
        for item in self._items.values():
            if not getattr(item, "is_pinned", False):
                return item
        return None

    def add(self, item: T) -> List[T]:
        """
        Insert an entity, evicting as needed.

        Args:
            item: Entity with a ``uid`` attribute.

        Returns:
            Evicted entities. If the item itself could not be inserted it is
            returned as the only element.
        """
        evicted: List[T] = []
        while len(self._items) >= self._capacity:
            victim = self.oldest_unpinned()
            if victim is None:
                logger.debug("%s full of pinned entities, rejected uid %s",
                             self._name, getattr(item, "uid", None))
                return [item]
            del self._items[victim.uid]
            self._evicted_total += 1
            evicted.append(victim)
            logger.debug("%s at capacity %d, evicted uid %s",
                         self._name, self._capacity, victim.uid)

        self._items[item.uid] = item
        return evicted

    def remove(self, uid: int) -> Optional[T]:
        return self._items.pop(uid, None)

    def remove_many(self, uids: Iterable[int]) -> List[T]:
        removed = []
        for uid in uids:
            item = self._items.pop(uid, None)
            if item is not None:
                removed.append(item)
        return removed

    def clear(self) -> None:
        self._items.clear()


class CollisionMemory:
    """
    Collided-with keys for one entity.

    Ordinary keys live in a fixed-capacity ring, so long-lived entities
    forget their oldest collisions instead of growing without bound. Pinned
    keys are never forgotten; callers pin keys drawn from a bounded set.
    """

    def __init__(
        self,
        capacity: int = 32,
        keys: Iterable[Hashable] = (),
        pinned: Iterable[Hashable] = ()
    ):
        self._capacity = max(1, int(capacity))
        self._ring: Deque[Hashable] = deque(maxlen=self._capacity)
        self._members: Set[Hashable] = set()
        self._pinned: Set[Hashable] = set(pinned)
        for key in keys:
            self.add(key)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._members or key in self._pinned

    def __len__(self) -> int:
        return len(self._ring) + len(self._pinned)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(list(self._pinned) + list(self._ring))

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def pinned(self) -> FrozenSet[Hashable]:
        return frozenset(self._pinned)

    def add(self, key: Hashable, pinned: bool = False) -> None:
        """
        Remember a key.

        Args:
            key: Collision key.
            pinned: Keep the key for the entity's whole life. Pinning a key
                already in the ring moves it out of the ring.
        """
        if key in self._pinned:
            return
        if pinned:
            if key in self._members:
                self._members.discard(key)
                self._ring.remove(key)
            self._pinned.add(key)
            return
        if key in self._members:
            return
        if len(self._ring) == self._capacity:
            self._members.discard(self._ring.popleft())
        self._ring.append(key)
        self._members.add(key)

    def copy(self) -> "CollisionMemory":
        return CollisionMemory(self._capacity, self._ring, self._pinned)

    def clear(self) -> None:
        self._ring.clear()
        self._members.clear()
        self._pinned.clear()
