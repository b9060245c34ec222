import logging
from typing import Generic, Iterable, Iterator, Optional, TypeVar

import attr

logger = logging.getLogger(__name__)

T = TypeVar("T")
V = TypeVar("V")


@attr.s(eq=False, repr=False)
class _RcBox(Generic[V]):
    value: V = attr.ib()
    strong: int = attr.ib(default=1)


@attr.s(auto_detect=True, eq=False)
class Rc(Generic[V]):
    """
    One owner's handle to a shared value.
    All handles cloned from each other point at the same box and share its count.
    A handle is spent once released; the value is only handed back to the owner that
    brings the count down to zero.
    """
    _box: Optional[_RcBox[V]] = attr.ib()

    @classmethod
    def new(cls, value: V) -> "Rc[V]":
        return cls(_RcBox(value))

    def _live_box(self) -> _RcBox[V]:
        if self._box is None:
            raise ValueError("handle was already released")
        return self._box

    def get(self) -> V:
        return self._live_box().value

    def clone(self) -> "Rc[V]":
        box = self._live_box()
        box.strong += 1
        return Rc(box)

    @property
    def strong_count(self) -> int:
        return self._live_box().strong

    def release(self) -> Optional[V]:
        box = self._live_box()
        self._box = None
        box.strong -= 1
        if box.strong == 0:
            return box.value
        return None

    def __repr__(self):
        if self._box is None:
            return "<rc: released>"
        return f"<rc x{self._box.strong}: {self._box.value!r}>"


@attr.s(eq=False, repr=False)
class Node(Generic[T]):
    elem: T = attr.ib()
    next: Optional[Rc["Node[T]"]] = attr.ib(default=None)


class PersistentSharedList(Generic[T]):
    """
    Immutable list whose versions share their tails.
    `prepend` and `tail` build new lists out of cloned handles; nothing reachable from
    an existing list is ever changed.
    """

    def __init__(self, head: Optional[Rc[Node[T]]] = None):
        self._head = head

    @classmethod
    def of(cls, *elems: T) -> "PersistentSharedList[T]":
        return cls.from_iterable(elems)

    @classmethod
    def from_iterable(cls, iterable: Iterable[T]) -> "PersistentSharedList[T]":
        result = cls()
        for elem in reversed(list(iterable)):
            result = result.prepend(elem)
        return result

    def prepend(self, elem: T) -> "PersistentSharedList[T]":
        shared_rest = self._head.clone() if self._head is not None else None
        return self.__class__(Rc.new(Node(elem, shared_rest)))

    def tail(self) -> "PersistentSharedList[T]":
        if self._head is None:
            return self.__class__()
        second = self._head.get().next
        return self.__class__(second.clone() if second is not None else None)

    def head(self) -> Optional[T]:
        return self._head.get().elem if self._head is not None else None

    def head_count(self) -> int:
        """How many owners (lists and nodes) share the first node; 0 when empty"""
        return self._head.strong_count if self._head is not None else 0

    def is_empty(self) -> bool:
        return self._head is None

    def iter(self) -> Iterator[T]:
        start = link = self._head
        while link is not None:
            node = link.get()
            yield node.elem
            # the head only ever changes when drop() gives the chain away
            if self._head is not start:
                raise RuntimeError(f"{self.__class__.__name__} was dropped during iteration")
            link = node.next

    def __iter__(self):
        return self.iter()

    def drop(self):
        """
        Gives up this list's share of its chain.
        Walks forward reclaiming nodes as long as this release was the last one;
        the first node still owned elsewhere ends the walk, since everything after it
        is still reachable by its other owners.
        """
        link, self._head = self._head, None
        reclaimed = 0
        while link is not None:
            node = link.release()
            if node is None:
                logger.debug("Stopped after reclaiming %d nodes, rest of the chain is still shared", reclaimed)
                return
            link, node.next = node.next, None
            reclaimed += 1
        if reclaimed:
            logger.debug("Reclaimed %d nodes, reached end of chain", reclaimed)

    def __del__(self):
        self.drop()

    def __eq__(self, other):
        if not isinstance(other, PersistentSharedList):
            return NotImplemented
        sentinel = object()
        left, right = self.iter(), other.iter()
        while True:
            a, b = next(left, sentinel), next(right, sentinel)
            if a is sentinel or b is sentinel:
                return a is b
            if a != b:
                return False

    __hash__ = None

    def __len__(self):
        # NOTE! Can be expensive, traverses whole list
        return sum(1 for _ in self)

    def __repr__(self):
        return f"{self.__class__.__name__}({' => '.join(map(repr, self))})"
