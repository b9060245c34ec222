import logging
from abc import abstractmethod
from typing import Generic, Iterable, Iterator, Optional, TypeVar

import attr

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BorrowError(RuntimeError):
    """An access would break the rule of one mutable borrow XOR any number of shared borrows"""


@attr.s(auto_detect=True, eq=False, repr=False)
class Node(Generic[T]):
    elem: T = attr.ib()
    next: Optional["Node[T]"] = attr.ib(default=None)

    def take_next(self) -> Optional["Node[T]"]:
        next_, self.next = self.next, None
        return next_


class MutBorrow:
    """
    The single live mutable borrow of a list.
    Every view handed out under it checks `active` before touching its element.
    """

    def __init__(self, owner: "GenericBorrowList"):
        owner._borrow_mut()
        self._owner: Optional["GenericBorrowList"] = owner

    @property
    def active(self) -> bool:
        return self._owner is not None

    def release(self):
        if self._owner is not None:
            self._owner._release_mut()
            self._owner = None


@attr.s(auto_detect=True, eq=False)
class ElemRef(Generic[T]):
    """
    Mutable view of one element; writes go straight into the owning node.
    A view from `peek_mut()` owns its borrow and gives it back on `close()`, on leaving a
    `with` block, or when collected. Views from `iter_mut()` share their iterator's borrow
    and go dead when the iterator lets go of it.
    """
    _node: Node[T] = attr.ib(repr=False)
    _borrow: MutBorrow = attr.ib(repr=False)
    _owns_borrow: bool = attr.ib(default=False, repr=False)

    def _live_node(self) -> Node[T]:
        if not self._borrow.active:
            raise BorrowError("mutable view used after its borrow was released")
        return self._node

    @property
    def value(self) -> T:
        return self._live_node().elem

    @value.setter
    def value(self, elem: T):
        self._live_node().elem = elem

    def set(self, elem: T):
        self.value = elem

    def close(self):
        if self._owns_borrow:
            self._borrow.release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __del__(self):
        # attrs __init__ may not have run to completion
        if getattr(self, "_owns_borrow", False):
            self.close()

    def __repr__(self):
        if not self._borrow.active:
            return "<ref: released>"
        return f"<ref: {self._node.elem!r}>"


class GenericBorrowList(Generic[T]):
    """
    Singly-linked stack with exclusively owned nodes and borrowing iterators.

    Borrows are tracked at runtime, the way a RefCell does it:
    `_borrows > 0` counts live shared borrows (`iter()`), `-1` marks the single live
    mutable borrow (`iter_mut()` or a `peek_mut()` view). Operations that would conflict
    raise `BorrowError`.
    """

    _MUT_BORROWED = -1

    def __init__(self):
        self.head: Optional[Node[T]] = None
        self._borrows: int = 0

    # Borrow bookkeeping

    def _check_readable(self):
        if self._borrows == self._MUT_BORROWED:
            raise BorrowError(f"{self.__class__.__name__} is mutably borrowed")

    def _check_writable(self):
        self._check_readable()
        if self._borrows > 0:
            raise BorrowError(f"{self.__class__.__name__} is borrowed by {self._borrows} live iter()")

    def _borrow_shared(self):
        self._check_readable()
        self._borrows += 1

    def _release_shared(self):
        self._borrows -= 1

    def _borrow_mut(self):
        self._check_writable()
        self._borrows = self._MUT_BORROWED

    def _release_mut(self):
        self._borrows = 0

    # Exclusive ownership

    def _take_head(self) -> Optional[Node[T]]:
        head, self.head = self.head, None
        return head

    def _pop_node(self) -> Optional[Node[T]]:
        node = self._take_head()
        if node is not None:
            self.head = node.take_next()
        return node

    def push(self, elem: T):
        self._check_writable()
        self.head = Node(elem, self._take_head())

    def extend(self, elems: Iterable[T]):
        for elem in elems:
            self.push(elem)

    def pop(self) -> Optional[T]:
        self._check_writable()
        node = self._pop_node()
        return node.elem if node is not None else None

    def peek(self) -> Optional[T]:
        self._check_readable()
        return self.head.elem if self.head is not None else None

    def peek_mut(self) -> Optional[ElemRef[T]]:
        """The returned view holds the list's mutable borrow until it is closed"""
        self._check_writable()
        if self.head is None:
            return None
        return ElemRef(self.head, MutBorrow(self), owns_borrow=True)

    def is_empty(self) -> bool:
        return self.head is None

    # Iteration

    def into_iter(self) -> "IntoIter[T]":
        """Moves the whole chain into the returned iterator, leaving this list empty"""
        self._check_writable()
        moved = GenericBorrowList()
        moved.head = self._take_head()
        return IntoIter(moved)

    def iter(self) -> "Iter[T]":
        return Iter(self)

    def iter_mut(self) -> "IterMut[T]":
        return IterMut(self)

    def __iter__(self):
        return self.iter()

    # Teardown

    def _release_chain(self):
        cur_link = self._take_head()
        released = 0
        while cur_link is not None:
            cur_link = cur_link.take_next()
            released += 1
        if released:
            logger.debug("Released %d nodes from %s", released, self.__class__.__name__)

    def drop(self):
        """Releases every node iteratively, unlinking each before it goes away"""
        self._check_writable()
        self._release_chain()

    def __del__(self):
        self._release_chain()

    def __len__(self):
        # NOTE! Can be expensive, traverses whole list
        count, node = 0, self.head
        while node is not None:
            count, node = count + 1, node.next
        return count

    def __repr__(self):
        elems = []
        node = self.head
        while node is not None:
            elems.append(repr(node.elem))
            node = node.next
        return f"{self.__class__.__name__}({' => '.join(elems)})"


class IntoIter(Generic[T]):
    """Yields elements by value by popping the list it owns. One-shot."""

    def __init__(self, owned: GenericBorrowList[T]):
        self._owned = owned

    def __iter__(self):
        return self

    def __next__(self) -> T:
        node = self._owned._pop_node()
        if node is None:
            raise StopIteration
        return node.elem


class _BorrowingIter(Generic[T]):
    """
    Walks the nodes of a list while holding a borrow on it.
    The borrow is released when the walk is exhausted, on `close()`, on leaving a
    `with` block, or when the iterator is garbage collected.
    """

    def __init__(self, borrowed: GenericBorrowList[T]):
        self._acquire(borrowed)
        self._list: Optional[GenericBorrowList[T]] = borrowed
        self._next: Optional[Node[T]] = borrowed.head

    @abstractmethod
    def _acquire(self, borrowed: GenericBorrowList[T]):
        raise NotImplementedError()

    @abstractmethod
    def _release(self, borrowed: GenericBorrowList[T]):
        raise NotImplementedError()

    @abstractmethod
    def _view(self, node: Node[T]):
        raise NotImplementedError()

    def __iter__(self):
        return self

    def __next__(self):
        node = self._next
        if node is None:
            self.close()
            raise StopIteration
        self._next = node.next
        return self._view(node)

    def close(self):
        if self._list is not None:
            self._release(self._list)
            self._list = None
            self._next = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __del__(self):
        # __init__ may have failed before the borrow was taken
        if getattr(self, "_list", None) is not None:
            self.close()


class Iter(_BorrowingIter[T]):
    def _acquire(self, borrowed: GenericBorrowList[T]):
        borrowed._borrow_shared()

    def _release(self, borrowed: GenericBorrowList[T]):
        borrowed._release_shared()

    def _view(self, node: Node[T]) -> T:
        return node.elem


class IterMut(_BorrowingIter[T]):
    def _acquire(self, borrowed: GenericBorrowList[T]):
        self._borrow = MutBorrow(borrowed)

    def _release(self, borrowed: GenericBorrowList[T]):
        self._borrow.release()

    def _view(self, node: Node[T]) -> ElemRef[T]:
        return ElemRef(node, self._borrow)
