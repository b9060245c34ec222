import logging
from typing import Any, Iterator, Optional

import attr

logger = logging.getLogger(__name__)


def replace(owner: Any, field: str, value: Any) -> Any:
    """Stores `value` in `owner.field` and hands back whatever was there before"""
    old = getattr(owner, field)
    setattr(owner, field, value)
    return old


class Link:
    pass


class Empty(Link):
    def __repr__(self):
        return "Empty"


@attr.s(auto_detect=True, eq=False, repr=False)
class More(Link):
    __match_args__ = ("node",)
    node: "Node" = attr.ib()

    def __repr__(self):
        return f"More({self.node.elem} => ...)"


# eq/repr are off: the generated versions would recurse down the whole chain
@attr.s(auto_detect=True, eq=False, repr=False)
class Node:
    __match_args__ = ("elem", "next")
    elem: int = attr.ib()
    next: Link = attr.ib(factory=Empty)


class ExclusiveList:
    """
    Stack of ints where every node is owned by exactly one link.
    The head slot is never read by value without swapping `Empty` in first, so the
    chain is moved from slot to slot and never shared or copied.
    """

    def __init__(self):
        self.head: Link = Empty()

    def push(self, elem: int):
        # bool is an int subclass but not an element this list holds
        if not isinstance(elem, int) or isinstance(elem, bool):
            raise TypeError(f"{self.__class__.__name__} only holds ints, got {type(elem).__name__}")
        new_node = Node(elem, replace(self, "head", Empty()))
        self.head = More(new_node)

    def pop(self) -> Optional[int]:
        match replace(self, "head", Empty()):
            case Empty():
                return None
            case More(node):
                self.head = replace(node, "next", Empty())
                return node.elem

    def is_empty(self) -> bool:
        return isinstance(self.head, Empty)

    def drop(self):
        """
        Releases the whole chain one node at a time.
        Each detached node gets its `next` swapped for `Empty` before it goes away,
        so freeing it never reaches into the rest of the chain.
        """
        cur_link = replace(self, "head", Empty())
        released = 0
        while True:
            match cur_link:
                case More(node):
                    cur_link = replace(node, "next", Empty())
                    released += 1
                case _:
                    break
        if released:
            logger.debug("Released %d nodes from %s", released, self.__class__.__name__)

    def __del__(self):
        self.drop()

    def _elems(self) -> Iterator[int]:
        link = self.head
        while isinstance(link, More):
            yield link.node.elem
            link = link.node.next

    def __len__(self):
        # NOTE! Can be expensive, traverses whole list
        return sum(1 for _ in self._elems())

    def __repr__(self):
        return f"{self.__class__.__name__}({' => '.join(map(repr, self._elems()))})"
