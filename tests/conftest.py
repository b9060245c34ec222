"""
Pytest fixtures shared by the list test suites.

Provides:
- Prebuilt lists holding 1, 2, 3 (so 3 sits at the front)
- The size used for long-list teardown tests
"""

import pytest

from borrow_list import GenericBorrowList
from exclusive_list import ExclusiveList
from persistent_list import PersistentSharedList

# deep enough that recursive teardown would blow past the default recursion limit
LONG_LIST_SIZE = 100_000


@pytest.fixture
def long_list_size():
    return LONG_LIST_SIZE


@pytest.fixture
def exclusive_123():
    """ExclusiveList after push(1), push(2), push(3)."""
    lst = ExclusiveList()
    for elem in (1, 2, 3):
        lst.push(elem)
    return lst


@pytest.fixture
def borrow_123():
    """GenericBorrowList after push(1), push(2), push(3)."""
    lst = GenericBorrowList()
    lst.extend([1, 2, 3])
    return lst


@pytest.fixture
def persistent_321():
    """PersistentSharedList built as new().prepend(1).prepend(2).prepend(3)."""
    return PersistentSharedList().prepend(1).prepend(2).prepend(3)
