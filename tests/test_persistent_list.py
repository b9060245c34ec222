import logging
import sys

import pytest

from persistent_list import Node, PersistentSharedList, Rc


class TestRc:
    """Reference-counted handles."""

    def test_clone_and_release(self):
        first = Rc.new("value")
        second = first.clone()
        assert first.strong_count == second.strong_count == 2
        assert first.release() is None
        assert second.strong_count == 1
        assert second.release() == "value"

    def test_released_handle_is_spent(self):
        handle = Rc.new(1)
        handle.release()
        with pytest.raises(ValueError):
            handle.get()
        with pytest.raises(ValueError):
            handle.release()


class TestPersistentBasics:
    """prepend / tail / head."""

    def test_basics(self):
        lst = PersistentSharedList()
        assert lst.head() is None

        lst = lst.prepend(1).prepend(2).prepend(3)
        assert lst.head() == 3

        lst = lst.tail()
        assert lst.head() == 2

        lst = lst.tail()
        assert lst.head() == 1

        lst = lst.tail()
        assert lst.head() is None

        # tail of an empty list is still empty
        lst = lst.tail()
        assert lst.head() is None
        assert lst.is_empty()

    def test_tails_from_original(self, persistent_321):
        assert persistent_321.tail().head() == 2
        assert persistent_321.tail().tail().head() == 1
        assert persistent_321.tail().tail().tail().head() is None
        # none of that touched the original
        assert list(persistent_321) == [3, 2, 1]

    def test_prepend_leaves_original_alone(self, persistent_321):
        longer = persistent_321.prepend(4)
        assert list(longer) == [4, 3, 2, 1]
        assert list(persistent_321) == [3, 2, 1]

    def test_iter(self, persistent_321):
        it = persistent_321.iter()
        assert next(it) == 3
        assert next(it) == 2
        assert next(it) == 1
        assert next(it, None) is None

    def test_drop_during_iteration(self, persistent_321):
        it = persistent_321.iter()
        assert next(it) == 3
        persistent_321.drop()
        with pytest.raises(RuntimeError):
            next(it)

    def test_of_and_eq(self, persistent_321):
        assert PersistentSharedList.of(3, 2, 1) == persistent_321
        assert PersistentSharedList.from_iterable([3, 2]) != persistent_321
        assert PersistentSharedList.of() == PersistentSharedList()
        assert len(persistent_321) == 3
        assert repr(persistent_321) == "PersistentSharedList(3 => 2 => 1)"


class TestSharing:
    """Lists built from a common base share its nodes."""

    def test_siblings_are_independent(self):
        base = PersistentSharedList.of(10, 20)
        a = base.prepend(1)
        b = base.prepend(2)
        assert list(a) == [1, 10, 20]
        assert list(b) == [2, 10, 20]
        assert list(base) == [10, 20]

    def test_share_counts(self):
        base = PersistentSharedList.of(10, 20)
        assert base.head_count() == 1
        a = base.prepend(1)
        b = base.prepend(2)
        assert base.head_count() == 3
        del a
        assert base.head_count() == 2
        assert list(b) == [2, 10, 20]
        assert PersistentSharedList().head_count() == 0

    def test_dropping_sibling_keeps_shared_tail(self):
        base = PersistentSharedList.of(10, 20)
        a = base.prepend(1)
        b = base.prepend(2)
        del base
        a.drop()
        assert a.is_empty()
        assert list(b) == [2, 10, 20]
        assert b.tail().head_count() == 2

    def test_tail_outlives_original(self, persistent_321):
        rest = persistent_321.tail()
        persistent_321.drop()
        assert list(rest) == [2, 1]
        assert rest.head_count() == 1

    def test_drop_stops_at_shared_node(self, caplog):
        base = PersistentSharedList.of(10, 20)
        longer = base.prepend(2).prepend(1)
        with caplog.at_level(logging.DEBUG, logger="persistent_list"):
            longer.drop()
        assert "Stopped after reclaiming 2 nodes" in caplog.text
        assert list(base) == [10, 20]

    def test_drop_reclaims_unshared_chain(self, caplog):
        lst = PersistentSharedList.of(1, 2, 3)
        second = lst._head.get().next.get()
        with caplog.at_level(logging.DEBUG, logger="persistent_list"):
            lst.drop()
        assert "Reclaimed 3 nodes" in caplog.text
        # reclaimed nodes are unlinked from what followed them
        assert isinstance(second, Node)
        assert second.next is None
        lst.drop()
        assert lst.head() is None


class TestTeardown:
    """Long chains are released without recursion."""

    def test_long_list_drop(self, long_list_size):
        lst = PersistentSharedList.from_iterable(range(long_list_size))
        assert lst.head() == 0
        assert long_list_size > sys.getrecursionlimit()
        del lst

    def test_long_shared_list_drop(self, long_list_size):
        base = PersistentSharedList.from_iterable(range(long_list_size))
        a = base.prepend(-1)
        del base
        del a
