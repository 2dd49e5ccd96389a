from __future__ import annotations

from typing import Any, Callable, List, Tuple

from online_rl.common.testers.test_utils import (
    assert_eq,
    assert_raises,
    assert_true,
    run_tests,
)
from online_rl.common.utils.shared import BorrowError, Shared


def test_shared_readers_may_overlap():
    s = Shared([1, 2, 3])
    with s.borrow() as a:
        with s.borrow() as b:
            assert_true(a is b)
            assert_true(s.is_borrowed and not s.is_borrowed_mut)
    assert_true(not s.is_borrowed)


def test_borrow_mut_is_exclusive():
    s = Shared({"x": 1})

    def _mut_inside_read():
        with s.borrow():
            with s.borrow_mut():
                pass

    def _read_inside_mut():
        with s.borrow_mut():
            with s.borrow():
                pass

    def _mut_inside_mut():
        with s.borrow_mut():
            with s.borrow_mut():
                pass

    for fn in (_mut_inside_read, _read_inside_mut, _mut_inside_mut):
        assert_raises(BorrowError, fn)
        assert_true(not s.is_borrowed, "failed borrow must leave the handle free")


def test_borrow_released_on_error():
    s = Shared(0)

    def _boom():
        with s.borrow_mut():
            raise KeyError("inside")

    assert_raises(KeyError, _boom)
    with s.borrow_mut() as v:
        assert_eq(v, 0)


def test_mutation_visible_to_every_holder():
    inner: List[int] = []
    a = Shared(inner)
    b = Shared.of(a)
    assert_true(a is b, "Shared.of must not double-wrap")

    with a.borrow_mut() as xs:
        xs.append(7)
    with b.borrow() as xs:
        assert_eq(xs, [7])
    assert_eq(inner, [7])


TESTS: List[Tuple[str, Callable[[], Any]]] = [
    ("shared_readers_may_overlap", test_shared_readers_may_overlap),
    ("borrow_mut_is_exclusive", test_borrow_mut_is_exclusive),
    ("borrow_released_on_error", test_borrow_released_on_error),
    ("mutation_visible_to_every_holder", test_mutation_visible_to_every_holder),
]


def main(argv=None) -> int:
    return run_tests(TESTS, argv=argv, suite_name="shared")


if __name__ == "__main__":
    raise SystemExit(main())
