from __future__ import annotations

from typing import Any, Callable, List, Optional, Sequence, Tuple

import math
import os
import sys
import tempfile
import traceback

import numpy as np
import torch as th


class Color:
    RESET = "\033[0m"
    GREEN = "\033[32m"
    RED = "\033[31m"
    CYAN = "\033[36m"


def colorize(text: str, color: str, *, enable: bool = True) -> str:
    if not enable:
        return text
    return f"{color}{text}{Color.RESET}"


# =============================================================================
# Assertions
# =============================================================================
class TestFailure(AssertionError):
    pass


def assert_true(cond: bool, msg: str = "") -> None:
    if not cond:
        raise TestFailure(msg or "assert_true failed")


def assert_eq(a: Any, b: Any, msg: str = "") -> None:
    if a != b:
        raise TestFailure(msg or f"assert_eq failed: {a!r} != {b!r}")


def assert_in(x: Any, xs: Any, msg: str = "") -> None:
    if x not in xs:
        raise TestFailure(msg or f"assert_in failed: {x!r} not in {xs!r}")


def assert_close(a: float, b: float, *, rtol: float = 1e-9, atol: float = 1e-12, msg: str = "assert_close failed") -> None:
    if not math.isclose(float(a), float(b), rel_tol=rtol, abs_tol=atol):
        raise TestFailure(f"{msg}: {a} vs {b} (rtol={rtol}, atol={atol})")


def assert_allclose(a: Any, b: Any, msg: str = "", *, rtol: float = 1e-9, atol: float = 1e-12) -> None:
    """Element-wise closeness for tensors / arrays / scalars."""
    ta = a if th.is_tensor(a) else th.as_tensor(np.asarray(a, dtype=np.float64))
    tb = b if th.is_tensor(b) else th.as_tensor(np.asarray(b, dtype=np.float64))
    ta = ta.to(dtype=th.float64)
    tb = tb.to(dtype=th.float64)
    if ta.shape != tb.shape or not bool(th.allclose(ta, tb, rtol=rtol, atol=atol)):
        raise TestFailure(msg or f"assert_allclose failed: {ta} != {tb}")


def assert_raises(exc_type: type, fn: Callable[[], Any], *, msg: str = "assert_raises failed") -> None:
    try:
        fn()
    except exc_type:
        return
    except Exception as e:
        raise TestFailure(f"{msg}: expected {exc_type.__name__}, got {type(e).__name__}: {e}")
    raise TestFailure(f"{msg}: expected {exc_type.__name__} but no exception raised")


def assert_shape(x: Any, shape: Sequence[int], msg: str = "") -> None:
    got = tuple(int(d) for d in (x.shape if th.is_tensor(x) else np.asarray(x).shape))
    exp = tuple(int(s) for s in shape)
    if got != exp:
        raise TestFailure(msg or f"assert_shape failed: got {got}, expected {exp}")


def assert_finite(x: Any, msg: str = "") -> None:
    arr = x.detach().cpu().numpy() if th.is_tensor(x) else np.asarray(x, dtype=np.float64)
    if not np.all(np.isfinite(arr)):
        raise TestFailure(msg or f"assert_finite failed: NaN/Inf in {arr}")


# =============================================================================
# Fixtures
# =============================================================================
def seed_all(seed: int = 0) -> None:
    np.random.seed(seed)
    th.manual_seed(seed)


def mk_tmp_dir(prefix: str = "online_rl_tests_") -> str:
    return tempfile.mkdtemp(prefix=prefix)


def assert_file_exists(path: str) -> None:
    if not os.path.exists(path):
        raise TestFailure(f"file not found: {path}")


def read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


# =============================================================================
# Script runner
# =============================================================================
def run_tests(
    tests: Sequence[Tuple[str, Callable[[], Any]]],
    *,
    argv: Optional[List[str]] = None,
    suite_name: str = "tests",
) -> int:
    """
    Run zero-arg test callables and print colored PASS/FAIL plus a summary.

    Parameters
    ----------
    tests : Sequence[Tuple[str, Callable[[], Any]]]
        ``(name, fn)`` pairs.
    argv : list of str, optional
        ``argv[0]`` (if present) filters tests by substring. Defaults to
        ``sys.argv[1:]``.
    suite_name : str
        Label used in console output.

    Returns
    -------
    int
        0 if all passed, 1 if any failed, 2 if the filter matched nothing.
    """
    argv = sys.argv[1:] if argv is None else argv
    filt = argv[0] if argv else ""

    selected = [(n, f) for (n, f) in tests if (not filt or filt in n)]
    if not selected:
        print(f"[{suite_name}] No tests matched filter: {filt!r}")
        return 2

    passed: List[str] = []
    failed: List[Tuple[str, str]] = []

    print(f"[{suite_name}] Running {len(selected)} tests" + (f" (filter={filt!r})" if filt else ""))

    for name, fn in selected:
        try:
            fn()
            passed.append(name)
            print(colorize(f" [ PASS ] {name}", Color.GREEN))
        except Exception as e:
            err = f"{type(e).__name__}: {e}"
            failed.append((name, err))
            print(colorize(f" [ FAIL ] {name}: {err}", Color.RED))
            traceback.print_exc()

    print()
    print(colorize(f"[{suite_name}] ========================= Summary =========================", Color.CYAN))
    print(colorize(f"[{suite_name}] Passed ({len(passed)})", Color.GREEN))
    if failed:
        print(colorize(f"[{suite_name}] Failed ({len(failed)}):", Color.RED))
        for n, err in failed:
            print(colorize(f"  - {n}", Color.RED))
            print(colorize(f"      {err}", Color.RED))
    else:
        print(colorize(f"[{suite_name}] Failed (0)", Color.GREEN))
    print()

    return 0 if not failed else 1
