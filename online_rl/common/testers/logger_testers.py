from __future__ import annotations

import csv
import json
import os
import shutil
from typing import Any, Callable, Dict, List, Mapping, Tuple

from online_rl.common.testers.test_utils import (
    assert_close,
    assert_eq,
    assert_file_exists,
    assert_in,
    assert_raises,
    assert_true,
    mk_tmp_dir,
    run_tests,
)
from online_rl.common.loggers import CSVWriter, JSONLWriter, Logger, Writer, build_logger


# =============================================================================
# Helpers
# =============================================================================
class MemoryWriter(Writer):
    """In-memory writer recording every call."""

    def __init__(self) -> None:
        self.rows: List[Dict[str, float]] = []
        self.flushes = 0
        self.closed = False

    def write(self, row: Mapping[str, float]) -> None:
        self.rows.append(dict(row))

    def flush(self) -> None:
        self.flushes += 1

    def close(self) -> None:
        self.closed = True


class BrokenWriter(Writer):
    def write(self, row: Mapping[str, float]) -> None:
        raise OSError("disk full")

    def flush(self) -> None:
        return None

    def close(self) -> None:
        return None


def _read_jsonl(path: str) -> List[Dict[str, Any]]:
    with open(path, "r", encoding="utf-8") as f:
        return [json.loads(ln) for ln in f if ln.strip()]


def _read_csv(path: str) -> List[Dict[str, str]]:
    with open(path, "r", newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


# =============================================================================
# Tests: writers
# =============================================================================
def test_jsonl_writer_writes_lines():
    d = mk_tmp_dir()
    try:
        w = JSONLWriter(d, filename="m.jsonl")
        w.write({"a": 1.0, "step": 3.0})
        w.write({"b": 2.5, "step": 4.0})
        w.close()

        assert_eq(w.path, os.path.join(d, "m.jsonl"))
        assert_file_exists(w.path)
        rows = _read_jsonl(w.path)
        assert_eq(len(rows), 2)
        assert_eq(rows[0], {"a": 1.0, "step": 3.0})
        assert_eq(rows[1]["b"], 2.5)

        assert_raises(ValueError, lambda: w.write({"a": 1.0}))
    finally:
        shutil.rmtree(d, ignore_errors=True)


def test_csv_writer_freezes_schema_from_first_row():
    d = mk_tmp_dir()
    try:
        w = CSVWriter(d)
        w.write({"step": 0.0, "a": 1.0, "b": 2.0})
        w.write({"step": 1.0, "a": 3.0, "extra": 9.0})
        w.close()

        assert_eq(w.fieldnames, ["step", "a", "b"])
        rows = _read_csv(w.path)
        assert_eq(len(rows), 2)
        assert_eq(rows[1]["a"], "3.0")
        assert_eq(rows[1]["b"], "")
        assert_true("extra" not in rows[1], "keys outside the schema must be dropped")

        assert_raises(ValueError, lambda: w.write({"step": 2.0}))
    finally:
        shutil.rmtree(d, ignore_errors=True)


def test_csv_writer_reuses_existing_header():
    d = mk_tmp_dir()
    try:
        w1 = CSVWriter(d)
        w1.write({"step": 0.0, "x": 1.0})
        w1.close()

        w2 = CSVWriter(d)
        w2.write({"x": 2.0, "step": 1.0, "y": 5.0})
        w2.close()

        assert_eq(w2.fieldnames, ["step", "x"])
        rows = _read_csv(w2.path)
        assert_eq([r["x"] for r in rows], ["1.0", "2.0"])
    finally:
        shutil.rmtree(d, ignore_errors=True)


# =============================================================================
# Tests: Logger
# =============================================================================
def test_logger_log_adds_prefix_and_meta_keys():
    d = mk_tmp_dir()
    try:
        mem = MemoryWriter()
        logger = Logger(log_dir=d, exp_name="e", run_id="r", writers=[mem], console_every=0)
        row = logger.log({"return": -3.5, "bad": "text", "vec": [1.0, 2.0]}, step=7, prefix="train")

        assert_eq(logger.run_dir, os.path.join(d, "e", "r"))
        assert_true(os.path.isdir(logger.run_dir))
        assert_eq(row["train/return"], -3.5)
        assert_eq(row["step"], 7.0)
        for k in ("wall_time", "timestamp"):
            assert_in(k, row)
        assert_true("train/bad" not in row and "train/vec" not in row, "non-scalar values must be skipped")
        assert_eq(mem.rows, [row])
    finally:
        shutil.rmtree(d, ignore_errors=True)


def test_logger_drop_non_finite():
    d = mk_tmp_dir()
    try:
        logger = Logger(log_dir=d, run_id="r", drop_non_finite=True, console_every=0)
        row = logger.log({"ok": 1.0, "nan": float("nan"), "inf": float("inf")})
        assert_in("ok", row)
        assert_true("nan" not in row and "inf" not in row)
    finally:
        shutil.rmtree(d, ignore_errors=True)


def test_logger_record_and_dump():
    d = mk_tmp_dir()
    try:
        mem = MemoryWriter()
        logger = Logger(log_dir=d, run_id="r", writers=[mem], console_every=0)
        for v in (1.0, 2.0, 6.0):
            logger.record({"loss": v}, prefix="train")
        assert_eq(mem.rows, [], "record() must not write")

        row = logger.dump(step=3, agg="max", clear=False)
        assert_eq(row["train/loss"], 6.0)
        row = logger.dump(step=3)
        assert_close(row["train/loss"], 3.0)
        assert_true(logger.dump(step=4) is None, "dump() on an empty buffer returns None")

        assert_raises(ValueError, lambda: logger.dump(agg="median"))
    finally:
        shutil.rmtree(d, ignore_errors=True)


def test_logger_collects_writer_errors_unless_strict():
    d = mk_tmp_dir()
    try:
        lenient = Logger(log_dir=d, run_id="lenient", writers=[BrokenWriter()], console_every=0)
        lenient.log({"a": 1.0})
        assert_eq(len(lenient.errors), 1)
        assert_in("disk full", lenient.errors[0])

        strict = Logger(log_dir=d, run_id="strict", writers=[BrokenWriter()], console_every=0, strict=True)
        assert_raises(OSError, lambda: strict.log({"a": 1.0}))
    finally:
        shutil.rmtree(d, ignore_errors=True)


def test_logger_flush_every_and_close():
    d = mk_tmp_dir()
    try:
        mem = MemoryWriter()
        with Logger(log_dir=d, run_id="r", writers=[mem], console_every=0, flush_every=2) as logger:
            logger.log({"a": 1.0})
            assert_eq(mem.flushes, 0)
            logger.log({"a": 2.0})
            assert_eq(mem.flushes, 1)
        assert_true(mem.closed, "exiting the context must close writers")
    finally:
        shutil.rmtree(d, ignore_errors=True)


def test_logger_run_dir_is_not_reused_without_overwrite():
    d = mk_tmp_dir()
    try:
        first = Logger(log_dir=d, exp_name="e", run_id="r")
        second = Logger(log_dir=d, exp_name="e", run_id="r")
        third = Logger(log_dir=d, exp_name="e", run_id="r", overwrite=True)
        assert_eq(second.run_dir, first.run_dir + "_1")
        assert_eq(third.run_dir, first.run_dir)
    finally:
        shutil.rmtree(d, ignore_errors=True)


def test_logger_dump_config():
    d = mk_tmp_dir()
    try:
        logger = Logger(log_dir=d, run_id="r")
        path = logger.dump_config({"alpha": 0.01, "noise": None, "dtype": object()})
        assert_file_exists(path)
        with open(path, "r", encoding="utf-8") as f:
            cfg = json.load(f)
        assert_eq(cfg["alpha"], 0.01)
        assert_true(cfg["noise"] is None)
        assert_true(isinstance(cfg["dtype"], str))
    finally:
        shutil.rmtree(d, ignore_errors=True)


def test_format_console_skips_meta_keys():
    line = Logger._format_console({"step": 5.0, "wall_time": 1.25, "timestamp": 1e9, "train/return": -10.0})
    assert_true(line.startswith("[step=5 | t=1.2s]") or line.startswith("[step=5 | t=1.3s]"), line)
    assert_in("train/return=-10", line)
    assert_true("timestamp" not in line)


# =============================================================================
# Tests: build_logger
# =============================================================================
def test_build_logger_attaches_file_writers():
    d = mk_tmp_dir()
    try:
        logger = build_logger(log_dir=d, exp_name="e", run_id="r", console_every=0)
        kinds = sorted(type(w).__name__ for w in logger.writers)
        assert_eq(kinds, ["CSVWriter", "JSONLWriter"])

        logger.log({"return": 1.0}, step=0, prefix="train")
        logger.close()

        assert_file_exists(os.path.join(logger.run_dir, "metrics.csv"))
        rows = _read_jsonl(os.path.join(logger.run_dir, "metrics.jsonl"))
        assert_eq(rows[0]["train/return"], 1.0)
    finally:
        shutil.rmtree(d, ignore_errors=True)


def test_build_logger_backend_flags_and_kwargs():
    d = mk_tmp_dir()
    try:
        logger = build_logger(
            log_dir=d,
            run_id="r",
            use_csv=False,
            jsonl_kwargs={"filename": "train.jsonl"},
            console_every=0,
        )
        assert_eq(len(logger.writers), 1)
        assert_eq(logger.writers[0].path, os.path.join(logger.run_dir, "train.jsonl"))
        logger.close()
    finally:
        shutil.rmtree(d, ignore_errors=True)


# =============================================================================
# Runner
# =============================================================================
TESTS: List[Tuple[str, Callable[[], Any]]] = [
    ("jsonl_writer_writes_lines", test_jsonl_writer_writes_lines),
    ("csv_writer_freezes_schema_from_first_row", test_csv_writer_freezes_schema_from_first_row),
    ("csv_writer_reuses_existing_header", test_csv_writer_reuses_existing_header),
    ("logger_log_adds_prefix_and_meta_keys", test_logger_log_adds_prefix_and_meta_keys),
    ("logger_drop_non_finite", test_logger_drop_non_finite),
    ("logger_record_and_dump", test_logger_record_and_dump),
    ("logger_collects_writer_errors_unless_strict", test_logger_collects_writer_errors_unless_strict),
    ("logger_flush_every_and_close", test_logger_flush_every_and_close),
    ("logger_run_dir_is_not_reused_without_overwrite", test_logger_run_dir_is_not_reused_without_overwrite),
    ("logger_dump_config", test_logger_dump_config),
    ("format_console_skips_meta_keys", test_format_console_skips_meta_keys),
    ("build_logger_attaches_file_writers", test_build_logger_attaches_file_writers),
    ("build_logger_backend_flags_and_kwargs", test_build_logger_backend_flags_and_kwargs),
]


def main(argv=None) -> int:
    return run_tests(TESTS, argv=argv, suite_name="loggers")


if __name__ == "__main__":
    raise SystemExit(main())
