"""SQLite storage for aggregated class results."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Iterable

import structlog

from .exceptions import SerializationError
from .model import ResultType, TestClassResult, TestFailure, TestMethodResult

logger = structlog.get_logger(__name__)

RESULTS_FILE = "results.db"

_SCHEMA = (
    (
        "CREATE TABLE IF NOT EXISTS classes ("
        "id INTEGER PRIMARY KEY AUTOINCREMENT,"
        "class_name TEXT UNIQUE NOT NULL,"
        "start_time INTEGER"
        ")"
    ),
    (
        "CREATE TABLE IF NOT EXISTS methods ("
        "id INTEGER PRIMARY KEY AUTOINCREMENT,"
        "class_id INTEGER NOT NULL,"
        "name TEXT NOT NULL,"
        "result_type TEXT NOT NULL,"
        "start_time INTEGER,"
        "end_time INTEGER"
        ")"
    ),
    (
        "CREATE TABLE IF NOT EXISTS failures ("
        "id INTEGER PRIMARY KEY AUTOINCREMENT,"
        "method_id INTEGER NOT NULL,"
        "message TEXT,"
        "exception_type TEXT,"
        "stack_trace TEXT"
        ")"
    ),
)


class ResultSerializer:
    """Persist :class:`TestClassResult` collections in ``results.db``."""

    def path(self, results_dir: str | Path) -> Path:
        return Path(results_dir) / RESULTS_FILE

    def exists(self, results_dir: str | Path) -> bool:
        return self.path(results_dir).is_file()

    def write(self, results: Iterable[TestClassResult], results_dir: str | Path) -> None:
        """Save ``results`` under ``results_dir``.

        An existing results database is overwritten, so writing the same
        collection twice leaves a single copy on disk.
        """

        path = self.path(results_dir)
        classes = 0
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(path)
        except (OSError, sqlite3.Error) as exc:
            raise SerializationError(f"Cannot open {path}: {exc}") from exc
        try:
            cur = conn.cursor()
            for statement in _SCHEMA:
                cur.execute(statement)
            cur.execute("DELETE FROM failures")
            cur.execute("DELETE FROM methods")
            cur.execute("DELETE FROM classes")
            for class_result in results:
                cur.execute(
                    "INSERT INTO classes (class_name, start_time) VALUES (?, ?)",
                    (class_result.class_name, class_result.start_time),
                )
                class_id = cur.lastrowid
                for method in class_result.results:
                    cur.execute(
                        "INSERT INTO methods "
                        "(class_id, name, result_type, start_time, end_time) "
                        "VALUES (?, ?, ?, ?, ?)",
                        (
                            class_id,
                            method.name,
                            method.result_type.value,
                            method.start_time,
                            method.end_time,
                        ),
                    )
                    method_id = cur.lastrowid
                    cur.executemany(
                        "INSERT INTO failures "
                        "(method_id, message, exception_type, stack_trace) "
                        "VALUES (?, ?, ?, ?)",
                        [
                            (method_id, f.message, f.exception_type, f.stack_trace)
                            for f in method.failures
                        ],
                    )
                classes += 1
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise SerializationError(f"Cannot write results to {path}: {exc}") from exc
        finally:
            conn.close()
        logger.info("results_serialized", path=str(path), classes=classes)

    def read(self, results_dir: str | Path) -> list[TestClassResult]:
        """Load class results from ``results_dir`` in the order written."""

        path = self.path(results_dir)
        if not path.is_file():
            raise SerializationError(f"No results found at {path}")
        try:
            conn = sqlite3.connect(path)
        except sqlite3.Error as exc:
            raise SerializationError(f"Cannot open {path}: {exc}") from exc
        try:
            cur = conn.cursor()
            failures: dict[int, list[TestFailure]] = {}
            for method_id, message, exception_type, stack_trace in cur.execute(
                "SELECT method_id, message, exception_type, stack_trace "
                "FROM failures ORDER BY id"
            ):
                failures.setdefault(method_id, []).append(
                    TestFailure(message, exception_type or "", stack_trace or "")
                )
            classes: dict[int, TestClassResult] = {}
            for class_id, class_name, start_time in cur.execute(
                "SELECT id, class_name, start_time FROM classes ORDER BY id"
            ).fetchall():
                classes[class_id] = TestClassResult(class_name, start_time)
            for method_id, class_id, name, result_type, start, end in cur.execute(
                "SELECT id, class_id, name, result_type, start_time, end_time "
                "FROM methods ORDER BY id"
            ).fetchall():
                classes[class_id].add(
                    TestMethodResult(
                        name=name,
                        result_type=ResultType(result_type),
                        start_time=start,
                        end_time=end,
                        failures=tuple(failures.get(method_id, ())),
                    )
                )
        except (sqlite3.Error, KeyError, ValueError) as exc:
            raise SerializationError(f"Cannot read results from {path}: {exc}") from exc
        finally:
            conn.close()
        return list(classes.values())
