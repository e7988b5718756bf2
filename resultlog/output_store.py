"""Append-only file storage for captured test output."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import IO, Optional, TextIO
from urllib.parse import quote

import structlog

from .exceptions import OutputStoreError
from .model import TestOutputDestination

logger = structlog.get_logger(__name__)


class FileOutputStore:
    """Persist captured output as one JSON-lines file per class and stream.

    Each record holds the message and the name of the test case that
    emitted it, or ``None`` for output produced at class level. Append
    handles stay open until :meth:`finalize` is called; :meth:`clear`
    removes output left by an earlier run in the same directory.
    """

    def __init__(self, results_dir: str | Path, encoding: str = "utf-8") -> None:
        self.output_dir = Path(results_dir) / "output"
        self.encoding = encoding
        self._handles: dict[tuple[str, TestOutputDestination], TextIO] = {}
        self._lock = threading.Lock()

    def clear(self) -> None:
        """Close open files and remove output recorded by earlier runs."""
        with self._lock:
            for fh in self._handles.values():
                fh.close()
            self._handles.clear()
            if not self.output_dir.is_dir():
                return
            try:
                for destination in TestOutputDestination:
                    for path in self.output_dir.glob(f"*.{destination.value}"):
                        path.unlink()
            except OSError as exc:
                raise OutputStoreError(f"Cannot clear {self.output_dir}: {exc}") from exc

    def _path(self, class_name: str, destination: TestOutputDestination) -> Path:
        return self.output_dir / f"{quote(class_name, safe='')}.{destination.value}"

    def _handle(self, class_name: str, destination: TestOutputDestination) -> TextIO:
        key = (class_name, destination)
        fh = self._handles.get(key)
        if fh is None:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            fh = open(self._path(class_name, destination), "a", encoding=self.encoding)
            self._handles[key] = fh
        return fh

    def _flush(self, class_name: str, destination: TestOutputDestination) -> None:
        with self._lock:
            fh = self._handles.get((class_name, destination))
            if fh is not None:
                fh.flush()

    def write(
        self,
        class_name: str,
        test_name: Optional[str],
        destination: TestOutputDestination,
        message: str,
    ) -> None:
        """Append ``message`` to the ``destination`` log of ``class_name``."""
        record = json.dumps({"test": test_name, "message": message})
        try:
            with self._lock:
                self._handle(class_name, destination).write(record + "\n")
        except OSError as exc:
            raise OutputStoreError(
                f"Cannot write {destination.value} output for {class_name}: {exc}"
            ) from exc

    def finalize(self) -> None:
        """Flush and close every open output file."""
        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
            errors = []
            for fh in handles:
                try:
                    fh.close()
                except OSError as exc:
                    errors.append(exc)
        logger.debug("output_finalized", files=len(handles))
        if errors:
            raise OutputStoreError(f"Cannot close output files: {errors[0]}") from errors[0]

    def exists(self, class_name: str, destination: TestOutputDestination) -> bool:
        """Return ``True`` if any ``destination`` output was recorded."""
        self._flush(class_name, destination)
        path = self._path(class_name, destination)
        return path.is_file() and path.stat().st_size > 0

    def copy_to(
        self,
        class_name: str,
        destination: TestOutputDestination,
        sink: IO[str],
        test_case: Optional[str] = None,
    ) -> None:
        """Write recorded messages to ``sink`` in arrival order.

        Parameters
        ----------
        class_name:
            Class whose output should be copied.
        destination:
            Stream to read.
        sink:
            Text stream receiving the messages.
        test_case:
            If given, only messages emitted by this test case are copied.
        """
        self._flush(class_name, destination)
        path = self._path(class_name, destination)
        if not path.is_file():
            return
        try:
            with open(path, "r", encoding=self.encoding) as fh:
                for line in fh:
                    if not line.strip():
                        continue
                    record = json.loads(line)
                    if test_case is None or record["test"] == test_case:
                        sink.write(record["message"])
        except (OSError, ValueError) as exc:
            raise OutputStoreError(
                f"Cannot read {destination.value} output for {class_name}: {exc}"
            ) from exc
