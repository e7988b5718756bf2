"""Assemble test results from lifecycle and output events."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import IO, Callable, Optional

import structlog
from opentelemetry import trace

from . import config
from .metrics import (
    OUTPUT_DROPPED,
    OUTPUT_EVENTS,
    SERIALIZATIONS,
    SERIALIZE_LATENCY,
    TESTS_COLLECTED,
)
from .model import (
    TestClassResult,
    TestDescriptor,
    TestMethodResult,
    TestOutputDestination,
    TestOutputEvent,
    TestResult,
)
from .output_store import FileOutputStore
from .serializer import ResultSerializer

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)


class ResultCollector:
    """Keep class results in memory and spool test output to the store.

    One collector is used per test run. Lifecycle and output events may
    arrive from several threads; the read-side methods are meant to be
    called once the run has finished.
    """

    def __init__(
        self,
        results_dir: str | Path | None = None,
        output_store: FileOutputStore | None = None,
        serializer: ResultSerializer | None = None,
    ) -> None:
        """Create a collector writing under ``results_dir``.

        Parameters
        ----------
        results_dir:
            Directory receiving serialized results. Defaults to the
            configured ``results_dir``.
        output_store:
            Store receiving captured output. A :class:`FileOutputStore`
            rooted at ``results_dir`` is used when omitted.
        serializer:
            Writer invoked when the root suite finishes.
        """

        self.results_dir = Path(results_dir or config.settings.results_dir)
        self.output_store = output_store or FileOutputStore(
            self.results_dir, encoding=config.settings.output_encoding
        )
        self.serializer = serializer or ResultSerializer()
        self.output_store.clear()
        self._results: dict[str, TestClassResult] = {}
        self._lock = threading.Lock()
        self._finish_lock = threading.Lock()
        self._finished = False

    @property
    def finished(self) -> bool:
        """Whether results were written for the root suite."""
        return self._finished

    def _class_result(self, class_name: str, start_time: int) -> TestClassResult:
        # Caller must hold self._lock.
        class_result = self._results.get(class_name)
        if class_result is None:
            class_result = TestClassResult(class_name, start_time)
            self._results[class_name] = class_result
        return class_result

    def before_suite(self, suite: TestDescriptor) -> None:
        pass

    def after_suite(self, suite: TestDescriptor, result: TestResult) -> None:
        """Write results once the root suite has finished.

        Finishing the root suite a second time is a no-op. If finalizing
        the output or writing the results fails, the error propagates and
        a later root finish tries again.
        """

        if not suite.is_root:
            return
        with self._finish_lock:
            if self._finished:
                logger.warning("root_suite_already_finished", suite=suite.name)
                return
            with self._lock:
                snapshot = list(self._results.values())
            with tracer.start_as_current_span("collector.write_results"):
                with SERIALIZE_LATENCY.time():
                    self.output_store.finalize()
                    self.serializer.write(snapshot, self.results_dir)
            self._finished = True
        SERIALIZATIONS.inc()
        logger.info(
            "results_written",
            suite=suite.name,
            classes=len(snapshot),
            results_dir=str(self.results_dir),
        )

    def before_test(self, test: TestDescriptor) -> None:
        pass

    def after_test(self, test: TestDescriptor, result: TestResult) -> None:
        """Record the outcome of a leaf test under its class."""

        if test.composite:
            return
        class_name = test.class_name
        if class_name is None:
            logger.debug("test_without_class", test=test.name)
            return
        method_result = TestMethodResult.from_result(test.name, result)
        with self._lock:
            self._class_result(class_name, result.start_time).add(method_result)
        TESTS_COLLECTED.labels(result_type=result.result_type.value).inc()

    def on_output(self, test: TestDescriptor, output_event: TestOutputEvent) -> None:
        """Forward captured output to the output store.

        Output that cannot be attributed to a class (emitted before any
        class started, or after it finished) has no report section and is
        skipped.
        """

        class_name = test.class_name
        if class_name is None:
            OUTPUT_DROPPED.inc()
            logger.debug("output_dropped", test=test.name)
            return
        test_name = None if test.composite else test.name
        self.output_store.write(
            class_name, test_name, output_event.destination, output_event.message
        )
        with self._lock:
            self._class_result(class_name, 0)
        OUTPUT_EVENTS.labels(destination=output_event.destination.value).inc()

    def visit_classes(self, visitor: Callable[[TestClassResult], object]) -> None:
        """Call ``visitor`` once per class result, in no particular order."""
        for class_result in list(self._results.values()):
            visitor(class_result)

    def has_output(self, class_name: str, destination: TestOutputDestination) -> bool:
        return self.output_store.exists(class_name, destination)

    def write_outputs(
        self,
        class_name: str,
        destination: TestOutputDestination,
        sink: IO[str],
        test_case: Optional[str] = None,
    ) -> None:
        """Copy persisted output for ``class_name`` into ``sink``.

        With ``test_case`` only that test's output is copied. Nothing is
        written when no output was recorded.
        """
        self.output_store.copy_to(class_name, destination, sink, test_case=test_case)
