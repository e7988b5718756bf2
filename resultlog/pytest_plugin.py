"""pytest plugin feeding test lifecycle and output events to a collector.

Enable with ``pytest -p resultlog.pytest_plugin --resultlog-dir DIR``.
"""

from __future__ import annotations

import time

import pytest
import structlog

from .collector import ResultCollector
from .model import (
    ResultType,
    TestDescriptor,
    TestFailure,
    TestOutputDestination,
    TestOutputEvent,
    TestResult,
)

logger = structlog.get_logger(__name__)

_SECTION_DESTINATIONS = {
    "stdout": TestOutputDestination.STDOUT,
    "stderr": TestOutputDestination.STDERR,
}


def _millis(seconds: float) -> int:
    return int(seconds * 1000)


def split_nodeid(nodeid: str) -> tuple[str, str]:
    """Return ``(class_name, test_name)`` for a pytest node id.

    ``tests/test_a.py::TestA::test_x`` maps to ``("tests.test_a.TestA",
    "test_x")``; module-level tests use the dotted module path.
    """

    parts = nodeid.split("::")
    module = parts[0]
    if module.endswith(".py"):
        module = module[:-3]
    module = module.replace("/", ".").replace("\\", ".")
    return ".".join([module] + parts[1:-1]), parts[-1]


def _result_type(report: pytest.TestReport) -> ResultType:
    if report.passed:
        return ResultType.SUCCESS
    if report.skipped:
        return ResultType.SKIPPED
    return ResultType.FAILURE


def _failures(report: pytest.TestReport) -> list[TestFailure]:
    if not report.failed:
        return []
    stack_trace = report.longreprtext
    crash = getattr(report.longrepr, "reprcrash", None)
    if crash is not None:
        message = crash.message
    else:
        lines = stack_trace.strip().splitlines()
        message = lines[-1] if lines else ""
    exception_type = message.split(":", 1)[0] if ":" in message else ""
    return [TestFailure(message, exception_type, stack_trace)]


class ResultLogPlugin:
    """Translate pytest hooks into :class:`ResultCollector` events."""

    def __init__(self, collector: ResultCollector) -> None:
        self.collector = collector
        self.root = TestDescriptor(name="pytest", composite=True)
        self._classes: dict[str, TestDescriptor] = {}
        self._start = 0.0

    def _descriptor(self, nodeid: str) -> TestDescriptor:
        class_name, test_name = split_nodeid(nodeid)
        parent = self._classes.get(class_name)
        if parent is None:
            parent = TestDescriptor(
                name=class_name,
                class_name=class_name,
                parent=self.root,
                composite=True,
            )
            self._classes[class_name] = parent
        return TestDescriptor(name=test_name, class_name=class_name, parent=parent)

    def pytest_sessionstart(self, session: pytest.Session) -> None:
        self._start = time.time()
        self.collector.before_suite(self.root)

    def pytest_runtest_logstart(self, nodeid: str, location) -> None:
        self.collector.before_test(self._descriptor(nodeid))

    def pytest_runtest_logreport(self, report: pytest.TestReport) -> None:
        descriptor = self._descriptor(report.nodeid)
        for title, content in report.sections:
            # Titles look like "Captured stdout call".
            words = title.split()
            if len(words) != 3 or words[0] != "Captured" or words[2] != report.when:
                continue
            destination = _SECTION_DESTINATIONS.get(words[1])
            if destination is not None and content:
                self.collector.on_output(descriptor, TestOutputEvent(destination, content))

        if report.when == "call" or not report.passed:
            stop = getattr(report, "stop", None) or time.time()
            start = getattr(report, "start", None) or stop - report.duration
            result = TestResult(
                start_time=_millis(start),
                end_time=_millis(stop),
                result_type=_result_type(report),
                failures=_failures(report),
            )
            self.collector.after_test(descriptor, result)

    def pytest_sessionfinish(self, session: pytest.Session, exitstatus: int) -> None:
        result = TestResult(
            start_time=_millis(self._start),
            end_time=_millis(time.time()),
            result_type=ResultType.SUCCESS if exitstatus == 0 else ResultType.FAILURE,
        )
        self.collector.after_suite(self.root, result)


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("resultlog", "test result collection")
    group.addoption(
        "--resultlog-dir",
        dest="resultlog_dir",
        default=None,
        help="Directory receiving collected results and captured output.",
    )


def pytest_configure(config: pytest.Config) -> None:
    results_dir = config.getoption("resultlog_dir")
    if not results_dir:
        return
    plugin = ResultLogPlugin(ResultCollector(results_dir))
    config.pluginmanager.register(plugin, "resultlog-collector")
    logger.debug("pytest_plugin_registered", results_dir=results_dir)


def pytest_unconfigure(config: pytest.Config) -> None:
    plugin = config.pluginmanager.get_plugin("resultlog-collector")
    if plugin is not None:
        config.pluginmanager.unregister(plugin)
