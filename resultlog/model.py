"""Descriptors, events and aggregated result records."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class TestOutputDestination(Enum):
    __test__ = False

    STDOUT = "stdout"
    STDERR = "stderr"


class ResultType(Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class TestFailure:
    """Failure details attached to a test result."""

    __test__ = False

    message: str
    exception_type: str = ""
    stack_trace: str = ""


@dataclass
class TestDescriptor:
    """Identifying metadata for a suite or a single test case.

    Attributes
    ----------
    name:
        Display name of the suite or test.
    class_name:
        Fully qualified class the test belongs to, if any.
    parent:
        Enclosing suite descriptor. ``None`` marks the root of the tree.
    composite:
        ``True`` for suites, ``False`` for leaf test cases.
    """

    __test__ = False

    name: str
    class_name: Optional[str] = None
    parent: Optional["TestDescriptor"] = None
    composite: bool = False

    @property
    def is_root(self) -> bool:
        return self.parent is None


@dataclass
class TestResult:
    """Outcome of a suite or test. Times are epoch milliseconds."""

    __test__ = False

    start_time: int
    end_time: int
    result_type: ResultType = ResultType.SUCCESS
    failures: list[TestFailure] = field(default_factory=list)

    @property
    def duration(self) -> int:
        return self.end_time - self.start_time


@dataclass(frozen=True)
class TestOutputEvent:
    __test__ = False

    destination: TestOutputDestination
    message: str


@dataclass(frozen=True)
class TestMethodResult:
    """Outcome of one test case within a class."""

    __test__ = False

    name: str
    result_type: ResultType
    start_time: int
    end_time: int
    failures: tuple[TestFailure, ...] = ()

    @classmethod
    def from_result(cls, name: str, result: TestResult) -> "TestMethodResult":
        """Build a method result from a descriptor ``name`` and ``result``."""
        return cls(
            name=name,
            result_type=result.result_type,
            start_time=result.start_time,
            end_time=result.end_time,
            failures=tuple(result.failures),
        )

    @property
    def duration(self) -> int:
        return self.end_time - self.start_time


class TestClassResult:
    """All method results recorded for one test class.

    ``start_time`` is the start time of the event that created the entry, or
    ``0`` when the entry was created by an output event. Method results are
    kept in arrival order.
    """

    __test__ = False

    def __init__(self, class_name: str, start_time: int) -> None:
        self.class_name = class_name
        self.start_time = start_time
        self.results: list[TestMethodResult] = []

    def add(self, method_result: TestMethodResult) -> "TestClassResult":
        """Append ``method_result`` and return ``self``."""
        self.results.append(method_result)
        return self

    @property
    def test_count(self) -> int:
        return len(self.results)

    @property
    def failures_count(self) -> int:
        return sum(1 for r in self.results if r.result_type is ResultType.FAILURE)

    @property
    def skipped_count(self) -> int:
        return sum(1 for r in self.results if r.result_type is ResultType.SKIPPED)

    @property
    def duration(self) -> int:
        """Milliseconds from ``start_time`` to the latest method end time."""
        if not self.results:
            return 0
        return max(r.end_time for r in self.results) - self.start_time

    def __repr__(self) -> str:
        return (
            f"TestClassResult(class_name={self.class_name!r}, "
            f"start_time={self.start_time}, tests={self.test_count})"
        )
