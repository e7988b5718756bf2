"""Collect test lifecycle events and captured output into durable results."""

from .collector import ResultCollector
from .exceptions import OutputStoreError, ResultLogError, SerializationError
from .logging_config import configure_logging
from .metrics import start_metrics_server
from .model import (
    ResultType,
    TestClassResult,
    TestDescriptor,
    TestFailure,
    TestMethodResult,
    TestOutputDestination,
    TestOutputEvent,
    TestResult,
)
from .output_store import FileOutputStore
from .serializer import ResultSerializer

__all__ = [
    "ResultCollector",
    "FileOutputStore",
    "ResultSerializer",
    "ResultType",
    "TestClassResult",
    "TestDescriptor",
    "TestFailure",
    "TestMethodResult",
    "TestOutputDestination",
    "TestOutputEvent",
    "TestResult",
    "ResultLogError",
    "OutputStoreError",
    "SerializationError",
    "configure_logging",
    "start_metrics_server",
]
