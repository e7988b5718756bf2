import sqlite3

import pytest

from resultlog import (
    ResultSerializer,
    ResultType,
    SerializationError,
    TestClassResult,
    TestFailure,
    TestMethodResult,
)


def _class(name, start, *methods):
    result = TestClassResult(name, start)
    for method in methods:
        result.add(method)
    return result


def _method(name, result_type=ResultType.SUCCESS, failures=()):
    return TestMethodResult(name, result_type, 100, 150, tuple(failures))


def test_round_trip_preserves_classes_methods_and_outcomes(tmp_path):
    failure = TestFailure("assert 1 == 2", "AssertionError", "Traceback ...")
    results = [
        _class(
            "pkg.A",
            100,
            _method("t1"),
            _method("t2", ResultType.FAILURE, [failure]),
        ),
        _class("pkg.B", 0),
        _class("pkg.C", 5, _method("t1", ResultType.SKIPPED)),
    ]
    serializer = ResultSerializer()
    serializer.write(results, tmp_path)

    loaded = serializer.read(tmp_path)
    assert [(c.class_name, c.start_time) for c in loaded] == [
        ("pkg.A", 100),
        ("pkg.B", 0),
        ("pkg.C", 5),
    ]
    assert [m.name for m in loaded[0].results] == ["t1", "t2"]
    assert loaded[0].results[1].failures == (failure,)
    assert loaded[0].failures_count == 1
    assert loaded[1].results == []
    assert loaded[2].skipped_count == 1
    assert loaded[2].results[0].duration == 50


def test_rewrite_overwrites_previous_results(tmp_path):
    serializer = ResultSerializer()
    serializer.write([_class("pkg.A", 1, _method("t1"))], tmp_path)
    serializer.write([_class("pkg.A", 1, _method("t1"))], tmp_path)

    conn = sqlite3.connect(tmp_path / "results.db")
    cur = conn.cursor()
    cur.execute("SELECT COUNT(*) FROM methods")
    row = cur.fetchone()
    conn.close()
    assert row == (1,)


def test_results_dir_is_created(tmp_path):
    target = tmp_path / "nested" / "results"
    serializer = ResultSerializer()
    serializer.write([], target)
    assert serializer.exists(target)
    assert serializer.read(target) == []


def test_read_missing_results_raises(tmp_path):
    with pytest.raises(SerializationError):
        ResultSerializer().read(tmp_path)


def test_unwritable_results_dir_raises(tmp_path):
    target = tmp_path / "file"
    target.write_text("x")
    with pytest.raises(OSError):
        ResultSerializer().write([_class("pkg.A", 1)], target)


def test_read_corrupt_results_raises(tmp_path):
    (tmp_path / "results.db").write_bytes(b"this is not a database" * 64)
    with pytest.raises(SerializationError):
        ResultSerializer().read(tmp_path)
