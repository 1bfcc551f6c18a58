from __future__ import annotations

import mysql.connector
import pytest

from orchestra_attendance.core.exceptions import DataSourceError
from orchestra_attendance.database.retry import RetryPolicy, with_retry


class Flaky:
    def __init__(self, failures, exc=None):
        self.failures = failures
        self.calls = 0
        self.exc = exc or mysql.connector.errors.InterfaceError("connection lost")

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc
        return ["row"]


def test_retries_with_exponential_backoff():
    delays = []
    fn = Flaky(failures=2)

    result = with_retry(fn, max_retries=3, base_delay=1.0, sleep=delays.append)

    assert result == ["row"]
    assert fn.calls == 3
    assert delays == [1.0, 2.0]


def test_gives_up_after_max_retries():
    delays = []
    fn = Flaky(failures=10, exc=OSError("network down"))

    with pytest.raises(DataSourceError) as info:
        with_retry(fn, max_retries=3, base_delay=0.5, sleep=delays.append)

    assert fn.calls == 3
    assert delays == [0.5, 1.0]
    assert isinstance(info.value.__cause__, OSError)


def test_non_retryable_errors_propagate_immediately():
    fn = Flaky(failures=1, exc=KeyError("status_code"))

    with pytest.raises(KeyError):
        with_retry(fn, sleep=lambda _: None)

    assert fn.calls == 1


def test_policy_uses_its_settings():
    delays = []
    policy = RetryPolicy(max_retries=2, base_delay=0.25, sleep=delays.append)

    assert policy.run(Flaky(failures=1)) == ["row"]
    assert delays == [0.25]
