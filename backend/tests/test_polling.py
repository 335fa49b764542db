from __future__ import annotations

import pytest

from errors import RemoteError, SessionNotFoundError
from polling import FAILURE, SUCCESS, TIMEOUT, poll


def _scripted(*values):
    queue = list(values)

    def operation():
        value = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(value, Exception):
            raise value
        return value

    return operation


def test_poll_returns_on_first_success(clock) -> None:
    result = poll(_scripted("done"), lambda v: v == "done", lambda v: False, 3, 120, sleep=clock.sleep, clock=clock)
    assert result.outcome == SUCCESS
    assert result.attempts == 1
    assert clock.sleeps == []


def test_poll_stops_immediately_on_failure(clock) -> None:
    result = poll(
        _scripted("wait", "wait", "bad"),
        lambda v: v == "ok",
        lambda v: v == "bad",
        3,
        120,
        sleep=clock.sleep,
        clock=clock,
    )
    assert result.outcome == FAILURE
    assert result.value == "bad"
    assert result.attempts == 3
    assert clock.sleeps == [3, 3]


def test_poll_times_out_after_full_budget(clock) -> None:
    result = poll(_scripted("wait"), lambda v: False, lambda v: False, 3, 120, sleep=clock.sleep, clock=clock)
    assert result.outcome == TIMEOUT
    assert result.attempts >= 40
    assert clock.now >= 120


def test_poll_treats_listed_exceptions_as_non_terminal(clock) -> None:
    result = poll(
        _scripted(RemoteError(["connection reset"], is_network_error=True), "ok"),
        lambda v: v == "ok",
        lambda v: False,
        3,
        120,
        transient=(RemoteError,),
        sleep=clock.sleep,
        clock=clock,
    )
    assert result.outcome == SUCCESS
    assert result.attempts == 2
    assert isinstance(result.last_error, RemoteError)


def test_poll_propagates_unlisted_exceptions(clock) -> None:
    with pytest.raises(SessionNotFoundError):
        poll(
            _scripted(SessionNotFoundError("s1")),
            lambda v: True,
            lambda v: False,
            3,
            120,
            transient=(RemoteError,),
            sleep=clock.sleep,
            clock=clock,
        )
