import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Type

logger = logging.getLogger("rps.polling")

SUCCESS = "success"
FAILURE = "failure"
TIMEOUT = "timeout"


@dataclass
class PollResult:
    outcome: str
    value: Any
    attempts: int
    elapsed: float
    last_error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == SUCCESS


def poll(
    operation: Callable[[], Any],
    is_success: Callable[[Any], bool],
    is_failure: Callable[[Any], bool],
    interval: float,
    timeout: float,
    transient: Tuple[Type[BaseException], ...] = (),
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
    label: str = "poll",
) -> PollResult:
    """
    Call `operation` every `interval` seconds until it reports a terminal value or
    `timeout` seconds have passed. Exceptions listed in `transient` count as a
    non-terminal attempt; anything else propagates to the caller.
    """
    start = clock()
    attempts = 0
    value: Any = None
    last_error: Optional[BaseException] = None
    while True:
        attempts += 1
        try:
            value = operation()
        except transient as exc:
            last_error = exc
            value = None
            logger.info("%s_attempt_failed attempt=%s error=%s", label, attempts, exc)
        else:
            if is_success(value):
                return PollResult(SUCCESS, value, attempts, clock() - start, last_error)
            if is_failure(value):
                return PollResult(FAILURE, value, attempts, clock() - start, last_error)
        elapsed = clock() - start
        if elapsed >= timeout:
            logger.warning("%s_timeout attempts=%s elapsed=%.1f last_value=%s", label, attempts, elapsed, value)
            return PollResult(TIMEOUT, value, attempts, elapsed, last_error)
        sleep(interval)
