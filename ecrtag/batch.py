import logging
import re
import threading
import time
import typing
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait

from ecrtag.errors import Cancelled, DeadlineExceeded

logger = logging.getLogger(__name__)

T = typing.TypeVar("T")
R = typing.TypeVar("R")

_TIMEOUT = re.compile(r"^(\d+(?:\.\d+)?)(ms|s|m)?$")
_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, None: 1.0}


class CancelScope:
    """
    Cancellation shared by every unit of work of one admission request.

    A scope is cancelled explicitly, when its parent is cancelled, or once
    its deadline has passed.
    """

    def __init__(self, deadline: typing.Optional[float] = None, parent: "CancelScope" = None):
        self._event = threading.Event()
        self._deadline = deadline
        self._parent = parent
        if parent is not None and parent.deadline is not None:
            if deadline is None or parent.deadline < deadline:
                self._deadline = parent.deadline

    @classmethod
    def with_timeout(cls, seconds: typing.Optional[float]) -> "CancelScope":
        if seconds is None:
            return cls()
        return cls(deadline=time.monotonic() + seconds)

    @classmethod
    def from_query(cls, timeout: typing.Optional[str]) -> "CancelScope":
        """Build a scope from the API server's ``?timeout=10s`` query parameter."""
        if not timeout:
            return cls()
        match = _TIMEOUT.match(timeout.strip())
        if match is None:
            logger.warning("ignoring unparseable timeout %r", timeout)
            return cls()
        value, unit = match.groups()
        return cls.with_timeout(float(value) * _UNITS[unit])

    @property
    def deadline(self) -> typing.Optional[float]:
        return self._deadline

    def remaining(self) -> typing.Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def cancel(self):
        self._event.set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def cancelled(self) -> bool:
        if self._event.is_set() or self.expired:
            return True
        return self._parent is not None and self._parent.cancelled

    def check(self):
        if self.expired:
            raise DeadlineExceeded()
        if self.cancelled:
            raise Cancelled()


def _unit(func: typing.Callable[[T], R], item: T, scope: CancelScope, failures: list) -> R:
    try:
        scope.check()
        return func(item)
    except Exception as err:
        # appended before the future completes, so failures keep the order they happened in
        failures.append(err)
        raise


def fan_out(
    func: typing.Callable[[T], R],
    items: typing.Sequence[T],
    scope: typing.Optional[CancelScope] = None,
) -> typing.List[R]:
    """
    Run ``func`` once per item concurrently and return the results in input order.

    The first unit to fail cancels its siblings and its error is raised;
    results of the other units are discarded.
    """
    results: typing.List[typing.Optional[R]] = [None] * len(items)
    if not items:
        return results

    batch = CancelScope(parent=scope)
    executor = ThreadPoolExecutor(max_workers=len(items), thread_name_prefix="ecrtag")
    failures = []
    futures = {
        executor.submit(_unit, func, item, batch, failures): index for index, item in enumerate(items)
    }
    try:
        pending = set(futures)
        while pending:
            done, pending = wait(pending, timeout=batch.remaining(), return_when=FIRST_EXCEPTION)
            if not done:
                raise DeadlineExceeded()
            if failures:
                raise failures[0]
            for future in done:
                # each unit owns its slot, no lock needed
                results[futures[future]] = future.result()
    except BaseException:
        batch.cancel()
        executor.shutdown(wait=False, cancel_futures=True)
        raise
    executor.shutdown(wait=True)
    return results
