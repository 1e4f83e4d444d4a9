# parallel.py
from __future__ import annotations

import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Sequence, TypeVar

from .errors import BatchError

T = TypeVar("T")


@dataclass(frozen=True)
class ItemFailure(Generic[T]):
    item: T
    error: BaseException


@dataclass
class BatchResult(Generic[T]):
    name: str | None
    total: int
    results: Dict[T, Any] = field(default_factory=dict)
    failures: List[ItemFailure[T]] = field(default_factory=list)
    not_started: List[T] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures and not self.not_started

    def raise_for_failures(self) -> None:
        if not self.ok:
            raise BatchError(self)


class _Collector:
    """Per-item outcomes reported by worker threads."""

    def __init__(self, result: BatchResult):
        self._result = result
        self._lock = threading.Lock()

    def succeeded(self, item, value) -> None:
        with self._lock:
            self._result.results[item] = value

    def failed(self, item, error: BaseException) -> None:
        with self._lock:
            self._result.failures.append(ItemFailure(item, error))

    @property
    def has_failures(self) -> bool:
        with self._lock:
            return bool(self._result.failures)


def run_batch(
    items: Sequence[T],
    operation: Callable[[T], Any],
    degree_of_parallelism: int = 1,
    *,
    name: str | None = None,
    complete_on_failure: bool = False,
    raise_on_failure: bool = True,
) -> BatchResult[T]:
    """
    Run `operation(item)` for every item, at most `degree_of_parallelism`
    at a time, starting items in input order.

    On failure, operations already in flight are allowed to finish; items
    not yet started are left alone unless `complete_on_failure` is set.
    A degree of 1 is strictly sequential.
    """
    if degree_of_parallelism < 1:
        raise ValueError(f"degree_of_parallelism must be >= 1, got {degree_of_parallelism}")

    items = list(items)
    result: BatchResult[T] = BatchResult(name=name, total=len(items))
    collector = _Collector(result)

    def work(item: T) -> None:
        try:
            value = operation(item)
        except Exception as e:
            collector.failed(item, e)
        else:
            collector.succeeded(item, value)

    pending = list(items)
    in_flight: Dict[Future, T] = {}

    with ThreadPoolExecutor(max_workers=degree_of_parallelism) as pool:
        while pending or in_flight:
            # schedule up to the concurrency bound
            while (
                pending
                and len(in_flight) < degree_of_parallelism
                and (complete_on_failure or not collector.has_failures)
            ):
                item = pending.pop(0)
                in_flight[pool.submit(work, item)] = item

            if not in_flight:
                break

            # wait for one completion, then loop to schedule the next item
            done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
            for future in done:
                item = in_flight.pop(future)
                # `work` records Exceptions itself; anything else (SystemExit, ...) lands here
                error = future.exception()
                if error is not None:
                    collector.failed(item, error)

    result.not_started.extend(pending)

    if raise_on_failure:
        result.raise_for_failures()
    return result
