"""Bounded, order-preserving thread fan-out in the spirit of ``p-map``.

``p_map(items, mapper, concurrency=n)`` runs ``mapper`` over ``items`` with
at most ``n`` calls in flight and returns results in input order. The input
is consumed lazily; a new call is submitted only as an earlier one finishes.

With ``stop_on_error=True`` (default) the first failure cancels work that has
not started and propagates. With ``stop_on_error=False`` every item runs and
failures are raised together as an ``ExceptionGroup``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")


def p_map(
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
    stop_on_error: bool = True,
) -> list[OutT]:
    if not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    source = enumerate(iterable)
    results: dict[int, OutT] = {}
    errors: list[Exception] = []
    in_flight: dict[Future[OutT], int] = {}

    with ThreadPoolExecutor(max_workers=concurrency) as pool:

        def _submit_next() -> bool:
            try:
                idx, item = next(source)
            except StopIteration:
                return False
            in_flight[pool.submit(mapper, item)] = idx
            return True

        for _ in range(concurrency):
            if not _submit_next():
                break

        while in_flight:
            done, _ = wait(set(in_flight), return_when=FIRST_COMPLETED)
            for fut in done:
                idx = in_flight.pop(fut)
                try:
                    results[idx] = fut.result()
                except Exception as exc:  # noqa: BLE001
                    if stop_on_error:
                        pool.shutdown(wait=False, cancel_futures=True)
                        raise
                    errors.append(exc)
                _submit_next()

    if errors:
        raise ExceptionGroup("p_map: one or more mapper calls failed", errors)
    return [results[i] for i in sorted(results)]


__all__ = ["p_map"]
