"""
fanout.py

Run one operation per input item with at most `concurrency` in flight.

Results come back in input order. With continue_on_fail, a NetSuiteError for
one item becomes {"json": {"error": message}} for that item only; otherwise the
first failure (in input order) is raised and items not yet started are
cancelled. Transport errors always propagate.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, List, Sequence, TypeVar

from .errors import NetSuiteError
from .log import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def run_bounded(
    operations: Sequence[Callable[[], T]],
    concurrency: int = 1,
    continue_on_fail: bool = False,
) -> List[Any]:
    concurrency = max(1, int(concurrency or 1))
    if not operations:
        return []

    results: List[Any] = []
    with ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="netsuite-item") as executor:
        futures: List[Future] = [executor.submit(op) for op in operations]
        try:
            for index, future in enumerate(futures):
                try:
                    results.append(future.result())
                except NetSuiteError as exc:
                    if not continue_on_fail:
                        raise
                    logger.warning("Item %s failed: %s", index, exc)
                    results.append({"json": {"error": str(exc)}})
        except BaseException:
            executor.shutdown(wait=False, cancel_futures=True)
            raise
    return results
