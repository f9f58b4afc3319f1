"""
Fail-fast task groups and the thread bridge used for boto3 calls.

``fail_fast_join`` runs a group of coroutines as sibling tasks. The first
task to raise cancels every sibling, waits for them to unwind, and the
group raises that one exception; no partial results escape. If the join is
itself cancelled (because an enclosing group failed) it cancels and awaits
its own children first, so cancellation reaches every nested group.

boto3 is synchronous, so each SDK request runs in a worker thread through
``run_blocking``. Every request is therefore a suspension point where a
cancelled task stops. A request already in flight finishes in its thread
and its result is dropped.
"""

import asyncio
import contextlib
import inspect
from typing import Any, Awaitable, Callable, Iterable, Iterator, List, Optional, Tuple, Type, TypeVar

from ecr_cleaner.utils.logging_utils import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


async def run_blocking(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking SDK call in a worker thread."""
    return await asyncio.to_thread(func, *args, **kwargs)


async def _cancel_all(tasks: Iterable[asyncio.Task]) -> None:
    pending = [t for t in tasks if not t.done()]
    for task in pending:
        task.cancel()
    if pending:
        # Siblings may raise while unwinding; their errors are never surfaced
        await asyncio.gather(*pending, return_exceptions=True)


def _close_unstarted(coroutines: Iterable[Awaitable]) -> None:
    # A task cancelled before its first step never runs its coroutine
    for coro in coroutines:
        if asyncio.iscoroutine(coro) and inspect.getcoroutinestate(coro) == inspect.CORO_CREATED:
            coro.close()


async def fail_fast_join(coroutines: Iterable[Awaitable[T]], limit: Optional[int] = None,
                         name: str = "group") -> List[T]:
    """Run coroutines concurrently and return their results in submission order.

    Args:
        coroutines: Coroutines to run as sibling tasks.
        limit: Maximum number running at once. None or 0 means unbounded.
        name: Label used in debug logging.

    Raises:
        The first exception raised by any task, after all siblings are cancelled.
    """
    coroutines = list(coroutines)
    semaphore = asyncio.Semaphore(limit) if limit else None

    async def gated(coro: Awaitable[T]) -> T:
        if semaphore is None:
            return await coro
        async with semaphore:
            return await coro

    tasks = [asyncio.ensure_future(gated(c)) for c in coroutines]
    if not tasks:
        return []

    logger.debug(f"Started {len(tasks)} task(s) in {name}")
    try:
        pending = set(tasks)
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_EXCEPTION)
            for task in done:
                if task.cancelled():
                    continue
                error = task.exception()
                if error is not None:
                    logger.debug(f"Task in {name} failed, cancelling {len(pending)} sibling(s): {error!r}")
                    await _cancel_all(pending)
                    _close_unstarted(coroutines)
                    raise error
    except asyncio.CancelledError:
        await _cancel_all(tasks)
        _close_unstarted(coroutines)
        raise

    cancelled = [t for t in tasks if t.cancelled()]
    if cancelled:
        # A child was cancelled from outside the group; treat it as the group being cancelled
        _close_unstarted(coroutines)
        raise asyncio.CancelledError()
    return [t.result() for t in tasks]


async def iterate_pages(client: Any, operation: str, result_key: str, **kwargs: Any):
    """Yield items of a paginated boto3 operation, one SDK request per page.

    Each page is fetched with ``run_blocking`` so cancellation is checked
    between pages.
    """
    paginator = client.get_paginator(operation)
    pages = iter(paginator.paginate(**kwargs))
    page_count = 0
    while True:
        page = await run_blocking(next, pages, None)
        if page is None:
            break
        page_count += 1
        items = page.get(result_key, [])
        logger.debug(f"Fetched {len(items)} {result_key} from {operation} page {page_count}")
        for item in items:
            yield item


async def collect_pages(client: Any, operation: str, result_key: str, **kwargs: Any) -> List[Any]:
    """Collect every item of a paginated boto3 operation into a list."""
    return [item async for item in iterate_pages(client, operation, result_key, **kwargs)]


def chunked(items: List[T], size: int) -> List[List[T]]:
    """Split a list into consecutive chunks of at most ``size`` items."""
    if size <= 0:
        raise ValueError("chunk size must be positive")
    return [items[i:i + size] for i in range(0, len(items), size)]


@contextlib.contextmanager
def error_boundary(wrap: Callable[[Exception], Exception],
                   passthrough: Tuple[Type[Exception], ...] = ()) -> Iterator[None]:
    """Re-raise any exception except ``passthrough`` types through ``wrap``.

    CancelledError is a BaseException and always passes through untouched.
    """
    try:
        yield
    except passthrough:
        raise
    except Exception as e:
        raise wrap(e) from e


def merge_sets(results: Iterable[Iterable[T]]) -> set:
    """Union of any number of result sets."""
    merged: set = set()
    for result in results:
        merged.update(result)
    return merged

