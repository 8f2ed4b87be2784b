from __future__ import annotations

import queue
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, Optional

from .log import get_logger
from .model import Candidate, ImportOutcome, ImportResult
from .store import Store

log = get_logger(__name__)

DEFAULT_WORKERS = 5

# Queue sentinels: end of work for a worker, end of results from a worker.
_NO_MORE_WORK = object()
_WORKER_DONE = object()


def import_candidates(
    store: Store,
    candidates: Iterable[Candidate],
    *,
    workers: int = DEFAULT_WORKERS,
    queue_size: int = 100,
    on_outcome: Optional[Callable[[ImportOutcome], None]] = None,
) -> ImportResult:
    """Upsert every candidate into ``store`` using a fixed pool of workers.

    A producer thread feeds ``candidates`` into a bounded work queue and then
    posts one end-of-work sentinel per worker. Each worker reports one
    outcome per candidate on the results queue, followed by its own done
    sentinel. This call drains results until every worker has finished, so
    the whole input is always consumed. A failing candidate is logged and
    recorded; it never stops the run.
    """
    n_workers = max(1, int(workers))
    work: "queue.Queue[object]" = queue.Queue(maxsize=max(1, int(queue_size)))
    results: "queue.Queue[object]" = queue.Queue()
    result = ImportResult()

    with ThreadPoolExecutor(max_workers=n_workers + 1, thread_name_prefix="bmarks-import") as ex:
        producer = ex.submit(_produce, candidates, work, n_workers)
        consumers = [ex.submit(_work, store, work, results) for _ in range(n_workers)]

        done = 0
        while done < n_workers:
            item = results.get()
            if item is _WORKER_DONE:
                done += 1
                continue
            result.outcomes.append(item)
            if not item.ok:
                log.warning("Failed to import %s: %s", item.url, item.error)
            if on_outcome is not None:
                on_outcome(item)

        # Re-raise a failure of the candidate source itself (e.g. unreadable input).
        producer.result()
        for fut in consumers:
            fut.result()

    log.info("Imported %d/%d bookmarks (%d failed).", result.imported, len(result.outcomes), result.failed)
    return result


def _produce(candidates: Iterable[Candidate], work: "queue.Queue[object]", n_workers: int) -> None:
    try:
        for c in candidates:
            work.put(c)
    finally:
        for _ in range(n_workers):
            work.put(_NO_MORE_WORK)


def _work(store: Store, work: "queue.Queue[object]", results: "queue.Queue[object]") -> None:
    try:
        while True:
            item = work.get()
            if item is _NO_MORE_WORK:
                return
            results.put(_import_one(store, item))
    finally:
        results.put(_WORKER_DONE)


def _import_one(store: Store, item: object) -> ImportOutcome:
    url = str(getattr(item, "url", item))
    if not isinstance(item, Candidate):
        return ImportOutcome(url=url, ok=False, error=f"not a bookmark candidate: {type(item).__name__}")
    try:
        store.upsert_bookmark(item)
    except Exception as e:
        return ImportOutcome(url=url, ok=False, error=str(e))
    return ImportOutcome(url=url, ok=True)
