"""
Batch decryption helper.

Each fetched row or TagPair decrypts independently, so a batch can be
spread over worker threads. The first failure, in input order, is raised
for the whole batch.
"""

from concurrent.futures import ThreadPoolExecutor


def map_fail_fast(fn, items, workers: int = 1) -> list:
    """
    Apply fn to every item and return the results in input order.

    Args:
        fn: Callable applied to each item.
        items: The batch.
        workers: Thread count. 1 (the default) runs inline.

    Raises:
        Whatever fn raises for the earliest failing item.
    """
    items = list(items)
    if workers <= 1 or len(items) <= 1:
        return [fn(item) for item in items]

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="tagvault") as pool:
        futures = [pool.submit(fn, item) for item in items]
        results = []
        for future in futures:
            try:
                results.append(future.result())
            except Exception:
                # Don't start work the caller will never see
                pool.shutdown(wait=False, cancel_futures=True)
                raise
        return results
