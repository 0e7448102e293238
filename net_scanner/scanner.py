from __future__ import annotations

import logging
import socket
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Dict, Hashable, Iterable, Iterator, Optional, Sequence, Set, Tuple, TypeVar

logger = logging.getLogger(__name__)

J = TypeVar("J", bound=Hashable)
R = TypeVar("R")

PortProber = Callable[[str, int, float], bool]

# How often the collector wakes up to look at the cancel flag.
_POLL_S = 0.2


def probe_port(address: str, port: int, timeout_s: float) -> bool:
    """
    TCP connect probe. Open means the handshake completed within the
    timeout; nothing is sent or read.
    """
    try:
        with socket.create_connection((address, port), timeout=timeout_s):
            return True
    except OSError as e:
        logger.debug("connect %s:%d failed: %s", address, port, e)
        return False


def iter_jobs(targets: Sequence[str], ports: Sequence[int]) -> Iterator[Tuple[str, int]]:
    for t in targets:
        for p in ports:
            yield (t, p)


def run_bounded(
    jobs: Iterable[J],
    work: Callable[[J], R],
    workers: int,
    on_done: Optional[Callable[[J, R], None]] = None,
    cancel: Optional[threading.Event] = None,
    keep: Optional[Callable[[R], bool]] = None,
) -> Dict[J, R]:
    """
    Bounded-futures runner (won't create millions of futures at once).

    Runs work(job) for every job on a pool of `workers` threads and returns
    {job: result} for every job that finished, or only the results that
    pass `keep` when it is given. on_done runs on the calling thread, so
    it needs no locking. When `cancel` is set, or Ctrl-C arrives
    while a cancel event is in use, no new jobs are started and the jobs
    that already finished are returned.
    """
    results: Dict[J, R] = {}
    job_iter = iter(jobs)
    max_pending = max(workers * 4, 100)
    stopped = cancel if cancel is not None else threading.Event()

    def guarded(job: J) -> Optional[R]:
        if stopped.is_set():
            return None
        return work(job)

    with ThreadPoolExecutor(max_workers=workers) as pool:
        pending: Set[Future] = set()
        owners: Dict[Future, J] = {}

        def submit_next() -> bool:
            if stopped.is_set():
                return False
            try:
                job = next(job_iter)
            except StopIteration:
                return False
            fut = pool.submit(guarded, job)
            owners[fut] = job
            pending.add(fut)
            return True

        def drop_pending() -> None:
            for fut in pending:
                fut.cancel()

        # Prime the queue
        while len(pending) < max_pending and submit_next():
            pass

        try:
            while pending:
                done, pending = wait(pending, timeout=_POLL_S, return_when=FIRST_COMPLETED)
                for fut in done:
                    job = owners.pop(fut)
                    if fut.cancelled():
                        continue
                    r = fut.result()
                    if stopped.is_set() and r is None:
                        continue
                    if keep is None or keep(r):
                        results[job] = r
                    if on_done is not None:
                        on_done(job, r)

                if stopped.is_set():
                    drop_pending()
                    continue

                # Refill queue
                while len(pending) < max_pending and submit_next():
                    pass
        except KeyboardInterrupt:
            if cancel is None:
                raise
            logger.info("Interrupted, cancelling %d pending probes", len(pending))
            cancel.set()
            drop_pending()

    return results
