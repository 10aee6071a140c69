from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from .config import ProbeConfig
from .logger import get_logger, log_event
from .models import CANCELLED, ProbeResult, RunSummary, Target
from .prober import probe_target

ProbeFn = Callable[..., ProbeResult]


def run_probes(
    targets: Sequence[Target],
    config: ProbeConfig,
    probe: ProbeFn = probe_target,
    logger: Optional[logging.Logger] = None,
) -> RunSummary:
    """
    Bounded-futures fan-out, one probe_target() call per target.

    Each target retries inside its own worker, so a slow target only holds
    its own pool slot. Results land in slot target.index, so the summary
    follows input order whatever the completion order.
    On the run deadline or Ctrl-C the cancel event is set, which also
    abandons in-flight connects; unfinished targets become fail/cancelled.
    """
    logger = logger or get_logger()
    if not targets:
        return RunSummary(results=())

    ordered = sorted(targets, key=lambda t: t.index)
    if [t.index for t in ordered] != list(range(len(ordered))):
        raise ValueError("target indexes must be 0..n-1 without gaps or duplicates")

    slots: List[Optional[ProbeResult]] = [None] * len(targets)
    workers = min(config.concurrency, len(targets))
    max_pending = max(workers * 4, 100)
    cancel = threading.Event()
    jobs: Iterator[Target] = iter(targets)
    pending: Dict[Future, Target] = {}
    cancelled = False

    log_event(logger, "run_start", {"targets": len(targets), "workers": workers, "retries": config.retries})
    start_all = time.monotonic()
    deadline_at = start_all + config.deadline_s if config.deadline_s is not None else None

    pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="probe")

    def submit_next() -> bool:
        try:
            t = next(jobs)
        except StopIteration:
            return False
        fut = pool.submit(probe, t, config, cancel_event=cancel, logger=logger, deadline_at=deadline_at)
        pending[fut] = t
        return True

    def collect(fut: Future) -> None:
        t = pending.pop(fut)
        r = fut.result()
        slots[t.index] = r
        log_event(
            logger,
            "probe_result",
            {
                "target": t.raw,
                "status": r.status,
                "attempts": r.attempts,
                "latency_ms": r.latency_ms,
                "error": r.error,
            },
        )

    try:
        # Prime the queue
        while len(pending) < max_pending and submit_next():
            pass

        while pending:
            remaining = None
            if deadline_at is not None:
                remaining = deadline_at - time.monotonic()
                if remaining <= 0:
                    # keep whatever finished since the last wait()
                    for fut in [f for f in pending if f.done()]:
                        collect(fut)
                    cancelled = bool(pending)
                    break

            done, _ = wait(set(pending), timeout=remaining, return_when=FIRST_COMPLETED)
            for fut in done:
                collect(fut)

            # Refill queue
            while len(pending) < max_pending and submit_next():
                pass
    except KeyboardInterrupt:
        cancelled = True
    finally:
        if pending or cancelled:
            cancel.set()
        # workers see the event within one poll interval; don't block on them
        pool.shutdown(wait=not cancel.is_set(), cancel_futures=True)

    # attempts cut short by deadline_at come back as cancelled results
    if any(r is not None and r.error == CANCELLED for r in slots):
        cancelled = True

    if cancelled:
        unfinished = [t.raw for t in ordered if slots[t.index] is None]
        log_event(logger, "run_cancelled", {"unfinished": unfinished}, level=logging.WARNING)

    results = tuple(
        slots[t.index] if slots[t.index] is not None else ProbeResult.cancelled(t)
        for t in ordered
    )
    summary = RunSummary(results=results, cancelled=cancelled)
    log_event(
        logger,
        "run_done",
        {
            "healthy": summary.healthy,
            "total": summary.total,
            "elapsed_s": round(time.monotonic() - start_all, 3),
        },
    )
    return summary
