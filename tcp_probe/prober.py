from __future__ import annotations

import errno
import logging
import os
import selectors
import socket
import threading
import time
from typing import Callable, List, Optional, Tuple

from .config import ProbeConfig
from .logger import get_logger, log_event
from .models import (
    CANCELLED,
    CONNECTED,
    DNS_FAILURE,
    IO_ERROR,
    REFUSED,
    STATUS_FAIL,
    STATUS_OK,
    TIMEOUT,
    ProbeAttempt,
    ProbeResult,
    Target,
)

Connector = Callable[..., ProbeAttempt]

# how often a pending connect() looks at the cancel event
POLL_INTERVAL_S = 0.05

_IN_PROGRESS = {errno.EINPROGRESS, errno.EWOULDBLOCK, errno.EAGAIN, errno.EALREADY}


def resolve(host: str, port: int) -> List[Tuple[int, tuple]]:
    """(family, sockaddr) pairs in resolver order, IPv4 and IPv6."""
    infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    return [(family, sockaddr) for family, _type, _proto, _canon, sockaddr in infos]


def connect_once(
    target: Target,
    timeout_s: float,
    number: int = 1,
    cancel_event: Optional[threading.Event] = None,
) -> ProbeAttempt:
    """
    One TCP handshake against the target.

    The host is resolved on every attempt. Attempt N uses address
    (N - 1) % len(addresses), so retries walk a dual-stack list.
    Elapsed time covers the handshake only, not resolution.

    The connect runs non-blocking and is polled with a selector, so a set
    cancel_event abandons it within POLL_INTERVAL_S.
    """
    started_at = time.time()
    try:
        addrs = resolve(target.host, target.port)
    except (socket.gaierror, UnicodeError) as e:
        return ProbeAttempt(number, started_at, DNS_FAILURE, 0.0, error=f"DNS error: {e}")

    if not addrs:
        return ProbeAttempt(number, started_at, DNS_FAILURE, 0.0, error="DNS resolution failed: no addresses")

    family, sockaddr = addrs[(number - 1) % len(addrs)]
    address = sockaddr[0]

    sock: Optional[socket.socket] = None
    start = time.perf_counter()
    try:
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setblocking(False)
        started_at = time.time()
        start = time.perf_counter()
        err = sock.connect_ex(sockaddr)

        if err in _IN_PROGRESS:
            deadline = start + timeout_s
            with selectors.DefaultSelector() as sel:
                sel.register(sock, selectors.EVENT_WRITE)
                while True:
                    if cancel_event is not None and cancel_event.is_set():
                        elapsed = time.perf_counter() - start
                        return ProbeAttempt(number, started_at, CANCELLED, elapsed, error=CANCELLED, address=address)
                    left = deadline - time.perf_counter()
                    if left <= 0:
                        elapsed = time.perf_counter() - start
                        return ProbeAttempt(number, started_at, TIMEOUT, elapsed, error=_timeout_message(timeout_s), address=address)
                    wait_s = left if cancel_event is None else min(left, POLL_INTERVAL_S)
                    if sel.select(wait_s):
                        break
            err = sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)

        elapsed = time.perf_counter() - start
        if err == 0:
            return ProbeAttempt(number, started_at, CONNECTED, elapsed, address=address)
        return _failed_attempt(number, started_at, elapsed, err, timeout_s, address)
    except OSError as e:
        elapsed = time.perf_counter() - start
        return _failed_attempt(number, started_at, elapsed, e.errno, timeout_s, address, exc=e)
    finally:
        if sock:
            sock.close()


def _failed_attempt(number, started_at, elapsed, err, timeout_s, address, exc=None) -> ProbeAttempt:
    if err == errno.ETIMEDOUT:
        return ProbeAttempt(number, started_at, TIMEOUT, elapsed, error=_timeout_message(timeout_s), address=address)
    if err == errno.ECONNREFUSED:
        return ProbeAttempt(number, started_at, REFUSED, elapsed, error="connection refused", address=address)
    if exc is None:
        exc = OSError(err, os.strerror(err))
    return ProbeAttempt(number, started_at, IO_ERROR, elapsed, error=f"I/O error: {exc}", address=address)


def _timeout_message(timeout_s: float) -> str:
    return f"timeout ({int(round(timeout_s * 1000))}ms)"


def probe_target(
    target: Target,
    config: ProbeConfig,
    connect: Connector = connect_once,
    cancel_event: Optional[threading.Event] = None,
    sleep: Callable[[float], None] = time.sleep,
    logger: Optional[logging.Logger] = None,
    deadline_at: Optional[float] = None,
) -> ProbeResult:
    """
    Attempt -> (backoff -> attempt)* until one connects or retries run out.

    Stops at the first success. A failed result carries only the last
    attempt's error. With a cancel_event the backoff wait and the pending
    connect are interruptible and no new attempt starts once it is set.
    deadline_at (time.monotonic() clock) caps each attempt's timeout at
    the time left in the run.
    """
    logger = logger or get_logger()
    last: Optional[ProbeAttempt] = None

    for number in range(1, config.max_attempts + 1):
        if number > 1:
            delay = config.backoff.delay(number - 1)
            if cancel_event is not None:
                if cancel_event.wait(delay):
                    return ProbeResult.cancelled(target, attempts=number - 1)
            elif delay > 0:
                sleep(delay)

        if cancel_event is not None and cancel_event.is_set():
            return ProbeResult.cancelled(target, attempts=number - 1)

        timeout_s = config.timeout_s
        if deadline_at is not None:
            left = deadline_at - time.monotonic()
            if left <= 0:
                return ProbeResult.cancelled(target, attempts=number - 1)
            timeout_s = min(timeout_s, left)

        attempt = connect(target, timeout_s, number, cancel_event=cancel_event)
        log_event(
            logger,
            "probe_attempt",
            {
                "target": target.raw,
                "attempt": number,
                "outcome": attempt.outcome,
                "address": attempt.address,
                "elapsed_ms": round(attempt.elapsed_s * 1000, 3),
                "error": attempt.error,
            },
            level=logging.DEBUG,
        )

        if attempt.connected:
            return ProbeResult(
                target=target,
                status=STATUS_OK,
                attempts=number,
                latency_ms=attempt.elapsed_s * 1000.0,
                address=attempt.address,
            )
        # a timeout shortened by the run deadline is the run ending, not the target
        if attempt.outcome == CANCELLED or (attempt.outcome == TIMEOUT and timeout_s < config.timeout_s):
            return ProbeResult.cancelled(target, attempts=number)
        last = attempt

    return ProbeResult(
        target=target,
        status=STATUS_FAIL,
        attempts=config.max_attempts,
        error=last.error if last else "unknown",
    )
