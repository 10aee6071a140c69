import logging
import socket
import sys
import time
from collections import deque

import pytest

from tcp_probe.logger import LOGGER_NAME
from tcp_probe.models import CONNECTED, ProbeAttempt


class FakeConnector:
    """
    script: list of (outcome, elapsed_s, error) tuples returned one per call.
    Once the script runs out, every further call is a refused attempt.
    """

    def __init__(self, script=None):
        self.script = deque(script or [])
        self.calls = []

    def __call__(self, target, timeout_s, number, cancel_event=None):
        self.calls.append((target.raw, timeout_s, number))
        if self.script:
            outcome, elapsed_s, error = self.script.popleft()
        else:
            outcome, elapsed_s, error = ("refused", 0.001, "connection refused")
        address = "127.0.0.1" if outcome == CONNECTED else None
        return ProbeAttempt(
            number=number,
            started_at=0.0,
            outcome=outcome,
            elapsed_s=elapsed_s,
            error=error,
            address=address,
        )


class RecordingSleep:
    def __init__(self):
        self.delays = []

    def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def open_port():
    """A listening socket on 127.0.0.1; the kernel completes handshakes without accept()."""
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.bind(("127.0.0.1", 0))
    srv.listen(16)
    try:
        yield srv.getsockname()[1]
    finally:
        srv.close()


@pytest.fixture
def closed_port():
    """A port that was just bound and released, so connecting to it is refused."""
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def full_backlog_port():
    """
    A listener with listen(0) whose accept queue is already full. Linux drops
    further SYNs, so a new connect() stays pending until its timeout.
    """
    if not sys.platform.startswith("linux"):
        pytest.skip("relies on Linux dropping SYNs to a full accept queue")
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.bind(("127.0.0.1", 0))
    srv.listen(0)
    addr = srv.getsockname()
    fillers = []
    for _ in range(4):
        c = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        c.setblocking(False)
        c.connect_ex(addr)
        fillers.append(c)
    time.sleep(0.1)
    try:
        yield addr[1]
    finally:
        for c in fillers:
            c.close()
        srv.close()
