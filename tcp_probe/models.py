from dataclasses import dataclass
from typing import Optional, Tuple

# ProbeAttempt outcomes
CONNECTED = "connected"
TIMEOUT = "timeout"
REFUSED = "refused"
DNS_FAILURE = "dns-failure"
IO_ERROR = "error"

STATUS_OK = "ok"
STATUS_FAIL = "fail"

CANCELLED = "cancelled"


@dataclass(frozen=True)
class Target:
    raw: str
    host: str
    port: int
    index: int


@dataclass(frozen=True)
class ProbeAttempt:
    number: int
    started_at: float
    outcome: str
    elapsed_s: float
    error: Optional[str] = None
    address: Optional[str] = None

    @property
    def connected(self) -> bool:
        return self.outcome == CONNECTED


@dataclass(frozen=True)
class ProbeResult:
    target: Target
    status: str
    attempts: int
    latency_ms: Optional[float] = None
    error: Optional[str] = None
    address: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    @property
    def retries_used(self) -> int:
        return max(self.attempts - 1, 0)

    @classmethod
    def cancelled(cls, target: Target, attempts: int = 0) -> "ProbeResult":
        return cls(target=target, status=STATUS_FAIL, attempts=attempts, error=CANCELLED)


@dataclass(frozen=True)
class RunSummary:
    results: Tuple[ProbeResult, ...]
    cancelled: bool = False

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def healthy(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def all_healthy(self) -> bool:
        return self.total > 0 and self.healthy == self.total
