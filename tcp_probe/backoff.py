from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

FIXED = "fixed"
LINEAR = "linear"
EXPONENTIAL = "exponential"

POLICIES = (FIXED, LINEAR, EXPONENTIAL)


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Delay before a retry, as a pure function of the retry number.

    attempt is 1 for the wait after the first failed attempt, 2 after the
    second, and so on.
    """

    kind: str = LINEAR
    base_s: float = 0.1
    max_s: Optional[float] = None

    def __post_init__(self) -> None:
        if self.kind not in POLICIES:
            raise ValueError(f"Unknown backoff policy: {self.kind}")
        if self.base_s < 0:
            raise ValueError("Backoff base must not be negative")
        if self.max_s is not None and self.max_s < 0:
            raise ValueError("Backoff cap must not be negative")

    def delay(self, attempt: int) -> float:
        if attempt < 1:
            raise ValueError(f"attempt must be >= 1, got {attempt}")

        if self.kind == FIXED:
            d = self.base_s
        elif self.kind == LINEAR:
            d = self.base_s * attempt
        else:
            d = self.base_s * (2 ** min(attempt - 1, 64))

        if self.max_s is not None:
            d = min(d, self.max_s)
        return d
