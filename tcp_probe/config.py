from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from typing import Optional

from .backoff import BackoffPolicy
from .durations import parse_duration
from .errors import ConfigError

DEFAULT_TIMEOUT = "5s"
DEFAULT_RETRIES = 2
DEFAULT_BACKOFF = "100ms"
DEFAULT_MAX_BACKOFF = "5s"
DEFAULT_CONCURRENCY = 50


@dataclass(frozen=True)
class ProbeConfig:
    timeout_s: float = 5.0
    retries: int = DEFAULT_RETRIES
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)
    concurrency: int = DEFAULT_CONCURRENCY
    # whole-run limit; None means wait for every target
    deadline_s: Optional[float] = None

    def __post_init__(self) -> None:
        if self.timeout_s <= 0:
            raise ConfigError("--timeout must be > 0")
        if self.retries < 0:
            raise ConfigError("--retries must be >= 0")
        if self.concurrency < 1:
            raise ConfigError("--concurrency must be >= 1")
        if self.deadline_s is not None and self.deadline_s <= 0:
            raise ConfigError("--deadline must be > 0")

    @property
    def max_attempts(self) -> int:
        return self.retries + 1

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "ProbeConfig":
        base_s = parse_duration(args.backoff)
        max_s = parse_duration(args.max_backoff) if args.max_backoff else None
        try:
            backoff = BackoffPolicy(kind=args.backoff_policy, base_s=base_s, max_s=max_s)
        except ValueError as e:
            raise ConfigError(str(e)) from e

        return cls(
            timeout_s=parse_duration(args.timeout),
            retries=args.retries,
            backoff=backoff,
            concurrency=args.concurrency,
            deadline_s=parse_duration(args.deadline) if args.deadline else None,
        )
