from __future__ import annotations

import math

from .errors import ConfigError

_UNITS = (
    ("ms", 0.001),
    ("s", 1.0),
    ("m", 60.0),
)


def parse_duration(spec: str) -> float:
    """
    Parses a duration string into seconds.
    Supports:
    - Milliseconds: "500ms"
    - Seconds: "5s", "1.5s"
    - Minutes: "2m"
    - Bare number of seconds: "5"
    """
    text = spec.strip().lower()
    if not text:
        raise ConfigError("Empty duration")

    scale = 1.0
    number = text
    # "ms" must be checked before "s"
    for suffix, factor in _UNITS:
        if text.endswith(suffix):
            number = text[: -len(suffix)].strip()
            scale = factor
            break

    try:
        value = float(number)
    except ValueError:
        raise ConfigError(f"Invalid duration: {spec!r}") from None

    if not math.isfinite(value):
        raise ConfigError(f"Invalid duration: {spec!r}")
    if value < 0:
        raise ConfigError(f"Duration must not be negative: {spec!r}")

    return value * scale
