from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from .errors import ConfigError, ParseError
from .models import Target


def parse_target(raw: str, index: int = 0) -> Target:
    """
    Parses a single target string.
    Supports:
      - Hostname or IPv4: "db.internal:5432", "10.0.0.5:22"
      - Bracketed IPv6: "[::1]:8080"
    The host is not resolved here; resolution happens at probe time.
    """
    text = raw.strip()
    if not text:
        raise ParseError("Empty target")

    if ":" not in text:
        raise ParseError(f"Invalid target '{text}': expected host:port")

    host, port_s = text.rsplit(":", 1)

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
        if not host:
            raise ParseError(f"Invalid target '{text}': empty host")
        if "[" in host or "]" in host:
            raise ParseError(f"Invalid target '{text}': stray bracket in host")
    elif "[" in host or "]" in host:
        raise ParseError(f"Invalid target '{text}': brackets must enclose the whole host, e.g. [::1]:80")
    elif ":" in host:
        # bare IPv6 like ::1:80 is ambiguous
        raise ParseError(f"Invalid target '{text}': wrap IPv6 addresses in brackets, e.g. [::1]:80")

    if not host:
        raise ParseError(f"Invalid target '{text}': empty host")

    if not (port_s.isascii() and port_s.isdigit()):
        raise ParseError(f"Invalid target '{text}': port must be a number")
    port = int(port_s)
    if port < 1 or port > 65535:
        raise ParseError(f"Invalid target '{text}': port {port} out of range 1-65535")

    return Target(raw=text, host=host, port=port, index=index)


def parse_targets(raws: Iterable[str]) -> List[Target]:
    return [parse_target(raw, index=i) for i, raw in enumerate(raws)]


def read_targets_file(path: str) -> List[str]:
    """One target per line; blank lines and '#' comments are skipped."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.read().splitlines()
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Failed to read targets file '{path}': {e}") from e

    out: List[str] = []
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        out.append(line)
    return out


def collect_targets(positional: Sequence[str], file_path: Optional[str] = None) -> List[Target]:
    raws = list(positional)
    if file_path:
        raws.extend(read_targets_file(file_path))

    if not raws:
        raise ConfigError("No targets specified")

    return parse_targets(raws)
