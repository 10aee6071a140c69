from __future__ import annotations

import json
from typing import Any, Dict

from .models import ProbeResult, RunSummary

HOST_WIDTH = 30

EXIT_OK = 0
EXIT_UNHEALTHY = 1
EXIT_CONFIG_ERROR = 2


def format_row(r: ProbeResult) -> str:
    if r.ok:
        latency = r.latency_ms or 0.0
        retries_info = f" (retries: {r.retries_used})" if r.retries_used > 0 else ""
        return f"[OK]   {r.target.raw:<{HOST_WIDTH}} {latency:.1f}ms{retries_info}"
    error = r.error or "unknown"
    return f"[FAIL] {r.target.raw:<{HOST_WIDTH}} {error}"


def format_summary(summary: RunSummary) -> str:
    line = f"Summary: {summary.healthy}/{summary.total} healthy"
    if summary.cancelled:
        line += " (cancelled)"
    return line


def render_text(summary: RunSummary) -> str:
    lines = [format_row(r) for r in summary.results]
    lines.append("")
    lines.append(format_summary(summary))
    return "\n".join(lines)


def result_to_dict(r: ProbeResult) -> Dict[str, Any]:
    d: Dict[str, Any] = {
        "host": r.target.raw,
        "status": r.status,
        "attempts": r.attempts,
        "retries_used": r.retries_used,
    }
    # latency_ms only for ok, error only for fail
    if r.ok:
        d["latency_ms"] = r.latency_ms
    else:
        d["error"] = r.error or "unknown"
    return d


def summary_to_dict(summary: RunSummary) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "results": [result_to_dict(r) for r in summary.results],
        "healthy": summary.healthy,
        "total": summary.total,
    }
    if summary.cancelled:
        payload["cancelled"] = True
    return payload


def render_json(summary: RunSummary) -> str:
    return json.dumps(summary_to_dict(summary), indent=2)


def print_results(summary: RunSummary, as_json: bool = False) -> None:
    if as_json:
        print(render_json(summary))
    else:
        print(render_text(summary))


def exit_code(summary: RunSummary) -> int:
    return EXIT_OK if summary.all_healthy else EXIT_UNHEALTHY
