from __future__ import annotations

import os
import threading
import time
from typing import Any, Dict


_lock = threading.Lock()
_counters: Dict[str, int] = {}
_gauges: Dict[str, int] = {}
_started_ms = int(time.time() * 1000)


def metrics_enabled() -> bool:
    v = (os.environ.get("RANKMINT_METRICS_ENABLED") or "").strip().lower()
    return v in {"1", "true", "yes", "y", "on"}


def inc_counter(name: str, value: int = 1) -> None:
    n = str(name or "").strip()
    if not n:
        return
    with _lock:
        _counters[n] = int(_counters.get(n, 0)) + int(value)


def set_gauge(name: str, value: int) -> None:
    n = str(name or "").strip()
    if not n:
        return
    with _lock:
        _gauges[n] = int(value)


def record_issuance(receipt: Dict[str, Any], snapshot: Dict[str, Any]) -> None:
    """Fold one issuance receipt and the post-call state into the metric set."""
    inc_counter("issuances_total")
    inc_counter("fees_charged_total", int(receipt.get("fee") or 0))
    bucket = int(receipt.get("bucket") or 0)
    if bucket:
        inc_counter(f"issuances_bucket_{bucket:02d}_total")

    d = receipt.get("disbursement")
    if isinstance(d, dict):
        inc_counter("disbursements_total")
        if d.get("team_failed"):
            inc_counter("disbursement_failures_total")
        if d.get("donation_failed"):
            inc_counter("disbursement_failures_total")

    set_gauge("identifiers_issued", int(snapshot.get("counter") or 0))
    ledger = snapshot.get("ledger") if isinstance(snapshot.get("ledger"), dict) else {}
    set_gauge("team_accrued", int(ledger.get("team_accrued") or 0))
    set_gauge("donation_accrued", int(ledger.get("donation_accrued") or 0))
    index = snapshot.get("index") if isinstance(snapshot.get("index"), dict) else {}
    set_gauge("rank_index_height", int(index.get("height") or 0))


def reset() -> None:
    with _lock:
        _counters.clear()
        _gauges.clear()


def snapshot() -> dict:
    with _lock:
        return {
            "ts_ms": int(time.time() * 1000),
            "started_ms": int(_started_ms),
            "uptime_ms": int(time.time() * 1000) - int(_started_ms),
            "counters": dict(_counters),
            "gauges": dict(_gauges),
        }


def format_prometheus(prefix: str = "rankmint_") -> str:
    """Prometheus exposition text; integer counters and gauges only."""
    pre = str(prefix or "").strip() or "rankmint_"
    snap = snapshot()
    lines: list[str] = [f"{pre}uptime_ms {int(snap.get('uptime_ms') or 0)}"]

    for kind in ("counters", "gauges"):
        table = snap.get(kind) if isinstance(snap.get(kind), dict) else {}
        for k in sorted(table.keys()):
            lines.append(f"{pre}{k} {int(table[k])}")

    return "\n".join(lines) + "\n"
