"""In-process staking engine counters.

Committed calls are counted per tx type and per pool, rejected calls per tx
type and per error code. The latest ledger totals are kept alongside so the
metrics endpoint can answer without touching the executor lock.
"""

from __future__ import annotations

import os
import threading
import time
from collections import Counter
from typing import Any, Dict, Optional

Json = Dict[str, Any]

_lock = threading.Lock()
_started_ms = int(time.time() * 1000)

_applied_by_tx_type: Counter = Counter()
_applied_by_pool: Counter = Counter()
_rejected_by_tx_type: Counter = Counter()
_rejected_by_code: Counter = Counter()
_ledger: Dict[str, int] = {}


def metrics_enabled() -> bool:
    v = (os.environ.get("YIELDSCHED_METRICS_ENABLED") or "").strip().lower()
    return v in {"1", "true", "yes", "y", "on"}


def record_applied(tx_type: str, pool_id: Optional[int]) -> None:
    with _lock:
        _applied_by_tx_type[str(tx_type)] += 1
        if pool_id is not None:
            _applied_by_pool[str(int(pool_id))] += 1


def record_rejected(tx_type: str, code: str) -> None:
    # Unparseable envelopes have no tx type.
    with _lock:
        _rejected_by_tx_type[str(tx_type) or "?"] += 1
        _rejected_by_code[str(code)] += 1


def record_ledger(*, height: int, stats: Json) -> None:
    """Replace the ledger totals with those of the last committed state."""
    with _lock:
        _ledger.clear()
        _ledger["height"] = int(height)
        for k in ("total_pools", "active_pools", "total_staked", "total_rewards_balance"):
            _ledger[k] = int(stats.get(k) or 0)


def snapshot() -> Json:
    with _lock:
        now = int(time.time() * 1000)
        return {
            "ts_ms": now,
            "uptime_ms": now - _started_ms,
            "applied_total": sum(_applied_by_tx_type.values()),
            "rejected_total": sum(_rejected_by_tx_type.values()),
            "applied_by_tx_type": dict(_applied_by_tx_type),
            "applied_by_pool": dict(_applied_by_pool),
            "rejected_by_tx_type": dict(_rejected_by_tx_type),
            "rejected_by_code": dict(_rejected_by_code),
            "ledger": dict(_ledger),
        }


def reset() -> None:
    with _lock:
        for c in (_applied_by_tx_type, _applied_by_pool, _rejected_by_tx_type, _rejected_by_code):
            c.clear()
        _ledger.clear()


__all__ = ["metrics_enabled", "record_applied", "record_ledger", "record_rejected", "reset", "snapshot"]
