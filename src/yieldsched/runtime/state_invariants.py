# src/yieldsched/runtime/state_invariants.py
from __future__ import annotations

"""State invariants / normalization helpers.

Ledger state is a nested JSON-like dict mutated deterministically by the
apply_* modules. This module is the single place that:

  - validates the state is dict-like and ensures the core roots exist
  - checks the cross-record ledger invariants (conservation, non-negativity)

The invariant check is pure; the executor runs it on the working copy before a
call is committed, so a violation aborts the call like any other error.
"""

from collections.abc import MutableMapping
from typing import Any, Dict, List

Json = Dict[str, Any]


def ensure_state(st: Any) -> Json:
    """Ensure `st` is a dict and contains core keys.

    Returns the (possibly mutated) dict.

    Raises:
        TypeError: if st (or one of its roots) has the wrong shape
    """
    if not isinstance(st, MutableMapping):
        raise TypeError(f"state must be MutableMapping, got {type(st)}")

    for key in ("params", "pools", "stakes", "schedules", "nonces"):
        v = st.get(key)
        if v is None:
            st[key] = {}
        elif not isinstance(v, dict):
            # Fail closed: do not attempt to coerce arbitrary types.
            raise TypeError(f"state['{key}'] must be dict, got {type(v)}")

    if "next_pool_id" not in st:
        st["next_pool_id"] = len(st["pools"]) + 1

    return st  # type: ignore[return-value]


def ledger_violations(st: Json) -> List[str]:
    """Return human-readable descriptions of every broken ledger invariant."""
    out: List[str] = []
    pools = st.get("pools") if isinstance(st.get("pools"), dict) else {}
    stakes = st.get("stakes") if isinstance(st.get("stakes"), dict) else {}

    for pid, pool in pools.items():
        if not isinstance(pool, dict):
            out.append(f"pool {pid}: record is not an object")
            continue
        total = int(pool.get("total_staked", 0))
        balance = int(pool.get("rewards_balance", 0))
        if total < 0:
            out.append(f"pool {pid}: negative total_staked {total}")
        if balance < 0:
            out.append(f"pool {pid}: negative rewards_balance {balance}")

        by_staker = stakes.get(pid) if isinstance(stakes.get(pid), dict) else {}
        summed = 0
        for staker, rec in by_staker.items():
            amount = int(rec.get("amount", 0)) if isinstance(rec, dict) else 0
            if amount < 0:
                out.append(f"pool {pid}: negative stake {amount} for {staker}")
            if amount > total:
                out.append(f"pool {pid}: stake {amount} for {staker} exceeds total_staked {total}")
            summed += amount
        if summed != total:
            out.append(f"pool {pid}: total_staked {total} != sum of stakes {summed}")

    for pid in stakes:
        if pid not in pools:
            out.append(f"stakes recorded for unknown pool {pid}")

    return out


__all__ = ["ensure_state", "ledger_violations"]
