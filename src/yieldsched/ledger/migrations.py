# src/yieldsched/ledger/migrations.py
from __future__ import annotations

from typing import Any, Callable, Dict

from yieldsched.ledger.constants import DEFAULT_TIME_UNIT_SECONDS

Json = Dict[str, Any]

# Increment this when you add a new migration step.
CURRENT_STATE_VERSION = 2


def _as_int(v: Any, default: int = 0) -> int:
    try:
        if isinstance(v, bool):
            return default
        return int(v)
    except Exception:
        return default


def _as_str(v: Any) -> str:
    try:
        return str(v) if v is not None else ""
    except Exception:
        return ""


def _ensure_dict(root: Json, key: str) -> Json:
    v = root.get(key)
    if not isinstance(v, dict):
        v = {}
        root[key] = v
    return v


def _ensure_int(root: Json, key: str, default: int = 0) -> int:
    if key not in root:
        root[key] = int(default)
        return int(default)
    x = _as_int(root.get(key), default)
    root[key] = int(x)
    return int(x)


def _ensure_str(root: Json, key: str, default: str = "") -> str:
    if key not in root:
        root[key] = str(default)
        return str(default)
    s = _as_str(root.get(key))
    root[key] = s
    return s


def _migrate_v0_to_v1(st: Json) -> Json:
    """
    v0 -> v1: introduce explicit state_version and normalize minimal roots.

    v0 characteristics:
      - no 'state_version'
      - may have missing roots or wrong shapes
    """
    _ensure_str(st, "chain_id", "")
    _ensure_int(st, "height", 0)
    _ensure_int(st, "last_ts", 0)

    params = _ensure_dict(st, "params")
    _ensure_str(params, "admin", "")

    _ensure_dict(st, "pools")
    _ensure_dict(st, "stakes")
    _ensure_dict(st, "schedules")
    _ensure_int(st, "next_pool_id", 1)

    st["state_version"] = 1
    return st


def _migrate_v1_to_v2(st: Json) -> Json:
    """
    v1 -> v2: rate normalization moved into params; per-signer nonces.

    v1 snapshots always accrued per day, so that is the value pinned here.
    """
    params = _ensure_dict(st, "params")
    _ensure_int(params, "time_unit_seconds", DEFAULT_TIME_UNIT_SECONDS)
    _ensure_dict(st, "nonces")

    # v1 pools never recorded a creator.
    pools = _ensure_dict(st, "pools")
    for pid, pool in list(pools.items()):
        if not isinstance(pool, dict):
            del pools[pid]
            continue
        _ensure_str(pool, "creator", "")

    st["state_version"] = 2
    return st


_MIGRATIONS: Dict[int, Callable[[Json], Json]] = {
    0: _migrate_v0_to_v1,
    1: _migrate_v1_to_v2,
}


def migrate_state_dict(raw: Any) -> Json:
    """
    Upgrade a raw persisted JSON dict to CURRENT_STATE_VERSION.

    - Best-effort: never raises for simple shape issues; it normalizes.
    - If raw isn't a dict, returns an empty vCURRENT state skeleton.
    """
    st: Json = raw if isinstance(raw, dict) else {}

    v = _as_int(st.get("state_version"), 0)
    if v > CURRENT_STATE_VERSION:
        # Future state created by a newer binary; refuse to downgrade silently.
        raise ValueError(
            f"Ledger state version {v} is newer than this binary supports (max {CURRENT_STATE_VERSION})."
        )

    while v < CURRENT_STATE_VERSION:
        step = _MIGRATIONS.get(v)
        if step is None:
            raise ValueError(f"No migration path from state_version={v} to {CURRENT_STATE_VERSION}.")
        st = step(st)
        v = _as_int(st.get("state_version"), v + 1)

    st["state_version"] = CURRENT_STATE_VERSION
    return st
