# src/yieldsched/runtime/chain_config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from yieldsched.ledger.constants import DEFAULT_TIME_UNIT_SECONDS

Json = Dict[str, Any]


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


def _as_bool(v: Any, default: bool) -> bool:
    if v is None:
        return bool(default)
    if isinstance(v, bool):
        return v
    s = str(v).strip().lower()
    if s in {"1", "true", "yes", "y", "on"}:
        return True
    if s in {"0", "false", "no", "n", "off"}:
        return False
    return bool(default)


def _as_str_map(v: Any) -> Dict[str, str]:
    if not isinstance(v, dict):
        return {}
    return {str(k): str(x) for k, x in v.items() if str(k).strip() and isinstance(x, str) and x.strip()}


@dataclass(frozen=True)
class EngineConfig:
    chain_id: str
    mode: str  # "dev" | "testnet" | "prod"

    # Protocol admin principal (may create pools, toggle them, add schedules).
    admin: str

    # Single SQLite DB file path; empty string keeps state in memory only.
    db_path: str

    # Seconds per rate period; reward_rate_bps is earned once per period.
    time_unit_seconds: int

    require_signatures: bool
    principal_keys: Dict[str, str] = field(default_factory=dict)

    api_host: str = "127.0.0.1"
    api_port: int = 8000

    log_level: str = "INFO"


_ALLOWED_MODES = {"dev", "testnet", "prod"}


def validate_engine_config(cfg: EngineConfig) -> None:
    """Fail-fast validation for operator config."""

    if not isinstance(cfg.chain_id, str) or not cfg.chain_id.strip():
        raise ValueError("chain_id must be a non-empty string")

    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {_ALLOWED_MODES}; got: {cfg.mode!r}")

    if not isinstance(cfg.admin, str) or not cfg.admin.strip():
        raise ValueError("admin must be a non-empty string")

    if int(cfg.time_unit_seconds) <= 0:
        raise ValueError(f"time_unit_seconds must be > 0; got: {cfg.time_unit_seconds}")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")

    if mode == "prod" and not cfg.require_signatures:
        raise ValueError("require_signatures must be enabled in prod mode")

    if mode == "prod" and not str(cfg.db_path or "").strip():
        raise ValueError("db_path must be set in prod mode")


def default_engine_config() -> EngineConfig:
    return EngineConfig(
        chain_id="yieldsched-dev",
        mode="dev",
        admin="admin",
        db_path="",
        time_unit_seconds=DEFAULT_TIME_UNIT_SECONDS,
        require_signatures=False,
        principal_keys={},
        api_host="127.0.0.1",
        api_port=8000,
        log_level="INFO",
    )


def engine_config_from_dict(raw: Json) -> EngineConfig:
    if not isinstance(raw, dict):
        raise ValueError("engine config must be a JSON object")

    d = default_engine_config()
    mode = _as_str(raw.get("mode"), d.mode).strip().lower()

    # Signatures default on everywhere except dev.
    sig_default = mode != "dev"

    cfg = EngineConfig(
        chain_id=_as_str(raw.get("chain_id"), d.chain_id),
        mode=mode,
        admin=_as_str(raw.get("admin"), d.admin).strip(),
        db_path=str(raw.get("db_path") or d.db_path),
        time_unit_seconds=_as_int(raw.get("time_unit_seconds"), d.time_unit_seconds),
        require_signatures=_as_bool(raw.get("require_signatures"), sig_default),
        principal_keys=_as_str_map(raw.get("principal_keys")),
        api_host=_as_str(raw.get("api_host"), d.api_host),
        api_port=_as_int(raw.get("api_port"), d.api_port),
        log_level=_as_str(raw.get("log_level"), d.log_level),
    )

    validate_engine_config(cfg)
    return cfg


def read_engine_config_file(path: str) -> EngineConfig:
    p = Path(path)
    raw = json.loads(p.read_text(encoding="utf-8"))
    return engine_config_from_dict(raw)


def load_engine_config(*, config_path: Optional[str] = None) -> EngineConfig:
    p = config_path or os.environ.get("YIELDSCHED_CONFIG_PATH")
    if p:
        return read_engine_config_file(p)

    cfg = default_engine_config()
    validate_engine_config(cfg)
    return cfg


def engine_params(cfg: EngineConfig) -> Json:
    """Ledger params seeded from config on first boot."""
    return {
        "admin": cfg.admin,
        "time_unit_seconds": int(cfg.time_unit_seconds),
        "require_signatures": bool(cfg.require_signatures),
        "principal_keys": dict(cfg.principal_keys),
    }
