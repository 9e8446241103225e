# src/yieldsched/runtime/gates.py
from __future__ import annotations

"""Capability guards for admin-only calls."""

from typing import Any, Dict

from yieldsched.runtime.errors import NOT_AUTHORIZED, ApplyError

Json = Dict[str, Any]


def protocol_admin(state: Json) -> str:
    params = state.get("params")
    if not isinstance(params, dict):
        return ""
    return str(params.get("admin") or "").strip()


def is_admin(state: Json, signer: str) -> bool:
    admin = protocol_admin(state)
    return bool(admin) and str(signer or "").strip() == admin


def require_admin(state: Json, signer: str, *, tx_type: str) -> None:
    """Raise NotAuthorized unless signer is the protocol admin.

    Called first thing in every gated applier, before any read-modify-write.
    An unset admin fails closed.
    """
    if is_admin(state, signer):
        return
    raise ApplyError(NOT_AUTHORIZED, "admin_required", {"tx_type": tx_type, "signer": signer})
