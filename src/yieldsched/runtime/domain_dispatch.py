# src/yieldsched/runtime/domain_dispatch.py

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from yieldsched.runtime.apply.bonus import apply_bonus
from yieldsched.runtime.apply.pools import apply_pools
from yieldsched.runtime.apply.staking import apply_staking
from yieldsched.runtime.errors import INVALID_PAYLOAD, TX_UNIMPLEMENTED, ApplyError
from yieldsched.runtime.state_invariants import ensure_state
from yieldsched.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]
ApplyFn = Callable[[Json, TxEnvelope], Optional[Json]]


_APPLIERS: tuple[ApplyFn, ...] = (
    apply_pools,
    apply_bonus,
    apply_staking,
)


def apply_tx(state: Json, env: Any) -> Json:
    """Dispatch a TxEnvelope to the first domain applier that claims it.

    Mutates `state` in place. Callers that need all-or-nothing semantics apply
    to a working copy and keep it only if this returns (see executor).
    """

    ensure_state(state)

    # Tests and some tools pass raw dict envelopes. Normalize to TxEnvelope so
    # domain appliers can rely on attribute access.
    env_norm = TxEnvelope.from_json(env) if isinstance(env, dict) else env

    t = str(getattr(env_norm, "tx_type", "") or "").strip().upper()
    if not t:
        raise ApplyError(INVALID_PAYLOAD, "missing_tx_type", {"tx_type": t})
    if not str(getattr(env_norm, "signer", "") or "").strip():
        raise ApplyError(INVALID_PAYLOAD, "missing_signer", {"tx_type": t})

    for fn in _APPLIERS:
        try:
            out = fn(state, env_norm)
        except ApplyError:
            raise
        except Exception as e:
            code = getattr(e, "code", None)
            reason = getattr(e, "reason", None)
            details = getattr(e, "details", None)

            if code is not None or reason is not None:
                raise ApplyError(
                    str(code or "domain_error"),
                    str(reason or type(e).__name__),
                    details if details is not None else {"tx_type": t, "domain": fn.__name__},
                ) from e

            raise ApplyError(
                "domain_error",
                type(e).__name__,
                {"tx_type": t, "domain": fn.__name__, "error": str(e)},
            ) from e

        if out is not None:
            return out

    raise ApplyError(TX_UNIMPLEMENTED, "tx_type_not_implemented", {"tx_type": t})
