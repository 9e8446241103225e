from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional

from yieldsched.runtime.errors import BAD_NONCE, INVALID_PAYLOAD, INVALID_SIGNATURE, TX_UNIMPLEMENTED
from yieldsched.runtime.sigverify import signatures_required, verify_tx_signature
from yieldsched.runtime.supported_txs import SUPPORTED_TX_TYPES
from yieldsched.runtime.tx_admission_types import TxEnvelope, TxVerdict
from yieldsched.runtime.tx_schema import validate_payload

Json = Dict[str, Any]


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None:
        return int(default)
    try:
        return int(str(v).strip())
    except Exception:
        return int(default)


def _json_size_bytes(obj: Any) -> int:
    """Compute JSON byte size. If not serializable, return -1 (unknown)."""
    try:
        return len(json.dumps(obj, separators=(",", ":"), ensure_ascii=False, sort_keys=True).encode("utf-8"))
    except Exception:
        return -1


def expected_nonce(state: Json, signer: str) -> int:
    nonces = state.get("nonces") if isinstance(state, dict) else None
    if not isinstance(nonces, dict):
        return 1
    try:
        return int(nonces.get(signer, 0)) + 1
    except Exception:
        return 1


def admit_tx(tx: Any = None, state: Optional[Json] = None) -> TxVerdict:
    """Envelope-level checks that run before any engine semantics.

    Order: shape -> size -> supported type -> payload schema -> nonce -> signature.
    Nonce and signature are only enforced when the ledger requires signatures.
    """
    st: Json = state if isinstance(state, dict) else {}

    if isinstance(tx, TxEnvelope):
        raw = tx.to_json()
    elif isinstance(tx, dict):
        raw = tx
    else:
        return TxVerdict.reject(INVALID_PAYLOAD, "envelope_must_be_object", {"type": type(tx).__name__})

    max_tx_bytes = _env_int("YIELDSCHED_MAX_TX_ENVELOPE_BYTES", 16 * 1024)
    env_size = _json_size_bytes(raw)
    if env_size < 0:
        return TxVerdict.reject(INVALID_PAYLOAD, "envelope_not_json", None)
    if env_size > int(max_tx_bytes):
        return TxVerdict.reject(
            INVALID_PAYLOAD,
            "tx_envelope_exceeds_size_limit",
            {"bytes": int(env_size), "max_bytes": int(max_tx_bytes)},
        )

    try:
        env = TxEnvelope.from_json(raw)
    except (TypeError, ValueError) as e:
        return TxVerdict.reject(INVALID_PAYLOAD, "bad_envelope", {"error": str(e)})

    if not env.tx_type:
        return TxVerdict.reject(INVALID_PAYLOAD, "missing_tx_type", None)
    if not env.signer:
        return TxVerdict.reject(INVALID_PAYLOAD, "missing_signer", None)
    if int(env.nonce) < 0:
        return TxVerdict.reject(INVALID_PAYLOAD, "nonce_must_be_nonnegative", {"nonce": int(env.nonce)})

    if env.tx_type not in SUPPORTED_TX_TYPES:
        return TxVerdict.reject(TX_UNIMPLEMENTED, "tx_type_not_supported", {"tx_type": env.tx_type})

    ok, _code, reason, details = validate_payload(tx_type=env.tx_type, payload=raw.get("payload"))
    if not ok:
        return TxVerdict.reject(INVALID_PAYLOAD, reason, details)

    if not signatures_required(st):
        return TxVerdict.admit()

    expected = expected_nonce(st, env.signer)
    if int(env.nonce) != expected:
        return TxVerdict.reject(BAD_NONCE, "nonce_must_be_next", {"expected": expected, "got": int(env.nonce)})

    if not verify_tx_signature(st, env.to_json()):
        return TxVerdict.reject(
            INVALID_SIGNATURE,
            "signature_verification_failed",
            {"signer": env.signer, "tx_type": env.tx_type},
        )

    return TxVerdict.admit()


__all__ = ["TxEnvelope", "TxVerdict", "admit_tx", "expected_nonce"]
