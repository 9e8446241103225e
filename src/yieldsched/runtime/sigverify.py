# src/yieldsched/runtime/sigverify.py

from __future__ import annotations

from typing import Any, Dict

from yieldsched.crypto.sig import canonical_tx_message, verify_ed25519_signature

Json = Dict[str, Any]


def signer_pubkey(state: Json, signer: str) -> str:
    """Resolve the public key that must have signed for `signer`.

    Named principals (e.g. the admin) are mapped in params.principal_keys;
    any other principal is its own hex public key.
    """
    params = state.get("params") if isinstance(state, dict) else None
    keys = params.get("principal_keys") if isinstance(params, dict) else None
    if isinstance(keys, dict):
        pk = keys.get(signer)
        if isinstance(pk, str) and pk.strip():
            return pk.strip()
    return str(signer or "").strip()


def signatures_required(state: Json) -> bool:
    params = state.get("params") if isinstance(state, dict) else None
    if not isinstance(params, dict):
        return True
    return bool(params.get("require_signatures", True))


def verify_tx_signature(state: Json, tx: Json) -> bool:
    """Verify a tx envelope signature.

    Policy:
      - If params disable signatures (require_signatures=False), return True.
      - Otherwise the signature must verify against the signer's resolved key.

    NOTE: This function is pure (no I/O).
    """
    if not isinstance(tx, dict):
        return False

    signer = tx.get("signer")
    if not isinstance(signer, str) or not signer.strip():
        return False

    if not signatures_required(state):
        return True

    sig = tx.get("sig")
    if not isinstance(sig, str) or not sig.strip():
        return False

    try:
        nonce = int(tx.get("nonce") or 0)
    except Exception:
        return False

    msg = canonical_tx_message(
        tx_type=str(tx.get("tx_type") or "").strip().upper(),
        signer=signer.strip(),
        nonce=nonce,
        payload=tx.get("payload") if isinstance(tx.get("payload"), dict) else {},
    )
    return verify_ed25519_signature(message=msg, sig=sig, pubkey=signer_pubkey(state, signer.strip()))
