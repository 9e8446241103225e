from __future__ import annotations

"""Pydantic request schemas for the public API.

The canonical tx payload schemas live in yieldsched.runtime.tx_schema; these
exist only for HTTP input validation.
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class TxSubmitRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tx_type: str = Field(..., min_length=1, description="Call name, e.g. STAKE")
    signer: str = Field(..., min_length=1, description="Caller principal")
    payload: Dict[str, Any] = Field(default_factory=dict)
    nonce: int = Field(default=0, ge=0, description="Per-signer nonce (signed mode)")
    sig: str = Field(default="", description="Hex Ed25519 signature (signed mode)")
