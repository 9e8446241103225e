from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Engine error kinds. Every failed call surfaces exactly one of these codes.
NOT_AUTHORIZED = "not_authorized"
POOL_NOT_FOUND = "pool_not_found"
INSUFFICIENT_STAKE = "insufficient_stake"
COOLDOWN_ACTIVE = "cooldown_active"
NO_REWARDS = "no_rewards"
INVALID_AMOUNT = "invalid_amount"

# Envelope-level rejections (raised before any engine semantics run).
INVALID_PAYLOAD = "invalid_payload"
INVALID_SIGNATURE = "invalid_signature"
BAD_NONCE = "bad_nonce"
TX_UNIMPLEMENTED = "tx_unimplemented"

# A call produced a state that breaks a ledger invariant; it is discarded.
INVARIANT_VIOLATION = "invariant_violation"

# Numeric codes used by the deployed contract; kept for clients that still match on them.
LEGACY_ERROR_CODES = {
    NOT_AUTHORIZED: 8001,
    POOL_NOT_FOUND: 8002,
    INSUFFICIENT_STAKE: 8003,
    COOLDOWN_ACTIVE: 8004,
    NO_REWARDS: 8005,
    INVALID_AMOUNT: 8006,
}


@dataclass
class ApplyError(Exception):
    """Canonical error type for domain apply and dispatch failures."""

    code: str
    reason: str
    details: Any | None = None

    def __str__(self) -> str:  # pragma: no cover
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"

    @property
    def legacy_code(self) -> int | None:
        return LEGACY_ERROR_CODES.get(self.code)
