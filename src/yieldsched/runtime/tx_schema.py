from __future__ import annotations

"""Transaction payload schemas.

Every state-transition call carries a JSON payload. These pydantic models are
the shape checks (types, required keys, unsigned integers) run before an
applier looks at the payload. Range rules that belong to the engine itself
(e.g. reward rate must be > 0, stake must meet the pool minimum) are NOT
encoded here: they are enforced by the appliers so they surface as the engine's
own error kinds.

Unknown keys are rejected.
"""

from typing import Any, Dict, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr, ValidationError

from yieldsched.runtime.errors import INVALID_PAYLOAD, ApplyError

Json = Dict[str, Any]


class _StrictModel(BaseModel):
    """Strict model: reject unknown keys."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class _PoolRefPayload(_StrictModel):
    pool_id: StrictInt = Field(..., ge=0)


# ---------------------------------------------------------------------------
# Pool registry
# ---------------------------------------------------------------------------


class CreatePoolPayload(_StrictModel):
    name: StrictStr
    reward_rate_bps: StrictInt = Field(..., ge=0)
    schedule_type: StrictInt = Field(..., ge=0)
    min_stake: StrictInt = Field(default=0, ge=0)
    cooldown_period: StrictInt = Field(default=0, ge=0)
    initial_rewards: StrictInt = Field(default=0, ge=0)


class FundRewardsPoolPayload(_PoolRefPayload):
    amount: StrictInt = Field(..., ge=0)


class SetPoolActivePayload(_PoolRefPayload):
    active: StrictBool


# ---------------------------------------------------------------------------
# Bonus schedules
# ---------------------------------------------------------------------------


class AddBonusSchedulePayload(_PoolRefPayload):
    name: StrictStr
    multiplier_bps: StrictInt = Field(..., ge=0)
    start_time: StrictInt = Field(..., ge=0)
    duration: StrictInt = Field(..., ge=0)
    # Tier threshold; only consulted by tiered pools.
    min_amount: StrictInt = Field(default=0, ge=0)


# ---------------------------------------------------------------------------
# Stake ledger
# ---------------------------------------------------------------------------


class StakePayload(_PoolRefPayload):
    amount: StrictInt = Field(..., ge=0)


class UnstakePayload(_PoolRefPayload):
    amount: StrictInt = Field(..., ge=0)


class ClaimRewardsPayload(_PoolRefPayload):
    pass


class CompoundPayload(_PoolRefPayload):
    pass


Schema = Type[BaseModel]
M = TypeVar("M", bound=BaseModel)

_SCHEMA_BY_TX_TYPE: Dict[str, Schema] = {
    "CREATE_POOL": CreatePoolPayload,
    "FUND_REWARDS_POOL": FundRewardsPoolPayload,
    "SET_POOL_ACTIVE": SetPoolActivePayload,
    "ADD_BONUS_SCHEDULE": AddBonusSchedulePayload,
    "STAKE": StakePayload,
    "UNSTAKE": UnstakePayload,
    "CLAIM_REWARDS": ClaimRewardsPayload,
    "COMPOUND": CompoundPayload,
}


def _schema_for(tx_type: str) -> Optional[Schema]:
    t = str(tx_type or "").strip().upper()
    if not t:
        return None
    return _SCHEMA_BY_TX_TYPE.get(t)


def validate_payload(*, tx_type: str, payload: Any) -> Tuple[bool, str, str, Optional[Dict[str, Any]]]:
    """Validate payload against schema.

    Returns: (ok, code, reason, details)
    """
    sch = _schema_for(tx_type)
    if sch is None:
        return False, "schema:unknown_tx_type", "no_schema_for_tx_type", {"tx_type": tx_type}

    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        return False, "schema:payload_not_object", "payload_must_be_object", None

    try:
        sch(**payload)
        return True, "", "", None
    except ValidationError as ve:
        return False, "schema:validation_error", "payload_schema_mismatch", {"errors": ve.errors(include_url=False)}


def parse_payload(model: Type[M], payload: Any) -> M:
    """Parse a payload for an applier, raising ApplyError(invalid_payload) on mismatch."""
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ApplyError(INVALID_PAYLOAD, "payload_must_be_object", {"got": type(payload).__name__})
    try:
        return model(**payload)
    except ValidationError as ve:
        raise ApplyError(INVALID_PAYLOAD, "payload_schema_mismatch", {"errors": ve.errors(include_url=False)}) from ve
