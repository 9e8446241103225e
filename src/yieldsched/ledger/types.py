"""yieldsched.ledger.types

Typed, immutable views of the JSON records kept in ledger state.

State itself stays a plain JSON-backed dict (so it can be snapshotted, deep
copied and persisted verbatim). Appliers mutate the dicts; read paths convert
them into these dataclasses.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from yieldsched.ledger.constants import SCHEDULE_TYPE_LABELS, ScheduleType

Json = Dict[str, Any]


def _int(v: Any, default: int = 0) -> int:
    try:
        if isinstance(v, bool):
            return int(default)
        return int(v)
    except Exception:
        return int(default)


def _opt_int(v: Any) -> Optional[int]:
    if v is None:
        return None
    return _int(v, 0)


@dataclass(frozen=True)
class Pool:
    id: int
    name: str
    reward_rate_bps: int
    schedule_type: ScheduleType
    min_stake: int
    cooldown_period: int
    rewards_balance: int
    total_staked: int
    active: bool
    created_at: int
    creator: str = ""

    @property
    def schedule_label(self) -> str:
        return SCHEDULE_TYPE_LABELS[self.schedule_type]

    @staticmethod
    def from_json(j: Json) -> "Pool":
        return Pool(
            id=_int(j.get("id")),
            name=str(j.get("name") or ""),
            reward_rate_bps=_int(j.get("reward_rate_bps")),
            schedule_type=ScheduleType(_int(j.get("schedule_type"))),
            min_stake=_int(j.get("min_stake")),
            cooldown_period=_int(j.get("cooldown_period")),
            rewards_balance=_int(j.get("rewards_balance")),
            total_staked=_int(j.get("total_staked")),
            active=bool(j.get("active", False)),
            created_at=_int(j.get("created_at")),
            creator=str(j.get("creator") or ""),
        )

    def to_json(self) -> Json:
        out = asdict(self)
        out["schedule_type"] = int(self.schedule_type)
        return out


@dataclass(frozen=True)
class Stake:
    pool_id: int
    staker: str
    amount: int
    stake_time: Optional[int]
    last_accrual_time: int
    total_earned: int
    created_at: int = 0

    @staticmethod
    def from_json(pool_id: int, staker: str, j: Json) -> "Stake":
        return Stake(
            pool_id=int(pool_id),
            staker=str(staker),
            amount=_int(j.get("amount")),
            stake_time=_opt_int(j.get("stake_time")),
            last_accrual_time=_int(j.get("last_accrual_time")),
            total_earned=_int(j.get("total_earned")),
            created_at=_int(j.get("created_at")),
        )

    def to_json(self) -> Json:
        return asdict(self)


@dataclass(frozen=True)
class BonusSchedule:
    index: int
    name: str
    multiplier_bps: int
    start_time: int
    duration: int
    min_amount: int = 0

    @property
    def end_time(self) -> int:
        return self.start_time + self.duration

    def is_active_at(self, now: int) -> bool:
        return self.start_time <= int(now) < self.end_time

    @staticmethod
    def from_json(index: int, j: Json) -> "BonusSchedule":
        return BonusSchedule(
            index=int(index),
            name=str(j.get("name") or ""),
            multiplier_bps=_int(j.get("multiplier_bps")),
            start_time=_int(j.get("start_time")),
            duration=_int(j.get("duration")),
            min_amount=_int(j.get("min_amount")),
        )

    def to_json(self) -> Json:
        return asdict(self)


@dataclass(frozen=True)
class ProtocolStats:
    total_pools: int
    total_staked: int
    active_pools: int = 0
    total_rewards_balance: int = 0

    def to_json(self) -> Json:
        return asdict(self)
