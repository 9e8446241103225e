from __future__ import annotations

from dataclasses import dataclass, field
import copy
from typing import Any, Dict, List, Optional

from yieldsched.ledger.constants import DEFAULT_TIME_UNIT_SECONDS
from yieldsched.ledger.types import BonusSchedule, Pool, ProtocolStats, Stake


Json = Dict[str, Any]


def _as_dict(x: Any) -> Json:
    return x if isinstance(x, dict) else {}


@dataclass(frozen=True, slots=True)
class LedgerView:
    """
    Immutable read-only ledger view used by queries and reports.

    Never creates missing records: looking up an unknown pool or stake
    returns None rather than touching state.
    """

    pools: Dict[str, Any] = field(default_factory=dict)
    stakes: Dict[str, Any] = field(default_factory=dict)
    schedules: Dict[str, Any] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)
    last_ts: int = 0

    @classmethod
    def from_ledger(cls, state: Dict[str, Any]) -> "LedgerView":
        return cls(
            pools=copy.deepcopy(_as_dict(state.get("pools"))),
            stakes=copy.deepcopy(_as_dict(state.get("stakes"))),
            schedules=copy.deepcopy(_as_dict(state.get("schedules"))),
            params=copy.deepcopy(_as_dict(state.get("params"))),
            last_ts=int(state.get("last_ts", 0) or 0),
        )

    @property
    def time_unit_seconds(self) -> int:
        try:
            v = int(self.params.get("time_unit_seconds", DEFAULT_TIME_UNIT_SECONDS))
        except Exception:
            return DEFAULT_TIME_UNIT_SECONDS
        return v if v > 0 else DEFAULT_TIME_UNIT_SECONDS

    def get_pool(self, pool_id: int) -> Optional[Pool]:
        rec = self.pools.get(str(int(pool_id)))
        if not isinstance(rec, dict):
            return None
        return Pool.from_json(rec)

    def get_active_pool(self, pool_id: int) -> Optional[Pool]:
        pool = self.get_pool(pool_id)
        if pool is None or not pool.active:
            return None
        return pool

    def list_pools(self) -> List[Pool]:
        out = [Pool.from_json(rec) for rec in self.pools.values() if isinstance(rec, dict)]
        out.sort(key=lambda p: p.id)
        return out

    def get_stake(self, pool_id: int, staker: str) -> Optional[Stake]:
        by_staker = _as_dict(self.stakes.get(str(int(pool_id))))
        rec = by_staker.get(str(staker))
        if not isinstance(rec, dict):
            return None
        return Stake.from_json(int(pool_id), str(staker), rec)

    def get_schedules(self, pool_id: int) -> List[BonusSchedule]:
        raw = self.schedules.get(str(int(pool_id)))
        if not isinstance(raw, list):
            return []
        return [BonusSchedule.from_json(i, rec) for i, rec in enumerate(raw) if isinstance(rec, dict)]

    def protocol_stats(self) -> ProtocolStats:
        pools = self.list_pools()
        return ProtocolStats(
            total_pools=len(pools),
            total_staked=sum(p.total_staked for p in pools),
            active_pools=sum(1 for p in pools if p.active),
            total_rewards_balance=sum(p.rewards_balance for p in pools),
        )
