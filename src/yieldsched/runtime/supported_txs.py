# src/yieldsched/runtime/supported_txs.py
"""Tx types this build applies.

Admission rejects anything outside this set before the apply router runs;
the router fails closed again for anything no applier claims.
"""

from __future__ import annotations

from typing import FrozenSet

from yieldsched.runtime.apply.bonus import BONUS_TX_TYPES
from yieldsched.runtime.apply.pools import POOLS_TX_TYPES
from yieldsched.runtime.apply.staking import STAKING_TX_TYPES

SUPPORTED_TX_TYPES: FrozenSet[str] = frozenset((*POOLS_TX_TYPES, *BONUS_TX_TYPES, *STAKING_TX_TYPES))

__all__ = ["SUPPORTED_TX_TYPES"]
