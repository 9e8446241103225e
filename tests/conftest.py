from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable, Dict

import pytest

# Ensure local "src/" takes precedence over any globally-installed "yieldsched" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)

from yieldsched.runtime.chain_config import default_engine_config  # noqa: E402
from yieldsched.runtime.clock import ManualClock  # noqa: E402
from yieldsched.runtime.executor import StakingExecutor  # noqa: E402

# Tuesday 2023-11-14 22:13:20 UTC: a weekday, well clear of any weekend boundary.
T0 = 1_700_000_000
DAY = 86_400
ADMIN = "admin"

Json = Dict[str, Any]


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start=T0)


@pytest.fixture
def executor(clock: ManualClock) -> StakingExecutor:
    """In-memory executor, unsigned dev config, admin principal 'admin'."""
    return StakingExecutor(config=default_engine_config(), clock=clock)


@pytest.fixture
def call(executor: StakingExecutor) -> Callable[..., Json]:
    """call(tx_type, signer, **payload) -> receipt"""

    def _call(tx_type: str, signer: str, **payload: Any) -> Json:
        return executor.submit_tx({"tx_type": tx_type, "signer": signer, "payload": payload})

    return _call


@pytest.fixture
def make_pool(call: Callable[..., Json]) -> Callable[..., int]:
    """Create a pool as admin and return its id."""

    def _make(**overrides: Any) -> int:
        payload: Json = {
            "name": "Main",
            "reward_rate_bps": 500,
            "schedule_type": 0,
            "min_stake": 100,
            "cooldown_period": 0,
            "initial_rewards": 1_000_000,
        }
        payload.update(overrides)
        r = call("CREATE_POOL", ADMIN, **payload)
        assert r["ok"] is True, r
        return int(r["result"])

    return _make
