# tests/test_smoke.py
from __future__ import annotations

from yieldsched.runtime.apply.bonus import apply_bonus
from yieldsched.runtime.apply.pools import apply_pools
from yieldsched.runtime.apply.staking import apply_staking
from yieldsched.runtime.supported_txs import SUPPORTED_TX_TYPES
from yieldsched.runtime.tx_schema import _SCHEMA_BY_TX_TYPE


def test_imports_smoke() -> None:
    # If this test runs, basic imports and pythonpath are working.
    assert callable(apply_pools) and callable(apply_bonus) and callable(apply_staking)


def test_every_supported_tx_has_a_payload_schema() -> None:
    assert set(_SCHEMA_BY_TX_TYPE) == set(SUPPORTED_TX_TYPES)
    assert len(SUPPORTED_TX_TYPES) == 8
