# src/yieldsched/runtime/executor_boot.py

from __future__ import annotations

import os
from typing import Optional

from yieldsched.runtime.chain_config import EngineConfig, load_engine_config
from yieldsched.runtime.clock import Clock
from yieldsched.runtime.executor import StakingExecutor


def build_executor(cfg: Optional[EngineConfig] = None, *, clock: Optional[Clock] = None) -> StakingExecutor:
    """
    Build a StakingExecutor from an explicit config or, if omitted, from the
    file named by YIELDSCHED_CONFIG_PATH (defaults otherwise).

    YIELDSCHED_DB_PATH overrides the configured db_path.
    """
    c = cfg or load_engine_config()
    return StakingExecutor(config=c, clock=clock, db_path=os.environ.get("YIELDSCHED_DB_PATH"))
