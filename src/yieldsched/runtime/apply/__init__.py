# src/yieldsched/runtime/apply/__init__.py
"""Domain-specific apply modules.

These modules implement deterministic ledger state transitions for subsets
of tx types. Each exposes apply_<domain>(state, env) returning a result dict
for the tx types it claims and None otherwise.
"""

from __future__ import annotations

__all__ = [
    "pools",
    "bonus",
    "staking",
]
