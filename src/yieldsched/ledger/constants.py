# src/yieldsched/ledger/constants.py
from __future__ import annotations

"""Engine-wide numeric constants.

Rates and multipliers are basis points (10000 = 100% / 1x).
Amounts are unsigned integers in the smallest token unit (1 STX = 1_000_000).
"""

from enum import IntEnum

BPS_DENOMINATOR: int = 10_000

# Multipliers
BASE_MULTIPLIER_BPS: int = 10_000
WEEKEND_MULTIPLIER_BPS: int = 20_000

# Intermediate reward products saturate here (unsigned 128-bit ceiling).
UINT128_MAX: int = 2**128 - 1

# Time
SECONDS_PER_DAY: int = 86_400
DAYS_PER_WEEK: int = 7

# 1970-01-01 was a Thursday; day-of-week numbering is 0 = Sunday .. 6 = Saturday.
EPOCH_DAY_OF_WEEK: int = 4
SUNDAY: int = 0
SATURDAY: int = 6

# Rate normalization: reward_rate_bps is applied per this many seconds.
DEFAULT_TIME_UNIT_SECONDS: int = SECONDS_PER_DAY

MAX_NAME_LEN: int = 64


class ScheduleType(IntEnum):
    LINEAR = 0
    BONUS_WEEKEND = 1
    TIERED = 2
    DECAY = 3


SCHEDULE_TYPE_LABELS = {
    ScheduleType.LINEAR: "linear",
    ScheduleType.BONUS_WEEKEND: "bonus-weekend",
    ScheduleType.TIERED: "tiered",
    ScheduleType.DECAY: "decay",
}
