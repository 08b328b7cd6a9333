from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterator, Optional

from ..core.config import BPS_DENOMINATOR, DEFAULT_PERIOD_SECONDS, UINT64_MAX, UINT256_MAX
from ..core.ledger_exceptions import (
    DuplicateCommitmentError,
    InvalidAmountError,
    InvalidCommitmentError,
    InvalidFractionError,
    InvalidIdentifierError,
    InvalidRecurrencesError,
    InvalidTimingError,
)
from .merkle import HASH_SIZE, ZERO_HASH

logger = logging.getLogger("vesting_ledger.blockchain.vesting_schedule")


def _is_uint(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def as_root(value: Any) -> bytes:
    """Coerce a 32-byte root given as bytes or 0x-hex into bytes."""
    if isinstance(value, str):
        text = value[2:] if value.startswith(("0x", "0X")) else value
        try:
            value = bytes.fromhex(text)
        except ValueError as exc:
            raise InvalidCommitmentError("Merkle root is not valid hex.") from exc
    if not isinstance(value, (bytes, bytearray)) or len(value) != HASH_SIZE:
        raise InvalidCommitmentError("Merkle root must be 32 bytes.")
    return bytes(value)


@dataclass(frozen=True)
class Schedule:
    schedule_id: int
    start_time: int
    cliff_duration: int
    end_time: int
    recurrences: int
    start_bps: int
    merkle_root: bytes
    total_committed: int
    period: int = DEFAULT_PERIOD_SECONDS

    @property
    def cliff_end(self) -> int:
        return self.start_time + self.cliff_duration

    def start_amount(self, total: int) -> int:
        return total * self.start_bps // BPS_DENOMINATOR

    def vested_amount(self, total: int, now: int) -> int:
        """
        Amount of ``total`` unlocked at ``now``.

        The start fraction unlocks at start_time regardless of the cliff; the
        remainder accrues in whole periods after the cliff and is fully
        released at end_time.
        """
        if now < self.start_time:
            return 0

        start_amount = self.start_amount(total)
        if now < self.cliff_end:
            return start_amount

        if now >= self.end_time:
            return total

        elapsed_periods = (now - self.cliff_end) // self.period
        elapsed_periods = max(0, min(elapsed_periods, self.recurrences - 1))
        remainder = total - start_amount
        return start_amount + remainder * elapsed_periods // self.recurrences

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["merkle_root"] = "0x" + self.merkle_root.hex()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Schedule":
        fields = dict(data)
        fields["merkle_root"] = as_root(fields["merkle_root"])
        return cls(**fields)


def build_schedule(
    schedule_id: int,
    start_time: int,
    cliff_duration: int,
    recurrences: int,
    start_bps: int,
    merkle_root: Any,
    total_committed: int,
    period: int = DEFAULT_PERIOD_SECONDS,
) -> Schedule:
    """
    Validate schedule parameters and derive the end time.

    Raises:
        InvalidIdentifierError: schedule_id is zero or not a positive integer
        InvalidCommitmentError: merkle_root is zero or malformed
        InvalidFractionError: start_bps outside 0..10000
        InvalidRecurrencesError: recurrences is zero or negative
        InvalidTimingError: negative times, or end_time beyond uint64
        InvalidAmountError: total_committed outside uint256
    """
    if not _is_uint(schedule_id) or schedule_id == 0 or schedule_id > UINT256_MAX:
        raise InvalidIdentifierError("Schedule id must be a non-zero unsigned integer.")

    root = as_root(merkle_root)
    if root == ZERO_HASH:
        raise InvalidCommitmentError("Merkle root cannot be zero.")

    if not _is_uint(start_bps) or start_bps > BPS_DENOMINATOR:
        raise InvalidFractionError(
            f"start_bps must be within 0..{BPS_DENOMINATOR}, got {start_bps}.",
            details={"start_bps": start_bps},
        )

    if not _is_uint(recurrences) or recurrences == 0:
        raise InvalidRecurrencesError("Recurrences must be at least 1.")

    if not _is_uint(start_time) or not _is_uint(cliff_duration):
        raise InvalidTimingError("Start time and cliff duration must be non-negative integers.")

    end_time = start_time + cliff_duration + recurrences * period
    if end_time > UINT64_MAX:
        raise InvalidTimingError(
            "Schedule end time overflows a 64-bit timestamp.",
            details={"end_time": end_time},
        )

    if not _is_uint(total_committed) or total_committed > UINT256_MAX:
        raise InvalidAmountError("Total committed must be a uint256 amount.")

    return Schedule(
        schedule_id=schedule_id,
        start_time=start_time,
        cliff_duration=cliff_duration,
        end_time=end_time,
        recurrences=recurrences,
        start_bps=start_bps,
        merkle_root=root,
        total_committed=total_committed,
        period=period,
    )


class ScheduleRegistry:
    """Write-once store of vesting schedules keyed by identifier."""

    def __init__(self, period: int = DEFAULT_PERIOD_SECONDS):
        if period <= 0:
            raise ValueError("Vesting period must be positive.")
        self.period = period
        self.schedules: Dict[int, Schedule] = {}

    def __contains__(self, schedule_id: object) -> bool:
        return schedule_id in self.schedules

    def __iter__(self) -> Iterator[Schedule]:
        return iter(self.schedules.values())

    def __len__(self) -> int:
        return len(self.schedules)

    def build(self, schedule_id: int, start_time: int, cliff_duration: int,
              recurrences: int, start_bps: int, merkle_root: Any,
              total_committed: int) -> Schedule:
        schedule = build_schedule(
            schedule_id,
            start_time,
            cliff_duration,
            recurrences,
            start_bps,
            merkle_root,
            total_committed,
            period=self.period,
        )
        if schedule_id in self.schedules:
            raise DuplicateCommitmentError(
                f"Schedule {schedule_id} already has a commitment.",
                details={"schedule_id": schedule_id},
            )
        return schedule

    def register(self, schedule: Schedule) -> None:
        if schedule.schedule_id in self.schedules:
            raise DuplicateCommitmentError(
                f"Schedule {schedule.schedule_id} already has a commitment.",
                details={"schedule_id": schedule.schedule_id},
            )
        self.schedules[schedule.schedule_id] = schedule
        logger.info(
            "Vesting schedule %s registered",
            schedule.schedule_id,
            extra={
                "event": "vesting.schedule_registered",
                "schedule_id": schedule.schedule_id,
                "end_time": schedule.end_time,
            },
        )

    def unregister(self, schedule_id: int) -> None:
        """Drop a schedule whose funding failed within the same operation."""
        self.schedules.pop(schedule_id, None)

    def get(self, schedule_id: int) -> Optional[Schedule]:
        return self.schedules.get(schedule_id)
