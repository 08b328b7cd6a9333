"""Observable events emitted by the vesting ledger."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(frozen=True)
class LedgerEvent:
    """Base event; ``name`` mirrors the on-chain event signature name."""

    name = "LedgerEvent"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"event": self.name}
        for key, value in self.__dict__.items():
            if key == "timestamp":
                continue
            data[key] = "0x" + value.hex() if isinstance(value, bytes) else value
        return data


@dataclass(frozen=True)
class ScheduleCreated(LedgerEvent):
    schedule_id: int
    start_time: int
    cliff_duration: int
    recurrences: int
    start_bps: int
    merkle_root: bytes
    total: int
    timestamp: float = field(default_factory=time.time, compare=False)

    name = "ScheduleCreated"


@dataclass(frozen=True)
class EntitlementActivated(LedgerEvent):
    schedule_id: int
    account: str
    index: int
    amount: int
    timestamp: float = field(default_factory=time.time, compare=False)

    name = "EntitlementActivated"


@dataclass(frozen=True)
class Claimed(LedgerEvent):
    schedule_id: int
    account: str
    amount: int
    timestamp: float = field(default_factory=time.time, compare=False)

    name = "Claimed"
