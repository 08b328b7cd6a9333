from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Tuple

logger = logging.getLogger("vesting_ledger.blockchain.vesting_manager")

from eth_utils import is_address

from ..core.config import DEFAULT_MAX_BATCH_SIZE, UINT256_MAX
from ..core.ledger_exceptions import (
    InvalidAccountError,
    InvalidProofError,
    MalformedBatchError,
    NothingNewToActivateError,
)
from .balance_tree import EntitlementProof
from .ledger_events import EntitlementActivated, LedgerEvent
from .merkle import hash_leaf, verify_proof
from .vesting_schedule import ScheduleRegistry


@dataclass
class AccountPosition:
    authenticated_total: int = 0
    claimed: int = 0


def _is_uint256(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= UINT256_MAX


class VestingManager:
    """
    Entitlement & claim bookkeeping for every schedule in a registry.

    Tracks which leaf indexes have been activated and, per account, the
    authenticated total and the amount already withdrawn.
    """

    def __init__(
        self,
        registry: ScheduleRegistry,
        time_provider: Callable[[], int] | None = None,
        event_sink: Callable[[LedgerEvent], None] | None = None,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
    ):
        self.registry = registry
        self.activated: Set[Tuple[int, int]] = set()
        self.positions: Dict[Tuple[int, str], AccountPosition] = {}
        self.max_batch_size = max_batch_size
        self._time_provider = time_provider or (lambda: int(time.time()))
        self._event_sink = event_sink or (lambda event: None)
        logger.info("VestingManager initialized with deterministic time provider: %s", bool(time_provider))

    @staticmethod
    def coerce_timestamp(timestamp: Any) -> int:
        try:
            return int(timestamp)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Timestamp must be an integer, got {timestamp!r}") from exc

    def current_time(self) -> int:
        return self.coerce_timestamp(self._time_provider())

    @staticmethod
    def normalize_account(account: str) -> str:
        if not isinstance(account, str) or not is_address(account):
            raise InvalidAccountError(f"Invalid account address: {account!r}")
        return account.lower()

    # ==================== Activation ====================

    def is_activated(self, schedule_id: int, index: int) -> bool:
        return (schedule_id, index) in self.activated

    def activate(
        self,
        schedule_id: int,
        account: str,
        entries: Sequence[EntitlementProof],
    ) -> List[EntitlementProof]:
        """
        Authenticate and activate allocation entries for ``account``.

        Already-activated indexes are skipped. Every new entry is verified
        before any is applied, so a single bad proof rejects the whole batch.

        Returns:
            The newly activated entries, in submission order

        Raises:
            MalformedBatchError: Oversized batch or non-uint256 index/amount
            InvalidProofError: A new entry does not verify against the root
            NothingNewToActivateError: No entry in the batch was new
        """
        account = self.normalize_account(account)
        entries = list(entries)
        if len(entries) > self.max_batch_size:
            raise MalformedBatchError(
                f"Batch of {len(entries)} entries exceeds limit of {self.max_batch_size}.",
                details={"size": len(entries), "limit": self.max_batch_size},
            )
        for entry in entries:
            if not _is_uint256(entry.index) or not _is_uint256(entry.amount):
                raise MalformedBatchError(
                    "Entry index and amount must be uint256 integers.",
                    details={"index": entry.index},
                )

        schedule = self.registry.get(schedule_id)
        pending: List[EntitlementProof] = []
        seen: Set[int] = set()
        for entry in entries:
            if entry.index in seen or self.is_activated(schedule_id, entry.index):
                continue
            leaf = hash_leaf(entry.index, account, entry.amount)
            if schedule is None or not verify_proof(leaf, entry.proof, schedule.merkle_root):
                logger.warning(
                    "Rejected entitlement proof",
                    extra={
                        "event": "vesting.invalid_proof",
                        "schedule_id": schedule_id,
                        "account": account[:10],
                        "index": entry.index,
                    },
                )
                raise InvalidProofError(
                    f"Invalid proof for index {entry.index} of schedule {schedule_id}.",
                    details={"schedule_id": schedule_id, "index": entry.index},
                )
            seen.add(entry.index)
            pending.append(entry)

        if not pending:
            raise NothingNewToActivateError(
                f"Nothing new to activate for {account} in schedule {schedule_id}.",
                details={"schedule_id": schedule_id},
            )

        position = self.positions.setdefault((schedule_id, account), AccountPosition())
        for entry in pending:
            self.activated.add((schedule_id, entry.index))
            position.authenticated_total += entry.amount
            self._event_sink(
                EntitlementActivated(
                    schedule_id=schedule_id,
                    account=account,
                    index=entry.index,
                    amount=entry.amount,
                )
            )

        logger.info(
            "Activated %d entitlements for schedule %s",
            len(pending),
            schedule_id,
            extra={
                "event": "vesting.entitlements_activated",
                "schedule_id": schedule_id,
                "account": account[:10],
                "count": len(pending),
                "authenticated_total": str(position.authenticated_total),
            },
        )
        return pending

    # ==================== Vesting queries ====================

    def get_position(self, schedule_id: int, account: str) -> Optional[AccountPosition]:
        if not isinstance(account, str):
            return None
        return self.positions.get((schedule_id, account.lower()))

    def get_vested_amount(self, schedule_id: int, account: str, current_time: int | None = None) -> int:
        """Vested amount of the account's authenticated total; 0 when unknown."""
        schedule = self.registry.get(schedule_id)
        position = self.get_position(schedule_id, account)
        if schedule is None or position is None:
            return 0
        if current_time is None:
            current_time = self.current_time()
        else:
            current_time = self.coerce_timestamp(current_time)
        return schedule.vested_amount(position.authenticated_total, current_time)

    def get_claimable(self, schedule_id: int, account: str, current_time: int | None = None) -> int:
        """Vested minus already claimed, floored at zero. Never raises for unknown keys."""
        position = self.get_position(schedule_id, account)
        if position is None:
            return 0
        vested = self.get_vested_amount(schedule_id, account, current_time)
        return max(0, vested - position.claimed)

    # ==================== Claim bookkeeping ====================

    def record_claim(self, schedule_id: int, account: str, amount: int) -> AccountPosition:
        position = self.positions[(schedule_id, account.lower())]
        position.claimed += amount
        return position

    def revert_claim(self, schedule_id: int, account: str, amount: int) -> None:
        """Undo a claim whose token transfer failed within the same operation."""
        position = self.positions[(schedule_id, account.lower())]
        position.claimed -= amount

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        return {
            "activated": sorted([schedule_id, index] for schedule_id, index in self.activated),
            "positions": [
                {
                    "schedule_id": schedule_id,
                    "account": account,
                    "authenticated_total": str(position.authenticated_total),
                    "claimed": str(position.claimed),
                }
                for (schedule_id, account), position in sorted(self.positions.items())
            ],
        }

    def load_dict(self, data: Dict[str, Any]) -> None:
        self.activated = {(int(s), int(i)) for s, i in data.get("activated", [])}
        self.positions = {
            (int(item["schedule_id"]), item["account"].lower()): AccountPosition(
                authenticated_total=int(item["authenticated_total"]),
                claimed=int(item["claimed"]),
            )
            for item in data.get("positions", [])
        }
