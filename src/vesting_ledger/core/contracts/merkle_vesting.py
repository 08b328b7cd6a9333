"""
Merkle Vesting Ledger.

Holds fungible tokens in custody for many vesting schedules. Each schedule
commits to its allocations with a single Merkle root; beneficiaries activate
their leaves by presenting proofs and then withdraw whatever has vested.

Features:
- Owner-gated schedule creation funded atomically via transfer_from
- Batch activation with all-or-nothing proof verification
- Start unlock fraction, cliff and monthly linear accrual
- Per-schedule custody accounting
- Reentrancy guard around every token interaction
"""

from __future__ import annotations

import hashlib
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from ...blockchain.balance_tree import EntitlementProof
from ...blockchain.ledger_events import Claimed, LedgerEvent, ScheduleCreated
from ...blockchain.vesting_manager import AccountPosition, VestingManager
from ...blockchain.vesting_schedule import Schedule, ScheduleRegistry
from ..config import Config
from ..ledger_exceptions import (
    InvalidTokenError,
    MalformedBatchError,
    NotOwnerError,
    NothingToClaimError,
    ReentrantCallError,
    TransferFailedError,
)
from .erc20 import FungibleToken

logger = logging.getLogger(__name__)


class MerkleVestingLedger:
    """
    Custody ledger releasing committed tokens along per-schedule vesting curves.

    All mutating calls take the acting address explicitly (msg.sender).
    """

    def __init__(
        self,
        token: FungibleToken,
        owner: str,
        address: str = "",
        time_provider: Callable[[], int] | None = None,
        period: int | None = None,
        max_batch_size: int | None = None,
    ):
        if token is None:
            raise InvalidTokenError("Vesting ledger requires a token collaborator.")

        self.token = token
        self.owner = VestingManager.normalize_account(owner)
        if not address:
            addr_hash = hashlib.sha3_256(
                f"vesting:{self.owner}:{time.time()}".encode()
            ).digest()
            address = f"0x{addr_hash[-20:].hex()}"
        self.address = address.lower()

        self.registry = ScheduleRegistry(
            period if period is not None else Config.VESTING_PERIOD_SECONDS
        )
        self.manager = VestingManager(
            self.registry,
            time_provider=time_provider,
            event_sink=self._emit,
            max_batch_size=(
                max_batch_size if max_batch_size is not None else Config.MAX_BATCH_SIZE
            ),
        )
        self.custody: Dict[int, int] = {}
        self.events: List[LedgerEvent] = []

        # Reentrancy guard
        self._locked = False

        logger.info(
            "Vesting ledger deployed",
            extra={
                "event": "vesting.ledger_deployed",
                "address": self.address[:10],
                "owner": self.owner[:10],
                "period": self.registry.period,
            },
        )

    # ==================== Schedule Registry ====================

    def create_schedule(
        self,
        caller: str,
        schedule_id: int,
        start_time: int,
        cliff_duration: int,
        recurrences: int,
        start_bps: int,
        merkle_root: Any,
        total_committed: int,
    ) -> Schedule:
        """
        Register a vesting schedule and pull its tokens into custody.

        Args:
            caller: Must be the ledger owner; funds the schedule
            schedule_id: Non-zero identifier, write-once
            start_time: When the start fraction unlocks
            cliff_duration: Seconds after start_time before accrual begins
            recurrences: Number of linear accrual periods
            start_bps: Start unlock fraction in basis points
            merkle_root: 32-byte commitment to the allocations
            total_committed: Tokens pulled from caller via transfer_from

        Returns:
            The stored Schedule

        Raises:
            NotOwnerError: Caller is not the owner
            ValidationError subclasses: Malformed parameters
            DuplicateCommitmentError: Identifier already in use
            TokenError subclasses: Funding failed; nothing is registered
        """
        self._require_owner(caller)
        schedule = self.registry.build(
            schedule_id,
            start_time,
            cliff_duration,
            recurrences,
            start_bps,
            merkle_root,
            total_committed,
        )
        self._require_not_locked()

        try:
            self._locked = True

            self.registry.register(schedule)
            self.custody[schedule_id] = total_committed
            try:
                ok = self.token.transfer_from(
                    self.address, caller, self.address, total_committed
                )
                if ok is False:
                    raise TransferFailedError(
                        "Token refused to fund schedule.",
                        details={"schedule_id": schedule_id, "amount": total_committed},
                    )
            except Exception:
                self.registry.unregister(schedule_id)
                del self.custody[schedule_id]
                raise

            self._emit(
                ScheduleCreated(
                    schedule_id=schedule_id,
                    start_time=schedule.start_time,
                    cliff_duration=schedule.cliff_duration,
                    recurrences=schedule.recurrences,
                    start_bps=schedule.start_bps,
                    merkle_root=schedule.merkle_root,
                    total=total_committed,
                )
            )

            logger.info(
                "Vesting schedule created",
                extra={
                    "event": "vesting.schedule_created",
                    "schedule_id": schedule_id,
                    "start_time": schedule.start_time,
                    "end_time": schedule.end_time,
                    "total": str(total_committed),
                },
            )

            return schedule

        finally:
            self._locked = False

    def get_schedule(self, schedule_id: int) -> Optional[Schedule]:
        return self.registry.get(schedule_id)

    def merkle_root(self, schedule_id: int) -> Optional[bytes]:
        schedule = self.registry.get(schedule_id)
        return schedule.merkle_root if schedule else None

    # ==================== Entitlements ====================

    def activate(
        self,
        schedule_id: int,
        account: str,
        entries: Sequence[EntitlementProof],
    ) -> List[EntitlementProof]:
        """Activate structured (index, amount, proof) entries for an account."""
        return self.manager.activate(schedule_id, account, entries)

    def activate_entitlements(
        self,
        schedule_id: int,
        account: str,
        indexes: Sequence[int],
        amounts: Sequence[int],
        proofs: Sequence[Sequence[bytes]],
    ) -> List[EntitlementProof]:
        """
        Parallel-list form of activate().

        Anyone may submit on behalf of ``account``; the proofs bind the
        allocation to it.

        Raises:
            MalformedBatchError: The three lists differ in length
        """
        if not (len(indexes) == len(amounts) == len(proofs)):
            raise MalformedBatchError(
                "indexes, amounts and proofs must have equal length.",
                details={
                    "indexes": len(indexes),
                    "amounts": len(amounts),
                    "proofs": len(proofs),
                },
            )
        entries = [
            EntitlementProof(index, amount, tuple(proof))
            for index, amount, proof in zip(indexes, amounts, proofs)
        ]
        return self.activate(schedule_id, account, entries)

    def is_activated(self, schedule_id: int, index: int) -> bool:
        return self.manager.is_activated(schedule_id, index)

    def get_position(self, schedule_id: int, account: str) -> Optional[AccountPosition]:
        return self.manager.get_position(schedule_id, account)

    def get_vested_amount(
        self, schedule_id: int, account: str, current_time: int | None = None
    ) -> int:
        return self.manager.get_vested_amount(schedule_id, account, current_time)

    def get_claimable(
        self, schedule_id: int, account: str, current_time: int | None = None
    ) -> int:
        return self.manager.get_claimable(schedule_id, account, current_time)

    def custody_balance(self, schedule_id: int) -> int:
        return self.custody.get(schedule_id, 0)

    # ==================== Claims ====================

    def claim(self, schedule_id: int, caller: str, current_time: int | None = None) -> int:
        """
        Withdraw everything currently claimable to the caller.

        Args:
            schedule_id: Schedule to claim from
            caller: Beneficiary (msg.sender)
            current_time: Override for the clock (default: time provider)

        Returns:
            Amount transferred

        Raises:
            NothingToClaimError: Nothing is claimable right now
            ReentrantCallError: Called from within a token callback
            TransferFailedError: Custody or token transfer failed
        """
        self._require_not_locked()

        try:
            self._locked = True

            if current_time is None:
                current_time = self.manager.current_time()
            else:
                current_time = self.manager.coerce_timestamp(current_time)
            amount = self.manager.get_claimable(schedule_id, caller, current_time)
            if amount == 0:
                raise NothingToClaimError(
                    f"Nothing to claim from schedule {schedule_id}.",
                    details={"schedule_id": schedule_id, "account": caller},
                )

            account = caller.lower()
            custody = self.custody.get(schedule_id, 0)
            if custody < amount:
                raise TransferFailedError(
                    "Schedule custody cannot cover the claim.",
                    details={"schedule_id": schedule_id, "custody": custody, "amount": amount},
                )

            # Effects before the external transfer
            self.manager.record_claim(schedule_id, account, amount)
            self.custody[schedule_id] = custody - amount
            try:
                ok = self.token.transfer(self.address, account, amount)
                if ok is False:
                    raise TransferFailedError(
                        "Token transfer to beneficiary failed.",
                        details={"schedule_id": schedule_id, "amount": amount},
                    )
            except Exception:
                self.manager.revert_claim(schedule_id, account, amount)
                self.custody[schedule_id] = custody
                raise

            self._emit(Claimed(schedule_id=schedule_id, account=account, amount=amount))

            logger.info(
                "Vested tokens claimed",
                extra={
                    "event": "vesting.claimed",
                    "schedule_id": schedule_id,
                    "account": account[:10],
                    "amount": str(amount),
                },
            )

            return amount

        finally:
            self._locked = False

    # ==================== Helpers ====================

    def _emit(self, event: LedgerEvent) -> None:
        self.events.append(event)

    def _require_owner(self, caller: str) -> None:
        if not isinstance(caller, str) or caller.lower() != self.owner:
            raise NotOwnerError("Caller is not the ledger owner.")

    def _require_not_locked(self) -> None:
        if self._locked:
            raise ReentrantCallError("Reentrant call to vesting ledger.")

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "owner": self.owner,
            "period": self.registry.period,
            "schedules": [schedule.to_dict() for schedule in self.registry],
            "custody": {str(sid): str(amount) for sid, amount in self.custody.items()},
            **self.manager.to_dict(),
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        token: FungibleToken,
        time_provider: Callable[[], int] | None = None,
        max_batch_size: int | None = None,
    ) -> "MerkleVestingLedger":
        """Restore a ledger from to_dict() output; events are not restored."""
        ledger = cls(
            token,
            owner=data["owner"],
            address=data["address"],
            time_provider=time_provider,
            period=int(data["period"]),
            max_batch_size=max_batch_size,
        )
        for item in data.get("schedules", []):
            ledger.registry.register(Schedule.from_dict(item))
        ledger.custody = {int(sid): int(amount) for sid, amount in data.get("custody", {}).items()}
        ledger.manager.load_dict(data)
        return ledger
