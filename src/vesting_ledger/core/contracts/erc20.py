"""
Fungible token collaborator for the vesting ledger.

``FungibleToken`` is the narrow surface the ledger calls. ``ERC20Token`` is an
in-memory implementation with explicit caller arguments, used for local
simulations and tests. Failures raise from the ledger exception hierarchy so
callers see one set of error types.
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Protocol, runtime_checkable

from ..config import UINT256_MAX
from ..ledger_exceptions import (
    InsufficientAllowanceError,
    InsufficientBalanceError,
    InvalidAccountError,
    InvalidAmountError,
    NotOwnerError,
)

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x" + "0" * 40


@runtime_checkable
class FungibleToken(Protocol):
    """Token operations the vesting ledger depends on."""

    def transfer(self, sender: str, recipient: str, amount: int) -> bool: ...

    def transfer_from(self, spender: str, from_addr: str, to_addr: str, amount: int) -> bool: ...

    def balance_of(self, account: str) -> int: ...


@dataclass
class TokenEvent:
    event_type: str  # Transfer | Approval
    from_address: str
    to_address: str
    value: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ERC20Token:
    """
    In-memory ERC20 ledger.

    State-changing methods take the acting address first (msg.sender), so a
    contract such as the vesting ledger can move tokens out of its own
    custody address or pull approved funds from an owner.
    """

    name: str
    symbol: str
    decimals: int = 18
    total_supply: int = 0
    address: str = ""
    owner: str = ""

    balances: Dict[str, int] = field(default_factory=dict)
    allowances: Dict[str, Dict[str, int]] = field(default_factory=dict)
    events: List[TokenEvent] = field(default_factory=list)

    UINT256_MAX: int = UINT256_MAX

    def __post_init__(self) -> None:
        if not self.address:
            seed = f"erc20:{self.symbol}:{self.owner}:{time.time()}".encode()
            self.address = f"0x{hashlib.sha3_256(seed).digest()[-20:].hex()}"
        self.owner = self.owner.lower()

    # ==================== Reads ====================

    def balance_of(self, account: str) -> int:
        return self.balances.get(account.lower(), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get(owner.lower(), {}).get(spender.lower(), 0)

    # ==================== Writes ====================

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """
        Move ``amount`` from sender to recipient.

        Raises:
            InsufficientBalanceError: Sender cannot cover the amount
        """
        self._move(sender.lower(), recipient.lower(), amount)
        return True

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        spender = spender.lower()
        self._check_account(spender, "spender")
        self._check_amount(amount)
        self.allowances.setdefault(owner.lower(), {})[spender] = amount
        self.events.append(TokenEvent("Approval", owner.lower(), spender, amount))
        return True

    def transfer_from(self, spender: str, from_addr: str, to_addr: str, amount: int) -> bool:
        """
        Move ``amount`` out of ``from_addr`` on its approval to ``spender``.

        An allowance of UINT256_MAX is treated as unlimited and never spent.

        Raises:
            InsufficientAllowanceError: Approval does not cover the amount
            InsufficientBalanceError: Owner cannot cover the amount
        """
        spender, from_addr = spender.lower(), from_addr.lower()
        self._check_amount(amount)

        approved = self.allowance(from_addr, spender)
        if approved < amount:
            raise InsufficientAllowanceError(
                f"{self.symbol}: allowance {approved} below {amount}",
                details={"owner": from_addr, "spender": spender, "allowance": approved},
            )

        self._move(from_addr, to_addr.lower(), amount)
        if approved != self.UINT256_MAX:
            self.allowances[from_addr][spender] = approved - amount
        return True

    def mint(self, minter: str, to: str, amount: int) -> bool:
        """Create ``amount`` new tokens for ``to``; owner only."""
        if minter.lower() != self.owner:
            raise NotOwnerError(f"{self.symbol}: only the owner can mint")
        to = to.lower()
        self._check_account(to, "recipient")
        self._check_amount(amount)
        if self.total_supply + amount > self.UINT256_MAX:
            raise InvalidAmountError(f"{self.symbol}: total supply would overflow")

        self.total_supply += amount
        self.balances[to] = self.balances.get(to, 0) + amount
        self.events.append(TokenEvent("Transfer", ZERO_ADDRESS, to, amount))

        logger.info(
            "Minted %s %s",
            amount,
            self.symbol,
            extra={"event": "erc20.mint", "to": to[:10], "total_supply": str(self.total_supply)},
        )
        return True

    # ==================== Internals ====================

    def _move(self, source: str, destination: str, amount: int) -> None:
        self._check_account(destination, "recipient")
        self._check_amount(amount)

        available = self.balances.get(source, 0)
        if available < amount:
            raise InsufficientBalanceError(
                f"{self.symbol}: balance {available} below {amount}",
                details={"account": source, "balance": available, "amount": amount},
            )

        self.balances[source] = available - amount
        self.balances[destination] = self.balances.get(destination, 0) + amount
        self.events.append(TokenEvent("Transfer", source, destination, amount))
        logger.debug(
            "Token transfer",
            extra={
                "event": "erc20.transfer",
                "from": source[:10],
                "to": destination[:10],
                "amount": str(amount),
            },
        )

    @staticmethod
    def _check_account(account: str, role: str) -> None:
        if not account or account == ZERO_ADDRESS:
            raise InvalidAccountError(f"Token {role} cannot be the zero address")

    def _check_amount(self, amount: int) -> None:
        if amount < 0 or amount > self.UINT256_MAX:
            raise InvalidAmountError(f"Token amount {amount} outside uint256 range")

    # ==================== Serialization ====================

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "total_supply": str(self.total_supply),
            "address": self.address,
            "owner": self.owner,
            "balances": {k: str(v) for k, v in self.balances.items()},
            "allowances": {
                owner: {spender: str(v) for spender, v in approved.items()}
                for owner, approved in self.allowances.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "ERC20Token":
        return cls(
            name=data["name"],
            symbol=data["symbol"],
            decimals=data.get("decimals", 18),
            total_supply=int(data.get("total_supply", 0)),
            address=data.get("address", ""),
            owner=data.get("owner", ""),
            balances={k: int(v) for k, v in data.get("balances", {}).items()},
            allowances={
                owner: {spender: int(v) for spender, v in approved.items()}
                for owner, approved in data.get("allowances", {}).items()
            },
        )
