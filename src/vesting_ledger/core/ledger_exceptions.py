"""
Vesting ledger exception hierarchy.

Provides typed exceptions for schedule registration, entitlement activation,
claims and token collaborator failures so callers can react precisely instead
of parsing messages.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class LedgerError(Exception):
    """Base exception for all vesting ledger errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the operation can be retried
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    @property
    def code(self) -> str:
        """Stable machine-readable name (class name without the Error suffix)."""
        name = type(self).__name__
        return name[:-5] if name.endswith("Error") else name

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            out["details"] = dict(self.details)
        return out


# ==================== Validation Errors ====================


class ValidationError(LedgerError):
    """Raised when input is malformed, before any state is read."""
    pass


class InvalidIdentifierError(ValidationError):
    """Raised when a schedule identifier is zero or not a positive integer."""
    pass


class InvalidCommitmentError(ValidationError):
    """Raised when a Merkle root is zero or not 32 bytes."""
    pass


class InvalidFractionError(ValidationError):
    """Raised when the start unlock fraction is outside 0..10000 basis points."""
    pass


class InvalidRecurrencesError(ValidationError):
    """Raised when a schedule has no linear accrual periods."""
    pass


class InvalidTimingError(ValidationError):
    """Raised when schedule times are negative or the end time overflows."""
    pass


class InvalidAmountError(ValidationError):
    """Raised when an amount is negative or exceeds uint256."""
    pass


class InvalidAccountError(ValidationError):
    """Raised when an account is not a 20-byte hex address."""
    pass


class InvalidTokenError(ValidationError):
    """Raised when a ledger is constructed without a token collaborator."""
    pass


class MalformedBatchError(ValidationError):
    """Raised when activation inputs have mismatched lengths or bad entries."""
    pass


# ==================== Authentication & Authorization ====================


class AuthenticationError(LedgerError):
    """Raised when a claimed allocation cannot be authenticated."""
    pass


class InvalidProofError(AuthenticationError):
    """Raised when a Merkle proof does not fold to the committed root."""
    pass


class AuthorizationError(LedgerError):
    """Raised when the caller may not perform an operation."""
    pass


class NotOwnerError(AuthorizationError):
    """Raised when a non-owner attempts an owner-only operation."""
    pass


# ==================== State Errors ====================


class StateError(LedgerError):
    """Raised when a well-formed operation has no valid effect on current state."""
    pass


class DuplicateCommitmentError(StateError):
    """Raised when a schedule identifier already carries a commitment."""
    pass


class NothingNewToActivateError(StateError):
    """Raised when an activation batch contains no new entries."""
    pass


class NothingToClaimError(StateError):
    """Raised when the caller has no claimable amount right now."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("recoverable", True)  # Can retry once more has vested
        super().__init__(message, **kwargs)


class ReentrantCallError(StateError):
    """Raised when a token callback re-enters a mutating ledger operation."""
    pass


# ==================== Token Collaborator Errors ====================


class TokenError(LedgerError):
    """Raised when the fungible token collaborator fails."""
    pass


class InsufficientAllowanceError(TokenError):
    """Raised when a spender's allowance does not cover a transfer."""
    pass


class InsufficientBalanceError(TokenError):
    """Raised when an account lacks the balance for a transfer."""
    pass


class TransferFailedError(TokenError):
    """Raised when a token transfer signals failure by returning False."""
    pass


# ==================== Configuration Errors ====================


class ConfigurationError(LedgerError):
    """Raised when ledger configuration is missing or invalid."""
    recoverable = False


# ==================== Utility Functions ====================


def is_recoverable_error(exc: Exception) -> bool:
    """Check if an exception represents a recoverable error.

    Args:
        exc: The exception to check

    Returns:
        True if the operation can be resent without changes
    """
    if isinstance(exc, LedgerError):
        return exc.recoverable
    return False


__all__ = [
    "LedgerError",
    "ValidationError",
    "InvalidIdentifierError",
    "InvalidCommitmentError",
    "InvalidFractionError",
    "InvalidRecurrencesError",
    "InvalidTimingError",
    "InvalidAmountError",
    "InvalidAccountError",
    "InvalidTokenError",
    "MalformedBatchError",
    "AuthenticationError",
    "InvalidProofError",
    "AuthorizationError",
    "NotOwnerError",
    "StateError",
    "DuplicateCommitmentError",
    "NothingNewToActivateError",
    "NothingToClaimError",
    "ReentrantCallError",
    "TokenError",
    "InsufficientAllowanceError",
    "InsufficientBalanceError",
    "TransferFailedError",
    "ConfigurationError",
    "is_recoverable_error",
]
