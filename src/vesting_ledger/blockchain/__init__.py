"""
Merkle commitments, vesting schedules and entitlement bookkeeping.
"""

__all__ = []
