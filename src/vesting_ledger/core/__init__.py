"""
Vesting Ledger Core Module

Ledger contract, token collaborator, exception hierarchy, configuration and
logging setup.
"""

__all__ = []
