"""
Shared test data for vesting ledger tests.

The distribution mirrors a realistic launch: alice holds three allocations,
bob two, carol one; don holds none.
"""

from vesting_ledger.core.config import DEFAULT_PERIOD_SECONDS

E18 = 10**18
PERIOD = DEFAULT_PERIOD_SECONDS
T0 = 1_700_000_000

START_DELAY = 1800
CLIFF_DURATION = 3600
RECURRENCES = 12
START_BPS = 1500
SCHEDULE_ID = 1


def addr(index: int) -> str:
    return f"0x{index:040x}"


DEPLOYER = addr(0xD1)
ALICE = addr(0xA1)
BOB = addr(0xB0)
CAROL = addr(0xCA)
DON = addr(0xD0)

VESTINGS = [
    (ALICE, 10_000 * E18),
    (BOB, 5_000 * E18),
    (ALICE, 23_500 * E18),
    (CAROL, 1_111 * E18),
    (BOB, 10_000 * E18),
    (ALICE, 10_000 * E18),
]

START = T0 + START_DELAY
CLIFF_END = START + CLIFF_DURATION
END = CLIFF_END + RECURRENCES * PERIOD


class Clock:
    """Mutable time source for deterministic tests."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds
