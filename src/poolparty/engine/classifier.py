"""Role negotiation and digit-reading classification."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..pool.config import PoolConfig


class Role(Enum):
    """Role a participant takes for one cycle."""
    SENDER = "sender"
    RECEIVER = "receiver"


@dataclass
class RoleDecision:
    """Outcome of comparing held slots against half the cap."""
    role: Role
    held: int
    threshold: float
    tie: bool = False
    reason: Optional[str] = None


@dataclass
class DigitReading:
    """A single probe result interpreted as a digit."""
    probed: int
    digit: Optional[int]
    valid: bool
    reason: Optional[str] = None


class RoleClassifier:
    """Turn raw occupancy counts into protocol decisions.

    Role: after over-saturating the shared cap, whoever holds at least
    half of it sends. Holding exactly half is a tie; it resolves to
    SENDER and is flagged so the caller can log it.

    Digits: the sender leaves ``digit + 1`` slots free, so a probe
    reading of ``n`` decodes to ``n - 1``. A reading of 0 means nobody
    has released anything yet ("no signal"); a reading above
    ``max_value`` means more headroom than any digit can leave.
    """

    def __init__(self, config: PoolConfig):
        self.config = config

    @property
    def threshold(self) -> float:
        return self.config.max_slots / 2

    def classify_role(self, held: int) -> RoleDecision:
        threshold = self.threshold
        if held > threshold:
            return RoleDecision(
                role=Role.SENDER,
                held=held,
                threshold=threshold,
                reason=f"holding {held}/{self.config.max_slots} slots",
            )
        if held == threshold:
            return RoleDecision(
                role=Role.SENDER,
                held=held,
                threshold=threshold,
                tie=True,
                reason=f"holding exactly half ({held}) - tie resolves to sender",
            )
        return RoleDecision(
            role=Role.RECEIVER,
            held=held,
            threshold=threshold,
            reason=f"holding only {held}/{self.config.max_slots} slots",
        )

    def classify_reading(self, probed: int) -> DigitReading:
        if probed <= 0:
            return DigitReading(
                probed=probed,
                digit=None,
                valid=False,
                reason="no free slots - no signal",
            )
        if probed > self.config.max_value:
            return DigitReading(
                probed=probed,
                digit=None,
                valid=False,
                reason=f"{probed} free slots exceeds radix {self.config.max_value}",
            )
        return DigitReading(probed=probed, digit=probed - 1, valid=True)
