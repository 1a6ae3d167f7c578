"""Resource-pool telegraphy - the protocol state machine."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import logging
import random
import time

from ..pool import Modulation, PoolConfig, SlotPool
from .classifier import DigitReading, Role, RoleClassifier, RoleDecision
from .clock import Clock
from .codec import digits_to_integer, integer_to_digits, to_fixed_hex

logger = logging.getLogger(__name__)


class ProtocolState(Enum):
    IDLE = "idle"
    ROLE_NEGOTIATION = "role_negotiation"
    SENDING = "sending"
    RECEIVING = "receiving"
    DRAINED = "drained"


@dataclass
class SendResult:
    """What the sender put on the wire."""
    value: int
    digits: List[int]
    hex: str
    levels: List[int] = field(default_factory=list)   # Free slots left per pulse


@dataclass
class ReceiveResult:
    """What the receiver read; partial when a reading was out of range."""
    digits: List[int]
    readings: List[DigitReading]
    valid: bool
    value: Optional[int] = None
    hex: Optional[str] = None
    reason: Optional[str] = None


@dataclass
class CycleResult:
    """Result of one negotiate-then-transmit cycle."""
    role: Role
    decision: RoleDecision
    t0_ms: float
    elapsed_ms: float
    hex: Optional[str]
    valid: bool
    digits: List[int]
    value: Optional[int] = None
    reason: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role.value,
            "hex": self.hex,
            "valid": self.valid,
            "digits": list(self.digits),
            "held_at_negotiation": self.decision.held,
            "t0_ms": self.t0_ms,
            "elapsed_ms": self.elapsed_ms,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat(),
        }


class TelegraphEngine:
    """Sends or receives one fixed-width integer per cycle over a slot pool.

    Each cycle:
    1. Align to the next grid point t0 (multiple of ``config.cycle_ms``)
    2. Negotiate: release all, over-saturate the cap, sweep, compare with half
    3a. Sender: top up to full, then from t0 + negotiate_ms leave
        ``digit + 1`` slots free for one pulse per digit
    3b. Receiver: release all, then probe mid-pulse for each digit
    4. Sender releases its final level during the trailing pulse

    Neither side talks to the other; agreement rests on both clocks
    reaching the same t0 and on the shared cap.
    """

    def __init__(
        self,
        pool: SlotPool,
        config: Optional[PoolConfig] = None,
        clock: Optional[Clock] = None,
        classifier: Optional[RoleClassifier] = None,
        rng: Optional[random.Random] = None,
    ):
        self.pool = pool
        self.config = config or pool.config
        self.clock = clock or Clock()
        self.classifier = classifier or RoleClassifier(self.config)
        self.rng = rng or random.Random()
        self.state = ProtocolState.IDLE

    def _check_open(self):
        if self.state == ProtocolState.DRAINED:
            raise RuntimeError("Engine has been drained; create a new session")

    async def is_sender(self) -> bool:
        decision = await self.negotiate_role()
        return decision.role == Role.SENDER

    async def negotiate_role(self) -> RoleDecision:
        """Race the peer for the shared cap and pick a role from what we got."""
        self._check_open()
        self.state = ProtocolState.ROLE_NEGOTIATION
        pool = self.pool

        await pool.release(pool.held_count)
        await pool.consume(self.config.negotiation_request)
        await self.clock.sleep_ms(self.config.settling_time_ms)
        await pool.sweep_dead()

        decision = self.classifier.classify_role(pool.held_count)
        if decision.role == Role.RECEIVER:
            await pool.release(pool.held_count)
        if decision.tie:
            logger.warning("Role negotiation tie: %s", decision.reason)
        else:
            logger.info("Negotiated %s: %s", decision.role.value, decision.reason)
        return decision

    async def send_integer(self, value: int, start_ms: float) -> SendResult:
        """Modulate occupancy so each pulse leaves ``digit + 1`` slots free."""
        self._check_open()
        config = self.config
        if not 0 <= value < config.capacity:
            raise ValueError(
                f"Payload {value} outside [0, {config.capacity}) for "
                f"{config.list_size} digits of radix {config.max_value}"
            )
        self.state = ProtocolState.SENDING
        pool = self.pool
        digits = integer_to_digits(value, config.list_size, config.max_value)

        await pool.consume(config.max_slots - pool.held_count)

        levels = []
        last_target = 0
        for i, digit in enumerate(digits):
            await self.clock.sleep_until(start_ms + i * config.pulse_ms)
            target = digit + 1
            if config.modulation == Modulation.REFILL:
                await pool.consume(last_target + config.refill_margin)
                await pool.release(target)
            else:
                delta = target - last_target
                if delta > 0:
                    await pool.release(delta)
                elif delta < 0:
                    await pool.consume(-delta)
            levels.append(target)
            last_target = target

        # Hold the last level until its pulse ends
        await self.clock.sleep_until(start_ms + config.list_size * config.pulse_ms)

        hex_value = to_fixed_hex(value, config.num_bits)
        logger.debug("sent digits %s (%s)", digits, hex_value)
        return SendResult(value=value, digits=digits, hex=hex_value, levels=levels)

    async def receive_integer(self, start_ms: float) -> ReceiveResult:
        """Probe for free slots in the middle of every pulse."""
        self._check_open()
        self.state = ProtocolState.RECEIVING
        config = self.config
        digits: List[int] = []
        readings: List[DigitReading] = []

        for i in range(config.list_size):
            await self.clock.sleep_until(start_ms + (i + 0.5) * config.pulse_ms)
            probed = await self.pool.probe(config.max_value)
            reading = self.classifier.classify_reading(probed)
            readings.append(reading)
            if not reading.valid:
                reason = f"digit {i}: {reading.reason}"
                logger.warning("Receive aborted after %d digit(s): %s", len(digits), reason)
                return ReceiveResult(digits=digits, readings=readings, valid=False, reason=reason)
            digits.append(reading.digit)

        value = digits_to_integer(digits, config.max_value)
        hex_value = to_fixed_hex(value, config.num_bits)
        logger.debug("received digits %s (%s)", digits, hex_value)
        return ReceiveResult(
            digits=digits,
            readings=readings,
            valid=True,
            value=value,
            hex=hex_value,
        )

    def random_payload(self) -> int:
        return self.rng.randrange(self.config.capacity)

    async def run_cycle(self, value: Optional[int] = None) -> CycleResult:
        """Align, negotiate, then send ``value`` (random if None) or receive."""
        self._check_open()
        t0 = await self.clock.align_to_grid(self.config.cycle_ms)
        cycle_start = time.perf_counter()
        decision = await self.negotiate_role()
        start_ms = t0 + self.config.negotiate_ms

        if decision.role == Role.SENDER:
            payload = value if value is not None else self.random_payload()
            sent = await self.send_integer(payload, start_ms)
            await self.pool.release(self.pool.held_count)
            result = CycleResult(
                role=Role.SENDER,
                decision=decision,
                t0_ms=t0,
                elapsed_ms=(time.perf_counter() - cycle_start) * 1000,
                hex=sent.hex,
                valid=True,
                digits=sent.digits,
                value=sent.value,
            )
        else:
            received = await self.receive_integer(start_ms)
            result = CycleResult(
                role=Role.RECEIVER,
                decision=decision,
                t0_ms=t0,
                elapsed_ms=(time.perf_counter() - cycle_start) * 1000,
                hex=received.hex,
                valid=received.valid,
                digits=received.digits,
                value=received.value,
                reason=received.reason,
            )

        self.state = ProtocolState.IDLE
        logger.info(
            "%s: %s, elapsed, ms: %.0f",
            result.role.value, result.hex if result.valid else f"invalid ({result.reason})",
            result.elapsed_ms,
        )
        return result

    async def drain(self) -> int:
        """Release every held slot and stop. Idempotent."""
        released = await self.pool.drain()
        self.state = ProtocolState.DRAINED
        return released
