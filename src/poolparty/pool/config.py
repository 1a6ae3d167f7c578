"""Configuration for the slot pool and the telegraphy protocol."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import math


class Modulation(Enum):
    """How the sender moves from one occupancy level to the next."""
    DELTA = "delta"            # Release or consume the signed difference
    REFILL = "refill"          # Re-saturate, then release the target level


@dataclass
class PoolConfig:
    """Constants shared by both participants of a session.

    Both sides must run with identical values: the grid interval, the
    pulse schedule and the digit radix are all derived from them.
    The constants depend on the resource kind and on the environment
    enforcing the cap, so they are injected rather than detected.
    """

    # Payload shape
    list_size: int = 5                 # Digits per transmitted integer
    max_slots: int = 255               # External cap on concurrent slots
    max_value: int = 128               # Radix; digits are 0..max_value-1

    # Timing
    pulse_ms: float = 50               # One digit per pulse
    negotiate_ms: float = 50           # Lead time before the first pulse
    settling_time_ms: float = 0        # Let create/destroy resolve before sampling
    create_timeout_ms: float = 5000    # Creation attempts slower than this fail
    destroy_timeout_ms: float = 1000   # Destroy is abandoned after this

    # Negotiation / modulation
    oversaturation: int = 2            # k: consume(max_slots * k) during negotiation
    modulation: Modulation = Modulation.DELTA
    refill_margin: int = 5             # Extra slots requested on REFILL

    def __post_init__(self):
        if self.list_size < 1:
            raise ValueError(f"list_size must be positive, got {self.list_size}")
        if self.max_slots < 1:
            raise ValueError(f"max_slots must be positive, got {self.max_slots}")
        if self.max_value < 2:
            raise ValueError(f"max_value must be at least 2, got {self.max_value}")
        if self.max_value > self.max_slots:
            raise ValueError(
                f"max_value ({self.max_value}) cannot exceed max_slots ({self.max_slots})"
            )
        if self.oversaturation < 1:
            raise ValueError(f"oversaturation must be >= 1, got {self.oversaturation}")
        if self.pulse_ms <= 0:
            raise ValueError(f"pulse_ms must be positive, got {self.pulse_ms}")
        if min(self.negotiate_ms, self.settling_time_ms,
               self.create_timeout_ms, self.destroy_timeout_ms) < 0:
            raise ValueError("timings must not be negative")
        # A probe must be reclaimed well inside the half pulse that
        # separates the sample point from the next level change.
        if self.settling_time_ms >= self.pulse_ms / 2:
            raise ValueError(
                f"settling_time_ms ({self.settling_time_ms}) must be below "
                f"half a pulse ({self.pulse_ms / 2})"
            )

    @property
    def num_bits(self) -> float:
        """Payload width in bits (fractional when max_value is not a power of two)."""
        return self.list_size * math.log2(self.max_value)

    @property
    def hex_width(self) -> int:
        return math.ceil(self.num_bits / 4)

    @property
    def capacity(self) -> int:
        """Number of distinct payloads: max_value ** list_size."""
        return self.max_value ** self.list_size

    @property
    def cycle_ms(self) -> float:
        """Grid interval holding negotiation, every pulse and one trailing pulse."""
        return self.negotiate_ms + (self.list_size + 1) * self.pulse_ms

    @property
    def negotiation_request(self) -> int:
        return self.max_slots * self.oversaturation

    @classmethod
    def for_chrome(cls) -> "PoolConfig":
        """Preset for Chromium's per-profile WebSocket cap (255)."""
        return cls(
            list_size=5,
            max_slots=255,
            max_value=128,
            pulse_ms=50,
            negotiate_ms=50,
            settling_time_ms=0,
        )

    @classmethod
    def for_firefox(cls) -> "PoolConfig":
        """Preset for Firefox: slower teardown, so longer pulses and refill modulation."""
        return cls(
            list_size=5,
            max_slots=255,
            max_value=128,
            pulse_ms=350,
            negotiate_ms=350,
            settling_time_ms=50,
            modulation=Modulation.REFILL,
        )

    @classmethod
    def for_event_stream(cls) -> "PoolConfig":
        """Preset for an HTTP/1.1 per-host connection cap (6 streams)."""
        return cls(
            list_size=8,
            max_slots=6,
            max_value=4,
            pulse_ms=100,
            negotiate_ms=100,
            settling_time_ms=20,
        )

    @classmethod
    def for_worker(cls) -> "PoolConfig":
        """Preset for a process cap of 64 workers; spawning is slow, so pulses are long."""
        return cls(
            list_size=5,
            max_slots=64,
            max_value=32,
            pulse_ms=250,
            negotiate_ms=250,
            settling_time_ms=50,
        )

    @classmethod
    def for_testing(cls) -> "PoolConfig":
        """Small, fast config for in-memory providers."""
        return cls(
            list_size=4,
            max_slots=32,
            max_value=16,
            pulse_ms=40,
            negotiate_ms=40,
            settling_time_ms=0,
            create_timeout_ms=500,
            destroy_timeout_ms=200,
        )

    @classmethod
    def for_environment(cls, kind: str, environment: Optional[str] = None) -> "PoolConfig":
        """Look up the preset for a (resource kind, environment) pair.

        With no environment, the first preset registered for the kind is used.
        """
        presets = {
            ("websocket", "chrome"): cls.for_chrome,
            ("websocket", "firefox"): cls.for_firefox,
            ("event_stream", "default"): cls.for_event_stream,
            ("worker", "default"): cls.for_worker,
            ("memory", "testing"): cls.for_testing,
        }
        kind = kind.lower()
        if environment is None:
            environment = next((env for k, env in presets if k == kind), "")
        factory = presets.get((kind, environment.lower()))
        if factory is None:
            raise ValueError(f"No preset for resource kind {kind!r} on {environment!r}")
        return factory()
