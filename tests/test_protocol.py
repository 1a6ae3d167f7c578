"""Tests for role negotiation and the send/receive pulse schedule."""

import asyncio
import random

import pytest

from poolparty.engine import (
    Clock,
    ProtocolState,
    Role,
    RoleClassifier,
    TelegraphEngine,
)
from poolparty.engine.codec import integer_to_digits
from poolparty.pool import Modulation, PoolConfig, SlotPool
from poolparty.providers import CappedEndpoint, InMemoryProvider


def make_engine(endpoint, config, owner, clock=None):
    pool = SlotPool(InMemoryProvider(endpoint, owner=owner), config)
    return TelegraphEngine(pool, config, clock=clock)


class TestRoleClassifier:
    """Held-count thresholds and digit readings."""

    def test_majority_sends(self, config):
        decision = RoleClassifier(config).classify_role(config.max_slots)
        assert decision.role == Role.SENDER
        assert not decision.tie

    def test_minority_receives(self, config):
        assert RoleClassifier(config).classify_role(3).role == Role.RECEIVER

    def test_exact_half_is_flagged_tie(self, config):
        """Holding exactly max_slots / 2 resolves to sender and is marked."""
        decision = RoleClassifier(config).classify_role(config.max_slots // 2)
        assert decision.role == Role.SENDER
        assert decision.tie

    def test_reading_offsets_by_one(self, config):
        """One free slot is digit 0; zero free slots is no signal."""
        classifier = RoleClassifier(config)
        assert classifier.classify_reading(1).digit == 0
        assert classifier.classify_reading(config.max_value).digit == config.max_value - 1
        assert not classifier.classify_reading(0).valid
        assert not classifier.classify_reading(config.max_value + 1).valid


class TestNegotiation:
    """Racing for the shared cap."""

    @pytest.mark.asyncio
    async def test_sole_participant_becomes_sender(self, endpoint, config):
        """With no peer, over-saturation takes the whole cap."""
        engine = make_engine(endpoint, config, "solo")
        decision = await engine.negotiate_role()
        assert decision.role == Role.SENDER
        assert engine.pool.held_count == config.max_slots
        assert endpoint.in_use == config.max_slots

    @pytest.mark.asyncio
    async def test_receiver_vacates(self, endpoint, config):
        """A participant that loses the race releases everything."""
        squatter = SlotPool(InMemoryProvider(endpoint, owner="peer"), config)
        await squatter.consume(config.max_slots - 3)
        engine = make_engine(endpoint, config, "late")
        decision = await engine.negotiate_role()
        assert decision.role == Role.RECEIVER
        assert decision.held == 3
        assert engine.pool.held_count == 0

    @pytest.mark.asyncio
    async def test_starts_fresh(self, endpoint, config):
        """Slots held from a previous cycle are released before racing."""
        engine = make_engine(endpoint, config, "solo")
        await engine.pool.consume(5)
        first = list(engine.pool.resources)
        await engine.negotiate_role()
        assert all(r.destroyed for r in first)

    @pytest.mark.asyncio
    async def test_two_participants_split_roles(self, endpoint, config):
        a = make_engine(endpoint, config, "a")
        b = make_engine(endpoint, config, "b")
        decisions = await asyncio.gather(a.negotiate_role(), b.negotiate_role())
        assert {d.role for d in decisions} == {Role.SENDER, Role.RECEIVER}


class TestSendSchedule:
    """Sender levels and timing under a fake clock."""

    @pytest.mark.asyncio
    async def test_levels_and_pulse_deadlines(self, endpoint, config, fake_time):
        clock = Clock(now_ms=fake_time.now_ms, sleep=fake_time.sleep)
        engine = make_engine(endpoint, config, "sender", clock=clock)
        value = 1 + 2 * 16 + 15 * 16 ** 3
        start = fake_time.now + 100

        result = await engine.send_integer(value, start)

        assert result.digits == [1, 2, 0, 15]
        assert result.levels == [2, 3, 1, 16]
        assert result.hex == "f021"
        # Final level still held: 16 slots left free
        assert endpoint.available == 16
        assert fake_time.now == pytest.approx(start + config.list_size * config.pulse_ms)

    @pytest.mark.asyncio
    async def test_refill_reaches_same_levels(self, endpoint, fake_time):
        config = PoolConfig(
            list_size=4, max_slots=32, max_value=16, pulse_ms=40, negotiate_ms=40,
            modulation=Modulation.REFILL,
        )
        clock = Clock(now_ms=fake_time.now_ms, sleep=fake_time.sleep)
        engine = make_engine(endpoint, config, "sender", clock=clock)
        result = await engine.send_integer(0xf021, fake_time.now)
        assert result.levels == [2, 3, 1, 16]
        assert endpoint.available == 16

    @pytest.mark.asyncio
    async def test_rejects_oversized_payload(self, endpoint, config):
        engine = make_engine(endpoint, config, "sender")
        with pytest.raises(ValueError):
            await engine.send_integer(config.capacity, 0)
        with pytest.raises(ValueError):
            await engine.send_integer(-1, 0)


class TestReceive:
    """Receiver behaviour without a well-behaved sender."""

    @pytest.mark.asyncio
    async def test_no_signal_aborts_early(self, endpoint, config):
        """If the peer never frees a slot the first probe reads 0 and the cycle aborts."""
        squatter = SlotPool(InMemoryProvider(endpoint, owner="peer"), config)
        await squatter.consume(config.max_slots)
        engine = make_engine(endpoint, config, "receiver")
        result = await engine.receive_integer(engine.clock.now_ms())
        assert not result.valid
        assert result.digits == []
        assert result.value is None
        assert "no signal" in result.reason
        assert engine.pool.held_count == 0

    @pytest.mark.asyncio
    async def test_partial_digits_reported(self, endpoint):
        """Digits read before the desync are kept in the result."""
        config = PoolConfig(list_size=4, max_slots=32, max_value=16, pulse_ms=100, negotiate_ms=100)
        squatter = SlotPool(InMemoryProvider(endpoint, owner="peer"), config)
        await squatter.consume(config.max_slots - 3)
        engine = make_engine(endpoint, config, "receiver")
        start = engine.clock.now_ms()

        async def grab_remaining():
            await asyncio.sleep(config.pulse_ms / 1000)
            await squatter.consume(3)

        result, _ = await asyncio.gather(engine.receive_integer(start), grab_remaining())
        assert not result.valid
        assert result.digits == [2]
        assert "digit 1" in result.reason


class TestEndToEnd:
    """Two engines sharing only an endpoint and the wall clock."""

    async def _exchange(self, config, value):
        endpoint = CappedEndpoint(capacity=config.max_slots)
        a = make_engine(endpoint, config, "a")
        b = make_engine(endpoint, config, "b")
        results = await asyncio.gather(a.run_cycle(value), b.run_cycle(value))
        await a.drain()
        await b.drain()
        assert endpoint.in_use == 0
        sent = next(r for r in results if r.role == Role.SENDER)
        got = next(r for r in results if r.role == Role.RECEIVER)
        return sent, got

    @pytest.mark.asyncio
    async def test_reference_payload(self):
        """5 digits of radix 128 carry 12345678901 intact."""
        config = PoolConfig(
            list_size=5, max_slots=255, max_value=128,
            pulse_ms=60, negotiate_ms=60, settling_time_ms=0,
        )
        sent, got = await self._exchange(config, 12345678901)
        assert sent.digits == integer_to_digits(12345678901, 5, 128)
        assert got.valid
        assert got.digits == sent.digits
        assert got.value == 12345678901
        assert got.hex == sent.hex == format(12345678901, "09x")

    @pytest.mark.asyncio
    async def test_zero_digits_distinguishable(self, config):
        """An all-zero payload leaves one free slot per pulse and decodes to 0."""
        sent, got = await self._exchange(config, 0)
        assert got.valid
        assert got.digits == [0] * config.list_size
        assert got.hex == sent.hex

    @pytest.mark.asyncio
    async def test_refill_modulation(self):
        config = PoolConfig(
            list_size=4, max_slots=32, max_value=16, pulse_ms=60, negotiate_ms=60,
            modulation=Modulation.REFILL,
        )
        sent, got = await self._exchange(config, 0xbeef)
        assert got.valid
        assert got.value == 0xbeef


class TestDrain:

    @pytest.mark.asyncio
    async def test_drained_engine_refuses_work(self, endpoint, config):
        engine = make_engine(endpoint, config, "solo")
        await engine.negotiate_role()
        await engine.drain()
        await engine.drain()
        assert engine.state == ProtocolState.DRAINED
        assert endpoint.in_use == 0
        with pytest.raises(RuntimeError):
            await engine.negotiate_role()


class TestRandomPayload:

    def test_covers_whole_capacity(self, endpoint):
        """Random payloads reach capacity - 1 when the radix is not a power of two."""
        config = PoolConfig(list_size=5, max_slots=32, max_value=3)
        engine = TelegraphEngine(
            SlotPool(InMemoryProvider(endpoint), config), config, rng=random.Random(11),
        )
        draws = [engine.random_payload() for _ in range(20000)]
        assert max(draws) == config.capacity - 1
        assert all(0 <= d < config.capacity for d in draws)
