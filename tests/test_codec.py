"""Tests for the fixed-radix digit codec."""

import random

import pytest

from poolparty.engine.codec import (
    digits_to_integer,
    integer_to_digits,
    random_integer,
    to_fixed_hex,
)
from poolparty.pool import PoolConfig


class TestDigits:
    """Integer <-> digit list conversion."""

    def test_least_significant_digit_first(self):
        """digits[0] carries the lowest power of the radix."""
        assert integer_to_digits(1 + 2 * 10 + 3 * 100, 3, 10) == [1, 2, 3]
        assert digits_to_integer([1, 2, 3], 10) == 321

    def test_always_list_size_digits(self):
        """Small values are padded with zero digits."""
        assert integer_to_digits(0, 5, 128) == [0, 0, 0, 0, 0]
        assert integer_to_digits(5, 4, 128) == [5, 0, 0, 0]

    def test_reference_payload(self):
        """12345678901 fits in 5 digits of radix 128 and round-trips."""
        digits = integer_to_digits(12345678901, 5, 128)
        assert len(digits) == 5
        assert all(0 <= d < 128 for d in digits)
        assert digits_to_integer(digits, 128) == 12345678901

    def test_round_trip_sampled(self):
        """Composition inverts decomposition across the domain."""
        rng = random.Random(7)
        for radix, size in [(2, 8), (3, 5), (128, 5), (200, 3)]:
            upper = radix ** size
            for value in [0, 1, upper - 1] + [rng.randrange(upper) for _ in range(50)]:
                assert digits_to_integer(integer_to_digits(value, size, radix), radix) == value

    def test_out_of_range_wraps(self):
        """Values at or above radix**size lose their high digits."""
        assert integer_to_digits(1000, 3, 10) == [0, 0, 0]


class TestHex:
    """Fixed-width hexadecimal rendering."""

    def test_padded_width(self):
        """35 bits render as 9 hex characters."""
        assert to_fixed_hex(0, 35) == "000000000"
        assert to_fixed_hex(255, 35) == "0000000ff"

    def test_fractional_bits_round_up(self):
        """A 3-digit radix-10 payload (~9.97 bits) needs 3 hex characters."""
        bits = 3 * 3.3219280948873626
        assert to_fixed_hex(999, bits) == "3e7"
        assert len(to_fixed_hex(0, bits)) == 3

    @pytest.mark.parametrize("config", [PoolConfig.for_chrome(), PoolConfig.for_testing()])
    def test_width_matches_config(self, config):
        """Every in-range value renders at exactly hex_width characters."""
        for value in [0, 1, config.capacity // 3, config.capacity - 1]:
            assert len(to_fixed_hex(value, config.num_bits)) == config.hex_width


class TestRandomInteger:
    """Random payload generation."""

    def test_within_bits(self):
        rng = random.Random(42)
        for _ in range(200):
            assert 0 <= random_integer(35, rng) < 2 ** 35

    def test_fractional_bits(self):
        rng = random.Random(42)
        bits = 3 * 3.3219280948873626    # log2(1000)
        for _ in range(200):
            assert 0 <= random_integer(bits, rng) < 1000

    def test_seeded_is_reproducible(self):
        assert random_integer(20, random.Random(1)) == random_integer(20, random.Random(1))

    def test_radix_three_reaches_top_value(self):
        """5 digits of radix 3: every payload up to 242 can be drawn."""
        config = PoolConfig(list_size=5, max_slots=8, max_value=3)
        rng = random.Random(3)
        draws = [random_integer(config.num_bits, rng) for _ in range(20000)]
        assert max(draws) == config.capacity - 1 == 242
        assert min(draws) == 0

    def test_fractional_width_rounds_up(self):
        """3.5 bits span [0, 12)."""
        rng = random.Random(5)
        draws = {random_integer(3.5, rng) for _ in range(5000)}
        assert draws == set(range(12))
