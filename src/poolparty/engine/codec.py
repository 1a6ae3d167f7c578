"""Fixed-radix digit codec for transmitted integers.

Digits are least-significant first: ``value = sum(d[i] * radix**i)``.
"""

from typing import List, Optional, Sequence
import math
import random


def digits_to_integer(digits: Sequence[int], radix: int) -> int:
    value = 0
    for digit in reversed(digits):
        value = value * radix + digit
    return value


def integer_to_digits(value: int, list_size: int, radix: int) -> List[int]:
    """Split ``value`` into exactly ``list_size`` digits.

    Precondition: ``0 <= value < radix ** list_size``. Higher digits
    are silently dropped.
    """
    digits = []
    for _ in range(list_size):
        value, remainder = divmod(value, radix)
        digits.append(remainder)
    return digits


def to_fixed_hex(value: int, num_bits: float) -> str:
    """Zero-padded lowercase hex, ``ceil(num_bits / 4)`` characters for in-range values."""
    return format(value, f"0{math.ceil(num_bits / 4)}x")


def random_integer(num_bits: float, rng: Optional[random.Random] = None) -> int:
    """Uniform integer in ``[0, 2**num_bits)``; ``num_bits`` may be fractional.

    For fractional widths the range is ``[0, ceil(2**num_bits))``.
    """
    rng = rng or random.Random()
    if float(num_bits).is_integer():
        upper = 1 << int(num_bits)
    else:
        bound = 2 ** num_bits
        nearest = round(bound)
        # list_size * log2(radix) lands a hair off radix**list_size
        if math.isclose(bound, nearest, rel_tol=1e-9):
            upper = nearest
        else:
            upper = math.ceil(bound)
    return rng.randrange(upper)
