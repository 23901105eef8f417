"""Reflected binary (Gray) code helpers.

Walking the integers 0, 1, ..., 2^n - 1 through their Gray codes visits every
subset of n items exactly once while flipping a single item per step. The
hypothesis search uses this to add or remove one track at a time.
"""

from typing import Iterator, Tuple

from numba import njit


@njit
def binary_to_gray(num):
    """Gray code of an integer: (num >> 1) ^ num."""
    return (num >> 1) ^ num


@njit
def next_change_on_gray(binary):
    """
    Bit that flips between the Gray codes of ``binary`` and ``binary + 1``.

    Parameters
    ----------
    binary : int
        Current position in the binary counting sequence (>= 0)

    Returns
    -------
    index : int
        Position of the flipped bit (0 = least significant)
    zero_to_one : bool
        True if the bit turns on, False if it turns off
    """
    gray = binary_to_gray(binary)
    gray_next = binary_to_gray(binary + 1)
    diff = gray_next - gray
    zero_to_one = diff > 0
    if diff < 0:
        diff = -diff

    index = 0
    while diff > 1:
        diff >>= 1
        index += 1
    return index, zero_to_one


def gray_code_to_index_of_ones(gray_code: int) -> Iterator[int]:
    """Yield the positions of the set bits of ``gray_code``, lowest first."""
    index = 0
    while gray_code != 0:
        if gray_code & 1:
            yield index
        index += 1
        gray_code >>= 1


def gray_sequence(n_bits: int) -> Iterator[Tuple[int, int, bool]]:
    """Walk all non-empty subsets of ``n_bits`` items in Gray order.

    Yields ``(gray_code, flipped_bit, zero_to_one)`` for the steps
    1 .. 2^n_bits - 1; step i's code differs from step i-1's in exactly
    ``flipped_bit``.
    """
    for i in range(1, 1 << n_bits):
        index, zero_to_one = next_change_on_gray(i - 1)
        yield binary_to_gray(i), index, zero_to_one
