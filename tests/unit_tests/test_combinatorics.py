"""Tests for Gray code helpers."""

import pytest

from imstracker.stats.combinatorics import (
    binary_to_gray,
    gray_code_to_index_of_ones,
    gray_sequence,
    next_change_on_gray,
)


class TestGrayCode:

    def test_known_values(self):
        assert [binary_to_gray(i) for i in range(8)] == [0, 1, 3, 2, 6, 7, 5, 4]

    @pytest.mark.parametrize("i", range(32))
    def test_single_bit_transitions(self, i):
        diff = binary_to_gray(i) ^ binary_to_gray(i + 1)
        assert diff != 0
        assert diff & (diff - 1) == 0

    @pytest.mark.parametrize("i", range(32))
    def test_next_change(self, i):
        index, zero_to_one = next_change_on_gray(i)
        before = binary_to_gray(i)
        after = binary_to_gray(i + 1)
        assert before ^ after == 1 << index
        assert bool(after & (1 << index)) == zero_to_one

    def test_index_of_ones(self):
        assert list(gray_code_to_index_of_ones(0)) == []
        assert list(gray_code_to_index_of_ones(0b1011)) == [0, 1, 3]
        assert list(gray_code_to_index_of_ones(0b100000)) == [5]


class TestGraySequence:

    @pytest.mark.parametrize("n", [1, 2, 3, 4])
    def test_visits_every_nonempty_subset_once(self, n):
        codes = [gray for gray, _, _ in gray_sequence(n)]
        assert len(codes) == 2 ** n - 1
        assert set(codes) == set(range(1, 2 ** n))

    def test_flip_matches_code(self):
        current = 0
        for gray, index, zero_to_one in gray_sequence(4):
            if zero_to_one:
                current |= 1 << index
            else:
                current &= ~(1 << index)
            assert current == gray

    def test_empty(self):
        assert list(gray_sequence(0)) == []
