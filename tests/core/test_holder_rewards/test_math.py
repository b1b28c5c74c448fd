"""Tests for src/core/holder_rewards/math.py: fixed-point conversions and width checks."""

import pytest

from src.core.holder_rewards import ArithmeticOverflowError
from src.core.holder_rewards.math import (
    REWARDS_PER_TOKEN_SCALE,
    U64_MAX,
    U128_MAX,
    checked_add_u64,
    checked_sub_u64,
    owed_amount,
    rate_delta,
    rent_debt,
    require_u64,
    spendable_excess,
    split_payout,
    wrapping_add_u128,
    wrapping_sub_u128,
)

SCALE = REWARDS_PER_TOKEN_SCALE


class TestRateDelta:
    def test_basic(self):
        assert rate_delta(50, 100) == SCALE // 2

    def test_truncates(self):
        assert rate_delta(1, 3) == SCALE // 3

    def test_zero_denominator_is_zero(self):
        assert rate_delta(0, 0) == 0
        assert rate_delta(12345, 0) == 0
        assert rate_delta(U64_MAX, 0) == 0

    def test_max_inputs_fit_u128(self):
        assert rate_delta(U64_MAX, 1) == U64_MAX * SCALE
        assert rate_delta(U64_MAX, 1) <= U128_MAX

    def test_rejects_out_of_range_input(self):
        with pytest.raises(ArithmeticOverflowError):
            rate_delta(U64_MAX + 1, 1)


class TestOwedAmount:
    def test_basic(self):
        assert owed_amount(SCALE // 2, 0, 100) == 50

    def test_zero_marginal(self):
        assert owed_amount(7 * SCALE, 7 * SCALE, U64_MAX) == 0

    def test_zero_balance(self):
        assert owed_amount(5 * SCALE, 0, 0) == 0

    def test_wraparound_marginal(self):
        # current wrapped past 2**128; marginal is 15, not a huge number
        assert owed_amount(5, U128_MAX - 9, SCALE) == 15

    def test_wraparound_matches_unwrapped(self):
        last = U128_MAX - 3 * SCALE
        current = wrapping_add_u128(last, 10 * SCALE)
        assert current < last
        assert owed_amount(current, last, 7) == owed_amount(10 * SCALE, 0, 7) == 70

    def test_product_overflow_raises(self):
        with pytest.raises(ArithmeticOverflowError):
            owed_amount(U128_MAX, 0, 2)

    def test_result_exceeding_u64_raises(self):
        with pytest.raises(ArithmeticOverflowError):
            owed_amount((U64_MAX + 1) * SCALE, 0, 1)

    def test_result_at_u64_max_ok(self):
        assert owed_amount(U64_MAX * SCALE, 0, 1) == U64_MAX


class TestCheckedAndWrapping:
    def test_checked_add(self):
        assert checked_add_u64(1, 2) == 3
        with pytest.raises(ArithmeticOverflowError):
            checked_add_u64(U64_MAX, 1)

    def test_checked_sub(self):
        assert checked_sub_u64(5, 5) == 0
        with pytest.raises(ArithmeticOverflowError):
            checked_sub_u64(1, 2)

    def test_wrapping(self):
        assert wrapping_add_u128(U128_MAX, 1) == 0
        assert wrapping_sub_u128(0, 1) == U128_MAX

    def test_require_u64_rejects_bool(self):
        with pytest.raises(TypeError):
            require_u64(True)

    def test_error_code(self):
        with pytest.raises(ArithmeticOverflowError) as exc_info:
            require_u64(-1, name="deposited")
        assert exc_info.value.code == "arithmetic_overflow"
        assert "deposited" in str(exc_info.value)


class TestFundHelpers:
    def test_spendable_excess_saturates(self):
        assert spendable_excess(15, 10) == 5
        assert spendable_excess(10, 10) == 0
        assert spendable_excess(5, 10) == 0

    def test_rent_debt_premium(self):
        assert rent_debt(1000, 11, 10) == 1100
        assert rent_debt(1_447_680, 11, 10) == 1_592_448

    def test_rent_debt_bad_denominator(self):
        with pytest.raises(ValueError):
            rent_debt(1000, 11, 0)

    @pytest.mark.parametrize(
        "payout, debt, expected",
        [
            (10, 0, (0, 10)),
            (10, 3, (3, 7)),
            (10, 100, (5, 5)),
            (9, 100, (4, 5)),
            (1, 5, (0, 1)),
            (0, 5, (0, 0)),
        ],
    )
    def test_split_payout(self, payout, debt, expected):
        assert split_payout(payout, debt) == expected
