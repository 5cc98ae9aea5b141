from decimal import Decimal

import pytest

from fee_engine.domain.money import (
    add_money,
    invert_rate,
    mul_rate,
    mul_round,
    normalize_money,
    round_half_up,
    round_rate,
    sub_money,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("10", "10.00"),
        ("2.5", "2.50"),
        ("1.239", "1.23"),
        ("1.999", "1.99"),
        ("  7.10 ", "7.10"),
        ("", "0.00"),
        (Decimal("3"), "3.00"),
        (12, "12.00"),
    ],
)
def test_normalize_money_pads_and_truncates(raw, expected):
    assert normalize_money(raw) == Decimal(expected)
    assert str(normalize_money(raw)) == expected


def test_normalize_money_rejects_garbage_and_floats():
    with pytest.raises(ValueError):
        normalize_money("12,50")
    with pytest.raises(TypeError):
        normalize_money(1.5)


def test_round_half_up_carries_into_integer_part():
    assert str(round_half_up("9.995", 2)) == "10.00"
    assert str(round_half_up("0.125", 2)) == "0.13"
    assert str(round_half_up("0.124999", 2)) == "0.12"
    assert str(round_half_up("-1.235", 2)) == "-1.24"
    assert str(round_half_up("2.5", 0)) == "3"


def test_mul_round_uses_six_digit_intermediate():
    assert str(mul_round("100.00", "1.0850")) == "108.50"
    assert str(mul_round("108.50", "0.0225")) == "2.44"
    assert str(mul_round("108.75", "0.0225")) == "2.45"
    # 0.0049999999 is cut to 0.004999 before rounding
    assert str(mul_round("0.01", "0.49999999")) == "0.00"


def test_mul_round_is_within_half_a_cent_of_true_product():
    amounts = ["0.01", "1.00", "99.99", "1234.56", "100000.00"]
    rates = ["0.91234567", "1.08499999", "1.5", "0.00012345", "123.45678901"]
    for amount in amounts:
        for rate in rates:
            rounded_rate = round_rate(rate)
            exact = Decimal(amount) * rounded_rate
            result = mul_round(amount, rounded_rate)
            # ties round up, so the upper bound is reached exactly
            assert exact - Decimal("0.005") <= result <= exact + Decimal("0.005")
            assert result == mul_round(amount, rounded_rate)


def test_mul_round_tie_rounds_up():
    assert str(mul_round("0.01", "1.5")) == "0.02"


def test_add_and_sub_money_are_exact():
    assert str(add_money(Decimal("0.10"), Decimal("0.20"))) == "0.30"
    assert str(sub_money(Decimal("108.50"), Decimal("2.44"))) == "106.06"


def test_round_rate_keeps_four_digits():
    assert str(round_rate("1.08499999")) == "1.0850"
    assert str(round_rate("0.92165898")) == "0.9217"
    assert str(round_rate(Decimal("1"))) == "1.0000"


def test_invert_rate_truncates_to_eight_digits():
    assert str(invert_rate("0.9219")) == "1.08471634"
    assert invert_rate("0") is None
    assert invert_rate("-1.2") is None
    assert invert_rate("abc") is None


def test_invert_rate_round_trip():
    for raw in ("1.0850", "0.9340", "1.5", "0.9219"):
        rate = Decimal(raw)
        back = invert_rate(invert_rate(rate))
        assert abs(back - rate) / rate < Decimal("1e-7")


def test_mul_rate_truncates_to_eight_digits():
    assert str(mul_rate(Decimal("0.92165898"), Decimal("0.9340"))) == "0.86082948"
