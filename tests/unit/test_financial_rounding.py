from decimal import Decimal

import pytest

from core.trading.utils import round_financial, round_money, round_shares, to_decimal


def test_defaults_to_two_places():
    assert round_financial(0.1 + 0.2) == Decimal("0.30")
    assert str(round_financial(5)) == "5.00"


def test_half_rounds_up_without_float_noise():
    # 1.005 is 1.00499999... as a binary float
    assert round_money(1.005) == Decimal("1.01")
    assert round_money("2.675") == Decimal("2.68")


def test_share_counts_use_four_places():
    assert round_shares(Decimal(10) / Decimal(3)) == Decimal("3.3333")
    assert round_financial(2 / 3, 4) == Decimal("0.6667")


def test_repeated_additions_do_not_drift():
    total = Decimal("0")
    for _ in range(1000):
        total = round_money(total + to_decimal(0.1))
    assert total == Decimal("100.00")


def test_bool_is_not_an_amount():
    with pytest.raises(TypeError):
        to_decimal(True)
