"""
Tests for moneyline odds math
Run with: pytest tests/test_odds_math.py -v
"""

import pytest

from sportsbook.core.odds_math import (
    calculate_payout,
    calculate_profit,
    format_american,
    implied_prob,
    normalized_win_probs,
)


# ---------------------------------------------------------------------------
# implied_prob
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("odds, expected", [
    (130,  100 / 230),
    (-150, 150 / 250),
    (100,  0.5),
    (-100, 0.5),
    (0,    0.0),   # degenerate, favourite branch, no error
])
def test_implied_prob(odds, expected):
    assert implied_prob(odds) == pytest.approx(expected)


def test_normalized_probs_sum_to_one():
    p_home, p_away = normalized_win_probs(-150, 130)
    assert p_home + p_away == pytest.approx(1.0)
    assert p_home > p_away


def test_normalized_probs_remove_vig():
    # -110/-110 carries ~4.5% overround; normalised it's a coin flip
    p_home, p_away = normalized_win_probs(-110, -110)
    assert p_home == pytest.approx(0.5)
    assert p_away == pytest.approx(0.5)


def test_normalized_probs_both_zero_is_coin_flip():
    assert normalized_win_probs(0, 0) == (0.5, 0.5)


# ---------------------------------------------------------------------------
# Payout
# ---------------------------------------------------------------------------

def test_favourite_payout():
    # Giants -150, 10 staked → 10 + 1000/150
    assert calculate_payout(10, -150) == pytest.approx(16.67, abs=0.01)


def test_underdog_payout():
    assert calculate_profit(10, 130) == pytest.approx(13.0)
    assert calculate_payout(10, 130) == pytest.approx(23.0)


def test_even_money():
    assert calculate_payout(5, 100) == pytest.approx(10.0)
    assert calculate_payout(5, -100) == pytest.approx(10.0)


@pytest.mark.parametrize("stake", [0, 0.5, 5, 100])
@pytest.mark.parametrize("odds", [-1000, -150, -110, 100, 130, 450])
def test_payout_never_below_stake(stake, odds):
    assert calculate_payout(stake, odds) >= stake


def test_zero_odds_rejected():
    with pytest.raises(ValueError, match="odds=0"):
        calculate_payout(10, 0)


def test_negative_stake_rejected():
    with pytest.raises(ValueError):
        calculate_profit(-1, 130)


@pytest.mark.parametrize("odds, expected", [(130, "+130"), (-150, "-150"), (0, "0")])
def test_format_american(odds, expected):
    assert format_american(odds) == expected
