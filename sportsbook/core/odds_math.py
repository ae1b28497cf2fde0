"""Moneyline odds mathematics.

Every function here is **pure**: no I/O, no logging, no side effects.
The outcome simulator and the odds service import from this module; never
reimplement the profit formula locally.

The two pillars exposed are:

1. **Probability**: American moneyline → implied win probability, and
   proportional normalisation of a two-sided market so the pair sums to 1.
2. **Payout**: stake + American odds → profit and total returned.

Design decisions
----------------
* ``implied_prob`` has no magnitude guard.  A zero or malformed price maps
  to a probability of 0 (a coin-flip after normalisation), never an error.
* ``calculate_profit`` raises ``ValueError`` on ``odds == 0``.
* Results are never rounded here.  Display code rounds; arithmetic doesn't.

Run tests with::

    pytest tests/test_odds_math.py -v
"""

from __future__ import annotations

from typing import Final

#: Probability assigned to each side when neither price carries information
#: (both odds zero).
_COIN_FLIP: Final[float] = 0.5


# ---------------------------------------------------------------------------
# Probability
# ---------------------------------------------------------------------------


def implied_prob(odds: int | float) -> float:
    """Raw implied win probability from American moneyline odds (vig-inclusive).

    Examples::

        implied_prob(+130) → 0.4348   (100 / 230)
        implied_prob(-150) → 0.6000   (150 / 250)
        implied_prob(0)    → 0.0      (degenerate, favourite branch)

    Args:
        odds: American odds.  Positive = underdog, zero or negative =
            favourite branch.

    Returns:
        Probability in ``[0, 1)``.
    """
    if odds > 0:
        return 100.0 / (odds + 100.0)
    magnitude = abs(odds)
    return magnitude / (magnitude + 100.0)


def normalized_win_probs(home_odds: int | float, away_odds: int | float) -> tuple[float, float]:
    """Proportionally normalise a two-sided moneyline market.

    Divides each raw implied probability by the overround so the pair sums
    to exactly 1.0, removing the bookmaker margin.

    Returns:
        ``(p_home, p_away)``.  Falls back to ``(0.5, 0.5)`` when both raw
        probabilities are zero, so callers never divide by zero.
    """
    raw_home = implied_prob(home_odds)
    raw_away = implied_prob(away_odds)
    total = raw_home + raw_away
    if total <= 0.0:
        return _COIN_FLIP, _COIN_FLIP
    p_home = raw_home / total
    return p_home, 1.0 - p_home


# ---------------------------------------------------------------------------
# Payout
# ---------------------------------------------------------------------------


def calculate_profit(stake: float, odds: int | float) -> float:
    """Profit on a winning moneyline bet, excluding the returned stake.

    * ``odds > 0``: ``stake * odds / 100``   (risk 100 to win ``odds``)
    * ``odds < 0``: ``stake * 100 / |odds|`` (risk ``|odds|`` to win 100)

    Args:
        stake: Amount risked, ``>= 0``.
        odds: Nonzero American odds taken by the bettor.

    Raises:
        ValueError: If ``odds == 0`` or ``stake < 0``.
    """
    if stake < 0:
        raise ValueError(f"stake={stake!r} must be non-negative")
    if odds == 0:
        raise ValueError(
            "odds=0 is not a valid American moneyline price; "
            "payout is undefined."
        )
    if odds > 0:
        return stake * odds / 100.0
    return stake * 100.0 / abs(odds)


def calculate_payout(stake: float, odds: int | float) -> float:
    """Total returned on a winning bet: ``stake + profit``.

    Example::

        calculate_payout(10, -150) → 16.6667
        calculate_payout(10, +130) → 23.0
    """
    return stake + calculate_profit(stake, odds)


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def format_american(odds: int | float) -> str:
    """Render odds with an explicit sign: ``+130`` / ``-150``."""
    value = int(odds)
    return f"+{value}" if value > 0 else f"{value}"
