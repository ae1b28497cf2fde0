"""
Single-game NFL outcome simulator driven by moneyline odds.

The winner is drawn from the vig-free win probability implied by the two
moneyline prices; the final score is then built from touchdowns (7),
field goals (3) and the occasional two-point conversion so the result
reads like a real box score:

    winner: 2-5 TD + 0-2 FG (+2 with p=0.3)   → 14..43
    loser:  1-3 TD + 0-2 FG                   →  7..27

If the loser's draw meets or beats the winner's, the winner is pushed one
or two touchdowns clear.  Scores are never tied.

Usage::

    outcome = simulate_game(-150, +130)
    print(outcome.home_score, outcome.away_score, outcome.winner)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Union

import numpy as np

from sportsbook.core.odds_math import normalized_win_probs

Side = Literal["home", "away"]

TOUCHDOWN_PTS = 7
FIELD_GOAL_PTS = 3
TWO_POINT_PTS = 2

# Probability the winning side adds a two-point conversion.
_TWO_POINT_RATE = 0.3


@dataclass(frozen=True)
class GameOutcome:
    """Final score of one simulated game."""

    home_score: int
    away_score: int
    winner: Side

    def winning_team(self, home_team: str, away_team: str) -> str:
        return home_team if self.winner == "home" else away_team


def _winner_score(rng: np.random.Generator) -> int:
    touchdowns = int(rng.integers(2, 6))
    field_goals = int(rng.integers(0, 3))
    bonus = TWO_POINT_PTS if rng.random() < _TWO_POINT_RATE else 0
    return touchdowns * TOUCHDOWN_PTS + field_goals * FIELD_GOAL_PTS + bonus


def _loser_score(rng: np.random.Generator) -> int:
    touchdowns = int(rng.integers(1, 4))
    field_goals = int(rng.integers(0, 3))
    return touchdowns * TOUCHDOWN_PTS + field_goals * FIELD_GOAL_PTS


def simulate_game(
    home_odds: Union[int, float],
    away_odds: Union[int, float],
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
) -> GameOutcome:
    """
    Simulate one game from a pair of American moneyline prices.

    Never raises: zero or malformed odds fall through the same
    probability formula and, at worst, produce a coin-flip.

    Args:
        home_odds: Home team moneyline.
        away_odds: Away team moneyline.
        rng: Optional generator to draw from (shared across calls by the
            caller if it wants a single stream).
        seed: Seed for a fresh generator when ``rng`` is not supplied.
    """
    if rng is None:
        rng = np.random.default_rng(seed)

    p_home, _ = normalized_win_probs(home_odds, away_odds)
    home_wins = rng.random() < p_home

    winner_pts = _winner_score(rng)
    loser_pts = _loser_score(rng)
    if loser_pts >= winner_pts:
        winner_pts = loser_pts + int(rng.integers(1, 3)) * TOUCHDOWN_PTS

    if home_wins:
        return GameOutcome(home_score=winner_pts, away_score=loser_pts, winner="home")
    return GameOutcome(home_score=loser_pts, away_score=winner_pts, winner="away")
