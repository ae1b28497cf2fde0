"""
Turn free-text agent confirmations into structured bet drafts.

The placement agent is instructed to answer in exactly this form::

    Bet Confirmed! 5 USDC bet on New York Giants to win Green Bay Packers @ New York Giants. 8.50 USDC profit if bet hits.
    Transaction ID: abc123

A single response may hold several confirmations.  The text is split on the
marker, and each segment is run through a fixed set of labelled field
extractors.  A segment becomes a ``BetDraft`` only when **every** extractor
succeeds; anything less is dropped.

Dropping partial matches is intentional leniency: the agent is an LLM and
occasionally paraphrases.  But a dropped segment may still correspond to a
real transfer, so every drop is logged at WARNING with whatever transaction
id could be recovered, for manual reconciliation.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from sportsbook.core.book_config import CONFIRMATION_MARKER, CURRENCY
from sportsbook.core.odds_math import calculate_profit
from sportsbook.schemas import GameOdds
from sportsbook.services.odds import find_game

logger = logging.getLogger(__name__)

MATCHUP_SEPARATOR = " @ "

# Quoted profit may differ from the odds-implied profit by agent rounding.
PROFIT_TOLERANCE = 0.01

_MARKER_RE = re.compile(re.escape(CONFIRMATION_MARKER), re.IGNORECASE)
_DECIMAL = r"(\d+(?:\.\d+)?)"
_CUR = re.escape(CURRENCY)

_AMOUNT_RE = re.compile(rf"^\s*{_DECIMAL}\s*{_CUR}\b", re.IGNORECASE)
_TEAM_RE = re.compile(rf"{_CUR}\s+bet\s+on\s+(.+?)\s+to\s+win\b", re.IGNORECASE)
_MATCHUP_RE = re.compile(r"\bto\s+win\s+(.+?)\.(?=\s|$)", re.IGNORECASE)
_PROFIT_RE = re.compile(rf"{_DECIMAL}\s*{_CUR}\s+profit\b", re.IGNORECASE)
_TX_RE = re.compile(r"Transaction ID:\s*([a-zA-Z0-9-]+)", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Field extractors: each returns a typed value or None
# ---------------------------------------------------------------------------

def _group(pattern: re.Pattern, segment: str) -> Optional[str]:
    match = pattern.search(segment)
    if not match:
        return None
    value = match.group(1).strip()
    return value or None


def _decimal(pattern: re.Pattern, segment: str) -> Optional[float]:
    raw = _group(pattern, segment)
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def extract_amount(segment: str) -> Optional[float]:
    return _decimal(_AMOUNT_RE, segment)


def extract_team(segment: str) -> Optional[str]:
    return _group(_TEAM_RE, segment)


def extract_matchup(segment: str) -> Optional[str]:
    return _group(_MATCHUP_RE, segment)


def extract_profit(segment: str) -> Optional[float]:
    return _decimal(_PROFIT_RE, segment)


def parse_transaction_id(text: str) -> Optional[str]:
    """``Transaction ID: <id>`` anywhere in ``text``; also used for payouts."""
    return _group(_TX_RE, text)


FIELD_EXTRACTORS: Dict[str, Callable[[str], object]] = {
    "amount": extract_amount,
    "team": extract_team,
    "matchup": extract_matchup,
    "profit": extract_profit,
    "transaction_id": parse_transaction_id,
}


# ---------------------------------------------------------------------------
# Draft
# ---------------------------------------------------------------------------

@dataclass
class BetDraft:
    """A validated, not-yet-tracked bet parsed from one confirmation."""

    id: str
    amount: float
    team: str
    matchup: str
    profit: float
    total_payout: float
    bet_transaction_id: str
    timestamp: float
    home_team: str
    away_team: str
    home_odds: int = 0
    away_odds: int = 0
    status: str = "pending"


def split_matchup(matchup: str) -> Tuple[str, str]:
    """``"Away @ Home"`` → ``("Away", "Home")``; no separator → ``("", "")``."""
    if MATCHUP_SEPARATOR not in matchup:
        return "", ""
    away, home = matchup.split(MATCHUP_SEPARATOR, 1)
    return away.strip(), home.strip()


def is_bet_confirmation(text: str) -> bool:
    """True when the response carries both the marker and a transaction line."""
    return bool(_MARKER_RE.search(text)) and "transaction id:" in text.lower()


def split_confirmations(text: str) -> List[str]:
    """
    Segments that follow each marker occurrence.  Text before the first
    marker is conversation, not a confirmation, and is ignored.
    """
    parts = _MARKER_RE.split(text)
    return [p for p in parts[1:] if p.strip()]


def resolve_team(team: str, home_team: str, away_team: str) -> Optional[str]:
    """
    The side of the matchup ``team`` names, spelled as in the matchup.

    Exact (case-insensitive) names win; otherwise a nickname or city that
    leads or ends exactly one side's name ("Giants" for "New York Giants").
    None when no side, or both sides, match.
    """
    wanted = team.strip().lower()
    sides = [side for side in (home_team, away_team) if side]
    for side in sides:
        if side.lower() == wanted:
            return side
    partial = [
        side for side in sides
        if side.lower().endswith(" " + wanted) or side.lower().startswith(wanted + " ")
    ]
    return partial[0] if len(partial) == 1 else None


def expected_profit(amount: float, team: str, game: Optional[GameOdds]) -> Optional[float]:
    """Profit the listed odds imply for backing ``team``; None when unknown."""
    if game is None:
        return None
    if team == game.home_team:
        odds = game.home_odds
    elif team == game.away_team:
        odds = game.away_odds
    else:
        return None
    if odds == 0:
        return None
    return calculate_profit(amount, odds)


def extract_fields(segment: str) -> Dict[str, object]:
    """Run every extractor; values are None where the extractor failed."""
    return {name: extractor(segment) for name, extractor in FIELD_EXTRACTORS.items()}


def parse_confirmations(
    text: str,
    games: Sequence[GameOdds] = (),
    now_ms: Optional[float] = None,
) -> List[BetDraft]:
    """
    Parse every complete confirmation in ``text``.

    Args:
        text: Raw agent response.
        games: Reference games used to attach the odds for each matchup.
            Unknown matchups get 0/0 odds rather than an error.
        now_ms: Placement time in epoch milliseconds (defaults to now).
            Shared by every draft from this response.

    Returns:
        Zero or more drafts, in the order the confirmations appear.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)

    drafts: List[BetDraft] = []
    for ordinal, segment in enumerate(split_confirmations(text)):
        fields = extract_fields(segment)
        missing = [name for name, value in fields.items() if value is None]
        amount = fields["amount"]

        if missing or amount <= 0:
            logger.warning(
                "Dropping unparseable confirmation #%d (missing: %s, tx: %s)",
                ordinal, ", ".join(missing) or "positive amount",
                fields["transaction_id"] or "unknown",
            )
            continue

        matchup = fields["matchup"]
        away_team, home_team = split_matchup(matchup)
        game = find_game(games, away_team, home_team)
        profit = fields["profit"]

        team = resolve_team(fields["team"], home_team, away_team)
        if team is None:
            team = fields["team"]
            logger.warning(
                "Confirmation %s backs %r, which is neither side of %r; it will settle as a loss",
                fields["transaction_id"], team, matchup,
            )

        expected = expected_profit(amount, team, game)
        if expected is not None and abs(expected - profit) > PROFIT_TOLERANCE:
            logger.warning(
                "Confirmation %s quotes %.2f profit; listed odds imply %.2f",
                fields["transaction_id"], profit, expected,
            )

        drafts.append(BetDraft(
            id=f"bet-{now_ms}-{ordinal}",
            amount=amount,
            team=team,
            matchup=matchup,
            profit=profit,
            total_payout=amount + profit,
            bet_transaction_id=fields["transaction_id"],
            timestamp=now_ms,
            home_team=home_team,
            away_team=away_team,
            home_odds=game.home_odds if game else 0,
            away_odds=game.away_odds if game else 0,
        ))

    return drafts
