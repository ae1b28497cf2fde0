"""
Reference NFL moneyline odds.

The game list is read once per process from ``odds.json`` and treated as
read-only reference data.  ``scripts/fetch_odds.py`` refreshes that file
from The Odds API (https://the-odds-api.com/) using ``OddsAPIClient``.

Only the first bookmaker's h2h prices are kept; moneylines are close
enough across books for a demo, and a missing price is stored as 0.
"""

import json
import logging
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import requests

from sportsbook.core.odds_math import format_american
from sportsbook.schemas import GameOdds

logger = logging.getLogger(__name__)

BASE_URL = "https://api.the-odds-api.com/v4"
SPORT_KEY = "americanfootball_nfl"

# Games further out than this are dropped when the file is rebuilt.
UPCOMING_WINDOW = timedelta(days=7)


# ---------------------------------------------------------------------------
# Loading and lookup
# ---------------------------------------------------------------------------

def load_games(path: str = "odds.json") -> List[GameOdds]:
    """
    Load the reference game list.

    A missing file yields an empty list (the API still runs; the agent just
    has nothing to offer).  A malformed file raises.
    """
    odds_file = Path(path)
    if not odds_file.exists():
        logger.warning("Odds file %s not found, no games available", odds_file)
        return []

    raw = json.loads(odds_file.read_text(encoding="utf-8"))
    games = [GameOdds.model_validate(entry) for entry in raw]
    logger.info("Loaded %d games from %s", len(games), odds_file)
    return games


def find_game(games: Sequence[GameOdds], away_team: str, home_team: str) -> Optional[GameOdds]:
    """Exact (away, home) lookup; first match wins."""
    for game in games:
        if game.away_team == away_team and game.home_team == home_team:
            return game
    return None


def describe_games(games: Sequence[GameOdds]) -> str:
    """
    Numbered listing used in the placement prompt::

        1. Green Bay Packers @ New York Giants - Away: +130, Home: -150
    """
    return "\n".join(
        f"{idx}. {g.matchup} - Away: {format_american(g.away_odds)}, Home: {format_american(g.home_odds)}"
        for idx, g in enumerate(games, start=1)
    )


# ---------------------------------------------------------------------------
# The Odds API
# ---------------------------------------------------------------------------

class OddsAPIClient:
    """Client for The Odds API (NFL h2h only)"""

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key or os.getenv("THE_ODDS_API_KEY")
        if not self.api_key:
            raise ValueError("THE_ODDS_API_KEY not set in environment")
        self.requests_remaining: Optional[str] = None

    def get_nfl_odds(
        self,
        regions: str = "us",
        markets: str = "h2h",
        odds_format: str = "american",
    ) -> List[Dict]:
        """
        Fetch current NFL moneyline odds.

        Raises ``requests.RequestException`` on HTTP failure; the refresh
        script should fail loudly rather than write an empty odds file.
        """
        url = f"{BASE_URL}/sports/{SPORT_KEY}/odds"
        params = {
            "apiKey": self.api_key,
            "regions": regions,
            "markets": markets,
            "oddsFormat": odds_format,
        }

        response = requests.get(url, params=params, timeout=15)
        response.raise_for_status()
        data = response.json()

        self.requests_remaining = response.headers.get("x-requests-remaining")
        logger.info(
            "Odds API: %d games fetched. Quota remaining: %s",
            len(data), self.requests_remaining,
        )
        return data


def _parse_commence(value: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None


def format_games(raw_games: List[Dict], now: Optional[datetime] = None) -> List[GameOdds]:
    """
    Reduce raw API entries to ``GameOdds`` for games starting within the
    next seven days.
    """
    now = now or datetime.now(timezone.utc)
    window_end = now + UPCOMING_WINDOW

    games: List[GameOdds] = []
    for entry in raw_games:
        start = _parse_commence(entry.get("commence_time", ""))
        if start is None or not (now <= start <= window_end):
            continue

        home = entry.get("home_team", "")
        away = entry.get("away_team", "")
        bookmakers = entry.get("bookmakers") or []
        outcomes: List[Dict] = []
        if bookmakers:
            for market in bookmakers[0].get("markets", []):
                if market.get("key") == "h2h":
                    outcomes = market.get("outcomes", [])
                    break

        prices = {o.get("name"): o.get("price") for o in outcomes}
        games.append(GameOdds(
            id=entry.get("id", ""),
            home_team=home,
            away_team=away,
            commence_time=entry.get("commence_time", ""),
            home_odds=int(prices.get(home) or 0),
            away_odds=int(prices.get(away) or 0),
        ))
    return games


def write_games(games: Sequence[GameOdds], path: str = "odds.json") -> Path:
    """Write games in the camelCase layout ``load_games`` reads."""
    out = Path(path)
    payload = [g.model_dump(by_alias=True) for g in games]
    out.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return out
