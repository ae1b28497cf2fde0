"""
fetch_odds.py: rebuild odds.json from The Odds API.

Pulls NFL moneyline (h2h) prices, keeps games starting in the next 7 days,
and writes them in the camelCase layout the API server loads at startup.

Usage
-----
  python scripts/fetch_odds.py                    # writes ./odds.json
  python scripts/fetch_odds.py --output data/odds.json
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Ensure the project root (one level up from scripts/) is on sys.path so that
# `from sportsbook.xxx import ...` resolves when the script is run directly.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sportsbook.core.odds_math import format_american  # noqa: E402
from sportsbook.services.odds import OddsAPIClient, format_games, write_games  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Fetch upcoming NFL moneyline odds.")
    parser.add_argument(
        "--output",
        default="odds.json",
        help="Path of the JSON file to write (default: odds.json).",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s - %(message)s")

    print("Fetching NFL odds...\n")
    client = OddsAPIClient()
    games = format_games(client.get_nfl_odds())
    out = write_games(games, args.output)

    print(f"✅ Found {len(games)} upcoming NFL games\n")
    print("=" * 80)
    for idx, game in enumerate(games, start=1):
        start = game.commence_time
        try:
            start = datetime.fromisoformat(start.replace("Z", "+00:00")).strftime("%a %b %d %I:%M %p %Z")
        except ValueError:
            pass
        print(f"\n[{idx}] {game.matchup}")
        print(f"    Date: {start}")
        print(f"    {game.away_team}: {format_american(game.away_odds)}")
        print(f"    {game.home_team}: {format_american(game.home_odds)}")
    print("\n" + "=" * 80)
    print(f"\n💾 Saved to {out.resolve()}\n")

    if client.requests_remaining:
        print(f"📊 API requests remaining: {client.requests_remaining}")


if __name__ == "__main__":
    main()
