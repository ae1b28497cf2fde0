"""Tests for confirmation_parser: field extraction and all-or-nothing drafts."""

import logging

import pytest

from sportsbook.schemas import GameOdds
from sportsbook.services.confirmation_parser import (
    expected_profit,
    extract_fields,
    is_bet_confirmation,
    parse_confirmations,
    parse_transaction_id,
    resolve_team,
    split_matchup,
)

NOW = 1_700_000_000_000

GAMES = [
    GameOdds(id="g1", home_team="Patriots", away_team="Jets", home_odds=-210, away_odds=175),
    GameOdds(id="g2", home_team="Giants", away_team="Packers", home_odds=-150, away_odds=130),
]


def _confirmation(amount="5", team="Patriots", matchup="Jets @ Patriots", profit="8.5", tx="abc123"):
    return (
        f"Bet Confirmed! {amount} USDC bet on {team} to win {matchup}. "
        f"{profit} USDC profit if bet hits.\nTransaction ID: {tx}"
    )


# ---------------------------------------------------------------------------
# Single confirmation
# ---------------------------------------------------------------------------

def test_parses_all_fields():
    drafts = parse_confirmations(_confirmation(), GAMES, now_ms=NOW)
    assert len(drafts) == 1
    bet = drafts[0]
    assert bet.amount == 5.0
    assert bet.team == "Patriots"
    assert bet.matchup == "Jets @ Patriots"
    assert bet.profit == 8.5
    assert bet.bet_transaction_id == "abc123"
    assert bet.total_payout == pytest.approx(13.5)
    assert bet.status == "pending"
    assert bet.timestamp == NOW


def test_matchup_split_and_odds_lookup():
    bet = parse_confirmations(_confirmation(), GAMES, now_ms=NOW)[0]
    assert bet.away_team == "Jets"
    assert bet.home_team == "Patriots"
    assert bet.home_odds == -210
    assert bet.away_odds == 175


def test_unknown_game_defaults_to_zero_odds():
    text = _confirmation(team="Bears", matchup="Lions @ Bears")
    bet = parse_confirmations(text, GAMES, now_ms=NOW)[0]
    assert (bet.home_odds, bet.away_odds) == (0, 0)
    assert (bet.away_team, bet.home_team) == ("Lions", "Bears")


def test_multi_word_team_and_decimal_amounts():
    text = _confirmation(
        amount="0.50", team="New York Giants",
        matchup="Green Bay Packers @ New York Giants", profit="0.33", tx="tx-9f8e",
    )
    bet = parse_confirmations(text, now_ms=NOW)[0]
    assert bet.amount == 0.5
    assert bet.team == "New York Giants"
    assert bet.matchup == "Green Bay Packers @ New York Giants"
    assert bet.bet_transaction_id == "tx-9f8e"


def test_marker_is_case_insensitive():
    text = _confirmation().replace("Bet Confirmed!", "BET CONFIRMED!")
    assert len(parse_confirmations(text, now_ms=NOW)) == 1


def test_conversation_without_marker_yields_nothing():
    assert parse_confirmations("Which game would you like to bet on?", GAMES) == []


# ---------------------------------------------------------------------------
# Multiple confirmations
# ---------------------------------------------------------------------------

def test_two_confirmations_yield_two_drafts():
    text = _confirmation() + "\n\n" + _confirmation(
        amount="10", team="Giants", matchup="Packers @ Giants", profit="6.67", tx="def456",
    )
    drafts = parse_confirmations(text, GAMES, now_ms=NOW)
    assert [d.bet_transaction_id for d in drafts] == ["abc123", "def456"]
    assert drafts[0].id != drafts[1].id
    assert drafts[0].id == f"bet-{NOW}-0"
    assert drafts[1].id == f"bet-{NOW}-1"
    assert drafts[1].home_odds == -150


def test_malformed_segment_dropped(caplog):
    malformed = "Bet Confirmed! some USDC on the Jets, good luck.\nTransaction ID: zzz999"
    text = _confirmation() + "\n" + malformed
    with caplog.at_level(logging.WARNING):
        drafts = parse_confirmations(text, GAMES, now_ms=NOW)
    assert len(drafts) == 1
    assert drafts[0].bet_transaction_id == "abc123"
    # the dropped transfer is still traceable in the log
    assert "zzz999" in caplog.text


@pytest.mark.parametrize("text", [
    "Bet Confirmed! 5 USDC bet on Patriots to win Jets @ Patriots. 8.5 USDC profit if bet hits.",
    "Bet Confirmed! USDC bet on Patriots to win Jets @ Patriots. 8.5 USDC profit if bet hits.\nTransaction ID: a1",
    "Bet Confirmed! 5 USDC bet on Patriots. 8.5 USDC profit if bet hits.\nTransaction ID: a1",
    "Bet Confirmed! 5 USDC bet on Patriots to win Jets @ Patriots.\nTransaction ID: a1",
    "Bet Confirmed! 0 USDC bet on Patriots to win Jets @ Patriots. 0 USDC profit if bet hits.\nTransaction ID: a1",
])
def test_partial_matches_are_dropped(text):
    assert parse_confirmations(text, GAMES, now_ms=NOW) == []


def test_blank_segments_ignored():
    text = "Bet Confirmed!   Bet Confirmed!" + _confirmation()[len("Bet Confirmed!"):]
    drafts = parse_confirmations(text, GAMES, now_ms=NOW)
    assert len(drafts) == 1


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def test_extract_fields_reports_missing_as_none():
    fields = extract_fields(" 5 USDC bet on Patriots to win Jets @ Patriots.")
    assert fields["amount"] == 5.0
    assert fields["team"] == "Patriots"
    assert fields["matchup"] == "Jets @ Patriots"
    assert fields["profit"] is None
    assert fields["transaction_id"] is None


@pytest.mark.parametrize("matchup, expected", [
    ("Jets @ Patriots", ("Jets", "Patriots")),
    ("Green Bay Packers @ New York Giants", ("Green Bay Packers", "New York Giants")),
    ("Jets vs Patriots", ("", "")),
])
def test_split_matchup(matchup, expected):
    assert split_matchup(matchup) == expected


def test_parse_transaction_id_from_payout_reply():
    reply = "Payout complete! 16.67 USDC sent to bettor.\nTransaction ID: pay-77aa"
    assert parse_transaction_id(reply) == "pay-77aa"
    assert parse_transaction_id("Transfer pending") is None


def test_is_bet_confirmation():
    assert is_bet_confirmation(_confirmation())
    assert not is_bet_confirmation("Bet Confirmed! but no id")
    assert not is_bet_confirmation("How much would you like to bet?")


@pytest.mark.parametrize("team, expected", [
    ("Giants", pytest.approx(6.6667, abs=1e-3)),    # -150 favourite
    ("Packers", pytest.approx(13.0)),               # +130 underdog
    ("Bears", None),                                # not in this game
])
def test_expected_profit(team, expected):
    assert expected_profit(10.0, team, GAMES[1]) == expected


def test_profit_mismatch_is_logged_not_dropped(caplog):
    text = _confirmation(team="Giants", matchup="Packers @ Giants", amount="10", profit="9.99", tx="mis1")
    with caplog.at_level(logging.WARNING):
        drafts = parse_confirmations(text, GAMES, now_ms=NOW)
    assert drafts[0].profit == 9.99
    assert "mis1" in caplog.text


def test_rounded_profit_not_flagged(caplog):
    text = _confirmation(team="Giants", matchup="Packers @ Giants", amount="10", profit="6.67", tx="ok1")
    with caplog.at_level(logging.WARNING):
        parse_confirmations(text, GAMES, now_ms=NOW)
    assert "ok1" not in caplog.text


# ---------------------------------------------------------------------------
# Backed team vs matchup
# ---------------------------------------------------------------------------

def test_nickname_is_stored_as_matchup_side(caplog):
    text = _confirmation(
        amount="10", team="Giants", matchup="Green Bay Packers @ New York Giants",
        profit="6.67", tx="nick1",
    )
    with caplog.at_level(logging.WARNING):
        bet = parse_confirmations(text, now_ms=NOW)[0]
    assert bet.team == "New York Giants"
    assert bet.team == bet.home_team
    assert "nick1" not in caplog.text


def test_team_outside_matchup_is_logged(caplog):
    text = _confirmation(team="Bears", matchup="Jets @ Patriots", tx="stray1")
    with caplog.at_level(logging.WARNING):
        drafts = parse_confirmations(text, GAMES, now_ms=NOW)
    assert drafts[0].team == "Bears"
    assert "stray1" in caplog.text
    assert "neither side" in caplog.text


@pytest.mark.parametrize("team, expected", [
    ("New York Giants", "New York Giants"),
    ("new york giants", "New York Giants"),
    ("Giants", "New York Giants"),
    ("Green Bay", "Green Bay Packers"),
    ("Bears", None),
])
def test_resolve_team(team, expected):
    assert resolve_team(team, "New York Giants", "Green Bay Packers") == expected


def test_resolve_team_ambiguous_city():
    assert resolve_team("New York", "New York Giants", "New York Jets") is None
