"""Tests for the agent client: request shape, reply extraction, error wrapping."""

from unittest.mock import MagicMock

import pytest
import requests

from sportsbook.core.book_config import BookConfig
from sportsbook.schemas import ChatMessage, GameOdds, PayoutRequest
from sportsbook.services.agent import (
    AgentClient,
    AgentError,
    build_payout_prompt,
    build_placement_prompt,
)

CONFIG = BookConfig(
    anthropic_api_key="sk-test",
    bettor_mcp_token="bettor-token",
    sportsbook_mcp_token="book-token",
    bettor_wallet="0xBETTOR",
    sportsbook_wallet="0xBOOK",
)

GAMES = [GameOdds(id="1", home_team="Giants", away_team="Packers", home_odds=-150, away_odds=130)]


def _client(status=200, payload=None, exc=None):
    session = MagicMock()
    if exc is not None:
        session.post.side_effect = exc
    else:
        resp = MagicMock()
        resp.status_code = status
        resp.text = "boom"
        resp.json.return_value = payload or {}
        session.post.return_value = resp
    return AgentClient(CONFIG, session=session), session


def _reply(*blocks):
    return {"content": list(blocks), "usage": {"input_tokens": 10, "output_tokens": 5}}


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

def test_placement_prompt_lists_games_and_format():
    prompt = build_placement_prompt(GAMES, CONFIG)
    assert "1. Packers @ Giants - Away: +130, Home: -150" in prompt
    assert "Bet Confirmed!" in prompt
    assert "0xBETTOR" in prompt and "0xBOOK" in prompt


def test_payout_prompt_has_amount_and_wallets():
    req = PayoutRequest(bet_id="b1", payout_amount=16.67, team="Giants", matchup="Packers @ Giants")
    prompt = build_payout_prompt(req, CONFIG)
    assert "16.67 USDC" in prompt
    assert "Transaction ID:" in prompt


# ---------------------------------------------------------------------------
# Calls
# ---------------------------------------------------------------------------

def test_place_bet_sends_conversation_with_bettor_mcp():
    client, session = _client(payload=_reply({"type": "text", "text": "Which game?"}))
    reply = client.place_bet([ChatMessage(role="user", content="bet on the Giants")], GAMES)

    assert reply == "Which game?"
    body = session.post.call_args.kwargs["json"]
    assert body["messages"] == [{"role": "user", "content": "bet on the Giants"}]
    assert body["mcp_servers"][0]["authorization_token"] == "bettor-token"
    headers = session.post.call_args.kwargs["headers"]
    assert headers["x-api-key"] == "sk-test"


def test_execute_payout_uses_sportsbook_mcp():
    client, session = _client(payload=_reply({"type": "text", "text": "Transaction ID: p1"}))
    req = PayoutRequest(bet_id="b1", payout_amount=16.67, team="Giants", matchup="Packers @ Giants")
    assert client.execute_payout(req) == "Transaction ID: p1"
    body = session.post.call_args.kwargs["json"]
    assert body["mcp_servers"][0]["authorization_token"] == "book-token"


def test_final_text_after_tool_use():
    client, _ = _client(payload=_reply(
        {"type": "text", "text": "Sending the transfer now."},
        {"type": "mcp_tool_use", "name": "send_usdc"},
        {"type": "mcp_tool_result", "content": []},
        {"type": "text", "text": "Bet Confirmed! 5 USDC bet on Giants to win Packers @ Giants. "},
        {"type": "text", "text": "3.33 USDC profit if bet hits.\nTransaction ID: abc"},
    ))
    reply = client.place_bet([ChatMessage(role="user", content="yes")], GAMES)
    assert reply.startswith("Bet Confirmed!")
    assert "Sending" not in reply


def test_api_error_raises_agent_error():
    client, _ = _client(status=529)
    with pytest.raises(AgentError, match="529"):
        client.place_bet([ChatMessage(role="user", content="hi")], GAMES)


def test_network_error_raises_agent_error():
    client, _ = _client(exc=requests.exceptions.ConnectionError("refused"))
    with pytest.raises(AgentError):
        client.place_bet([ChatMessage(role="user", content="hi")], GAMES)


def test_empty_reply_raises_agent_error():
    client, _ = _client(payload=_reply())
    with pytest.raises(AgentError, match="no text"):
        client.place_bet([ChatMessage(role="user", content="hi")], GAMES)


def test_missing_api_key():
    client = AgentClient(BookConfig(), session=MagicMock())
    with pytest.raises(AgentError, match="ANTHROPIC_API_KEY"):
        client.place_bet([ChatMessage(role="user", content="hi")], GAMES)
