"""
Conversational betting agent (the external collaborator).

Both bet placement and payouts are executed by an LLM agent that is handed a
remote payment MCP server (USDC transfers) as its tool set.  We call the
Anthropic Messages API directly with ``requests`` and attach the MCP server
via ``mcp_servers``; the model runs the tool calls server-side and we only
see its final text.

Placement runs with the bettor's MCP credentials (bettor → sportsbook
transfer); payouts run with the sportsbook's (sportsbook → bettor).

Public API:
  AgentClient.place_bet(messages, games)  → str
  AgentClient.execute_payout(request)     → str
  build_placement_prompt(games, config)   → str
  build_payout_prompt(request, config)    → str
"""

import logging
from typing import Dict, List, Optional, Sequence

import requests

from sportsbook.core.book_config import BookConfig, CONFIRMATION_MARKER, CURRENCY
from sportsbook.schemas import ChatMessage, GameOdds, PayoutRequest
from sportsbook.services.odds import describe_games

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"
MCP_BETA = "mcp-client-2025-04-04"
MCP_SERVER_NAME = "locus"


class AgentError(RuntimeError):
    """The agent call failed (network, API error, or empty reply)."""


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

def build_placement_prompt(games: Sequence[GameOdds], config: BookConfig) -> str:
    return f"""You are a conversational betting agent helping users place sports bets. Be friendly, concise, and helpful.

Available games:
{describe_games(games)}

Bettor wallet: {config.bettor_wallet}
Sportsbook wallet: {config.sportsbook_wallet}

CONVERSATION GUIDELINES:
- The user may provide vague betting intentions (e.g., "I want a risky bet" or "I don't believe in the Giants")
- Ask clarifying questions to gather: which specific game, which team, and how much to bet
- If they mention wanting a "risky" bet, suggest underdogs with positive odds
- If they mention not believing in a team, confirm they want to bet against that team
- Keep responses concise and natural
- NEVER use markdown formatting or emojis; write in plain text only

BETTING RULES:
- Bet amounts are in {CURRENCY} (e.g., "$5" = 5 {CURRENCY}, "50 cents" = 0.50 {CURRENCY})
- Only place the bet when you have the specific game, the team, and the amount
- Only execute the transfer tool AFTER the user explicitly confirms the bet

WHEN PLACING A BET:
1. Transfer the EXACT bet amount from the bettor wallet to the sportsbook wallet
2. Calculate the profit if the bet wins (not including the original stake)
3. Respond in EXACTLY this format:

{CONFIRMATION_MARKER} [amount] {CURRENCY} bet on [team] to win [away team] @ [home team]. [profit] {CURRENCY} profit if bet hits.
Transaction ID: [transaction id]

Example:
{CONFIRMATION_MARKER} 5 {CURRENCY} bet on New York Giants to win Green Bay Packers @ New York Giants. 8.50 {CURRENCY} profit if bet hits.
Transaction ID: abc123

Start a confirmation with "{CONFIRMATION_MARKER}" exactly, with no text before it."""


def build_payout_prompt(request: PayoutRequest, config: BookConfig) -> str:
    amount = request.payout_amount
    return f"""You are a sportsbook payout agent. A bettor has won their bet and needs to be paid out.

Payout Details:
- From: {config.sportsbook_wallet} (sportsbook wallet)
- To: {config.bettor_wallet} (bettor wallet)
- Amount: {amount} {CURRENCY}
- Winning bet: {request.team} in {request.matchup}

Use the MCP tools to transfer exactly {amount} {CURRENCY} from the sportsbook wallet to the bettor wallet.

After completing the transfer, respond in EXACTLY this format:
Payout complete! {amount} {CURRENCY} sent to bettor.
Transaction ID: [transaction id]"""


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

def _final_text(content: List[Dict]) -> str:
    """Text blocks after the last tool result: the agent's final answer."""
    last_tool = -1
    for idx, block in enumerate(content):
        if block.get("type", "").endswith("tool_result"):
            last_tool = idx
    return "".join(
        block.get("text", "")
        for block in content[last_tool + 1:]
        if block.get("type") == "text"
    ).strip()


class AgentClient:
    """Messages API client with the payment MCP server attached."""

    def __init__(self, config: Optional[BookConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or BookConfig.from_env()
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        if not self.config.anthropic_api_key:
            raise AgentError("ANTHROPIC_API_KEY not set in environment")
        return {
            "x-api-key": self.config.anthropic_api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "anthropic-beta": MCP_BETA,
            "content-type": "application/json",
        }

    def _mcp_server(self, token: Optional[str]) -> Dict:
        server = {"type": "url", "url": self.config.mcp_url, "name": MCP_SERVER_NAME}
        if token:
            server["authorization_token"] = token
        return server

    def _invoke(self, system: str, messages: List[Dict], token: Optional[str]) -> str:
        body = {
            "model": self.config.agent_model,
            "max_tokens": self.config.agent_max_tokens,
            "system": system,
            "messages": messages,
            "mcp_servers": [self._mcp_server(token)],
        }
        try:
            resp = self.session.post(
                self.config.agent_url,
                headers=self._headers(),
                json=body,
                timeout=self.config.agent_timeout_seconds,
            )
        except requests.exceptions.RequestException as exc:
            raise AgentError(f"Agent request failed: {exc}") from exc

        if resp.status_code != 200:
            raise AgentError(f"Agent API {resp.status_code}: {resp.text[:300]}")

        data = resp.json()
        text = _final_text(data.get("content", []))
        if not text:
            raise AgentError("Agent returned no text")

        usage = data.get("usage", {})
        logger.info(
            "Agent reply: %d chars, %d tokens (stop=%s)",
            len(text),
            usage.get("input_tokens", 0) + usage.get("output_tokens", 0),
            data.get("stop_reason"),
        )
        return text

    def place_bet(self, messages: Sequence[ChatMessage], games: Sequence[GameOdds]) -> str:
        """Run one placement turn over the conversation so far."""
        system = build_placement_prompt(games, self.config)
        turns = [{"role": m.role, "content": m.content} for m in messages]
        return self._invoke(system, turns, self.config.bettor_mcp_token)

    def execute_payout(self, request: PayoutRequest) -> str:
        """Transfer ``request.payout_amount`` from the sportsbook to the bettor."""
        prompt = build_payout_prompt(request, self.config)
        return self._invoke(
            "You execute sportsbook payouts using the available payment tools.",
            [{"role": "user", "content": prompt}],
            self.config.sportsbook_mcp_token,
        )
