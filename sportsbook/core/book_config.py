"""Sportsbook configuration: every tunable constant in one place.

:class:`BookConfig` is a frozen dataclass.  :meth:`BookConfig.from_env`
reads the process environment (after ``load_dotenv()``) and falls back to
the demo defaults below.  Nowhere else in the codebase should the resolve
delay, the confirmation marker, or wallet addresses be hard-coded.

Typical usage::

    from sportsbook.core.book_config import BookConfig

    cfg = BookConfig.from_env()

    # Override a single constant for a test:
    from dataclasses import replace
    fast_cfg = replace(cfg, resolve_delay_seconds=0.0)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

#: Literal prefix the placement agent must start each confirmation with.
CONFIRMATION_MARKER: Final[str] = "Bet Confirmed!"

#: Settlement currency token used in every agent message.
CURRENCY: Final[str] = "USDC"

DEFAULT_RESOLVE_DELAY_SECONDS: Final[float] = 10.0
DEFAULT_AGENT_MODEL: Final[str] = "claude-sonnet-4-20250514"
DEFAULT_MCP_URL: Final[str] = "https://mcp.paywithlocus.com/mcp"
DEFAULT_AGENT_URL: Final[str] = "https://api.anthropic.com/v1/messages"
DEFAULT_CORS_ORIGINS: Final[Tuple[str, ...]] = ("http://localhost:3000", "http://localhost:8501")


def _split_csv(raw: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class BookConfig:
    """Immutable settings bundle for one sportsbook process.

    Attributes:
        resolve_delay_seconds: Time between placement and game resolution.
            Measured from the bet's timestamp, not from when a timer was armed.
        odds_path: JSON file holding the reference game list.
        database_url: SQLAlchemy URL for the bet store.  The default is an
            in-memory SQLite database; nothing survives a restart.
        anthropic_api_key: Key for the agent's Messages API.
        agent_model: Model the placement and payout agents run on.
        agent_url: Messages API endpoint.
        mcp_url: Remote payment MCP server the agent is given as a tool.
        bettor_mcp_token / sportsbook_mcp_token: Credentials the MCP server
            receives.  Placement runs as the bettor, payouts as the book.
        bettor_wallet / sportsbook_wallet: USDC wallet addresses quoted in
            the agent prompts.
        agent_timeout_seconds: Request timeout for a single agent call.
        cors_origins: Origins allowed to call the API from a browser.
    """

    resolve_delay_seconds: float = DEFAULT_RESOLVE_DELAY_SECONDS
    odds_path: str = "odds.json"
    database_url: str = "sqlite://"

    anthropic_api_key: Optional[str] = None
    agent_model: str = DEFAULT_AGENT_MODEL
    agent_url: str = DEFAULT_AGENT_URL
    agent_max_tokens: int = 1024
    agent_timeout_seconds: float = 120.0
    mcp_url: str = DEFAULT_MCP_URL
    bettor_mcp_token: Optional[str] = None
    sportsbook_mcp_token: Optional[str] = None
    bettor_wallet: str = ""
    sportsbook_wallet: str = ""

    cors_origins: Tuple[str, ...] = DEFAULT_CORS_ORIGINS

    @property
    def resolve_delay_ms(self) -> float:
        return self.resolve_delay_seconds * 1000.0

    @classmethod
    def from_env(cls) -> "BookConfig":
        """Build a config from environment variables (``.env`` already loaded)."""
        cors = os.getenv("CORS_ORIGINS")
        return cls(
            resolve_delay_seconds=float(
                os.getenv("RESOLVE_DELAY_SECONDS", str(DEFAULT_RESOLVE_DELAY_SECONDS))
            ),
            odds_path=os.getenv("ODDS_PATH", "odds.json"),
            database_url=os.getenv("DATABASE_URL", "sqlite://"),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
            agent_model=os.getenv("AGENT_MODEL", DEFAULT_AGENT_MODEL),
            agent_url=os.getenv("AGENT_URL", DEFAULT_AGENT_URL),
            agent_max_tokens=int(os.getenv("AGENT_MAX_TOKENS", "1024")),
            agent_timeout_seconds=float(os.getenv("AGENT_TIMEOUT_SECONDS", "120")),
            mcp_url=os.getenv("LOCUS_MCP_URL", DEFAULT_MCP_URL),
            bettor_mcp_token=os.getenv("BETTOR_MCP_TOKEN"),
            sportsbook_mcp_token=os.getenv("SPORTSBOOK_MCP_TOKEN"),
            bettor_wallet=os.getenv("BETTOR_WALLET_ADDRESS", ""),
            sportsbook_wallet=os.getenv("SPORTSBOOK_WALLET_ADDRESS", ""),
            cors_origins=_split_csv(cors) if cors else DEFAULT_CORS_ORIGINS,
        )
