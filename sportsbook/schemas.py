"""
Pydantic request/response schemas for the sportsbook API.

``GameOdds`` doubles as the reference-data model: ``odds.json`` is written
in camelCase (``homeTeam``, ``homeOdds`` ...), so the model accepts both
the alias and the field name.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Reference games
# ---------------------------------------------------------------------------

class GameOdds(BaseModel):
    """One upcoming game with two-sided American moneyline odds."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    home_team: str = Field(..., alias="homeTeam")
    away_team: str = Field(..., alias="awayTeam")
    commence_time: str = Field("", alias="commenceTime")
    home_odds: int = Field(0, alias="homeOdds")
    away_odds: int = Field(0, alias="awayOdds")

    @property
    def matchup(self) -> str:
        return f"{self.away_team} @ {self.home_team}"


# ---------------------------------------------------------------------------
# Bets
# ---------------------------------------------------------------------------

class GameOutcomeResponse(BaseModel):
    home_score: int
    away_score: int
    winner: Literal["home", "away"]

    model_config = ConfigDict(from_attributes=True)


class BetResponse(BaseModel):
    """Full state of one tracked bet."""

    id: str
    amount: float
    team: str
    matchup: str
    profit: float
    total_payout: float
    bet_transaction_id: str
    status: Literal["pending", "ready", "paid"]
    timestamp: float
    payout_transaction_id: Optional[str] = None
    home_team: str
    away_team: str
    home_odds: int
    away_odds: int
    game_outcome: Optional[GameOutcomeResponse] = None
    did_win: Optional[bool] = None
    can_payout: bool = False

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Placement
# ---------------------------------------------------------------------------

class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class PlaceBetRequest(BaseModel):
    """
    Payload for POST /api/place-bet.

    The full conversation so far; the agent decides whether the latest turn
    confirms a bet.
    """

    messages: list[ChatMessage] = Field(default_factory=list)

    model_config = {
        "json_schema_extra": {
            "example": {
                "messages": [
                    {"role": "user", "content": "Put $5 on the Giants to beat the Packers"},
                ]
            }
        }
    }


class PlaceBetResponse(BaseModel):
    success: bool
    response: str
    bet_placed: bool
    bet_amount: Optional[float] = None
    bets: list[BetResponse] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Payout
# ---------------------------------------------------------------------------

class PayoutRequest(BaseModel):
    """
    Payload for the raw POST /api/payout route (agent transfer only, no
    lifecycle checks).  Field names follow the browser client's camelCase.
    """

    model_config = ConfigDict(populate_by_name=True)

    bet_id: Optional[str] = Field(None, alias="betId")
    payout_amount: Optional[float] = Field(None, alias="payoutAmount")
    team: Optional[str] = None
    matchup: Optional[str] = None

    @field_validator("payout_amount")
    @classmethod
    def validate_amount(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError("payoutAmount cannot be negative")
        return v

    def is_complete(self) -> bool:
        return bool(self.bet_id and self.payout_amount and self.team and self.matchup)


class PayoutResponse(BaseModel):
    success: bool
    response: str
    transaction_id: Optional[str] = None
    payout_amount: float


class BetPayoutResponse(BaseModel):
    """Response from POST /api/bets/{bet_id}/payout."""
    message: str
    transaction_id: Optional[str] = None
    bet: BetResponse
