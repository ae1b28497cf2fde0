"""
FastAPI application for the sportsbook demo
Includes the betting REST API and the resolve-timer scheduler
"""

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text
from apscheduler.schedulers.background import BackgroundScheduler
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List
import logging

from sportsbook.core.book_config import BookConfig
from sportsbook.models import get_db, init_db, SessionLocal
from sportsbook.schemas import (
    BetPayoutResponse,
    BetResponse,
    GameOdds,
    GameOutcomeResponse,
    PayoutRequest,
    PayoutResponse,
    PlaceBetRequest,
    PlaceBetResponse,
)
from sportsbook.services.agent import AgentClient
from sportsbook.services.bet_lifecycle import (
    BetLifecycleController,
    BetNotFoundError,
    BetSnapshot,
    PAYOUT_FAILED_MESSAGE,
)
from sportsbook.services.confirmation_parser import (
    is_bet_confirmation,
    parse_confirmations,
    parse_transaction_id,
)
from sportsbook.services.odds import load_games

# Logging setup
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

REQUEST_FAILED_MESSAGE = "Failed to process request. Please try again."

# Scheduler instance
scheduler = BackgroundScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    config = BookConfig.from_env()
    logger.info("Starting Sportsbook (resolve delay %.1fs)", config.resolve_delay_seconds)

    init_db()
    app.state.config = config
    app.state.games = load_games(config.odds_path)
    app.state.agent = AgentClient(config)

    scheduler.start()
    controller = BetLifecycleController(SessionLocal, config=config, scheduler=scheduler)
    controller.arm_pending()
    app.state.controller = controller
    logger.info("Scheduler started: %d games loaded", len(app.state.games))

    yield

    logger.info("Shutting down Sportsbook")
    controller.shutdown()
    scheduler.shutdown()


app = FastAPI(
    title="Sportsbook",
    description="Conversational NFL moneyline sportsbook demo",
    version="1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(BookConfig.from_env().cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# DEPENDENCIES
# ============================================================================

def get_controller(request: Request) -> BetLifecycleController:
    return request.app.state.controller


def get_agent(request: Request) -> AgentClient:
    return request.app.state.agent


def get_games(request: Request) -> List[GameOdds]:
    return request.app.state.games


def _bet_response(bet: BetSnapshot) -> BetResponse:
    return BetResponse.model_validate(bet)


# ============================================================================
# PUBLIC ENDPOINTS
# ============================================================================

@app.get("/")
async def root():
    """Health check"""
    return {
        "app": "Sportsbook",
        "version": "1.0",
        "status": "operational",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Health check endpoint"""
    health = {"status": "healthy", "database": "connected", "scheduler": "running"}

    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Health check database error: %s", e)
        health["status"] = "degraded"
        health["database"] = f"error: {str(e)}"

    if not scheduler.running:
        health["status"] = "degraded"
        health["scheduler"] = "stopped"

    return health


@app.get("/api/games", response_model=List[GameOdds])
def list_games(games: List[GameOdds] = Depends(get_games)):
    """Reference games with moneyline odds"""
    return games


# ============================================================================
# BETS
# ============================================================================

@app.post("/api/place-bet", response_model=PlaceBetResponse)
def place_bet(
    payload: PlaceBetRequest,
    controller: BetLifecycleController = Depends(get_controller),
    agent: AgentClient = Depends(get_agent),
    games: List[GameOdds] = Depends(get_games),
):
    """
    Run one agent turn over the conversation.  Any confirmations in the
    reply are parsed into bets and start their resolve timers.
    """
    if not payload.messages:
        raise HTTPException(status_code=400, detail="No messages provided")

    try:
        reply = agent.place_bet(payload.messages, games)
    except Exception as exc:
        logger.error("Error in betting conversation: %s", exc, exc_info=True)
        return JSONResponse(status_code=500, content={"error": REQUEST_FAILED_MESSAGE})

    drafts = parse_confirmations(reply, games)
    placed = controller.place(drafts)

    return PlaceBetResponse(
        success=True,
        response=reply,
        bet_placed=is_bet_confirmation(reply),
        bet_amount=drafts[0].amount if drafts else None,
        bets=[_bet_response(b) for b in placed],
    )


@app.get("/api/bets", response_model=List[BetResponse])
def list_bets(controller: BetLifecycleController = Depends(get_controller)):
    """All bets in this session, oldest first"""
    return [_bet_response(b) for b in controller.list_bets()]


@app.get("/api/bets/{bet_id}", response_model=BetResponse)
def get_bet(bet_id: str, controller: BetLifecycleController = Depends(get_controller)):
    bet = controller.get(bet_id)
    if bet is None:
        raise HTTPException(status_code=404, detail=f"Bet {bet_id} not found")
    return _bet_response(bet)


@app.get("/api/outcomes", response_model=GameOutcomeResponse)
def get_outcome(matchup: str, controller: BetLifecycleController = Depends(get_controller)):
    """Simulated final score for ``matchup`` ("Away @ Home"), once any bet on it has resolved"""
    outcome = controller.outcome_for(matchup)
    if outcome is None:
        raise HTTPException(status_code=404, detail=f"No result yet for {matchup}")
    return GameOutcomeResponse.model_validate(outcome)


@app.post("/api/bets/{bet_id}/payout", response_model=BetPayoutResponse)
def claim_payout(
    bet_id: str,
    controller: BetLifecycleController = Depends(get_controller),
    agent: AgentClient = Depends(get_agent),
):
    """
    Pay out a winning bet.

    409 when the bet isn't eligible (pending, lost, or already paid);
    502 when the agent transfer fails; the bet is left unchanged and the
    claim can be retried.
    """
    try:
        result = controller.payout(bet_id, agent.execute_payout)
    except BetNotFoundError:
        raise HTTPException(status_code=404, detail=f"Bet {bet_id} not found")

    if result.status == "refused":
        raise HTTPException(status_code=409, detail=result.message)
    if result.status == "failed":
        raise HTTPException(status_code=502, detail=result.message)

    return BetPayoutResponse(
        message=result.message,
        transaction_id=result.transaction_id,
        bet=_bet_response(result.bet),
    )


@app.post("/api/payout", response_model=PayoutResponse)
def raw_payout(payload: PayoutRequest, agent: AgentClient = Depends(get_agent)):
    """
    Direct agent transfer with no lifecycle checks; kept for browser clients
    that track bets themselves.
    """
    if not payload.is_complete():
        raise HTTPException(status_code=400, detail="Missing required fields")

    try:
        reply = agent.execute_payout(payload)
    except Exception as exc:
        logger.error("Error processing payout: %s", exc, exc_info=True)
        return JSONResponse(status_code=500, content={"error": PAYOUT_FAILED_MESSAGE})

    return PayoutResponse(
        success=True,
        response=reply,
        transaction_id=parse_transaction_id(reply),
        payout_amount=payload.payout_amount,
    )
