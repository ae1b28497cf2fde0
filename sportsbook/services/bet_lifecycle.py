"""
Bet lifecycle management.

Every bet moves through one monotonic state machine:

    pending --(resolve delay elapsed since timestamp)--> ready --(payout succeeds)--> paid

``BetLifecycleController`` is the only writer of the ``bets`` and
``game_outcomes`` tables.  All transitions run under a single lock and are
keyed by bet id, so a timer firing for one bet never clobbers a payout in
progress for another.

Resolution
----------
When a bet turns ready, its matchup is simulated at most once: the
``game_outcomes`` row is checked, and only on a miss is the simulator run
and stored.  The outcome (and each bet's own ``did_win``) is attached to
every bet on that matchup that doesn't have one yet.

Timers
------
The delay is measured from the bet's timestamp, not from when a timer was
armed.  ``remaining_ms`` is a pure function of ``(now, timestamp)``; a bet
already due when armed resolves immediately.  Timers are APScheduler
``DateTrigger`` jobs named ``resolve-<bet_id>``; ``shutdown()`` removes any
that haven't fired.
"""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Iterator, List, Literal, Optional, Set

from apscheduler.jobstores.base import JobLookupError
from apscheduler.triggers.date import DateTrigger
from sqlalchemy.orm import Session

from sportsbook.core.book_config import BookConfig
from sportsbook.core.game_sim import GameOutcome, simulate_game
from sportsbook.models import Bet, GameResult, SessionLocal
from sportsbook.schemas import PayoutRequest
from sportsbook.services.confirmation_parser import BetDraft, parse_transaction_id

logger = logging.getLogger(__name__)

PENDING = "pending"
READY = "ready"
PAID = "paid"

PAYOUT_FAILED_MESSAGE = "Failed to process payout. Please try again."


class BetNotFoundError(LookupError):
    """No bet with the requested id exists in this session."""


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def remaining_ms(now_ms: float, timestamp_ms: float, delay_ms: float = 10_000.0) -> float:
    """Milliseconds until a bet placed at ``timestamp_ms`` is due; never negative."""
    return max(0.0, delay_ms - (now_ms - timestamp_ms))


def did_bet_win(team: str, home_team: str, away_team: str, outcome: GameOutcome) -> bool:
    """
    True when the backed side won.  A team matching neither side loses.
    """
    return (team == home_team and outcome.winner == "home") or (
        team == away_team and outcome.winner == "away"
    )


def _now_ms() -> float:
    return time.time() * 1000.0


# ---------------------------------------------------------------------------
# Snapshots and results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BetSnapshot:
    """Detached, read-only view of one bet."""

    id: str
    amount: float
    team: str
    matchup: str
    profit: float
    total_payout: float
    bet_transaction_id: str
    status: str
    timestamp: float
    home_team: str
    away_team: str
    home_odds: int
    away_odds: int
    payout_transaction_id: Optional[str] = None
    game_outcome: Optional[GameOutcome] = None
    did_win: Optional[bool] = None

    @property
    def can_payout(self) -> bool:
        return self.status == READY and self.did_win is True


@dataclass
class PayoutResult:
    status: Literal["paid", "refused", "failed"]
    message: str
    bet: BetSnapshot
    transaction_id: Optional[str] = None
    response: str = ""

    @property
    def ok(self) -> bool:
        return self.status == "paid"


def _snapshot(row: Bet) -> BetSnapshot:
    outcome = None
    if row.winner is not None:
        outcome = GameOutcome(
            home_score=row.home_score, away_score=row.away_score, winner=row.winner,
        )
    return BetSnapshot(
        id=row.id,
        amount=row.amount,
        team=row.team,
        matchup=row.matchup,
        profit=row.profit,
        total_payout=row.total_payout,
        bet_transaction_id=row.bet_transaction_id,
        status=row.status,
        timestamp=row.timestamp,
        home_team=row.home_team,
        away_team=row.away_team,
        home_odds=row.home_odds,
        away_odds=row.away_odds,
        payout_transaction_id=row.payout_transaction_id,
        game_outcome=outcome,
        did_win=row.did_win,
    )


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

class BetLifecycleController:
    """Owns one session's bets and matchup outcomes."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        config: Optional[BookConfig] = None,
        scheduler=None,
        simulator: Callable[[int, int], GameOutcome] = simulate_game,
        clock: Callable[[], float] = _now_ms,
    ):
        self.config = config or BookConfig()
        self._session_factory = session_factory
        self._scheduler = scheduler
        self._simulator = simulator
        self._clock = clock

        self._lock = threading.RLock()
        self._armed: Set[str] = set()
        self._in_flight: Set[str] = set()
        self._closed = False

    # -- plumbing ---------------------------------------------------------

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _require(self, db: Session, bet_id: str) -> Bet:
        row = db.get(Bet, bet_id)
        if row is None:
            raise BetNotFoundError(bet_id)
        return row

    # -- reads ------------------------------------------------------------

    def get(self, bet_id: str) -> Optional[BetSnapshot]:
        with self._lock, self._session() as db:
            row = db.get(Bet, bet_id)
            return _snapshot(row) if row else None

    def list_bets(self) -> List[BetSnapshot]:
        with self._lock, self._session() as db:
            rows = db.query(Bet).order_by(Bet.timestamp.asc(), Bet.id.asc()).all()
            return [_snapshot(r) for r in rows]

    def outcome_for(self, matchup: str) -> Optional[GameOutcome]:
        with self._lock, self._session() as db:
            cached = db.get(GameResult, matchup)
            if cached is None:
                return None
            return GameOutcome(cached.home_score, cached.away_score, cached.winner)

    @staticmethod
    def can_payout(bet: BetSnapshot) -> bool:
        return bet.can_payout

    # -- place ------------------------------------------------------------

    def place(self, drafts: Iterable[BetDraft]) -> List[BetSnapshot]:
        """Insert drafts as pending bets and arm one resolve timer each."""
        placed: List[BetSnapshot] = []
        with self._lock:
            with self._session() as db:
                for draft in drafts:
                    if db.get(Bet, draft.id) is not None:
                        logger.warning("Bet %s already tracked, skipping duplicate", draft.id)
                        continue
                    row = Bet(
                        id=draft.id,
                        amount=draft.amount,
                        team=draft.team,
                        matchup=draft.matchup,
                        profit=draft.profit,
                        total_payout=draft.total_payout,
                        bet_transaction_id=draft.bet_transaction_id,
                        status=PENDING,
                        timestamp=draft.timestamp,
                        home_team=draft.home_team,
                        away_team=draft.away_team,
                        home_odds=draft.home_odds,
                        away_odds=draft.away_odds,
                    )
                    db.add(row)
                    db.flush()
                    placed.append(_snapshot(row))
                    logger.info(
                        "Bet placed: %s | %.2f USDC on %s (%s) | tx %s",
                        row.id, row.amount, row.team, row.matchup,
                        row.bet_transaction_id,
                    )

        for snap in placed:
            self._arm(snap.id, snap.timestamp)
        return placed

    # -- resolve ----------------------------------------------------------

    def _outcome_for_matchup(self, db: Session, bet: Bet) -> GameOutcome:
        """Cached outcome for the bet's matchup; simulates and stores on a miss."""
        cached = db.get(GameResult, bet.matchup)
        if cached is not None:
            return GameOutcome(cached.home_score, cached.away_score, cached.winner)

        outcome = self._simulator(bet.home_odds, bet.away_odds)
        db.add(GameResult(
            matchup=bet.matchup,
            home_score=outcome.home_score,
            away_score=outcome.away_score,
            winner=outcome.winner,
        ))
        db.flush()
        logger.info(
            "Simulated %s: %s %d - %s %d (%s win)",
            bet.matchup, bet.away_team, outcome.away_score,
            bet.home_team, outcome.home_score,
            outcome.winning_team(bet.home_team, bet.away_team),
        )
        return outcome

    def resolve(self, bet_id: str) -> Optional[BetSnapshot]:
        """
        Move a due pending bet to ready and attach its game outcome.

        Idempotent: bets that are unknown, already resolved, or not yet
        due are returned unchanged (None for unknown).
        """
        with self._lock:
            if self._closed:
                return None
            with self._session() as db:
                bet = db.get(Bet, bet_id)
                if bet is None:
                    return None
                if bet.status != PENDING:
                    return _snapshot(bet)
                if remaining_ms(self._clock(), bet.timestamp, self.config.resolve_delay_ms) > 0:
                    return _snapshot(bet)

                outcome = self._outcome_for_matchup(db, bet)

                unresolved = (
                    db.query(Bet)
                    .filter(Bet.matchup == bet.matchup, Bet.winner.is_(None))
                    .all()
                )
                for other in unresolved:
                    other.home_score = outcome.home_score
                    other.away_score = outcome.away_score
                    other.winner = outcome.winner
                    other.did_win = did_bet_win(
                        other.team, other.home_team, other.away_team, outcome,
                    )

                bet.status = READY
                db.flush()
                logger.info(
                    "Bet ready: %s | %s | %s",
                    bet.id, bet.team, "WON" if bet.did_win else "LOST",
                )
                return _snapshot(bet)

    # -- timers -----------------------------------------------------------

    def _arm(self, bet_id: str, timestamp_ms: float) -> None:
        wait = remaining_ms(self._clock(), timestamp_ms, self.config.resolve_delay_ms)
        if wait <= 0:
            self.resolve(bet_id)
            return
        if self._scheduler is None:
            return

        job_id = f"resolve-{bet_id}"
        run_at = datetime.fromtimestamp(
            (timestamp_ms + self.config.resolve_delay_ms) / 1000.0, tz=timezone.utc,
        )
        with self._lock:
            if self._closed:
                return
            self._scheduler.add_job(
                self._fire,
                DateTrigger(run_date=run_at),
                args=[bet_id],
                id=job_id,
                name=f"Resolve {bet_id}",
                replace_existing=True,
                misfire_grace_time=None,
            )
            self._armed.add(job_id)

    def _fire(self, bet_id: str) -> None:
        """Scheduler callback.  Re-arms if the clock says it fired early."""
        with self._lock:
            self._armed.discard(f"resolve-{bet_id}")
        try:
            snap = self.resolve(bet_id)
            if snap is not None and snap.status == PENDING:
                self._arm(bet_id, snap.timestamp)
        except Exception as exc:
            logger.error("Resolve job failed for %s: %s", bet_id, exc, exc_info=True)

    def arm_pending(self) -> int:
        """
        (Re-)arm timers for every pending bet from its own timestamp.

        Bets already past due resolve immediately.  Returns the number of
        pending bets seen.
        """
        pending = [b for b in self.list_bets() if b.status == PENDING]
        for bet in pending:
            self._arm(bet.id, bet.timestamp)
        return len(pending)

    def shutdown(self) -> None:
        """Cancel every timer that hasn't fired; later resolves are no-ops."""
        with self._lock:
            self._closed = True
            armed = list(self._armed)
            self._armed.clear()
        if self._scheduler is None:
            return
        for job_id in armed:
            try:
                self._scheduler.remove_job(job_id)
            except JobLookupError:
                pass
        logger.info("Bet lifecycle shut down: %d pending timer(s) cancelled", len(armed))

    # -- payout -----------------------------------------------------------

    def payout(self, bet_id: str, execute: Callable[[PayoutRequest], str]) -> PayoutResult:
        """
        Pay out a winning ready bet through the external collaborator.

        Refused locally (``execute`` never called) unless the bet is ready,
        won, and has no payout already in flight.  A collaborator error or a
        reply without a transaction id leaves the bet untouched.

        Raises:
            BetNotFoundError: unknown ``bet_id``.
        """
        with self._lock:
            with self._session() as db:
                snap = _snapshot(self._require(db, bet_id))
            if not self.can_payout(snap) or bet_id in self._in_flight:
                reason = "payout already in progress" if bet_id in self._in_flight else (
                    f"bet is {snap.status}" + ("" if snap.did_win is not False else " and lost")
                )
                logger.warning("Payout refused for %s: %s", bet_id, reason)
                return PayoutResult(status="refused", message=f"Payout not allowed: {reason}", bet=snap)
            self._in_flight.add(bet_id)

        try:
            request = PayoutRequest(
                bet_id=snap.id,
                payout_amount=snap.total_payout,
                team=snap.team,
                matchup=snap.matchup,
            )
            try:
                response = execute(request)
            except Exception as exc:
                logger.error("Payout call failed for %s: %s", bet_id, exc, exc_info=True)
                return PayoutResult(status="failed", message=PAYOUT_FAILED_MESSAGE, bet=snap)

            transaction_id = parse_transaction_id(response or "")
            if not transaction_id:
                logger.error("Payout reply for %s has no transaction id: %r", bet_id, response)
                return PayoutResult(
                    status="failed", message=PAYOUT_FAILED_MESSAGE, bet=snap, response=response or "",
                )

            with self._lock, self._session() as db:
                row = self._require(db, bet_id)
                row.status = PAID
                row.payout_transaction_id = transaction_id
                row.paid_at = datetime.now(timezone.utc)
                db.flush()
                paid = _snapshot(row)

            logger.info(
                "Payout complete: %s | %.2f USDC | tx %s", bet_id, paid.total_payout, transaction_id,
            )
            return PayoutResult(
                status="paid",
                message=f"Payout complete! {paid.total_payout:g} USDC sent to bettor.",
                bet=paid,
                transaction_id=transaction_id,
                response=response,
            )
        finally:
            with self._lock:
                self._in_flight.discard(bet_id)
