"""
Database models for the sportsbook bet store
SQLAlchemy ORM on an in-memory SQLite database by default
"""

from sqlalchemy import (
    create_engine,
    Column,
    Integer,
    String,
    Float,
    Boolean,
    DateTime,
)
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from datetime import datetime, timezone

from sportsbook.core.book_config import BookConfig

# Bets live only as long as the process; "sqlite://" is a private in-memory DB.
DATABASE_URL = BookConfig.from_env().database_url


def make_engine(url: str = DATABASE_URL):
    """
    Build an engine for ``url``.

    In-memory SQLite needs a single shared connection (StaticPool) so the
    API threadpool and scheduler threads all see the same tables.
    """
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )
    return create_engine(url, pool_pre_ping=True, echo=False)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


engine = make_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class Bet(Base):
    """One bet placed through the agent, tracked from pending to paid"""

    __tablename__ = "bets"

    id = Column(String, primary_key=True, index=True)  # "bet-<ms>-<ordinal>"
    amount = Column(Float, nullable=False)
    team = Column(String, nullable=False)
    matchup = Column(String, nullable=False, index=True)  # "Away @ Home"
    profit = Column(Float, nullable=False)
    total_payout = Column(Float, nullable=False)
    bet_transaction_id = Column(String, nullable=False)

    # pending | ready | paid
    status = Column(String(10), nullable=False, default="pending", index=True)
    timestamp = Column(Float, nullable=False)  # epoch ms at placement

    home_team = Column(String, nullable=False, default="")
    away_team = Column(String, nullable=False, default="")
    home_odds = Column(Integer, nullable=False, default=0)
    away_odds = Column(Integer, nullable=False, default=0)

    # Filled on resolution, never rewritten
    home_score = Column(Integer)
    away_score = Column(Integer)
    winner = Column(String(4))  # home | away
    did_win = Column(Boolean)

    # Filled once on payout
    payout_transaction_id = Column(String)
    paid_at = Column(DateTime)

    created_at = Column(DateTime, default=_utcnow)


class GameResult(Base):
    """Simulated final score, one row per matchup"""

    __tablename__ = "game_outcomes"

    matchup = Column(String, primary_key=True)
    home_score = Column(Integer, nullable=False)
    away_score = Column(Integer, nullable=False)
    winner = Column(String(4), nullable=False)
    simulated_at = Column(DateTime, default=_utcnow)


def init_db(bind=None):
    """Create tables (idempotent)"""
    Base.metadata.create_all(bind=bind or engine)
