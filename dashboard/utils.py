"""Shared helpers for the sportsbook dashboard."""

import os
from datetime import datetime
from typing import Optional

import pandas as pd
import requests
import streamlit as st
from dotenv import load_dotenv

load_dotenv()

_API_URL = os.getenv("API_URL", "http://localhost:8000")

# Agent calls run tool use server-side and can take a while.
_AGENT_TIMEOUT = 180


def _error_detail(exc: requests.HTTPError) -> str:
    try:
        body = exc.response.json()
    except ValueError:
        return str(exc)
    return body.get("detail") or body.get("error") or str(exc)


def api_get(endpoint: str, params: dict = None):
    try:
        r = requests.get(f"{_API_URL}{endpoint}", params=params, timeout=15)
        r.raise_for_status()
        return r.json()
    except Exception as exc:
        st.error(f"API error: {exc}")
        return None


def api_post(endpoint: str, payload: Optional[dict] = None, timeout: int = _AGENT_TIMEOUT):
    try:
        r = requests.post(f"{_API_URL}{endpoint}", json=payload or {}, timeout=timeout)
        r.raise_for_status()
        return r.json()
    except requests.HTTPError as exc:
        st.error(_error_detail(exc))
        return None
    except Exception as exc:
        st.error(f"Request failed: {exc}")
        return None


def format_odds(odds: int) -> str:
    return f"+{odds}" if odds > 0 else f"{odds}"


def format_kickoff(value: str) -> str:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%a, %b %d %I:%M %p")
    except (AttributeError, ValueError):
        return value or ""


def visible_outcome(bet: dict) -> Optional[dict]:
    """
    The bet's game outcome once the bet itself has resolved.  A pending bet
    can already carry its matchup's outcome (another bet on the same game
    resolved first); it stays hidden until this bet's own timer fires.
    """
    if bet.get("status") == "pending":
        return None
    return bet.get("game_outcome")


def payout_button_label(bet: dict) -> str:
    if bet["status"] == "paid":
        return "Paid Out"
    if bet["status"] == "ready":
        return "Claim Payout" if bet.get("did_win") else "Bet Lost"
    return "Pending..."


# ==============================================================================
# BET HISTORY
# ==============================================================================

RESULT_LABELS = {True: "Win", False: "Loss"}


def bets_frame(bets: list) -> pd.DataFrame:
    """
    Flatten API bet records into a table, oldest first.

    ``result`` is Win/Loss once the game is decided and Pending before.
    ``profit_loss`` is the bettor's net for decided bets: the quoted profit on
    a win, minus the stake on a loss.
    """
    if not bets:
        return pd.DataFrame()

    df = pd.DataFrame(bets)
    df["placed_at"] = pd.to_datetime(df["timestamp"], unit="ms", utc=True)
    outcomes = [visible_outcome(b) or {} for b in bets]
    df["result"] = [
        RESULT_LABELS.get(did_win, "Pending") if outcome else "Pending"
        for did_win, outcome in zip(df["did_win"], outcomes)
    ]
    df["profit_loss"] = df.apply(
        lambda b: b["profit"] if b["result"] == "Win"
        else (-b["amount"] if b["result"] == "Loss" else float("nan")),
        axis=1,
    )
    df["final_score"] = [
        f"{o['away_score']}-{o['home_score']}" if o else "" for o in outcomes
    ]
    return df.sort_values("placed_at").reset_index(drop=True)


def session_summary(df: pd.DataFrame) -> dict:
    """Win/loss record, net P&L and ROI over decided bets."""
    if df.empty:
        return {"decided": 0, "wins": 0, "losses": 0, "profit_loss": 0.0, "roi": 0.0}
    decided = df[df["result"].isin(["Win", "Loss"])]
    wins = int((decided["result"] == "Win").sum())
    risked = float(decided["amount"].sum())
    total_pl = float(decided["profit_loss"].sum())
    return {
        "decided": len(decided),
        "wins": wins,
        "losses": len(decided) - wins,
        "profit_loss": total_pl,
        "roi": total_pl / risked if risked > 0 else 0.0,
    }
