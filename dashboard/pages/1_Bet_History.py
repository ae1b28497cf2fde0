"""Bet History page: session bets table, running P&L, CSV export."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

import plotly.graph_objects as go
import streamlit as st
from dashboard.utils import api_get, bets_frame, format_odds, session_summary

st.set_page_config(page_title="Bet History | Locus Sportsbook", layout="wide")

st.title("Bet History")

df = bets_frame(api_get("/api/bets") or [])

if df.empty:
    st.info("No bets placed this session.")
    st.stop()

status_filter = st.selectbox("Status", ["all", "pending", "ready", "paid"])
if status_filter != "all":
    df = df[df["status"] == status_filter]

if df.empty:
    st.info("No bets after applying filters.")
    st.stop()

# --- Summary ---
summary = session_summary(df)
c1, c2, c3, c4 = st.columns(4)
c1.metric("Bets", len(df))
c2.metric("Record", f"{summary['wins']}W-{summary['losses']}L")
c3.metric("Net P&L", f"{summary['profit_loss']:+.2f} USDC")
c4.metric("ROI", f"{summary['roi']:.1%}")

# --- Table ---
df["odds_taken"] = df.apply(
    lambda b: format_odds(b["home_odds"] if b["team"] == b["home_team"] else b["away_odds"]),
    axis=1,
)
display_cols = [
    "placed_at", "matchup", "team", "odds_taken", "amount", "profit",
    "status", "result", "final_score", "profit_loss", "bet_transaction_id",
    "payout_transaction_id",
]
rename_map = {
    "placed_at": "Placed", "matchup": "Matchup", "team": "Pick", "odds_taken": "Odds",
    "amount": "Stake", "profit": "To Win", "status": "Status", "result": "Result",
    "final_score": "Score (A-H)", "profit_loss": "P&L", "bet_transaction_id": "Bet Tx",
    "payout_transaction_id": "Payout Tx",
}
table = df[display_cols].rename(columns=rename_map)
st.dataframe(table, use_container_width=True, hide_index=True)

# --- Running P&L ---
decided = df[df["result"].isin(["Win", "Loss"])]
if not decided.empty:
    st.subheader("Running P&L")
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=list(range(1, len(decided) + 1)),
        y=decided["profit_loss"].cumsum(),
        mode="lines+markers",
        text=decided["team"],
        line=dict(color="#2ecc71"),
    ))
    fig.add_hline(y=0, line_dash="dash", line_color="gray")
    fig.update_layout(xaxis_title="Decided bet #", yaxis_title="USDC", height=320)
    st.plotly_chart(fig, use_container_width=True)

# --- CSV export ---
st.markdown("---")
st.download_button(
    label="Export to CSV",
    data=table.to_csv(index=False).encode("utf-8"),
    file_name="sportsbook_bet_history.csv",
    mime="text/csv",
)
