"""
Streamlit front end for the sportsbook
Chat with the betting agent on the left, active bets and odds on the right
"""

import os
import sys
import time

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import streamlit as st

from dashboard.utils import (
    api_get,
    api_post,
    format_kickoff,
    format_odds,
    payout_button_label,
    visible_outcome,
)

st.set_page_config(
    page_title="Locus Sportsbook",
    page_icon="🏈",
    layout="wide",
)

st.title("Locus Sportsbook")
st.caption("NFL Moneyline Odds")

if "messages" not in st.session_state:
    st.session_state["messages"] = []

chat_col, bets_col = st.columns(2)


# ==============================================================================
# CHAT
# ==============================================================================

with chat_col:
    for msg in st.session_state["messages"]:
        with st.chat_message(msg["role"]):
            st.write(msg["content"])

    prompt = st.chat_input("e.g., Bet $10 on the Patriots to win")
    if prompt:
        st.session_state["messages"].append({"role": "user", "content": prompt})
        with st.spinner("Processing your bet and sending payment..."):
            data = api_post("/api/place-bet", {"messages": st.session_state["messages"]})
        if data:
            st.session_state["messages"].append({"role": "assistant", "content": data["response"]})
            if data.get("bet_placed") and not data.get("bets"):
                st.warning("The agent reported a bet but it could not be tracked. Check the transaction log.")
        st.rerun()


# ==============================================================================
# ACTIVE BETS + GAMES
# ==============================================================================

with bets_col:
    bets = api_get("/api/bets") or []
    if bets:
        st.subheader("Active Bets")

    for bet in bets:
        with st.container(border=True):
            left, right = st.columns(2)
            with left:
                st.markdown(f"**{bet['team']}**")
                st.caption(bet["matchup"])
                st.write(f"Bet: {bet['amount']} USDC | Profit: {bet['profit']} USDC")
                st.metric("Total Payout", f"{bet['total_payout']:.2f} USDC")
                if st.button(
                    payout_button_label(bet),
                    key=f"payout-{bet['id']}",
                    disabled=not bet["can_payout"],
                    use_container_width=True,
                ):
                    with st.spinner("Processing..."):
                        paid = api_post(f"/api/bets/{bet['id']}/payout")
                    if paid:
                        st.rerun()

            with right:
                outcome = visible_outcome(bet)
                if bet["status"] == "paid" and bet.get("payout_transaction_id"):
                    st.success("Payout Complete")
                    st.caption("Transaction ID")
                    st.code(bet["payout_transaction_id"])
                elif outcome:
                    if bet.get("did_win"):
                        st.success("Bet Won!")
                    else:
                        st.error("Bet Lost")
                    st.write("Final Score")
                    st.write(f"{bet['away_team']}: **{outcome['away_score']}**")
                    st.write(f"{bet['home_team']}: **{outcome['home_score']}**")
                else:
                    st.caption("Game in progress..." if bet["status"] == "pending" else "Ready to claim")

    st.subheader("Available Games")
    games = api_get("/api/games") or []
    for game in games:
        with st.container(border=True):
            st.caption(format_kickoff(game.get("commenceTime", "")))
            st.write(f"{game['awayTeam']}  {format_odds(game['awayOdds'])}")
            st.write(f"{game['homeTeam']}  {format_odds(game['homeOdds'])}")
    if not games:
        st.info("No upcoming games found. Run `python scripts/fetch_odds.py` to update.")

# Poll while any bet is still waiting on its game.
if any(b["status"] == "pending" for b in bets):
    time.sleep(2)
    st.rerun()
