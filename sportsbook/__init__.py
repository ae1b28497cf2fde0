"""Conversational NFL moneyline sportsbook demo."""
