"""Sportsbook services: odds, agent, confirmation parsing, bet lifecycle."""
