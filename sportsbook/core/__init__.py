"""Core mathematics and configuration for the sportsbook.

This package contains pure building blocks:

- ``odds_math``   : implied probability, vig normalisation, payout
- ``game_sim``    : odds-driven single-game score simulator
- ``book_config`` : environment-backed settings (resolve delay, agent, wallets)

Nothing in this package imports from ``sportsbook.services`` or
``sportsbook.models``.  All modules are unit-testable in isolation.
"""
