"""Reputation oracle that scores ledger activity and writes passport updates."""

__version__ = "0.1.0"
