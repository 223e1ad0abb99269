"""Ledger package for the passport oracle.

Read-only queries against the node and indexer, cross-chain activity
collection, and submission of passport updates.
"""
