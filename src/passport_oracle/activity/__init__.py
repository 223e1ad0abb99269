"""Activity package for the passport oracle.

Turns raw indexer operations into normalized owner events and folds them
into per-category counters and scalar aggregates used by scoring.
"""
