"""Scoring package for the passport oracle.

Contains the rule engine, the generative evaluator, the strategy wrapper
that falls back from one to the other, and the delta calculator.
"""
