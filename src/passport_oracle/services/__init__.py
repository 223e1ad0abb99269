"""Service layer orchestrating the oracle pass and the quick-score lookup."""
