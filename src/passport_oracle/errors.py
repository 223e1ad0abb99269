"""Error taxonomy shared across the oracle pipeline."""

from __future__ import annotations


class OracleError(RuntimeError):
    """Base class for every failure raised by the oracle."""


class ConfigurationError(OracleError):
    """Missing or invalid endpoint, chain id, or rule path."""


class SchemaError(OracleError):
    """A rule document failed validation; no rule from it may be applied."""


class ParseError(OracleError):
    """Malformed identifier or activity payload; the offending record is skipped."""


class RuleDocumentError(ParseError):
    """The rule document could not be read or decoded as JSON."""


class NetworkError(OracleError):
    """The indexer, node, or generative endpoint was unreachable or returned an error."""


class WriteError(OracleError):
    """Submitting an update to the ledger failed."""


class GenerativeScoringError(OracleError):
    """The generative evaluator could not produce a usable result."""


__all__ = [
    "ConfigurationError",
    "GenerativeScoringError",
    "NetworkError",
    "OracleError",
    "ParseError",
    "RuleDocumentError",
    "SchemaError",
    "WriteError",
]
