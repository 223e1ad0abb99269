"""Validation of owner, chain, and record identifiers at the ingestion edge."""

from __future__ import annotations

import re
from typing import Any

from passport_oracle.errors import ParseError

_HEX_RE = re.compile(r"^[0-9a-fA-F]*$")
_OWNER_BYTE_LENGTHS = (20, 32)
_CHAIN_ID_HEX_LENGTH = 64


def _strip_hex_prefix(value: str) -> str:
    return value[2:] if value[:2].lower() == "0x" else value


def parse_owner(raw: Any) -> str:
    """Return the canonical lowercase ``0x``-prefixed owner address.

    Owners are 20-byte (EVM style) or 32-byte account addresses.

    Raises:
        ParseError: If ``raw`` is not a hex address of a supported length.
    """

    if not isinstance(raw, str) or not raw.strip():
        raise ParseError(f"owner must be a non-empty string, got {raw!r}")
    body = _strip_hex_prefix(raw.strip())
    if not _HEX_RE.match(body) or len(body) // 2 not in _OWNER_BYTE_LENGTHS or len(body) % 2:
        raise ParseError(f"invalid owner address: {raw!r}")
    return f"0x{body.lower()}"


def parse_chain_id(raw: Any) -> str:
    """Return the canonical lowercase chain identifier (64 hex characters)."""

    if not isinstance(raw, str) or not raw.strip():
        raise ParseError(f"chain id must be a non-empty string, got {raw!r}")
    body = raw.strip()
    if len(body) != _CHAIN_ID_HEX_LENGTH or not _HEX_RE.match(body):
        raise ParseError(f"invalid chain id: {raw!r}")
    return body.lower()


def owners_match(left: str, right: str) -> bool:
    """Compare two owner strings ignoring case and the ``0x`` prefix."""

    return _strip_hex_prefix(left.strip()).lower() == _strip_hex_prefix(right.strip()).lower()


def decode_token_id(raw: Any) -> bytes | None:
    """Decode an on-chain record identifier into bytes.

    The node reports token ids as ``null``, a JSON array of byte values, or a
    hex string with an optional ``0x`` prefix. An empty string means no id.

    Raises:
        ParseError: If the representation is not recognised or holds invalid bytes.
    """

    if raw is None:
        return None
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw)
    if isinstance(raw, list):
        decoded = bytearray()
        for value in raw:
            if isinstance(value, bool) or not isinstance(value, int):
                raise ParseError(f"expected integer token byte, got {value!r}")
            if not 0 <= value <= 255:
                raise ParseError(f"token byte out of range: {value}")
            decoded.append(value)
        return bytes(decoded)
    if isinstance(raw, str):
        if not raw:
            return None
        body = _strip_hex_prefix(raw)
        try:
            return bytes.fromhex(body)
        except ValueError as exc:
            raise ParseError(f"invalid hex token id: {raw!r}") from exc
    raise ParseError(f"unexpected token id representation: {raw!r}")


def decode_payload_bytes(raw: Any) -> bytes:
    """Decode an opaque user-operation payload (byte array or hex string)."""

    if raw is None:
        return b""
    decoded = decode_token_id(raw)
    return decoded or b""


__all__ = [
    "decode_payload_bytes",
    "decode_token_id",
    "owners_match",
    "parse_chain_id",
    "parse_owner",
]
