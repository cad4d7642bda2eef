"""
Public key sources used for token signature verification.

This package contains implementations of the KeySource protocol, allowing
keys to come from the identity platform's certificate endpoint, a local file
or a fixed in-memory set.
"""

from .certificates import (
    KeySnapshot,
    PublicKey,
    parse_max_age,
    parse_public_key,
    parse_public_keys,
)
from .local import FileKeySource, InMemoryKeySource
from .remote import HTTPKeySource

__all__ = [
    "FileKeySource",
    "HTTPKeySource",
    "InMemoryKeySource",
    "KeySnapshot",
    "PublicKey",
    "parse_max_age",
    "parse_public_key",
    "parse_public_keys",
]
