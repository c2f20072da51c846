"""Mapping layer — record <-> entity conversion.

Depends only on the domain layer.
"""

from __future__ import annotations

from entitymap.mapping.decoder import decode, decode_embedded, undeclared_properties
from entitymap.mapping.encoder import encode, encode_embedded

__all__ = [
    "decode",
    "decode_embedded",
    "encode",
    "encode_embedded",
    "undeclared_properties",
]
