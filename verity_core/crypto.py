"""
verity_core.crypto
------------------
Client identity helpers for the remote resolver.

- device_hash(): salted SHA-256 of a per-install identifier, sent as
  X-Device-Hash so the vendor can rate limit per device without learning
  the raw identifier.

The identifier may change across reinstalls; that is acceptable for rate
limiting, which is not security-critical.
"""

from __future__ import annotations
from cryptography.hazmat.primitives import hashes
from .constants import DEVICE_HASH_SALT


def sha256_hex(data: bytes) -> str:
    digest = hashes.Hash(hashes.SHA256())
    digest.update(data)
    return digest.finalize().hex()


def device_hash(identifier: str = "unknown", salt: str = DEVICE_HASH_SALT) -> str:
    return sha256_hex((identifier + salt).encode("utf-8"))
