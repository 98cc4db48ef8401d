"""
Shielded Parameters Hash Functions

Message digest over the canonical parameter bytes, and the personalized
BLAKE2b PRF used by the simulated backend.
"""

from __future__ import annotations
import hashlib
from typing import Callable

from shielded.constants import (
    HASH_SIZE,
    HASH_ALGORITHM_SHA256,
    HASH_ALGORITHM_SHA3_256,
    SUPPORTED_HASH_ALGORITHMS,
)

DigestFunction = Callable[[bytes], bytes]


def sha256(data: bytes) -> bytes:
    """SHA-256 digest."""
    return hashlib.sha256(data).digest()


def sha3_256(data: bytes) -> bytes:
    """SHA3-256 digest."""
    return hashlib.sha3_256(data).digest()


_DIGESTS = {
    HASH_ALGORITHM_SHA256: sha256,
    HASH_ALGORITHM_SHA3_256: sha3_256,
}


def get_digest_function(algorithm: str) -> DigestFunction:
    """
    Look up the message digest function by name.

    Raises:
        ValueError: If algorithm is not one of SUPPORTED_HASH_ALGORITHMS
    """
    try:
        return _DIGESTS[algorithm]
    except KeyError:
        raise ValueError(
            f"unsupported hash algorithm {algorithm!r}, "
            f"expected one of {SUPPORTED_HASH_ALGORITHMS}"
        ) from None


def blake2b_prf(personal: bytes, *parts: bytes, size: int = HASH_SIZE, key: bytes = b"") -> bytes:
    """
    Personalized BLAKE2b over the concatenation of parts.

    Args:
        personal: Domain separation tag (at most 16 bytes)
        parts: Inputs, concatenated in order
        size: Output length in bytes (1..64)
        key: Optional MAC key (at most 64 bytes)
    """
    h = hashlib.blake2b(digest_size=size, person=personal, key=key)
    for part in parts:
        h.update(part)
    return h.digest()


def blake2b_expand(personal: bytes, seed: bytes, size: int) -> bytes:
    """Expand seed to size bytes with counter-mode BLAKE2b."""
    out = bytearray()
    counter = 0
    while len(out) < size:
        out += blake2b_prf(personal, seed, counter.to_bytes(4, "big"), size=64)
        counter += 1
    return bytes(out[:size])
