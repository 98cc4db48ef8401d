"""
Shielded Parameters Ed25519 Group Operations

Thin wrappers around libsodium (nacl.bindings) prime-order group
arithmetic, plus a Schnorr signature over arbitrary scalars. Used by the
simulated backend for value commitments, randomized spend keys and
binding signatures.

Scalars and points are 32-byte little-endian libsodium encodings.
"""

from __future__ import annotations
import hashlib
from typing import Iterable

import nacl.bindings
from nacl.exceptions import CryptoError

from shielded.crypto.hash import blake2b_prf

# Ed25519 group order (L)
CURVE_ORDER = 2**252 + 27742317777372353535851937790883648493

SCALAR_ZERO = bytes(32)

DOMAIN_HASH_TO_POINT = b"Shield_HashPoint"
DOMAIN_SCHNORR_NONCE = b"Shield_SchnorrNo"
DOMAIN_SCHNORR_CHALLENGE = b"Shield_SchnorrCh"


class GroupError(CryptoError):
    """Group operation produced an invalid or identity point."""
    pass


def scalar_from_int(value: int) -> bytes:
    """Encode an integer (possibly negative) as a scalar mod L."""
    return (value % CURVE_ORDER).to_bytes(32, "little")


def scalar_reduce(data: bytes) -> bytes:
    """Reduce arbitrary bytes to a scalar via a 64-byte wide hash."""
    if len(data) != 64:
        data = hashlib.sha512(data).digest()
    return nacl.bindings.crypto_core_ed25519_scalar_reduce(data)


def scalar_add(a: bytes, b: bytes) -> bytes:
    return nacl.bindings.crypto_core_ed25519_scalar_add(a, b)


def scalar_sub(a: bytes, b: bytes) -> bytes:
    return nacl.bindings.crypto_core_ed25519_scalar_sub(a, b)


def scalar_mul(a: bytes, b: bytes) -> bytes:
    return nacl.bindings.crypto_core_ed25519_scalar_mul(a, b)


def scalar_sum(scalars: Iterable[bytes]) -> bytes:
    total = SCALAR_ZERO
    for s in scalars:
        total = scalar_add(total, s)
    return total


def is_valid_point(point: bytes) -> bool:
    if len(point) != 32:
        return False
    return bool(nacl.bindings.crypto_core_ed25519_is_valid_point(point))


def point_add(p: bytes, q: bytes) -> bytes:
    return nacl.bindings.crypto_core_ed25519_add(p, q)


def point_sub(p: bytes, q: bytes) -> bytes:
    return nacl.bindings.crypto_core_ed25519_sub(p, q)


def point_negate(p: bytes) -> bytes:
    """-P: flip the sign bit of x."""
    negated = bytearray(p)
    negated[31] ^= 0x80
    return bytes(negated)


def scalarmult_base(scalar: bytes) -> bytes:
    """s * B. Raises GroupError for the zero scalar."""
    if scalar == SCALAR_ZERO:
        raise GroupError("zero scalar multiplication")
    return nacl.bindings.crypto_scalarmult_ed25519_base_noclamp(scalar)


def scalarmult(scalar: bytes, point: bytes) -> bytes:
    """s * P. Raises GroupError for the zero scalar."""
    if scalar == SCALAR_ZERO:
        raise GroupError("zero scalar multiplication")
    return nacl.bindings.crypto_scalarmult_ed25519_noclamp(scalar, point)


def hash_to_point(data: bytes) -> bytes:
    """
    Hash data to a prime-order point as h(data) * B.

    The discrete log of the result is public, which is acceptable only
    for simulation.
    """
    return scalarmult_base(scalar_reduce(hashlib.sha512(DOMAIN_HASH_TO_POINT + data).digest()))


def schnorr_sign(secret: bytes, public: bytes, message: bytes) -> bytes:
    """
    Deterministic Schnorr signature R || S with secret scalar.

    public must equal secret * B.
    """
    r = scalar_reduce(blake2b_prf(DOMAIN_SCHNORR_NONCE, secret, message, size=64))
    big_r = scalarmult_base(r)
    c = scalar_reduce(blake2b_prf(DOMAIN_SCHNORR_CHALLENGE, big_r, public, message, size=64))
    s = scalar_add(r, scalar_mul(c, secret))
    return big_r + s


def schnorr_verify(public: bytes, message: bytes, signature: bytes) -> bool:
    """Check S * B == R + c * public."""
    if len(signature) != 64 or not is_valid_point(public):
        return False
    big_r, s = signature[:32], signature[32:]
    c = scalar_reduce(blake2b_prf(DOMAIN_SCHNORR_CHALLENGE, big_r, public, message, size=64))
    try:
        lhs = scalarmult_base(s)
        rhs = point_add(big_r, scalarmult(c, public))
    except CryptoError:
        return False
    return lhs == rhs
