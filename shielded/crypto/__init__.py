"""
Shielded Parameters Cryptographic Interfaces
"""

from shielded.crypto.hash import sha256, sha3_256, get_digest_function
from shielded.crypto.backend import CryptoBackend, ProvingContext

__all__ = [
    # Hash functions
    "sha256",
    "sha3_256",
    "get_digest_function",
    # Backend
    "CryptoBackend",
    "ProvingContext",
]
