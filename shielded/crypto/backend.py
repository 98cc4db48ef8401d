"""
Shielded Parameters Cryptographic Backend Interface

The builder never performs proving, curve arithmetic or note encryption
itself. It drives an implementation of CryptoBackend, passing an opaque
proving context handle to every call that accumulates proving state.

Failure convention: proof, encryption and signing calls return None
when the backend reports failure. The builder maps None onto the error
taxonomy in shielded.errors.
"""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple

from shielded.core.types import Note, ExpandedSpendingKey, FullViewingKey

logger = logging.getLogger(__name__)

ProvingHandle = Any


class ProvingContext:
    """
    Scoped proving context.

    Acquired from CryptoBackend.proving_context() and used as a context
    manager. The underlying handle is freed exactly once, on whichever
    path leaves the with block first; later release() calls are no-ops.
    """

    def __init__(self, backend: CryptoBackend, handle: ProvingHandle):
        self._backend = backend
        self._handle = handle
        self._released = False

    @property
    def handle(self) -> ProvingHandle:
        if self._released:
            raise RuntimeError("proving context already released")
        return self._handle

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        if self._released:
            return
        # Flag first: a raising free must not be retried.
        self._released = True
        logger.debug("Releasing proving context")
        self._backend.free_proving_context(self._handle)

    def __enter__(self) -> ProvingContext:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.release()
        return False


class CryptoBackend(ABC):
    """
    Capability set consumed by the parameter builder.

    All byte arguments and results are fixed width as documented in
    shielded.constants unless noted.
    """

    def proving_context(self) -> ProvingContext:
        """Acquire a proving context scoped to a with block."""
        return ProvingContext(self, self.init_proving_context())

    # --- context lifecycle ---

    @abstractmethod
    def init_proving_context(self) -> ProvingHandle:
        ...

    @abstractmethod
    def free_proving_context(self, handle: ProvingHandle) -> None:
        ...

    # --- randomness and key derivation ---

    @abstractmethod
    def generate_random_scalar(self) -> bytes:
        """Uniform 32-byte scalar (alpha, rcm)."""

    @abstractmethod
    def derive_full_viewing_key(self, expsk: ExpandedSpendingKey) -> FullViewingKey:
        ...

    @abstractmethod
    def derive_nullifier_deriving_key(self, nsk: bytes) -> bytes:
        """nsk -> nk."""

    @abstractmethod
    def note_commitment(self, note: Note) -> bytes:
        """Note commitment cm; empty on failure."""

    @abstractmethod
    def derive_nullifier(self, note: Note, ak: bytes, nk: bytes, position: int) -> bytes:
        """Nullifier of note at position; empty on failure."""

    # --- proofs ---

    @abstractmethod
    def spend_proof(
        self,
        handle: ProvingHandle,
        ak: bytes,
        nsk: bytes,
        diversifier: bytes,
        rcm: bytes,
        alpha: bytes,
        value: int,
        anchor: bytes,
        path: bytes,
    ) -> Optional[Tuple[bytes, bytes, bytes]]:
        """Returns (cv, rk, zkproof) or None."""

    @abstractmethod
    def output_proof(
        self,
        handle: ProvingHandle,
        esk: bytes,
        diversifier: bytes,
        pk_d: bytes,
        rcm: bytes,
        value: int,
    ) -> Optional[Tuple[bytes, bytes]]:
        """Returns (cv, zkproof) or None."""

    # --- encryption ---

    @abstractmethod
    def encrypt_note(self, note: Note, pk_d: bytes) -> Optional[Tuple[bytes, bytes, bytes]]:
        """Returns (esk, epk, c_enc) or None."""

    @abstractmethod
    def encrypt_outgoing(
        self,
        ovk: bytes,
        pk_d: bytes,
        esk: bytes,
        cv: bytes,
        cm: bytes,
        epk: bytes,
    ) -> bytes:
        """Outgoing ciphertext c_out; empty on failure."""

    # --- signatures ---

    @abstractmethod
    def sign_spend_auth(self, ask: bytes, alpha: bytes, digest: bytes) -> Optional[bytes]:
        ...

    @abstractmethod
    def sign_binding(self, handle: ProvingHandle, value_balance: int, digest: bytes) -> Optional[bytes]:
        ...
