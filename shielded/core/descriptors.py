"""
Shielded Parameters Descriptors

Spend and receive intents registered on the builder, the proved
descriptions produced from them, and the final parameter bundle.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from shielded.constants import ANCHOR_SIZE, SCALAR_SIZE, SIGNATURE_SIZE
from shielded.core.types import (
    Note,
    KeyMaterial,
    FullKeyMaterial,
    RawKeyMaterial,
    ShieldedOperation,
)
from shielded.errors import InvalidFieldLengthError


@dataclass(frozen=True, slots=True)
class SpendDescriptor:
    """
    Intended consumption of a previously committed note.

    The Merkle path is deliberately not checked here; its length is
    validated when the spend proof is generated.
    """
    key_material: KeyMaterial
    note: Note
    alpha: bytes
    anchor: bytes
    path: bytes

    def __post_init__(self):
        if not isinstance(self.key_material, (FullKeyMaterial, RawKeyMaterial)):
            raise TypeError(
                f"key_material must be FullKeyMaterial or RawKeyMaterial, "
                f"got {type(self.key_material).__name__}"
            )
        if len(self.alpha) != SCALAR_SIZE:
            raise InvalidFieldLengthError("alpha", len(self.alpha), SCALAR_SIZE)
        if len(self.anchor) != ANCHOR_SIZE:
            raise InvalidFieldLengthError("anchor", len(self.anchor), ANCHOR_SIZE)

    def __repr__(self) -> str:
        kind = "full" if isinstance(self.key_material, FullKeyMaterial) else "raw"
        return f"SpendDescriptor({kind}, value={self.note.value})"

    @property
    def is_raw(self) -> bool:
        return isinstance(self.key_material, RawKeyMaterial)


@dataclass(frozen=True, slots=True)
class ReceiveDescriptor:
    """
    Intended creation of a new note.

    ovk lets the sender recover the note later; its length is
    validated when the output proof is generated.
    """
    ovk: bytes
    note: Note

    def __repr__(self) -> str:
        return f"ReceiveDescriptor(value={self.note.value})"


@dataclass(frozen=True, slots=True)
class SpendDescription:
    """
    Proved spend.

    WIRE: cv(32) || anchor(32) || nullifier(32) || rk(32) || zkproof(192)
    spend_auth_sig(64) is carried alongside and never encoded.
    """
    cv: bytes
    anchor: bytes
    nullifier: bytes
    rk: bytes
    zkproof: bytes
    spend_auth_sig: Optional[bytes] = None

    def with_spend_auth_sig(self, signature: bytes) -> SpendDescription:
        if len(signature) != SIGNATURE_SIZE:
            raise InvalidFieldLengthError("spend_auth_sig", len(signature), SIGNATURE_SIZE)
        return replace(self, spend_auth_sig=signature)


@dataclass(frozen=True, slots=True)
class ReceiveDescription:
    """
    Proved output.

    WIRE: cv(32) || cm(32) || epk(32) || c_enc || c_out || zkproof(192)
    """
    cv: bytes
    cm: bytes
    epk: bytes
    c_enc: bytes
    c_out: bytes
    zkproof: bytes


@dataclass(frozen=True, slots=True)
class ParameterBundle:
    """
    Signed, provable parameter set for one shielded operation.

    Immutable; produced only by a successful build.
    """
    operation: ShieldedOperation
    spend_descriptions: Tuple[SpendDescription, ...]
    receive_descriptions: Tuple[ReceiveDescription, ...]
    message_hash: bytes
    binding_signature: bytes
    value_balance: int

    def __repr__(self) -> str:
        return (
            f"ParameterBundle({self.operation.name}, spends={len(self.spend_descriptions)}, "
            f"receives={len(self.receive_descriptions)}, hash={self.message_hash.hex()[:16]}...)"
        )

    @property
    def spend_auth_signatures(self) -> Tuple[bytes, ...]:
        """Spend authorization signatures present, in spend order."""
        return tuple(
            s.spend_auth_sig for s in self.spend_descriptions
            if s.spend_auth_sig is not None
        )
