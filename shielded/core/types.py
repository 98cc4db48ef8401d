"""
Shielded Parameters Core Types

Notes, addresses and spending key material.

Commitments and nullifiers are never stored on these types: they are
derived by the cryptographic backend when a proof is generated.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Union

from shielded.constants import (
    DIVERSIFIER_SIZE,
    KEY_SIZE,
    MEMO_SIZE,
    SCALAR_SIZE,
    U64_MAX,
    MERKLE_PATH_LENGTH,
    MERKLE_PATH_POSITION_SIZE,
)
from shielded.core.serialization import deserialize_u64, pad_to_size
from shielded.errors import (
    ValidationError,
    InvalidFieldLengthError,
    InvalidMerklePathError,
)


def _check_length(name: str, data: bytes, expected: int) -> None:
    if len(data) != expected:
        raise InvalidFieldLengthError(name, len(data), expected)


class ShieldedOperation(Enum):
    """Closed set of shielded pool operations."""
    MINT = auto()       # transparent -> shielded
    TRANSFER = auto()   # shielded -> shielded
    BURN = auto()       # shielded -> transparent


@dataclass(frozen=True, slots=True)
class PaymentAddress:
    """
    Shielded payment address.

    SIZE: 43 bytes (diversifier: 11 bytes, pk_d: 32 bytes)
    """
    diversifier: bytes
    pk_d: bytes

    def __post_init__(self):
        _check_length("diversifier", self.diversifier, DIVERSIFIER_SIZE)
        _check_length("pk_d", self.pk_d, KEY_SIZE)

    def __repr__(self) -> str:
        return f"PaymentAddress(d={self.diversifier.hex()}, pk_d={self.pk_d.hex()[:16]}...)"


@dataclass(frozen=True, slots=True)
class Note:
    """
    Committed unit of value.

    value is an unsigned 64-bit amount. memo is optional and is
    zero-padded to MEMO_SIZE when encrypted.
    """
    value: int
    diversifier: bytes
    pk_d: bytes
    rcm: bytes
    memo: Optional[bytes] = None

    def __post_init__(self):
        if not 0 <= self.value <= U64_MAX:
            raise ValidationError(f"note value out of u64 range: {self.value}")
        _check_length("diversifier", self.diversifier, DIVERSIFIER_SIZE)
        _check_length("pk_d", self.pk_d, KEY_SIZE)
        _check_length("rcm", self.rcm, SCALAR_SIZE)
        if self.memo is not None and len(self.memo) > MEMO_SIZE:
            raise ValidationError(
                f"memo too long: {len(self.memo)} > {MEMO_SIZE} bytes"
            )

    def __repr__(self) -> str:
        return f"Note(value={self.value}, d={self.diversifier.hex()})"

    @classmethod
    def for_address(
        cls,
        address: PaymentAddress,
        value: int,
        rcm: bytes,
        memo: Optional[bytes] = None,
    ) -> Note:
        return cls(
            value=value,
            diversifier=address.diversifier,
            pk_d=address.pk_d,
            rcm=rcm,
            memo=memo,
        )

    @property
    def address(self) -> PaymentAddress:
        return PaymentAddress(self.diversifier, self.pk_d)

    @property
    def memo_bytes(self) -> bytes:
        """Memo zero-padded to MEMO_SIZE."""
        return pad_to_size(self.memo or b"", MEMO_SIZE)


@dataclass(frozen=True, slots=True)
class ExpandedSpendingKey:
    """
    Expanded spending key (ask, nsk, ovk).

    NOTE: Never logged; repr is redacted.
    """
    ask: bytes
    nsk: bytes
    ovk: bytes

    def __post_init__(self):
        _check_length("ask", self.ask, KEY_SIZE)
        _check_length("nsk", self.nsk, KEY_SIZE)
        _check_length("ovk", self.ovk, KEY_SIZE)

    def __repr__(self) -> str:
        return "ExpandedSpendingKey(<redacted>)"


@dataclass(frozen=True, slots=True)
class FullViewingKey:
    """Full viewing key (ak, nk, ovk), derived by the backend."""
    ak: bytes
    nk: bytes
    ovk: bytes

    def __repr__(self) -> str:
        return f"FullViewingKey(ak={self.ak.hex()[:16]}...)"


@dataclass(frozen=True, slots=True)
class FullKeyMaterial:
    """Spend authorized by the holder of the full spending key."""
    expsk: ExpandedSpendingKey


@dataclass(frozen=True, slots=True)
class RawKeyMaterial:
    """
    Spend proved from raw authorizing key components.

    Used when proving on behalf of a holder of ak/nsk who keeps ask
    elsewhere; such spends cannot be spend-authorized here.
    """
    ak: bytes
    nsk: bytes
    ovk: Optional[bytes] = None

    def __post_init__(self):
        _check_length("ak", self.ak, KEY_SIZE)
        _check_length("nsk", self.nsk, KEY_SIZE)

    def __repr__(self) -> str:
        return f"RawKeyMaterial(ak={self.ak.hex()[:16]}..., nsk=<redacted>)"


KeyMaterial = Union[FullKeyMaterial, RawKeyMaterial]


def make_key_material(
    expsk: Optional[ExpandedSpendingKey] = None,
    ak: Optional[bytes] = None,
    nsk: Optional[bytes] = None,
    ovk: Optional[bytes] = None,
) -> KeyMaterial:
    """
    Select the key material variant from optional components.

    Exactly one of expsk or (ak, nsk) must be given.

    Raises:
        ValidationError: If both variants, neither, or half a raw key is given
    """
    has_raw = ak is not None or nsk is not None
    if expsk is not None and has_raw:
        raise ValidationError("spend carries both a spending key and raw key components")
    if expsk is not None:
        return FullKeyMaterial(expsk)
    if ak is None or nsk is None:
        raise ValidationError("spend needs a spending key or both ak and nsk")
    return RawKeyMaterial(ak=ak, nsk=nsk, ovk=ovk)


def decode_path_position(path: bytes) -> int:
    """
    Decode the leaf position from a serialized Merkle path.

    Layout: header(1) || 33 x sibling(32) || position(8, big-endian).

    Raises:
        InvalidMerklePathError: If path is not exactly MERKLE_PATH_LENGTH bytes
    """
    if len(path) != MERKLE_PATH_LENGTH:
        raise InvalidMerklePathError(len(path), MERKLE_PATH_LENGTH)
    position, _ = deserialize_u64(path, MERKLE_PATH_LENGTH - MERKLE_PATH_POSITION_SIZE)
    return position
