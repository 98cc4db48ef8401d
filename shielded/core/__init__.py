"""
Shielded Parameters Core Data Structures
"""

from shielded.core.types import (
    ShieldedOperation,
    PaymentAddress,
    Note,
    ExpandedSpendingKey,
    FullViewingKey,
    FullKeyMaterial,
    RawKeyMaterial,
    KeyMaterial,
    make_key_material,
    decode_path_position,
)
from shielded.core.descriptors import (
    SpendDescriptor,
    ReceiveDescriptor,
    SpendDescription,
    ReceiveDescription,
    ParameterBundle,
)
from shielded.core.serialization import ByteReader, ByteWriter

__all__ = [
    # Types
    "ShieldedOperation",
    "PaymentAddress",
    "Note",
    "ExpandedSpendingKey",
    "FullViewingKey",
    "FullKeyMaterial",
    "RawKeyMaterial",
    "KeyMaterial",
    "make_key_material",
    "decode_path_position",
    # Descriptors
    "SpendDescriptor",
    "ReceiveDescriptor",
    "SpendDescription",
    "ReceiveDescription",
    "ParameterBundle",
    # Serialization
    "ByteReader",
    "ByteWriter",
]
