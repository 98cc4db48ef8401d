"""
Shielded Parameters Message Assembly

Canonical byte encoding of proved descriptions and operation metadata.
The result is hashed once; every spend authorization signature and the
binding signature cover that digest.

Fields are concatenated in a fixed order with no delimiters. Amounts
are u64 big-endian. Spend authorization signatures are never encoded.
"""

from __future__ import annotations
from typing import Iterable, Sequence

from shielded.constants import (
    VALUE_COMMITMENT_SIZE,
    ANCHOR_SIZE,
    NULLIFIER_SIZE,
    RANDOMIZED_KEY_SIZE,
    NOTE_COMMITMENT_SIZE,
    EPHEMERAL_KEY_SIZE,
    ZKPROOF_SIZE,
)
from shielded.core.descriptors import SpendDescription, ReceiveDescription
from shielded.core.serialization import ByteReader, ByteWriter

# cv || anchor || nf || rk || zkproof
SPEND_DESCRIPTION_SIZE = (
    VALUE_COMMITMENT_SIZE + ANCHOR_SIZE + NULLIFIER_SIZE + RANDOMIZED_KEY_SIZE + ZKPROOF_SIZE
)


def encode_spend_description(spend: SpendDescription) -> bytes:
    """cv(32) || anchor(32) || nullifier(32) || rk(32) || zkproof(192)."""
    writer = ByteWriter()
    writer.write_fixed(spend.cv, VALUE_COMMITMENT_SIZE)
    writer.write_fixed(spend.anchor, ANCHOR_SIZE)
    writer.write_fixed(spend.nullifier, NULLIFIER_SIZE)
    writer.write_fixed(spend.rk, RANDOMIZED_KEY_SIZE)
    writer.write_fixed(spend.zkproof, ZKPROOF_SIZE)
    return writer.getvalue()


def encode_receive_description(receive: ReceiveDescription) -> bytes:
    """cv(32) || cm(32) || epk(32) || c_enc || c_out || zkproof(192)."""
    writer = ByteWriter()
    writer.write_fixed(receive.cv, VALUE_COMMITMENT_SIZE)
    writer.write_fixed(receive.cm, NOTE_COMMITMENT_SIZE)
    writer.write_fixed(receive.epk, EPHEMERAL_KEY_SIZE)
    writer.write_raw(receive.c_enc)
    writer.write_raw(receive.c_out)
    writer.write_fixed(receive.zkproof, ZKPROOF_SIZE)
    return writer.getvalue()


def decode_spend_description(data: bytes, offset: int = 0) -> tuple[SpendDescription, int]:
    """Decode a spend encoding, return (SpendDescription, bytes_consumed)."""
    reader = ByteReader(data, offset)
    spend = SpendDescription(
        cv=reader.read_raw(VALUE_COMMITMENT_SIZE),
        anchor=reader.read_raw(ANCHOR_SIZE),
        nullifier=reader.read_raw(NULLIFIER_SIZE),
        rk=reader.read_raw(RANDOMIZED_KEY_SIZE),
        zkproof=reader.read_raw(ZKPROOF_SIZE),
    )
    return spend, SPEND_DESCRIPTION_SIZE


class MessageAssembler:
    """
    Incremental canonical message for one operation.

    Every message starts with the shielded pool contract address.
    Callers append descriptions in registration order, spends first.
    """

    def __init__(self, pool_address: bytes):
        self._writer = ByteWriter()
        self._writer.write_raw(pool_address)

    def add_amount(self, amount: int) -> MessageAssembler:
        self._writer.write_u64(amount)
        return self

    def add_address(self, address: bytes) -> MessageAssembler:
        self._writer.write_raw(address)
        return self

    def add_spend(self, spend: SpendDescription) -> MessageAssembler:
        self._writer.write_raw(encode_spend_description(spend))
        return self

    def add_receive(self, receive: ReceiveDescription) -> MessageAssembler:
        self._writer.write_raw(encode_receive_description(receive))
        return self

    def __len__(self) -> int:
        return len(self._writer)

    def getvalue(self) -> bytes:
        return self._writer.getvalue()


def mint_message(pool_address: bytes, from_amount: int, receive: ReceiveDescription) -> bytes:
    """pool || u64be(from_amount) || receive."""
    return (
        MessageAssembler(pool_address)
        .add_amount(from_amount)
        .add_receive(receive)
        .getvalue()
    )


def transfer_message(
    pool_address: bytes,
    spends: Sequence[SpendDescription],
    receives: Iterable[ReceiveDescription],
) -> bytes:
    """pool || spend_0 || ... || spend_n-1 || receive_0 || ... || receive_m-1."""
    assembler = MessageAssembler(pool_address)
    for spend in spends:
        assembler.add_spend(spend)
    for receive in receives:
        assembler.add_receive(receive)
    return assembler.getvalue()


def burn_message(
    pool_address: bytes,
    spend: SpendDescription,
    to_address: bytes,
    to_amount: int,
) -> bytes:
    """pool || spend || to_address || u64be(to_amount)."""
    return (
        MessageAssembler(pool_address)
        .add_spend(spend)
        .add_address(to_address)
        .add_amount(to_amount)
        .getvalue()
    )
