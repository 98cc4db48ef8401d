"""
Canonical message assembly tests.
"""

import pytest

from shielded.constants import ENC_CIPHERTEXT_SIZE, OUT_CIPHERTEXT_SIZE
from shielded.core.descriptors import SpendDescription, ReceiveDescription
from shielded.core.serialization import ByteReader, serialize_u64, deserialize_u64
from shielded.protocol.message import (
    SPEND_DESCRIPTION_SIZE,
    MessageAssembler,
    encode_spend_description,
    encode_receive_description,
    decode_spend_description,
    mint_message,
    transfer_message,
    burn_message,
)


@pytest.fixture
def spend():
    return SpendDescription(
        cv=b"\x01" * 32,
        anchor=b"\x02" * 32,
        nullifier=b"\x03" * 32,
        rk=b"\x04" * 32,
        zkproof=b"\x05" * 192,
        spend_auth_sig=b"\x06" * 64,
    )


@pytest.fixture
def receive():
    return ReceiveDescription(
        cv=b"\x11" * 32,
        cm=b"\x12" * 32,
        epk=b"\x13" * 32,
        c_enc=b"\x14" * ENC_CIPHERTEXT_SIZE,
        c_out=b"\x15" * OUT_CIPHERTEXT_SIZE,
        zkproof=b"\x16" * 192,
    )


class TestDescriptionEncoding:
    """Per-description layouts."""

    def test_spend_layout(self, spend):
        data = encode_spend_description(spend)
        assert len(data) == SPEND_DESCRIPTION_SIZE == 320
        assert data == (
            b"\x01" * 32 + b"\x02" * 32 + b"\x03" * 32 + b"\x04" * 32 + b"\x05" * 192
        )

    def test_spend_auth_sig_not_encoded(self, spend):
        assert b"\x06" not in encode_spend_description(spend)

    def test_receive_layout(self, receive):
        data = encode_receive_description(receive)
        assert len(data) == 96 + ENC_CIPHERTEXT_SIZE + OUT_CIPHERTEXT_SIZE + 192 == 948
        assert data[:32] == b"\x11" * 32
        assert data[32:64] == b"\x12" * 32
        assert data[64:96] == b"\x13" * 32
        assert data[-192:] == b"\x16" * 192

    def test_wrong_width_rejected(self, spend):
        bad = SpendDescription(
            cv=spend.cv, anchor=spend.anchor, nullifier=spend.nullifier,
            rk=b"\x04" * 31, zkproof=spend.zkproof,
        )
        with pytest.raises(ValueError):
            encode_spend_description(bad)

    def test_decode_spend(self, spend):
        data = b"\xee" * 5 + encode_spend_description(spend)
        decoded, consumed = decode_spend_description(data, 5)
        assert consumed == SPEND_DESCRIPTION_SIZE
        assert decoded.cv == spend.cv
        assert decoded.anchor == spend.anchor
        assert decoded.nullifier == spend.nullifier
        assert decoded.rk == spend.rk
        assert decoded.zkproof == spend.zkproof
        assert decoded.spend_auth_sig is None

    def test_decode_consecutive_spends(self, pool_address, spend, receive):
        other = SpendDescription(
            cv=b"\x31" * 32, anchor=b"\x32" * 32, nullifier=b"\x33" * 32,
            rk=b"\x34" * 32, zkproof=b"\x35" * 192,
        )
        message = transfer_message(pool_address, [spend, other], [receive])
        offset = len(pool_address)
        first, consumed = decode_spend_description(message, offset)
        second, _ = decode_spend_description(message, offset + consumed)
        assert first == SpendDescription(
            cv=spend.cv, anchor=spend.anchor, nullifier=spend.nullifier,
            rk=spend.rk, zkproof=spend.zkproof,
        )
        assert second == other


class TestOperationMessages:
    """Whole-message layouts for each operation."""

    def test_mint(self, pool_address, receive):
        message = mint_message(pool_address, 100, receive)
        assert message == pool_address + serialize_u64(100) + encode_receive_description(receive)
        assert deserialize_u64(message, len(pool_address)) == (100, 8)

    def test_transfer_order(self, pool_address, spend, receive):
        other = ReceiveDescription(
            cv=b"\x21" * 32, cm=b"\x22" * 32, epk=b"\x23" * 32,
            c_enc=b"\x24" * 10, c_out=b"\x25" * 10, zkproof=b"\x26" * 192,
        )
        message = transfer_message(pool_address, [spend, spend], [receive, other])
        assert message == (
            pool_address
            + encode_spend_description(spend) * 2
            + encode_receive_description(receive)
            + encode_receive_description(other)
        )

    def test_burn(self, pool_address, to_address, spend):
        message = burn_message(pool_address, spend, to_address, 90)
        assert message == (
            pool_address + encode_spend_description(spend) + to_address + serialize_u64(90)
        )
        reader = ByteReader(message, len(pool_address) + SPEND_DESCRIPTION_SIZE)
        assert reader.read_raw(len(to_address)) == to_address
        assert reader.read_u64() == 90
        assert reader.remaining() == 0

    def test_encoding_is_deterministic(self, pool_address, spend, receive):
        first = transfer_message(pool_address, [spend], [receive])
        second = transfer_message(pool_address, [spend], [receive])
        assert first == second

    def test_assembler_length(self, pool_address, spend):
        assembler = MessageAssembler(pool_address).add_spend(spend).add_amount(1)
        assert len(assembler) == len(pool_address) + SPEND_DESCRIPTION_SIZE + 8
        assert len(assembler.getvalue()) == len(assembler)
