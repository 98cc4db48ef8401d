"""
Shielded Parameters Test Fixtures
"""

import pytest

from shielded.constants import MERKLE_PATH_SIBLINGS, HASH_SIZE
from shielded.core.serialization import serialize_u64
from shielded.core.types import Note, PaymentAddress, ExpandedSpendingKey
from shielded.crypto.simulated import SimulatedBackend


POOL_ADDRESS = bytes([0x41] + [(i + 7) % 256 for i in range(20)])
TO_ADDRESS = bytes([0x41] + [(i + 90) % 256 for i in range(20)])
ANCHOR = bytes([(i * 3) % 256 for i in range(32)])


def _path(position: int = 0, header: int = 0x20) -> bytes:
    siblings = bytes([(i + position) % 256 for i in range(MERKLE_PATH_SIBLINGS * HASH_SIZE)])
    return bytes([header]) + siblings + serialize_u64(position)


def _scalar(tag: int) -> bytes:
    return bytes([tag % 256] * 31) + b"\x00"


@pytest.fixture
def make_path():
    """Factory for serialized Merkle paths with deterministic siblings."""
    return _path


@pytest.fixture
def make_scalar():
    """Factory for deterministic 32-byte scalars."""
    return _scalar


@pytest.fixture
def backend() -> SimulatedBackend:
    """Deterministic simulated backend."""
    return SimulatedBackend(seed=b"shielded-tests")


@pytest.fixture
def spending_key(backend) -> ExpandedSpendingKey:
    """Sender's spending key."""
    return backend.new_spending_key()


@pytest.fixture
def sender_address(backend, spending_key) -> PaymentAddress:
    """An address of the sender, holding the notes to spend."""
    return backend.payment_address(spending_key, diversifier=bytes(range(11)))


@pytest.fixture
def recipient_key(backend) -> ExpandedSpendingKey:
    """Recipient's spending key."""
    return backend.new_spending_key()


@pytest.fixture
def recipient_address(backend, recipient_key) -> PaymentAddress:
    """Recipient's payment address."""
    return backend.payment_address(recipient_key, diversifier=bytes(range(11, 22)))


@pytest.fixture
def owned_note(sender_address):
    """Factory for notes held by the sender."""
    def factory(value: int, tag: int = 1) -> Note:
        return Note.for_address(sender_address, value, _scalar(tag))
    return factory


@pytest.fixture
def pool_address() -> bytes:
    return POOL_ADDRESS


@pytest.fixture
def to_address() -> bytes:
    return TO_ADDRESS


@pytest.fixture
def anchor() -> bytes:
    return ANCHOR
