"""
Shielded Parameters Errors

Every failure raised by the parameter builder derives from ShieldedError.
None of them is retried internally: a retry needs fresh blinding scalars
and therefore a fresh builder.
"""

from __future__ import annotations
from typing import Optional


class ShieldedError(Exception):
    """Base shielded parameters error."""
    pass


class ValidationError(ShieldedError):
    """Malformed input detected before or between backend calls."""
    pass


class InvalidMerklePathError(ValidationError):
    """Merkle path is not exactly the expected length."""

    def __init__(self, length: int, expected: int):
        self.length = length
        self.expected = expected
        super().__init__(
            f"merkle path format is wrong: {length} bytes, expected {expected}"
        )


class InvalidFieldLengthError(ValidationError):
    """Fixed-width field has the wrong length."""

    def __init__(self, name: str, length: int, expected: int):
        self.name = name
        self.length = length
        self.expected = expected
        super().__init__(f"{name} must be {expected} bytes, got {length}")


class UnsupportedOperationError(ValidationError):
    """Operation type outside the closed set of operations."""

    def __init__(self, operation: object):
        self.operation = operation
        super().__init__(f"unsupported operation type: {operation!r}")


class BalanceOverflowError(ValidationError):
    """Value balance does not fit a signed 64-bit integer."""

    def __init__(self, balance: int):
        self.balance = balance
        super().__init__(f"value balance out of int64 range: {balance}")


class ProofGenerationFailure(ShieldedError):
    """Backend reported a failed spend or output proof."""
    pass


class EncryptionFailure(ShieldedError):
    """Note or outgoing encryption produced no output."""
    pass


class SignatureFailure(ShieldedError):
    """Spend authorization or binding signature could not be produced."""

    def __init__(self, message: str, spend_index: Optional[int] = None):
        self.spend_index = spend_index
        super().__init__(message)


class HashComputationFailure(ShieldedError):
    """Message digest computation produced no output."""
    pass


class BuilderReusedError(ShieldedError):
    """Builder mutated or built again after its single build."""

    def __init__(self):
        super().__init__("parameter builder has already been built")
