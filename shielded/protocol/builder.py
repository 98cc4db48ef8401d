"""
Shielded Parameters Builder

Assembles the signed parameter bundle for a mint, transfer or burn.

Build sequence:
1. Validate the request (descriptor counts, key material, balance)
2. Acquire a proving context
3. Generate spend proofs, then output proofs, in registration order
4. Assemble the canonical message and hash it
5. Optionally sign every spend with its spend authorization key
6. Sign the value balance with the binding signature
7. Release the proving context (on every path, exactly once)

A builder is single use: after build() returns or raises, it rejects
further registrations and builds.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import List, NamedTuple, Optional, Sequence, Tuple

from shielded.constants import (
    KEY_SIZE,
    VALUE_COMMITMENT_SIZE,
    RANDOMIZED_KEY_SIZE,
    ZKPROOF_SIZE,
    SIGNATURE_SIZE,
    HASH_SIZE,
    U64_MAX,
    I64_MIN,
    I64_MAX,
)
from shielded.core.types import (
    ShieldedOperation,
    PaymentAddress,
    Note,
    ExpandedSpendingKey,
    FullKeyMaterial,
    RawKeyMaterial,
    decode_path_position,
)
from shielded.core.descriptors import (
    SpendDescriptor,
    ReceiveDescriptor,
    SpendDescription,
    ReceiveDescription,
    ParameterBundle,
)
from shielded.crypto.backend import CryptoBackend, ProvingHandle
from shielded.crypto.hash import DigestFunction, get_digest_function
from shielded.protocol.message import mint_message, burn_message, MessageAssembler
from shielded.config import BuilderConfig
from shielded.errors import (
    ShieldedError,
    ValidationError,
    InvalidFieldLengthError,
    UnsupportedOperationError,
    BalanceOverflowError,
    ProofGenerationFailure,
    EncryptionFailure,
    SignatureFailure,
    HashComputationFailure,
    BuilderReusedError,
)

logger = logging.getLogger(__name__)


class BuildStage(Enum):
    """Progress of one build, for failure reporting."""
    CONFIGURED = auto()
    PROOFS_GENERATED = auto()
    HASHED = auto()
    SPEND_AUTH_SIGNED = auto()
    BINDING_SIGNED = auto()


@dataclass(frozen=True)
class BuildRequest:
    """
    Everything a build consumes.

    value_balance is the registration balance: sum of spend values
    minus sum of output values. The transparent adjustment for mint
    and burn is applied by the build itself.
    """
    operation: ShieldedOperation
    pool_address: bytes
    spends: Tuple[SpendDescriptor, ...] = ()
    receives: Tuple[ReceiveDescriptor, ...] = ()
    value_balance: int = 0
    transparent_from_amount: int = 0
    transparent_to_address: bytes = b""
    transparent_to_amount: int = 0

    @classmethod
    def from_descriptors(
        cls,
        operation: ShieldedOperation,
        pool_address: bytes,
        spends: Sequence[SpendDescriptor] = (),
        receives: Sequence[ReceiveDescriptor] = (),
        **transparent,
    ) -> BuildRequest:
        balance = sum(s.note.value for s in spends) - sum(r.note.value for r in receives)
        return cls(
            operation=operation,
            pool_address=pool_address,
            spends=tuple(spends),
            receives=tuple(receives),
            value_balance=balance,
            **transparent,
        )


class ProvedOperation(NamedTuple):
    """Accumulator after proof generation and message assembly."""
    spends: Tuple[SpendDescription, ...]
    receives: Tuple[ReceiveDescription, ...]
    message: bytes
    value_balance: int


# ==============================================================================
# Proof generation
# ==============================================================================

def generate_spend_proof(
    backend: CryptoBackend,
    spend: SpendDescriptor,
    handle: ProvingHandle,
) -> SpendDescription:
    """
    Prove one spend.

    Args:
        backend: Cryptographic backend
        spend: Registered spend intent
        handle: Live proving context handle

    Returns:
        SpendDescription without spend authorization signature

    Raises:
        ValidationError: Malformed path, or empty commitment/nullifier
        ProofGenerationFailure: If the backend rejects the proof
    """
    position = decode_path_position(spend.path)
    note = spend.note
    key = spend.key_material

    if isinstance(key, RawKeyMaterial):
        ak = key.ak
        nsk = key.nsk
        nk = backend.derive_nullifier_deriving_key(key.nsk)
    else:
        fvk = backend.derive_full_viewing_key(key.expsk)
        ak = fvk.ak
        nsk = key.expsk.nsk
        nk = fvk.nk
    nullifier = backend.derive_nullifier(note, ak, nk, position)

    cm = backend.note_commitment(note)
    if not cm or not nullifier:
        raise ValidationError("spend is invalid")

    result = backend.spend_proof(
        handle,
        ak,
        nsk,
        note.diversifier,
        note.rcm,
        spend.alpha,
        note.value,
        spend.anchor,
        spend.path,
    )
    if result is None:
        raise ProofGenerationFailure("spend proof failed")
    cv, rk, zkproof = result
    if (
        len(cv) != VALUE_COMMITMENT_SIZE
        or len(rk) != RANDOMIZED_KEY_SIZE
        or len(zkproof) != ZKPROOF_SIZE
    ):
        raise ProofGenerationFailure("spend proof returned malformed output")

    logger.debug(f"Spend proved at position {position}")
    return SpendDescription(
        cv=cv,
        anchor=spend.anchor,
        nullifier=nullifier,
        rk=rk,
        zkproof=zkproof,
    )


def generate_output_proof(
    backend: CryptoBackend,
    receive: ReceiveDescriptor,
    handle: ProvingHandle,
) -> ReceiveDescription:
    """
    Prove one output and encrypt its note.

    Raises:
        ValidationError: Empty commitment, or ovk not 32 bytes
        EncryptionFailure: If note or outgoing encryption fails
        ProofGenerationFailure: If the backend rejects the proof
    """
    note = receive.note
    cm = backend.note_commitment(note)
    if not cm:
        raise ValidationError("output is invalid")

    encrypted = backend.encrypt_note(note, note.pk_d)
    if encrypted is None:
        raise EncryptionFailure("failed to encrypt note")
    esk, epk, c_enc = encrypted

    result = backend.output_proof(handle, esk, note.diversifier, note.pk_d, note.rcm, note.value)
    if result is None:
        raise ProofGenerationFailure("output proof failed")
    cv, zkproof = result
    if len(cv) != VALUE_COMMITMENT_SIZE or len(zkproof) != ZKPROOF_SIZE:
        raise ProofGenerationFailure("output proof returned malformed output")

    if not receive.ovk or len(receive.ovk) != KEY_SIZE:
        raise InvalidFieldLengthError("ovk", len(receive.ovk or b""), KEY_SIZE)

    c_out = backend.encrypt_outgoing(receive.ovk, note.pk_d, esk, cv, cm, epk)
    if not c_out:
        raise EncryptionFailure("failed to encrypt outgoing plaintext")

    return ReceiveDescription(
        cv=cv,
        cm=cm,
        epk=epk,
        c_enc=c_enc,
        c_out=c_out,
        zkproof=zkproof,
    )


# ==============================================================================
# Build stages
# ==============================================================================

def _single(items: Sequence, kind: str, operation: ShieldedOperation):
    if len(items) != 1:
        raise ValidationError(
            f"{operation.name} needs exactly one {kind}, got {len(items)}"
        )
    return items[0]


def validate_request(request: BuildRequest, with_ask: bool, strict_burn_balance: bool = False) -> None:
    """
    Check a request before any proving context is acquired.

    Raises:
        ValidationError: On any structural problem
    """
    op = request.operation
    if not request.pool_address:
        raise ValidationError("pool address is empty")
    for name, amount in (
        ("transparent_from_amount", request.transparent_from_amount),
        ("transparent_to_amount", request.transparent_to_amount),
    ):
        if not 0 <= amount <= U64_MAX:
            raise ValidationError(f"{name} out of u64 range: {amount}")

    if op is ShieldedOperation.MINT:
        _single(request.receives, "receive", op)
        if request.spends:
            raise ValidationError("MINT takes no spends")
    elif op is ShieldedOperation.TRANSFER:
        if not request.spends or not request.receives:
            raise ValidationError("TRANSFER needs at least one spend and one receive")
    elif op is ShieldedOperation.BURN:
        spend = _single(request.spends, "spend", op)
        if request.receives:
            raise ValidationError("BURN takes no receives")
        if not request.transparent_to_address:
            raise ValidationError("BURN needs a withdrawal address")
        if strict_burn_balance and spend.note.value != request.transparent_to_amount:
            raise ValidationError(
                f"BURN spends {spend.note.value} but withdraws {request.transparent_to_amount}"
            )
    else:
        raise UnsupportedOperationError(op)

    if with_ask:
        for i, spend in enumerate(request.spends):
            if not isinstance(spend.key_material, FullKeyMaterial):
                raise ValidationError(
                    f"spend {i} has no spending key; spend authorization needs ask"
                )


def prove_operation(
    backend: CryptoBackend,
    request: BuildRequest,
    handle: ProvingHandle,
) -> ProvedOperation:
    """Generate all proofs for the operation and assemble its message."""
    op = request.operation
    balance = request.value_balance

    if op is ShieldedOperation.MINT:
        receive = generate_output_proof(backend, request.receives[0], handle)
        balance += request.transparent_from_amount
        message = mint_message(request.pool_address, request.transparent_from_amount, receive)
        return ProvedOperation((), (receive,), message, balance)

    if op is ShieldedOperation.TRANSFER:
        assembler = MessageAssembler(request.pool_address)
        spends: List[SpendDescription] = []
        for spend in request.spends:
            description = generate_spend_proof(backend, spend, handle)
            assembler.add_spend(description)
            spends.append(description)
        receives: List[ReceiveDescription] = []
        for receive in request.receives:
            description = generate_output_proof(backend, receive, handle)
            assembler.add_receive(description)
            receives.append(description)
        return ProvedOperation(tuple(spends), tuple(receives), assembler.getvalue(), balance)

    if op is ShieldedOperation.BURN:
        spend = generate_spend_proof(backend, request.spends[0], handle)
        balance -= request.transparent_to_amount
        message = burn_message(
            request.pool_address,
            spend,
            request.transparent_to_address,
            request.transparent_to_amount,
        )
        return ProvedOperation((spend,), (), message, balance)

    raise UnsupportedOperationError(op)


def compute_message_hash(message: bytes, digest_fn: DigestFunction) -> bytes:
    """
    Hash the canonical message.

    Raises:
        HashComputationFailure: If the digest is empty or not HASH_SIZE bytes
    """
    digest = digest_fn(message)
    if not digest or len(digest) != HASH_SIZE:
        raise HashComputationFailure("message hash computation failed")
    return digest


def sign_spends(
    backend: CryptoBackend,
    spends: Sequence[SpendDescriptor],
    descriptions: Sequence[SpendDescription],
    digest: bytes,
) -> Tuple[SpendDescription, ...]:
    """Attach a spend authorization signature to every description, in order."""
    signed = []
    for i, (spend, description) in enumerate(zip(spends, descriptions)):
        key = spend.key_material
        if not isinstance(key, FullKeyMaterial):
            raise ValidationError(f"spend {i} has no spending key")
        signature = backend.sign_spend_auth(key.expsk.ask, spend.alpha, digest)
        if not signature or len(signature) != SIGNATURE_SIZE:
            raise SignatureFailure("spend authorization signature failed", spend_index=i)
        signed.append(description.with_spend_auth_sig(signature))
    return tuple(signed)


def build_parameters(
    backend: CryptoBackend,
    request: BuildRequest,
    with_ask: bool = False,
    digest_fn: Optional[DigestFunction] = None,
    strict_burn_balance: bool = False,
) -> ParameterBundle:
    """
    Build the signed parameter bundle for request.

    All or nothing: on any failure no partial result escapes and the
    proving context is still released exactly once.

    Args:
        backend: Cryptographic backend
        request: Operation, descriptors and transparent fields
        with_ask: Attach spend authorization signatures
        digest_fn: Message hash (default SHA-256)
        strict_burn_balance: Require the burned note value to equal
            the withdrawal amount

    Returns:
        Immutable ParameterBundle

    Raises:
        ShieldedError: Any error of the taxonomy in shielded.errors
    """
    digest_fn = digest_fn or get_digest_function("sha256")
    validate_request(request, with_ask, strict_burn_balance)

    stage = BuildStage.CONFIGURED
    try:
        with backend.proving_context() as ctx:
            proved = prove_operation(backend, request, ctx.handle)
            stage = BuildStage.PROOFS_GENERATED

            if not I64_MIN <= proved.value_balance <= I64_MAX:
                raise BalanceOverflowError(proved.value_balance)

            digest = compute_message_hash(proved.message, digest_fn)
            stage = BuildStage.HASHED

            spends = proved.spends
            if with_ask:
                spends = sign_spends(backend, request.spends, spends, digest)
                stage = BuildStage.SPEND_AUTH_SIGNED

            binding = backend.sign_binding(ctx.handle, proved.value_balance, digest)
            if not binding or len(binding) != SIGNATURE_SIZE:
                raise SignatureFailure("binding signature failed")
            stage = BuildStage.BINDING_SIGNED
    except ShieldedError as e:
        logger.warning(f"{request.operation.name} build failed after {stage.name}: {e}")
        raise

    return ParameterBundle(
        operation=request.operation,
        spend_descriptions=spends,
        receive_descriptions=proved.receives,
        message_hash=digest,
        binding_signature=binding,
        value_balance=proved.value_balance,
    )


# ==============================================================================
# Builder
# ==============================================================================

class ParameterBuilder:
    """
    Single-use accumulator of spend and receive intents.

    Each registration updates the running value balance immediately.
    build() hands an immutable BuildRequest to build_parameters().

    Not thread-safe; use one builder per transaction attempt.
    """

    def __init__(
        self,
        backend: CryptoBackend,
        operation: ShieldedOperation,
        pool_address: bytes,
        transparent_from_amount: int = 0,
        transparent_to_address: bytes = b"",
        transparent_to_amount: int = 0,
        config: Optional[BuilderConfig] = None,
    ):
        if not isinstance(operation, ShieldedOperation):
            raise UnsupportedOperationError(operation)
        for name, amount in (
            ("transparent_from_amount", transparent_from_amount),
            ("transparent_to_amount", transparent_to_amount),
        ):
            if not 0 <= amount <= U64_MAX:
                raise ValidationError(f"{name} out of u64 range: {amount}")

        self.backend = backend
        self.operation = operation
        self.pool_address = pool_address
        self.transparent_from_amount = transparent_from_amount
        self.transparent_to_address = transparent_to_address
        self.transparent_to_amount = transparent_to_amount
        self.config = config or BuilderConfig()
        try:
            self._digest_fn = get_digest_function(self.config.hash_algorithm)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        self._spends: List[SpendDescriptor] = []
        self._receives: List[ReceiveDescriptor] = []
        self._value_balance = 0
        self._built = False

    def __repr__(self) -> str:
        return (
            f"ParameterBuilder({self.operation.name}, spends={len(self._spends)}, "
            f"receives={len(self._receives)}, balance={self._value_balance})"
        )

    @property
    def spends(self) -> Tuple[SpendDescriptor, ...]:
        return tuple(self._spends)

    @property
    def receives(self) -> Tuple[ReceiveDescriptor, ...]:
        return tuple(self._receives)

    @property
    def value_balance(self) -> int:
        """Running balance: spend values minus output values."""
        return self._value_balance

    @property
    def built(self) -> bool:
        return self._built

    def _check_open(self) -> None:
        if self._built:
            raise BuilderReusedError()

    # --- registration ---

    def add_spend(
        self,
        expsk: ExpandedSpendingKey,
        note: Note,
        anchor: bytes,
        path: bytes,
        alpha: Optional[bytes] = None,
    ) -> SpendDescriptor:
        """
        Register a spend authorized by a full spending key.

        alpha is drawn from the backend when not supplied. The path is
        validated only when the spend is proved.
        """
        self._check_open()
        if alpha is None:
            alpha = self.backend.generate_random_scalar()
        spend = SpendDescriptor(
            key_material=FullKeyMaterial(expsk),
            note=note,
            alpha=alpha,
            anchor=anchor,
            path=path,
        )
        return self._register_spend(spend)

    def add_spend_raw(
        self,
        ak: bytes,
        nsk: bytes,
        ovk: Optional[bytes],
        note: Note,
        alpha: bytes,
        anchor: bytes,
        path: bytes,
    ) -> SpendDescriptor:
        """Register a spend from raw authorizing key components."""
        self._check_open()
        spend = SpendDescriptor(
            key_material=RawKeyMaterial(ak=ak, nsk=nsk, ovk=ovk),
            note=note,
            alpha=alpha,
            anchor=anchor,
            path=path,
        )
        return self._register_spend(spend)

    def add_spend_descriptor(self, spend: SpendDescriptor) -> SpendDescriptor:
        self._check_open()
        return self._register_spend(spend)

    def _register_spend(self, spend: SpendDescriptor) -> SpendDescriptor:
        self._spends.append(spend)
        self._value_balance += spend.note.value
        logger.debug(f"Registered spend #{len(self._spends)}: {spend!r}")
        return spend

    def add_output(
        self,
        ovk: bytes,
        address: PaymentAddress,
        value: int,
        memo: Optional[bytes] = None,
    ) -> ReceiveDescriptor:
        """Register an output to a payment address with fresh rcm."""
        self._check_open()
        rcm = self.backend.generate_random_scalar()
        note = Note.for_address(address, value, rcm, memo)
        return self._register_receive(ReceiveDescriptor(ovk=ovk, note=note))

    def add_output_raw(
        self,
        ovk: bytes,
        diversifier: bytes,
        pk_d: bytes,
        value: int,
        rcm: bytes,
        memo: Optional[bytes] = None,
    ) -> ReceiveDescriptor:
        """Register an output from raw note components."""
        self._check_open()
        note = Note(value=value, diversifier=diversifier, pk_d=pk_d, rcm=rcm, memo=memo)
        return self._register_receive(ReceiveDescriptor(ovk=ovk, note=note))

    def _register_receive(self, receive: ReceiveDescriptor) -> ReceiveDescriptor:
        self._receives.append(receive)
        self._value_balance -= receive.note.value
        logger.debug(f"Registered receive #{len(self._receives)}: {receive!r}")
        return receive

    # --- build ---

    def to_request(self) -> BuildRequest:
        return BuildRequest(
            operation=self.operation,
            pool_address=self.pool_address,
            spends=tuple(self._spends),
            receives=tuple(self._receives),
            value_balance=self._value_balance,
            transparent_from_amount=self.transparent_from_amount,
            transparent_to_address=self.transparent_to_address,
            transparent_to_amount=self.transparent_to_amount,
        )

    def build(self, with_ask: bool = False) -> ParameterBundle:
        """
        Build the parameter bundle. May be called once.

        Raises:
            BuilderReusedError: If this builder was already built
            ShieldedError: Any build failure
        """
        self._check_open()
        self._built = True
        request = self.to_request()

        bundle = build_parameters(
            self.backend,
            request,
            with_ask=with_ask,
            digest_fn=self._digest_fn,
            strict_burn_balance=self.config.strict_burn_balance,
        )
        logger.info(
            f"Built {bundle.operation.name} parameters: {len(bundle.spend_descriptions)} spends, "
            f"{len(bundle.receive_descriptions)} receives, balance {bundle.value_balance}"
        )
        return bundle
