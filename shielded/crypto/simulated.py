"""
Shielded Parameters Simulated Backend

Deterministic, NON-zero-knowledge CryptoBackend for tests and tooling.

Simulates the proving system without any circuit:
- Value commitments: cv = v * V + rcv * B over Ed25519 (homomorphic)
- Randomized keys: rk = ak + alpha * B, spend auth is Schnorr under ask + alpha
- Binding signature: Schnorr under bsk = sum(rcv_spend) - sum(rcv_output)
- Note encryption: X25519 key agreement, ChaCha20-Poly1305 (zero nonce,
  single-use key)
- Proofs: BLAKE2b transcripts of the public inputs, 192 bytes

The "proofs" prove nothing. Never use this backend for real funds.
"""

from __future__ import annotations
import itertools
import logging
from collections import Counter
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

import nacl.bindings
import nacl.utils
from nacl.exceptions import CryptoError
from Crypto.Cipher import ChaCha20_Poly1305

from shielded.constants import (
    SCALAR_SIZE,
    KEY_SIZE,
    DIVERSIFIER_SIZE,
    ZKPROOF_SIZE,
    MERKLE_PATH_LENGTH,
    AEAD_TAG_SIZE,
    NOTE_PLAINTEXT_LEAD_BYTE,
    NOTE_PLAINTEXT_SIZE,
    OUT_PLAINTEXT_SIZE,
    PERSONAL_NK,
    PERSONAL_IVK,
    PERSONAL_CM,
    PERSONAL_NF,
    PERSONAL_PROOF,
    PERSONAL_KDF,
    PERSONAL_OCK,
    PERSONAL_RCV,
)
from shielded.core.serialization import ByteReader, ByteWriter, serialize_u64
from shielded.core.types import Note, ExpandedSpendingKey, FullViewingKey, PaymentAddress
from shielded.crypto import ed25519
from shielded.crypto.backend import CryptoBackend
from shielded.crypto.hash import blake2b_prf, blake2b_expand

logger = logging.getLogger(__name__)

VALUE_GENERATOR_SEED = b"Shielded Parameters Value Generator v1"

# Backend calls that honour fault injection
FAULT_POINTS = (
    "generate_random_scalar",
    "note_commitment",
    "derive_nullifier",
    "spend_proof",
    "output_proof",
    "encrypt_note",
    "encrypt_outgoing",
    "sign_spend_auth",
    "sign_binding",
)


class SimulatedBackendError(RuntimeError):
    """Fault injected with raise_faults=True."""
    pass


@dataclass
class SimulatedContext:
    """Proving state accumulated across one build."""
    context_id: int
    spend_trapdoors: List[bytes] = field(default_factory=list)
    output_trapdoors: List[bytes] = field(default_factory=list)
    spend_cvs: List[bytes] = field(default_factory=list)
    output_cvs: List[bytes] = field(default_factory=list)

    @property
    def bsk(self) -> bytes:
        return ed25519.scalar_sub(
            ed25519.scalar_sum(self.spend_trapdoors),
            ed25519.scalar_sum(self.output_trapdoors),
        )


@lru_cache(maxsize=None)
def value_generator() -> bytes:
    """Generator V for the value component of commitments."""
    return ed25519.hash_to_point(VALUE_GENERATOR_SEED)


def value_commitment(value: int, rcv: bytes) -> bytes:
    """cv = value * V + rcv * B."""
    blind = ed25519.scalarmult_base(rcv)
    if value % ed25519.CURVE_ORDER == 0:
        return blind
    return ed25519.point_add(
        ed25519.scalarmult(ed25519.scalar_from_int(value), value_generator()),
        blind,
    )


def binding_verification_key(spend_cvs: List[bytes], output_cvs: List[bytes], value_balance: int) -> bytes:
    """
    bvk = sum(cv_spend) - sum(cv_output) - value_balance * V.

    Equals bsk * B exactly when value_balance matches the committed values.
    """
    negatives = list(output_cvs)
    if value_balance % ed25519.CURVE_ORDER != 0:
        negatives.append(
            ed25519.scalarmult(ed25519.scalar_from_int(value_balance), value_generator())
        )

    acc: Optional[bytes] = None
    for p in spend_cvs:
        acc = p if acc is None else ed25519.point_add(acc, p)
    for p in negatives:
        acc = ed25519.point_negate(p) if acc is None else ed25519.point_sub(acc, p)
    if acc is None:
        raise ed25519.GroupError("no value commitments")
    return acc


def verify_spend_auth(rk: bytes, digest: bytes, signature: bytes) -> bool:
    """Check a spend authorization signature against the randomized key."""
    return ed25519.schnorr_verify(rk, digest, signature)


def verify_binding(
    spend_cvs: List[bytes],
    output_cvs: List[bytes],
    value_balance: int,
    digest: bytes,
    signature: bytes,
) -> bool:
    """Check a binding signature the way a ledger would."""
    try:
        bvk = binding_verification_key(spend_cvs, output_cvs, value_balance)
    except CryptoError:
        return False
    return ed25519.schnorr_verify(bvk, digest, signature)


def _note_plaintext(note: Note) -> bytes:
    writer = ByteWriter()
    writer.write_u8(NOTE_PLAINTEXT_LEAD_BYTE)
    writer.write_raw(note.diversifier)
    writer.write_u64_le(note.value)
    writer.write_raw(note.rcm)
    writer.write_raw(note.memo_bytes)
    return writer.getvalue()


def _aead_seal(key: bytes, plaintext: bytes) -> bytes:
    cipher = ChaCha20_Poly1305.new(key=key, nonce=bytes(12))
    ciphertext, tag = cipher.encrypt_and_digest(plaintext)
    return ciphertext + tag


def _aead_open(key: bytes, sealed: bytes) -> Optional[bytes]:
    if len(sealed) < AEAD_TAG_SIZE:
        return None
    cipher = ChaCha20_Poly1305.new(key=key, nonce=bytes(12))
    try:
        return cipher.decrypt_and_verify(sealed[:-AEAD_TAG_SIZE], sealed[-AEAD_TAG_SIZE:])
    except ValueError:
        return None


def _note_key(shared_secret: bytes, epk: bytes) -> bytes:
    return blake2b_prf(PERSONAL_KDF, shared_secret, epk)


def _outgoing_key(ovk: bytes, cv: bytes, cm: bytes, epk: bytes) -> bytes:
    return blake2b_prf(PERSONAL_OCK, ovk, cv, cm, epk)


class SimulatedBackend(CryptoBackend):
    """
    In-process backend with deterministic randomness and fault injection.

    Args:
        seed: Seed for deterministic randomness (None: OS randomness)
        enforce_balance: Reject binding signatures whose value balance
            differs from the balance committed by the proofs
        fail_on: Map of backend call name to the 1-based call number
            that should fail, e.g. {"spend_proof": 2}
        raise_faults: Raise SimulatedBackendError instead of returning
            the failure value
    """

    def __init__(
        self,
        seed: Optional[bytes] = None,
        enforce_balance: bool = False,
        fail_on: Optional[Dict[str, int]] = None,
        raise_faults: bool = False,
    ):
        for name in (fail_on or {}):
            if name not in FAULT_POINTS:
                raise ValueError(f"unknown fault point: {name}")
        self.seed = seed
        self.enforce_balance = enforce_balance
        self.fail_on = dict(fail_on or {})
        self.raise_faults = raise_faults

        self.calls: Counter = Counter()
        self.contexts: Dict[int, SimulatedContext] = {}
        self.freed: List[int] = []
        self._ids = itertools.count(1)
        self._draws = itertools.count()

    # --- helpers ---

    def _random_bytes(self, size: int) -> bytes:
        if self.seed is None:
            return nacl.utils.random(size)
        return blake2b_expand(PERSONAL_RCV, self.seed + serialize_u64(next(self._draws)), size)

    def _random_scalar(self) -> bytes:
        return ed25519.scalar_reduce(self._random_bytes(64))

    def _fault(self, name: str) -> bool:
        """Count a call; True if this call is scheduled to fail."""
        self.calls[name] += 1
        if self.fail_on.get(name) != self.calls[name]:
            return False
        logger.debug(f"Injected fault in {name} (call {self.calls[name]})")
        if self.raise_faults:
            raise SimulatedBackendError(f"injected fault in {name}")
        return True

    def _context(self, handle: int) -> SimulatedContext:
        ctx = self.contexts.get(handle)
        if ctx is None:
            raise RuntimeError(f"unknown or freed proving context: {handle}")
        return ctx

    # --- context lifecycle ---

    def init_proving_context(self) -> int:
        context_id = next(self._ids)
        self.contexts[context_id] = SimulatedContext(context_id=context_id)
        return context_id

    def free_proving_context(self, handle: int) -> None:
        self.freed.append(handle)
        if self.contexts.pop(handle, None) is None:
            raise RuntimeError(f"double free of proving context {handle}")

    @property
    def live_contexts(self) -> int:
        return len(self.contexts)

    # --- keys ---

    def new_spending_key(self) -> ExpandedSpendingKey:
        return ExpandedSpendingKey(
            ask=self._random_scalar(),
            nsk=self._random_bytes(KEY_SIZE),
            ovk=self._random_bytes(KEY_SIZE),
        )

    def incoming_viewing_secret(self, fvk: FullViewingKey, diversifier: bytes) -> bytes:
        """X25519 secret for the address with this diversifier."""
        return blake2b_prf(PERSONAL_IVK, fvk.ak, fvk.nk, diversifier)

    def payment_address(self, expsk: ExpandedSpendingKey, diversifier: Optional[bytes] = None) -> PaymentAddress:
        if diversifier is None:
            diversifier = self._random_bytes(DIVERSIFIER_SIZE)
        ivk = self.incoming_viewing_secret(self.derive_full_viewing_key(expsk), diversifier)
        return PaymentAddress(diversifier, nacl.bindings.crypto_scalarmult_base(ivk))

    def generate_random_scalar(self) -> bytes:
        if self._fault("generate_random_scalar"):
            return b""
        return self._random_scalar()

    def derive_full_viewing_key(self, expsk: ExpandedSpendingKey) -> FullViewingKey:
        return FullViewingKey(
            ak=ed25519.scalarmult_base(ed25519.scalar_reduce(expsk.ask)),
            nk=self.derive_nullifier_deriving_key(expsk.nsk),
            ovk=expsk.ovk,
        )

    def derive_nullifier_deriving_key(self, nsk: bytes) -> bytes:
        return blake2b_prf(PERSONAL_NK, nsk)

    def note_commitment(self, note: Note) -> bytes:
        if self._fault("note_commitment"):
            return b""
        return self._commit(note)

    def _commit(self, note: Note) -> bytes:
        return blake2b_prf(
            PERSONAL_CM,
            note.diversifier,
            note.pk_d,
            serialize_u64(note.value),
            note.rcm,
        )

    def derive_nullifier(self, note: Note, ak: bytes, nk: bytes, position: int) -> bytes:
        if self._fault("derive_nullifier"):
            return b""
        return blake2b_prf(
            PERSONAL_NF,
            nk,
            ak,
            self._commit(note),
            serialize_u64(position),
        )

    # --- proofs ---

    def _transcript_proof(self, *public_inputs: bytes) -> bytes:
        return blake2b_expand(PERSONAL_PROOF, blake2b_prf(PERSONAL_PROOF, *public_inputs), ZKPROOF_SIZE)

    def spend_proof(
        self,
        handle: int,
        ak: bytes,
        nsk: bytes,
        diversifier: bytes,
        rcm: bytes,
        alpha: bytes,
        value: int,
        anchor: bytes,
        path: bytes,
    ) -> Optional[Tuple[bytes, bytes, bytes]]:
        ctx = self._context(handle)
        if self._fault("spend_proof"):
            return None
        if len(path) != MERKLE_PATH_LENGTH or not ed25519.is_valid_point(ak):
            logger.debug("Spend proof rejected: malformed path or ak")
            return None

        rcv = self._random_scalar()
        cv = value_commitment(value, rcv)
        rk = ed25519.point_add(ak, ed25519.scalarmult_base(ed25519.scalar_reduce(alpha)))
        proof = self._transcript_proof(cv, rk, anchor, diversifier, rcm)

        ctx.spend_trapdoors.append(rcv)
        ctx.spend_cvs.append(cv)
        return cv, rk, proof

    def output_proof(
        self,
        handle: int,
        esk: bytes,
        diversifier: bytes,
        pk_d: bytes,
        rcm: bytes,
        value: int,
    ) -> Optional[Tuple[bytes, bytes]]:
        ctx = self._context(handle)
        if self._fault("output_proof"):
            return None
        if len(esk) != SCALAR_SIZE:
            return None

        rcv = self._random_scalar()
        cv = value_commitment(value, rcv)
        proof = self._transcript_proof(cv, diversifier, pk_d, rcm)

        ctx.output_trapdoors.append(rcv)
        ctx.output_cvs.append(cv)
        return cv, proof

    # --- encryption ---

    def encrypt_note(self, note: Note, pk_d: bytes) -> Optional[Tuple[bytes, bytes, bytes]]:
        if self._fault("encrypt_note"):
            return None
        esk = self._random_bytes(SCALAR_SIZE)
        try:
            epk = nacl.bindings.crypto_scalarmult_base(esk)
            shared = nacl.bindings.crypto_scalarmult(esk, pk_d)
        except CryptoError as e:
            logger.debug(f"Note encryption failed: {e}")
            return None
        c_enc = _aead_seal(_note_key(shared, epk), _note_plaintext(note))
        return esk, epk, c_enc

    def encrypt_outgoing(
        self,
        ovk: bytes,
        pk_d: bytes,
        esk: bytes,
        cv: bytes,
        cm: bytes,
        epk: bytes,
    ) -> bytes:
        if self._fault("encrypt_outgoing"):
            return b""
        return _aead_seal(_outgoing_key(ovk, cv, cm, epk), pk_d + esk)

    def decrypt_note(self, ivk: bytes, epk: bytes, c_enc: bytes, cm: Optional[bytes] = None) -> Optional[Note]:
        """Recipient side: recover the note, optionally checking cm."""
        try:
            shared = nacl.bindings.crypto_scalarmult(ivk, epk)
        except CryptoError:
            return None
        plaintext = _aead_open(_note_key(shared, epk), c_enc)
        if plaintext is None or len(plaintext) != NOTE_PLAINTEXT_SIZE:
            return None

        reader = ByteReader(plaintext)
        if reader.read_u8() != NOTE_PLAINTEXT_LEAD_BYTE:
            return None
        note = Note(
            diversifier=reader.read_raw(DIVERSIFIER_SIZE),
            value=reader.read_u64_le(),
            rcm=reader.read_raw(SCALAR_SIZE),
            memo=reader.read_raw(reader.remaining()),
            pk_d=nacl.bindings.crypto_scalarmult_base(ivk),
        )
        if cm is not None and self._commit(note) != cm:
            return None
        return note

    def decrypt_outgoing(
        self,
        ovk: bytes,
        cv: bytes,
        cm: bytes,
        epk: bytes,
        c_out: bytes,
    ) -> Optional[Tuple[bytes, bytes]]:
        """Sender side: recover (pk_d, esk) from the outgoing ciphertext."""
        plaintext = _aead_open(_outgoing_key(ovk, cv, cm, epk), c_out)
        if plaintext is None or len(plaintext) != OUT_PLAINTEXT_SIZE:
            return None
        return plaintext[:KEY_SIZE], plaintext[KEY_SIZE:]

    # --- signatures ---

    def sign_spend_auth(self, ask: bytes, alpha: bytes, digest: bytes) -> Optional[bytes]:
        if self._fault("sign_spend_auth"):
            return None
        rsk = ed25519.scalar_add(ed25519.scalar_reduce(ask), ed25519.scalar_reduce(alpha))
        rk = ed25519.scalarmult_base(rsk)
        return ed25519.schnorr_sign(rsk, rk, digest)

    def sign_binding(self, handle: int, value_balance: int, digest: bytes) -> Optional[bytes]:
        ctx = self._context(handle)
        if self._fault("sign_binding"):
            return None
        bsk = ctx.bsk
        bvk = ed25519.scalarmult_base(bsk)
        if self.enforce_balance:
            try:
                committed = binding_verification_key(ctx.spend_cvs, ctx.output_cvs, value_balance)
            except CryptoError as e:
                logger.warning(f"Binding rejected: {e}")
                return None
            if committed != bvk:
                logger.warning(f"Binding rejected: value balance {value_balance} does not match commitments")
                return None
        return ed25519.schnorr_sign(bsk, bvk, digest)
