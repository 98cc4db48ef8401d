"""
Shielded Parameters Constants

All protocol field widths and layout constants defined here for single
source of truth.

All multi-byte integers are BIG-ENDIAN unless noted.
"""

from typing import Final

# ==============================================================================
# PROTOCOL
# ==============================================================================

PROTOCOL_VERSION: Final[int] = 1

# ==============================================================================
# FIELD WIDTHS
# ==============================================================================

SCALAR_SIZE: Final[int] = 32                    # alpha, rcm, rcv, esk
HASH_SIZE: Final[int] = 32                      # Message digest
KEY_SIZE: Final[int] = 32                       # ask, nsk, ovk, ak, nk, pk_d
DIVERSIFIER_SIZE: Final[int] = 11
MEMO_SIZE: Final[int] = 512

VALUE_COMMITMENT_SIZE: Final[int] = 32          # cv
NOTE_COMMITMENT_SIZE: Final[int] = 32           # cm
NULLIFIER_SIZE: Final[int] = 32                 # nf
ANCHOR_SIZE: Final[int] = 32
RANDOMIZED_KEY_SIZE: Final[int] = 32            # rk
EPHEMERAL_KEY_SIZE: Final[int] = 32             # epk
ZKPROOF_SIZE: Final[int] = 192                  # Groth16 proof
SIGNATURE_SIZE: Final[int] = 64                 # spend auth and binding

U64_MAX: Final[int] = 2**64 - 1
I64_MIN: Final[int] = -(2**63)
I64_MAX: Final[int] = 2**63 - 1

# ==============================================================================
# MERKLE PATH
# ==============================================================================

MERKLE_PATH_HEADER_SIZE: Final[int] = 1
MERKLE_PATH_SIBLINGS: Final[int] = 33
MERKLE_PATH_POSITION_SIZE: Final[int] = 8

# 1 + 32*33 + 8
MERKLE_PATH_LENGTH: Final[int] = (
    MERKLE_PATH_HEADER_SIZE
    + MERKLE_PATH_SIBLINGS * HASH_SIZE
    + MERKLE_PATH_POSITION_SIZE
)

# ==============================================================================
# NOTE ENCRYPTION
# ==============================================================================

AEAD_TAG_SIZE: Final[int] = 16
NOTE_PLAINTEXT_LEAD_BYTE: Final[int] = 0x01

# lead(1) || d(11) || value(8) || rcm(32) || memo(512)
NOTE_PLAINTEXT_SIZE: Final[int] = 1 + DIVERSIFIER_SIZE + 8 + SCALAR_SIZE + MEMO_SIZE
ENC_CIPHERTEXT_SIZE: Final[int] = NOTE_PLAINTEXT_SIZE + AEAD_TAG_SIZE

# pk_d(32) || esk(32)
OUT_PLAINTEXT_SIZE: Final[int] = KEY_SIZE + SCALAR_SIZE
OUT_CIPHERTEXT_SIZE: Final[int] = OUT_PLAINTEXT_SIZE + AEAD_TAG_SIZE

# ==============================================================================
# DOMAIN SEPARATION (BLAKE2b personalization, 16 bytes max)
# ==============================================================================

PERSONAL_NK: Final[bytes] = b"Shield_Derive_nk"
PERSONAL_IVK: Final[bytes] = b"Shield_DeriveIvk"
PERSONAL_CM: Final[bytes] = b"Shield_NoteCommt"
PERSONAL_NF: Final[bytes] = b"Shield_Nullifier"
PERSONAL_PROOF: Final[bytes] = b"Shield_ZkProof__"
PERSONAL_KDF: Final[bytes] = b"Shield_NoteKdf__"
PERSONAL_OCK: Final[bytes] = b"Shield_Derive_oc"
PERSONAL_RCV: Final[bytes] = b"Shield_ValueTrap"

# ==============================================================================
# DIGEST
# ==============================================================================

HASH_ALGORITHM_SHA256: Final[str] = "sha256"
HASH_ALGORITHM_SHA3_256: Final[str] = "sha3_256"
SUPPORTED_HASH_ALGORITHMS: Final[tuple] = (
    HASH_ALGORITHM_SHA256,
    HASH_ALGORITHM_SHA3_256,
)
DEFAULT_HASH_ALGORITHM: Final[str] = HASH_ALGORITHM_SHA256
