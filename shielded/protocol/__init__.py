"""
Shielded Parameters Protocol
"""

from shielded.protocol.message import (
    MessageAssembler,
    encode_spend_description,
    encode_receive_description,
    decode_spend_description,
    mint_message,
    transfer_message,
    burn_message,
)
from shielded.protocol.builder import (
    BuildRequest,
    BuildStage,
    ParameterBuilder,
    build_parameters,
    generate_spend_proof,
    generate_output_proof,
)

__all__ = [
    # Message assembly
    "MessageAssembler",
    "encode_spend_description",
    "encode_receive_description",
    "decode_spend_description",
    "mint_message",
    "transfer_message",
    "burn_message",
    # Builder
    "BuildRequest",
    "BuildStage",
    "ParameterBuilder",
    "build_parameters",
    "generate_spend_proof",
    "generate_output_proof",
]
