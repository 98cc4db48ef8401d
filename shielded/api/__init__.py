"""
Shielded Parameters Request Methods
"""

from shielded.api.methods import (
    RequestError,
    builder_from_request,
    build_from_request,
    bundle_to_dict,
)

__all__ = [
    "RequestError",
    "builder_from_request",
    "build_from_request",
    "bundle_to_dict",
]
