"""
Shielded Parameters

Builds signed, provable parameter bundles for shielded token pools:
mint into the pool, transfer within it, burn out of it.
"""

__version__ = "1.0.0"
__author__ = "Shielded Parameters Team"

from shielded.constants import PROTOCOL_VERSION
from shielded.core.types import ShieldedOperation
from shielded.protocol.builder import ParameterBuilder, build_parameters

__all__ = [
    "PROTOCOL_VERSION",
    "ShieldedOperation",
    "ParameterBuilder",
    "build_parameters",
    "__version__",
]
