"""
Shielded Parameters JSON Methods

Hex/JSON codec between request dictionaries and the parameter builder,
and between ParameterBundle and its wire dictionary.

Byte fields are lowercase hex strings; amounts are integers.
"""

from __future__ import annotations
import logging
from typing import Any, Dict, Optional

from shielded.core.descriptors import (
    ParameterBundle,
    SpendDescriptor,
    SpendDescription,
    ReceiveDescription,
)
from shielded.core.types import (
    ShieldedOperation,
    PaymentAddress,
    Note,
    ExpandedSpendingKey,
    FullKeyMaterial,
    make_key_material,
)
from shielded.config import BuilderConfig
from shielded.crypto.backend import CryptoBackend
from shielded.protocol.builder import ParameterBuilder
from shielded.errors import ShieldedError, ValidationError

logger = logging.getLogger(__name__)


class RequestError(Exception):
    """Request error with code and message."""
    def __init__(self, code: int, message: str, data: Any = None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(message)


# Error codes
ERROR_INVALID_REQUEST = -32600
ERROR_INVALID_PARAMS = -32602
ERROR_BUILD_FAILED = -32010


# ==============================================================================
# Field parsing
# ==============================================================================

def _hex(params: Dict[str, Any], name: str, required: bool = True) -> Optional[bytes]:
    value = params.get(name)
    if value is None:
        if required:
            raise RequestError(ERROR_INVALID_PARAMS, f"Missing field: {name}")
        return None
    try:
        return bytes.fromhex(value)
    except (TypeError, ValueError):
        raise RequestError(ERROR_INVALID_PARAMS, f"Field {name} is not hex") from None


def _amount(params: Dict[str, Any], name: str, default: Optional[int] = None) -> int:
    value = params.get(name, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise RequestError(ERROR_INVALID_PARAMS, f"Field {name} must be a non-negative integer")
    return value


def _object(value: Any, name: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise RequestError(ERROR_INVALID_PARAMS, f"Field {name} must be an object")
    return value


def _list(params: Dict[str, Any], name: str) -> list:
    value = params.get(name, [])
    if not isinstance(value, list):
        raise RequestError(ERROR_INVALID_PARAMS, f"Field {name} must be a list")
    return value


def _flag(params: Dict[str, Any], name: str) -> bool:
    value = params.get(name, False)
    if not isinstance(value, bool):
        raise RequestError(ERROR_INVALID_PARAMS, f"Field {name} must be a boolean")
    return value


def parse_operation(name: str) -> ShieldedOperation:
    try:
        return ShieldedOperation[str(name).upper()]
    except KeyError:
        raise RequestError(ERROR_INVALID_PARAMS, f"Unsupported operation: {name}") from None


def parse_note(params: Dict[str, Any]) -> Note:
    return Note(
        value=_amount(params, "value"),
        diversifier=_hex(params, "diversifier"),
        pk_d=_hex(params, "pk_d"),
        rcm=_hex(params, "rcm"),
        memo=_hex(params, "memo", required=False),
    )


def parse_spend(params: Dict[str, Any], builder: ParameterBuilder) -> SpendDescriptor:
    """
    Parse one spend. Either "expsk" {ask, nsk, ovk} or raw "ak"/"nsk"
    must be present, not both.
    """
    expsk = None
    if "expsk" in params:
        keys = _object(params["expsk"], "expsk")
        expsk = ExpandedSpendingKey(
            ask=_hex(keys, "ask"),
            nsk=_hex(keys, "nsk"),
            ovk=_hex(keys, "ovk"),
        )
    key_material = make_key_material(
        expsk=expsk,
        ak=_hex(params, "ak", required=False),
        nsk=_hex(params, "nsk", required=False),
        ovk=_hex(params, "ovk", required=False),
    )

    note = parse_note(_object(params.get("note"), "note"))
    anchor = _hex(params, "anchor")
    path = _hex(params, "path")
    alpha = _hex(params, "alpha", required=False)

    if isinstance(key_material, FullKeyMaterial):
        return builder.add_spend(key_material.expsk, note, anchor, path, alpha=alpha)
    if alpha is None:
        raise RequestError(ERROR_INVALID_PARAMS, "Raw key spends need alpha")
    return builder.add_spend_raw(
        key_material.ak, key_material.nsk, key_material.ovk, note, alpha, anchor, path
    )


def parse_output(params: Dict[str, Any], builder: ParameterBuilder) -> None:
    """Parse one output: address fields with optional rcm."""
    ovk = _hex(params, "ovk")
    value = _amount(params, "value")
    memo = _hex(params, "memo", required=False)
    diversifier = _hex(params, "diversifier")
    pk_d = _hex(params, "pk_d")
    rcm = _hex(params, "rcm", required=False)

    if rcm is None:
        builder.add_output(ovk, PaymentAddress(diversifier, pk_d), value, memo)
    else:
        builder.add_output_raw(ovk, diversifier, pk_d, value, rcm, memo)


def builder_from_request(
    backend: CryptoBackend,
    request: Dict[str, Any],
    config: Optional[BuilderConfig] = None,
) -> ParameterBuilder:
    """
    Create and populate a builder from a request dictionary.

    Raises:
        RequestError: If the request is malformed
    """
    if not isinstance(request, dict):
        raise RequestError(ERROR_INVALID_REQUEST, "Request must be an object")

    try:
        builder = ParameterBuilder(
            backend,
            parse_operation(request.get("operation")),
            _hex(request, "pool_address"),
            transparent_from_amount=_amount(request, "transparent_from_amount", 0),
            transparent_to_address=_hex(request, "transparent_to_address", required=False) or b"",
            transparent_to_amount=_amount(request, "transparent_to_amount", 0),
            config=config,
        )
        for spend in _list(request, "spends"):
            parse_spend(_object(spend, "spends[]"), builder)
        for output in _list(request, "outputs"):
            parse_output(_object(output, "outputs[]"), builder)
    except ValidationError as e:
        logger.debug(f"Rejected request: {e}")
        raise RequestError(ERROR_INVALID_PARAMS, str(e)) from e

    return builder


# ==============================================================================
# Bundle encoding
# ==============================================================================

def spend_description_to_dict(spend: SpendDescription) -> dict:
    result = {
        "value_commitment": spend.cv.hex(),
        "anchor": spend.anchor.hex(),
        "nullifier": spend.nullifier.hex(),
        "rk": spend.rk.hex(),
        "zkproof": spend.zkproof.hex(),
    }
    if spend.spend_auth_sig is not None:
        result["spend_authority_signature"] = spend.spend_auth_sig.hex()
    return result


def receive_description_to_dict(receive: ReceiveDescription) -> dict:
    return {
        "value_commitment": receive.cv.hex(),
        "note_commitment": receive.cm.hex(),
        "epk": receive.epk.hex(),
        "c_enc": receive.c_enc.hex(),
        "c_out": receive.c_out.hex(),
        "zkproof": receive.zkproof.hex(),
    }


def bundle_to_dict(bundle: ParameterBundle) -> dict:
    """Export a bundle with hex-encoded wire fields."""
    return {
        "operation": bundle.operation.name.lower(),
        "spend_description": [spend_description_to_dict(s) for s in bundle.spend_descriptions],
        "receive_description": [receive_description_to_dict(r) for r in bundle.receive_descriptions],
        "message_hash": bundle.message_hash.hex(),
        "binding_signature": bundle.binding_signature.hex(),
        "value_balance": bundle.value_balance,
    }


def build_from_request(
    backend: CryptoBackend,
    request: Dict[str, Any],
    config: Optional[BuilderConfig] = None,
) -> dict:
    """
    Build parameters for a request dictionary.

    Returns:
        Bundle dictionary (see bundle_to_dict)

    Raises:
        RequestError: ERROR_INVALID_PARAMS for malformed input,
            ERROR_BUILD_FAILED for backend failures
    """
    builder = builder_from_request(backend, request, config)
    with_ask = _flag(request, "with_ask")
    try:
        bundle = builder.build(with_ask=with_ask)
    except ValidationError as e:
        raise RequestError(ERROR_INVALID_PARAMS, str(e)) from e
    except ShieldedError as e:
        raise RequestError(ERROR_BUILD_FAILED, str(e), data=type(e).__name__) from e

    return bundle_to_dict(bundle)
