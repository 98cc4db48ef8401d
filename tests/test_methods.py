"""
Request method tests.
"""

import pytest

from shielded.api.methods import (
    RequestError,
    ERROR_INVALID_REQUEST,
    ERROR_INVALID_PARAMS,
    ERROR_BUILD_FAILED,
    builder_from_request,
    build_from_request,
)
from shielded.config import BuilderConfig
from shielded.core.types import ShieldedOperation
from shielded.crypto.hash import sha256
from shielded.crypto.simulated import SimulatedBackend


@pytest.fixture
def note_params(sender_address, make_scalar):
    def factory(value, tag=1):
        return {
            "value": value,
            "diversifier": sender_address.diversifier.hex(),
            "pk_d": sender_address.pk_d.hex(),
            "rcm": make_scalar(tag).hex(),
        }
    return factory


@pytest.fixture
def expsk_params(spending_key):
    return {
        "ask": spending_key.ask.hex(),
        "nsk": spending_key.nsk.hex(),
        "ovk": spending_key.ovk.hex(),
    }


@pytest.fixture
def output_params(spending_key, recipient_address):
    def factory(value, **extra):
        params = {
            "ovk": spending_key.ovk.hex(),
            "value": value,
            "diversifier": recipient_address.diversifier.hex(),
            "pk_d": recipient_address.pk_d.hex(),
        }
        params.update(extra)
        return params
    return factory


@pytest.fixture
def transfer_request(pool_address, anchor, make_path, note_params, expsk_params, output_params):
    return {
        "operation": "transfer",
        "pool_address": pool_address.hex(),
        "with_ask": True,
        "spends": [
            {
                "expsk": expsk_params,
                "note": note_params(30),
                "anchor": anchor.hex(),
                "path": make_path(4).hex(),
            },
        ],
        "outputs": [output_params(20, memo=b"thanks".hex()), output_params(10)],
    }


class TestBuildFromRequest:
    """Request to bundle dictionary."""

    def test_mint(self, backend, pool_address, output_params):
        result = build_from_request(backend, {
            "operation": "mint",
            "pool_address": pool_address.hex(),
            "transparent_from_amount": 15,
            "outputs": [output_params(15)],
        })
        assert result["operation"] == "mint"
        assert result["spend_description"] == []
        assert len(result["receive_description"]) == 1
        assert result["value_balance"] == 0
        assert len(bytes.fromhex(result["binding_signature"])) == 64

    def test_transfer(self, backend, transfer_request, pool_address):
        result = build_from_request(backend, transfer_request)

        assert result["operation"] == "transfer"
        assert result["value_balance"] == 0
        spend = result["spend_description"][0]
        assert set(spend) == {
            "value_commitment", "anchor", "nullifier", "rk", "zkproof",
            "spend_authority_signature",
        }

        message = bytes.fromhex(transfer_request["pool_address"])
        for s in result["spend_description"]:
            message += b"".join(bytes.fromhex(s[k]) for k in ("value_commitment", "anchor", "nullifier", "rk", "zkproof"))
        for r in result["receive_description"]:
            message += b"".join(
                bytes.fromhex(r[k])
                for k in ("value_commitment", "note_commitment", "epk", "c_enc", "c_out", "zkproof")
            )
        assert result["message_hash"] == sha256(message).hex()

    def test_without_ask(self, backend, transfer_request):
        transfer_request["with_ask"] = False
        result = build_from_request(backend, transfer_request)
        assert "spend_authority_signature" not in result["spend_description"][0]

    def test_explicit_rcm(self, backend, pool_address, output_params, make_scalar):
        builder = builder_from_request(backend, {
            "operation": "mint",
            "pool_address": pool_address.hex(),
            "transparent_from_amount": 5,
            "outputs": [output_params(5, rcm=make_scalar(8).hex())],
        })
        assert builder.operation is ShieldedOperation.MINT
        assert builder.receives[0].note.rcm == make_scalar(8)
        assert backend.calls["generate_random_scalar"] == 0


class TestRequestErrors:
    """Malformed requests and failed builds."""

    def test_not_an_object(self, backend):
        with pytest.raises(RequestError) as exc:
            build_from_request(backend, ["mint"])
        assert exc.value.code == ERROR_INVALID_REQUEST

    def test_unknown_operation(self, backend, pool_address):
        with pytest.raises(RequestError) as exc:
            build_from_request(backend, {"operation": "swap", "pool_address": pool_address.hex()})
        assert exc.value.code == ERROR_INVALID_PARAMS

    def test_missing_field(self, backend):
        with pytest.raises(RequestError) as exc:
            build_from_request(backend, {"operation": "mint"})
        assert exc.value.code == ERROR_INVALID_PARAMS
        assert "pool_address" in exc.value.message

    def test_not_hex(self, backend):
        with pytest.raises(RequestError) as exc:
            build_from_request(backend, {"operation": "mint", "pool_address": "zz"})
        assert exc.value.code == ERROR_INVALID_PARAMS

    def test_negative_amount(self, backend, pool_address, output_params):
        with pytest.raises(RequestError) as exc:
            build_from_request(backend, {
                "operation": "mint",
                "pool_address": pool_address.hex(),
                "transparent_from_amount": 1,
                "outputs": [output_params(-1)],
            })
        assert exc.value.code == ERROR_INVALID_PARAMS

    def test_both_key_variants(self, backend, transfer_request, spending_key):
        transfer_request["spends"][0]["ak"] = bytes(32).hex()
        transfer_request["spends"][0]["nsk"] = spending_key.nsk.hex()
        with pytest.raises(RequestError) as exc:
            build_from_request(backend, transfer_request)
        assert exc.value.code == ERROR_INVALID_PARAMS

    def test_raw_spend_needs_alpha(self, backend, transfer_request, spending_key):
        spend = transfer_request["spends"][0]
        del spend["expsk"]
        spend["ak"] = backend.derive_full_viewing_key(spending_key).ak.hex()
        spend["nsk"] = spending_key.nsk.hex()
        with pytest.raises(RequestError) as exc:
            build_from_request(backend, transfer_request)
        assert exc.value.code == ERROR_INVALID_PARAMS

    def test_bad_path_is_invalid_params(self, backend, transfer_request):
        transfer_request["spends"][0]["path"] = "00" * 100
        with pytest.raises(RequestError) as exc:
            build_from_request(backend, transfer_request)
        assert exc.value.code == ERROR_INVALID_PARAMS
        assert "merkle path" in exc.value.message

    def test_backend_failure(self, transfer_request):
        backend = SimulatedBackend(seed=b"methods", fail_on={"spend_proof": 1})
        with pytest.raises(RequestError) as exc:
            build_from_request(backend, transfer_request)
        assert exc.value.code == ERROR_BUILD_FAILED
        assert exc.value.data == "ProofGenerationFailure"
        assert backend.live_contexts == 0

    @pytest.mark.parametrize("with_ask", ["false", 0, None])
    def test_with_ask_must_be_boolean(self, backend, transfer_request, with_ask):
        transfer_request["with_ask"] = with_ask
        with pytest.raises(RequestError) as exc:
            build_from_request(backend, transfer_request)
        assert exc.value.code == ERROR_INVALID_PARAMS
        assert "with_ask" in exc.value.message
        assert backend.live_contexts == 0

    @pytest.mark.parametrize("field,value", [
        ("spends", ["x"]),
        ("spends", {"note": {}}),
        ("outputs", [7]),
    ])
    def test_entries_must_be_objects(self, backend, transfer_request, field, value):
        transfer_request[field] = value
        with pytest.raises(RequestError) as exc:
            build_from_request(backend, transfer_request)
        assert exc.value.code == ERROR_INVALID_PARAMS

    def test_expsk_must_be_object(self, backend, transfer_request):
        transfer_request["spends"][0]["expsk"] = "ab"
        with pytest.raises(RequestError) as exc:
            build_from_request(backend, transfer_request)
        assert exc.value.code == ERROR_INVALID_PARAMS
        assert "expsk" in exc.value.message

    def test_missing_note(self, backend, transfer_request):
        del transfer_request["spends"][0]["note"]
        with pytest.raises(RequestError) as exc:
            build_from_request(backend, transfer_request)
        assert exc.value.code == ERROR_INVALID_PARAMS

    def test_unknown_hash_algorithm(self, backend, pool_address, output_params):
        with pytest.raises(RequestError) as exc:
            build_from_request(backend, {
                "operation": "mint",
                "pool_address": pool_address.hex(),
                "transparent_from_amount": 1,
                "outputs": [output_params(1)],
            }, BuilderConfig(hash_algorithm="md5"))
        assert exc.value.code == ERROR_INVALID_PARAMS
        assert backend.freed == []

    def test_burn_without_withdrawal_address(self, backend, transfer_request):
        transfer_request["operation"] = "burn"
        transfer_request["outputs"] = []
        transfer_request["transparent_to_amount"] = 30
        with pytest.raises(RequestError) as exc:
            build_from_request(backend, transfer_request)
        assert exc.value.code == ERROR_INVALID_PARAMS
        assert "withdrawal address" in exc.value.message
        assert backend.freed == []
