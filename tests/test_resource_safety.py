"""
Proving context lifecycle tests.

Every build, successful or not, releases its proving context exactly once.
"""

import pytest
from unittest.mock import Mock

from shielded.core.types import ShieldedOperation
from shielded.crypto.backend import ProvingContext
from shielded.crypto.simulated import SimulatedBackend, SimulatedBackendError
from shielded.protocol.builder import ParameterBuilder
from shielded.errors import ShieldedError


# Every counted backend call of a two-spend, two-output transfer with ask
FAULT_STEPS = (
    [("note_commitment", n) for n in range(1, 5)]
    + [("derive_nullifier", n) for n in range(1, 3)]
    + [("spend_proof", n) for n in range(1, 3)]
    + [("output_proof", n) for n in range(1, 3)]
    + [("encrypt_note", n) for n in range(1, 3)]
    + [("encrypt_outgoing", n) for n in range(1, 3)]
    + [("sign_spend_auth", n) for n in range(1, 3)]
    + [("sign_binding", 1)]
)


@pytest.fixture
def build_transfer(spending_key, recipient_address, owned_note, anchor,
                   make_path, make_scalar, pool_address):
    def run(backend):
        builder = ParameterBuilder(backend, ShieldedOperation.TRANSFER, pool_address)
        builder.add_spend(spending_key, owned_note(25, tag=1), anchor, make_path(1), alpha=make_scalar(31))
        builder.add_spend(spending_key, owned_note(75, tag=2), anchor, make_path(2), alpha=make_scalar(32))
        for value, tag in ((50, 41), (50, 42)):
            builder.add_output_raw(
                spending_key.ovk,
                recipient_address.diversifier,
                recipient_address.pk_d,
                value,
                make_scalar(tag),
            )
        return builder.build(with_ask=True)
    return run


class TestContextRelease:
    """Exactly-once release across every failure point."""

    def test_fault_steps_cover_build(self, build_transfer):
        backend = SimulatedBackend(seed=b"count")
        build_transfer(backend)
        expected = {}
        for name, n in FAULT_STEPS:
            expected[name] = max(expected.get(name, 0), n)
        assert {name: backend.calls[name] for name in expected} == expected

    def test_hundred_builds(self, build_transfer):
        steps = [None] + FAULT_STEPS
        for i in range(100):
            step = steps[i % len(steps)]
            raise_faults = (i // len(steps)) % 2 == 1
            fail_on = {step[0]: step[1]} if step else None
            backend = SimulatedBackend(seed=b"run", fail_on=fail_on, raise_faults=raise_faults)

            if step is None:
                build_transfer(backend)
            elif raise_faults:
                with pytest.raises(SimulatedBackendError):
                    build_transfer(backend)
            else:
                with pytest.raises(ShieldedError):
                    build_transfer(backend)

            assert len(backend.freed) == 1, f"build {i} at {step}"
            assert backend.live_contexts == 0, f"build {i} at {step}"


class TestProvingContext:
    """Scoped context handle."""

    def test_release_is_idempotent(self):
        backend = Mock()
        ctx = ProvingContext(backend, handle=7)
        with ctx:
            assert ctx.handle == 7
        ctx.release()
        backend.free_proving_context.assert_called_once_with(7)
        assert ctx.released

    def test_handle_unusable_after_release(self):
        ctx = ProvingContext(Mock(), handle=1)
        ctx.release()
        with pytest.raises(RuntimeError):
            ctx.handle

    def test_failing_free_not_retried(self):
        backend = Mock()
        backend.free_proving_context.side_effect = RuntimeError("free failed")
        ctx = ProvingContext(backend, handle=3)
        with pytest.raises(RuntimeError):
            ctx.release()
        ctx.release()
        assert backend.free_proving_context.call_count == 1

    def test_released_on_exception(self):
        backend = Mock()
        with pytest.raises(ValueError):
            with ProvingContext(backend, handle=9):
                raise ValueError("boom")
        backend.free_proving_context.assert_called_once_with(9)

    def test_simulated_double_free(self):
        backend = SimulatedBackend(seed=b"free")
        handle = backend.init_proving_context()
        backend.free_proving_context(handle)
        with pytest.raises(RuntimeError):
            backend.free_proving_context(handle)
