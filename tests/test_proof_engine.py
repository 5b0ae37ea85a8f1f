import asyncio
import uuid
from typing import Any

import pytest

from zkauth.common.config import Config
from zkauth.common.exceptions import ProofGenerationFailed
from zkauth.common.models import (
    AuthMethod,
    Claim,
    ClaimType,
    Identity,
    Proof,
    ProofPhase,
    ProofPoints,
    VerificationRequest,
)
from zkauth.domain.claim_issuer import ClaimIssuer
from zkauth.domain.identity_deriver import IdentityDeriver
from zkauth.domain.proof_engine import ProofEngine

ADDRESS = "0xABCDEF0123456789ABCDEF0123456789ABCD1234"


class SlowProver:
    """Prover that never finishes on its own."""

    def __init__(self) -> None:
        self.started = asyncio.Event()

    async def compute(self, witness: dict[str, Any]) -> ProofPoints:
        self.started.set()
        await asyncio.sleep(3600)
        raise AssertionError("unreachable")


class BrokenProver:
    async def compute(self, witness: dict[str, Any]) -> ProofPoints:
        raise RuntimeError("circuit file missing")


@pytest.fixture
def identity(config: Config, clock: Any) -> Identity:
    return IdentityDeriver(config, clock=clock).derive(
        AuthMethod.WALLET, {"wallet_address": ADDRESS}
    )


@pytest.fixture
def claim(config: Config, clock: Any, identity: Identity) -> Claim:
    issuer = ClaimIssuer(config, clock=clock)
    return asyncio.run(
        issuer.issue(identity, ClaimType.WALLET_OWNER, {"address": ADDRESS, "network": 80002})
    )


@pytest.fixture
def request_(config: Config, clock: Any) -> VerificationRequest:
    return VerificationRequest(
        id=uuid.uuid4(),
        circuit_id=config.CIRCUIT_ID,
        allowed_issuers=[config.ISSUER_DID],
        query={"type": "wallet_ownership"},
        created_at=clock.now,
    )


@pytest.fixture
def engine(config: Config, clock: Any) -> ProofEngine:
    return ProofEngine(config, clock=clock)


def test_generate_and_verify(
    engine: ProofEngine,
    identity: Identity,
    claim: Claim,
    request_: VerificationRequest,
    config: Config,
    clock: Any,
) -> None:
    phases: list[ProofPhase] = []
    proof = asyncio.run(engine.generate(identity, claim, request_, phases.append))

    assert phases == [
        ProofPhase.PREPARING_CIRCUIT,
        ProofPhase.BUILDING_WITNESS,
        ProofPhase.COMPUTING_PROOF,
    ]
    assert proof.valid
    assert proof.claim_ref == claim.id
    assert proof.issuer_did == config.ISSUER_DID
    assert proof.created_at == clock.now
    assert len(proof.public_signals) == config.CIRCUIT_SIGNAL_COUNTS[config.CIRCUIT_ID]
    assert all(len(s) == config.SIGNAL_LENGTH for s in proof.public_signals)
    assert len(proof.proof_points.a) == 2  # noqa: PLR2004
    assert engine.verify(proof)
    assert engine.verify(proof, expected_claim=claim)


def test_private_material_not_in_proof(
    engine: ProofEngine, identity: Identity, claim: Claim, request_: VerificationRequest
) -> None:
    proof = asyncio.run(engine.generate(identity, claim, request_))
    private = IdentityDeriver.private_material(identity)
    assert private not in proof.model_dump_json()


def test_stale_proof_rejected(
    engine: ProofEngine,
    identity: Identity,
    claim: Claim,
    request_: VerificationRequest,
    clock: Any,
) -> None:
    proof = asyncio.run(engine.generate(identity, claim, request_))

    clock.advance(300)
    assert engine.verify(proof)

    clock.advance(60)
    assert not engine.verify(proof)


def test_verify_accepts_dict(
    engine: ProofEngine, identity: Identity, claim: Claim, request_: VerificationRequest
) -> None:
    proof = asyncio.run(engine.generate(identity, claim, request_))
    assert engine.verify(proof.model_dump(mode="json"))


@pytest.mark.parametrize(
    "broken",
    [
        {"valid": False},
        {"circuit_id": ""},
        {"issuer_did": ""},
        {"public_signals": ["only-one"]},
        {"public_signals": ["a", "b"]},
        {"proof_points": ProofPoints(a=["1"], b=[["1", "2"], ["3", "4"]], c=["5", "6"])},
        {"proof_points": ProofPoints(a=["1", "2"], b=[["1"], ["3", "4"]], c=["5", "6"])},
        {"proof_points": ProofPoints(a=["1", "2"], b=[["1", "2"], ["3", "4"]], c=[])},
    ],
)
def test_malformed_proof_rejected(
    engine: ProofEngine,
    identity: Identity,
    claim: Claim,
    request_: VerificationRequest,
    broken: dict[str, Any],
) -> None:
    proof = asyncio.run(engine.generate(identity, claim, request_))
    assert not engine.verify(proof.model_copy(update=broken))


def test_garbage_input_rejected(engine: ProofEngine) -> None:
    assert not engine.verify({"proof": "nope"})
    assert not engine.verify(None)  # type: ignore[arg-type]


def test_proof_bound_to_other_claim(
    engine: ProofEngine,
    identity: Identity,
    claim: Claim,
    request_: VerificationRequest,
    config: Config,
    clock: Any,
) -> None:
    other = asyncio.run(
        ClaimIssuer(config, clock=clock).issue(
            identity, ClaimType.WALLET_OWNER, {"address": ADDRESS, "network": 80002}
        )
    )
    proof = asyncio.run(engine.generate(identity, claim, request_))
    assert not engine.verify(proof, expected_claim=other)


def test_generate_rejects_foreign_claim(
    engine: ProofEngine,
    config: Config,
    clock: Any,
    claim: Claim,
    request_: VerificationRequest,
) -> None:
    stranger = IdentityDeriver(config, clock=clock).derive(
        AuthMethod.WALLET, {"wallet_address": "0x" + "2" * 40}
    )
    with pytest.raises(ProofGenerationFailed, match="not bound"):
        asyncio.run(engine.generate(stranger, claim, request_))


def test_generate_rejects_expired_claim(
    engine: ProofEngine,
    identity: Identity,
    claim: Claim,
    request_: VerificationRequest,
    config: Config,
    clock: Any,
) -> None:
    clock.advance(config.CLAIM_TTL + 1)
    with pytest.raises(ProofGenerationFailed, match="expired"):
        asyncio.run(engine.generate(identity, claim, request_))


def test_generate_rejects_unknown_circuit(
    engine: ProofEngine, identity: Identity, claim: Claim, request_: VerificationRequest
) -> None:
    request_ = request_.model_copy(update={"circuit_id": "unknownCircuit"})
    with pytest.raises(ProofGenerationFailed, match="unknown circuit"):
        asyncio.run(engine.generate(identity, claim, request_))


def test_generate_rejects_disallowed_issuer(
    engine: ProofEngine, identity: Identity, claim: Claim, request_: VerificationRequest
) -> None:
    request_ = request_.model_copy(update={"allowed_issuers": ["did:iden3:someone:else"]})
    with pytest.raises(ProofGenerationFailed, match="not allowed"):
        asyncio.run(engine.generate(identity, claim, request_))


def test_prover_failure_wrapped(
    config: Config,
    clock: Any,
    identity: Identity,
    claim: Claim,
    request_: VerificationRequest,
) -> None:
    engine = ProofEngine(config, prover=BrokenProver(), clock=clock)
    with pytest.raises(ProofGenerationFailed, match="circuit file missing"):
        asyncio.run(engine.generate(identity, claim, request_))


def test_generation_can_be_cancelled(
    config: Config,
    clock: Any,
    identity: Identity,
    claim: Claim,
    request_: VerificationRequest,
) -> None:
    prover = SlowProver()
    engine = ProofEngine(config, prover=prover, clock=clock)

    async def scenario() -> None:
        task = asyncio.create_task(engine.generate(identity, claim, request_))
        await prover.started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())


def test_generation_respects_timeout(
    config: Config,
    clock: Any,
    identity: Identity,
    claim: Claim,
    request_: VerificationRequest,
) -> None:
    engine = ProofEngine(config, prover=SlowProver(), clock=clock)

    async def scenario() -> Proof:
        return await asyncio.wait_for(engine.generate(identity, claim, request_), 0.05)

    with pytest.raises(asyncio.TimeoutError):
        asyncio.run(scenario())
