"""Proof generation and verification.

Generation runs in three observable phases (preparing circuit, building
witness, computing proof). Each phase reports progress to an optional
callback and awaits, so the whole call can be cancelled or bounded with
``asyncio.wait_for``. The proof points themselves come from a ``Prover``.

Verification is structural and freshness-based and returns a bool instead of
raising: malformed input, stale proofs and mismatched claims are all just
``False``.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import TYPE_CHECKING, Any, Callable

from pydantic import ValidationError

from zkauth.common.crypto import CryptoUtils
from zkauth.common.exceptions import ProofGenerationFailed
from zkauth.common.models import Proof, ProofPhase
from zkauth.domain.identity_deriver import IdentityDeriver
from zkauth.domain.prover import SimulatedProver

if TYPE_CHECKING:
    from zkauth.common.config import Config
    from zkauth.common.interfaces import Prover
    from zkauth.common.models import Claim, Identity, VerificationRequest

ProgressCallback = Callable[[ProofPhase], None]

logger = logging.getLogger(__name__)

MIN_PUBLIC_SIGNALS = 2
POINT_LENGTH = 2


class ProofEngine:
    """Generates and verifies proofs over issued claims."""

    def __init__(
        self,
        config: Config,
        prover: Prover | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.prover: Prover = prover or SimulatedProver(delay=config.PROOF_PHASE_DELAY)
        self.clock = clock

    async def generate(
        self,
        identity: Identity,
        claim: Claim,
        request: VerificationRequest,
        on_progress: ProgressCallback | None = None,
    ) -> Proof:
        """Generate a proof that ``identity`` holds ``claim`` for ``request``."""
        self._emit(on_progress, ProofPhase.PREPARING_CIRCUIT)
        signal_count = self._signal_count(request.circuit_id)
        self._check_claim(identity, claim, request)
        await self._pause()

        self._emit(on_progress, ProofPhase.BUILDING_WITNESS)
        now = int(self.clock())
        proof_id = uuid.uuid4()
        witness: dict[str, Any] = {
            "proof_id": str(proof_id),
            "request_id": str(request.id),
            "circuit_id": request.circuit_id,
            "subject_did": identity.did,
            "claim_id": str(claim.id),
            "claim_digest": claim.proof.value,
            "private_material": IdentityDeriver.private_material(identity),
            "timestamp": now,
        }
        public_signals = self.public_signals(identity.did, str(claim.id), now)
        if len(public_signals) != signal_count:
            msg = (
                f"circuit {request.circuit_id} expects {signal_count} public "
                f"signals, got {len(public_signals)}"
            )
            raise ProofGenerationFailed(msg)
        await self._pause()

        self._emit(on_progress, ProofPhase.COMPUTING_PROOF)
        try:
            points = await self.prover.compute(witness)
        except Exception as err:
            msg = f"prover failed: {err}"
            raise ProofGenerationFailed(msg) from err

        proof = Proof(
            id=proof_id,
            circuit_id=request.circuit_id,
            issuer_did=claim.issuer_did,
            claim_ref=claim.id,
            public_signals=public_signals,
            proof_points=points,
            created_at=now,
            valid=True,
        )
        logger.info("Generated proof %s for claim %s", proof.id, claim.id)
        return proof

    def public_signals(self, did: str, claim_id: str, timestamp: int) -> list[str]:
        length = self.config.SIGNAL_LENGTH
        return [
            CryptoUtils.domain_hash(did, "public")[:length],
            CryptoUtils.domain_hash(claim_id, "public")[:length],
            CryptoUtils.domain_hash(str(timestamp), "timestamp")[:length],
        ]

    def verify(self, proof: Proof | dict[str, Any], expected_claim: Claim | None = None) -> bool:
        """Check structure, then freshness, then claim binding."""
        parsed = self._parse(proof)
        if parsed is None or not self._well_formed(parsed):
            logger.warning("Proof rejected: malformed")
            return False

        age = int(self.clock()) - parsed.created_at
        if age > self.config.MAX_PROOF_AGE:
            logger.warning("Proof %s rejected: %s seconds old", parsed.id, age)
            return False

        if expected_claim is not None and parsed.claim_ref != expected_claim.id:
            logger.warning("Proof %s rejected: bound to another claim", parsed.id)
            return False

        logger.info("Proof %s verified", parsed.id)
        return True

    def _well_formed(self, proof: Proof) -> bool:
        if proof.valid is not True or not proof.circuit_id or not proof.issuer_did:
            return False
        if len(proof.public_signals) < MIN_PUBLIC_SIGNALS:
            return False
        expected = self.config.CIRCUIT_SIGNAL_COUNTS.get(proof.circuit_id)
        if expected is not None and len(proof.public_signals) != expected:
            return False
        points = proof.proof_points
        return (
            len(points.a) == POINT_LENGTH
            and len(points.b) == POINT_LENGTH
            and all(len(row) == POINT_LENGTH for row in points.b)
            and len(points.c) == POINT_LENGTH
        )

    @staticmethod
    def _parse(proof: Any) -> Proof | None:
        if isinstance(proof, Proof):
            return proof
        try:
            return Proof.model_validate(proof)
        except ValidationError:
            return None

    def _signal_count(self, circuit_id: str) -> int:
        count = self.config.CIRCUIT_SIGNAL_COUNTS.get(circuit_id)
        if count is None:
            msg = f"unknown circuit: {circuit_id}"
            raise ProofGenerationFailed(msg)
        return count

    def _check_claim(
        self, identity: Identity, claim: Claim, request: VerificationRequest
    ) -> None:
        if claim.subject_did != identity.did:
            msg = "claim is not bound to this identity"
            raise ProofGenerationFailed(msg)
        if claim.is_expired(int(self.clock())):
            msg = f"claim {claim.id} has expired"
            raise ProofGenerationFailed(msg)
        if request.allowed_issuers and claim.issuer_did not in request.allowed_issuers:
            msg = f"issuer {claim.issuer_did} not allowed by request {request.id}"
            raise ProofGenerationFailed(msg)

    async def _pause(self) -> None:
        # Always yield so cancellation is observed between phases
        await asyncio.sleep(max(self.config.PROOF_PHASE_DELAY, 0))

    @staticmethod
    def _emit(on_progress: ProgressCallback | None, phase: ProofPhase) -> None:
        logger.debug("Proof phase: %s", phase.value)
        if on_progress is not None:
            on_progress(phase)
