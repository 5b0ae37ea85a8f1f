"""
Domain components: identity derivation, claims and proofs.
"""

from zkauth.domain.claim_issuer import ClaimIssuer
from zkauth.domain.identity_deriver import IdentityDeriver
from zkauth.domain.proof_engine import ProofEngine
from zkauth.domain.prover import SimulatedProver

__all__ = ["ClaimIssuer", "IdentityDeriver", "ProofEngine", "SimulatedProver"]
