"""Simulated proving backend.

Stands in for a real zk-SNARK prover behind the ``Prover`` protocol. Points
are hashes of the witness, shaped like a Groth16 proof (``a``: 2, ``b``: 2x2,
``c``: 2), and computing them takes an artificial delay.
"""

from __future__ import annotations

import asyncio
from typing import Any

from zkauth.common.crypto import CryptoUtils
from zkauth.common.models import ProofPoints


class SimulatedProver:
    """Hash-based prover with an artificial computation delay."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay

    async def compute(self, witness: dict[str, Any]) -> ProofPoints:
        if self.delay > 0:
            await asyncio.sleep(self.delay)
        seed = CryptoUtils.sha256_hex(CryptoUtils.canonical_json(witness))

        def point(label: str) -> str:
            return CryptoUtils.domain_hash(seed, label)

        return ProofPoints(
            a=[point("pi_a_1"), point("pi_a_2")],
            b=[
                [point("pi_b_1_1"), point("pi_b_1_2")],
                [point("pi_b_2_1"), point("pi_b_2_2")],
            ],
            c=[point("pi_c_1"), point("pi_c_2")],
        )
