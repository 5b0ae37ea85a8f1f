"""Deterministic derivation of pseudonymous identities.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Callable

from zkauth.common.crypto import CryptoUtils
from zkauth.common.exceptions import UnsupportedMethod
from zkauth.common.models import AuthMethod, Identity

if TYPE_CHECKING:
    from zkauth.common.config import Config


class IdentityDeriver:
    """Turns per-method input into a deterministic identity."""

    def __init__(self, config: Config, clock: Callable[[], float] = time.time):
        self.config = config
        self.clock = clock

    def derive(self, method: AuthMethod | str, payload: dict[str, Any]) -> Identity:
        """Derive the identity for ``payload`` under ``method``.

        Wallet payloads need ``wallet_address``; credential payloads need
        ``email`` and ``password``. The password only feeds the seed and is
        not kept anywhere on the returned identity.
        """
        try:
            method = AuthMethod(method)
        except ValueError as err:
            msg = f"unsupported authentication method: {method}"
            raise UnsupportedMethod(msg) from err

        if method is AuthMethod.WALLET:
            seed = self.wallet_seed(payload["wallet_address"])
        else:
            seed = self.credential_seed(payload["email"], payload["password"])

        return Identity(
            did=self.did_for(method, seed),
            method=method,
            seed=seed,
            public_key_material=CryptoUtils.domain_hash(seed, "public"),
            created_at=int(self.clock()),
        )

    @staticmethod
    def wallet_seed(wallet_address: str) -> str:
        return wallet_address.lower()

    @staticmethod
    def credential_seed(email: str, password: str) -> str:
        return CryptoUtils.sha256_hex(f"{email.lower()}:{password}")

    def did_for(self, method: AuthMethod, seed: str) -> str:
        """``did:<namespace>:<Hash(seed) prefix>``."""
        namespace = (
            self.config.WALLET_DID_NAMESPACE
            if method is AuthMethod.WALLET
            else self.config.CREDENTIAL_DID_NAMESPACE
        )
        digest = CryptoUtils.sha256_hex(seed)[: self.config.DID_HASH_LENGTH]
        return f"did:{namespace}:{digest}"

    @staticmethod
    def private_material(identity: Identity) -> str:
        """Private key material, re-derived from the seed on demand."""
        return CryptoUtils.domain_hash(identity.seed, "private")
