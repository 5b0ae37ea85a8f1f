"""
Configuration settings for the credential authentication orchestrator.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

DAY = 24 * 60 * 60


class Config:
    """Central configuration class for all system settings."""

    def __init__(self) -> None:
        # Issuer service
        self.ISSUER_URL: str = os.getenv("ZKAUTH_ISSUER_URL", "http://localhost:3001")
        self.ISSUER_AUTH_USER: str = os.getenv("ZKAUTH_ISSUER_AUTH_USER", "user-issuer")
        self.ISSUER_AUTH_PASSWORD: str = os.getenv(
            "ZKAUTH_ISSUER_AUTH_PASSWORD", "password-issuer"
        )
        self.ISSUER_DID: str = os.getenv(
            "ZKAUTH_ISSUER_DID", "did:iden3:polygon:amoy:issuer"
        )
        # "local" computes everything in-process, "remote" mounts the issuer node
        self.ISSUER_MODE: str = os.getenv("ZKAUTH_ISSUER_MODE", "local")
        self.ISSUER_DID_METADATA: dict[str, str] = {
            "method": "iden3",
            "blockchain": "polygon",
            "network": "amoy",
            "type": "BJJ",
        }

        # Proof settings
        self.CIRCUIT_ID: str = os.getenv(
            "ZKAUTH_CIRCUIT_ID", "credentialAtomicQuerySigV2"
        )
        self.CIRCUIT_SIGNAL_COUNTS: dict[str, int] = {
            "credentialAtomicQuerySigV2": 3,
            "credentialAtomicQueryMTPV2": 3,
        }
        self.MAX_PROOF_AGE: int = 5 * 60  # seconds a proof stays acceptable
        self.PROOF_PHASE_DELAY: float = float(
            os.getenv("ZKAUTH_PROOF_PHASE_DELAY", "0.5")
        )
        self.SIGNAL_LENGTH: int = 32

        # Identity settings
        self.DID_HASH_LENGTH: int = 40
        self.WALLET_DID_NAMESPACE: str = "iden3:polygon:amoy"
        self.CREDENTIAL_DID_NAMESPACE: str = "iden3:polygon:amoy"

        # Lifetimes
        self.CLAIM_TTL: int = 365 * DAY
        self.SESSION_TTL: int = DAY

        # Timeouts (seconds)
        self.API_REQUEST_TIMEOUT: float = float(
            os.getenv("ZKAUTH_API_REQUEST_TIMEOUT", "15")
        )
        self.ZKP_GENERATION_TIMEOUT: float = 60.0

        # Networks
        self.REQUIRED_CHAIN_ID: int = int(os.getenv("ZKAUTH_REQUIRED_CHAIN_ID", "80002"))
        self.NETWORKS: dict[int, dict[str, Any]] = {
            80002: {
                "name": "Polygon Amoy Testnet",
                "currency": "MATIC",
                "rpc_url": "https://rpc-amoy.polygon.technology/",
            },
            137: {
                "name": "Polygon Mainnet",
                "currency": "MATIC",
                "rpc_url": "https://polygon-rpc.com/",
            },
        }

        # Registration rules
        self.MIN_NAME_LENGTH: int = 2
        self.MIN_PASSWORD_LENGTH: int = 6

        # Background refresh
        self.REFRESH_INTERVAL: float = 30.0

        # File paths
        self.DATA_DIR: Path = Path(
            os.getenv("ZKAUTH_DATA_DIR", str(Path.home() / ".zkauth"))
        )
        self.SESSIONS_FILE_PATH: Path = self.DATA_DIR / "sessions.json"
        self.USERS_FILE_PATH: Path = self.DATA_DIR / "users.json"

        # Logging
        self.LOG_LEVEL: int = logging.INFO

    @property
    def remote_issuer(self) -> bool:
        """Whether a real issuer backend is mounted."""
        return self.ISSUER_MODE == "remote"

    def network_name(self, chain_id: int) -> str:
        """Human-readable name for a chain id."""
        network = self.NETWORKS.get(chain_id)
        if network is None:
            return f"Unknown network ({chain_id})"
        return str(network["name"])
