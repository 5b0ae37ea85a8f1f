"""Common cryptographic utilities.
"""

from __future__ import annotations

import hmac
import json
from typing import Any

from cryptography.hazmat.primitives import hashes


class CryptoUtils:
    """Utility class for hashing operations."""

    @staticmethod
    def sha256_hex(data: str | bytes) -> str:
        """SHA-256 digest of ``data`` as lowercase hex."""
        if isinstance(data, str):
            data = data.encode()
        digest = hashes.Hash(hashes.SHA256())
        digest.update(data)
        return digest.finalize().hex()

    @staticmethod
    def domain_hash(seed: str, domain: str) -> str:
        """Domain-separated digest ``Hash(seed + ":" + domain)``."""
        return CryptoUtils.sha256_hex(f"{seed}:{domain}")

    @staticmethod
    def canonical_json(obj: Any) -> str:
        """Stable JSON serialization used for digests."""
        return json.dumps(obj, sort_keys=True, separators=(",", ":"), default=str)

    @staticmethod
    def digests_match(left: str, right: str) -> bool:
        """Constant-time comparison of two hex digests."""
        return hmac.compare_digest(left.encode(), right.encode())
