"""Infrastructure layer: RPC boundary to the external issuer service.

Every method returns a ``GatewayResult`` instead of raising. Network errors,
upstream HTTP errors and timeouts all become ``GatewayResult.error``; only
task cancellation propagates.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import requests

from zkauth.common.models import GatewayError, GatewayResult, Proof

if TYPE_CHECKING:
    from zkauth.common.config import Config

HTTP_BAD_REQUEST = 400

DEFAULT_CLAIM_TYPE = "KYCAgeCredential"
DEFAULT_CLAIM_CONTEXT = [
    "https://www.w3.org/2018/credentials/v1",
    "https://schema.iden3.io/core/jsonld/iden3proofs.jsonld",
    "https://raw.githubusercontent.com/iden3/claim-schema-vocab/main/schemas/json-ld/kyc-v4.jsonld",
]
DEFAULT_CREDENTIAL_SCHEMA = {
    "id": "https://raw.githubusercontent.com/iden3/claim-schema-vocab/main/schemas/json/KYCAgeCredential-v4.json",
    "type": "JsonSchema2023",
}

logger = logging.getLogger(__name__)


class IssuerGateway:
    """Thin, fallible client for the issuer node HTTP API."""

    def __init__(
        self,
        config: Config,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ):
        self.config = config
        self.base_url = config.ISSUER_URL.rstrip("/")
        self.timeout = timeout if timeout is not None else config.API_REQUEST_TIMEOUT
        self.session = session or requests.Session()
        self.session.auth = (config.ISSUER_AUTH_USER, config.ISSUER_AUTH_PASSWORD)
        self.session.headers.update({"Content-Type": "application/json"})

    async def status(self) -> GatewayResult:
        return await self._call("GET", "/status")

    async def create_identity(self, meta: dict[str, Any] | None = None) -> GatewayResult:
        """Create a DID on the issuer node.

        ``meta`` overrides individual ``didMetadata`` fields; unspecified ones
        come from ``Config.ISSUER_DID_METADATA``.
        """
        metadata = {**self.config.ISSUER_DID_METADATA, **(meta or {})}
        return await self._call("POST", "/v1/identities", {"didMetadata": metadata})

    async def create_claim(self, did: str, payload: dict[str, Any]) -> GatewayResult:
        body = {
            "credentialSubject": payload.get("credentialSubject", {}),
            "type": payload.get("type") or DEFAULT_CLAIM_TYPE,
            "context": payload.get("context") or DEFAULT_CLAIM_CONTEXT,
            "credentialSchema": payload.get("credentialSchema") or DEFAULT_CREDENTIAL_SCHEMA,
            "expiration": payload.get("expiration"),
            "subjectPosition": payload.get("subjectPosition") or "none",
            "merklizeRootPosition": payload.get("merklizeRootPosition") or "none",
            "revNonce": payload.get("revNonce"),
            "version": payload.get("version") or 0,
            "updatable": bool(payload.get("updatable", False)),
        }
        return await self._call("POST", f"/v1/{did}/claims", body)

    async def verify_proof(
        self, proof: Proof | dict[str, Any], signals: list[str]
    ) -> GatewayResult:
        if isinstance(proof, Proof):
            proof = proof.model_dump(mode="json")
        return await self._call(
            "POST", "/v1/verification", {"proof": proof, "publicSignals": signals}
        )

    async def publish_state(self, did: str) -> GatewayResult:
        return await self._call("POST", f"/v1/{did}/state/publish")

    async def get_claim_qr(self, did: str, claim_id: str) -> GatewayResult:
        return await self._call("GET", f"/v1/{did}/claims/{claim_id}/qrcode")

    async def get_credential(self, credential_id: str) -> GatewayResult:
        return await self._call("GET", f"/v1/credentials/{credential_id}")

    async def get_claims(self, did: str) -> GatewayResult:
        return await self._call("GET", f"/v1/{did}/claims")

    async def get_issuer_info(self) -> GatewayResult:
        return await self._call("GET", "/v1/identities")

    async def _call(
        self, method: str, path: str, body: dict[str, Any] | None = None
    ) -> GatewayResult:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._send, method, path, body),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Issuer call %s %s timed out after %ss", method, path, self.timeout)
            return GatewayResult(
                error=GatewayError(message=f"request timed out after {self.timeout}s")
            )

    def _send(
        self, method: str, path: str, body: dict[str, Any] | None
    ) -> GatewayResult:
        url = f"{self.base_url}{path}"
        try:
            r = self.session.request(method, url, json=body, timeout=self.timeout)
        except requests.RequestException as err:
            logger.error("Issuer call %s %s failed: %s", method, path, err)
            return GatewayResult(error=GatewayError(message=str(err)))

        if r.status_code >= HTTP_BAD_REQUEST:
            message = self._error_message(r)
            logger.error(
                "Issuer call %s %s returned %s: %s", method, path, r.status_code, message
            )
            return GatewayResult(
                error=GatewayError(status_code=r.status_code, message=message)
            )
        return GatewayResult(data=self._body(r))

    @staticmethod
    def _body(r: requests.Response) -> Any:
        try:
            return r.json()
        except ValueError:
            return r.text or None

    @staticmethod
    def _error_message(r: requests.Response) -> str:
        body = IssuerGateway._body(r)
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        if isinstance(body, str) and body:
            return body
        return f"HTTP {r.status_code}"
