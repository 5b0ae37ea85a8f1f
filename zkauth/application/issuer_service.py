"""
Application layer: front-end surface over the issuer gateway.

Every operation returns a ``ServiceResult``. Gateway failures and missing
inputs become unsuccessful results; only task cancellation propagates.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from zkauth.application.runner import PeriodicTask
from zkauth.common.models import GatewayResult, ServiceResult

if TYPE_CHECKING:
    from zkauth.infrastructure.issuer_gateway import IssuerGateway

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal server error"


class IssuerService:
    """Wraps ``IssuerGateway`` calls into uniform ``ServiceResult`` values."""

    def __init__(self, gateway: IssuerGateway):
        self.gateway = gateway
        self.last_status: ServiceResult | None = None

    async def status(self) -> ServiceResult:
        return await self._run(
            self.gateway.status,
            ok="Issuer node connected",
            failed="Could not connect to the issuer node",
        )

    async def create_identity(self, user_data: dict[str, Any] | None = None) -> ServiceResult:
        return await self._run(
            lambda: self.gateway.create_identity(user_data),
            ok="DID identity created",
            failed="Could not create DID identity",
        )

    async def create_claim(
        self, did: str | None, claim_data: dict[str, Any] | None
    ) -> ServiceResult:
        if not did or not claim_data:
            return self._missing("identity_did", "claim_data")
        return await self._run(
            lambda: self.gateway.create_claim(did, claim_data),
            ok="Claim created",
            failed="Could not create claim",
        )

    async def create_credential(
        self, user_data: dict[str, Any] | None, claim_data: dict[str, Any] | None
    ) -> ServiceResult:
        """Create an identity, issue a claim to it and fetch the claim QR.

        The QR code is optional: a failed lookup is logged and the credential
        is still returned.
        """
        if not claim_data:
            return self._missing("claim_data")

        identity = await self.gateway.create_identity(user_data)
        if not identity.ok:
            return self._failure(f"Could not create identity: {_reason(identity)}", identity)
        try:
            did = str(identity.data["identifier"])
        except (KeyError, TypeError):
            return ServiceResult(
                success=False,
                message="Issuer returned an identity without an identifier",
                error="missing identifier",
            )

        claim = await self.gateway.create_claim(did, claim_data)
        if not claim.ok:
            return self._failure(f"Could not create claim: {_reason(claim)}", claim)
        claim_id = claim.data.get("id") if isinstance(claim.data, dict) else None

        qr_code = None
        if claim_id:
            qr = await self.gateway.get_claim_qr(did, str(claim_id))
            if qr.ok:
                qr_code = qr.data
            else:
                logger.warning("Could not fetch QR for claim %s: %s", claim_id, _reason(qr))

        logger.info("Credential %s created for %s", claim_id, did)
        return ServiceResult(
            success=True,
            message="Credential created",
            data={"identity": identity.data, "claim": claim.data, "qr_code": qr_code},
        )

    async def verify_proof(
        self, proof: dict[str, Any] | None, public_signals: list[str] | None
    ) -> ServiceResult:
        if not proof or not public_signals:
            return self._missing("proof", "public_signals")
        return await self._run(
            lambda: self.gateway.verify_proof(proof, public_signals),
            ok="Proof verified",
            failed="Could not verify proof",
        )

    async def get_credential(self, credential_id: str | None) -> ServiceResult:
        if not credential_id:
            return self._missing("credential_id")
        return await self._run(
            lambda: self.gateway.get_credential(credential_id),
            ok="Credential found",
            failed="Credential not found",
        )

    async def get_claims(self, did: str | None) -> ServiceResult:
        if not did:
            return self._missing("did")
        return await self._run(
            lambda: self.gateway.get_claims(did),
            ok="Claims found",
            failed="Claims not found",
        )

    async def publish_state(self, did: str | None) -> ServiceResult:
        if not did:
            return self._missing("did")
        return await self._run(
            lambda: self.gateway.publish_state(did),
            ok="State published",
            failed="Could not publish state",
        )

    async def get_claim_qr(self, did: str | None, claim_id: str | None) -> ServiceResult:
        if not did or not claim_id:
            return self._missing("did", "claim_id")
        return await self._run(
            lambda: self.gateway.get_claim_qr(did, claim_id),
            ok="QR code found",
            failed="QR code not found",
        )

    async def get_issuer_info(self) -> ServiceResult:
        return await self._run(
            self.gateway.get_issuer_info,
            ok="Issuer information retrieved",
            failed="Could not get issuer information",
        )

    def status_monitor(
        self,
        interval: float | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> PeriodicTask:
        """Background task keeping ``last_status`` current.

        Polls every ``Config.REFRESH_INTERVAL`` seconds unless ``interval`` is given.
        """
        if interval is None:
            interval = self.gateway.config.REFRESH_INTERVAL

        async def poll() -> None:
            self.last_status = await self.status()
            if not self.last_status.success:
                logger.warning("Issuer node unavailable: %s", self.last_status.error)

        return PeriodicTask(poll, interval, name="issuer-status", on_error=on_error)

    async def _run(
        self,
        call: Callable[[], Awaitable[GatewayResult]],
        ok: str,
        failed: str,
    ) -> ServiceResult:
        try:
            result = await call()
        except Exception as e:
            logger.exception("Issuer service call failed")
            return ServiceResult(success=False, message=INTERNAL_ERROR, error=str(e))
        if not result.ok:
            return self._failure(failed, result)
        return ServiceResult(success=True, message=ok, data=result.data)

    @staticmethod
    def _failure(message: str, result: GatewayResult) -> ServiceResult:
        return ServiceResult(success=False, message=message, error=_reason(result))

    @staticmethod
    def _missing(*fields: str) -> ServiceResult:
        return ServiceResult(
            success=False,
            message=f"Missing required fields: {', '.join(fields)}",
            error="missing_fields",
        )


def _reason(result: GatewayResult) -> str:
    return result.error.message if result.error else "unknown error"
