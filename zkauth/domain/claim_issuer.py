"""Claim issuance and integrity checking.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel, ValidationError

from zkauth.common.crypto import CryptoUtils
from zkauth.common.exceptions import IssuanceFailed
from zkauth.common.models import CLAIM_PAYLOADS, Claim, ClaimIntegrity, ClaimType

if TYPE_CHECKING:
    from zkauth.common.config import Config
    from zkauth.common.models import Identity
    from zkauth.infrastructure.issuer_gateway import IssuerGateway

logger = logging.getLogger(__name__)


class ClaimIssuer:
    """Issues time-bounded, typed claims about an identity."""

    def __init__(
        self,
        config: Config,
        gateway: IssuerGateway | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.gateway = gateway
        self.clock = clock

    async def issue(
        self,
        identity: Identity,
        claim_type: ClaimType | str,
        data: BaseModel | dict[str, Any],
    ) -> Claim:
        """Issue a claim of ``claim_type`` about ``identity``."""
        claim_type, payload = self._validate(claim_type, data)

        claim_id = uuid.uuid4()
        if self.gateway is not None and self.config.remote_issuer:
            claim_id = await self._create_upstream(identity, claim_type, payload) or claim_id

        now = int(self.clock())
        claim = Claim(
            id=claim_id,
            type=claim_type,
            issuer_did=self.config.ISSUER_DID,
            subject_did=identity.did,
            data=payload,
            issued_at=now,
            expires_at=now + self.config.CLAIM_TTL,
            proof=ClaimIntegrity(
                value=self.binding_digest(claim_id, identity.did, payload)
            ),
        )
        logger.info("Issued %s claim %s for %s", claim_type.value, claim.id, identity.did)
        return claim

    def verify_integrity(self, claim: Claim) -> bool:
        """Recompute the binding digest and compare it with the stored one."""
        expected = self.binding_digest(claim.id, claim.subject_did, claim.data)
        return CryptoUtils.digests_match(expected, claim.proof.value)

    @staticmethod
    def binding_digest(claim_id: uuid.UUID, subject_did: str, payload: BaseModel) -> str:
        serialized = CryptoUtils.canonical_json(payload.model_dump(mode="json"))
        return CryptoUtils.sha256_hex(f"{claim_id}:{subject_did}:{serialized}")

    @staticmethod
    def _validate(
        claim_type: ClaimType | str, data: BaseModel | dict[str, Any]
    ) -> tuple[ClaimType, BaseModel]:
        try:
            claim_type = ClaimType(claim_type)
        except ValueError as err:
            msg = f"unknown claim type: {claim_type}"
            raise IssuanceFailed(msg) from err

        payload_cls = CLAIM_PAYLOADS[claim_type]
        if isinstance(data, BaseModel):
            data = data.model_dump()
        try:
            payload = payload_cls.model_validate({**data, "claim_type": claim_type.value})
        except ValidationError as err:
            msg = f"malformed {claim_type.value} claim data: {err}"
            raise IssuanceFailed(msg) from err
        return claim_type, payload

    async def _create_upstream(
        self, identity: Identity, claim_type: ClaimType, payload: BaseModel
    ) -> uuid.UUID | None:
        assert self.gateway is not None
        subject = payload.model_dump(mode="json", exclude={"claim_type"})
        subject["id"] = identity.did
        result = await self.gateway.create_claim(
            self.config.ISSUER_DID,
            {
                "credentialSubject": subject,
                "expiration": int(self.clock()) + self.config.CLAIM_TTL,
            },
        )
        if not result.ok:
            assert result.error is not None
            msg = f"issuer rejected {claim_type.value} claim: {result.error.message}"
            raise IssuanceFailed(msg, upstream=True)
        try:
            return uuid.UUID(str(result.data["id"]))
        except (KeyError, TypeError, ValueError):
            logger.warning("Issuer claim id %r is not a UUID; keeping local id", result.data)
            return None
