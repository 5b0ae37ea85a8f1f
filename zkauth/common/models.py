"""
Pydantic models for identities, claims, proofs and sessions.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Annotated, Any, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

WALLET_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


class AuthMethod(str, Enum):
    WALLET = "wallet"
    CREDENTIAL = "credential"


class AuthState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    GENERATING_PROOF = "generating_proof"
    VERIFYING_PROOF = "verifying_proof"
    AUTHENTICATED = "authenticated"
    ERROR = "error"


class ClaimType(str, Enum):
    WALLET_OWNER = "wallet_owner"
    USER_NAME = "user_name"
    REGISTRATION_DATE = "registration_date"


class ProofPhase(str, Enum):
    PREPARING_CIRCUIT = "preparing_circuit"
    BUILDING_WITNESS = "building_witness"
    COMPUTING_PROOF = "computing_proof"


class Identity(BaseModel):
    model_config = ConfigDict(frozen=True)

    did: str
    method: AuthMethod
    seed: str
    public_key_material: str
    created_at: int


# Claim payloads, one shape per claim type


class WalletOwner(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    claim_type: Literal["wallet_owner"] = "wallet_owner"
    address: str
    network: int


class UserName(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    claim_type: Literal["user_name"] = "user_name"
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)


class RegistrationDate(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    claim_type: Literal["registration_date"] = "registration_date"
    registered_at: int


ClaimPayload = Annotated[
    Union[WalletOwner, UserName, RegistrationDate],
    Field(discriminator="claim_type"),
]

CLAIM_PAYLOADS: dict[ClaimType, type[BaseModel]] = {
    ClaimType.WALLET_OWNER: WalletOwner,
    ClaimType.USER_NAME: UserName,
    ClaimType.REGISTRATION_DATE: RegistrationDate,
}


class ClaimIntegrity(BaseModel):
    type: str = "iden3SparseMerkleTreeProof"
    value: str


class Claim(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    type: ClaimType
    issuer_did: str
    subject_did: str
    data: ClaimPayload
    issued_at: int
    expires_at: int
    proof: ClaimIntegrity

    def is_expired(self, now: int) -> bool:
        return now > self.expires_at


class VerificationRequest(BaseModel):
    id: UUID
    circuit_id: str
    allowed_issuers: list[str]
    query: dict[str, Any] = Field(default_factory=dict)
    created_at: int


class ProofPoints(BaseModel):
    a: list[str]
    b: list[list[str]]
    c: list[str]


class Proof(BaseModel):
    id: UUID
    circuit_id: str
    issuer_did: str
    claim_ref: UUID
    public_signals: list[str]
    proof_points: ProofPoints
    created_at: int
    valid: bool = True


class Session(BaseModel):
    id: str
    method: AuthMethod
    subject_ref: str
    claim_ref: UUID
    authenticated_at: int
    expires_at: int

    def is_expired(self, now: int) -> bool:
        """True iff ``now`` is past the expiry instant."""
        return now > self.expires_at


class RegisteredUser(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str
    password_hash: str
    identity: Identity
    claim: Claim
    registered_at: int


class WalletInfo(BaseModel):
    address: str
    chain_id: int
    connected: bool = True
    network_name: str | None = None

    @field_validator("address")
    @classmethod
    def _check_address(cls, value: str) -> str:
        if not WALLET_ADDRESS_RE.match(value):
            msg = f"invalid wallet address: {value!r}"
            raise ValueError(msg)
        return value

    @property
    def formatted_address(self) -> str:
        return f"{self.address[:8]}...{self.address[-6:]}"


class Credentials(BaseModel):
    email: str
    password: str = Field(repr=False)


class AuthResult(BaseModel):
    identity: Identity
    claim: Claim
    proof: Proof
    session: Session


class GatewayError(BaseModel):
    status_code: int | None = None
    message: str


class GatewayResult(BaseModel):
    data: Any = None
    error: GatewayError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ServiceResult(BaseModel):
    success: bool
    message: str
    data: Any = None
    error: str | None = None
