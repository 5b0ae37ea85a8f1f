"""
Application layer: wallet and credential authentication flows.

Both flows share one pipeline:

    derive -> issue -> build verification request -> generate -> verify -> commit

Component errors are caught here and re-raised as ``AuthError`` subclasses.
A failed or cancelled attempt never leaves a session behind.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import TYPE_CHECKING, Any, Callable

from zkauth.common.crypto import CryptoUtils
from zkauth.common.exceptions import (
    AuthenticationCancelled,
    AuthenticationInProgress,
    AuthError,
    GenericError,
    InvalidCredentials,
    InvalidTransition,
    IssuanceFailed,
    IssuerServiceUnavailable,
    ProofGenerationFailed,
    RegistrationError,
    UnsupportedMethod,
    UserNotRegistered,
    WalletNotConnected,
    WrongNetwork,
    ZKPGenerationFailed,
    ZKPVerificationFailed,
)
from zkauth.common.models import (
    AuthMethod,
    AuthResult,
    AuthState,
    ClaimType,
    RegisteredUser,
    UserName,
    VerificationRequest,
    WalletOwner,
)
from zkauth.domain.claim_issuer import ClaimIssuer
from zkauth.domain.identity_deriver import IdentityDeriver
from zkauth.domain.proof_engine import ProofEngine

from .session_manager import SessionManager

if TYPE_CHECKING:
    from pydantic import BaseModel

    from zkauth.common.config import Config
    from zkauth.common.interfaces import Prover, SessionStore, UserStore
    from zkauth.common.models import Claim, Credentials, Identity, Session, WalletInfo
    from zkauth.domain.proof_engine import ProgressCallback
    from zkauth.infrastructure.issuer_gateway import IssuerGateway

logger = logging.getLogger(__name__)


class AuthOrchestrator:
    """Entry point for authenticating end users."""

    def __init__(  # noqa: PLR0913
        self,
        config: Config,
        identity_deriver: IdentityDeriver,
        claim_issuer: ClaimIssuer,
        proof_engine: ProofEngine,
        session_manager: SessionManager,
        user_store: UserStore,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.identity_deriver = identity_deriver
        self.claim_issuer = claim_issuer
        self.proof_engine = proof_engine
        self.session_manager = session_manager
        self.user_store = user_store
        self.clock = clock

    @classmethod
    def build(
        cls,
        config: Config,
        session_store: SessionStore,
        user_store: UserStore,
        gateway: IssuerGateway | None = None,
        prover: Prover | None = None,
        clock: Callable[[], float] = time.time,
    ) -> AuthOrchestrator:
        """Wire the default components around the given stores."""
        return cls(
            config=config,
            identity_deriver=IdentityDeriver(config, clock=clock),
            claim_issuer=ClaimIssuer(config, gateway=gateway, clock=clock),
            proof_engine=ProofEngine(config, prover=prover, clock=clock),
            session_manager=SessionManager(
                config, session_store, gateway=gateway, clock=clock
            ),
            user_store=user_store,
            clock=clock,
        )

    async def wallet_flow(
        self, wallet_info: WalletInfo, on_progress: ProgressCallback | None = None
    ) -> AuthResult:
        """Authenticate the holder of a connected wallet."""
        if not wallet_info.connected:
            raise WalletNotConnected
        required = self.config.REQUIRED_CHAIN_ID
        if wallet_info.chain_id != required:
            msg = (
                f"Wallet is on {self.config.network_name(wallet_info.chain_id)}; "
                f"please switch to {self.config.network_name(required)}."
            )
            raise WrongNetwork(msg)

        identity = self._derive(AuthMethod.WALLET, {"wallet_address": wallet_info.address})
        logger.info("Wallet login for %s as %s", wallet_info.formatted_address, identity.did)
        return await self._authenticate(
            identity,
            query={
                "type": "wallet_ownership",
                "credentialSubject": {"walletAddress": wallet_info.address},
            },
            issue=(
                ClaimType.WALLET_OWNER,
                WalletOwner(address=wallet_info.address, network=wallet_info.chain_id),
            ),
            on_progress=on_progress,
        )

    async def credential_flow(
        self, credentials: Credentials, on_progress: ProgressCallback | None = None
    ) -> AuthResult:
        """Authenticate a registered user by email and password.

        Unknown emails and wrong passwords are rejected before any proof
        work starts, as is a stored claim whose binding digest no longer
        matches its data.
        """
        user = self.user_store.get(credentials.email.lower())
        if user is None:
            raise UserNotRegistered
        if not CryptoUtils.digests_match(
            self.password_hash(credentials.password), user.password_hash
        ):
            raise InvalidCredentials
        if not self.claim_issuer.verify_integrity(user.claim):
            logger.error("Stored claim for %s failed its integrity check", user.identity.did)
            raise ZKPVerificationFailed

        logger.info("Credential login for %s", user.identity.did)
        return await self._authenticate(
            user.identity,
            query={
                "type": "user_identity",
                "credentialSubject": {"name": user.name, "email": user.email},
            },
            claim=user.claim,
            on_progress=on_progress,
        )

    async def register(self, name: str, email: str, password: str) -> RegisteredUser:
        """Register an email/password user and issue their name claim."""
        try:
            self._validate_registration(name, email, password)
            if self.user_store.get(email.lower()) is not None:
                msg = "User already registered."
                raise RegistrationError(msg)
            identity = self.identity_deriver.derive(
                AuthMethod.CREDENTIAL, {"email": email, "password": password}
            )
            claim = await self.claim_issuer.issue(
                identity, ClaimType.USER_NAME, UserName(name=name, email=email)
            )
        except (RegistrationError, IssuanceFailed) as err:
            raise self._map_error(err) from err

        user = RegisteredUser(
            id=CryptoUtils.sha256_hex(email.lower()),
            name=name,
            email=email,
            password_hash=self.password_hash(password),
            identity=identity,
            claim=claim,
            registered_at=int(self.clock()),
        )
        self.user_store.set(email.lower(), user)
        logger.info("Registered user %s as %s", user.id, identity.did)
        return user

    def logout(self, subject: str) -> None:
        """End the subject's session; refused while an attempt is in flight."""
        try:
            self.session_manager.logout(subject)
        except InvalidTransition as err:
            raise self._map_error(err) from err

    def restore_session(self, subject: str) -> Session | None:
        return self.session_manager.restore(subject)

    def get_auth_state(self, subject: str) -> dict[str, Any]:
        attempt = self.session_manager.get_attempt(subject)
        state = self.session_manager.get_state(subject)
        session = self.session_manager.get_session(subject)
        return {
            "subject": subject,
            "auth_state": state,
            "is_authenticated": state is AuthState.AUTHENTICATED and session is not None,
            "session": session,
            "error": attempt.error if attempt else None,
        }

    def build_verification_request(self, query: dict[str, Any]) -> VerificationRequest:
        return VerificationRequest(
            id=uuid.uuid4(),
            circuit_id=self.config.CIRCUIT_ID,
            allowed_issuers=[self.config.ISSUER_DID],
            query=query,
            created_at=int(self.clock()),
        )

    @staticmethod
    def password_hash(password: str) -> str:
        return CryptoUtils.sha256_hex(password)

    async def _authenticate(
        self,
        identity: Identity,
        query: dict[str, Any],
        issue: tuple[ClaimType, BaseModel] | None = None,
        claim: Claim | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> AuthResult:
        subject = identity.did
        try:
            self.session_manager.start(subject)
        except AuthenticationInProgress as err:
            raise GenericError(str(err)) from err

        try:
            if claim is None:
                assert issue is not None
                claim = await self.claim_issuer.issue(identity, *issue)
            self.session_manager.advance(subject, AuthState.GENERATING_PROOF)

            request = self.build_verification_request(query)
            proof = await asyncio.wait_for(
                self.proof_engine.generate(identity, claim, request, on_progress),
                timeout=self.config.ZKP_GENERATION_TIMEOUT,
            )
            self.session_manager.advance(subject, AuthState.VERIFYING_PROOF)

            if not self.proof_engine.verify(proof, expected_claim=claim):
                raise ZKPVerificationFailed
            session = await self.session_manager.commit(subject, identity.method, claim.id)
        except asyncio.CancelledError:
            self.session_manager.fail(subject, AuthenticationCancelled())
            raise
        except AuthError as err:
            self.session_manager.fail(subject, err)
            raise
        except Exception as err:
            error = self._map_error(err)
            self.session_manager.fail(subject, error)
            raise error from err

        logger.info("Authenticated %s (session %s)", subject, session.id)
        return AuthResult(identity=identity, claim=claim, proof=proof, session=session)

    def _derive(self, method: AuthMethod, payload: dict[str, Any]) -> Identity:
        try:
            return self.identity_deriver.derive(method, payload)
        except (UnsupportedMethod, KeyError) as err:
            raise self._map_error(err) from err

    def _validate_registration(self, name: str, email: str, password: str) -> None:
        if not name or len(name) < self.config.MIN_NAME_LENGTH:
            msg = f"Name must be at least {self.config.MIN_NAME_LENGTH} characters."
            raise RegistrationError(msg)
        if not email or "@" not in email:
            msg = "Invalid email."
            raise RegistrationError(msg)
        if not password or len(password) < self.config.MIN_PASSWORD_LENGTH:
            msg = f"Password must be at least {self.config.MIN_PASSWORD_LENGTH} characters."
            raise RegistrationError(msg)

    @staticmethod
    def _map_error(err: Exception) -> AuthError:
        if isinstance(err, AuthError):
            return err
        logger.error("Authentication stage failed: %s", err)
        if isinstance(err, RegistrationError):
            return GenericError(str(err))
        if isinstance(err, IssuanceFailed):
            return IssuerServiceUnavailable() if err.upstream else ZKPGenerationFailed()
        if isinstance(err, (ProofGenerationFailed, asyncio.TimeoutError)):
            return ZKPGenerationFailed()
        if isinstance(err, (UnsupportedMethod, InvalidTransition)):
            return GenericError(str(err))
        return GenericError()
