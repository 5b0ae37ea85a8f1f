"""
Application layer: authentication state machine and session records.

Each subject DID moves through

    disconnected -> connecting -> generating_proof -> verifying_proof -> authenticated

and any state may drop into ``error``. Only entry into ``authenticated``
produces a Session, persisted through the injected store under the subject's
DID (last commit wins).
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import TYPE_CHECKING, Callable

from zkauth.common.exceptions import (
    AuthenticationInProgress,
    InvalidTransition,
)
from zkauth.common.models import AuthMethod, AuthState, Session
from zkauth.domain.entities import AuthAttempt

if TYPE_CHECKING:
    from uuid import UUID

    from zkauth.common.config import Config
    from zkauth.common.exceptions import AuthError
    from zkauth.common.interfaces import SessionStore
    from zkauth.infrastructure.issuer_gateway import IssuerGateway

logger = logging.getLogger(__name__)

TRANSITIONS: dict[AuthState, frozenset[AuthState]] = {
    AuthState.DISCONNECTED: frozenset({AuthState.CONNECTING}),
    AuthState.CONNECTING: frozenset({AuthState.GENERATING_PROOF}),
    AuthState.GENERATING_PROOF: frozenset({AuthState.VERIFYING_PROOF}),
    AuthState.VERIFYING_PROOF: frozenset({AuthState.AUTHENTICATED}),
    AuthState.AUTHENTICATED: frozenset({AuthState.DISCONNECTED}),
    AuthState.ERROR: frozenset({AuthState.DISCONNECTED}),
}


class SessionManager:
    """Tracks authentication attempts and the sessions they produce."""

    def __init__(
        self,
        config: Config,
        store: SessionStore,
        gateway: IssuerGateway | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.store = store
        self.gateway = gateway
        self.clock = clock
        self._attempts: dict[str, AuthAttempt] = {}

    def get_attempt(self, subject: str) -> AuthAttempt | None:
        return self._attempts.get(subject)

    def get_state(self, subject: str) -> AuthState:
        attempt = self._attempts.get(subject)
        return attempt.state if attempt else AuthState.DISCONNECTED

    def start(self, subject: str) -> AuthAttempt:
        """Begin an attempt; refused while another one is in flight."""
        attempt = self._attempts.get(subject)
        if attempt is not None and attempt.in_flight:
            msg = f"authentication already in progress for {subject} ({attempt.state.value})"
            raise AuthenticationInProgress(msg)
        if attempt is not None and attempt.state is not AuthState.DISCONNECTED:
            self.reset(subject)

        attempt = self._attempts.setdefault(subject, AuthAttempt(subject=subject))
        self._move(attempt, AuthState.CONNECTING)
        return attempt

    def advance(self, subject: str, state: AuthState) -> AuthAttempt:
        """Move an in-flight attempt to its next working state."""
        if state not in (AuthState.GENERATING_PROOF, AuthState.VERIFYING_PROOF):
            msg = f"advance cannot enter {state.value}"
            raise InvalidTransition(msg)
        attempt = self._require(subject)
        self._move(attempt, state)
        return attempt

    def fail(self, subject: str, cause: AuthError) -> AuthAttempt:
        """Record a failure; allowed from every state."""
        attempt = self._attempts.setdefault(subject, AuthAttempt(subject=subject))
        attempt.move_to(AuthState.ERROR)
        attempt.error = cause
        logger.warning("Authentication failed for %s: %s", subject, cause.message)
        return attempt

    async def commit(self, subject: str, method: AuthMethod, claim_ref: UUID) -> Session:
        """Enter ``authenticated`` and persist the session for ``subject``."""
        attempt = self._require(subject)
        if AuthState.AUTHENTICATED not in TRANSITIONS[attempt.state]:
            msg = f"cannot commit from {attempt.state.value}"
            raise InvalidTransition(msg)

        now = int(self.clock())
        session = Session(
            id=str(uuid.uuid4()),
            method=method,
            subject_ref=subject,
            claim_ref=claim_ref,
            authenticated_at=now,
            expires_at=now + self.config.SESSION_TTL,
        )
        self.store.set(subject, session)
        self._move(attempt, AuthState.AUTHENTICATED)
        logger.info("Session %s created for %s", session.id, subject)

        if self.gateway is not None and self.config.remote_issuer:
            try:
                await self._publish_state()
            except asyncio.CancelledError:
                self._discard(subject, session)
                raise
        return session

    def reset(self, subject: str) -> None:
        """Return a settled attempt to ``disconnected``; storage is untouched."""
        attempt = self._attempts.get(subject)
        if attempt is None or attempt.state is AuthState.DISCONNECTED:
            return
        if attempt.in_flight:
            msg = f"cannot reset {subject} while {attempt.state.value}"
            raise InvalidTransition(msg)
        self._move(attempt, AuthState.DISCONNECTED)
        attempt.error = None

    def logout(self, subject: str) -> None:
        """Delete the subject's session and forget its attempt record."""
        self.reset(subject)
        self._attempts.pop(subject, None)
        self.store.delete(subject)
        logger.info("Logged out %s", subject)

    def get_session(self, subject: str) -> Session | None:
        """Live session for ``subject``; an expired record is discarded."""
        session = self.store.get(subject)
        if session is None:
            return None
        if session.is_expired(int(self.clock())):
            logger.info("Discarding expired session %s for %s", session.id, subject)
            self.store.delete(subject)
            return None
        return session

    def restore(self, subject: str) -> Session | None:
        """Reload a persisted session after a restart."""
        session = self.get_session(subject)
        if session is None:
            return None
        attempt = self._attempts.setdefault(subject, AuthAttempt(subject=subject))
        if not attempt.in_flight:
            attempt.move_to(AuthState.AUTHENTICATED)
            attempt.error = None
        logger.info("Restored session %s for %s", session.id, subject)
        return session

    def _require(self, subject: str) -> AuthAttempt:
        attempt = self._attempts.get(subject)
        if attempt is None:
            msg = f"no authentication attempt for {subject}"
            raise InvalidTransition(msg)
        return attempt

    def _discard(self, subject: str, session: Session) -> None:
        stored = self.store.get(subject)
        if stored is not None and stored.id == session.id:
            self.store.delete(subject)
        logger.info("Session %s for %s withdrawn after cancellation", session.id, subject)

    @staticmethod
    def _move(attempt: AuthAttempt, state: AuthState) -> None:
        if state not in TRANSITIONS[attempt.state]:
            msg = f"{attempt.state.value} -> {state.value} is not allowed"
            raise InvalidTransition(msg)
        attempt.move_to(state)

    async def _publish_state(self) -> None:
        assert self.gateway is not None
        result = await self.gateway.publish_state(self.config.ISSUER_DID)
        if not result.ok:
            assert result.error is not None
            logger.warning("State publication skipped: %s", result.error.message)
