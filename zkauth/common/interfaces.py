"""
Interfaces and protocols for dependency injection.
"""

from __future__ import annotations

from typing import Any, Protocol

from zkauth.common.models import ProofPoints, RegisteredUser, Session


class SessionStore(Protocol):
    """Key-value storage for sessions, keyed by subject DID."""

    def get(self, key: str) -> Session | None: ...

    def set(self, key: str, value: Session) -> None: ...

    def delete(self, key: str) -> None: ...


class UserStore(Protocol):
    """Key-value storage for registered users, keyed by lowercase email."""

    def get(self, key: str) -> RegisteredUser | None: ...

    def set(self, key: str, value: RegisteredUser) -> None: ...

    def delete(self, key: str) -> None: ...


class Prover(Protocol):
    """Backend that turns a witness into proof points."""

    async def compute(self, witness: dict[str, Any]) -> ProofPoints: ...
