"""Domain layer: authentication attempt state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from zkauth.common.models import AuthState

if TYPE_CHECKING:
    from zkauth.common.exceptions import AuthError

IN_FLIGHT_STATES = frozenset(
    {AuthState.CONNECTING, AuthState.GENERATING_PROOF, AuthState.VERIFYING_PROOF}
)

MAX_HISTORY = 16


@dataclass
class AuthAttempt:
    """Domain entity tracking one subject's position in the state machine.

    ``history`` keeps the most recent ``MAX_HISTORY`` states left behind.
    """

    subject: str
    state: AuthState = AuthState.DISCONNECTED
    error: AuthError | None = None
    history: list[AuthState] = field(default_factory=list)

    @property
    def in_flight(self) -> bool:
        return self.state in IN_FLIGHT_STATES

    def move_to(self, state: AuthState) -> None:
        self.history.append(self.state)
        del self.history[:-MAX_HISTORY]
        self.state = state
