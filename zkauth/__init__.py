# Credential authentication orchestrator

from zkauth.application import AuthOrchestrator, IssuerService, SessionManager
from zkauth.common.config import Config
from zkauth.common.exceptions import AuthError, ErrorType

__all__ = [
    "AuthError",
    "AuthOrchestrator",
    "Config",
    "ErrorType",
    "IssuerService",
    "SessionManager",
]
