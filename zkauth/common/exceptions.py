"""
Custom exceptions for the authentication system.

``AuthError`` and its subclasses form the taxonomy callers see. The remaining
exceptions are raised by individual components and re-mapped by the
orchestrator before they cross its boundary.
"""

from __future__ import annotations

from enum import Enum


class ErrorType(str, Enum):
    WALLET_NOT_CONNECTED = "wallet_not_connected"
    WRONG_NETWORK = "wrong_network"
    ZKP_GENERATION_FAILED = "zkp_generation_failed"
    ZKP_VERIFICATION_FAILED = "zkp_verification_failed"
    USER_NOT_REGISTERED = "user_not_registered"
    INVALID_CREDENTIALS = "invalid_credentials"
    ISSUER_SERVICE_UNAVAILABLE = "issuer_service_unavailable"
    GENERIC_ERROR = "generic_error"


ERROR_MESSAGES: dict[ErrorType, str] = {
    ErrorType.WALLET_NOT_CONNECTED: "Please connect your wallet to continue.",
    ErrorType.WRONG_NETWORK: "Please switch to the required network to continue.",
    ErrorType.ZKP_GENERATION_FAILED: "Could not generate the zero-knowledge proof. Try again.",
    ErrorType.ZKP_VERIFICATION_FAILED: "Could not verify the zero-knowledge proof. Check your credentials.",
    ErrorType.USER_NOT_REGISTERED: "User not registered. Please register first.",
    ErrorType.INVALID_CREDENTIALS: "Invalid credentials. Check your email and password.",
    ErrorType.ISSUER_SERVICE_UNAVAILABLE: "Issuer service unavailable. Check the issuer configuration.",
    ErrorType.GENERIC_ERROR: "An unexpected error occurred. Try again.",
}


class AuthError(Exception):
    """Base class for errors surfaced by the orchestrator."""

    error_type: ErrorType = ErrorType.GENERIC_ERROR

    def __init__(self, message: str | None = None) -> None:
        self.message = message or ERROR_MESSAGES[self.error_type]
        super().__init__(self.message)


class WalletNotConnected(AuthError):
    error_type = ErrorType.WALLET_NOT_CONNECTED


class WrongNetwork(AuthError):
    error_type = ErrorType.WRONG_NETWORK


class ZKPGenerationFailed(AuthError):
    error_type = ErrorType.ZKP_GENERATION_FAILED


class ZKPVerificationFailed(AuthError):
    error_type = ErrorType.ZKP_VERIFICATION_FAILED


class UserNotRegistered(AuthError):
    error_type = ErrorType.USER_NOT_REGISTERED


class InvalidCredentials(AuthError):
    error_type = ErrorType.INVALID_CREDENTIALS


class IssuerServiceUnavailable(AuthError):
    error_type = ErrorType.ISSUER_SERVICE_UNAVAILABLE


class GenericError(AuthError):
    error_type = ErrorType.GENERIC_ERROR


class AuthenticationCancelled(GenericError):
    """Attempt cancelled by the caller while in flight."""

    def __init__(self, message: str = "Authentication was cancelled.") -> None:
        super().__init__(message)


# Component-level errors


class UnsupportedMethod(ValueError):
    """Identity derivation requested for an unknown method."""


class IssuanceFailed(Exception):
    """Claim could not be issued."""

    def __init__(self, message: str, *, upstream: bool = False) -> None:
        super().__init__(message)
        self.upstream = upstream


class ProofGenerationFailed(Exception):
    """Proof could not be generated."""


class InvalidTransition(Exception):
    """State machine transition not allowed from the current state."""


class AuthenticationInProgress(Exception):
    """Subject already has an in-flight authentication attempt."""


class RegistrationError(Exception):
    """Registration data rejected."""
