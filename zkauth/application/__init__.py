"""
Application services: authentication flows, sessions and the issuer front end.
"""

from zkauth.application.issuer_service import IssuerService
from zkauth.application.orchestrator import AuthOrchestrator
from zkauth.application.runner import PeriodicTask
from zkauth.application.session_manager import SessionManager

__all__ = ["AuthOrchestrator", "IssuerService", "PeriodicTask", "SessionManager"]
