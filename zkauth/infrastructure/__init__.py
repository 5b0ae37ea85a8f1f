"""
Infrastructure: issuer service client and storage.
"""

from zkauth.infrastructure.issuer_gateway import IssuerGateway
from zkauth.infrastructure.persistence import (
    JsonFileSessionStore,
    JsonFileUserStore,
    MemorySessionStore,
    MemoryUserStore,
)

__all__ = [
    "IssuerGateway",
    "JsonFileSessionStore",
    "JsonFileUserStore",
    "MemorySessionStore",
    "MemoryUserStore",
]
