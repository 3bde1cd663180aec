"""
protocol.py — Transport Protocols and Connection Roles
========================================================
"""

from enum import Enum
from typing import Protocol, runtime_checkable


class SecurityProtocol(Enum):
    """Listener security protocols understood by the node."""

    PLAINTEXT = "PLAINTEXT"
    SSL = "SSL"
    SASL_PLAINTEXT = "SASL_PLAINTEXT"
    SASL_SSL = "SASL_SSL"


class ConnectionMode(Enum):
    """Side of a TLS connection the generated material is used for."""

    CLIENT = "CLIENT"
    SERVER = "SERVER"


@runtime_checkable
class ConnectionStringProvider(Protocol):
    """Anything that can hand out a coordination-service connection string."""

    def connection_string(self) -> str:
        ...
