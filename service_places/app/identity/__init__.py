"""
Caller identification for the gateway.
"""

from .client_identifier import ClientIdentifier, UNKNOWN_CALLER

__all__ = ["ClientIdentifier", "UNKNOWN_CALLER"]
