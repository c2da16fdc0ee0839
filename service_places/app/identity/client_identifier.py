"""
Best-effort caller identity from request metadata.

Header values are taken at face value. The resulting key is good enough to
attribute spend and throttle casual abuse, not to authenticate anyone.
"""

from typing import Mapping, Optional

UNKNOWN_CALLER = "unknown"


class ClientIdentifier:
    """Derive a stable caller key from proxy headers or the peer address."""

    def __init__(self, forwarded_header: str = "X-Forwarded-For", real_ip_header: str = "X-Real-IP"):
        self.forwarded_header = forwarded_header
        self.real_ip_header = real_ip_header

    def resolve(self, headers: Mapping[str, str], peer_address: Optional[str] = None) -> str:
        """Pick the first forwarded hop, then the real-ip header, then the peer."""
        forwarded_for = headers.get(self.forwarded_header)
        if isinstance(forwarded_for, str) and forwarded_for.strip():
            first_hop = forwarded_for.split(",")[0].strip()
            if first_hop:
                return first_hop

        real_ip = headers.get(self.real_ip_header)
        if isinstance(real_ip, str) and real_ip.strip():
            return real_ip.strip()

        if peer_address:
            return peer_address

        return UNKNOWN_CALLER
