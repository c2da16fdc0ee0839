"""
Unit tests for caller identification.
"""

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_places.app.identity.client_identifier import ClientIdentifier, UNKNOWN_CALLER


class TestClientIdentifier:
    """Test cases for ClientIdentifier."""

    @pytest.fixture
    def identifier(self):
        return ClientIdentifier()

    def test_first_forwarded_hop_wins(self, identifier):
        """Test that the left-most X-Forwarded-For entry is used."""
        headers = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1, 10.0.0.2", "X-Real-IP": "198.51.100.9"}

        assert identifier.resolve(headers, "10.0.0.3") == "203.0.113.7"

    def test_real_ip_used_without_forwarded_for(self, identifier):
        """Test fallback to X-Real-IP."""
        headers = {"X-Real-IP": " 198.51.100.9 "}

        assert identifier.resolve(headers, "10.0.0.3") == "198.51.100.9"

    def test_blank_forwarded_for_is_ignored(self, identifier):
        """Test that an empty forwarded header falls through."""
        headers = {"X-Forwarded-For": " , ", "X-Real-IP": "198.51.100.9"}

        assert identifier.resolve(headers) == "198.51.100.9"

    def test_peer_address_fallback(self, identifier):
        """Test fallback to the socket peer."""
        assert identifier.resolve({}, "192.0.2.44") == "192.0.2.44"

    def test_unknown_when_nothing_available(self, identifier):
        """Test the sentinel key when no source is present."""
        assert identifier.resolve({}) == UNKNOWN_CALLER
        assert identifier.resolve({}, None) == "unknown"

    def test_custom_header_names(self):
        """Test that header names are configurable."""
        identifier = ClientIdentifier(forwarded_header="CF-Connecting-IP")
        headers = {"CF-Connecting-IP": "203.0.113.50", "X-Forwarded-For": "10.1.1.1"}

        assert identifier.resolve(headers) == "203.0.113.50"
