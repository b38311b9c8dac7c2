"""Tests for lead_gateway/security — client key extraction and honeypot filter."""

from types import SimpleNamespace

from lead_gateway.security.client_ip import UNKNOWN_CLIENT, client_key
from lead_gateway.security.honeypot import is_bot_submission


def _request(host: str | None = None, headers: dict | None = None):
    client = SimpleNamespace(host=host) if host is not None else None
    return SimpleNamespace(client=client, headers=headers or {})


class TestClientKey:

    def test_prefers_peer_address(self):
        req = _request("10.0.0.5", {"x-forwarded-for": "203.0.113.9"})
        assert client_key(req) == "10.0.0.5"

    def test_falls_back_to_forwarded_for(self):
        req = _request(None, {"x-forwarded-for": "203.0.113.9, 10.0.0.1"})
        assert client_key(req) == "203.0.113.9"

    def test_empty_peer_host_uses_header(self):
        req = _request("", {"x-forwarded-for": "203.0.113.9"})
        assert client_key(req) == "203.0.113.9"

    def test_unknown_sentinel(self):
        assert client_key(_request()) == UNKNOWN_CLIENT
        assert client_key(_request(None, {"x-forwarded-for": " "})) == UNKNOWN_CLIENT


class TestHoneypot:

    def test_clean_payload(self):
        assert is_bot_submission({"first_name": "Jan", "website": "", "honeypot": None}) is False

    def test_website_filled(self):
        assert is_bot_submission({"website": "http://spam.example"}) is True

    def test_honeypot_filled(self):
        assert is_bot_submission({"honeypot": "x"}) is True
