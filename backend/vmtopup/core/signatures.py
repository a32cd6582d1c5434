"""
Request signing for the provider and verification hooks for its callbacks.

Outbound: the provider recomputes md5(username + api_key + ref_id) on its side,
so the three inputs must reach it byte-for-byte as signed.

Inbound: callbacks are unauthenticated by default. A verifier can be plugged
into the reconciler; HmacSignatureVerifier checks an HMAC-SHA256 header over
the raw request body.
"""
from __future__ import annotations

import hashlib
import hmac
from typing import Mapping, Protocol


def make_sign(username: str, api_key: str, ref_id: str) -> str:
    """Lowercase hex MD5 of the plain concatenation username + api_key + ref_id."""
    return hashlib.md5(f"{username}{api_key}{ref_id}".encode("utf-8")).hexdigest()


class CallbackVerifier(Protocol):
    def verify(self, body: bytes, headers: Mapping[str, str]) -> bool:
        ...


class HmacSignatureVerifier:
    def __init__(self, secret: str, header_name: str = "X-Callback-Signature"):
        self.secret = (secret or "").strip()
        self.header_name = header_name

    def expected_signature(self, body: bytes) -> str:
        return hmac.new(self.secret.encode("utf-8"), body, hashlib.sha256).hexdigest()

    def verify(self, body: bytes, headers: Mapping[str, str]) -> bool:
        received = _header(headers, self.header_name).strip().lower()
        if not self.secret or not received:
            return False
        return hmac.compare_digest(self.expected_signature(body), received)


def _header(headers: Mapping[str, str], name: str) -> str:
    value = headers.get(name)
    if value is None:
        # plain dicts are case-sensitive, starlette Headers are not
        lowered = name.lower()
        for key, candidate in headers.items():
            if key.lower() == lowered:
                return candidate or ""
        return ""
    return value or ""
