"""Webhook signature verification.

The processor signs each webhook with ``hex(HMAC-SHA256(secret, raw_body))``
and sends the digest in the ``X-Razorpay-Signature`` header. The digest must be
computed over the exact bytes received: parsing and re-serializing the JSON
changes key order, whitespace and number formatting and breaks the match.
"""

import hashlib
import hmac
from enum import Enum

SIGNATURE_HEADER = "X-Razorpay-Signature"


class SignatureCheck(Enum):
    VALID = "valid"
    INVALID = "invalid"


def compute_signature(raw_body: bytes, secret: str) -> str:
    """Return the lowercase hex HMAC-SHA256 digest of ``raw_body``."""
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_signature(raw_body, secret, signature) -> SignatureCheck:
    """Check ``signature`` against the digest of ``raw_body`` in constant time.

    Malformed input of any kind (missing header, non-bytes body, empty secret,
    non-ASCII header) is INVALID rather than an error.
    """
    if not isinstance(raw_body, (bytes, bytearray)):
        return SignatureCheck.INVALID
    if not isinstance(secret, str) or not secret:
        return SignatureCheck.INVALID
    if not isinstance(signature, str) or not signature:
        return SignatureCheck.INVALID

    expected = compute_signature(bytes(raw_body), secret).encode("ascii")
    provided = signature.encode("utf-8", errors="replace")
    if hmac.compare_digest(expected, provided):
        return SignatureCheck.VALID
    return SignatureCheck.INVALID


class SignatureVerifier:
    """Verifier bound to the webhook secret from settings."""

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("Webhook secret must not be empty")
        self._secret = secret

    def verify(self, raw_body: bytes, signature: str | None) -> SignatureCheck:
        return verify_signature(raw_body, self._secret, signature)

    def sign(self, raw_body: bytes) -> str:
        return compute_signature(raw_body, self._secret)
