"""Signing helpers for calls from the git hook."""

from __future__ import annotations

import hashlib
import hmac

SIGNATURE_HEADER = "X-Pushfeed-Signature"


def sign_body(secret: str, body: bytes) -> str:
    """Value of the signature header for ``body``."""
    mac = hmac.new(secret.encode(), msg=body, digestmod=hashlib.sha256).hexdigest()
    return f"sha256={mac}"


def verify_signature(secret: str, body: bytes, signature_header: str | None) -> bool:
    """
    Verify the HMAC SHA-256 signature sent by the git hook.

    Returns
    -------
    bool
        True if valid, False otherwise.
    """
    if not signature_header or not signature_header.startswith("sha256="):
        return False
    return hmac.compare_digest(sign_body(secret, body), signature_header)
