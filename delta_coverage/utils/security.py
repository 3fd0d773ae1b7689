"""Request signature helpers."""

from __future__ import annotations

import hashlib
import hmac


def build_signature(secret: str, payload: bytes) -> str:
    """Return the GitHub-style HMAC signature for the given payload."""

    digest = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def verify_signature(secret: str, payload: bytes, raw_signature: str | None) -> bool:
    """Verify an ``X-Hub-Signature-256`` style signature using a constant-time comparison."""

    if not raw_signature:
        return False

    expected_signature = build_signature(secret, payload)
    return hmac.compare_digest(expected_signature, raw_signature)
