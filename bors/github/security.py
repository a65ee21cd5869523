"""Webhook authentication (HMAC SHA-256 over the raw request body)."""

import hashlib
import hmac
from typing import Optional

SIGNATURE_PREFIX = "sha256="


def compute_signature(body: bytes, secret: str) -> str:
    """Return the X-Hub-Signature-256 value GitHub sends for `body`."""
    digest = hmac.new(secret.encode("utf-8"), msg=body, digestmod=hashlib.sha256)
    return SIGNATURE_PREFIX + digest.hexdigest()


def verify_signature(body: bytes, secret: str, signature: Optional[str]) -> bool:
    """
    Check a delivery's X-Hub-Signature-256 header against the webhook secret.

    A missing or malformed header never verifies.
    """
    if not signature or not signature.startswith(SIGNATURE_PREFIX):
        return False
    return hmac.compare_digest(compute_signature(body, secret), signature)
