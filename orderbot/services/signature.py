import hashlib
import hmac
from typing import Optional

SIGNATURE_PREFIX = "sha256="


def compute_signature(raw_body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, signature_header: Optional[str], secret: Optional[str]) -> bool:
    """Check the provider HMAC over the exact request bytes.

    Missing secret, missing header and mismatches all return False.
    """
    if not secret or not signature_header:
        return False

    provided = signature_header.strip()
    if provided.startswith(SIGNATURE_PREFIX):
        provided = provided[len(SIGNATURE_PREFIX) :]
    if not provided:
        return False

    expected = compute_signature(raw_body, secret)
    return hmac.compare_digest(expected, provided.lower())
