"""Signature check shared by the handshake and encrypted envelopes.

The platform signs a set of strings by sorting them, concatenating them with
no separator and taking the SHA-1 hex digest. Sorting makes the signature
independent of the order the parameters arrive in.
"""

from __future__ import annotations

import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)


def make_signature(*parts: str) -> str:
    """Compute the lowercase hex SHA-1 signature over ``parts``."""
    joined = "".join(sorted(parts))
    return hashlib.sha1(joined.encode("utf-8")).hexdigest()


def validate_signature(signature: str, *parts: str) -> bool:
    """Check ``signature`` against the parts it should cover.

    Uses hmac.compare_digest for timing-attack-safe comparison.

    Args:
        signature: Signature supplied by the caller (query parameter).
        *parts: Token, timestamp, nonce and, for encrypted envelopes, the
            ciphertext. Order does not matter.

    Returns:
        True if the signature matches, False otherwise.
    """
    expected = make_signature(*parts)
    is_valid = hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))

    if not is_valid:
        logger.warning("Signature verification FAILED")
    else:
        logger.debug("Signature verified OK")

    return is_valid
