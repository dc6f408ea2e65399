"""Twilio webhook request signature validation.

Twilio signs each webhook with HMAC-SHA1 over the full request URL followed
by every POST parameter (sorted by name, name immediately followed by value),
keyed with the account auth token, and sends the base64 digest in the
``X-Twilio-Signature`` header.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
from collections.abc import Mapping

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-twilio-signature"


def compute_signature(url: str, params: Mapping[str, str], auth_token: str) -> str:
    """Return the base64 signature Twilio would send for this request."""
    payload = url + "".join(f"{key}{params[key]}" for key in sorted(params))
    digest = hmac.new(auth_token.encode(), payload.encode(), hashlib.sha1).digest()
    return base64.b64encode(digest).decode()


def validate(
    signature: str | None,
    url: str,
    params: Mapping[str, str],
    auth_token: str,
) -> bool:
    """Return True only if ``signature`` matches the request.

    Never raises: any malformed input is reported as an invalid signature.
    """
    if not signature or not auth_token or not url:
        return False
    try:
        expected = compute_signature(url, params, auth_token)
        return hmac.compare_digest(signature.encode(), expected.encode())
    except (TypeError, AttributeError, KeyError, UnicodeError) as exc:
        logger.warning("Could not compute webhook signature: %s", exc)
        return False
