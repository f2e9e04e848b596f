"""
Shopify Webhook Authentication

Shopify signs each webhook with base64(HMAC-SHA256(secret, raw body)) in the
X-Shopify-Hmac-Sha256 header. The digest must be computed over the exact
transport bytes, never over a re-serialized JSON object.
"""

import base64
import hashlib
import hmac
import logging
from typing import Optional, Union

logger = logging.getLogger(__name__)

HMAC_HEADER = "X-Shopify-Hmac-Sha256"
SHOP_DOMAIN_HEADER = "X-Shopify-Shop-Domain"


class WebhookAuthenticator:
    """Verifies Shopify webhook signatures with a shared secret"""

    def __init__(self, secret: Optional[str]):
        self._secret = secret.encode("utf-8") if secret else None

    def compute_signature(self, raw_body: bytes) -> str:
        digest = hmac.new(self._secret, raw_body, hashlib.sha256).digest()
        return base64.b64encode(digest).decode("ascii")

    def verify(self, raw_body: Union[bytes, bytearray, None], signature: Optional[str]) -> bool:
        """
        Check a webhook signature in constant time.

        Never raises: a missing secret or header, a non-bytes body or an
        undecodable signature all count as a failed verification.
        """
        try:
            if not self._secret:
                logger.error("Webhook secret not configured, rejecting webhook")
                return False
            if not signature:
                return False
            computed = self.compute_signature(bytes(raw_body))
            return hmac.compare_digest(computed.encode("ascii"), signature.strip().encode("ascii"))
        except Exception as e:
            logger.warning(f"Webhook signature verification error: {e}")
            return False
