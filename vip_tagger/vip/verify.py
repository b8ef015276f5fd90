# vip/verify.py
import base64
import hashlib
import hmac
from typing import Optional, Union

from ..errors import SignatureError

HMAC_HEADER = "X-Shopify-Hmac-Sha256"


def compute_signature(raw_body: bytes, secret: str) -> str:
    """base64(HMAC-SHA256(secret, raw_body)), the format Shopify puts in X-Shopify-Hmac-Sha256."""
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_webhook_signature(raw_body: Union[bytes, str], signature: Optional[str], secret: str) -> None:
    """
    Raise SignatureError unless `signature` matches the raw (unparsed) body.
    An empty secret means verification is switched off.
    """
    if not secret:
        return
    if not signature:
        raise SignatureError(f"missing {HMAC_HEADER} header")
    if isinstance(raw_body, str):
        raw_body = raw_body.encode("utf-8")
    expected = compute_signature(raw_body, secret)
    if not hmac.compare_digest(expected.encode("utf-8"), signature.strip().encode("utf-8")):
        raise SignatureError("HMAC mismatch")
