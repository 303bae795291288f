"""Gateway callback signatures.

The gateway signs ``<gateway_order_id>|<gateway_payment_id>`` with HMAC-SHA256
under the merchant's key secret and hands the lowercase hex digest to the
browser. The browser forwards it to us, so it is only trusted after we
recompute it, and it is compared exactly as received.
"""

import hashlib
import hmac


def compute_signature(secret: str, gateway_order_id: str, gateway_payment_id: str) -> str:
    payload = f"{gateway_order_id}|{gateway_payment_id}".encode()
    return hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()


def signature_matches(secret: str, gateway_order_id: str, gateway_payment_id: str, signature: str | None) -> bool:
    if not signature:
        return False
    expected = compute_signature(secret, gateway_order_id, gateway_payment_id)
    return hmac.compare_digest(expected.encode(), signature.encode())
