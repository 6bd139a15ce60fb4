import hashlib
import hmac


class Signer:
    """HMAC-SHA256 over an encoded payload string, hex digest."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("A signing secret is required")
        self._key = secret.encode()

    def sign(self, payload: str) -> str:
        return hmac.new(self._key, payload.encode(), hashlib.sha256).hexdigest()

    def verify(self, payload: str, candidate: str) -> bool:
        if not candidate:
            return False
        return hmac.compare_digest(self.sign(payload).encode(), candidate.encode())
