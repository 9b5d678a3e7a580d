# backend/personalhub/core/keys.py
import base64
import logging
import threading
from typing import Optional

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from personalhub.config import settings

logger = logging.getLogger(__name__)


def _int_to_base64(n: int) -> str:
    length = (n.bit_length() + 7) // 8
    return base64.urlsafe_b64encode(n.to_bytes(length, "big")).rstrip(b"=").decode()


class SigningKeyManager:
    """
    Holds the RSA key pair used for RS256 tokens and publishes it as a JWKS.
    The key is loaded from OIDC_PRIVATE_KEY_PEM when configured, otherwise
    generated on first use (tokens do not survive a restart in that case).
    """

    def __init__(self, key_id: str, private_key_pem: Optional[str] = None):
        self.key_id = key_id
        self._private_key_pem = private_key_pem
        self._private_key: Optional[rsa.RSAPrivateKey] = None
        self._lock = threading.Lock()

    @property
    def private_key(self) -> rsa.RSAPrivateKey:
        if self._private_key is None:
            with self._lock:
                if self._private_key is None:
                    self._private_key = self._load_or_generate()
        return self._private_key

    @property
    def public_key(self) -> rsa.RSAPublicKey:
        return self.private_key.public_key()

    def _load_or_generate(self) -> rsa.RSAPrivateKey:
        if self._private_key_pem:
            logger.info("OIDC_KEY_LOADED kid=%s", self.key_id)
            return serialization.load_pem_private_key(
                self._private_key_pem.encode("utf-8"), password=None
            )
        logger.warning("OIDC_KEY_GENERATED kid=%s (set OIDC_PRIVATE_KEY_PEM to persist)", self.key_id)
        return rsa.generate_private_key(public_exponent=65537, key_size=2048)

    def get_jwks(self) -> dict:
        numbers = self.public_key.public_numbers()
        return {
            "keys": [{
                "kty": "RSA",
                "use": "sig",
                "alg": "RS256",
                "kid": self.key_id,
                "n": _int_to_base64(numbers.n),
                "e": _int_to_base64(numbers.e),
            }]
        }

    def sign(self, payload: dict) -> str:
        return jwt.encode(
            payload,
            self.private_key,
            algorithm="RS256",
            headers={"kid": self.key_id, "typ": "JWT"},
        )

    def verify(self, token: str, audience: Optional[str] = None) -> dict:
        """Verify signature, expiry and issuer. Raises ``jwt.InvalidTokenError``."""
        options = {"verify_aud": audience is not None}
        return jwt.decode(
            token,
            self.public_key,
            algorithms=["RS256"],
            issuer=settings.OIDC_ISSUER,
            audience=audience,
            options=options,
        )


# Singleton used across the app
signing_keys = SigningKeyManager(settings.OIDC_KEY_ID, settings.OIDC_PRIVATE_KEY_PEM)
