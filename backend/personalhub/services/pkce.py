# backend/personalhub/services/pkce.py
"""Proof Key for Code Exchange (RFC 7636)."""
import base64
import hashlib
import re
import secrets
from typing import Optional

SUPPORTED_METHODS = ("plain", "S256")

# unreserved characters, 43 to 128 long
VERIFIER_PATTERN = re.compile(r"[A-Za-z0-9\-._~]{43,128}")


def is_valid_verifier(code_verifier: str) -> bool:
    return VERIFIER_PATTERN.fullmatch(code_verifier) is not None


def compute_challenge(code_verifier: str, method: str = "S256") -> str:
    if method == "plain":
        return code_verifier
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def verify_code_challenge(code_verifier: str, code_challenge: str, method: Optional[str]) -> bool:
    method = method or "plain"
    if method not in SUPPORTED_METHODS or not is_valid_verifier(code_verifier):
        return False
    expected = compute_challenge(code_verifier, method)
    return secrets.compare_digest(expected.encode("utf-8"), code_challenge.encode("utf-8"))
