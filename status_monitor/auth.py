from __future__ import annotations

import hashlib
import hmac


def hash_password(password: str) -> str:
    return hashlib.sha256(str(password).encode("utf-8")).hexdigest()


def verify_admin_password(password: str, expected_hash: str) -> bool:
    expected = (expected_hash or "").strip().lower()
    if not expected:
        return False
    return hmac.compare_digest(hash_password(password), expected)
