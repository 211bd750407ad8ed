from __future__ import annotations

import hashlib
import hmac
import secrets

from recordbook.config import settings


ALGORITHM = 'pbkdf2_sha256'


def normalize_admin_key(raw: str | None) -> str:
    # Surrounding whitespace is not part of a key; header values arrive stripped.
    return (raw or '').strip()


def hash_admin_key(raw: str, *, iterations: int | None = None) -> str:
    rounds = int(iterations or settings.admin_key_iterations)
    salt = secrets.token_hex(16)
    derived = hashlib.pbkdf2_hmac('sha256', normalize_admin_key(raw).encode('utf-8'), salt.encode('utf-8'), rounds)
    return f'{ALGORITHM}${rounds}${salt}${derived.hex()}'


def verify_admin_key(raw: str | None, stored_hash: str) -> bool:
    try:
        algo, iter_raw, salt, digest_hex = (stored_hash or '').split('$', 3)
        iterations = int(iter_raw)
    except ValueError:
        return False
    if algo != ALGORITHM:
        return False
    derived = hashlib.pbkdf2_hmac('sha256', normalize_admin_key(raw).encode('utf-8'), salt.encode('utf-8'), iterations).hex()
    return hmac.compare_digest(derived, digest_hex)
