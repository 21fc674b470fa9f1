"""
Password hashing for ClinicDesk accounts.

Passwords are never stored. Each account keeps a random salt and the SHA-256 hash of
salt + password.
"""
# clinicdesk/security.py

import hashlib
import hmac
import os


def hash_password(password: str, salt: str = None):
    """Hashes a password with a (new, unless given) salt.

    Returns:
        tuple: (password_hash, salt)
    """
    salt = salt or os.urandom(16).hex()
    password_hash = hashlib.sha256((salt + password).encode()).hexdigest()
    return password_hash, salt


def verify_password(password: str, password_hash: str, salt: str) -> bool:
    """Checks a plaintext password against a stored hash."""
    if not salt or not password_hash:
        return False
    candidate, _ = hash_password(password, salt)
    return hmac.compare_digest(candidate, password_hash)
