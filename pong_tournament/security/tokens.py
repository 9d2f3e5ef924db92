import hashlib
import secrets


def generate_token_id() -> str:
    return secrets.token_urlsafe(12)


def hash_session_token(token: str) -> str:
    """One-way digest stored in place of the plaintext session token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
