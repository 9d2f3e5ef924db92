from pong_tournament.security.jwt import (
    AccessTokenError,
    SessionTokenError,
    access_token_user_id,
    create_access_token,
    create_session_token,
    decode_access_token,
    decode_session_token,
)
from pong_tournament.security.tokens import generate_token_id, hash_session_token

__all__ = [
    "AccessTokenError",
    "SessionTokenError",
    "access_token_user_id",
    "create_access_token",
    "create_session_token",
    "decode_access_token",
    "decode_session_token",
    "generate_token_id",
    "hash_session_token",
]
