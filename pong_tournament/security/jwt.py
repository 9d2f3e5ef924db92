from datetime import datetime, timedelta, timezone
import base64
import hashlib
import hmac
import json

from pong_tournament.config import get_settings
from pong_tournament.security.tokens import generate_token_id
from pong_tournament.utils.timestamps import to_epoch_seconds

settings = get_settings()
ALGORITHM = "HS256"
SESSION_TOKEN_TYPE = "tournament_session"


class AccessTokenError(ValueError):
    pass


class SessionTokenError(ValueError):
    pass


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("utf-8")


def _b64url_decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode((value + padding).encode("utf-8"))


def _sign(data: str, secret: str) -> str:
    signature = hmac.new(
        secret.encode("utf-8"),
        data.encode("utf-8"),
        hashlib.sha256,
    ).digest()
    return _b64url_encode(signature)


def _encode(payload: dict, secret: str) -> str:
    header = {"alg": ALGORITHM, "typ": "JWT"}
    encoded_header = _b64url_encode(json.dumps(header, separators=(",", ":"), sort_keys=True).encode("utf-8"))
    encoded_payload = _b64url_encode(json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8"))
    signing_input = f"{encoded_header}.{encoded_payload}"
    signature = _sign(signing_input, secret)
    return f"{signing_input}.{signature}"


def _decode(token: str, secret: str, error_cls: type[ValueError]) -> dict:
    """Verify signature, algorithm and ``exp``; return the payload."""
    if not isinstance(token, str):
        raise error_cls("Token must be a string")
    try:
        encoded_header, encoded_payload, signature = token.split(".")
    except ValueError as exc:
        raise error_cls("Invalid token") from exc

    signing_input = f"{encoded_header}.{encoded_payload}"
    expected_signature = _sign(signing_input, secret)
    if not hmac.compare_digest(signature.encode("utf-8"), expected_signature.encode("utf-8")):
        raise error_cls("Invalid token signature")

    try:
        header = json.loads(_b64url_decode(encoded_header))
        payload = json.loads(_b64url_decode(encoded_payload))
    except (ValueError, json.JSONDecodeError) as exc:
        raise error_cls("Malformed token payload") from exc

    if not isinstance(header, dict) or not isinstance(payload, dict):
        raise error_cls("Malformed token payload")
    if header.get("alg") != ALGORITHM:
        raise error_cls("Unexpected token algorithm")

    exp = payload.get("exp")
    if not isinstance(exp, int):
        raise error_cls("Token exp claim is missing")
    if int(datetime.now(timezone.utc).timestamp()) >= exp:
        raise error_cls("Token has expired")

    return payload


def create_access_token(*, user_id: int, ttl_minutes: int = 30) -> str:
    """Issue an account access token.

    Accounts live in the user service; this mirrors its format so the API
    and tests can produce tokens that ``decode_access_token`` accepts.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "typ": "access",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl_minutes)).timestamp()),
    }
    return _encode(payload, settings.account_jwt_secret)


def decode_access_token(token: str) -> dict:
    """Verify an account token.

    Tokens minted here carry the account id in ``sub``. The user service puts
    it in ``userId`` and may omit ``typ``; both shapes are accepted.
    """
    payload = _decode(token, settings.account_jwt_secret, AccessTokenError)

    if payload.get("typ", "access") != "access":
        raise AccessTokenError("Invalid token type")
    if not payload.get("sub") and payload.get("userId") is None:
        raise AccessTokenError("Token payload is incomplete")

    return payload


def access_token_user_id(payload: dict) -> int:
    raw = payload.get("userId", payload.get("sub"))
    if isinstance(raw, bool):
        raise AccessTokenError("Token account id is not an integer")
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise AccessTokenError("Token account id is not an integer") from exc


def create_session_token(
    *,
    tournament_id: int,
    alias: str,
    user_id: int | None,
    expires_at: datetime,
) -> str:
    """Sign the claims binding an alias (and optional account) to a tournament.

    ``expires_at`` is naive UTC and becomes the ``exp`` claim. ``jti`` makes
    every token unique even when issued twice for the same claims.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "typ": SESSION_TOKEN_TYPE,
        "tournamentId": tournament_id,
        "alias": alias,
        "userId": user_id,
        "iat": int(now.timestamp()),
        "exp": to_epoch_seconds(expires_at),
        "jti": generate_token_id(),
    }
    return _encode(payload, settings.session_jwt_secret)


def decode_session_token(token: str) -> dict:
    payload = _decode(token, settings.session_jwt_secret, SessionTokenError)

    if payload.get("typ") != SESSION_TOKEN_TYPE:
        raise SessionTokenError("Invalid token type")
    if not isinstance(payload.get("tournamentId"), int) or not payload.get("alias"):
        raise SessionTokenError("Token payload is incomplete")

    return payload
