import base64
import binascii
import os
import time
from typing import Optional

import jwt

from resizer.config import JWT_EXPIRE_TIME

ISSUER = "resize-server"


def _client_secret(client_id: str) -> Optional[str]:
    return os.getenv(f"{client_id}_auth_client")


def secret_key() -> Optional[str]:
    return os.getenv("jwt_secret_key")


def parse_basic_auth(authorization: Optional[str]):
    """Return (client_id, client_secret) from a Basic auth header, or None."""
    if not authorization or not authorization.startswith("Basic "):
        return None
    try:
        decoded = base64.b64decode(authorization.split(" ", 1)[1]).decode("ascii")
    except (binascii.Error, UnicodeDecodeError):
        return None
    client_id, _, client_secret = decoded.partition(":")
    if not client_id or not client_secret:
        return None
    return client_id, client_secret


def issue_token(client_id: str, client_secret: str) -> Optional[dict]:
    """Sign an access token when the client secret matches its env entry."""
    saved_secret = _client_secret(client_id)
    signing_key = secret_key()
    if not saved_secret or saved_secret != client_secret or not signing_key or not JWT_EXPIRE_TIME:
        return None

    token = jwt.encode(
        {"iss": ISSUER, "sub": client_id, "exp": int(time.time()) + JWT_EXPIRE_TIME},
        signing_key,
        algorithm="HS256",
    )
    return {
        "access_token": token,
        "token_type": "Bearer",
        "expiresIn": JWT_EXPIRE_TIME - 10,
    }


def verify_bearer(authorization: Optional[str], signing_key: str) -> bool:
    """True when the bearer token is valid and its subject is a known client."""
    if not authorization or not authorization.startswith("Bearer "):
        return False
    token = authorization.split(" ", 1)[1]
    try:
        claims = jwt.decode(token, signing_key, algorithms=["HS256"], issuer=ISSUER)
    except jwt.InvalidTokenError:
        return False
    subject = claims.get("sub")
    return bool(subject and _client_secret(subject))
