"""JWT decoding (and encoding, for service tokens and tests).

Tokens are minted by the identity provider. Claims read here:
  - sub:          user ID
  - name:         display name (used in the activity log)
  - permissions:  list of effective permission strings
  - type:         must be "access"
  - exp:          expiry timestamp
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from sirius.config import settings

ALGORITHM = settings.jwt_algorithm


def create_access_token(
    user_id: str,
    permissions: list[str],
    name: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {
        "sub": user_id,
        "permissions": permissions,
        "type": "access",
        "exp": expire,
    }
    if name:
        payload["name"] = name
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Returns empty dict on failure."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return {}
