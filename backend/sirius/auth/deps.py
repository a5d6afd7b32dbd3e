"""FastAPI dependencies for authentication and authorization.

Dependencies:
  get_current_user        → decode JWT, return a CurrentUser built from its claims
  require_permission(...) → restrict to specific granular permissions
"""

from dataclasses import dataclass, field

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from sirius.auth.jwt import decode_token
from sirius.auth.permissions import has_permission

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    id: str
    name: str
    permissions: list[str] = field(default_factory=list)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> CurrentUser:
    """Decode the bearer token into a CurrentUser.

    Users live with the identity provider, so this is a token-only check
    with no database round trip.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials)
    user_id: str | None = payload.get("sub")
    if not user_id or payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return CurrentUser(
        id=user_id,
        name=payload.get("name") or user_id,
        permissions=list(payload.get("permissions", [])),
    )


def require_permission(*perms: str):
    """Dependency factory: restrict to users who hold ALL listed permissions.

    Usage:
        @router.post("/{wizard_id}/generate-report")
        async def generate(user: CurrentUser = Depends(require_permission("reports.run"))):
            ...
    """
    async def _check(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        missing = [p for p in perms if not has_permission(user.permissions, p)]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permissions: {', '.join(missing)}",
            )
        return user

    return _check
