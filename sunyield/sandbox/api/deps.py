"""Request dependencies: platform state and bearer-token identities."""

from fastapi import Depends, Header, HTTPException, Request

from sunyield.sandbox.state import PlatformState, UserRecord


def get_platform(request: Request) -> PlatformState:
    return request.app.state.platform


def _bearer(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


async def current_user(
    authorization: str | None = Header(default=None),
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> UserRecord:
    token = _bearer(authorization)
    user = platform.user_for_token(token) if token else None
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


async def require_admin(
    authorization: str | None = Header(default=None),
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> str:
    token = _bearer(authorization)
    if token is None or token not in platform.admin_tokens:
        raise HTTPException(status_code=401, detail="Admin authentication required")
    return token
