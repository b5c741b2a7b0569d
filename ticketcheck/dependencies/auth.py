import secrets
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from ticketcheck.core.config import Settings, get_settings


class User:
    """Authenticated administrator."""

    def __init__(self, username: str):
        self.username = username


basic_scheme = HTTPBasic(auto_error=False)


def _matches(given: str, expected: str) -> bool:
    return secrets.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


def verify_admin_credentials(credentials: HTTPBasicCredentials | None, settings: Settings) -> User:
    """Check basic-auth credentials against the configured administrator account."""

    if not settings.admin_username or not settings.admin_password:
        raise HTTPException(status_code=503, detail="Admin credentials are not configured")

    if credentials is None:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Basic"},
        )

    # Both comparisons always run so timing does not reveal which part was wrong.
    username_ok = _matches(credentials.username, settings.admin_username)
    password_ok = _matches(credentials.password, settings.admin_password)
    if not (username_ok and password_ok):
        raise HTTPException(
            status_code=401,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return User(username=credentials.username)


async def get_admin_user(
    credentials: Annotated[HTTPBasicCredentials | None, Security(basic_scheme)],
    settings: Annotated[Settings, Depends(get_settings)],
    request: Request,
) -> User:
    cached = getattr(request.state, "user", None)
    if isinstance(cached, User):
        return cached

    user = verify_admin_credentials(credentials, settings)
    request.state.user = user
    return user


AdminUser = Annotated[User, Depends(get_admin_user)]
