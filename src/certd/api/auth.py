import base64
import binascii
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from fastapi.security.utils import get_authorization_scheme_param

from src.certd.ca.errors import AuthError

REALM = "certd"
CHALLENGE_HEADERS = {"WWW-Authenticate": f'Basic realm="{REALM}"'}


class UTF8HTTPBasic(HTTPBasic):
    """HTTP Basic scheme that decodes `user:password` as UTF-8 rather than ASCII.

    A missing or malformed header yields None so the gate answers with its own challenge.
    """

    async def __call__(self, request: Request) -> Optional[HTTPBasicCredentials]:  # type: ignore[override]
        authorization = request.headers.get("Authorization")
        scheme, param = get_authorization_scheme_param(authorization)
        if not authorization or scheme.lower() != "basic":
            return None
        try:
            data = base64.b64decode(param, validate=True).decode("utf-8")
        except (binascii.Error, ValueError):
            return None
        username, separator, password = data.partition(":")
        if not separator:
            return None
        return HTTPBasicCredentials(username=username, password=password)


basic_scheme = UTF8HTTPBasic(auto_error=False, realm=REALM)


def check_credentials(
    credentials: Optional[HTTPBasicCredentials], expected_user: str, expected_password: str
) -> str:
    """Validate Basic credentials in constant time; raise AuthError on mismatch.

    Returns the authenticated user name.
    """
    if credentials is None:
        raise AuthError("missing credentials")
    user_ok = secrets.compare_digest(credentials.username.encode("utf-8"), expected_user.encode("utf-8"))
    password_ok = secrets.compare_digest(credentials.password.encode("utf-8"), expected_password.encode("utf-8"))
    if not (user_ok and password_ok):
        raise AuthError(f"invalid credentials for user {credentials.username!r}")
    return credentials.username


def require_basic_auth(
    request: Request, credentials: Optional[HTTPBasicCredentials] = Depends(basic_scheme)
) -> str:
    settings = request.app.state.settings
    try:
        return check_credentials(credentials, settings.user, settings.password)
    except AuthError as e:
        request.app.state.log.warning(f"{request.url.path}: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers=CHALLENGE_HEADERS,
        )
