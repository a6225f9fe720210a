"""
Shared-secret JWT authentication.

Access tokens are HS256 JWTs whose ``sub`` claim is the user ID.
"""
from datetime import datetime, timedelta, timezone
from typing import Protocol

from jose import JWTError, jwt

from tubely.config import Settings
from tubely.errors import Unauthorized

ISSUER = "tubely-access"


class Authenticator(Protocol):
    def authenticate(self, credential: str) -> str:
        """Resolve a bearer credential to a principal (user) ID."""
        ...


class JWTAuthenticator:
    """Validates HS256 access tokens signed with JWT_SECRET."""

    def __init__(self, settings: Settings):
        self.secret = settings.jwt_secret
        self.algorithm = settings.jwt_algorithm

    def authenticate(self, credential: str) -> str:
        try:
            payload = jwt.decode(
                credential,
                self.secret,
                algorithms=[self.algorithm],
                issuer=ISSUER,
            )
        except JWTError as e:
            raise Unauthorized("Couldn't validate JWT", detail=str(e)) from e

        subject = payload.get("sub")
        if not subject:
            raise Unauthorized("Invalid token: missing subject")
        return str(subject)


def make_access_token(settings: Settings, user_id: str, expires_in: timedelta = timedelta(hours=1)) -> str:
    """Issue an access token for ``user_id`` (dev tooling and tests)."""
    now = datetime.now(timezone.utc)
    payload = {
        "iss": ISSUER,
        "sub": user_id,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
