"""
FastAPI dependencies for authentication.
Provides get_current_principal, which resolves the bearer token to a user ID.
"""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from tubely.auth.tokens import Authenticator, JWTAuthenticator
from tubely.config import Settings
from tubely.errors import Unauthorized

# auto_error=False so a missing header becomes our Unauthorized, not a bare 403
security = HTTPBearer(auto_error=False)


def build_authenticator(settings: Settings) -> Authenticator:
    """Authenticator for the configured AUTH_PROVIDER."""
    if settings.auth_provider == "firebase":
        # Imported lazily: firebase_admin is only needed for this provider
        from tubely.auth.firebase import FirebaseAuthenticator
        return FirebaseAuthenticator(settings)
    return JWTAuthenticator(settings)


async def get_current_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    FastAPI dependency that verifies the bearer token and returns the user ID.

    Raises:
        Unauthorized: If the token is missing, invalid, or expired
    """
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Couldn't find JWT")

    authenticator: Authenticator = request.app.state.authenticator
    return authenticator.authenticate(credentials.credentials)
