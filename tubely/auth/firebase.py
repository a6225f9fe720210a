"""
Firebase Admin SDK authentication.
Used when AUTH_PROVIDER=firebase; the Firebase uid is the principal ID.
"""
import json
import os
import logging
from typing import Optional

import firebase_admin
from firebase_admin import credentials, auth, exceptions

from tubely.config import Settings
from tubely.errors import Unauthorized

logger = logging.getLogger(__name__)


def _load_credentials(settings: Settings):
    """
    Build Firebase credentials.

    Supports two methods:
    1. FIREBASE_CREDENTIALS_JSON as file path
    2. FIREBASE_CREDENTIALS_JSON as JSON string

    If neither is provided, uses default credentials (for local dev with gcloud).
    """
    raw = settings.firebase_credentials_json
    if not raw:
        return credentials.ApplicationDefault()

    if os.path.exists(raw):
        logger.info(f"Loaded Firebase credentials from file: {raw}")
        return credentials.Certificate(raw)

    try:
        cred_dict = json.loads(raw)
    except json.JSONDecodeError:
        raise ValueError("FIREBASE_CREDENTIALS_JSON must be a valid file path or JSON string")
    logger.info("Loaded Firebase credentials from JSON string")
    return credentials.Certificate(cred_dict)


class FirebaseAuthenticator:
    """Validates Firebase ID tokens."""

    def __init__(self, settings: Settings, app: Optional[firebase_admin.App] = None):
        if app is None:
            app = firebase_admin.initialize_app(
                _load_credentials(settings),
                {"projectId": settings.firebase_project_id},
                name=f"tubely-{settings.firebase_project_id}",
            )
        self.app = app

    def authenticate(self, credential: str) -> str:
        try:
            # Verifies signature, expiration, issuer and audience
            decoded_token = auth.verify_id_token(credential, app=self.app)
        except ValueError as e:
            raise Unauthorized("Invalid token", detail=str(e)) from e
        except exceptions.FirebaseError as e:
            raise Unauthorized("Token verification failed", detail=str(e)) from e

        uid = decoded_token.get("uid")
        if not uid:
            raise Unauthorized("Invalid token: missing uid")
        return uid
