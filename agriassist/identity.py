# agriassist/identity.py
from __future__ import annotations

import base64
import json
import logging
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import auth, credentials

from agriassist.config import settings
from agriassist.errors import Unauthorized

logger = logging.getLogger(__name__)


class IdentityProvider:
    """Verifies bearer ID tokens issued by Firebase Authentication."""

    def __init__(self, service_account_b64: Optional[str] = None):
        self._service_account_b64 = service_account_b64 or settings.FIREBASE_SERVICE_ACCOUNT_BASE64
        self._app: Optional[firebase_admin.App] = None

    def _ensure_app(self) -> firebase_admin.App:
        if self._app is not None:
            return self._app
        try:
            self._app = firebase_admin.get_app()
        except ValueError:
            if self._service_account_b64:
                info = json.loads(base64.b64decode(self._service_account_b64).decode("utf-8"))
                cred = credentials.Certificate(info)
            else:
                # application default credentials (GOOGLE_APPLICATION_CREDENTIALS)
                cred = credentials.ApplicationDefault()
            self._app = firebase_admin.initialize_app(cred)
            logger.info("Firebase Admin initialized")
        return self._app

    def verify(self, id_token: str) -> Dict[str, Any]:
        """Decoded claims ({"uid", "email", ...}) or Unauthorized."""
        try:
            claims = auth.verify_id_token(id_token, app=self._ensure_app())
        except (ValueError, auth.InvalidIdTokenError, auth.ExpiredIdTokenError,
                auth.RevokedIdTokenError, auth.CertificateFetchError) as e:
            logger.warning("ID token rejected: %s", e)
            raise Unauthorized("Unauthorized: Invalid token") from e
        return {"uid": claims["uid"], "email": claims.get("email"), "name": claims.get("name")}
