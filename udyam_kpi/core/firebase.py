# udyam_kpi/core/firebase.py
import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import firebase_admin
from fastapi.concurrency import run_in_threadpool
from firebase_admin import auth, credentials
from firebase_admin.exceptions import FirebaseError

from udyam_kpi.core.config import Settings
from udyam_kpi.core.exceptions import NotFoundError, UpstreamError

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "udyam-kpi"


@dataclass
class IdentityUser:
    """A registered identity as reported by the identity provider"""
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    custom_claims: Dict[str, Any] = field(default_factory=dict)


def load_service_account(encoded_config: str, project_id: str) -> dict:
    """Decode the base64 service-account JSON and check it belongs to the project"""
    try:
        service_account = json.loads(base64.b64decode(encoded_config).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise UpstreamError(f"Server configuration error: invalid FIREBASE_ADMIN_SDK_CONFIG ({e})")

    sa_project_id = service_account.get("project_id")
    if sa_project_id and sa_project_id != project_id:
        logger.error(f"Service account project ID mismatch. Expected {project_id}, got {sa_project_id}.")
        raise UpstreamError(
            "Server configuration error: Firebase Admin SDK project ID does not match FIREBASE_PROJECT_ID"
        )
    return service_account


def initialize_firebase_app(settings: Settings) -> firebase_admin.App:
    """Initialize (or reuse) the named Firebase Admin app for this process"""
    try:
        return firebase_admin.get_app(FIREBASE_APP_NAME)
    except ValueError:
        pass

    if settings.FIREBASE_ADMIN_SDK_CONFIG:
        service_account = load_service_account(settings.FIREBASE_ADMIN_SDK_CONFIG, settings.FIREBASE_PROJECT_ID)
        cred = credentials.Certificate(service_account)
    else:
        logger.warning("FIREBASE_ADMIN_SDK_CONFIG not configured, using application default credentials")
        cred = credentials.ApplicationDefault()

    app = firebase_admin.initialize_app(
        cred,
        options={"projectId": settings.FIREBASE_PROJECT_ID},
        name=FIREBASE_APP_NAME,
    )
    logger.info("Firebase Admin SDK initialized successfully")
    return app


class FirebaseIdentityProvider:
    """
    Identity provider operations used by the user-management endpoints.

    The Admin SDK is blocking, so every call runs in the threadpool.
    """

    def __init__(self, app: firebase_admin.App):
        self.app = app

    @classmethod
    def from_settings(cls, settings: Settings) -> "FirebaseIdentityProvider":
        return cls(initialize_firebase_app(settings))

    async def list_users(self, max_results: int) -> List[IdentityUser]:
        """List one bounded page of registered identities"""
        try:
            page = await run_in_threadpool(auth.list_users, max_results=max_results, app=self.app)
        except FirebaseError as e:
            logger.error(f"Error listing users from Firebase: {e}")
            raise UpstreamError(f"Error fetching users: {e}")
        return [self._to_identity_user(record) for record in page.users]

    async def get_user(self, uid: str) -> IdentityUser:
        try:
            record = await run_in_threadpool(auth.get_user, uid, app=self.app)
        except auth.UserNotFoundError:
            raise NotFoundError(f"User {uid} not found")
        except FirebaseError as e:
            logger.error(f"Error reading user {uid} from Firebase: {e}")
            raise UpstreamError(f"Error reading user: {e}")
        return self._to_identity_user(record)

    async def set_custom_claims(self, uid: str, claims: Dict[str, Any]):
        try:
            await run_in_threadpool(auth.set_custom_user_claims, uid, claims, app=self.app)
        except auth.UserNotFoundError:
            raise NotFoundError(f"User {uid} not found")
        except FirebaseError as e:
            logger.error(f"Error setting custom claims for {uid}: {e}")
            raise UpstreamError(f"Error setting user role: {e}")

    async def revoke_sessions(self, uid: str):
        """Revoke refresh tokens so the next token refresh carries new claims"""
        try:
            await run_in_threadpool(auth.revoke_refresh_tokens, uid, app=self.app)
        except auth.UserNotFoundError:
            raise NotFoundError(f"User {uid} not found")
        except FirebaseError as e:
            logger.error(f"Error revoking tokens for {uid}: {e}")
            raise UpstreamError(f"Error revoking user sessions: {e}")

    @staticmethod
    def _to_identity_user(record) -> IdentityUser:
        return IdentityUser(
            uid=record.uid,
            email=record.email,
            display_name=record.display_name,
            custom_claims=dict(record.custom_claims or {}),
        )
