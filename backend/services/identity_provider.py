"""
Identity Provider
Credential and session store backing sign-in, sign-up and sign-out.

Identities live in the `identities` collection (bcrypt password hashes),
sessions in `sessions` (opaque bearer tokens). Profile data is NOT kept
here; see services.session_service for the profile lifecycle.
"""
import logging
import secrets
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import bcrypt
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, PyMongoError

from core.errors import AuthenticationError, StoreLookupError, StoreWriteError
from db.database import Database
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


@dataclass
class Principal:
    """Authenticated identity as issued by the provider"""
    uid: str
    email: str
    display_name: str = ""
    token: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("token")
        return data


def hash_password(password: str) -> str:
    """Hash password using bcrypt directly."""
    # Bcrypt has a 72-byte limit, truncate if necessary
    password_bytes = password.encode('utf-8')[:72]
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against bcrypt hash."""
    password_bytes = plain_password.encode('utf-8')[:72]
    hashed_bytes = hashed_password.encode('utf-8')
    return bcrypt.checkpw(password_bytes, hashed_bytes)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class IdentityProvider:
    """Sign-in, sign-up, sign-out and token resolution"""

    def __init__(self, database: Database):
        self.database = database

    def create_user(self, email: str, password: str) -> Principal:
        """Create an identity and sign it in. Duplicate emails are rejected."""
        email = normalize_email(email)
        if not email or not password:
            raise AuthenticationError("Email and password are required")

        try:
            if self.database.identities.find_one({"email": email}):
                raise AuthenticationError("An account with this email already exists")

            identity = {
                "uid": str(ObjectId()),
                "email": email,
                "passwordHash": hash_password(password),
                "displayName": "",
                "createdAt": now_utc(),
            }
            self.database.identities.insert_one(identity)
        except DuplicateKeyError:
            raise AuthenticationError("An account with this email already exists")
        except PyMongoError as e:
            logger.error(f"Identity creation failed for {email}: {e}")
            raise StoreWriteError("Could not create account") from e

        logger.info(f"Identity created: {identity['uid']}")
        return self._issue_session(identity)

    def sign_in(self, email: str, password: str) -> Principal:
        email = normalize_email(email)
        try:
            identity = self.database.identities.find_one({"email": email})
        except PyMongoError as e:
            logger.error(f"Identity lookup failed for {email}: {e}")
            raise StoreLookupError("Could not reach the identity store") from e

        if not identity:
            raise AuthenticationError("No account found for this email")

        stored_hash = identity.get("passwordHash")
        if not stored_hash or not verify_password(password or "", stored_hash):
            raise AuthenticationError("Invalid email or password")

        return self._issue_session(identity)

    def sign_out(self, token: str) -> None:
        try:
            self.database.sessions.delete_one({"token": token})
        except PyMongoError as e:
            logger.error(f"Session revoke failed: {e}")
            raise StoreWriteError("Could not sign out") from e

    def update_profile(self, uid: str, display_name: str) -> None:
        """Set the identity's display name"""
        try:
            self.database.identities.update_one(
                {"uid": uid},
                {"$set": {"displayName": display_name}}
            )
        except PyMongoError as e:
            logger.error(f"Display name update failed for {uid}: {e}")
            raise StoreWriteError("Could not update display name") from e

    def resolve(self, token: Optional[str]) -> Principal:
        """Resolve a bearer token to its principal"""
        if not token:
            raise AuthenticationError("Missing session token")

        try:
            session = self.database.sessions.find_one({"token": token})
            identity = None
            if session:
                identity = self.database.identities.find_one({"uid": session["uid"]})
        except PyMongoError as e:
            logger.error(f"Session lookup failed: {e}")
            raise StoreLookupError("Could not reach the identity store") from e

        if not identity:
            raise AuthenticationError("Session expired or invalid")

        return self._principal(identity, token)

    def _issue_session(self, identity: Dict[str, Any]) -> Principal:
        token = secrets.token_urlsafe(32)
        try:
            self.database.sessions.insert_one({
                "token": token,
                "uid": identity["uid"],
                "createdAt": now_utc(),
            })
        except PyMongoError as e:
            logger.error(f"Session creation failed for {identity['uid']}: {e}")
            raise StoreWriteError("Could not start session") from e
        return self._principal(identity, token)

    @staticmethod
    def _principal(identity: Dict[str, Any], token: Optional[str]) -> Principal:
        return Principal(
            uid=identity["uid"],
            email=identity.get("email", ""),
            display_name=identity.get("displayName", ""),
            token=token,
        )
