"""
Session Context
Owns one signed-in lifecycle: starts on login/signup/restore, ends on logout.

Every session change re-fetches the current principal's profile and
republishes (principal, profile) to observers. There is no process-wide
session; each connection or request builds its own SessionContext.
"""
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from pymongo.errors import PyMongoError

from config import MIN_PASSWORD_LENGTH, MSG_DISPLAY_NAME_REQUIRED, SPECIALTIES
from core.errors import StoreLookupError, StoreWriteError, ValidationError
from core.live_query import Subscription
from db.schemas.users import build_profile_document
from services.analysts_service import AnalystsService
from services.identity_provider import IdentityProvider, Principal

logger = logging.getLogger(__name__)

SessionObserver = Callable[[Optional[Principal], Optional[Dict[str, Any]]], None]


def validate_signup(password: str, display_name: str, specialty: str) -> str:
    """Return the trimmed display name or raise ValidationError"""
    name = (display_name or "").strip()
    if not name:
        raise ValidationError(MSG_DISPLAY_NAME_REQUIRED)
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if specialty and specialty not in SPECIALTIES:
        raise ValidationError(f"Unknown specialty: {specialty}")
    return name


class SessionContext:
    """Explicit session state handed to views"""

    def __init__(self, provider: IdentityProvider, analysts: AnalystsService):
        self.provider = provider
        self.analysts = analysts
        self.principal: Optional[Principal] = None
        self.profile: Optional[Dict[str, Any]] = None
        self._observers: List[SessionObserver] = []
        self._lock = threading.RLock()

    @property
    def token(self) -> Optional[str]:
        return self.principal.token if self.principal else None

    @property
    def signed_in(self) -> bool:
        return self.principal is not None

    def observe(self, callback: SessionObserver) -> Subscription:
        """
        Publish (principal, profile) now and after every session change.
        """
        with self._lock:
            self._observers.append(callback)
            callback(self.principal, self.profile)

        def remove() -> None:
            with self._lock:
                if callback in self._observers:
                    self._observers.remove(callback)

        return Subscription(on_close=remove)

    def login(self, email: str, password: str) -> Principal:
        principal = self.provider.sign_in(email, password)
        self._session_changed(principal)
        return principal

    def signup(self, email: str, password: str, display_name: str, specialty: str = "") -> Principal:
        name = validate_signup(password, display_name, specialty)

        principal = self.provider.create_user(email, password)
        self.provider.update_profile(principal.uid, name)
        principal.display_name = name

        profile = build_profile_document(principal.uid, name, principal.email, specialty or "")
        try:
            self.analysts.database.users.insert_one(profile)
        except PyMongoError as e:
            # identity stays without a profile; nothing rolls it back
            logger.error(f"Profile write failed for new identity {principal.uid}: {e}")
            raise StoreWriteError("Account created but profile could not be saved") from e

        logger.info(f"Analyst signed up: {principal.uid}")
        self._session_changed(principal)
        return principal

    def restore(self, token: Optional[str]) -> Principal:
        """Resume a session from a provider-issued token"""
        principal = self.provider.resolve(token)
        self._session_changed(principal)
        return principal

    def logout(self) -> None:
        token = self.token
        if token:
            self.provider.sign_out(token)
        self._session_changed(None)

    def close(self) -> None:
        """End the lifecycle without signing out (e.g. connection dropped)"""
        with self._lock:
            self._observers.clear()

    def _fetch_profile(self, principal: Optional[Principal]) -> Optional[Dict[str, Any]]:
        if principal is None:
            return None
        try:
            profile = self.analysts.get_analyst_profile(principal.uid)
        except StoreLookupError as e:
            logger.error(f"Error fetching user profile: {e}")
            return None
        return profile

    def _session_changed(self, principal: Optional[Principal]) -> None:
        profile = self._fetch_profile(principal)
        with self._lock:
            self.principal = principal
            self.profile = profile
            observers = list(self._observers)
        for observer in observers:
            observer(principal, profile)
