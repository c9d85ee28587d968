"""
Presentation Shell
View state for one connected client.

Signed out: the login/signup form.
Signed in: three tabs with no transition guards:
- browse       -> analyst directory subscription
- predictions  -> prediction ledger subscription
- submit       -> submission form (no subscription)

Switching tabs disposes the current view's subscription exactly once before
the next view is mounted. Leaving the submit tab discards unsaved form state.

Everything the client sees goes through `publish(kind, payload)`, which may
be called from live-query threads.
"""
import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional

from config import TOP_ANALYSTS_LIMIT
from core.errors import AnalystTrackError, ValidationError
from core.live_query import Subscription
from services.analysts_service import AnalystsService
from services.forms import LoginForm, PredictionForm, SubmitResult
from services.identity_provider import Principal
from services.predictions_service import PredictionsService
from services.session_service import SessionContext

logger = logging.getLogger(__name__)

Publish = Callable[[str, Dict[str, Any]], None]


class Tab(str, Enum):
    BROWSE = "browse"
    PREDICTIONS = "predictions"
    SUBMIT = "submit"


def navigation_header(profile: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Name and accuracy shown next to the tabs"""
    if not profile:
        return None
    stats = profile.get("stats") or {}
    return {"name": profile.get("name", ""), "accuracy": stats.get("accuracy") or 0}


class ShellController:
    """Tab state machine plus the forms of one client"""

    def __init__(
        self,
        session: SessionContext,
        analysts: AnalystsService,
        predictions: PredictionsService,
        publish: Publish,
        analysts_limit: int = TOP_ANALYSTS_LIMIT,
    ):
        self.session = session
        self.analysts = analysts
        self.predictions = predictions
        self.publish = publish
        self.analysts_limit = analysts_limit

        self.active_tab: Optional[Tab] = None
        self.form: Optional[PredictionForm] = None
        self.login_form: Optional[LoginForm] = None
        self.view_subscription: Optional[Subscription] = None
        self._session_subscription: Optional[Subscription] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        self._session_subscription = self.session.observe(self._on_session)

    def close(self) -> None:
        """Tear down every subscription owned by this client"""
        self._unmount()
        if self._session_subscription is not None:
            self._session_subscription.unsubscribe()
            self._session_subscription = None
        self.session.close()

    def _on_session(self, principal: Optional[Principal], profile: Optional[Dict[str, Any]]) -> None:
        self.publish("SESSION", {
            "user": principal.to_dict() if principal else None,
            "profile": profile,
            "navigation": navigation_header(profile),
        })
        if principal is None:
            self._unmount()
            self.active_tab = None
            self.login_form = LoginForm()
            self.publish("LOGIN_FORM", self._login_form_state())
        elif self.active_tab is None:
            self.login_form = None
            self.switch_tab(Tab.BROWSE)

    # ------------------------------------------------------------------
    # Tabs
    # ------------------------------------------------------------------

    def switch_tab(self, tab) -> Tab:
        if not self.session.signed_in:
            raise ValidationError("Sign in to continue")
        try:
            tab = Tab(tab)
        except ValueError:
            raise ValidationError(f"Unknown tab: {tab}")

        self._unmount()
        self.active_tab = tab
        self.publish("TAB", {"tab": tab.value})
        self._mount(tab)
        return tab

    def _mount(self, tab: Tab) -> None:
        if tab is Tab.BROWSE:
            self.publish("LOADING", {"view": tab.value})
            self.view_subscription = self.analysts.subscribe_to_top_analysts(
                self._snapshot_publisher(tab),
                limit=self.analysts_limit,
                on_error=self._on_view_error,
            )
        elif tab is Tab.PREDICTIONS:
            self.publish("LOADING", {"view": tab.value})
            self.view_subscription = self.predictions.subscribe_to_all_predictions(
                self._snapshot_publisher(tab),
                on_error=self._on_view_error,
            )
        else:
            self.form = PredictionForm()
            self.publish("FORM", self.form.to_dict())

    def _unmount(self) -> None:
        if self.view_subscription is not None:
            self.view_subscription.unsubscribe()
            self.view_subscription = None
        self.form = None

    def _snapshot_publisher(self, tab: Tab) -> Callable:
        def publish_snapshot(items) -> None:
            self.publish("SNAPSHOT", {"view": tab.value, "items": items})
        return publish_snapshot

    def _on_view_error(self, error: Exception) -> None:
        self.publish("ERROR", {"message": str(error)})

    # ------------------------------------------------------------------
    # Submission form
    # ------------------------------------------------------------------

    def update_form(self, name: str, value: Any) -> None:
        if self.form is None:
            raise ValidationError("Open the submit tab first")
        self.form.update(name, value)
        self.publish("FORM", self.form.to_dict())

    def submit_prediction(self) -> SubmitResult:
        if self.form is None or not self.session.signed_in:
            raise ValidationError("Open the submit tab first")
        result = self.form.submit(self.predictions, self.session.principal.uid)
        self.publish("SUBMIT_RESULT", result.to_dict())
        if result.ok:
            self.publish("FORM", self.form.to_dict())
        return result

    # ------------------------------------------------------------------
    # Login form
    # ------------------------------------------------------------------

    def _login_form_state(self) -> Dict[str, Any]:
        form = self.login_form
        return {
            "is_login": form.is_login,
            "email": form.email,
            "display_name": form.display_name,
            "specialty": form.specialty,
            "error": form.error,
        }

    def _require_login_form(self) -> LoginForm:
        if self.login_form is None:
            raise ValidationError("Already signed in")
        return self.login_form

    def toggle_auth_mode(self) -> None:
        self._require_login_form().toggle_mode()
        self.publish("LOGIN_FORM", self._login_form_state())

    def update_login_form(self, name: str, value: Any) -> None:
        form = self._require_login_form()
        if name not in ("email", "password", "display_name", "specialty"):
            raise ValidationError(f"Unknown form field: {name}")
        setattr(form, name, "" if value is None else str(value))

    def submit_login(self) -> bool:
        form = self._require_login_form()
        ok = form.submit(self.session)
        if not ok:
            self.publish("LOGIN_FORM", self._login_form_state())
        return ok

    def logout(self) -> None:
        self.session.logout()

    # ------------------------------------------------------------------
    # Client messages
    # ------------------------------------------------------------------

    def handle(self, message: Dict[str, Any]) -> None:
        """
        Dispatch one client message.

        Domain errors are published back as ERROR messages instead of
        tearing down the connection.
        """
        kind = message.get("type")
        handlers = {
            "SWITCH_TAB": lambda: self.switch_tab(message.get("tab")),
            "FORM_UPDATE": lambda: self.update_form(message.get("field"), message.get("value")),
            "SUBMIT_PREDICTION": self.submit_prediction,
            "LOGOUT": self.logout,
            "TOGGLE_AUTH_MODE": self.toggle_auth_mode,
            "LOGIN_FORM_UPDATE": lambda: self.update_login_form(message.get("field"), message.get("value")),
            "LOGIN_SUBMIT": self.submit_login,
        }
        handler = handlers.get(kind)
        if handler is None:
            self.publish("ERROR", {"message": f"Unknown message type: {kind}"})
            return
        try:
            handler()
        except AnalystTrackError as e:
            logger.info(f"Shell message {kind} rejected: {e.message}")
            self.publish("ERROR", {"message": e.message})
