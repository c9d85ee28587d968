"""
Presentation shell tests

Tests verify:
1. Signed-out clients see the login form; signing in opens the browse tab
2. Switching tabs releases the previous view's subscription before mounting
3. Leaving the submit tab discards unsaved form input
4. Submission results are published with the user-facing messages
"""
import queue
import threading

import pytest

from config import MSG_REQUIRED_FIELDS, MSG_SUBMIT_SUCCESS
from services.analysts_service import AnalystsService
from services.identity_provider import IdentityProvider
from services.predictions_service import PredictionsService
from services.session_service import SessionContext
from services.shell import ShellController, Tab, navigation_header


class Recorder:
    """publish() stand-in; safe to call from live-query threads"""

    def __init__(self):
        self.messages = []
        self.snapshots = queue.Queue()
        self._lock = threading.Lock()

    def __call__(self, kind, payload):
        with self._lock:
            self.messages.append((kind, payload))
        if kind == "SNAPSHOT":
            self.snapshots.put(payload)

    def kinds(self):
        with self._lock:
            return [kind for kind, _ in self.messages]

    def last(self, kind):
        with self._lock:
            return next(payload for k, payload in reversed(self.messages) if k == kind)


@pytest.fixture
def shell_parts(fake_db):
    analysts = AnalystsService(fake_db)
    session = SessionContext(IdentityProvider(fake_db), analysts)
    predictions = PredictionsService(fake_db, analysts)
    recorder = Recorder()
    shell = ShellController(session, analysts, predictions, recorder)
    yield shell, session, recorder
    shell.close()


@pytest.fixture
def signed_in_shell(shell_parts):
    shell, session, recorder = shell_parts
    session.signup("jane@example.com", "secret1", "Jane Doe", "Technology Stocks")
    shell.start()
    recorder.snapshots.get(timeout=2)
    return shell_parts


class TestNavigationHeader:

    def test_name_and_accuracy(self, profile_factory):
        header = navigation_header(profile_factory("u1", "Jane Doe", accuracy=72.5))
        assert header == {"name": "Jane Doe", "accuracy": 72.5}

    def test_signed_out(self):
        assert navigation_header(None) is None


class TestSessionFlow:

    def test_signed_out_client_sees_login_form(self, shell_parts):
        shell, _, recorder = shell_parts

        shell.start()

        assert recorder.kinds() == ["SESSION", "LOGIN_FORM"]
        assert recorder.last("SESSION")["user"] is None
        assert shell.active_tab is None

    def test_signup_through_login_form_opens_browse(self, shell_parts):
        shell, _, recorder = shell_parts
        shell.start()

        shell.handle({"type": "TOGGLE_AUTH_MODE"})
        for field, value in [("email", "jane@example.com"), ("password", "secret1"), ("display_name", "Jane Doe")]:
            shell.handle({"type": "LOGIN_FORM_UPDATE", "field": field, "value": value})
        shell.handle({"type": "LOGIN_SUBMIT"})

        assert shell.active_tab is Tab.BROWSE
        assert recorder.last("SESSION")["navigation"] == {"name": "Jane Doe", "accuracy": 0}
        assert recorder.last("TAB") == {"tab": "browse"}
        assert recorder.snapshots.get(timeout=2) == {"view": "browse", "items": []}

    def test_failed_login_republishes_form_error(self, shell_parts):
        shell, _, recorder = shell_parts
        shell.start()

        shell.handle({"type": "LOGIN_FORM_UPDATE", "field": "email", "value": "nobody@example.com"})
        shell.handle({"type": "LOGIN_FORM_UPDATE", "field": "password", "value": "secret1"})
        shell.handle({"type": "LOGIN_SUBMIT"})

        assert recorder.last("LOGIN_FORM")["error"] == "No account found for this email"
        assert shell.active_tab is None

    def test_logout_releases_view(self, signed_in_shell):
        shell, _, recorder = signed_in_shell
        subscription = shell.view_subscription

        shell.handle({"type": "LOGOUT"})

        assert subscription.closed
        assert shell.active_tab is None
        assert recorder.kinds()[-2:] == ["SESSION", "LOGIN_FORM"]


class TestTabs:

    def test_switch_releases_previous_subscription(self, signed_in_shell):
        shell, _, recorder = signed_in_shell
        browse = shell.view_subscription

        shell.handle({"type": "SWITCH_TAB", "tab": "predictions"})

        assert browse.closed
        assert shell.view_subscription is not browse
        assert recorder.snapshots.get(timeout=2)["view"] == "predictions"

    def test_switch_to_same_tab_remounts(self, signed_in_shell):
        shell, _, _ = signed_in_shell
        first = shell.view_subscription

        shell.switch_tab("browse")

        assert first.closed
        assert not shell.view_subscription.closed

    def test_submit_tab_has_no_subscription(self, signed_in_shell):
        shell, _, recorder = signed_in_shell

        shell.switch_tab(Tab.SUBMIT)

        assert shell.view_subscription is None
        assert recorder.last("FORM")["timeframe"] == "3 months"

    def test_leaving_submit_discards_form(self, signed_in_shell):
        shell, _, recorder = signed_in_shell
        shell.switch_tab("submit")
        shell.handle({"type": "FORM_UPDATE", "field": "stock", "value": "aapl"})

        shell.switch_tab("browse")
        shell.switch_tab("submit")

        assert shell.form.stock == ""
        assert recorder.last("FORM")["stock"] == ""

    def test_unknown_tab_published_as_error(self, signed_in_shell):
        shell, _, recorder = signed_in_shell

        shell.handle({"type": "SWITCH_TAB", "tab": "settings"})

        assert recorder.last("ERROR") == {"message": "Unknown tab: settings"}
        assert shell.active_tab is Tab.BROWSE

    def test_unknown_message_type(self, signed_in_shell):
        shell, _, recorder = signed_in_shell

        shell.handle({"type": "DANCE"})

        assert recorder.last("ERROR") == {"message": "Unknown message type: DANCE"}


class TestSubmission:

    def test_successful_submission(self, signed_in_shell, fake_db):
        shell, session, recorder = signed_in_shell
        shell.switch_tab("submit")
        for field, value in [("stock", "aapl"), ("targetPrice", "200"), ("reasoning", "Services growth")]:
            shell.handle({"type": "FORM_UPDATE", "field": field, "value": value})

        shell.handle({"type": "SUBMIT_PREDICTION"})

        result = recorder.last("SUBMIT_RESULT")
        assert result["ok"] and result["message"] == MSG_SUBMIT_SUCCESS
        assert recorder.last("FORM")["stock"] == ""
        assert fake_db.predictions.find_one({"userId": session.principal.uid})["stock"] == "AAPL"

    def test_missing_reasoning(self, signed_in_shell, fake_db):
        shell, _, recorder = signed_in_shell
        shell.switch_tab("submit")
        shell.handle({"type": "FORM_UPDATE", "field": "stock", "value": "aapl"})
        shell.handle({"type": "FORM_UPDATE", "field": "targetPrice", "value": "200"})

        shell.handle({"type": "SUBMIT_PREDICTION"})

        assert recorder.last("SUBMIT_RESULT") == {"ok": False, "message": MSG_REQUIRED_FIELDS, "prediction_id": None}
        assert shell.form.stock == "aapl"
        assert fake_db.predictions.docs == []

    def test_submit_outside_submit_tab(self, signed_in_shell):
        shell, _, recorder = signed_in_shell

        shell.handle({"type": "SUBMIT_PREDICTION"})

        assert recorder.last("ERROR") == {"message": "Open the submit tab first"}
