from __future__ import annotations

import json
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Tuple

import pytest
import requests

from jutgesubmit.auth import (
    LoginClient,
    Session,
    check_credentials,
    is_usable,
    parse_expiration,
)
from jutgesubmit.errors import (
    AuthenticationError,
    ExpirationUnverifiableError,
    InvalidCredentialsError,
    NotLoggedInError,
    SessionExpiredError,
)
from jutgesubmit.models import Credentials, CredentialStatus, SessionState
from jutgesubmit.wire import ApiTransport

NOW = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
LOGIN_URL = "https://judge.test/api/login"


class _FakeResponse:
    def __init__(self, status_code: int, content: bytes = b"") -> None:
        self.status_code = status_code
        self.content = content
        self.encoding = "utf-8"

    def close(self) -> None:
        pass


class _FakeHTTPSession:
    def __init__(self, outcomes: List[Any]) -> None:
        self.headers: Dict[str, str] = {}
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self._outcomes = list(outcomes)

    def post(self, url: str, **kwargs: Any) -> _FakeResponse:
        self.calls.append((url, kwargs))
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self) -> None:
        pass


def _login_client(*outcomes: Any) -> Tuple[LoginClient, _FakeHTTPSession]:
    http = _FakeHTTPSession(list(outcomes))
    transport = ApiTransport(http_session=http, timeout=5.0)  # type: ignore[arg-type]
    return LoginClient(transport, LOGIN_URL), http


def _json_response(status: int, payload: Any) -> _FakeResponse:
    return _FakeResponse(status, json.dumps(payload).encode("utf-8"))


def _stamp(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + "%03dZ" % (moment.microsecond // 1000)


@pytest.mark.parametrize(
    "expiration",
    [None, "", _stamp(NOW + timedelta(seconds=1)), _stamp(NOW + timedelta(days=30))],
)
def test_token_with_absent_or_future_expiration_is_usable(expiration: str | None) -> None:
    creds = Credentials(email="a@b.c", token="tok", token_expiration=expiration)
    assert is_usable(creds, NOW) is True


@pytest.mark.parametrize(
    "expiration",
    [_stamp(NOW), _stamp(NOW - timedelta(seconds=1)), "2000-01-01T00:00:00.000Z"],
)
def test_past_expiration_is_not_usable(expiration: str) -> None:
    creds = Credentials(email="a@b.c", token="tok", token_expiration=expiration)
    assert is_usable(creds, NOW) is False
    assert check_credentials(creds, NOW) is CredentialStatus.EXPIRED


@pytest.mark.parametrize(
    "expiration",
    [
        "tomorrow",
        "2025-13-01T00:00:00.000Z",
        "2999-01-01T00:00:00.000",
        "2999-01-01",
        "{}",
    ],
)
def test_malformed_expiration_fails_closed(expiration: str) -> None:
    creds = Credentials(email="a@b.c", token="tok", token_expiration=expiration)
    assert is_usable(creds, NOW) is False
    assert check_credentials(creds, NOW) is CredentialStatus.UNVERIFIABLE


@pytest.mark.parametrize("token", [None, ""])
def test_missing_token_is_not_usable(token: str | None) -> None:
    creds = Credentials(email="a@b.c", token=token, token_expiration=None)
    assert check_credentials(creds, NOW) is CredentialStatus.MISSING_TOKEN
    assert check_credentials(None, NOW) is CredentialStatus.MISSING_TOKEN


def test_parse_expiration_accepts_offsets() -> None:
    parsed = parse_expiration("2025-03-01T14:00:00.000+02:00")
    assert parsed == NOW
    assert parse_expiration("2025-03-01T12:00:00Z") == NOW


def test_authenticate_returns_credentials() -> None:
    client, http = _login_client(
        _json_response(200, {"token": "tok-1", "expiration": "2999-01-01T00:00:00.000Z"})
    )

    creds = client.authenticate("student@example.com", "secret")

    assert creds == Credentials(
        email="student@example.com",
        token="tok-1",
        token_expiration="2999-01-01T00:00:00.000Z",
    )
    url, kwargs = http.calls[0]
    assert url == LOGIN_URL
    assert kwargs["json"] == {"email": "student@example.com", "password": "secret"}
    assert kwargs["timeout"] == 5.0


@pytest.mark.parametrize("payload", [{"token": ""}, {"token": None}, {"success": "false"}])
def test_empty_token_means_invalid_credentials(payload: Dict[str, Any]) -> None:
    client, _ = _login_client(_json_response(200, payload))
    with pytest.raises(InvalidCredentialsError, match="invalid email or password"):
        client.authenticate("student@example.com", "wrong")


def test_rejected_login_with_empty_token_is_invalid_credentials() -> None:
    client, _ = _login_client(_json_response(401, {"token": ""}))
    with pytest.raises(InvalidCredentialsError):
        client.authenticate("student@example.com", "wrong")


@pytest.mark.parametrize(
    "outcome",
    [
        _FakeResponse(500, b""),
        _FakeResponse(502, b"<html>Bad gateway</html>"),
        _json_response(500, {"error": "internal"}),
        _json_response(200, ["not", "an", "object"]),
        _json_response(200, {"token": 42}),
        _json_response(200, {"token": "tok", "expiration": "soon"}),
        _json_response(200, {"token": "tok", "expiration": 1700000000}),
        requests.ConnectionError("connection refused"),
        requests.Timeout("read timed out"),
    ],
)
def test_other_failures_collapse_to_login_failed(outcome: Any) -> None:
    client, _ = _login_client(outcome)
    with pytest.raises(AuthenticationError, match="login failed") as excinfo:
        client.authenticate("student@example.com", "secret")
    assert not isinstance(excinfo.value, InvalidCredentialsError)


def test_blank_inputs_are_rejected_before_network() -> None:
    client, http = _login_client()
    with pytest.raises(ValueError):
        client.authenticate("  ", "secret")
    with pytest.raises(ValueError):
        client.authenticate("a@b.c", "")
    assert http.calls == []


def test_session_state_machine() -> None:
    moment = {"now": NOW}
    client, _ = _login_client(
        _json_response(200, {"token": "tok-1", "expiration": _stamp(NOW + timedelta(hours=1))}),
        _json_response(200, {"token": "tok-2", "expiration": _stamp(NOW + timedelta(hours=3))}),
    )
    session = Session(client, clock=lambda: moment["now"])
    assert session.state is SessionState.LOGGED_OUT
    assert session.describe() == "Not logged in"

    session.login("student@example.com", "secret")
    assert session.state is SessionState.LOGGED_IN
    assert session.require_token() == "tok-1"
    assert session.describe() == "Logged in as student@example.com"

    moment["now"] = NOW + timedelta(hours=2)
    assert session.state is SessionState.EXPIRED
    assert session.describe() == "Session expired. Please log in again."
    with pytest.raises(SessionExpiredError):
        session.require_token()

    session.login("student@example.com", "secret")
    assert session.state is SessionState.LOGGED_IN
    assert session.require_token() == "tok-2"


def test_failed_login_leaves_session_logged_out() -> None:
    client, _ = _login_client(_json_response(200, {"token": ""}))
    session = Session(
        client,
        credentials=Credentials(email="a@b.c", token="old", token_expiration=None),
        clock=lambda: NOW,
    )
    with pytest.raises(InvalidCredentialsError):
        session.login("a@b.c", "wrong")
    assert session.credentials is None
    assert session.state is SessionState.LOGGED_OUT


def test_require_token_reports_each_failure_distinctly() -> None:
    session = Session(clock=lambda: NOW)
    with pytest.raises(NotLoggedInError):
        session.require_token()

    session.adopt(Credentials(email="a@b.c", token="tok", token_expiration="garbage"))
    with pytest.raises(ExpirationUnverifiableError):
        session.require_token()
    assert session.state is SessionState.EXPIRED
    assert "Could not verify" in session.describe()

    session.logout()
    assert session.credentials is None


def test_login_without_endpoint_fails() -> None:
    with pytest.raises(AuthenticationError):
        Session().login("a@b.c", "secret")


def test_credentials_repr_masks_token() -> None:
    text = repr(Credentials(email="a@b.c", token="very-secret"))
    assert "very-secret" not in text


def test_naive_clock_is_treated_as_utc() -> None:
    naive_now = NOW.replace(tzinfo=None)
    future = Credentials(email="a@b.c", token="tok", token_expiration="2999-01-01T00:00:00.000Z")
    past = Credentials(email="a@b.c", token="tok", token_expiration="2000-01-01T00:00:00.000Z")

    assert check_credentials(future, naive_now) is CredentialStatus.USABLE
    assert check_credentials(past, naive_now) is CredentialStatus.EXPIRED

    session = Session(credentials=future, clock=datetime.now)
    assert session.require_token() == "tok"
    assert session.state is SessionState.LOGGED_IN


def test_login_waits_for_held_session() -> None:
    client, _ = _login_client(
        _json_response(200, {"token": "new", "expiration": "2999-01-01T00:00:00.000Z"})
    )
    session = Session(
        client,
        credentials=Credentials(email="a@b.c", token="old"),
        clock=lambda: NOW,
    )
    worker = threading.Thread(target=session.login, args=("a@b.c", "secret"))

    with session.hold():
        worker.start()
        worker.join(timeout=0.2)
        assert worker.is_alive()
        assert session.require_token() == "old"

    worker.join(timeout=5)
    assert not worker.is_alive()
    assert session.require_token() == "new"
