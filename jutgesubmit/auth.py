from __future__ import annotations

"""Login and session lifecycle helpers for the judge API.

This module owns how a token is obtained from the login endpoint, how its
expiration is checked (lazily, on each use), and the `Session` object that
carries the current credentials between the login and submission flows.
"""

import contextlib
import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Iterator

from .builder import PayloadBuilder
from .errors import (
    AuthenticationError,
    ExpirationUnverifiableError,
    InvalidCredentialsError,
    NotLoggedInError,
    SessionExpiredError,
    TransportError,
)
from .models import Credentials, CredentialStatus, SessionState
from .wire import ApiTransport

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_EXPIRATION_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_expiration(text: str) -> datetime:
    """
    Parse a `YYYY-MM-DDThh:mm:ss.sssZ` style timestamp.

    A `Z` suffix or a numeric UTC offset is required; naive timestamps raise
    `ValueError` because they cannot be compared safely.
    """
    value = text.strip()
    for fmt in _EXPIRATION_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise ValueError(f"unrecognized expiration timestamp: {text!r}")


def check_credentials(
    credentials: Credentials | None, now: datetime | None = None
) -> CredentialStatus:
    """Classify a credential set; never raises."""
    if credentials is None or not credentials.token:
        return CredentialStatus.MISSING_TOKEN
    if not credentials.token_expiration:
        return CredentialStatus.USABLE

    try:
        expires_at = parse_expiration(credentials.token_expiration)
    except ValueError as exc:
        logger.warning("could not verify token expiration: %s", exc)
        return CredentialStatus.UNVERIFIABLE

    current = now if now is not None else utc_now()
    if current.tzinfo is None:
        # Naive clocks are taken to be UTC.
        current = current.replace(tzinfo=timezone.utc)
    if expires_at > current:
        return CredentialStatus.USABLE
    return CredentialStatus.EXPIRED


def is_usable(credentials: Credentials | None, now: datetime | None = None) -> bool:
    """True when the token is present and not known to be expired."""
    return check_credentials(credentials, now) is CredentialStatus.USABLE


def _decode_login_payload(body: str) -> dict[str, Any] | None:
    text = body.strip()
    if not text:
        return None
    try:
        payload = json.loads(text)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    return payload


class LoginClient:
    """Exchange an email/password pair for a token at the login endpoint."""

    def __init__(self, transport: ApiTransport, login_url: str) -> None:
        self.transport = transport
        self.login_url = login_url

    def authenticate(
        self, email: str, password: str, *, timeout: float | None = None
    ) -> Credentials:
        if not email.strip():
            raise ValueError("email cannot be empty")
        if not password:
            raise ValueError("password cannot be empty")

        try:
            response = self.transport.post_json(
                self.login_url,
                PayloadBuilder.build_login_document(email, password),
                timeout=timeout,
            )
        except TransportError as exc:
            raise AuthenticationError(f"login failed: {exc}") from exc

        payload = _decode_login_payload(response.body)
        if payload is None:
            raise AuthenticationError(
                "login failed: server returned status %d without a readable body"
                % response.status
            )

        if not response.ok and "token" not in payload:
            raise AuthenticationError(
                "login failed: server returned status %d" % response.status
            )

        token = payload.get("token")
        if token is not None and not isinstance(token, str):
            raise AuthenticationError("login failed: malformed token in response")
        if not token:
            raise InvalidCredentialsError("invalid email or password")
        if not response.ok:
            raise AuthenticationError(
                "login failed: server returned status %d" % response.status
            )

        expiration = payload.get("expiration")
        if expiration is not None:
            if not isinstance(expiration, str):
                raise AuthenticationError("login failed: malformed expiration in response")
            try:
                parse_expiration(expiration)
            except ValueError as exc:
                raise AuthenticationError(f"login failed: {exc}") from exc

        logger.debug("authenticated %s (expires %s)", email, expiration)
        return Credentials(email=email, token=token, token_expiration=expiration or None)


class Session:
    """
    Explicitly owned session state shared by the login and submission flows.

    Logins and submissions are serialized through `hold()`, so a second
    login cannot swap the token underneath an in-flight submission.
    """

    def __init__(
        self,
        login_client: LoginClient | None = None,
        *,
        credentials: Credentials | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.login_client = login_client
        self.clock: Clock = clock if clock is not None else utc_now
        self._credentials = credentials
        self._lock = threading.RLock()

    @contextlib.contextmanager
    def hold(self) -> Iterator["Session"]:
        with self._lock:
            yield self

    @property
    def credentials(self) -> Credentials | None:
        return self._credentials

    @property
    def email(self) -> str | None:
        if self._credentials is None:
            return None
        return self._credentials.email or None

    def status(self) -> CredentialStatus:
        return check_credentials(self._credentials, self.clock())

    @property
    def state(self) -> SessionState:
        status = self.status()
        if status is CredentialStatus.MISSING_TOKEN:
            return SessionState.LOGGED_OUT
        if status is CredentialStatus.USABLE:
            return SessionState.LOGGED_IN
        return SessionState.EXPIRED

    def adopt(self, credentials: Credentials | None) -> None:
        """Replace the in-memory credentials, e.g. with ones loaded from disk."""
        with self._lock:
            self._credentials = credentials

    def login(
        self, email: str, password: str, *, timeout: float | None = None
    ) -> Credentials:
        """Authenticate and replace the current credentials.

        On failure the session is left logged out and the error propagates.
        """
        if self.login_client is None:
            raise AuthenticationError("login failed: no login endpoint configured")
        with self._lock:
            try:
                credentials = self.login_client.authenticate(
                    email, password, timeout=timeout
                )
            except AuthenticationError:
                self._credentials = None
                raise
            self._credentials = credentials
            return credentials

    def logout(self) -> None:
        with self._lock:
            self._credentials = None

    def require_token(self) -> str:
        """Return the token or raise the matching `SessionError`."""
        with self._lock:
            status = self.status()
            if status is CredentialStatus.MISSING_TOKEN:
                raise NotLoggedInError("not logged in")
            if status is CredentialStatus.UNVERIFIABLE:
                raise ExpirationUnverifiableError(
                    "could not verify session expiration; please log in again"
                )
            if status is CredentialStatus.EXPIRED:
                raise SessionExpiredError("session expired; please log in again")
            credentials = self._credentials
            if credentials is None or not credentials.token:
                raise NotLoggedInError("not logged in")
            return credentials.token

    def describe(self) -> str:
        """Human-readable one-line session status."""
        status = self.status()
        if status is CredentialStatus.USABLE:
            return f"Logged in as {self.email or 'unknown user'}"
        if status is CredentialStatus.EXPIRED:
            return "Session expired. Please log in again."
        if status is CredentialStatus.UNVERIFIABLE:
            return "Could not verify session expiration. Please log in again."
        return "Not logged in"
