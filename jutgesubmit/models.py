from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

DEFAULT_ARTIFACT_FILENAME = "program.v"


class SessionState(str, Enum):
    """Lifecycle states of an authenticated session."""

    LOGGED_OUT = "logged_out"
    LOGGED_IN = "logged_in"
    EXPIRED = "expired"


class CredentialStatus(str, Enum):
    """Outcome of checking a credential set against the current time."""

    USABLE = "usable"
    MISSING_TOKEN = "missing_token"
    EXPIRED = "expired"
    UNVERIFIABLE = "unverifiable"


@dataclass(frozen=True)
class Credentials:
    """Identity returned by the login endpoint.

    `token_expiration` keeps the server's raw timestamp text so that a value
    which cannot be parsed is still detected when the session is checked.
    """

    email: str
    token: str | None = None
    token_expiration: str | None = None

    def __repr__(self) -> str:
        masked = "***" if self.token else None
        return (
            f"Credentials(email={self.email!r}, token={masked!r}, "
            f"token_expiration={self.token_expiration!r})"
        )


@dataclass
class SubmissionRequest:
    """Typed request data for one upload of an artifact."""

    problem_id: str
    top_module: str
    annotation: str
    token: str
    artifact_bytes: bytes
    artifact_filename: str = DEFAULT_ARTIFACT_FILENAME

    def __post_init__(self) -> None:
        if not self.problem_id.strip():
            raise ValueError("problem_id must be a non-empty string")
        if not self.top_module.strip():
            raise ValueError("top_module must be a non-empty string")
        if not self.token:
            raise ValueError("token must be a non-empty string")
        if not self.artifact_bytes:
            raise ValueError("artifact_bytes cannot be empty")

    def __repr__(self) -> str:
        return (
            f"SubmissionRequest(problem_id={self.problem_id!r}, "
            f"top_module={self.top_module!r}, "
            f"artifact_filename={self.artifact_filename!r}, "
            f"artifact_size={len(self.artifact_bytes)})"
        )


@dataclass
class SubmissionResult:
    """Structured outcome of one submission attempt."""

    succeeded: bool
    result_url: str
    raw_response_body: str = ""
    http_status: int | None = None
    submission_id: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Alias of `succeeded`."""
        return self.succeeded

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-friendly dictionary."""
        return {
            "succeeded": self.succeeded,
            "result_url": self.result_url,
            "http_status": self.http_status,
            "submission_id": self.submission_id,
            "error": self.error,
            "raw_response_body": self.raw_response_body,
        }


@dataclass
class StoredState:
    """Snapshot of the persisted credential file."""

    credentials: Credentials | None = None
    problem: str = ""
    top_module: str = ""


@dataclass
class SaveOutcome:
    """Result of a best-effort write to the credential file."""

    path: str
    persisted: bool
    error: str | None = None

    @property
    def degraded(self) -> bool:
        """True when the caller's operation succeeded but nothing was saved."""
        return not self.persisted
