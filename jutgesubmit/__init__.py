"""Client for submitting hardware designs to the Jutge judge."""

from .auth import LoginClient, Session, check_credentials, is_usable, parse_expiration
from .client import JutgeSubmitClient, SubmissionClient
from .errors import (
    ArtifactIOError,
    AuthenticationError,
    ExpirationUnverifiableError,
    ExportError,
    InvalidCredentialsError,
    JutgeSubmitError,
    NotLoggedInError,
    PipelineError,
    ResponseParseError,
    SessionError,
    SessionExpiredError,
    TransportError,
    ValidationError,
)
from .models import (
    Credentials,
    CredentialStatus,
    SaveOutcome,
    SessionState,
    StoredState,
    SubmissionRequest,
    SubmissionResult,
)
from .pipeline import SubmissionPipeline
from .producer import ArtifactProducer, ExportSettings, InMemorySettings, VerilogFileProducer
from .store import CredentialStore
from .utils import extract_submission_id, submission_url, submissions_list_url

__all__ = [
    "JutgeSubmitClient",
    "SubmissionClient",
    "SubmissionPipeline",
    "LoginClient",
    "Session",
    "CredentialStore",
    "ArtifactProducer",
    "ExportSettings",
    "InMemorySettings",
    "VerilogFileProducer",
    "Credentials",
    "CredentialStatus",
    "SaveOutcome",
    "SessionState",
    "StoredState",
    "SubmissionRequest",
    "SubmissionResult",
    "check_credentials",
    "is_usable",
    "parse_expiration",
    "extract_submission_id",
    "submission_url",
    "submissions_list_url",
    "JutgeSubmitError",
    "AuthenticationError",
    "InvalidCredentialsError",
    "TransportError",
    "ResponseParseError",
    "PipelineError",
    "SessionError",
    "NotLoggedInError",
    "SessionExpiredError",
    "ExpirationUnverifiableError",
    "ValidationError",
    "ExportError",
    "ArtifactIOError",
]
