"""Exception taxonomy shared by the session, transport and pipeline layers."""


class JutgeSubmitError(RuntimeError):
    """Base error for every failure surfaced by this package."""


class AuthenticationError(JutgeSubmitError):
    """Raised when the login endpoint cannot produce usable credentials."""


class InvalidCredentialsError(AuthenticationError):
    """Raised when the server answers a login with an empty token."""


class TransportError(JutgeSubmitError):
    """Raised when an HTTP exchange fails before a response is obtained."""


class ResponseParseError(JutgeSubmitError):
    """Raised when a response body does not contain the expected document."""


class PipelineError(JutgeSubmitError):
    """Base error for failures that abort a submission attempt."""


class SessionError(PipelineError):
    """Raised when the current session cannot provide a usable token."""


class NotLoggedInError(SessionError):
    """Raised when no token is available."""


class SessionExpiredError(SessionError):
    """Raised when the token is present but past its expiration."""


class ExpirationUnverifiableError(SessionError):
    """Raised when the stored expiration timestamp cannot be parsed."""


class ValidationError(PipelineError):
    """Raised when the design is inconsistent and cannot be exported."""


class ExportError(PipelineError):
    """Raised when the artifact could not be generated."""


class ArtifactIOError(PipelineError):
    """Raised when an exported artifact cannot be read back."""


__all__ = [
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
