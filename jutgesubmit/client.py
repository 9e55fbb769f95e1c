from __future__ import annotations

"""High-level judge client implementation.

This module contains:
- `SubmissionClient`, which uploads one artifact and interprets the answer
- `JutgeSubmitClient`, the public API wiring config, credential store,
  session and submission pipeline together for login/logout/send flows
"""

import logging
import os
from typing import Any

import requests

from .auth import Clock, LoginClient, Session
from .builder import PayloadBuilder
from .config import DEFAULT_CONFIG_PATH, JutgeClientConfig, load_client_config
from .models import Credentials, SaveOutcome, StoredState, SubmissionRequest, SubmissionResult
from .pipeline import SubmissionPipeline
from .producer import ArtifactProducer, ExportSettings, InMemorySettings, VerilogFileProducer
from .store import CredentialStore
from .utils import resolve_result_url
from .wire import ApiTransport

logger = logging.getLogger(__name__)


class SubmissionClient:
    """Uploads artifacts to the judge API and reports the outcome."""

    def __init__(
        self,
        transport: ApiTransport,
        *,
        api_url: str,
        problems_url: str,
        compiler_id: str,
    ) -> None:
        self.transport = transport
        self.api_url = api_url
        self.problems_url = problems_url
        self.compiler_id = compiler_id

    def submit(
        self, request: SubmissionRequest, *, timeout: float | None = None
    ) -> SubmissionResult:
        """Send one submission.

        Non-200 answers come back as a failed result; only transport failures
        raise (`TransportError`).
        """
        parts = PayloadBuilder.build_multipart_parts(request, self.compiler_id)
        logger.info(
            "submitting %s (%d bytes) for problem %s",
            request.artifact_filename,
            len(request.artifact_bytes),
            request.problem_id,
        )
        response = self.transport.post_multipart(self.api_url, parts, timeout=timeout)

        result_url, submission_id = resolve_result_url(
            self.problems_url, request.problem_id, response.body
        )
        succeeded = response.status == 200
        if succeeded:
            logger.info("submission accepted: %s", result_url)
        else:
            logger.warning(
                "judge answered status %d for problem %s", response.status, request.problem_id
            )
        return SubmissionResult(
            succeeded=succeeded,
            result_url=result_url,
            raw_response_body=response.body,
            http_status=response.status,
            submission_id=submission_id,
        )


# ---------------------------------------------------------------------------
# Main public client API.
# ---------------------------------------------------------------------------
class JutgeSubmitClient:
    """Login, credential persistence and design submission in one object."""

    def __init__(
        self,
        *,
        config_path: str = DEFAULT_CONFIG_PATH,
        api_url: str | None = None,
        login_url: str | None = None,
        problems_url: str | None = None,
        compiler_id: str | None = None,
        credentials_path: str | None = None,
        timeout: float | None = None,
        http_session: requests.Session | None = None,
        producer: ArtifactProducer | None = None,
        settings: ExportSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize a client with optional config overrides.

        Explicit arguments win over the config file, which wins over the
        built-in defaults. `http_session`, `producer`, `settings` and `clock`
        let a host application (or tests) supply its own collaborators.
        """
        self.config_path = config_path
        self.config = self._load_config(
            api_url=api_url,
            login_url=login_url,
            problems_url=problems_url,
            compiler_id=compiler_id,
            credentials_path=credentials_path,
            timeout=timeout,
        )
        cfg = self.config

        self.transport = ApiTransport(http_session=http_session, timeout=cfg.request_timeout)
        self.store = CredentialStore(cfg.credentials_path)
        self.session = Session(LoginClient(self.transport, cfg.login_url), clock=clock)
        self.submitter = SubmissionClient(
            self.transport,
            api_url=cfg.api_url,
            problems_url=cfg.problems_url,
            compiler_id=cfg.compiler_id,
        )
        self.settings = settings if settings is not None else InMemorySettings()
        self.pipeline = SubmissionPipeline(
            producer if producer is not None else VerilogFileProducer(),
            self.submitter,
            self.settings,
        )

    def _load_config(
        self,
        *,
        api_url: str | None,
        login_url: str | None,
        problems_url: str | None,
        compiler_id: str | None,
        credentials_path: str | None,
        timeout: float | None,
    ) -> JutgeClientConfig:
        """Load config from disk and apply runtime overrides."""
        cfg = load_client_config(self.config_path)
        if api_url is not None:
            cfg.api_url = api_url
        if login_url is not None:
            cfg.login_url = login_url
        if problems_url is not None:
            cfg.problems_url = problems_url.rstrip("/")
        if compiler_id is not None:
            cfg.compiler_id = compiler_id
        if credentials_path is not None:
            cfg.credentials_path = os.path.expanduser(credentials_path)
        if timeout is not None:
            if timeout <= 0:
                raise ValueError("timeout must be positive")
            cfg.request_timeout = timeout
        return cfg

    def restore_session(self) -> StoredState:
        """Load the credential file once and adopt any stored credentials."""
        state = self.store.load()
        self.session.adopt(state.credentials)
        if state.credentials is not None:
            logger.debug("restored session: %s", self.session.describe())
        return state

    def login(self, email: str, password: str) -> Credentials:
        return self.session.login(email, password)

    def logout(self) -> SaveOutcome:
        """Forget the in-memory credentials and drop them from disk."""
        self.session.logout()
        return self.store.clear_identity()

    def remember(
        self, problem_id: str, top_module: str, *, persist_identity: bool
    ) -> SaveOutcome:
        """Persist the last-used form values, plus credentials on opt-in."""
        state = StoredState(
            credentials=self.session.credentials,
            problem=problem_id,
            top_module=top_module,
        )
        return self.store.save(state, persist_identity=persist_identity)

    def describe_session(self) -> str:
        return self.session.describe()

    def send(
        self,
        design: Any,
        problem_id: str,
        top_module: str,
        annotation: str = "",
        *,
        timeout: float | None = None,
    ) -> SubmissionResult:
        """Validate, export and upload `design` with the current session."""
        return self.pipeline.run(
            design,
            problem_id,
            top_module,
            annotation,
            self.session,
            timeout=timeout,
        )

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> "JutgeSubmitClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
