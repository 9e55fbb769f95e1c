from __future__ import annotations

"""Sequencing of one submission attempt.

session check -> design validation -> export to a private temp directory ->
upload -> cleanup. Errors raised before the export step leave no side
effects; from the export step on, the temporary artifact is removed and the
export-directory setting restored on every exit path.
"""

import contextlib
import logging
import os
import re
import shutil
import tempfile
from typing import TYPE_CHECKING, Any, Iterator

from .auth import Session
from .errors import ArtifactIOError, ExportError, TransportError, ValidationError
from .models import SubmissionRequest, SubmissionResult
from .producer import ArtifactProducer, ExportSettings
from .utils import submissions_list_url

if TYPE_CHECKING:
    from .client import SubmissionClient

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9_.$-]")


def artifact_basename(top_module: str) -> str:
    """File name for the exported artifact of `top_module`."""
    name = _UNSAFE_FILENAME_RE.sub("_", top_module.strip()).lstrip(".")
    return (name or "top") + ".v"


@contextlib.contextmanager
def export_directory_override(
    settings: ExportSettings, directory: str
) -> Iterator[str | None]:
    """Point the export directory at `directory`, restoring it on exit."""
    previous = settings.get_export_directory()
    settings.set_export_directory(directory)
    try:
        yield previous
    finally:
        settings.set_export_directory(previous)


def _discard_workdir(workdir: str) -> None:
    try:
        shutil.rmtree(workdir)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("could not remove temporary artifact directory %s: %s", workdir, exc)


class SubmissionPipeline:
    """Runs validate -> export -> submit -> cleanup for one design."""

    def __init__(
        self,
        producer: ArtifactProducer,
        submitter: "SubmissionClient",
        settings: ExportSettings,
        *,
        temp_root: str | None = None,
    ) -> None:
        self.producer = producer
        self.submitter = submitter
        self.settings = settings
        self.temp_root = temp_root

    def run(
        self,
        design: Any,
        problem_id: str,
        top_module: str,
        annotation: str,
        session: Session,
        *,
        timeout: float | None = None,
    ) -> SubmissionResult:
        """
        Submit `design` for `problem_id` with the session's token.

        Raises a `SessionError`, `ValidationError`, `ExportError` or
        `ArtifactIOError` for attempts that never reach the network. Transport
        failures are returned as a failed `SubmissionResult`.
        """
        with session.hold():
            token = session.require_token()
            if not problem_id.strip():
                raise ValueError("problem id cannot be empty")
            if not top_module.strip():
                raise ValueError("top module name cannot be empty")

            self._validate(design)

            try:
                workdir = tempfile.mkdtemp(prefix="jutgesubmit-", dir=self.temp_root)
            except OSError as exc:
                raise ExportError(f"could not create temporary directory: {exc}") from exc
            try:
                with export_directory_override(self.settings, workdir):
                    artifact_path = os.path.join(workdir, artifact_basename(top_module))
                    self._export(design, artifact_path)
                    artifact_bytes = self._read_artifact(artifact_path)
                    request = SubmissionRequest(
                        problem_id=problem_id.strip(),
                        top_module=top_module.strip(),
                        annotation=annotation,
                        token=token,
                        artifact_bytes=artifact_bytes,
                    )
                    return self._submit(request, timeout=timeout)
            finally:
                _discard_workdir(workdir)

    def _validate(self, design: Any) -> None:
        try:
            self.producer.validate(design)
        except ValidationError as exc:
            logger.info("design has errors: %s", exc)
            raise ValidationError(f"design has errors: {exc}") from exc

    def _export(self, design: Any, artifact_path: str) -> None:
        try:
            self.producer.export(design, artifact_path)
        except ExportError:
            raise
        except OSError as exc:
            raise ExportError(str(exc)) from exc

    @staticmethod
    def _read_artifact(artifact_path: str) -> bytes:
        try:
            with open(artifact_path, "rb") as fp:
                data = fp.read()
        except OSError as exc:
            raise ArtifactIOError(
                f"could not read exported artifact {artifact_path}: {exc}"
            ) from exc
        if not data:
            raise ExportError("export produced an empty artifact")
        return data

    def _submit(self, request: SubmissionRequest, *, timeout: float | None) -> SubmissionResult:
        try:
            return self.submitter.submit(request, timeout=timeout)
        except TransportError as exc:
            logger.warning("submission of %s failed: %s", request.problem_id, exc)
            return SubmissionResult(
                succeeded=False,
                result_url=submissions_list_url(
                    self.submitter.problems_url, request.problem_id
                ),
                error=str(exc),
            )
