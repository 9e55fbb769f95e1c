from __future__ import annotations

"""Builders translating typed submission requests to judge API payloads."""

import json
from typing import Any

from .models import SubmissionRequest

SUBMIT_FUNC = "student.submissions.submitFull"
ARTIFACT_CONTENT_TYPE = "application/octet-stream"


class PayloadBuilder:
    """Converts a SubmissionRequest into the multipart parts of one upload."""

    @staticmethod
    def build_submit_document(request: SubmissionRequest, compiler_id: str) -> dict[str, Any]:
        """Build the `data` document; the token travels in `meta`, not `input`."""
        if not compiler_id:
            raise ValueError("compiler_id cannot be empty")
        return {
            "func": SUBMIT_FUNC,
            "input": {
                "problem_id": request.problem_id,
                "compiler_id": compiler_id,
                "annotation": request.annotation,
            },
            "meta": {"token": request.token},
        }

    @staticmethod
    def build_multipart_parts(
        request: SubmissionRequest, compiler_id: str
    ) -> list[tuple[str, tuple[Any, ...]]]:
        """Build the ordered `data` and `file` parts for `requests` `files=`."""
        document = PayloadBuilder.build_submit_document(request, compiler_id)
        return [
            ("data", (None, json.dumps(document))),
            (
                "file",
                (
                    request.artifact_filename,
                    request.artifact_bytes,
                    ARTIFACT_CONTENT_TYPE,
                ),
            ),
        ]

    @staticmethod
    def build_login_document(email: str, password: str) -> dict[str, str]:
        return {"email": email, "password": password}
