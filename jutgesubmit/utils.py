from __future__ import annotations

"""Helpers for reading judge responses and deriving result URLs.

Submission responses are not guaranteed to be clean JSON: deployments have
been seen to prepend warnings or wrap the document in HTML. The extraction
here is tolerant and only ever narrows the result URL.
"""

import json
import logging
from typing import Any, Dict
from urllib.parse import quote

from .errors import ResponseParseError

logger = logging.getLogger(__name__)


def submissions_list_url(problems_url: str, problem_id: str) -> str:
    """URL of the list of the user's submissions for one problem."""
    return "%s/%s/submissions" % (problems_url.rstrip("/"), quote(problem_id, safe=""))


def submission_url(problems_url: str, problem_id: str, submission_id: str) -> str:
    """URL of one specific submission."""
    return "%s/%s" % (
        submissions_list_url(problems_url, problem_id),
        quote(submission_id, safe=""),
    )


def parse_embedded_json(body: str) -> Dict[str, Any]:
    """
    Parse the JSON object spanning the first `{` to the last `}` of `body`.

    Raises `ResponseParseError` when no such span exists or it does not
    decode to an object.
    """
    start = body.find("{")
    end = body.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise ResponseParseError("response does not contain a JSON object")
    try:
        payload = json.loads(body[start : end + 1])
    except ValueError as exc:
        raise ResponseParseError(f"invalid JSON in response: {exc}") from exc
    if not isinstance(payload, dict):
        raise ResponseParseError("response JSON is not an object")
    return payload


def _submission_id_from_payload(payload: Dict[str, Any]) -> str:
    output = payload.get("output")
    if not isinstance(output, dict):
        raise ResponseParseError("response has no output object")
    value = output.get("submission_id")
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ResponseParseError("response has no output.submission_id")
    text = str(value).strip()
    if not text:
        raise ResponseParseError("response has an empty output.submission_id")
    return text


def extract_submission_id(body: str) -> str | None:
    """Best-effort recovery of `output.submission_id`; never raises."""
    if not body:
        return None
    try:
        return _submission_id_from_payload(parse_embedded_json(body))
    except ResponseParseError as exc:
        logger.debug("could not extract submission id: %s", exc)
        return None


def resolve_result_url(
    problems_url: str, problem_id: str, body: str
) -> tuple[str, str | None]:
    """Return `(url, submission_id)`, falling back to the submissions list."""
    submission_id = extract_submission_id(body)
    if submission_id is None:
        return submissions_list_url(problems_url, problem_id), None
    return submission_url(problems_url, problem_id, submission_id), submission_id
