"""
Error classification for non-success platform API responses.

Tries progressively less specific interpretations of the response body:
RFC 7807 problem document, then any JSON value, then plain text.
"""

import json
from dataclasses import dataclass, field
from http import HTTPStatus

from platform_cli.exceptions import StatusError

_PROBLEM_STR_FIELDS = ("type", "title", "detail", "instance")


def status_text(code):
    """Return the standard reason phrase for *code*, or "" if unknown."""
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return ""


@dataclass
class Problem:
    """RFC 7807 problem details (``application/problem+json``)."""

    type: str = ""
    title: str = ""
    detail: str = ""
    status: int = 0
    instance: str = ""
    extensions: dict = field(default_factory=dict)

    @classmethod
    def from_value(cls, value):
        """Build a Problem from decoded JSON.

        Unknown and missing members are fine, and JSON null is an empty
        problem. Any other non-object, or a member of the wrong type, raises
        ValueError.
        """
        if value is None:
            return cls()
        if not isinstance(value, dict):
            raise ValueError(f"expected JSON object, got {type(value).__name__}")
        kwargs = {}
        for name in _PROBLEM_STR_FIELDS:
            member = value.get(name)
            if member is None:
                continue
            if not isinstance(member, str):
                raise ValueError(f"problem member {name!r} must be a string")
            kwargs[name] = member
        status = value.get("status")
        if status is not None:
            if isinstance(status, bool) or not isinstance(status, int):
                raise ValueError("problem member 'status' must be an integer")
            kwargs["status"] = status
        known = set(_PROBLEM_STR_FIELDS) | {"status"}
        kwargs["extensions"] = {k: v for k, v in value.items() if k not in known}
        return cls(**kwargs)

    def __str__(self):
        if self.title and self.detail:
            return f"{self.title}: {self.detail}"
        return self.title or self.detail or f"status {self.status}"


# ---------------------------------------------------------------------------
# Classifier chain
# ---------------------------------------------------------------------------


def _reject_constant(name):
    raise ValueError(f"{name} is not valid JSON")


def _decode_json(body):
    return json.loads(body.decode("utf-8"), parse_constant=_reject_constant)


def _as_problem(status, body):
    try:
        problem = Problem.from_value(_decode_json(body))
    except (ValueError, RecursionError):
        return None
    if not problem.status:
        problem.status = status
    return StatusError(status_text(status), status, problem=problem)


def _as_json(status, body):
    try:
        value = _decode_json(body)
        rendered = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    except (ValueError, RecursionError):
        return None
    return StatusError(f"status {status}, error response: {rendered}", status)


def _as_text(status, body):
    text = body.decode("utf-8", errors="replace")
    if not text:
        text = status_text(status)
    return StatusError(f"status: {status} {text}", status)


# Most specific first. _as_text never declines, so the chain always yields.
CLASSIFIERS = (_as_problem, _as_json, _as_text)


def classify_error(status, body):
    """Turn a non-success response into a StatusError. Never raises."""
    body = body or b""
    for classifier in CLASSIFIERS:
        err = classifier(status, body)
        if err is not None:
            return err
    return _as_text(status, body)
