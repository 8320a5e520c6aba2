# -*- coding: utf-8 -*-
"""Boundary validation for inbound request bodies."""
from __future__ import annotations

from typing import Any, List

from jsonschema import Draft7Validator

from domain.models import DEFAULT_MAX_CHARS, DEFAULT_MIN_CHARS, SynopsisRequest

_SETTING_FIELD = {"type": "string", "minLength": 1, "maxLength": 50}

SYNOPSIS_REQUEST_SCHEMA = {
    "type": "object",
    "properties": {
        "hero": _SETTING_FIELD,
        "stage": _SETTING_FIELD,
        "rule": _SETTING_FIELD,
        "rival": _SETTING_FIELD,
        "boss": _SETTING_FIELD,
        "minChars": {"type": "integer", "minimum": 200, "maximum": 800},
        "maxChars": {"type": "integer", "minimum": 200, "maximum": 1200},
    },
    "required": ["hero", "stage", "rule", "rival", "boss"],
}

_SYNOPSIS_VALIDATOR = Draft7Validator(SYNOPSIS_REQUEST_SCHEMA)


class InvalidRequest(ValueError):
    """Raised when an inbound body violates its schema."""

    def __init__(self, errors: List[str]) -> None:
        super().__init__("; ".join(errors) or "invalid request")
        self.errors = errors


def _describe(error) -> str:
    path = ".".join(str(part) for part in error.absolute_path) or "$"
    return f"{path}: {error.message}"


def validate_synopsis_request(payload: Any) -> SynopsisRequest:
    errors = sorted(_SYNOPSIS_VALIDATOR.iter_errors(payload), key=lambda err: [str(part) for part in err.absolute_path])
    if errors:
        raise InvalidRequest([_describe(error) for error in errors])
    return SynopsisRequest(
        hero=payload["hero"],
        stage=payload["stage"],
        rule=payload["rule"],
        rival=payload["rival"],
        boss=payload["boss"],
        min_chars=int(payload.get("minChars", DEFAULT_MIN_CHARS)),
        max_chars=int(payload.get("maxChars", DEFAULT_MAX_CHARS)),
    )


__all__ = ["InvalidRequest", "SYNOPSIS_REQUEST_SCHEMA", "validate_synopsis_request"]
