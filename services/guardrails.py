"""Guardrails turning raw model output into usable payloads."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Tuple

from domain.models import OPTIONS_FIELDS, OptionsPayload

LOGGER = logging.getLogger("setting_forge.guardrails")

FREEFORM_PLACEHOLDER = "（生成に失敗しました）"
PRIMARY_OPTIONS_FIELD = "heroes"


class MalformedPayload(ValueError):
    """No parseable JSON object could be found in structured output."""


class EmptyResult(ValueError):
    """The payload parsed, but its primary field is empty after coercion."""


def extract_json_block(text: str) -> str:
    """Slice from the first '{' to the last '}'; fences and commentary fall away."""

    start = text.find("{")
    end = text.rfind("}")
    if start >= 0 and end > start:
        return text[start : end + 1]
    return text


def sequence_or_empty(value: Any) -> List[Any]:
    return list(value) if isinstance(value, list) else []


def stringify_element(value: Any) -> str:
    # null maps to "" so drop_empties removes it rather than showing "null" as a choice.
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


def drop_empties(values: List[str]) -> Tuple[str, ...]:
    return tuple(value for value in values if value)


def coerce_field(value: Any) -> Tuple[str, ...]:
    """sequence-or-empty, then stringify elements, then drop empties."""

    return drop_empties([stringify_element(item) for item in sequence_or_empty(value)])


def parse_structured(raw: str) -> Dict[str, Any]:
    candidate = extract_json_block(raw or "")
    try:
        document = json.loads(candidate)
    except (json.JSONDecodeError, TypeError) as exc:
        raise MalformedPayload(f"unparseable structured output: {exc}") from exc
    if not isinstance(document, dict):
        raise MalformedPayload(f"expected a JSON object, got {type(document).__name__}")
    return document


def normalize_options_payload(raw: str) -> OptionsPayload:
    document = parse_structured(raw)
    fields = {name: coerce_field(document.get(name)) for name in OPTIONS_FIELDS}
    if not fields[PRIMARY_OPTIONS_FIELD]:
        raise EmptyResult(f"'{PRIMARY_OPTIONS_FIELD}' is empty after normalization")
    return OptionsPayload(**fields)


def normalize_freeform_text(raw: str) -> str:
    text = (raw or "").strip()
    if not text:
        LOGGER.warning("freeform_output_empty")
        return FREEFORM_PLACEHOLDER
    return text


__all__ = [
    "EmptyResult",
    "FREEFORM_PLACEHOLDER",
    "MalformedPayload",
    "coerce_field",
    "extract_json_block",
    "normalize_freeform_text",
    "normalize_options_payload",
    "parse_structured",
]
