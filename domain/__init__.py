"""Domain-level models, prompts and degradation policy."""

from .models import OPTIONS_FIELDS, OptionsPayload, SynopsisRequest  # noqa: F401
from .prompt_builder import build_options_prompt, build_synopsis_prompt  # noqa: F401
from .degradation_policy import (  # noqa: F401
    SERVICE_UNAVAILABLE_MESSAGE,
    fallback_options_payload,
    service_unavailable_body,
)

__all__ = [
    "OPTIONS_FIELDS",
    "OptionsPayload",
    "SynopsisRequest",
    "build_options_prompt",
    "build_synopsis_prompt",
    "SERVICE_UNAVAILABLE_MESSAGE",
    "fallback_options_payload",
    "service_unavailable_body",
]
