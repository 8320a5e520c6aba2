"""Value objects exchanged between the handlers and the generation pipeline."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

OPTIONS_FIELDS: Tuple[str, ...] = ("heroes", "stages", "rules", "rivals", "bosses")

DEFAULT_MIN_CHARS = 300
DEFAULT_MAX_CHARS = 450


@dataclass(frozen=True)
class OptionsPayload:
    """Categorical creative choices; every entry is a non-empty string."""

    heroes: Tuple[str, ...]
    stages: Tuple[str, ...]
    rules: Tuple[str, ...]
    rivals: Tuple[str, ...]
    bosses: Tuple[str, ...]

    def to_dict(self) -> Dict[str, List[str]]:
        return {name: list(getattr(self, name)) for name in OPTIONS_FIELDS}


@dataclass(frozen=True)
class SynopsisRequest:
    hero: str
    stage: str
    rule: str
    rival: str
    boss: str
    min_chars: int = DEFAULT_MIN_CHARS
    max_chars: int = DEFAULT_MAX_CHARS
