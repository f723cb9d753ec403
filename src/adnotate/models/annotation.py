"""Annotation payloads delivered to the analytics platform."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ._validation import validate_str_not_empty
from .constants import ANNOTATION_SCOPE


@dataclass(frozen=True, slots=True)
class Annotation:
    """A timestamped, human-readable marker.

    Attributes:
        content: Message produced by the formatter.
        date_created: Creation time; the activity's native timestamp string.
        scope: Visibility scope, always ``organization``.
    """

    content: str
    date_created: str
    scope: str = ANNOTATION_SCOPE

    def __post_init__(self) -> None:
        validate_str_not_empty(self.content, "content")
        validate_str_not_empty(self.date_created, "date_created")
        validate_str_not_empty(self.scope, "scope")

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON request body for the annotation endpoint."""
        return {
            "content": self.content,
            "date_created": self.date_created,
            "scope": self.scope,
        }
