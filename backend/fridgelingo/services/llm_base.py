"""
FridgeLingo Backend — Abstract AI Provider Interfaces
======================================================

What:  The two narrow contracts the pipeline needs from an AI provider,
       plus the shared parser for JSON answers.
How:   GeminiService implements both; tests plug in small fakes.

Contracts:
    LabelDetector.detect_labels(image_bytes, mime_type) -> list[str]
        May return an empty list. Most confident label first.
    TextGenerator.generate_text(prompt) -> str
        Raw model text. May be wrapped in ``` fences.

    Both raise LLMServiceError (or CircuitBreakerOpenError) on failure and
    never retry on their own.
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from fridgelingo.exceptions import MalformedResponseError

# ```json ... ``` or ``` ... ``` around the payload
_CODE_FENCE = re.compile(r"```(?:json|JSON)?")


class LabelDetector(ABC):
    """Turns image bytes into descriptive labels."""

    @abstractmethod
    async def detect_labels(self, image_bytes: bytes, mime_type: str) -> List[str]:
        """
        Label the contents of an image.

        Returns:
            Labels ordered most confident first; empty if nothing recognisable.

        Raises:
            LLMServiceError: provider unreachable or errored.
        """
        ...


class TextGenerator(ABC):
    """Single-turn text generation."""

    @abstractmethod
    async def generate_text(self, prompt: str) -> str:
        """
        Send one prompt and return the raw model text.

        Raises:
            LLMServiceError: provider unreachable or errored.
        """
        ...

    async def health_check(self) -> bool:
        """Lightweight reachability probe. Providers without one report True."""
        return True


def strip_code_fences(raw_text: str) -> str:
    """Removes markdown code fences the model likes to wrap JSON in."""
    return _CODE_FENCE.sub("", raw_text).strip()


def parse_json_object(raw_text: str) -> Dict[str, Any]:
    """
    Parse a model answer that should be a single JSON object.

    Raises:
        MalformedResponseError: empty body, invalid JSON, or a non-object value.
    """
    if not raw_text or not raw_text.strip():
        raise MalformedResponseError(message="AI service returned an empty response")

    cleaned = strip_code_fences(raw_text)
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(
            message="AI service response is not valid JSON",
            raw_text=raw_text,
            context={"error": str(e)},
        )

    if not isinstance(payload, dict):
        raise MalformedResponseError(
            message="AI service response is not a JSON object",
            raw_text=raw_text,
            context={"type": type(payload).__name__},
        )
    return payload


def text_field(payload: Dict[str, Any], key: str) -> str:
    """
    Read a string field, treating null, non-strings and whitespace as absent.

    Returns "" when the field is unusable so callers can apply their fallback.
    """
    value = payload.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        value = str(value)
    return value.strip()
