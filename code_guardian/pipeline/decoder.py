"""Tolerant decoder for JSON answers embedded in model text.

Models wrap JSON in markdown fences, add a sentence before or after it, or
drop a field. ``decode_ai_response`` recovers the object when it can and
returns a ``DecodeFailure`` (never raises) when it cannot. The expected
structure of every AI task is a pydantic schema from ``models.responses``.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Generic, Optional, Type, TypeVar

from pydantic import ValidationError

from ..errors import DecodeFailure
from ..models import AIResponse
from ..utils import get_logger


T = TypeVar("T")

_FENCE_OPEN_RE = re.compile(r"^```[\w+-]*[ \t]*\n?")
_FENCE_CLOSE_RE = re.compile(r"\n?```$")


@dataclass
class DecodeResult(Generic[T]):
    """Either a decoded value or the failure that prevented it."""
    value: Optional[T] = None
    error: Optional[DecodeFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, raising the carried DecodeFailure if there is none."""
        if self.error is not None:
            raise self.error
        return self.value


class _NoObject(Exception):
    """Internal: no JSON object could be parsed out of the text."""


def decode_ai_response(raw_text: str, response_model: Type[AIResponse]) -> DecodeResult:
    """
    Decode a model answer into the typed object described by ``response_model``.

    Steps:
    1. Strip surrounding whitespace and a markdown code fence, parse as JSON.
    2. Otherwise parse the text between the first ``{`` and the last ``}``.
    3. Validate the object against the schema and convert it.

    Args:
        raw_text: Text returned by the AI service
        response_model: Expected response schema

    Returns:
        DecodeResult holding the task output or a DecodeFailure
    """
    logger = get_logger()
    shape = response_model.shape_name
    raw_text = raw_text if isinstance(raw_text, str) else ""

    try:
        data = _extract_json(raw_text)
    except _NoObject as e:
        logger.debug(f"Decode failed for {shape}: {e}")
        return DecodeResult(error=DecodeFailure(str(e), raw_text, shape))

    if not isinstance(data, dict):
        reason = f"expected a JSON object, got {type(data).__name__}"
        return DecodeResult(error=DecodeFailure(reason, raw_text, shape))

    try:
        parsed = response_model.model_validate(data)
    except ValidationError as e:
        reason = _describe_validation_error(e)
        logger.debug(f"Decode failed for {shape}: {reason}")
        return DecodeResult(error=DecodeFailure(reason, raw_text, shape))

    return DecodeResult(value=parsed.to_value())


def strip_code_fence(text: str) -> str:
    """Remove surrounding whitespace and one markdown code fence, if present."""
    text = text.strip()
    if text.startswith("```"):
        text = _FENCE_OPEN_RE.sub("", text, count=1)
        text = _FENCE_CLOSE_RE.sub("", text.rstrip(), count=1)
    return text.strip()


def _extract_json(raw_text: str) -> Any:
    stripped = strip_code_fence(raw_text)
    try:
        return json.loads(stripped)
    except ValueError:
        pass

    start = raw_text.find("{")
    end = raw_text.rfind("}")
    if start == -1 or end <= start:
        raise _NoObject("no JSON object found in response")

    try:
        return json.loads(raw_text[start:end + 1])
    except ValueError as e:
        raise _NoObject(f"invalid JSON: {e}")


def _describe_validation_error(error: ValidationError) -> str:
    """First schema violation as one line, e.g. ``field 'issues[0].severity': ...``."""
    first = error.errors()[0]
    where = _format_location(first["loc"])
    if first["type"] == "missing":
        return f"missing required field '{where}'"
    message = first["msg"].replace("Value error, ", "")
    detail = f"field '{where}': {message}"
    if first["type"] == "literal_error":
        detail += f", got {first['input']!r}"
    count = error.error_count()
    if count > 1:
        detail += f" (and {count - 1} more)"
    return detail


def _format_location(loc) -> str:
    where = ""
    for part in loc:
        if isinstance(part, int):
            where += f"[{part}]"
        else:
            where += f".{part}" if where else str(part)
    return where
