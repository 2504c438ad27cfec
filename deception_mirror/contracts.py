"""
Request/response contracts for the three remote operations.

Each ``validate_*`` function checks an already-decoded JSON value and returns
a :class:`ShapeCheck` instead of raising, so callers decide how a mismatch is
reported. :func:`parse_model_json` is the raising wrapper used by the agents.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from deception_mirror.errors import ResponseShapeError
from deception_mirror.logger import get_logger
from deception_mirror.models import DeceptionAnalysis, DebateText, SpeechArtifact, SpeechRequest

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

DATA_URI_PATTERN = re.compile(r"^data:audio/[a-z0-9.+-]+;base64,[A-Za-z0-9+/]+={0,2}$")
FENCE_PATTERN = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.S)

SPEAKER_LABELS = ("Advocate:", "Skeptic:")


@dataclass(frozen=True)
class ShapeCheck(Generic[T]):
    ok: bool
    value: Optional[T] = None
    violations: List[Tuple[str, str]] = field(default_factory=list)


def _loc_to_path(loc: Tuple[Any, ...]) -> str:
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path or "<root>"


def _check(model: Type[T], data: Any) -> ShapeCheck[T]:
    try:
        return ShapeCheck(ok=True, value=model.model_validate(data))
    except PydanticValidationError as exc:
        violations = [(_loc_to_path(err["loc"]), err["msg"]) for err in exc.errors()]
        return ShapeCheck(ok=False, violations=violations)


def validate_analysis(data: Any) -> ShapeCheck[DeceptionAnalysis]:
    return _check(DeceptionAnalysis, data)


def validate_debate(data: Any) -> ShapeCheck[DebateText]:
    result = _check(DebateText, data)
    if not result.ok:
        return result

    violations = []
    for path, text in (("advocateText", result.value.advocate_text), ("skepticText", result.value.skeptic_text)):
        stripped = text.lstrip().lower()
        for label in SPEAKER_LABELS:
            if stripped.startswith(label.lower()):
                violations.append((path, f"must not start with a speaker label ({label!r})"))
    if violations:
        return ShapeCheck(ok=False, violations=violations)
    return result


def validate_speech_request(data: Any) -> ShapeCheck[SpeechRequest]:
    result = _check(SpeechRequest, data)
    if result.ok and not result.value.text_to_speak.strip():
        return ShapeCheck(ok=False, violations=[("textToSpeak", "must not be blank")])
    return result


def validate_speech(data: Any) -> ShapeCheck[SpeechArtifact]:
    result = _check(SpeechArtifact, data)
    if result.ok and not DATA_URI_PATTERN.match(result.value.audio_data_uri):
        return ShapeCheck(ok=False, violations=[("audioDataUri", "is not a base64 audio data URI")])
    return result


def _strip_fence(text: str) -> str:
    """Models occasionally wrap JSON in a markdown fence despite instructions."""
    match = FENCE_PATTERN.match(text)
    return match.group(1) if match else text.strip()


def parse_model_json(raw: str, validator: Callable[[Any], ShapeCheck[T]], contract: str) -> T:
    """Decode a model reply and validate it, raising ResponseShapeError on any mismatch."""
    clean = _strip_fence(raw)
    try:
        data = json.loads(clean)
    except json.JSONDecodeError as exc:
        logger.warning("Shape error | contract=%s not JSON: %s", contract, exc)
        raise ResponseShapeError(
            f"The {contract} response was not valid JSON.",
            raw=raw,
            violations=[("<root>", f"invalid JSON: {exc.msg}")],
        ) from exc

    result = validator(data)
    if not result.ok:
        logger.warning(
            "Shape error | contract=%s violations=%s",
            contract, ", ".join(f"{path} ({msg})" for path, msg in result.violations),
        )
        raise ResponseShapeError(
            f"The {contract} response did not match the expected format.",
            raw=raw,
            violations=result.violations,
        )
    return result.value
