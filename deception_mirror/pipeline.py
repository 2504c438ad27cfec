"""
Request-level entry points used by the UI.

Each entry point validates its own input before touching the network:
    run_analysis       -> deception detector
    run_debate_text    -> debater
    run_debate_audio   -> advocate + skeptic voices in parallel, per-side degrade
    run_default_audio  -> narrator voice, failures propagate
"""

import asyncio
import time
from typing import Any, Dict, Iterable, List, Union

from pydantic import ValidationError as PydanticValidationError

from deception_mirror.agents import get_synthesizer, run_debater, run_deception_detector
from deception_mirror.errors import ValidationError
from deception_mirror.logger import get_logger
from deception_mirror.models import (
    AnalysisResult,
    ClaimRequest,
    DeceptionAnalysis,
    DebateAudio,
    DebateText,
    SpeechArtifact,
    Vertical,
)

logger = get_logger(__name__)


def validate_claim_request(claim: str, verticals: Iterable[Union[Vertical, str]]) -> ClaimRequest:
    """Build a ClaimRequest or raise ValidationError."""
    if not claim or not claim.strip() or not verticals:
        raise ValidationError("Claim and at least one vertical are required.")
    try:
        return ClaimRequest(claim=claim, verticals=list(verticals))
    except PydanticValidationError as exc:
        bad = ", ".join(str(err["loc"][0]) for err in exc.errors())
        raise ValidationError(f"Invalid claim request ({bad}).") from exc


async def run_analysis(claim: str, verticals: Iterable[Union[Vertical, str]], config: Dict[str, Any]) -> DeceptionAnalysis:
    request = validate_claim_request(claim, verticals)
    return await run_deception_detector(request.claim, request.verticals, config)


async def run_debate_text(claim: str, verticals: Iterable[Union[Vertical, str]], config: Dict[str, Any]) -> DebateText:
    request = validate_claim_request(claim, verticals)
    return await run_debater(request.claim, request.verticals, config)


async def run_default_audio(text_to_speak: str, config: Dict[str, Any]) -> SpeechArtifact:
    if not text_to_speak or not text_to_speak.strip():
        raise ValidationError("Text to speak is required.")
    return await get_synthesizer("narrator", config).synthesize(text_to_speak)


async def _synthesize_side(persona: str, text: str, config: Dict[str, Any]) -> str:
    try:
        artifact = await get_synthesizer(persona, config).synthesize(text)
    except Exception as exc:
        logger.error("Failed to generate %s audio: %s", persona, exc, exc_info=True)
        return ""
    return artifact.audio_data_uri


async def run_debate_audio(advocate_text: str, skeptic_text: str, config: Dict[str, Any]) -> DebateAudio:
    if not advocate_text or not advocate_text.strip() or not skeptic_text or not skeptic_text.strip():
        raise ValidationError("Advocate and Skeptic text are required to generate audio.")

    start = time.perf_counter()
    advocate_audio, skeptic_audio = await asyncio.gather(
        _synthesize_side("advocate", advocate_text, config),
        _synthesize_side("skeptic", skeptic_text, config),
    )
    logger.info(
        "Debate audio done | advocate=%s skeptic=%s elapsed=%.2fs",
        "ok" if advocate_audio else "missing",
        "ok" if skeptic_audio else "missing",
        time.perf_counter() - start,
    )
    return DebateAudio(advocate_audio=advocate_audio, skeptic_audio=skeptic_audio)


def build_narration(analysis: DeceptionAnalysis) -> str:
    """Text for the 'listen to summary' control."""
    findings: List[str] = [f"{item.bias}: {item.diagnosis}" for item in analysis.diagnosis]
    return f"{analysis.tldr} The analysis found the following: " + "\n".join(findings)


def flatten_debate(debate: DebateText) -> str:
    return f"Advocate: {debate.advocate_text}\nSkeptic: {debate.skeptic_text}"


def build_log_entry_data(request: ClaimRequest, analysis: DeceptionAnalysis, debate: DebateText) -> Dict[str, Any]:
    """Everything a LogEntry needs except its generated id and timestamp. Audio is never stored."""
    return {
        "claim": request.claim,
        "verticals": list(request.verticals),
        "result": AnalysisResult(deception_analysis=analysis, debate=flatten_debate(debate)),
    }
