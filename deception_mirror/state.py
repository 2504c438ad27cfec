"""
View state for one claim submission.

The UI never mutates state directly: every transition is an event fed to
:func:`reduce`. Each submission bumps ``generation``; events carry the
generation they were started under, and anything from an older generation
is dropped so a slow response to a previous claim cannot overwrite the
current one.

Branches:
    analysis      idle -> pending -> done | error
    debate_text   idle -> pending -> done | error
    debate_audio  idle -> pending -> done          (started only after debate_text is done)
    narration     idle -> pending -> done | error  (on demand)
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Union

from pydantic import BaseModel, ConfigDict

from deception_mirror import pipeline
from deception_mirror.errors import ResponseShapeError, ValidationError
from deception_mirror.logger import get_logger
from deception_mirror.mirror_log import MirrorLog
from deception_mirror.models import (
    ClaimRequest,
    DeceptionAnalysis,
    DebateAudio,
    DebateText,
    LogEntry,
    SpeechArtifact,
    Vertical,
)

logger = get_logger(__name__)

ANALYSIS_ERROR_MESSAGE = "An error occurred during analysis. Please try again."
DEBATE_ERROR_MESSAGE = "The debate could not be generated. Please try again."
FORMAT_ERROR_MESSAGE = "The model returned an unexpected response format. Please try again."
NARRATION_ERROR_MESSAGE = "Audio narration is unavailable right now."


class Status(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    DONE = "done"
    ERROR = "error"


class BranchState(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    status: Status = Status.IDLE
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def pending(cls) -> "BranchState":
        return cls(status=Status.PENDING)

    @classmethod
    def done(cls, value: Any) -> "BranchState":
        return cls(status=Status.DONE, value=value)

    @classmethod
    def failed(cls, message: str) -> "BranchState":
        return cls(status=Status.ERROR, error=message)


class ViewState(BaseModel):
    model_config = ConfigDict(frozen=True)

    generation: int = 0
    request: Optional[ClaimRequest] = None
    analysis: BranchState = BranchState()
    debate_text: BranchState = BranchState()
    debate_audio: BranchState = BranchState()
    narration: BranchState = BranchState()

    @property
    def submitted(self) -> bool:
        return self.request is not None


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Submitted:
    request: ClaimRequest


@dataclass(frozen=True)
class AnalysisResolved:
    generation: int
    analysis: DeceptionAnalysis


@dataclass(frozen=True)
class AnalysisFailed:
    generation: int
    message: str


@dataclass(frozen=True)
class DebateTextResolved:
    generation: int
    debate: DebateText


@dataclass(frozen=True)
class DebateTextFailed:
    generation: int
    message: str


@dataclass(frozen=True)
class DebateAudioResolved:
    generation: int
    audio: DebateAudio


@dataclass(frozen=True)
class DebateAudioFailed:
    generation: int
    message: str


@dataclass(frozen=True)
class NarrationRequested:
    generation: int


@dataclass(frozen=True)
class NarrationResolved:
    generation: int
    audio_data_uri: str


@dataclass(frozen=True)
class NarrationFailed:
    generation: int
    message: str


Event = Union[
    Submitted,
    AnalysisResolved, AnalysisFailed,
    DebateTextResolved, DebateTextFailed,
    DebateAudioResolved, DebateAudioFailed,
    NarrationRequested, NarrationResolved, NarrationFailed,
]


def reduce(state: ViewState, event: Event) -> ViewState:
    """Apply one event. Pure: returns a new state, never mutates ``state``."""
    if isinstance(event, Submitted):
        return ViewState(
            generation=state.generation + 1,
            request=event.request,
            analysis=BranchState.pending(),
            debate_text=BranchState.pending(),
        )

    if event.generation != state.generation:
        logger.debug(
            "Dropping stale %s | event_generation=%d current=%d",
            type(event).__name__, event.generation, state.generation,
        )
        return state

    if isinstance(event, AnalysisResolved):
        return state.model_copy(update={"analysis": BranchState.done(event.analysis)})
    if isinstance(event, AnalysisFailed):
        return state.model_copy(update={"analysis": BranchState.failed(event.message)})
    if isinstance(event, DebateTextResolved):
        return state.model_copy(update={
            "debate_text": BranchState.done(event.debate),
            "debate_audio": BranchState.pending(),
        })
    if isinstance(event, DebateTextFailed):
        return state.model_copy(update={
            "debate_text": BranchState.failed(event.message),
            "debate_audio": BranchState(),
        })
    if isinstance(event, DebateAudioResolved):
        return state.model_copy(update={"debate_audio": BranchState.done(event.audio)})
    if isinstance(event, DebateAudioFailed):
        # text stays usable; both players render as unavailable
        return state.model_copy(update={"debate_audio": BranchState.done(DebateAudio())})
    if isinstance(event, NarrationRequested):
        return state.model_copy(update={"narration": BranchState.pending()})
    if isinstance(event, NarrationResolved):
        return state.model_copy(update={"narration": BranchState.done(event.audio_data_uri)})
    if isinstance(event, NarrationFailed):
        return state.model_copy(update={"narration": BranchState.failed(event.message)})

    raise TypeError(f"Unknown event: {event!r}")


def can_save(state: ViewState) -> bool:
    return (
        state.request is not None
        and state.analysis.status is Status.DONE
        and state.debate_text.status is Status.DONE
    )


def _user_message(exc: Exception, default: str) -> str:
    if isinstance(exc, ResponseShapeError):
        return FORMAT_ERROR_MESSAGE
    if isinstance(exc, ValidationError):
        return str(exc)
    return default


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

class ViewController:
    """Drives the pipeline for each submitted claim and keeps the ViewState current.

    ``on_change(state)`` is called after every transition that was applied,
    so a UI can repaint partial results as soon as each branch settles.
    """

    def __init__(self, config: dict, on_change: Optional[Callable[[ViewState], None]] = None):
        self.config = config
        self.on_change = on_change
        self.state = ViewState()

    def dispatch(self, event: Event) -> ViewState:
        new_state = reduce(self.state, event)
        if new_state is not self.state:
            self.state = new_state
            if self.on_change:
                self.on_change(new_state)
        return self.state

    async def submit(self, claim: str, verticals: Iterable[Union[Vertical, str]]) -> ViewState:
        """Start both branches for a new claim and wait until every branch has settled."""
        request = pipeline.validate_claim_request(claim, verticals)
        self.dispatch(Submitted(request))
        generation = self.state.generation
        logger.info("Submission %d | claim='%s' verticals=%s", generation, request.claim[:80], request.vertical_labels)

        await asyncio.gather(
            self._analysis_branch(request, generation),
            self._debate_branch(request, generation),
        )
        return self.state

    async def _analysis_branch(self, request: ClaimRequest, generation: int) -> None:
        try:
            analysis = await pipeline.run_analysis(request.claim, request.verticals, self.config)
        except Exception as exc:
            logger.error("Analysis error | generation=%d error=%s", generation, exc)
            self.dispatch(AnalysisFailed(generation, _user_message(exc, ANALYSIS_ERROR_MESSAGE)))
            return
        self.dispatch(AnalysisResolved(generation, analysis))

    async def _debate_branch(self, request: ClaimRequest, generation: int) -> None:
        try:
            debate = await pipeline.run_debate_text(request.claim, request.verticals, self.config)
        except Exception as exc:
            logger.error("Debate text error | generation=%d error=%s", generation, exc)
            self.dispatch(DebateTextFailed(generation, _user_message(exc, DEBATE_ERROR_MESSAGE)))
            return
        self.dispatch(DebateTextResolved(generation, debate))

        try:
            audio = await pipeline.run_debate_audio(debate.advocate_text, debate.skeptic_text, self.config)
        except Exception as exc:
            logger.error("Debate audio error | generation=%d error=%s", generation, exc)
            self.dispatch(DebateAudioFailed(generation, str(exc)))
            return
        self.dispatch(DebateAudioResolved(generation, audio))

    async def narrate(self) -> str:
        """Synthesize the analysis summary once; returns '' when unavailable."""
        state = self.state
        if state.analysis.status is not Status.DONE:
            raise ValidationError("There is no analysis to narrate yet.")
        if state.narration.status is not Status.IDLE:
            return state.narration.value or ""

        generation = state.generation
        self.dispatch(NarrationRequested(generation))
        try:
            artifact: SpeechArtifact = await pipeline.run_default_audio(
                pipeline.build_narration(state.analysis.value), self.config
            )
        except Exception as exc:
            logger.error("Narration error | generation=%d error=%s", generation, exc)
            self.dispatch(NarrationFailed(generation, NARRATION_ERROR_MESSAGE))
            return ""
        self.dispatch(NarrationResolved(generation, artifact.audio_data_uri))
        return artifact.audio_data_uri

    def save_to_log(self, log: MirrorLog) -> LogEntry:
        if not can_save(self.state):
            raise ValidationError("Both the analysis and the debate must be ready before saving.")
        data = pipeline.build_log_entry_data(
            self.state.request, self.state.analysis.value, self.state.debate_text.value
        )
        return log.add(data)
