from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Vertical(str, Enum):
    FINANCE = "Finance"
    FITNESS = "Fitness"
    CAREER = "Career"
    RELATIONSHIPS = "Relationships"
    FAMOUS_PERSONAS = "Famous Personas"
    HISTORY = "History"
    MEDICINE = "Medicine"


class _CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _ResponseModel(_CamelModel):
    """Shape returned by a provider. Strict: a "0.4" string is not a score."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, strict=True, frozen=True)


class ClaimRequest(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    claim: str
    verticals: List[Vertical]

    @field_validator("claim")
    @classmethod
    def _claim_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("claim must not be empty")
        return value

    @field_validator("verticals")
    @classmethod
    def _at_least_one_vertical(cls, value: List[Vertical]) -> List[Vertical]:
        if not value:
            raise ValueError("at least one vertical is required")
        # de-duplicate, keep submission order
        return list(dict.fromkeys(value))

    @property
    def vertical_labels(self) -> str:
        return ", ".join(v.value for v in self.verticals)


class DiagnosisItem(_ResponseModel):
    bias: str = Field(min_length=1)
    diagnosis: str
    risk_score: float = Field(ge=0.0, le=1.0)


class DeceptionAnalysis(_ResponseModel):
    deception_risk_score: float = Field(ge=0.0, le=1.0)
    tldr: str = Field(min_length=1)
    diagnosis: List[DiagnosisItem] = Field(min_length=3, max_length=5)


class DebateText(_ResponseModel):
    advocate_text: str = Field(min_length=1)
    skeptic_text: str = Field(min_length=1)


class DebateAudio(_CamelModel):
    """Empty string on a side means synthesis failed for that side only."""
    advocate_audio: str = ""
    skeptic_audio: str = ""


class SpeechRequest(_ResponseModel):
    text_to_speak: str = Field(min_length=1)


class SpeechArtifact(_ResponseModel):
    audio_data_uri: str


class AnalysisResult(_CamelModel):
    deception_analysis: DeceptionAnalysis
    debate: str = ""


class LogEntry(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    claim: str
    verticals: List[Vertical]
    result: AnalysisResult
    timestamp: int  # epoch milliseconds
