"""
Shared fixtures for the Deception Mirror test suite.

No test talks to a real provider: the LLM and TTS seams are replaced with
in-process fakes.
"""

import json
import os
import tempfile
from typing import Any, Dict, List

import pytest

# ── Keep test runs out of the project's logs/ directory ─────────
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="deception-mirror-logs-"))
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from deception_mirror.audio import pcm_to_wav_data_uri
from deception_mirror.models import SpeechArtifact


@pytest.fixture
def config(tmp_path) -> Dict[str, Any]:
    return {
        "llm_provider": "Hugging Face",
        "hf_token": "hf_test_token",
        "hf_base_url": "https://router.example.test/v1",
        "hf_model": "test/model",
        "gemini_key": "gemini-test-key",
        "gemini_model": "gemini-test",
        "llm_timeout": 5,
        "tts_model": "gemini-test-tts",
        "tts_keys": {"narrator": "k-n", "advocate": "k-a", "skeptic": "k-s"},
        "voices": {"narrator": "Algenib", "advocate": "Achernar", "skeptic": "Algenib"},
        "tts_max_attempts": 3,
        "tts_backoff_seconds": 1.0,
        "tts_timeout": 5,
        "db_path": str(tmp_path / "mirror_log.db"),
    }


@pytest.fixture
def analysis_payload() -> Dict[str, Any]:
    return {
        "deceptionRiskScore": 0.72,
        "tldr": "Treating options as uniformly safer ignores leverage and time decay.",
        "diagnosis": [
            {"bias": "Cognitive Bias", "diagnosis": "Overconfidence in a single strategy.", "riskScore": 0.8},
            {"bias": "Context Distortion", "diagnosis": "Omits the risk of total premium loss.", "riskScore": 0.7},
            {"bias": "Honesty", "diagnosis": "The claim is broadly inaccurate.", "riskScore": 0.6},
            {"bias": "Multimodal Inconsistencies", "diagnosis": "Not applicable to text.", "riskScore": 0},
        ],
    }


@pytest.fixture
def debate_payload() -> Dict[str, str]:
    return {
        "advocateText": "Buying a put or call caps your loss at the premium you paid.",
        "skepticText": "Most options expire worthless, so the premium is often lost entirely.",
    }


@pytest.fixture
def analysis_json(analysis_payload) -> str:
    return json.dumps(analysis_payload)


@pytest.fixture
def debate_json(debate_payload) -> str:
    return json.dumps(debate_payload)


@pytest.fixture
def pcm_bytes() -> bytes:
    # 100 frames of silence, 16-bit mono
    return b"\x00\x00" * 100


@pytest.fixture
def wav_uri(pcm_bytes) -> str:
    return pcm_to_wav_data_uri(pcm_bytes)


class FakeSynthesizer:
    """Stands in for SpeechSynthesizer; fails when told to."""

    def __init__(self, persona: str, uri: str, fail: bool = False):
        self.persona = persona
        self.uri = uri
        self.fail = fail
        self.calls: List[str] = []

    async def synthesize(self, text: str) -> SpeechArtifact:
        from deception_mirror.errors import SynthesisError

        self.calls.append(text)
        if self.fail:
            raise SynthesisError(f"{self.persona} voice is down", attempts=3)
        return SpeechArtifact(audio_data_uri=self.uri)


@pytest.fixture
def fake_synthesizers(monkeypatch, wav_uri):
    """Patch the pipeline's synthesizer factory; returns the per-persona fakes."""
    from deception_mirror import pipeline

    fakes = {
        persona: FakeSynthesizer(persona, wav_uri)
        for persona in ("narrator", "advocate", "skeptic")
    }
    monkeypatch.setattr(pipeline, "get_synthesizer", lambda persona, config: fakes[persona])
    return fakes
