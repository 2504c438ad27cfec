"""Tests for the analysis and debate clients with the LLM call faked out."""

import json

import pytest

from deception_mirror.agents import debater, deception_detector
from deception_mirror.errors import ProviderError, ResponseShapeError
from deception_mirror.models import Vertical


class RecordingLLM:
    """Fake for ``call_llm``: returns canned replies and records each prompt."""

    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def __call__(self, system_prompt, user_prompt, config):
        self.calls.append((system_prompt, user_prompt))
        if self.error:
            raise self.error
        return self.reply


class TestDeceptionDetector:

    @pytest.mark.asyncio
    async def test_returns_validated_analysis(self, monkeypatch, config, analysis_json):
        llm = RecordingLLM(reply=analysis_json)
        monkeypatch.setattr(deception_detector, "call_llm", llm)

        analysis = await deception_detector.run_deception_detector(
            "Buying options is always safer than stocks", [Vertical.FINANCE, Vertical.CAREER], config
        )

        assert 0 <= analysis.deception_risk_score <= 1
        assert 3 <= len(analysis.diagnosis) <= 5
        assert all(0 <= item.risk_score <= 1 for item in analysis.diagnosis)
        assert len(llm.calls) == 1

    @pytest.mark.asyncio
    async def test_prompt_contents(self, monkeypatch, config, analysis_json):
        llm = RecordingLLM(reply=analysis_json)
        monkeypatch.setattr(deception_detector, "call_llm", llm)

        await deception_detector.run_deception_detector("I can skip leg day", [Vertical.FITNESS, Vertical.MEDICINE], config)

        system_prompt, user_prompt = llm.calls[0]
        for dimension in deception_detector.RISK_DIMENSIONS:
            assert dimension in system_prompt
        assert "JSON" in system_prompt
        assert '"I can skip leg day"' in user_prompt
        assert "Verticals: Fitness, Medicine" in user_prompt

    @pytest.mark.asyncio
    async def test_provider_error_is_not_retried(self, monkeypatch, config):
        llm = RecordingLLM(error=ProviderError("connection reset"))
        monkeypatch.setattr(deception_detector, "call_llm", llm)

        with pytest.raises(ProviderError):
            await deception_detector.run_deception_detector("claim", [Vertical.FINANCE], config)
        assert len(llm.calls) == 1

    @pytest.mark.asyncio
    async def test_missing_tldr_is_shape_error(self, monkeypatch, config, analysis_payload):
        del analysis_payload["tldr"]
        monkeypatch.setattr(deception_detector, "call_llm", RecordingLLM(reply=json.dumps(analysis_payload)))

        with pytest.raises(ResponseShapeError) as exc_info:
            await deception_detector.run_deception_detector("claim", [Vertical.FINANCE], config)
        assert exc_info.value.fields == ["tldr"]


class TestDebater:

    @pytest.mark.asyncio
    async def test_returns_two_sides(self, monkeypatch, config, debate_json):
        llm = RecordingLLM(reply=debate_json)
        monkeypatch.setattr(debater, "call_llm", llm)

        debate = await debater.run_debater("Buying options is always safer than stocks", [Vertical.FINANCE], config)

        assert debate.advocate_text
        assert debate.skeptic_text
        assert not debate.advocate_text.startswith("Advocate:")
        assert not debate.skeptic_text.startswith("Skeptic:")
        system_prompt, user_prompt = llm.calls[0]
        assert "one turn" in system_prompt
        assert "Verticals: Finance" in user_prompt

    @pytest.mark.asyncio
    async def test_labelled_text_is_rejected(self, monkeypatch, config, debate_payload):
        debate_payload["advocateText"] = "Advocate: " + debate_payload["advocateText"]
        monkeypatch.setattr(debater, "call_llm", RecordingLLM(reply=json.dumps(debate_payload)))

        with pytest.raises(ResponseShapeError):
            await debater.run_debater("claim", [Vertical.FINANCE], config)

    @pytest.mark.asyncio
    async def test_prose_reply_is_shape_error(self, monkeypatch, config):
        monkeypatch.setattr(debater, "call_llm", RecordingLLM(reply="The advocate says yes."))

        with pytest.raises(ResponseShapeError):
            await debater.run_debater("claim", [Vertical.FINANCE], config)
