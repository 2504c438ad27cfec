"""End-to-end scenarios through the real agents with only the transports faked."""

import json

import pytest

from deception_mirror import pipeline
from deception_mirror.agents import debater, deception_detector
from deception_mirror.agents.speech import SpeechSynthesizer
from deception_mirror.errors import ResponseShapeError, ValidationError
from deception_mirror.state import Status, ViewController

CLAIM = "Buying options is always safer than stocks"


@pytest.fixture
def transports(monkeypatch, analysis_json, debate_json, pcm_bytes):
    """Fake the LLM and TTS round trips; count network calls."""
    calls = {"llm": 0, "tts": 0}

    def llm_for(reply):
        async def _call(system_prompt, user_prompt, config):
            calls["llm"] += 1
            return reply
        return _call

    async def fake_pcm(self, text):
        calls["tts"] += 1
        return pcm_bytes

    async def no_sleep(seconds):
        return None

    monkeypatch.setattr(deception_detector, "call_llm", llm_for(analysis_json))
    monkeypatch.setattr(debater, "call_llm", llm_for(debate_json))
    monkeypatch.setattr(SpeechSynthesizer, "_request_pcm", fake_pcm)
    monkeypatch.setattr(
        pipeline, "get_synthesizer",
        lambda persona, config: SpeechSynthesizer(persona, config, sleep=no_sleep),
    )
    return calls


@pytest.mark.asyncio
async def test_finance_claim(transports, config):
    analysis = await pipeline.run_analysis(CLAIM, ["Finance"], config)
    assert 0 <= analysis.deception_risk_score <= 1
    assert len(analysis.diagnosis) >= 3

    debate = await pipeline.run_debate_text(CLAIM, ["Finance"], config)
    assert debate.advocate_text and debate.skeptic_text

    audio = await pipeline.run_debate_audio(debate.advocate_text, debate.skeptic_text, config)
    assert audio.advocate_audio.startswith("data:audio/wav;base64,")
    assert audio.skeptic_audio.startswith("data:audio/wav;base64,")
    assert transports == {"llm": 2, "tts": 2}


@pytest.mark.asyncio
@pytest.mark.parametrize("entry_point", [pipeline.run_analysis, pipeline.run_debate_text])
async def test_no_verticals_means_no_network(transports, config, entry_point):
    with pytest.raises(ValidationError):
        await entry_point(CLAIM, [], config)
    assert transports == {"llm": 0, "tts": 0}


@pytest.mark.asyncio
async def test_missing_tldr_is_shape_error(transports, monkeypatch, config, analysis_payload):
    del analysis_payload["tldr"]

    async def reply(system_prompt, user_prompt, cfg):
        return json.dumps(analysis_payload)

    monkeypatch.setattr(deception_detector, "call_llm", reply)
    with pytest.raises(ResponseShapeError):
        await pipeline.run_analysis(CLAIM, ["Finance"], config)


@pytest.mark.asyncio
async def test_controller_end_to_end(transports, config):
    state = await ViewController(config).submit(CLAIM, ["Finance"])

    assert state.analysis.status is Status.DONE
    assert state.debate_text.status is Status.DONE
    assert state.debate_audio.value.advocate_audio.startswith("data:audio/wav;base64,")
    assert state.debate_audio.value.skeptic_audio.startswith("data:audio/wav;base64,")
