import asyncio
import base64
import time
from typing import Dict, Any, Awaitable, Callable, Optional

from deception_mirror.audio import pcm_to_wav_data_uri
from deception_mirror.config import DEFAULT_VOICES
from deception_mirror.contracts import validate_speech, validate_speech_request
from deception_mirror.errors import ResponseShapeError, SynthesisError, ValidationError
from deception_mirror.logger import get_logger
from deception_mirror.models import SpeechArtifact
from deception_mirror.retry import RetryExhausted, linear_backoff, with_retry

logger = get_logger(__name__)

DEFAULT_TTS_MODEL = "gemini-2.5-flash-preview-tts"
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_SECONDS = 1.0
DEFAULT_TTS_TIMEOUT_SECONDS = 90


class EmptyMediaError(Exception):
    """The TTS call succeeded but carried no audio."""


def _extract_pcm(response: Any) -> bytes:
    """Pull the inline audio bytes out of a generate_content response."""
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            data = getattr(inline, "data", None) if inline is not None else None
            if not data:
                continue
            # older SDKs hand back the base64 text untouched
            if isinstance(data, str):
                data = base64.b64decode(data)
            return data
    raise EmptyMediaError("No media returned from TTS model.")


class SpeechSynthesizer:
    """Text -> WAV data URI for one named voice, with bounded linear-backoff retry.

    One instance per persona (narrator, advocate, skeptic); they differ only in
    voice and API key.
    """

    def __init__(
        self,
        persona: str,
        config: Dict[str, Any],
        voice: Optional[str] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.persona = persona
        self.voice = voice or (config.get("voices") or {}).get(persona) or DEFAULT_VOICES.get(persona, "Algenib")
        self.api_key = (config.get("tts_keys") or {}).get(persona) or config.get("gemini_key")
        self.model = config.get("tts_model", DEFAULT_TTS_MODEL)
        self.max_attempts = int(config.get("tts_max_attempts", DEFAULT_MAX_ATTEMPTS))
        self.backoff_seconds = float(config.get("tts_backoff_seconds", DEFAULT_BACKOFF_SECONDS))
        self.timeout = float(config.get("tts_timeout", DEFAULT_TTS_TIMEOUT_SECONDS))
        self._sleep = sleep
        self._client = None

    def __repr__(self) -> str:
        return f"SpeechSynthesizer(persona={self.persona!r}, voice={self.voice!r})"

    def _get_client(self):
        if self._client is None:
            if not self.api_key:
                raise SynthesisError(f"No TTS API key configured for the {self.persona} voice.")
            from google import genai

            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def _request_pcm(self, text: str) -> bytes:
        """One TTS round trip returning mono 24 kHz 16-bit PCM."""
        from google.genai import types

        client = self._get_client()
        response = await asyncio.wait_for(
            asyncio.to_thread(
                client.models.generate_content,
                model=self.model,
                contents=text,
                config=types.GenerateContentConfig(
                    response_modalities=["AUDIO"],
                    speech_config=types.SpeechConfig(
                        voice_config=types.VoiceConfig(
                            prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=self.voice),
                        ),
                    ),
                ),
            ),
            timeout=self.timeout,
        )
        return _extract_pcm(response)

    async def _attempt(self, text: str) -> SpeechArtifact:
        pcm = await self._request_pcm(text)
        if not pcm:
            raise EmptyMediaError("TTS model returned an empty audio payload.")
        check = validate_speech({"audioDataUri": pcm_to_wav_data_uri(pcm)})
        if not check.ok:
            raise ResponseShapeError("Synthesized audio is not a valid data URI.", violations=check.violations)
        return check.value

    async def synthesize(self, text: str) -> SpeechArtifact:
        request = validate_speech_request({"textToSpeak": text})
        if not request.ok:
            raise ValidationError("Text to speak is required.")
        if not self.api_key:
            raise SynthesisError(f"No TTS API key configured for the {self.persona} voice.", attempts=0)

        start = time.perf_counter()
        logger.info("TTS start | persona=%s voice=%s text_len=%d", self.persona, self.voice, len(text))
        try:
            artifact = await with_retry(
                lambda: self._attempt(text),
                max_attempts=self.max_attempts,
                backoff=linear_backoff(self.backoff_seconds),
                label=f"TTS[{self.persona}]",
                sleep=self._sleep,
            )
        except RetryExhausted as exc:
            elapsed = time.perf_counter() - start
            logger.error(
                "TTS FAILED | persona=%s attempts=%d elapsed=%.2fs last_error=%s",
                self.persona, exc.attempts, elapsed, exc.last_error,
            )
            raise SynthesisError(
                f"Failed to generate speech for {self.persona} after {exc.attempts} attempts. "
                f"Last error: {exc.last_error}",
                attempts=exc.attempts,
                last_error=exc.last_error,
            ) from exc.last_error

        elapsed = time.perf_counter() - start
        logger.info("TTS done  | persona=%s elapsed=%.2fs uri_len=%d", self.persona, elapsed, len(artifact.audio_data_uri))
        return artifact


def get_synthesizer(persona: str, config: Dict[str, Any]) -> SpeechSynthesizer:
    return SpeechSynthesizer(persona, config)
