"""
Audio helpers: raw PCM -> WAV container -> data URI, and back.

TTS returns headerless signed 16-bit little-endian PCM; browsers need a
container, so the samples are wrapped in a RIFF/WAV header before encoding.
"""

import base64
import io
import wave

SAMPLE_RATE = 24000
CHANNELS = 1
SAMPLE_WIDTH = 2  # bytes, i.e. 16-bit

WAV_MIME = "audio/wav"


def pcm_to_wav(
    pcm_data: bytes,
    channels: int = CHANNELS,
    rate: int = SAMPLE_RATE,
    sample_width: int = SAMPLE_WIDTH,
) -> bytes:
    """Wrap raw PCM frames in a WAV container."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(rate)
        wf.writeframes(pcm_data)
    return buffer.getvalue()


def to_data_uri(payload: bytes, mime_type: str = WAV_MIME) -> str:
    return f"data:{mime_type};base64," + base64.b64encode(payload).decode("ascii")


def data_uri_to_bytes(data_uri: str) -> bytes:
    """Decode the payload of a base64 data URI (anything after the first comma)."""
    header, sep, payload = data_uri.partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        raise ValueError("not a base64 data URI")
    return base64.b64decode(payload)


def pcm_to_wav_data_uri(pcm_data: bytes) -> str:
    return to_data_uri(pcm_to_wav(pcm_data))
