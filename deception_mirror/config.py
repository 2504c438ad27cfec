"""
Runtime configuration.

Everything comes from the environment (optionally a ``.env`` file) and is
handed around as a plain dict, so the agents stay free of global state.
"""

import os
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

PROVIDER_HUGGING_FACE = "Hugging Face"
PROVIDER_GEMINI = "Google Gemini"
PROVIDERS = (PROVIDER_HUGGING_FACE, PROVIDER_GEMINI)

PERSONAS = ("narrator", "advocate", "skeptic")

DEFAULT_VOICES = {
    "narrator": "Algenib",
    "advocate": "Achernar",
    "skeptic": "Algenib",
}

# The narrator key was historically called "default"
_PERSONA_ENV_ALIASES = {
    "narrator": ("NARRATOR", "DEFAULT"),
    "advocate": ("ADVOCATE",),
    "skeptic": ("SKEPTIC",),
}


def _first_env(*names: str) -> Optional[str]:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


def _tts_key(persona: str) -> Optional[str]:
    names = [f"GEMINI_API_KEY_TTS_{alias}" for alias in _PERSONA_ENV_ALIASES[persona]]
    return _first_env(*names, "GEMINI_API_KEY_TTS", "GEMINI_API_KEY")


def load_config(env_file: Optional[str] = None) -> Dict[str, Any]:
    """Read the environment into a config dict understood by every agent."""
    load_dotenv(env_file)

    return {
        "llm_provider": os.getenv("LLM_PROVIDER", PROVIDER_HUGGING_FACE),
        "hf_token": os.getenv("HF_TOKEN"),
        "hf_base_url": os.getenv("HF_BASE_URL", "https://router.huggingface.co/v1"),
        "hf_model": os.getenv("HF_MODEL", "openai/gpt-oss-120b:cerebras"),
        "gemini_key": os.getenv("GEMINI_API_KEY"),
        "gemini_model": os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        "llm_timeout": float(os.getenv("LLM_TIMEOUT_SECONDS", "60")),
        "tts_model": os.getenv("TTS_MODEL", "gemini-2.5-flash-preview-tts"),
        "tts_keys": {persona: _tts_key(persona) for persona in PERSONAS},
        "voices": {
            persona: os.getenv(f"TTS_VOICE_{persona.upper()}", DEFAULT_VOICES[persona])
            for persona in PERSONAS
        },
        "tts_max_attempts": int(os.getenv("TTS_MAX_ATTEMPTS", "3")),
        "tts_backoff_seconds": float(os.getenv("TTS_BACKOFF_SECONDS", "1.0")),
        "tts_timeout": float(os.getenv("TTS_TIMEOUT_SECONDS", "90")),
        "db_path": os.getenv("MIRROR_LOG_DB", "mirror_log.db"),
    }


def missing_settings(config: Dict[str, Any]) -> List[str]:
    """Names of the environment variables the current provider still needs."""
    missing: List[str] = []
    provider = config.get("llm_provider")
    if provider == PROVIDER_GEMINI:
        if not config.get("gemini_key"):
            missing.append("GEMINI_API_KEY")
    elif provider == PROVIDER_HUGGING_FACE:
        if not config.get("hf_token"):
            missing.append("HF_TOKEN")
    else:
        missing.append("LLM_PROVIDER")

    tts_keys = config.get("tts_keys") or {}
    if not all(tts_keys.get(persona) for persona in PERSONAS):
        missing.append("GEMINI_API_KEY_TTS")
    return missing
