import asyncio
import time
from typing import Dict, Any, Optional

from openai import AsyncOpenAI

from deception_mirror.config import PROVIDER_GEMINI, PROVIDER_HUGGING_FACE
from deception_mirror.errors import ProviderError
from deception_mirror.logger import get_logger

logger = get_logger(__name__)

DEFAULT_LLM_TIMEOUT_SECONDS = 60

# ---------------------------------------------------------------------------
# Singleton async client – created once, reused across concurrent calls
# ---------------------------------------------------------------------------
_hf_client: Optional[AsyncOpenAI] = None
_hf_client_key: Optional[str] = None  # track config to detect changes
_hf_client_loop_id: Optional[int] = None  # track event loop identity


def _get_hf_client(config: Dict[str, Any]) -> AsyncOpenAI:
    """Return a reusable OpenAI-compatible client for the Hugging Face router.

    The client is recreated when the running event loop changes
    (each Streamlit rerun calls ``asyncio.run()`` again).
    """
    global _hf_client, _hf_client_key, _hf_client_loop_id
    cache_key = f"{config.get('hf_base_url')}|{config.get('hf_token')}"

    try:
        current_loop_id = id(asyncio.get_running_loop())
    except RuntimeError:
        current_loop_id = None

    needs_rebuild = (
        _hf_client is None
        or _hf_client_key != cache_key
        or _hf_client_loop_id != current_loop_id
    )
    if needs_rebuild:
        _hf_client = AsyncOpenAI(base_url=config["hf_base_url"], api_key=config["hf_token"])
        _hf_client_key = cache_key
        _hf_client_loop_id = current_loop_id
        logger.info("Created new AsyncOpenAI client for %s (loop=%s)", config["hf_base_url"], current_loop_id)
    assert _hf_client is not None
    return _hf_client


# ---------------------------------------------------------------------------
# Main async entry point
# ---------------------------------------------------------------------------

async def call_llm(system_prompt: str, user_prompt: str, config: Dict[str, Any]) -> str:
    """One chat round trip. Returns the reply text or raises ProviderError."""
    provider = config.get("llm_provider", PROVIDER_HUGGING_FACE)
    start = time.perf_counter()
    logger.info("LLM call start | provider=%s prompt_len=%d", provider, len(system_prompt) + len(user_prompt))

    if provider == PROVIDER_HUGGING_FACE:
        return await _call_hugging_face(system_prompt, user_prompt, config, start)
    elif provider == PROVIDER_GEMINI:
        return await _call_gemini(system_prompt, user_prompt, config, start)
    logger.error("Invalid provider: %s", provider)
    raise ProviderError(f"Invalid LLM provider: {provider!r}")


async def _call_hugging_face(system_prompt: str, user_prompt: str, config: Dict[str, Any], start: float) -> str:
    """Hugging Face router path – OpenAI-compatible chat completions."""
    if not config.get("hf_token"):
        raise ProviderError("HF_TOKEN is not configured.")

    timeout = config.get("llm_timeout", DEFAULT_LLM_TIMEOUT_SECONDS)
    client = _get_hf_client(config)
    try:
        chat_result = await asyncio.wait_for(
            client.chat.completions.create(
                model=config["hf_model"],
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            ),
            timeout=timeout,
        )
    except asyncio.TimeoutError as exc:
        elapsed = time.perf_counter() - start
        logger.warning("LLM TIMEOUT | provider=HuggingFace elapsed=%.2fs", elapsed)
        raise ProviderError(f"LLM request timed out after {timeout}s") from exc
    except Exception as exc:
        elapsed = time.perf_counter() - start
        logger.error("LLM ERROR | provider=HuggingFace elapsed=%.2fs error=%s", elapsed, exc, exc_info=True)
        raise ProviderError(f"LLM request failed: {exc}") from exc

    choices = getattr(chat_result, "choices", None) or []
    text = (choices[0].message.content or "") if choices else ""
    elapsed = time.perf_counter() - start
    if not text.strip():
        logger.warning("LLM EMPTY | provider=HuggingFace elapsed=%.2fs", elapsed)
        raise ProviderError("Received an empty response from the model.")
    logger.info("LLM call done  | provider=HuggingFace elapsed=%.2fs resp_len=%d", elapsed, len(text))
    return text


async def _call_gemini(system_prompt: str, user_prompt: str, config: Dict[str, Any], start: float) -> str:
    """Gemini path – sync google-genai SDK run in a thread with a timeout."""
    api_key = config.get("gemini_key")
    if not api_key:
        raise ProviderError("GEMINI_API_KEY is not configured.")

    from google import genai
    from google.genai import types

    timeout = config.get("llm_timeout", DEFAULT_LLM_TIMEOUT_SECONDS)
    client = genai.Client(api_key=api_key)
    try:
        response = await asyncio.wait_for(
            asyncio.to_thread(
                client.models.generate_content,
                model=config.get("gemini_model", "gemini-2.5-flash"),
                contents=user_prompt,
                config=types.GenerateContentConfig(
                    system_instruction=system_prompt,
                    response_mime_type="application/json",
                ),
            ),
            timeout=timeout,
        )
    except asyncio.TimeoutError as exc:
        elapsed = time.perf_counter() - start
        logger.warning("LLM TIMEOUT | provider=Gemini elapsed=%.2fs", elapsed)
        raise ProviderError(f"LLM request timed out after {timeout}s") from exc
    except Exception as exc:
        elapsed = time.perf_counter() - start
        logger.error("LLM ERROR | provider=Gemini elapsed=%.2fs error=%s", elapsed, exc, exc_info=True)
        raise ProviderError(f"LLM request failed: {exc}") from exc

    text = response.text or ""
    elapsed = time.perf_counter() - start
    if not text.strip():
        logger.warning("LLM EMPTY | provider=Gemini elapsed=%.2fs", elapsed)
        raise ProviderError("Received an empty response from the model.")
    logger.info("LLM call done  | provider=Gemini elapsed=%.2fs resp_len=%d", elapsed, len(text))
    return text
