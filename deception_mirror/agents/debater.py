import time
from typing import Dict, Any, Sequence

from deception_mirror.contracts import parse_model_json, validate_debate
from deception_mirror.llm import call_llm
from deception_mirror.logger import get_logger
from deception_mirror.models import DebateText, Vertical

logger = get_logger(__name__)

SYSTEM_PROMPT = """You are facilitating a debate between an Advocate and a Skeptic regarding a user's claim.
The Advocate provides arguments in favor of the claim, while the Skeptic raises concerns, evidence-backed pushback and counter-arguments.
The goal is to provide a balanced perspective that helps the user evaluate the claim critically.

INSTRUCTIONS:
- Provide the arguments for the Advocate and the Skeptic separately.
- Each side has exactly one turn.
- Do not include the speaker's name (e.g. "Advocate:" or "Skeptic:") in the text itself.

You MUST ONLY respond with a single, valid JSON object with the following structure:
{
  "advocateText": "...",
  "skepticText": "..."
}
Do not use Markdown formatting. Do not add any other text or explanation before or after the JSON object."""


def build_user_prompt(claim: str, verticals: Sequence[Vertical]) -> str:
    labels = ", ".join(getattr(v, "value", v) for v in verticals)
    return (
        "Here is the user's claim and its context.\n"
        f'Claim: "{claim}"\n'
        f"Verticals: {labels}"
    )


async def run_debater(claim: str, verticals: Sequence[Vertical], config: Dict[str, Any]) -> DebateText:
    start = time.perf_counter()
    claim_short = claim[:80]
    logger.info("Debate start | claim='%s'", claim_short)

    response = await call_llm(SYSTEM_PROMPT, build_user_prompt(claim, verticals), config)
    debate = parse_model_json(response, validate_debate, "debate")

    elapsed = time.perf_counter() - start
    logger.info(
        "Debate done  | claim='%s' advocate_len=%d skeptic_len=%d elapsed=%.2fs",
        claim_short, len(debate.advocate_text), len(debate.skeptic_text), elapsed,
    )
    return debate
