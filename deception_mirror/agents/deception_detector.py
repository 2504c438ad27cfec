import time
from typing import Dict, Any, Sequence

from deception_mirror.contracts import parse_model_json, validate_analysis
from deception_mirror.llm import call_llm
from deception_mirror.logger import get_logger
from deception_mirror.models import DeceptionAnalysis, Vertical

logger = get_logger(__name__)

RISK_DIMENSIONS = (
    "Honesty",
    "Intentionality",
    "Cognitive Bias",
    "Emotional Manipulation",
    "Context Distortion",
    "Synthetic Content Risk",
    "Social Engineering",
    "Multimodal Inconsistencies",
)

SYSTEM_PROMPT = """You are a systems thinking psychologist who specializes in identifying cognitive biases and patterns of self-deception using a multi-dimensional risk model. Analyze the user's claim within the given verticals.

Your analysis must cover the following dimensions. For each dimension, provide a brief, one-sentence diagnosis explaining its relevance to the claim, and a numerical riskScore from 0.0 to 1.0.
- Honesty: Assess the factual accuracy and potential for misleading statements.
- Intentionality: Evaluate if the deception seems deliberate or unintentional.
- Cognitive Bias: Identify specific cognitive biases at play (e.g., Confirmation Bias, Overconfidence).
- Emotional Manipulation: Check for the use of emotionally charged language to bypass logic.
- Context Distortion: Look for cherry-picking facts or omitting key context.
- Synthetic Content Risk: Assess if the claim could be based on or generating synthetic/AI-created misinformation.
- Social Engineering: Evaluate if the claim could be used to manipulate others.
- Multimodal Inconsistencies: Not applicable to text-only claims; if you mention it, its riskScore MUST be 0.

Based on your analysis, you MUST ONLY respond with a single, valid JSON object with the following structure:
1. "deceptionRiskScore": An overall risk score from 0 to 1, aggregating the risk from all dimensions. This should be a thoughtful average of the individual dimension scores.
2. "tldr": A single, concise sentence summarizing the core psychological pitfall.
3. "diagnosis": An array of 3-5 of the most relevant findings. Each finding is an object with "bias" (dimension name, e.g. "Cognitive Bias"), "diagnosis" (your one-sentence explanation) and "riskScore" (a number between 0.0 and 1.0 for that dimension).

Do not use Markdown formatting. Do not add any other text or explanation before or after the JSON object."""


def _labels(verticals: Sequence[Vertical]) -> str:
    return ", ".join(getattr(v, "value", v) for v in verticals)


def build_user_prompt(claim: str, verticals: Sequence[Vertical]) -> str:
    return (
        "Here is the user's claim and its context. Please analyze it.\n"
        f'Claim: "{claim}"\n'
        f"Verticals: {_labels(verticals)}"
    )


async def run_deception_detector(claim: str, verticals: Sequence[Vertical], config: Dict[str, Any]) -> DeceptionAnalysis:
    start = time.perf_counter()
    claim_short = claim[:80]
    logger.info("Deception analysis start | claim='%s' verticals=%s", claim_short, _labels(verticals))

    response = await call_llm(SYSTEM_PROMPT, build_user_prompt(claim, verticals), config)
    analysis = parse_model_json(response, validate_analysis, "analysis")

    elapsed = time.perf_counter() - start
    logger.info(
        "Deception analysis done  | claim='%s' score=%.2f findings=%d elapsed=%.2fs",
        claim_short, analysis.deception_risk_score, len(analysis.diagnosis), elapsed,
    )
    return analysis
