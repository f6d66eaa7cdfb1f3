"""Generate the ROI report from an assembled prompt.

Single Anthropic call per cache miss. The raw text is returned unparsed;
parsing and per-part validation happen in the output distributor.
"""

import asyncio
import time

from anthropic import APIError
from pydantic import BaseModel

from roibrain.core.config import get_settings
from roibrain.core.errors import UpstreamModelError
from roibrain.core.llm import get_anthropic_client
from roibrain.core.llm_usage import estimate_cost, log_llm_usage
from roibrain.core.logging import get_logger

logger = get_logger(__name__)

WORKFLOW = "roi_brain_report"


class ReportGeneration(BaseModel):
    """Raw model text plus usage of one generation call."""

    text: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    duration_ms: int = 0
    cost_usd: float = 0.0


async def generate_roi_report(
    prompt: str,
    system_prompt: str,
    session_id: str | None = None,
    vertical: str | None = None,
) -> ReportGeneration:
    """
    Call the model with the assembled prompt.

    Args:
        prompt: User prompt (context, language rules, schema, knowledge)
        system_prompt: Consultant persona for the vertical
        session_id: Session identifier for usage logging
        vertical: Business vertical for usage logging

    Returns:
        ReportGeneration with raw text and token usage

    Raises:
        UpstreamModelError: If the API call fails or returns no text
    """
    settings = get_settings()
    client = get_anthropic_client()
    model = settings.ROI_BRAIN_MODEL

    start = time.time()
    try:
        response = await client.messages.create(
            model=model,
            max_tokens=settings.ROI_BRAIN_MAX_TOKENS,
            temperature=settings.ROI_BRAIN_TEMPERATURE,
            system=system_prompt,
            messages=[{"role": "user", "content": prompt}],
        )
    except APIError as e:
        logger.error(f"ROI report generation failed: {e}")
        raise UpstreamModelError(f"Model call failed: {e}") from e
    duration_ms = int((time.time() - start) * 1000)

    usage = response.usage
    await asyncio.to_thread(
        log_llm_usage,
        workflow=WORKFLOW,
        model=model,
        tokens_input=usage.input_tokens,
        tokens_output=usage.output_tokens,
        duration_ms=duration_ms,
        session_id=session_id,
        vertical=vertical,
        chain="generate_roi_report",
    )

    text = ""
    if response.content:
        text = (getattr(response.content[0], "text", "") or "").strip()
    if not text:
        raise UpstreamModelError(
            "Model returned empty content",
            details={"stopReason": getattr(response, "stop_reason", None)},
        )

    logger.info(
        f"ROI report generated in {duration_ms}ms "
        f"({usage.input_tokens} in / {usage.output_tokens} out)"
    )

    return ReportGeneration(
        text=text,
        model=model,
        input_tokens=usage.input_tokens,
        output_tokens=usage.output_tokens,
        duration_ms=duration_ms,
        cost_usd=estimate_cost(model, usage.input_tokens, usage.output_tokens),
    )
