"""LLM usage logger for token/cost tracking of report generation."""

from roibrain.core.logging import get_logger
from roibrain.db.supabase_client import get_supabase

logger = get_logger(__name__)

USAGE_TABLE = "llm_usage_log"

# Pricing per 1M tokens: (input, output)
MODEL_PRICING: dict[str, tuple[float, float]] = {
    "claude-opus-4-5-20251101": (15.0, 75.0),
    "claude-sonnet-4-5-20250929": (3.0, 15.0),
    "claude-sonnet-4-20250514": (3.0, 15.0),
    "claude-haiku-4-5-20251001": (0.80, 4.0),
    "claude-3-5-haiku-20241022": (0.80, 4.0),
    "claude-3-5-sonnet-20241022": (3.0, 15.0),
}


def estimate_cost(model: str, tokens_input: int, tokens_output: int) -> float:
    """Estimate cost in USD based on model pricing."""
    pricing = MODEL_PRICING.get(model)
    if not pricing:
        # Try prefix match for dated model variants
        for key, val in MODEL_PRICING.items():
            if model.startswith(key.rsplit("-", 1)[0]):
                pricing = val
                break
    if not pricing:
        logger.warning(f"No pricing found for model '{model}', using $0")
        return 0.0

    input_rate, output_rate = pricing
    cost = (tokens_input * input_rate / 1_000_000) + (tokens_output * output_rate / 1_000_000)
    return round(cost, 6)


def log_llm_usage(
    workflow: str,
    model: str,
    tokens_input: int,
    tokens_output: int,
    duration_ms: int = 0,
    session_id: str | None = None,
    vertical: str | None = None,
    chain: str | None = None,
) -> None:
    """Log an LLM call to the usage tracking table. Never raises."""
    try:
        row = {
            "workflow": workflow,
            "model": model,
            "provider": "anthropic",
            "tokens_input": tokens_input,
            "tokens_output": tokens_output,
            "estimated_cost_usd": estimate_cost(model, tokens_input, tokens_output),
            "duration_ms": duration_ms,
        }
        if session_id:
            row["session_id"] = session_id
        if vertical:
            row["vertical"] = vertical
        if chain:
            row["chain"] = chain

        get_supabase().table(USAGE_TABLE).insert(row).execute()

        logger.debug(
            f"LLM usage logged: {workflow}/{chain or '-'} "
            f"model={model} tokens={tokens_input}+{tokens_output} "
            f"cost=${row['estimated_cost_usd']:.4f}"
        )
    except Exception as e:
        # Never fail the main operation due to logging
        logger.error(f"Failed to log LLM usage: {e}")
