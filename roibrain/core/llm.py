"""LLM client utilities: Anthropic client factory and JSON recovery from model text."""

import json
import re
from typing import Any

from anthropic import AsyncAnthropic

from roibrain.core.config import get_settings


def get_anthropic_client() -> AsyncAnthropic:
    """
    Get an Anthropic client configured from settings.

    Returns:
        AsyncAnthropic instance
    """
    settings = get_settings()
    return AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY)


def _strip_llm_fences(raw_output: str) -> str:
    """Strip markdown code fences from LLM output.

    Handles: ```json ... ```, ``` ... ```, leading/trailing whitespace.
    """
    cleaned = raw_output.strip()

    # Extract JSON from markdown code fences
    fence_match = re.search(r"```(?:json)?\s*\n?(.*?)```", cleaned, re.DOTALL)
    if fence_match:
        return fence_match.group(1).strip()

    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def _balanced_object(text: str) -> str | None:
    """Return the first brace-balanced ``{...}`` substring, ignoring braces inside strings."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start : i + 1]
        start = text.find("{", start + 1)
    return None


def _loads_object(candidate: str | None) -> dict[str, Any] | None:
    if not candidate:
        return None
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def parse_llm_json_dict(raw_output: str) -> dict[str, Any]:
    """
    Recover a JSON object from LLM output.

    Strategies, first success wins:
    1. The whole text as JSON
    2. The contents of a markdown code fence
    3. The first brace-balanced substring

    Args:
        raw_output: Raw string from LLM response

    Returns:
        Parsed dict

    Raises:
        ValueError: If no strategy yields a JSON object
    """
    text = raw_output or ""
    for candidate in (text.strip(), _strip_llm_fences(text), _balanced_object(text)):
        parsed = _loads_object(candidate)
        if parsed is not None:
            return parsed
    raise ValueError("No JSON object found in model output")
