"""ROI Brain orchestrator.

Request → normalize → cache lookup → (hit: return) → (miss: skills, knowledge,
prompt, model call, validate, distribute) → cache store → return.

This is the only place that turns exceptions into a status code and body.
"""

import asyncio
import copy
import logging
import time
import uuid
from typing import Any

from pydantic import BaseModel, ValidationError

from roibrain.chains.generate_roi_report import generate_roi_report
from roibrain.core.business_intelligence import extract_intelligence
from roibrain.core.cache import get_response_cache
from roibrain.core.config import get_settings
from roibrain.core.errors import (
    INTERNAL_ERROR_MESSAGE,
    INTERNAL_ERROR_TYPE,
    GenerationError,
    InputValidationError,
    OutputValidationError,
    ROIBrainError,
    RequestCancelled,
)
from roibrain.core.hashing import generate_cache_key
from roibrain.core.kb_loader import (
    available_sections,
    filter_signature,
    get_kb_for_prompt,
    prompt_filter,
)
from roibrain.core.logging import get_logger, log_with_context
from roibrain.core.normalization import normalize_request
from roibrain.core.output_distributor import (
    compute_parts,
    distribute_output,
    generate_fallback_insights,
    parse_model_output,
    validate_model_output,
)
from roibrain.core.prompt_builder import build_prompt, build_system_prompt, generate_contextual_prompt
from roibrain.core.schemas_roi_brain import (
    BusinessIntelligence,
    Costs,
    NormalizedContext,
    ProcessingTime,
    ROIBrainRequest,
)
from roibrain.core.signal_rules import (
    SIGNAL_RULES_VERSION,
    extract_signal_tags,
    get_kb_sections_for_tags,
    validate_bindings,
)
from roibrain.core.skill_mapping import SKILL_MAPPING_VERSION, build_skill_insights, validate_skill_mapping

logger = get_logger(__name__)


class ROIBrainResult(BaseModel):
    """Status code and JSON body produced for one request."""

    status_code: int
    body: dict[str, Any]


def _elapsed_ms(start: float) -> int:
    return int((time.time() - start) * 1000)


def new_session_id() -> str:
    return f"roi_{uuid.uuid4().hex[:16]}"


# =============================================================================
# Cache key
# =============================================================================


def build_cache_params(context: NormalizedContext, kb_filter_signature: str) -> dict[str, Any]:
    """
    Key material for a normalized request.

    Everything that changes the generated report is included; the session id
    and timestamps are not.
    """
    settings = get_settings()
    return {
        "vertical": context.vertical,
        "auditAnswers": context.audit_answers,
        "scoreOverall": context.score_summary.overall,
        "lossSummary": context.loss_summary.model_dump(by_alias=True),
        "kbVersion": settings.ROI_BRAIN_KB_VERSION,
        "promptVersion": settings.ROI_BRAIN_PROMPT_VERSION,
        "model": settings.ROI_BRAIN_MODEL,
        "modelParameters": {
            "temperature": settings.ROI_BRAIN_TEMPERATURE,
            "maxTokens": settings.ROI_BRAIN_MAX_TOKENS,
        },
        "locale": context.language,
        "kbFilterSignature": kb_filter_signature,
    }


# =============================================================================
# Miss path
# =============================================================================


async def compute_report(
    context: NormalizedContext,
    intelligence: BusinessIntelligence,
    signal_tags: list[str],
    section_ids: list[str],
    session_id: str,
    cache_metadata: dict[str, Any],
) -> dict[str, Any]:
    """
    Run the full generation pipeline for a cache miss.

    Returns:
        Response body (by alias) suitable for caching

    Raises:
        GenerationError: Model call failed, output unparseable, or no part valid
    """
    kb_payload = get_kb_for_prompt(context, signal_tags, section_ids, intelligence)
    skill_insights = build_skill_insights(
        signal_tags,
        context.loss_summary,
        context.vertical,
        intelligence.business_size,
        pain_points=kb_payload.pain_points,
    )

    contextual = generate_contextual_prompt(context, intelligence, skill_insights)
    prompt = build_prompt(contextual, kb_payload, context.language, context.vertical)

    generation = await generate_roi_report(
        prompt,
        build_system_prompt(context.vertical),
        session_id=session_id,
        vertical=context.vertical,
    )

    output = validate_model_output(parse_model_output(generation.text))
    parts = compute_parts(output)
    if not parts.any_valid:
        raise OutputValidationError(
            "Model output failed validation for every part",
            details={"parts": parts.model_dump(by_alias=True)},
        )

    response = distribute_output(
        output,
        parts,
        context,
        intelligence,
        session_id=session_id,
        costs=Costs(
            input_tokens=generation.input_tokens,
            output_tokens=generation.output_tokens,
            total_cost=generation.cost_usd,
        ),
        processing_time=ProcessingTime(ai=generation.duration_ms),
        metadata={
            **cache_metadata,
            "model": generation.model,
            "skillRecommendations": [s.model_dump(by_alias=True) for s in skill_insights],
            "kbSections": kb_payload.sections,
        },
    )
    return response.model_dump(by_alias=True)


# =============================================================================
# Error bodies
# =============================================================================


def error_body(
    error: Exception,
    session_id: str,
    start: float,
    context: NormalizedContext | None = None,
    intelligence: BusinessIntelligence | None = None,
) -> ROIBrainResult:
    """
    Convert an exception into a status code and body.

    Generation failures still carry the deterministic fallback insight when the
    business profile is known.
    """
    if isinstance(error, ROIBrainError):
        status = error.status_code
        err = {"type": type(error).__name__, "message": error.message}
        if error.details is not None:
            err["details"] = error.details
    else:
        status = 500
        err = {"type": INTERNAL_ERROR_TYPE, "message": INTERNAL_ERROR_MESSAGE}

    body: dict[str, Any] = {
        "success": False,
        "sessionId": session_id,
        "error": err,
        "cacheHit": False,
        "processingTime": {"total": _elapsed_ms(start), "ai": 0, "cache": 0},
    }
    if isinstance(error, RequestCancelled):
        body["cancelled"] = True
    elif isinstance(error, GenerationError) and context is not None and intelligence is not None:
        body["insights"] = generate_fallback_insights(intelligence, context.loss_summary)
        body["businessIntelligence"] = intelligence.model_dump(by_alias=True)
        body["lossSummary"] = context.loss_summary.model_dump(by_alias=True)
    return ROIBrainResult(status_code=status, body=body)


# =============================================================================
# Entry point
# =============================================================================


async def run_roi_brain(
    raw_request: Any,
    abort: asyncio.Event | None = None,
) -> ROIBrainResult:
    """
    Handle one ROI Brain request end to end.

    Args:
        raw_request: Decoded JSON body
        abort: Optional event set when the caller goes away

    Returns:
        ROIBrainResult (200 success, 400 input/output validation, 499 cancelled,
        500 upstream or unexpected failure)
    """
    start = time.time()
    session_id = new_session_id()
    context: NormalizedContext | None = None
    intelligence: BusinessIntelligence | None = None

    try:
        try:
            request = ROIBrainRequest.model_validate(raw_request)
        except ValidationError as e:
            raise InputValidationError(
                "Invalid request body", details=e.errors(include_url=False, include_context=False)
            ) from e
        session_id = request.session_id or session_id

        context = normalize_request(request)
        intelligence = extract_intelligence(context)
        signal_tags = extract_signal_tags(context.audit_answers, context.vertical)
        section_ids = get_kb_sections_for_tags(signal_tags)

        kb_signature = filter_signature(
            context.vertical, prompt_filter(signal_tags, section_ids), signal_tags, section_ids
        )
        cache_key = generate_cache_key(build_cache_params(context, kb_signature))
        settings = get_settings()
        cache_metadata = {
            "promptVersion": settings.ROI_BRAIN_PROMPT_VERSION,
            "kbVersion": settings.ROI_BRAIN_KB_VERSION,
            "signalRulesVersion": SIGNAL_RULES_VERSION,
            "skillMappingVersion": SKILL_MAPPING_VERSION,
            "signalTags": signal_tags,
            "kbFilterSignature": kb_signature,
            "cacheKey": cache_key[:16],
        }

        log_with_context(
            logger,
            logging.INFO,
            "ROI Brain request",
            session_id=session_id,
            vertical=context.vertical,
            signal_tags=len(signal_tags),
            urgency=intelligence.urgency_level,
        )

        def compute() -> Any:
            return compute_report(
                context, intelligence, signal_tags, section_ids, session_id, cache_metadata
            )

        lookup_start = time.time()
        result = await get_response_cache().get_or_compute(
            cache_key, compute, abort=abort, vertical=context.vertical
        )
        lookup_ms = _elapsed_ms(lookup_start)

        body = copy.deepcopy(result.payload)
        body["sessionId"] = session_id
        body["cacheHit"] = result.hit
        total = _elapsed_ms(start)
        if result.hit:
            body["processingTime"] = {"total": total, "ai": 0, "cache": lookup_ms}
        else:
            ai_ms = (body.get("processingTime") or {}).get("ai", 0)
            body["processingTime"] = {"total": total, "ai": ai_ms, "cache": max(0, lookup_ms - ai_ms)}
        body.setdefault("metadata", {})["cacheSource"] = result.source

        log_with_context(
            logger,
            logging.INFO,
            "ROI Brain response",
            session_id=session_id,
            cache_source=result.source,
            success=body.get("success"),
            total_ms=total,
        )
        return ROIBrainResult(status_code=200 if body.get("success") else 400, body=body)

    except RequestCancelled as e:
        logger.info(f"ROI Brain request {session_id} cancelled: {e.message}")
        return error_body(e, session_id, start)
    except ROIBrainError as e:
        logger.warning(f"ROI Brain request {session_id} failed ({e.status_code}): {e.message}")
        return error_body(e, session_id, start, context, intelligence)
    except Exception as e:
        logger.exception(f"Unexpected ROI Brain error for {session_id}: {e}")
        return error_body(e, session_id, start, context, intelligence)


# =============================================================================
# Startup checks
# =============================================================================


def check_configuration() -> dict[str, Any]:
    """
    Cross-check signal bindings and skill tables against the knowledge corpus.

    Observability only: problems are logged, serving is never blocked.
    """
    missing_sections = validate_bindings(available_sections())
    skill_report = validate_skill_mapping()

    for section_id in missing_sections:
        logger.warning(f"Signal binding references missing KB section: {section_id}")
    for warning in skill_report["warnings"]:
        logger.warning(warning)

    return {
        "missingSections": missing_sections,
        "missingSkills": skill_report["missingSkills"],
        "isValid": not missing_sections and skill_report["isValid"],
    }
