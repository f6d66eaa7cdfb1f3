"""Knowledge-base loading and filtering for the ROI Brain prompt.

Produces a bounded KnowledgePayload from the static corpus. All functions are
pure: the corpus is never mutated and the same inputs give the same payload.
"""

import copy
from collections.abc import Iterable
from typing import Any

from roibrain.core import kb_corpus
from roibrain.core.hashing import sha256_hex, stable_json
from roibrain.core.logging import get_logger
from roibrain.core.schemas_roi_brain import (
    BusinessIntelligence,
    KBFilter,
    KBMaxItems,
    KnowledgePayload,
    NormalizedContext,
)

logger = get_logger(__name__)

# ============================================================================
# Constants
# ============================================================================

PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}

# Order in which collections draw from a global item budget
COLLECTION_ORDER = ("skills", "claims", "benchmarks", "faq", "pain_points")

PROMPT_MAX_ITEMS = KBMaxItems(skills=8, claims=8, benchmarks=6, faq=12, pain_points=10)

SIZE_ORDER = {"small": 0, "medium": 1, "large": 2}


# ============================================================================
# Corpus slicing
# ============================================================================


def _covered_sections(payload: KnowledgePayload) -> set[str]:
    covered: set[str] = set()
    for skill in payload.skills:
        covered.update(skill.get("sections", []))
    covered.update(item["id"] for item in payload.claims)
    covered.update(item["id"] for item in payload.benchmarks)
    return covered


def _pricing_for(intelligence: BusinessIntelligence | None) -> list[dict[str, Any]]:
    if intelligence is None:
        return copy.deepcopy(kb_corpus.PRICING)
    rank = SIZE_ORDER[intelligence.business_size]
    return [copy.deepcopy(t) for t in kb_corpus.PRICING if SIZE_ORDER[t["max_size"]] == rank]


def _vertical_slice(vertical: str, intelligence: BusinessIntelligence | None) -> KnowledgePayload:
    """Everything the corpus holds for one vertical, in corpus order."""
    payload = KnowledgePayload(
        brand={**copy.deepcopy(kb_corpus.BRAND), "tagline": kb_corpus.TAGLINES[vertical]},
        response_models=copy.deepcopy(kb_corpus.RESPONSE_MODELS[vertical]),
        skills=[copy.deepcopy(s) for s in kb_corpus.VOICE_SKILLS if s["vertical"] == vertical],
        pain_points=copy.deepcopy(kb_corpus.PAIN_POINTS[vertical]),
        claims=[copy.deepcopy(c) for c in kb_corpus.CLAIMS if vertical in c["verticals"]],
        benchmarks=[copy.deepcopy(b) for b in kb_corpus.BENCHMARKS if vertical in b["verticals"]],
        faq=copy.deepcopy(kb_corpus.FAQ[vertical]),
        pricing=_pricing_for(intelligence),
    )
    payload.sections = sorted(_covered_sections(payload))
    return payload


def available_sections() -> list[str]:
    """Section ids served by the corpus; input to binding validation."""
    return kb_corpus.section_ids()


# ============================================================================
# Filtering
# ============================================================================


def _item_sections(item: dict[str, Any]) -> set[str]:
    """Section ids an item belongs to: explicit ids, else keyword matches."""
    if item.get("sections"):
        return set(item["sections"])
    if "." in str(item.get("id", "")):
        return {item["id"]}
    text = " ".join(
        str(item.get(field, "")) for field in ("title", "question", "answer", "text")
    ).lower()
    matched: set[str] = set()
    for keyword, sections in kb_corpus.KEYWORD_SECTIONS.items():
        if keyword in text:
            matched.update(sections)
    return matched


def filter_by_sections(payload: KnowledgePayload, section_ids: Iterable[str]) -> KnowledgePayload:
    """
    Keep only items bound to one of the selected sections.

    Monotonic: a superset of section ids never yields fewer items.
    Brand, response models and pricing are not section-bound and pass through.

    Args:
        payload: Payload to narrow
        section_ids: Selected knowledge-section ids

    Returns:
        New KnowledgePayload
    """
    selected = set(section_ids)

    def keep(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return [item for item in items if _item_sections(item) & selected]

    narrowed = payload.model_copy(
        update={
            "skills": keep(payload.skills),
            "pain_points": keep(payload.pain_points),
            "claims": keep(payload.claims),
            "benchmarks": keep(payload.benchmarks),
            "faq": keep(payload.faq),
        }
    )
    narrowed.sections = sorted(_covered_sections(narrowed) & selected)
    return narrowed


def _rank(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    # sorted() is stable, so equal priorities keep corpus order
    return sorted(items, key=lambda item: PRIORITY_RANK.get(item.get("priority", "low"), 2))


def _truncate(
    payload: KnowledgePayload, max_items: KBMaxItems | None, max_total: int | None
) -> KnowledgePayload:
    update: dict[str, list[dict[str, Any]]] = {}
    remaining = max_total
    for name in COLLECTION_ORDER:
        items = _rank(getattr(payload, name))
        cap = getattr(max_items, name) if max_items is not None else None
        if cap is not None:
            items = items[: max(cap, 0)]
        if remaining is not None:
            items = items[: max(remaining, 0)]
            remaining -= len(items)
        update[name] = items
    truncated = payload.model_copy(update=update)
    truncated.sections = sorted(_covered_sections(truncated) & set(payload.sections))
    return truncated


def load_filtered(
    context: NormalizedContext,
    kb_filter: KBFilter | None = None,
    intelligence: BusinessIntelligence | None = None,
) -> KnowledgePayload:
    """
    Load the knowledge slice for a request.

    Without a filter the full vertical slice is returned. With a filter:
    skills must share a tag with ``signal_tags`` (untagged skills are
    universal), ``exclude_categories`` are dropped from every collection,
    ``section_ids`` restricts items to bound sections, and ``max_items`` /
    ``max_total_items`` truncate in priority order.

    Args:
        context: Normalized request context
        kb_filter: Optional filter
        intelligence: When given, pricing is narrowed to the matching tier

    Returns:
        KnowledgePayload
    """
    vertical = context.vertical
    payload = _vertical_slice(vertical, intelligence)
    if kb_filter is None:
        return payload

    if kb_filter.signal_tags:
        wanted = set(kb_filter.signal_tags)
        payload.skills = [
            s
            for s in payload.skills
            if not s.get("tags") or {f"{vertical}.{t}" for t in s["tags"]} & wanted
        ]

    if kb_filter.exclude_categories:
        excluded = set(kb_filter.exclude_categories)
        for name in COLLECTION_ORDER:
            setattr(
                payload,
                name,
                [item for item in getattr(payload, name) if item.get("category") not in excluded],
            )

    payload.sections = sorted(_covered_sections(payload))

    if kb_filter.section_ids is not None:
        payload = filter_by_sections(payload, kb_filter.section_ids)

    if kb_filter.max_items is not None or kb_filter.max_total_items is not None:
        payload = _truncate(payload, kb_filter.max_items, kb_filter.max_total_items)

    return payload


def prompt_filter(signal_tags: list[str], section_ids: list[str]) -> KBFilter:
    """Default filter used when assembling the generative prompt."""
    return KBFilter(
        signal_tags=sorted(signal_tags) or None,
        section_ids=sorted(section_ids) or None,
        max_items=PROMPT_MAX_ITEMS,
    )


def get_kb_for_prompt(
    context: NormalizedContext,
    signal_tags: list[str],
    section_ids: list[str],
    intelligence: BusinessIntelligence | None = None,
) -> KnowledgePayload:
    """Knowledge slice for the prompt, capped to keep the prompt bounded."""
    payload = load_filtered(context, prompt_filter(signal_tags, section_ids), intelligence)
    report = validate_kb_completeness(payload)
    if not report["isComplete"]:
        logger.info(f"KB payload incomplete for {context.vertical}: {report['missingElements']}")
    return payload


def filter_signature(
    vertical: str,
    kb_filter: KBFilter | None,
    signal_tags: Iterable[str],
    section_ids: Iterable[str],
) -> str:
    """
    Stable identifier of a filtered knowledge slice, used in the cache key.

    Inputs are sorted before hashing, so ordering never changes the result.

    Returns:
        ``kbf_`` followed by 16 lowercase hex characters
    """
    filter_dump: dict[str, Any] | None = None
    if kb_filter is not None:
        filter_dump = kb_filter.model_dump(by_alias=True, exclude_none=True)
        for field, value in filter_dump.items():
            if isinstance(value, list):
                filter_dump[field] = sorted(value)
    material = {
        "vertical": vertical,
        "filter": filter_dump,
        "signalTags": sorted(set(signal_tags)),
        "sections": sorted(set(section_ids)),
    }
    return "kbf_" + sha256_hex(stable_json(material))[:16]


def validate_kb_completeness(payload: KnowledgePayload) -> dict[str, Any]:
    """Report which essential collections are missing from a payload."""
    checks = {
        "brand": "Brand information missing from KB payload",
        "skills": "No voice skills available in KB payload",
        "pain_points": "No pain points available in KB payload",
        "pricing": "No pricing information available in KB payload",
        "faq": "No FAQ items available in KB payload",
    }
    missing = [name for name in checks if not getattr(payload, name)]
    return {
        "isComplete": not missing,
        "warnings": [checks[name] for name in missing],
        "missingElements": missing,
    }
