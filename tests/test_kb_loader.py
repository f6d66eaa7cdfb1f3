"""Tests for knowledge-base slicing, filtering and signatures."""

from roibrain.core.business_intelligence import extract_intelligence
from roibrain.core.kb_loader import (
    filter_by_sections,
    filter_signature,
    get_kb_for_prompt,
    load_filtered,
    prompt_filter,
    validate_kb_completeness,
)
from roibrain.core.normalization import normalize_request
from roibrain.core.schemas_roi_brain import KBFilter, KBMaxItems, KnowledgePayload, ROIBrainRequest
from roibrain.core.signal_rules import get_kb_sections_for_tags


def _context(vertical="dental", answers=None):
    return normalize_request(
        ROIBrainRequest.model_validate({"vertical": vertical, "auditAnswers": answers or {}})
    )


def _ids(items):
    return [item["id"] for item in items]


def test_unfiltered_slice_contains_only_the_vertical():
    payload = load_filtered(_context("dental"))

    assert len(payload.skills) == 6
    assert all(s["vertical"] == "dental" for s in payload.skills)
    assert all("dental" in c["verticals"] for c in payload.claims)
    assert payload.brand["tagline"] == "AI Voice Assistant for Dental Practices"
    assert len(payload.pricing) == 3


def test_signal_tags_keep_matching_and_universal_skills():
    payload = load_filtered(_context(), KBFilter(signal_tags=["dental.missed_calls_high"]))

    assert _ids(payload.skills) == ["reception-24-7", "follow-up-agent", "review-booster"]


def test_excluded_categories_are_dropped_everywhere():
    payload = load_filtered(_context(), KBFilter(exclude_categories=["sales"]))

    assert "follow-up-agent" not in _ids(payload.skills)
    assert "treatment-plan-closer" not in _ids(payload.skills)
    assert all(c["category"] != "sales" for c in payload.claims)
    assert all(b["category"] != "sales" for b in payload.benchmarks)


def test_section_filter_is_monotonic():
    full = load_filtered(_context())
    small = filter_by_sections(full, ["skills.reception_247"])
    large = filter_by_sections(full, ["skills.reception_247", "claims.no_show_reduction", "skills.reminders"])

    for name in ("skills", "claims", "benchmarks", "faq", "pain_points"):
        small_ids = set(_ids(getattr(small, name)))
        large_ids = set(_ids(getattr(large, name)))
        assert small_ids <= large_ids
    assert "claims.no_show_reduction" in _ids(large.claims)


def test_truncation_respects_caps_and_priority():
    payload = load_filtered(_context(), KBFilter(max_items=KBMaxItems(skills=2), max_total_items=5))

    assert len(payload.skills) == 2
    assert all(s["priority"] == "high" for s in payload.skills)
    total = sum(
        len(getattr(payload, name)) for name in ("skills", "claims", "benchmarks", "faq", "pain_points")
    )
    assert total <= 5


def test_pricing_narrowed_by_business_size():
    context = _context(answers={"dental_chairs_active_choice": "1_2"})
    payload = load_filtered(context, intelligence=extract_intelligence(context))

    assert _ids(payload.pricing) == ["starter"]


def test_prompt_payload_for_missed_calls_scenario():
    context = _context(answers={"dailyUnansweredCalls": "11_20"})
    tags = ["dental.missed_calls_high"]
    sections = get_kb_sections_for_tags(tags)
    payload = get_kb_for_prompt(context, tags, sections)

    assert "reception-24-7" in _ids(payload.skills)
    assert "claims.24_7_availability" in _ids(payload.claims)
    assert set(payload.sections) <= set(sections)


def test_filter_signature_is_order_independent():
    tags = ["dental.no_shows_high", "dental.missed_calls_high"]
    sections = get_kb_sections_for_tags(tags)
    a = filter_signature("dental", prompt_filter(tags, sections), tags, sections)
    b = filter_signature(
        "dental", prompt_filter(list(reversed(tags)), list(reversed(sections))), reversed(tags), reversed(sections)
    )

    assert a == b
    assert a.startswith("kbf_")
    assert len(a) == 20


def test_filter_signature_changes_with_content():
    a = filter_signature("dental", None, ["dental.no_shows_high"], [])
    b = filter_signature("dental", None, ["dental.no_shows_critical"], [])
    c = filter_signature("hvac", None, ["dental.no_shows_high"], [])

    assert len({a, b, c}) == 3


def test_completeness_reports_missing_collections():
    report = validate_kb_completeness(KnowledgePayload())

    assert report["isComplete"] is False
    assert set(report["missingElements"]) == {"brand", "skills", "pain_points", "pricing", "faq"}
    assert validate_kb_completeness(load_filtered(_context()))["isComplete"] is True
