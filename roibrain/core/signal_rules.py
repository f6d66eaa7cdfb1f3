"""Deterministic signal-tag extraction and knowledge-section bindings.

Audit answers are run through an ordered list of side-effect-free rules. Each
matching rule contributes tags; the result is namespaced by vertical and
sorted so the same answers always yield the same list. A rule that raises is
logged and treated as a non-match.

No LLM in this path.
"""

from collections import Counter
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from roibrain.core.logging import get_logger

logger = get_logger(__name__)

SIGNAL_RULES_VERSION = "v1.0"

# Process-wide tally of predicate failures by rule name
_rule_failures: Counter[str] = Counter()

# ============================================================================
# Constants
# ============================================================================

THRESHOLDS: dict[str, int] = {
    "COLD_PLANS_HIGH": 10,
    "PENDING_QUOTES_HIGH": 20,
}

# Canonical answer key → camelCase key sent by the web audit client
ANSWER_ALIASES: dict[str, str] = {
    "daily_unanswered_calls_choice": "dailyUnansweredCalls",
    "hvac_daily_unanswered_calls_choice": "hvacDailyUnansweredCalls",
    "weekly_no_shows_choice": "weeklyNoShows",
    "weekly_job_cancellations_choice": "weeklyJobCancellations",
    "monthly_cold_treatment_plans": "monthlyColdTreatmentPlans",
    "treatment_acceptance_rate_choice": "treatmentAcceptanceRate",
    "monthly_pending_quotes": "monthlyPendingQuotes",
    "immediate_quote_acceptance_choice": "immediateQuoteAcceptance",
    "website_scheduling_connection_choice": "websiteSchedulingConnection",
    "website_system_connection_choice": "websiteSystemConnection",
}

# Valid answer domains, used for debugging output only
VALID_DOMAINS: dict[str, tuple[str, ...]] = {
    "daily_unanswered_calls_choice": ("0", "1_3", "4_10", "11_20", "21_plus"),
    "hvac_daily_unanswered_calls_choice": ("none", "1_3", "4_6", "gt_6"),
    "weekly_no_shows_choice": ("0", "1_3", "4_6", "7_10", "11_plus"),
    "weekly_job_cancellations_choice": ("none", "1_2", "3_5", "gt_5"),
    "website_scheduling_connection_choice": ("full", "partial", "not_connected", "no_website"),
    "website_system_connection_choice": ("full", "partial", "not_connected", "no_website"),
    "treatment_acceptance_rate_choice": ("lt_30", "30_60", "60_80", "gt_80"),
    "immediate_quote_acceptance_choice": ("0_2", "3_5", "6_10"),
}


def answer(answers: Mapping[str, Any], key: str) -> Any:
    """Look up an answer by canonical key, falling back to its camelCase alias."""
    if key in answers:
        return answers[key]
    alias = ANSWER_ALIASES.get(key)
    if alias is not None:
        return answers.get(alias)
    return None


def _choice(answers: Mapping[str, Any], key: str) -> str:
    value = answer(answers, key)
    return "" if value is None else str(value)


def _number(answers: Mapping[str, Any], key: str) -> float:
    # float() raises on junk input; the rule runner treats that as a non-match
    value = answer(answers, key)
    return 0.0 if value in (None, "") else float(value)


# ============================================================================
# Rules
# ============================================================================


@dataclass(frozen=True)
class SignalRule:
    """A predicate over (answers, vertical) and the tags it adds on match."""

    name: str
    when: Callable[[Mapping[str, Any], str], bool]
    add: tuple[str, ...]


SIGNAL_RULES: tuple[SignalRule, ...] = (
    # Missed calls
    SignalRule(
        "dental_missed_calls_medium",
        lambda a, v: v == "dental" and _choice(a, "daily_unanswered_calls_choice") == "4_10",
        ("missed_calls_medium",),
    ),
    SignalRule(
        "dental_missed_calls_high",
        lambda a, v: v == "dental"
        and _choice(a, "daily_unanswered_calls_choice") in ("11_20", "21_plus"),
        ("missed_calls_high",),
    ),
    SignalRule(
        "hvac_missed_calls_medium",
        lambda a, v: v == "hvac"
        and _choice(a, "hvac_daily_unanswered_calls_choice") in ("1_3", "4_6"),
        ("missed_calls_medium",),
    ),
    SignalRule(
        "hvac_missed_calls_high",
        lambda a, v: v == "hvac" and _choice(a, "hvac_daily_unanswered_calls_choice") == "gt_6",
        ("missed_calls_high",),
    ),
    # No-shows / cancellations
    SignalRule(
        "dental_no_shows_high",
        lambda a, v: v == "dental" and _choice(a, "weekly_no_shows_choice") == "7_10",
        ("no_shows_high",),
    ),
    SignalRule(
        "dental_no_shows_critical",
        lambda a, v: v == "dental" and _choice(a, "weekly_no_shows_choice") == "11_plus",
        ("no_shows_critical",),
    ),
    SignalRule(
        "hvac_job_cancellations_high",
        lambda a, v: v == "hvac"
        and _choice(a, "weekly_job_cancellations_choice") in ("3_5", "gt_5"),
        ("job_cancellations_high",),
    ),
    # Treatment plans / quotes
    SignalRule(
        "dental_treatment_plans_high",
        lambda a, v: v == "dental"
        and _number(a, "monthly_cold_treatment_plans") > THRESHOLDS["COLD_PLANS_HIGH"],
        ("treatment_plans_high",),
    ),
    SignalRule(
        "dental_treatment_conversion_low",
        lambda a, v: v == "dental"
        and _choice(a, "treatment_acceptance_rate_choice") in ("lt_30", "30_60"),
        ("treatment_conversion_low",),
    ),
    SignalRule(
        "hvac_quotes_pending_high",
        lambda a, v: v == "hvac"
        and _number(a, "monthly_pending_quotes") > THRESHOLDS["PENDING_QUOTES_HIGH"],
        ("quotes_pending_high",),
    ),
    SignalRule(
        "hvac_quote_conversion_low",
        lambda a, v: v == "hvac"
        and _choice(a, "immediate_quote_acceptance_choice") in ("0_2", "3_5"),
        ("quote_conversion_low",),
    ),
    # Technology gaps
    SignalRule(
        "dental_no_online_booking",
        lambda a, v: v == "dental"
        and _choice(a, "website_scheduling_connection_choice") in ("not_connected", "no_website"),
        ("no_online_booking",),
    ),
    SignalRule(
        "hvac_no_online_booking",
        lambda a, v: v == "hvac"
        and _choice(a, "website_system_connection_choice") in ("not_connected", "no_website"),
        ("no_online_booking",),
    ),
)

# Signal tag → knowledge section ids (ordered as served to the prompt)
KB_BINDINGS: dict[str, list[str]] = {
    "dental.missed_calls_medium": [
        "skills.reception_247",
        "skills.call_handling",
        "claims.call_recovery_stats",
        "benchmarks.call_response_time",
    ],
    "dental.missed_calls_high": [
        "skills.reception_247",
        "skills.call_handling",
        "skills.after_hours",
        "claims.call_recovery_stats",
        "claims.24_7_availability",
        "benchmarks.call_capture_rate",
    ],
    "hvac.missed_calls_medium": [
        "skills.reception_247",
        "skills.emergency_dispatch",
        "claims.call_recovery_stats",
        "benchmarks.call_response_hvac",
    ],
    "hvac.missed_calls_high": [
        "skills.reception_247",
        "skills.emergency_dispatch",
        "skills.after_hours",
        "claims.emergency_response",
        "claims.24_7_availability",
        "benchmarks.hvac_call_capture",
    ],
    "dental.no_shows_high": [
        "skills.prevention_no_show",
        "skills.reminders",
        "claims.no_show_reduction",
        "benchmarks.appointment_confirmation",
    ],
    "dental.no_shows_critical": [
        "skills.prevention_no_show",
        "skills.reminders",
        "skills.waitlist_management",
        "claims.no_show_reduction",
        "claims.revenue_protection",
        "benchmarks.no_show_industry",
    ],
    "hvac.job_cancellations_high": [
        "skills.job_confirmation",
        "skills.reminders",
        "skills.deposit_collection",
        "claims.cancellation_reduction",
        "benchmarks.hvac_job_completion",
    ],
    "dental.treatment_plans_high": [
        "skills.treatment_plan_closer",
        "skills.follow_up_agent",
        "claims.treatment_conversion",
        "benchmarks.treatment_acceptance",
    ],
    "dental.treatment_conversion_low": [
        "skills.treatment_plan_closer",
        "skills.payment_options",
        "claims.conversion_improvement",
        "benchmarks.industry_acceptance_rates",
    ],
    "hvac.quotes_pending_high": [
        "skills.quote_followup",
        "skills.contract_closer",
        "claims.quote_conversion",
        "benchmarks.hvac_quote_close_rate",
    ],
    "hvac.quote_conversion_low": [
        "skills.quote_followup",
        "skills.objection_handling",
        "claims.sales_improvement",
        "benchmarks.hvac_industry_conversion",
    ],
    "dental.no_online_booking": [
        "skills.online_scheduling",
        "skills.website_integration",
        "claims.booking_convenience",
        "claims.digital_transformation",
        "benchmarks.online_booking_adoption",
    ],
    "hvac.no_online_booking": [
        "skills.online_scheduling",
        "skills.customer_portal",
        "claims.digital_convenience",
        "claims.competitive_advantage",
        "benchmarks.hvac_digital_adoption",
    ],
}


# ============================================================================
# Extraction
# ============================================================================


def _evaluate(
    rules: Iterable[SignalRule], answers: Mapping[str, Any], vertical: str
) -> tuple[set[str], int, int]:
    """Run every rule; return (tags, rules matched, rules failed)."""
    tags: set[str] = set()
    matched = 0
    failed = 0
    for rule in rules:
        try:
            hit = bool(rule.when(answers, vertical))
        except Exception as e:
            failed += 1
            _rule_failures[rule.name] += 1
            logger.warning(f"Signal rule '{rule.name}' failed, treating as no match: {e}")
            continue
        if hit:
            matched += 1
            tags.update(rule.add)
    return tags, matched, failed


def extract_signal_tags(
    answers: Mapping[str, Any] | None,
    vertical: str,
    rules: Iterable[SignalRule] = SIGNAL_RULES,
) -> list[str]:
    """
    Extract namespaced signal tags from audit answers.

    Args:
        answers: Raw audit answers
        vertical: Business vertical (dental or hvac)
        rules: Rule list to evaluate (defaults to SIGNAL_RULES)

    Returns:
        Sorted, de-duplicated list of ``<vertical>.<tag>`` strings
    """
    if not isinstance(answers, Mapping):
        return []

    tags, _, _ = _evaluate(rules, answers, vertical)
    return sorted(f"{vertical}.{tag}" for tag in tags)


def get_kb_sections_for_tags(signal_tags: Iterable[str]) -> list[str]:
    """
    Resolve signal tags to knowledge section ids.

    Tags without a binding are logged and skipped.

    Returns:
        Sorted, de-duplicated section ids
    """
    sections: set[str] = set()
    for tag in signal_tags:
        bound = KB_BINDINGS.get(tag)
        if not bound:
            logger.warning(f"No KB binding for signal tag: {tag}")
            continue
        sections.update(bound)
    return sorted(sections)


def validate_signal_tags(signal_tags: Iterable[str]) -> dict[str, Any]:
    """Report tags that have no knowledge binding."""
    unknown = [tag for tag in signal_tags if tag not in KB_BINDINGS]
    return {
        "isValid": not unknown,
        "warnings": [f"Unknown signal tag: {tag}" for tag in unknown],
        "unknownTags": unknown,
    }


def validate_bindings_report(available_sections: Iterable[str]) -> dict[str, Any]:
    """Cross-check every bound section id against the served corpus."""
    available = set(available_sections)
    missing: set[str] = set()
    warnings: list[str] = []
    for tag, sections in KB_BINDINGS.items():
        for section_id in sections:
            if section_id not in available:
                missing.add(section_id)
                warnings.append(f"Signal tag '{tag}' references missing KB section: {section_id}")
    return {
        "isValid": not missing,
        "warnings": warnings,
        "missingSections": sorted(missing),
    }


def validate_bindings(available_sections: Iterable[str]) -> list[str]:
    """
    Return bound section ids that are absent from the corpus.

    Used for startup observability only; never blocks serving.
    """
    return validate_bindings_report(available_sections)["missingSections"]


def get_signal_extraction_metrics(answers: Mapping[str, Any], vertical: str) -> dict[str, Any]:
    """Debug view of a single extraction run."""
    tags, matched, failed = _evaluate(SIGNAL_RULES, answers or {}, vertical)
    signal_tags = sorted(f"{vertical}.{tag}" for tag in tags)
    invalid_answers = [
        key
        for key, domain in VALID_DOMAINS.items()
        if answer(answers or {}, key) is not None and _choice(answers, key) not in domain
    ]
    return {
        "signalTags": signal_tags,
        "kbSections": get_kb_sections_for_tags(signal_tags),
        "rulesMatched": matched,
        "rulesFailed": failed,
        "totalRules": len(SIGNAL_RULES),
        "invalidAnswers": invalid_answers,
        "validationWarnings": validate_signal_tags(signal_tags)["warnings"],
        "version": SIGNAL_RULES_VERSION,
    }


def get_rule_failure_counts() -> dict[str, int]:
    """Failures per rule name since process start (or the last reset)."""
    return dict(_rule_failures)


def reset_rule_failure_counts() -> None:
    _rule_failures.clear()
