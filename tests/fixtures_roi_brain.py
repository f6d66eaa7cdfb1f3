"""Shared model-output fixtures for ROI Brain tests."""

import copy
import json

VALID_INSIGHTS = [
    {
        "title": "Missed calls are your biggest leak",
        "description": "Roughly 15 calls a day go unanswered; a 24/7 reception agent captures them.",
        "impact": "high",
        "priority": "high",
        "category": "missed_calls",
        "rationale": ["18k/month lost to missed calls", "No after-hours coverage"],
        "monthlyImpactUsd": 5400,
        "actionable": True,
    }
]

VALID_REPORT = {
    "score": 62,
    "band": "Optimization Needed",
    "diagnosis": [
        "The dental front desk misses calls during peak hours",
        "No-show follow-up is manual",
    ],
    "consequences": ["Lost new patients", "Idle chair time"],
    "solutions": [
        {
            "skillId": "reception-24-7",
            "title": "Reception 24/7 Agent",
            "rationale": "Answers every call",
            "estimatedRecoveryPct": [15, 30],
        }
    ],
    "benchmarks": ["Top practices answer 95% of calls"],
    "faq": [
        {"q": "Does it integrate with my PMS?", "a": "Yes, with the major systems."},
        {"q": "How long to go live?", "a": "About two weeks."},
    ],
    "plan": {"name": "Professional", "priceMonthlyUsd": 497, "inclusions": ["3 agents"]},
}

VALID_SKILL_CONTEXT = {
    "recommendedSkills": [
        {
            "id": "reception-24-7",
            "name": "Reception 24/7 Agent",
            "target": "Dental",
            "problem": "Missed calls",
            "how": "Answers and books 24/7",
            "roiRangeMonthly": [3000, 7000],
            "implementation": {"timeWeeks": 2, "phases": ["Setup", "Go-live"]},
            "integrations": ["Dentrix"],
            "priority": "high",
            "rationale": "Largest loss area",
        }
    ],
    "contextSummary": "Call capture first, then no-shows.",
    "implementationReadiness": 70,
}


def model_output(**overrides) -> dict:
    """Valid three-part output with selected parts replaced."""
    output = {
        "insights": copy.deepcopy(VALID_INSIGHTS),
        "report": copy.deepcopy(VALID_REPORT),
        "skillContext": copy.deepcopy(VALID_SKILL_CONTEXT),
    }
    output.update(overrides)
    return {k: v for k, v in output.items() if v is not ...}


def model_text(**overrides) -> str:
    """Model output serialized the way the model returns it."""
    return json.dumps(model_output(**overrides))
