"""Static knowledge corpus served to the ROI Brain prompt.

Every collection is an ordered list; corpus order is the tie-breaker whenever
the loader truncates. Skill ``tags`` are bare signal tags (the loader adds the
vertical namespace); a skill with no tags is universal. ``sections`` and the
ids of claims and benchmarks are the dotted knowledge-section ids that
signal bindings point at.
"""

from typing import Any

BRAND: dict[str, Any] = {
    "name": "AgentIQ",
    "focus": "ROI-driven voice automation",
    "differentiators": [
        "Industry-specific knowledge",
        "Proven ROI tracking",
        "Easy integration",
    ],
}

TAGLINES: dict[str, str] = {
    "dental": "AI Voice Assistant for Dental Practices",
    "hvac": "AI Voice Assistant for HVAC Companies",
}

RESPONSE_MODELS: dict[str, dict[str, Any]] = {
    "dental": {
        "professional_tone": "Confident, knowledgeable, solution-focused",
        "structure": "Problem -> Solution -> ROI -> Next Steps",
        "terminology": ["patients", "appointments", "treatment plans", "practice"],
        "pain_point_framing": "patient experience and practice efficiency",
    },
    "hvac": {
        "professional_tone": "Confident, knowledgeable, solution-focused",
        "structure": "Problem -> Solution -> ROI -> Next Steps",
        "terminology": ["customers", "service calls", "quotes", "technicians"],
        "pain_point_framing": "customer service and operational efficiency",
    },
}

# =============================================================================
# Voice skills
# =============================================================================

VOICE_SKILLS: list[dict[str, Any]] = [
    # Dental
    {
        "id": "reception-24-7",
        "vertical": "dental",
        "title": "Reception 24/7 Agent",
        "description": "Answers calls 24/7, provides info, sends estimates, and books appointments",
        "category": "call-handling",
        "priority": "high",
        "roi_usd_range": {"min": 3000, "max": 7000},
        "recovery_rate_range": {"min": 0.15, "max": 0.30},
        "monthly_price_usd": 199,
        "tags": ["missed_calls_medium", "missed_calls_high", "no_online_booking"],
        "sections": [
            "skills.reception_247",
            "skills.call_handling",
            "skills.after_hours",
            "skills.online_scheduling",
            "skills.website_integration",
        ],
    },
    {
        "id": "follow-up-agent",
        "vertical": "dental",
        "title": "Follow-Up Agent",
        "description": "Follows up on unconfirmed treatment plans and estimates",
        "category": "sales",
        "priority": "high",
        "roi_usd_range": {"min": 8000, "max": 12000},
        "recovery_rate_range": {"min": 0.25, "max": 0.35},
        "monthly_price_usd": 199,
        "tags": ["missed_calls_high", "treatment_plans_high", "treatment_conversion_low"],
        "sections": ["skills.follow_up_agent"],
    },
    {
        "id": "prevention-no-show",
        "vertical": "dental",
        "title": "Prevention & No-Show Agent",
        "description": "Prevents no-shows with voice reminders and waitlist management",
        "category": "scheduling",
        "priority": "high",
        "roi_usd_range": {"min": 3000, "max": 5000},
        "recovery_rate_range": {"min": 0.40, "max": 0.60},
        "monthly_price_usd": 199,
        "tags": ["no_shows_high", "no_shows_critical", "no_online_booking"],
        "sections": [
            "skills.prevention_no_show",
            "skills.reminders",
            "skills.waitlist_management",
        ],
    },
    {
        "id": "treatment-plan-closer",
        "vertical": "dental",
        "title": "Treatment Plan Closer Agent",
        "description": "Closes pending treatment plans, explaining payment options",
        "category": "sales",
        "priority": "high",
        "target": "medium",
        "roi_usd_range": {"min": 10000, "max": 20000},
        "recovery_rate_range": {"min": 0.15, "max": 0.25},
        "monthly_price_usd": 199,
        "tags": ["treatment_plans_high", "treatment_conversion_low"],
        "sections": ["skills.treatment_plan_closer", "skills.payment_options"],
    },
    {
        "id": "recall-reactivation",
        "vertical": "dental",
        "title": "Recall & Reactivation Agent",
        "description": "Reactivates inactive patients and manages dental recalls",
        "category": "reactivation",
        "priority": "medium",
        "roi_usd_range": {"min": 5000, "max": 10000},
        "recovery_rate_range": {"min": 0.20, "max": 0.35},
        "monthly_price_usd": 199,
        "tags": ["no_shows_critical"],
        "sections": ["skills.recall", "skills.waitlist_management"],
    },
    {
        "id": "review-booster",
        "vertical": "dental",
        "title": "Review Booster Agent",
        "description": "Contacts happy patients for Google reviews and routes complaints",
        "category": "reviews",
        "priority": "low",
        "target": "small",
        "roi_usd_range": {"min": 4000, "max": 8000},
        "recovery_rate_range": {"min": 0.05, "max": 0.09},
        "monthly_price_usd": 199,
        "tags": [],
        "sections": ["skills.review_management"],
    },
    # HVAC
    {
        "id": "hvac-reception-24-7",
        "vertical": "hvac",
        "title": "Reception 24/7 Agent and Emergency Management",
        "description": "Handles calls 24/7, filters emergencies, and dispatches jobs",
        "category": "call-handling",
        "priority": "high",
        "roi_usd_range": {"min": 4000, "max": 8000},
        "recovery_rate_range": {"min": 0.20, "max": 0.35},
        "monthly_price_usd": 199,
        "tags": ["missed_calls_medium", "missed_calls_high", "no_online_booking"],
        "sections": [
            "skills.reception_247",
            "skills.emergency_dispatch",
            "skills.after_hours",
            "skills.online_scheduling",
            "skills.customer_portal",
        ],
    },
    {
        "id": "quote-follow-up",
        "vertical": "hvac",
        "title": "Quote Follow-Up Agent",
        "description": "Calls 3-5 days post-quote, handles objections, and closes deals",
        "category": "sales",
        "priority": "high",
        "roi_usd_range": {"min": 6000, "max": 10000},
        "recovery_rate_range": {"min": 0.20, "max": 0.30},
        "monthly_price_usd": 199,
        "tags": ["missed_calls_high", "quotes_pending_high", "quote_conversion_low"],
        "sections": ["skills.quote_followup", "skills.objection_handling"],
    },
    {
        "id": "hvac-no-show-reminder",
        "vertical": "hvac",
        "title": "No-Show & Reminder Agent",
        "description": "Prevents job cancellations with reminders, confirmations and deposits",
        "category": "scheduling",
        "priority": "medium",
        "roi_usd_range": {"min": 2000, "max": 4000},
        "recovery_rate_range": {"min": 0.35, "max": 0.50},
        "monthly_price_usd": 199,
        "tags": ["job_cancellations_high", "no_online_booking"],
        "sections": [
            "skills.job_confirmation",
            "skills.reminders",
            "skills.deposit_collection",
        ],
    },
    {
        "id": "contract-closer",
        "vertical": "hvac",
        "title": "Contract Closer Agent",
        "description": "Calls after the job and closes recurring maintenance contracts",
        "category": "sales",
        "priority": "medium",
        "target": "large",
        "roi_usd_range": {"min": 5000, "max": 8000},
        "recovery_rate_range": {"min": 0.25, "max": 0.40},
        "monthly_price_usd": 199,
        "tags": ["quotes_pending_high", "quote_conversion_low"],
        "sections": ["skills.contract_closer"],
    },
    {
        "id": "hvac-recall-reactivation",
        "vertical": "hvac",
        "title": "Recall & Reactivation Agent",
        "description": "Reconnects inactive customers for maintenance and upgrades",
        "category": "reactivation",
        "priority": "medium",
        "roi_usd_range": {"min": 4000, "max": 7000},
        "recovery_rate_range": {"min": 0.15, "max": 0.25},
        "monthly_price_usd": 199,
        "tags": [],
        "sections": ["skills.recall"],
    },
    {
        "id": "hvac-review-booster",
        "vertical": "hvac",
        "title": "Review Booster Agent",
        "description": "Invites satisfied clients to review and filters complaints",
        "category": "reviews",
        "priority": "low",
        "target": "small",
        "roi_usd_range": {"min": 3000, "max": 6000},
        "recovery_rate_range": {"min": 0.08, "max": 0.12},
        "monthly_price_usd": 199,
        "tags": [],
        "sections": ["skills.review_management"],
    },
]

# =============================================================================
# Claims and benchmarks
# =============================================================================

CLAIMS: list[dict[str, Any]] = [
    {"id": "claims.call_recovery_stats", "verticals": ["dental", "hvac"], "category": "calls", "priority": "high",
     "text": "Practices recover 60-85% of previously missed calls in the first month"},
    {"id": "claims.24_7_availability", "verticals": ["dental", "hvac"], "category": "calls", "priority": "high",
     "text": "Every call answered in under two rings, nights and weekends included"},
    {"id": "claims.emergency_response", "verticals": ["hvac"], "category": "calls", "priority": "high",
     "text": "Emergency jobs triaged and dispatched to the on-call technician within minutes"},
    {"id": "claims.no_show_reduction", "verticals": ["dental"], "category": "scheduling", "priority": "high",
     "text": "Voice reminders with instant rebooking cut no-shows by up to 50%"},
    {"id": "claims.revenue_protection", "verticals": ["dental"], "category": "scheduling", "priority": "medium",
     "text": "Backfilled cancellations protect $5,000-$10,000 in monthly chair revenue"},
    {"id": "claims.cancellation_reduction", "verticals": ["hvac"], "category": "scheduling", "priority": "high",
     "text": "Confirmation calls and deposits reduce last-minute job cancellations by 40%"},
    {"id": "claims.treatment_conversion", "verticals": ["dental"], "category": "sales", "priority": "high",
     "text": "Structured follow-up lifts treatment plan acceptance by 15-25%"},
    {"id": "claims.conversion_improvement", "verticals": ["dental"], "category": "sales", "priority": "medium",
     "text": "Explaining financing options on the call removes the most common objection to treatment"},
    {"id": "claims.quote_conversion", "verticals": ["hvac"], "category": "sales", "priority": "high",
     "text": "Quotes followed up within 48 hours close 25% more often"},
    {"id": "claims.sales_improvement", "verticals": ["hvac"], "category": "sales", "priority": "medium",
     "text": "Consistent objection handling raises average ticket and close rate"},
    {"id": "claims.booking_convenience", "verticals": ["dental"], "category": "digital", "priority": "medium",
     "text": "Patients book by voice or online at any hour without waiting for the front desk"},
    {"id": "claims.digital_transformation", "verticals": ["dental"], "category": "digital", "priority": "low",
     "text": "Connected scheduling turns the website into a booking channel"},
    {"id": "claims.digital_convenience", "verticals": ["hvac"], "category": "digital", "priority": "medium",
     "text": "Customers schedule, confirm and pay without a callback"},
    {"id": "claims.competitive_advantage", "verticals": ["hvac"], "category": "digital", "priority": "low",
     "text": "Instant booking wins jobs from competitors who still return calls the next day"},
]

BENCHMARKS: list[dict[str, Any]] = [
    {"id": "benchmarks.call_response_time", "verticals": ["dental"], "category": "calls", "priority": "medium",
     "text": "Top practices answer 95% of calls live; the average is 62%", "source": "Dental Economics 2024"},
    {"id": "benchmarks.call_capture_rate", "verticals": ["dental"], "category": "calls", "priority": "high",
     "text": "Each missed new-patient call is worth $850-$1,200 in first-year revenue", "source": "ADA HPI 2024"},
    {"id": "benchmarks.call_response_hvac", "verticals": ["hvac"], "category": "calls", "priority": "medium",
     "text": "80% of callers who reach voicemail call the next contractor", "source": "ServiceTitan 2024"},
    {"id": "benchmarks.hvac_call_capture", "verticals": ["hvac"], "category": "calls", "priority": "high",
     "text": "Average missed-call rate in peak season is 27%", "source": "ACCA 2024"},
    {"id": "benchmarks.appointment_confirmation", "verticals": ["dental"], "category": "scheduling", "priority": "medium",
     "text": "Confirmed appointments show up 92% of the time versus 78% unconfirmed", "source": "Dentistry Today 2025"},
    {"id": "benchmarks.no_show_industry", "verticals": ["dental"], "category": "scheduling", "priority": "high",
     "text": "Industry no-show rate sits between 10% and 15% of scheduled visits", "source": "Dentistry Today 2025"},
    {"id": "benchmarks.hvac_job_completion", "verticals": ["hvac"], "category": "scheduling", "priority": "medium",
     "text": "Jobs with a deposit are completed 35% more often", "source": "HouseCallPro 2024"},
    {"id": "benchmarks.treatment_acceptance", "verticals": ["dental"], "category": "sales", "priority": "high",
     "text": "Median treatment acceptance is 52%; top quartile practices exceed 70%", "source": "Productive Dentist Academy 2025"},
    {"id": "benchmarks.industry_acceptance_rates", "verticals": ["dental"], "category": "sales", "priority": "medium",
     "text": "Offering financing raises acceptance on plans over $2,000 by 20%", "source": "CareCredit 2024"},
    {"id": "benchmarks.hvac_quote_close_rate", "verticals": ["hvac"], "category": "sales", "priority": "high",
     "text": "Average replacement quote close rate is 30-40%", "source": "ServiceTitan 2024"},
    {"id": "benchmarks.hvac_industry_conversion", "verticals": ["hvac"], "category": "sales", "priority": "medium",
     "text": "Quotes with no follow-up close at half the rate of followed-up quotes", "source": "ACCA 2024"},
    {"id": "benchmarks.online_booking_adoption", "verticals": ["dental"], "category": "digital", "priority": "low",
     "text": "68% of patients prefer booking online or by phone outside office hours", "source": "Accenture Health 2024"},
    {"id": "benchmarks.hvac_digital_adoption", "verticals": ["hvac"], "category": "digital", "priority": "low",
     "text": "Over half of homeowners expect to book service online", "source": "HouseCallPro 2024"},
]

# =============================================================================
# Pain points
# =============================================================================

PAIN_POINTS: dict[str, list[dict[str, Any]]] = {
    "dental": [
        {"id": "pending-treatment-plans", "title": "Unaccepted Treatment Plans", "monthly_impact": 40000,
         "category": "financial", "priority": "high"},
        {"id": "missed-calls", "title": "Front Desk Misses Incoming Calls", "monthly_impact": 13000,
         "category": "operational", "priority": "high"},
        {"id": "no-shows", "title": "No-Shows and Late Cancellations", "monthly_impact": 5500,
         "category": "operational", "priority": "high"},
        {"id": "after-hours-calls", "title": "After-Hours Calls Go to Voicemail", "monthly_impact": 4000,
         "category": "patient", "priority": "medium"},
        {"id": "unconfirmed-treatments", "title": "Estimates Never Followed Up", "monthly_impact": 6000,
         "category": "financial", "priority": "medium"},
        {"id": "inactive-patients", "title": "Inactive Patients Not Recalled", "monthly_impact": 5000,
         "category": "marketing", "priority": "medium"},
        {"id": "insurance-verification", "title": "Time-Consuming Insurance Verification", "monthly_impact": 3600,
         "category": "operational", "priority": "low"},
        {"id": "low-reviews", "title": "Insufficient Online Reviews & Reputation", "monthly_impact": 3000,
         "category": "marketing", "priority": "low"},
    ],
    "hvac": [
        {"id": "unconfirmed-estimates", "title": "Quotes & Proposals Not Followed Up", "monthly_impact": 25000,
         "category": "financial", "priority": "high"},
        {"id": "missed-service-calls", "title": "Dispatcher Overload Misses Service Calls", "monthly_impact": 5000,
         "category": "seasonal", "priority": "high"},
        {"id": "emergency-response", "title": "Missed Emergency Calls After Hours", "monthly_impact": 3800,
         "category": "operational", "priority": "high"},
        {"id": "job-cancellations", "title": "Last-Minute Job Cancellations", "monthly_impact": 3000,
         "category": "operational", "priority": "medium"},
        {"id": "recurring-contracts", "title": "Unsold Maintenance Plans", "monthly_impact": 2000,
         "category": "seasonal", "priority": "medium"},
        {"id": "inactive-customers", "title": "Inactive Customers Not Reactivated", "monthly_impact": 4000,
         "category": "customer", "priority": "medium"},
        {"id": "payment-collection", "title": "Difficulty Collecting Payments After Service", "monthly_impact": 3000,
         "category": "financial", "priority": "low"},
        {"id": "few-reviews", "title": "Lack of Online Reviews After Service", "monthly_impact": 3000,
         "category": "marketing", "priority": "low"},
    ],
}

# =============================================================================
# FAQ
# =============================================================================

FAQ: dict[str, list[dict[str, Any]]] = {
    "dental": [
        {"id": "dental-faq-integration", "category": "integration", "priority": "high",
         "question": "We already use OpenDental/Dentrix. Can this integrate?",
         "answer": "Yes, it works with all major PMS platforms including OpenDental, Dentrix and Eaglesoft.",
         "sections": ["skills.online_scheduling", "skills.website_integration"]},
        {"id": "dental-faq-chatbot", "category": "competitive", "priority": "high",
         "question": "Is this just another chatbot?",
         "answer": "No. The agents hold natural conversations and handle objections instead of IVR menus."},
        {"id": "dental-faq-staff", "category": "implementation", "priority": "high",
         "question": "Why automate if our staff already answers calls?",
         "answer": "The agent covers after-hours calls, forgotten follow-ups and simultaneous conversations."},
        {"id": "dental-faq-hipaa", "category": "compliance", "priority": "high",
         "question": "Is this HIPAA compliant?",
         "answer": "Yes, with BAA agreements, encryption and audit logs."},
        {"id": "dental-faq-golive", "category": "implementation", "priority": "high",
         "question": "How long does it take to go live?",
         "answer": "Setup takes 7-14 days, built around your existing workflows."},
        {"id": "dental-faq-cost", "category": "pricing", "priority": "high",
         "question": "What does this cost and what ROI can I expect?",
         "answer": "Clients typically recover $5K-$18K per month; most see payback within 30-60 days."},
        {"id": "dental-faq-emergencies", "category": "implementation", "priority": "high",
         "question": "How does it handle dental emergencies?",
         "answer": "Emergency calls are triaged and booked same-day or escalated to on-call staff."},
        {"id": "dental-faq-reminders", "category": "implementation", "priority": "medium",
         "question": "Can it confirm appointments and fill cancellations?",
         "answer": "It sends voice reminders, rebooks no-shows and offers freed slots to the waitlist."},
        {"id": "dental-faq-treatment", "category": "implementation", "priority": "medium",
         "question": "Can it explain treatment plans to patients?",
         "answer": "Yes, it explains procedures and costs, then follows up to improve case acceptance."},
        {"id": "dental-faq-financing", "category": "pricing", "priority": "medium",
         "question": "Can it present payment plans?",
         "answer": "It explains financing options and sends the application link after the call."},
        {"id": "dental-faq-languages", "category": "implementation", "priority": "low",
         "question": "Does it support multiple languages?",
         "answer": "Yes, Spanish and other languages are available."},
    ],
    "hvac": [
        {"id": "hvac-faq-integration", "category": "integration", "priority": "high",
         "question": "Does this work with ServiceTitan and HouseCallPro?",
         "answer": "Yes, it integrates with ServiceTitan, HouseCallPro and other dispatch systems.",
         "sections": ["skills.customer_portal", "skills.online_scheduling"]},
        {"id": "hvac-faq-different", "category": "competitive", "priority": "high",
         "question": "How is this different from other HVAC software?",
         "answer": "It books jobs, follows up on quotes and handles objections through real conversations."},
        {"id": "hvac-faq-quotes", "category": "implementation", "priority": "high",
         "question": "How does it handle quote follow-ups?",
         "answer": "It calls 24-48 hours after proposals and addresses price concerns."},
        {"id": "hvac-faq-emergencies", "category": "implementation", "priority": "high",
         "question": "Can it handle emergency calls during storms or heat waves?",
         "answer": "It triages by urgency, notifies on-call techs and manages the waitlist."},
        {"id": "hvac-faq-cost", "category": "pricing", "priority": "high",
         "question": "What does it cost?",
         "answer": "Typical ROI is 5-10x within the first quarter."},
        {"id": "hvac-faq-payments", "category": "integration", "priority": "medium",
         "question": "Can customers pay deposits by phone?",
         "answer": "Yes, deposits and invoices can be paid by voice with PCI compliance."},
        {"id": "hvac-faq-contracts", "category": "implementation", "priority": "medium",
         "question": "Can it sell maintenance contracts?",
         "answer": "It calls after each job and explains the benefits of a maintenance plan."},
        {"id": "hvac-faq-pilot", "category": "implementation", "priority": "medium",
         "question": "Can we start with one branch?",
         "answer": "Yes, many clients pilot one service zone before rolling out."},
        {"id": "hvac-faq-security", "category": "compliance", "priority": "low",
         "question": "Is customer data secure?",
         "answer": "SOC2 certified with full encryption and audit logs."},
    ],
}

# =============================================================================
# Pricing
# =============================================================================

PRICING: list[dict[str, Any]] = [
    {"id": "starter", "name": "Starter", "price": 297, "max_size": "small",
     "features": ["Basic call handling", "Appointment scheduling", "SMS notifications"]},
    {"id": "professional", "name": "Professional", "price": 497, "max_size": "medium",
     "features": ["Advanced AI", "Integration support", "Analytics dashboard"]},
    {"id": "enterprise", "name": "Enterprise", "price": 997, "max_size": "large",
     "features": ["Custom integration", "Priority support", "Advanced reporting"]},
]

# Lowercase keyword → section ids, for items without explicit section ids
KEYWORD_SECTIONS: dict[str, list[str]] = {
    "call": ["skills.call_handling", "skills.reception_247"],
    "after-hours": ["skills.after_hours"],
    "after hours": ["skills.after_hours"],
    "emergenc": ["skills.emergency_dispatch", "skills.after_hours"],
    "no-show": ["skills.prevention_no_show"],
    "remind": ["skills.reminders"],
    "confirm": ["skills.job_confirmation", "skills.reminders"],
    "cancellation": ["skills.job_confirmation", "skills.waitlist_management"],
    "treatment": ["skills.treatment_plan_closer"],
    "estimate": ["skills.follow_up_agent", "skills.quote_followup"],
    "quote": ["skills.quote_followup"],
    "objection": ["skills.objection_handling"],
    "contract": ["skills.contract_closer"],
    "maintenance": ["skills.contract_closer"],
    "payment": ["skills.payment_options", "skills.deposit_collection"],
    "financing": ["skills.payment_options"],
    "deposit": ["skills.deposit_collection"],
    "recall": ["skills.recall"],
    "inactive": ["skills.recall"],
    "review": ["skills.review_management"],
    "online": ["skills.online_scheduling"],
    "integrat": ["skills.website_integration", "skills.customer_portal"],
}


def section_ids() -> list[str]:
    """All knowledge-section ids present in the corpus, sorted."""
    ids: set[str] = set()
    for skill in VOICE_SKILLS:
        ids.update(skill["sections"])
    ids.update(c["id"] for c in CLAIMS)
    ids.update(b["id"] for b in BENCHMARKS)
    return sorted(ids)
