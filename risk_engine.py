"""
InnoVest — rule-based risk engine
========================================
Two jobs, both deterministic and keyword driven:

1. DEMO MODE: score a prompt locally when every AI provider is down.
2. RESULT ANALYSIS: turn free-text AI output into a score, band,
   drivers and an action plan for the dashboard.
"""

# ═══════════════════════════════════════════
# CONSTANTS
# ═══════════════════════════════════════════
HIGH_RISK_THRESHOLD = 70
MEDIUM_RISK_THRESHOLD = 40

DEFAULT_TREND = [28, 34, 41, 48, 44, 52, 58]
TREND_LENGTH = 7

QUICK_PROMPTS = [
    "Predict bankruptcy risk due to heavy debt and low revenue.",
    "Assess project delay risk from supplier disruption and cash burn.",
    "Evaluate operational risk for expansion into two new cities next quarter.",
    "Analyze fraud and compliance risk in high-volume vendor payments.",
]

DEMO_SOURCE_NOTE = "Source: Demo mode (local fallback when backend is unavailable)."


# ═══════════════════════════════════════════════════════════════════════
#
#  MODULE 1: DEMO MODE (PROMPT SCORING)
#
# ═══════════════════════════════════════════════════════════════════════

# (keywords, points) — any keyword in the group fires the points once
PROMPT_SIGNALS = [
    (("debt",), 15),
    (("loss", "declining"), 12),
    (("delay", "deadline"), 8),
    (("fraud", "compliance"), 14),
    (("low revenue", "cash burn"), 10),
    (("steady growth", "stable"), -14),
    (("low debt",), -12),
]

DEMO_DRIVERS = [
    (("debt",), "Leverage pressure"),
    (("loss", "declining"), "Profitability deterioration"),
    (("cash",), "Liquidity stress"),
    (("delay",), "Execution timeline risk"),
    (("fraud", "compliance"), "Control and compliance exposure"),
]


def _lower(text) -> str:
    return str(text or "").lower()


def score_from_prompt(prompt: str) -> int:
    """
    DEMO SCORE (8–92)
    ─────────────────────────────────────────────────────
    Signal                          Points
    ─────────────────────────────────────────────────────
    debt                            +15
    loss | declining                +12
    delay | deadline                +8
    fraud | compliance              +14
    low revenue | cash burn         +10
    steady growth | stable          -14
    low debt                        -12
    ─────────────────────────────────────────────────────
    score = 45 + sum(points), clamped to 8–92
    """
    text = _lower(prompt)
    score = 45
    for keywords, points in PROMPT_SIGNALS:
        if any(k in text for k in keywords):
            score += points
    return max(8, min(92, score))


def level_from_score(score) -> str:
    if score >= HIGH_RISK_THRESHOLD:
        return "HIGH"
    if score >= MEDIUM_RISK_THRESHOLD:
        return "MEDIUM"
    return "LOW"


def demo_drivers(prompt: str) -> list:
    text = _lower(prompt)
    drivers = [label for keywords, label in DEMO_DRIVERS if any(k in text for k in keywords)]
    return drivers or ["Baseline market uncertainty"]


def _demo_action(risk_level: str) -> str:
    if risk_level == "HIGH":
        return "Activate contingency plan and weekly cash governance."
    if risk_level == "MEDIUM":
        return "Tighten monitoring and implement early mitigation actions."
    return "Maintain controls and monitor leading indicators monthly."


def predict_risk_demo(prompt: str) -> dict:
    """Local risk prediction. Returns {score, risk_level, explanation}."""
    score = score_from_prompt(prompt)
    risk_level = level_from_score(score)
    drivers = demo_drivers(prompt)

    explanation = "\n".join([
        f"Risk Level: {risk_level}",
        f"Estimated Score: {score}",
        f"Key Drivers: {', '.join(drivers)}",
        f"Recommended Action: {_demo_action(risk_level)}",
        DEMO_SOURCE_NOTE,
    ])
    return {"score": score, "risk_level": risk_level, "explanation": explanation}


def chat_demo(message: str) -> str:
    prediction = predict_risk_demo(message)
    drivers = "\n- ".join(demo_drivers(message))
    return "\n".join([
        "Demo Copilot Response",
        f"Based on your input, current risk is {prediction['risk_level']} ({prediction['score']}/100).",
        "Top focus areas:",
        f"- {drivers}",
        "- Build 30-60-90 day mitigation plan with owner and due date.",
        f"- Review triggers weekly and escalate if score rises above {HIGH_RISK_THRESHOLD}.",
        "This response is generated locally because backend is offline.",
    ])


# ═══════════════════════════════════════════════════════════════════════
#
#  MODULE 2: AI RESULT ANALYSIS
#
# ═══════════════════════════════════════════════════════════════════════

# First match wins: an explicit level word in the AI text sets the score.
LEVEL_WORDS = [
    (("critical", "severe"), 88),
    (("high",), 78),
    (("medium", "moderate"), 56),
    (("low",), 26),
]

TEXT_SIGNALS = [
    (("debt",), 10),
    (("delay",), 7),
    (("cash flow", "burn"), 8),
    (("compliance", "fraud"), 12),
    (("strong", "stable"), -10),
]

RESULT_DRIVERS = [
    ("Debt pressure", ("debt", "leverage", "liability")),
    ("Cash flow stress", ("cash", "burn", "liquidity")),
    ("Delivery timeline risk", ("delay", "deadline", "schedule")),
    ("Compliance exposure", ("compliance", "regulatory", "fraud")),
    ("Market uncertainty", ("market", "demand", "competition")),
]

SOLUTION_CATALOG = {
    "Debt pressure": {
        "action": "Refinance expensive debt and freeze new non-critical borrowing.",
        "owner": "Finance Lead",
        "timeline": "7-14 days",
    },
    "Cash flow stress": {
        "action": "Run 13-week cash forecast and cut low-ROI spend immediately.",
        "owner": "CFO Office",
        "timeline": "48 hours",
    },
    "Delivery timeline risk": {
        "action": "Re-baseline milestones and secure backup suppliers for critical path items.",
        "owner": "Operations Head",
        "timeline": "5-10 days",
    },
    "Compliance exposure": {
        "action": "Launch compliance audit and enforce approval workflow for sensitive transactions.",
        "owner": "Compliance Officer",
        "timeline": "3-7 days",
    },
    "Market uncertainty": {
        "action": "Create downside demand scenario and shift budget to resilient channels.",
        "owner": "Strategy Team",
        "timeline": "7 days",
    },
    "Baseline operational uncertainty": {
        "action": "Set weekly risk review with quantified KPIs and escalation triggers.",
        "owner": "PMO",
        "timeline": "Immediate",
    },
}

CONTROL_KEYWORDS = ("fraud", "compliance", "regulatory")
MAX_SOLUTIONS = 6


def infer_risk_score(text: str) -> int:
    """
    SCORE INFERENCE FROM AI TEXT (5–95)
    ─────────────────────────────────────────────────────
    1. Explicit level word → fixed score
       critical|severe=88, high=78, medium|moderate=56, low=26
    2. Otherwise: 50 + keyword points
       debt +10, delay +7, cash flow|burn +8,
       compliance|fraud +12, strong|stable -10
    ─────────────────────────────────────────────────────
    """
    lower = _lower(text)

    for words, fixed in LEVEL_WORDS:
        if any(w in lower for w in words):
            return fixed

    score = 50
    for keywords, points in TEXT_SIGNALS:
        if any(k in lower for k in keywords):
            score += points
    return max(5, min(95, score))


def pick_risk_drivers(text: str) -> list:
    lower = _lower(text)
    matched = [label for label, tokens in RESULT_DRIVERS if any(t in lower for t in tokens)]
    return matched or ["Baseline operational uncertainty"]


def _priority(risk_level: str, score) -> str:
    if risk_level == "HIGH" or score >= HIGH_RISK_THRESHOLD:
        return "Critical"
    if risk_level == "MEDIUM":
        return "High"
    return "Moderate"


def build_possible_solutions(risk_level: str, score, drivers, result: str = "") -> list:
    """
    ACTION PLAN
    One entry per driver (owner + timeline from the catalog), all sharing
    the same priority. Fraud/compliance/regulatory wording in the AI text
    adds a "Control monitoring" item. Capped at 6 entries.
    """
    priority = _priority(risk_level, score)
    fallback = SOLUTION_CATALOG["Baseline operational uncertainty"]

    plan = []
    for driver in drivers or []:
        mapped = SOLUTION_CATALOG.get(driver, fallback)
        plan.append({"driver": driver, "priority": priority, **mapped})

    if result and any(k in result.lower() for k in CONTROL_KEYWORDS):
        plan.append({
            "driver": "Control monitoring",
            "action": "Enable anomaly alerts and dual-approval checks for high-value transactions.",
            "owner": "Risk Control Team",
            "timeline": "72 hours",
            "priority": "Critical",
        })

    return plan[:MAX_SOLUTIONS]


def confidence_from_score(score) -> int:
    """Distance from the 50 midpoint: confidence = max(35, 100 - |50 - score|)"""
    return max(35, 100 - abs(50 - int(score)))


def build_trend(scores: list) -> list:
    """
    Last 7 scores, oldest first. Short histories are padded on the left
    with the tail of DEFAULT_TREND so the chart always has 7 points.
    """
    recent = list(scores)[-TREND_LENGTH:]
    missing = TREND_LENGTH - len(recent)
    if missing <= 0:
        return recent
    return DEFAULT_TREND[len(DEFAULT_TREND) - missing:] + recent


def analyze_result(text: str) -> dict:
    """Everything the dashboard shows for one AI answer."""
    score = infer_risk_score(text)
    risk_level = level_from_score(score)
    drivers = pick_risk_drivers(text)
    return {
        "score": score,
        "risk_level": risk_level,
        "confidence": confidence_from_score(score),
        "drivers": drivers,
        "solutions": build_possible_solutions(risk_level, score, drivers, text),
    }
