"""
AI Service
==========

Prompts and response handling for the LLM-backed features:
- FRA summaries from audit text (strict JSON)
- compliance report and audit insights (HTML)
- the LLM fallback of the audit PDF import
"""

from datetime import date
from typing import Dict, Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from storesafe.core.logging import get_logger
from storesafe.models.store import Store
from storesafe.services import audit_import
from storesafe.services.audit_import import Question
from storesafe.services.audit_template_service import AuditTemplateService
from storesafe.services.llm_client import LLMClient, strip_code_fences
from storesafe.services.metrics_service import dashboard_figures
from storesafe.services.store_service import audit_tracker_stats, format_percent

logger = get_logger(__name__)

MAX_PROMPT_TEXT = 12000
FRA_SUMMARY_KEYS = (
    "escapeRoutesSummary",
    "fireSafetyTrainingSummary",
    "managementReviewStatement",
    "significantFindings",
    "riskRatingJustification",
    "premisesDescription",
)

FRA_SYSTEM = "You are a UK fire safety assessor. Return only valid JSON. Do not use markdown code blocks."
REPORT_SYSTEM = (
    "You are a Senior Retail Compliance Officer. Provide responses in HTML format without "
    "markdown code blocks. Use proper HTML tags like <h3>, <p>, <ul>, <li> directly in your response."
)
INSIGHTS_SYSTEM = "Provide concise analytics insights in HTML. No markdown."
IMPORT_SYSTEM = "You are a data extraction assistant. Return only strict JSON."


def truncate_text(text: str, limit: int = MAX_PROMPT_TEXT) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "\n\n[Text truncated...]"


# ==========================
# FRA summary
# ==========================

def fra_summary_prompt(text: str, premises_name: Optional[str] = None) -> str:
    premises = f"Premises name: {premises_name}" if premises_name else ""
    return f"""You are a UK fire safety assessor preparing a Fire Risk Assessment (FRA) for retail premises. Below is extracted text from a Health & Safety audit. Summarise ONLY the fire-relevant findings into FRA-ready content. Use professional, evidence-led language. Phrase as "Observed during recent inspections" or "At the time of assessment" where appropriate. Do not invent findings. Only include what the text supports.

Return a JSON object with these exact keys (use null if no relevant evidence):
- escapeRoutesSummary: 1-2 sentences on escape routes, final exits, obstructions, signage. Null if nothing relevant.
- fireSafetyTrainingSummary: 1-2 sentences on fire safety training, drills, induction, toolbox talks. Null if nothing relevant.
- managementReviewStatement: 1 sentence, e.g. "This assessment has been informed by recent health and safety inspections and site observations." or similar. Null if inappropriate.
- significantFindings: array of 2-4 sentences summarising key fire safety findings (detection, escape, fire doors, management). Must be evidence-based.
- riskRatingJustification: 1-2 sentences justifying a Tolerable or Moderate risk rating based on evidence. Null if insufficient evidence.
- premisesDescription: Brief 2-3 sentence description of the premises layout if the audit provides useful detail. Null otherwise.

{premises}

H&S AUDIT TEXT:
---
{truncate_text(text)}
---

Return ONLY valid JSON, no markdown or extra text."""


async def summarize_for_fra(llm: LLMClient, text: str, premises_name: Optional[str] = None) -> dict:
    data = await llm.complete_json(
        FRA_SYSTEM,
        fra_summary_prompt(text, premises_name),
        temperature=0.3,
        max_tokens=1500,
    )
    if not isinstance(data, dict):
        data = {}
    summary = {key: data.get(key) for key in FRA_SUMMARY_KEYS}
    findings = summary["significantFindings"]
    if isinstance(findings, str):
        findings = [findings]
    summary["significantFindings"] = [str(item) for item in findings or []]
    return summary


# ==========================
# Dashboard reports
# ==========================

def compliance_report_prompt(figures: dict, today: date) -> str:
    day_of_year = today.timetuple().tm_yday
    top_stores = ", ".join(
        f"{store['name']} ({store['count']} incidents)" for store in figures["top_stores"]
    ) or "None"
    audit = figures["audit_stats"]
    return f"""
Act as a Senior Retail Compliance Officer. Analyze the following dashboard data for our retail chain:

**DATE CONTEXT:**
- Current Date: {today.day} {today.strftime('%B %Y')}
- Day of Year: {day_of_year} (we are {day_of_year} days into {today.year})
- Audit Schedule: First round audits are scheduled for the FIRST HALF of the year (January-June), and second round audits for the SECOND HALF (July-December).
- Each store needs ONE audit completed in each half of the year.

**DASHBOARD DATA:**
- Open Incidents: {figures['open_incidents']}
- Under Investigation: {figures['under_investigation']}
- Overdue Actions: {figures['overdue_actions']}
- High/Critical Risk Incidents (30d): {figures['high_critical_30d']}
- Audit Completion: First Round {audit['first_audit_percentage']}%, Second Round {audit['second_audit_percentage']}%
- Top Stores with Issues: {top_stores}

**OPERATIONAL CONTEXT:**
- We are Health and Safety Consultants conducting unannounced compliance audits for the retail chain.
- We schedule and conduct the audits. Store managers do not schedule or prepare for them.
- Evaluate audit completion against the six-month windows, not daily expectations.

Respond in HTML (no markdown code blocks) with:
1. <h3>Executive Summary</h3>: a 2-sentence overview of the current risk landscape.
2. <h3>Key Concerns</h3>: a bulleted list of the most pressing issues. Only flag audit completion if it is a genuine risk for the window.
3. <h3>Recommended Actions</h3>: 3 specific, actionable steps for our audit team, focused on planning and scheduling audits.

Keep the tone professional, realistic and constructive.
"""


async def compliance_report(llm: LLMClient, db: Session, today: Optional[date] = None) -> dict:
    today = today or date.today()
    figures = dashboard_figures(db)
    content = await llm.complete(REPORT_SYSTEM, compliance_report_prompt(figures, today), temperature=0.7)
    return {
        "content": strip_code_fences(content) or "Unable to generate report.",
        "data": figures,
    }


def audit_insights_prompt(stats: dict) -> str:
    regions = "\n".join(
        f"- {region['region']}: {region['store_count']} stores, "
        f"latest avg {format_percent(region['average_latest_pct'])}, "
        f"round 1 {region['round_1_completion_pct']:.0f}%, "
        f"round 2 {region['round_2_completion_pct']:.0f}%"
        for region in stats["regions"]
    ) or "None"
    return f"""
You are a retail compliance analytics assistant. Review the audit summary below and provide a concise executive insight.

Metrics:
- Active stores: {stats['total_stores']}
- Average latest score: {format_percent(stats['average_latest_pct'])}
- First round completion: {stats['round_1_completion_pct']:.0f}%
- Second round completion: {stats['round_2_completion_pct']:.0f}%

Regions:
{regions}

Return HTML only (no markdown). Structure:
<h3>Executive Summary</h3>
<p>...</p>
<h3>Trends to Watch</h3>
<ul><li>...</li></ul>
<h3>Recommended Focus</h3>
<ul><li>...</li></ul>
"""


async def audit_insights(llm: LLMClient, db: Session) -> dict:
    stats = audit_tracker_stats(db.query(Store).all())
    content = await llm.complete(INSIGHTS_SYSTEM, audit_insights_prompt(stats), temperature=0.5)
    return {
        "content": strip_code_fences(content) or "Unable to generate insights.",
        "data": stats,
    }


# ==========================
# Audit import
# ==========================

def audit_import_prompt(questions: Sequence[Question], text: str) -> str:
    listing = "\n".join(f"- {q.id} [{q.type}]: {q.text}" for q in questions)
    return f"""
You are importing a legacy safety audit PDF.

Extract answers from the PDF text and map them to the template questions.
Return ONLY valid JSON with this shape:
{{
  "answers": {{
    "<questionId>": "<answer string>"
  }}
}}

Rules:
- Use the closest matching answer from the PDF.
- Do not guess. If unsure, return an empty string.
- For number questions, use a numeric string.
- For date questions, use "YYYY-MM-DD" if possible.

Template questions (only fill missing answers):
{listing}

PDF text:
{text[:MAX_PROMPT_TEXT]}
"""


async def llm_answers(llm: LLMClient, questions: Sequence[Question], text: str) -> Dict[str, str]:
    data = await llm.complete_json(IMPORT_SYSTEM, audit_import_prompt(questions, text), temperature=0.2)
    answers = data.get("answers") if isinstance(data, dict) else None
    if not isinstance(answers, dict):
        return {}
    wanted = {q.id for q in questions}
    return {
        str(key): str(value)
        for key, value in answers.items()
        if str(key) in wanted and value not in (None, "")
    }


async def import_audit_pdf(
    llm: LLMClient,
    db: Session,
    template_id: UUID,
    data: bytes,
    max_pages: int = audit_import.DEFAULT_MAX_PAGES,
) -> dict:
    """
    Pre-fill a template's answers from an audit PDF.

    Heuristic answers come first; the LLM fills the remaining non yes/no
    questions and wins on conflicts. Without an API key only the
    heuristic answers are returned.
    """
    template = AuditTemplateService(db).get(template_id)
    questions = audit_import.questions_from_template(template)
    parsed = audit_import.read_pdf(data, max_pages=max_pages)

    answers = audit_import.match_answers(questions, parsed)
    remaining = audit_import.unmatched_questions(questions, answers)

    if remaining and llm.api_key:
        answers.update(await llm_answers(llm, remaining, parsed.text))
    elif remaining:
        logger.warning(
            "Audit import skipped LLM fallback; no API key",
            extra={"unmatched": len(remaining)},
        )

    return {
        "text": parsed.text,
        "answers": answers,
        "total_pages": parsed.total_pages,
        "pages_parsed": parsed.pages_parsed,
    }
