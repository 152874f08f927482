"""
TCF Manager — Report analysis.

Asks the configured LLM for a short operational summary of the logged
reports. Every failure resolves to a fixed message in the user's language;
nothing raises past analyze_reports().
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Sequence

from tcf_manager.core import llm
from tcf_manager.core.views import member_name, tcf_name
from tcf_manager.data.models import TCF, Member, Report

logger = logging.getLogger(__name__)

_MESSAGES = {
    "en": {
        "missing_key": "API Key is missing. Please configure your environment.",
        "failed": "Failed to analyze reports due to an error.",
        "empty": "No analysis could be generated.",
    },
    "fa": {
        "missing_key": "کلید API وجود ندارد. لطفا محیط خود را تنظیم کنید.",
        "failed": "خطا در تحلیل گزارش‌ها.",
        "empty": "تحلیلی ایجاد نشد.",
    },
}

_LANGUAGE_INSTRUCTION = {
    "en": "Provide the response in English.",
    "fa": "Please provide the analysis and response entirely in Persian (Farsi).",
}

_SYSTEM_PROMPT = """\
You are an intelligent operations analyst. Analyze the TCF (Task Control Form) \
report data you are given. Identify patterns, workload distribution among \
members, and any anomalies based on the descriptions and timing. Provide a \
concise summary and 3 key actionable insights.
{language_instruction}"""


def _message(language: str, kind: str) -> str:
    return _MESSAGES.get(language, _MESSAGES["en"])[kind]


def _report_day(timestamp: int | float) -> str:
    try:
        return datetime.fromtimestamp(timestamp / 1000).date().isoformat()
    except (OverflowError, OSError, ValueError):
        return "N/A"


def build_report_context(
    reports: Sequence[Report],
    members: Sequence[Member],
    tcfs: Sequence[TCF],
) -> str:
    """One line per report, references resolved to names."""
    lines = []
    for r in reports:
        lines.append(
            f"Date: {_report_day(r.timestamp)}, Time: {r.start_time or 'N/A'}, "
            f"Member: {member_name(members, r.member_id)}, "
            f"TCF: {tcf_name(tcfs, r.tcf_id)}, "
            f"Description: {r.description or 'N/A'}"
        )
    return "\n".join(lines)


async def analyze_reports(
    reports: Sequence[Report],
    members: Sequence[Member],
    tcfs: Sequence[TCF],
    language: str = "en",
) -> str:
    """Return an LLM-written summary of ``reports``, or a fixed error string."""
    if not llm.is_configured():
        return _message(language, "missing_key")

    system = _SYSTEM_PROMPT.format(
        language_instruction=_LANGUAGE_INSTRUCTION.get(language, _LANGUAGE_INSTRUCTION["en"]),
    )
    try:
        user_message = "Data:\n" + build_report_context(reports, members, tcfs)
        text = await llm.complete(system, user_message)
    except Exception as exc:
        logger.error("Report analysis failed: %s", exc)
        return _message(language, "failed")

    text = (text or "").strip()
    if not text:
        return _message(language, "empty")
    logger.info("Analyzed %d reports (%d chars)", len(reports), len(text))
    return text
