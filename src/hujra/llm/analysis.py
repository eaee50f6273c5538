"""AI progress summary for a student.

summarize() never raises: any failure (no API key, server down, empty
answer) degrades to a placeholder text with available=False.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from hujra.core.models import Student
from hujra.llm.client import LLMClient
from hujra.utils.text_utils import strip_think

logger = structlog.get_logger(__name__)

ANALYSIS_UNAVAILABLE_TEXT = "Could not complete the analysis."

SYSTEM_PROMPT = """You assist a tutor who supervises religious-school students (faqe) \
living and studying in a hujra. Write a short assessment in {language}. \
Be concrete and kind. Suggest how the student can be supported academically \
and socially."""

USER_PROMPT = """Student: {name}
Education level: {level}
Current books: {current_books}
Completed books: {completed_count}
Family financial status: {financial}
Health status: {health}
Recent progress: {recent}"""


@dataclass
class AnalysisResult:
    """Text of an analysis and whether the LLM actually produced it."""

    text: str
    available: bool = True


def build_prompt(student: Student, recent_entries: int = 5) -> str:
    """Render the user message describing one student."""
    current = ", ".join(
        f"{b.name} (p. {b.page_count or '?'})" for b in student.current_books
    )
    recent = "; ".join(
        f"{e.date} {e.book_name} p. {e.current_page}"
        for e in student.study_history[:recent_entries]
    )
    return USER_PROMPT.format(
        name=student.full_name,
        level=student.education_level or "-",
        current_books=current or "-",
        completed_count=len(student.previous_books),
        financial=student.family_financial_status or "-",
        health=student.health_status or "-",
        recent=recent or "-",
    )


def summarize(
    student: Student,
    client: LLMClient | None = None,
    language: str = "Kurdish (Sorani)",
) -> AnalysisResult:
    """Ask the LLM for a short assessment of a student.

    Args:
        student: Student snapshot to describe
        client: LLM client (built from app config if not provided)
        language: Language the assessment should be written in

    Returns:
        AnalysisResult; available=False with placeholder text on any failure
    """
    try:
        if client is None:
            client = LLMClient()
        content = client.simple_chat(
            SYSTEM_PROMPT.format(language=language),
            build_prompt(student),
        )
    except Exception as e:
        logger.warning("analysis.unavailable", student_id=student.id, error=str(e))
        return AnalysisResult(text=ANALYSIS_UNAVAILABLE_TEXT, available=False)

    text = strip_think(content or "")
    if not text:
        logger.warning("analysis.empty_response", student_id=student.id)
        return AnalysisResult(text=ANALYSIS_UNAVAILABLE_TEXT, available=False)

    logger.info("analysis.completed", student_id=student.id, chars=len(text))
    return AnalysisResult(text=text)
