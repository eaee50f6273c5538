"""Tests for report aggregation (F3)."""

from dataclasses import replace

from hujra.core.models import BookProgress, FinancialLogEntry, Student
from hujra.core.reports import (
    build_summary,
    collect_financial_log,
    is_sick,
    needs_financial_help,
    parse_amount,
)


def with_finance(student: Student, *entries: tuple[str, str]) -> Student:
    return replace(
        student,
        financial_history=tuple(
            FinancialLogEntry(id=f"{student.id}-{i}", date=date, amount=amount, source="donor")
            for i, (date, amount) in enumerate(entries)
        ),
    )


class TestClassification:
    """Tests for sick / financial-need markers."""

    def test_empty_health_is_not_sick(self, ali):
        assert is_sick(ali) is False

    def test_healthy_markers(self, ali):
        assert is_sick(replace(ali, health_status="تەندروستە")) is False
        assert is_sick(replace(ali, health_status="Healthy")) is False

    def test_any_other_health_note_is_sick(self, ali):
        assert is_sick(replace(ali, health_status="asthma")) is True

    def test_financial_need(self, ali):
        assert needs_financial_help(replace(ali, family_financial_status="هەژار")) is True
        assert needs_financial_help(replace(ali, family_financial_status="Poor")) is True
        assert needs_financial_help(replace(ali, family_financial_status="باش")) is False


class TestAmounts:
    """Tests for parse_amount."""

    def test_numeric(self):
        assert parse_amount("5000") == 5000

    def test_non_numeric_counts_zero(self):
        assert parse_amount("five") == 0
        assert parse_amount("") == 0

    def test_negative_counts_zero(self):
        assert parse_amount("-300") == 0


class TestFinancialLog:
    """Tests for collect_financial_log."""

    def test_sorted_newest_first_across_students(self, ali, omar):
        students = [
            with_finance(ali, ("2024-01-01", "100"), ("2024-03-01", "300")),
            with_finance(omar, ("2024-02-01", "200")),
        ]

        log = collect_financial_log(students)

        assert [item.entry.amount for item in log] == ["300", "200", "100"]
        assert log[1].student_name == "Omar Hassan"

    def test_entry_dict_carries_student(self, ali):
        log = collect_financial_log([with_finance(ali, ("2024-01-01", "100"))])
        data = log[0].to_dict()

        assert data["studentId"] == ali.id
        assert data["studentName"] == ali.full_name
        assert data["amount"] == "100"


class TestBuildSummary:
    """Tests for build_summary."""

    def test_empty(self):
        summary = build_summary([], [])
        assert summary.total_students == 0
        assert summary.total_aid == 0
        assert summary.financial_log == []

    def test_counts(self, ali, omar, make_visit):
        ali = replace(
            with_finance(ali, ("2024-01-01", "1000"), ("2024-02-01", "n/a")),
            health_status="diabetes",
            previous_books=(BookProgress(id="p", name="Nahw", is_completed=True),),
        )
        omar = replace(with_finance(omar, ("2024-01-05", "500")), family_financial_status="poor")
        visits = [make_visit("v1", ali.id, "2024-01-01")]

        summary = build_summary([ali, omar], visits)

        assert summary.total_students == 2
        assert summary.total_visits == 1
        assert summary.current_books == 1
        assert summary.completed_books == 1
        assert summary.sick_students == [ali]
        assert summary.financial_alerts == [omar]
        assert summary.total_aid == 1500

    def test_to_dict(self, ali):
        data = build_summary([replace(ali, health_status="flu")], []).to_dict()

        assert data["totalStudents"] == 1
        assert data["sickStudents"] == [ali.id]
        assert data["financialLog"] == []
