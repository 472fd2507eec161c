"""
Exports - downloadable copies of a set's results and of its questions.

Results go out as a CSV sheet (one row per graded attempt) or as JSON with
the summary stats; a question set goes out as JSON including correct labels.
"""

import csv
import re
from datetime import datetime
from enum import Enum
from io import StringIO
from typing import Any, Dict, List

from assessment_engine.engines.attempts.results import SetResults
from assessment_engine.kernel.models import QuestionSet, QuestionSetStatus, ensure_utc


class ExportFormat(str, Enum):
    CSV = "csv"
    JSON = "json"


RESULTS_CSV_HEADERS = [
    "Participant Name",
    "Email",
    "Correct",
    "Wrong",
    "Unattempted",
    "Final Score",
    "Total Questions",
    "Percentage",
    "Grade",
    "Status",
    "Time Spent (minutes)",
    "Submitted At",
]


def export_filename(name: str, suffix: str, extension: str) -> str:
    """Filesystem-safe download name, e.g. "Cell_Biology_results.csv"."""
    stem = re.sub(r"[^A-Za-z0-9]+", "_", name).strip("_")[:50] or "question_set"
    return f"{stem}_{suffix}.{extension}"


def results_csv(report: SetResults) -> str:
    buffer = StringIO()
    writer = csv.writer(buffer)
    writer.writerow(RESULTS_CSV_HEADERS)
    for result, participant in report.results:
        writer.writerow(
            [
                participant.name,
                participant.email,
                result.correct_count,
                result.wrong_count,
                result.unattempted_count,
                f"{result.final_score:.2f}",
                result.total_questions,
                result.percentage,
                result.grade,
                "Passed" if result.passed else "Failed",
                round(result.time_spent_seconds / 60, 1),
                ensure_utc(result.created_at).isoformat(),
            ]
        )
    return buffer.getvalue()


def results_json(report: SetResults, exported_at: datetime) -> Dict[str, Any]:
    question_set = report.question_set
    return {
        "metadata": {
            "question_set_id": str(question_set.id),
            "name": question_set.name,
            "total_questions": question_set.total_questions,
            "exported_at": ensure_utc(exported_at).isoformat(),
        },
        "stats": {
            "total_invitations": report.stats.total_invitations,
            "total_attempts": report.stats.total_attempts,
            "average_percentage": report.stats.average_percentage,
            "passed_count": report.stats.passed_count,
        },
        "results": [
            {
                "participant_name": participant.name,
                "participant_email": participant.email,
                "correct_count": result.correct_count,
                "wrong_count": result.wrong_count,
                "unattempted_count": result.unattempted_count,
                "final_score": result.final_score,
                "total_questions": result.total_questions,
                "percentage": result.percentage,
                "grade": result.grade,
                "passed": result.passed,
                "time_spent_seconds": result.time_spent_seconds,
                "submitted_at": ensure_utc(result.created_at).isoformat(),
            }
            for result, participant in report.results
        ],
    }


def question_set_json(question_set: QuestionSet, exported_at: datetime) -> Dict[str, Any]:
    """Questions in position order, numbered from 1, with the answer key."""
    questions: List[Dict[str, Any]] = [
        {
            "number": index,
            "question": question.text,
            "options": question.options,
            "correct_label": question.correct_label,
        }
        for index, question in enumerate(sorted(question_set.questions, key=lambda q: q.position), start=1)
    ]
    return {
        "metadata": {
            "question_set_id": str(question_set.id),
            "name": question_set.name,
            "description": question_set.description,
            "status": QuestionSetStatus(question_set.status).value,
            "total_questions": len(questions),
            "created_at": ensure_utc(question_set.created_at).isoformat() if question_set.created_at else None,
            "exported_at": ensure_utc(exported_at).isoformat(),
        },
        "questions": questions,
    }
