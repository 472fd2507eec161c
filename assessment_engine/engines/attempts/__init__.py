"""
Attempts - quiz-taking sessions and the teacher's results report.
"""

from assessment_engine.engines.attempts.export import (
    ExportFormat,
    export_filename,
    question_set_json,
    results_csv,
    results_json,
)
from assessment_engine.engines.attempts.results import ResultsReport, ResultStats, SetResults
from assessment_engine.engines.attempts.session_manager import (
    AttemptQuestion,
    AttemptSession,
    AttemptSessionManager,
    SubmissionOutcome,
)

__all__ = [
    "AttemptQuestion",
    "AttemptSession",
    "AttemptSessionManager",
    "ExportFormat",
    "ResultStats",
    "ResultsReport",
    "SetResults",
    "SubmissionOutcome",
    "export_filename",
    "question_set_json",
    "results_csv",
    "results_json",
]
