"""
Function Assessment

Rubric catalog, scoring, function determination and response recording.
"""

from .determination import (
    MULTIPLE,
    AmbiguousFunction,
    FunctionDetermination,
    SingleFunction,
    determine_function,
    resolve_determined_function,
)
from .responses import AssessmentRecorder, AssessmentResult, DebouncedResponseWriter
from .rubric import AssessmentItem, FunctionCategory, ResponseOption, Rubric, get_rubric
from .scoring import CategoryScore, score_averages, score_responses

__all__ = [
    # Rubric
    "Rubric",
    "FunctionCategory",
    "ResponseOption",
    "AssessmentItem",
    "get_rubric",
    # Scoring
    "CategoryScore",
    "score_responses",
    "score_averages",
    # Determination
    "MULTIPLE",
    "SingleFunction",
    "AmbiguousFunction",
    "FunctionDetermination",
    "determine_function",
    "resolve_determined_function",
    # Responses
    "AssessmentRecorder",
    "AssessmentResult",
    "DebouncedResponseWriter",
]
