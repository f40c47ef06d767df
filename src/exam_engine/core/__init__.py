"""
Core functionality for normalizing, composing, scoring and grading exams.
"""

from exam_engine.core.normalizer import (
    normalize_question,
    normalize_questions,
    normalize_reading_lesson,
    normalize_listening_lesson,
    normalize_speaking_lesson,
)
from exam_engine.core.scorer import score
from exam_engine.core.oracle import GradingOracle, GeminiGradingOracle
from exam_engine.core.orchestrator import GradingOrchestrator
from exam_engine.core.composer import ExamComposer
from exam_engine.core.evaluator import ExamEvaluator

__all__ = [
    "normalize_question",
    "normalize_questions",
    "normalize_reading_lesson",
    "normalize_listening_lesson",
    "normalize_speaking_lesson",
    "score",
    "GradingOracle",
    "GeminiGradingOracle",
    "GradingOrchestrator",
    "ExamComposer",
    "ExamEvaluator",
]
