"""
Exam Engine.

A Python package for normalizing, composing and scoring exam questions
for the Greek naturalization exam, with free-text answers graded by Gemini.
"""

__version__ = "1.0.0"
__author__ = "Exam Engine Development Team"

from exam_engine.core.normalizer import normalize_question
from exam_engine.core.scorer import score
from exam_engine.core.orchestrator import GradingOrchestrator
from exam_engine.core.composer import ExamComposer
from exam_engine.core.evaluator import ExamEvaluator

__all__ = [
    "normalize_question",
    "score",
    "GradingOrchestrator",
    "ExamComposer",
    "ExamEvaluator",
]
