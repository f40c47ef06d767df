"""
Data models for exam questions, scoring and composition.
"""

from exam_engine.models.question_models import (
    QuestionType,
    TrueFalseStatement,
    MatchingPair,
    MapPoint,
    SingleChoice,
    MultiChoice,
    TrueFalse,
    Matching,
    FillGap,
    GeoMap,
    OpenResponse,
    Question,
)
from exam_engine.models.scoring_models import (
    ScoreResult,
    PassThresholds,
    GradingContext,
    GradingRequest,
    GradingResponse,
    GradingItem,
    GradingFailure,
    GradingBatchResult,
    SectionScore,
    ExamSnapshot,
    ExamResult,
)
from exam_engine.models.exam_models import (
    ExamPool,
    ReadingLesson,
    ListeningLesson,
    SpeakingLesson,
    SpeakingSelection,
    Exam,
    ExamAnswers,
)

__all__ = [
    "QuestionType",
    "TrueFalseStatement",
    "MatchingPair",
    "MapPoint",
    "SingleChoice",
    "MultiChoice",
    "TrueFalse",
    "Matching",
    "FillGap",
    "GeoMap",
    "OpenResponse",
    "Question",
    "ScoreResult",
    "PassThresholds",
    "GradingContext",
    "GradingRequest",
    "GradingResponse",
    "GradingItem",
    "GradingFailure",
    "GradingBatchResult",
    "SectionScore",
    "ExamSnapshot",
    "ExamResult",
    "ExamPool",
    "ReadingLesson",
    "ListeningLesson",
    "SpeakingLesson",
    "SpeakingSelection",
    "Exam",
    "ExamAnswers",
]
