"""
Pydantic models for scoring, oracle grading and exam results.
"""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from exam_engine import config
from exam_engine.models.question_models import Question


Section = Literal["theory", "reading", "listening", "writing", "speaking"]
GradingKind = Literal["short_answer", "essay", "speaking"]


class ScoreResult(BaseModel):
    """Score of one (Question, Answer) pair."""
    model_config = ConfigDict(frozen=True)

    earned: float = Field(ge=0.0, description="Points earned")
    max_points: float = Field(ge=0.0, description="Points available")
    correct: bool = Field(description="Whether the answer counts as fully correct")
    detail: Any = Field(default=None, description="Variant-specific breakdown")


class PassThresholds(BaseModel):
    """Minimum totals required to pass the exam."""
    model_config = ConfigDict(frozen=True)

    total: float = config.PASS_THRESHOLD_TOTAL
    language: float = config.PASS_THRESHOLD_LANG
    theory: float = config.PASS_THRESHOLD_THEORY


class GradingContext(BaseModel):
    """Section weight and pass thresholds handed to the scorer."""
    model_config = ConfigDict(frozen=True)

    section: Section = "theory"
    max_points: float = Field(default=config.SECTION_POINTS["theory"], gt=0)
    thresholds: PassThresholds = Field(default_factory=PassThresholds)

    @classmethod
    def for_section(
        cls,
        section: Section,
        thresholds: Optional[PassThresholds] = None,
        section_points: Optional[Dict[str, float]] = None,
    ) -> "GradingContext":
        """Build the context for a section from the configured point table."""
        points = section_points or config.SECTION_POINTS
        return cls(
            section=section,
            max_points=points[section],
            thresholds=thresholds or PassThresholds(),
        )


class GradingRequest(BaseModel):
    """What the oracle is asked to grade."""
    prompt: str = Field(description="Question, essay topic or speaking topic")
    answer_text: str = Field(description="Candidate's free-text answer or transcript")
    reference_answer: Optional[str] = Field(default=None, description="Model answer, if any")
    max_points: float = Field(gt=0, description="Highest score the oracle may award")
    kind: GradingKind = "short_answer"


class GradingResponse(BaseModel):
    """What the oracle answers."""
    model_config = ConfigDict(populate_by_name=True)

    score: float = Field(description="Points awarded")
    feedback: str = Field(default="", description="Feedback for the candidate")
    is_correct: Optional[bool] = Field(
        default=None, alias="isCorrect", description="Whether the answer is essentially right")


class GradingItem(BaseModel):
    """One open-ended item queued for the oracle."""
    key: str = Field(description="Slot the result is written back to")
    prompt: str
    answer_text: str = ""
    reference_answer: Optional[str] = None
    max_points: float = Field(gt=0)
    kind: GradingKind = "short_answer"

    def to_request(self) -> GradingRequest:
        return GradingRequest(
            prompt=self.prompt,
            answer_text=self.answer_text,
            reference_answer=self.reference_answer,
            max_points=self.max_points,
            kind=self.kind,
        )


class GradingFailure(BaseModel):
    """An oracle call that failed or timed out."""
    key: str
    reason: str


class GradingBatchResult(BaseModel):
    """Scores of one orchestrated batch, plus the calls that failed."""
    scores: Dict[str, ScoreResult] = Field(default_factory=dict)
    feedback: Dict[str, str] = Field(default_factory=dict)
    failures: List[GradingFailure] = Field(default_factory=list)


class SectionScore(BaseModel):
    """Total of one exam section."""
    section: Section
    earned: float
    max_points: float
    item_count: int


class ExamSnapshot(BaseModel):
    """Record persisted alongside a finished exam for later review."""
    questions: List[Question] = Field(default_factory=list)
    answers: List[Any] = Field(default_factory=list)
    scores: List[ScoreResult] = Field(default_factory=list)
    pass_verdict: bool = False


class ExamResult(BaseModel):
    """Final outcome of one exam submission."""
    exam_id: str
    section_scores: Dict[str, SectionScore]
    theory_total: float
    language_total: float
    grand_total: float
    passed: bool
    thresholds: PassThresholds
    feedback: Dict[str, str] = Field(default_factory=dict)
    failures: List[GradingFailure] = Field(default_factory=list)
    snapshot: ExamSnapshot
