"""
Pydantic models for question pools, lessons and composed exams.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from exam_engine.models.question_models import Question


class ExamPool(BaseModel):
    """Named collection of canonical questions for one category."""
    name: str = Field(description="Category name (e.g. history)")
    questions: List[Question] = Field(default_factory=list)


class ReadingLesson(BaseModel):
    """A reading passage with its three parts."""
    model_config = ConfigDict(frozen=True)

    id: str
    order: int = 999
    title: str = ""
    text_content: str = ""
    image_urls: List[str] = Field(default_factory=list)
    part_a: List[Question] = Field(default_factory=list, description="Comprehension questions")
    part_b: List[Question] = Field(default_factory=list, description="Grammar questions")
    part_c: Question = Field(description="Writing task, always an open response")


class ListeningLesson(BaseModel):
    """A listening recording with its two parts."""
    model_config = ConfigDict(frozen=True)

    id: str
    order: int = 999
    title: str = ""
    audio_url: str = ""
    transcript: str = ""
    part_a: List[Question] = Field(default_factory=list, description="Single choice questions")
    part_b: List[Question] = Field(default_factory=list, description="True/false statements")


class SpeakingLesson(BaseModel):
    """A speaking topic."""
    model_config = ConfigDict(frozen=True)

    id: str
    order: int = 999
    title: str = "Speaking Topic"
    prompt: str = ""
    image_urls: List[str] = Field(default_factory=list)
    tips: List[str] = Field(default_factory=list)


class SpeakingSelection(BaseModel):
    """Warm-up topic plus the randomly drawn topic that is graded."""
    model_config = ConfigDict(frozen=True)

    warmup: Optional[SpeakingLesson] = None
    graded: Optional[SpeakingLesson] = None


class Exam(BaseModel):
    """One composed exam instance; immutable once created."""
    model_config = ConfigDict(frozen=True)

    id: str
    created_at: datetime = Field(default_factory=datetime.now)
    questions: List[Question] = Field(default_factory=list, description="Theory questions, in order")
    reading: Optional[ReadingLesson] = None
    listening: Optional[ListeningLesson] = None
    speaking: SpeakingSelection = Field(default_factory=SpeakingSelection)


class ExamAnswers(BaseModel):
    """Candidate answers, keyed by question id within each part."""
    theory: Dict[str, Any] = Field(default_factory=dict)
    reading_a: Dict[str, Any] = Field(default_factory=dict)
    reading_b: Dict[str, Any] = Field(default_factory=dict)
    essay: str = ""
    listening_a: Dict[str, Any] = Field(default_factory=dict)
    listening_b: Dict[str, Any] = Field(default_factory=dict)
    speaking_transcript: str = Field(
        default="", description="Transcript of the graded speaking recording")
