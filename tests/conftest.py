"""
Pytest configuration and shared fixtures for Exam Engine tests.

Provides raw authoring records in every legacy shape, canonical questions
of each variant, seeded random sources and fake grading oracles.
"""
import asyncio
import random
import tempfile
from pathlib import Path
from typing import Dict, List
from unittest.mock import MagicMock

import pytest

from exam_engine.models.exam_models import (
    Exam,
    ExamPool,
    ListeningLesson,
    ReadingLesson,
    SpeakingLesson,
    SpeakingSelection,
)
from exam_engine.models.question_models import (
    FillGap,
    GeoMap,
    MapPoint,
    Matching,
    MatchingPair,
    MultiChoice,
    OpenResponse,
    Question,
    SingleChoice,
    TrueFalse,
    TrueFalseStatement,
)
from exam_engine.models.scoring_models import GradingRequest, GradingResponse


# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow running tests")
    config.addinivalue_line("markers", "api: Tests requiring API access")


# ============================================================================
# ENVIRONMENT FIXTURES
# ============================================================================

@pytest.fixture
def mock_env_vars(monkeypatch):
    """Mock environment variables for testing."""
    test_api_key = "test-gemini-api-key-12345"
    monkeypatch.setenv("GEMINI_API_KEY", test_api_key)
    return {"GEMINI_API_KEY": test_api_key}


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ============================================================================
# RAW RECORD FIXTURES
# ============================================================================

@pytest.fixture
def raw_greek_single() -> Dict:
    """Legacy single-choice record with lettered option fields."""
    return {
        "id": "hist-001",
        "question": "Ποια είναι η πρωτεύουσα;",
        "optionA": "Αθήνα",
        "optionB": "Θεσσαλονίκη",
        "optionC": "Πάτρα",
        "answer": "a",
    }


@pytest.fixture
def raw_true_false() -> Dict:
    """True/false record with per-statement truth values."""
    return {
        "id": "tf-001",
        "type": "true_false",
        "statements": [
            {"text": "Η Αθήνα είναι πρωτεύουσα.", "isTrue": True},
            {"text": "Η Κρήτη είναι χερσόνησος.", "isTrue": False},
        ],
    }


@pytest.fixture
def raw_reading_transformation() -> Dict:
    """Grammar transformation authored with a source -> target arrow."""
    return {
        "id": "rb-001",
        "type": "fill_gap",
        "instruction": "Μετατρέψτε στον πληθυντικό",
        "question": "ο δρόμος -> οι δρόμοι",
        "correctAnswers": {"0": "δρόμοι"},
    }


# ============================================================================
# CANONICAL QUESTION FIXTURES
# ============================================================================

@pytest.fixture
def single_question() -> Question:
    return Question(
        id="q-single",
        prompt="Ποια είναι η πρωτεύουσα;",
        variant=SingleChoice(options=["Αθήνα", "Θεσσαλονίκη", "Πάτρα"], correct_index=0),
    )


@pytest.fixture
def multi_question() -> Question:
    return Question(
        id="q-multi",
        prompt="Ποια είναι νησιά;",
        variant=MultiChoice(options=["Κρήτη", "Ήπειρος", "Ρόδος", "Θράκη"], correct_indices=[0, 2]),
    )


@pytest.fixture
def true_false_question() -> Question:
    return Question(
        id="q-tf",
        prompt="Σημειώστε Σωστό ή Λάθος",
        variant=TrueFalse(statements=[
            TrueFalseStatement(text="Η Αθήνα είναι πρωτεύουσα.", is_true=True),
            TrueFalseStatement(text="Η Κρήτη είναι χερσόνησος.", is_true=False),
        ]),
    )


@pytest.fixture
def matching_question() -> Question:
    return Question(
        id="q-match",
        prompt="Αντιστοιχίστε",
        variant=Matching(pairs=[
            MatchingPair(left="1821", right="Επανάσταση"),
            MatchingPair(left="1940", right="ΟΧΙ"),
        ]),
    )


@pytest.fixture
def fill_gap_question() -> Question:
    return Question(
        id="q-gap",
        prompt="Συμπληρώστε",
        variant=FillGap(
            segments=["Η πρωτεύουσα είναι η", "Το μεγαλύτερο νησί είναι η"],
            word_bank=["Αθήνα", "Κρήτη", "Πάτρα"],
            correct_answers={0: "Αθήνα", 1: "Κρήτη"},
        ),
    )


@pytest.fixture
def map_question() -> Question:
    return Question(
        id="q-map",
        prompt="Βρείτε την Αθήνα",
        variant=GeoMap(targets=[MapPoint(lat=100, lng=100, label="Αθήνα")], tolerance=30),
    )


@pytest.fixture
def open_question() -> Question:
    return Question(
        id="q-open",
        prompt="Τι γιορτάζουμε στις 25 Μαρτίου;",
        variant=OpenResponse(model_answer="Την Επανάσταση του 1821"),
    )


@pytest.fixture
def all_variant_questions(
    single_question, multi_question, true_false_question,
    matching_question, fill_gap_question, map_question, open_question
) -> List[Question]:
    """One canonical question of every variant."""
    return [
        single_question, multi_question, true_false_question,
        matching_question, fill_gap_question, map_question, open_question,
    ]


# ============================================================================
# COMPOSITION FIXTURES
# ============================================================================

def make_pool_questions(prefix: str, count: int, category: str = None) -> List[Question]:
    """Build ``count`` questions cycling through six deterministic variants."""
    builders = [
        lambda: SingleChoice(options=["α", "β"], correct_index=0),
        lambda: MultiChoice(options=["α", "β"], correct_indices=[1]),
        lambda: TrueFalse(statements=[TrueFalseStatement(text="α", is_true=True)]),
        lambda: Matching(pairs=[MatchingPair(left="α", right="β")]),
        lambda: FillGap(segments=["α"], correct_answers={0: "β"}),
        lambda: GeoMap(targets=[MapPoint(lat=0, lng=0)]),
    ]
    return [
        Question(
            id=f"{prefix}-{i:03d}",
            prompt=f"{prefix} {i}",
            variant=builders[i % len(builders)](),
            order=i + 1,
            category=category,
        )
        for i in range(count)
    ]


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def theory_pools() -> Dict[str, ExamPool]:
    """Pools large enough for the default theory blueprint."""
    return {
        "history": ExamPool(name="history", questions=make_pool_questions("hist", 20, "history")),
        "politics": ExamPool(name="politics", questions=make_pool_questions("pol", 20, "politics")),
        "culture": ExamPool(name="culture", questions=make_pool_questions("cul", 10, "culture")),
        "geography": ExamPool(name="geography", questions=make_pool_questions("geo", 80, "geography")),
    }


@pytest.fixture
def reading_lesson() -> ReadingLesson:
    return ReadingLesson(
        id="reading-1",
        order=1,
        title="Η γειτονιά μου",
        text_content="Μένω στην Αθήνα.",
        part_a=[Question(id="ra-1", variant=SingleChoice(options=["Αθήνα", "Πάτρα"], correct_index=0))],
        part_b=[Question(id="rb-1", variant=FillGap(segments=["οι"], correct_answers={0: "δρόμοι"}))],
        part_c=Question(id="reading-1-C", prompt="Γράψτε για τη γειτονιά σας", variant=OpenResponse()),
    )


@pytest.fixture
def listening_lesson() -> ListeningLesson:
    return ListeningLesson(
        id="listening-1",
        order=1,
        part_a=[Question(id="la-1", variant=SingleChoice(options=["ναι", "όχι"], correct_index=1))],
        part_b=[Question(id="lb-1", variant=TrueFalse(statements=[
            TrueFalseStatement(text="Βρέχει", is_true=False)]))],
    )


@pytest.fixture
def speaking_lessons() -> List[SpeakingLesson]:
    return [
        SpeakingLesson(id="lesson_0", order=0, prompt="Συστηθείτε"),
        SpeakingLesson(id="lesson_1", order=1, prompt="Περιγράψτε την πόλη σας"),
        SpeakingLesson(id="lesson_2", order=2, prompt="Μιλήστε για τη δουλειά σας"),
    ]


@pytest.fixture
def sample_exam(single_question, open_question, reading_lesson, listening_lesson, speaking_lessons) -> Exam:
    return Exam(
        id="exam-1",
        questions=[single_question, open_question],
        reading=reading_lesson,
        listening=listening_lesson,
        speaking=SpeakingSelection(warmup=speaking_lessons[0], graded=speaking_lessons[1]),
    )


# ============================================================================
# FAKE ORACLE FIXTURES
# ============================================================================

class FakeOracle:
    """Oracle returning a fixed fraction of max points, recording every request."""

    def __init__(self, fraction: float = 1.0, fail_on: str = None, delay: float = 0.0):
        self.fraction = fraction
        self.fail_on = fail_on
        self.delay = delay
        self.requests: List[GradingRequest] = []

    async def grade(self, request: GradingRequest) -> GradingResponse:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_on and self.fail_on in request.answer_text:
            raise RuntimeError("oracle unavailable")
        return GradingResponse(
            score=request.max_points * self.fraction,
            feedback=f"Βαθμός για: {request.prompt}",
        )


@pytest.fixture
def fake_oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def mock_genai_client():
    """Create a mock Google GenAI client with an async models API."""
    client = MagicMock()
    client.aio = MagicMock()
    client.aio.models = MagicMock()
    return client
