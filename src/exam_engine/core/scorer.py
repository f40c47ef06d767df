"""
Deterministic per-variant scoring.

``score`` never raises: a missing or garbled answer scores zero. Open
responses are the only variant that needs the grading oracle; their oracle
response is folded in through ``score_open_response``.
"""
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from exam_engine import config
from exam_engine.core.aliases import boolean_literal
from exam_engine.core.geo import within_tolerance
from exam_engine.models.question_models import (
    FillGap,
    GeoMap,
    Matching,
    MultiChoice,
    Question,
    QuestionType,
    SingleChoice,
    TrueFalse,
)
from exam_engine.models.scoring_models import GradingContext, GradingResponse, ScoreResult

logger = logging.getLogger(__name__)


def _clamp(value: float, upper: float) -> float:
    return max(0.0, min(float(value), upper))


def _as_index(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def _answer_at(answer: Any, index: int) -> Any:
    """Look up ``index`` in an answer keyed by int, by digit string, or positional."""
    if isinstance(answer, Mapping):
        if index in answer:
            return answer[index]
        return answer.get(str(index))
    if isinstance(answer, (list, tuple)):
        return answer[index] if index < len(answer) else None
    return None


def _fraction(max_points: float, hits: int, total: int, detail: Dict[str, Any]) -> ScoreResult:
    complete = total > 0 and hits == total
    if complete:
        earned = max_points
    else:
        earned = _clamp(max_points * hits / total, max_points) if total else 0.0
    return ScoreResult(
        earned=earned,
        max_points=max_points,
        correct=complete,
        detail={**detail, "hits": hits, "total": total},
    )


def normalize_text(value: Any) -> str:
    """Trim and case-fold; accents are left untouched."""
    return str(value).strip().casefold()


# ============================================================================
# PER-VARIANT SCORERS
# ============================================================================

def _score_single(variant: SingleChoice, answer: Any, max_points: float) -> ScoreResult:
    chosen = _as_index(answer)
    correct = chosen == variant.correct_index
    return ScoreResult(
        earned=max_points if correct else 0.0,
        max_points=max_points,
        correct=correct,
        detail={"chosen": chosen, "expected": variant.correct_index},
    )


def _score_multi(variant: MultiChoice, answer: Any, max_points: float) -> ScoreResult:
    # selections outside the correct set are not penalized
    chosen = set()
    if isinstance(answer, Iterable) and not isinstance(answer, (str, bytes, Mapping)):
        chosen = {i for i in map(_as_index, answer) if i is not None}
    expected = set(variant.correct_indices)
    return _fraction(max_points, len(chosen & expected), len(expected), {"chosen": sorted(chosen)})


def _score_true_false(variant: TrueFalse, answer: Any, max_points: float) -> ScoreResult:
    if boolean_literal(answer) is not None and len(variant.statements) == 1:
        answer = {0: answer}
    hits = 0
    for index, statement in enumerate(variant.statements):
        chosen = boolean_literal(_answer_at(answer, index))
        if chosen is not None and chosen == statement.is_true:
            hits += 1
    return _fraction(max_points, hits, len(variant.statements), {})


def _score_matching(variant: Matching, answer: Any, max_points: float) -> ScoreResult:
    hits = sum(
        1 for index, pair in enumerate(variant.pairs)
        if _answer_at(answer, index) == pair.right
    )
    return _fraction(max_points, hits, len(variant.pairs), {})


def _score_fill_gap(variant: FillGap, answer: Any, max_points: float) -> ScoreResult:
    matched: List[int] = []
    for index in range(len(variant.segments)):
        expected = variant.correct_answers.get(index)
        given = _answer_at(answer, index)
        if expected is None or given is None:
            continue
        if normalize_text(given) == normalize_text(expected):
            matched.append(index)
    return _fraction(max_points, len(matched), len(variant.segments), {"matched": matched})


def _score_map(variant: GeoMap, answer: Any, max_points: float) -> ScoreResult:
    placed = list(answer) if isinstance(answer, (list, tuple)) else []
    hits = sum(
        1 for index, target in enumerate(variant.targets)
        if index < len(placed) and placed[index] is not None
        and within_tolerance(placed[index], target, variant.tolerance)
    )
    return _fraction(max_points, hits, len(variant.targets), {"tolerance": variant.tolerance})


_SCORERS: Dict[QuestionType, Callable[[Any, Any, float], ScoreResult]] = {
    QuestionType.SINGLE: _score_single,
    QuestionType.MULTI: _score_multi,
    QuestionType.TRUE_FALSE: _score_true_false,
    QuestionType.MATCHING: _score_matching,
    QuestionType.FILL_GAP: _score_fill_gap,
    QuestionType.MAP: _score_map,
}


# ============================================================================
# PUBLIC API
# ============================================================================

def unavailable(max_points: float, detail: str = config.GRADING_UNAVAILABLE) -> ScoreResult:
    """Zero score used when an open response could not be graded."""
    return ScoreResult(earned=0.0, max_points=max_points, correct=False, detail=detail)


def score_open_response(response: Optional[GradingResponse], max_points: float) -> ScoreResult:
    """
    Fold an oracle response into a ScoreResult.

    The oracle's score is clamped to ``[0, max_points]``. ``correct`` is the
    oracle's verdict when it gives one, otherwise full marks.
    """
    if response is None:
        return unavailable(max_points)
    earned = _clamp(response.score, max_points)
    correct = response.is_correct if response.is_correct is not None else earned == max_points
    return ScoreResult(
        earned=earned,
        max_points=max_points,
        correct=correct,
        detail={"feedback": response.feedback},
    )


def score(
    question: Question,
    answer: Any,
    context: GradingContext,
    oracle_response: Optional[GradingResponse] = None,
) -> ScoreResult:
    """
    Score one answer against its question.

    Args:
        question: The canonical question.
        answer: The candidate's answer, shaped by the question variant. May
            be None.
        context: Section weight and thresholds.
        oracle_response: Oracle grade, used only for open responses.

    Returns:
        ScoreResult for the pair.
    """
    max_points = context.max_points
    if question.type is QuestionType.OPEN:
        return score_open_response(oracle_response, max_points)
    if answer is None:
        return ScoreResult(earned=0.0, max_points=max_points, correct=False, detail="no_answer")
    try:
        return _SCORERS[question.type](question.variant, answer, max_points)
    except (TypeError, ValueError) as e:
        logger.warning("Unscorable answer for question %s: %s", question.id, e)
        return ScoreResult(earned=0.0, max_points=max_points, correct=False, detail="unscorable_answer")


def total(results: Iterable[ScoreResult]) -> float:
    """Sum of earned points."""
    return sum(result.earned for result in results)
