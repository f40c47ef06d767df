"""
Exam Composer.

Draws a fixed-size, diverse, duplicate-free set of questions from category
pools, and picks the lessons for the passage-based sections.

Randomness comes from an injected ``random.Random`` so a seeded source
reproduces the exact same exam.
"""
import logging
import random
import uuid
from collections import Counter
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, TypeVar

from exam_engine import config
from exam_engine.exceptions import EmptyPoolError
from exam_engine.models.exam_models import (
    Exam,
    ExamPool,
    ListeningLesson,
    ReadingLesson,
    SpeakingLesson,
    SpeakingSelection,
)
from exam_engine.models.question_models import Question

logger = logging.getLogger(__name__)

Lesson = TypeVar("Lesson")


def partition_by_order(
    questions: Iterable[Question],
    min_order: Optional[int] = None,
    max_order: Optional[int] = None,
) -> List[Question]:
    """
    Questions whose order lies in ``(min_order, max_order]``.

    A question without an order counts as order 0. Either bound may be None.
    """
    selected = []
    for question in questions:
        order = question.order or 0
        if min_order is not None and order <= min_order:
            continue
        if max_order is not None and order > max_order:
            continue
        selected.append(question)
    return selected


class ExamComposer:
    """Compose exams from question pools and lessons."""

    def __init__(self, rng: Optional[random.Random] = None, per_type_cap: Optional[int] = None):
        """
        Args:
            rng: Random source. Pass a seeded ``random.Random`` for
                reproducible exams.
            per_type_cap: How many questions of one variant are accepted
                before the backfill. Defaults to config.DIVERSITY_CAP.
        """
        self.rng = rng or random.Random()
        self.per_type_cap = per_type_cap if per_type_cap is not None else config.DIVERSITY_CAP

    def select_diverse(
        self,
        pool: Sequence[Question],
        count: int,
        exclude_ids: Iterable[str] = (),
        pool_name: str = "pool",
    ) -> List[Question]:
        """
        Pick ``count`` questions with at most ``per_type_cap`` of each variant.

        The pool is shuffled and walked greedily; when the cap keeps the
        selection short, the rest is backfilled from the unused questions
        ignoring the cap. A pool smaller than ``count`` yields every question.

        Args:
            pool: Candidate questions.
            count: Number of questions wanted.
            exclude_ids: Ids that must not be selected (already in the exam).
            pool_name: Name used in errors and logs.

        Returns:
            Selected questions, unique by id.

        Raises:
            EmptyPoolError: If ``count`` is positive and the pool is empty.
        """
        if count <= 0:
            return []
        if not pool:
            raise EmptyPoolError(
                f"Pool '{pool_name}' is empty; cannot select {count} question(s)",
                pool=pool_name, requested=count)

        shuffled = list(pool)
        self.rng.shuffle(shuffled)

        seen = set(exclude_ids)
        candidates = []
        for question in shuffled:
            if question.id not in seen:
                seen.add(question.id)
                candidates.append(question)

        selected: List[Question] = []
        type_counts: Counter = Counter()
        for question in candidates:
            if len(selected) >= count:
                break
            if type_counts[question.type] < self.per_type_cap:
                selected.append(question)
                type_counts[question.type] += 1

        if len(selected) < count:
            chosen = {question.id for question in selected}
            backfill = [q for q in candidates if q.id not in chosen][:count - len(selected)]
            if backfill:
                logger.debug("Backfilled %d question(s) from '%s' ignoring the type cap",
                             len(backfill), pool_name)
            selected.extend(backfill)

        if len(selected) < count:
            logger.warning("Pool '%s' only had %d of %d requested question(s)",
                           pool_name, len(selected), count)
        return selected

    def compose_theory(
        self,
        pools: Mapping[str, ExamPool],
        blueprint: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> List[Question]:
        """
        Draw the theory questions, one quota per blueprint entry.

        Each entry names a pool, a count and optionally an order sub-range
        (``min_order`` exclusive, ``max_order`` inclusive). The result is
        duplicate-free across all quotas.

        Raises:
            EmptyPoolError: If a quota's pool or sub-range has no questions.
        """
        questions: List[Question] = []
        for quota in blueprint if blueprint is not None else config.THEORY_BLUEPRINT:
            name = quota["pool"]
            pool = pools.get(name)
            candidates = partition_by_order(
                pool.questions if pool is not None else [],
                min_order=quota.get("min_order"),
                max_order=quota.get("max_order"),
            )
            label = name
            if "min_order" in quota or "max_order" in quota:
                label = f"{name}({quota.get('min_order')}, {quota.get('max_order')}]"
            questions.extend(self.select_diverse(
                candidates, quota["count"],
                exclude_ids={q.id for q in questions},
                pool_name=label,
            ))
        return questions

    def pick_lesson(self, lessons: Sequence[Lesson]) -> Optional[Lesson]:
        """One lesson drawn uniformly at random; None if there are none."""
        if not lessons:
            return None
        return lessons[self.rng.randrange(len(lessons))]

    def pick_speaking(self, lessons: Sequence[SpeakingLesson]) -> SpeakingSelection:
        """
        The warm-up topic plus one random other topic.

        The warm-up is the lesson with order 0 or id ``lesson_0``, else the
        first lesson.
        """
        if not lessons:
            return SpeakingSelection()
        warmup = next(
            (lesson for lesson in lessons
             if lesson.order == 0 or lesson.id == config.SPEAKING_WARMUP_ID),
            lessons[0],
        )
        others = [lesson for lesson in lessons if lesson.id != warmup.id]
        return SpeakingSelection(warmup=warmup, graded=self.pick_lesson(others))

    def compose(
        self,
        pools: Mapping[str, ExamPool],
        reading: Sequence[ReadingLesson] = (),
        listening: Sequence[ListeningLesson] = (),
        speaking: Sequence[SpeakingLesson] = (),
        blueprint: Optional[Sequence[Mapping[str, Any]]] = None,
        exam_id: Optional[str] = None,
    ) -> Exam:
        """
        Compose a full exam.

        Args:
            pools: Theory pools by category name.
            reading: Reading lessons to pick from.
            listening: Listening lessons to pick from.
            speaking: Speaking topics to pick from.
            blueprint: Theory quotas; defaults to config.THEORY_BLUEPRINT.
            exam_id: Id of the exam; a random one is generated if omitted.

        Returns:
            The composed Exam.
        """
        questions = self.compose_theory(pools, blueprint)
        exam = Exam(
            id=exam_id or uuid.UUID(int=self.rng.getrandbits(128), version=4).hex,
            questions=questions,
            reading=self.pick_lesson(reading),
            listening=self.pick_lesson(listening),
            speaking=self.pick_speaking(speaking),
        )
        logger.info(
            "Composed exam %s: %d theory question(s), reading=%s, listening=%s, speaking=%s",
            exam.id, len(questions),
            exam.reading.id if exam.reading else None,
            exam.listening.id if exam.listening else None,
            exam.speaking.graded.id if exam.speaking.graded else None,
            extra={"exam_id": exam.id},
        )
        return exam


def build_pools(questions: Iterable[Question]) -> Dict[str, ExamPool]:
    """Group questions into pools by their category."""
    pools: Dict[str, ExamPool] = {}
    for question in questions:
        name = question.category or "uncategorized"
        pools.setdefault(name, ExamPool(name=name)).questions.append(question)
    return pools
