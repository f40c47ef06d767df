"""
Exam Evaluator.

Scores a submitted exam end to end:
- Deterministic variants go through the scorer
- Open questions, the essay and the speaking transcript go to the grading
  oracle in one concurrent batch
- Section totals, the pass verdict and a snapshot for later review are
  folded from the per-item ScoreResults
"""
import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional

from exam_engine import config
from exam_engine.core import scorer
from exam_engine.core.oracle import GeminiGradingOracle
from exam_engine.core.orchestrator import GradingOrchestrator
from exam_engine.exceptions import ExamEngineError
from exam_engine.models.exam_models import Exam, ExamAnswers
from exam_engine.models.question_models import OpenResponse, Question, QuestionType
from exam_engine.models.scoring_models import (
    ExamResult,
    ExamSnapshot,
    GradingContext,
    GradingItem,
    GradingKind,
    PassThresholds,
    ScoreResult,
    Section,
    SectionScore,
)
from exam_engine.utils.env_loader import load_env
from exam_engine.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

SECTIONS = ("theory", "reading", "listening", "writing", "speaking")


class _Entry(NamedTuple):
    section: Section
    key: str
    question: Question
    answer: Any
    kind: GradingKind = "short_answer"


class ExamEvaluator:
    """Evaluate answered exams and decide pass or fail."""

    def __init__(
        self,
        orchestrator: GradingOrchestrator,
        thresholds: Optional[PassThresholds] = None,
        section_points: Optional[Dict[str, float]] = None
    ):
        """
        Initialize the evaluator.

        Args:
            orchestrator: Orchestrator used for every open-ended item.
            thresholds: Pass thresholds. Defaults to the configured ones.
            section_points: Points per item by section. Defaults to
                config.SECTION_POINTS.
        """
        self.orchestrator = orchestrator
        self.thresholds = thresholds or PassThresholds()
        self.section_points = {**config.SECTION_POINTS, **(section_points or {})}

    def context(self, section: Section) -> GradingContext:
        return GradingContext.for_section(section, self.thresholds, self.section_points)

    def collect_entries(self, exam: Exam, answers: ExamAnswers) -> List[_Entry]:
        """Pair every scorable question of the exam with the candidate's answer."""
        entries = [
            _Entry("theory", f"theory:{q.id}", q, answers.theory.get(q.id))
            for q in exam.questions
        ]

        if exam.reading:
            entries += [
                _Entry("reading", f"reading_a:{q.id}", q, answers.reading_a.get(q.id))
                for q in exam.reading.part_a
            ]
            entries += [
                _Entry("reading", f"reading_b:{q.id}", q, answers.reading_b.get(q.id))
                for q in exam.reading.part_b
            ]
            entries.append(_Entry(
                "writing", f"writing:{exam.reading.part_c.id}",
                exam.reading.part_c, answers.essay, "essay"))

        if exam.listening:
            entries += [
                _Entry("listening", f"listening_a:{q.id}", q, answers.listening_a.get(q.id))
                for q in exam.listening.part_a
            ]
            entries += [
                _Entry("listening", f"listening_b:{q.id}", q, answers.listening_b.get(q.id))
                for q in exam.listening.part_b
            ]

        lesson = exam.speaking.graded
        if lesson:
            # the graded topic becomes an open question so it shares the oracle path
            topic = Question(
                id=f"{lesson.id}-speaking",
                prompt=lesson.prompt or lesson.title,
                variant=OpenResponse(),
            )
            entries.append(_Entry(
                "speaking", f"speaking:{lesson.id}", topic, answers.speaking_transcript, "speaking"))

        return entries

    def grading_items(self, entries: List[_Entry]) -> List[GradingItem]:
        """Grading items for the entries whose question is an open response."""
        items = []
        for entry in entries:
            if entry.question.type is not QuestionType.OPEN:
                continue
            items.append(GradingItem(
                key=entry.key,
                prompt=entry.question.prompt,
                answer_text="" if entry.answer is None else str(entry.answer),
                reference_answer=entry.question.variant.model_answer,
                max_points=self.context(entry.section).max_points,
                kind=entry.kind,
            ))
        return items

    def section_scores(self, entries: List[_Entry], results: List[ScoreResult]) -> Dict[str, SectionScore]:
        """Sum the results of each section."""
        totals = {}
        for section in SECTIONS:
            section_results = [r for e, r in zip(entries, results) if e.section == section]
            totals[section] = SectionScore(
                section=section,
                earned=round(scorer.total(section_results), 1),
                max_points=sum(r.max_points for r in section_results),
                item_count=len(section_results),
            )
        return totals

    def is_passed(self, theory_total: float, language_total: float) -> bool:
        """All three thresholds must be met."""
        grand_total = theory_total + language_total
        return (
            grand_total >= self.thresholds.total
            and language_total >= self.thresholds.language
            and theory_total >= self.thresholds.theory
        )

    async def evaluate(self, exam: Exam, answers: ExamAnswers) -> ExamResult:
        """
        Score an answered exam.

        Args:
            exam: The composed exam.
            answers: The candidate's answers.

        Returns:
            ExamResult with section totals, pass verdict, oracle feedback and
            failures, and a snapshot aligned question by question.
        """
        entries = self.collect_entries(exam, answers)
        batch = await self.orchestrator.grade(self.grading_items(entries))

        results = []
        for entry in entries:
            if entry.question.type is QuestionType.OPEN:
                results.append(batch.scores[entry.key])
            else:
                results.append(scorer.score(entry.question, entry.answer, self.context(entry.section)))

        sections = self.section_scores(entries, results)
        # the verdict uses unrounded sums; only reported totals are rounded
        theory_sum = scorer.total(r for e, r in zip(entries, results) if e.section == "theory")
        language_sum = scorer.total(
            r for e, r in zip(entries, results) if e.section in config.LANGUAGE_SECTIONS)
        passed = self.is_passed(theory_sum, language_sum)
        theory_total = round(theory_sum, 1)
        language_total = round(language_sum, 1)

        logger.info(
            "Exam %s evaluated: theory=%s language=%s passed=%s (%d oracle failure(s))",
            exam.id, theory_total, language_total, passed, len(batch.failures),
            extra={"exam_id": exam.id})

        return ExamResult(
            exam_id=exam.id,
            section_scores=sections,
            theory_total=theory_total,
            language_total=language_total,
            grand_total=round(theory_sum + language_sum, 1),
            passed=passed,
            thresholds=self.thresholds,
            feedback=batch.feedback,
            failures=batch.failures,
            snapshot=ExamSnapshot(
                questions=[e.question for e in entries],
                answers=[e.answer for e in entries],
                scores=results,
                pass_verdict=passed,
            ),
        )

    def evaluate_sync(self, exam: Exam, answers: ExamAnswers) -> ExamResult:
        """Blocking wrapper around ``evaluate``."""
        return asyncio.run(self.evaluate(exam, answers))

    def save_result(self, result: ExamResult, output_file: Optional[str] = None):
        """
        Save the exam result to a JSON file.

        Args:
            result: ExamResult to save
            output_file: Output file path (defaults to output/exam_result.json)
        """
        if output_file is None:
            output_file = Path(config.OUTPUT_DIR) / config.EXAM_RESULT_FILE

        output_path = Path(output_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(result.model_dump(mode="json"), f, indent=2, ensure_ascii=False)

        print(f"✓ Exam result saved to: {output_path}")

    def display_summary(self, result: ExamResult):
        """
        Display a summary of an exam result.

        Args:
            result: ExamResult to summarize
        """
        print("\n" + "="*70)
        print("EXAM RESULT SUMMARY")
        print("="*70)

        print(f"\nExam: {result.exam_id}")
        print("\nSections:")
        for section in result.section_scores.values():
            print(f"  • {section.section}: {section.earned:g}/{section.max_points:g}"
                  f" ({section.item_count} items)")

        print(f"\nTheory total:   {result.theory_total:g} (min {result.thresholds.theory:g})")
        print(f"Language total: {result.language_total:g} (min {result.thresholds.language:g})")
        print(f"Grand total:    {result.grand_total:g} (min {result.thresholds.total:g})")
        print(f"\nVerdict: {'PASSED ✓' if result.passed else 'FAILED ✗'}")

        if result.failures:
            print("\n" + "-"*70)
            print("UNGRADED ITEMS")
            print("-"*70)
            for failure in result.failures:
                print(f"  ✗ {failure.key}: {failure.reason}")

        if result.feedback:
            print("\n" + "-"*70)
            print("FEEDBACK")
            print("-"*70)
            for key, text in result.feedback.items():
                print(f"\n{key}:\n  {text}")

        print("\n" + "="*70 + "\n")


def main():
    """Evaluate the answered exam stored in the output directory."""
    print("="*70)
    print("EXAM EVALUATOR")
    print("="*70 + "\n")

    setup_logging(os.environ.get("ENVIRONMENT", "development"), os.environ.get("LOG_LEVEL", "INFO"))
    load_env()

    api_key = os.environ.get("GEMINI_API_KEY")
    if not api_key:
        print("ERROR: GEMINI_API_KEY environment variable not set.")
        print("Please set it using: export GEMINI_API_KEY='your-api-key'")
        return

    output_dir = Path(config.OUTPUT_DIR)
    try:
        exam = Exam.model_validate_json((output_dir / config.EXAM_FILE).read_text(encoding="utf-8"))
        answers = ExamAnswers.model_validate_json(
            (output_dir / config.ANSWERS_FILE).read_text(encoding="utf-8"))

        evaluator = ExamEvaluator(GradingOrchestrator(GeminiGradingOracle()))
        result = evaluator.evaluate_sync(exam, answers)

        evaluator.display_summary(result)
        evaluator.save_result(result)

    except FileNotFoundError as e:
        print(f"\n✗ ERROR: {e}")
        print("\nPlease ensure:")
        print(f"  1. '{output_dir / config.EXAM_FILE}' holds the composed exam")
        print(f"  2. '{output_dir / config.ANSWERS_FILE}' holds the candidate's answers")
        print("  3. Run the script again")
    except ExamEngineError as e:
        print(f"\n✗ ERROR: {e}")


if __name__ == "__main__":
    main()
