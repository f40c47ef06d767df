"""
Grading Orchestrator.

Sends every open-ended item of an exam to the grading oracle concurrently
and folds the grades back into ScoreResults.

One task is spawned per item and all of them are joined (join-all, not
fail-fast). Each call has its own timeout. A failed, timed-out or garbled
call degrades only its own item to a zero score; it is logged and listed in
the batch's failures, and the batch itself always completes.
"""
import asyncio
import logging
from typing import Optional, Sequence, Tuple

from exam_engine import config
from exam_engine.core.oracle import GradingOracle
from exam_engine.core.scorer import score_open_response, unavailable
from exam_engine.models.scoring_models import (
    GradingBatchResult,
    GradingFailure,
    GradingItem,
    GradingResponse,
    ScoreResult,
)

logger = logging.getLogger(__name__)


def _discard_late_result(task: asyncio.Future) -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Late oracle call failed after timeout: %s", task.exception())


class GradingOrchestrator:
    """Grade open-ended items through an oracle, isolating failures."""

    def __init__(self, oracle: GradingOracle, timeout: Optional[float] = None):
        """
        Args:
            oracle: The grading oracle to call.
            timeout: Seconds allowed per oracle call. Defaults to
                config.ORACLE_TIMEOUT_SECONDS.
        """
        self.oracle = oracle
        self.timeout = timeout if timeout is not None else config.ORACLE_TIMEOUT_SECONDS

    async def _grade_one(self, item: GradingItem) -> Tuple[GradingItem, ScoreResult, Optional[str]]:
        """Grade one item; returns (item, result, failure reason or None)."""
        if len(item.answer_text.strip()) < config.MIN_ANSWER_CHARS:
            return item, unavailable(item.max_points, config.EMPTY_ANSWER), None

        call = None
        try:
            # shielded so a late answer may still arrive; it is then ignored
            call = asyncio.ensure_future(self.oracle.grade(item.to_request()))
            response = await asyncio.wait_for(asyncio.shield(call), timeout=self.timeout)
            response = GradingResponse.model_validate(response)
        except asyncio.TimeoutError:
            call.add_done_callback(_discard_late_result)
            logger.warning("Grading oracle timed out after %ss for item %s", self.timeout, item.key)
            return item, unavailable(item.max_points), f"timeout after {self.timeout}s"
        except Exception as e:
            logger.warning("Grading oracle failed for item %s: %s", item.key, e)
            return item, unavailable(item.max_points), f"{type(e).__name__}: {e}"

        logger.debug("Item %s graded %s/%s", item.key, response.score, item.max_points)
        return item, score_open_response(response, item.max_points), None

    async def grade(self, items: Sequence[GradingItem]) -> GradingBatchResult:
        """
        Grade a batch of open-ended items.

        Args:
            items: Items to grade; keys must be unique within the batch.

        Returns:
            GradingBatchResult with one ScoreResult per item key.
        """
        if not items:
            return GradingBatchResult()

        logger.info("Dispatching %d open-ended item(s) to the grading oracle", len(items))
        outcomes = await asyncio.gather(*(self._grade_one(item) for item in items))

        batch = GradingBatchResult()
        for item, result, failure in outcomes:
            batch.scores[item.key] = result
            if isinstance(result.detail, dict) and result.detail.get("feedback"):
                batch.feedback[item.key] = result.detail["feedback"]
            if failure is not None:
                batch.failures.append(GradingFailure(key=item.key, reason=failure))

        if batch.failures:
            logger.warning("%d of %d oracle call(s) failed", len(batch.failures), len(items))
        return batch

    def grade_sync(self, items: Sequence[GradingItem]) -> GradingBatchResult:
        """Blocking wrapper around ``grade`` for callers without an event loop."""
        return asyncio.run(self.grade(items))
