"""
Quiz state coordinator.

Sole owner of the current Quiz and of the per-question image state. The
quiz is published in one assignment; diagrams arrive later, in any order,
through a single result queue. Every generation attempt gets an epoch and
every image result carries the epoch it was issued under, so anything that
finishes after a reset or a newer generation is dropped.
"""

import asyncio
import logging
from types import MappingProxyType
from typing import Awaitable, Callable, Dict, Mapping, Optional, Set

from examprep.core.errors import GenerationBusyError
from examprep.schemas.quiz import ImagePayload, ImageResult, ImageStatus, Quiz
from examprep.services import gemini_service

logger = logging.getLogger(__name__)

DiagramRenderer = Callable[[str], Awaitable[Optional[ImagePayload]]]


class QuizStateCoordinator:
    """Owns Quiz + ImagePendingState. All mutation goes through these methods."""

    def __init__(self, render_diagram: Optional[DiagramRenderer] = None) -> None:
        self._render_diagram = render_diagram or gemini_service.render_diagram
        self._quiz: Optional[Quiz] = None
        self._pending: Dict[int, bool] = {}
        self._status: Dict[int, ImageStatus] = {}
        self._epoch = 0
        self._generating = False
        self._tasks: Set[asyncio.Task] = set()
        self._results: Optional[asyncio.Queue] = None
        self._consumer: Optional[asyncio.Task] = None

    # --- Read side ---

    @property
    def quiz(self) -> Optional[Quiz]:
        return self._quiz

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def is_generating(self) -> bool:
        return self._generating

    @property
    def pending(self) -> Mapping[int, bool]:
        return MappingProxyType(dict(self._pending))

    def is_pending(self, question_id: int) -> bool:
        return self._pending.get(question_id, False)

    def image_status(self, question_id: int) -> ImageStatus:
        return self._status.get(question_id, ImageStatus.NO_IMAGE_NEEDED)

    def has_pending_images(self) -> bool:
        return any(self._pending.values())

    # --- Generation lifecycle ---

    def begin_generation(self) -> int:
        """Start a new attempt: drop the old quiz and return the new epoch."""
        if self._generating:
            raise GenerationBusyError("A quiz is already being generated.")
        self._advance_epoch()
        self._generating = True
        logger.info(f"[STATE] Generation started (epoch {self._epoch})")
        return self._epoch

    def abort_generation(self, epoch: int) -> None:
        """Roll back a failed attempt. Nothing was published for it."""
        if epoch == self._epoch:
            self._generating = False
            logger.info(f"[STATE] Generation aborted (epoch {epoch})")

    def publish_quiz(self, epoch: int, quiz: Quiz) -> bool:
        """
        Install a freshly generated quiz and start its diagram tasks.
        Returns False (and changes nothing) if the epoch is no longer current.
        """
        if epoch != self._epoch:
            logger.info(f"[STATE] Discarding quiz from stale epoch {epoch} (current {self._epoch})")
            return False

        self._generating = False
        self._quiz = quiz
        self._pending = {}
        self._status = {}
        for question in quiz.questions:
            if question.needs_image and question.image_url is None:
                self._pending[question.question_id] = True
                self._status[question.question_id] = ImageStatus.PENDING
                self._spawn(question.question_id, question.image_description, epoch)

        logger.info(
            f"[STATE] ✓ Quiz published (epoch {epoch}) — {len(quiz.questions)} questions, "
            f"{len(self._pending)} diagrams requested"
        )
        return True

    def reset(self) -> None:
        """Forget everything. Late results for the old quiz will be ignored."""
        self._advance_epoch()
        logger.info(f"[STATE] Reset (epoch {self._epoch})")

    def _advance_epoch(self) -> None:
        self._epoch += 1
        self._generating = False
        self._quiz = None
        self._pending = {}
        self._status = {}
        for task in self._tasks:
            task.cancel()
        self._tasks.clear()

    # --- Image pipeline ---

    def _ensure_consumer(self) -> asyncio.Queue:
        if self._results is None:
            self._results = asyncio.Queue()
        if self._consumer is None or self._consumer.done():
            self._consumer = asyncio.create_task(self._consume(self._results))
        return self._results

    def _spawn(self, question_id: int, description: str, epoch: int) -> None:
        results = self._ensure_consumer()
        task = asyncio.create_task(self._render_one(results, question_id, description, epoch))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _render_one(self, results: asyncio.Queue, question_id: int, description: str, epoch: int) -> None:
        try:
            payload = await self._render_diagram(description)
        except Exception as e:
            logger.warning(f"[STATE] Diagram for question {question_id} failed: {e}")
            payload = None
        await results.put(ImageResult(question_id=question_id, epoch=epoch, payload=payload))

    async def _consume(self, results: asyncio.Queue) -> None:
        while True:
            result = await results.get()
            try:
                self.apply_image_result(result)
            finally:
                results.task_done()

    def apply_image_result(self, result: ImageResult) -> bool:
        """
        Merge one diagram result into the current quiz.
        Only the matching question is replaced; sibling records are kept as
        the same objects. Returns False when the result was discarded.
        """
        if result.epoch != self._epoch or self._quiz is None:
            logger.debug(f"[STATE] Dropping image for question {result.question_id} (epoch {result.epoch})")
            return False

        questions = self._quiz.questions
        index = next(
            (i for i, q in enumerate(questions) if q.question_id == result.question_id),
            None,
        )
        if index is None:
            logger.debug(f"[STATE] Dropping image for unknown question {result.question_id}")
            return False

        if result.payload is None:
            self._status[result.question_id] = ImageStatus.SKIPPED
        else:
            patched = questions[index].model_copy(update={"image_url": result.payload.to_data_url()})
            self._quiz = self._quiz.model_copy(
                update={"questions": questions[:index] + (patched,) + questions[index + 1:]}
            )
            self._status[result.question_id] = ImageStatus.RESOLVED
        self._pending[result.question_id] = False
        return True

    async def wait_for_images(self) -> None:
        """Wait until every outstanding diagram has been merged or dropped."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        if self._results is not None and self._consumer is not None and not self._consumer.done():
            await self._results.join()

    async def aclose(self) -> None:
        self._advance_epoch()
        if self._consumer is not None:
            self._consumer.cancel()
            await asyncio.gather(self._consumer, return_exceptions=True)
            self._consumer = None
        self._results = None
