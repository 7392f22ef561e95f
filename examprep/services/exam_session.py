"""
Exam Prep Gen — Exam Session
============================
The application state behind the page: uploaded material, configuration,
answers and UI flags, plus a reference to the quiz state coordinator.
Every user action is one named transition on this object.
"""

import html
import logging
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from examprep.core.errors import ExamPrepError, GenerationError, InvalidTransitionError, UploadError
from examprep.schemas.api import MaterialView, QuestionView, QuizView, ScoreView, SessionView
from examprep.schemas.quiz import GenerationConfig, ImageStatus, Quiz, UploadedMaterial
from examprep.services import export_service, gemini_service, math_notation
from examprep.services.export_service import ExportedDocument
from examprep.services.quiz_state import QuizStateCoordinator
from examprep.services.request_builder import build_request

logger = logging.getLogger(__name__)


def percentage(correct: int, total: int) -> int:
    """round(100 * correct / total), halves rounded up."""
    if total <= 0:
        return 0
    return (200 * correct + total) // (2 * total)


class ExamSession:
    """Single-user application state and its transitions."""

    def __init__(self, coordinator: Optional[QuizStateCoordinator] = None) -> None:
        self.coordinator = coordinator or QuizStateCoordinator()
        self.material: Optional[UploadedMaterial] = None
        self.config = GenerationConfig()
        self.error: Optional[str] = None
        self.is_loading = False
        self.is_exporting = False
        self.results_revealed = False
        self._answers: Dict[int, int] = {}

    @property
    def quiz(self) -> Optional[Quiz]:
        return self.coordinator.quiz

    @property
    def answers(self) -> Mapping[int, int]:
        return MappingProxyType(dict(self._answers))

    # --- Material & configuration ---

    def upload(self, material: UploadedMaterial) -> None:
        self.material = material
        self.error = None

    def clear_material(self) -> None:
        self.material = None

    def configure(self, config: GenerationConfig) -> None:
        if self.is_loading:
            raise InvalidTransitionError("Settings cannot change while a quiz is being generated.")
        self.config = config

    # --- Generation ---

    async def start_generation(self) -> Optional[Quiz]:
        """
        Generate a quiz from the current material and config.
        Returns None if a reset superseded this attempt while it was running.
        """
        if self.material is None:
            self.error = "Please upload a study material first."
            raise UploadError(self.error)

        epoch = self.coordinator.begin_generation()
        request = build_request(self.material, self.config)
        self.is_loading = True
        self.error = None
        self._answers = {}
        self.results_revealed = False
        try:
            quiz = await gemini_service.generate_quiz(request)
        except GenerationError as e:
            self.coordinator.abort_generation(epoch)
            if epoch == self.coordinator.epoch:
                self.error = e.message
            raise
        except BaseException:
            self.coordinator.abort_generation(epoch)
            raise
        finally:
            if epoch == self.coordinator.epoch:
                self.is_loading = False

        if not self.coordinator.publish_quiz(epoch, quiz):
            return None
        return quiz

    # --- Answering ---

    def select_answer(self, question_id: int, option_index: int) -> None:
        if self.results_revealed:
            raise InvalidTransitionError("Answers are locked once results are shown.")
        quiz = self.quiz
        question = quiz.find_question(question_id) if quiz else None
        if question is None:
            raise InvalidTransitionError(f"Unknown question {question_id}.")
        if not 0 <= option_index < len(question.options):
            raise InvalidTransitionError(f"Question {question_id} has no option {option_index}.")
        self._answers[question_id] = option_index

    def can_reveal(self) -> bool:
        quiz = self.quiz
        if quiz is None or self.results_revealed:
            return False
        return all(q.question_id in self._answers for q in quiz.questions)

    def reveal_results(self) -> ScoreView:
        if self.quiz is None:
            raise InvalidTransitionError("There is no quiz to submit.")
        if not self.can_reveal():
            raise InvalidTransitionError("Answer every question before submitting.")
        self.results_revealed = True
        score = self.score()
        logger.info(f"[SESSION] Results revealed — {score.correct}/{score.total} ({score.percentage}%)")
        return score

    def score(self) -> ScoreView:
        quiz = self.quiz
        if quiz is None:
            return ScoreView(correct=0, total=0, percentage=0)
        correct = sum(
            1
            for q in quiz.questions
            if q.correct_option_index() is not None
            and self._answers.get(q.question_id) == q.correct_option_index()
        )
        total = len(quiz.questions)
        return ScoreView(correct=correct, total=total, percentage=percentage(correct, total))

    def retry(self) -> None:
        """Same paper, fresh attempt."""
        self._answers = {}
        self.results_revealed = False

    def reset(self) -> None:
        """Back to the start screen: material, settings and quiz all cleared."""
        self.coordinator.reset()
        self.material = None
        self.config = GenerationConfig()
        self.error = None
        self.is_loading = False
        self.results_revealed = False
        self._answers = {}

    # --- Export ---

    async def export(self, include_answers: bool) -> ExportedDocument:
        quiz = self.quiz
        if quiz is None:
            raise InvalidTransitionError("There is no quiz to export.")
        if self.is_exporting:
            raise InvalidTransitionError("An export is already running.")
        self.is_exporting = True
        try:
            return await export_service.export_quiz(quiz, include_answers, self.config.language)
        except ExamPrepError as e:
            self.error = e.message
            raise
        finally:
            self.is_exporting = False

    # --- View ---

    def view(self) -> SessionView:
        quiz = self.quiz
        return SessionView(
            academic_level=self.config.academic_level,
            language=self.config.language,
            focus_topics=self.config.focus_topics,
            material=self._material_view(),
            is_loading=self.is_loading,
            is_exporting=self.is_exporting,
            error=self.error,
            quiz=self._quiz_view(quiz) if quiz else None,
            answers=dict(self._answers),
            results_revealed=self.results_revealed,
            can_reveal=self.can_reveal(),
            images_pending=self.coordinator.has_pending_images(),
            score=self.score() if self.results_revealed else None,
        )

    def _material_view(self) -> Optional[MaterialView]:
        if self.material is None:
            return None
        return MaterialView(
            filename=self.material.filename,
            mime_type=self.material.mime_type,
            kind=self.material.kind,
            size_bytes=self.material.size_bytes,
            page_count=self.material.page_count,
        )

    def _quiz_view(self, quiz: Quiz) -> QuizView:
        questions = []
        for number, q in enumerate(quiz.questions, start=1):
            selected = self._answers.get(q.question_id)
            correct = q.correct_option_index() if self.results_revealed else None
            status = self.coordinator.image_status(q.question_id)
            questions.append(QuestionView(
                number=number,
                question_id=q.question_id,
                stem_html=math_notation.to_html(q.stem),
                options_html=[math_notation.to_html(opt) for opt in q.options],
                cognitive_level_html=html.escape(q.cognitive_level),
                image_url=q.image_url,
                image_description=q.image_description if status is ImageStatus.RESOLVED else None,
                image_pending=self.coordinator.is_pending(q.question_id),
                image_status=status,
                selected_index=selected,
                correct_index=correct,
                is_correct=(selected == correct and correct is not None) if self.results_revealed else None,
                explanation_html=math_notation.to_html(q.explanation) if self.results_revealed else None,
            ))
        meta = quiz.quiz_metadata
        return QuizView(
            title=meta.title,
            subject=meta.subject,
            academic_level=meta.academic_level,
            language=meta.language,
            questions=questions,
        )
