"""
Grading session - state orchestration for one question and one submission.

The session owns the question context, the submission source, the current
grading result, the processing flags and the answer preview file. Source
edits are debounced before re-grading; every grading call is numbered and
only the reply to the latest call may replace the result.
"""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from types import TracebackType
from typing import Any, Callable, Iterator, Literal

from autograde.config import Settings
from autograde.files.export import export_source
from autograde.files.preview import PreviewFile
from autograde.grading.response_parser import ScoringError
from autograde.grading.retry import LLMError
from autograde.grading.service import GradingService
from autograde.models import Attachment, GradingResult, ProcessingState, QuestionContext
from autograde.presets import default_question
from autograde.session.debounce import Debouncer

logger = logging.getLogger(__name__)

_SERVICE_ERRORS = (LLMError, ScoringError)


class GradingSession:
    """
    State container driving transcription and debounced re-grading.

    Example:
        with GradingSession(service) as session:
            session.set_source(r"$x = 3$")
            session.settle()
            print(session.result)
    """

    def __init__(
        self,
        service: GradingService,
        question: QuestionContext | None = None,
        *,
        settings: Settings | None = None,
        debounce_seconds: float | None = None,
        on_update: Callable[["GradingSession"], None] | None = None,
    ):
        """
        Initialize the session.

        Args:
            service: Grading service used for every model call.
            question: Starting question; the default assignment if omitted.
            settings: Configuration; the service's settings if omitted.
            debounce_seconds: Quiescence window before re-grading.
            on_update: Called after each grading attempt completes.
        """
        self._service = service
        self._settings = settings or service.settings
        self._on_update = on_update
        self._lock = threading.RLock()

        self._question = question or default_question()
        self._source = ""
        self._settled_source = ""
        self._result: GradingResult | None = None
        self._state = ProcessingState()
        self._answer_file: Attachment | None = None
        self._preview: PreviewFile | None = None
        self._issued = 0

        delay = (
            debounce_seconds
            if debounce_seconds is not None
            else self._settings.debounce_seconds
        )
        self._debouncer: Debouncer[str] = Debouncer(delay, self._on_settled)

    # --------------------------------------------------------------------------
    # Read access
    # --------------------------------------------------------------------------

    @property
    def question(self) -> QuestionContext:
        with self._lock:
            return self._question

    @property
    def source(self) -> str:
        with self._lock:
            return self._source

    @property
    def result(self) -> GradingResult | None:
        with self._lock:
            return self._result

    @property
    def state(self) -> ProcessingState:
        with self._lock:
            return self._state

    @property
    def answer_file(self) -> Attachment | None:
        with self._lock:
            return self._answer_file

    @property
    def preview(self) -> PreviewFile | None:
        with self._lock:
            return self._preview

    @property
    def is_stale(self) -> bool:
        """True while the source has changed since it last settled."""
        with self._lock:
            return self._source != self._settled_source

    @property
    def latest_sequence(self) -> int:
        """Sequence number of the most recently issued grading call."""
        with self._lock:
            return self._issued

    # --------------------------------------------------------------------------
    # Question and source edits
    # --------------------------------------------------------------------------

    def set_question(self, question: QuestionContext) -> None:
        """Replace the question; a non-empty source is re-graded."""
        with self._lock:
            self._question = question
            source = self._source
        if source.strip():
            self._debouncer.trigger(source)

    def update_question(self, **changes: Any) -> QuestionContext:
        """Apply field edits to the question and return the new instance."""
        with self._lock:
            updated = self._question.model_copy(update=changes)
        self.set_question(updated)
        return updated

    def set_source(self, text: str) -> None:
        """Replace the submission source and restart the re-grade window."""
        with self._lock:
            self._source = text
        self._debouncer.trigger(text)

    def settle(self) -> bool:
        """
        Deliver a pending source change now instead of waiting.

        Returns:
            True if a pending change was delivered.
        """
        return self._debouncer.flush()

    def _on_settled(self, text: str) -> None:
        with self._lock:
            self._settled_source = text
            if not text:
                self._issued += 1
                self._result = None
                self._state = self._state.model_copy(update={"is_grading": False})
                return
        if text.strip():
            self._grade(text)

    # --------------------------------------------------------------------------
    # Grading
    # --------------------------------------------------------------------------

    def grade_now(self) -> GradingResult | None:
        """
        Grade the current source immediately, skipping the debounce window.

        Returns:
            The new result, or None if the source is blank, the call failed
            or a later call superseded this one.
        """
        self._debouncer.cancel()
        with self._lock:
            source = self._source
            self._settled_source = source
        if not source.strip():
            return None
        return self._grade(source)

    def _grade(self, source: str) -> GradingResult | None:
        with self._lock:
            self._issued += 1
            sequence = self._issued
            question = self._question
            self._state = self._state.model_copy(update={"is_grading": True, "error": None})

        try:
            result = self._service.grade(source, question)
        except _SERVICE_ERRORS as e:
            logger.error("Grading failed: %s", e)
            with self._lock:
                if sequence == self._issued:
                    self._state = self._state.model_copy(
                        update={"is_grading": False, "error": str(e)}
                    )
            self._notify()
            return None

        with self._lock:
            if sequence != self._issued:
                logger.debug(
                    "Discarding grading result #%d; latest is #%d", sequence, self._issued
                )
                return None
            self._result = result
            self._state = self._state.model_copy(update={"is_grading": False})

        self._notify()
        return result

    def _notify(self) -> None:
        if self._on_update is not None:
            self._on_update(self)

    # --------------------------------------------------------------------------
    # Uploads and model-assisted edits
    # --------------------------------------------------------------------------

    def upload_answer(self, attachment: Attachment) -> bool:
        """
        Attach an answer file, preview it and transcribe it into the source.

        Returns:
            True on success; on failure the error slot holds the message.
        """
        preview = PreviewFile.create(attachment)
        with self._lock:
            previous = self._preview
            self._preview = preview
            self._answer_file = attachment
        if previous is not None:
            previous.release()

        with self._converting():
            try:
                latex = self._service.transcribe_document(attachment)
            except _SERVICE_ERRORS as e:
                self._fail("Failed to convert file. Please check your API key and try again.", e)
                return False

        self.set_source(latex)
        return True

    def scan_question(self, attachment: Attachment) -> bool:
        """
        Extract question details from a question paper and merge them in.

        Extracted fields that come back empty keep their current values.
        The attachment becomes the question's reference image.
        """
        with self._converting():
            try:
                extracted = self._service.extract_question(attachment)
            except _SERVICE_ERRORS as e:
                self._fail("Failed to extract question from file.", e)
                return False

        current = self.question
        self.set_question(
            current.model_copy(
                update={
                    "title": extracted.title or current.title,
                    "description": extracted.description or current.description,
                    "total_marks": extracted.total_marks or current.total_marks,
                    "question_image": attachment,
                }
            )
        )
        return True

    def remove_question_image(self) -> None:
        self.set_question(self.question.without_image())

    def scan_solution(self, attachment: Attachment) -> bool:
        """Transcribe an answer key into the question's ideal solution."""
        with self._converting():
            try:
                solution = self._service.transcribe_solution(attachment)
            except _SERVICE_ERRORS as e:
                self._fail("Failed to scan solution.", e)
                return False

        self.update_question(ideal_solution=solution)
        return True

    def format_field(self, field: Literal["description", "solution"]) -> bool:
        """Reformat the description or ideal solution as text with LaTeX math."""
        attribute = "description" if field == "description" else "ideal_solution"
        text = getattr(self.question, attribute) or ""
        if not text.strip():
            return False

        with self._converting():
            try:
                refined = self._service.refine_text(text)
            except _SERVICE_ERRORS as e:
                self._fail(f"Failed to format {field}.", e)
                return False

        self.update_question(**{attribute: refined})
        return True

    def clear(self) -> None:
        """Drop the answer file, its preview, the source and the result."""
        self._debouncer.cancel()
        with self._lock:
            preview = self._preview
            self._preview = None
            self._answer_file = None
            self._source = ""
            self._settled_source = ""
            self._issued += 1
            self._result = None
            self._state = ProcessingState()
        if preview is not None:
            preview.release()

    def export(self, directory: Path | str | None = None) -> Path:
        """Write the source as a ``.tex`` file named after the question title."""
        with self._lock:
            source = self._source
            title = self._question.title
        return export_source(source, title, directory or self._settings.output_directory)

    # --------------------------------------------------------------------------
    # Lifecycle
    # --------------------------------------------------------------------------

    def close(self) -> None:
        """Cancel pending work and release the preview file."""
        self._debouncer.cancel()
        with self._lock:
            preview = self._preview
            self._preview = None
        if preview is not None:
            preview.release()

    def __enter__(self) -> "GradingSession":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _fail(self, message: str, error: Exception) -> None:
        logger.error("%s %s", message, error)
        with self._lock:
            self._state = self._state.model_copy(update={"error": message})

    @contextmanager
    def _converting(self) -> Iterator[None]:
        """Set ``is_converting`` and clear the error for the duration of a block."""
        with self._lock:
            self._state = self._state.model_copy(update={"is_converting": True, "error": None})
        try:
            yield
        finally:
            with self._lock:
                self._state = self._state.model_copy(update={"is_converting": False})
