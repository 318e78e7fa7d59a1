"""
Grading service - the five operations against the generative service.

Each operation is one round trip through the LLM client (which applies the
retry wrapper) followed by local post-processing or validation.
"""

import logging
import re

from autograde.config import Settings, get_settings
from autograde.grading.llm_client import LLMClient, attachment_part, text_part
from autograde.grading.prompt_builder import (
    GRADING_SCHEMA,
    QUESTION_SCHEMA,
    PromptBuilder,
)
from autograde.grading.response_parser import ResponseParser
from autograde.models import Attachment, GradingResult, QuestionContext

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```[a-zA-Z]*\s*\n([\s\S]*?)\n?```$")


def _strip_code_fence(text: str) -> str:
    match = _CODE_FENCE.match(text)
    return match.group(1).strip() if match else text


class GradingService:
    """
    Facade over the generative service for transcription and grading.

    The LLM client is injectable; one is built from settings otherwise.
    """

    def __init__(self, settings: Settings | None = None, llm_client: LLMClient | None = None):
        """
        Initialize the grading service.

        Args:
            settings: Configuration settings. Uses global settings if not provided.
            llm_client: Client to use instead of building one from settings.
        """
        self._settings = settings or get_settings()
        self._llm_client = llm_client or LLMClient(self._settings)
        self._response_parser = ResponseParser()

    @property
    def settings(self) -> Settings:
        return self._settings

    def refine_text(self, text: str) -> str:
        """
        Wrap the math in mixed text with ``$...$`` and convert jargon to LaTeX.

        Args:
            text: Plain mixed text, e.g. "integral of x^2 from 0 to infty".

        Returns:
            The formatted text, trimmed. Empty input returns "" without a call;
            an empty reply returns the input unchanged.
        """
        if not text.strip():
            return ""

        reply = self._llm_client.generate(
            PromptBuilder.build_refine_prompt(text),
            description="refine text to LaTeX",
        )
        return reply.strip() or text

    def transcribe_document(self, attachment: Attachment) -> str:
        """
        Transcribe a handwritten image or PDF into a complete LaTeX document.

        Returns:
            Raw LaTeX source, or "" if the model returned nothing.
        """
        reply = self._llm_client.generate(
            [attachment_part(attachment), text_part(PromptBuilder.TRANSCRIBE_DOCUMENT_PROMPT)],
            description="transcribe file to LaTeX",
        )
        return _strip_code_fence(reply.strip())

    def extract_question(self, attachment: Attachment) -> QuestionContext:
        """
        Extract title, description and total marks from a question paper.

        The returned question carries a fresh identifier and keeps the
        attachment as its reference image.

        Raises:
            LLMError: If the service call fails.
            ScoringError: If the reply is empty or lacks required fields.
        """
        reply = self._llm_client.generate(
            [
                attachment_part(attachment),
                text_part(
                    PromptBuilder.build_extract_question_prompt(
                        self._settings.default_total_marks
                    )
                ),
            ],
            description="extract question details",
            response_schema=QUESTION_SCHEMA,
            schema_name="question_context",
        )
        question = self._response_parser.parse_question(
            reply, self._settings.default_total_marks
        )
        logger.info("Extracted question '%s' (%s marks)", question.title, question.total_marks)
        return question.with_image(attachment)

    def transcribe_solution(self, attachment: Attachment) -> str:
        """
        Transcribe a worked solution into text with inline LaTeX math.

        Returns:
            The transcription, or "" if the model returned nothing.
        """
        reply = self._llm_client.generate(
            [attachment_part(attachment), text_part(PromptBuilder.TRANSCRIBE_SOLUTION_PROMPT)],
            description="transcribe solution key",
        )
        return reply.strip()

    def grade(self, source: str, question: QuestionContext) -> GradingResult:
        """
        Grade a LaTeX submission against a question.

        Args:
            source: The student's submission as LaTeX source.
            question: Question context; its reference image, if any, is sent
                ahead of the instructions.

        Returns:
            The validated GradingResult.

        Raises:
            LLMError: If the service call fails.
            ScoringError: If the reply is empty or any field is missing.
        """
        parts = []
        if question.question_image is not None:
            parts.append(attachment_part(question.question_image))
            parts.append(text_part(PromptBuilder.QUESTION_IMAGE_NOTE))
        parts.append(text_part(PromptBuilder.build_grading_prompt(source, question)))

        reply = self._llm_client.generate(
            parts,
            description="grade submission",
            system_prompt=PromptBuilder.get_grading_system_prompt(),
            response_schema=GRADING_SCHEMA,
            schema_name="grading_result",
        )
        result = self._response_parser.parse_grading(reply)
        logger.info("Graded submission: %s/%s", result.score, result.max_score)
        return result

    def health_check(self) -> bool:
        """
        Check if the service is operational.

        Returns:
            True if the model endpoint is reachable.
        """
        return self._llm_client.health_check()
