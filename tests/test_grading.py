"""
Unit tests for the grading layer.

Tests prompt builder, response parser, LLM client and grading service
with mocked model replies.
"""

import json
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from autograde.config import Settings
from autograde.grading import (
    GradingService,
    LLMClient,
    LLMError,
    PromptBuilder,
    ResponseParser,
    ScoringError,
)
from autograde.grading.llm_client import attachment_part, text_part
from autograde.grading.prompt_builder import GRADING_SCHEMA, QUESTION_SCHEMA
from autograde.models import Attachment, GradingResult, MistakeType, QuestionContext


def completion(content: str | None) -> MagicMock:
    """Build an SDK-shaped chat completion."""
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


class TestPromptBuilder:
    """Tests for PromptBuilder."""

    def test_grading_prompt_includes_question(self, sample_question: QuestionContext) -> None:
        """Test the grading prompt carries the question context and submission."""
        prompt = PromptBuilder.build_grading_prompt("$x = 3$", sample_question)

        assert "Question Title: Quadratic Equation" in prompt
        assert sample_question.description in prompt
        assert "Total Marks Available: 10" in prompt
        assert "$x = 3$" in prompt
        assert "PARTIAL CREDIT" in prompt
        assert "Ideal Solution" not in prompt

    def test_grading_prompt_lists_categories(self, sample_question: QuestionContext) -> None:
        """Test every mistake category is offered."""
        prompt = PromptBuilder.build_grading_prompt("x", sample_question)

        for mistake_type in MistakeType:
            assert f"'{mistake_type.value}'" in prompt

    def test_grading_prompt_with_solution(self, sample_question: QuestionContext) -> None:
        """Test the answer key is included when present."""
        question = sample_question.model_copy(update={"ideal_solution": "$x = 3$ or $x = -1$"})
        prompt = PromptBuilder.build_grading_prompt("x", question)

        assert "Ideal Solution / Answer Key: $x = 3$ or $x = -1$" in prompt

    def test_refine_prompt_embeds_text(self) -> None:
        """Test the refine prompt quotes the input without formatting it."""
        prompt = PromptBuilder.build_refine_prompt("sum of {a_i}")

        assert '"sum of {a_i}"' in prompt
        assert "{text}" not in prompt

    def test_extract_prompt_default_marks(self) -> None:
        """Test the extraction prompt names the default marks."""
        prompt = PromptBuilder.build_extract_question_prompt(Decimal("10"))

        assert "default to 10" in prompt

    def test_system_prompt_requires_dollars(self) -> None:
        """Test system prompt contains the formatting rules."""
        prompt = PromptBuilder.get_grading_system_prompt()

        assert "single dollar signs" in prompt
        assert "$a=2$" in prompt

    def test_schemas_require_every_field(self) -> None:
        """Test the schemas mark all properties required."""
        assert set(GRADING_SCHEMA["required"]) == set(GRADING_SCHEMA["properties"])
        assert set(QUESTION_SCHEMA["required"]) == set(QUESTION_SCHEMA["properties"])
        assert GRADING_SCHEMA["properties"]["mistakeTypes"]["items"]["enum"] == [
            t.value for t in MistakeType
        ]


class TestResponseParser:
    """Tests for ResponseParser."""

    def test_parse_valid_grading(self, sample_grading_response: str) -> None:
        """Test parsing a valid grading reply."""
        result = ResponseParser().parse_grading(sample_grading_response)

        assert isinstance(result, GradingResult)
        assert result.score == Decimal("8")
        assert result.max_score == Decimal("10")
        assert result.mistake_types == (MistakeType.CALCULATION,)
        assert result.grading_confidence == 0.9
        assert result.improvements == ("Substitute both roots back into the equation.",)

    def test_parse_grading_in_markdown_block(self, sample_grading_payload: dict) -> None:
        """Test parsing a reply wrapped in a markdown code block."""
        response = f"```json\n{json.dumps(sample_grading_payload)}\n```"

        result = ResponseParser().parse_grading(response)

        assert result.score == Decimal("8")

    def test_parse_grading_with_surrounding_text(self, sample_grading_payload: dict) -> None:
        """Test the JSON object is found inside prose."""
        response = f"Here is the result: {json.dumps(sample_grading_payload)} Done."

        result = ResponseParser().parse_grading(response)

        assert result.summary == sample_grading_payload["summary"]

    def test_parse_grading_backticks_inside_field(self, sample_grading_payload: dict) -> None:
        """Test a plain JSON reply quoting a code block in a field is accepted."""
        sample_grading_payload["feedback"] = "Write it as ```latex x^2``` in the source."

        result = ResponseParser().parse_grading(json.dumps(sample_grading_payload))

        assert result.feedback == "Write it as ```latex x^2``` in the source."

    def test_parse_grading_missing_mistake_types(self, sample_grading_payload: dict) -> None:
        """Test a reply without mistakeTypes is rejected."""
        del sample_grading_payload["mistakeTypes"]

        with pytest.raises(ScoringError, match="Missing required field: mistakeTypes"):
            ResponseParser().parse_grading(json.dumps(sample_grading_payload))

    def test_parse_grading_empty(self) -> None:
        """Test an empty reply is rejected."""
        with pytest.raises(ScoringError, match="Empty response"):
            ResponseParser().parse_grading("   ")

    def test_parse_grading_not_json(self) -> None:
        """Test parsing a reply without JSON raises error."""
        with pytest.raises(ScoringError, match="No JSON object found") as exc_info:
            ResponseParser().parse_grading("this is not json")

        assert exc_info.value.raw_response == "this is not json"

    def test_parse_grading_unknown_mistake_type(self, sample_grading_payload: dict) -> None:
        """Test labels outside the closed set are rejected."""
        sample_grading_payload["mistakeTypes"] = ["Spelling Error"]

        with pytest.raises(ScoringError, match="Unknown mistake type"):
            ResponseParser().parse_grading(json.dumps(sample_grading_payload))

    def test_parse_grading_mistake_type_case(self, sample_grading_payload: dict) -> None:
        """Test mistake labels match regardless of case."""
        sample_grading_payload["mistakeTypes"] = ["missing step", "ALGEBRAIC ERROR"]

        result = ResponseParser().parse_grading(json.dumps(sample_grading_payload))

        assert result.mistake_types == (MistakeType.MISSING_STEP, MistakeType.ALGEBRAIC)

    def test_parse_grading_score_exceeds_max(self, sample_grading_payload: dict) -> None:
        """Test a score above the marks available is rejected."""
        sample_grading_payload["score"] = 12

        with pytest.raises(ScoringError, match="Invalid grading result"):
            ResponseParser().parse_grading(json.dumps(sample_grading_payload))

    def test_parse_grading_list_type(self, sample_grading_payload: dict) -> None:
        """Test list fields must be lists."""
        sample_grading_payload["mistakes"] = "one mistake"

        with pytest.raises(ScoringError, match="mistakes must be a list"):
            ResponseParser().parse_grading(json.dumps(sample_grading_payload))

    def test_parse_question(self, sample_question_response: str) -> None:
        """Test parsing a question-extraction reply."""
        question = ResponseParser().parse_question(sample_question_response, Decimal("10"))

        assert question.title == "Eigenvalues"
        assert question.total_marks == Decimal("20")
        assert question.question_image is None

    def test_parse_question_default_marks(self) -> None:
        """Test missing totalMarks falls back to the default with a fresh id."""
        response = json.dumps({"title": "", "description": "X"})
        parser = ResponseParser()

        first = parser.parse_question(response, Decimal("10"))
        second = parser.parse_question(response, Decimal("10"))

        assert first.total_marks == Decimal("10")
        assert first.description == "X"
        assert first.title == ""
        assert first.id and first.id != second.id

    @pytest.mark.parametrize("marks", [0, -5, "lots"])
    def test_parse_question_invalid_marks(self, marks: object) -> None:
        """Test unusable totalMarks fall back to the default."""
        response = json.dumps({"title": "T", "description": "D", "totalMarks": marks})

        question = ResponseParser().parse_question(response, Decimal("10"))

        assert question.total_marks == Decimal("10")

    def test_parse_question_missing_description(self) -> None:
        """Test a reply without a description is rejected."""
        with pytest.raises(ScoringError, match="Missing required field: description"):
            ResponseParser().parse_question(json.dumps({"title": "T"}), Decimal("10"))

    def test_parse_question_title_too_long(self) -> None:
        """Test a title the model cannot hold is reported as a scoring failure."""
        response = json.dumps({"title": "T" * 600, "description": "D", "totalMarks": 5})

        with pytest.raises(ScoringError, match="Invalid question") as exc_info:
            ResponseParser().parse_question(response, Decimal("10"))

        assert exc_info.value.raw_response == response

    def test_parse_question_empty(self) -> None:
        """Test an empty reply is rejected."""
        with pytest.raises(ScoringError, match="No data returned"):
            ResponseParser().parse_question("", Decimal("10"))


class TestLLMClient:
    """Tests for LLMClient."""

    def test_attachment_parts(
        self, png_attachment: Attachment, pdf_attachment: Attachment
    ) -> None:
        """Test images become image_url parts and PDFs become file parts."""
        image = attachment_part(png_attachment)
        document = attachment_part(pdf_attachment)

        assert image["type"] == "image_url"
        assert image["image_url"]["url"].startswith("data:image/png;base64,")
        assert document["type"] == "file"
        assert document["file"]["filename"] == "question.pdf"
        assert document["file"]["file_data"].startswith("data:application/pdf;base64,")

    def test_generate_builds_request(self, test_settings: Settings) -> None:
        """Test the request carries system prompt, content and schema."""
        sdk = MagicMock()
        sdk.chat.completions.create.return_value = completion('{"ok": true}')
        client = LLMClient(test_settings, client=sdk)

        reply = client.generate(
            [text_part("hello")],
            description="test",
            system_prompt="be strict",
            response_schema=QUESTION_SCHEMA,
            schema_name="question_context",
        )

        assert reply == '{"ok": true}'
        request = sdk.chat.completions.create.call_args.kwargs
        assert request["model"] == "test-model"
        assert request["messages"][0] == {"role": "system", "content": "be strict"}
        assert request["messages"][1]["content"] == [{"type": "text", "text": "hello"}]
        assert request["response_format"]["type"] == "json_schema"
        assert request["response_format"]["json_schema"]["name"] == "question_context"
        assert request["response_format"]["json_schema"]["strict"] is True

    def test_generate_plain_text(self, test_settings: Settings) -> None:
        """Test plain prompts send no schema and no system message."""
        sdk = MagicMock()
        sdk.chat.completions.create.return_value = completion(None)
        client = LLMClient(test_settings, client=sdk)

        assert client.generate("hello", description="test") == ""
        request = sdk.chat.completions.create.call_args.kwargs
        assert "response_format" not in request
        assert request["messages"] == [{"role": "user", "content": "hello"}]

    def test_generate_retries_quota(self, test_settings: Settings) -> None:
        """Test quota failures from the SDK are retried."""
        sdk = MagicMock()
        sdk.chat.completions.create.side_effect = [
            Exception("429 quota"),
            completion("done"),
        ]
        client = LLMClient(test_settings, client=sdk)

        assert client.generate("hello", description="test") == "done"
        assert sdk.chat.completions.create.call_count == 2

    def test_generate_fatal_error(self, test_settings: Settings) -> None:
        """Test fatal SDK failures surface as LLMError after one call."""
        sdk = MagicMock()
        sdk.chat.completions.create.side_effect = Exception("invalid key")
        client = LLMClient(test_settings, client=sdk)

        with pytest.raises(LLMError, match="Failed to test: invalid key"):
            client.generate("hello", description="test")
        sdk.chat.completions.create.assert_called_once()

    def test_health_check(self, test_settings: Settings) -> None:
        """Test health check reports reachability without raising."""
        sdk = MagicMock()
        sdk.chat.completions.create.return_value = completion("pong")
        assert LLMClient(test_settings, client=sdk).health_check()

        sdk.chat.completions.create.side_effect = Exception("down")
        assert not LLMClient(test_settings, client=sdk).health_check()


class TestGradingService:
    """Tests for GradingService."""

    def test_grade(
        self,
        grading_service: GradingService,
        mock_llm_client: MagicMock,
        sample_question: QuestionContext,
    ) -> None:
        """Test grading returns the parsed result and uses the schema."""
        result = grading_service.grade("$x = 3$", sample_question)

        assert result.score == Decimal("8")
        kwargs = mock_llm_client.generate.call_args.kwargs
        assert kwargs["response_schema"] is GRADING_SCHEMA
        assert kwargs["system_prompt"] == PromptBuilder.GRADING_SYSTEM_PROMPT
        parts = mock_llm_client.generate.call_args.args[0]
        assert len(parts) == 1
        assert "$x = 3$" in parts[0]["text"]

    def test_grade_sends_question_image_first(
        self,
        grading_service: GradingService,
        mock_llm_client: MagicMock,
        sample_question: QuestionContext,
        png_attachment: Attachment,
    ) -> None:
        """Test the question paper precedes the instructions."""
        grading_service.grade("x", sample_question.with_image(png_attachment))

        parts = mock_llm_client.generate.call_args.args[0]
        assert parts[0]["type"] == "image_url"
        assert parts[1]["text"] == PromptBuilder.QUESTION_IMAGE_NOTE
        assert "Grade the following student submission" in parts[2]["text"]

    def test_grade_invalid_reply(
        self,
        grading_service: GradingService,
        mock_llm_client: MagicMock,
        sample_question: QuestionContext,
    ) -> None:
        """Test an incomplete reply raises ScoringError."""
        mock_llm_client.generate.return_value = json.dumps({"score": 5})

        with pytest.raises(ScoringError):
            grading_service.grade("x", sample_question)

    def test_refine_text(
        self, grading_service: GradingService, mock_llm_client: MagicMock
    ) -> None:
        """Test refined text is trimmed."""
        mock_llm_client.generate.return_value = "  Solve $x^2 = 4$  \n"

        assert grading_service.refine_text("Solve x^2 = 4") == "Solve $x^2 = 4$"

    def test_refine_empty_text_skips_call(
        self, grading_service: GradingService, mock_llm_client: MagicMock
    ) -> None:
        """Test blank input returns empty without calling the model."""
        assert grading_service.refine_text("   ") == ""
        mock_llm_client.generate.assert_not_called()

    def test_refine_empty_reply_keeps_input(
        self, grading_service: GradingService, mock_llm_client: MagicMock
    ) -> None:
        """Test an empty reply leaves the text unchanged."""
        mock_llm_client.generate.return_value = ""

        assert grading_service.refine_text("a = 2") == "a = 2"

    def test_transcribe_document_strips_fence(
        self,
        grading_service: GradingService,
        mock_llm_client: MagicMock,
        png_attachment: Attachment,
    ) -> None:
        """Test a markdown fence around the LaTeX is removed."""
        mock_llm_client.generate.return_value = "```latex\n\\documentclass{article}\n```"

        latex = grading_service.transcribe_document(png_attachment)

        assert latex == "\\documentclass{article}"
        parts = mock_llm_client.generate.call_args.args[0]
        assert parts[0]["type"] == "image_url"
        assert parts[1]["text"] == PromptBuilder.TRANSCRIBE_DOCUMENT_PROMPT

    def test_extract_question_attaches_image(
        self,
        grading_service: GradingService,
        mock_llm_client: MagicMock,
        pdf_attachment: Attachment,
    ) -> None:
        """Test the scanned file becomes the question image."""
        mock_llm_client.generate.return_value = json.dumps(
            {"title": "", "description": "X"}
        )

        question = grading_service.extract_question(pdf_attachment)

        assert question.total_marks == Decimal("10")
        assert question.question_image == pdf_attachment
        assert mock_llm_client.generate.call_args.kwargs["response_schema"] is QUESTION_SCHEMA

    def test_transcribe_solution(
        self,
        grading_service: GradingService,
        mock_llm_client: MagicMock,
        png_attachment: Attachment,
    ) -> None:
        """Test solution transcription is trimmed."""
        mock_llm_client.generate.return_value = "\n$x = 3$\n"

        assert grading_service.transcribe_solution(png_attachment) == "$x = 3$"

    def test_service_errors_propagate(
        self,
        grading_service: GradingService,
        mock_llm_client: MagicMock,
        sample_question: QuestionContext,
    ) -> None:
        """Test client failures reach the caller."""
        mock_llm_client.generate.side_effect = LLMError("Failed to grade submission: boom")

        with pytest.raises(LLMError):
            grading_service.grade("x", sample_question)

    def test_health_check(
        self, grading_service: GradingService, mock_llm_client: MagicMock
    ) -> None:
        """Test health check delegates to the client."""
        assert grading_service.health_check()
        mock_llm_client.health_check.assert_called_once()
