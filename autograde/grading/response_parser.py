"""
Response parser for schema-constrained model output.

Parses the JSON replies of the grading and question-extraction calls and
validates them. Every schema field is required: a missing field is a hard
failure, never a silently substituted default. The one exception is the
question's total marks, which fall back to a configured default.
"""

import json
import re
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import ValidationError

from autograde.models import GradingResult, MistakeType, QuestionContext

GRADING_FIELDS: tuple[str, ...] = (
    "score",
    "maxScore",
    "summary",
    "feedback",
    "mistakes",
    "mistakeTypes",
    "gradingConfidence",
    "improvements",
)

QUESTION_FIELDS: tuple[str, ...] = ("title", "description")

_LIST_FIELDS: tuple[str, ...] = ("mistakes", "mistakeTypes", "improvements")


class ScoringError(Exception):
    """Raised when model output is missing or fails validation."""

    def __init__(self, message: str, raw_response: str | None = None):
        self.raw_response = raw_response
        super().__init__(message)


class ResponseParser:
    """
    Parses and validates model replies.

    Ensures:
    1. Response contains a JSON object
    2. All required fields are present
    3. Lists are lists and mistake categories come from the closed set
    4. Scores and confidence are within valid ranges
    """

    def parse_grading(self, response: str) -> GradingResult:
        """
        Parse a grading reply into a GradingResult.

        Args:
            response: Raw model reply (expected JSON).

        Returns:
            Validated GradingResult.

        Raises:
            ScoringError: If the reply is empty, not JSON, or invalid.
        """
        if not response or not response.strip():
            raise ScoringError("Empty response from grading model", raw_response=response)

        data = self._load_object(response)
        self._require_fields(data, GRADING_FIELDS, response)

        for field in _LIST_FIELDS:
            if not isinstance(data[field], list):
                raise ScoringError(f"{field} must be a list", raw_response=response)

        mistake_types = tuple(
            self._parse_mistake_type(label, response) for label in data["mistakeTypes"]
        )

        try:
            return GradingResult(
                score=self._parse_decimal(data["score"], "score", response),
                max_score=self._parse_decimal(data["maxScore"], "maxScore", response),
                summary=str(data["summary"]),
                feedback=str(data["feedback"]),
                mistakes=tuple(str(m) for m in data["mistakes"]),
                mistake_types=mistake_types,
                grading_confidence=float(data["gradingConfidence"]),
                improvements=tuple(str(i) for i in data["improvements"]),
            )
        except (ValidationError, TypeError, ValueError) as e:
            raise ScoringError(f"Invalid grading result: {e}", raw_response=response) from e

    def parse_question(self, response: str, default_total_marks: Decimal) -> QuestionContext:
        """
        Parse a question-extraction reply.

        Args:
            response: Raw model reply (expected JSON).
            default_total_marks: Marks used when the reply states none.

        Returns:
            QuestionContext with a freshly generated identifier.

        Raises:
            ScoringError: If the reply is empty, not JSON, or lacks title/description.
        """
        if not response or not response.strip():
            raise ScoringError("No data returned", raw_response=response)

        data = self._load_object(response)
        self._require_fields(data, QUESTION_FIELDS, response)

        total_marks = default_total_marks
        raw_marks = data.get("totalMarks")
        if raw_marks is not None:
            try:
                parsed = Decimal(str(raw_marks))
            except (InvalidOperation, ValueError):
                parsed = Decimal(0)
            if parsed.is_finite() and parsed > 0:
                total_marks = parsed

        try:
            return QuestionContext(
                title=str(data["title"] or ""),
                description=str(data["description"] or ""),
                total_marks=total_marks,
            )
        except ValidationError as e:
            raise ScoringError(f"Invalid question: {e}", raw_response=response) from e

    def _load_object(self, response: str) -> dict[str, Any]:
        try:
            data = json.loads(response)
        except json.JSONDecodeError:
            json_str = self._extract_json(response)
            try:
                data = json.loads(json_str)
            except json.JSONDecodeError as e:
                raise ScoringError(
                    f"Invalid JSON in response: {e}", raw_response=response
                ) from e
        if not isinstance(data, dict):
            raise ScoringError("Response JSON is not an object", raw_response=response)
        return data

    def _extract_json(self, response: str) -> str:
        """
        Extract JSON from response, handling common formats.

        Args:
            response: Raw response text.

        Returns:
            Extracted JSON string.
        """
        # Remove markdown code block if present
        json_match = re.search(r"```(?:json)?\s*([\s\S]*?)```", response)
        if json_match:
            return json_match.group(1).strip()

        brace_start = response.find("{")
        if brace_start == -1:
            raise ScoringError("No JSON object found in response", raw_response=response)

        depth = 0
        in_string = False
        escaped = False
        for i, char in enumerate(response[brace_start:], start=brace_start):
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return response[brace_start : i + 1]

        raise ScoringError("Unclosed JSON object in response", raw_response=response)

    @staticmethod
    def _require_fields(data: dict[str, Any], fields: tuple[str, ...], raw_response: str) -> None:
        for field in fields:
            if field not in data or data[field] is None:
                raise ScoringError(f"Missing required field: {field}", raw_response=raw_response)

    @staticmethod
    def _parse_mistake_type(label: Any, raw_response: str) -> MistakeType:
        text = str(label).strip().lower()
        for mistake_type in MistakeType:
            if mistake_type.value.lower() == text:
                return mistake_type
        raise ScoringError(f"Unknown mistake type: '{label}'", raw_response=raw_response)

    @staticmethod
    def _parse_decimal(value: Any, field_name: str, raw_response: str) -> Decimal:
        """
        Parse a value as Decimal.

        Raises:
            ScoringError: If parsing fails.
        """
        if isinstance(value, bool):
            raise ScoringError(
                f"Invalid numeric value for {field_name}: {value}", raw_response=raw_response
            )
        try:
            if isinstance(value, Decimal):
                return value
            return Decimal(str(value))
        except (InvalidOperation, ValueError) as e:
            raise ScoringError(
                f"Invalid numeric value for {field_name}: {value}", raw_response=raw_response
            ) from e
