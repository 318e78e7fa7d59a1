"""
Pydantic models for AutoGrade.

These models define the schemas for:
- Uploaded attachments (base64 payload + media type)
- Question context edited by the instructor
- Grading results returned by the model
- Transient processing state owned by a grading session

Models are frozen: edits produce new instances with ``model_copy(update=...)``.
JSON keys use camelCase aliases so question files and model replies share
one vocabulary; Python code uses the snake_case field names.
"""

import base64
import binascii
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


def _new_question_id() -> str:
    return str(uuid4())


# ==============================================================================
# Attachment Models
# ==============================================================================


class Attachment(BaseModel):
    """
    A binary upload ready for transport.

    The payload is kept base64-encoded, the form both the generative service
    and the data-URL preview expect.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    data: str = Field(
        ...,
        min_length=1,
        description="Base64-encoded file content",
    )

    mime_type: str = Field(
        ...,
        min_length=3,
        description="Media type of the payload (image/* or application/pdf)",
    )

    file_name: str | None = Field(
        default=None,
        description="Original file name, if known",
    )

    @field_validator("data")
    @classmethod
    def validate_base64(cls, v: str) -> str:
        """Reject payloads that are not valid base64."""
        try:
            base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Attachment data is not valid base64: {e}") from e
        return v

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_pdf(self) -> bool:
        """Whether the payload is a PDF document."""
        return self.mime_type == "application/pdf"

    @property
    def data_url(self) -> str:
        """Return the payload as a ``data:`` URL."""
        return f"data:{self.mime_type};base64,{self.data}"

    @property
    def size_bytes(self) -> int:
        """Size of the decoded payload."""
        return len(self.raw_bytes())

    def raw_bytes(self) -> bytes:
        """Decode the payload."""
        return base64.b64decode(self.data)


# ==============================================================================
# Question Models
# ==============================================================================


class QuestionContext(BaseModel):
    """
    The question a submission is graded against.

    Holds the instructor-facing description, the marks available, an optional
    answer key and an optional reference image of the question paper.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str = Field(
        default_factory=_new_question_id,
        min_length=1,
        description="Unique identifier for this question",
    )

    title: str = Field(
        default="",
        max_length=500,
        description="Short title of the question",
    )

    description: str = Field(
        default="",
        description="Full text of the problem",
    )

    total_marks: Decimal = Field(
        ...,
        gt=0,
        description="Total marks available",
    )

    ideal_solution: str | None = Field(
        default=None,
        description="Optional answer key used as a grading reference",
    )

    question_image: Attachment | None = Field(
        default=None,
        description="Optional question paper image or PDF",
    )

    @field_validator("total_marks", mode="before")
    @classmethod
    def convert_to_decimal(cls, v: Any) -> Decimal:
        """Convert numeric values to Decimal for precision."""
        if isinstance(v, Decimal):
            return v
        return Decimal(str(v))

    def with_image(self, attachment: Attachment) -> "QuestionContext":
        """Return a copy with the reference image attached."""
        return self.model_copy(update={"question_image": attachment})

    def without_image(self) -> "QuestionContext":
        """Return a copy with the reference image removed."""
        return self.model_copy(update={"question_image": None})


# ==============================================================================
# Grading Result Models
# ==============================================================================


class MistakeType(str, Enum):
    """Closed set of mistake categories a grader may report."""

    CONCEPTUAL = "Conceptual Error"
    CALCULATION = "Calculation Error"
    ALGEBRAIC = "Algebraic Error"
    NOTATION = "Notation/Formatting"
    MISSING_STEP = "Missing Step"


class GradingResult(BaseModel):
    """
    Complete grading assessment for one submission.

    Produced atomically by a single grading call and never mutated;
    the next call replaces it wholesale.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    score: Decimal = Field(
        ...,
        ge=0,
        description="Marks awarded",
    )

    max_score: Decimal = Field(
        ...,
        gt=0,
        description="Marks available",
    )

    summary: str = Field(
        ...,
        description="Concise summary of the analysis",
    )

    feedback: str = Field(
        ...,
        description="Detailed feedback citing specific steps",
    )

    mistakes: tuple[str, ...] = Field(
        ...,
        description="Specific errors found, in order",
    )

    mistake_types: tuple[MistakeType, ...] = Field(
        ...,
        description="Categories of the mistakes found",
    )

    grading_confidence: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Grader confidence between 0 and 1",
    )

    improvements: tuple[str, ...] = Field(
        ...,
        description="Actionable suggestions, in order",
    )

    @field_validator("score", "max_score", mode="before")
    @classmethod
    def convert_to_decimal(cls, v: Any) -> Decimal:
        """Convert numeric values to Decimal for precision."""
        if isinstance(v, Decimal):
            return v
        return Decimal(str(v))

    @model_validator(mode="after")
    def validate_score_range(self) -> "GradingResult":
        """Ensure the score doesn't exceed the marks available."""
        if self.score > self.max_score:
            raise ValueError(
                f"Score ({self.score}) cannot exceed max score ({self.max_score})"
            )
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def percentage(self) -> int:
        """Score as a rounded percentage of the marks available."""
        return int((self.score / self.max_score * 100).quantize(Decimal("1"), ROUND_HALF_UP))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def verdict(self) -> str:
        """Short verdict derived from the percentage."""
        if self.percentage >= 90:
            return "Excellent"
        if self.percentage >= 75:
            return "Good Job"
        if self.percentage >= 50:
            return "Fair"
        return "Needs Improvement"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def confidence_label(self) -> str:
        """Human readable confidence bucket."""
        if self.grading_confidence > 0.8:
            return "High"
        if self.grading_confidence > 0.5:
            return "Medium"
        return "Low"


# ==============================================================================
# Processing State
# ==============================================================================


class ProcessingState(BaseModel):
    """
    In-flight flags and the last error message of a grading session.

    Replaced wholesale on every transition.
    """

    model_config = ConfigDict(frozen=True)

    is_converting: bool = False
    is_grading: bool = False
    error: str | None = None
