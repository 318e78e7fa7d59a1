"""
Pytest configuration and fixtures.

Provides common test fixtures for all test modules.
"""

import base64
import os
import json
import tempfile
from decimal import Decimal
from pathlib import Path
from typing import Generator
from unittest.mock import MagicMock

# Keep Rich output unwrapped so long temp paths do not split asserted messages.
os.environ["COLUMNS"] = "200"

import fitz  # PyMuPDF
import pytest

from autograde.config import Settings
from autograde.grading import GradingService
from autograde.models import Attachment, GradingResult, MistakeType, QuestionContext

# A 1x1 transparent PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


# ==============================================================================
# Directory Fixtures
# ==============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ==============================================================================
# Question Fixtures
# ==============================================================================


@pytest.fixture
def sample_question() -> QuestionContext:
    """Create a sample question."""
    return QuestionContext(
        id="q1",
        title="Quadratic Equation",
        description="Solve $2x^2 - 4x - 6 = 0$ for $x$.",
        total_marks=Decimal("10"),
    )


@pytest.fixture
def sample_source() -> str:
    """Sample LaTeX submission."""
    return r"""\documentclass{article}
\begin{document}
Dividing by 2 gives $x^2 - 2x - 3 = 0$.
\[ (x - 3)(x + 1) = 0 \]
So $x = 3$ or $x = -1$.
\end{document}
"""


# ==============================================================================
# Grading Result Fixtures
# ==============================================================================


@pytest.fixture
def sample_grading_result() -> GradingResult:
    """Sample complete grading result."""
    return GradingResult(
        score=Decimal("8"),
        max_score=Decimal("10"),
        summary="Correct factorisation with a sign slip in the check.",
        feedback="The factorisation $(x-3)(x+1)$ is right.",
        mistakes=("Sign error when substituting $x = -1$",),
        mistake_types=(MistakeType.CALCULATION,),
        grading_confidence=0.9,
        improvements=("Substitute both roots back into the equation.",),
    )


# ==============================================================================
# LLM Response Fixtures
# ==============================================================================


@pytest.fixture
def sample_grading_payload() -> dict:
    """Grading reply as the model returns it (camelCase keys)."""
    return {
        "score": 8,
        "maxScore": 10,
        "summary": "Correct factorisation with a sign slip in the check.",
        "feedback": "The factorisation $(x-3)(x+1)$ is right.",
        "mistakes": ["Sign error when substituting $x = -1$"],
        "mistakeTypes": ["Calculation Error"],
        "gradingConfidence": 0.9,
        "improvements": ["Substitute both roots back into the equation."],
    }


@pytest.fixture
def sample_grading_response(sample_grading_payload: dict) -> str:
    """Sample grading reply in JSON format."""
    return json.dumps(sample_grading_payload)


@pytest.fixture
def sample_question_response() -> str:
    """Sample question-extraction reply in JSON format."""
    return json.dumps(
        {
            "title": "Eigenvalues",
            "description": "Find the eigenvalues of $A = [[2, 1], [1, 2]]$.",
            "totalMarks": 20,
        }
    )


# ==============================================================================
# Settings Fixtures
# ==============================================================================


@pytest.fixture
def test_settings(temp_dir: Path) -> Settings:
    """Create test settings with mocked values."""
    return Settings(
        gemini_api_key="test-api-key-for-testing",
        gemini_base_url="https://test.api.local/",
        gemini_model="test-model",
        llm_temperature=0.0,
        max_retries=3,
        retry_initial_delay=0.0,
        debounce_seconds=0.05,
        output_directory=temp_dir / "output",
    )


# ==============================================================================
# Mock Fixtures
# ==============================================================================


@pytest.fixture
def mock_llm_client(sample_grading_response: str) -> MagicMock:
    """Mock LLM client to avoid actual API calls."""
    mock_instance = MagicMock()
    mock_instance.generate.return_value = sample_grading_response
    mock_instance.health_check.return_value = True
    return mock_instance


@pytest.fixture
def grading_service(test_settings: Settings, mock_llm_client: MagicMock) -> GradingService:
    """Grading service backed by the mocked LLM client."""
    return GradingService(test_settings, llm_client=mock_llm_client)


# ==============================================================================
# File Fixtures
# ==============================================================================


@pytest.fixture
def png_bytes() -> bytes:
    """Raw bytes of a 1x1 PNG."""
    return PNG_BYTES


@pytest.fixture
def png_attachment(png_bytes: bytes) -> Attachment:
    """A tiny PNG upload."""
    return Attachment(
        data=base64.b64encode(png_bytes).decode("ascii"),
        mime_type="image/png",
        file_name="answer.png",
    )


@pytest.fixture
def pdf_bytes() -> bytes:
    """A one-page PDF created with PyMuPDF."""
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "x = 3")
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def pdf_attachment(pdf_bytes: bytes) -> Attachment:
    """A one-page PDF upload."""
    return Attachment(
        data=base64.b64encode(pdf_bytes).decode("ascii"),
        mime_type="application/pdf",
        file_name="question.pdf",
    )


@pytest.fixture
def sample_png_file(temp_dir: Path, png_bytes: bytes) -> Path:
    """Create a sample PNG file."""
    file_path = temp_dir / "answer.png"
    file_path.write_bytes(png_bytes)
    return file_path


@pytest.fixture
def sample_pdf_file(temp_dir: Path, pdf_bytes: bytes) -> Path:
    """Create a sample PDF file."""
    file_path = temp_dir / "question.pdf"
    file_path.write_bytes(pdf_bytes)
    return file_path


@pytest.fixture
def sample_tex_file(temp_dir: Path, sample_source: str) -> Path:
    """Create a sample LaTeX source file."""
    file_path = temp_dir / "answer.tex"
    file_path.write_text(sample_source, encoding="utf-8")
    return file_path
