"""
Prompt builder for the five service operations.

Each operation pairs a natural-language instruction with either a free-text
reply or a JSON schema. Grading prompts enforce:
- Dollar-wrapping of every mathematical token
- Partial credit for correct logic
- Feedback that cites specific steps
- Mistakes classified into a fixed set of categories
"""

from typing import Any

from autograde.models import MistakeType, QuestionContext

QUESTION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {"type": "string", "description": "Short, concise title."},
        "description": {"type": "string", "description": "Full text of the problem."},
        "totalMarks": {"type": "number", "description": "Total marks available."},
    },
    "required": ["title", "description", "totalMarks"],
    "additionalProperties": False,
}

_MATH_REMINDER = "REMEMBER: Wrap ALL math in $."

GRADING_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "score": {"type": "number", "description": "The score awarded to the student."},
        "maxScore": {
            "type": "number",
            "description": "The total marks available for this question.",
        },
        "summary": {
            "type": "string",
            "description": f"A concise summary of the analysis. {_MATH_REMINDER}",
        },
        "feedback": {"type": "string", "description": f"Detailed feedback. {_MATH_REMINDER}"},
        "mistakes": {
            "type": "array",
            "items": {"type": "string"},
            "description": f"List of specific errors. {_MATH_REMINDER}",
        },
        "mistakeTypes": {
            "type": "array",
            "items": {"type": "string", "enum": [t.value for t in MistakeType]},
            "description": "Categories of mistakes found.",
        },
        "gradingConfidence": {
            "type": "number",
            "description": "Confidence score between 0 and 1.",
        },
        "improvements": {
            "type": "array",
            "items": {"type": "string"},
            "description": f"List of actionable suggestions. {_MATH_REMINDER}",
        },
    },
    "required": [
        "score",
        "maxScore",
        "summary",
        "feedback",
        "mistakes",
        "mistakeTypes",
        "gradingConfidence",
        "improvements",
    ],
    "additionalProperties": False,
}


class PromptBuilder:
    """
    Builds the instructions sent with every service operation.

    All methods are static; the class only groups the templates.
    """

    REFINE_PROMPT = r"""You are a LaTeX formatting assistant.

Task: Convert mathematical parts of the text to LaTeX wrapped in $...$.

Examples:
Input: "Solve x^2 + 4 = 0 for x"
Output: "Solve $x^2 + 4 = 0$ for $x$"

Input: "integral from 0 to infinity of e^-x"
Output: "$\int_{0}^{\infty} e^{-x}$"

Input: "Find eigenvalues of matrix [[1,2],[3,4]]"
Output: "Find eigenvalues of matrix $\begin{bmatrix} 1 & 2 \\ 3 & 4 \end{bmatrix}$"

Rules:
1. Detect math and wrap in single dollar signs $.
2. Convert English math terms (infty, integral, sum) to LaTeX syntax (\infty, \int, \sum).
3. Keep structure and other words exactly the same.
4. RETURN ONLY THE TEXT. NO PREAMBLE.

Input Text:
"{text}"
"""

    TRANSCRIBE_DOCUMENT_PROMPT = r"""Analyze the handwritten mathematical text or equations in this file.
Transcribe it accurately into a COMPLETE, compilable LaTeX document.

Requirements:
1. Start with \documentclass[12pt,a4paper]{article}.
2. Include common packages: amsmath, amssymb, amsfonts, geometry, graphicx.
3. Set geometry to margin=1in.
4. Ensure the document is formatted nicely.
5. Transcribe the handwriting inside the \begin{document} ... \end{document} block.
6. Return ONLY the raw LaTeX code. Do not wrap in markdown blocks."""

    EXTRACT_QUESTION_PROMPT = """Analyze this file (homework question or exam problem).
Extract the following details:
1. A short, concise Title.
2. The full text Description of the problem.
3. The Total Marks available (if not specified, estimate based on complexity or default to {default_marks}).

Return as JSON."""

    TRANSCRIBE_SOLUTION_PROMPT = """Analyze the text in this file, which represents a solution to a problem.
Transcribe it accurately.
If it contains mathematical equations, represent them in LaTeX format (e.g., $x^2$).
Return ONLY the transcribed text."""

    GRADING_SYSTEM_PROMPT = r"""You are an expert academic grader with a strict eye for LaTeX formatting.

CRITICAL FORMATTING RULES (FAILURE TO FOLLOW = INCORRECT RESPONSE):
1. EVERY mathematical expression, number referring to a value, variable, or equation MUST be wrapped in single dollar signs ($).
2. NEVER output raw math like "2x^2 + 4 = 0" or "x_1=3". It MUST be "$2x^2 + 4 = 0$" and "$x_1=3$".
3. Even simple assignments like "a=2" MUST be "$a=2$".
4. Do not wrap English words in dollar signs. Only math.

CORRECT Examples:
- "The equation $2x^2 - 4x - 6 = 0$ is correct."
- "You found roots $x_1 = 3$ and $x_2 = -1$."
- "The coefficients $a=2$, $b=-4$, $c=-6$ are valid."
- "The calculation $\sqrt{64}=8$ is right."

INCORRECT Examples:
- "The equation 2x^2 - 4x - 6 = 0 is correct."
- "You found roots x_1 = 3 and x_2 = -1."
- "The coefficients a=2, b=-4, c=-6 are valid."
"""

    QUESTION_IMAGE_NOTE = "Reference the above Question Paper for diagrams/context if needed."

    @staticmethod
    def build_refine_prompt(text: str) -> str:
        """Build the prompt converting mixed text to LaTeX."""
        return PromptBuilder.REFINE_PROMPT.replace("{text}", text)

    @staticmethod
    def build_extract_question_prompt(default_marks: Any) -> str:
        """Build the prompt extracting a question from a file."""
        return PromptBuilder.EXTRACT_QUESTION_PROMPT.format(default_marks=default_marks)

    @staticmethod
    def build_grading_prompt(source: str, question: QuestionContext) -> str:
        """
        Build the user prompt for grading.

        Args:
            source: The student's submission as LaTeX source.
            question: The question the submission answers.

        Returns:
            The formatted user prompt.
        """
        categories = ", ".join(f"'{t.value}'" for t in MistakeType)
        solution_line = (
            f"Ideal Solution / Answer Key: {question.ideal_solution}\n"
            if question.ideal_solution
            else ""
        )

        prompt = f"""Task: Grade the following student submission (in LaTeX format) based on the provided Question Context.

Question Title: {question.title}
Question Description: {question.description}
{solution_line}Total Marks Available: {question.total_marks}

Student Submission (LaTeX Source):
{source}

Grading Guidelines:
1. Evaluation:
   - Analyze mathematical correctness and logical flow.
   - Award PARTIAL CREDIT for correct logic, formulas, or transformations.
   - If a Question Paper image is provided, refer to it for diagrams or specific constraints.

2. Feedback Style:
   - Be concise, neutral, and encouraging.
   - Reference specific equations or steps from the student's work.

3. Mistake Classification:
   - Classify mistakes into categories: {categories}.
   - Return the top 1-3 mistake types found.

4. Confidence:
   - Provide a grading confidence score (0.0 to 1.0).

Return the response in JSON format matching the schema."""

        return prompt

    @staticmethod
    def get_grading_system_prompt() -> str:
        """Get the system prompt for grading."""
        return PromptBuilder.GRADING_SYSTEM_PROMPT
