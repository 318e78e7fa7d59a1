"""
Sample questions shipped with the application.
"""

from decimal import Decimal

from autograde.models import QuestionContext

SAMPLE_QUESTIONS: dict[str, QuestionContext] = {
    "q1": QuestionContext(
        id="q1",
        title="Quadratic Equation",
        description=(
            "Solve the quadratic equation 2x^2 - 4x - 6 = 0 for x. Show step-by-step "
            "factorization or use of the quadratic formula."
        ),
        total_marks=Decimal("10"),
    ),
    "q2": QuestionContext(
        id="q2",
        title="Calculus: Indefinite Integral",
        description=(
            "Find the indefinite integral of f(x) = 3x^2 + 2x + 1. Remember to include "
            "the constant of integration."
        ),
        total_marks=Decimal("10"),
    ),
    "q3": QuestionContext(
        id="q3",
        title="Physics: Kinematics",
        description=(
            "A car accelerates from rest at 2 m/s^2 for 5 seconds. Calculate the final "
            "velocity and the distance traveled."
        ),
        total_marks=Decimal("15"),
    ),
    "q4": QuestionContext(
        id="q4",
        title="Linear Algebra: Eigenvalues",
        description="Find the eigenvalues of the matrix A = [[2, 1], [1, 2]].",
        total_marks=Decimal("20"),
    ),
}


def default_question() -> QuestionContext:
    """The question a new session starts with."""
    return QuestionContext(
        id="custom",
        title="New Assignment",
        description="Solve the equation $2x^2 - 4x - 6 = 0$ by using the quadratic formula.",
        total_marks=Decimal("100"),
    )
