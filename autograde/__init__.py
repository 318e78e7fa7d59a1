"""
AutoGrade - assisted grading of handwritten and typed mathematics.

This package transcribes uploaded answers into LaTeX, renders math previews,
and requests structured grading assessments from a generative model against
an instructor-defined question and optional answer key.
"""

__version__ = "1.0.0"
__author__ = "AutoGrade Team"
