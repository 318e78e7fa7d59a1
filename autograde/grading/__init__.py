"""
Grading Module.

Calls to the generative service: retry policy, prompts and schemas,
response validation, and the five service operations.
"""

from autograde.grading.llm_client import LLMClient
from autograde.grading.prompt_builder import PromptBuilder
from autograde.grading.response_parser import ResponseParser, ScoringError
from autograde.grading.retry import ErrorKind, LLMError, classify_error, with_retry
from autograde.grading.service import GradingService

__all__ = [
    "ErrorKind",
    "GradingService",
    "LLMClient",
    "LLMError",
    "PromptBuilder",
    "ResponseParser",
    "ScoringError",
    "classify_error",
    "with_retry",
]
