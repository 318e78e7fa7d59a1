"""
Session Module.

State orchestration for one question and one submission:
- Debounced re-grading of source edits
- Sequence-numbered grading calls (stale replies are discarded)
- Answer preview lifecycle
"""

from autograde.session.debounce import Debouncer
from autograde.session.state import GradingSession

__all__ = [
    "Debouncer",
    "GradingSession",
]
