"""
Editable LaTeX source with a caret.

Implements the editing behaviour of the source editor independent of any
widget toolkit: line numbering, command autocompletion and snippet insertion.
"""

import re
from dataclasses import dataclass
from typing import Sequence

from autograde.editor.commands import COMMON_COMMANDS

# A backslash command being typed, where the backslash is not itself escaped
_PENDING_COMMAND = re.compile(r"(?<!\\)(?:\\\\)*(\\[a-zA-Z]*)$")


@dataclass
class EditorBuffer:
    """
    Source text plus a selection.

    ``selection_start == selection_end`` is a plain caret. Positions are
    clamped to the text on construction.
    """

    text: str = ""
    selection_start: int = 0
    selection_end: int | None = None

    def __post_init__(self) -> None:
        length = len(self.text)
        self.selection_start = max(0, min(self.selection_start, length))
        end = self.selection_start if self.selection_end is None else self.selection_end
        self.selection_end = max(self.selection_start, min(end, length))

    @classmethod
    def at_end(cls, text: str) -> "EditorBuffer":
        """Create a buffer with the caret after the last character."""
        return cls(text, len(text))

    @property
    def caret(self) -> int:
        return self.selection_start

    def move_caret(self, position: int) -> None:
        position = max(0, min(position, len(self.text)))
        self.selection_start = position
        self.selection_end = position

    def line_numbers(self) -> list[int]:
        """Line numbers aligned to the content lines."""
        return list(range(1, self.text.count("\n") + 2))

    def pending_command(self) -> str | None:
        """
        Partial command name immediately before the caret.

        Returns:
            The backslash-prefixed partial name (e.g. ``"\\al"``), or None when
            the caret does not follow an unescaped command.
        """
        match = _PENDING_COMMAND.search(self.text[: self.caret])
        return match.group(1) if match else None

    def suggestions(self, commands: Sequence[str] = COMMON_COMMANDS) -> list[str]:
        """
        Commands completing the pending command.

        The exact current input is excluded, so a fully typed command
        offers nothing.
        """
        query = self.pending_command()
        if query is None:
            return []
        return [cmd for cmd in commands if cmd.startswith(query) and cmd != query]

    def apply_suggestion(self, command: str) -> bool:
        """
        Replace the pending command with ``command``.

        Returns:
            True if a pending command was replaced.
        """
        match = _PENDING_COMMAND.search(self.text[: self.caret])
        if match is None:
            return False
        start = match.start(1)
        self.text = self.text[:start] + command + self.text[self.caret :]
        self.move_caret(start + len(command))
        return True

    def insert(self, snippet: str) -> None:
        """Replace the selection with ``snippet`` and put the caret after it."""
        start = self.selection_start
        end = start if self.selection_end is None else self.selection_end
        self.text = self.text[:start] + snippet + self.text[end:]
        self.move_caret(start + len(snippet))
