"""
Unit tests for the editor buffer, command list and highlighting.
"""

from rich.syntax import Syntax

from autograde.editor import (
    COMMON_COMMANDS,
    SYMBOL_PALETTE,
    EditorBuffer,
    find_symbol,
    highlight_source,
    lexer_available,
)


class TestLineNumbers:
    """Tests for line numbering."""

    def test_single_line(self) -> None:
        assert EditorBuffer("x").line_numbers() == [1]

    def test_empty_text_has_one_line(self) -> None:
        assert EditorBuffer("").line_numbers() == [1]

    def test_trailing_newline_adds_line(self) -> None:
        """Test numbering follows the split lines, including an empty last one."""
        assert EditorBuffer("a\nb\n").line_numbers() == [1, 2, 3]


class TestAutocomplete:
    """Tests for command autocompletion."""

    def test_pending_command(self) -> None:
        """Test the partial command before the caret is found."""
        assert EditorBuffer.at_end("Let $\\al").pending_command() == "\\al"

    def test_no_pending_command(self) -> None:
        """Test plain text has no pending command."""
        assert EditorBuffer.at_end("x + y").pending_command() is None

    def test_escaped_backslash_ignored(self) -> None:
        """Test a line break (double backslash) does not start a command."""
        buffer = EditorBuffer.at_end("a \\\\")

        assert buffer.pending_command() is None
        assert buffer.suggestions() == []

    def test_command_after_line_break(self) -> None:
        """Test a command typed right after a line break is found."""
        assert EditorBuffer.at_end("a \\\\\\fr").pending_command() == "\\fr"

    def test_suggestions_by_prefix(self) -> None:
        """Test suggestions are the commands sharing the prefix."""
        suggestions = EditorBuffer.at_end("\\s").suggestions()

        assert suggestions
        assert all(cmd.startswith("\\s") for cmd in suggestions)
        assert "\\sqrt" in suggestions
        assert "\\section" in suggestions

    def test_exact_match_excluded(self) -> None:
        """Test a fully typed command is not suggested again."""
        suggestions = EditorBuffer.at_end("\\sum").suggestions()

        assert "\\sum" not in suggestions

    def test_caret_in_middle(self) -> None:
        """Test only the text before the caret is considered."""
        buffer = EditorBuffer("\\fr more", selection_start=3)

        assert buffer.pending_command() == "\\fr"
        assert buffer.suggestions() == ["\\frac"]

    def test_apply_suggestion(self) -> None:
        """Test applying a suggestion replaces the partial command."""
        buffer = EditorBuffer("x = \\fr + 1", selection_start=7)

        assert buffer.apply_suggestion("\\frac")
        assert buffer.text == "x = \\frac + 1"
        assert buffer.caret == len("x = \\frac")

    def test_apply_without_pending(self) -> None:
        """Test nothing changes without a pending command."""
        buffer = EditorBuffer.at_end("x")

        assert not buffer.apply_suggestion("\\frac")
        assert buffer.text == "x"

    def test_command_list(self) -> None:
        """Test the command list is backslash-prefixed and unique."""
        assert all(cmd.startswith("\\") for cmd in COMMON_COMMANDS)
        assert len(set(COMMON_COMMANDS)) == len(COMMON_COMMANDS)


class TestSnippetInsertion:
    """Tests for palette snippet insertion."""

    def test_insert_at_caret(self) -> None:
        """Test insertion at a caret puts the caret after the snippet."""
        buffer = EditorBuffer("a  b", selection_start=2)
        buffer.insert("\\alpha")

        assert buffer.text == "a \\alpha b"
        assert buffer.caret == 2 + len("\\alpha")

    def test_insert_replaces_selection(self) -> None:
        """Test a selection is replaced by the snippet."""
        buffer = EditorBuffer("x = old", selection_start=4, selection_end=7)
        buffer.insert("\\frac{a}{b}")

        assert buffer.text == "x = \\frac{a}{b}"
        assert buffer.selection_start == buffer.selection_end == len(buffer.text)

    def test_positions_clamped(self) -> None:
        """Test out-of-range positions are clamped to the text."""
        buffer = EditorBuffer("abc", selection_start=10)

        assert buffer.caret == 3
        assert buffer.selection_end == 3

    def test_insert_without_selection_end(self) -> None:
        """Test a caret with no selection end inserts at the caret."""
        buffer = EditorBuffer("ab", selection_start=1)
        buffer.selection_end = None
        buffer.insert("\\pi")

        assert buffer.text == "a\\pib"
        assert buffer.caret == 1 + len("\\pi")

    def test_palette_categories(self) -> None:
        """Test the palette has the four categories."""
        assert list(SYMBOL_PALETTE) == ["Math", "Greek", "Operators", "Structure"]

    def test_find_symbol(self) -> None:
        """Test symbols are found by label, case-insensitively."""
        symbol = find_symbol("bold")

        assert symbol is not None
        assert symbol.code == "\\textbf{text}"
        assert find_symbol("α").code == "\\alpha"
        assert find_symbol("nothing") is None


class TestHighlight:
    """Tests for syntax highlighting."""

    def test_latex_lexer_available(self) -> None:
        assert lexer_available("latex")

    def test_unknown_lexer(self) -> None:
        assert not lexer_available("no-such-grammar")

    def test_highlight_source(self) -> None:
        """Test the source is highlighted with line numbers."""
        syntax = highlight_source("\\section{A}\n$x$")

        assert isinstance(syntax, Syntax)
        assert syntax.line_numbers
        assert syntax.code == "\\section{A}\n$x$"

    def test_fallback_to_plain_text(self) -> None:
        """Test an unavailable grammar falls back to plain text."""
        syntax = highlight_source("x", lexer="no-such-grammar")

        assert syntax.lexer is not None
        assert syntax.lexer.name.lower() in ("text only", "text")
