"""
Editor Module.

Source buffer with autocompletion, the symbol palette and highlighting.
"""

from autograde.editor.buffer import EditorBuffer
from autograde.editor.commands import COMMON_COMMANDS, SYMBOL_PALETTE, Symbol, find_symbol
from autograde.editor.highlight import highlight_source, lexer_available

__all__ = [
    "COMMON_COMMANDS",
    "EditorBuffer",
    "SYMBOL_PALETTE",
    "Symbol",
    "find_symbol",
    "highlight_source",
    "lexer_available",
]
