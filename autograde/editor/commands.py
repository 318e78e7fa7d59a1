"""
Command names offered by autocompletion and the symbol palette snippets.
"""

from typing import NamedTuple

COMMON_COMMANDS: tuple[str, ...] = (
    # Greek
    "\\alpha", "\\beta", "\\gamma", "\\delta", "\\epsilon", "\\theta", "\\lambda",
    "\\pi", "\\sigma", "\\phi", "\\omega",
    "\\Delta", "\\Gamma", "\\Lambda", "\\Pi", "\\Sigma", "\\Phi", "\\Omega",
    # Math
    "\\frac", "\\sqrt", "\\sum", "\\prod", "\\int", "\\infty", "\\lim",
    "\\sin", "\\cos", "\\tan", "\\log", "\\ln",
    # Structure
    "\\begin", "\\end", "\\section", "\\subsection", "\\subsubsection", "\\paragraph",
    "\\textbf", "\\textit", "\\underline", "\\emph",
    "\\usepackage", "\\documentclass", "\\title", "\\author", "\\date", "\\maketitle",
    "\\label", "\\ref", "\\cite", "\\item",
)


class Symbol(NamedTuple):
    """A palette entry: button label, inserted code and optional tooltip."""

    label: str
    code: str
    tooltip: str | None = None


SYMBOL_PALETTE: dict[str, tuple[Symbol, ...]] = {
    "Math": (
        Symbol("x/y", "\\frac{a}{b}", "Fraction"),
        Symbol("Σ", "\\sum_{i=0}^{n}", "Summation"),
        Symbol("∫", "\\int_{a}^{b}", "Integral"),
        Symbol("√", "\\sqrt{x}", "Square Root"),
        Symbol("x²", "x^{2}", "Superscript"),
        Symbol("xᵢ", "x_{i}", "Subscript"),
        Symbol("lim", "\\lim_{x \\to \\infty}", "Limit"),
    ),
    "Greek": (
        Symbol("α", "\\alpha"),
        Symbol("β", "\\beta"),
        Symbol("γ", "\\gamma"),
        Symbol("δ", "\\delta"),
        Symbol("θ", "\\theta"),
        Symbol("π", "\\pi"),
        Symbol("λ", "\\lambda"),
        Symbol("σ", "\\sigma"),
        Symbol("Δ", "\\Delta"),
        Symbol("Ω", "\\Omega"),
    ),
    "Operators": (
        Symbol("×", "\\times"),
        Symbol("·", "\\cdot"),
        Symbol("÷", "\\div"),
        Symbol("±", "\\pm"),
        Symbol("∞", "\\infty"),
        Symbol("≠", "\\neq"),
        Symbol("≈", "\\approx"),
        Symbol("≤", "\\leq"),
        Symbol("≥", "\\geq"),
        Symbol("∈", "\\in"),
        Symbol("→", "\\rightarrow"),
    ),
    "Structure": (
        Symbol("Section", "\\section{Title}"),
        Symbol("Subsection", "\\subsection{Title}"),
        Symbol("Bold", "\\textbf{text}"),
        Symbol("Italic", "\\textit{text}"),
        Symbol("Equation", "\\begin{equation}\n  \n\\end{equation}"),
        Symbol("Align", "\\begin{align*}\n  \n\\end{align*}"),
    ),
}


def find_symbol(label: str) -> Symbol | None:
    """Look up a palette entry by its label (case-insensitive) across categories."""
    wanted = label.casefold()
    for symbols in SYMBOL_PALETTE.values():
        for symbol in symbols:
            if symbol.label.casefold() == wanted:
                return symbol
    return None
