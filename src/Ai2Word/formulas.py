"""Detect, extract and normalize math notation embedded in a text span.

Formulas are replaced in place by placeholder tokens such as
``[[FORMULA_INLINE_0]]`` so that the span can later be split and each
placeholder swapped for a rendered image (or its raw text).
"""
from __future__ import annotations

import re
from typing import List

from .model import ExtractedFormula, FormulaKind

BLOCK_BRACKET_RE = re.compile(r"\\\[([\s\S]*?)\\\]")
BLOCK_DOLLAR_RE = re.compile(r"\$\$([\s\S]*?)\$\$")
INLINE_PAREN_RE = re.compile(r"\\\(([\s\S]*?)\\\)")
INLINE_DOLLAR_RE = re.compile(r"(?<!\$)\$(?!\$)([^$\n]+?)\$(?!\$)")

PLACEHOLDER_RE = re.compile(r"\[\[FORMULA_(?:INLINE|BLOCK)_\d+\]\]")
PLACEHOLDER_SPLIT_RE = re.compile(r"(\[\[FORMULA_(?:INLINE|BLOCK)_\d+\]\])")
MATH_TRIGGER_RE = re.compile(r"[=≈×÷±≠≤≥\\]")
TIME_NOTATION_RE = re.compile(r"(\d+)'(\d+)''")

BARE_COMMANDS = (
    "text", "frac", "sqrt", "sum", "int", "alpha", "beta", "gamma", "delta", "theta",
    "pi", "sigma", "omega", "infty", "times", "div", "pm", "approx", "neq", "leq", "geq",
)
BARE_COMMAND_RE = re.compile(r"\\(" + "|".join(BARE_COMMANDS) + r")(\{[^}]*\}|)")
BARE_COMMAND_DETECT_RE = re.compile(r"\\(" + "|".join(BARE_COMMANDS) + r")\b")
ANY_DOLLAR_RE = re.compile(r"\$\$?[\s\S]*?\$\$?")
# Code spans and escaped dollars are never formula delimiters.
LITERAL_RE = re.compile(r"(?<!`)(`+)(?!`)[\s\S]*?[^`]\1(?!`)|\\\$")
MASK_RE = re.compile(r"\x00(\d+)\x00")

DEFAULT_TRIGGER_THRESHOLD = 3
DEFAULT_SPAN_CEILING = 200

SYMBOL_MAP = {
    # subscripts
    "₀": "_{0}", "₁": "_{1}", "₂": "_{2}", "₃": "_{3}", "₄": "_{4}",
    "₅": "_{5}", "₆": "_{6}", "₇": "_{7}", "₈": "_{8}", "₉": "_{9}",
    "₊": "_{+}", "₋": "_{-}", "₌": "_{=}", "₍": "_{(}", "₎": "_{)}",
    # superscripts
    "⁰": "^{0}", "¹": "^{1}", "²": "^{2}", "³": "^{3}", "⁴": "^{4}",
    "⁵": "^{5}", "⁶": "^{6}", "⁷": "^{7}", "⁸": "^{8}", "⁹": "^{9}",
    "⁺": "^{+}", "⁻": "^{-}", "⁼": "^{=}", "⁽": "^{(}", "⁾": "^{)}",
    "ⁿ": "^{n}",
    # fractions
    "¼": r"\frac{1}{4}", "½": r"\frac{1}{2}", "¾": r"\frac{3}{4}",
    "⅓": r"\frac{1}{3}", "⅔": r"\frac{2}{3}",
    "⅕": r"\frac{1}{5}", "⅖": r"\frac{2}{5}", "⅗": r"\frac{3}{5}", "⅘": r"\frac{4}{5}",
    "⅙": r"\frac{1}{6}", "⅚": r"\frac{5}{6}", "⅐": r"\frac{1}{7}",
    "⅛": r"\frac{1}{8}", "⅜": r"\frac{3}{8}", "⅝": r"\frac{5}{8}", "⅞": r"\frac{7}{8}",
    "⅑": r"\frac{1}{9}", "⅒": r"\frac{1}{10}",
    # greek, lower case
    "α": r"\alpha", "β": r"\beta", "γ": r"\gamma", "δ": r"\delta",
    "ε": r"\varepsilon", "ζ": r"\zeta", "η": r"\eta", "θ": r"\theta",
    "ι": r"\iota", "κ": r"\kappa", "λ": r"\lambda", "μ": r"\mu",
    "ν": r"\nu", "ξ": r"\xi", "ο": r"\omicron", "π": r"\pi",
    "ρ": r"\rho", "σ": r"\sigma", "τ": r"\tau", "υ": r"\upsilon",
    "φ": r"\varphi", "χ": r"\chi", "ψ": r"\psi", "ω": r"\omega",
    "ϵ": r"\epsilon", "ϑ": r"\vartheta", "ϰ": r"\varkappa",
    "ϖ": r"\varpi", "ϱ": r"\varrho", "ς": r"\varsigma", "ϕ": r"\phi",
    # greek, upper case
    "Α": "A", "Β": "B", "Γ": r"\Gamma", "Δ": r"\Delta",
    "Ε": "E", "Ζ": "Z", "Η": "H", "Θ": r"\Theta",
    "Ι": "I", "Κ": "K", "Λ": r"\Lambda", "Μ": "M",
    "Ν": "N", "Ξ": r"\Xi", "Ο": "O", "Π": r"\Pi",
    "Ρ": "P", "Σ": r"\Sigma", "Τ": "T", "Υ": r"\Upsilon",
    "Φ": r"\Phi", "Χ": "X", "Ψ": r"\Psi", "Ω": r"\Omega",
    # sets
    "∪": r"\cup", "∩": r"\cap", "∈": r"\in", "∉": r"\notin",
    "∅": r"\emptyset", "⊂": r"\subset", "⊃": r"\supset",
    "⊆": r"\subseteq", "⊇": r"\supseteq", "∖": r"\setminus",
    "∋": r"\ni", "∌": r"\notni", "⊄": r"\not\subset", "⊅": r"\not\supset",
    # logic
    "∧": r"\land", "∨": r"\lor", "¬": r"\lnot", "∀": r"\forall", "∃": r"\exists",
    "∄": r"\nexists", "⊢": r"\vdash", "⊣": r"\dashv", "⊨": r"\models",
    "⊩": r"\Vdash", "⊬": r"\nVdash",
    # arrows
    "←": r"\leftarrow", "↑": r"\uparrow", "→": r"\rightarrow", "↓": r"\downarrow",
    "↔": r"\leftrightarrow", "⇐": r"\Leftarrow", "⇑": r"\Uparrow",
    "⇒": r"\Rightarrow", "⇓": r"\Downarrow", "⇔": r"\Leftrightarrow",
    "⟵": r"\longleftarrow", "⟶": r"\longrightarrow", "⟷": r"\longleftrightarrow",
    # operators and relations
    "∞": r"\infty", "√": r"\sqrt{}", "±": r"\pm", "÷": r"\div", "×": r"\times",
    "≈": r"\approx", "≠": r"\neq", "≤": r"\leq", "≥": r"\geq",
    "≪": r"\ll", "≫": r"\gg", "∂": r"\partial", "∇": r"\nabla",
    "∫": r"\int", "∬": r"\iint", "∭": r"\iiint", "∑": r"\sum", "∏": r"\prod",
    "∐": r"\coprod", "⋂": r"\bigcap", "⋃": r"\bigcup",
    "∴": r"\therefore", "∵": r"\because", "⊥": r"\perp", "∥": r"\parallel",
    "∠": r"\angle", "∟": r"\sphericalangle", "°": r"^\circ",
    # dots and bars
    "…": r"\dots", "⋯": r"\cdots", "⋮": r"\vdots", "⋱": r"\ddots",
    "∣": r"\mid", "∤": r"\nmid", "∦": r"\nparallel",
}


def normalize_unicode_math(text: str) -> str:
    """Rewrite Unicode math symbols as LaTeX commands; ``5'41''`` becomes ``5'41"``."""
    result = TIME_NOTATION_RE.sub(lambda m: f"{m.group(1)}'{m.group(2)}\"", text)
    return "".join(SYMBOL_MAP.get(char, char) for char in result)


def has_formula(text: str) -> bool:
    if not text:
        return False
    text, _ = mask_literals(text)
    return bool(
        ANY_DOLLAR_RE.search(text)
        or BLOCK_BRACKET_RE.search(text)
        or INLINE_PAREN_RE.search(text)
        or BARE_COMMAND_DETECT_RE.search(text)
    )


def is_math_line(text: str, trigger_threshold: int = DEFAULT_TRIGGER_THRESHOLD, span_ceiling: int = DEFAULT_SPAN_CEILING) -> bool:
    """True when a short span is dense enough in math symbols to be one formula."""
    if not text or not text.strip():
        return False
    return len(MATH_TRIGGER_RE.findall(text)) >= trigger_threshold and len(text) < span_ceiling


def extract_formulas(
    text: str,
    trigger_threshold: int = DEFAULT_TRIGGER_THRESHOLD,
    span_ceiling: int = DEFAULT_SPAN_CEILING,
) -> tuple[str, List[ExtractedFormula]]:
    """Replace every formula in ``text`` with a placeholder.

    Delimited formulas are found first, in priority order ``\\[...\\]``,
    ``$$...$$``, ``\\(...\\)`` and ``$...$``. When none is found and the
    span looks like a bare equation the whole span becomes one block
    formula; otherwise known bare commands (``\\frac{..}``, ``\\times``...)
    are lifted out one by one.
    Code spans and escaped dollars are left alone.

    Returns the processed text and the formulas in placeholder order.
    """
    formulas: List[ExtractedFormula] = []
    masked_text, literals = mask_literals(text)

    def substitute(kind: FormulaKind):
        def _replace(match: re.Match) -> str:
            raw = unmask_literals(match.group(1).strip(), literals)
            placeholder = f"[[FORMULA_{kind.value}_{len(formulas)}]]"
            formulas.append(ExtractedFormula(kind, normalize_unicode_math(raw), raw, placeholder))
            return placeholder

        return _replace

    processed = BLOCK_BRACKET_RE.sub(substitute(FormulaKind.BLOCK), masked_text)
    processed = BLOCK_DOLLAR_RE.sub(substitute(FormulaKind.BLOCK), processed)
    processed = INLINE_PAREN_RE.sub(substitute(FormulaKind.INLINE), processed)
    processed = INLINE_DOLLAR_RE.sub(substitute(FormulaKind.INLINE), processed)

    residue = PLACEHOLDER_RE.sub("", processed)
    if not formulas and is_math_line(residue, trigger_threshold, span_ceiling):
        raw = unmask_literals(processed.strip(), literals)
        placeholder = f"[[FORMULA_{FormulaKind.BLOCK.value}_0]]"
        formulas.append(ExtractedFormula(FormulaKind.BLOCK, normalize_unicode_math(raw), raw, placeholder))
        return placeholder, formulas

    def lift_command(match: re.Match) -> str:
        raw = unmask_literals(match.group(0).strip(), literals)
        placeholder = f"[[FORMULA_{FormulaKind.INLINE.value}_{len(formulas)}]]"
        formulas.append(ExtractedFormula(FormulaKind.INLINE, normalize_unicode_math(raw), raw, placeholder))
        return placeholder

    processed = BARE_COMMAND_RE.sub(lift_command, processed)
    return unmask_literals(processed, literals), formulas


def mask_literals(text: str) -> tuple[str, List[str]]:
    """Swap code spans and escaped dollars for numbered markers so no formula pattern sees them."""
    literals: List[str] = []

    def _stash(match: re.Match) -> str:
        literals.append(match.group(0))
        return f"\x00{len(literals) - 1}\x00"

    return LITERAL_RE.sub(_stash, text), literals


def unmask_literals(text: str, literals: List[str]) -> str:
    if not literals:
        return text
    return MASK_RE.sub(lambda match: literals[int(match.group(1))], text)


def is_placeholder(piece: str) -> bool:
    return PLACEHOLDER_RE.fullmatch(piece) is not None


def substitute_raw(text: str, formulas: List[ExtractedFormula]) -> str:
    """Put each formula's raw text back where its placeholder sits."""
    for formula in formulas:
        text = text.replace(formula.placeholder, formula.raw)
    return text


def escape_placeholders(text: str) -> str:
    """Backslash the placeholder brackets so Markdown reads them as literal text, never as a link."""
    return PLACEHOLDER_RE.sub(lambda match: match.group(0).replace("[", "\\[").replace("]", "\\]"), text)
