from __future__ import annotations

import re
from dataclasses import replace
from typing import Callable, Iterable, List, Optional

from .formulas import PLACEHOLDER_SPLIT_RE, is_placeholder
from .model import InlineKind, InlineToken, Run, RunStyle, TextRun

HORIZONTAL_SPACE_RE = re.compile(r"[ \t\u3000\u00a0]+")
BREAK_OR_BOLD_RE = re.compile(r"(\n|<br\s*/?>|<b>.*?</b>|<strong>.*?</strong>)", re.IGNORECASE)
BR_RE = re.compile(r"^<br\s*/?>$", re.IGNORECASE)
BOLD_TAG_RE = re.compile(r"^<(b|strong)>(.*?)</\1>$", re.IGNORECASE | re.DOTALL)

LINK_COLOR = "2563EB"
CODE_SHADING = "F5F5F5"
DEFAULT_EMOJI_FONT = "Segoe UI Emoji"

# Called with a placeholder and the style around it; None keeps the placeholder text.
PlaceholderResolver = Callable[[str, RunStyle], Optional[Run]]


def is_emoji(char: str) -> bool:
    codepoint = ord(char)
    return (
        0x1F000 <= codepoint <= 0x1FAFF
        or 0x2600 <= codepoint <= 0x26FF
        or 0x2700 <= codepoint <= 0x27BF
        or 0x2300 <= codepoint <= 0x23FF
        or 0x2B00 <= codepoint <= 0x2BFF
    )


def is_emoji_modifier(char: str) -> bool:
    codepoint = ord(char)
    return (
        codepoint in (0x200D, 0xFE0E, 0xFE0F, 0x20E3)
        or 0x1F3FB <= codepoint <= 0x1F3FF
        or 0xE0020 <= codepoint <= 0xE007F
    )


def split_emoji(text: str) -> list[tuple[str, bool]]:
    """Split text into (segment, is_emoji) pairs; modifiers stick to the preceding emoji."""
    segments: list[tuple[str, bool]] = []
    for char in text:
        emoji = is_emoji(char) or (is_emoji_modifier(char) and bool(segments) and segments[-1][1])
        if segments and segments[-1][1] == emoji:
            segments[-1] = (segments[-1][0] + char, emoji)
        else:
            segments.append((char, emoji))
    return segments


def style_for(token: InlineToken, inherited: RunStyle, link_color: str = LINK_COLOR) -> RunStyle:
    kind = token.kind
    if kind is InlineKind.STRONG:
        return replace(inherited, bold=True)
    if kind is InlineKind.EMPHASIS:
        return replace(inherited, italic=True)
    if kind is InlineKind.STRIKETHROUGH:
        return replace(inherited, strike=True)
    if kind is InlineKind.CODE_SPAN:
        return replace(inherited, monospace=True, shading=CODE_SHADING)
    if kind is InlineKind.LINK:
        return replace(inherited, color=link_color, underline=True)
    return inherited


def resolve_runs(
    tokens: Iterable[InlineToken],
    inherited: RunStyle = RunStyle(),
    emoji_font: str = DEFAULT_EMOJI_FONT,
    link_color: str = LINK_COLOR,
    placeholders: Optional[PlaceholderResolver] = None,
) -> List[Run]:
    """Flatten an inline token tree into styled runs, in token order.

    With ``placeholders``, formula placeholders found in leaf text are handed
    to the resolver together with the style in force at that point.
    """
    runs: List[Run] = []
    for token in tokens:
        if token.kind is InlineKind.LINE_BREAK:
            runs.append(TextRun("", inherited, line_break=True))
            continue
        style = style_for(token, inherited, link_color)
        if token.children:
            runs.extend(resolve_runs(token.children, style, emoji_font, link_color, placeholders))
        elif token.text:
            # code spans are masked before extraction and never hold placeholders
            resolver = None if token.kind is InlineKind.CODE_SPAN else placeholders
            runs.extend(build_plain_runs(token.text, style, emoji_font, resolver))
    return runs


def build_plain_runs(
    text: str,
    style: RunStyle = RunStyle(),
    emoji_font: str = DEFAULT_EMOJI_FONT,
    placeholders: Optional[PlaceholderResolver] = None,
) -> List[Run]:
    """Runs for raw text: newlines and <br> become breaks, <b>/<strong> become bold."""
    if not text:
        return []
    normalized = HORIZONTAL_SPACE_RE.sub(" ", text)
    runs: List[Run] = []
    for part in BREAK_OR_BOLD_RE.split(normalized):
        if not part:
            continue
        if part == "\n" or BR_RE.match(part):
            runs.append(TextRun("", style, line_break=True))
            continue
        bold = BOLD_TAG_RE.match(part)
        if bold:
            runs.extend(_text_runs(bold.group(2), replace(style, bold=True), emoji_font, placeholders))
            continue
        runs.extend(_text_runs(part, style, emoji_font, placeholders))
    return runs


def _text_runs(text: str, style: RunStyle, emoji_font: str, placeholders: Optional[PlaceholderResolver]) -> List[Run]:
    if placeholders is None:
        return _emoji_runs(text, style, emoji_font)
    runs: List[Run] = []
    for piece in PLACEHOLDER_SPLIT_RE.split(text):
        if not piece:
            continue
        substitute = placeholders(piece, style) if is_placeholder(piece) else None
        if substitute is not None:
            runs.append(substitute)
        else:
            runs.extend(_emoji_runs(piece, style, emoji_font))
    return runs


def _emoji_runs(text: str, style: RunStyle, emoji_font: str) -> List[Run]:
    return [TextRun(segment, style, font=emoji_font if emoji else None) for segment, emoji in split_emoji(text) if segment]
