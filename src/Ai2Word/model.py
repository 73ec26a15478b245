from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Union


# ---------------------------------------------------------------------------
# Input: block and inline tokens produced by the token source
# ---------------------------------------------------------------------------


class InlineKind(Enum):
    PLAIN_TEXT = "text"
    STRONG = "strong"
    EMPHASIS = "em"
    CODE_SPAN = "codespan"
    LINK = "link"
    STRIKETHROUGH = "del"
    LINE_BREAK = "br"
    ESCAPED = "escape"


@dataclass
class InlineToken:
    kind: InlineKind
    text: str = ""
    children: List["InlineToken"] = field(default_factory=list)
    href: str | None = None

    @property
    def visible_text(self) -> str:
        if self.kind is InlineKind.LINE_BREAK:
            return "\n"
        if self.children:
            return "".join(child.visible_text for child in self.children)
        return self.text


@dataclass
class BlockToken:
    """Base class for block-level tokens."""


@dataclass
class Cell:
    text: str
    inline: List[InlineToken] = field(default_factory=list)


@dataclass
class HeadingToken(BlockToken):
    depth: int
    text: str
    inline: List[InlineToken] = field(default_factory=list)


@dataclass
class ParagraphToken(BlockToken):
    text: str
    inline: List[InlineToken] = field(default_factory=list)


@dataclass
class ListItemToken:
    text: str
    inline: List[InlineToken] = field(default_factory=list)


@dataclass
class ListToken(BlockToken):
    items: List[ListItemToken]
    ordered: bool = False


@dataclass
class CodeToken(BlockToken):
    text: str
    language: str | None = None


@dataclass
class TableToken(BlockToken):
    header: Sequence[Cell]
    rows: Sequence[Sequence[Cell]]


@dataclass
class RuleToken(BlockToken):
    """Horizontal rule / thematic break."""


@dataclass
class BlankToken(BlockToken):
    """Whitespace between blocks."""


@dataclass
class UnsupportedToken(BlockToken):
    kind: str
    text: str = ""


# ---------------------------------------------------------------------------
# Styling and runs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RunStyle:
    bold: bool = False
    italic: bool = False
    strike: bool = False
    monospace: bool = False
    underline: bool = False
    color: str | None = None
    size_pt: float | None = None
    shading: str | None = None


@dataclass(frozen=True)
class RenderedImage:
    """PNG bytes with their display size in pixels (96 px per inch)."""

    data: bytes
    width: float
    height: float


@dataclass
class TextRun:
    text: str
    style: RunStyle = RunStyle()
    font: str | None = None
    line_break: bool = False

    @property
    def visible_text(self) -> str:
        return "\n" if self.line_break else self.text


@dataclass
class ImageRun:
    image: RenderedImage
    display: bool = False
    alt_text: str = ""

    @property
    def visible_text(self) -> str:
        return ""


Run = Union[TextRun, ImageRun]


class FormulaKind(Enum):
    INLINE = "INLINE"
    BLOCK = "BLOCK"


@dataclass
class ExtractedFormula:
    kind: FormulaKind
    source: str
    raw: str
    placeholder: str

    @property
    def display(self) -> bool:
        return self.kind is FormulaKind.BLOCK


# ---------------------------------------------------------------------------
# Output: document blocks handed to the packager
# ---------------------------------------------------------------------------


class ParagraphRole(Enum):
    BODY = "body"
    HEADING = "heading"
    LIST_ITEM = "list_item"
    CODE = "code"
    RULE = "rule"
    SPACER = "spacer"


@dataclass(frozen=True)
class Spacing:
    """Paragraph spacing in twips; ``line`` is in 240ths of a line."""

    before: int = 0
    after: int = 0
    line: Optional[int] = None


@dataclass
class DocBlock:
    """Base class for assembled document blocks."""


@dataclass
class DocParagraph(DocBlock):
    children: List[Run]
    role: ParagraphRole = ParagraphRole.BODY
    spacing: Spacing = Spacing()
    heading_level: int | None = None
    border_bottom: bool = False
    shading: str | None = None
    bullet: bool = False

    @property
    def text(self) -> str:
        return "".join(child.visible_text for child in self.children)


@dataclass
class DocCell:
    children: List[Run]
    shading: str | None = None
    header: bool = False

    @property
    def text(self) -> str:
        return "".join(child.visible_text for child in self.children)


@dataclass
class DocTable(DocBlock):
    rows: List[List[DocCell]]
    column_widths: List[int]


@dataclass
class DocImage(DocBlock):
    image: RenderedImage
    width: float
    height: float
    alignment: str = "center"
