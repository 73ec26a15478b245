from __future__ import annotations

import logging
from typing import Iterable, List, Sequence

from .cache import cached_render
from .formulas import has_formula
from .images import ImageDecodeError, fit_width, read_image_size
from .inline_runs import resolve_runs
from .markdown_parser import parse_inline
from .mixed_content import resolve_mixed_content, substitute_formula_text
from .model import (
    BlankToken,
    BlockToken,
    Cell,
    CodeToken,
    DocBlock,
    DocCell,
    DocImage,
    DocParagraph,
    DocTable,
    HeadingToken,
    ListToken,
    ParagraphRole,
    ParagraphToken,
    RuleToken,
    RunStyle,
    Spacing,
    TableToken,
    TextRun,
    UnsupportedToken,
)
from .state import RenderState

logger = logging.getLogger(__name__)

HEADING_SPACING = {
    1: Spacing(before=400, after=200),
    2: Spacing(before=300, after=150),
    3: Spacing(before=240, after=120),
    4: Spacing(before=200, after=100),
}
PARAGRAPH_SPACING = Spacing(before=120, after=120, line=360)
LIST_SPACING = Spacing(before=80, after=80)
CODE_SPACING = Spacing(before=0, after=0)
RULE_SPACING = Spacing(before=200, after=200)


async def assemble_blocks(tokens: Iterable[BlockToken], state: RenderState) -> List[DocBlock]:
    """Map block tokens to document blocks, preserving input order."""
    blocks: List[DocBlock] = []
    for token in tokens:
        blocks.extend(await _dispatch_block(token, state))
    return blocks


async def _dispatch_block(token: BlockToken, state: RenderState) -> List[DocBlock]:
    if isinstance(token, HeadingToken):
        return [_assemble_heading(token, state)]
    if isinstance(token, ParagraphToken):
        return [await _assemble_paragraph(token, state)]
    if isinstance(token, ListToken):
        return await _assemble_list(token, state)
    if isinstance(token, CodeToken):
        return await _assemble_code(token, state)
    if isinstance(token, TableToken):
        return await _assemble_table(token, state)
    if isinstance(token, RuleToken):
        return [DocParagraph([], role=ParagraphRole.RULE, spacing=RULE_SPACING, border_bottom=True)]
    if isinstance(token, BlankToken):
        return []
    kind = token.kind if isinstance(token, UnsupportedToken) else type(token).__name__
    logger.warning("Skipping unsupported block: %s", kind)
    return []


def heading_level(depth: int) -> int:
    return min(max(depth, 1), 4)


def _assemble_heading(token: HeadingToken, state: RenderState) -> DocParagraph:
    level = heading_level(token.depth)
    config = state.config
    # Formulas in headings stay as text so heading line metrics do not change.
    if has_formula(token.text):
        inline = parse_inline(substitute_formula_text(token.text, state))
        runs = resolve_runs(inline, RunStyle(), config.emoji_font, config.link_color)
    else:
        runs = resolve_runs(token.inline, RunStyle(), config.emoji_font, config.link_color)
    return DocParagraph(
        runs,
        role=ParagraphRole.HEADING,
        spacing=HEADING_SPACING[level],
        heading_level=level,
        border_bottom=level == 1,
    )


async def _assemble_paragraph(token: ParagraphToken, state: RenderState) -> DocParagraph:
    runs = await resolve_mixed_content(token.text, token.inline, RunStyle(), state)
    return DocParagraph(runs, role=ParagraphRole.BODY, spacing=PARAGRAPH_SPACING)


async def _assemble_list(token: ListToken, state: RenderState) -> List[DocBlock]:
    # Ordered and nested lists come out as one level of bullets.
    blocks: List[DocBlock] = []
    for item in token.items:
        runs = await resolve_mixed_content(item.text, item.inline, RunStyle(), state)
        blocks.append(DocParagraph(runs, role=ParagraphRole.LIST_ITEM, spacing=LIST_SPACING, bullet=True))
    return blocks


def is_diagram(token: CodeToken, state: RenderState) -> bool:
    return bool(token.language) and token.language.lower() == state.config.diagram_language.lower()


async def _assemble_code(token: CodeToken, state: RenderState) -> List[DocBlock]:
    config = state.config
    if is_diagram(token, state):
        source = token.text.strip()
        image = await cached_render(
            state.diagram_cache,
            source,
            lambda: state.rasterizers.render_diagram(source),
            config.render_timeout,
        )
        if image is not None:
            try:
                read_image_size(image.data)
            except ImageDecodeError as exc:
                logger.warning("Rendered diagram is not a readable image: %s", exc)
            else:
                width, height = fit_width(
                    image.width, image.height, config.diagram_max_width_px, config.diagram_min_width_px
                )
                return [DocImage(image=image, width=width, height=height, alignment="center")]
        logger.info("Diagram could not be rendered, keeping its source as code")
    return code_paragraphs(token.text, state)


def code_paragraphs(code: str, state: RenderState) -> List[DocBlock]:
    config = state.config
    style = RunStyle(monospace=True, size_pt=config.code_font_size_pt)
    paragraphs: List[DocBlock] = []
    for line in code.rstrip("\n").split("\n"):
        children = [TextRun(line, style)] if line else []
        paragraphs.append(
            DocParagraph(children, role=ParagraphRole.CODE, spacing=CODE_SPACING, shading=config.code_background)
        )
    return paragraphs


def text_width_units(text: str) -> int:
    """Approximate display width: characters beyond Latin-1 count double."""
    return sum(2 if ord(char) > 0xFF else 1 for char in text)


def compute_column_widths(
    header: Sequence[Cell],
    rows: Sequence[Sequence[Cell]],
    total_width: int,
    narrow_units: int = 4,
    narrow_width: int = 1000,
) -> List[int]:
    """Column widths in twips: narrow columns get a fixed width, the rest share what is left."""
    column_count = max([len(header)] + [len(row) for row in rows])
    if column_count == 0:
        return []
    max_units = [0] * column_count
    for row in [header, *rows]:
        for idx, cell in enumerate(row):
            max_units[idx] = max(max_units[idx], text_width_units(cell.text.strip()))

    narrow = [units <= narrow_units for units in max_units]
    wide_count = narrow.count(False)
    remaining = total_width - narrow_width * (column_count - wide_count)
    if wide_count == 0 or remaining < wide_count * narrow_width:
        return [total_width // column_count] * column_count
    wide_width = remaining // wide_count
    return [narrow_width if is_narrow else wide_width for is_narrow in narrow]


async def _assemble_table(token: TableToken, state: RenderState) -> List[DocBlock]:
    config = state.config
    widths = compute_column_widths(
        token.header,
        token.rows,
        config.printable_width_twips,
        config.narrow_column_units,
        config.narrow_column_width_twips,
    )
    column_count = len(widths)
    header_style = RunStyle(bold=True, size_pt=config.table_font_size_pt)
    body_style = RunStyle(size_pt=config.table_font_size_pt)

    rows: List[List[DocCell]] = []
    if token.header:
        rows.append(
            await _assemble_row(token.header, column_count, header_style, config.table_header_background, True, state)
        )
    for idx, row in enumerate(token.rows):
        shading = config.table_row_odd_background if idx % 2 == 0 else config.table_row_even_background
        rows.append(await _assemble_row(row, column_count, body_style, shading, False, state))

    spacer = DocParagraph([], role=ParagraphRole.SPACER)
    return [DocTable(rows=rows, column_widths=widths), spacer]


async def _assemble_row(
    cells: Sequence[Cell],
    column_count: int,
    style: RunStyle,
    shading: str,
    header: bool,
    state: RenderState,
) -> List[DocCell]:
    row: List[DocCell] = []
    for idx in range(column_count):
        cell = cells[idx] if idx < len(cells) else Cell(text="")
        runs = await resolve_mixed_content(cell.text, cell.inline, style, state)
        row.append(DocCell(runs, shading=shading, header=header))
    return row
