from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Iterable, Sequence

from docx import Document as DocxDocument
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.image.exceptions import UnrecognizedImageError
from docx.shared import Emu, Twips

from . import styles
from .config import ConverterConfig
from .model import DocBlock, DocImage, DocParagraph, DocTable, ImageRun, ParagraphRole, Run, RunStyle, TextRun

logger = logging.getLogger(__name__)

EMU_PER_PIXEL = 9525  # 914400 EMU per inch / 96 px per inch


def package_document(blocks: Iterable[DocBlock], config: ConverterConfig | None = None) -> bytes:
    """Lay the blocks out in a styled A4 document and return the .docx bytes."""
    config = config or ConverterConfig()
    docx = DocxDocument()
    styles.apply_page_layout(docx, config)
    styles.apply_document_styles(docx, config)

    for block in blocks:
        _dispatch_block(docx, block, config)

    buffer = io.BytesIO()
    docx.save(buffer)
    return buffer.getvalue()


def render_document(blocks: Iterable[DocBlock], output_path: str | Path, config: ConverterConfig | None = None) -> Path:
    output_path = Path(output_path)
    data = package_document(blocks, config)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(data)
    return output_path


def _dispatch_block(docx: DocxDocument, block: DocBlock, config: ConverterConfig) -> None:
    if isinstance(block, DocParagraph):
        _render_paragraph(docx, block, config)
    elif isinstance(block, DocTable):
        _render_table(docx, block, config)
    elif isinstance(block, DocImage):
        _render_image(docx, block)
    else:
        logger.warning("Cannot package block of type %s", type(block).__name__)


def _render_paragraph(docx: DocxDocument, block: DocParagraph, config: ConverterConfig) -> None:
    if block.role is ParagraphRole.HEADING and block.heading_level:
        paragraph = docx.add_paragraph(style=f"Heading {block.heading_level}")
    elif block.bullet:
        paragraph = docx.add_paragraph(style="List Bullet")
    else:
        paragraph = docx.add_paragraph()

    # pBdr and shd precede spacing and jc inside w:pPr
    if block.border_bottom:
        styles.set_bottom_border(paragraph, config.border_color, space=4 if block.role is ParagraphRole.HEADING else 1)
    if block.shading:
        styles.set_paragraph_shading(paragraph, block.shading)
    styles.apply_spacing(paragraph, block.spacing)
    paragraph.alignment = WD_ALIGN_PARAGRAPH.LEFT
    _add_children(paragraph, block.children, config)


def _add_children(paragraph, children: Sequence[Run], config: ConverterConfig) -> None:
    for idx, child in enumerate(children):
        if isinstance(child, TextRun):
            run = paragraph.add_run()
            if child.line_break:
                run.add_break()
                continue
            run.text = child.text
            styles.set_run_font(run, child.style, config, font=child.font)
        elif isinstance(child, ImageRun):
            _add_image_run(paragraph, child, config, first=idx == 0, last=idx == len(children) - 1)


def _add_image_run(paragraph, child: ImageRun, config: ConverterConfig, first: bool, last: bool) -> None:
    # Display formulas sit on their own line.
    if child.display and not first:
        paragraph.add_run().add_break()
    run = paragraph.add_run()
    try:
        run.add_picture(
            io.BytesIO(child.image.data),
            width=Emu(int(child.image.width * EMU_PER_PIXEL)),
            height=Emu(int(child.image.height * EMU_PER_PIXEL)),
        )
    except UnrecognizedImageError:
        logger.warning("Could not embed formula image, using its text: %s", child.alt_text)
        run.text = child.alt_text
        styles.set_run_font(run, RunStyle(italic=True), config)
    if child.display and not last:
        paragraph.add_run().add_break()


def _render_image(docx: DocxDocument, block: DocImage) -> None:
    paragraph = docx.add_paragraph()
    paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER if block.alignment == "center" else WD_ALIGN_PARAGRAPH.LEFT
    run = paragraph.add_run()
    run.add_picture(
        io.BytesIO(block.image.data),
        width=Emu(int(block.width * EMU_PER_PIXEL)),
        height=Emu(int(block.height * EMU_PER_PIXEL)),
    )


def _render_table(docx: DocxDocument, block: DocTable, config: ConverterConfig) -> None:
    if not block.rows or not block.column_widths:
        return
    table = docx.add_table(rows=len(block.rows), cols=len(block.column_widths))
    table.alignment = WD_TABLE_ALIGNMENT.LEFT
    table.autofit = False
    styles.set_table_width(table, sum(block.column_widths))
    styles.set_table_borders(table, config.border_color)
    styles.set_table_cell_margins(table)
    for idx, width in enumerate(block.column_widths):
        table.columns[idx].width = Twips(width)

    for r_idx, row in enumerate(block.rows):
        for c_idx, cell_block in enumerate(row):
            cell = table.cell(r_idx, c_idx)
            cell.width = Twips(block.column_widths[c_idx])
            if cell_block.shading:
                styles.set_cell_shading(cell, cell_block.shading)
            paragraph = cell.paragraphs[0]
            styles.apply_spacing(paragraph, styles.TABLE_CELL_SPACING)
            paragraph.alignment = WD_ALIGN_PARAGRAPH.LEFT
            _add_children(paragraph, cell_block.children, config)
