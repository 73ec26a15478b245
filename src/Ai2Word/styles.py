from __future__ import annotations

from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Pt, RGBColor, Twips

from .config import A4_HEIGHT_TWIPS, A4_WIDTH_TWIPS, ConverterConfig
from .model import RunStyle, Spacing

HEADING_SIZES_PT = {1: 16, 2: 14, 3: 13, 4: 12}
TABLE_CELL_SPACING = Spacing(before=40, after=40, line=240)
TABLE_CELL_MARGIN_TWIPS = 80
BORDER_SIZE = 6  # eighths of a point


def apply_page_layout(doc, config: ConverterConfig) -> None:
    """A4 page with the same margin on every side."""
    section = doc.sections[0]
    section.page_width = Twips(A4_WIDTH_TWIPS)
    section.page_height = Twips(A4_HEIGHT_TWIPS)
    margin = Twips(config.page_margin_twips)
    section.left_margin = margin
    section.right_margin = margin
    section.top_margin = margin
    section.bottom_margin = margin


def apply_document_styles(doc, config: ConverterConfig) -> None:
    """Set up Normal and Heading 1-4 with explicit font, size, color and spacing."""
    normal = doc.styles["Normal"]
    normal.font.name = config.latin_font
    normal.font.size = Pt(config.font_size_pt)
    normal.font.color.rgb = RGBColor.from_string(config.text_color)
    set_east_asian_font(normal.element.get_or_add_rPr(), config.east_asian_font)
    normal.paragraph_format.alignment = WD_ALIGN_PARAGRAPH.LEFT
    normal.paragraph_format.space_before = Twips(120)
    normal.paragraph_format.space_after = Twips(120)
    normal.paragraph_format.line_spacing = 1.5

    heading_colors = {1: config.h1_color, 2: config.h2_color, 3: config.h3_color, 4: config.h4_color}
    for level, size in HEADING_SIZES_PT.items():
        style = doc.styles[f"Heading {level}"]
        style.base_style = normal
        style.font.name = config.latin_font
        style.font.size = Pt(size)
        style.font.bold = True
        style.font.italic = False
        style.font.color.rgb = RGBColor.from_string(heading_colors[level])
        set_east_asian_font(style.element.get_or_add_rPr(), config.east_asian_font)
        style.paragraph_format.alignment = WD_ALIGN_PARAGRAPH.LEFT


def set_east_asian_font(r_pr, font_name: str) -> None:
    r_fonts = r_pr.get_or_add_rFonts()
    r_fonts.set(qn("w:eastAsia"), font_name)
    r_fonts.set(qn("w:hint"), "eastAsia")


def set_run_font(run, style: RunStyle, config: ConverterConfig, font: str | None = None) -> None:
    run.bold = style.bold or None
    run.italic = style.italic or None
    if style.strike:
        run.font.strike = True
    if style.underline:
        run.font.underline = True
    if style.color:
        run.font.color.rgb = RGBColor.from_string(style.color)
    if style.size_pt:
        run.font.size = Pt(style.size_pt)
    font_name = font or (config.code_font if style.monospace else None)
    if font_name:
        run.font.name = font_name
        r_fonts = run._r.get_or_add_rPr().get_or_add_rFonts()
        r_fonts.set(qn("w:eastAsia"), font_name)
        r_fonts.set(qn("w:cs"), font_name)
    if style.shading:
        run._r.get_or_add_rPr().append(_shading(style.shading))


def apply_spacing(paragraph, spacing: Spacing) -> None:
    fmt = paragraph.paragraph_format
    fmt.space_before = Twips(spacing.before)
    fmt.space_after = Twips(spacing.after)
    if spacing.line:
        fmt.line_spacing = spacing.line / 240


def set_paragraph_shading(paragraph, fill: str) -> None:
    paragraph._p.get_or_add_pPr().append(_shading(fill))


def set_bottom_border(paragraph, color: str, space: int = 4) -> None:
    p_pr = paragraph._p.get_or_add_pPr()
    borders = OxmlElement("w:pBdr")
    bottom = OxmlElement("w:bottom")
    bottom.set(qn("w:val"), "single")
    bottom.set(qn("w:sz"), str(BORDER_SIZE))
    bottom.set(qn("w:space"), str(space))
    bottom.set(qn("w:color"), color)
    borders.append(bottom)
    p_pr.append(borders)


def set_cell_shading(cell, fill: str) -> None:
    cell._tc.get_or_add_tcPr().append(_shading(fill))


def set_table_width(table, width_twips: int) -> None:
    tbl_pr = table._element.tblPr
    tbl_w = tbl_pr.find(qn("w:tblW"))
    if tbl_w is None:
        tbl_w = OxmlElement("w:tblW")
        _insert_tbl_pr_child(tbl_pr, tbl_w, ("w:jc", "w:tblInd", "w:tblBorders", "w:tblLayout", "w:tblCellMar", "w:tblLook"))
    tbl_w.set(qn("w:w"), str(int(width_twips)))
    tbl_w.set(qn("w:type"), "dxa")


def set_table_borders(table, color: str) -> None:
    """Horizontal rules only: top, bottom and between rows."""
    tbl_pr = table._element.tblPr
    for child in list(tbl_pr):
        if child.tag == qn("w:tblBorders"):
            tbl_pr.remove(child)
    borders = OxmlElement("w:tblBorders")
    for name in ("top", "left", "bottom", "right", "insideH", "insideV"):
        border = OxmlElement(f"w:{name}")
        if name in ("top", "bottom", "insideH"):
            border.set(qn("w:val"), "single")
            border.set(qn("w:sz"), "4")
            border.set(qn("w:space"), "0")
            border.set(qn("w:color"), color)
        else:
            border.set(qn("w:val"), "nil")
        borders.append(border)
    _insert_tbl_pr_child(tbl_pr, borders, ("w:shd", "w:tblLayout", "w:tblCellMar", "w:tblLook"))


def set_table_cell_margins(table, margin_twips: int = TABLE_CELL_MARGIN_TWIPS) -> None:
    tbl_pr = table._element.tblPr
    for child in list(tbl_pr):
        if child.tag == qn("w:tblCellMar"):
            tbl_pr.remove(child)
    margins = OxmlElement("w:tblCellMar")
    for side in ("top", "left", "bottom", "right"):
        node = OxmlElement(f"w:{side}")
        node.set(qn("w:w"), str(margin_twips))
        node.set(qn("w:type"), "dxa")
        margins.append(node)
    _insert_tbl_pr_child(tbl_pr, margins, ("w:tblLook",))


def _insert_tbl_pr_child(tbl_pr, element, successors: tuple[str, ...]) -> None:
    for child in tbl_pr:
        if child.tag in {qn(tag) for tag in successors}:
            child.addprevious(element)
            return
    tbl_pr.append(element)


def _shading(fill: str):
    shd = OxmlElement("w:shd")
    shd.set(qn("w:val"), "clear")
    shd.set(qn("w:color"), "auto")
    shd.set(qn("w:fill"), fill)
    return shd
