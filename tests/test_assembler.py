import logging

import pytest

from Ai2Word.assembler import (
    PARAGRAPH_SPACING,
    assemble_blocks,
    compute_column_widths,
    heading_level,
    text_width_units,
)
from Ai2Word.generator import build_document_blocks
from Ai2Word.model import (
    Cell,
    DocImage,
    DocParagraph,
    DocTable,
    HeadingToken,
    ImageRun,
    ParagraphRole,
    TableToken,
    UnsupportedToken,
)
from Ai2Word.state import RenderState

DIAGRAM = "```mermaid\ngraph TD\nA-->B\n```"


@pytest.mark.asyncio
async def test_heading_and_paragraph(state):
    blocks = await build_document_blocks("# Title\n\nHello **world**.", state)
    assert len(blocks) == 2
    heading, paragraph = blocks
    assert heading.role is ParagraphRole.HEADING
    assert heading.heading_level == 1
    assert heading.text == "Title"
    assert heading.border_bottom
    assert [(run.text, run.style.bold) for run in paragraph.children] == [
        ("Hello ", False),
        ("world", True),
        (".", False),
    ]
    assert paragraph.spacing == PARAGRAPH_SPACING


@pytest.mark.asyncio
async def test_diagram_becomes_centered_image(state, fake_rasterizer):
    blocks = await build_document_blocks(DIAGRAM, state)
    assert len(blocks) == 1
    (image,) = blocks
    assert isinstance(image, DocImage)
    assert image.alignment == "center"
    # 120x40 is below the minimum width and is scaled up
    assert image.width == 400
    assert image.height == pytest.approx(40 * 400 / 120)
    assert fake_rasterizer.diagram_calls == ["graph TD\nA-->B"]


@pytest.mark.asyncio
async def test_wide_diagram_is_scaled_down(wide_rasterizer):
    state = RenderState(rasterizers=wide_rasterizer.rasterizers())
    (image,) = await build_document_blocks(DIAGRAM, state)
    assert (image.width, image.height) == (600, 300)


@pytest.mark.asyncio
async def test_failed_diagram_falls_back_to_code(failing_state, failing_rasterizer):
    blocks = await build_document_blocks(DIAGRAM + "\n\n" + DIAGRAM, failing_state)
    assert all(isinstance(block, DocParagraph) for block in blocks)
    assert [block.text for block in blocks] == ["graph TD", "A-->B", "graph TD", "A-->B"]
    assert all(block.role is ParagraphRole.CODE and block.shading == "F5F5F5" for block in blocks)
    assert all(block.children[0].style.monospace for block in blocks)
    assert len(failing_rasterizer.diagram_calls) == 1


@pytest.mark.asyncio
async def test_plain_code_block_keeps_empty_lines(state, fake_rasterizer):
    blocks = await build_document_blocks("```python\nx = 1\n\ny = 2\n```", state)
    assert [block.text for block in blocks] == ["x = 1", "", "y = 2"]
    assert blocks[1].children == []
    assert fake_rasterizer.diagram_calls == []


@pytest.mark.asyncio
async def test_equation_outside_dollars_stays_text(state, fake_rasterizer):
    (paragraph,) = await build_document_blocks("E=mc^2 and $a+b=c$", state)
    first, image = paragraph.children
    assert first.text == "E=mc^2 and "
    assert isinstance(image, ImageRun)
    assert fake_rasterizer.formula_calls == [("a+b=c", False)]


@pytest.mark.asyncio
async def test_heading_formula_stays_text(state, fake_rasterizer):
    (heading,) = await build_document_blocks("## Energy $E=mc^2$", state)
    assert heading.text == "Energy E=mc^2"
    assert heading.heading_level == 2
    assert not heading.border_bottom
    assert fake_rasterizer.formula_calls == []


@pytest.mark.asyncio
async def test_deep_headings_are_capped(state):
    (block,) = await assemble_blocks([HeadingToken(depth=6, text="Deep")], state)
    assert block.heading_level == 4
    assert heading_level(0) == 1


@pytest.mark.asyncio
async def test_list_items_are_bullets(state):
    blocks = await build_document_blocks("- one\n- two\n  - three", state)
    assert [block.text for block in blocks] == ["one", "two", "three"]
    assert all(block.bullet and block.role is ParagraphRole.LIST_ITEM for block in blocks)


@pytest.mark.asyncio
async def test_rule_is_a_bordered_empty_paragraph(state):
    blocks = await build_document_blocks("Above\n\n---\n\nBelow", state)
    rule = blocks[1]
    assert rule.role is ParagraphRole.RULE
    assert rule.border_bottom
    assert rule.children == []


@pytest.mark.asyncio
async def test_unsupported_block_is_skipped(state, caplog):
    with caplog.at_level(logging.WARNING):
        blocks = await assemble_blocks([UnsupportedToken(kind="blockquote", text="quoted")], state)
    assert blocks == []
    assert "blockquote" in caplog.text


def test_wide_characters_count_double():
    assert text_width_units("ab") == 2
    assert text_width_units("序号") == 4


def test_narrow_columns_get_fixed_width():
    header = [Cell("序号"), Cell("描述很长的列标题"), Cell("备注")]
    rows = [[Cell("1"), Cell("文本"), Cell("无")]]
    assert compute_column_widths(header, rows, 10466) == [1000, 8466, 1000]


def test_all_narrow_columns_share_evenly():
    assert compute_column_widths([Cell("a"), Cell("b")], [], 10466) == [5233, 5233]


def test_too_little_room_shares_evenly():
    header = [Cell("a"), Cell("b"), Cell("a much longer header")]
    assert compute_column_widths(header, [], 2500) == [833, 833, 833]


@pytest.mark.asyncio
async def test_table_rows_are_styled_and_padded(state):
    token = TableToken(
        header=[Cell("Name"), Cell("Value")],
        rows=[[Cell("alpha")], [Cell("beta"), Cell("2")]],
    )
    table, spacer = await assemble_blocks([token], state)
    assert isinstance(table, DocTable)
    assert sum(table.column_widths) == state.config.printable_width_twips
    header, first, second = table.rows
    assert all(cell.header and cell.shading == "F3F4F6" for cell in header)
    assert all(run.style.bold for cell in header for run in cell.children)
    assert [cell.text for cell in first] == ["alpha", ""]
    assert first[0].shading == "FFFFFF"
    assert second[0].shading == "FAFAFA"
    assert all(run.style.size_pt == 9 for run in second[1].children)
    assert spacer.role is ParagraphRole.SPACER


@pytest.mark.asyncio
async def test_markdown_table_end_to_end(state):
    text = "| 序号 | 描述很长的列标题 | 备注 |\n|---|---|---|\n| 1 | 文本 | 无 |"
    table, _ = await build_document_blocks(text, state)
    assert table.column_widths == [1000, 8466, 1000]
    assert [cell.text for cell in table.rows[1]] == ["1", "文本", "无"]


@pytest.mark.asyncio
async def test_heading_formula_keeps_inline_markdown(state):
    (heading,) = await build_document_blocks("# **Energy** and `E` $E=mc^2$", state)
    assert heading.text == "Energy and E E=mc^2"
    assert heading.children[0].style.bold
    code = [run for run in heading.children if run.text == "E"]
    assert code and code[0].style.monospace
