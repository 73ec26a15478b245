import io
from pathlib import Path

import pytest
from docx import Document as DocxReader
from docx.shared import Twips

from Ai2Word import generator, renderer_docx
from Ai2Word.errors import GenerationError
from Ai2Word.generator import generate_document, generate_docx
from Ai2Word.model import DocParagraph, ImageRun, ParagraphRole, RenderedImage, RunStyle, TextRun
from Ai2Word.renderer_docx import render_document

SAMPLE = """
# Report

Intro with **bold**, `code` and $x^2$.

- point one
- point two

```mermaid
graph TD
A-->B
```

```python
print("hi")
```

| Name | Value |
|---|---|
| a | 1 |
"""
DIAGRAM_AND_FORMULA = "```mermaid\ngraph LR\nA-->B\n```\n\nValue $y$"


def _read(data: bytes):
    return DocxReader(io.BytesIO(data))


def test_render_creates_docx(tmp_path: Path):
    blocks = [
        DocParagraph([TextRun("Introduction")], role=ParagraphRole.HEADING, heading_level=1, border_bottom=True),
        DocParagraph([TextRun("Example paragraph for the test.")]),
    ]
    output_file = tmp_path / "report.docx"
    render_document(blocks, output_file)
    assert output_file.exists()
    assert output_file.stat().st_size > 0

    reader = DocxReader(output_file)
    assert reader.paragraphs[0].style.name == "Heading 1"
    assert reader.paragraphs[1].text == "Example paragraph for the test."


def test_generated_document_structure(fake_rasterizer):
    reader = _read(generate_docx(SAMPLE, rasterizers=fake_rasterizer.rasterizers()))
    texts = [p.text for p in reader.paragraphs]
    assert "Report" in texts
    assert reader.paragraphs[0].style.name == "Heading 1"
    assert "point one" in texts and "point two" in texts
    assert 'print("hi")' in texts
    assert "graph TD" not in texts
    # one diagram and one formula
    assert len(reader.inline_shapes) == 2
    assert len(reader.tables) == 1
    assert reader.tables[0].cell(0, 0).text == "Name"
    assert reader.tables[0].cell(1, 1).text == "1"


def test_page_is_a4_with_narrow_margins(fake_rasterizer):
    reader = _read(generate_docx("Hello", rasterizers=fake_rasterizer.rasterizers()))
    section = reader.sections[0]
    assert section.page_width == Twips(11906)
    assert section.page_height == Twips(16838)
    assert section.left_margin == Twips(720)
    assert section.top_margin == Twips(720)


def test_failed_renders_degrade_to_text(failing_rasterizer):
    reader = _read(generate_docx(SAMPLE, rasterizers=failing_rasterizer.rasterizers()))
    texts = [p.text for p in reader.paragraphs]
    assert "graph TD" in texts and "A-->B" in texts
    assert any(text.endswith("x^2.") for text in texts)
    assert len(reader.inline_shapes) == 0


def test_code_runs_use_monospace_font(failing_rasterizer):
    reader = _read(generate_docx("```\nx = 1\n```", rasterizers=failing_rasterizer.rasterizers()))
    (paragraph,) = reader.paragraphs
    assert paragraph.runs[0].font.name == "Courier New"
    assert "F5F5F5" in paragraph._p.xml


def test_heading_one_has_bottom_border(fake_rasterizer):
    reader = _read(generate_docx("# Title\n\n## Sub", rasterizers=fake_rasterizer.rasterizers()))
    assert "w:pBdr" in reader.paragraphs[0]._p.xml
    assert "w:pBdr" not in reader.paragraphs[1]._p.xml


def test_unreadable_inline_image_is_written_as_text():
    blocks = [DocParagraph([ImageRun(RenderedImage(b"junk", 10, 10), alt_text="a+b")])]
    reader = _read(renderer_docx.package_document(blocks))
    assert reader.paragraphs[0].text == "a+b"
    assert reader.paragraphs[0].runs[0].italic


def test_packaging_failure_raises_generation_error(monkeypatch, fake_rasterizer):
    def explode(blocks, config=None):
        raise RuntimeError("disk full")

    monkeypatch.setattr(renderer_docx, "package_document", explode)
    with pytest.raises(GenerationError, match="disk full"):
        generate_docx("Hello", rasterizers=fake_rasterizer.rasterizers())


@pytest.mark.asyncio
async def test_caches_are_empty_after_generation(fake_rasterizer, monkeypatch):
    created = []
    original = generator.new_state

    def tracking_state(config=None, rasterizers=None):
        state = original(config, rasterizers)
        created.append(state)
        return state

    monkeypatch.setattr(generator, "new_state", tracking_state)
    await generate_document(DIAGRAM_AND_FORMULA, rasterizers=fake_rasterizer.rasterizers())
    (state,) = created
    assert len(state.diagram_cache) == 0
    assert len(state.formula_cache) == 0


def test_run_style_maps_to_docx_properties():
    blocks = [
        DocParagraph(
            [TextRun("styled", RunStyle(bold=True, italic=True, strike=True, underline=True, color="2563EB", size_pt=9))]
        )
    ]
    run = _read(renderer_docx.package_document(blocks)).paragraphs[0].runs[0]
    assert run.bold and run.italic and run.font.strike and run.underline
    assert str(run.font.color.rgb) == "2563EB"
    assert run.font.size.pt == 9
