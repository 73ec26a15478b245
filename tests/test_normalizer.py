from Ai2Word.normalizer import normalize_text, wrap_bare_diagram


def test_common_indentation_is_removed():
    assert normalize_text("  # Title\n\n  Hello") == "# Title\n\nHello"


def test_short_blank_lines_survive_dedent():
    assert normalize_text("    x\n  \n    y") == "x\n \ny"


def test_horizontal_whitespace_collapses():
    assert normalize_text("a  \t b\u3000\u3000c\u00a0d") == "a b c d"


def test_fenced_code_is_left_verbatim():
    text = "```mermaid\ngraph  TD\n    A-->B\n```\ntext   here"
    result = normalize_text(text).split("\n")
    assert result[1] == "graph  TD"
    assert result[2] == "    A-->B"
    assert result[4] == "text here"


def test_line_count_is_preserved():
    text = "a\n\n\n  b  c\n```\n x   y\n```\n"
    assert len(normalize_text(text).split("\n")) == len(text.split("\n"))


def test_normalize_is_idempotent():
    samples = [
        "   Indented   text\n   more\u3000\u3000words",
        "# Title\n\n| a  | b |\n|---|---|\n| 1 |  2 |",
        "~~~python\ndef  f():\n    return  1\n~~~\nafter    fence",
        "",
    ]
    for sample in samples:
        once = normalize_text(sample)
        assert normalize_text(once) == once


def test_bare_diagram_gets_fenced():
    text = "Intro\n\ngraph TD\nA-->B\nB-->C\n"
    wrapped = wrap_bare_diagram(text)
    assert "```mermaid\ngraph TD\nA-->B\nB-->C" in wrapped
    assert wrapped.startswith("Intro\n\n")


def test_bare_diagram_ends_at_double_blank_line():
    text = "graph TD\nA-->B\nB-->C\nC-->D\n\n\nAfter the chart"
    wrapped = wrap_bare_diagram(text)
    assert "C-->D\n\n```" in wrapped
    assert wrapped.endswith("After the chart")


def test_fenced_diagram_is_untouched():
    text = "```mermaid\ngraph TD\nA-->B\n```"
    assert wrap_bare_diagram(text) == text


def test_text_without_diagram_is_untouched():
    text = "Just a paragraph.\n\n- a list"
    assert wrap_bare_diagram(text) == text
