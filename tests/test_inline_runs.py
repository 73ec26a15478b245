from Ai2Word.inline_runs import build_plain_runs, resolve_runs, split_emoji
from Ai2Word.markdown_parser import lex, parse_inline
from Ai2Word.model import InlineKind, InlineToken, RunStyle


def _visible(runs):
    return "".join(run.visible_text for run in runs)


def test_runs_keep_every_visible_character():
    (paragraph,) = lex("Hello **world** and *more* `x` [l](https://a.b) ~~old~~\nnext")
    runs = resolve_runs(paragraph.inline)
    assert _visible(runs) == "".join(token.visible_text for token in paragraph.inline)


def test_nested_styles_combine():
    runs = resolve_runs(parse_inline("***both***"))
    assert len(runs) == 1
    assert runs[0].style.bold and runs[0].style.italic


def test_link_and_code_styles():
    runs = resolve_runs(parse_inline("[site](https://example.com) and `code`"), link_color="123456")
    link, _, code = runs
    assert link.style.underline and link.style.color == "123456"
    assert code.style.monospace and code.style.shading
    assert code.text == "code"


def test_inherited_style_flows_into_children():
    runs = resolve_runs(parse_inline("plain *em*"), RunStyle(size_pt=9))
    assert all(run.style.size_pt == 9 for run in runs)
    assert runs[1].style.italic


def test_line_break_token_becomes_break_run():
    runs = resolve_runs([InlineToken(InlineKind.PLAIN_TEXT, "a"), InlineToken(InlineKind.LINE_BREAK)])
    assert runs[1].line_break


def test_br_tag_and_bold_tag_in_text():
    runs = build_plain_runs("one<br>two <b>bold</b>")
    assert [run.text for run in runs] == ["one", "", "two ", "bold"]
    assert runs[1].line_break
    assert runs[3].style.bold


def test_parsed_html_tags_are_honored():
    runs = resolve_runs(parse_inline("Hello <b>world</b>"))
    assert [(run.text, run.style.bold) for run in runs] == [("Hello ", False), ("world", True)]


def test_emoji_get_their_own_font():
    runs = build_plain_runs("Hi 😀 there", emoji_font="Emoji Font")
    assert [run.text for run in runs] == ["Hi ", "😀", " there"]
    assert runs[1].font == "Emoji Font"
    assert runs[0].font is None and runs[2].font is None


def test_emoji_modifiers_stay_with_emoji():
    assert split_emoji("ok 👍🏽!") == [("ok ", False), ("👍🏽", True), ("!", False)]


def test_empty_text_gives_no_runs():
    assert build_plain_runs("") == []
    assert resolve_runs([InlineToken(InlineKind.PLAIN_TEXT, "")]) == []
    assert resolve_runs([]) == []


def test_horizontal_whitespace_collapses_in_text():
    runs = build_plain_runs("a \u3000\t b")
    assert _visible(runs) == "a b"
