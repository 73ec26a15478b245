from __future__ import annotations

import logging
from typing import Iterable, List

from markdown_it import MarkdownIt

from .model import (
    BlockToken,
    Cell,
    CodeToken,
    HeadingToken,
    InlineKind,
    InlineToken,
    ListItemToken,
    ListToken,
    ParagraphToken,
    RuleToken,
    TableToken,
    UnsupportedToken,
)

logger = logging.getLogger(__name__)

_CONTAINERS = {
    "strong": InlineKind.STRONG,
    "em": InlineKind.EMPHASIS,
    "s": InlineKind.STRIKETHROUGH,
    "link": InlineKind.LINK,
}


def _markdown(breaks: bool) -> MarkdownIt:
    # Raw HTML stays literal text so <br> and <b> reach the run builder.
    return MarkdownIt("commonmark", {"breaks": breaks, "html": False}).enable(["table", "strikethrough"])


def lex(text: str, breaks: bool = True) -> List[BlockToken]:
    """Tokenize Markdown into block tokens; with ``breaks`` every newline is a line break."""
    tokens = _markdown(breaks).parse(text)
    blocks, _ = _parse_blocks(tokens, 0, breaks)
    return blocks


def parse_inline(text: str, breaks: bool = True) -> List[InlineToken]:
    """Tokenize a single span of inline Markdown."""
    tokens = _markdown(breaks).parseInline(text)
    if not tokens:
        return []
    return _build_inline(tokens[0].children or [], breaks)


def _parse_blocks(tokens, index: int, breaks: bool) -> tuple[list[BlockToken], int]:
    blocks: List[BlockToken] = []
    i = index
    while i < len(tokens):
        tok = tokens[i]
        if tok.type == "heading_open":
            inline = tokens[i + 1]
            blocks.append(
                HeadingToken(
                    depth=int(tok.tag[1]),
                    text=inline.content.strip(),
                    inline=_build_inline(inline.children or [], breaks),
                )
            )
            i += 3
        elif tok.type == "paragraph_open":
            inline = tokens[i + 1]
            blocks.append(ParagraphToken(text=inline.content, inline=_build_inline(inline.children or [], breaks)))
            i += 3
        elif tok.type in ("bullet_list_open", "ordered_list_open"):
            items, i = _parse_list(tokens, i, breaks)
            blocks.append(ListToken(items=items, ordered=tok.type == "ordered_list_open"))
        elif tok.type == "fence":
            info = (tok.info or "").strip()
            blocks.append(CodeToken(text=tok.content, language=info.split()[0] if info else None))
            i += 1
        elif tok.type == "code_block":
            blocks.append(CodeToken(text=tok.content, language=None))
            i += 1
        elif tok.type == "hr":
            blocks.append(RuleToken())
            i += 1
        elif tok.type == "table_open":
            table, i = _parse_table(tokens, i, breaks)
            blocks.append(table)
        elif tok.type == "blockquote_open":
            text, i = _skip_container(tokens, i, "blockquote_open", "blockquote_close")
            blocks.append(UnsupportedToken(kind="blockquote", text=text))
        elif tok.type == "html_block":
            blocks.append(UnsupportedToken(kind="html_block", text=tok.content))
            i += 1
        else:
            i += 1
    return blocks, i


def _parse_list(tokens, index: int, breaks: bool) -> tuple[list[ListItemToken], int]:
    """Collect list items; nested lists are flattened into the same sequence."""
    close_type = tokens[index].type.replace("_open", "_close")
    items: list[ListItemToken] = []
    i = index + 1
    while i < len(tokens) and tokens[i].type != close_type:
        if tokens[i].type != "list_item_open":
            i += 1
            continue
        i += 1
        item: ListItemToken | None = None
        nested: list[ListItemToken] = []
        while i < len(tokens) and tokens[i].type != "list_item_close":
            tok = tokens[i]
            if tok.type == "paragraph_open":
                inline = tokens[i + 1]
                children = _build_inline(inline.children or [], breaks)
                if item is None:
                    item = ListItemToken(text=inline.content, inline=children)
                else:
                    item.text += "\n" + inline.content
                    item.inline.append(InlineToken(InlineKind.LINE_BREAK))
                    item.inline.extend(children)
                i += 3
            elif tok.type in ("bullet_list_open", "ordered_list_open"):
                sub_items, i = _parse_list(tokens, i, breaks)
                nested.extend(sub_items)
            else:
                i += 1
        items.append(item or ListItemToken(text=""))
        items.extend(nested)
        i += 1  # skip list_item_close
    return items, i + 1


def _parse_table(tokens, index: int, breaks: bool) -> tuple[TableToken, int]:
    header: list[Cell] = []
    rows: list[list[Cell]] = []
    current: list[Cell] | None = None
    in_head = False
    i = index + 1
    while i < len(tokens):
        tok = tokens[i]
        if tok.type == "table_close":
            break
        if tok.type == "thead_open":
            in_head = True
        elif tok.type == "thead_close":
            in_head = False
        elif tok.type == "tr_open":
            current = header if in_head else []
        elif tok.type == "tr_close":
            if not in_head and current is not None:
                rows.append(current)
            current = None
        elif tok.type in ("th_open", "td_open"):
            inline = tokens[i + 1]
            cell = Cell(text=inline.content, inline=_build_inline(inline.children or [], breaks))
            if current is not None:
                current.append(cell)
            i += 3  # skip cell open, inline, cell close
            continue
        i += 1
    return TableToken(header=header, rows=rows), i + 1


def _skip_container(tokens, index: int, open_type: str, close_type: str) -> tuple[str, int]:
    depth = 0
    texts: list[str] = []
    i = index
    while i < len(tokens):
        tok = tokens[i]
        if tok.type == open_type:
            depth += 1
        elif tok.type == close_type:
            depth -= 1
            if depth == 0:
                return "\n".join(texts), i + 1
        elif tok.type == "inline":
            texts.append(tok.content)
        i += 1
    return "\n".join(texts), i


def _build_inline(children: Iterable, breaks: bool) -> List[InlineToken]:
    """Turn markdown-it's flat open/close inline stream into a nested token tree."""
    root: List[InlineToken] = []
    stack: list[List[InlineToken]] = [root]
    for tok in children:
        kind_name = tok.type.rsplit("_", 1)[0]
        if tok.type == "text":
            if tok.content:
                stack[-1].append(InlineToken(InlineKind.PLAIN_TEXT, tok.content))
        elif tok.type == "text_special":
            stack[-1].append(InlineToken(InlineKind.ESCAPED, tok.content))
        elif tok.type == "hardbreak" or (tok.type == "softbreak" and breaks):
            stack[-1].append(InlineToken(InlineKind.LINE_BREAK))
        elif tok.type == "softbreak":
            stack[-1].append(InlineToken(InlineKind.PLAIN_TEXT, " "))
        elif tok.type == "code_inline":
            stack[-1].append(InlineToken(InlineKind.CODE_SPAN, tok.content))
        elif tok.type.endswith("_open") and kind_name in _CONTAINERS:
            href = tok.attrGet("href") if kind_name == "link" else None
            node = InlineToken(_CONTAINERS[kind_name], href=href)
            stack[-1].append(node)
            stack.append(node.children)
        elif tok.type.endswith("_close") and kind_name in _CONTAINERS:
            if len(stack) > 1:
                stack.pop()
        elif tok.type == "image":
            alt = tok.content or tok.attrGet("alt") or ""
            if alt:
                stack[-1].append(InlineToken(InlineKind.PLAIN_TEXT, alt))
        elif tok.content:
            logger.debug("Treating inline token %s as text", tok.type)
            stack[-1].append(InlineToken(InlineKind.PLAIN_TEXT, tok.content))
    return root
