"""Markdown → document tree.

Markdown is rendered to HTML with markdown-it (GFM-like preset: tables
and strikethrough), then the HTML is walked with BeautifulSoup and mapped
onto the node set of :mod:`blog_transfer.content.document`.  Anything
outside that set is unwrapped into its text content.
"""

from __future__ import annotations

import logging
import re
from typing import Any, TypeAlias

from bs4 import BeautifulSoup, Comment, NavigableString, Tag
from markdown_it import MarkdownIt

from blog_transfer.content.document import (
    Blockquote,
    BoldMark,
    BulletList,
    CodeBlock,
    CodeBlockAttrs,
    CodeMark,
    Doc,
    HardBreak,
    Heading,
    HeadingAttrs,
    HorizontalRule,
    Image,
    ImageAttrs,
    ItalicMark,
    LinkAttrs,
    LinkMark,
    ListItem,
    Mark,
    Node,
    OrderedList,
    OrderedListAttrs,
    Paragraph,
    StrikeMark,
    Table,
    TableCell,
    TableHeader,
    TableRow,
    Text,
    UnderlineMark,
    dump_document,
)

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_HEADINGS = {"h1": 1, "h2": 2, "h3": 3, "h4": 4, "h5": 5, "h6": 6}
_MARK_TAGS = {
    "strong": BoldMark,
    "b": BoldMark,
    "em": ItalicMark,
    "i": ItalicMark,
    "s": StrikeMark,
    "del": StrikeMark,
    "strike": StrikeMark,
    "u": UnderlineMark,
}
_BLOCK_TAGS = frozenset(
    {
        "p",
        "pre",
        "blockquote",
        "ul",
        "ol",
        "table",
        "hr",
        "div",
        "section",
        "article",
        *_HEADINGS,
    }
)

# Inline run element: a Text / HardBreak, or an Image that splits the run.
_Inline: TypeAlias = Text | HardBreak | Image


def _make_parser() -> MarkdownIt:
    """Build a MarkdownIt instance with tables and strikethrough enabled."""
    return MarkdownIt("gfm-like", options_update={"linkify": False})


_md = _make_parser()


def markdown_to_tree(markdown: str) -> dict[str, Any]:
    """Convert Markdown text to a document tree (editor JSON shape)."""
    html = _md.render(markdown)
    soup = BeautifulSoup(html, "html.parser")
    blocks = _parse_blocks(soup)
    return dump_document(Doc(content=blocks or [Paragraph()]))


# ── Blocks ───────────────────────────────────────────────────────────


def _parse_blocks(parent: Tag) -> list[Node]:
    """Parse the children of *parent* as a block sequence.

    Loose inline content between blocks (tight list items, table cells)
    is gathered into paragraphs.
    """
    blocks: list[Node] = []
    loose: list[Any] = []

    def flush() -> None:
        if loose:
            blocks.extend(_paragraphs(loose))
            loose.clear()

    for child in parent.children:
        if isinstance(child, Tag) and child.name in _BLOCK_TAGS:
            flush()
            blocks.extend(_parse_block(child))
        elif isinstance(child, Tag) and child.name == "img":
            flush()
            blocks.append(_image(child))
        else:
            loose.append(child)
    flush()
    return blocks


def _parse_block(el: Tag) -> list[Node]:
    name = el.name
    if name == "p":
        return _paragraphs(el.children)
    if name in _HEADINGS:
        inline = _parse_inline(el.children, ())
        # Headings hold text only; images follow as their own blocks.
        images: list[Node] = [n for n in inline if isinstance(n, Image)]
        text = [n for n in inline if not isinstance(n, Image)]
        heading = Heading(
            attrs=HeadingAttrs(level=_HEADINGS[name]),
            content=_tidy(text) or None,
        )
        return [heading, *images]
    if name == "pre":
        return [_code_block(el)]
    if name == "blockquote":
        return [Blockquote(content=_parse_blocks(el) or [Paragraph()])]
    if name == "ul":
        return [BulletList(content=_list_items(el))]
    if name == "ol":
        return [
            OrderedList(
                attrs=OrderedListAttrs(start=_int_attr(el, "start", 1)),
                content=_list_items(el),
            )
        ]
    if name == "table":
        return [_table(el)]
    if name == "hr":
        return [HorizontalRule()]
    # Generic wrappers from raw HTML blocks.
    return _parse_blocks(el)


def _paragraphs(children: Any) -> list[Node]:
    """Build paragraphs from an inline run, lifting images out as blocks."""
    blocks: list[Node] = []
    run: list[Text | HardBreak] = []

    def flush() -> None:
        tidy = _tidy(run)
        if tidy:
            blocks.append(Paragraph(content=tidy))
        run.clear()

    for node in _parse_inline(children, ()):
        if isinstance(node, Image):
            flush()
            blocks.append(node)
        else:
            run.append(node)
    flush()
    return blocks


def _code_block(pre: Tag) -> CodeBlock:
    code = pre.find("code")
    source = code if isinstance(code, Tag) else pre
    language = None
    for cls in source.get("class") or []:
        if cls.startswith("language-"):
            language = cls[len("language-") :]
            break
    text = source.get_text()
    if text.endswith("\n"):
        text = text[:-1]
    return CodeBlock(
        attrs=CodeBlockAttrs(language=language),
        content=[Text(text=text)] if text else None,
    )


def _list_items(el: Tag) -> list[Node]:
    items: list[Node] = []
    for li in el.find_all("li", recursive=False):
        items.append(ListItem(content=_parse_blocks(li) or [Paragraph()]))
    return items


def _table(el: Tag) -> Table:
    rows: list[Node] = []
    for tr in el.find_all("tr"):
        cells: list[Node] = []
        for cell in tr.find_all(["th", "td"], recursive=False):
            content = _parse_blocks(cell) or [Paragraph()]
            if cell.name == "th":
                cells.append(TableHeader(content=content))
            else:
                cells.append(TableCell(content=content))
        rows.append(TableRow(content=cells))
    return Table(content=rows)


def _image(el: Tag) -> Image:
    return Image(
        attrs=ImageAttrs(
            src=str(el.get("src") or ""),
            alt=el.get("alt") or None,
            title=el.get("title") or None,
        )
    )


def _int_attr(el: Tag, name: str, default: int) -> int:
    try:
        return int(el.get(name, default))
    except (TypeError, ValueError):
        return default


# ── Inline ───────────────────────────────────────────────────────────


def _parse_inline(children: Any, marks: tuple[Mark, ...]) -> list[_Inline]:
    """Flatten inline HTML into text runs carrying their marks.

    Marks are recorded innermost first, so serializing them in stored
    order rebuilds the original nesting.
    """
    out: list[_Inline] = []
    for child in children:
        if isinstance(child, Comment):
            continue
        if isinstance(child, NavigableString):
            text = _WHITESPACE_RE.sub(" ", str(child))
            if text:
                out.append(_text(text, marks))
            continue
        if not isinstance(child, Tag):
            continue

        name = child.name
        if name == "br":
            out.append(HardBreak())
        elif name == "img":
            out.append(_image(child))
        elif name == "code":
            out.append(_text(child.get_text(), (CodeMark(), *marks)))
        elif name == "a":
            link = LinkMark(attrs=LinkAttrs(href=str(child.get("href") or "")))
            out.extend(_parse_inline(child.children, _with_mark(link, marks)))
        elif name in _MARK_TAGS:
            mark = _MARK_TAGS[name]()
            out.extend(_parse_inline(child.children, _with_mark(mark, marks)))
        else:
            if name in _BLOCK_TAGS:
                logger.debug("Flattening block <%s> inside inline content", name)
            out.extend(_parse_inline(child.children, marks))
    return out


def _with_mark(mark: Mark, marks: tuple[Mark, ...]) -> tuple[Mark, ...]:
    if any(m.type == mark.type for m in marks):
        return marks
    return (mark, *marks)


def _text(text: str, marks: tuple[Mark, ...]) -> Text:
    return Text(text=text, marks=list(marks) or None)


def _tidy(run: list[Text | HardBreak]) -> list[Node]:
    """Trim edge whitespace, drop empty texts and merge equal-mark texts."""
    nodes: list[Text | HardBreak] = []
    for node in run:
        if isinstance(node, Text):
            text = node.text
            if not nodes or isinstance(nodes[-1], HardBreak):
                text = text.lstrip()
            if not text:
                continue
            prev = nodes[-1] if nodes else None
            if isinstance(prev, Text) and prev.marks == node.marks:
                nodes[-1] = Text(text=prev.text + text, marks=prev.marks)
                continue
            nodes.append(Text(text=text, marks=node.marks))
        else:
            _rstrip_last(nodes)
            nodes.append(node)
    _rstrip_last(nodes)
    return [n for n in nodes if not (isinstance(n, Text) and not n.text)]


def _rstrip_last(nodes: list[Text | HardBreak]) -> None:
    if nodes and isinstance(nodes[-1], Text):
        last = nodes[-1]
        nodes[-1] = Text(text=last.text.rstrip(), marks=last.marks)
