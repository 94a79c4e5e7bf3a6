"""Document tree → Markdown serializer.

Walks the typed tree directly; no editor schema is needed.  Marks are
applied in the order they are stored on the text node, so the first
mark ends up innermost.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any, TypeAlias, assert_never

from blog_transfer.content.document import (
    Blockquote,
    BoldMark,
    BulletList,
    CodeBlock,
    CodeMark,
    Doc,
    HardBreak,
    Heading,
    HorizontalRule,
    Image,
    ItalicMark,
    LinkMark,
    ListItem,
    Mark,
    Node,
    OrderedList,
    Paragraph,
    StrikeMark,
    Table,
    TableCell,
    TableHeader,
    TableRow,
    Text,
    UnderlineMark,
    parse_document,
)

ImageSrcRewriter: TypeAlias = Callable[[str], str]

_LEADING_NEWLINES_RE = re.compile(r"^\n+")
_BLANK_RUN_RE = re.compile(r"\n{3,}")


def tree_to_markdown(
    doc: Doc | dict[str, Any],
    *,
    rewrite_image_src: ImageSrcRewriter | None = None,
) -> str:
    """Serialize a document tree to Markdown text.

    Runs of blank lines collapse to one; the result ends with a single
    newline, or is empty for a document without content.
    """
    if isinstance(doc, dict):
        doc = parse_document(doc)
    if not doc.content:
        return ""

    serializer = _Serializer(rewrite_image_src)
    text = "".join(serializer.block(node) for node in doc.content)
    text = _LEADING_NEWLINES_RE.sub("", text)
    text = _BLANK_RUN_RE.sub("\n\n", text)
    return text.rstrip() + "\n"


class _Serializer:
    def __init__(self, rewrite_image_src: ImageSrcRewriter | None) -> None:
        self._rewrite = rewrite_image_src

    def block(self, node: Node, depth: int = 0) -> str:
        match node:
            case Paragraph():
                return f"\n{self.inline(node.content)}\n"
            case Heading():
                hashes = "#" * node.attrs.level
                return f"\n{hashes} {self.inline(node.content)}\n"
            case CodeBlock():
                lang = (node.attrs.language if node.attrs else None) or ""
                return f"\n```{lang}\n{node.code}\n```\n"
            case Blockquote():
                inner = "".join(self.block(c, depth) for c in node.content or [])
                quoted = "\n".join(f"> {line}" for line in inner.strip().split("\n"))
                return f"\n{quoted}\n"
            case BulletList():
                items = "".join(
                    self.list_item(item, "-", depth) for item in node.content or []
                )
                return f"\n{items}"
            case OrderedList():
                items = "".join(
                    self.list_item(item, f"{node.start + i}.", depth)
                    for i, item in enumerate(node.content or [])
                )
                return f"\n{items}"
            case Image():
                return f"\n{self.image(node)}\n"
            case Table():
                return f"\n{self.table(node)}\n"
            case HorizontalRule():
                return "\n---\n"
            case HardBreak():
                return "\n"
            case Text():
                return self.text(node)
            case Doc() | ListItem() | TableRow() | TableCell() | TableHeader():
                # Misplaced containers: keep their children.
                return "".join(self.block(c, depth) for c in node.content or [])
            case _:
                assert_never(node)

    def list_item(self, item: Node, marker: str, depth: int) -> str:
        indent = "  " * depth
        children = item.content if isinstance(item, ListItem) else [item]

        parts: list[str] = []
        for child in children or []:
            match child:
                case Paragraph():
                    parts.append(self.inline(child.content))
                case BulletList():
                    parts.append(
                        "".join(
                            self.list_item(sub, "-", depth + 1)
                            for sub in child.content or []
                        )
                    )
                case OrderedList():
                    parts.append(
                        "".join(
                            self.list_item(sub, f"{child.start + i}.", depth + 1)
                            for i, sub in enumerate(child.content or [])
                        )
                    )
                case _:
                    parts.append(self.block(child, depth))

        # First part is the item text; nested lists follow on their own lines.
        first = parts[0] if parts else ""
        rest = "".join(parts[1:])
        return f"{indent}{marker} {first.strip()}\n{rest}"

    def inline(self, content: list[Node] | None) -> str:
        if not content:
            return ""
        return "".join(self.inline_node(node) for node in content)

    def inline_node(self, node: Node) -> str:
        match node:
            case Text():
                return self.text(node)
            case Image():
                return self.image(node)
            case HardBreak():
                return "  \n"
            case _:
                return ""

    def text(self, node: Text) -> str:
        text = node.text
        for mark in node.marks or []:
            text = _apply_mark(mark, text)
        return text

    def image(self, node: Image) -> str:
        src = node.attrs.src or ""
        if self._rewrite is not None:
            src = self._rewrite(src)
        return f"![{node.attrs.alt or ''}]({src})"

    def table(self, table: Table) -> str:
        rows = [self._row_cells(row) for row in table.content or []]
        if not rows or not rows[0]:
            return ""
        col_count = len(rows[0])

        lines = [
            f"| {' | '.join(rows[0])} |",
            f"| {' | '.join(['---'] * col_count)} |",
        ]
        lines.extend(f"| {' | '.join(cells)} |" for cells in rows[1:])
        return "\n".join(lines)

    def _row_cells(self, row: Node) -> list[str]:
        if not isinstance(row, TableRow):
            return []
        cells = []
        for cell in row.content or []:
            first = cell.content[0] if getattr(cell, "content", None) else None
            inline = getattr(first, "content", None) if first is not None else None
            cells.append(self.inline(inline).strip())
        return cells


def _apply_mark(mark: Mark, text: str) -> str:
    match mark:
        case BoldMark():
            return f"**{text}**"
        case ItalicMark():
            return f"_{text}_"
        case StrikeMark():
            return f"~~{text}~~"
        case CodeMark():
            return f"`{text}`"
        case UnderlineMark():
            return f"<u>{text}</u>"
        case LinkMark():
            return f"[{text}]({mark.attrs.href or ''})"
        case _:
            assert_never(mark)
