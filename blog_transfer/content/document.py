"""Typed document tree.

The editor stores post content as a JSON tree of ``{"type": …}`` nodes.
Here every node type is a pydantic model and :data:`Node` is the closed,
discriminated union over them, so converters can match exhaustively.

Node types outside the union are dropped during validation with a
logged warning instead of being silently half-serialized.  Attribute
models allow extra keys so editor-specific attributes survive a
validate/dump cycle.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class _Attrs(BaseModel):
    model_config = ConfigDict(extra="allow")


class HeadingAttrs(_Attrs):
    level: int = 1


class CodeBlockAttrs(_Attrs):
    language: str | None = None


class ImageAttrs(_Attrs):
    src: str | None = ""
    alt: str | None = None
    title: str | None = None


class OrderedListAttrs(_Attrs):
    start: int = 1


class LinkAttrs(_Attrs):
    href: str | None = ""


# ── Marks ────────────────────────────────────────────────────────────


class BoldMark(BaseModel):
    type: Literal["bold"] = "bold"


class ItalicMark(BaseModel):
    type: Literal["italic"] = "italic"


class StrikeMark(BaseModel):
    type: Literal["strike"] = "strike"


class CodeMark(BaseModel):
    type: Literal["code"] = "code"


class UnderlineMark(BaseModel):
    type: Literal["underline"] = "underline"


class LinkMark(BaseModel):
    type: Literal["link"] = "link"
    attrs: LinkAttrs = Field(default_factory=LinkAttrs)


Mark = Annotated[
    BoldMark | ItalicMark | StrikeMark | CodeMark | UnderlineMark | LinkMark,
    Field(discriminator="type"),
]

MARK_TYPES = frozenset({"bold", "italic", "strike", "code", "underline", "link"})


# ── Nodes ────────────────────────────────────────────────────────────


class _Node(BaseModel):
    model_config = ConfigDict(extra="ignore")


class _Container(_Node):
    content: list[Node] | None = None

    @field_validator("content", mode="before")
    @classmethod
    def _skip_unknown_nodes(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        kept = []
        for item in value:
            if isinstance(item, dict) and item.get("type") not in NODE_TYPES:
                logger.warning(
                    "Skipping unsupported node type %r inside %s",
                    item.get("type"),
                    cls.__name__,
                )
                continue
            kept.append(item)
        return kept


class Doc(_Container):
    type: Literal["doc"] = "doc"


class Paragraph(_Container):
    type: Literal["paragraph"] = "paragraph"


class Heading(_Container):
    type: Literal["heading"] = "heading"
    attrs: HeadingAttrs = Field(default_factory=HeadingAttrs)


class CodeBlock(_Container):
    type: Literal["codeBlock"] = "codeBlock"
    attrs: CodeBlockAttrs | None = None

    @property
    def code(self) -> str:
        return "".join(n.text for n in self.content or [] if isinstance(n, Text))


class Blockquote(_Container):
    type: Literal["blockquote"] = "blockquote"


class BulletList(_Container):
    type: Literal["bulletList"] = "bulletList"


class OrderedList(_Container):
    type: Literal["orderedList"] = "orderedList"
    attrs: OrderedListAttrs | None = None

    @property
    def start(self) -> int:
        return self.attrs.start if self.attrs else 1


class ListItem(_Container):
    type: Literal["listItem"] = "listItem"


class Table(_Container):
    type: Literal["table"] = "table"


class TableRow(_Container):
    type: Literal["tableRow"] = "tableRow"


class TableCell(_Container):
    type: Literal["tableCell"] = "tableCell"
    attrs: _Attrs | None = None


class TableHeader(_Container):
    type: Literal["tableHeader"] = "tableHeader"
    attrs: _Attrs | None = None


class Image(_Node):
    type: Literal["image"] = "image"
    attrs: ImageAttrs = Field(default_factory=ImageAttrs)


class HorizontalRule(_Node):
    type: Literal["horizontalRule"] = "horizontalRule"


class HardBreak(_Node):
    type: Literal["hardBreak"] = "hardBreak"


class Text(_Node):
    type: Literal["text"] = "text"
    text: str = ""
    marks: list[Mark] | None = None

    @field_validator("marks", mode="before")
    @classmethod
    def _skip_unknown_marks(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        kept = []
        for mark in value:
            if isinstance(mark, dict) and mark.get("type") not in MARK_TYPES:
                logger.warning("Skipping unsupported mark %r", mark.get("type"))
                continue
            kept.append(mark)
        return kept


Node = Annotated[
    Doc
    | Paragraph
    | Heading
    | CodeBlock
    | Blockquote
    | BulletList
    | OrderedList
    | ListItem
    | Table
    | TableRow
    | TableCell
    | TableHeader
    | Image
    | HorizontalRule
    | HardBreak
    | Text,
    Field(discriminator="type"),
]

NODE_TYPES = frozenset(
    {
        "doc",
        "paragraph",
        "heading",
        "codeBlock",
        "blockquote",
        "bulletList",
        "orderedList",
        "listItem",
        "table",
        "tableRow",
        "tableCell",
        "tableHeader",
        "image",
        "horizontalRule",
        "hardBreak",
        "text",
    }
)

for _model in (
    Doc,
    Paragraph,
    Heading,
    CodeBlock,
    Blockquote,
    BulletList,
    OrderedList,
    ListItem,
    Table,
    TableRow,
    TableCell,
    TableHeader,
):
    _model.model_rebuild()


def parse_document(data: dict[str, Any]) -> Doc:
    """Validate a JSON tree into a :class:`Doc`.

    Raises ``pydantic.ValidationError`` when the root is not a ``doc``
    node or a known node is malformed.
    """
    return Doc.model_validate(data)


def dump_document(doc: Doc) -> dict[str, Any]:
    """Serialize *doc* back to the editor's JSON shape."""
    return doc.model_dump(mode="json", exclude_none=True)
