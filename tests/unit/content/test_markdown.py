from __future__ import annotations

from typing import Any

from blog_transfer.content.images import make_export_image_rewriter
from blog_transfer.content.markdown import tree_to_markdown


def doc(*content: dict[str, Any]) -> dict[str, Any]:
    return {"type": "doc", "content": list(content)}


def text(value: str, *marks: dict[str, Any]) -> dict[str, Any]:
    node: dict[str, Any] = {"type": "text", "text": value}
    if marks:
        node["marks"] = list(marks)
    return node


def para(*content: dict[str, Any]) -> dict[str, Any]:
    return {"type": "paragraph", "content": list(content)}


def item(*content: dict[str, Any]) -> dict[str, Any]:
    return {"type": "listItem", "content": list(content)}


BOLD = {"type": "bold"}
ITALIC = {"type": "italic"}


class TestBlocks:
    def test_heading_and_paragraph(self):
        tree = doc(
            {"type": "heading", "attrs": {"level": 2}, "content": [text("Title")]},
            para(text("Hello "), text("bold", BOLD)),
        )
        assert tree_to_markdown(tree) == "## Title\n\nHello **bold**\n"

    def test_code_block(self):
        tree = doc(
            {
                "type": "codeBlock",
                "attrs": {"language": "python"},
                "content": [text("print(1)\nprint(2)")],
            }
        )
        assert tree_to_markdown(tree) == "```python\nprint(1)\nprint(2)\n```\n"

    def test_blockquote(self):
        tree = doc({"type": "blockquote", "content": [para(text("quoted"))]})
        assert tree_to_markdown(tree) == "> quoted\n"

    def test_nested_bullet_list(self):
        tree = doc(
            {
                "type": "bulletList",
                "content": [
                    item(
                        para(text("a")),
                        {"type": "bulletList", "content": [item(para(text("b")))]},
                    ),
                    item(para(text("c"))),
                ],
            }
        )
        assert tree_to_markdown(tree) == "- a\n  - b\n- c\n"

    def test_ordered_list_start(self):
        tree = doc(
            {
                "type": "orderedList",
                "attrs": {"start": 3},
                "content": [item(para(text("x"))), item(para(text("y")))],
            }
        )
        assert tree_to_markdown(tree) == "3. x\n4. y\n"

    def test_table(self):
        def row(cell_type: str, *values: str) -> dict[str, Any]:
            return {
                "type": "tableRow",
                "content": [
                    {"type": cell_type, "content": [para(text(v))]} for v in values
                ],
            }

        tree = doc(
            {
                "type": "table",
                "content": [row("tableHeader", "H1", "H2"), row("tableCell", "a", "b")],
            }
        )
        assert tree_to_markdown(tree) == "| H1 | H2 |\n| --- | --- |\n| a | b |\n"

    def test_horizontal_rule_and_hard_break(self):
        tree = doc(
            para(text("a"), {"type": "hardBreak"}, text("b")),
            {"type": "horizontalRule"},
        )
        assert tree_to_markdown(tree) == "a  \nb\n\n---\n"


class TestInline:
    def test_first_mark_is_innermost(self):
        tree = doc(para(text("x", BOLD, ITALIC)))
        assert tree_to_markdown(tree) == "_**x**_\n"

    def test_link_strike_code_underline(self):
        tree = doc(
            para(
                text("site", {"type": "link", "attrs": {"href": "https://e.com"}}),
                text(" "),
                text("old", {"type": "strike"}),
                text(" "),
                text("x", {"type": "code"}),
                text(" "),
                text("u", {"type": "underline"}),
            )
        )
        assert tree_to_markdown(tree) == "[site](https://e.com) ~~old~~ `x` <u>u</u>\n"


class TestImages:
    def test_image_src_rewritten_for_export(self):
        tree = doc(
            {
                "type": "image",
                "attrs": {"src": "/images/k.png?quality=80", "alt": "A"},
            }
        )
        md = tree_to_markdown(tree, rewrite_image_src=make_export_image_rewriter())
        assert md == "![A](./images/k.png)\n"

    def test_external_image_untouched(self):
        tree = doc({"type": "image", "attrs": {"src": "https://cdn.example/a.png"}})
        md = tree_to_markdown(tree, rewrite_image_src=make_export_image_rewriter())
        assert md == "![](https://cdn.example/a.png)\n"


class TestEdgeCases:
    def test_empty_document(self):
        assert tree_to_markdown({"type": "doc"}) == ""
        assert tree_to_markdown(doc()) == ""

    def test_unknown_nodes_and_marks_skipped(self):
        tree = doc(
            {"type": "mystery", "content": [text("gone")]},
            para(text("kept", {"type": "highlight"})),
        )
        assert tree_to_markdown(tree) == "kept\n"

    def test_blank_runs_collapse(self):
        tree = doc(para(text("a")), para(), para(), para(text("b")))
        assert tree_to_markdown(tree) == "a\n\nb\n"
