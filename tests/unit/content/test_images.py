from __future__ import annotations

import pytest

from blog_transfer.content.images import (
    DEFAULT_CONTENT_TYPE,
    ImageRefKind,
    content_type_from_key,
    extract_image_key,
    extract_image_keys,
    extract_markdown_image_refs,
    generate_key,
    image_url,
    make_export_image_rewriter,
    resolve_relative_path,
    rewrite_markdown_image_paths,
    rewrite_tree_image_paths,
)


def _image(src: str) -> dict:
    return {"type": "image", "attrs": {"src": src}}


TREE = {
    "type": "doc",
    "content": [
        _image("/images/a.png?quality=80"),
        {
            "type": "blockquote",
            "content": [_image("/images/b.jpg"), _image("/images/a.png")],
        },
        _image("https://cdn.example/c.png"),
        {"type": "paragraph", "content": [{"type": "text", "text": "/images/x.png"}]},
    ],
}


class TestKeys:
    @pytest.mark.parametrize(
        ("src", "key"),
        [
            ("/images/abc.png?quality=80", "abc.png"),
            ("/images/abc.png#frag", "abc.png"),
            ("./images/abc.png", "abc.png"),
            ("/images/", None),
            ("https://cdn.example/abc.png", None),
            ("", None),
            (None, None),
        ],
    )
    def test_extract_image_key(self, src, key):
        assert extract_image_key(src) == key

    def test_image_url(self):
        assert image_url("k.png") == "/images/k.png?quality=80"

    def test_generate_key_keeps_lowercased_suffix(self):
        key = generate_key("Photo.JPG")
        assert key.endswith(".jpg")
        assert key != generate_key("Photo.JPG")

    def test_content_type(self):
        assert content_type_from_key("a.png") == "image/png"
        assert content_type_from_key("noext") == DEFAULT_CONTENT_TYPE


class TestTreeSurface:
    def test_extract_image_keys_ordered_unique(self):
        assert extract_image_keys(TREE) == ["a.png", "b.jpg"]

    def test_extract_image_keys_none(self):
        assert extract_image_keys(None) == []

    def test_rewrite_tree_returns_copy(self):
        rewritten = rewrite_tree_image_paths(TREE, {"a.png": "new.png"})
        assert rewritten["content"][0]["attrs"]["src"] == "/images/new.png?quality=80"
        quote = rewritten["content"][1]["content"]
        assert quote[0]["attrs"]["src"] == "/images/b.jpg"
        assert quote[1]["attrs"]["src"] == "/images/new.png?quality=80"
        assert TREE["content"][0]["attrs"]["src"] == "/images/a.png?quality=80"

    def test_export_rewriter(self):
        rewrite = make_export_image_rewriter()
        assert rewrite("/images/k.png?quality=80") == "./images/k.png"
        assert rewrite("https://cdn.example/k.png") == "https://cdn.example/k.png"


class TestMarkdownSurface:
    MD = (
        "![one](./img/one.png) text ![two](https://e.com/two.png)\n"
        "![three](data:image/png;base64,AAAA) ![one again](./img/one.png)"
    )

    def test_extract_refs(self):
        refs = extract_markdown_image_refs(self.MD)
        assert [(r.original, r.kind) for r in refs] == [
            ("./img/one.png", ImageRefKind.RELATIVE),
            ("https://e.com/two.png", ImageRefKind.REMOTE),
            ("data:image/png;base64,AAAA", ImageRefKind.DATA_URI),
            ("./img/one.png", ImageRefKind.RELATIVE),
        ]

    def test_rewrite_exact_matches_only(self):
        out = rewrite_markdown_image_paths(
            self.MD, {"./img/one.png": "/images/k.png?quality=80"}
        )
        assert out.count("![one](/images/k.png?quality=80)") == 1
        assert "![one again](/images/k.png?quality=80)" in out
        assert "![two](https://e.com/two.png)" in out

    def test_rewrite_empty_map(self):
        assert rewrite_markdown_image_paths(self.MD, {}) == self.MD


@pytest.mark.parametrize(
    ("base", "relative", "expected"),
    [
        ("a/b/c", "../../img.jpg", "a/img.jpg"),
        ("", "./x.jpg", "x.jpg"),
        ("posts", "images/x.jpg", "posts/images/x.jpg"),
        ("posts", "./images/./x.jpg", "posts/images/x.jpg"),
        ("a", "../../x.jpg", "x.jpg"),
    ],
)
def test_resolve_relative_path(base, relative, expected):
    assert resolve_relative_path(base, relative) == expected
