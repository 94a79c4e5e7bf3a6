from blog_transfer.content.frontmatter import (
    normalize_frontmatter,
    parse_frontmatter,
    stringify_frontmatter,
)
from blog_transfer.content.images import (
    extract_image_keys,
    extract_markdown_image_refs,
    make_export_image_rewriter,
    resolve_relative_path,
    rewrite_markdown_image_paths,
    rewrite_tree_image_paths,
)
from blog_transfer.content.markdown import tree_to_markdown
from blog_transfer.content.parser import markdown_to_tree
from blog_transfer.content.slug import slugify

__all__ = [
    "extract_image_keys",
    "extract_markdown_image_refs",
    "make_export_image_rewriter",
    "markdown_to_tree",
    "normalize_frontmatter",
    "parse_frontmatter",
    "resolve_relative_path",
    "rewrite_markdown_image_paths",
    "rewrite_tree_image_paths",
    "slugify",
    "stringify_frontmatter",
    "tree_to_markdown",
]
