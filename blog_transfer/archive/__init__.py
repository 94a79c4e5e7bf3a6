from blog_transfer.archive.entries import (
    enumerate_markdown_posts,
    enumerate_native_posts,
)
from blog_transfer.archive.zip import (
    ArchiveFiles,
    build_zip,
    list_directories,
    list_files,
    parse_zip,
    read_text,
    read_validated_json,
)

__all__ = [
    "ArchiveFiles",
    "build_zip",
    "enumerate_markdown_posts",
    "enumerate_native_posts",
    "list_directories",
    "list_files",
    "parse_zip",
    "read_text",
    "read_validated_json",
]
