# Lexicite – Citable legislation retrieval for compliance assistants
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Legislation readers. Local files and fetched pages are turned into
markdown-like text so the chunker can see their heading structure.

Supported: .md, .txt, .html/.htm
"""
from pathlib import Path

from bs4 import BeautifulSoup

SUPPORTED_EXTENSIONS: set[str] = {".md", ".txt", ".html", ".htm"}

# Page chrome that never carries legislative text
_CHROME_TAGS = ["script", "style", "nav", "footer", "header", "form"]


def extract_text(filepath: Path) -> str | None:
    """Return markdown-like text for a legislation file, or None when the
    format is unsupported, the file is unreadable or it holds no text."""
    reader = _READERS.get(filepath.suffix.lower())
    if reader is None:
        return None
    try:
        raw = filepath.read_text(encoding="utf-8", errors="ignore")
    except OSError as exc:
        print(f"Warning: cannot read legislation file {filepath}: {exc}")
        return None
    return reader(raw)


def _block_text(el) -> str:
    return el.get_text(" ", strip=True)


def html_to_text(raw: str, title: str = "") -> str | None:
    """Convert an HTML page into markdown-like text (headings, paragraphs, lists, tables)."""
    soup = BeautifulSoup(raw, "html.parser")
    for chrome in soup(_CHROME_TAGS):
        chrome.decompose()

    blocks: list[str] = []
    for node in soup.descendants:
        name = getattr(node, "name", None)
        if name is None:
            continue
        if len(name) == 2 and name[0] == "h" and name[1] in "123456":
            blocks.append(f"\n{'#' * int(name[1])} {_block_text(node)}\n")
        elif name == "p":
            para = _block_text(node)
            if para:
                blocks.append(f"\n{para}\n")
        elif name == "li":
            blocks.append(f"- {_block_text(node)}")
        elif name == "tr":
            row = [_block_text(cell) for cell in node.find_all(["th", "td"])]
            if row:
                blocks.append("| " + " | ".join(row) + " |")

    text = "\n".join(blocks).strip()
    if not text:
        return None
    if title:
        return f"# {title}\n\n{text}"
    return text


def first_heading(text: str) -> str | None:
    for line in text.splitlines():
        line = line.strip()
        if not line.startswith("#"):
            continue
        heading = line.lstrip("#").strip()
        if heading:
            return heading
    return None


def _as_is(raw: str) -> str:
    return raw


_READERS = {
    ".md": _as_is,
    ".txt": _as_is,
    ".html": html_to_text,
    ".htm": html_to_text,
}
