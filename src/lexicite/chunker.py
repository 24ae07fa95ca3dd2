# Lexicite – Citable legislation retrieval for compliance assistants
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Raw document text -> ordered, section-aware chunks.

Strategy:
- Find structural boundaries (markdown headings, numbered headings like
  "1.2.3 Title", legal keywords "Section 4", standards keywords
  "Standard 2") and slice the text between consecutive boundaries.
- Sections larger than 2x the target size are split by size; sections
  shorter than the minimum are dropped as noise (stray headings).
- Without any boundary the whole text is split by size.

Size splitting packs whole sentences up to the target size and seeds each
following chunk with a sentence-aligned tail of its predecessor.

Pure functions, no shared state: the same input always yields the same chunks.
"""
import re
from dataclasses import dataclass
from typing import Optional

from .errors import ValidationError
from .models import Chunk

SECTION_PATTERNS = [
    re.compile(r"^#{1,6}\s+\S.*$", re.MULTILINE),
    re.compile(r"^\d+\.(?:\d+\.?)*\s+\S.*$", re.MULTILINE),
    re.compile(r"^(?:Section|Part|Division|Chapter)\s+\d+.*$", re.MULTILINE | re.IGNORECASE),
    re.compile(r"^(?:Standard|Requirement|Indicator)\s+\d+.*$", re.MULTILINE | re.IGNORECASE),
]

_SECTION_NUMBER = re.compile(r"\d+(?:\.\d+)*")
_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")
_SENTENCE_BREAK = re.compile(r"[.!?]\s+")


@dataclass(frozen=True)
class ChunkingOptions:
    chunk_size: int = 1000
    chunk_overlap: int = 200
    preserve_sections: bool = True
    min_chunk_chars: int = 50

    def validate(self):
        if self.chunk_size <= 0:
            raise ValidationError("chunk_size must be > 0")
        if self.chunk_overlap < 0:
            raise ValidationError("chunk_overlap must be >= 0")
        if self.chunk_overlap >= self.chunk_size:
            raise ValidationError("chunk_overlap must be smaller than chunk_size")


DEFAULT_OPTIONS = ChunkingOptions()

# Legal/standards text has dense clauses, so smaller chunks cite better.
LEGAL_OPTIONS = ChunkingOptions(chunk_size=800, chunk_overlap=150)


@dataclass(frozen=True)
class SectionBreak:
    position: int
    title: str
    number: Optional[str]


def find_section_breaks(text: str) -> list[SectionBreak]:
    """All heading boundaries sorted by position; first pattern wins on ties."""
    found: dict[int, SectionBreak] = {}
    for pattern in SECTION_PATTERNS:
        for match in pattern.finditer(text):
            if match.start() in found:
                continue
            heading = match.group(0).strip()
            found[match.start()] = SectionBreak(
                position=match.start(),
                title=heading.lstrip("#").strip(),
                number=extract_section_number(heading),
            )
    return [found[pos] for pos in sorted(found)]


def extract_section_number(heading: str) -> Optional[str]:
    match = _SECTION_NUMBER.search(heading)
    return match.group(0) if match else None


def chunk_document(text: str, options: ChunkingOptions = DEFAULT_OPTIONS) -> list[Chunk]:
    options.validate()
    if not text or not text.strip():
        return []

    breaks = find_section_breaks(text) if options.preserve_sections else []
    if not breaks:
        pieces = split_by_size(
            text.strip(), options.chunk_size, options.chunk_overlap, options.min_chunk_chars,
        )
        return [Chunk(content=p, index=i) for i, p in enumerate(pieces)]

    spans: list[tuple[str, Optional[SectionBreak]]] = []
    preamble = text[: breaks[0].position].strip()
    if preamble:
        spans.append((preamble, None))
    for i, brk in enumerate(breaks):
        end = breaks[i + 1].position if i + 1 < len(breaks) else len(text)
        spans.append((text[brk.position:end].strip(), brk))

    chunks: list[Chunk] = []
    for span_text, brk in spans:
        title = brk.title if brk else None
        number = brk.number if brk else None
        if len(span_text) > options.chunk_size * 2:
            pieces = split_by_size(
                span_text, options.chunk_size, options.chunk_overlap, options.min_chunk_chars,
            )
            for sub, piece in enumerate(pieces, start=1):
                chunks.append(Chunk(
                    content=piece,
                    index=len(chunks),
                    section_title=title,
                    section_number=number,
                    metadata={"sub_chunk": sub, "total_sub_chunks": len(pieces)},
                ))
        elif len(span_text) >= options.min_chunk_chars:
            chunks.append(Chunk(
                content=span_text,
                index=len(chunks),
                section_title=title,
                section_number=number,
            ))
    return chunks


def chunk_legal_document(text: str) -> list[Chunk]:
    return chunk_document(text, LEGAL_OPTIONS)


# ── Size splitting ───────────────────────────────────


def split_sentences(text: str, max_len: int) -> list[str]:
    """Sentence split; run-on segments longer than max_len are sliced raw."""
    sentences: list[str] = []
    for sentence in _SENTENCE_SPLIT.split(text):
        sentence = sentence.strip()
        if not sentence:
            continue
        if len(sentence) <= max_len:
            sentences.append(sentence)
            continue
        for start in range(0, len(sentence), max_len):
            piece = sentence[start:start + max_len].strip()
            if piece:
                sentences.append(piece)
    return sentences


def overlap_tail(text: str, overlap: int) -> str:
    """Tail of *text* (<= overlap chars) used to seed the next chunk.

    Scans the closing 2*overlap window for the first sentence boundary whose
    tail fits; falls back to the raw last *overlap* characters.
    """
    text = text.strip()
    if overlap <= 0 or not text:
        return ""
    if len(text) <= overlap:
        return text
    window_start = max(0, len(text) - overlap * 2)
    for match in _SENTENCE_BREAK.finditer(text, window_start):
        tail = text[match.end():]
        if tail and len(tail) <= overlap:
            return tail
    return text[-overlap:].lstrip()


def split_by_size(
    text: str, chunk_size: int, overlap: int, min_chunk_chars: int = 0,
) -> list[str]:
    # Leave room for the overlap seed so raw slices stay near chunk_size.
    sentences = split_sentences(text, max(chunk_size - overlap, 1))

    pieces: list[str] = []
    current = ""
    seed = ""
    for sentence in sentences:
        has_body = len(current) > len(seed)
        if has_body and len(current) + len(sentence) > chunk_size:
            pieces.append(current.strip())
            seed = overlap_tail(current, overlap)
            seed = f"{seed} " if seed else ""
            current = seed
        current += sentence + " "

    if len(current) > len(seed):
        last = current.strip()
        if pieces and len(last) < min_chunk_chars:
            # Too short to stand alone: fold the new text into the previous chunk.
            extra = current[len(seed):].strip()
            pieces[-1] = f"{pieces[-1]} {extra}"
        else:
            pieces.append(last)
    return pieces
