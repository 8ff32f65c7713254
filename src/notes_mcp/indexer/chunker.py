"""Chunking logic for splitting Markdown notes into bounded pieces."""

import re
from dataclasses import dataclass

# Maximum characters per chunk (~3000 tokens, within the embedding model input)
DEFAULT_CHUNK_CHARS = 12_000


@dataclass(frozen=True)
class Chunk:
    """A contiguous slice of a note's body."""

    content: str
    index: int


@dataclass(frozen=True)
class Separator:
    """A split point tried by the chunker and the text used to rejoin segments."""

    name: str
    pattern: re.Pattern[str]
    joiner: str


def _heading_separator(level: int) -> Separator:
    # Zero-width match: the heading marker stays at the start of its section
    marker = "#" * level
    return Separator(
        name=f"h{level}",
        pattern=re.compile(rf"(?=^{marker} )", re.MULTILINE),
        joiner="",
    )


# Separators in order of preference
SEPARATORS: tuple[Separator, ...] = (
    *(_heading_separator(level) for level in range(1, 7)),
    Separator(name="paragraph", pattern=re.compile(r"\n\n"), joiner="\n\n"),
    Separator(name="line", pattern=re.compile(r"\n"), joiner="\n"),
    Separator(name="sentence", pattern=re.compile(r"\. "), joiner=". "),
)

# Each recursion step moves to a finer separator
MAX_DEPTH = len(SEPARATORS)


def chunk_text(text: str, char_limit: int, overlap: int = 0) -> list[str]:
    """
    Slice text into fixed-size pieces with no semantic awareness.

    Consecutive pieces share `overlap` characters. Blank text yields no pieces.
    """
    if char_limit <= 0:
        raise ValueError(f"char_limit must be positive, got {char_limit}")
    if not 0 <= overlap < char_limit:
        raise ValueError(f"overlap must be in [0, {char_limit}), got {overlap}")
    if not text.strip():
        return []

    step = char_limit - overlap
    pieces: list[str] = []
    start = 0
    while True:
        pieces.append(text[start : start + char_limit])
        if start + char_limit >= len(text):
            break
        start += step
    return pieces


def split_segments(text: str, separator: Separator) -> list[str]:
    """Split text at a separator, dropping blank segments."""
    return [segment for segment in separator.pattern.split(text) if segment.strip()]


def _merge_segments(
    segments: list[str],
    separator: Separator,
    char_limit: int,
    next_tier: int,
    depth: int,
) -> list[str]:
    """Greedily pack segments into chunks no longer than char_limit."""
    chunks: list[str] = []
    current = ""

    for segment in segments:
        # Oversized segment: flush, then re-chunk it with finer separators
        if len(segment) > char_limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.extend(_chunk(segment, char_limit, next_tier, depth))
            continue

        candidate = f"{current}{separator.joiner}{segment}" if current else segment
        if len(candidate) > char_limit:
            chunks.append(current)
            current = segment
        else:
            current = candidate

    if current:
        chunks.append(current)

    return chunks


def _chunk(text: str, char_limit: int, tier: int, depth: int) -> list[str]:
    if len(text) <= char_limit:
        return [text]

    if depth < MAX_DEPTH:
        for position in range(tier, len(SEPARATORS)):
            separator = SEPARATORS[position]
            segments = split_segments(text, separator)

            # This separator cannot help, try the next one
            if len(segments) <= 1 or all(len(s) > char_limit for s in segments):
                continue

            return _merge_segments(
                segments, separator, char_limit, position + 1, depth + 1
            )

    return chunk_text(text, char_limit)


def chunk_markdown(text: str, char_limit: int = DEFAULT_CHUNK_CHARS) -> list[Chunk]:
    """
    Chunk Markdown text into pieces isolated semantically.

    Rules:
    1. Text that fits in char_limit is returned as a single chunk
    2. Otherwise split by headings (# to ######), then paragraphs, lines
       and sentences, using the first separator that actually divides the text
    3. Segments are packed greedily; oversized ones are re-chunked with the
       next-finer separators
    4. When no separator helps, fall back to fixed-size slicing

    Blank or whitespace-only text yields an empty list.
    """
    if char_limit <= 0:
        raise ValueError(f"char_limit must be positive, got {char_limit}")
    if not text.strip():
        return []

    pieces = _chunk(text, char_limit, tier=0, depth=0)
    return [Chunk(content=content, index=index) for index, content in enumerate(pieces)]
