"""Material chunker - deterministic overlapping windows over words or lines.

Pure functions with no I/O or randomness. Prose is windowed over
whitespace-separated words; source code is windowed over lines and breaks
early at definition boundaries so functions and classes stay together.
"""

import re

from haskify.models.materials import Chunk, ChunkLocator

# Function/class definition start, at any indentation
_DEFINITION_RE = re.compile(r"^\s*(?:async\s+def|def|class)\s+\w")
_DECORATOR_RE = re.compile(r"^\s*@\w")


def _check_window(size: int, overlap: int) -> None:
    if overlap < 0:
        raise ValueError(f"overlap must be >= 0, got {overlap}")
    if size <= overlap:
        raise ValueError(f"chunk size ({size}) must exceed overlap ({overlap})")


def _window_starts(token_count: int, size: int, overlap: int) -> list[int]:
    """Start offsets of each window.

    The window advances by ``size - overlap`` and stops once a window
    reaches the end of the token list, so the last chunk never consists
    solely of tokens already covered by its predecessor.
    """
    starts: list[int] = []
    step = size - overlap
    start = 0
    while start < token_count:
        starts.append(start)
        if start + size >= token_count:
            break
        start += step
    return starts


def chunk_text(text: str, *, size: int = 900, overlap: int = 120) -> list[Chunk]:
    """Split prose into overlapping word windows.

    Args:
        text: Raw extracted text (may be empty)
        size: Window length in words
        overlap: Words shared by consecutive chunks

    Returns:
        Chunks with 1-based indexes and word-range locators

    Raises:
        ValueError: If ``size <= overlap`` or ``overlap < 0``
    """
    _check_window(size, overlap)
    words = (text or "").split()

    chunks: list[Chunk] = []
    for start in _window_starts(len(words), size, overlap):
        window = words[start : start + size]
        body = " ".join(window)
        if not body.strip():
            continue
        chunks.append(
            Chunk(
                index=len(chunks) + 1,
                text=body,
                locator=ChunkLocator(word_start=start, word_end=start + len(window)),
            )
        )
    return chunks


def chunk_pages(pages: list[str], *, size: int = 900, overlap: int = 120) -> list[Chunk]:
    """Chunk a paged document (PDF), recording the page each chunk starts on.

    Windowing runs over the concatenated words of all pages, exactly as
    :func:`chunk_text` would over the joined text.
    """
    _check_window(size, overlap)

    words: list[str] = []
    word_pages: list[int] = []
    for page_number, page_text in enumerate(pages, start=1):
        page_words = (page_text or "").split()
        words.extend(page_words)
        word_pages.extend([page_number] * len(page_words))

    chunks: list[Chunk] = []
    for start in _window_starts(len(words), size, overlap):
        window = words[start : start + size]
        body = " ".join(window)
        if not body.strip():
            continue
        chunks.append(
            Chunk(
                index=len(chunks) + 1,
                text=body,
                locator=ChunkLocator(
                    page=word_pages[start],
                    word_start=start,
                    word_end=start + len(window),
                ),
            )
        )
    return chunks


def _boundary_before(lines: list[str], start: int, end: int, min_lines: int) -> int | None:
    """Find the first definition line in ``lines[start + min_lines:end]``.

    Decorators directly above the definition move the cut upwards with it,
    as long as the chunk still keeps ``min_lines`` lines.
    """
    for i in range(start + min_lines, end):
        if not _DEFINITION_RE.match(lines[i]):
            continue
        cut = i
        while cut - 1 >= start + min_lines and _DECORATOR_RE.match(lines[cut - 1]):
            cut -= 1
        return cut
    return None


def chunk_source(
    text: str,
    *,
    size: int = 60,
    overlap: int = 5,
    min_lines: int = 10,
) -> list[Chunk]:
    """Split source code into overlapping line windows.

    A window of ``size`` lines is cut short at the first function or class
    definition found after ``min_lines`` lines, so logical units start a
    new chunk. The next window starts ``overlap`` lines before the cut.

    Args:
        text: Source file contents
        size: Maximum lines per chunk
        overlap: Lines shared by consecutive chunks
        min_lines: Lines a chunk must hold before it may break early

    Returns:
        Chunks with 1-based indexes and inclusive 1-based line ranges

    Raises:
        ValueError: If ``size <= overlap`` or ``min_lines <= overlap``
    """
    _check_window(size, overlap)
    if min_lines <= overlap:
        raise ValueError(f"min_lines ({min_lines}) must exceed overlap ({overlap})")

    lines = (text or "").replace("\r\n", "\n").replace("\r", "\n").split("\n")
    # Trailing newline produces an empty final element
    if lines and lines[-1] == "":
        lines.pop()
    total = len(lines)

    chunks: list[Chunk] = []
    start = 0
    while start < total:
        end = min(start + size, total)
        if end < total:
            cut = _boundary_before(lines, start, end, min_lines)
            if cut is not None:
                end = cut

        body = "\n".join(lines[start:end])
        if body.strip():
            chunks.append(
                Chunk(
                    index=len(chunks) + 1,
                    text=body,
                    locator=ChunkLocator(line_start=start + 1, line_end=end),
                )
            )

        if end >= total:
            break
        start = end - overlap

    return chunks
