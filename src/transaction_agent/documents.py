"""
Transaction document loading and chunking.

The transactions file is treated as opaque text: no CSV parsing happens here.
The text is cut into overlapping chunks with LangChain's recursive splitter,
and every chunk remembers where it came from so the split can be undone.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from langchain_core.documents.base import Blob
from langchain_text_splitters import RecursiveCharacterTextSplitter

from transaction_agent.errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransactionChunk:
    """
    One segment of the transactions text.

    Attributes:
        position: Order of appearance in the source text (0-based)
        text: The exact characters of the segment
        start_offset: Character offset of the segment in the source text
        source: Path of the file the text was loaded from
    """

    position: int
    text: str
    start_offset: int
    source: str = ""

    @property
    def end_offset(self) -> int:
        return self.start_offset + len(self.text)


# ============================================================================
# LOADING - Single Responsibility: Read the transactions file as text
# ============================================================================


def load_transactions(path: str | Path) -> str:
    """
    Read the transactions file as a single UTF-8 text blob.

    Args:
        path: Path to the transactions file (e.g., "documents/transactions.csv")

    Returns:
        The full file content, unchanged

    Raises:
        FileNotFoundError: If the file does not exist
        OSError: If the file cannot be read or decoded
    """
    file_path = Path(path).expanduser()

    if not file_path.exists():
        raise FileNotFoundError(f"❌ File not found: {file_path}")

    blob = Blob.from_path(file_path, encoding="utf-8")
    try:
        # Decoded from raw bytes so line endings stay exactly as written
        content = blob.as_bytes().decode(blob.encoding)
    except UnicodeDecodeError as e:
        raise OSError(f"❌ Could not decode {file_path} as UTF-8: {e}") from e

    logger.info("Loaded %d characters from %s", len(content), file_path)
    return content


# ============================================================================
# CHUNKING - Single Responsibility: Split text into overlapping chunks
# ============================================================================


def create_text_splitter(chunk_size: int, chunk_overlap: int) -> RecursiveCharacterTextSplitter:
    """Build the splitter, rejecting sizes that would chunk degenerately."""
    if chunk_size <= 0:
        raise ConfigError(f"chunk_size must be positive, got {chunk_size}")
    if chunk_overlap < 0:
        raise ConfigError(f"chunk_overlap must not be negative, got {chunk_overlap}")
    if chunk_overlap >= chunk_size:
        raise ConfigError(
            f"chunk_overlap ({chunk_overlap}) must be smaller than chunk_size ({chunk_size})"
        )

    return RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,  # Characters per chunk
        chunk_overlap=chunk_overlap,  # Overlap between chunks for context continuity
        length_function=len,
        separators=["\n\n", "\n", " ", ""],  # Split priorities
        strip_whitespace=False,  # Chunks must stay exact substrings
    )


def split_transactions(
    text: str,
    chunk_size: int = 1000,
    chunk_overlap: int = 100,
    source: str = "",
) -> list[TransactionChunk]:
    """
    Split the transactions text into ordered, overlapping chunks.

    Args:
        text: Full transactions text
        chunk_size: Maximum characters per chunk
        chunk_overlap: Characters shared by consecutive chunks, smaller than chunk_size
        source: Where the text came from, recorded on every chunk

    Returns:
        Chunks in order of appearance

    Raises:
        ConfigError: If the sizes are invalid
    """
    splitter = create_text_splitter(chunk_size, chunk_overlap)

    chunks: list[TransactionChunk] = []
    covered = 0
    for position, piece in enumerate(splitter.split_text(text)):
        # Latest occurrence that still touches the covered prefix
        start = text.rfind(piece, 0, covered + len(piece))
        if start == -1:
            start = text.find(piece, covered)
        chunks.append(
            TransactionChunk(position=position, text=piece, start_offset=start, source=source)
        )
        covered = max(covered, start + len(piece))

    logger.info(
        "Split %d characters into %d chunks (size=%d, overlap=%d)",
        len(text),
        len(chunks),
        chunk_size,
        chunk_overlap,
    )
    return chunks


def join_chunks(chunks: list[TransactionChunk]) -> str:
    """Rebuild the source text from its chunks, dropping the overlapping spans."""
    parts: list[str] = []
    covered = 0
    for chunk in chunks:
        if chunk.end_offset <= covered:
            continue
        parts.append(chunk.text[max(0, covered - chunk.start_offset) :])
        covered = chunk.end_offset
    return "".join(parts)
