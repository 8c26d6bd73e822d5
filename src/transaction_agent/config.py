"""
Runtime configuration.

Settings come from the process environment (optionally seeded from a .env
file) and are read once at startup. The resulting Settings object is passed
explicitly to everything that needs it.
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from transaction_agent.errors import ConfigError

DEFAULT_TRANSACTIONS_PATH = "documents/transactions.csv"
DEFAULT_CLAUDE_MODEL = "claude-sonnet-4-20250514"
DEFAULT_EMBEDDING_MODEL = "sentence-transformers/all-MiniLM-L6-v2"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """
    Everything the agent needs to start.

    Attributes:
        anthropic_api_key: Credential for the chat model service
        transactions_path: CSV file with the user's transactions
        claude_model: Chat model name
        embedding_model: HuggingFace sentence-transformers model name
        embedding_device: Explicit embedding device, None to auto-detect
        chunk_size: Characters per chunk
        chunk_overlap: Characters shared between consecutive chunks
        retriever_k: Number of chunks returned by the retrieval tool
        max_iterations: Ceiling on model calls per turn
        verbose: Log every agent step
        log_level: Root logging level name
    """

    anthropic_api_key: str
    transactions_path: Path = Path(DEFAULT_TRANSACTIONS_PATH)
    claude_model: str = DEFAULT_CLAUDE_MODEL
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    embedding_device: str | None = None
    chunk_size: int = 1000
    chunk_overlap: int = 100
    retriever_k: int = 5
    max_iterations: int = 10
    verbose: bool = False
    log_level: str = "WARNING"


def _get_int(environ: Mapping[str, str], name: str, default: int, minimum: int = 1) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e
    if value < minimum:
        raise ConfigError(f"{name} must be at least {minimum}, got {value}")
    return value


def load_settings(environ: Mapping[str, str] | None = None, require_file: bool = True) -> Settings:
    """
    Build Settings from the environment.

    Args:
        environ: Mapping to read from. Defaults to os.environ after loading .env
        require_file: Fail if the transactions file does not exist

    Returns:
        Validated Settings

    Raises:
        ConfigError: On a missing credential, missing file or bad value
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    api_key = environ.get("ANTHROPIC_API_KEY", "").strip()
    if not api_key:
        raise ConfigError(
            "❌ ANTHROPIC_API_KEY not found!\n"
            "   Please create a .env file with your API key:\n"
            "   ANTHROPIC_API_KEY=your-key-here"
        )

    transactions_path = Path(
        environ.get("TRANSACTIONS_PATH") or DEFAULT_TRANSACTIONS_PATH
    ).expanduser()
    if require_file and not transactions_path.is_file():
        raise ConfigError(f"❌ Transactions file not found: {transactions_path}")

    chunk_size = _get_int(environ, "CHUNK_SIZE", 1000)
    chunk_overlap = _get_int(environ, "CHUNK_OVERLAP", 100, minimum=0)
    if chunk_overlap >= chunk_size:
        raise ConfigError(
            f"CHUNK_OVERLAP ({chunk_overlap}) must be smaller than CHUNK_SIZE ({chunk_size})"
        )

    log_level = (environ.get("LOG_LEVEL") or "WARNING").strip().upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigError(f"LOG_LEVEL must be a logging level name, got {log_level!r}")

    return Settings(
        anthropic_api_key=api_key,
        transactions_path=transactions_path,
        claude_model=environ.get("CLAUDE_MODEL") or DEFAULT_CLAUDE_MODEL,
        embedding_model=environ.get("EMBEDDING_MODEL") or DEFAULT_EMBEDDING_MODEL,
        embedding_device=environ.get("EMBEDDING_DEVICE") or None,
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        retriever_k=_get_int(environ, "RETRIEVER_K", 5),
        max_iterations=_get_int(environ, "AGENT_MAX_ITERATIONS", 10),
        verbose=environ.get("AGENT_VERBOSE", "").strip().lower() in _TRUTHY,
        log_level=log_level,
    )
