"""
Transaction Agent - interactive shell

Ask natural-language questions about documents/transactions.csv. The file is
chunked and embedded once at startup; each question is then answered by the
agent, which looks up relevant transactions with the TransactionRetriever tool.

Usage:
    transaction-agent
    python -m transaction_agent.cli
"""

import logging
import sys
from collections.abc import Callable
from typing import Any

from transaction_agent.agent import TransactionAgent, create_chat_model
from transaction_agent.config import Settings, load_settings
from transaction_agent.documents import load_transactions, split_transactions
from transaction_agent.errors import (
    ConfigError,
    IterationLimitExceeded,
    TransactionAgentError,
)
from transaction_agent.tools import create_transaction_retriever_tool
from transaction_agent.vector_index import EmbeddingIndex, create_embeddings

logger = logging.getLogger(__name__)

EXIT_KEYWORDS = frozenset({"exit", "quit"})


class InteractiveShell:
    """
    Blocking read-eval-print loop in front of the agent.

    Attributes:
        agent: Anything with an invoke(question) method returning an AgentResult
        input_func: Reads one line given a prompt (defaults to input)
        print_func: Writes one line of output (defaults to print)
    """

    def __init__(
        self,
        agent: Any,
        input_func: Callable[[str], str] = input,
        print_func: Callable[..., None] = print,
    ):
        self.agent = agent
        self.input_func = input_func
        self.print_func = print_func

    def run(self) -> int:
        """Loop until an exit keyword or end of input. Returns the exit code."""
        self.print_func('\n💬 Ask me anything about your transactions. Type "exit" to quit.\n')

        while True:
            try:
                user_prompt = self.input_func("You: ").strip()
            except EOFError:
                self.print_func("\n👋 Goodbye!")
                return 0

            if user_prompt.lower() in EXIT_KEYWORDS:
                self.print_func("👋 Goodbye!")
                return 0

            self.handle_turn(user_prompt)

    def handle_turn(self, user_prompt: str) -> None:
        """Answer one question; per-turn errors are reported, never raised."""
        try:
            result = self.agent.invoke(user_prompt)
        except IterationLimitExceeded as e:
            logger.warning("Turn aborted: %s", e)
            self._print_summary(e.fallback)
        except TransactionAgentError as e:
            logger.error("Turn failed: %s", e)
            self.print_func(f"\n⚠️  {e}\n")
        else:
            self._print_summary(result.output)

    def _print_summary(self, text: str) -> None:
        self.print_func("\n💸 Spending Summary 💸\n")
        self.print_func(text + "\n")


def build_agent(settings: Settings) -> TransactionAgent:
    """
    Load, chunk and index the transactions file, then assemble the agent.

    Raises:
        ConfigError: On invalid chunking settings
        OSError: If the transactions file cannot be read
        EmbeddingServiceError: If the chunks cannot be embedded
    """
    print("🚀 Initializing Transaction Agent...")

    content = load_transactions(settings.transactions_path)
    chunks = split_transactions(
        content,
        chunk_size=settings.chunk_size,
        chunk_overlap=settings.chunk_overlap,
        source=str(settings.transactions_path),
    )
    print(f"   Loaded {settings.transactions_path} ({len(chunks)} chunks)")

    print(f"   Loading embedding model: {settings.embedding_model}")
    index = EmbeddingIndex.build(chunks, create_embeddings(settings))
    print(f"📊 Indexed {index.get_stats()['total_chunks']} chunks")

    tool = create_transaction_retriever_tool(index, k=settings.retriever_k)

    print(f"   Connecting to Claude ({settings.claude_model})")
    return TransactionAgent(
        create_chat_model(settings),
        [tool],
        max_iterations=settings.max_iterations,
        verbose=settings.verbose,
    )


def configure_logging(settings: Settings) -> None:
    """Set up root logging; verbose mode always shows the agent's steps."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    if settings.verbose:
        package_logger = logging.getLogger("transaction_agent")
        if package_logger.getEffectiveLevel() > logging.INFO:
            package_logger.setLevel(logging.INFO)


def main() -> int:
    """Main entry point."""
    try:
        settings = load_settings()
    except ConfigError as e:
        print(e, file=sys.stderr)
        return 1

    configure_logging(settings)

    try:
        try:
            agent = build_agent(settings)
        except (TransactionAgentError, OSError) as e:
            logger.error("Startup failed: %s", e)
            print(f"❌ Startup failed: {e}", file=sys.stderr)
            return 1

        return InteractiveShell(agent).run()
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
        return 130


if __name__ == "__main__":
    sys.exit(main())
