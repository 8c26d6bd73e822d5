"""
Error taxonomy for the transaction agent.

Startup errors (ConfigError, OSError) are fatal and stop the process before
the shell starts. Everything else is raised inside a single turn and caught
at the turn boundary by the shell.
"""

from typing import Any


class TransactionAgentError(Exception):
    """Base class for all errors raised by the transaction agent."""


class ConfigError(TransactionAgentError):
    """Missing credential, missing input file or invalid setting."""


class EmbeddingServiceError(TransactionAgentError):
    """The embedding service or vector store failed."""


class ModelServiceError(TransactionAgentError):
    """The chat model call failed."""


class IterationLimitExceeded(TransactionAgentError):
    """The agent hit its iteration ceiling without producing a final answer."""

    def __init__(
        self,
        iterations: int,
        intermediate_steps: list[tuple[Any, str]] | None = None,
        fallback: str = (
            "I couldn't finish going through your transactions for this question. "
            "Try asking something more specific."
        ),
    ):
        super().__init__(f"Agent stopped after {iterations} iterations without a final answer")
        self.iterations = iterations
        self.intermediate_steps = intermediate_steps or []
        self.fallback = fallback
