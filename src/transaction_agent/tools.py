"""
The TransactionRetriever tool handed to the agent.
"""

import logging

from langchain_core.tools import BaseTool, StructuredTool

from transaction_agent.vector_index import EmbeddingIndex

logger = logging.getLogger(__name__)

TOOL_NAME = "TransactionRetriever"
TOOL_DESCRIPTION = (
    "Use this tool ONCE to fetch relevant transactions, amounts, categories, and dates "
    "from the user's spending records. Use it to summarize spending by category or date range."
)
CHUNK_DELIMITER = "\n---\n"


def create_transaction_retriever_tool(index: EmbeddingIndex, k: int = 5) -> BaseTool:
    """
    Wrap an index query as a tool the chat model can call.

    Args:
        index: Index built from the transaction chunks
        k: Number of chunks returned per call

    Returns:
        A tool taking a free-text query and returning the top-k chunks joined
        by CHUNK_DELIMITER. EmbeddingServiceError propagates to the caller.
    """

    def retrieve_transactions(query: str) -> str:
        results = index.query(query, k)
        logger.info("%s returned %d chunks for %r", TOOL_NAME, len(results), query)
        return CHUNK_DELIMITER.join(chunk.text for chunk, _ in results)

    return StructuredTool.from_function(
        func=retrieve_transactions,
        name=TOOL_NAME,
        description=TOOL_DESCRIPTION,
        handle_validation_error=True,
    )
