"""
Tool-calling agent that answers questions about the user's transactions.

The reasoning loop itself is LangChain's agent runtime (create_agent), capped
at a fixed number of model calls per turn. This module builds that agent and
turns the messages it produces into an explicit FinalAnswer / ToolRequest
view before anything acts on them.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from langchain.agents import create_agent
from langchain.agents.middleware import ModelCallLimitMiddleware
from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, ToolMessage
from langchain_core.tools import BaseTool
from langgraph.errors import GraphRecursionError

from transaction_agent.config import Settings
from transaction_agent.errors import (
    IterationLimitExceeded,
    ModelServiceError,
    TransactionAgentError,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 10


# ============================================================================
# MODEL RESPONSES - Single Responsibility: Classify what the model asked for
# ============================================================================


@dataclass(frozen=True)
class FinalAnswer:
    """The model answered without requesting a tool."""

    text: str


@dataclass(frozen=True)
class ToolRequest:
    """The model asked for one tool call."""

    name: str
    arguments: dict[str, Any]
    call_id: str

    @property
    def argument(self) -> str:
        """The query string passed to a single-argument tool."""
        if "query" in self.arguments:
            return str(self.arguments["query"])
        return " ".join(str(value) for value in self.arguments.values())


ModelStep = FinalAnswer | list[ToolRequest]


@dataclass
class AgentResult:
    """Outcome of one turn."""

    input: str
    output: str
    iterations: int
    intermediate_steps: list[tuple[ToolRequest, str]] = field(default_factory=list)


def message_text(message: BaseMessage) -> str:
    """Flatten message content (plain string or content blocks) to text."""
    content = message.content
    if isinstance(content, str):
        return content

    parts: list[str] = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(str(block.get("text", "")))
    return "".join(parts)


def parse_model_response(message: BaseMessage) -> ModelStep:
    """
    Turn a chat model response into a FinalAnswer or a list of ToolRequests.

    Raises:
        ModelServiceError: If the only tool calls in the response are malformed
    """
    tool_calls = getattr(message, "tool_calls", None) or []
    if not tool_calls:
        invalid = getattr(message, "invalid_tool_calls", None) or []
        if invalid:
            names = ", ".join(str(call.get("name")) for call in invalid)
            raise ModelServiceError(f"Model sent malformed arguments for tool call(s): {names}")
        return FinalAnswer(text=message_text(message))

    return [
        ToolRequest(
            name=call["name"],
            arguments=dict(call.get("args") or {}),
            call_id=call.get("id") or f"call_{i}",
        )
        for i, call in enumerate(tool_calls)
    ]


def collect_steps(messages: list[BaseMessage]) -> list[tuple[ToolRequest, str]]:
    """Pair every tool request in a conversation with the observation it got back."""
    observations = {
        message.tool_call_id: message_text(message)
        for message in messages
        if isinstance(message, ToolMessage)
    }

    steps: list[tuple[ToolRequest, str]] = []
    for message in messages:
        if isinstance(message, AIMessage) and message.tool_calls:
            for request in parse_model_response(message):
                if request.call_id in observations:
                    steps.append((request, observations[request.call_id]))
    return steps


# ============================================================================
# PROMPT MANAGEMENT - Single Responsibility: Manage LLM prompts
# ============================================================================


class PromptManager:
    """Manages prompts for the agent."""

    @staticmethod
    def get_system_prompt() -> str:
        """Return the system prompt for the finance coach."""
        return (
            "You are a helpful personal finance coach. Answer their questions about "
            "expenses by using the TransactionRetriever tool ONCE to summarize spending. "
            "Do not guess."
        )


def create_chat_model(settings: Settings) -> BaseChatModel:
    """Connect to Claude with the configured model."""
    logger.info("Connecting to Claude (%s)", settings.claude_model)
    return ChatAnthropic(
        model=settings.claude_model,
        api_key=settings.anthropic_api_key,
        temperature=0.2,
        max_tokens=4096,
    )  # type: ignore


# ============================================================================
# ORCHESTRATION - Single Responsibility: Run one bounded agent turn
# ============================================================================


class TransactionAgent:
    """
    LangChain tool-calling agent limited to max_iterations model calls per turn.

    Attributes:
        graph: Compiled agent from langchain.agents.create_agent
        tools: Tools the model may call
        system_prompt: Instructions sent ahead of every question
        max_iterations: Model calls allowed per turn before giving up
        verbose: Log every step at INFO instead of DEBUG
    """

    def __init__(
        self,
        llm: BaseChatModel,
        tools: list[BaseTool],
        system_prompt: str | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        verbose: bool = False,
    ):
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {max_iterations}")

        self.tools = list(tools)
        self.system_prompt = system_prompt or PromptManager.get_system_prompt()
        self.max_iterations = max_iterations
        self.verbose = verbose
        self.graph = create_agent(
            model=llm,
            tools=self.tools,
            system_prompt=self.system_prompt,
            middleware=[ModelCallLimitMiddleware(run_limit=max_iterations, exit_behavior="end")],
        )

    def _log(self, msg: str, *args: Any) -> None:
        logger.log(logging.INFO if self.verbose else logging.DEBUG, msg, *args)

    def _log_message(self, message: BaseMessage) -> None:
        if isinstance(message, AIMessage):
            for call in message.tool_calls:
                self._log("Invoking %s with %r", call["name"], call.get("args"))
            if not message.tool_calls:
                self._log("Final answer (%d characters)", len(message_text(message)))
        elif isinstance(message, ToolMessage):
            self._log("%s returned %d characters", message.name, len(message_text(message)))

    def invoke(self, question: str) -> AgentResult:
        """
        Answer one question.

        Args:
            question: The user's input for this turn, forwarded as-is

        Returns:
            AgentResult with the final answer and the tool steps taken

        Raises:
            ModelServiceError: If a model call fails or returns a malformed tool call
            EmbeddingServiceError: If the retrieval tool's index query fails
            IterationLimitExceeded: If max_iterations pass without a final answer
        """
        inputs = {"messages": [HumanMessage(content=question)]}
        # Each iteration spans several graph steps (limit checks, model, tools)
        config = {"recursion_limit": 5 * self.max_iterations + 5}

        messages: list[BaseMessage] = []
        try:
            for state in self.graph.stream(inputs, config=config, stream_mode="values"):
                current = list(state["messages"])
                for message in current[len(messages) :]:
                    self._log_message(message)
                messages = current
        except GraphRecursionError as e:
            raise IterationLimitExceeded(self.max_iterations, collect_steps(messages)) from e
        except TransactionAgentError:
            raise
        except Exception as e:
            raise ModelServiceError(f"Chat model call failed: {e}") from e

        return self._finish(question, messages)

    def _finish(self, question: str, messages: list[BaseMessage]) -> AgentResult:
        replies = [message for message in messages if isinstance(message, AIMessage)]
        steps = collect_steps(messages)
        last = messages[-1] if messages else None

        # The call limit ends the run with its own notice or with tool output last
        if len(replies) > self.max_iterations or not isinstance(last, AIMessage) or last.tool_calls:
            logger.warning(
                "Agent stopped after %d model calls without an answer", self.max_iterations
            )
            raise IterationLimitExceeded(self.max_iterations, steps)

        answer = parse_model_response(last)
        self._log("Finished after %d model call(s)", len(replies))
        return AgentResult(
            input=question,
            output=answer.text,  # type: ignore[union-attr]
            iterations=len(replies),
            intermediate_steps=steps,
        )
