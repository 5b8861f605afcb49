"""
LangGraph retry policy: attempt → (succeeded | waiting → attempt | abandoned).

One question per run. A rate limit that says how long to wait (RETRY-AFTER) is
retried after exactly that delay; everything else ends the run. No exception
escapes ask(); the outcome status tells the caller what happened.
"""

import asyncio
import logging
import sys
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Literal, TypedDict

from langgraph.graph import END, StateGraph

from elnino_chat.core.errors import AskStatus
from elnino_chat.core.logging_setup import trace
from elnino_chat.core.retry import diagnostic_text, is_rate_limit, parse_retry_after

logger = logging.getLogger(__name__)

AssistantCall = Callable[[str], AsyncIterator[str]]
Sleep = Callable[[float], Awaitable[None]]


class RetryState(TypedDict):
    question: str
    attempts: int
    next_step: str  # "succeeded" | "waiting" | "abandoned"
    status: str | None
    answer: str
    retry_after: int | None


@dataclass
class AskOutcome:
    status: AskStatus
    answer: str = ""
    attempts: int = 0


class RetryPolicy:
    """
    Runs one question through the assistant call with rate-limit retries.

    max_attempts=None retries for as long as the service keeps sending a
    RETRY-AFTER delay; an int stops after that many rate-limited attempts.
    """

    def __init__(
        self,
        invoke: AssistantCall,
        on_fragment: Callable[[str], None] | None = None,
        max_attempts: int | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.invoke = invoke
        self.on_fragment = on_fragment or (lambda fragment: None)
        self.max_attempts = max_attempts
        self.sleep = sleep
        self.graph = self._build_graph()

    async def _attempt(self, state: RetryState) -> dict:
        """Node: call the assistant once, streaming fragments to the sink."""
        attempts = state["attempts"] + 1
        question = state["question"]
        logger.info("[retry:attempt] IN  attempt=%d question=%r", attempts, question)
        fragments: list[str] = []
        try:
            async for fragment in self.invoke(question):
                self.on_fragment(fragment)
                fragments.append(fragment)
        except Exception as e:
            if not is_rate_limit(e):
                logger.error("An error occurred. Aborting.", exc_info=True)
                return {"attempts": attempts, "next_step": "abandoned", "status": AskStatus.ABANDONED_OTHER_FAILURE.value}
            text = diagnostic_text(e)
            trace(logger, "[retry:attempt] rate limit diagnostics=%r", text)
            retry_after = parse_retry_after(text)
            if retry_after is None:
                logger.error("Rate limited without a retry timeframe. Aborting.", exc_info=True)
                return {"attempts": attempts, "next_step": "abandoned", "status": AskStatus.ABANDONED_RATE_LIMIT_UNPARSEABLE.value}
            if self.max_attempts is not None and attempts >= self.max_attempts:
                logger.error("Rate limited after %d attempts. Aborting.", attempts, exc_info=True)
                return {"attempts": attempts, "next_step": "abandoned", "status": AskStatus.ABANDONED_RETRIES_EXHAUSTED.value}
            return {"attempts": attempts, "next_step": "waiting", "retry_after": retry_after}

        if not fragments:
            logger.error("No response received.")
            return {"attempts": attempts, "next_step": "abandoned", "status": AskStatus.ABANDONED_NO_RESPONSE.value}
        return {
            "attempts": attempts,
            "next_step": "succeeded",
            "status": AskStatus.SUCCESS.value,
            "answer": "".join(fragments),
        }

    async def _wait(self, state: RetryState) -> dict:
        """Node: sleep for the server-specified delay before the next attempt."""
        retry_after = state["retry_after"] or 0
        logger.warning("Rate limited. Retrying after %d seconds.", retry_after)
        await self.sleep(retry_after)
        return {"retry_after": None}

    def _succeeded(self, state: RetryState) -> dict:
        logger.debug(state["answer"])
        return {"next_step": "succeeded"}

    def _abandoned(self, state: RetryState) -> dict:
        logger.info("[retry:abandoned] status=%s attempts=%d", state["status"], state["attempts"])
        return {"next_step": "abandoned"}

    def _route_after_attempt(self, state: RetryState) -> Literal["succeeded", "waiting", "abandoned"]:
        return state["next_step"]

    def _build_graph(self):
        graph = StateGraph(RetryState)

        graph.add_node("attempting", self._attempt)
        graph.add_node("waiting", self._wait)
        graph.add_node("succeeded", self._succeeded)
        graph.add_node("abandoned", self._abandoned)

        graph.set_entry_point("attempting")
        graph.add_conditional_edges("attempting", self._route_after_attempt)
        graph.add_edge("waiting", "attempting")
        graph.add_edge("succeeded", END)
        graph.add_edge("abandoned", END)

        return graph.compile()

    def _recursion_limit(self) -> int:
        # Each retry costs two steps (attempting + waiting), plus the final node.
        if self.max_attempts is None:
            return sys.maxsize
        return 2 * self.max_attempts + 2

    async def ask(self, question: str) -> AskOutcome:
        """Run question to a terminal state. Never raises for assistant failures."""
        initial: RetryState = {
            "question": question,
            "attempts": 0,
            "next_step": "",
            "status": None,
            "answer": "",
            "retry_after": None,
        }
        final = await self.graph.ainvoke(initial, config={"recursion_limit": self._recursion_limit()})
        outcome = AskOutcome(
            status=AskStatus(final["status"]),
            answer=final.get("answer") or "",
            attempts=final.get("attempts") or 0,
        )
        logger.info("[retry:ask] END status=%s attempts=%d answer_len=%d", outcome.status.value, outcome.attempts, len(outcome.answer))
        return outcome
