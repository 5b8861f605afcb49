# Run from project root: python -m elnino_chat.main  (or the elnino-chat script)

import asyncio
import logging
import sys
from typing import Callable, TextIO

from elnino_chat.agent.graph import RetryPolicy
from elnino_chat.agent.llm import Assistant
from elnino_chat.core.config import LOG_LEVEL, RETRY_MAX_ATTEMPTS
from elnino_chat.core.logging_setup import configure_logging, shutdown_logging
from elnino_chat.services.search_service import DuckDuckGoSearchBackend, QueryWidener

logger = logging.getLogger(__name__)

QUESTION_PROMPT = "What would you like to know about El Niño? "
APOLOGY = "I appear to have encountered an error processing your question. Please do try again."


def stream_to(out: TextIO) -> Callable[[str], None]:
    def write(fragment: str) -> None:
        out.write(fragment)
        out.flush()
    return write


def build_policy(out: TextIO) -> RetryPolicy:
    widener = QueryWidener(DuckDuckGoSearchBackend())
    assistant = Assistant(widener)
    return RetryPolicy(assistant.stream_answer, on_fragment=stream_to(out), max_attempts=RETRY_MAX_ATTEMPTS)


async def chat_loop(
    policy: RetryPolicy,
    read_line: Callable[[str], str] = input,
    out: TextIO = sys.stdout,
    err: TextIO = sys.stderr,
) -> None:
    """Prompt, answer, separate; forever. EOFError from read_line ends the loop."""
    while True:
        # Read on the event-loop thread so Ctrl+C interrupts the prompt.
        question = read_line(QUESTION_PROMPT).strip()
        if not question:
            continue
        outcome = await policy.ask(question)
        if outcome.status.abandoned:
            print(APOLOGY, file=err)
        out.write("\n\n")
        out.flush()


def run() -> None:
    configure_logging(LOG_LEVEL)
    try:
        asyncio.run(chat_loop(build_policy(sys.stdout)))
    except (KeyboardInterrupt, EOFError):
        logger.info("[main] exiting")
    finally:
        shutdown_logging()


if __name__ == "__main__":
    run()
