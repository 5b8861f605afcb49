"""
Application errors and the outcome taxonomy of a single question.

FetchNotFoundError is raised by the URL-content tool when the page does not
exist; the tool dispatcher turns it into a message the assistant can relay.
AskStatus is what the retry policy reports back to the chat loop.
"""

from enum import Enum


class FetchNotFoundError(Exception):
    """Raised when a fetched URL answers 404."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"'{url}' was not found.")


class AskStatus(str, Enum):
    """Terminal status of one question run through the retry policy."""

    SUCCESS = "success"
    ABANDONED_NO_RESPONSE = "abandoned_no_response"
    ABANDONED_RATE_LIMIT_UNPARSEABLE = "abandoned_rate_limit_unparseable"
    ABANDONED_RETRIES_EXHAUSTED = "abandoned_retries_exhausted"
    ABANDONED_OTHER_FAILURE = "abandoned_other_failure"

    @property
    def abandoned(self) -> bool:
        return self is not AskStatus.SUCCESS
