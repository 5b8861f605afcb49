"""
Rate-limit helpers for the retry policy.

The retry delay is read from the failure's diagnostic text, i.e. the exception
message followed by the failing response's headers rendered as "NAME: value"
lines. parse_retry_after is the only place that knows the pattern:

    RETRY-AFTER: <integer>    (case-insensitive, first match wins)
"""

import re

import httpx
import openai

RETRY_AFTER_PATTERN = re.compile(r"RETRY-AFTER: (\d+)", re.IGNORECASE | re.DOTALL)


def parse_retry_after(text: str | None) -> int | None:
    """Return the seconds of the first RETRY-AFTER line in text, or None if absent."""
    if not text:
        return None
    match = RETRY_AFTER_PATTERN.search(text)
    if match is None:
        return None
    return int(match.group(1))


def _exception_chain(exc: BaseException):
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def is_rate_limit(exc: BaseException) -> bool:
    """True when exc (or anything it was raised from) is an HTTP 429."""
    for e in _exception_chain(exc):
        if isinstance(e, openai.RateLimitError):
            return True
        if getattr(e, "status_code", None) == 429:
            return True
        if isinstance(e, httpx.HTTPStatusError) and e.response.status_code == 429:
            return True
    return False


def diagnostic_text(exc: BaseException) -> str:
    """
    Render exc for diagnostics: message of each exception in the chain plus the
    headers of any HTTP response attached to it, one "NAME: value" per line.
    """
    lines: list[str] = []
    for e in _exception_chain(exc):
        lines.append(f"{type(e).__name__}: {e}")
        response = getattr(e, "response", None)
        headers = getattr(response, "headers", None)
        if headers is None:
            continue
        lines.append(f"Status: {getattr(response, 'status_code', '')}")
        for name, value in headers.items():
            lines.append(f"{name.upper()}: {value}")
    return "\n".join(lines)
