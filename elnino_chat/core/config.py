"""
Application configuration (env, settings, constants).

Responsibility: Centralize config loading, environment variables, and app-wide
constants. Keeps the rest of the app decoupled from how config is sourced.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _optional_int(value: str | None) -> int | None:
    """Parse a positive int from env; empty, invalid or non-positive values mean unset."""
    try:
        parsed = int((value or "").strip())
    except ValueError:
        return None
    return parsed if parsed > 0 else None


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


# OpenAI (assistant LLM)
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_LLM_MODEL: str = (
    os.getenv("OPENAI_LLM_MODEL", "gpt-4o-mini").strip() or "gpt-4o-mini"
)

# Azure OpenAI. When the endpoint is set, the assistant uses the Azure deployment instead.
AZURE_OPENAI_ENDPOINT: str = os.getenv("AZURE_OPENAI_ENDPOINT", "").strip()
AZURE_OPENAI_DEPLOYMENT: str = (
    os.getenv("AZURE_OPENAI_DEPLOYMENT", "").strip() or OPENAI_LLM_MODEL
)
AZURE_OPENAI_API_VERSION: str = (
    os.getenv("AZURE_OPENAI_API_VERSION", "2024-06-01").strip() or "2024-06-01"
)

# Rate-limit retries. None = retry for as long as the service sends RETRY-AFTER.
RETRY_MAX_ATTEMPTS: int | None = _optional_int(os.getenv("RETRY_MAX_ATTEMPTS"))

# Logging
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "WARNING").strip() or "WARNING"
LOG_HTTP_BODIES: bool = _flag(os.getenv("LOG_HTTP_BODIES"))

# Sampling settings for the assistant
TEMPERATURE: float = 0.2
PRESENCE_PENALTY: float = -2.0
FREQUENCY_PENALTY: float = 1.0

# Agent loop
MAX_AGENTIC_ROUNDS: int = 12
AGENT_MAX_TOKENS: int = 1024

# Tools
FETCH_TIMEOUT: float = 5.0
SEARCH_DEFAULT_COUNT: int = 1
SEARCH_DEFAULT_OFFSET: int = 0

# Query widening: authoritative sites and keyword synonyms
SEARCH_SITES: tuple[str, ...] = ("wmo.int", "noaa.gov")
SEARCH_KEYWORDS: tuple[str, ...] = ("El Niño", "El Nino", "La Niña", "La Nina")
