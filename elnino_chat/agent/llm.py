"""
Assistant LLM: OpenAI (or Azure OpenAI) chat completions with streaming tool calls.

The client is created with max_retries=0: rate limits are surfaced to the
retry policy instead of being retried inside the SDK.
"""

import json
import logging
from typing import Any, AsyncIterator

import httpx
from openai import AsyncAzureOpenAI, AsyncOpenAI

from elnino_chat.agent.prompts import PROMPT_TEMPLATE, render_prompt
from elnino_chat.agent.tools import AGENT_TOOLS, execute_tool
from elnino_chat.core.config import (
    AGENT_MAX_TOKENS,
    AZURE_OPENAI_API_VERSION,
    AZURE_OPENAI_DEPLOYMENT,
    AZURE_OPENAI_ENDPOINT,
    FREQUENCY_PENALTY,
    LOG_HTTP_BODIES,
    MAX_AGENTIC_ROUNDS,
    OPENAI_API_KEY,
    OPENAI_LLM_MODEL,
    PRESENCE_PENALTY,
    TEMPERATURE,
)
from elnino_chat.services.search_service import QueryWidener

logger = logging.getLogger(__name__)
http_logger = logging.getLogger("elnino_chat.http")


async def _log_request(request: httpx.Request) -> None:
    if "openai" in str(request.url).lower():
        body = request.content.decode("utf-8", "replace") if request.content else "null"
        http_logger.info("Request Body: %s", body)


async def _log_response(response: httpx.Response) -> None:
    if "openai" in str(response.request.url).lower():
        http_logger.info("Response Status: %d %s", response.status_code, response.request.url)


def build_http_client() -> httpx.AsyncClient:
    """httpx client for the OpenAI SDK that logs request bodies to OpenAI hosts."""
    return httpx.AsyncClient(event_hooks={"request": [_log_request], "response": [_log_response]})


def build_client(log_http_bodies: bool = LOG_HTTP_BODIES) -> AsyncOpenAI:
    """Azure OpenAI when AZURE_OPENAI_ENDPOINT is set, else OpenAI."""
    http_client = build_http_client() if log_http_bodies else None
    if AZURE_OPENAI_ENDPOINT:
        logger.info("[llm] using Azure OpenAI endpoint=%s deployment=%s", AZURE_OPENAI_ENDPOINT, AZURE_OPENAI_DEPLOYMENT)
        return AsyncAzureOpenAI(
            api_key=OPENAI_API_KEY or None,
            azure_endpoint=AZURE_OPENAI_ENDPOINT,
            api_version=AZURE_OPENAI_API_VERSION,
            max_retries=0,
            http_client=http_client,
        )
    return AsyncOpenAI(api_key=OPENAI_API_KEY or None, max_retries=0, http_client=http_client)


def default_model() -> str:
    return AZURE_OPENAI_DEPLOYMENT if AZURE_OPENAI_ENDPOINT else OPENAI_LLM_MODEL


def _decode_arguments(raw: str) -> dict[str, Any]:
    """Tool-call arguments as a dict; malformed JSON from the model becomes {}."""
    try:
        args = json.loads(raw) if raw else {}
    except json.JSONDecodeError:
        return {}
    return args if isinstance(args, dict) else {}


async def chat_with_tools_stream(
    client: AsyncOpenAI,
    model: str,
    messages: list[dict[str, Any]],
    tools: list[dict[str, Any]],
    max_tokens: int = AGENT_MAX_TOKENS,
):
    """
    Call the chat API with tools and stream the response. Yields:
    - ('content_delta', str) for each token of the answer;
    - ('content_done',) when the answer is complete (no tool_calls);
    - ('tool_calls', list[dict], content_str) when the model called tools (content_str may be empty).
    """
    stream = await client.chat.completions.create(
        model=model,
        messages=messages,
        tools=tools,
        max_tokens=max_tokens,
        temperature=TEMPERATURE,
        presence_penalty=PRESENCE_PENALTY,
        frequency_penalty=FREQUENCY_PENALTY,
        stream=True,
    )
    content_parts: list[str] = []
    tool_calls_accum: dict[int, dict[str, Any]] = {}
    async for chunk in stream:
        if not chunk.choices:
            continue
        delta = chunk.choices[0].delta
        if delta.content:
            content_parts.append(delta.content)
            yield ("content_delta", delta.content)
        for tc in delta.tool_calls or []:
            call = tool_calls_accum.setdefault(tc.index, {"id": "", "name": "", "arguments": ""})
            if tc.id:
                call["id"] = tc.id
            if tc.function is not None:
                call["name"] = tc.function.name or call["name"]
                call["arguments"] += tc.function.arguments or ""
    full_content = "".join(content_parts)
    if tool_calls_accum:
        tool_calls_list = [
            {"id": t["id"], "name": t["name"], "arguments": _decode_arguments(t["arguments"])}
            for t in (tool_calls_accum[i] for i in sorted(tool_calls_accum))
        ]
        logger.info("[llm:chat_with_tools_stream] OUT tool_calls=%s", [x["name"] for x in tool_calls_list])
        yield ("tool_calls", tool_calls_list, full_content)
    else:
        logger.info("[llm:chat_with_tools_stream] OUT content_done len=%d", len(full_content))
        yield ("content_done",)


class Assistant:
    """
    Streams answers to El Niño questions, running the tools the model asks for
    between completion rounds. Errors from the chat API propagate to the caller.
    """

    def __init__(
        self,
        widener: QueryWidener,
        client: AsyncOpenAI | None = None,
        model: str | None = None,
        prompt_template: str = PROMPT_TEMPLATE,
        max_rounds: int = MAX_AGENTIC_ROUNDS,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.widener = widener
        self._client = client
        self.model = model or default_model()
        self.prompt_template = prompt_template
        self.max_rounds = max_rounds
        self.http_client = http_client

    @property
    def client(self) -> AsyncOpenAI:
        # Built on first use so a missing API key fails the question, not startup.
        if self._client is None:
            self._client = build_client()
        return self._client

    async def invoke_streaming(self, prompt_template: str, variables: dict[str, str]) -> AsyncIterator[str]:
        prompt = render_prompt(prompt_template, variables)
        logger.info("[llm:invoke_streaming] IN  prompt_len=%d", len(prompt))
        messages: list[dict[str, Any]] = [{"role": "user", "content": prompt}]
        tools_used: list[str] = []

        for _ in range(self.max_rounds):
            tool_calls: list[dict] | None = None
            content = ""
            async for item in chat_with_tools_stream(self.client, self.model, messages, AGENT_TOOLS):
                if item[0] == "content_delta":
                    yield item[1]
                elif item[0] == "content_done":
                    logger.info("[llm:invoke_streaming] END tools_used=%s", tools_used)
                    return
                elif item[0] == "tool_calls":
                    tool_calls = item[1]
                    content = (item[2] or "").strip()
            if not tool_calls:
                return
            messages.append({
                "role": "assistant",
                "content": content,
                "tool_calls": [
                    {"id": tc["id"], "type": "function", "function": {"name": tc["name"], "arguments": json.dumps(tc.get("arguments") or {})}}
                    for tc in tool_calls
                ],
            })
            for tc in tool_calls:
                name = tc.get("name", "")
                result = await execute_tool(name, tc.get("arguments") or {}, widener=self.widener, http_client=self.http_client)
                tools_used.append(name)
                messages.append({"role": "tool", "tool_call_id": tc.get("id", ""), "content": result})
        logger.warning("[llm:invoke_streaming] stopped after %d tool-calling rounds tools_used=%s", self.max_rounds, tools_used)

    def stream_answer(self, question: str) -> AsyncIterator[str]:
        """Stream the answer to one question using the configured prompt template."""
        return self.invoke_streaming(self.prompt_template, {"input": question})
