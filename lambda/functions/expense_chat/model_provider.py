"""
Model Provider
==============

Provider-neutral chat types and the Anthropic implementation used by the
expense assistant. The assistant only sees ModelProvider.complete(); the
wire format (system parameter, tool_use / tool_result blocks) stays here.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Union

import anthropic
from aws_lambda_powertools import Logger
from botocore.exceptions import BotoCoreError, ClientError

from utils.secrets import get_secret

logger = Logger()

# Model configuration
MODEL = os.environ.get("ASSISTANT_MODEL", "claude-sonnet-4-20250514")
MAX_TOKENS = int(os.environ.get("ASSISTANT_MAX_TOKENS", "1024"))
TIMEOUT_SECONDS = float(os.environ.get("ASSISTANT_TIMEOUT_SECONDS", "30"))


@dataclass
class FunctionCall:
    """A tool-call intent returned by the model."""
    id: str
    name: str
    arguments: Union[dict, str, None] = None


@dataclass
class ChatMessage:
    """
    One entry of the conversation history.

    role is one of "system", "user", "assistant" or "function". Assistant
    messages may carry the function_call they requested; function messages
    carry the call id and the JSON result in content.
    """
    role: str
    content: str = ""
    function_call: Optional[FunctionCall] = None
    name: Optional[str] = None
    call_id: Optional[str] = None


@dataclass
class ModelReply:
    """Either plain text or a function-call intent (with optional partial text)."""
    text: str = ""
    function_call: Optional[FunctionCall] = None
    stop_reason: Optional[str] = None
    usage: dict = field(default_factory=dict)

    @property
    def wants_function(self) -> bool:
        return self.function_call is not None


class ModelProvider(Protocol):
    """Chat-completion capability used by the assistant."""

    def complete(
        self,
        messages: list[ChatMessage],
        functions: Optional[list[dict]] = None,
        allow_function_calls: bool = True
    ) -> ModelReply: ...


class ModelProviderError(Exception):
    """Raised when the hosted model cannot be reached or rejects the request."""


class AnthropicModelProvider:
    """ModelProvider backed by the Anthropic Messages API."""

    def __init__(self, client: anthropic.Anthropic, model: str = MODEL, max_tokens: int = MAX_TOKENS):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    def complete(
        self,
        messages: list[ChatMessage],
        functions: Optional[list[dict]] = None,
        allow_function_calls: bool = True
    ) -> ModelReply:
        system_prompt, wire_messages = _to_anthropic_messages(messages)

        request: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": wire_messages,
        }
        if system_prompt:
            request["system"] = system_prompt
        if functions:
            request["tools"] = [_to_anthropic_tool(f) for f in functions]
            request["tool_choice"] = {"type": "auto" if allow_function_calls else "none"}

        try:
            response = self.client.messages.create(**request)
        except anthropic.APIError as e:
            logger.error(f"Anthropic API error: {e}")
            raise ModelProviderError(f"Model request failed: {e}") from e

        logger.info(f"API response: stop_reason={response.stop_reason}, "
                    f"usage={response.usage.input_tokens}/{response.usage.output_tokens} tokens")

        return _from_anthropic_response(response)


def create_model_provider() -> Optional[ModelProvider]:
    """
    Build the configured provider.

    Returns None when no API key is configured or the configuration
    cannot be read; the assistant then answers with its "not configured"
    message without making any network call.
    """
    try:
        api_key = get_secret("ANTHROPIC_API_KEY")
    except (ClientError, BotoCoreError) as e:
        logger.error(f"Failed to read assistant configuration: {e}")
        return None

    if not api_key:
        logger.warning("ANTHROPIC_API_KEY is not configured; chat assistant disabled")
        return None

    client = anthropic.Anthropic(api_key=api_key, timeout=TIMEOUT_SECONDS, max_retries=0)
    return AnthropicModelProvider(client)


# =============================================================================
# WIRE FORMAT
# =============================================================================

def _to_anthropic_tool(function: dict) -> dict:
    return {
        "name": function["name"],
        "description": function.get("description", ""),
        "input_schema": function.get("parameters") or {"type": "object", "properties": {}},
    }


def _to_anthropic_messages(messages: list[ChatMessage]) -> tuple[str, list[dict]]:
    """Split out the system prompt and convert the rest to Anthropic messages."""
    system_parts = []
    wire = []

    for message in messages:
        if message.role == "system":
            system_parts.append(message.content)

        elif message.role == "user":
            wire.append({"role": "user", "content": message.content})

        elif message.role == "assistant":
            blocks = []
            if message.content:
                blocks.append({"type": "text", "text": message.content})
            if message.function_call:
                arguments = message.function_call.arguments
                blocks.append({
                    "type": "tool_use",
                    "id": message.function_call.id,
                    "name": message.function_call.name,
                    "input": arguments if isinstance(arguments, dict) else {},
                })
            wire.append({"role": "assistant", "content": blocks})

        elif message.role == "function":
            wire.append({
                "role": "user",
                "content": [{
                    "type": "tool_result",
                    "tool_use_id": message.call_id,
                    "content": message.content,
                }]
            })

        else:
            raise ValueError(f"Unsupported message role: {message.role}")

    return "\n\n".join(system_parts), wire


def _from_anthropic_response(response) -> ModelReply:
    """Collect text blocks and the first tool_use block."""
    texts = []
    function_call = None

    for block in response.content:
        if block.type == "text":
            texts.append(block.text)
        elif block.type == "tool_use" and function_call is None:
            function_call = FunctionCall(id=block.id, name=block.name, arguments=block.input)

    return ModelReply(
        text="".join(texts),
        function_call=function_call,
        stop_reason=response.stop_reason,
        usage={
            "input_tokens": response.usage.input_tokens,
            "output_tokens": response.usage.output_tokens,
        },
    )
