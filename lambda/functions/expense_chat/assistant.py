"""
Expense Chat Assistant
======================

Answers free-text questions about expenses. Each turn makes at most two
model calls: the first may ask for one registered function, whose JSON
result is appended to the history before a single follow-up call that
must answer in text. Chained function calls are not supported.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from aws_lambda_powertools import Logger

from utils.json_utils import to_json

from model_provider import ChatMessage, FunctionCall, ModelProvider, ModelReply
from prompts import build_system_prompt
from tools import EXPENSE_FUNCTIONS, FunctionRegistry, ToolContext

logger = Logger()

NOT_CONFIGURED_MESSAGE = "Chat service is not configured. Please check the assistant settings."
FAILURE_MESSAGE = "Sorry, something went wrong while answering your request. Please try again later."
UNKNOWN_FUNCTION_ERROR = "unknown function"


@dataclass
class FunctionCallRecord:
    """Record of the function invoked during a turn."""
    name: str
    arguments: Any
    output: Any
    success: bool
    error_message: Optional[str] = None
    duration_ms: Optional[int] = None


@dataclass
class ChatResult:
    """Outcome of one chat turn, with an audit trail for operators."""

    reply: str = ""
    user_id: Optional[int] = None
    configured: bool = True
    model_calls: int = 0
    function_call: Optional[FunctionCallRecord] = None
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def failed(self) -> bool:
        return self.error_message is not None

    def to_dict(self) -> dict:
        return {
            "reply": self.reply,
            "configured": self.configured,
            "model_calls": self.model_calls,
            "function": self.function_call.name if self.function_call else None,
            "function_success": self.function_call.success if self.function_call else None,
            "failed": self.failed,
        }


class ExpenseAssistant:
    """
    Conversation orchestrator for the expense assistant.

    Stateless between turns: nothing but the injected collaborators is
    kept on the instance. Pass either a repository or a repository_factory;
    the factory is only called when a function actually runs, inside the
    function error handling.
    """

    def __init__(
        self,
        repository: Any,
        provider: Optional[ModelProvider],
        registry: FunctionRegistry = EXPENSE_FUNCTIONS,
        system_prompt: Optional[str] = None,
        repository_factory: Optional[Callable[[], Any]] = None
    ):
        self.repository = repository
        self.repository_factory = repository_factory
        self.provider = provider
        self.registry = registry
        self.system_prompt = system_prompt or build_system_prompt()

    def chat(self, message: str, user_id: int) -> ChatResult:
        """
        Run one turn and return the reply.

        Never raises: an unconfigured provider yields NOT_CONFIGURED_MESSAGE
        without any call, and any failure yields FAILURE_MESSAGE with the
        cause kept in ChatResult.error_message.
        """
        result = ChatResult(user_id=user_id, started_at=datetime.now(timezone.utc))

        if self.provider is None:
            logger.warning("Chat requested but no model provider is configured")
            result.configured = False
            result.reply = NOT_CONFIGURED_MESSAGE
            result.completed_at = datetime.now(timezone.utc)
            return result

        try:
            messages = [
                ChatMessage(role="system", content=self.system_prompt),
                ChatMessage(role="user", content=message),
            ]
            catalog = self.registry.catalog()

            reply = self._complete(result, messages, catalog)

            if not reply.wants_function:
                result.reply = reply.text
                return result

            call = reply.function_call
            function_output = self._execute_function(call, user_id, result)

            messages.append(ChatMessage(role="assistant", content=reply.text, function_call=call))
            messages.append(ChatMessage(
                role="function",
                content=function_output,
                name=call.name,
                call_id=call.id
            ))

            final = self._complete(result, messages, catalog, allow_function_calls=False)
            result.reply = final.text

        except Exception as e:
            logger.exception(f"Error in chat turn for user {user_id}: {e}")
            result.error_message = str(e)
            result.reply = FAILURE_MESSAGE

        finally:
            result.completed_at = datetime.now(timezone.utc)

        return result

    def _complete(
        self,
        result: ChatResult,
        messages: list[ChatMessage],
        catalog: list[dict],
        allow_function_calls: bool = True
    ) -> ModelReply:
        result.model_calls += 1
        reply = self.provider.complete(messages, catalog, allow_function_calls=allow_function_calls)
        logger.info(f"Model call {result.model_calls}: stop_reason={reply.stop_reason}, "
                    f"function={reply.function_call.name if reply.function_call else None}")
        return reply

    def _execute_function(self, call: FunctionCall, user_id: int, result: ChatResult) -> str:
        """
        Run the requested function and return its JSON result.

        Unknown names and handler failures become {"error": ...} payloads so
        the model can explain the problem instead of the turn failing.
        """
        spec = self.registry.get(call.name)
        start_time = time.time()

        if spec is None:
            logger.warning(f"Model requested unknown function: {call.name}")
            output = {"error": UNKNOWN_FUNCTION_ERROR}
            error = UNKNOWN_FUNCTION_ERROR
        else:
            logger.info(f"Executing function: {call.name}")
            try:
                context = ToolContext(self.repository, user_id, repository_factory=self.repository_factory)
                output = spec.invoke(call.arguments, context)
                error = None
            except Exception as e:
                logger.error(f"Function {call.name} failed: {e}")
                output = {"error": str(e)}
                error = str(e)

        try:
            payload = to_json(output)
        except TypeError as e:
            logger.error(f"Function {call.name} returned unserializable output: {e}")
            error = str(e)
            payload = to_json({"error": error})

        result.function_call = FunctionCallRecord(
            name=call.name,
            arguments=call.arguments,
            output=output,
            success=error is None,
            error_message=error,
            duration_ms=int((time.time() - start_time) * 1000)
        )
        return payload
