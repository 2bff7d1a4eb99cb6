"""
Expense Chat Lambda Handler
===========================

API Gateway entry point for the expense assistant (POST /chat).
"""

import json
from typing import Optional

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext
from pydantic import ValidationError

from utils.supabase_client import SupabaseClient
from models import ChatRequest

from assistant import ExpenseAssistant, ChatResult
from model_provider import ModelProvider, create_model_provider

logger = Logger()
metrics = Metrics()
tracer = Tracer()

# Provider - lazily initialized, reused across warm invocations
_provider: Optional[ModelProvider] = None
_provider_checked = False


def get_model_provider() -> Optional[ModelProvider]:
    """Get or create the model provider (None when not configured)."""
    global _provider, _provider_checked
    if not _provider_checked:
        _provider = create_model_provider()
        _provider_checked = True
    return _provider


@logger.inject_lambda_context
@metrics.log_metrics
@tracer.capture_lambda_handler
def lambda_handler(event: dict, context: LambdaContext) -> dict:
    """
    Answer one chat message.

    Expected payload:
    {
        "message": "How much do I have pending?",
        "user_id": 1
    }
    """
    try:
        request = ChatRequest.model_validate(_parse_request_body(event))
    except (ValueError, ValidationError) as e:
        logger.info(f"Rejected chat request: {e}")
        return _error_response(400, "Request must include a non-empty message and a user_id")

    logger.info(f"Chat request from user {request.user_id}")

    try:
        result = answer(request)
    except Exception as e:
        logger.exception(f"Error in chat: {e}")
        metrics.add_metric(name="ChatErrors", unit=MetricUnit.Count, value=1)
        return _error_response(500, "Internal server error")

    _record_metrics(result)
    return _success_response({"response": result.reply})


@tracer.capture_method
def answer(request: ChatRequest) -> ChatResult:
    # The repository is only built when the model asks for data
    assistant = ExpenseAssistant(None, get_model_provider(), repository_factory=SupabaseClient)
    result = assistant.chat(request.message, request.user_id)
    logger.info("Chat turn completed", extra=result.to_dict())
    return result


def _record_metrics(result: ChatResult) -> None:
    """Record CloudWatch metrics."""
    metrics.add_metric(name="ChatTurns", unit=MetricUnit.Count, value=1)

    if not result.configured:
        metrics.add_metric(name="ChatNotConfigured", unit=MetricUnit.Count, value=1)

    if result.function_call:
        metrics.add_metric(name="ChatFunctionCalls", unit=MetricUnit.Count, value=1)

    if result.failed:
        metrics.add_metric(name="ChatErrors", unit=MetricUnit.Count, value=1)

    metrics.add_metric(name="ChatModelCalls", unit=MetricUnit.Count, value=result.model_calls)


def _parse_request_body(event: dict) -> dict:
    """Parse request body from API Gateway event."""
    body = event.get("body") or "{}"
    if isinstance(body, str):
        body = json.loads(body)
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")
    return body


def _success_response(data: dict) -> dict:
    """Create success API Gateway response."""
    return {
        "statusCode": 200,
        "headers": {
            "Content-Type": "application/json"
        },
        "body": json.dumps(data)
    }


def _error_response(status_code: int, message: str) -> dict:
    """Create error API Gateway response."""
    return {
        "statusCode": status_code,
        "headers": {
            "Content-Type": "application/json"
        },
        "body": json.dumps({"error": message})
    }
