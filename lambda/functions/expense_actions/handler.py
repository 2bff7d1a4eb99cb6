"""
Expense Actions Lambda Handler
==============================

API Gateway entry point for expense CRUD, lifecycle transitions
(submit / approve / reject) and reference data lookups, routed with the
Powertools REST resolver.
"""

import json
import os

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.event_handler import APIGatewayRestResolver, Response, content_types
from aws_lambda_powertools.event_handler.exceptions import BadRequestError
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext
from pydantic import ValidationError

from utils.supabase_client import SupabaseClient
from utils.json_utils import to_json
from models import (
    ExpenseStatus,
    TransitionError,
    TransitionResult,
    CreateExpenseRequest,
    UpdateExpenseRequest,
    ApprovalRequest,
)

from lifecycle import ExpenseLifecycle

# Initialize AWS Lambda Powertools
logger = Logger()
metrics = Metrics()
tracer = Tracer()
app = APIGatewayRestResolver(serializer=to_json)

ALLOW_SELF_APPROVAL = os.environ.get("ALLOW_SELF_APPROVAL", "false").lower() == "true"

TRANSITION_ERROR_STATUS = {
    TransitionError.INVALID_TRANSITION: 409,
    TransitionError.UNAUTHORIZED: 403,
    TransitionError.NOT_FOUND: 404,
}


@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
@metrics.log_metrics
@tracer.capture_lambda_handler
def lambda_handler(event: dict, context: LambdaContext) -> dict:
    """
    Resolve an API Gateway request to the matching expense operation.

    Transition refusals are returned as 403/404/409 with the typed error;
    unexpected failures are logged and returned as a generic 500.
    """
    try:
        return app.resolve(event, context)
    except Exception as e:
        logger.exception(f"Unhandled error in {event.get('httpMethod')} {event.get('path')}: {e}")
        metrics.add_metric(name="ExpenseApiErrors", unit=MetricUnit.Count, value=1)
        return {
            "statusCode": 500,
            "headers": {
                "Content-Type": "application/json"
            },
            "body": to_json({"error": "Internal server error"})
        }


def _lifecycle() -> ExpenseLifecycle:
    return ExpenseLifecycle(SupabaseClient(), allow_self_approval=ALLOW_SELF_APPROVAL)


# =============================================================================
# READ ROUTES
# =============================================================================

@app.get("/expenses")
@tracer.capture_method
def list_expenses() -> Response:
    return _json_response([e.to_dict() for e in SupabaseClient().list_expenses()])


# Static paths are registered before /expenses/<expenseId>
@app.get("/expenses/pending")
@tracer.capture_method
def list_pending_expenses() -> Response:
    return _json_response([e.to_dict() for e in SupabaseClient().list_pending_expenses()])


@app.get("/expenses/summary")
@tracer.capture_method
def get_expense_summary() -> Response:
    return _json_response(SupabaseClient().get_expense_summary())


@app.get("/expenses/user/<userId>")
@tracer.capture_method
def list_user_expenses(userId: str) -> Response:
    expenses = SupabaseClient().list_expenses_by_user(_to_id(userId, "userId"))
    return _json_response([e.to_dict() for e in expenses])


@app.get("/expenses/status/<statusId>")
@tracer.capture_method
def list_expenses_by_status(statusId: str) -> Response:
    status_id = _to_id(statusId, "statusId")
    try:
        status = ExpenseStatus(status_id)
    except ValueError:
        raise BadRequestError(f"Unknown status id {status_id}")
    expenses = SupabaseClient().list_expenses_by_status(status)
    return _json_response([e.to_dict() for e in expenses])


@app.get("/expenses/<expenseId>")
@tracer.capture_method
def get_expense(expenseId: str) -> Response:
    expense_id = _to_id(expenseId, "expenseId")
    expense = SupabaseClient().get_expense(expense_id)
    if expense is None:
        return _error_response(404, f"Expense {expense_id} not found")
    return _json_response(expense.to_dict())


@app.get("/users")
@tracer.capture_method
def list_users() -> Response:
    return _json_response([u.to_dict() for u in SupabaseClient().list_users()])


@app.get("/users/<userId>")
@tracer.capture_method
def get_user(userId: str) -> Response:
    user_id = _to_id(userId, "userId")
    user = SupabaseClient().get_user(user_id)
    if user is None:
        return _error_response(404, f"User {user_id} not found")
    return _json_response(user.to_dict())


@app.get("/categories")
@tracer.capture_method
def list_categories() -> Response:
    return _json_response([c.to_dict() for c in SupabaseClient().list_categories()])


@app.get("/statuses")
@tracer.capture_method
def list_statuses() -> Response:
    return _json_response([s.to_dict() for s in SupabaseClient().list_statuses()])


# =============================================================================
# LIFECYCLE ROUTES
# =============================================================================

@app.post("/expenses")
@tracer.capture_method
def create_expense() -> Response:
    request = CreateExpenseRequest.model_validate(_request_body())
    result = _lifecycle().create(request.user_id, request.to_fields())
    return _transition_response("create", result, success_code=201)


@app.put("/expenses/<expenseId>")
@tracer.capture_method
def update_expense(expenseId: str) -> Response:
    expense_id = _to_id(expenseId, "expenseId")
    request = UpdateExpenseRequest.model_validate(_request_body())
    return _transition_response("update", _lifecycle().update(expense_id, request.to_fields()))


@app.delete("/expenses/<expenseId>")
@tracer.capture_method
def delete_expense(expenseId: str) -> Response:
    return _transition_response("delete", _lifecycle().delete(_to_id(expenseId, "expenseId")))


@app.post("/expenses/<expenseId>/submit")
@tracer.capture_method
def submit_expense(expenseId: str) -> Response:
    return _transition_response("submit", _lifecycle().submit(_to_id(expenseId, "expenseId")))


@app.post("/expenses/<expenseId>/approve")
@tracer.capture_method
def approve_expense(expenseId: str) -> Response:
    expense_id = _to_id(expenseId, "expenseId")
    request = ApprovalRequest.model_validate(_request_body())
    result = _lifecycle().approve(expense_id, request.actor_id, request.comments)
    return _transition_response("approve", result)


@app.post("/expenses/<expenseId>/reject")
@tracer.capture_method
def reject_expense(expenseId: str) -> Response:
    expense_id = _to_id(expenseId, "expenseId")
    request = ApprovalRequest.model_validate(_request_body())
    result = _lifecycle().reject(expense_id, request.actor_id, request.comments)
    return _transition_response("reject", result)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(BadRequestError)
def handle_bad_request(e: BadRequestError) -> Response:
    return _error_response(400, e.msg)


@app.exception_handler(ValidationError)
def handle_validation_error(e: ValidationError) -> Response:
    return _error_response(400, "Invalid request body", details=e.errors(
        include_url=False, include_context=False, include_input=False
    ))


@app.not_found
def handle_not_found(e) -> Response:
    event = app.current_event
    return _error_response(404, f"No route for {event.http_method} {event.path}")


# =============================================================================
# HELPERS
# =============================================================================

def _transition_response(operation: str, result: TransitionResult, success_code: int = 200) -> Response:
    """Record metrics and map a TransitionResult to an HTTP response."""
    if result.success:
        metrics.add_metric(name="ExpenseTransitions", unit=MetricUnit.Count, value=1)
        return _json_response(result.to_dict(), status_code=success_code)

    metrics.add_metric(name="ExpenseTransitionsRejected", unit=MetricUnit.Count, value=1)
    logger.info(f"{operation} refused: {result.error.value}", extra={"reason": result.message})
    return _error_response(
        TRANSITION_ERROR_STATUS.get(result.error, 400),
        result.message or "Operation not allowed",
        error_code=result.error.value
    )


def _to_id(value: str, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise BadRequestError(f"Invalid {name}: {value!r}")


def _request_body() -> dict:
    """JSON body of the current request ({} when empty)."""
    if not app.current_event.body:
        return {}
    try:
        return app.current_event.json_body
    except json.JSONDecodeError:
        raise BadRequestError("Request body is not valid JSON")


def _json_response(data, status_code: int = 200) -> Response:
    return Response(
        status_code=status_code,
        content_type=content_types.APPLICATION_JSON,
        body=to_json(data)
    )


def _error_response(status_code: int, message: str, error_code: str = None, details=None) -> Response:
    body = {"error": message}
    if error_code:
        body["code"] = error_code
    if details:
        body["details"] = details
    return _json_response(body, status_code=status_code)
