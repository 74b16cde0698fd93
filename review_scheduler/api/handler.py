"""Main API handler for the review scheduler."""

import json

from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.event_handler import APIGatewayHttpResolver, Response, content_types
from aws_lambda_powertools.event_handler.exceptions import NotFoundError, UnauthorizedError
from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.utilities.typing import LambdaContext
from pydantic import ValidationError

from ..models.review import ReviewRequest
from ..models.review_item import CreateItemFromErrorRequest, CreateItemRequest
from ..services.item_service import (
    ConcurrentUpdateError,
    InvalidItemError,
    ItemNotFoundError,
    ItemPersistenceError,
    ItemService,
)
from ..services.review_service import InvalidJudgmentError, InvalidScoreError, ReviewService

logger = Logger()
tracer = Tracer()
app = APIGatewayHttpResolver()

# Initialize services
item_service = ItemService()
review_service = ReviewService(item_service=item_service)


def get_user_id_from_context() -> str:
    """Extract user_id from JWT claims in request context.

    Raises:
        UnauthorizedError: If user_id cannot be extracted.
    """
    try:
        claims = app.current_event.request_context.authorizer
        # HTTP API with JWT Authorizer
        if claims and "jwt" in claims:
            return claims["jwt"]["claims"]["sub"]
        if claims and "claims" in claims:
            return claims["claims"]["sub"]
        if claims and "sub" in claims:
            return claims["sub"]
        raise UnauthorizedError("Unable to extract user ID from token")
    except (KeyError, TypeError, AttributeError) as e:
        logger.error(f"Failed to extract user_id: {e}")
        raise UnauthorizedError("Unable to extract user ID from token")


def _json_response(status_code: int, body: dict) -> Response:
    return Response(
        status_code=status_code,
        content_type=content_types.APPLICATION_JSON,
        body=json.dumps(body),
    )


def _parse_body(model):
    """Parse the JSON body into model, or return a 400 Response."""
    try:
        body = app.current_event.json_body
        if not isinstance(body, dict):
            return _json_response(400, {"error": "Invalid JSON body"})
        return model(**body)
    except ValidationError as e:
        logger.warning(f"Validation error: {e}")
        return _json_response(
            400,
            {"error": "Invalid request", "details": json.loads(e.json(include_url=False))},
        )
    except (json.JSONDecodeError, TypeError):
        return _json_response(400, {"error": "Invalid JSON body"})


def _persistence_error_response(e: ItemPersistenceError) -> Response:
    if isinstance(e, ConcurrentUpdateError):
        return _json_response(409, {"error": "Item was updated concurrently, please retry"})
    logger.error(f"Persistence failure: {e}")
    return _json_response(503, {"error": "Storage temporarily unavailable, please retry"})


# =============================================================================
# Queue Endpoints
# =============================================================================


@app.get("/srs/queue")
@tracer.capture_method
def get_queue():
    """Get items due for review."""
    user_id = get_user_id_from_context()
    logger.info(f"Getting review queue for user_id: {user_id}")

    try:
        response = review_service.get_queue(user_id)
        return response.model_dump(mode="json")
    except ItemPersistenceError as e:
        return _persistence_error_response(e)


@app.post("/srs/response")
@tracer.capture_method
def submit_response():
    """Submit a review response for an item."""
    user_id = get_user_id_from_context()

    request = _parse_body(ReviewRequest)
    if isinstance(request, Response):
        return request

    logger.info(f"Submitting response for item {request.item_id} by user_id: {user_id}")

    try:
        response = review_service.submit_response(
            user_id=user_id,
            item_id=request.item_id,
            judgment=request.judgment,
            score=request.score,
        )
        return response.model_dump(mode="json")
    except ItemNotFoundError:
        raise NotFoundError(f"Item not found: {request.item_id}")
    except (InvalidJudgmentError, InvalidScoreError) as e:
        return _json_response(400, {"error": str(e)})
    except ItemPersistenceError as e:
        return _persistence_error_response(e)


# =============================================================================
# Item Endpoints
# =============================================================================


@app.post("/srs/items")
@tracer.capture_method
def create_item():
    """Create a review item with explicit content."""
    user_id = get_user_id_from_context()

    request = _parse_body(CreateItemRequest)
    if isinstance(request, Response):
        return request

    logger.info(f"Creating {request.item_type} item for user_id: {user_id}")

    try:
        item = item_service.create_item(
            user_id=user_id,
            item_type=request.item_type,
            content=request.content,
            priority=request.priority,
            requires_spoken=request.requires_spoken,
        )
    except InvalidItemError as e:
        return _json_response(400, {"error": str(e)})
    except ItemPersistenceError as e:
        return _persistence_error_response(e)

    return _json_response(201, item.to_response().model_dump(mode="json"))


@app.post("/srs/items/from-error")
@tracer.capture_method
def create_item_from_error():
    """Create a review item from an error detected in an evaluation."""
    user_id = get_user_id_from_context()

    request = _parse_body(CreateItemFromErrorRequest)
    if isinstance(request, Response):
        return request

    logger.info(
        f"Creating item from evaluation {request.source_evaluation_id} for user_id: {user_id}"
    )

    try:
        item = item_service.create_item_from_error(
            user_id=user_id,
            source_evaluation_id=request.source_evaluation_id,
            error=request.error,
            user_level=request.user_level,
        )
    except InvalidItemError as e:
        return _json_response(400, {"error": str(e)})
    except ItemPersistenceError as e:
        return _persistence_error_response(e)

    return _json_response(201, item.to_response().model_dump(mode="json"))


@app.get("/srs/items/<item_id>")
@tracer.capture_method
def get_item(item_id: str):
    """Get a specific review item."""
    user_id = get_user_id_from_context()
    logger.info(f"Getting item {item_id} for user_id: {user_id}")

    try:
        item = item_service.get_item(user_id, item_id)
        return item.to_response().model_dump(mode="json")
    except ItemNotFoundError:
        raise NotFoundError(f"Item not found: {item_id}")
    except ItemPersistenceError as e:
        return _persistence_error_response(e)


# =============================================================================
# Lambda Handler
# =============================================================================


@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_HTTP)
@tracer.capture_lambda_handler
def handler(event: dict, context: LambdaContext) -> dict:
    """Lambda handler for API Gateway events."""
    return app.resolve(event, context)
