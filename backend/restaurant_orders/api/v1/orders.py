"""
Order lifecycle API endpoints.

This module implements the FastAPI router for orders: placement, lookup,
status changes, deletion and the read finders. Every endpoint resolves the
caller identity from the bearer token, calls OrderLifecycleService and maps
its typed failures to HTTP responses through ``ERROR_STATUS_CODES``.
"""

from datetime import datetime
from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException, Query, status

from restaurant_orders.api.deps import CurrentIdentity, OrderServiceDep
from restaurant_orders.core.logging import get_logger
from restaurant_orders.schemas.orders import (
    OrderCreateRequest,
    OrderPageResponse,
    OrderResponse,
    OrderStatusUpdate,
)
from restaurant_orders.services.orders.enums import OrderStatus
from restaurant_orders.services.orders.errors import (
    BadOrderRequest,
    IllegalStatusTransition,
    OrderErrorKind,
    OrderLifecycleError,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])

ERROR_STATUS_CODES: Dict[OrderErrorKind, int] = {
    OrderErrorKind.BAD_ORDER_REQUEST: status.HTTP_400_BAD_REQUEST,
    OrderErrorKind.UNAUTHORIZED_ACCESS: status.HTTP_403_FORBIDDEN,
    OrderErrorKind.ILLEGAL_STATUS_TRANSITION: status.HTTP_409_CONFLICT,
    OrderErrorKind.ORDER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    OrderErrorKind.RESTAURANT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    OrderErrorKind.CLIENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    OrderErrorKind.PRODUCT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    OrderErrorKind.INTERNAL_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def to_http_exception(error: OrderLifecycleError, operation: str) -> HTTPException:
    """
    Map an order lifecycle failure to an HTTP error response.

    Unauthorized and internal failures expose a generic message only.

    Args:
        error: Failure raised by the service
        operation: Endpoint operation name for the log line

    Returns:
        HTTPException to raise
    """
    status_code = ERROR_STATUS_CODES.get(
        error.kind, status.HTTP_500_INTERNAL_SERVER_ERROR
    )

    detail: Any
    if error.kind == OrderErrorKind.UNAUTHORIZED_ACCESS:
        detail = "Not authorized"
    elif error.kind == OrderErrorKind.INTERNAL_FAILURE:
        detail = "An unexpected error occurred"
    elif isinstance(error, BadOrderRequest):
        detail = {"message": str(error), "reason": error.reason.value}
    elif isinstance(error, IllegalStatusTransition):
        detail = {
            "message": str(error),
            "current_status": error.current_status.value,
            "requested_status": error.requested_status.value,
        }
    else:
        detail = str(error)

    log_method = logger.error if status_code >= 500 else logger.warning
    log_method(
        "Order request failed",
        operation=operation,
        kind=error.kind.value,
        status_code=status_code,
        error=str(error),
        context=error.context,
    )

    headers = {"Retry-After": "1"} if error.retryable else None
    return HTTPException(status_code=status_code, detail=detail, headers=headers)


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new order",
)
def create_order(
    request: OrderCreateRequest,
    identity: CurrentIdentity,
    service: OrderServiceDep,
) -> OrderResponse:
    """
    Place a new order as the authenticated client.

    Raises:
        HTTPException: 400 invalid request, 403 not the client, 404 missing
            restaurant, client or product, 500 unexpected failure
    """
    try:
        order = service.create_order(identity, request.to_domain())
    except OrderLifecycleError as e:
        raise to_http_exception(e, "create_order") from e
    return OrderResponse.from_order(order)


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order by ID",
)
def get_order(
    order_id: int,
    identity: CurrentIdentity,
    service: OrderServiceDep,
) -> OrderResponse:
    try:
        order = service.get_order(identity, order_id)
    except OrderLifecycleError as e:
        raise to_http_exception(e, "get_order") from e
    return OrderResponse.from_order(order)


@router.patch(
    "/{order_id}/status",
    response_model=OrderResponse,
    summary="Update order status",
)
def update_order_status(
    order_id: int,
    update: OrderStatusUpdate,
    identity: CurrentIdentity,
    service: OrderServiceDep,
) -> OrderResponse:
    """
    Move an order to a new status as the restaurant owner.

    Repeating the current status succeeds and only refreshes updated_at.

    Raises:
        HTTPException: 403 not the owner, 404 missing order, 409 illegal
            transition, 500 unexpected failure
    """
    try:
        order = service.update_order_status(
            identity, order_id, update.status, update.comments
        )
    except OrderLifecycleError as e:
        raise to_http_exception(e, "update_order_status") from e
    return OrderResponse.from_order(order)


@router.delete(
    "/{order_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete order",
)
def delete_order(
    order_id: int,
    identity: CurrentIdentity,
    service: OrderServiceDep,
) -> None:
    try:
        service.delete_order(identity, order_id)
    except OrderLifecycleError as e:
        raise to_http_exception(e, "delete_order") from e


@router.get(
    "/restaurant/{restaurant_id}",
    response_model=List[OrderResponse],
    summary="List restaurant orders",
)
def list_restaurant_orders(
    restaurant_id: int,
    identity: CurrentIdentity,
    service: OrderServiceDep,
) -> List[OrderResponse]:
    try:
        orders = service.find_orders_by_restaurant(identity, restaurant_id)
    except OrderLifecycleError as e:
        raise to_http_exception(e, "find_orders_by_restaurant") from e
    return [OrderResponse.from_order(order) for order in orders]


@router.get(
    "/restaurant/{restaurant_id}/date-range",
    response_model=List[OrderResponse],
    summary="List restaurant orders created within a date range",
)
def list_restaurant_orders_by_date_range(
    restaurant_id: int,
    identity: CurrentIdentity,
    service: OrderServiceDep,
    start: datetime = Query(..., description="Range start, inclusive"),
    end: datetime = Query(..., description="Range end, inclusive"),
) -> List[OrderResponse]:
    try:
        orders = service.find_orders_by_date_range(
            identity, restaurant_id, start, end
        )
    except OrderLifecycleError as e:
        raise to_http_exception(e, "find_orders_by_date_range") from e
    return [OrderResponse.from_order(order) for order in orders]


@router.get(
    "/restaurant/{restaurant_id}/status/{order_status}",
    response_model=List[OrderResponse],
    summary="List restaurant orders in a status",
)
def list_restaurant_orders_by_status(
    restaurant_id: int,
    order_status: OrderStatus,
    identity: CurrentIdentity,
    service: OrderServiceDep,
) -> List[OrderResponse]:
    try:
        orders = service.find_orders_by_status(identity, restaurant_id, order_status)
    except OrderLifecycleError as e:
        raise to_http_exception(e, "find_orders_by_status") from e
    return [OrderResponse.from_order(order) for order in orders]


@router.get(
    "/owner/{owner_id}",
    response_model=OrderPageResponse,
    summary="List orders of every restaurant of an owner",
)
def list_owner_orders(
    owner_id: int,
    identity: CurrentIdentity,
    service: OrderServiceDep,
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(20, ge=1, le=100, description="Maximum number of records to return"),
) -> OrderPageResponse:
    try:
        page = service.find_orders_by_owner(identity, owner_id, skip, limit)
    except OrderLifecycleError as e:
        raise to_http_exception(e, "find_orders_by_owner") from e
    return OrderPageResponse.from_page(page)


@router.get(
    "/client/{client_id}",
    response_model=List[OrderResponse],
    summary="List client orders",
)
def list_client_orders(
    client_id: int,
    identity: CurrentIdentity,
    service: OrderServiceDep,
) -> List[OrderResponse]:
    try:
        orders = service.find_orders_by_client(identity, client_id)
    except OrderLifecycleError as e:
        raise to_http_exception(e, "find_orders_by_client") from e
    return [OrderResponse.from_order(order) for order in orders]


@router.get(
    "/client/{client_id}/date-range",
    response_model=List[OrderResponse],
    summary="List client orders created within a date range",
)
def list_client_orders_by_date_range(
    client_id: int,
    identity: CurrentIdentity,
    service: OrderServiceDep,
    start: datetime = Query(..., description="Range start, inclusive"),
    end: datetime = Query(..., description="Range end, inclusive"),
) -> List[OrderResponse]:
    try:
        orders = service.find_orders_by_client_and_date_range(
            identity, client_id, start, end
        )
    except OrderLifecycleError as e:
        raise to_http_exception(e, "find_orders_by_client_and_date_range") from e
    return [OrderResponse.from_order(order) for order in orders]
