"""
Order lifecycle service orchestrating validation, authorization and state.

This module implements the OrderLifecycleService class, the only surface the
transport layer calls for orders. Every operation receives the caller's
IdentityContext explicitly, authorizes the action through the
OwnershipAuthorizer, and then delegates to the validator, the state machine
and the persistence collaborators. Results are Order records; failures are
OrderLifecycleError subclasses. Nothing is retried here.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, List, Optional

from restaurant_orders.core.logging import get_logger, log_performance
from restaurant_orders.services.auth.authorizer import (
    Action,
    OwnershipAuthorizer,
    OwnershipTarget,
)
from restaurant_orders.services.auth.identity import IdentityContext
from restaurant_orders.services.orders.enums import OrderStatus
from restaurant_orders.services.orders.errors import (
    ClientNotFound,
    InternalFailure,
    OrderLifecycleError,
    OrderNotFound,
    ProductNotFound,
    RestaurantNotFound,
    UnauthorizedAccess,
)
from restaurant_orders.services.orders.models import (
    Order,
    OrderLine,
    OrderPage,
    OrderRequest,
)
from restaurant_orders.services.orders.ports import (
    ClientLookup,
    OrderStore,
    ProductLookup,
    RestaurantLookup,
)
from restaurant_orders.services.orders.state_machine import OrderStateMachine
from restaurant_orders.services.orders.validator import OrderRequestValidator

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OrderLifecycleService:
    """
    Order lifecycle orchestrator.

    Attributes:
        orders: Order persistence collaborator
        restaurants: Restaurant owner lookup
        clients: Client existence lookup
        products: Product existence lookup
        authorizer: Ownership authorizer
        validator: Order request validator
        state_machine: Order status state machine
    """

    def __init__(
        self,
        orders: OrderStore,
        restaurants: RestaurantLookup,
        clients: ClientLookup,
        products: ProductLookup,
        authorizer: Optional[OwnershipAuthorizer] = None,
        validator: Optional[OrderRequestValidator] = None,
        state_machine: Optional[OrderStateMachine] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.orders = orders
        self.restaurants = restaurants
        self.clients = clients
        self.products = products
        self.authorizer = authorizer or OwnershipAuthorizer()
        self.validator = validator or OrderRequestValidator()
        self.state_machine = state_machine or OrderStateMachine()
        self._clock = clock

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_order(self, identity: IdentityContext, request: OrderRequest) -> Order:
        """
        Create a new order in status pendiente.

        Args:
            identity: Caller identity, must be the CLIENTE placing the order
            request: Proposed order

        Returns:
            Persisted order with its assigned id

        Raises:
            UnauthorizedAccess: If the caller may not create this order
            BadOrderRequest: If the request breaks a business rule
            RestaurantNotFound: If the restaurant does not exist
            ClientNotFound: If the client does not exist
            ProductNotFound: If a line references a missing product
            InternalFailure: If a collaborator fails
        """
        with self._operation(
            "create_order",
            restaurant_id=request.restaurant_id,
            client_id=request.client_id,
        ):
            self._authorize(
                identity,
                Action.CREATE_ORDER,
                OwnershipTarget(
                    client_id=request.client_id,
                    restaurant_id=request.restaurant_id,
                ),
            )

            valid = self.validator.validate(request)

            if identity.subject_id != valid.client_id:
                logger.warning(
                    "Order client does not match caller",
                    subject_id=identity.subject_id,
                    client_id=valid.client_id,
                )
                raise UnauthorizedAccess(
                    "Not authorized",
                    action=Action.CREATE_ORDER.value,
                    subject_id=identity.subject_id,
                )

            if self.restaurants.owner_id_of(valid.restaurant_id) is None:
                raise RestaurantNotFound(
                    "Restaurant not found",
                    restaurant_id=valid.restaurant_id,
                )

            if not self.clients.exists(valid.client_id):
                raise ClientNotFound("Client not found", client_id=valid.client_id)

            for product_id in sorted({line.product_id for line in valid.lines}):
                if not self.products.exists(product_id):
                    raise ProductNotFound(
                        "Product not found",
                        product_id=product_id,
                    )

            now = self._clock()
            order = Order(
                client_id=valid.client_id,
                restaurant_id=valid.restaurant_id,
                status=OrderStatus.PENDIENTE,
                total=valid.total,
                comments=valid.comments,
                created_at=now,
                updated_at=now,
                lines=tuple(
                    OrderLine(
                        product_id=line.product_id,
                        quantity=line.quantity,
                        subtotal=line.subtotal,
                    )
                    for line in valid.lines
                ),
            )
            saved = self.orders.save(order)

            logger.info(
                "Order created",
                order_id=saved.id,
                restaurant_id=saved.restaurant_id,
                client_id=saved.client_id,
                total=str(saved.total),
                line_count=len(saved.lines),
            )
            return saved

    def update_order_status(
        self,
        identity: IdentityContext,
        order_id: int,
        new_status: OrderStatus,
        comments: Optional[str] = None,
    ) -> Order:
        """
        Move an order to a new status.

        Requesting the current status is accepted and only refreshes
        ``updated_at``.

        Args:
            identity: Caller identity, must own the order's restaurant
            order_id: Order identifier
            new_status: Requested status
            comments: Replacement comments, kept unchanged when None

        Returns:
            Updated order

        Raises:
            OrderNotFound: If the order does not exist
            UnauthorizedAccess: If the caller does not own the restaurant
            IllegalStatusTransition: If the change is not allowed
            InternalFailure: If a collaborator fails
        """
        with self._operation(
            "update_order_status",
            order_id=order_id,
            new_status=new_status.value,
        ):
            order = self._load_order(order_id, for_update=True)
            self._authorize(
                identity,
                Action.UPDATE_ORDER_STATUS,
                self._order_target(order),
            )

            next_status = self.state_machine.transition(
                order.status, new_status, identity
            )
            updated = self.orders.save(
                order.with_status(next_status, self._clock(), comments)
            )

            logger.info(
                "Order status updated",
                order_id=order_id,
                from_status=order.status.value,
                to_status=updated.status.value,
            )
            return updated

    def delete_order(self, identity: IdentityContext, order_id: int) -> None:
        """
        Delete an order.

        Any status may be deleted by the restaurant owner.

        Raises:
            OrderNotFound: If the order does not exist
            UnauthorizedAccess: If the caller does not own the restaurant
            InternalFailure: If a collaborator fails
        """
        with self._operation("delete_order", order_id=order_id):
            order = self._load_order(order_id, for_update=True)
            self._authorize(identity, Action.DELETE_ORDER, self._order_target(order))

            self.orders.delete(order_id)

            logger.info(
                "Order deleted",
                order_id=order_id,
                status=order.status.value,
                restaurant_id=order.restaurant_id,
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_order(self, identity: IdentityContext, order_id: int) -> Order:
        with self._operation("get_order", order_id=order_id):
            order = self._load_order(order_id)
            self._authorize(identity, Action.VIEW_ORDER, self._order_target(order))
            return order

    def find_orders_by_restaurant(
        self, identity: IdentityContext, restaurant_id: int
    ) -> List[Order]:
        with self._operation("find_orders_by_restaurant", restaurant_id=restaurant_id):
            self._authorize_restaurant_read(identity, restaurant_id)
            return self.orders.find_by_restaurant(restaurant_id)

    def find_orders_by_owner(
        self,
        identity: IdentityContext,
        owner_id: int,
        skip: int = 0,
        limit: int = 20,
    ) -> OrderPage:
        """
        Page through the orders of every restaurant owned by ``owner_id``.

        An owner without restaurants gets an empty page.
        """
        with self._operation(
            "find_orders_by_owner", owner_id=owner_id, skip=skip, limit=limit
        ):
            self._authorize(
                identity,
                Action.VIEW_ORDERS_BY_OWNER,
                OwnershipTarget(owner_user_id=owner_id),
            )
            return self.orders.find_by_owner(owner_id, skip, limit)

    def find_orders_by_client(
        self, identity: IdentityContext, client_id: int
    ) -> List[Order]:
        with self._operation("find_orders_by_client", client_id=client_id):
            self._authorize_client_read(identity, client_id)
            return self.orders.find_by_client(client_id)

    def find_orders_by_date_range(
        self,
        identity: IdentityContext,
        restaurant_id: int,
        start: datetime,
        end: datetime,
    ) -> List[Order]:
        with self._operation(
            "find_orders_by_date_range", restaurant_id=restaurant_id
        ):
            self._authorize_restaurant_read(identity, restaurant_id)
            start, end = self.validator.validate_date_range(start, end)
            return self.orders.find_by_date_range(restaurant_id, start, end)

    def find_orders_by_client_and_date_range(
        self,
        identity: IdentityContext,
        client_id: int,
        start: datetime,
        end: datetime,
    ) -> List[Order]:
        with self._operation(
            "find_orders_by_client_and_date_range", client_id=client_id
        ):
            self._authorize_client_read(identity, client_id)
            start, end = self.validator.validate_date_range(start, end)
            return self.orders.find_by_client_and_date_range(client_id, start, end)

    def find_orders_by_status(
        self,
        identity: IdentityContext,
        restaurant_id: int,
        status: OrderStatus,
    ) -> List[Order]:
        with self._operation(
            "find_orders_by_status",
            restaurant_id=restaurant_id,
            status=status.value,
        ):
            self._authorize_restaurant_read(identity, restaurant_id)
            return self.orders.find_by_status(restaurant_id, status)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _operation(self, operation: str, **context: Any) -> Iterator[None]:
        """Time an operation and turn unexpected collaborator errors into InternalFailure."""
        with log_performance(logger, operation, **context):
            try:
                yield
            except OrderLifecycleError:
                raise
            except Exception as e:
                logger.error(
                    "Unexpected error in order operation",
                    operation=operation,
                    error=str(e),
                    error_type=type(e).__name__,
                    **context,
                )
                raise InternalFailure(
                    f"Unexpected error during {operation}",
                    operation=operation,
                    error_type=type(e).__name__,
                    **context,
                ) from e

    def _authorize(
        self,
        identity: IdentityContext,
        action: Action,
        target: Optional[OwnershipTarget] = None,
    ) -> None:
        decision = self.authorizer.authorize(identity, action, target)
        if not decision.allowed:
            raise UnauthorizedAccess(
                "Not authorized",
                action=action.value,
                subject_id=identity.subject_id,
                reason=decision.reason,
            )

    def _load_order(self, order_id: int, for_update: bool = False) -> Order:
        order = self.orders.find_by_id(order_id, for_update=for_update)
        if order is None:
            logger.info("Order not found", order_id=order_id)
            raise OrderNotFound("Order not found", order_id=order_id)
        return order

    def _order_target(self, order: Order) -> OwnershipTarget:
        return OwnershipTarget(
            owner_user_id=self.restaurants.owner_id_of(order.restaurant_id),
            client_id=order.client_id,
            restaurant_id=order.restaurant_id,
        )

    def _authorize_restaurant_read(
        self, identity: IdentityContext, restaurant_id: int
    ) -> None:
        owner_id = self.restaurants.owner_id_of(restaurant_id)
        if owner_id is None:
            raise RestaurantNotFound(
                "Restaurant not found",
                restaurant_id=restaurant_id,
            )
        self._authorize(
            identity,
            Action.VIEW_ORDERS_BY_RESTAURANT,
            OwnershipTarget(owner_user_id=owner_id, restaurant_id=restaurant_id),
        )

    def _authorize_client_read(self, identity: IdentityContext, client_id: int) -> None:
        self._authorize(
            identity,
            Action.VIEW_ORDERS_BY_CLIENT,
            OwnershipTarget(client_id=client_id),
        )
        if not self.clients.exists(client_id):
            raise ClientNotFound("Client not found", client_id=client_id)
