"""
Ownership authorizer for order and catalog actions.

Decisions are role first, then ownership. The authorizer only sees the
minimal ownership facts of the target (restaurant owner, client, restaurant
id), never a persisted entity, so it has no storage dependencies and can be
exercised exhaustively in tests.
"""

import enum
from typing import Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict

from restaurant_orders.core.logging import get_logger
from restaurant_orders.services.auth.identity import IdentityContext, UserRole

logger = get_logger(__name__)


class Action(str, enum.Enum):
    """Operations that require an authorization decision."""

    CREATE_ORDER = "create_order"
    VIEW_ORDER = "view_order"
    VIEW_ORDERS_BY_RESTAURANT = "view_orders_by_restaurant"
    VIEW_ORDERS_BY_OWNER = "view_orders_by_owner"
    VIEW_ORDERS_BY_CLIENT = "view_orders_by_client"
    UPDATE_ORDER_STATUS = "update_order_status"
    DELETE_ORDER = "delete_order"
    MANAGE_RESTAURANT = "manage_restaurant"
    MANAGE_CATEGORY = "manage_category"
    MANAGE_PRODUCT = "manage_product"


class OwnershipTarget(BaseModel):
    """
    Ownership facts of the resource an action is aimed at.

    Attributes:
        owner_user_id: User id owning the restaurant involved
        client_id: Client id of the order(s) involved
        restaurant_id: Restaurant id involved
    """

    model_config = ConfigDict(frozen=True)

    owner_user_id: Optional[int] = None
    client_id: Optional[int] = None
    restaurant_id: Optional[int] = None


class AuthorizationDecision(BaseModel):
    """Allow, or Deny with a reason meant for logs only."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "AuthorizationDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "AuthorizationDecision":
        return cls(allowed=False, reason=reason)


Rule = Callable[[IdentityContext, OwnershipTarget], AuthorizationDecision]


def _is_restaurant_owner(
    identity: IdentityContext, target: OwnershipTarget
) -> bool:
    return (
        identity.role == UserRole.RESTAURANTE
        and target.owner_user_id is not None
        and identity.subject_id == target.owner_user_id
    )


def _is_order_client(identity: IdentityContext, target: OwnershipTarget) -> bool:
    return (
        identity.role == UserRole.CLIENTE
        and target.client_id is not None
        and identity.subject_id == target.client_id
    )


def _rule_client_role(
    identity: IdentityContext, target: OwnershipTarget
) -> AuthorizationDecision:
    if identity.role == UserRole.CLIENTE:
        return AuthorizationDecision.allow()
    return AuthorizationDecision.deny(
        f"role {identity.role.value} cannot place orders"
    )


def _rule_restaurant_owner(
    identity: IdentityContext, target: OwnershipTarget
) -> AuthorizationDecision:
    if identity.is_admin or _is_restaurant_owner(identity, target):
        return AuthorizationDecision.allow()
    if identity.role != UserRole.RESTAURANTE:
        return AuthorizationDecision.deny(
            f"role {identity.role.value} is not a restaurant owner"
        )
    return AuthorizationDecision.deny(
        f"user {identity.subject_id} does not own the restaurant "
        f"(owner={target.owner_user_id})"
    )


def _rule_order_client(
    identity: IdentityContext, target: OwnershipTarget
) -> AuthorizationDecision:
    if identity.is_admin or _is_order_client(identity, target):
        return AuthorizationDecision.allow()
    if identity.role != UserRole.CLIENTE:
        return AuthorizationDecision.deny(
            f"role {identity.role.value} cannot read client orders"
        )
    return AuthorizationDecision.deny(
        f"user {identity.subject_id} is not client {target.client_id}"
    )


def _rule_order_participant(
    identity: IdentityContext, target: OwnershipTarget
) -> AuthorizationDecision:
    if (
        identity.is_admin
        or _is_restaurant_owner(identity, target)
        or _is_order_client(identity, target)
    ):
        return AuthorizationDecision.allow()
    return AuthorizationDecision.deny(
        f"user {identity.subject_id} ({identity.role.value}) is neither the "
        f"order client nor the restaurant owner"
    )


class OwnershipAuthorizer:
    """
    Decides ALLOW or DENY for an identity, action and ownership target.

    ``authorize`` is total: for any identity, action and target it returns
    exactly one decision and never raises.
    """

    def __init__(self) -> None:
        self._rules: Dict[Action, Rule] = self._initialize_rules()

    def _initialize_rules(self) -> Dict[Action, Rule]:
        return {
            Action.CREATE_ORDER: _rule_client_role,
            Action.VIEW_ORDER: _rule_order_participant,
            Action.VIEW_ORDERS_BY_RESTAURANT: _rule_restaurant_owner,
            Action.VIEW_ORDERS_BY_OWNER: _rule_restaurant_owner,
            Action.VIEW_ORDERS_BY_CLIENT: _rule_order_client,
            Action.UPDATE_ORDER_STATUS: _rule_restaurant_owner,
            Action.DELETE_ORDER: _rule_restaurant_owner,
            Action.MANAGE_RESTAURANT: _rule_restaurant_owner,
            Action.MANAGE_CATEGORY: _rule_restaurant_owner,
            Action.MANAGE_PRODUCT: _rule_restaurant_owner,
        }

    def authorize(
        self,
        identity: IdentityContext,
        action: Action,
        target: Optional[OwnershipTarget] = None,
    ) -> AuthorizationDecision:
        """
        Decide whether ``identity`` may perform ``action`` on ``target``.

        Args:
            identity: Verified caller identity
            action: Requested action
            target: Ownership facts of the resource, empty when omitted

        Returns:
            AuthorizationDecision
        """
        rule = self._rules.get(action)
        if rule is None:
            decision = AuthorizationDecision.deny(f"no rule for action {action}")
        else:
            decision = rule(identity, target or OwnershipTarget())

        if not decision.allowed:
            logger.warning(
                "Authorization denied",
                action=getattr(action, "value", str(action)),
                subject_id=identity.subject_id,
                role=identity.role.value,
                reason=decision.reason,
            )
        return decision
