"""
FastAPI dependencies for identity and service wiring.

The bearer token is verified exactly once per request here. The resulting
IdentityContext is passed explicitly into every service call.
"""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from restaurant_orders.core.logging import get_logger, set_subject_id
from restaurant_orders.core.security import TokenError, decode_token
from restaurant_orders.database.connection import get_db
from restaurant_orders.services.auth.identity import IdentityContext
from restaurant_orders.services.orders.ports import IdentityProvider
from restaurant_orders.services.orders.repository import (
    SqlAlchemyClientLookup,
    SqlAlchemyOrderStore,
    SqlAlchemyProductLookup,
    SqlAlchemyRestaurantLookup,
)
from restaurant_orders.services.orders.service import OrderLifecycleService

logger = get_logger(__name__)

security = HTTPBearer(auto_error=False)


class BearerTokenIdentityProvider(IdentityProvider):
    """
    Identity provider backed by a signed bearer JWT.

    Attributes:
        token: Raw bearer token from the Authorization header
    """

    def __init__(self, token: str):
        self.token = token

    def current_identity(self) -> IdentityContext:
        """
        Verify the token and build the caller identity.

        Raises:
            TokenError: If the token is missing, expired or invalid
            ValueError: If the claims do not describe a valid identity
        """
        claims = decode_token(self.token)
        return IdentityContext.from_claims(claims)


def get_identity(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> IdentityContext:
    """
    Resolve the identity of the current caller.

    Args:
        credentials: HTTP Bearer token from Authorization header

    Returns:
        IdentityContext: Verified caller identity

    Raises:
        HTTPException: 401 if the token is missing, invalid or malformed
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        logger.warning("Authentication failed: No credentials provided")
        raise credentials_exception

    provider = BearerTokenIdentityProvider(credentials.credentials)
    try:
        identity = provider.current_identity()
    except TokenError as e:
        logger.warning("Authentication failed", code=e.code)
        raise credentials_exception
    except ValueError as e:
        logger.warning("Authentication failed: Invalid identity claims", error=str(e))
        raise credentials_exception

    set_subject_id(identity.subject_id)
    logger.debug(
        "Caller authenticated",
        subject_id=identity.subject_id,
        role=identity.role.value,
    )
    return identity


def get_order_service(
    db: Annotated[Session, Depends(get_db)],
) -> OrderLifecycleService:
    """Build the order lifecycle service on the request session."""
    return OrderLifecycleService(
        orders=SqlAlchemyOrderStore(db),
        restaurants=SqlAlchemyRestaurantLookup(db),
        clients=SqlAlchemyClientLookup(db),
        products=SqlAlchemyProductLookup(db),
    )


CurrentIdentity = Annotated[IdentityContext, Depends(get_identity)]
OrderServiceDep = Annotated[OrderLifecycleService, Depends(get_order_service)]
