"""
Caller identity for a single request.

The identity is produced once at the boundary (token verification) and then
passed explicitly into every service call. Nothing in the service layer reads
identity from ambient state.
"""

import enum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field


class UserRole(str, enum.Enum):
    """Closed set of roles a verified identity can carry."""

    CLIENTE = "CLIENTE"
    RESTAURANTE = "RESTAURANTE"
    ADMIN = "ADMIN"

    @classmethod
    def from_claim(cls, value: str) -> "UserRole":
        """
        Convert a role claim to UserRole.

        Accepts the bare role name in any case and the ``ROLE_`` prefixed
        authority form issued by older tokens.

        Args:
            value: Role claim value

        Returns:
            UserRole enum value

        Raises:
            ValueError: If value is not a known role
        """
        if not isinstance(value, str):
            raise ValueError(f"Invalid role: {value!r}")
        normalized = value.strip().upper()
        if normalized.startswith("ROLE_"):
            normalized = normalized[len("ROLE_"):]
        try:
            return cls[normalized]
        except KeyError:
            valid_values = ", ".join(role.value for role in cls)
            raise ValueError(
                f"Invalid role: {value}. Valid values are: {valid_values}"
            )


class IdentityContext(BaseModel):
    """
    Verified identity claims of the caller.

    Attributes:
        subject_id: User id, unique per user
        email: User email, secondary identity key
        role: Role decided at the identity-provider boundary
    """

    model_config = ConfigDict(frozen=True)

    subject_id: int = Field(..., gt=0, description="Authenticated user id")
    email: str = Field(..., min_length=3, max_length=255, description="User email")
    role: UserRole = Field(..., description="User role")

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "IdentityContext":
        """
        Build an identity from verified token claims.

        Args:
            claims: Decoded token payload with ``sub``, ``email`` and ``role``

        Returns:
            IdentityContext for the token subject

        Raises:
            ValueError: If a claim is missing or malformed
        """
        subject = claims.get("sub")
        if subject is None:
            raise ValueError("Token missing 'sub' claim")
        try:
            subject_id = int(subject)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid subject id in token: {subject!r}")

        email = claims.get("email")
        if not email:
            raise ValueError("Token missing 'email' claim")

        return cls(
            subject_id=subject_id,
            email=email,
            role=UserRole.from_claim(claims.get("role")),
        )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
