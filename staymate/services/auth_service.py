"""Actor resolution and ownership checks.

Identity is issued upstream; this service only interprets the actor id and
role it was handed and decides whether that actor may touch a listing.
"""

from __future__ import annotations

from staymate.domain.errors import PermissionDeniedError
from staymate.domain.models import Actor, ActorRole


class AuthenticationError(Exception):
    """Base authentication failure."""


class MissingActorError(AuthenticationError):
    """Raised when the request carries no actor identity."""


class InvalidActorError(AuthenticationError):
    """Raised when the actor id or role cannot be interpreted."""


class AuthService:
    """Turns raw identity claims into an Actor and enforces roles."""

    def resolve_actor(self, actor_id: str | None, role: str | None) -> Actor:
        if not actor_id or not role:
            raise MissingActorError("Actor id and role headers are required")
        try:
            parsed_id = int(actor_id)
        except ValueError as exc:
            raise InvalidActorError("Actor id must be an integer") from exc
        if parsed_id <= 0:
            raise InvalidActorError("Actor id must be positive")
        try:
            parsed_role = ActorRole(role.strip().lower())
        except ValueError as exc:
            raise InvalidActorError(f"Unknown actor role: {role!r}") from exc
        return Actor(actor_id=parsed_id, role=parsed_role)

    @staticmethod
    def require_role(actor: Actor, *roles: ActorRole) -> None:
        if actor.role not in roles:
            allowed = ", ".join(role.value for role in roles)
            raise PermissionDeniedError(f"This action requires role: {allowed}")

    @staticmethod
    def require_self(actor: Actor, student_id: int) -> None:
        """Students may only act on their own bookings."""
        if actor.role is not ActorRole.STUDENT or actor.actor_id != student_id:
            raise PermissionDeniedError("Students may only act on their own bookings")

    @staticmethod
    def require_owner(actor: Actor, owner_id: int, role: ActorRole) -> None:
        if actor.role is not role or actor.actor_id != owner_id:
            raise PermissionDeniedError("Only the listing owner may perform this action")
