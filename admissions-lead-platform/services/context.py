"""
Acting-user context passed explicitly into every service operation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from domain.call_session import CallSession
from domain.errors import PermissionDeniedError
from domain.staff import StaffMember, UserRole


@dataclass
class ActorContext:
    """
    The staff member performing an operation, plus its call-session slot.

    Each client session owns exactly one CallSession; it is never shared between
    actors.
    """

    actor: StaffMember
    call_session: CallSession = field(default_factory=CallSession)

    @property
    def actor_id(self) -> str:
        return self.actor.staff_id

    def require_role(self, roles: Iterable[UserRole], action: str) -> None:
        allowed = set(roles)
        if not self.actor.is_approved or self.actor.role not in allowed:
            names = ", ".join(sorted(role.value for role in allowed))
            raise PermissionDeniedError(f"Only {names} can {action}.")


__all__ = ["ActorContext"]
