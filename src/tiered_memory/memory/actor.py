# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Actor context for memory operations.

Identity is never resolved from ambient state. Callers resolve the current
actor once (through an ActorResolver) and pass the resulting ActorContext
into every per-user operation.
"""

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from tiered_memory.exceptions import AuthenticationRequired


@dataclass(frozen=True)
class ActorContext:
    """The authenticated caller.

    Attributes:
        user_id: Stable user identifier, owner of memories.
        enterprise_id: Organization/tenant the user belongs to.
    """

    user_id: str
    enterprise_id: str

    def owns(self, record) -> bool:
        """Check if a record belongs to this actor."""
        return (
            getattr(record, "user_id", None) == self.user_id
            and getattr(record, "enterprise_id", None) == self.enterprise_id
        )


@runtime_checkable
class ActorResolver(Protocol):
    """Extension point resolving the caller from request context.

    Returns None when the request is unauthenticated.
    """

    def resolve(self, request_context: dict) -> Optional[ActorContext]:
        ...


def require_actor(
    actor: Optional[ActorContext], operation: Optional[str] = None
) -> ActorContext:
    """Return actor, or raise AuthenticationRequired if there is none.

    Args:
        actor: The resolved actor, possibly None.
        operation: Operation name used in the error message.

    Raises:
        AuthenticationRequired: If actor is None.
    """
    if actor is None:
        raise AuthenticationRequired(operation)
    return actor
