"""
Authorization predicates.

Pure functions of (identity, resource) -> bool, one per capability, so
they can be tested without any HTTP plumbing. Services turn a False into
ForbiddenError; a missing resource is NotFoundError before any of these run.
"""
from typing import Any

from core.auth import Identity


def is_owner(identity: Identity, resource: Any) -> bool:
    return resource.user_id == identity.id


def can_manage_expense(identity: Identity, expense: Any) -> bool:
    """Read, update or delete an expense: owner only."""
    return is_owner(identity, expense)


def can_manage_todo(identity: Identity, todo: Any) -> bool:
    """Read, update or delete a todo (and its subtasks): owner only."""
    return is_owner(identity, todo)


def can_set_training_visibility(identity: Identity) -> bool:
    """Setting or changing `is_public` on any training plan: admin only."""
    return identity.is_admin


def can_delete_training(identity: Identity, training: Any) -> bool:
    """
    Public plans are deleted by admins, private plans by their owner.

    An admin cannot delete someone else's private plan, and an owner cannot
    delete their own plan once it is public.
    """
    if training.is_public:
        return identity.is_admin
    return is_owner(identity, training)
