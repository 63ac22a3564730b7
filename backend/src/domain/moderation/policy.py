"""Access policy for moderation transitions.

Role hierarchy (descending privilege): ADMIN > VOLUNTEER > NORMAL

Permission Matrix:
┌──────────────────────────────┬───────┬───────────┬────────┐
│ Transition                   │ ADMIN │ VOLUNTEER │ NORMAL │
├──────────────────────────────┼───────┼───────────┼────────┤
│ File approve / reject        │   ✓   │     ✓     │        │
│ File ban / unban / delete    │   ✓   │           │        │
│ File edit (metadata)         │ owner │   owner   │ owner  │
│ User ban / unban upload   *  │   ✓   │     ✓     │        │
│ User role change / delete *  │   ✓   │           │        │
│ Category / Tag create/update │   ✓   │     ✓     │        │
│ Category / Tag delete        │   ✓   │           │        │
└──────────────────────────────┴───────┴───────────┴────────┘

* additionally the actor's role must be strictly higher than the target
  user's current role, so nobody acts on a peer or a superior. For role
  changes the requested role may not exceed the actor's own role.

The policy is a pure function of its inputs; the caller loads the target
first so that a missing entity is reported as NotFound before any denial.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from .enums import Transition, UserRole
from .errors import ForbiddenError


@dataclass(frozen=True)
class Actor:
    """The authenticated identity invoking a transition."""
    id: int
    role: UserRole


# Minimum role per transition
MINIMUM_ROLE: Dict[Transition, UserRole] = {
    Transition.FILE_APPROVE: UserRole.VOLUNTEER,
    Transition.FILE_REJECT: UserRole.VOLUNTEER,
    Transition.FILE_BAN: UserRole.ADMIN,
    Transition.FILE_UNBAN: UserRole.ADMIN,
    Transition.FILE_DELETE: UserRole.ADMIN,
    Transition.FILE_EDIT: UserRole.NORMAL,
    Transition.USER_BAN_UPLOAD: UserRole.VOLUNTEER,
    Transition.USER_UNBAN_UPLOAD: UserRole.VOLUNTEER,
    Transition.USER_CHANGE_ROLE: UserRole.ADMIN,
    Transition.USER_DELETE: UserRole.ADMIN,
    Transition.CATEGORY_CREATE: UserRole.VOLUNTEER,
    Transition.CATEGORY_UPDATE: UserRole.VOLUNTEER,
    Transition.CATEGORY_DELETE: UserRole.ADMIN,
    Transition.TAG_CREATE: UserRole.VOLUNTEER,
    Transition.TAG_UPDATE: UserRole.VOLUNTEER,
    Transition.TAG_DELETE: UserRole.ADMIN,
}

# Transitions whose target is a user account
USER_TARGETED = frozenset({
    Transition.USER_BAN_UPLOAD,
    Transition.USER_UNBAN_UPLOAD,
    Transition.USER_CHANGE_ROLE,
    Transition.USER_DELETE,
})

# Transitions restricted to the entity owner
OWNER_ONLY = frozenset({Transition.FILE_EDIT})


def is_allowed(
    actor: Actor,
    transition: Transition,
    target_role: Optional[UserRole] = None,
    target_owner_id: Optional[int] = None,
    requested_role: Optional[UserRole] = None,
) -> bool:
    """Decide whether ``actor`` may invoke ``transition``.

    Args:
        actor: Acting identity with its current role
        transition: Requested transition
        target_role: Current role of the target user (user transitions)
        target_owner_id: Owner of the target entity (owner-only transitions)
        requested_role: New role for USER_CHANGE_ROLE

    Returns:
        True if permitted, False otherwise

    Examples:
        >>> is_allowed(Actor(1, UserRole.VOLUNTEER), Transition.FILE_APPROVE)
        True
        >>> is_allowed(Actor(1, UserRole.VOLUNTEER), Transition.USER_BAN_UPLOAD,
        ...            target_role=UserRole.VOLUNTEER)
        False
    """
    if actor.role < MINIMUM_ROLE[transition]:
        return False

    if transition in OWNER_ONLY:
        return target_owner_id is not None and target_owner_id == actor.id

    if transition in USER_TARGETED:
        if target_role is None or not actor.role > target_role:
            return False
        if transition == Transition.USER_CHANGE_ROLE:
            if requested_role is None or requested_role > actor.role:
                return False

    return True


def authorize(
    actor: Actor,
    transition: Transition,
    target_role: Optional[UserRole] = None,
    target_owner_id: Optional[int] = None,
    requested_role: Optional[UserRole] = None,
) -> None:
    """Raise ForbiddenError unless ``is_allowed`` grants the transition."""
    if not is_allowed(actor, transition, target_role, target_owner_id, requested_role):
        context = {"actor_role": actor.role.value, "transition": transition.value}
        if target_role is not None:
            context["target_role"] = target_role.value
        raise ForbiddenError(
            f"Role {actor.role.value} may not perform {transition.value}",
            context=context,
        )
