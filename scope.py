"""
Scope resolution.
Turns (principal, requested scope, explicit user id) into the set of user ids
whose work logs the caller may see. Listing, export and dashboard all call
resolve_scope; there is no other authorization path for reads.
"""
import logging
from enum import Enum as PyEnum
from typing import NamedTuple, Optional

from sqlalchemy.orm import Session

from errors import ForbiddenError, ValidationError
from models import UserRole
from repository import get_member_ids_for_teams, get_team_ids_for_user
from schemas import Principal

logger = logging.getLogger(__name__)


class Scope(str, PyEnum):
    OWN = "own"
    TEAM = "team"
    ALL = "all"
    USER = "user"


# Policy outcomes
ALLOW = "allow"
DENY = "deny"
SELF_ONLY = "self_only"  # allowed only when the explicit user is the caller

SCOPE_POLICY: dict[tuple[Scope, UserRole], str] = {
    (Scope.OWN, UserRole.USER): ALLOW,
    (Scope.OWN, UserRole.MANAGER): ALLOW,
    (Scope.OWN, UserRole.ADMIN): ALLOW,
    (Scope.TEAM, UserRole.USER): ALLOW,
    (Scope.TEAM, UserRole.MANAGER): ALLOW,
    (Scope.TEAM, UserRole.ADMIN): ALLOW,
    (Scope.ALL, UserRole.USER): DENY,
    (Scope.ALL, UserRole.MANAGER): DENY,
    (Scope.ALL, UserRole.ADMIN): ALLOW,
    (Scope.USER, UserRole.USER): SELF_ONLY,
    (Scope.USER, UserRole.MANAGER): SELF_ONLY,
    (Scope.USER, UserRole.ADMIN): ALLOW,
}

FORBIDDEN_MESSAGES = {
    Scope.ALL: "Only admins can view all work logs",
    Scope.USER: "You can only view your own work logs",
}


class ResolvedScope(NamedTuple):
    scope: Scope
    user_ids: Optional[frozenset[str]]  # None: no user filter


def check_scope_policy(principal: Principal, scope: Scope, explicit_user_id: Optional[str] = None) -> None:
    """
    Evaluate the (scope, role) table.

    Raises:
        ForbiddenError: If the role may not use the scope
    """
    decision = SCOPE_POLICY.get((scope, principal.role), DENY)
    if decision == ALLOW:
        return
    if decision == SELF_ONLY and explicit_user_id == principal.id:
        return

    logger.warning(
        "Scope %s denied for user %s (role=%s)", scope.value, principal.id, principal.role.value
    )
    raise ForbiddenError(FORBIDDEN_MESSAGES.get(scope, "Access denied"))


def authorize_scope(principal: Principal, scope: Scope, explicit_user_id: Optional[str] = None) -> None:
    """
    Storage-free half of scope resolution.

    Raises:
        ValidationError: scope=user without a user id
        ForbiddenError: Role insufficient for the scope
    """
    if scope == Scope.USER and not explicit_user_id:
        raise ValidationError("userId is required when scope is 'user'")
    check_scope_policy(principal, scope, explicit_user_id)


def resolve_scope(
    db: Session,
    principal: Principal,
    scope: Scope = Scope.OWN,
    explicit_user_id: Optional[str] = None,
) -> ResolvedScope:
    """
    Resolve a requested scope into target user ids.

    Args:
        db: Database session (read-only use, team scope only)
        principal: Authenticated caller
        scope: Requested scope
        explicit_user_id: Target user for scope=user

    Returns:
        ResolvedScope; user_ids is None for scope=all

    Raises:
        ValidationError: scope=user without a user id
        ForbiddenError: Role insufficient for the scope
    """
    # Policy is checked before any storage access
    authorize_scope(principal, scope, explicit_user_id)

    if scope == Scope.ALL:
        return ResolvedScope(scope, None)

    if scope == Scope.USER:
        return ResolvedScope(scope, frozenset({explicit_user_id}))

    if scope == Scope.TEAM:
        team_ids = get_team_ids_for_user(db, principal.id)
        if team_ids:
            member_ids = get_member_ids_for_teams(db, team_ids)
            return ResolvedScope(scope, frozenset(member_ids | {principal.id}))
        # Not in any team: same result as own
        return ResolvedScope(Scope.OWN, frozenset({principal.id}))

    return ResolvedScope(Scope.OWN, frozenset({principal.id}))
