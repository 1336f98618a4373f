"""Permission evaluation.

Every role/permission check in the system goes through this module. The
superadmin override is applied before any table lookup so that no table entry
can narrow it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

from ..core.enums import Role
from ..core.exceptions import ForbiddenError, UnauthenticatedError
from ..core.logging_config import get_logger
from .permissions import Permission, roles_granting

logger = get_logger("rbac.evaluator")

Requirement = Union[Role, Permission, str]


@dataclass(frozen=True)
class Principal:
    """Authenticated actor supplied per request by the identity collaborator."""

    subject_id: int
    roles: frozenset[Role] = field(default_factory=frozenset)

    def __post_init__(self):
        # Accept any iterable of Role/str but always store a frozenset of Role.
        object.__setattr__(self, "roles", frozenset(Role(r) for r in self.roles))

    @property
    def is_superadmin(self) -> bool:
        return Role.SUPERADMIN in self.roles


def evaluate(principal_roles: Iterable[Role], requirement: Requirement) -> bool:
    roles = frozenset(principal_roles or ())
    if Role.SUPERADMIN in roles:
        return True
    if not roles:
        return False
    if isinstance(requirement, Role):
        return requirement in roles
    # Anything else is a permission key; unknown keys resolve to no roles.
    return bool(roles & roles_granting(requirement))


def evaluate_any(principal_roles: Iterable[Role], requirements: Iterable[Requirement]) -> bool:
    roles = frozenset(principal_roles or ())
    return any(evaluate(roles, req) for req in requirements)


def evaluate_all(principal_roles: Iterable[Role], requirements: Iterable[Requirement]) -> bool:
    roles = frozenset(principal_roles or ())
    return all(evaluate(roles, req) for req in requirements)


def check_permission(principal: Optional[Principal], requirement: Requirement) -> bool:
    if principal is None:
        return False
    return evaluate(principal.roles, requirement)


def require_principal(principal: Optional[Principal]) -> Principal:
    if principal is None:
        raise UnauthenticatedError()
    return principal


def require(principal: Optional[Principal], requirement: Requirement) -> Principal:
    principal = require_principal(principal)
    if not evaluate(principal.roles, requirement):
        logger.info("permission_denied", extra={"actor_id": principal.subject_id})
        raise ForbiddenError()
    return principal


def require_any(principal: Optional[Principal], requirements: Iterable[Requirement]) -> Principal:
    principal = require_principal(principal)
    if not evaluate_any(principal.roles, requirements):
        logger.info("permission_denied", extra={"actor_id": principal.subject_id})
        raise ForbiddenError()
    return principal
