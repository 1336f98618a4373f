"""Static role -> permission table.

The table is fixed at process start and validated on import: every role has an
entry and every catalog permission is granted by at least one role.
"""

from __future__ import annotations

from enum import Enum
from typing import Mapping

from ..core.enums import Role
from ..core.exceptions import ConfigurationError


class Permission(str, Enum):
    CLAIMS_CREATE = "claims:create"
    CLAIMS_READ_OWN = "claims:read:own"
    CLAIMS_UPDATE_OWN = "claims:update:own"
    CLAIMS_APPROVE = "claims:approve"
    CLAIMS_READ_TEAM = "claims:read:team"
    CLAIMS_READ_ALL = "claims:read:all"
    CLAIMS_UPDATE_STATUS = "claims:update:status"

    OVERTIME_CREATE = "overtime:create"
    OVERTIME_READ_OWN = "overtime:read:own"
    OVERTIME_UPDATE_OWN = "overtime:update:own"
    OVERTIME_APPROVE = "overtime:approve"
    OVERTIME_READ_TEAM = "overtime:read:team"
    OVERTIME_READ_ALL = "overtime:read:all"
    OVERTIME_UPDATE_STATUS = "overtime:update:status"

    PROFILE_READ_OWN = "profile:read:own"
    PROFILE_UPDATE_OWN = "profile:update:own"

    USERS_READ_TEAM = "users:read:team"
    USERS_CREATE = "users:create"
    USERS_READ_ALL = "users:read:all"
    USERS_UPDATE_ALL = "users:update:all"
    USERS_DELETE = "users:delete"
    SALARY_VERIFY = "salary:verify"

    REPORTS_READ_TEAM = "reports:read:team"
    REPORTS_READ_ALL = "reports:read:all"
    REPORTS_EXPORT = "reports:export"

    RATES_READ = "rates:read"
    RATES_CREATE = "rates:create"
    RATES_UPDATE = "rates:update"
    RATES_DELETE = "rates:delete"

    AUDIT_LOGS_READ = "audit-logs:read"
    SYSTEM_CONFIG = "system:config"

    ROLES_MANAGE = "roles:manage"
    SYSTEM_ADMIN = "system:admin"


P = Permission

ROLE_PERMISSIONS: Mapping[Role, frozenset[Permission]] = {
    Role.STAFF: frozenset(
        {
            P.CLAIMS_CREATE,
            P.CLAIMS_READ_OWN,
            P.CLAIMS_UPDATE_OWN,
            P.OVERTIME_CREATE,
            P.OVERTIME_READ_OWN,
            P.OVERTIME_UPDATE_OWN,
            P.PROFILE_READ_OWN,
            P.PROFILE_UPDATE_OWN,
        }
    ),
    Role.MANAGER: frozenset(
        {
            P.CLAIMS_APPROVE,
            P.CLAIMS_READ_TEAM,
            P.OVERTIME_APPROVE,
            P.OVERTIME_READ_TEAM,
            P.USERS_READ_TEAM,
            P.REPORTS_READ_TEAM,
            P.SALARY_VERIFY,
        }
    ),
    Role.FINANCE: frozenset(
        {
            P.CLAIMS_APPROVE,
            P.CLAIMS_READ_ALL,
            P.CLAIMS_UPDATE_STATUS,
            P.OVERTIME_APPROVE,
            P.OVERTIME_READ_ALL,
            P.OVERTIME_UPDATE_STATUS,
            P.REPORTS_READ_ALL,
            P.REPORTS_EXPORT,
            P.RATES_READ,
        }
    ),
    Role.ADMIN: frozenset(
        {
            P.CLAIMS_APPROVE,
            P.OVERTIME_APPROVE,
            P.USERS_CREATE,
            P.USERS_READ_ALL,
            P.USERS_UPDATE_ALL,
            P.USERS_DELETE,
            P.SALARY_VERIFY,
            P.RATES_READ,
            P.RATES_CREATE,
            P.RATES_UPDATE,
            P.RATES_DELETE,
            P.AUDIT_LOGS_READ,
            P.SYSTEM_CONFIG,
        }
    ),
    # Superadmin passes every check through the evaluator override; the keys
    # listed here are the ones no other role grants.
    Role.SUPERADMIN: frozenset({P.ROLES_MANAGE, P.SYSTEM_ADMIN}),
}


def _invert(table: Mapping[Role, frozenset[Permission]]) -> dict[str, frozenset[Role]]:
    missing_roles = [r.value for r in Role if r not in table]
    if missing_roles:
        raise ConfigurationError(f"Roles without a permission entry: {missing_roles}")

    granted: dict[str, set[Role]] = {}
    for role, perms in table.items():
        for perm in perms:
            granted.setdefault(perm.value, set()).add(role)

    dead = [p.value for p in Permission if p.value not in granted]
    if dead:
        raise ConfigurationError(f"Permissions granted by no role: {dead}")

    return {key: frozenset(roles) for key, roles in granted.items()}


PERMISSION_ROLES: Mapping[str, frozenset[Role]] = _invert(ROLE_PERMISSIONS)


def roles_granting(permission: Permission | str) -> frozenset[Role]:
    """Roles that grant ``permission``; empty for keys not in the catalog."""
    key = permission.value if isinstance(permission, Permission) else str(permission)
    return PERMISSION_ROLES.get(key, frozenset())


def permissions_for(roles: frozenset[Role] | set[Role]) -> frozenset[Permission]:
    """Effective permission set for a role set (superadmin gets the catalog)."""
    if Role.SUPERADMIN in roles:
        return frozenset(Permission)
    out: set[Permission] = set()
    for role in roles:
        out |= ROLE_PERMISSIONS.get(role, frozenset())
    return frozenset(out)


def parse_roles(values) -> frozenset[Role]:
    """Build a role set from raw strings; unknown names raise ValueError."""
    return frozenset(Role(str(v).strip()) for v in values or [])
