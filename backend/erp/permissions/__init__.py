# Overview: Permission engine package.
# Re-exports the vocabulary, default role grants and pure check helpers.

from .definitions import (
    Action,
    CRUD_ACTIONS,
    RESOURCES,
    Resource,
    SYSTEM_ROLES,
    SystemRole,
    VALID_ACTIONS,
    WILDCARD,
)
from .roles import DEFAULT_ROLE_GRANTS
from .helpers import (
    MergeStrategy,
    accessible_resources,
    can_access_module,
    get_system_role_grants,
    has_all_permissions,
    has_any_permission,
    has_permission,
    merge_grants,
)

__all__ = [
    "Action",
    "CRUD_ACTIONS",
    "RESOURCES",
    "Resource",
    "SYSTEM_ROLES",
    "SystemRole",
    "VALID_ACTIONS",
    "WILDCARD",
    "DEFAULT_ROLE_GRANTS",
    "MergeStrategy",
    "accessible_resources",
    "can_access_module",
    "get_system_role_grants",
    "has_all_permissions",
    "has_any_permission",
    "has_permission",
    "merge_grants",
]
