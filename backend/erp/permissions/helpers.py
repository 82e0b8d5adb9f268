# Overview: Pure permission checks over already-loaded grant lists.
# Nothing here touches the database; role_service loads the grants.

import copy

from .definitions import SystemRole, WILDCARD
from .roles import DEFAULT_ROLE_GRANTS


class MergeStrategy:
    """
    How a custom role combines with the system-role defaults.

    REPLACE: a non-empty custom grant list is used verbatim; the system
    defaults are discarded entirely.
    UNION: actions are unioned per resource across both lists.
    """
    REPLACE = "replace"
    UNION = "union"

    ALL = (REPLACE, UNION)


def get_system_role_grants(role: str) -> list[dict]:
    """Default grants for a system role. Unknown role names get the `user` grants."""
    grants = DEFAULT_ROLE_GRANTS.get(role) or DEFAULT_ROLE_GRANTS[SystemRole.USER]
    return copy.deepcopy(grants)


def has_permission(grants: list[dict], resource: str, action: str) -> bool:
    for grant in grants or []:
        if grant.get("resource") in (WILDCARD, resource) and action in grant.get("actions", []):
            return True
    return False


def has_any_permission(grants: list[dict], checks) -> bool:
    """checks: iterable of (resource, action) pairs."""
    return any(has_permission(grants, resource, action) for resource, action in checks)


def has_all_permissions(grants: list[dict], checks) -> bool:
    return all(has_permission(grants, resource, action) for resource, action in checks)


def accessible_resources(grants: list[dict], action: str = "read") -> list[str]:
    """Resources on which `action` is allowed; ['*'] when a wildcard grant carries it."""
    resources: list[str] = []
    for grant in grants or []:
        if action not in grant.get("actions", []):
            continue
        if grant.get("resource") == WILDCARD:
            return [WILDCARD]
        if grant["resource"] not in resources:
            resources.append(grant["resource"])
    return resources


def can_access_module(grants: list[dict], module: str) -> bool:
    return has_permission(grants, module, "read")


def merge_grants(system_role: str, custom_grants: list[dict] | None, strategy: str = MergeStrategy.REPLACE) -> list[dict]:
    """custom_grants=None means no active custom role; an empty list is a role that grants nothing."""
    base = get_system_role_grants(system_role)
    if custom_grants is None:
        return base

    if strategy == MergeStrategy.REPLACE:
        return copy.deepcopy(custom_grants)

    if strategy != MergeStrategy.UNION:
        raise ValueError(f"Unknown merge strategy: {strategy}")

    merged: dict[str, list[str]] = {}
    for grant in base + list(custom_grants):
        actions = merged.setdefault(grant["resource"], [])
        for action in grant.get("actions", []):
            if action not in actions:
                actions.append(action)
    return [{"resource": resource, "actions": actions} for resource, actions in merged.items()]
