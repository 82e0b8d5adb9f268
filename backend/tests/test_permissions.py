# Overview: Pytest coverage for the pure grant-checking helpers.

import pytest

from erp.permissions import (
    Action,
    MergeStrategy,
    Resource,
    SystemRole,
    accessible_resources,
    can_access_module,
    get_system_role_grants,
    has_all_permissions,
    has_any_permission,
    has_permission,
    merge_grants,
)


class TestHasPermission:

    def test_exact_grant(self):
        grants = [{"resource": "products", "actions": ["read"]}]
        assert has_permission(grants, "products", "read")
        assert not has_permission(grants, "products", "delete")
        assert not has_permission(grants, "orders", "read")

    def test_wildcard_resource_matches_anything(self):
        grants = [{"resource": "*", "actions": ["read"]}]
        assert has_permission(grants, "invoices", "read")
        assert has_permission(grants, "anything-at-all", "read")
        assert not has_permission(grants, "invoices", "create")

    def test_empty_grants_deny(self):
        assert not has_permission([], "products", "read")
        assert not has_permission(None, "products", "read")

    def test_admin_defaults_allow_everything(self):
        grants = get_system_role_grants(SystemRole.ADMIN)
        for resource in ("products", "invoices", "roles", "users"):
            for action in ("create", "read", "update", "delete", "export", "import"):
                assert has_permission(grants, resource, action)

    def test_user_defaults_are_read_only(self):
        grants = get_system_role_grants(SystemRole.USER)
        assert has_permission(grants, Resource.DASHBOARD, Action.READ)
        assert has_permission(grants, Resource.PRODUCTS, Action.READ)
        assert not has_permission(grants, Resource.PRODUCTS, Action.CREATE)
        assert not has_permission(grants, Resource.INVENTORY, Action.READ)


class TestAnyAll:

    GRANTS = [
        {"resource": "products", "actions": ["read", "update"]},
        {"resource": "orders", "actions": ["read"]},
    ]

    def test_any(self):
        assert has_any_permission(self.GRANTS, [("orders", "delete"), ("products", "update")])
        assert not has_any_permission(self.GRANTS, [("orders", "delete"), ("invoices", "read")])

    def test_all(self):
        assert has_all_permissions(self.GRANTS, [("orders", "read"), ("products", "update")])
        assert not has_all_permissions(self.GRANTS, [("orders", "read"), ("orders", "update")])

    def test_empty_checks(self):
        assert not has_any_permission(self.GRANTS, [])
        assert has_all_permissions(self.GRANTS, [])


class TestSystemRoleGrants:

    def test_unknown_role_falls_back_to_user(self):
        assert get_system_role_grants("nope") == get_system_role_grants(SystemRole.USER)

    def test_returns_independent_copy(self):
        grants = get_system_role_grants(SystemRole.MANAGER)
        grants[0]["actions"].append("delete")
        assert "delete" not in get_system_role_grants(SystemRole.MANAGER)[0]["actions"]

    def test_manager_cannot_touch_roles_or_users(self):
        grants = get_system_role_grants(SystemRole.MANAGER)
        assert not has_permission(grants, Resource.ROLES, Action.READ)
        assert not has_permission(grants, Resource.USERS, Action.CREATE)
        assert has_permission(grants, Resource.INVENTORY, Action.UPDATE)


class TestAccessibleResources:

    def test_wildcard(self):
        assert accessible_resources(get_system_role_grants(SystemRole.ADMIN)) == ["*"]

    def test_lists_resources_in_grant_order(self):
        grants = get_system_role_grants(SystemRole.USER)
        assert accessible_resources(grants, "read") == ["dashboard", "products", "orders"]
        assert accessible_resources(grants, "create") == []

    def test_can_access_module(self):
        grants = get_system_role_grants(SystemRole.EMPLOYEE)
        assert can_access_module(grants, "customers")
        assert not can_access_module(grants, "invoices")


class TestMergeGrants:

    CUSTOM = [{"resource": "invoices", "actions": ["read"]}]

    def test_no_custom_role_uses_system_defaults(self):
        assert merge_grants(SystemRole.USER, None) == get_system_role_grants(SystemRole.USER)

    def test_empty_custom_role_grants_nothing(self):
        assert merge_grants(SystemRole.MANAGER, [], MergeStrategy.REPLACE) == []
        assert not has_permission(merge_grants(SystemRole.MANAGER, []), "dashboard", "read")
        # union with an empty role is just the defaults
        assert merge_grants(SystemRole.USER, [], MergeStrategy.UNION) == get_system_role_grants(SystemRole.USER)

    def test_replace_discards_defaults(self):
        merged = merge_grants(SystemRole.USER, self.CUSTOM, MergeStrategy.REPLACE)
        assert merged == self.CUSTOM
        assert not has_permission(merged, "dashboard", "read")

    def test_union_combines_per_resource(self):
        custom = self.CUSTOM + [{"resource": "products", "actions": ["update"]}]
        merged = merge_grants(SystemRole.USER, custom, MergeStrategy.UNION)
        assert has_permission(merged, "dashboard", "read")
        assert has_permission(merged, "invoices", "read")
        products = [g for g in merged if g["resource"] == "products"]
        assert len(products) == 1
        assert products[0]["actions"] == ["read", "update"]

    def test_unknown_strategy(self):
        with pytest.raises(ValueError):
            merge_grants(SystemRole.USER, self.CUSTOM, "intersect")
