# Overview: Pytest coverage for custom roles, assignment and effective grants.

import pytest

from erp.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from erp.models import Role, SecurityEvent
from erp.services import role_service


INVOICE_READER = {
    "name": "Invoice Reader",
    "description": "Reads invoices only",
    "permissions": [{"resource": "invoices", "actions": ["read"]}],
}


class TestSystemRoles:

    def test_seeded_once_per_org(self, db_session, org_a):
        role_service.initialize_system_roles(org_a.id)
        db_session.commit()

        roles = db_session.query(Role).filter_by(org_id=org_a.id, is_system=True).all()
        assert sorted(r.name for r in roles) == ["admin", "employee", "manager", "user"]

    def test_system_role_is_immutable(self, db_session, org_a):
        admin_role = db_session.query(Role).filter_by(org_id=org_a.id, name="admin").one()

        with pytest.raises(AuthorizationError):
            role_service.update_role(org_a.id, admin_role.id, {"description": "hacked"})
        with pytest.raises(AuthorizationError):
            role_service.delete_role(org_a.id, admin_role.id)

    def test_list_excludes_system_on_request(self, db_session, org_a):
        role_service.create_role(org_a.id, INVOICE_READER)

        assert len(role_service.list_roles(org_a.id)) == 5
        custom = role_service.list_roles(org_a.id, include_system=False)
        assert [r.name for r in custom] == ["Invoice Reader"]


class TestCreateUpdateRole:

    def test_create(self, db_session, org_a):
        role = role_service.create_role(org_a.id, INVOICE_READER)

        assert role.id is not None
        assert role.is_system is False
        assert role.grants == [{"resource": "invoices", "actions": ["read"]}]

    def test_duplicate_name_conflicts(self, db_session, org_a):
        role_service.create_role(org_a.id, INVOICE_READER)
        with pytest.raises(ConflictError):
            role_service.create_role(org_a.id, INVOICE_READER)

    def test_same_name_allowed_in_another_org(self, db_session, org_a, org_b):
        role_service.create_role(org_a.id, INVOICE_READER)
        role = role_service.create_role(org_b.id, INVOICE_READER)
        assert role.org_id == org_b.id

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "x", "permissions": [{"resource": "invoices", "actions": ["read"]}]},
            {"name": "Bad!Name", "permissions": [{"resource": "invoices", "actions": ["read"]}]},
            {"name": "No Grants", "permissions": []},
            {"name": "Empty Actions", "permissions": [{"resource": "invoices", "actions": []}]},
            {"name": "Bad Action", "permissions": [{"resource": "invoices", "actions": ["fly"]}]},
            {"name": "Long Desc", "description": "d" * 201,
             "permissions": [{"resource": "invoices", "actions": ["read"]}]},
        ],
    )
    def test_invalid_roles_rejected(self, db_session, org_a, payload):
        with pytest.raises(ValidationError):
            role_service.create_role(org_a.id, payload)

    def test_update_grants(self, db_session, org_a):
        role = role_service.create_role(org_a.id, INVOICE_READER)
        updated = role_service.update_role(
            org_a.id,
            role.id,
            {"permissions": [{"resource": "invoices", "actions": ["read", "create", "read"]}]},
        )
        assert updated.grants == [{"resource": "invoices", "actions": ["read", "create"]}]

    def test_update_cannot_empty_grants(self, db_session, org_a):
        role = role_service.create_role(org_a.id, INVOICE_READER)
        with pytest.raises(ValidationError):
            role_service.update_role(org_a.id, role.id, {"permissions": []})


class TestAssignment:

    def test_assign_replaces_system_defaults(self, db_session, org_a, user_a):
        role = role_service.create_role(org_a.id, INVOICE_READER)
        role_service.assign_role_to_user(org_a.id, user_a.id, role.id)

        perms = role_service.get_user_permissions(org_a.id, user_a.id)
        assert perms["role"] == "user"
        assert perms["custom_role"]["name"] == "Invoice Reader"
        assert perms["permissions"] == [{"resource": "invoices", "actions": ["read"]}]
        assert perms["modules"] == ["invoices"]

    def test_union_strategy_keeps_defaults(self, app, db_session, org_a, user_a):
        role = role_service.create_role(org_a.id, INVOICE_READER)
        role_service.assign_role_to_user(org_a.id, user_a.id, role.id)

        grants = role_service.get_user_grants(user_a, strategy="union")
        resources = {g["resource"] for g in grants}
        assert {"dashboard", "products", "orders", "invoices"} <= resources

    def test_inactive_role_falls_back_to_system_role(self, db_session, org_a, user_a):
        role = role_service.create_role(org_a.id, INVOICE_READER)
        role_service.assign_role_to_user(org_a.id, user_a.id, role.id)
        role_service.update_role(org_a.id, role.id, {"is_active": False})

        perms = role_service.get_user_permissions(org_a.id, user_a.id)
        assert perms["custom_role"] is None
        assert {"resource": "dashboard", "actions": ["read"]} in perms["permissions"]

    def test_cannot_assign_inactive_role(self, db_session, org_a, user_a):
        role = role_service.create_role(org_a.id, {**INVOICE_READER, "is_active": False})
        with pytest.raises(ValidationError):
            role_service.assign_role_to_user(org_a.id, user_a.id, role.id)

    def test_cannot_assign_role_from_another_org(self, db_session, org_a, org_b, user_a):
        foreign = role_service.create_role(org_b.id, INVOICE_READER)
        with pytest.raises(NotFoundError):
            role_service.assign_role_to_user(org_a.id, user_a.id, foreign.id)

    def test_cannot_assign_to_user_in_another_org(self, db_session, org_a, admin_b):
        role = role_service.create_role(org_a.id, INVOICE_READER)
        with pytest.raises(NotFoundError):
            role_service.assign_role_to_user(org_a.id, admin_b.id, role.id)

    def test_assignment_is_logged(self, db_session, org_a, user_a, admin_a):
        role = role_service.create_role(org_a.id, INVOICE_READER)
        role_service.assign_role_to_user(org_a.id, user_a.id, role.id, assigned_by_user_id=admin_a.id)

        event = db_session.query(SecurityEvent).filter_by(event_type="ROLE_ASSIGNED").one()
        assert event.org_id == org_a.id
        assert event.user_id == admin_a.id

    def test_remove_role(self, db_session, org_a, user_a):
        role = role_service.create_role(org_a.id, INVOICE_READER)
        role_service.assign_role_to_user(org_a.id, user_a.id, role.id)

        user = role_service.remove_role_from_user(org_a.id, user_a.id)
        assert user.custom_role_id is None
        assert db_session.query(SecurityEvent).filter_by(event_type="ROLE_REMOVED").count() == 1


class TestDeleteRole:

    def test_delete_unassigned(self, db_session, org_a):
        role = role_service.create_role(org_a.id, INVOICE_READER)
        role_service.delete_role(org_a.id, role.id)
        assert db_session.get(Role, role.id) is None

    def test_delete_assigned_conflicts(self, db_session, org_a, user_a):
        role = role_service.create_role(org_a.id, INVOICE_READER)
        role_service.assign_role_to_user(org_a.id, user_a.id, role.id)

        with pytest.raises(ConflictError) as exc:
            role_service.delete_role(org_a.id, role.id)
        assert exc.value.details == {"assigned_users": 1}
