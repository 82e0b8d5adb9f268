# Overview: Pytest coverage for the Flask CLI command groups.

from erp.models import Organization, Role, User, Warehouse


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "init", "--org", "Init Co", "--email", "Boss@Init.co"])
    assert first.exit_code == 0, first.output
    assert "Created organization: Init Co" in first.output
    assert "Created admin user: Boss@Init.co" in first.output

    second = runner.invoke(args=["system", "init", "--org", "Init Co", "--email", "boss@init.co"])
    assert second.exit_code == 0, second.output
    assert "already exists, skipping" in second.output

    db_session.expire_all()
    org = db_session.query(Organization).filter_by(name="Init Co").one()
    assert db_session.query(Role).filter_by(org_id=org.id).count() == 4
    assert db_session.query(Warehouse).filter_by(org_id=org.id).count() == 1
    assert db_session.query(User).filter_by(email="boss@init.co").one().role == "admin"


def test_orgs_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    created = runner.invoke(args=["orgs", "create", "--name", "Delta Ltd"])
    assert "Created organization: Delta Ltd" in created.output

    listed = runner.invoke(args=["orgs", "list"])
    assert "Delta Ltd" in listed.output


def test_users_create_rejects_weak_password(app, org_a):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create", "--org-id", str(org_a.id), "--name", "Weak", "--email", "weak@acme.com",
        "--password", "short", "--role", "user",
    ])
    assert "Password validation failed" in result.output


def test_perms_check(app, manager_a):
    runner = app.test_cli_runner()

    allowed = runner.invoke(args=["perms", "check", manager_a.email, "inventory", "update"])
    assert "HAS permission 'inventory:update'" in allowed.output

    denied = runner.invoke(args=["perms", "check", manager_a.email, "roles", "read"])
    assert "DOES NOT HAVE permission 'roles:read'" in denied.output


def test_revoke_sessions(app, admin_a, admin_headers):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["users", "revoke-sessions", admin_a.email])
    assert "Revoked 1 session(s)" in result.output


def test_inventory_low_stock(app, org_a, product_a):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["inventory", "low-stock", "--org-id", str(org_a.id)])
    assert "1 low-stock product(s)" in result.output
    assert "Widget A" in result.output
