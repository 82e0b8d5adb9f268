# Overview: Pytest coverage for employee records and their status lifecycle.

from datetime import date

import pytest

from erp.errors import ConflictError, NotFoundError, ValidationError
from erp.services import employee_service
from erp.services.lifecycle_service import LifecycleError


def _payload(**overrides):
    payload = {
        "first_name": "Erin",
        "last_name": "Walsh",
        "email": "Erin.Walsh@acme.com",
        "hire_date": "2026-03-02",
        "department": "Warehouse",
        "job_title": "Picker",
    }
    payload.update(overrides)
    return payload


class TestEmployees:

    def test_create_allocates_code(self, db_session, org_a, org_b):
        first = employee_service.create_employee(org_a.id, _payload())
        second = employee_service.create_employee(org_a.id, _payload(email="second@acme.com"))
        other = employee_service.create_employee(org_b.id, _payload())

        assert first.employee_code == "EMP-00001"
        assert second.employee_code == "EMP-00002"
        assert other.employee_code == "EMP-00001"
        assert first.email == "erin.walsh@acme.com"
        assert first.hire_date == date(2026, 3, 2)
        assert first.status == "active"
        assert first.employment_type == "full-time"

    def test_explicit_code_must_be_unique(self, db_session, org_a):
        employee_service.create_employee(org_a.id, _payload(employee_code="WH-7"))
        with pytest.raises(ConflictError):
            employee_service.create_employee(org_a.id, _payload(employee_code="WH-7"))

    @pytest.mark.parametrize(
        "overrides",
        [
            {"employment_type": "volunteer"},
            {"hire_date": "02/03/2026"},
            {"salary_cents": -1},
            {"email": "nope"},
            {"emergency_contact": {"name": "Pat"}},
        ],
    )
    def test_invalid_payloads(self, db_session, org_a, overrides):
        with pytest.raises(ValidationError):
            employee_service.create_employee(org_a.id, _payload(**overrides))

    def test_missing_required(self, db_session, org_a):
        payload = _payload()
        del payload["department"]
        with pytest.raises(ValidationError):
            employee_service.create_employee(org_a.id, payload)

    def test_update_rejects_blank_required_field(self, db_session, org_a):
        employee = employee_service.create_employee(org_a.id, _payload())
        with pytest.raises(ValidationError):
            employee_service.update_employee(org_a.id, employee.id, {"job_title": ""})

        updated = employee_service.update_employee(org_a.id, employee.id, {"job_title": "Lead Picker"})
        assert updated.job_title == "Lead Picker"

    def test_status_lifecycle(self, db_session, org_a):
        employee = employee_service.create_employee(org_a.id, _payload())

        assert employee_service.set_employee_status(org_a.id, employee.id, "inactive").status == "inactive"
        assert employee_service.set_employee_status(org_a.id, employee.id, "active").status == "active"

        terminated = employee_service.terminate_employee(org_a.id, employee.id)
        assert terminated.status == "terminated"
        assert terminated.terminated_at is not None

        with pytest.raises(LifecycleError):
            employee_service.set_employee_status(org_a.id, employee.id, "active")
        with pytest.raises(LifecycleError):
            employee_service.update_employee(org_a.id, employee.id, {"job_title": "Rehired"})

    def test_unknown_status(self, db_session, org_a):
        employee = employee_service.create_employee(org_a.id, _payload())
        with pytest.raises(ValidationError):
            employee_service.set_employee_status(org_a.id, employee.id, "on-leave")

    def test_list_filters(self, db_session, org_a):
        employee_service.create_employee(org_a.id, _payload())
        office = employee_service.create_employee(org_a.id, _payload(
            first_name="Omar", last_name="Adams", email="omar@acme.com", department="Office",
        ))
        employee_service.set_employee_status(org_a.id, office.id, "inactive")

        result = employee_service.list_employees(org_a.id, department="Office")
        assert [e["id"] for e in result["items"]] == [office.id]

        result = employee_service.list_employees(org_a.id, status="active")
        assert [e["last_name"] for e in result["items"]] == ["Walsh"]

        result = employee_service.list_employees(org_a.id, search="omar")
        assert result["count"] == 1

    def test_foreign_employee(self, db_session, org_a, org_b):
        employee = employee_service.create_employee(org_b.id, _payload())
        with pytest.raises(NotFoundError):
            employee_service.terminate_employee(org_a.id, employee.id)


class TestEmployeesHttp:

    def test_manager_reads_but_admin_writes(self, client, admin_headers, manager_headers):
        created = client.post("/api/employees", json=_payload(), headers=admin_headers)
        assert created.status_code == 201
        employee_id = created.get_json()["id"]

        assert client.get(f"/api/employees/{employee_id}", headers=manager_headers).status_code == 200
        assert client.delete(f"/api/employees/{employee_id}", headers=manager_headers).status_code == 403

        resp = client.delete(f"/api/employees/{employee_id}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["employee"]["status"] == "terminated"

        again = client.post(
            f"/api/employees/{employee_id}/status", json={"status": "active"}, headers=admin_headers
        )
        assert again.status_code == 409
