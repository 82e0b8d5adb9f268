from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Employee(db.Model):
    """
    HR record. Not a login: employees may or may not have a User account.

    employee_code is unique within an organization.
    status: active | inactive | terminated (terminated is terminal)
    """
    __tablename__ = "employees"
    __table_args__ = (
        db.UniqueConstraint("org_id", "employee_code", name="uq_employees_org_code"),
        db.Index("ix_employees_org_status", "org_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    employee_code = db.Column(db.String(32), nullable=False)

    first_name = db.Column(db.String(120), nullable=False)
    last_name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    date_of_birth = db.Column(db.Date, nullable=True)
    hire_date = db.Column(db.Date, nullable=False)

    department = db.Column(db.String(120), nullable=False)
    job_title = db.Column(db.String(120), nullable=False)
    salary_cents = db.Column(db.Integer, nullable=False, default=0)
    employment_type = db.Column(db.String(16), nullable=False, default="full-time")
    status = db.Column(db.String(16), nullable=False, default="active")

    address = db.Column(db.JSON, nullable=True)
    emergency_contact = db.Column(db.JSON, nullable=True)

    terminated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "employee_code": self.employee_code,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "date_of_birth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "hire_date": self.hire_date.isoformat() if self.hire_date else None,
            "department": self.department,
            "job_title": self.job_title,
            "salary_cents": self.salary_cents,
            "employment_type": self.employment_type,
            "status": self.status,
            "address": self.address,
            "emergency_contact": self.emergency_contact,
            "terminated_at": to_utc_z(self.terminated_at) if self.terminated_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
