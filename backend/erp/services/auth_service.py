# Overview: Password hashing, user creation, registration and credential checks.

"""
Authentication Service with Multi-Tenant Support

MULTI-TENANT: users belong to exactly one organization (org_id). Email is
the login identifier and is unique across all organizations.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost from BCRYPT_ROUNDS, 12 in production)
- Minimum 8 characters, upper, lower, digit and special character
- Session tokens managed separately (see session_service.py)
- Authentication refuses users of deactivated organizations
"""

from __future__ import annotations

import logging
import re

import bcrypt
from flask import current_app, has_app_context
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Organization, User
from ..permissions import SystemRole
from ..time_utils import utcnow
from ..validation import EMAIL_RE, enforce_rules_user_role
from .role_service import initialize_system_roles

logger = logging.getLogger(__name__)


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    """
    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def _bcrypt_rounds() -> int:
    if has_app_context():
        return current_app.config.get("BCRYPT_ROUNDS", 12)
    return 12


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=_bcrypt_rounds())
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe via bcrypt.checkpw. Malformed hashes never verify."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _normalize_email(email) -> str:
    if not isinstance(email, str) or not EMAIL_RE.match(email.strip()):
        raise ValidationError("Invalid email address")
    return email.strip().lower()


def create_user(
    org_id: int,
    name: str,
    email: str,
    password: str,
    role: str = SystemRole.USER,
    *,
    commit: bool = True,
) -> User:
    """
    Create a user in an organization.

    Raises:
        NotFoundError: organization missing
        ValidationError: bad email, weak password, unknown system role
        ConflictError: email already registered (in any organization)
    """
    org = db.session.get(Organization, org_id)
    if org is None:
        raise NotFoundError("Organization not found")
    if not org.is_active:
        raise ValidationError("Organization is not active")

    if not isinstance(name, str) or len(name.strip()) < 2:
        raise ValidationError("Name must be at least 2 characters")
    email = _normalize_email(email)
    role = enforce_rules_user_role(role)

    if db.session.query(User.id).filter(User.email == email).first() is not None:
        raise ConflictError("User with this email already exists")

    user = User(
        org_id=org_id,
        name=name.strip(),
        email=email,
        password_hash=hash_password(password),
        role=role,
    )
    db.session.add(user)
    if commit:
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError("User with this email already exists")
    return user


def register_organization(org_name: str, name: str, email: str, password: str) -> tuple[Organization, User]:
    """
    Self-service signup: new organization, its four system roles, and the
    first user as admin. All or nothing.
    """
    if not isinstance(org_name, str) or len(org_name.strip()) < 2:
        raise ValidationError("Organization name must be at least 2 characters")

    email = _normalize_email(email)
    if db.session.query(User.id).filter(User.email == email).first() is not None:
        raise ConflictError("User with this email already exists")

    org = Organization(name=org_name.strip(), is_active=True)
    db.session.add(org)
    try:
        db.session.flush()
        initialize_system_roles(org.id)
        user = create_user(org.id, name, email, password, SystemRole.ADMIN, commit=False)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("User with this email already exists")
    except ValidationError:
        db.session.rollback()
        raise

    logger.info("Registered organization %s with admin user %s", org.id, user.id)
    return org, user


def authenticate(email: str, password: str) -> User | None:
    """
    Returns the User when the credentials are valid and both the user and
    their organization are active, None otherwise. Updates last_login_at.
    """
    if not isinstance(email, str) or not isinstance(password, str):
        return None

    user = db.session.query(User).filter(
        User.email == email.strip().lower(),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    org = db.session.get(Organization, user.org_id)
    if not org or not org.is_active:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def list_users(org_id: int) -> list[User]:
    return db.session.query(User).filter(User.org_id == org_id).order_by(User.id.asc()).all()
