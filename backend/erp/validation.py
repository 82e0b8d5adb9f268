from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from sqlalchemy import JSON, Boolean, Date, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .permissions import VALID_ACTIONS, SYSTEM_ROLES
from .time_utils import parse_iso_datetime


# Maximum price: $9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

ROLE_NAME_RE = re.compile(r"^[A-Za-z0-9\s_-]+$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
ADDRESS_FIELDS = ("street", "city", "state", "postal_code", "country")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - choices: enum-like columns and their allowed values
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    choices: dict[str, set[str]] = field(default_factory=dict)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(key: str, value: Any) -> int:
    """Strict integer coercion: rejects bools, floats and scientific notation."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(col.key, value)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean")

    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, Date):
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return date.fromisoformat(value.strip())
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
        raise ValidationError(f"{col.key} must be a date")

    if isinstance(coltype, JSON):
        if not isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be an object or list")
        return value

    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be a string")
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        allowed = policy.choices.get(k)
        if allowed is not None and val not in allowed:
            raise ValidationError(f"{k} must be one of: {', '.join(sorted(allowed))}")

        patch[k] = val

    return patch


def require_int(payload: dict, key: str, *, required: bool = True, minimum: int | None = None) -> int | None:
    """Pull a strict integer out of a non-model payload (transfer, adjust, assign)."""
    if key not in payload or payload[key] is None:
        if required:
            raise ValidationError(f"{key} is required")
        return None
    value = coerce_int(key, payload[key])
    if minimum is not None and value < minimum:
        raise ValidationError(f"{key} must be >= {minimum}")
    return value


def _check_cents(patch: dict, key: str) -> None:
    if key in patch and patch[key] is not None:
        value = patch[key]
        if value < 0:
            raise ValidationError(f"{key} must be >= 0")
        if value > MAX_PRICE_CENTS:
            raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS}")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _check_cents(patch, "cost_price_cents")
    _check_cents(patch, "selling_price_cents")
    if "reorder_level" in patch and patch["reorder_level"] is not None:
        if patch["reorder_level"] < 0:
            raise ValidationError("reorder_level must be >= 0")
    if "images" in patch and patch["images"] is not None:
        if not isinstance(patch["images"], list) or not all(isinstance(i, str) for i in patch["images"]):
            raise ValidationError("images must be a list of strings")


def validate_grants(grants: Any) -> list[dict]:
    """Normalize a grant list: [{resource: str, actions: [..]}], at least one action each."""
    if not isinstance(grants, list):
        raise ValidationError("permissions must be a list")
    normalized = []
    for idx, grant in enumerate(grants):
        if not isinstance(grant, dict):
            raise ValidationError(f"permissions[{idx}] must be an object")
        resource = grant.get("resource")
        if not isinstance(resource, str) or not resource.strip():
            raise ValidationError(f"permissions[{idx}].resource is required")
        actions = grant.get("actions")
        if not isinstance(actions, list) or not actions:
            raise ValidationError(f"permissions[{idx}].actions requires at least one action")
        for action in actions:
            if action not in VALID_ACTIONS:
                raise ValidationError(f"Invalid action: {action}")
        # Preserve caller order, drop duplicates
        seen: list[str] = []
        for action in actions:
            if action not in seen:
                seen.append(action)
        normalized.append({"resource": resource.strip(), "actions": seen})
    return normalized


def enforce_rules_role(patch: dict, *, creating: bool) -> None:
    if "name" in patch and patch["name"] is not None:
        name = patch["name"]
        if len(name) < 2 or len(name) > 50:
            raise ValidationError("Role name must be between 2 and 50 characters")
        if not ROLE_NAME_RE.match(name):
            raise ValidationError(
                "Role name can only contain letters, numbers, spaces, hyphens, and underscores"
            )
    if patch.get("description") is not None and len(patch["description"]) > 200:
        raise ValidationError("Description must not exceed 200 characters")
    if "grants" in patch:
        patch["grants"] = validate_grants(patch["grants"])
        if creating and not patch["grants"]:
            raise ValidationError("At least one permission is required")


def validate_address(value: Any, *, key: str = "address") -> dict:
    if not isinstance(value, dict):
        raise ValidationError(f"{key} must be an object")
    address = {}
    for part in ADDRESS_FIELDS:
        raw = value.get(part)
        if not isinstance(raw, str) or not raw.strip():
            raise ValidationError(f"{key}.{part} is required")
        address[part] = raw.strip()
    return address


def enforce_rules_customer(patch: dict) -> None:
    if patch.get("email") is not None:
        patch["email"] = patch["email"].lower()
        if not EMAIL_RE.match(patch["email"]):
            raise ValidationError("Invalid email address")
    if "address" in patch and patch["address"] is not None:
        patch["address"] = validate_address(patch["address"])
    if patch.get("payment_terms_days") is not None and patch["payment_terms_days"] < 0:
        raise ValidationError("payment_terms_days must be >= 0")
    _check_cents(patch, "credit_limit_cents")
    if "tags" in patch and patch["tags"] is not None:
        if not isinstance(patch["tags"], list) or not all(isinstance(t, str) for t in patch["tags"]):
            raise ValidationError("tags must be a list of strings")
        patch["tags"] = [t.strip() for t in patch["tags"] if t.strip()]


def enforce_rules_employee(patch: dict) -> None:
    if patch.get("email") is not None:
        patch["email"] = patch["email"].lower()
        if not EMAIL_RE.match(patch["email"]):
            raise ValidationError("Invalid email address")
    _check_cents(patch, "salary_cents")
    if "address" in patch and patch["address"] is not None:
        patch["address"] = validate_address(patch["address"])
    if "emergency_contact" in patch and patch["emergency_contact"] is not None:
        contact = patch["emergency_contact"]
        if not isinstance(contact, dict):
            raise ValidationError("emergency_contact must be an object")
        for part in ("name", "relationship", "phone"):
            if not isinstance(contact.get(part), str) or not contact[part].strip():
                raise ValidationError(f"emergency_contact.{part} is required")


def validate_line_items(items: Any, *, price_key: str) -> list[dict]:
    """
    Normalize order lines. Each line needs product_id, quantity >= 1 and a
    non-negative unit price; discount_cents and tax_rate_bps default to 0.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("Order must have at least one item")
    lines = []
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{idx}] must be an object")
        product_id = require_int(item, "product_id")
        quantity = require_int(item, "quantity", minimum=1)
        unit_price = require_int(item, price_key, minimum=0)
        discount = require_int(item, "discount_cents", required=False, minimum=0) or 0
        tax_rate_bps = require_int(item, "tax_rate_bps", required=False, minimum=0) or 0
        if unit_price > MAX_PRICE_CENTS:
            raise ValidationError(f"items[{idx}].{price_key} cannot exceed {MAX_PRICE_CENTS}")
        lines.append({
            "product_id": product_id,
            "quantity": quantity,
            price_key: unit_price,
            "discount_cents": discount,
            "tax_rate_bps": tax_rate_bps,
        })
    return lines


def enforce_rules_user_role(value: Any) -> str:
    if value not in SYSTEM_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(SYSTEM_ROLES)}")
    return value
