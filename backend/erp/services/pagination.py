# Overview: Page/limit pagination shared by the list endpoints.

from __future__ import annotations

from flask import current_app, has_app_context

from ..validation import coerce_int


def _page_bounds() -> tuple[int, int]:
    if has_app_context():
        return current_app.config.get("DEFAULT_PAGE_SIZE", 50), current_app.config.get("MAX_PAGE_SIZE", 100)
    return 50, 100


def paginate(query, page=None, limit=None, *, serialize=lambda obj: obj.to_dict()) -> dict:
    """
    Returns {"items", "count", "pagination"}; page is 1-indexed and limit is
    clamped to MAX_PAGE_SIZE.
    """
    default_size, max_size = _page_bounds()
    page = max(coerce_int("page", page), 1) if page is not None else 1
    limit = coerce_int("limit", limit) if limit is not None else default_size
    limit = max(1, min(limit, max_size))

    total = query.order_by(None).count()
    total_pages = (total + limit - 1) // limit if total > 0 else 1
    items = query.offset((page - 1) * limit).limit(limit).all()

    return {
        "items": [serialize(item) for item in items],
        "count": len(items),
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
