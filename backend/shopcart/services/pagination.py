# Overview: Offset pagination shared by catalog and order listings.

from __future__ import annotations

from flask import current_app


def normalize_page_args(page: int | None, per_page: int | None) -> tuple[int, int]:
    """Clamp page to >= 1 and per_page to [1, MAX_PAGE_SIZE]."""
    default_size = current_app.config.get("DEFAULT_PAGE_SIZE", 12)
    max_size = current_app.config.get("MAX_PAGE_SIZE", 100)
    per_page = per_page or default_size
    per_page = max(1, min(per_page, max_size))
    page = max(page or 1, 1)
    return page, per_page


def paginate(query, page: int | None, per_page: int | None, serialize=None) -> dict:
    """
    Run query for one page.

    Returns:
        Dict with 'items' (serialized with serialize, default to_dict()),
        'count' and 'pagination' metadata.
    """
    page, per_page = normalize_page_args(page, per_page)

    total = query.order_by(None).count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    rows = query.offset((page - 1) * per_page).limit(per_page).all()
    serialize = serialize or (lambda row: row.to_dict())

    return {
        "items": [serialize(row) for row in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
