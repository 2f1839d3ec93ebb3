"""
Request helpers shared by the blueprints.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import jsonify, request
from flask_login import current_user

from auth import login_manager


def current_user_id() -> int:
    return current_user.id


def admin_required(f: Callable) -> Callable:
    """401 for anonymous callers, 403 for non-admin accounts."""
    @wraps(f)
    def decorated(*args: Any, **kwargs: Any) -> Any:
        if not current_user.is_authenticated:
            return login_manager.unauthorized()
        if not current_user.is_admin:
            return jsonify({"error": "Admin access required"}), 403
        return f(*args, **kwargs)
    return decorated


def _int_arg(name: str, default: int) -> int:
    try:
        return int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default


def page_args(default_limit: int, max_limit: int) -> tuple[int, int]:
    """Read ?page=&limit= as (page, limit); page >= 1, 1 <= limit <= max_limit."""
    page = max(1, _int_arg("page", 1))
    limit = min(max_limit, max(1, _int_arg("limit", default_limit)))
    return page, limit


def page_envelope(items: list, total: int, page: int, limit: int) -> dict:
    pages = max(1, -(-total // limit))
    return {
        "items": items,
        "pagination": {"page": page, "limit": limit, "total": total, "pages": pages},
    }
