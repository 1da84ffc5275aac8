from __future__ import annotations

from datetime import MAXYEAR, MINYEAR, date, datetime
from functools import wraps
from typing import Optional

from flask import flash, redirect, render_template, request, session, url_for

from ..core.enums import Role
from ..core.exceptions import ValidationError
from ..users.model import Actor
from .datetime_utils import parse_iso_date
from .results import ActionResult


def current_actor() -> Actor:
    branch_id = session.get("branch_id")
    return Actor(
        user_id=int(session["user_id"]),
        role=Role(session["role"]),
        branch_id=int(branch_id) if branch_id is not None else None,
    )


def current_user_view() -> dict:
    return {"full_name": session.get("name"), "role": session.get("role")}


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            flash("Please log in to continue", "warning")
            return redirect(url_for("login"))
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    allowed = {r.value for r in roles}

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return redirect(url_for("login"))
            if session.get("role") not in allowed:
                return render_template("403.html", current_user=current_user_view()), 403
            return view(*args, **kwargs)

        return wrapper

    return decorator


manager_required = roles_required(Role.SUPER_ADMIN, Role.BRANCH_MANAGER)
admin_required = roles_required(Role.SUPER_ADMIN)


def flash_result(result: ActionResult, success_message: str, category: str = "success") -> bool:
    if result.success:
        flash(success_message, category)
    else:
        flash(result.error or "Operation failed", "danger")
    return result.success


def form_date(name: str) -> date:
    raw = (request.form.get(name) or "").strip()
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise ValidationError(f"Invalid date: {name}")


def arg_int(name: str, default: Optional[int] = None) -> Optional[int]:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def arg_year(default: int) -> int:
    """`?year=` as an int `date()` accepts, else `default`."""
    year = arg_int("year", default)
    return year if MINYEAR <= year <= MAXYEAR else default


def form_datetime(name: str) -> Optional[datetime]:
    """Optional <input type="datetime-local"> (or plain date) value."""
    raw = (request.form.get(name) or "").strip()
    if not raw:
        return None
    for fmt in ("%Y-%m-%dT%H:%M", "%Y-%m-%d"):
        try:
            return datetime.strptime(raw, fmt)
        except ValueError:
            continue
    raise ValidationError(f"Invalid date: {name}")


def parse_enum(enum_cls, value: Optional[str], label: str):
    if not value:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Unknown {label}")
