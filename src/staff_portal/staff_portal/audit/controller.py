from __future__ import annotations

from flask import Flask, render_template, request

from ..common.web import admin_required, arg_int, current_actor, parse_enum
from ..core.enums import AuditAction
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/admin/audit-log", endpoint="audit_log")
    @admin_required
    def audit_log():
        try:
            action = parse_enum(AuditAction, request.args.get("action"), "action")
        except ValidationError:
            action = None

        page = container.audit_service.list_logs(
            actor=current_actor(),
            entity=request.args.get("entity") or None,
            action=action,
            user_id=arg_int("user_id"),
            search=request.args.get("q"),
            page=arg_int("page", 1),
            page_size=arg_int("page_size", 50),
        )
        return render_template(
            "admin/audit_log.html",
            page=page,
            actions=list(AuditAction),
            filters=request.args,
            active_page="audit_log",
        )
