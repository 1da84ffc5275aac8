from __future__ import annotations

from flask import Flask, flash, redirect, render_template, request, session, url_for

from ..common.results import run_action
from ..common.web import arg_int, flash_result, login_required
from ..container import Container


def register(app: Flask, container: Container) -> None:
    notifications = container.notification_service

    @app.route("/notifications", endpoint="notifications")
    @login_required
    def notification_list():
        page = notifications.list_for_user(int(session["user_id"]), page=arg_int("page", 1))
        return render_template("notifications/index.html", page=page, active_page="notifications")

    @app.route("/notifications/<int:notification_id>/read", methods=["POST"], endpoint="read_notification")
    @login_required
    def read_notification(notification_id: int):
        result = run_action(
            notifications.mark_as_read, user_id=int(session["user_id"]), notification_id=notification_id
        )
        if not result.success:
            flash_result(result, "")
        # follow the notification link when the form carries one
        target = request.form.get("next") or ""
        if target.startswith("/") and not target.startswith("//"):
            return redirect(target)
        return redirect(url_for("notifications"))

    @app.route("/notifications/read-all", methods=["POST"], endpoint="read_all_notifications")
    @login_required
    def read_all_notifications():
        count = notifications.mark_all_as_read(int(session["user_id"]))
        flash(f"{count} notifications marked as read", "info")
        return redirect(url_for("notifications"))
