from __future__ import annotations

import logging

from flask import Flask, flash, redirect, render_template, request, session, url_for

from ..common.results import run_action
from ..common.web import admin_required, current_actor, flash_result, manager_required
from ..core.enums import Role
from ..core.exceptions import ValidationError
from ..container import Container

logger = logging.getLogger(__name__)


def _parse_role(value: str) -> Role:
    try:
        return Role(value)
    except ValueError:
        raise ValidationError("Unknown account type")


def _parse_branch(value):
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError("Unknown branch")


def register(app: Flask, container: Container) -> None:
    app.jinja_env.globals["csrf_token"] = lambda: ""

    @app.route("/", methods=["GET", "POST"], endpoint="login")
    def login():
        if "user_id" in session:
            return redirect(url_for("dashboard"))

        if request.method == "POST":
            result = run_action(
                container.auth_service.authenticate,
                request.form.get("username", ""),
                request.form.get("password", ""),
            )
            if result.success:
                s_user = result.data
                session.clear()
                session.permanent = bool(request.form.get("remember_me"))
                session["user_id"] = s_user.user_id
                session["name"] = s_user.full_name
                session["role"] = s_user.role.value
                session["branch_id"] = s_user.branch_id
                session["branch_name"] = s_user.branch_name
                logger.info("User %s logged in", s_user.user_id)
                flash("Welcome back!", "success")
                return redirect(url_for("dashboard"))
            flash(result.error, "danger")

        return render_template("login.html")

    @app.route("/logout", endpoint="logout")
    def logout():
        session.clear()
        flash("You have been logged out.", "info")
        return redirect(url_for("login"))

    @app.route("/admin/users", endpoint="admin_users")
    @admin_required
    def admin_users():
        users = container.user_service.list_admin_view()
        return render_template("admin/users.html", users=users, active_page="admin_users")

    @app.route("/admin/users/add", methods=["GET", "POST"], endpoint="add_user")
    @admin_required
    def add_user():
        if request.method == "POST":
            def create():
                return container.user_service.create_account(
                    actor=current_actor(),
                    first_name=request.form.get("first_name", ""),
                    last_name=request.form.get("last_name", ""),
                    email=request.form.get("email", ""),
                    username=request.form.get("username", ""),
                    password=request.form.get("password", ""),
                    role=_parse_role(request.form.get("role", "")),
                    branch_id=_parse_branch(request.form.get("branch_id")),
                )

            if flash_result(run_action(create), "Account created"):
                return redirect(url_for("admin_users"))

        return render_template(
            "admin/add_user.html",
            branches=container.branch_service.list_branches(active_only=True),
            roles=list(Role),
            active_page="add_user",
        )

    @app.route("/admin/users/<int:user_id>/edit", methods=["GET", "POST"], endpoint="edit_user")
    @manager_required
    def edit_user(user_id: int):
        actor = current_actor()
        back = url_for("admin_users") if actor.is_super_admin else url_for("branch_timesheet")

        if request.method == "POST":
            def update():
                return container.user_service.update_account(
                    actor=actor,
                    user_id=user_id,
                    first_name=request.form.get("first_name", ""),
                    last_name=request.form.get("last_name", ""),
                    email=request.form.get("email", ""),
                    username=request.form.get("username", ""),
                    role=_parse_role(request.form.get("role", "")),
                    branch_id=_parse_branch(request.form.get("branch_id")),
                    password=request.form.get("password") or None,
                )

            if flash_result(run_action(update), "Account updated"):
                return redirect(back)

        result = run_action(container.user_service.get_account, actor=actor, user_id=user_id)
        if not result.success:
            flash_result(result, "")
            return redirect(back)
        return render_template(
            "admin/edit_user.html",
            user=result.data,
            branches=container.branch_service.list_branches(active_only=True),
            roles=list(Role) if actor.is_super_admin else [r for r in Role if r != Role.SUPER_ADMIN],
            back=back,
            active_page="admin_users",
        )

    @app.route("/admin/users/<int:user_id>/active", methods=["POST"], endpoint="toggle_user")
    @admin_required
    def toggle_user(user_id: int):
        is_active = request.form.get("is_active") == "1"
        result = run_action(
            container.user_service.set_active, actor=current_actor(), user_id=user_id, is_active=is_active
        )
        flash_result(result, "Account enabled" if is_active else "Account disabled")
        return redirect(url_for("admin_users"))

    @app.route("/admin/branches", methods=["GET", "POST"], endpoint="admin_branches")
    @admin_required
    def admin_branches():
        if request.method == "POST":
            result = run_action(
                container.branch_service.create_branch,
                actor=current_actor(),
                name=request.form.get("name", ""),
                code=request.form.get("code", ""),
            )
            if flash_result(result, "Branch created"):
                return redirect(url_for("admin_branches"))

        return render_template(
            "admin/branches.html",
            branches=container.branch_service.list_branches(),
            active_page="admin_branches",
        )

    @app.route("/admin/branches/<int:branch_id>", methods=["POST"], endpoint="update_branch")
    @admin_required
    def update_branch(branch_id: int):
        result = run_action(
            container.branch_service.update_branch,
            actor=current_actor(),
            branch_id=branch_id,
            name=request.form.get("name", ""),
            code=request.form.get("code", ""),
        )
        flash_result(result, "Branch updated")
        return redirect(url_for("admin_branches"))

    @app.route("/admin/branches/<int:branch_id>/deactivate", methods=["POST"], endpoint="deactivate_branch")
    @admin_required
    def deactivate_branch(branch_id: int):
        result = run_action(container.branch_service.deactivate_branch, actor=current_actor(), branch_id=branch_id)
        flash_result(result, "Branch deactivated")
        return redirect(url_for("admin_branches"))
