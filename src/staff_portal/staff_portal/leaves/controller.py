from __future__ import annotations

from flask import Flask, redirect, render_template, request, url_for

from ..common.datetime_utils import now_local
from ..common.results import run_action
from ..common.web import (
    arg_int,
    arg_year,
    current_actor,
    flash_result,
    form_date,
    login_required,
    manager_required,
)
from ..core.enums import LeaveType
from ..core.exceptions import ValidationError
from ..container import Container


def _parse_leave_type(value: str) -> LeaveType:
    try:
        return LeaveType(value)
    except ValueError:
        raise ValidationError("Unknown leave type")


def register(app: Flask, container: Container) -> None:
    leaves = container.leave_service

    @app.route("/leaves", endpoint="my_leaves")
    @login_required
    def my_leaves():
        actor = current_actor()
        year = arg_year(now_local().year)
        page = leaves.list_for_employee(actor=actor, employee_id=actor.user_id, year=year, page=arg_int("page", 1))
        balance = leaves.get_balance(actor=actor, employee_id=actor.user_id, year=year)
        return render_template("leaves/index.html", page=page, balance=balance, year=year, active_page="my_leaves")

    @app.route("/leaves/new", methods=["GET", "POST"], endpoint="new_leave")
    @login_required
    def new_leave():
        if request.method == "POST":
            actor = current_actor()

            def create():
                return leaves.create(
                    actor=actor,
                    leave_type=_parse_leave_type(request.form.get("leave_type", "")),
                    start_date=form_date("start_date"),
                    end_date=form_date("end_date"),
                    reason=request.form.get("reason", ""),
                )

            created = run_action(create)
            if created.success and request.form.get("action") == "submit":
                submitted = run_action(leaves.submit, actor=actor, request_id=created.data.request_id)
                flash_result(submitted, "Leave request submitted")
                return redirect(url_for("leave_detail", request_id=created.data.request_id))
            if flash_result(created, "Draft saved"):
                return redirect(url_for("leave_detail", request_id=created.data.request_id))

        return render_template("leaves/new.html", leave_types=list(LeaveType), active_page="new_leave")

    @app.route("/leaves/<int:request_id>", endpoint="leave_detail")
    @login_required
    def leave_detail(request_id: int):
        result = run_action(leaves.get_detail, actor=current_actor(), request_id=request_id)
        if not result.success:
            flash_result(result, "")
            return redirect(url_for("my_leaves"))
        return render_template("leaves/detail.html", leave=result.data, active_page="my_leaves")

    @app.route("/leaves/<int:request_id>/submit", methods=["POST"], endpoint="submit_leave")
    @login_required
    def submit_leave(request_id: int):
        flash_result(run_action(leaves.submit, actor=current_actor(), request_id=request_id), "Leave request submitted")
        return redirect(url_for("leave_detail", request_id=request_id))

    @app.route("/leaves/<int:request_id>/cancel", methods=["POST"], endpoint="cancel_leave")
    @login_required
    def cancel_leave(request_id: int):
        flash_result(
            run_action(leaves.cancel, actor=current_actor(), request_id=request_id), "Leave request cancelled", "info"
        )
        return redirect(url_for("leave_detail", request_id=request_id))

    @app.route("/leaves/approvals", endpoint="leave_approvals")
    @manager_required
    def leave_approvals():
        page = leaves.list_for_approval(
            actor=current_actor(), branch_id=arg_int("branch_id"), page=arg_int("page", 1)
        )
        return render_template("leaves/approvals.html", page=page, active_page="leave_approvals")

    @app.route("/leaves/<int:request_id>/approve", methods=["POST"], endpoint="approve_leave")
    @manager_required
    def approve_leave(request_id: int):
        result = run_action(
            leaves.approve,
            actor=current_actor(),
            request_id=request_id,
            comment=request.form.get("comment", ""),
        )
        flash_result(result, "Leave request approved")
        return redirect(url_for("leave_approvals"))

    @app.route("/leaves/<int:request_id>/reject", methods=["POST"], endpoint="reject_leave")
    @manager_required
    def reject_leave(request_id: int):
        result = run_action(
            leaves.reject,
            actor=current_actor(),
            request_id=request_id,
            comment=request.form.get("comment", ""),
        )
        flash_result(result, "Leave request rejected", "info")
        return redirect(url_for("leave_approvals"))
