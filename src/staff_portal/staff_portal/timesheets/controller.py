from __future__ import annotations

from flask import Flask, redirect, render_template, request, url_for

from ..common.datetime_utils import now_local, parse_iso_date
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
from ..container import Container


def register(app: Flask, container: Container) -> None:
    timesheets = container.timesheet_service

    def _month_page(user_id: int, employee_id=None):
        actor = current_actor()
        today = now_local()
        year = arg_year(today.year)
        month = arg_int("month", today.month)

        result = run_action(timesheets.list_month, actor=actor, user_id=user_id, year=year, month=month)
        if not result.success:
            flash_result(result, "")
            return redirect(url_for("dashboard"))
        entries = result.data
        summary = run_action(timesheets.month_summary, actor=actor, user_id=user_id, year=year, month=month).data
        return render_template(
            "timesheets/index.html",
            rows=[timesheets.to_ui(e) for e in entries],
            summary=summary,
            today_entry=timesheets.get_today(user_id=user_id) if user_id == actor.user_id else None,
            employee_id=employee_id,
            year=year,
            month=month,
            active_page="my_timesheet",
        )

    @app.route("/timesheets", endpoint="my_timesheet")
    @login_required
    def my_timesheet():
        return _month_page(current_actor().user_id)

    @app.route("/timesheets/branch", endpoint="branch_timesheet")
    @manager_required
    def branch_timesheet():
        actor = current_actor()
        try:
            work_date = parse_iso_date(request.args.get("date", ""))
        except ValueError:
            work_date = now_local().date()
        branch_id = arg_int("branch_id", None if actor.is_super_admin else actor.branch_id)

        rows = []
        if branch_id is not None or not actor.is_super_admin:
            result = run_action(timesheets.list_branch_day, actor=actor, branch_id=branch_id, work_date=work_date)
            if not result.success:
                flash_result(result, "")
                return redirect(url_for("dashboard"))
            rows = result.data
        return render_template(
            "timesheets/branch.html",
            rows=[(r, timesheets.to_ui(r.entry) if r.entry else None) for r in rows],
            branches=container.branch_service.list_branches(active_only=True) if actor.is_super_admin else [],
            branch_id=branch_id,
            work_date=work_date,
            active_page="branch_timesheet",
        )

    @app.route("/timesheets/<int:user_id>", endpoint="employee_timesheet")
    @manager_required
    def employee_timesheet(user_id: int):
        return _month_page(user_id, employee_id=user_id)

    @app.route("/timesheets/check-in", methods=["POST"], endpoint="check_in")
    @login_required
    def check_in():
        actor = current_actor()
        result = run_action(
            timesheets.check_in, actor=actor, user_id=actor.user_id, observations=request.form.get("observations")
        )
        if result.success and result.data.late_minutes:
            flash_result(result, f"Checked in, {result.data.late_minutes} min late", "warning")
        else:
            flash_result(result, "Checked in")
        return redirect(url_for("my_timesheet"))

    @app.route("/timesheets/check-out", methods=["POST"], endpoint="check_out")
    @login_required
    def check_out():
        actor = current_actor()
        flash_result(run_action(timesheets.check_out, actor=actor, user_id=actor.user_id), "Checked out")
        return redirect(url_for("my_timesheet"))

    @app.route("/timesheets/<int:user_id>/absences", methods=["POST"], endpoint="mark_absent")
    @manager_required
    def mark_absent(user_id: int):
        def record():
            return timesheets.mark_absent(
                actor=current_actor(),
                user_id=user_id,
                work_date=form_date("work_date"),
                observations=request.form.get("observations"),
            )

        flash_result(run_action(record), "Absence recorded")
        return redirect(url_for("employee_timesheet", user_id=user_id))
