from __future__ import annotations

from flask import Flask, flash, redirect, render_template, request, url_for

from ..common.results import run_action
from ..common.web import (
    admin_required,
    arg_int,
    current_actor,
    flash_result,
    form_datetime,
    login_required,
    manager_required,
    parse_enum,
)
from ..core.constants import ACTIVITY_STATUS_LABELS
from ..core.enums import ActivityKind, ActivityStatus, Frequency, Role
from ..core.exceptions import ValidationError
from ..container import Container
from .model import BranchAssignment, NewActivity


def _assignments_from_form() -> list[BranchAssignment]:
    out = []
    for branch_id in request.form.getlist("branch_id"):
        manager_id = request.form.get(f"manager_for_{branch_id}")
        if not manager_id:
            raise ValidationError("Choose a manager for every selected branch")
        try:
            out.append(BranchAssignment(branch_id=int(branch_id), manager_id=int(manager_id)))
        except ValueError:
            raise ValidationError("Invalid branch assignment")
    return out


def _budget_from_form():
    raw = (request.form.get("budget") or "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        raise ValidationError("Budget must be a number")


def register(app: Flask, container: Container) -> None:
    activities = container.activity_service

    @app.route("/activities", endpoint="activities")
    @login_required
    def activity_list():
        def query():
            return activities.list_activities(
                actor=current_actor(),
                status=parse_enum(ActivityStatus, request.args.get("status"), "status"),
                search=request.args.get("q"),
                branch_id=arg_int("branch_id"),
                page=arg_int("page", 1),
            )

        result = run_action(query)
        if not result.success:
            flash_result(result, "")
            return redirect(url_for("dashboard"))
        return render_template(
            "activities/index.html",
            page=result.data,
            statuses=list(ActivityStatus),
            status_labels=ACTIVITY_STATUS_LABELS,
            active_page="activities",
        )

    @app.route("/activities/new", methods=["GET", "POST"], endpoint="new_activity")
    @manager_required
    def new_activity():
        if request.method == "POST":
            def create():
                data = NewActivity(
                    title=request.form.get("title", ""),
                    description=request.form.get("description"),
                    kind=parse_enum(ActivityKind, request.form.get("kind"), "activity kind") or ActivityKind.ONE_OFF,
                    frequency=parse_enum(Frequency, request.form.get("frequency"), "frequency"),
                    start_date=form_datetime("start_date"),
                    end_date=form_datetime("end_date"),
                    budget=_budget_from_form(),
                    assignments=_assignments_from_form(),
                )
                return activities.create(actor=current_actor(), new_activity=data)

            result = run_action(create)
            if flash_result(result, "Activity created"):
                return redirect(url_for("activity_detail", activity_id=result.data))

        branches = container.branch_service.list_branches(active_only=True)
        managers = {
            b.branch_id: container.users_repo.list_by_branch_and_role(branch_id=b.branch_id, role=Role.BRANCH_MANAGER)
            for b in branches
        }
        return render_template(
            "activities/new.html",
            branches=branches,
            managers=managers,
            kinds=list(ActivityKind),
            frequencies=list(Frequency),
            active_page="activities",
        )

    @app.route("/activities/<int:activity_id>", endpoint="activity_detail")
    @login_required
    def activity_detail(activity_id: int):
        result = run_action(activities.get_detail, actor=current_actor(), activity_id=activity_id)
        if not result.success:
            flash_result(result, "")
            return redirect(url_for("activities"))
        return render_template(
            "activities/detail.html",
            detail=result.data,
            statuses=list(ActivityStatus),
            status_labels=ACTIVITY_STATUS_LABELS,
            active_page="activities",
        )

    @app.route("/activities/<int:activity_id>/status", methods=["POST"], endpoint="activity_status")
    @manager_required
    def activity_status(activity_id: int):
        def change():
            new_status = parse_enum(ActivityStatus, request.form.get("status"), "status")
            if new_status is None:
                raise ValidationError("Choose a status")
            return activities.update_status(
                actor=current_actor(),
                activity_id=activity_id,
                new_status=new_status,
                comment=request.form.get("comment"),
            )

        flash_result(run_action(change), "Status updated")
        return redirect(url_for("activity_detail", activity_id=activity_id))

    @app.route("/activities/<int:activity_id>/delete", methods=["POST"], endpoint="delete_activity")
    @admin_required
    def delete_activity(activity_id: int):
        if flash_result(run_action(activities.delete, actor=current_actor(), activity_id=activity_id), "Activity deleted"):
            return redirect(url_for("activities"))
        return redirect(url_for("activity_detail", activity_id=activity_id))

    @app.route("/activities/detect-late", methods=["POST"], endpoint="detect_late_activities")
    @admin_required
    def detect_late_activities():
        count = activities.detect_late()
        flash(f"{count} activities flagged late", "info")
        return redirect(url_for("activities"))
