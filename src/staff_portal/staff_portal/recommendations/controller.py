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
from ..core.constants import RECOMMENDATION_STATUS_LABELS
from ..core.enums import (
    Frequency,
    Priority,
    RecommendationSource,
    RecommendationStatus,
    ResolutionKind,
    Role,
)
from ..core.exceptions import ValidationError
from ..container import Container
from .model import NewRecommendation


def _required_enum(enum_cls, name: str, label: str):
    value = parse_enum(enum_cls, request.form.get(name), label)
    if value is None:
        raise ValidationError(f"{label.capitalize()} is required")
    return value


def _int_list(name: str) -> list[int]:
    try:
        return [int(v) for v in request.form.getlist(name) if v]
    except ValueError:
        raise ValidationError("Invalid selection")


def _optional_int(name: str):
    values = _int_list(name)
    return values[0] if values else None


def register(app: Flask, container: Container) -> None:
    recommendations = container.recommendation_service

    @app.route("/recommendations", endpoint="recommendations")
    @login_required
    def recommendation_list():
        def query():
            return recommendations.list_recommendations(
                actor=current_actor(),
                status=parse_enum(RecommendationStatus, request.args.get("status"), "status"),
                priority=parse_enum(Priority, request.args.get("priority"), "priority"),
                source=parse_enum(RecommendationSource, request.args.get("source"), "source"),
                search=request.args.get("q"),
                page=arg_int("page", 1),
            )

        result = run_action(query)
        if not result.success:
            flash_result(result, "")
            return redirect(url_for("dashboard"))
        return render_template(
            "recommendations/index.html",
            page=result.data,
            statuses=list(RecommendationStatus),
            priorities=list(Priority),
            status_labels=RECOMMENDATION_STATUS_LABELS,
            active_page="recommendations",
        )

    @app.route("/recommendations/new", methods=["GET", "POST"], endpoint="new_recommendation")
    @manager_required
    def new_recommendation():
        actor = current_actor()
        if request.method == "POST":
            def create():
                data = NewRecommendation(
                    title=request.form.get("title", ""),
                    description=request.form.get("description", ""),
                    source=_required_enum(RecommendationSource, "source", "source"),
                    resolution_kind=_required_enum(ResolutionKind, "resolution_kind", "resolution kind"),
                    priority=_required_enum(Priority, "priority", "priority"),
                    due_date=form_datetime("due_date"),
                    frequency=parse_enum(Frequency, request.form.get("frequency"), "frequency"),
                    observations=request.form.get("observations"),
                    activity_id=_optional_int("activity_id"),
                    branch_id=_optional_int("branch_id"),
                    assignee_ids=_int_list("assignee_id"),
                )
                return recommendations.create(actor=actor, new_recommendation=data)

            result = run_action(create)
            if flash_result(result, "Recommendation created"):
                return redirect(url_for("recommendation_detail", recommendation_id=result.data))

        branches = container.branch_service.list_branches(active_only=True)
        if actor.role == Role.BRANCH_MANAGER:
            branches = [b for b in branches if b.branch_id == actor.branch_id]
        people = {
            b.branch_id: [
                u
                for role in (Role.BRANCH_MANAGER, Role.ADMINISTRATIVE, Role.CAREGIVER)
                for u in container.users_repo.list_by_branch_and_role(branch_id=b.branch_id, role=role)
            ]
            for b in branches
        }
        return render_template(
            "recommendations/new.html",
            branches=branches,
            people=people,
            sources=list(RecommendationSource),
            resolution_kinds=list(ResolutionKind),
            priorities=list(Priority),
            frequencies=list(Frequency),
            active_page="recommendations",
        )

    @app.route("/recommendations/<int:recommendation_id>", endpoint="recommendation_detail")
    @login_required
    def recommendation_detail(recommendation_id: int):
        result = run_action(recommendations.get_detail, actor=current_actor(), recommendation_id=recommendation_id)
        if not result.success:
            flash_result(result, "")
            return redirect(url_for("recommendations"))
        return render_template(
            "recommendations/detail.html",
            detail=result.data,
            statuses=list(RecommendationStatus),
            status_labels=RECOMMENDATION_STATUS_LABELS,
            active_page="recommendations",
        )

    @app.route("/recommendations/<int:recommendation_id>/status", methods=["POST"], endpoint="recommendation_status")
    @manager_required
    def recommendation_status(recommendation_id: int):
        def change():
            return recommendations.update_status(
                actor=current_actor(),
                recommendation_id=recommendation_id,
                new_status=_required_enum(RecommendationStatus, "status", "status"),
                comment=request.form.get("comment"),
            )

        flash_result(run_action(change), "Status updated")
        return redirect(url_for("recommendation_detail", recommendation_id=recommendation_id))

    @app.route("/recommendations/<int:recommendation_id>/resolve", methods=["POST"], endpoint="resolve_recommendation")
    @manager_required
    def resolve_recommendation(recommendation_id: int):
        result = run_action(
            recommendations.resolve,
            actor=current_actor(),
            recommendation_id=recommendation_id,
            observations=request.form.get("observations", ""),
        )
        flash_result(result, "Recommendation resolved")
        return redirect(url_for("recommendation_detail", recommendation_id=recommendation_id))

    @app.route("/recommendations/<int:recommendation_id>/delete", methods=["POST"], endpoint="delete_recommendation")
    @admin_required
    def delete_recommendation(recommendation_id: int):
        result = run_action(recommendations.delete, actor=current_actor(), recommendation_id=recommendation_id)
        if flash_result(result, "Recommendation deleted"):
            return redirect(url_for("recommendations"))
        return redirect(url_for("recommendation_detail", recommendation_id=recommendation_id))

    @app.route("/recommendations/detect-late", methods=["POST"], endpoint="detect_late_recommendations")
    @admin_required
    def detect_late_recommendations():
        result = run_action(recommendations.detect_late, actor=current_actor())
        if result.success:
            flash(f"{result.data} recommendations flagged late", "info")
        else:
            flash_result(result, "")
        return redirect(url_for("recommendations"))
