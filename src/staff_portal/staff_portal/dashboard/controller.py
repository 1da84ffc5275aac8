from __future__ import annotations

from flask import Flask, render_template

from ..common.datetime_utils import now_local
from ..common.results import run_action
from ..common.web import current_actor, flash_result, login_required
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/dashboard", endpoint="dashboard")
    @login_required
    def dashboard():
        actor = current_actor()
        result = run_action(container.dashboard_service.overview, actor=actor)
        if not result.success:
            flash_result(result, "")
        balance = container.leave_service.get_balance(
            actor=actor, employee_id=actor.user_id, year=now_local().year
        )
        return render_template("dashboard.html", data=result.data, balance=balance, active_page="dashboard")
