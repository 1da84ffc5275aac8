from __future__ import annotations

import importlib
import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, render_template, request, session

from config import get_settings_module

from .common.datetime_utils import format_date, format_datetime
from .common.logging_utils import configure_logging
from .core.constants import (
    DEFAULT_SESSION_DAYS,
    LEAVE_STATUS_LABELS,
    LEAVE_TYPE_LABELS,
    ROLE_LABELS,
)
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_users, list_tables, missing_tables

from .container import Container, build_container
from .activities.controller import register as register_activities
from .audit.controller import register as register_audit
from .dashboard.controller import register as register_dashboard
from .leaves.controller import register as register_leaves
from .notifications.controller import register as register_notifications
from .recommendations.controller import register as register_recommendations
from .timesheets.controller import register as register_timesheets
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

_ROOT = Path(__file__).resolve().parents[3]

_BUSINESS_SETTINGS = ("ANNUAL_LEAVE_DAYS", "WORK_START", "WORK_END", "LATE_THRESHOLD_MINUTES")


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__, template_folder="../../../templates", static_folder="../../../static")

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.permanent_session_lifetime = timedelta(days=DEFAULT_SESSION_DAYS)

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info("Starting with settings=%s", settings_module)

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=_ROOT / "database" / "schema.sql")
            missing = missing_tables(list_tables(db_config))
            if missing:
                logger.warning("Schema applied but tables are missing: %s", ", ".join(missing))
            else:
                logger.info("Schema ready")
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            apply_seed_sql(db_config, seed_path=_ROOT / "database" / "seed.sql")
            ensure_demo_users(db_config)
            logger.info("Demo seed ready")

        business = {name: getattr(settings, name) for name in _BUSINESS_SETTINGS if hasattr(settings, name)}
        container = build_container(db_config=db_config, settings=business)

    app.jinja_env.filters["date"] = format_date
    app.jinja_env.filters["datetime"] = format_datetime

    @app.context_processor
    def inject_globals():
        unread = 0
        if "user_id" in session:
            unread = container.notification_service.unread_count(int(session["user_id"]))
        return {
            "unread_notifications": unread,
            "role_labels": ROLE_LABELS,
            "leave_type_labels": LEAVE_TYPE_LABELS,
            "leave_status_labels": LEAVE_STATUS_LABELS,
        }

    @app.errorhandler(500)
    def internal_error(error):
        logger.exception("Unhandled error on %s", request.path)
        return render_template("500.html"), 500

    register_users(app, container)
    register_dashboard(app, container)
    register_leaves(app, container)
    register_timesheets(app, container)
    register_activities(app, container)
    register_recommendations(app, container)
    register_notifications(app, container)
    register_audit(app, container)

    return app
