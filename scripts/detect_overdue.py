"""Flag overdue activities and recommendations as late.

Meant to run from cron once a day, for example:
    APP_ENV=production python scripts/detect_overdue.py
"""

from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.staff_portal.staff_portal.common.logging_utils import configure_logging
from src.staff_portal.staff_portal.container import build_container

logger = logging.getLogger("detect_overdue")


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    container = build_container(db_config=dict(settings.DB_CONFIG))
    activities = container.activity_service.detect_late()
    recommendations = container.recommendation_service.detect_late()
    logger.info("Flagged %d activities and %d recommendations late", activities, recommendations)
    print(f"OK: {activities} activities, {recommendations} recommendations flagged late")


if __name__ == "__main__":
    main()
