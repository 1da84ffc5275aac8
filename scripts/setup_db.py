"""Create the portal schema and, optionally, the demo branches and accounts.

    python scripts/setup_db.py            # schema only
    python scripts/setup_db.py --seed     # schema + demo data

Exits with status 1 when a portal table is still missing afterwards.
"""

from __future__ import annotations

import argparse
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
from src.staff_portal.staff_portal.database.bootstrap import (
    DEMO_USERS,
    PORTAL_TABLES,
    apply_schema,
    apply_seed_sql,
    ensure_demo_users,
    list_tables,
    missing_tables,
)

logger = logging.getLogger("setup_db")


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--seed", action="store_true", help="Also create demo branches and one account per role")
    parser.add_argument("--skip-schema", action="store_true", help="Do not re-apply database/schema.sql")
    args = parser.parse_args()

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    db_config = dict(settings.DB_CONFIG)
    target = f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"

    if not args.skip_schema:
        apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")

    missing = missing_tables(list_tables(db_config))
    if missing:
        logger.error("%s is missing tables: %s", target, ", ".join(missing))
        return 1
    print(f"OK: {len(PORTAL_TABLES)} portal tables present on {target}")

    if args.seed:
        apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
        ensure_demo_users(db_config)
        for _, _, username, password, role, branch_code in DEMO_USERS:
            print(f"  {role:<15} {username} / {password} ({branch_code})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
